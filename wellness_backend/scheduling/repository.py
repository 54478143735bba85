import concurrent.futures
import logging
from datetime import date

from pydantic import ValidationError
from sqlalchemy.orm import Session

from wellness_backend.core import config
from wellness_backend.database import SessionLocal
from wellness_backend.models.appointment import Appointment
from wellness_backend.models.availability import AvailabilityBlockRow, WorkingHoursRow
from wellness_backend.scheduling.blocks import AvailabilityBlock
from wellness_backend.scheduling.snapshot import BookedInterval, SlotSnapshot
from wellness_backend.scheduling.working_hours import WorkingHours

logger = logging.getLogger(__name__)

CANCELLED_STATUS = 'cancelled'

# Shared across requests; each read still opens its own session.
_executor = concurrent.futures.ThreadPoolExecutor(
    max_workers=config.SNAPSHOT_READ_WORKERS,
    thread_name_prefix='slot-snapshot',
)


def fetch_working_hours(db: Session, practitioner_id: int) -> WorkingHours | None:
    row = db.query(WorkingHoursRow).filter(WorkingHoursRow.practitioner_id == practitioner_id).first()
    if row is None:
        return None

    try:
        return WorkingHours.from_row(row)
    except ValidationError:
        logger.warning('Ignoring malformed working hours for practitioner %s', practitioner_id, exc_info=True)
        return None


def fetch_booked_intervals(db: Session, practitioner_id: int, slot_date: date) -> list[BookedInterval]:
    rows = db.query(Appointment.id, Appointment.appointment_time, Appointment.duration_minutes).filter(
        Appointment.practitioner_id == practitioner_id,
        Appointment.appointment_date == slot_date,
        Appointment.status != CANCELLED_STATUS,
    ).order_by(Appointment.appointment_time.asc()).all()

    return [
        BookedInterval(time=appointment_time, duration_minutes=duration_minutes, appointment_id=appointment_id)
        for appointment_id, appointment_time, duration_minutes in rows
    ]


def fetch_blocks(db: Session, practitioner_id: int) -> list[AvailabilityBlock]:
    rows = db.query(AvailabilityBlockRow).filter(
        AvailabilityBlockRow.practitioner_id == practitioner_id,
    ).order_by(AvailabilityBlockRow.start_date.asc(), AvailabilityBlockRow.id.asc()).all()

    blocks: list[AvailabilityBlock] = []
    for row in rows:
        try:
            blocks.append(AvailabilityBlock.from_row(row))
        except ValidationError:
            logger.warning('Skipping malformed availability block %s', row.id, exc_info=True)
    return blocks


def _read(session_factory, reader, *args):
    db = session_factory()
    try:
        return reader(db, *args)
    finally:
        db.close()


def load_snapshot(practitioner_id: int, slot_date: date, session_factory=None) -> SlotSnapshot:
    session_factory = session_factory or SessionLocal

    working_hours_future = _executor.submit(_read, session_factory, fetch_working_hours, practitioner_id)
    appointments_future = _executor.submit(
        _read, session_factory, fetch_booked_intervals, practitioner_id, slot_date
    )
    blocks_future = _executor.submit(_read, session_factory, fetch_blocks, practitioner_id)

    # .result() re-raises storage errors from the worker threads unchanged.
    return SlotSnapshot(
        working_hours=working_hours_future.result(),
        appointments=appointments_future.result(),
        blocks=blocks_future.result(),
    )
