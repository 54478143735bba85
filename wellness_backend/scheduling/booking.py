"""Write-time checks for creating, moving and closing appointments.

Availability is always recomputed right before the write. The write itself then
locks the practitioner's working-hours row and re-runs the live-overlap query in
the same transaction, so concurrent writers cannot store overlapping intervals.
A losing writer gets ``SlotNoLongerAvailable`` and is expected to pick a fresh
slot.
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wellness_backend.core import config
from wellness_backend.models.appointment import Appointment
from wellness_backend.models.availability import WorkingHoursRow
from wellness_backend.scheduling.blocks import intervals_overlap
from wellness_backend.scheduling.calendar import normalize_time, parse_local_date, time_to_minutes
from wellness_backend.scheduling.errors import (
    AppointmentNotFound,
    InvalidStatusTransition,
    NotAppointmentParticipant,
    SlotNoLongerAvailable,
)
from wellness_backend.scheduling.repository import fetch_booked_intervals
from wellness_backend.scheduling.slots import SlotStatus, TimeSlot, generate_slots

logger = logging.getLogger(__name__)


class AppointmentStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    PATIENT_NO_SHOW = 'patient_no_show'
    PROFESSIONAL_NO_SHOW = 'professional_no_show'


TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.PATIENT_NO_SHOW,
    AppointmentStatus.PROFESSIONAL_NO_SHOW,
})

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.PATIENT_NO_SHOW,
        AppointmentStatus.PROFESSIONAL_NO_SHOW,
    }),
}


class ActorRole(str, Enum):
    PATIENT = 'patient'
    PROFESSIONAL = 'professional'


def _validate_date(value: Any) -> date:
    return parse_local_date(value)


def _validate_time(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError('Time must be an HH:MM string.')
    return normalize_time(value)


def _validate_reason(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_RESCHEDULE_REASON_LENGTH:
        raise ValueError(f'Reason must be {config.MAX_RESCHEDULE_REASON_LENGTH} characters or fewer.')

    return normalized


class BookingRequest(BaseModel):
    practitioner_id: int
    patient_id: int
    appointment_date: date
    appointment_time: str
    duration_minutes: int = Field(default=config.DEFAULT_SERVICE_DURATION_MINUTES, gt=0)
    confirmed: bool = False
    notes: str | None = None

    @field_validator('appointment_date', mode='before')
    @classmethod
    def validate_date(cls, value: Any) -> date:
        return _validate_date(value)

    @field_validator('appointment_time', mode='before')
    @classmethod
    def validate_time(cls, value: Any) -> str:
        return _validate_time(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class RescheduleRequest(BaseModel):
    new_date: date
    new_time: str
    actor_role: ActorRole
    actor_id: int
    reason: str | None = None

    @field_validator('new_date', mode='before')
    @classmethod
    def validate_date(cls, value: Any) -> date:
        return _validate_date(value)

    @field_validator('new_time', mode='before')
    @classmethod
    def validate_time(cls, value: Any) -> str:
        return _validate_time(value)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _validate_reason(value)


class CancellationRequest(BaseModel):
    actor_role: ActorRole
    actor_id: int
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _validate_reason(value)


def ensure_slot_available(slots: list[TimeSlot], slot_date: date, slot_time: str) -> None:
    for slot in slots:
        if slot.time == slot_time:
            if slot.status == SlotStatus.AVAILABLE:
                return
            logger.warning('Slot %s %s rejected: %s', slot_date, slot_time, slot.status.value)
            raise SlotNoLongerAvailable(slot_date, slot_time)

    logger.warning('Slot %s %s rejected: not offered', slot_date, slot_time)
    raise SlotNoLongerAvailable(slot_date, slot_time)


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        raise AppointmentNotFound(appointment_id)
    return appointment


def ensure_participant(appointment: Appointment, actor_role: ActorRole, actor_id: int) -> None:
    if actor_role == ActorRole.PATIENT and appointment.patient_id == actor_id:
        return
    if actor_role == ActorRole.PROFESSIONAL and appointment.practitioner_id == actor_id:
        return
    raise NotAppointmentParticipant('Only the patient or professional on this appointment can change it.')


def transition_status(appointment: Appointment, new_status: AppointmentStatus) -> None:
    current = AppointmentStatus(appointment.status)
    if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransition(current.value, new_status.value)
    appointment.status = new_status.value


def _commit_slot_write(db: Session, slot_date: date, slot_time: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning('Slot %s %s lost to a concurrent booking', slot_date, slot_time)
        raise SlotNoLongerAvailable(slot_date, slot_time) from exc


def claim_interval(
    db: Session,
    practitioner_id: int,
    slot_date: date,
    slot_time: str,
    duration_minutes: int,
    exclude_appointment_id: int | None = None,
) -> None:
    """Lock the practitioner's schedule and re-check live overlap in the write transaction.

    The working-hours row lock serializes writers for one practitioner until the
    caller commits or rolls back. On a hit the transaction is rolled back and
    ``SlotNoLongerAvailable`` is raised.
    """
    db.query(WorkingHoursRow).filter(
        WorkingHoursRow.practitioner_id == practitioner_id,
    ).with_for_update().first()

    start = time_to_minutes(slot_time)
    end = start + duration_minutes
    for booked in fetch_booked_intervals(db, practitioner_id, slot_date):
        if exclude_appointment_id is not None and booked.appointment_id == exclude_appointment_id:
            continue
        if intervals_overlap(start, end, booked.start_minutes, booked.end_minutes):
            db.rollback()
            logger.warning(
                'Slot %s %s overlaps appointment %s at write time', slot_date, slot_time, booked.appointment_id
            )
            raise SlotNoLongerAvailable(slot_date, slot_time)


def book_appointment(
    db: Session,
    request: BookingRequest,
    *,
    session_factory=None,
    now: datetime | None = None,
) -> Appointment:
    slots = generate_slots(
        request.practitioner_id,
        request.appointment_date,
        request.duration_minutes,
        session_factory=session_factory,
        now=now,
    )
    ensure_slot_available(slots, request.appointment_date, request.appointment_time)
    claim_interval(
        db,
        request.practitioner_id,
        request.appointment_date,
        request.appointment_time,
        request.duration_minutes,
    )

    status = AppointmentStatus.CONFIRMED if request.confirmed else AppointmentStatus.PENDING
    appointment = Appointment(
        practitioner_id=request.practitioner_id,
        patient_id=request.patient_id,
        appointment_date=request.appointment_date,
        appointment_time=datetime.strptime(request.appointment_time, '%H:%M').time(),
        duration_minutes=request.duration_minutes,
        status=status.value,
        notes=request.notes,
    )
    db.add(appointment)
    _commit_slot_write(db, request.appointment_date, request.appointment_time)
    db.refresh(appointment)

    logger.info(
        'Booked appointment %s for practitioner %s on %s at %s (%s)',
        appointment.id,
        appointment.practitioner_id,
        request.appointment_date,
        request.appointment_time,
        status.value,
    )
    return appointment


def reschedule_appointment(
    db: Session,
    appointment_id: int,
    request: RescheduleRequest,
    *,
    session_factory=None,
    now: datetime | None = None,
) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    ensure_participant(appointment, request.actor_role, request.actor_id)

    current = AppointmentStatus(appointment.status)
    if current in TERMINAL_STATUSES:
        raise InvalidStatusTransition(current.value, 'rescheduled')

    duration_minutes = appointment.duration_minutes or config.DEFAULT_SERVICE_DURATION_MINUTES
    slots = generate_slots(
        appointment.practitioner_id,
        request.new_date,
        duration_minutes,
        session_factory=session_factory,
        now=now,
        exclude_appointment_id=appointment.id,
    )
    ensure_slot_available(slots, request.new_date, request.new_time)
    claim_interval(
        db,
        appointment.practitioner_id,
        request.new_date,
        request.new_time,
        duration_minutes,
        exclude_appointment_id=appointment.id,
    )

    previous = (appointment.appointment_date, appointment.appointment_time)
    appointment.appointment_date = request.new_date
    appointment.appointment_time = datetime.strptime(request.new_time, '%H:%M').time()
    appointment.rescheduled_by = request.actor_role.value
    appointment.reschedule_reason = request.reason
    appointment.rescheduled_at = now or datetime.now()
    _commit_slot_write(db, request.new_date, request.new_time)
    db.refresh(appointment)

    logger.info(
        'Rescheduled appointment %s from %s %s to %s %s by %s',
        appointment.id,
        previous[0],
        previous[1],
        request.new_date,
        request.new_time,
        request.actor_role.value,
    )
    return appointment


def change_appointment_status(
    db: Session,
    appointment_id: int,
    new_status: AppointmentStatus,
    actor_role: ActorRole,
    actor_id: int,
    cancellation_reason: str | None = None,
) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    ensure_participant(appointment, actor_role, actor_id)

    previous = appointment.status
    transition_status(appointment, new_status)
    if new_status == AppointmentStatus.CANCELLED:
        appointment.cancellation_reason = _validate_reason(cancellation_reason)
    db.commit()
    db.refresh(appointment)

    logger.info('Appointment %s moved from %s to %s by %s', appointment.id, previous, new_status.value, actor_role.value)
    return appointment


def cancel_appointment(
    db: Session,
    appointment_id: int,
    actor_role: ActorRole,
    actor_id: int,
    reason: str | None = None,
) -> Appointment:
    return change_appointment_status(
        db, appointment_id, AppointmentStatus.CANCELLED, actor_role, actor_id, cancellation_reason=reason
    )
