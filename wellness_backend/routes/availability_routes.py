from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wellness_backend.core import config
from wellness_backend.models.availability import AvailabilityBlockRow, WorkingHoursRow
from wellness_backend.routes.dependencies import (
    bad_request,
    database_unavailable,
    ensure_database_ready,
    get_db,
    get_session_factory,
)
from wellness_backend.scheduling.blocks import AvailabilityBlock, BlockKind
from wellness_backend.scheduling.calendar import parse_local_date
from wellness_backend.scheduling.repository import fetch_blocks, fetch_working_hours
from wellness_backend.scheduling.slots import TimeSlot, filter_available, generate_slots
from wellness_backend.scheduling.working_hours import DayWindow, WorkingHoursUpdate, bookable_dates

router = APIRouter(tags=['availability'])


class WorkingHoursResponse(BaseModel):
    practitioner_id: int
    working_start_time: str
    working_end_time: str
    working_days: list[int]
    per_day_schedule: dict[str, DayWindow]


class BookableDateResponse(BaseModel):
    date: date
    weekday: int
    display: str


class BlockRequest(BaseModel):
    block_type: BlockKind
    start_date: date
    end_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    day_of_week: int | None = None
    is_external: bool = False
    reason: str | None = None

    @field_validator('block_type', mode='before')
    @classmethod
    def validate_block_type(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    def to_block(self) -> AvailabilityBlock:
        return AvailabilityBlock(
            kind=self.block_type,
            start_date=self.start_date,
            end_date=self.end_date,
            start_time=self.start_time,
            end_time=self.end_time,
            day_of_week=self.day_of_week,
            externally_synced=self.is_external,
            reason=self.reason,
        )


def _to_time(value: str | None) -> time | None:
    if value is None:
        return None
    return datetime.strptime(value, '%H:%M').time()


def _working_hours_response(practitioner_id: int, working_hours) -> WorkingHoursResponse:
    return WorkingHoursResponse(
        practitioner_id=practitioner_id,
        working_start_time=working_hours.start_time,
        working_end_time=working_hours.end_time,
        working_days=sorted(int(day) for day in working_hours.working_days),
        per_day_schedule={
            str(int(day)): window for day, window in sorted(working_hours.per_day_override.items())
        },
    )


@router.get('/practitioners/{practitioner_id}/slots', response_model=list[TimeSlot])
def get_time_slots_for_date(
    practitioner_id: int,
    slot_date: str = Query(..., alias='date'),
    duration_minutes: int = Query(default=config.DEFAULT_SERVICE_DURATION_MINUTES, gt=0),
    include_unavailable: bool = Query(default=False),
    session_factory=Depends(get_session_factory),
):
    try:
        target_date = parse_local_date(slot_date)
    except ValueError as exc:
        raise bad_request(exc) from exc

    ensure_database_ready()

    try:
        slots = generate_slots(
            practitioner_id,
            target_date,
            duration_minutes,
            session_factory=session_factory,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if include_unavailable:
        return slots
    return filter_available(slots)


@router.get('/practitioners/{practitioner_id}/bookable-dates', response_model=list[BookableDateResponse])
def list_bookable_dates(
    practitioner_id: int,
    days: int = Query(default=config.BOOKING_HORIZON_DAYS, ge=1, le=config.BOOKING_HORIZON_DAYS),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        working_hours = fetch_working_hours(db, practitioner_id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return bookable_dates(working_hours, date.today(), days)


@router.get('/practitioners/{practitioner_id}/working-hours', response_model=WorkingHoursResponse)
def get_working_hours(practitioner_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        working_hours = fetch_working_hours(db, practitioner_id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if working_hours is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Working hours not configured.',
        )

    return _working_hours_response(practitioner_id, working_hours)


@router.put('/practitioners/{practitioner_id}/working-hours', response_model=WorkingHoursResponse)
def update_working_hours(practitioner_id: int, data: WorkingHoursUpdate, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        row = db.get(WorkingHoursRow, practitioner_id)
        if row is None:
            row = WorkingHoursRow(practitioner_id=practitioner_id)
            db.add(row)

        row.working_start_time = _to_time(data.working_start_time)
        row.working_end_time = _to_time(data.working_end_time)
        row.working_days = data.working_days
        row.per_day_schedule = (
            {day: window.model_dump() for day, window in data.per_day_schedule.items()}
            if data.per_day_schedule
            else None
        )
        db.commit()

        working_hours = fetch_working_hours(db, practitioner_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return _working_hours_response(practitioner_id, working_hours)


def _apply_block(row: AvailabilityBlockRow, block: AvailabilityBlock) -> None:
    row.block_type = block.kind.value
    row.start_date = block.start_date
    row.end_date = block.end_date
    row.start_time = _to_time(block.start_time)
    row.end_time = _to_time(block.end_time)
    row.day_of_week = int(block.day_of_week) if block.day_of_week is not None else None
    row.reason = block.reason


def _get_editable_block(db: Session, practitioner_id: int, block_id: int, action: str) -> AvailabilityBlockRow:
    row = db.query(AvailabilityBlockRow).filter(
        AvailabilityBlockRow.id == block_id,
        AvailabilityBlockRow.practitioner_id == practitioner_id,
    ).first()

    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Block not found.',
        )

    if row.is_external:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f'Blocks synced from an external calendar must be {action} in that calendar.',
        )

    return row


@router.get('/practitioners/{practitioner_id}/blocks', response_model=list[AvailabilityBlock])
def list_blocks(practitioner_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return fetch_blocks(db, practitioner_id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post(
    '/practitioners/{practitioner_id}/blocks',
    response_model=AvailabilityBlock,
    status_code=status.HTTP_201_CREATED,
)
def create_block(practitioner_id: int, data: BlockRequest, db: Session = Depends(get_db)):
    try:
        block = data.to_block()
    except ValueError as exc:
        raise bad_request(exc) from exc

    ensure_database_ready()

    try:
        row = AvailabilityBlockRow(practitioner_id=practitioner_id, is_external=block.externally_synced)
        _apply_block(row, block)
        db.add(row)
        db.commit()
        db.refresh(row)

        return AvailabilityBlock.from_row(row)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.put('/practitioners/{practitioner_id}/blocks/{block_id}', response_model=AvailabilityBlock)
def update_block(practitioner_id: int, block_id: int, data: BlockRequest, db: Session = Depends(get_db)):
    try:
        block = data.to_block()
    except ValueError as exc:
        raise bad_request(exc) from exc

    ensure_database_ready()

    try:
        row = _get_editable_block(db, practitioner_id, block_id, 'edited')
        _apply_block(row, block)
        db.commit()
        db.refresh(row)

        return AvailabilityBlock.from_row(row)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/practitioners/{practitioner_id}/blocks/{block_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_block(practitioner_id: int, block_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        row = _get_editable_block(db, practitioner_id, block_id, 'removed')
        db.delete(row)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
