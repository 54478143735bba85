from datetime import date, datetime, time

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wellness_backend.routes.dependencies import (
    database_unavailable,
    ensure_database_ready,
    get_db,
    get_session_factory,
    scheduling_http_error,
)
from wellness_backend.scheduling.booking import (
    ActorRole,
    AppointmentStatus,
    BookingRequest,
    CancellationRequest,
    RescheduleRequest,
    book_appointment,
    cancel_appointment,
    change_appointment_status,
    reschedule_appointment,
)
from wellness_backend.scheduling.calendar import normalize_time
from wellness_backend.scheduling.errors import SchedulingError

router = APIRouter(tags=['appointments'])


class ActorRequest(BaseModel):
    actor_role: ActorRole
    actor_id: int


class StatusChangeRequest(ActorRequest):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: int
    practitioner_id: int
    patient_id: int
    appointment_date: date
    appointment_time: str
    duration_minutes: int | None = None
    status: str
    notes: str | None = None
    rescheduled_by: str | None = None
    reschedule_reason: str | None = None
    rescheduled_at: datetime | None = None
    cancellation_reason: str | None = None

    class Config:
        from_attributes = True

    @field_validator('appointment_time', mode='before')
    @classmethod
    def format_time(cls, value: str | time) -> str:
        return normalize_time(value)


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: BookingRequest,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    ensure_database_ready()

    try:
        return book_appointment(db, data, session_factory=session_factory)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/appointments/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule(
    appointment_id: int,
    data: RescheduleRequest,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
):
    ensure_database_ready()

    try:
        return reschedule_appointment(db, appointment_id, data, session_factory=session_factory)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/appointments/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel(appointment_id: int, data: CancellationRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return cancel_appointment(db, appointment_id, data.actor_role, data.actor_id, reason=data.reason)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.post('/appointments/{appointment_id}/status', response_model=AppointmentResponse)
def change_status(appointment_id: int, data: StatusChangeRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return change_appointment_status(db, appointment_id, data.status, data.actor_role, data.actor_id)
    except SchedulingError as exc:
        raise scheduling_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
