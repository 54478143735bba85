from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from wellness_backend.database import SessionLocal, ensure_appointment_schema
from wellness_backend.scheduling.errors import (
    AppointmentNotFound,
    InvalidStatusTransition,
    NotAppointmentParticipant,
    SchedulingError,
    SlotNoLongerAvailable,
)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    return SessionLocal


def database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def scheduling_http_error(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, SlotNoLongerAvailable):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                'code': 'slot_no_longer_available',
                'message': 'This time is no longer available. Please pick another slot.',
                'date': str(exc.slot_date),
                'time': exc.slot_time,
            },
        )
    if isinstance(exc, InvalidStatusTransition):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, NotAppointmentParticipant):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, AppointmentNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
