"""Appointment model definitions."""

from sqlalchemy import DDL, Column, Date, DateTime, Index, Integer, String, Time, event, text
from wellness_backend.database import Base


class Appointment(Base):
    """Represents a booking between a patient and a practitioner."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    practitioner_id = Column(Integer, nullable=False, index=True)
    patient_id = Column(Integer, nullable=False, index=True)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer)
    status = Column(String, nullable=False, default="pending")
    notes = Column(String)
    rescheduled_by = Column(String)  # patient/professional
    reschedule_reason = Column(String)
    rescheduled_at = Column(DateTime)
    cancellation_reason = Column(String)

    __table_args__ = (
        # Two live bookings can never share a start time; cancelled rows release it.
        Index(
            "uq_appointments_practitioner_slot",
            "practitioner_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )


# PostgreSQL only: live appointments of one practitioner may not overlap at all.
event.listen(
    Appointment.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Appointment.__table__,
    "after_create",
    DDL(
        "ALTER TABLE appointments ADD CONSTRAINT ex_appointments_practitioner_overlap "
        "EXCLUDE USING gist ("
        "practitioner_id WITH =, "
        "tsrange("
        "appointment_date + appointment_time, "
        "appointment_date + appointment_time + make_interval(mins => coalesce(duration_minutes, 50))"
        ") WITH &&"
        ") WHERE (status <> 'cancelled')"
    ).execute_if(dialect="postgresql"),
)
