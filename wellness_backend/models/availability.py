"""Availability model definitions."""

from sqlalchemy import JSON, Boolean, Column, Date, Integer, String, Time
from wellness_backend.database import Base


class WorkingHoursRow(Base):
    """A practitioner's declared weekly working window."""
    __tablename__ = "working_hours"

    practitioner_id = Column(Integer, primary_key=True)
    working_start_time = Column(Time)
    working_end_time = Column(Time)
    working_days = Column(JSON)
    per_day_schedule = Column(JSON)


class AvailabilityBlockRow(Base):
    """A span of time during which a practitioner takes no bookings."""
    __tablename__ = "availability_blocks"

    id = Column(Integer, primary_key=True)
    practitioner_id = Column(Integer, nullable=False, index=True)
    block_type = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date)
    start_time = Column(Time)
    end_time = Column(Time)
    day_of_week = Column(Integer)
    is_external = Column(Boolean, default=False)
    reason = Column(String)
