from datetime import time
from typing import Any

from pydantic import BaseModel, field_validator

from wellness_backend.core import config
from wellness_backend.scheduling.blocks import AvailabilityBlock
from wellness_backend.scheduling.calendar import normalize_time, time_to_minutes
from wellness_backend.scheduling.working_hours import WorkingHours


class BookedInterval(BaseModel):
    """The part of a live appointment that matters for occupancy."""

    time: str
    duration_minutes: int = config.DEFAULT_SERVICE_DURATION_MINUTES
    appointment_id: int | None = None

    @field_validator('time', mode='before')
    @classmethod
    def validate_time(cls, value: Any) -> str:
        if not isinstance(value, (str, time)):
            raise ValueError(f'Invalid time: {value!r}')
        return normalize_time(value)

    @field_validator('duration_minutes', mode='before')
    @classmethod
    def default_duration(cls, value: Any) -> Any:
        return config.DEFAULT_SERVICE_DURATION_MINUTES if value is None else value

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.time)

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes


class SlotSnapshot(BaseModel):
    """Everything one slot computation reads, taken at a single point in time."""

    working_hours: WorkingHours | None = None
    appointments: list[BookedInterval] = []
    blocks: list[AvailabilityBlock] = []
