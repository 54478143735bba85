from datetime import date, time, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from wellness_backend.core import config
from wellness_backend.scheduling.calendar import Weekday, normalize_time, time_to_minutes, to_weekday

DEFAULT_WORKING_DAYS = frozenset(
    {Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY}
)


def _normalize_optional_time(value: Any) -> str | None:
    if value is None or value == '':
        return None
    if isinstance(value, (str, time)):
        return normalize_time(value)
    raise ValueError(f'Invalid time: {value!r}')


class DayWindow(BaseModel):
    """A start/end pair for one weekday. Either side may be missing in stored data."""

    start: str | None = None
    end: str | None = None

    @field_validator('start', 'end', mode='before')
    @classmethod
    def validate_time(cls, value: Any) -> str | None:
        return _normalize_optional_time(value)

    @property
    def is_complete(self) -> bool:
        return self.start is not None and self.end is not None


class WorkingHours(BaseModel):
    """Working-hours snapshot for one practitioner, validated at the storage boundary."""

    model_config = ConfigDict(validate_default=True)

    start_time: str = config.DEFAULT_WORKING_START_TIME
    end_time: str = config.DEFAULT_WORKING_END_TIME
    working_days: frozenset[Weekday] = DEFAULT_WORKING_DAYS
    per_day_override: dict[Weekday, DayWindow] = {}

    @field_validator('start_time', mode='before')
    @classmethod
    def default_start_time(cls, value: Any) -> str:
        return _normalize_optional_time(value) or normalize_time(config.DEFAULT_WORKING_START_TIME)

    @field_validator('end_time', mode='before')
    @classmethod
    def default_end_time(cls, value: Any) -> str:
        return _normalize_optional_time(value) or normalize_time(config.DEFAULT_WORKING_END_TIME)

    @field_validator('working_days', mode='before')
    @classmethod
    def validate_working_days(cls, value: Any) -> frozenset[Weekday]:
        if not value:
            return DEFAULT_WORKING_DAYS
        return frozenset(to_weekday(day) for day in value)

    @field_validator('per_day_override', mode='before')
    @classmethod
    def validate_per_day_override(cls, value: Any) -> dict[Weekday, Any]:
        if not value:
            return {}
        if not isinstance(value, dict):
            raise ValueError('Per-day schedule must be a mapping of weekday to window.')
        return {to_weekday(key): window for key, window in value.items()}

    @classmethod
    def from_row(cls, row) -> 'WorkingHours':
        return cls(
            start_time=row.working_start_time,
            end_time=row.working_end_time,
            working_days=row.working_days,
            per_day_override=row.per_day_schedule,
        )


def effective_window(weekday: int, working_hours: WorkingHours) -> DayWindow:
    override = working_hours.per_day_override.get(to_weekday(weekday))
    if override is not None and override.is_complete:
        return override
    return DayWindow(start=working_hours.start_time, end=working_hours.end_time)


class WorkingHoursUpdate(BaseModel):
    """Request body for replacing a practitioner's working hours."""

    working_start_time: str
    working_end_time: str
    working_days: list[int]
    per_day_schedule: dict[str, DayWindow] | None = None

    @field_validator('working_start_time', 'working_end_time', mode='before')
    @classmethod
    def validate_time(cls, value: Any) -> str:
        normalized = _normalize_optional_time(value)
        if normalized is None:
            raise ValueError('Working start and end times are required.')
        return normalized

    @field_validator('working_days')
    @classmethod
    def validate_working_days(cls, value: list[int]) -> list[int]:
        return sorted({int(to_weekday(day)) for day in value})

    @field_validator('per_day_schedule')
    @classmethod
    def validate_per_day_schedule(cls, value: dict[str, DayWindow] | None) -> dict[str, DayWindow] | None:
        if not value:
            return None
        normalized: dict[str, DayWindow] = {}
        for key, window in value.items():
            if not window.is_complete:
                raise ValueError(f'Day {key} needs both a start and an end time.')
            if time_to_minutes(window.start) >= time_to_minutes(window.end):
                raise ValueError(f'Day {key} must start before it ends.')
            normalized[str(int(to_weekday(key)))] = window
        return normalized

    @model_validator(mode='after')
    def validate_default_window(self) -> 'WorkingHoursUpdate':
        if time_to_minutes(self.working_start_time) >= time_to_minutes(self.working_end_time):
            raise ValueError('Working hours must start before they end.')
        return self


_DAY_NAMES = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun')


def bookable_dates(working_hours: WorkingHours | None, start: date, days: int) -> list[dict[str, Any]]:
    """Dates in ``[start, start + days)`` that fall on one of the practitioner's working days."""
    if working_hours is None:
        return []

    dates = []
    for offset in range(days):
        current = start + timedelta(days=offset)
        weekday = current.isoweekday()
        if weekday in working_hours.working_days:
            dates.append({
                'date': current,
                'weekday': weekday,
                'display': f'{_DAY_NAMES[weekday - 1]} {current.day}',
            })
    return dates
