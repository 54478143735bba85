from datetime import date
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, field_validator, model_validator

from wellness_backend.scheduling.calendar import (
    Weekday,
    normalize_time,
    parse_local_date,
    time_to_minutes,
    to_weekday,
    weekday_number,
)


class BlockKind(str, Enum):
    FULL_DAY = 'full_day'
    TIME_RANGE = 'time_range'
    WEEKLY_RECURRING = 'weekly_recurring'


# Older rows store recurring blocks as 'weekly_day'.
_LEGACY_KINDS = {'weekly_day': BlockKind.WEEKLY_RECURRING}


class AvailabilityBlock(BaseModel):
    """One practitioner-declared unavailability block, as read for a single computation."""

    id: int | None = None
    kind: BlockKind
    start_date: date
    end_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    day_of_week: Weekday | None = None
    externally_synced: bool = False
    reason: str | None = None

    @field_validator('kind', mode='before')
    @classmethod
    def validate_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return _LEGACY_KINDS.get(normalized, normalized)
        return value

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def validate_date(cls, value: Any) -> date | None:
        if value is None or value == '':
            return None
        return parse_local_date(value)

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def validate_time(cls, value: Any) -> str | None:
        if value is None or value == '':
            return None
        return normalize_time(value)

    @field_validator('day_of_week', mode='before')
    @classmethod
    def validate_day_of_week(cls, value: Any) -> Weekday | None:
        if value is None:
            return None
        return to_weekday(value)

    @model_validator(mode='after')
    def validate_shape(self) -> 'AvailabilityBlock':
        if self.end_date is None:
            self.end_date = self.start_date
        if self.end_date < self.start_date:
            raise ValueError('Block end date must not be before its start date.')

        if (self.start_time is None) != (self.end_time is None):
            raise ValueError('A block time range needs both a start and an end time.')
        if self.has_time_range and time_to_minutes(self.start_time) >= time_to_minutes(self.end_time):
            raise ValueError('Block start time must be before its end time.')

        if self.kind == BlockKind.TIME_RANGE and not self.has_time_range:
            raise ValueError('Time range blocks need a start and an end time.')
        if self.kind == BlockKind.WEEKLY_RECURRING and self.day_of_week is None:
            raise ValueError('Weekly blocks need a day of week.')
        if self.kind != BlockKind.WEEKLY_RECURRING and self.day_of_week is not None:
            raise ValueError('Only weekly blocks may set a day of week.')
        return self

    @property
    def has_time_range(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @classmethod
    def from_row(cls, row) -> 'AvailabilityBlock':
        return cls(
            id=row.id,
            kind=row.block_type,
            start_date=row.start_date,
            end_date=row.end_date,
            start_time=row.start_time,
            end_time=row.end_time,
            day_of_week=row.day_of_week,
            externally_synced=bool(row.is_external),
            reason=row.reason,
        )


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap: [a, b) touching [b, c) does not count."""
    return start_a < end_b and start_b < end_a


def block_applies_to_date(block: AvailabilityBlock, target_date: str | date) -> bool:
    current = parse_local_date(target_date)
    if not block.start_date <= current <= block.end_date:
        return False
    if block.kind == BlockKind.WEEKLY_RECURRING:
        return weekday_number(current) == block.day_of_week
    return True


def block_covers_time(block: AvailabilityBlock, slot_time: str, slot_duration_minutes: int) -> bool:
    if not block.has_time_range:
        return True

    slot_start = time_to_minutes(slot_time)
    return intervals_overlap(
        slot_start,
        slot_start + slot_duration_minutes,
        time_to_minutes(block.start_time),
        time_to_minutes(block.end_time),
    )


def is_slot_blocked(
    target_date: str | date,
    slot_time: str,
    blocks: Iterable[AvailabilityBlock],
    slot_duration_minutes: int,
) -> bool:
    return any(
        block_applies_to_date(block, target_date) and block_covers_time(block, slot_time, slot_duration_minutes)
        for block in blocks
    )


def is_whole_day_blocked(target_date: str | date, blocks: Iterable[AvailabilityBlock]) -> bool:
    return any(
        not block.has_time_range and block_applies_to_date(block, target_date)
        for block in blocks
    )
