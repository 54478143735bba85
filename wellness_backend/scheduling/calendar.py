"""Local-date and wall-clock helpers shared by the slot engine.

Dates are always handled as naive calendar dates. A ``YYYY-MM-DD`` string is
split into its parts and never handed to a timezone-aware parser, so the
weekday of a date string is the same on every machine.
"""

from datetime import date, datetime, time
from enum import IntEnum

MINUTES_PER_DAY = 24 * 60


class Weekday(IntEnum):
    """ISO weekday numbers, Monday=1 .. Sunday=7."""

    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


def parse_local_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f'Invalid date: {value!r}')

    date_part = value.strip().split('T', 1)[0].split(' ', 1)[0]
    pieces = date_part.split('-')
    if len(pieces) != 3 or not all(piece.isdigit() for piece in pieces):
        raise ValueError(f'Invalid date: {value!r}')

    year, month, day = (int(piece) for piece in pieces)
    return date(year, month, day)


def time_to_minutes(value: str | time) -> int:
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        raise ValueError(f'Invalid time: {value!r}')

    pieces = value.strip().split(':')
    if len(pieces) not in (2, 3) or not all(piece.isdigit() for piece in pieces):
        raise ValueError(f'Invalid time: {value!r}')

    hours, minutes = int(pieces[0]), int(pieces[1])
    seconds = int(pieces[2]) if len(pieces) == 3 else 0
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59 or not 0 <= seconds <= 59:
        raise ValueError(f'Time out of range: {value!r}')

    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'Minute offset out of range: {minutes}')
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def normalize_time(value: str | time) -> str:
    """Return ``value`` as an ``HH:MM`` string, dropping seconds."""
    return minutes_to_time(time_to_minutes(value))


def weekday_number(value: str | date) -> int:
    # date.isoweekday() already maps Sunday to 7.
    return parse_local_date(value).isoweekday()


def to_weekday(value: int | str) -> Weekday:
    """Coerce a stored weekday key (``3`` or ``"3"``) into a ``Weekday``."""
    if isinstance(value, bool):
        raise ValueError(f'Invalid weekday: {value!r}')
    if isinstance(value, str):
        if not value.strip().isdigit():
            raise ValueError(f'Invalid weekday: {value!r}')
        value = int(value)
    try:
        return Weekday(value)
    except ValueError as exc:
        raise ValueError(f'Weekday must be between 1 and 7, got {value!r}') from exc
