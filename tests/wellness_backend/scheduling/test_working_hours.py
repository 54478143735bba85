from datetime import date, time
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from wellness_backend.scheduling.calendar import Weekday
from wellness_backend.scheduling.working_hours import (
    DEFAULT_WORKING_DAYS,
    WorkingHours,
    WorkingHoursUpdate,
    bookable_dates,
    effective_window,
)


def test_effective_window_uses_complete_override() -> None:
    working_hours = WorkingHours(
        start_time='09:00',
        end_time='18:00',
        working_days=[1, 2, 3, 4, 5],
        per_day_override={'3': {'start': '12:00', 'end': '16:00'}},
    )

    window = effective_window(3, working_hours)

    assert (window.start, window.end) == ('12:00', '16:00')


def test_effective_window_falls_back_when_override_is_partial() -> None:
    working_hours = WorkingHours(
        start_time='09:00',
        end_time='18:00',
        per_day_override={'2': {'start': '10:00', 'end': None}},
    )

    window = effective_window(Weekday.TUESDAY, working_hours)

    assert (window.start, window.end) == ('09:00', '18:00')


def test_effective_window_does_not_validate_inverted_override() -> None:
    working_hours = WorkingHours(per_day_override={1: {'start': '17:00', 'end': '09:00'}})

    window = effective_window(1, working_hours)

    assert (window.start, window.end) == ('17:00', '09:00')


def test_working_hours_defaults_apply_to_null_columns() -> None:
    row = SimpleNamespace(
        working_start_time=None,
        working_end_time=None,
        working_days=[],
        per_day_schedule=None,
    )

    working_hours = WorkingHours.from_row(row)

    assert working_hours.start_time == '09:00'
    assert working_hours.end_time == '18:00'
    assert working_hours.working_days == DEFAULT_WORKING_DAYS
    assert working_hours.per_day_override == {}


def test_working_hours_from_row_normalizes_time_columns() -> None:
    row = SimpleNamespace(
        working_start_time=time(8, 30),
        working_end_time=time(14, 0, 0),
        working_days=[6, 7],
        per_day_schedule={'6': {'start': '10:00:00', 'end': '13:00:00'}},
    )

    working_hours = WorkingHours.from_row(row)

    assert working_hours.start_time == '08:30'
    assert working_hours.end_time == '14:00'
    assert working_hours.working_days == {Weekday.SATURDAY, Weekday.SUNDAY}
    assert working_hours.per_day_override[Weekday.SATURDAY].start == '10:00'


@pytest.mark.parametrize(
    'override',
    [
        {'8': {'start': '09:00', 'end': '12:00'}},
        {'0': {'start': '09:00', 'end': '12:00'}},
        {'monday': {'start': '09:00', 'end': '12:00'}},
    ],
)
def test_working_hours_rejects_out_of_range_override_keys(override) -> None:
    with pytest.raises(ValidationError):
        WorkingHours(per_day_override=override)


def test_working_hours_rejects_out_of_range_working_days() -> None:
    with pytest.raises(ValidationError):
        WorkingHours(working_days=[1, 9])


def test_working_hours_update_normalizes_days_and_schedule() -> None:
    update = WorkingHoursUpdate(
        working_start_time='9:00',
        working_end_time='17:00',
        working_days=[5, 1, 1, 3],
        per_day_schedule={'5': {'start': '09:00', 'end': '13:00'}},
    )

    assert update.working_start_time == '09:00'
    assert update.working_days == [1, 3, 5]
    assert update.per_day_schedule['5'].end == '13:00'


@pytest.mark.parametrize(
    'payload',
    [
        {'working_start_time': '18:00', 'working_end_time': '09:00', 'working_days': [1]},
        {'working_start_time': '09:00', 'working_end_time': '09:00', 'working_days': [1]},
        {
            'working_start_time': '09:00',
            'working_end_time': '17:00',
            'working_days': [1],
            'per_day_schedule': {'1': {'start': '12:00', 'end': '11:00'}},
        },
        {
            'working_start_time': '09:00',
            'working_end_time': '17:00',
            'working_days': [1],
            'per_day_schedule': {'1': {'start': '12:00'}},
        },
        {
            'working_start_time': '09:00',
            'working_end_time': '17:00',
            'working_days': [1],
            'per_day_schedule': {'9': {'start': '10:00', 'end': '11:00'}},
        },
    ],
)
def test_working_hours_update_rejects_invalid_windows(payload) -> None:
    with pytest.raises(ValidationError):
        WorkingHoursUpdate(**payload)


def test_bookable_dates_skips_non_working_days() -> None:
    working_hours = WorkingHours(working_days=[1, 3])

    # 2026-01-05 is a Monday.
    dates = bookable_dates(working_hours, date(2026, 1, 5), 7)

    assert [entry['date'] for entry in dates] == [date(2026, 1, 5), date(2026, 1, 7)]
    assert dates[0]['display'] == 'Mon 5'
    assert dates[1]['weekday'] == 3


def test_bookable_dates_is_empty_without_working_hours() -> None:
    assert bookable_dates(None, date(2026, 1, 5), 60) == []
