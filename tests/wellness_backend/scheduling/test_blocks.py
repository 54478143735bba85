from datetime import date, time
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from wellness_backend.scheduling.blocks import (
    AvailabilityBlock,
    BlockKind,
    block_applies_to_date,
    block_covers_time,
    intervals_overlap,
    is_slot_blocked,
    is_whole_day_blocked,
)


def _time_range_block(start: str = '09:00', end: str = '10:00', **overrides) -> AvailabilityBlock:
    values = {
        'kind': 'time_range',
        'start_date': '2030-01-09',
        'start_time': start,
        'end_time': end,
    }
    values.update(overrides)
    return AvailabilityBlock(**values)


def test_single_day_block_defaults_end_date_to_start_date() -> None:
    block = AvailabilityBlock(kind='full_day', start_date='2030-01-09')

    assert block.end_date == date(2030, 1, 9)
    assert block_applies_to_date(block, '2030-01-09')
    assert not block_applies_to_date(block, '2030-01-10')
    assert not block_applies_to_date(block, '2030-01-08')


def test_date_range_is_inclusive_on_both_ends() -> None:
    block = AvailabilityBlock(kind='full_day', start_date='2030-01-07', end_date='2030-01-11')

    assert block_applies_to_date(block, '2030-01-07')
    assert block_applies_to_date(block, '2030-01-11T18:30:00Z')
    assert not block_applies_to_date(block, date(2030, 1, 12))


def test_weekly_block_only_applies_on_its_weekday() -> None:
    block = AvailabilityBlock(
        kind='weekly_recurring',
        start_date='2030-01-01',
        end_date='2030-03-31',
        day_of_week=3,
    )

    assert block_applies_to_date(block, '2030-01-09')
    assert block_applies_to_date(block, '2030-01-16')
    assert not block_applies_to_date(block, '2030-01-10')
    assert not block_applies_to_date(block, '2030-04-03')


def test_legacy_weekly_kind_is_read_as_weekly_recurring() -> None:
    block = AvailabilityBlock(kind='weekly_day', start_date='2030-01-01', end_date='2030-12-31', day_of_week='7')

    assert block.kind is BlockKind.WEEKLY_RECURRING
    assert block_applies_to_date(block, '2030-01-13')


def test_block_without_time_range_covers_every_time() -> None:
    full_day = AvailabilityBlock(kind='full_day', start_date='2030-01-09')
    weekly = AvailabilityBlock(kind='weekly_recurring', start_date='2030-01-09', day_of_week=3)

    assert block_covers_time(full_day, '00:00', 30)
    assert block_covers_time(weekly, '17:30', 50)


@pytest.mark.parametrize(
    ('slot_time', 'duration', 'expected'),
    [
        ('10:00', 50, False),
        ('09:30', 50, True),
        ('08:30', 30, False),
        ('08:30', 31, True),
        ('09:00', 30, True),
        ('09:59', 1, True),
    ],
)
def test_time_range_overlap_is_half_open(slot_time: str, duration: int, expected: bool) -> None:
    block = _time_range_block('09:00', '10:00')

    assert block_covers_time(block, slot_time, duration) is expected


def test_intervals_touching_at_an_endpoint_do_not_overlap() -> None:
    assert not intervals_overlap(540, 600, 600, 660)
    assert not intervals_overlap(600, 660, 540, 600)
    assert intervals_overlap(540, 601, 600, 660)


def test_is_slot_blocked_requires_date_and_time_match() -> None:
    blocks = [
        _time_range_block('13:00', '14:00'),
        _time_range_block('09:00', '10:00', start_date='2030-01-10'),
    ]

    assert is_slot_blocked('2030-01-09', '13:30', blocks, 30)
    assert not is_slot_blocked('2030-01-09', '09:00', blocks, 30)
    assert is_slot_blocked('2030-01-10', '09:00', blocks, 30)
    assert not is_slot_blocked('2030-01-09', '14:00', blocks, 30)


def test_is_whole_day_blocked_ignores_time_range_blocks() -> None:
    time_range = _time_range_block('09:00', '18:00')
    full_day = AvailabilityBlock(kind='full_day', start_date='2030-01-10')

    assert not is_whole_day_blocked('2030-01-09', [time_range])
    assert not is_whole_day_blocked('2030-01-09', [time_range, full_day])
    assert is_whole_day_blocked('2030-01-10', [time_range, full_day])


def test_externally_synced_blocks_still_block() -> None:
    block = _time_range_block('11:00', '12:00', externally_synced=True)

    assert is_slot_blocked('2030-01-09', '11:30', [block], 30)


@pytest.mark.parametrize(
    'values',
    [
        {'kind': 'time_range', 'start_date': '2030-01-09'},
        {'kind': 'full_day', 'start_date': '2030-01-09', 'start_time': '09:00'},
        {'kind': 'time_range', 'start_date': '2030-01-09', 'start_time': '10:00', 'end_time': '09:00'},
        {'kind': 'full_day', 'start_date': '2030-01-09', 'end_date': '2030-01-08'},
        {'kind': 'weekly_recurring', 'start_date': '2030-01-09'},
        {'kind': 'full_day', 'start_date': '2030-01-09', 'day_of_week': 3},
        {'kind': 'weekly_recurring', 'start_date': '2030-01-09', 'day_of_week': 8},
        {'kind': 'holiday', 'start_date': '2030-01-09'},
        {'kind': 'full_day', 'start_date': '2030/01/09'},
    ],
)
def test_malformed_blocks_are_rejected(values) -> None:
    with pytest.raises(ValidationError):
        AvailabilityBlock(**values)


def test_block_from_row_maps_storage_columns() -> None:
    row = SimpleNamespace(
        id=3,
        block_type='time_range',
        start_date=date(2030, 1, 9),
        end_date=None,
        start_time=time(12, 0),
        end_time=time(13, 0),
        day_of_week=None,
        is_external=None,
        reason='Lunch',
    )

    block = AvailabilityBlock.from_row(row)

    assert block.id == 3
    assert (block.start_time, block.end_time) == ('12:00', '13:00')
    assert block.externally_synced is False
    assert block.end_date == date(2030, 1, 9)
