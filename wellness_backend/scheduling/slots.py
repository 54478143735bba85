"""Bookable time-slot computation for a single practitioner and date.

``compute_slots`` is the pure part of the engine and works on a snapshot;
``generate_slots`` loads a fresh snapshot from the store first. Slots are never
cached: every call reflects the appointments and blocks at read time.
"""

import logging
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel

from wellness_backend.core import config
from wellness_backend.scheduling.blocks import (
    intervals_overlap,
    is_slot_blocked,
    is_whole_day_blocked,
)
from wellness_backend.scheduling.calendar import minutes_to_time, parse_local_date, time_to_minutes, weekday_number
from wellness_backend.scheduling.repository import load_snapshot
from wellness_backend.scheduling.snapshot import BookedInterval, SlotSnapshot
from wellness_backend.scheduling.working_hours import effective_window

logger = logging.getLogger(__name__)


class SlotStatus(str, Enum):
    AVAILABLE = 'available'
    OCCUPIED = 'occupied'
    BLOCKED = 'blocked'
    # Reserved for per-service exclusions; compute_slots never emits it.
    NOT_OFFERED = 'not_offered'


class TimeSlot(BaseModel):
    time: str
    display: str
    duration_minutes: int
    status: SlotStatus


def _is_occupied(
    slot_start: int,
    slot_end: int,
    appointments: list[BookedInterval],
    exclude_appointment_id: int | None,
) -> bool:
    for appointment in appointments:
        if exclude_appointment_id is not None and appointment.appointment_id == exclude_appointment_id:
            continue
        if intervals_overlap(slot_start, slot_end, appointment.start_minutes, appointment.end_minutes):
            return True
    return False


def compute_slots(
    snapshot: SlotSnapshot,
    slot_date: str | date,
    slot_duration_minutes: int,
    now: datetime | None = None,
    exclude_appointment_id: int | None = None,
) -> list[TimeSlot]:
    if isinstance(slot_duration_minutes, bool) or not isinstance(slot_duration_minutes, int) \
            or slot_duration_minutes <= 0:
        raise ValueError('Slot duration must be a positive number of minutes.')

    target_date = parse_local_date(slot_date)
    working_hours = snapshot.working_hours
    if working_hours is None:
        return []

    weekday = weekday_number(target_date)
    if weekday not in working_hours.working_days:
        return []

    window = effective_window(weekday, working_hours)
    start_minutes = time_to_minutes(window.start)
    end_minutes = time_to_minutes(window.end)

    now = now or datetime.now()
    cutoff_minutes = None
    if target_date == now.date():
        cutoff_minutes = now.hour * 60 + now.minute

    whole_day_blocked = is_whole_day_blocked(target_date, snapshot.blocks)

    slots: list[TimeSlot] = []
    for minutes in range(start_minutes, end_minutes, config.SLOT_STEP_MINUTES):
        if cutoff_minutes is not None and minutes <= cutoff_minutes:
            continue

        slot_time = minutes_to_time(minutes)
        if whole_day_blocked:
            status = SlotStatus.BLOCKED
        elif _is_occupied(minutes, minutes + slot_duration_minutes, snapshot.appointments, exclude_appointment_id):
            status = SlotStatus.OCCUPIED
        elif is_slot_blocked(target_date, slot_time, snapshot.blocks, slot_duration_minutes):
            status = SlotStatus.BLOCKED
        else:
            status = SlotStatus.AVAILABLE

        slots.append(
            TimeSlot(
                time=slot_time,
                display=slot_time,
                duration_minutes=slot_duration_minutes,
                status=status,
            )
        )

    return slots


def generate_slots(
    practitioner_id: int,
    slot_date: str | date,
    slot_duration_minutes: int,
    *,
    session_factory=None,
    now: datetime | None = None,
    exclude_appointment_id: int | None = None,
) -> list[TimeSlot]:
    target_date = parse_local_date(slot_date)
    snapshot = load_snapshot(practitioner_id, target_date, session_factory=session_factory)
    slots = compute_slots(
        snapshot,
        target_date,
        slot_duration_minutes,
        now=now,
        exclude_appointment_id=exclude_appointment_id,
    )
    logger.debug(
        'Computed %d slots for practitioner %s on %s (%d min)',
        len(slots),
        practitioner_id,
        target_date,
        slot_duration_minutes,
    )
    return slots


def filter_available(slots: list[TimeSlot]) -> list[TimeSlot]:
    return [slot for slot in slots if slot.status == SlotStatus.AVAILABLE]
