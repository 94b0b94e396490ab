"""Booking conflict detection.

Marks candidate slots as available or booked against the current
appointment list. Nothing is cached: the list can change between queries.

Two match modes:
- EXACT_START: a slot is booked only if an appointment starts exactly at it
- OVERLAP: a slot is booked if [slot, slot + span) intersects an appointment
"""
from datetime import date, time
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union

from clinic_scheduling import config
from clinic_scheduling.models import Appointment, TimeSlot
from clinic_scheduling.timeutils import format_time, to_minutes


class ConflictMatch(str, Enum):
    EXACT_START = "exact"
    OVERLAP = "overlap"


def default_match() -> ConflictMatch:
    return ConflictMatch(config.CONFLICT_MATCH)


def blocking_appointments(
    appointments: Iterable[Appointment],
    staff_id: Optional[str],
    day: date,
    exclude_appointment_id: Optional[str] = None
) -> List[Appointment]:
    """
    Non-cancelled appointments on a date that can block a slot.

    staff_id=None applies the simplified practice-wide schedule where any
    practitioner's booking blocks the slot.
    """
    return [
        apt for apt in appointments
        if not apt.is_cancelled
        and apt.date == day
        and (staff_id is None or apt.practitioner_id == staff_id)
        and apt.id != exclude_appointment_id
    ]


def find_conflict(
    start: Union[str, time],
    span_minutes: int,
    blocking: Sequence[Appointment],
    match: ConflictMatch
) -> Optional[Appointment]:
    """First appointment that blocks a start time, or None."""
    if match == ConflictMatch.EXACT_START:
        key = format_time(start)
        return next((apt for apt in blocking if apt.start_time == key), None)

    begin = to_minutes(start)
    finish = begin + span_minutes
    # Overlap: start < other_end AND end > other_start
    return next(
        (
            apt for apt in blocking
            if begin < to_minutes(apt.end_time) and finish > to_minutes(apt.start_time)
        ),
        None
    )


def mark_availability(
    candidate_slots: Sequence[Union[str, time]],
    existing_appointments: Iterable[Appointment],
    staff_id: Optional[str],
    day: date,
    *,
    match: Optional[ConflictMatch] = None,
    slot_minutes: int = config.SLOT_GRANULARITY_MINUTES,
    exclude_appointment_id: Optional[str] = None
) -> List[TimeSlot]:
    """
    Mark each candidate slot available or booked.

    Args:
        candidate_slots: Ordered start times from the slot generator
        existing_appointments: Current appointment collection
        staff_id: Staff member whose diary is checked (None = whole practice)
        day: Calendar date of the slots
        match: Exact start-time matching (default) or interval overlap
        slot_minutes: Slot span used by overlap matching
        exclude_appointment_id: Appointment to ignore (the one being edited)

    Returns:
        One TimeSlot per candidate, same order; booked slots carry the
        blocking appointment's id
    """
    match = match or default_match()
    blocking = blocking_appointments(
        existing_appointments, staff_id, day, exclude_appointment_id
    )

    marked = []
    for slot in candidate_slots:
        conflict = find_conflict(slot, slot_minutes, blocking, match)
        marked.append(TimeSlot(
            time=format_time(slot),
            available=conflict is None,
            appointment_id=conflict.id if conflict else None
        ))
    return marked
