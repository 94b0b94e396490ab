"""Free-slot resolution for one staff member on one date.

Combines the pieces of the slot engine:

    staff working hours at a centre -> candidate slots
        -> drop slots where the centre is closed (in-person)
        -> mark slots taken by existing appointments

Availability is always computed from the current appointment list.
"""
from datetime import date
from typing import Iterable, List, Optional

from clinic_scheduling import config
from clinic_scheduling.catalog import Catalog
from clinic_scheduling.conflicts import ConflictMatch, mark_availability
from clinic_scheduling.logging_config import get_logger
from clinic_scheduling.models import Appointment, LocationMode, StaffMember, TimeSlot, WeeklySchedule
from clinic_scheduling.slots import TimeOfDay, filter_by_time_of_day, generate_candidate_slots
from clinic_scheduling.working_hours import day_schedule_for, is_open_at

logger = get_logger(__name__)


def schedule_for(member: StaffMember, centre_id: Optional[str]) -> Optional[WeeklySchedule]:
    """
    Weekly schedule that governs a staff member's slots.

    With a centre, the staff member's hours at that centre (None if not
    schedulable there). Without one (virtual), their primary centre's hours,
    else the first assigned centre that has hours.
    """
    if centre_id:
        return member.schedule_at(centre_id)

    if member.primary_centre:
        primary = member.schedule_at(member.primary_centre)
        if primary is not None:
            return primary

    for assigned in member.assigned_centres:
        schedule = member.schedule_at(assigned)
        if schedule is not None:
            return schedule
    return None


def available_slots(
    catalog: Catalog,
    appointments: Iterable[Appointment],
    staff_id: Optional[str],
    day: Optional[date],
    service_id: Optional[str],
    centre_id: Optional[str] = None,
    *,
    location: Optional[LocationMode] = None,
    time_of_day: TimeOfDay = TimeOfDay.ANY,
    granularity_minutes: int = config.SLOT_GRANULARITY_MINUTES,
    match: Optional[ConflictMatch] = None,
    exclude_appointment_id: Optional[str] = None
) -> List[TimeSlot]:
    """
    Marked slots for a staff member on a date.

    Args:
        catalog: Centre/service/staff catalog
        appointments: Current appointment list (any dates)
        staff_id: Selected staff member
        day: Selected date
        service_id: Selected service (its duration spans overlap checks)
        centre_id: Centre for in-person bookings, None for virtual
        location: Defaults to in-person when a centre is given
        time_of_day: Morning/afternoon filter
        granularity_minutes: Slot step size
        match: Conflict matching mode (config default when None)
        exclude_appointment_id: Appointment being edited

    Returns:
        TimeSlots in ascending order; empty when a prerequisite is missing,
        the staff member is off, or the day is closed
    """
    member = catalog.get_staff_by_id(staff_id)
    service = catalog.get_service_by_id(service_id)
    if member is None or service is None or day is None:
        return []

    if location is None:
        location = LocationMode.IN_PERSON if centre_id else LocationMode.VIRTUAL
    if location == LocationMode.VIRTUAL:
        centre_id = None

    schedule = schedule_for(member, centre_id)
    if schedule is None:
        logger.debug("no_schedule_for_staff", staff_id=member.id, centre_id=centre_id)
        return []

    if member.is_off_on(day):
        logger.debug("staff_time_off", staff_id=member.id, date=day.isoformat())
        return []

    candidates = generate_candidate_slots(day_schedule_for(schedule, day), granularity_minutes)

    centre = catalog.get_centre_by_id(centre_id)
    if centre is not None:
        candidates = [slot for slot in candidates if is_open_at(centre.working_hours, day, slot)]

    marked = mark_availability(
        candidates,
        appointments,
        member.id,
        day,
        match=match,
        slot_minutes=service.duration,
        exclude_appointment_id=exclude_appointment_id,
    )
    return filter_by_time_of_day(marked, time_of_day)
