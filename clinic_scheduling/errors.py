"""Exceptions raised by the appointment mutation API.

Cascade problems (a choice made before its prerequisite, a value outside
the candidate set) are never raised: resolvers return empty lists and the
booking flow reports them as events.
"""


class SchedulingError(Exception):
    """Base class for scheduling core errors."""
    pass


class AppointmentNotFoundError(SchedulingError, LookupError):
    """Raised when an appointment id is not in the collection."""

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment '{appointment_id}' not found")


class SlotUnavailableError(SchedulingError):
    """Raised when a slot was booked by someone else before commit."""

    def __init__(self, practitioner_id: str, date, start_time: str, appointment_id: str = None):
        self.practitioner_id = practitioner_id
        self.date = date
        self.start_time = start_time
        self.appointment_id = appointment_id
        super().__init__(
            f"Slot {date} {start_time} is no longer available for staff member {practitioner_id}"
        )


class InvalidStatusTransitionError(SchedulingError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, appointment_id: str, current: str, intended: str):
        self.appointment_id = appointment_id
        self.current = current
        self.intended = intended
        super().__init__(
            f"Appointment {appointment_id} cannot move from '{current}' to '{intended}'"
        )


class ImmutableFieldError(SchedulingError, ValueError):
    """Raised when update() is asked to change a field it does not own."""

    def __init__(self, fields):
        self.fields = sorted(fields)
        super().__init__(
            f"Fields cannot be changed through update: {', '.join(self.fields)}"
        )
