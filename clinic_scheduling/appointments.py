"""Appointment mutation API over the in-memory appointment collection.

Important: appointments are never deleted. Cancelling only changes status,
so the audit history stays intact.

Every mutation:
- replaces the stored record with a new immutable Appointment
- refreshes updated_at
- runs under one writer lock, so check-then-insert in book() is atomic
"""
import itertools
import threading
from datetime import UTC, date, datetime
from typing import Callable, Dict, Iterable, List, Optional, Union

from clinic_scheduling import config
from clinic_scheduling.conflicts import ConflictMatch, blocking_appointments, default_match, find_conflict
from clinic_scheduling.errors import (
    AppointmentNotFoundError,
    ImmutableFieldError,
    InvalidStatusTransitionError,
    SlotUnavailableError,
)
from clinic_scheduling.logging_config import get_logger
from clinic_scheduling.models import Appointment, AppointmentDraft, AppointmentStatus, PaymentStatus
from clinic_scheduling.timeutils import add_minutes, format_time

logger = get_logger(__name__)

# Status machine: current status -> statuses it may move to.
# SCHEDULED as a target is the reschedule transition.
VALID_STATUS_TRANSITIONS: Dict[AppointmentStatus, List[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: [
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ],
    AppointmentStatus.IN_PROGRESS: [
        AppointmentStatus.COMPLETED,
    ],
    AppointmentStatus.NO_SHOW: [
        AppointmentStatus.SCHEDULED,  # Rebook after a missed visit
    ],
    AppointmentStatus.COMPLETED: [],
    AppointmentStatus.CANCELLED: [],
}

# Owned by the mutation API itself, never merged from update()
PROTECTED_FIELDS = frozenset({"id", "status", "payment_status", "created_at", "updated_at"})


def validate_status_transition(
    current: AppointmentStatus,
    intended: AppointmentStatus
) -> bool:
    """
    Validate an appointment status transition.

    Example:
        >>> validate_status_transition(
        ...     AppointmentStatus.CANCELLED,
        ...     AppointmentStatus.SCHEDULED
        ... )
        False
    """
    return intended in VALID_STATUS_TRANSITIONS.get(current, [])


def _as_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


class AppointmentBook:
    """
    In-memory appointment collection with create/update/cancel/reschedule/
    complete operations.

    Pattern: single writer lock around the whole collection; reads return
    immutable records, so they never observe a half-applied change.
    """

    def __init__(
        self,
        appointments: Iterable[Appointment] = (),
        clock: Optional[Callable[[], datetime]] = None,
        id_prefix: str = config.APPOINTMENT_ID_PREFIX,
        id_start: int = config.APPOINTMENT_ID_START
    ):
        """
        Initialize the appointment book.

        Args:
            appointments: Existing appointments to load
            clock: Returns "now" for audit timestamps (default: UTC now)
            id_prefix: Prefix of generated ids (e.g. APPT-1001)
            id_start: Counter value before the first generated id
        """
        self._appointments: Dict[str, Appointment] = {apt.id: apt for apt in appointments}
        self._lock = threading.RLock()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._id_prefix = id_prefix
        self._counter = itertools.count(id_start + 1)
        self._idempotency_keys: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._appointments)

    def __contains__(self, appointment_id: str) -> bool:
        return appointment_id in self._appointments

    def get(self, appointment_id: str) -> Optional[Appointment]:
        return self._appointments.get(appointment_id)

    def require(self, appointment_id: str) -> Appointment:
        """Get an appointment or raise AppointmentNotFoundError."""
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    def list_all(self) -> List[Appointment]:
        with self._lock:
            return list(self._appointments.values())

    def list_for_date(self, day: Union[date, str]) -> List[Appointment]:
        day = _as_date(day)
        return [apt for apt in self.list_all() if apt.date == day]

    def list_for_date_range(self, start: Union[date, str], end: Union[date, str]) -> List[Appointment]:
        """Appointments with start <= date <= end."""
        start, end = _as_date(start), _as_date(end)
        return [apt for apt in self.list_all() if start <= apt.date <= end]

    def list_for_client(self, client_id: str) -> List[Appointment]:
        return [apt for apt in self.list_all() if apt.client_id == client_id]

    def list_for_practitioner(self, practitioner_id: str) -> List[Appointment]:
        return [apt for apt in self.list_all() if apt.practitioner_id == practitioner_id]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, draft: Union[AppointmentDraft, dict]) -> Appointment:
        """
        Create an appointment from a draft.

        Assigns a new id, status scheduled, payment pending,
        reminder_sent=False and created_at=updated_at=now. The draft is not
        modified.

        Args:
            draft: AppointmentDraft or a dict accepted by it

        Returns:
            The stored Appointment
        """
        if not isinstance(draft, AppointmentDraft):
            draft = AppointmentDraft.model_validate(draft)

        with self._lock:
            now = self._clock()
            appointment = Appointment(
                **draft.model_dump(),
                id=self._next_id(),
                status=AppointmentStatus.SCHEDULED,
                payment_status=PaymentStatus.PENDING,
                reminder_sent=False,
                created_at=now,
                updated_at=now,
            )
            self._appointments[appointment.id] = appointment

        logger.info(
            "appointment_created",
            appointment_id=appointment.id,
            practitioner_id=appointment.practitioner_id,
            date=appointment.date.isoformat(),
            start_time=appointment.start_time,
            location=appointment.location.value,
        )
        return appointment

    def book(
        self,
        draft: Union[AppointmentDraft, dict],
        idempotency_key: Optional[str] = None,
        match: Optional[ConflictMatch] = None
    ) -> Appointment:
        """
        Create an appointment only if its slot is still free.

        The conflict check and the insert happen under the writer lock, so
        two bookers cannot claim the same staff/date/slot. Replaying an
        idempotency key returns the appointment created the first time.

        Raises:
            SlotUnavailableError: If the slot was taken in the meantime
        """
        if not isinstance(draft, AppointmentDraft):
            draft = AppointmentDraft.model_validate(draft)

        with self._lock:
            if idempotency_key and idempotency_key in self._idempotency_keys:
                existing = self._appointments[self._idempotency_keys[idempotency_key]]
                logger.info(
                    "appointment_create_replayed",
                    appointment_id=existing.id,
                    idempotency_key=idempotency_key,
                )
                return existing

            self._ensure_slot_free(
                draft.practitioner_id, draft.date, draft.start_time, draft.duration, match
            )
            appointment = self.create(draft)

            if idempotency_key:
                self._idempotency_keys[idempotency_key] = appointment.id

        return appointment

    def update(self, appointment_id: str, *, check_slot: bool = False, **fields) -> Appointment:
        """
        Merge fields into an appointment and refresh updated_at.

        Status and payment status only change through the dedicated
        operations (cancel, complete, ...). With check_slot the merged
        staff/date/start time must be free of other bookings (edit flow).

        Raises:
            AppointmentNotFoundError: Unknown id; the collection is unchanged
            ImmutableFieldError: Attempt to set id, status or timestamps
            SlotUnavailableError: check_slot and another booking holds the slot
            ValueError: Unknown field or a merge that breaks the model
        """
        protected = PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ImmutableFieldError(protected)

        unknown = set(fields) - set(Appointment.model_fields)
        if unknown:
            raise ValueError(f"Unknown appointment fields: {', '.join(sorted(unknown))}")

        with self._lock:
            current = self.require(appointment_id)
            if check_slot:
                merged = {**current.model_dump(), **fields}
                self._ensure_slot_free(
                    merged["practitioner_id"], _as_date(merged["date"]), format_time(merged["start_time"]),
                    merged["duration"], None, exclude_appointment_id=appointment_id
                )
            updated = self._replace(current, **fields)

        logger.info(
            "appointment_updated",
            appointment_id=appointment_id,
            fields=sorted(fields),
        )
        return updated

    def cancel(self, appointment_id: str, reason: Optional[str] = None) -> Appointment:
        """
        Cancel an appointment (status change, the record is kept).

        The reason is appended to the notes as "Cancelled: <reason>".
        """
        with self._lock:
            current = self.require(appointment_id)
            self._check_transition(current, AppointmentStatus.CANCELLED)

            entry = f"Cancelled: {reason}" if reason else "Cancelled"
            notes = f"{current.notes}\n{entry}" if current.notes else entry
            updated = self._replace(current, status=AppointmentStatus.CANCELLED, notes=notes)

        logger.info("appointment_cancelled", appointment_id=appointment_id, reason=reason)
        return updated

    def reschedule(
        self,
        appointment_id: str,
        new_date: Union[date, str],
        new_time: str,
        match: Optional[ConflictMatch] = None
    ) -> Appointment:
        """
        Move an appointment to a new date/start time.

        The end time keeps the appointment's own duration and the status
        returns to scheduled. The appointment itself never blocks its new
        slot.

        Raises:
            AppointmentNotFoundError: Unknown id
            InvalidStatusTransitionError: Cancelled, completed or in progress
            SlotUnavailableError: Another booking holds the new slot
        """
        new_date = _as_date(new_date)
        new_time = format_time(new_time)

        with self._lock:
            current = self.require(appointment_id)
            self._check_transition(current, AppointmentStatus.SCHEDULED)
            self._ensure_slot_free(
                current.practitioner_id, new_date, new_time, current.duration, match,
                exclude_appointment_id=appointment_id
            )
            updated = self._replace(
                current,
                date=new_date,
                start_time=new_time,
                end_time=add_minutes(new_time, current.duration),
                status=AppointmentStatus.SCHEDULED,
            )

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            date=new_date.isoformat(),
            start_time=new_time,
        )
        return updated

    def complete(self, appointment_id: str) -> Appointment:
        """Mark completed; completion settles payment."""
        return self._set_status(
            appointment_id, AppointmentStatus.COMPLETED, payment_status=PaymentStatus.PAID
        )

    def confirm(self, appointment_id: str) -> Appointment:
        return self._set_status(appointment_id, AppointmentStatus.CONFIRMED)

    def start(self, appointment_id: str) -> Appointment:
        return self._set_status(appointment_id, AppointmentStatus.IN_PROGRESS)

    def mark_no_show(self, appointment_id: str) -> Appointment:
        return self._set_status(appointment_id, AppointmentStatus.NO_SHOW)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_id(self) -> str:
        while True:
            candidate = f"{self._id_prefix}-{next(self._counter)}"
            if candidate not in self._appointments:
                return candidate

    def _replace(self, current: Appointment, **changes) -> Appointment:
        # Revalidate the merged record so duration/end-time invariants hold
        merged = {**current.model_dump(), **changes, "updated_at": self._clock()}
        updated = Appointment.model_validate(merged)
        self._appointments[current.id] = updated
        return updated

    def _check_transition(self, current: Appointment, intended: AppointmentStatus) -> None:
        if not validate_status_transition(current.status, intended):
            raise InvalidStatusTransitionError(current.id, current.status.value, intended.value)

    def _set_status(self, appointment_id: str, status: AppointmentStatus, **changes) -> Appointment:
        with self._lock:
            current = self.require(appointment_id)
            self._check_transition(current, status)
            updated = self._replace(current, status=status, **changes)

        logger.info(
            "appointment_status_changed",
            appointment_id=appointment_id,
            status=status.value,
        )
        return updated

    def _ensure_slot_free(
        self,
        practitioner_id: str,
        day: date,
        start_time: str,
        duration: int,
        match: Optional[ConflictMatch],
        exclude_appointment_id: Optional[str] = None
    ) -> None:
        blocking = blocking_appointments(
            self._appointments.values(), practitioner_id, day, exclude_appointment_id
        )
        conflict = find_conflict(start_time, duration, blocking, match or default_match())
        if conflict is not None:
            logger.warning(
                "slot_unavailable",
                practitioner_id=practitioner_id,
                date=day.isoformat(),
                start_time=start_time,
                conflicting_appointment_id=conflict.id,
            )
            raise SlotUnavailableError(practitioner_id, day, start_time, conflict.id)
