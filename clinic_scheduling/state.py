"""State schema for the booking cascade.

One immutable selection record holds every choice made so far plus the
candidate sets that constrain the next choice. The reducer in
orchestrator.py is the only thing that produces new records.

Pattern:
- Frozen pydantic model for the selection (replace, never mutate)
- Frozen dataclasses for actions and events (tagged unions)
- Enum for the derived position in the cascade
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from clinic_scheduling.models import Centre, Client, LocationMode, Service, StaffMember, TimeSlot


class BookingStep(str, Enum):
    """
    Derived position in the cascade.

    Valid order:
        IDLE -> CLIENT_CHOSEN -> LOCATION_CHOSEN
             -> CENTRE_CHOSEN (in-person) | SERVICES_LOADED (virtual)
             -> SERVICE_CHOSEN -> STAFF_CHOSEN -> DATE_CHOSEN
             -> SLOT_CHOSEN -> SUBMITTABLE
    """
    IDLE = "idle"
    CLIENT_CHOSEN = "client_chosen"
    LOCATION_CHOSEN = "location_chosen"
    CENTRE_CHOSEN = "centre_chosen"
    SERVICES_LOADED = "services_loaded"
    SERVICE_CHOSEN = "service_chosen"
    STAFF_CHOSEN = "staff_chosen"
    DATE_CHOSEN = "date_chosen"
    SLOT_CHOSEN = "slot_chosen"
    SUBMITTABLE = "submittable"


class BookingSelection(BaseModel):
    """
    Everything chosen so far in one booking (or edit) flow.

    Candidate tuples are the values the next choice may take; a selection
    outside its candidate set is rejected by the reducer.
    """
    model_config = ConfigDict(frozen=True)

    # Client
    client: Optional[Client] = None
    client_name: str = ""
    client_email: str = ""
    client_phone: str = ""

    # Cascade selections
    location: LocationMode = LocationMode.IN_PERSON
    location_set: bool = False
    centre_id: Optional[str] = None
    service_id: Optional[str] = None
    staff_id: Optional[str] = None
    appointment_date: Optional[date] = None
    time_slot: Optional[str] = None
    notes: str = ""
    practitioner_notes: str = ""

    # Current candidate sets
    centre_candidates: Tuple[Centre, ...] = ()
    service_candidates: Tuple[Service, ...] = ()
    staff_candidates: Tuple[StaffMember, ...] = ()
    slot_candidates: Tuple[TimeSlot, ...] = ()

    # Set when the flow edits an existing appointment
    editing_appointment_id: Optional[str] = None

    @property
    def has_client(self) -> bool:
        return self.client is not None or bool(self.client_name.strip())

    @property
    def available_slot_times(self) -> Tuple[str, ...]:
        return tuple(slot.time for slot in self.slot_candidates if slot.available)

    def candidate_ids(self, kind: str) -> Tuple[str, ...]:
        """Ids of the current centre/service/staff candidates."""
        candidates = {
            "centre": self.centre_candidates,
            "service": self.service_candidates,
            "staff": self.staff_candidates,
        }[kind]
        return tuple(item.id for item in candidates)

    def evolve(self, **changes) -> "BookingSelection":
        """Copy with changes applied."""
        return self.model_copy(update=changes)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectClient:
    client: Client


@dataclass(frozen=True)
class ClearClient:
    pass


@dataclass(frozen=True)
class EnterClientDetails:
    """Manual client entry; None leaves a field unchanged."""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class SetLocation:
    location: LocationMode


@dataclass(frozen=True)
class SetCentre:
    centre_id: Optional[str]


@dataclass(frozen=True)
class SetService:
    service_id: Optional[str]


@dataclass(frozen=True)
class SetStaff:
    staff_id: Optional[str]


@dataclass(frozen=True)
class SetDate:
    day: Optional[date]


@dataclass(frozen=True)
class SetSlot:
    time: Optional[str]


@dataclass(frozen=True)
class SetNotes:
    """Client-facing notes; practitioner notes are only kept when editing."""
    notes: Optional[str] = None
    practitioner_notes: Optional[str] = None


@dataclass(frozen=True)
class Reset:
    pass


Action = Union[
    SelectClient, ClearClient, EnterClientDetails, SetLocation, SetCentre,
    SetService, SetStaff, SetDate, SetSlot, SetNotes, Reset,
]


# ---------------------------------------------------------------------------
# Events (reported to the presentation layer, never raised)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AutoSelectedCentre:
    centre: Centre


@dataclass(frozen=True)
class NoCentresAvailable:
    country: str


@dataclass(frozen=True)
class MultipleCentres:
    candidates: Tuple[Centre, ...]


@dataclass(frozen=True)
class SelectionRejected:
    """A value outside the current candidate set; state left unchanged."""
    field: str
    value: Any
    reason: str


@dataclass(frozen=True)
class SelectionCleared:
    """Downstream selections invalidated by an upstream change."""
    fields: Tuple[str, ...]


Event = Union[AutoSelectedCentre, NoCentresAvailable, MultipleCentres, SelectionRejected, SelectionCleared]


@dataclass(frozen=True)
class Transition:
    """Result of one reducer step."""
    state: BookingSelection
    events: Tuple[Event, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Derived step and submission checks
# ---------------------------------------------------------------------------

def validate_submission(state: BookingSelection) -> Dict[str, str]:
    """
    Field errors that block submission.

    A selected client supplies email and phone; manual entry needs both.

    Returns:
        {field: message}, empty when the selection is submittable
    """
    errors = {}

    if not state.client_name.strip():
        errors["client_name"] = "Client name is required"
    if state.client is None:
        if not state.client_email.strip():
            errors["client_email"] = "Client email is required"
        if not state.client_phone.strip():
            errors["client_phone"] = "Client phone is required"

    if state.location == LocationMode.IN_PERSON and not state.centre_id:
        errors["centre_id"] = "Treatment centre is required for in-person appointments"

    if not state.service_id:
        errors["service_id"] = "Service type is required"
    if not state.staff_id:
        errors["staff_id"] = "Staff member is required"
    if not state.appointment_date:
        errors["appointment_date"] = "Date is required"
    if not state.time_slot:
        errors["time_slot"] = "Time slot is required"

    return errors


def current_step(state: BookingSelection) -> BookingStep:
    """Furthest step of the cascade the selection has reached."""
    if state.time_slot:
        return BookingStep.SUBMITTABLE if not validate_submission(state) else BookingStep.SLOT_CHOSEN
    if state.appointment_date and state.staff_id:
        return BookingStep.DATE_CHOSEN
    if state.staff_id:
        return BookingStep.STAFF_CHOSEN
    if state.service_id:
        return BookingStep.SERVICE_CHOSEN
    if state.location == LocationMode.IN_PERSON and state.centre_id:
        return BookingStep.CENTRE_CHOSEN
    if state.location == LocationMode.VIRTUAL and state.service_candidates:
        return BookingStep.SERVICES_LOADED
    if state.location_set:
        return BookingStep.LOCATION_CHOSEN
    if state.has_client:
        return BookingStep.CLIENT_CHOSEN
    return BookingStep.IDLE
