"""Shared test fixtures."""
from datetime import UTC, date, datetime, timedelta

import pytest

from clinic_scheduling.appointments import AppointmentBook
from clinic_scheduling.catalog import Catalog
from clinic_scheduling.conflicts import ConflictMatch
from clinic_scheduling.models import AppointmentDraft
from clinic_scheduling.orchestrator import BookingFlow
from clinic_scheduling.service import SchedulingService

# 2025-06-02 is a Monday
MONDAY = date(2025, 6, 2)
WEDNESDAY = date(2025, 6, 4)
SUNDAY = date(2025, 6, 8)


class FakeClock:
    """Deterministic clock that advances one minute per call."""

    def __init__(self, start: datetime = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    """Demo catalog: JHB (ZA), NYC (US) and LON (GB) centres."""
    return Catalog.from_seed()


@pytest.fixture
def book(clock):
    return AppointmentBook(clock=clock)


@pytest.fixture
def flow(catalog, book):
    return BookingFlow(catalog, book, granularity_minutes=30, match=ConflictMatch.EXACT_START)


@pytest.fixture
def scheduling(catalog, book):
    return SchedulingService(catalog, book, granularity_minutes=30, match=ConflictMatch.EXACT_START)


@pytest.fixture
def make_draft():
    """Factory for appointment drafts (Sarah Johnson at Johannesburg by default)."""
    def _create(**overrides) -> AppointmentDraft:
        data = {
            "client_id": "1",
            "client_name": "Sarah Johnson",
            "client_email": "sarah.johnson@email.com",
            "client_phone": "+1 (555) 123-4567",
            "practitioner_id": "1",
            "practitioner_name": "Sarah Johnson",
            "date": MONDAY,
            "start_time": "09:00",
            "duration": 60,
            "service_type": "Initial Wellness Consultation",
            "location": "in-person",
            "centre_id": "1",
            "centre_name": "Life Arrow Johannesburg",
            "price": 3700,
        }
        data.update(overrides)
        return AppointmentDraft(**data)
    return _create
