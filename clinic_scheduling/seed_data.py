"""Demo clinic data for the in-memory catalogs.

All business data centralized here - modify as needed without touching code.
Prices are in each centre's local currency; working hours are centre-local.
"""
from typing import List

from clinic_scheduling.models import Centre, Client, Service, StaffMember

LUNCH_12 = [{"start": "12:00", "end": "13:00", "description": "Lunch Break"}]
LUNCH_13 = [{"start": "13:00", "end": "14:00", "description": "Lunch Break"}]
CLOSED = {"is_active": False}


def _hours(start: str, end: str, breaks: List[dict] = None) -> dict:
    return {"is_active": True, "start": start, "end": end, "breaks": breaks or []}


SERVICES = [
    {"id": "1", "name": "Body Composition Analysis", "duration": 45, "price": 2800, "category": "scan",
     "description": "Body composition scan using bioelectrical impedance."},
    {"id": "2", "name": "Initial Wellness Consultation", "duration": 60, "price": 3700, "category": "consultation",
     "description": "Health history review, goal setting and a personalised wellness plan."},
    {"id": "3", "name": "Follow-up Consultation", "duration": 30, "price": 1850, "category": "consultation",
     "description": "Progress review against wellness goals."},
    {"id": "4", "name": "Nutrition Therapy Session", "duration": 45, "price": 2200, "category": "therapy",
     "description": "Meal planning and dietary recommendations."},
    {"id": "5", "name": "Fitness Assessment", "duration": 60, "price": 3300, "category": "assessment",
     "description": "Strength, cardiovascular and flexibility evaluation."},
    {"id": "6", "name": "Stress Management Session", "duration": 50, "price": 2600, "category": "therapy",
     "description": "Stress reduction techniques and mindfulness training."},
    {"id": "7", "name": "Metabolic Rate Testing", "duration": 30, "price": 1650, "category": "assessment",
     "description": "Resting metabolic rate and caloric needs."},
    {"id": "8", "name": "Wellness Package - Basic", "duration": 120, "price": 6500, "category": "consultation",
     "description": "Initial consultation, body composition scan and follow-up."},
]

CENTRES = [
    {
        "id": "1",
        "name": "Life Arrow Johannesburg",
        "code": "JHB001",
        "country": "ZA",
        "city": "Johannesburg",
        "timezone": "Africa/Johannesburg",
        "working_hours": {
            "monday": _hours("08:00", "17:00", LUNCH_12),
            "tuesday": _hours("08:00", "17:00", LUNCH_12),
            "wednesday": _hours("08:00", "17:00", LUNCH_12),
            "thursday": _hours("08:00", "17:00", LUNCH_12),
            "friday": _hours("08:00", "16:00", LUNCH_12),
            "saturday": _hours("09:00", "13:00"),
            "sunday": CLOSED,
        },
        "services": ["1", "2", "3", "4", "5"],
        "capacity": {"max_daily_appointments": 50, "max_concurrent_appointments": 8, "rooms": 6},
        "status": "active",
        "is_headquarters": True,
    },
    {
        "id": "2",
        "name": "Life Arrow New York",
        "code": "NYC001",
        "country": "US",
        "city": "New York",
        "timezone": "America/New_York",
        "working_hours": {
            "monday": _hours("07:00", "19:00", LUNCH_12),
            "tuesday": _hours("07:00", "19:00", LUNCH_12),
            "wednesday": _hours("07:00", "19:00", LUNCH_12),
            "thursday": _hours("07:00", "19:00", LUNCH_12),
            "friday": _hours("07:00", "18:00", LUNCH_12),
            "saturday": _hours("08:00", "16:00"),
            "sunday": _hours("09:00", "15:00"),
        },
        "services": ["1", "2", "3", "4"],
        "capacity": {"max_daily_appointments": 75, "max_concurrent_appointments": 12, "rooms": 8},
        "status": "active",
    },
    {
        "id": "3",
        "name": "Life Arrow London",
        "code": "LON001",
        "country": "GB",
        "city": "London",
        "timezone": "Europe/London",
        "working_hours": {
            "monday": _hours("08:00", "18:00", LUNCH_13),
            "tuesday": _hours("08:00", "18:00", LUNCH_13),
            "wednesday": _hours("08:00", "18:00", LUNCH_13),
            "thursday": _hours("08:00", "18:00", LUNCH_13),
            "friday": _hours("08:00", "17:00", LUNCH_13),
            "saturday": _hours("09:00", "15:00"),
        },
        "services": ["1", "2", "3"],
        "capacity": {"max_daily_appointments": 40, "max_concurrent_appointments": 6, "rooms": 5},
        "status": "active",
    },
]

STAFF = [
    {
        "id": "1",
        "first_name": "Sarah",
        "last_name": "Johnson",
        "title": "Dr.",
        "email": "sarah.johnson@lifearrow.com",
        "role": "practitioner",
        "assigned_centres": ["1", "2"],
        "primary_centre": "1",
        "available_services": ["1", "2", "3", "4"],
        "working_hours": {
            "1": {
                "monday": _hours("08:00", "17:00", LUNCH_12),
                "tuesday": _hours("08:00", "17:00", LUNCH_12),
                "wednesday": _hours("08:00", "17:00", LUNCH_12),
                "thursday": _hours("08:00", "17:00", LUNCH_12),
                "friday": _hours("08:00", "16:00", LUNCH_12),
            },
            "2": {
                "monday": _hours("09:00", "18:00", LUNCH_13),
                "tuesday": _hours("09:00", "18:00", LUNCH_13),
                "thursday": _hours("09:00", "18:00", LUNCH_13),
                "friday": _hours("09:00", "17:00", LUNCH_13),
            },
        },
        "max_daily_appointments": 12,
        "appointment_duration": 60,
    },
    {
        "id": "2",
        "first_name": "Michael",
        "last_name": "Chen",
        "email": "michael.chen@lifearrow.com",
        "role": "consultant",
        "assigned_centres": ["2"],
        "primary_centre": "2",
        "available_services": ["3", "5", "6"],
        "working_hours": {
            "2": {
                "monday": _hours("07:00", "15:00", [{"start": "11:00", "end": "12:00"}]),
                "tuesday": _hours("07:00", "15:00", [{"start": "11:00", "end": "12:00"}]),
                "wednesday": _hours("07:00", "15:00", [{"start": "11:00", "end": "12:00"}]),
                "thursday": _hours("07:00", "15:00", [{"start": "11:00", "end": "12:00"}]),
                "friday": _hours("07:00", "15:00", [{"start": "11:00", "end": "12:00"}]),
                "saturday": _hours("08:00", "14:00"),
            },
        },
        "max_daily_appointments": 10,
        "appointment_duration": 45,
    },
    {
        "id": "3",
        "first_name": "Emily",
        "last_name": "Davis",
        "email": "emily.davis@lifearrow.com",
        "role": "consultant",
        "assigned_centres": ["3"],
        "primary_centre": "3",
        "available_services": ["2", "4"],
        "working_hours": {
            "3": {
                "monday": _hours("09:00", "17:00", LUNCH_13),
                "tuesday": _hours("09:00", "17:00", LUNCH_13),
                "wednesday": _hours("09:00", "17:00", LUNCH_13),
                "thursday": _hours("09:00", "17:00", LUNCH_13),
                "friday": _hours("09:00", "16:00", LUNCH_13),
            },
        },
        "max_daily_appointments": 8,
        "appointment_duration": 45,
    },
    {
        "id": "4",
        "first_name": "Admin",
        "last_name": "User",
        "email": "admin@lifearrow.com",
        "role": "admin",
        "assigned_centres": ["1", "2", "3"],
        "primary_centre": "1",
        "available_services": [],
        "working_hours": {
            "1": {day: _hours("08:00", "17:00") for day in ("monday", "tuesday", "wednesday", "thursday", "friday")},
        },
        "is_available_for_booking": False,
        "max_daily_appointments": 0,
        "appointment_duration": 0,
    },
]

CLIENTS = [
    {"id": "1", "name": "Sarah Johnson", "email": "sarah.johnson@email.com",
     "phone": "+1 (555) 123-4567", "country": "ZA", "city": "Johannesburg"},
    {"id": "2", "name": "Michael Chen", "email": "michael.chen@email.com",
     "phone": "+1 (555) 234-5678", "country": "US", "city": "New York"},
    {"id": "3", "name": "Emily Davis", "email": "emily.davis@email.com",
     "phone": "+1 (555) 345-6789", "country": "GB", "city": "London"},
    {"id": "4", "name": "David Wilson", "email": "david.wilson@email.com",
     "phone": "+1 (555) 456-7890", "country": "ZA", "city": "Cape Town"},
    {"id": "5", "name": "Lisa Anderson", "email": "lisa.anderson@email.com",
     "phone": "+1 (555) 567-8901", "country": "US", "city": "Los Angeles"},
    {"id": "6", "name": "James Brown", "email": "james.brown@email.com",
     "phone": "+1 (555) 678-9012", "country": "GB", "city": "Manchester"},
]


def load_services() -> List[Service]:
    return [Service(**data) for data in SERVICES]


def load_centres() -> List[Centre]:
    return [Centre(**data) for data in CENTRES]


def load_staff() -> List[StaffMember]:
    return [StaffMember(**data) for data in STAFF]


def load_clients() -> List[Client]:
    return [Client(**data) for data in CLIENTS]

