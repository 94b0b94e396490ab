"""Configuration for the clinic scheduling core.

Business constants live here; a handful can be overridden from the
environment (or a local .env file) without touching code.
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Slot engine
SLOT_GRANULARITY_MINUTES = int(os.getenv("CLINIC_SLOT_GRANULARITY_MINUTES", "30"))
MORNING_CUTOFF_HOUR = 12  # 12:00 (noon)

# "exact" matches bookings on start time only, "overlap" on the full interval
CONFLICT_MATCH = os.getenv("CLINIC_CONFLICT_MATCH", "exact").lower()

# Appointment defaults
DEFAULT_APPOINTMENT_DURATION_MINUTES = 60
APPOINTMENT_ID_PREFIX = "APPT"
APPOINTMENT_ID_START = 1000

# Logging / HTTP shell
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
