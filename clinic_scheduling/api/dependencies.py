"""FastAPI dependency injection functions."""
from functools import lru_cache

from clinic_scheduling.service import SchedulingService


@lru_cache(maxsize=1)
def get_scheduling_service() -> SchedulingService:
    """
    Get the scheduling service (cached singleton).

    Pattern: one catalog and one appointment book per process, shared by
    every request so bookings are visible to later availability queries.

    Returns:
        SchedulingService over the demo catalog
    """
    return SchedulingService.with_seed_data()
