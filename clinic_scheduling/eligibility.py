"""Eligibility resolution for the booking cascade.

Each function narrows one selection dimension given the ones already fixed:

    country -> centres -> services at centre -> staff for service at centre

All functions are pure reads over the catalog. A missing prerequisite
yields an empty list, never an exception. Results keep catalog order;
sorting for display is the caller's concern.
"""
from typing import List, Optional

from clinic_scheduling.catalog import Catalog
from clinic_scheduling.models import Centre, LocationMode, Service, StaffMember


def centres_for_country(catalog: Catalog, country_code: Optional[str]) -> List[Centre]:
    """
    Active centres in a country.

    Zero results means the caller should fall back to virtual mode, one
    result can be auto-selected, more than one needs an explicit choice.
    """
    if not country_code:
        return []
    return [c for c in catalog.list_centres_by_country(country_code) if c.is_active]


def services_at_centre(catalog: Catalog, centre: Optional[Centre]) -> List[Service]:
    """
    Active services offered at a centre.

    Args:
        catalog: Service catalog
        centre: Selected centre, or None for virtual appointments

    Returns:
        Services bookable at the centre (all active services when None)
    """
    active = catalog.list_active_services()
    if centre is None:
        return active
    return [s for s in active if centre.offers(s.id)]


def staff_for_service_at_centre(
    catalog: Catalog,
    service: Optional[Service],
    centre: Optional[Centre],
    location: LocationMode
) -> List[StaffMember]:
    """
    Staff who can deliver a service for the chosen location.

    Eligible staff are active, available for booking and offer the service.
    In-person bookings additionally require assignment to the centre;
    virtual bookings drop the centre filter entirely.

    Args:
        catalog: Staff catalog
        service: Selected service (None -> no candidates)
        centre: Selected centre (required for in-person)
        location: In-person or virtual

    Returns:
        Eligible staff in catalog order
    """
    if service is None:
        return []

    if location == LocationMode.VIRTUAL:
        pool = catalog.list_staff_by_service(service.id)
    else:
        if centre is None:
            return []
        pool = [m for m in catalog.list_staff_by_centre(centre.id) if m.offers(service.id)]

    return [m for m in pool if m.is_bookable]
