"""Tests for the centre -> service -> staff eligibility cascade."""
import pytest

from clinic_scheduling.catalog import Catalog
from clinic_scheduling.eligibility import centres_for_country, services_at_centre, staff_for_service_at_centre
from clinic_scheduling.models import Centre, LocationMode, Service, StaffMember


def ids(items):
    return [item.id for item in items]


class TestCentresForCountry:
    """Country-based centre resolution."""

    def test_single_centre_country(self, catalog):
        assert ids(centres_for_country(catalog, "ZA")) == ["1"]

    def test_country_code_case_insensitive(self, catalog):
        assert ids(centres_for_country(catalog, "gb")) == ["3"]

    def test_no_centre_in_country(self, catalog):
        assert centres_for_country(catalog, "FR") == []

    def test_missing_country(self, catalog):
        assert centres_for_country(catalog, None) == []
        assert centres_for_country(catalog, "") == []

    def test_inactive_centres_excluded(self, catalog):
        catalog.add_centre(Centre(id="4", name="Pretoria", country="ZA", status="maintenance"))

        assert ids(centres_for_country(catalog, "ZA")) == ["1"]


class TestServicesAtCentre:
    """Services offered at a centre."""

    def test_centre_services(self, catalog):
        london = catalog.get_centre_by_id("3")
        assert ids(services_at_centre(catalog, london)) == ["1", "2", "3"]

    def test_virtual_gets_all_active_services(self, catalog):
        assert ids(services_at_centre(catalog, None)) == [str(n) for n in range(1, 9)]

    def test_inactive_service_excluded(self, catalog):
        catalog.add_service(Service(id="2", name="Initial Wellness Consultation",
                                    duration=60, price=3700, is_active=False))
        london = catalog.get_centre_by_id("3")

        assert ids(services_at_centre(catalog, london)) == ["1", "3"]


class TestStaffForServiceAtCentre:
    """Staff eligibility for a service at a centre."""

    def test_in_person_matches_definition(self, catalog):
        """Candidates are exactly active, bookable, assigned and qualified staff."""
        for centre in catalog.list_active_centres():
            for service in catalog.list_active_services():
                expected = [
                    m.id for m in catalog.list_staff()
                    if m.status == "active"
                    and m.is_available_for_booking
                    and centre.id in m.assigned_centres
                    and service.id in m.available_services
                ]
                result = staff_for_service_at_centre(catalog, service, centre, LocationMode.IN_PERSON)
                assert ids(result) == expected

    def test_shared_service_at_new_york(self, catalog):
        follow_up = catalog.get_service_by_id("3")
        new_york = catalog.get_centre_by_id("2")

        result = staff_for_service_at_centre(catalog, follow_up, new_york, LocationMode.IN_PERSON)

        assert ids(result) == ["1", "2"]

    def test_virtual_ignores_centre(self, catalog):
        consultation = catalog.get_service_by_id("2")
        london = catalog.get_centre_by_id("3")

        result = staff_for_service_at_centre(catalog, consultation, london, LocationMode.VIRTUAL)

        assert ids(result) == ["1", "3"]

    def test_not_bookable_staff_excluded(self, catalog):
        catalog.add_staff(StaffMember(id="5", first_name="Zoe", last_name="Ndlovu",
                                      assigned_centres=["1"], available_services=["2"],
                                      status="on-leave"))
        consultation = catalog.get_service_by_id("2")
        johannesburg = catalog.get_centre_by_id("1")

        result = staff_for_service_at_centre(catalog, consultation, johannesburg, LocationMode.IN_PERSON)

        assert ids(result) == ["1"]

    def test_missing_service_yields_empty(self, catalog):
        assert staff_for_service_at_centre(
            catalog, None, catalog.get_centre_by_id("1"), LocationMode.IN_PERSON
        ) == []

    def test_in_person_without_centre_yields_empty(self, catalog):
        assert staff_for_service_at_centre(
            catalog, catalog.get_service_by_id("2"), None, LocationMode.IN_PERSON
        ) == []

    def test_empty_catalog(self):
        empty = Catalog()
        assert centres_for_country(empty, "ZA") == []
        assert services_at_centre(empty, None) == []
