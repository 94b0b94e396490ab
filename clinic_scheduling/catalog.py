"""In-memory catalogs of centres, services, staff and clients.

These records are created and edited by the dashboard's CRUD screens; the
scheduling core only queries them. Query results keep insertion order.
"""
from typing import Dict, Iterable, List, Optional

from clinic_scheduling.models import Centre, Client, Service, StaffMember


class Catalog:
    """Read side of the centre/service/staff/client collaborators."""

    def __init__(
        self,
        centres: Iterable[Centre] = (),
        services: Iterable[Service] = (),
        staff: Iterable[StaffMember] = (),
        clients: Iterable[Client] = (),
    ):
        self._centres: Dict[str, Centre] = {}
        self._services: Dict[str, Service] = {}
        self._staff: Dict[str, StaffMember] = {}
        self._clients: Dict[str, Client] = {}

        for centre in centres:
            self.add_centre(centre)
        for service in services:
            self.add_service(service)
        for member in staff:
            self.add_staff(member)
        for client in clients:
            self.add_client(client)

    @classmethod
    def from_seed(cls) -> "Catalog":
        """Catalog pre-loaded with the demo clinic data."""
        from clinic_scheduling import seed_data

        return cls(
            centres=seed_data.load_centres(),
            services=seed_data.load_services(),
            staff=seed_data.load_staff(),
            clients=seed_data.load_clients(),
        )

    # Registration (last write wins, keeps original position)

    def add_centre(self, centre: Centre) -> None:
        self._centres[centre.id] = centre

    def add_service(self, service: Service) -> None:
        self._services[service.id] = service

    def add_staff(self, member: StaffMember) -> None:
        self._staff[member.id] = member

    def add_client(self, client: Client) -> None:
        self._clients[client.id] = client

    # Centres

    def list_active_centres(self) -> List[Centre]:
        return [c for c in self._centres.values() if c.is_active]

    def list_centres_by_country(self, country_code: str) -> List[Centre]:
        """All centres in a country, regardless of status."""
        code = (country_code or "").strip().upper()
        return [c for c in self._centres.values() if c.country == code]

    def get_centre_by_id(self, centre_id: Optional[str]) -> Optional[Centre]:
        return self._centres.get(centre_id) if centre_id else None

    # Services

    def list_services(self) -> List[Service]:
        return list(self._services.values())

    def list_active_services(self) -> List[Service]:
        return [s for s in self._services.values() if s.is_active]

    def get_service_by_id(self, service_id: Optional[str]) -> Optional[Service]:
        return self._services.get(service_id) if service_id else None

    def find_service_by_name(self, name: str) -> Optional[Service]:
        """First active service with this exact name (appointment snapshots)."""
        return next(
            (s for s in self.list_active_services() if s.name == name),
            None
        )

    # Staff

    def list_staff(self) -> List[StaffMember]:
        return list(self._staff.values())

    def list_staff_by_centre(self, centre_id: str) -> List[StaffMember]:
        return [m for m in self._staff.values() if centre_id in m.assigned_centres]

    def list_staff_by_service(self, service_id: str) -> List[StaffMember]:
        return [m for m in self._staff.values() if m.offers(service_id)]

    def get_staff_by_id(self, staff_id: Optional[str]) -> Optional[StaffMember]:
        return self._staff.get(staff_id) if staff_id else None

    # Clients

    def get_client_by_id(self, client_id: Optional[str]) -> Optional[Client]:
        return self._clients.get(client_id) if client_id else None

    def search_clients(self, query: str) -> List[Client]:
        """Case-insensitive substring match on client name."""
        needle = (query or "").strip().lower()
        if not needle:
            return []
        return [c for c in self._clients.values() if needle in c.name.lower()]
