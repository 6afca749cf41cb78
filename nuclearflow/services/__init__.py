"""
Service layer: the NuclearFlowService base class and the ServiceRegistry.

A service bundles one area of the platform (isotope decay, custody
traceability): it validates request payloads, runs its computation and
mounts its own endpoints under /api<route>. The registry holds the
services built by the app factory, refuses id or route collisions and
mounts every service onto the API blueprint.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

from abc import ABC, abstractmethod


class NuclearFlowService(ABC):
    """
    Base class for a NuclearFlow service.

    Class Attributes
    ----------------
    id : str
        Registry key, e.g. "decay".
    name : str
        Display name.
    description : str
        One-line summary returned by /api/services.
    category : str
        "logistics" or "compliance".
    route : str
        Endpoint prefix under /api, e.g. "/decay". Unique per registry.
    """

    id = ""
    name = ""
    description = ""
    category = ""
    route = ""

    @abstractmethod
    def validate(self, config):
        """
        Check a raw request payload and return the normalized config.

        Raises
        ------
        ValueError
            With a message that is returned to the client as a 400.
        """

    @abstractmethod
    def compute(self, config):
        """Run the service's main operation on a validated config."""

    @abstractmethod
    def register_routes(self, bp):
        """Add this service's endpoints (under self.route) to blueprint `bp`."""

    def metadata(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "route": self.route,
        }


class ServiceRegistry:
    """Services by id, in registration order."""

    def __init__(self):
        self._services = {}

    def __iter__(self):
        return iter(list(self._services.values()))

    def __len__(self):
        return len(self._services)

    def register(self, service):
        """
        Add a service.

        Raises
        ------
        ValueError
            If the id or the route is already taken.
        """
        if service.id in self._services:
            raise ValueError(
                "Service '{}' is already registered".format(service.id))
        for other in self._services.values():
            if other.route == service.route:
                raise ValueError("Route '{}' is already served by '{}'".format(
                    service.route, other.id))
        self._services[service.id] = service

    def get(self, service_id):
        """Service by id, or None."""
        return self._services.get(service_id)

    def list_all(self):
        return [s.metadata() for s in self._services.values()]

    def mount(self, bp):
        """Register every service's endpoints on blueprint `bp`."""
        for service in self._services.values():
            service.register_routes(bp)
