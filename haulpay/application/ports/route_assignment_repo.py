"""Port interface for route assignments and auto-assignment settings."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.route_assignment import AutoAssignmentSettings, RouteAssignment


class RouteAssignmentRepository(ABC):
    @abstractmethod
    async def save(self, assignment: RouteAssignment) -> RouteAssignment:
        ...

    @abstractmethod
    async def get_by_id(self, assignment_id: int) -> RouteAssignment | None:
        ...

    @abstractmethod
    async def update(self, assignment: RouteAssignment) -> RouteAssignment:
        ...

    @abstractmethod
    async def get_by_hcr(self, org_id: str, hcr: str) -> list[RouteAssignment]:
        ...

    @abstractmethod
    async def get_by_org(self, org_id: str) -> list[RouteAssignment]:
        ...

    @abstractmethod
    async def get_by_target(
        self, driver_id: int | None = None, carrier_partnership_id: int | None = None
    ) -> list[RouteAssignment]:
        ...

    @abstractmethod
    async def get_settings(self, org_id: str) -> AutoAssignmentSettings | None:
        ...

    @abstractmethod
    async def save_settings(self, settings: AutoAssignmentSettings) -> AutoAssignmentSettings:
        """Insert or update the organization's settings row."""
        ...

    @abstractmethod
    async def get_scheduled_settings(self) -> list[AutoAssignmentSettings]:
        """Settings of every org with auto-assignment and scheduling enabled."""
        ...
