"""Port interface for dispatch leg persistence."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.dispatch_leg import DispatchLeg


class LegRepository(ABC):
    @abstractmethod
    async def save(self, leg: DispatchLeg) -> DispatchLeg:
        ...

    @abstractmethod
    async def get_by_id(self, leg_id: int) -> DispatchLeg | None:
        ...

    @abstractmethod
    async def update(self, leg: DispatchLeg) -> DispatchLeg:
        ...

    @abstractmethod
    async def get_by_load(self, load_id: int) -> list[DispatchLeg]:
        """Legs of a load ordered by sequence."""
        ...

    @abstractmethod
    async def get_by_driver(self, driver_id: int) -> list[DispatchLeg]:
        ...

    @abstractmethod
    async def get_by_carrier(self, partnership_id: int) -> list[DispatchLeg]:
        ...
