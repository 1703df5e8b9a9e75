"""Port interface for drivers and their trucks."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.driver import Driver, Truck


class DriverRepository(ABC):
    @abstractmethod
    async def save(self, driver: Driver) -> Driver:
        ...

    @abstractmethod
    async def get_by_id(self, driver_id: int) -> Driver | None:
        ...

    @abstractmethod
    async def update(self, driver: Driver) -> Driver:
        ...

    @abstractmethod
    async def get_by_org(self, org_id: str) -> list[Driver]:
        """All non-deleted drivers of an organization."""
        ...

    @abstractmethod
    async def get_by_pay_plan(self, pay_plan_id: int) -> list[Driver]:
        ...

    @abstractmethod
    async def get_truck(self, truck_id: int) -> Truck | None:
        ...
