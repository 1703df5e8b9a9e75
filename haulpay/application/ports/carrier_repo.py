"""Port interface for carrier partnerships."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.driver import CarrierPartnership


class CarrierRepository(ABC):
    @abstractmethod
    async def save(self, partnership: CarrierPartnership) -> CarrierPartnership:
        ...

    @abstractmethod
    async def get_by_id(self, partnership_id: int) -> CarrierPartnership | None:
        ...

    @abstractmethod
    async def update(self, partnership: CarrierPartnership) -> CarrierPartnership:
        ...

    @abstractmethod
    async def get_by_pay_plan(self, pay_plan_id: int) -> list[CarrierPartnership]:
        ...
