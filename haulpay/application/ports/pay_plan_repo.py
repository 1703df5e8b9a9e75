"""Port interface for pay plans."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.settlement import PayPlan


class PayPlanRepository(ABC):
    @abstractmethod
    async def save(self, plan: PayPlan) -> PayPlan:
        ...

    @abstractmethod
    async def get_by_id(self, plan_id: int) -> PayPlan | None:
        ...

    @abstractmethod
    async def update(self, plan: PayPlan) -> PayPlan:
        ...

    @abstractmethod
    async def get_by_org(self, org_id: str) -> list[PayPlan]:
        ...
