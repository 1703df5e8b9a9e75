"""Port interface for the payable ledger."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.payable import Payable
from haulpay.domain.value_objects.enums import PayeeType


class PayableRepository(ABC):
    @abstractmethod
    async def save(self, payable: Payable) -> Payable:
        ...

    @abstractmethod
    async def get_by_id(self, payable_id: int) -> Payable | None:
        ...

    @abstractmethod
    async def update(self, payable: Payable) -> Payable:
        ...

    @abstractmethod
    async def delete(self, payable_ids: list[int]) -> None:
        ...

    @abstractmethod
    async def get_by_leg(self, leg_id: int) -> list[Payable]:
        ...

    @abstractmethod
    async def get_by_load(self, load_id: int) -> list[Payable]:
        ...

    @abstractmethod
    async def get_by_settlement(self, settlement_id: int) -> list[Payable]:
        ...

    @abstractmethod
    async def get_unassigned(self, payee_type: PayeeType, payee_id: int) -> list[Payable]:
        """Payables of a payee that no settlement owns."""
        ...

    @abstractmethod
    async def clear_settlement(self, settlement_id: int) -> int:
        """Detach every member of a settlement; returns how many were detached."""
        ...
