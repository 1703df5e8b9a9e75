"""Port interface for settlement persistence."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.settlement import Settlement
from haulpay.domain.value_objects.enums import PayeeType


class SettlementRepository(ABC):
    @abstractmethod
    async def save(self, settlement: Settlement) -> Settlement:
        ...

    @abstractmethod
    async def get_by_id(self, settlement_id: int) -> Settlement | None:
        ...

    @abstractmethod
    async def update(self, settlement: Settlement) -> Settlement:
        ...

    @abstractmethod
    async def delete(self, settlement_id: int) -> None:
        ...

    @abstractmethod
    async def get_by_payee(self, payee_type: PayeeType, payee_id: int) -> list[Settlement]:
        ...

    @abstractmethod
    async def get_statement_numbers(self, org_id: str, year: int) -> list[str]:
        ...
