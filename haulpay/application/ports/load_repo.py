"""Port interface for load and stop persistence."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.load import Load, LoadStop


class LoadRepository(ABC):
    @abstractmethod
    async def save(self, load: Load) -> Load:
        ...

    @abstractmethod
    async def get_by_id(self, load_id: int) -> Load | None:
        ...

    @abstractmethod
    async def update(self, load: Load) -> Load:
        ...

    @abstractmethod
    async def get_open_with_hcr(self, org_id: str) -> list[Load]:
        """Open, unheld loads that carry a parsed HCR."""
        ...

    @abstractmethod
    async def save_stop(self, stop: LoadStop) -> LoadStop:
        ...

    @abstractmethod
    async def get_stops(self, load_id: int) -> list[LoadStop]:
        """Stops of a load ordered by sequence number."""
        ...
