"""Port interface for transaction scoping inside one request."""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class UnitOfWork(ABC):
    @abstractmethod
    def savepoint(self) -> AbstractAsyncContextManager[None]:
        """Scope whose writes are rolled back when the block raises.

        The exception still propagates; the enclosing transaction stays usable.
        """
        ...
