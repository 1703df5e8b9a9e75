"""Port interface for the audit trail sink."""

from abc import ABC, abstractmethod


class AuditLogPort(ABC):
    @abstractmethod
    async def log_action(
        self,
        org_id: str,
        entity_type: str,
        entity_id: str,
        action: str,
        performed_by: str,
        description: str,
        performed_by_name: str | None = None,
        entity_name: str | None = None,
        changes: dict | None = None,
    ) -> None:
        """Record an action. Must not raise into the caller."""
        ...
