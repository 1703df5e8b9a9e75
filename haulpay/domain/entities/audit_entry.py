"""Append-only record of who changed what."""

from dataclasses import dataclass, field


@dataclass
class AuditEntry:
    id: int | None
    org_id: str
    entity_type: str
    entity_id: str
    action: str
    performed_by: str
    description: str
    performed_by_name: str | None = None
    entity_name: str | None = None
    changes: dict = field(default_factory=dict)
    created_at: int | None = None
