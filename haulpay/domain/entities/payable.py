"""Payable entity: one money line owed to a driver or carrier."""

from dataclasses import dataclass
from decimal import Decimal

from haulpay.domain.value_objects.enums import PayeeType, SourceType


@dataclass
class Payable:
    id: int | None
    org_id: str
    payee_type: PayeeType
    payee_id: int
    description: str
    quantity: Decimal
    rate: Decimal
    total_amount: Decimal
    source_type: SourceType
    load_id: int | None = None
    leg_id: int | None = None
    is_locked: bool = False
    settlement_id: int | None = None
    rule_id: int | None = None
    warning_message: str | None = None
    is_rebillable: bool = False
    rebill_customer_id: int | None = None
    receipt_storage_key: str | None = None
    approved_at: int | None = None
    created_at: int | None = None
    updated_at: int | None = None
    created_by: str | None = None

    def is_system(self) -> bool:
        return self.source_type == SourceType.SYSTEM

    def is_manual(self) -> bool:
        return self.source_type == SourceType.MANUAL

    def is_standalone(self) -> bool:
        return self.load_id is None and self.leg_id is None

    def is_replaceable(self) -> bool:
        """SYSTEM rows the pay engine may delete and regenerate."""
        return self.is_system() and not self.is_locked
