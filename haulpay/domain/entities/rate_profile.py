"""Rate profiles, their rules, and payee assignments."""

from dataclasses import dataclass
from decimal import Decimal

from haulpay.domain.value_objects.enums import (
    PayBasis,
    PayeeType,
    RuleCategory,
    SelectionStrategy,
    TriggerEvent,
)


@dataclass
class RateProfile:
    id: int | None
    org_id: str
    name: str
    profile_type: PayeeType
    pay_basis: PayBasis
    is_active: bool = True
    is_default: bool = False
    description: str | None = None


@dataclass
class RateRule:
    id: int | None
    profile_id: int
    name: str
    category: RuleCategory
    trigger_event: TriggerEvent
    rate_amount: Decimal
    min_threshold: Decimal | None = None
    max_cap: Decimal | None = None
    is_active: bool = True


@dataclass
class ProfileAssignment:
    """Links a driver or carrier partnership to a rate profile."""

    id: int | None
    org_id: str
    payee_type: PayeeType
    payee_id: int
    profile_id: int
    selection_strategy: SelectionStrategy = SelectionStrategy.ALWAYS_ACTIVE
    threshold_value: Decimal | None = None
    is_default: bool = False
    effective_date: str | None = None
