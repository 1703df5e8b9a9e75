"""Settlement (pay statement) and PayPlan entities."""

from dataclasses import dataclass
from decimal import Decimal

from haulpay.domain.value_objects.enums import (
    DayOfWeek,
    PayableTrigger,
    PayeeType,
    PayFrequency,
    SettlementStatus,
)


@dataclass
class Settlement:
    id: int | None
    org_id: str
    payee_type: PayeeType
    payee_id: int
    period_start: int
    period_end: int
    statement_number: str
    status: SettlementStatus = SettlementStatus.DRAFT
    pay_plan_id: int | None = None
    pay_plan_name: str | None = None
    period_number: int | None = None
    gross_total: Decimal | None = None
    total_miles: Decimal | None = None
    total_loads: int | None = None
    total_manual_adjustments: Decimal | None = None
    notes: str | None = None
    submitted_at: int | None = None
    submitted_by: str | None = None
    approved_at: int | None = None
    approved_by: str | None = None
    paid_at: int | None = None
    paid_by: str | None = None
    payment_method: str | None = None
    payment_reference: str | None = None
    voided_at: int | None = None
    voided_by: str | None = None
    void_reason: str | None = None
    created_at: int | None = None
    updated_at: int | None = None
    created_by: str | None = None

    def is_editable(self) -> bool:
        return self.status == SettlementStatus.DRAFT

    def has_frozen_totals(self) -> bool:
        """Totals are snapshotted at approval and stay frozen through PAID or VOID."""
        return self.approved_at is not None


@dataclass
class PayPlan:
    id: int | None
    org_id: str
    name: str
    frequency: PayFrequency
    period_start_day_of_week: DayOfWeek | None = None
    period_start_day_of_month: int | None = None
    timezone: str | None = None
    cutoff_time: str = "23:59"
    payment_lag_days: int = 0
    payable_trigger: PayableTrigger = PayableTrigger.DELIVERY_DATE
    auto_carryover: bool = True
    include_standalone_adjustments: bool = True
    is_active: bool = True
    description: str | None = None
