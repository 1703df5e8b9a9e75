"""Settlement state machine, totals and statement numbers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from haulpay.domain.entities.payable import Payable
from haulpay.domain.errors import SettlementStateError
from haulpay.domain.value_objects.enums import SettlementStatus
from haulpay.domain.value_objects.money import ZERO, to_decimal, to_money

SETTLEMENT_TRANSITIONS: dict[SettlementStatus, frozenset[SettlementStatus]] = {
    SettlementStatus.DRAFT: frozenset(
        {SettlementStatus.PENDING, SettlementStatus.APPROVED, SettlementStatus.VOID}
    ),
    SettlementStatus.PENDING: frozenset(
        {SettlementStatus.DRAFT, SettlementStatus.APPROVED, SettlementStatus.VOID}
    ),
    SettlementStatus.APPROVED: frozenset({SettlementStatus.PAID, SettlementStatus.VOID}),
    SettlementStatus.PAID: frozenset(),
    SettlementStatus.VOID: frozenset(),
}


@dataclass(frozen=True)
class SettlementTotals:
    gross_total: Decimal
    total_miles: Decimal
    total_loads: int
    total_manual_adjustments: Decimal
    payable_count: int


def ensure_transition(current: SettlementStatus, target: SettlementStatus) -> None:
    """Raise SettlementStateError unless ``current -> target`` is allowed."""
    if target not in SETTLEMENT_TRANSITIONS[current]:
        raise SettlementStateError(
            f"Cannot move settlement from {current.value} to {target.value}"
        )


def ensure_editable(status: SettlementStatus) -> None:
    if status != SettlementStatus.DRAFT:
        raise SettlementStateError(
            f"Settlement is {status.value}; only DRAFT settlements can be edited"
        )


def compute_totals(
    payables: list[Payable],
    mileage_rule_ids: set[int] | frozenset[int] = frozenset(),
) -> SettlementTotals:
    """Aggregate a settlement's member payables.

    Args:
        payables: the settlement's members.
        mileage_rule_ids: ids of MILE_LOADED/MILE_EMPTY rules; the quantity
            of SYSTEM rows produced by them counts toward ``total_miles``.
    """
    gross = ZERO
    miles = ZERO
    manual = ZERO
    loads: set[int] = set()
    for p in payables:
        amount = to_decimal(p.total_amount)
        gross += amount
        if p.is_manual():
            manual += amount
        elif p.rule_id is not None and p.rule_id in mileage_rule_ids:
            miles += to_decimal(p.quantity)
        if p.load_id is not None:
            loads.add(p.load_id)
    return SettlementTotals(
        gross_total=to_money(gross),
        total_miles=miles,
        total_loads=len(loads),
        total_manual_adjustments=to_money(manual),
        payable_count=len(payables),
    )


def next_statement_number(existing: list[str], year: int) -> str:
    """Next ``SET-YYYY-NNN`` number for the year, after the highest in use."""
    prefix = f"SET-{year}-"
    highest = 0
    for number in existing:
        if not number.startswith(prefix):
            continue
        try:
            highest = max(highest, int(number[len(prefix):]))
        except ValueError:
            continue
    return f"{prefix}{highest + 1:03d}"
