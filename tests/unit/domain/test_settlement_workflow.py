"""Tests for SettlementWorkflowPolicy."""

from decimal import Decimal

import pytest

from haulpay.domain.entities.payable import Payable
from haulpay.domain.errors import SettlementStateError
from haulpay.domain.policies.settlement_workflow import (
    compute_totals,
    ensure_editable,
    ensure_transition,
    next_statement_number,
)
from haulpay.domain.value_objects.enums import PayeeType, SettlementStatus, SourceType

S = SettlementStatus


@pytest.mark.parametrize(
    "current,target",
    [
        (S.DRAFT, S.PENDING),
        (S.DRAFT, S.APPROVED),
        (S.PENDING, S.APPROVED),
        (S.PENDING, S.DRAFT),
        (S.APPROVED, S.PAID),
        (S.APPROVED, S.VOID),
        (S.DRAFT, S.VOID),
    ],
)
def test_allowed_transitions(current, target):
    ensure_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [(S.DRAFT, S.PAID), (S.PAID, S.VOID), (S.VOID, S.DRAFT), (S.APPROVED, S.DRAFT)],
)
def test_rejected_transitions(current, target):
    with pytest.raises(SettlementStateError):
        ensure_transition(current, target)


def test_only_draft_is_editable():
    ensure_editable(S.DRAFT)
    with pytest.raises(SettlementStateError):
        ensure_editable(S.PENDING)


def _payable(amount: str, source=SourceType.SYSTEM, load_id=None, rule_id=None, qty="1"):
    return Payable(
        id=None, org_id="o", payee_type=PayeeType.DRIVER, payee_id=1, description="x",
        quantity=Decimal(qty), rate=Decimal(amount), total_amount=Decimal(amount),
        source_type=source, load_id=load_id, rule_id=rule_id,
    )


def test_compute_totals():
    members = [
        _payable("1000.00", load_id=1, rule_id=10, qty="500"),
        _payable("150.00", load_id=1, rule_id=11),
        _payable("200.00", load_id=2, rule_id=10, qty="100"),
        _payable("-25.00", source=SourceType.MANUAL),
    ]
    totals = compute_totals(members, {10})
    assert totals.gross_total == Decimal("1325.00")
    assert totals.total_miles == Decimal("600")
    assert totals.total_loads == 2
    assert totals.total_manual_adjustments == Decimal("-25.00")
    assert totals.payable_count == 4


def test_statement_numbers_follow_the_highest():
    existing = ["SET-2024-001", "SET-2024-007", "SET-2023-099", "junk"]
    assert next_statement_number(existing, 2024) == "SET-2024-008"
    assert next_statement_number([], 2025) == "SET-2025-001"
