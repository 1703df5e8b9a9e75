"""Tests for PayPeriodPolicy."""

from decimal import Decimal

import pytest

from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.entities.load import LoadStop
from haulpay.domain.entities.payable import Payable
from haulpay.domain.entities.settlement import PayPlan
from haulpay.domain.policies.pay_period import (
    calculate_period,
    cutoff_instant,
    is_within_cutoff,
    payable_trigger_timestamp,
)
from haulpay.domain.value_objects.enums import (
    DayOfWeek,
    PayableTrigger,
    PayeeType,
    PayFrequency,
    SourceType,
    StopType,
)
from haulpay.domain.value_objects.time_range import parse_iso_ms


def _ms(iso: str) -> int:
    return parse_iso_ms(iso)


def _plan(frequency: PayFrequency, **kw) -> PayPlan:
    return PayPlan(id=1, org_id="o", name="Plan", frequency=frequency, **kw)


# ─── Period boundaries ──────────────────────────────────────────────


def test_weekly_period_from_monday():
    plan = _plan(PayFrequency.WEEKLY, period_start_day_of_week=DayOfWeek.MONDAY)
    period = calculate_period(plan, _ms("2024-03-06T12:00:00Z"))
    assert period.start == _ms("2024-03-04T00:00:00Z")
    assert period.end == _ms("2024-03-11T00:00:00Z")
    assert period.period_number == 10


def test_reference_on_boundary_opens_the_next_period():
    plan = _plan(PayFrequency.WEEKLY, period_start_day_of_week=DayOfWeek.MONDAY)
    period = calculate_period(plan, _ms("2024-03-11T00:00:00Z"))
    assert period.start == _ms("2024-03-11T00:00:00Z")


def test_biweekly_is_anchored():
    plan = _plan(PayFrequency.BIWEEKLY, period_start_day_of_week=DayOfWeek.MONDAY)
    period = calculate_period(plan, _ms("2024-03-06T12:00:00Z"))
    assert period.start == _ms("2024-02-26T00:00:00Z")
    assert period.end == _ms("2024-03-11T00:00:00Z")


def test_semimonthly_second_half():
    period = calculate_period(_plan(PayFrequency.SEMIMONTHLY), _ms("2024-03-20T00:00:00Z"))
    assert period.start == _ms("2024-03-16T00:00:00Z")
    assert period.end == _ms("2024-04-01T00:00:00Z")
    assert period.period_number == 6


def test_monthly_from_start_day():
    plan = _plan(PayFrequency.MONTHLY, period_start_day_of_month=15, payment_lag_days=5)
    period = calculate_period(plan, _ms("2024-03-10T00:00:00Z"))
    assert period.start == _ms("2024-02-15T00:00:00Z")
    assert period.end == _ms("2024-03-15T00:00:00Z")
    assert period.pay_date == _ms("2024-03-20T00:00:00Z")


def test_plan_timezone_moves_day_boundaries():
    plan = _plan(
        PayFrequency.WEEKLY,
        period_start_day_of_week=DayOfWeek.MONDAY,
        timezone="America/Chicago",
    )
    # Sunday evening in Chicago, already Monday in UTC.
    period = calculate_period(plan, _ms("2024-03-04T03:00:00Z"))
    assert period.start == _ms("2024-02-26T06:00:00Z")


# ─── Cutoff ─────────────────────────────────────────────────────────


def test_cutoff_includes_the_whole_cutoff_minute():
    plan = _plan(PayFrequency.WEEKLY, cutoff_time="17:00")
    cutoff = cutoff_instant(plan, _ms("2024-03-11T00:00:00Z"))
    assert is_within_cutoff(_ms("2024-03-10T17:00:59Z"), cutoff)
    assert not is_within_cutoff(_ms("2024-03-10T17:01:00Z"), cutoff)


def test_malformed_cutoff_raises():
    with pytest.raises(ValueError):
        cutoff_instant(_plan(PayFrequency.WEEKLY, cutoff_time="late"), 0)


# ─── Trigger timestamps ─────────────────────────────────────────────


def _payable(load_id=1, leg_id=1, **kw) -> Payable:
    return Payable(
        id=1, org_id="o", payee_type=PayeeType.DRIVER, payee_id=1, description="x",
        quantity=Decimal("1"), rate=Decimal("1"), total_amount=Decimal("1"),
        source_type=SourceType.SYSTEM, load_id=load_id, leg_id=leg_id, **kw,
    )


def _stops(checked_out=None):
    return [
        LoadStop(id=1, load_id=1, sequence_number=1, stop_type=StopType.PICKUP),
        LoadStop(
            id=2, load_id=1, sequence_number=2, stop_type=StopType.DELIVERY,
            window_end_time="2024-03-05T18:00:00Z", checked_out_at=checked_out,
        ),
    ]


def _leg(completed_at=None) -> DispatchLeg:
    return DispatchLeg(
        id=1, load_id=1, org_id="o", sequence=1, start_stop_id=1, end_stop_id=2,
        completed_at=completed_at,
    )


def test_delivery_trigger_prefers_end_stop_checkout():
    ts = payable_trigger_timestamp(
        _payable(), PayableTrigger.DELIVERY_DATE, _leg(completed_at=5),
        _stops(checked_out="2024-03-05T20:00:00Z"),
    )
    assert ts == _ms("2024-03-05T20:00:00Z")


def test_completion_trigger_prefers_leg_completion():
    ts = payable_trigger_timestamp(
        _payable(), PayableTrigger.COMPLETION_DATE, _leg(completed_at=5),
        _stops(checked_out="2024-03-05T20:00:00Z"),
    )
    assert ts == 5


def test_falls_back_to_last_delivery_window():
    ts = payable_trigger_timestamp(_payable(), PayableTrigger.DELIVERY_DATE, _leg(), _stops())
    assert ts == _ms("2024-03-05T18:00:00Z")


def test_standalone_uses_creation_time():
    payable = _payable(load_id=None, leg_id=None, created_at=42)
    assert payable_trigger_timestamp(payable, PayableTrigger.DELIVERY_DATE, None, []) == 42


def test_approval_trigger_uses_approval_stamp():
    payable = _payable(approved_at=7)
    assert payable_trigger_timestamp(payable, PayableTrigger.APPROVAL_DATE, _leg(), _stops()) == 7


def test_no_usable_date_returns_none():
    stops = [LoadStop(id=2, load_id=1, sequence_number=2, stop_type=StopType.DELIVERY)]
    assert payable_trigger_timestamp(_payable(), PayableTrigger.DELIVERY_DATE, _leg(), stops) is None
