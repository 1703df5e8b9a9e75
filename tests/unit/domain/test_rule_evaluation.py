"""Tests for RuleEvaluationPolicy."""

from decimal import Decimal

import pytest

from haulpay.domain.entities.load import LoadStop
from haulpay.domain.entities.rate_profile import RateRule
from haulpay.domain.policies.rule_evaluation import LegFacts, evaluate_rule, evaluate_rules
from haulpay.domain.value_objects.enums import RuleCategory, StopType, TriggerEvent


def _rule(
    trigger: TriggerEvent,
    rate: str,
    category: RuleCategory = RuleCategory.BASE,
    rid: int = 1,
    **kw,
) -> RateRule:
    return RateRule(
        id=rid, profile_id=1, name=f"{trigger.value} rule", category=category,
        trigger_event=trigger, rate_amount=Decimal(rate), **kw,
    )


def _stop(seq: int, begin=None, end=None, checked_in=None, checked_out=None, dwell=None):
    return LoadStop(
        id=seq, load_id=1, sequence_number=seq, stop_type=StopType.DELIVERY,
        window_begin_time=begin, window_end_time=end,
        checked_in_at=checked_in, checked_out_at=checked_out, dwell_minutes=dwell,
    )


def _facts(**kw) -> LegFacts:
    base = dict(
        loaded_miles=Decimal("500"),
        empty_miles=Decimal("40"),
        stops=(_stop(1), _stop(2)),
    )
    base.update(kw)
    return LegFacts(**base)


# ─── Per-trigger quantities ─────────────────────────────────────────


def test_loaded_miles_times_rate():
    outcome = evaluate_rule(_rule(TriggerEvent.MILE_LOADED, "2.00"), _facts())
    assert outcome.quantity == Decimal("500")
    assert outcome.amount == Decimal("1000.00")


def test_empty_miles():
    outcome = evaluate_rule(_rule(TriggerEvent.MILE_EMPTY, "0.50"), _facts())
    assert outcome.amount == Decimal("20.00")


def test_count_stops():
    facts = _facts(stops=(_stop(1), _stop(2), _stop(3)))
    assert evaluate_rule(_rule(TriggerEvent.COUNT_STOPS, "25"), facts).amount == Decimal("75.00")


def test_duration_prefers_actual_times_over_windows():
    stops = (
        _stop(1, begin="2024-03-01T06:00:00Z", checked_in="2024-03-01T08:00:00Z"),
        _stop(2, end="2024-03-01T20:00:00Z", checked_out="2024-03-01T12:30:00Z"),
    )
    outcome = evaluate_rule(_rule(TriggerEvent.TIME_DURATION, "30"), _facts(stops=stops))
    assert outcome.quantity == Decimal("4.50")
    assert outcome.amount == Decimal("135.00")


def test_duration_without_times_warns():
    outcome = evaluate_rule(_rule(TriggerEvent.TIME_DURATION, "30"), _facts())
    assert outcome.amount == Decimal("0")
    assert outcome.warning == "Missing stop times for hourly calculation"


def test_duration_needs_two_stops():
    outcome = evaluate_rule(_rule(TriggerEvent.TIME_DURATION, "30"), _facts(stops=(_stop(1),)))
    assert outcome.warning == "Insufficient stops for duration calculation"


def test_duration_end_before_start_warns():
    stops = (
        _stop(1, checked_in="2024-03-01T12:00:00Z"),
        _stop(2, checked_out="2024-03-01T08:00:00Z"),
    )
    outcome = evaluate_rule(_rule(TriggerEvent.TIME_DURATION, "30"), _facts(stops=stops))
    assert outcome.warning == "Invalid time range (end before start)"


def test_waiting_sums_dwell_minutes():
    stops = (_stop(1, dwell=30), _stop(2, dwell=60))
    outcome = evaluate_rule(_rule(TriggerEvent.TIME_WAITING, "20"), _facts(stops=stops))
    assert outcome.quantity == Decimal("1.50")
    assert outcome.amount == Decimal("30.00")


def test_waiting_without_dwell_warns():
    outcome = evaluate_rule(_rule(TriggerEvent.TIME_WAITING, "20"), _facts())
    assert outcome.warning == "No dwell time recorded for waiting calculation"


def test_flat_load_only_on_first_leg_for_payee():
    rule = _rule(TriggerEvent.FLAT_LOAD, "150")
    assert evaluate_rule(rule, _facts()).amount == Decimal("150.00")
    assert evaluate_rule(rule, _facts(is_first_leg_for_payee=False)).amount == Decimal("0")


def test_flat_leg_always_pays():
    rule = _rule(TriggerEvent.FLAT_LEG, "75")
    assert evaluate_rule(rule, _facts(is_first_leg_for_payee=False)).amount == Decimal("75.00")


@pytest.mark.parametrize(
    "trigger,flag",
    [(TriggerEvent.ATTR_HAZMAT, "is_hazmat"), (TriggerEvent.ATTR_TARP, "requires_tarp")],
)
def test_attribute_rules_follow_load_flags(trigger, flag):
    rule = _rule(trigger, "100", RuleCategory.ACCESSORIAL)
    assert evaluate_rule(rule, _facts()).amount == Decimal("0")
    assert evaluate_rule(rule, _facts(**{flag: True})).amount == Decimal("100.00")


def test_percentage_of_invoice():
    rule = _rule(TriggerEvent.PCT_OF_LOAD, "25")
    outcome = evaluate_rule(rule, _facts(invoice_total=Decimal("2000")))
    assert outcome.amount == Decimal("500.00")


def test_percentage_without_invoice_warns():
    outcome = evaluate_rule(_rule(TriggerEvent.PCT_OF_LOAD, "25"), _facts())
    assert outcome.amount == Decimal("0")
    assert outcome.warning == "No invoice total available for percentage calculation"


# ─── Threshold, cap and sign ────────────────────────────────────────


def test_threshold_is_strict():
    rule = _rule(TriggerEvent.MILE_LOADED, "1", min_threshold=Decimal("500"))
    assert evaluate_rule(rule, _facts()).amount == Decimal("0")
    assert evaluate_rule(rule, _facts(loaded_miles=Decimal("501"))).amount == Decimal("501.00")


def test_cap_limits_amount():
    rule = _rule(TriggerEvent.MILE_LOADED, "2", max_cap=Decimal("750"))
    assert evaluate_rule(rule, _facts()).amount == Decimal("750.00")


def test_deduction_is_negative():
    rule = _rule(TriggerEvent.FLAT_LEG, "35", RuleCategory.DEDUCTION)
    assert evaluate_rule(rule, _facts()).amount == Decimal("-35.00")


def test_amount_rounds_half_up_to_cents():
    rule = _rule(TriggerEvent.MILE_LOADED, "0.005")
    assert evaluate_rule(rule, _facts(loaded_miles=Decimal("1"))).amount == Decimal("0.01")


# ─── Rule sets ──────────────────────────────────────────────────────


def test_evaluate_rules_skips_inactive_and_manual_templates():
    rules = [
        _rule(TriggerEvent.MILE_LOADED, "2", rid=1),
        _rule(TriggerEvent.FLAT_LEG, "50", rid=2, is_active=False),
        _rule(TriggerEvent.FLAT_LEG, "60", RuleCategory.MANUAL_TEMPLATE, rid=3),
        _rule(TriggerEvent.PCT_OF_LOAD, "10", rid=4),
    ]
    fired, warnings = evaluate_rules(rules, _facts())
    assert [o.rule.id for o in fired] == [1]
    assert warnings == [
        "PCT_OF_LOAD rule: No invoice total available for percentage calculation"
    ]
