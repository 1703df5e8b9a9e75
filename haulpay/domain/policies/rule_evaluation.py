"""Turn one rate rule plus leg facts into a pay line.

Each rule is evaluated in isolation. A rule that cannot be evaluated
(missing stop times, no revenue) yields a zero amount and a warning; it
never fails the whole calculation.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.entities.load import Load, LoadStop
from haulpay.domain.entities.rate_profile import RateRule
from haulpay.domain.value_objects.enums import RuleCategory, TriggerEvent
from haulpay.domain.value_objects.money import ZERO, round_to, to_decimal, to_money

ONE = Decimal("1")
MS_PER_HOUR = Decimal(3_600_000)


@dataclass(frozen=True)
class LegFacts:
    """Everything a rule may look at, gathered once per leg."""

    loaded_miles: Decimal
    empty_miles: Decimal
    stops: tuple[LoadStop, ...]
    is_hazmat: bool = False
    requires_tarp: bool = False
    invoice_total: Decimal | None = None
    is_first_leg_for_payee: bool = True


@dataclass(frozen=True)
class RuleOutcome:
    rule: RateRule
    quantity: Decimal
    amount: Decimal
    warning: str | None = None

    @property
    def fires(self) -> bool:
        return self.amount != ZERO


def stops_for_leg(stops: list[LoadStop], leg: DispatchLeg) -> tuple[LoadStop, ...]:
    """Stops from the leg's start stop through its end stop, by sequence."""
    ordered = sorted(stops, key=lambda s: s.sequence_number)
    by_id = {s.id: s for s in ordered}
    start = by_id.get(leg.start_stop_id)
    end = by_id.get(leg.end_stop_id)
    start_seq = start.sequence_number if start else ordered[0].sequence_number if ordered else 0
    end_seq = end.sequence_number if end else ordered[-1].sequence_number if ordered else 0
    return tuple(s for s in ordered if start_seq <= s.sequence_number <= end_seq)


def build_leg_facts(
    leg: DispatchLeg,
    load: Load,
    stops: list[LoadStop],
    is_first_leg_for_payee: bool = True,
) -> LegFacts:
    return LegFacts(
        loaded_miles=to_decimal(leg.loaded_miles),
        empty_miles=to_decimal(leg.empty_miles),
        stops=stops_for_leg(stops, leg),
        is_hazmat=load.is_hazmat,
        requires_tarp=load.requires_tarp,
        invoice_total=load.invoice_total,
        is_first_leg_for_payee=is_first_leg_for_payee,
    )


def leg_duration_hours(stops: tuple[LoadStop, ...]) -> tuple[Decimal, str | None]:
    """Hours from first stop arrival to last stop departure.

    Actual check-in/check-out times win over scheduled windows.
    """
    if len(stops) < 2:
        return ZERO, "Insufficient stops for duration calculation"
    first, last = stops[0], stops[-1]
    start = first.checked_in_ms()
    if start is None:
        start = first.window_begin_ms()
    end = last.checked_out_ms()
    if end is None:
        end = last.window_end_ms()
    if start is None or end is None:
        return ZERO, "Missing stop times for hourly calculation"
    if end <= start:
        return ZERO, "Invalid time range (end before start)"
    return round_to(Decimal(end - start) / MS_PER_HOUR, 2), None


def waiting_hours(stops: tuple[LoadStop, ...]) -> tuple[Decimal, str | None]:
    minutes = sum((s.dwell_minutes or 0) for s in stops)
    if minutes <= 0:
        return ZERO, "No dwell time recorded for waiting calculation"
    return round_to(Decimal(minutes) / 60, 2), None


def _quantity(rule: RateRule, facts: LegFacts) -> tuple[Decimal, str | None]:
    trigger = rule.trigger_event
    if trigger == TriggerEvent.MILE_LOADED:
        return facts.loaded_miles, None
    if trigger == TriggerEvent.MILE_EMPTY:
        return facts.empty_miles, None
    if trigger == TriggerEvent.TIME_DURATION:
        return leg_duration_hours(facts.stops)
    if trigger == TriggerEvent.TIME_WAITING:
        return waiting_hours(facts.stops)
    if trigger == TriggerEvent.COUNT_STOPS:
        return Decimal(len(facts.stops)), None
    if trigger == TriggerEvent.FLAT_LEG:
        return ONE, None
    if trigger == TriggerEvent.FLAT_LOAD:
        return (ONE if facts.is_first_leg_for_payee else ZERO), None
    if trigger == TriggerEvent.ATTR_HAZMAT:
        return (ONE if facts.is_hazmat else ZERO), None
    if trigger == TriggerEvent.ATTR_TARP:
        return (ONE if facts.requires_tarp else ZERO), None
    if trigger == TriggerEvent.PCT_OF_LOAD:
        if facts.invoice_total is None or facts.invoice_total <= ZERO:
            return ZERO, "No invoice total available for percentage calculation"
        return to_decimal(facts.invoice_total), None
    return ZERO, f"Unsupported trigger {trigger}"


def evaluate_rule(rule: RateRule, facts: LegFacts) -> RuleOutcome:
    """Evaluate a single rule.

    Args:
        rule: an active BASE/ACCESSORIAL/DEDUCTION rule.
        facts: the leg's gathered facts.

    Returns:
        RuleOutcome; ``amount`` is zero when the rule does not fire.
        DEDUCTION outcomes carry a negative amount.
    """
    rate = to_decimal(rule.rate_amount)
    qty, warning = _quantity(rule, facts)
    if warning is not None or qty == ZERO:
        return RuleOutcome(rule=rule, quantity=qty, amount=ZERO, warning=warning)

    # Threshold gates on quantity: the rule pays only above it.
    if rule.min_threshold is not None and qty <= to_decimal(rule.min_threshold):
        return RuleOutcome(rule=rule, quantity=qty, amount=ZERO)

    if rule.trigger_event == TriggerEvent.PCT_OF_LOAD:
        amount = qty * rate / 100
    else:
        amount = qty * rate
    amount = abs(amount)

    if rule.max_cap is not None and amount > to_decimal(rule.max_cap):
        amount = to_decimal(rule.max_cap)

    amount = to_money(amount)
    if rule.category == RuleCategory.DEDUCTION:
        amount = -amount
    return RuleOutcome(rule=rule, quantity=qty, amount=amount)


def evaluate_rules(
    rules: list[RateRule], facts: LegFacts
) -> tuple[list[RuleOutcome], list[str]]:
    """Evaluate every active, auto-applied rule.

    Returns:
        (firing outcomes in rule order, warnings from rules that could not
        be evaluated)
    """
    fired: list[RuleOutcome] = []
    warnings: list[str] = []
    for rule in sorted(rules, key=lambda r: r.id or 0):
        if not rule.is_active or rule.category == RuleCategory.MANUAL_TEMPLATE:
            continue
        outcome = evaluate_rule(rule, facts)
        if outcome.warning:
            warnings.append(f"{rule.name}: {outcome.warning}")
        if outcome.fires:
            fired.append(outcome)
    return fired, warnings
