"""Tests for rate profile configuration and pay plans."""

from __future__ import annotations

from decimal import Decimal

import pytest

from haulpay.application.use_cases.pay_plans import PayPlanUseCase, validate_plan
from haulpay.application.use_cases.rate_profiles import RateConfigurationUseCase
from haulpay.domain.entities.settlement import PayPlan
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.domain.value_objects.enums import (
    DayOfWeek,
    PayBasis,
    PayeeType,
    PayFrequency,
    RuleCategory,
    SelectionStrategy,
    TriggerEvent,
)
from haulpay.domain.value_objects.time_range import parse_iso_ms


@pytest.fixture
def rates(world):
    return RateConfigurationUseCase(world.rates, world.drivers, world.carriers, world.audit)


@pytest.fixture
def plans(world):
    return PayPlanUseCase(world.plans, world.drivers, world.carriers)


async def _profile(rates, world, name, payee_type=PayeeType.DRIVER, is_default=False):
    return await rates.create_profile(
        "org-1", name, payee_type, PayBasis.MILEAGE, world.actor, is_default=is_default
    )


# ─── Profiles ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_new_default_demotes_the_old_one(world, rates):
    first = await _profile(rates, world, "Solo", is_default=True)
    second = await _profile(rates, world, "Team", is_default=True)
    carrier = await _profile(rates, world, "Carrier", PayeeType.CARRIER, is_default=True)

    assert not (await world.rates.get_profile(first.id)).is_default
    assert (await world.rates.get_profile(second.id)).is_default
    assert (await world.rates.get_profile(carrier.id)).is_default


@pytest.mark.asyncio
async def test_inactive_profile_cannot_be_default(world, rates):
    profile = await _profile(rates, world, "Solo", is_default=True)
    with pytest.raises(BusinessRuleError):
        await rates.update_profile(profile.id, world.actor, is_active=False)


# ─── Rules ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rule_validation(world, rates):
    profile = await _profile(rates, world, "Solo")

    with pytest.raises(BusinessRuleError):
        await rates.add_rule(
            profile.id, "Linehaul", RuleCategory.BASE, TriggerEvent.MILE_LOADED,
            Decimal("-0.5"), world.actor,
        )
    with pytest.raises(BusinessRuleError):
        await rates.add_rule(
            profile.id, "Share", RuleCategory.BASE, TriggerEvent.PCT_OF_LOAD,
            Decimal("120"), world.actor,
        )
    with pytest.raises(EntityNotFoundError):
        await rates.add_rule(
            999, "Linehaul", RuleCategory.BASE, TriggerEvent.MILE_LOADED, Decimal("1"), world.actor,
        )

    rule = await rates.add_rule(
        profile.id, "Share", RuleCategory.BASE, TriggerEvent.PCT_OF_LOAD, "25", world.actor,
    )
    assert rule.rate_amount == Decimal("25")
    assert [r.id for r in await rates.list_rules(profile.id)] == [rule.id]


@pytest.mark.asyncio
async def test_rule_update_is_validated(world, rates):
    profile = await _profile(rates, world, "Solo")
    rule = await rates.add_rule(
        profile.id, "Linehaul", RuleCategory.BASE, TriggerEvent.MILE_LOADED, Decimal("0.5"), world.actor,
    )

    with pytest.raises(BusinessRuleError):
        await rates.update_rule(rule.id, world.actor, max_cap=Decimal("-1"))

    updated = await rates.update_rule(rule.id, world.actor, rate_amount=Decimal("0.62"))
    assert (await world.rates.get_rule(updated.id)).rate_amount == Decimal("0.62")


# ─── Assignments ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_first_assignment_becomes_default(world, rates):
    solo = await _profile(rates, world, "Solo")
    team = await _profile(rates, world, "Team")

    first = await rates.assign_profile(PayeeType.DRIVER, 1, solo.id, world.actor)
    second = await rates.assign_profile(PayeeType.DRIVER, 1, team.id, world.actor)

    assert first.is_default
    assert not second.is_default


@pytest.mark.asyncio
async def test_assignment_validation(world, rates):
    solo = await _profile(rates, world, "Solo")
    carrier = await _profile(rates, world, "Carrier", PayeeType.CARRIER)

    with pytest.raises(BusinessRuleError):
        await rates.assign_profile(PayeeType.DRIVER, 1, carrier.id, world.actor)
    with pytest.raises(BusinessRuleError):
        await rates.assign_profile(
            PayeeType.DRIVER, 1, solo.id, world.actor,
            selection_strategy=SelectionStrategy.DISTANCE_THRESHOLD,
        )
    with pytest.raises(EntityNotFoundError):
        await rates.assign_profile(PayeeType.DRIVER, 404, solo.id, world.actor)

    await rates.assign_profile(PayeeType.DRIVER, 1, solo.id, world.actor)
    with pytest.raises(BusinessRuleError):
        await rates.assign_profile(PayeeType.DRIVER, 1, solo.id, world.actor)


@pytest.mark.asyncio
async def test_default_moves_between_assignments(world, rates):
    solo = await _profile(rates, world, "Solo")
    team = await _profile(rates, world, "Team")
    local = await _profile(rates, world, "Local")
    a = await rates.assign_profile(PayeeType.DRIVER, 1, solo.id, world.actor)
    b = await rates.assign_profile(PayeeType.DRIVER, 1, team.id, world.actor)
    c = await rates.assign_profile(PayeeType.DRIVER, 1, local.id, world.actor)

    await rates.set_default_assignment(c.id, world.actor)
    assert [x.is_default for x in await rates.list_assignments(PayeeType.DRIVER, 1)] == [
        False, False, True,
    ]

    await rates.remove_assignment(c.id, world.actor)
    remaining = await rates.list_assignments(PayeeType.DRIVER, 1)
    assert [(x.id, x.is_default) for x in remaining] == [(a.id, True), (b.id, False)]


# ─── Pay plans ──────────────────────────────────────────────────────


def _plan(**kw) -> PayPlan:
    fields = dict(
        id=None, org_id="org-1", name="Weekly", frequency=PayFrequency.WEEKLY,
        period_start_day_of_week=DayOfWeek.MONDAY,
    )
    fields.update(kw)
    return PayPlan(**fields)


@pytest.mark.parametrize(
    "changes",
    [
        {"period_start_day_of_week": None},
        {"frequency": PayFrequency.MONTHLY, "period_start_day_of_month": 31},
        {"cutoff_time": "24:00"},
        {"cutoff_time": "5pm"},
        {"payment_lag_days": -1},
        {"timezone": "Mars/Olympus_Mons"},
        {"name": "  "},
    ],
)
def test_invalid_plans_are_rejected(changes):
    with pytest.raises(BusinessRuleError):
        validate_plan(_plan(**changes))


def test_valid_plans_pass():
    validate_plan(_plan(timezone="America/Chicago", cutoff_time="17:30", payment_lag_days=5))
    validate_plan(
        _plan(frequency=PayFrequency.MONTHLY, period_start_day_of_week=None, period_start_day_of_month=28)
    )


@pytest.mark.asyncio
async def test_plan_assignment_and_preview(world, plans):
    plan = await plans.create(_plan(), world.actor)

    await plans.assign(PayeeType.DRIVER, 1, plan.id, world.actor)
    await plans.assign(PayeeType.CARRIER, 1, plan.id, world.actor)
    period = await plans.preview_period(plan.id, world.clock())

    assert (await world.drivers.get_by_id(1)).pay_plan_id == plan.id
    assert (await world.carriers.get_by_id(1)).pay_plan_id == plan.id
    assert period.start == parse_iso_ms("2024-03-04T00:00:00Z")
    assert period.end == parse_iso_ms("2024-03-11T00:00:00Z")


@pytest.mark.asyncio
async def test_inactive_plan_cannot_be_assigned(world, plans):
    plan = await plans.create(_plan(is_active=False), world.actor)
    with pytest.raises(BusinessRuleError):
        await plans.assign(PayeeType.DRIVER, 1, plan.id, world.actor)


@pytest.mark.asyncio
async def test_plan_update_rejects_unknown_fields(world, plans):
    plan = await plans.create(_plan(), world.actor)

    with pytest.raises(BusinessRuleError):
        await plans.update(plan.id, world.actor, colour="red")
    updated = await plans.update(plan.id, world.actor, cutoff_time="12:00")

    assert updated.cutoff_time == "12:00"
    assert [p.name for p in await plans.list_plans("org-1")] == ["Weekly"]
