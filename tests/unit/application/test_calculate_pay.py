"""Tests for CalculatePayUseCase with in-memory fakes."""

from __future__ import annotations

from decimal import Decimal

import pytest

from haulpay.application.use_cases.calculate_pay import NO_PROFILE_WARNING
from haulpay.domain.entities.payable import Payable
from haulpay.domain.errors import EntityNotFoundError
from haulpay.domain.value_objects.enums import LegStatus, PayeeType, SourceType, TriggerEvent


async def _driver_leg(world, day_windows, miles="500", **load_fields):
    load, stops = await world.add_load(day_windows, **load_fields)
    leg = await world.add_leg(load, stops, miles=Decimal(miles), driver_id=1)
    return load, leg


# ─── Tests ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_mileage_profile_pays_loaded_miles(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Linehaul", TriggerEvent.MILE_LOADED, "2.00")])
    load, leg = await _driver_leg(world, day_windows)

    calc = await world.calculate_pay().execute(leg.id, PayeeType.DRIVER, world.actor)

    assert calc.total == Decimal("1000.00")
    assert calc.profile_name == "Standard"
    stored = world.payables.all()
    assert len(stored) == 1
    row = stored[0]
    assert row.source_type == SourceType.SYSTEM
    assert row.payee_id == 1
    assert row.leg_id == leg.id
    assert row.load_id == load.id
    assert row.total_amount == Decimal("1000.00")
    assert row.created_by == "user-1"


@pytest.mark.asyncio
async def test_recalculation_is_idempotent(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Linehaul", TriggerEvent.MILE_LOADED, "2.00")])
    _, leg = await _driver_leg(world, day_windows)
    uc = world.calculate_pay()

    await uc.execute(leg.id, PayeeType.DRIVER, world.actor)
    await uc.execute(leg.id, PayeeType.DRIVER, world.actor)

    assert len(world.payables.all()) == 1


@pytest.mark.asyncio
async def test_locked_and_manual_rows_survive_recalculation(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Linehaul", TriggerEvent.MILE_LOADED, "2.00")])
    load, leg = await _driver_leg(world, day_windows)
    common = dict(
        org_id="org-1", payee_type=PayeeType.DRIVER, payee_id=1,
        quantity=Decimal("1"), load_id=load.id, leg_id=leg.id,
    )
    await world.payables.save(
        Payable(id=None, description="Agreed linehaul", rate=Decimal("900"),
                total_amount=Decimal("900.00"), source_type=SourceType.SYSTEM,
                is_locked=True, **common)
    )
    await world.payables.save(
        Payable(id=None, description="Lumper", rate=Decimal("60"),
                total_amount=Decimal("60.00"), source_type=SourceType.MANUAL,
                is_locked=True, **common)
    )
    await world.payables.save(
        Payable(id=None, description="Stale", rate=Decimal("1"),
                total_amount=Decimal("1.00"), source_type=SourceType.SYSTEM, **common)
    )

    await world.calculate_pay().execute(leg.id, PayeeType.DRIVER, world.actor)

    descriptions = sorted(p.description for p in world.payables.all())
    assert descriptions == ["Agreed linehaul", "Linehaul", "Lumper"]


@pytest.mark.asyncio
async def test_no_profile_warns_and_writes_nothing(world, day_windows):
    _, leg = await _driver_leg(world, day_windows)

    calc = await world.calculate_pay().execute(leg.id, PayeeType.DRIVER, world.actor)

    assert calc.warnings == [NO_PROFILE_WARNING]
    assert calc.total == Decimal("0.00")
    assert world.payables.all() == []


@pytest.mark.asyncio
async def test_warning_only_profile_writes_zero_line(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Revenue share", TriggerEvent.PCT_OF_LOAD, "25")])
    _, leg = await _driver_leg(world, day_windows)

    await world.calculate_pay().execute(leg.id, PayeeType.DRIVER, world.actor)

    [row] = world.payables.all()
    assert row.total_amount == Decimal("0.00")
    assert row.description == "Standard (No applicable charges)"
    assert "No invoice total" in row.warning_message


@pytest.mark.asyncio
async def test_percentage_uses_invoice_total(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Revenue share", TriggerEvent.PCT_OF_LOAD, "25")])
    _, leg = await _driver_leg(world, day_windows, invoice_total=Decimal("3000"))

    calc = await world.calculate_pay().execute(leg.id, PayeeType.DRIVER, world.actor)

    assert calc.total == Decimal("750.00")


@pytest.mark.asyncio
async def test_flat_load_pays_once_per_payee(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Load flat", TriggerEvent.FLAT_LOAD, "150")])
    load, stops = await world.add_load(day_windows)
    leg1 = await world.add_leg(load, stops, sequence=1, driver_id=1)
    leg2 = await world.add_leg(load, stops, sequence=2, driver_id=1)
    uc = world.calculate_pay()

    first = await uc.execute(leg1.id, PayeeType.DRIVER, world.actor)
    second = await uc.execute(leg2.id, PayeeType.DRIVER, world.actor)

    assert first.total == Decimal("150.00")
    assert second.total == Decimal("0.00")


@pytest.mark.asyncio
async def test_preview_does_not_write(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Linehaul", TriggerEvent.MILE_LOADED, "2.00")])
    _, leg = await _driver_leg(world, day_windows)

    calc = await world.calculate_pay().preview(leg.id, PayeeType.DRIVER)

    assert calc.total == Decimal("1000.00")
    assert world.payables.all() == []


@pytest.mark.asyncio
async def test_leg_without_payee_is_skipped(world, day_windows):
    load, stops = await world.add_load(day_windows)
    leg = await world.add_leg(load, stops)

    calc = await world.calculate_pay().execute(leg.id, PayeeType.CARRIER, world.actor)

    assert calc.skipped == "No carrier assigned"


@pytest.mark.asyncio
async def test_first_leg_sets_primary_driver(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Linehaul", TriggerEvent.MILE_LOADED, "2.00")])
    load, leg = await _driver_leg(world, day_windows)

    await world.calculate_pay().execute(leg.id, PayeeType.DRIVER, world.actor)

    assert (await world.loads.get_by_id(load.id)).primary_driver_id == 1


@pytest.mark.asyncio
async def test_recalculate_for_load_skips_canceled_legs(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Linehaul", TriggerEvent.MILE_LOADED, "1.00")])
    await world.add_profile(
        PayeeType.CARRIER, [("Carrier flat", TriggerEvent.FLAT_LEG, "900")], name="Carrier"
    )
    load, stops = await world.add_load(day_windows)
    await world.add_leg(load, stops, sequence=1, miles=Decimal("100"), driver_id=1)
    await world.add_leg(load, stops, sequence=2, carrier_partnership_id=1)
    await world.add_leg(load, stops, sequence=3, driver_id=2, status=LegStatus.CANCELED)

    results = await world.calculate_pay().recalculate_for_load(load.id, world.actor)

    assert [r.total for r in results] == [Decimal("100.00"), Decimal("900.00")]


@pytest.mark.asyncio
async def test_unknown_leg_raises(world):
    with pytest.raises(EntityNotFoundError):
        await world.calculate_pay().execute(999, PayeeType.DRIVER, world.actor)
