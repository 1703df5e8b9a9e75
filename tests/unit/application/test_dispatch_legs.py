"""Tests for the dispatch-leg use cases with in-memory fakes."""

from __future__ import annotations

from decimal import Decimal

import pytest

from haulpay.application.use_cases.dispatch_legs import (
    CreateLegUseCase,
    DriverAvailabilityUseCase,
    UpdateLegUseCase,
)
from haulpay.domain.entities.settlement import Settlement
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.domain.value_objects.assignment_result import (
    AssignmentConflict,
    AssignmentError,
    AssignmentSuccess,
)
from haulpay.domain.value_objects.enums import (
    EmploymentStatus,
    LegStatus,
    LoadStatus,
    PayeeType,
    SettlementStatus,
    SourceType,
    TriggerEvent,
)
from haulpay.domain.value_objects.time_range import parse_iso_ms

NOW = 1_710_000_000_000

EVENING = [
    ("2024-03-01T17:00:00Z", "2024-03-01T19:00:00Z"),
    ("2024-03-01T22:00:00Z", "2024-03-01T23:00:00Z"),
]
NEXT_DAY = [
    ("2024-03-02T08:00:00Z", "2024-03-02T09:00:00Z"),
    ("2024-03-02T12:00:00Z", "2024-03-02T13:00:00Z"),
]
FOUR_STOPS = [
    ("2024-03-05T08:00:00Z", "2024-03-05T09:00:00Z"),
    ("2024-03-05T12:00:00Z", "2024-03-05T13:00:00Z"),
    ("2024-03-05T16:00:00Z", "2024-03-05T17:00:00Z"),
    ("2024-03-05T20:00:00Z", "2024-03-05T21:00:00Z"),
]


async def _with_rates(world):
    await world.add_profile(PayeeType.DRIVER, [("Linehaul", TriggerEvent.MILE_LOADED, "1.00")])
    await world.add_profile(
        PayeeType.CARRIER, [("Carrier flat", TriggerEvent.FLAT_LEG, "1500")], name="Carrier"
    )


def _system_rows(world, payee_type=None):
    return [
        p for p in world.payables.all()
        if p.source_type == SourceType.SYSTEM and (payee_type is None or p.payee_type == payee_type)
    ]


# ─── Assign driver ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_assign_driver_creates_first_leg_and_pays(world, day_windows):
    await _with_rates(world)
    load, stops = await world.add_load(day_windows, miles=Decimal("640"))

    result = await world.assign_driver().execute(load.id, 1, world.actor, truck_id=11)

    assert isinstance(result, AssignmentSuccess)
    assert result.status == "SUCCESS"
    [leg] = await world.legs.get_by_load(load.id)
    assert leg.sequence == 1
    assert (leg.start_stop_id, leg.end_stop_id) == (stops[0].id, stops[-1].id)
    assert leg.driver_id == 1
    assert leg.truck_id == 11
    assert leg.loaded_miles == Decimal("640")
    saved = await world.loads.get_by_id(load.id)
    assert saved.status == LoadStatus.ASSIGNED
    assert saved.primary_driver_id == 1
    assert [p.total_amount for p in _system_rows(world)] == [Decimal("640.00")]
    assert "assigned_driver" in world.audit.actions()


@pytest.mark.asyncio
async def test_overlapping_load_is_a_conflict(world, day_windows):
    booked, booked_stops = await world.add_load(day_windows, internal_id="L-1", order_number="PO-77")
    await world.add_leg(booked, booked_stops, driver_id=1)
    load, _ = await world.add_load(EVENING, internal_id="L-2")

    result = await world.assign_driver().execute(load.id, 1, world.actor)

    assert isinstance(result, AssignmentConflict)
    assert result.status == "CONFLICT"
    assert result.conflicting_load_id == booked.id
    assert result.conflicting_order_number == "PO-77"
    assert await world.legs.get_by_load(load.id) == []
    assert (await world.loads.get_by_id(load.id)).primary_driver_id is None


@pytest.mark.asyncio
async def test_force_skips_conflict_check(world, day_windows):
    booked, booked_stops = await world.add_load(day_windows, internal_id="L-1")
    await world.add_leg(booked, booked_stops, driver_id=1)
    load, _ = await world.add_load(EVENING, internal_id="L-2")

    result = await world.assign_driver().execute(load.id, 1, world.actor, force=True)

    assert isinstance(result, AssignmentSuccess)


@pytest.mark.asyncio
async def test_completed_and_non_overlapping_legs_do_not_conflict(world, day_windows):
    done, done_stops = await world.add_load(EVENING, internal_id="L-1")
    await world.add_leg(done, done_stops, driver_id=1, status=LegStatus.COMPLETED)
    later, later_stops = await world.add_load(NEXT_DAY, internal_id="L-2")
    await world.add_leg(later, later_stops, driver_id=1)
    load, _ = await world.add_load(day_windows, internal_id="L-3")

    result = await world.assign_driver().execute(load.id, 1, world.actor)

    assert isinstance(result, AssignmentSuccess)


@pytest.mark.asyncio
async def test_inactive_driver_is_rejected(world, day_windows):
    driver = await world.drivers.get_by_id(2)
    driver.employment_status = EmploymentStatus.TERMINATED
    await world.drivers.update(driver)
    load, _ = await world.add_load(day_windows)

    result = await world.assign_driver().execute(load.id, 2, world.actor)

    assert isinstance(result, AssignmentError)
    assert result.message == "Driver not found or not active"


@pytest.mark.asyncio
async def test_canceled_load_is_rejected(world, day_windows):
    load, _ = await world.add_load(day_windows, status=LoadStatus.CANCELED)
    result = await world.assign_driver().execute(load.id, 1, world.actor)
    assert isinstance(result, AssignmentError)


@pytest.mark.asyncio
async def test_single_stop_load_cannot_be_assigned(world, day_windows):
    load, _ = await world.add_load(day_windows[:1])
    result = await world.assign_driver().execute(load.id, 1, world.actor)
    assert isinstance(result, AssignmentError)
    assert "two stops" in result.message


# ─── Exclusivity and reassignment ───────────────────────────────────


@pytest.mark.asyncio
async def test_carrier_replaces_driver_on_every_open_leg(world, day_windows):
    await _with_rates(world)
    load, _ = await world.add_load(day_windows)
    await world.assign_driver().execute(load.id, 1, world.actor, truck_id=11)

    result = await world.assign_carrier().execute(load.id, 1, world.actor)

    assert isinstance(result, AssignmentSuccess)
    for leg in await world.legs.get_by_load(load.id):
        assert leg.carrier_partnership_id == 1
        assert leg.driver_id is None
        assert leg.truck_id is None
    saved = await world.loads.get_by_id(load.id)
    assert saved.primary_driver_id is None
    assert saved.primary_carrier_partnership_id == 1
    assert _system_rows(world, PayeeType.DRIVER) == []
    assert [p.total_amount for p in _system_rows(world, PayeeType.CARRIER)] == [Decimal("1500.00")]


@pytest.mark.asyncio
async def test_driver_replaces_carrier(world, day_windows):
    load, _ = await world.add_load(day_windows)
    await world.assign_carrier().execute(load.id, 1, world.actor, trailer_id=5)

    await world.assign_driver().execute(load.id, 2, world.actor)

    [leg] = await world.legs.get_by_load(load.id)
    assert leg.driver_id == 2
    assert leg.carrier_partnership_id is None
    assert (await world.loads.get_by_id(load.id)).primary_carrier_partnership_id is None


@pytest.mark.asyncio
async def test_reassignment_replaces_pay_but_keeps_locked_and_manual(world, day_windows):
    await _with_rates(world)
    load, _ = await world.add_load(day_windows)
    await world.assign_driver().execute(load.id, 1, world.actor)
    [leg] = await world.legs.get_by_load(load.id)
    [linehaul] = _system_rows(world)
    await world.ledger().lock(linehaul.id, world.actor)
    await world.ledger().add_manual(
        "org-1", PayeeType.DRIVER, 1, "Lumper", Decimal("1"), Decimal("80"),
        world.actor, load_id=load.id, leg_id=leg.id,
    )

    await world.assign_driver().execute(load.id, 2, world.actor)

    by_payee = sorted((p.payee_id, p.description, p.is_locked) for p in world.payables.all())
    assert by_payee == [
        (1, "Linehaul", True),
        (1, "Lumper", True),
        (2, "Linehaul", False),
    ]


@pytest.mark.asyncio
async def test_unassign_clears_resources_and_pay(world, day_windows):
    await _with_rates(world)
    load, _ = await world.add_load(day_windows)
    await world.assign_driver().execute(load.id, 1, world.actor, truck_id=11, trailer_id=4)

    result = await world.unassign().execute(load.id, world.actor)

    assert isinstance(result, AssignmentSuccess)
    [leg] = await world.legs.get_by_load(load.id)
    assert (leg.driver_id, leg.carrier_partnership_id, leg.truck_id, leg.trailer_id) == (
        None, None, None, None,
    )
    saved = await world.loads.get_by_id(load.id)
    assert saved.status == LoadStatus.OPEN
    assert not saved.is_assigned()
    assert world.payables.all() == []


# ─── Split ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_split_hands_second_leg_to_new_driver(world):
    await _with_rates(world)
    load, stops = await world.add_load(FOUR_STOPS)
    await world.add_leg(load, stops, driver_id=1, miles=Decimal("1000"))

    result = await world.split().execute(load.id, stops[1].id, 2, world.actor)

    assert isinstance(result, AssignmentSuccess)
    first, second = await world.legs.get_by_load(load.id)
    assert (first.end_stop_id, first.loaded_miles, first.driver_id) == (
        stops[1].id, Decimal("500"), 1,
    )
    assert (second.sequence, second.start_stop_id, second.end_stop_id) == (
        2, stops[1].id, stops[-1].id,
    )
    assert (second.loaded_miles, second.driver_id) == (Decimal("500"), 2)
    totals = sorted((p.payee_id, p.total_amount) for p in world.payables.all())
    assert totals == [(1, Decimal("500.00")), (2, Decimal("500.00"))]


@pytest.mark.asyncio
async def test_split_apportions_load_miles_not_leg_miles(world):
    load, stops = await world.add_load(FOUR_STOPS, miles=Decimal("1000"))
    await world.add_leg(load, stops, driver_id=1, miles=Decimal("800"))

    await world.split().execute(load.id, stops[1].id, 2, world.actor)

    first, second = await world.legs.get_by_load(load.id)
    assert (first.loaded_miles, second.loaded_miles) == (Decimal("500"), Decimal("500"))


@pytest.mark.asyncio
async def test_split_at_endpoint_or_twice_is_rejected(world):
    load, stops = await world.add_load(FOUR_STOPS)
    await world.add_leg(load, stops, driver_id=1)
    uc = world.split()

    assert isinstance(await uc.execute(load.id, stops[0].id, 2, world.actor), AssignmentError)
    assert isinstance(await uc.execute(load.id, stops[-1].id, 2, world.actor), AssignmentError)
    assert isinstance(await uc.execute(load.id, stops[1].id, 2, world.actor), AssignmentSuccess)
    again = await uc.execute(load.id, stops[2].id, 2, world.actor)
    assert isinstance(again, AssignmentError)
    assert again.message == "Load is already split"


# ─── Remove driver ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_remove_driver_deletes_driver_pay(world, day_windows):
    await _with_rates(world)
    load, _ = await world.add_load(day_windows)
    await world.assign_driver().execute(load.id, 1, world.actor)
    [leg] = await world.legs.get_by_load(load.id)

    result = await world.remove_driver().execute(leg.id, world.actor)

    assert isinstance(result, AssignmentSuccess)
    assert (await world.legs.get_by_id(leg.id)).driver_id is None
    assert world.payables.all() == []
    saved = await world.loads.get_by_id(load.id)
    assert saved.primary_driver_id is None
    assert saved.status == LoadStatus.OPEN


@pytest.mark.asyncio
async def test_remove_driver_refused_when_pay_is_approved(world, day_windows):
    await _with_rates(world)
    load, _ = await world.add_load(day_windows)
    await world.assign_driver().execute(load.id, 1, world.actor)
    [leg] = await world.legs.get_by_load(load.id)
    settlement = await world.settlements.save(
        Settlement(
            id=None, org_id="org-1", payee_type=PayeeType.DRIVER, payee_id=1,
            period_start=0, period_end=NOW, statement_number="SET-2024-001",
            status=SettlementStatus.APPROVED,
        )
    )
    [row] = world.payables.all()
    row.settlement_id = settlement.id
    await world.payables.update(row)

    result = await world.remove_driver().execute(leg.id, world.actor)

    assert isinstance(result, AssignmentError)
    assert "SET-2024-001" in result.message
    assert (await world.legs.get_by_id(leg.id)).driver_id == 1


@pytest.mark.asyncio
async def test_remove_driver_unknown_leg_raises(world):
    with pytest.raises(EntityNotFoundError):
        await world.remove_driver().execute(404, world.actor)


# ─── Create and update legs ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_leg_appends_after_last(world):
    load, stops = await world.add_load(FOUR_STOPS)
    first = await world.add_leg(load, stops)
    first.end_stop_id = stops[1].id
    await world.legs.update(first)
    uc = CreateLegUseCase(
        world.loads, world.legs, world.drivers, world.payables, world.audit,
        world.calculate_pay(), clock=world.clock,
    )

    leg = await uc.execute(load.id, stops[1].id, stops[3].id, Decimal("300"), world.actor)

    assert leg.sequence == 2
    with pytest.raises(BusinessRuleError):
        await uc.execute(load.id, stops[3].id, stops[2].id, Decimal("1"), world.actor)
    with pytest.raises(BusinessRuleError):
        await uc.execute(load.id, stops[0].id, stops[2].id, Decimal("1"), world.actor)
    with pytest.raises(EntityNotFoundError):
        await uc.execute(load.id, stops[0].id, 999, Decimal("1"), world.actor)


@pytest.mark.asyncio
async def test_leg_status_follows_state_machine(world, day_windows):
    load, stops = await world.add_load(day_windows)
    leg = await world.add_leg(load, stops, driver_id=1)
    uc = UpdateLegUseCase(
        world.loads, world.legs, world.payables, world.audit, world.calculate_pay(),
        clock=world.clock,
    )

    assert isinstance(await uc.update_status(leg.id, LegStatus.COMPLETED, world.actor), AssignmentError)
    assert isinstance(await uc.update_status(leg.id, LegStatus.ACTIVE, world.actor), AssignmentSuccess)
    assert isinstance(
        await uc.update_status(leg.id, LegStatus.COMPLETED, world.actor), AssignmentSuccess
    )
    saved = await world.legs.get_by_id(leg.id)
    assert saved.status == LegStatus.COMPLETED
    assert saved.completed_at == NOW
    with pytest.raises(BusinessRuleError):
        await uc.update_miles(leg.id, world.actor, loaded_miles=Decimal("10"))


@pytest.mark.asyncio
async def test_mileage_correction_recalculates_pay(world, day_windows):
    await _with_rates(world)
    load, stops = await world.add_load(day_windows)
    leg = await world.add_leg(load, stops, driver_id=1, miles=Decimal("100"))
    uc = UpdateLegUseCase(
        world.loads, world.legs, world.payables, world.audit, world.calculate_pay(),
        clock=world.clock,
    )

    await uc.update_miles(leg.id, world.actor, loaded_miles=Decimal("250"))

    assert [p.total_amount for p in world.payables.all()] == [Decimal("250.00")]


# ─── Availability ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_available_drivers_excludes_busy_ones(world, day_windows):
    load, stops = await world.add_load(day_windows)
    await world.add_leg(load, stops, driver_id=1)
    uc = DriverAvailabilityUseCase(world.loads, world.legs, world.drivers)
    start = parse_iso_ms("2024-03-01T12:00:00Z")
    end = parse_iso_ms("2024-03-01T14:00:00Z")

    available = await uc.available_drivers("org-1", start, end)
    assert [a.driver.id for a in available] == [2]

    available = await uc.available_drivers("org-1", start, end, exclude_load_id=load.id)
    assert [a.driver.id for a in available] == [1, 2]


@pytest.mark.asyncio
async def test_driver_schedule_is_ordered(world, day_windows):
    later, later_stops = await world.add_load(NEXT_DAY, internal_id="L-2")
    await world.add_leg(later, later_stops, driver_id=1)
    earlier, earlier_stops = await world.add_load(day_windows, internal_id="L-1")
    await world.add_leg(earlier, earlier_stops, driver_id=1)
    uc = DriverAvailabilityUseCase(world.loads, world.legs, world.drivers)

    schedule = await uc.driver_schedule(1)

    assert [e.load.internal_id for e in schedule] == ["L-1", "L-2"]
