"""Tests for route-based auto-assignment."""

from __future__ import annotations

import pytest

from haulpay.application.use_cases.auto_assignment import (
    RouteAssignmentConfigUseCase,
    RunScheduledAutoAssignmentUseCase,
)
from haulpay.domain.entities.route_assignment import AutoAssignmentSettings, RouteAssignment
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.domain.value_objects.enums import (
    AutoAssignAction,
    EmploymentStatus,
    LoadStatus,
    PartnershipStatus,
)

HOUR = 3_600_000


async def _route(world, hcr="HCR-12", trip=None, driver_id=None, carrier_id=None, **kw):
    return await world.routes.save(
        RouteAssignment(
            id=None, org_id="org-1", hcr=hcr, name=f"{hcr}/{trip or '*'}", trip_number=trip,
            driver_id=driver_id, carrier_partnership_id=carrier_id, **kw,
        )
    )


async def _hcr_load(world, windows, hcr="HCR-12", trip="T1", internal_id="L-100"):
    load, _ = await world.add_load(
        windows, internal_id=internal_id, parsed_hcr=hcr, parsed_trip_number=trip
    )
    return load


@pytest.mark.asyncio
async def test_exact_trip_route_assigns_driver_with_truck(world, day_windows):
    await _route(world, driver_id=2)
    exact = await _route(world, trip="T1", driver_id=1)
    load = await _hcr_load(world, day_windows)

    outcome = await world.auto_assign().execute(load.id)

    assert outcome.action == AutoAssignAction.ASSIGNED_DRIVER
    assert outcome.route_assignment_id == exact.id
    [leg] = await world.legs.get_by_load(load.id)
    assert (leg.driver_id, leg.truck_id) == (1, 11)
    assert world.audit.entries[-1].performed_by == "system"


@pytest.mark.asyncio
async def test_wildcard_route_assigns_carrier(world, day_windows):
    await _route(world, trip="*", carrier_id=1)
    load = await _hcr_load(world, day_windows, trip="T9")

    outcome = await world.auto_assign().execute(load.id)

    assert outcome.action == AutoAssignAction.ASSIGNED_CARRIER
    assert (await world.loads.get_by_id(load.id)).primary_carrier_partnership_id == 1


@pytest.mark.asyncio
async def test_no_route_is_no_match(world, day_windows):
    await _route(world, hcr="OTHER", driver_id=1)
    load = await _hcr_load(world, day_windows)

    outcome = await world.auto_assign().execute(load.id)

    assert outcome.action == AutoAssignAction.NO_MATCH
    assert await world.legs.get_by_load(load.id) == []


@pytest.mark.asyncio
async def test_assigned_load_is_left_alone(world, day_windows):
    await _route(world, driver_id=1)
    load = await _hcr_load(world, day_windows)
    await world.assign_driver().execute(load.id, 2, world.actor)

    outcome = await world.auto_assign().execute(load.id)

    assert outcome.action == AutoAssignAction.ALREADY_ASSIGNED
    [leg] = await world.legs.get_by_load(load.id)
    assert leg.driver_id == 2


@pytest.mark.asyncio
async def test_inactive_targets_are_reported(world, day_windows):
    driver = await world.drivers.get_by_id(1)
    driver.employment_status = EmploymentStatus.ON_LEAVE
    await world.drivers.update(driver)
    partnership = await world.carriers.get_by_id(1)
    partnership.status = PartnershipStatus.SUSPENDED
    await world.carriers.update(partnership)
    await _route(world, hcr="HCR-D", driver_id=1)
    await _route(world, hcr="HCR-C", carrier_id=1)
    by_driver = await _hcr_load(world, day_windows, hcr="HCR-D", internal_id="L-1")
    by_carrier = await _hcr_load(world, day_windows, hcr="HCR-C", internal_id="L-2")

    uc = world.auto_assign()

    assert (await uc.execute(by_driver.id)).action == AutoAssignAction.DRIVER_INACTIVE
    assert (await uc.execute(by_carrier.id)).action == AutoAssignAction.CARRIER_INACTIVE


@pytest.mark.asyncio
async def test_auto_assignment_ignores_driver_conflicts(world, day_windows):
    busy, busy_stops = await world.add_load(day_windows, internal_id="L-0")
    await world.add_leg(busy, busy_stops, driver_id=1)
    await _route(world, driver_id=1)
    load = await _hcr_load(world, day_windows)

    outcome = await world.auto_assign().execute(load.id)

    assert outcome.action == AutoAssignAction.ASSIGNED_DRIVER


@pytest.mark.asyncio
async def test_unknown_load_is_an_error(world):
    outcome = await world.auto_assign().execute(404)
    assert outcome.action == AutoAssignAction.ERROR


@pytest.mark.asyncio
async def test_creation_hook_respects_settings(world, day_windows):
    await _route(world, driver_id=1)
    load = await _hcr_load(world, day_windows)
    uc = world.auto_assign()

    assert await uc.on_load_created(load.id) is None

    await world.routes.save_settings(AutoAssignmentSettings(id=None, org_id="org-1", enabled=True))
    outcome = await uc.on_load_created(load.id)

    assert outcome.action == AutoAssignAction.ASSIGNED_DRIVER


@pytest.mark.asyncio
async def test_sweep_counts_outcomes(world, day_windows):
    await _route(world, driver_id=1)
    await _hcr_load(world, day_windows, internal_id="L-1")
    await _hcr_load(world, day_windows, hcr="NOPE", internal_id="L-2")
    await world.add_load(day_windows, internal_id="L-3", status=LoadStatus.ASSIGNED, parsed_hcr="HCR-12")

    result = await world.sweep().execute("org-1")

    assert (result.assigned, result.skipped, result.errors) == (1, 1, 0)
    assert len(result.outcomes) == 2


@pytest.mark.asyncio
async def test_scheduled_run_only_sweeps_due_orgs(world, day_windows):
    now = 10 * HOUR
    await world.routes.save_settings(
        AutoAssignmentSettings(
            id=None, org_id="org-1", enabled=True, scheduled_enabled=True,
            schedule_interval_minutes=30, last_scheduled_run_at=now - HOUR,
        )
    )
    await world.routes.save_settings(
        AutoAssignmentSettings(
            id=None, org_id="org-2", enabled=True, scheduled_enabled=True,
            last_scheduled_run_at=now - HOUR // 2,
        )
    )
    await world.routes.save_settings(
        AutoAssignmentSettings(id=None, org_id="org-3", enabled=True, scheduled_enabled=False)
    )
    uc = RunScheduledAutoAssignmentUseCase(world.routes, world.sweep(), default_interval_minutes=60)

    results = await uc.execute(now=now)

    assert [r.org_id for r in results] == ["org-1"]
    assert (await world.routes.get_settings("org-1")).last_scheduled_run_at == now
    assert (await world.routes.get_settings("org-2")).last_scheduled_run_at == now - HOUR // 2


# ─── Configuration ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_route_needs_exactly_one_target(world):
    uc = RouteAssignmentConfigUseCase(world.routes, world.drivers, world.carriers)

    with pytest.raises(BusinessRuleError):
        await uc.create("org-1", "HCR-1", "Both", world.actor, driver_id=1, carrier_partnership_id=1)
    with pytest.raises(BusinessRuleError):
        await uc.create("org-1", "HCR-1", "Neither", world.actor)
    with pytest.raises(EntityNotFoundError):
        await uc.create("org-1", "HCR-1", "Ghost", world.actor, driver_id=99)

    route = await uc.create("org-1", " HCR-1 ", "Ana", world.actor, trip_number=" T4 ", driver_id=1)
    assert (route.hcr, route.trip_number) == ("HCR-1", "T4")


@pytest.mark.asyncio
async def test_settings_default_and_update(world):
    uc = RouteAssignmentConfigUseCase(world.routes, world.drivers, world.carriers)

    defaults = await uc.get_settings("org-1")
    assert (defaults.enabled, defaults.trigger_on_create) == (False, True)

    saved = await uc.update_settings("org-1", enabled=True, schedule_interval_minutes=15)
    assert saved.enabled
    assert saved.schedule_interval_minutes == 15
    with pytest.raises(BusinessRuleError):
        await uc.update_settings("org-1", last_scheduled_run_at=0)
    with pytest.raises(BusinessRuleError):
        await uc.update_settings("org-1", schedule_interval_minutes=-5)
