"""Tests for the driver/carrier deactivation cascade."""

from __future__ import annotations

from decimal import Decimal

import pytest

from haulpay.domain.entities.route_assignment import RouteAssignment
from haulpay.domain.errors import EntityNotFoundError
from haulpay.domain.value_objects.enums import (
    EmploymentStatus,
    LegStatus,
    LoadStatus,
    PartnershipStatus,
    PayeeType,
    SourceType,
    TriggerEvent,
)


@pytest.mark.asyncio
async def test_deactivating_a_driver_releases_open_legs(world, day_windows):
    await world.add_profile(PayeeType.DRIVER, [("Linehaul", TriggerEvent.MILE_LOADED, "1.00")])
    open_load, _ = await world.add_load(day_windows, internal_id="L-1")
    await world.assign_driver().execute(open_load.id, 1, world.actor)
    done_load, done_stops = await world.add_load(day_windows, internal_id="L-2")
    await world.add_leg(done_load, done_stops, driver_id=1, status=LegStatus.COMPLETED)
    await world.ledger().add_manual(
        "org-1", PayeeType.DRIVER, 1, "Lumper", Decimal("1"), Decimal("60"), world.actor,
        load_id=open_load.id, leg_id=1,
    )
    await world.routes.save(
        RouteAssignment(id=None, org_id="org-1", hcr="HCR-1", name="Ana", driver_id=1)
    )

    result = await world.deactivation().deactivate_driver(1, world.actor, EmploymentStatus.TERMINATED)

    assert (result.legs_released, result.loads_updated, result.route_assignments_disabled) == (1, 1, 1)
    [released] = await world.legs.get_by_load(open_load.id)
    assert released.driver_id is None
    assert released.truck_id is None
    [kept] = await world.legs.get_by_load(done_load.id)
    assert kept.driver_id == 1
    load = await world.loads.get_by_id(open_load.id)
    assert load.primary_driver_id is None
    assert load.status == LoadStatus.OPEN
    assert [p.source_type for p in world.payables.all()] == [SourceType.MANUAL]
    assert (await world.drivers.get_by_id(1)).employment_status == EmploymentStatus.TERMINATED
    assert not (await world.routes.get_by_id(1)).is_active
    assert world.audit.entries[-1].action == "deactivated"


@pytest.mark.asyncio
async def test_deactivating_a_carrier_releases_its_legs(world, day_windows):
    load, _ = await world.add_load(day_windows)
    await world.assign_carrier().execute(load.id, 1, world.actor, trailer_id=3)

    result = await world.deactivation().deactivate_carrier(1, world.actor)

    assert result.legs_released == 1
    [leg] = await world.legs.get_by_load(load.id)
    assert (leg.carrier_partnership_id, leg.trailer_id) == (None, None)
    assert (await world.carriers.get_by_id(1)).status == PartnershipStatus.INACTIVE
    assert not (await world.loads.get_by_id(load.id)).is_assigned()


@pytest.mark.asyncio
async def test_unknown_driver_raises(world):
    with pytest.raises(EntityNotFoundError):
        await world.deactivation().deactivate_driver(404, world.actor)
