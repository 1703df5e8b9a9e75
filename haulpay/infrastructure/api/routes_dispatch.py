"""Dispatch endpoints — assignment, splits, legs and driver availability."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from haulpay.adapters.persistence.database import get_session
from haulpay.application.use_cases.deactivation import DeactivateResourceUseCase
from haulpay.application.use_cases.dispatch_legs import (
    AssignCarrierUseCase,
    AssignDriverUseCase,
    CreateLegUseCase,
    DriverAvailabilityUseCase,
    RemoveDriverUseCase,
    SplitLoadUseCase,
    UnassignResourceUseCase,
    UpdateLegUseCase,
)
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import LegStatus
from haulpay.infrastructure.api.dependencies import (
    get_actor,
    get_assign_carrier_uc,
    get_assign_driver_uc,
    get_availability_uc,
    get_create_leg_uc,
    get_deactivation_uc,
    get_org_id,
    get_remove_driver_uc,
    get_split_uc,
    get_unassign_uc,
    get_update_leg_uc,
)
from haulpay.infrastructure.api.serializers import to_json

router = APIRouter(tags=["dispatch"])


# ── Request schemas ─────────────────────────────────────────────────

class AssignDriverRequest(BaseModel):
    driver_id: int
    truck_id: int | None = None
    trailer_id: int | None = None
    force: bool = False


class AssignCarrierRequest(BaseModel):
    partnership_id: int
    trailer_id: int | None = None


class SplitRequest(BaseModel):
    split_stop_id: int
    new_driver_id: int
    new_truck_id: int | None = None
    new_trailer_id: int | None = None


class CreateLegRequest(BaseModel):
    start_stop_id: int
    end_stop_id: int
    loaded_miles: Decimal
    empty_miles: Decimal = Decimal("0")
    driver_id: int | None = None


class LegStatusRequest(BaseModel):
    status: LegStatus


class LegMilesRequest(BaseModel):
    loaded_miles: Decimal | None = None
    empty_miles: Decimal | None = None


# ── Load assignment ─────────────────────────────────────────────────

@router.post("/loads/{load_id}/assign-driver")
async def assign_driver(
    load_id: int,
    body: AssignDriverRequest,
    actor: Actor = Depends(get_actor),
    uc: AssignDriverUseCase = Depends(get_assign_driver_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(
        load_id, body.driver_id, actor,
        truck_id=body.truck_id, trailer_id=body.trailer_id, force=body.force,
    )
    await session.commit()
    return to_json(result)


@router.post("/loads/{load_id}/assign-carrier")
async def assign_carrier(
    load_id: int,
    body: AssignCarrierRequest,
    actor: Actor = Depends(get_actor),
    uc: AssignCarrierUseCase = Depends(get_assign_carrier_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(load_id, body.partnership_id, actor, trailer_id=body.trailer_id)
    await session.commit()
    return to_json(result)


@router.post("/loads/{load_id}/unassign")
async def unassign(
    load_id: int,
    actor: Actor = Depends(get_actor),
    uc: UnassignResourceUseCase = Depends(get_unassign_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(load_id, actor)
    await session.commit()
    return to_json(result)


@router.post("/loads/{load_id}/split")
async def split_load(
    load_id: int,
    body: SplitRequest,
    actor: Actor = Depends(get_actor),
    uc: SplitLoadUseCase = Depends(get_split_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(
        load_id, body.split_stop_id, body.new_driver_id, actor,
        new_truck_id=body.new_truck_id, new_trailer_id=body.new_trailer_id,
    )
    await session.commit()
    return to_json(result)


# ── Legs ────────────────────────────────────────────────────────────

@router.post("/loads/{load_id}/legs")
async def create_leg(
    load_id: int,
    body: CreateLegRequest,
    actor: Actor = Depends(get_actor),
    uc: CreateLegUseCase = Depends(get_create_leg_uc),
    session: AsyncSession = Depends(get_session),
):
    leg = await uc.execute(
        load_id, body.start_stop_id, body.end_stop_id, body.loaded_miles, actor,
        empty_miles=body.empty_miles, driver_id=body.driver_id,
    )
    await session.commit()
    return to_json(leg)


@router.post("/legs/{leg_id}/remove-driver")
async def remove_driver(
    leg_id: int,
    actor: Actor = Depends(get_actor),
    uc: RemoveDriverUseCase = Depends(get_remove_driver_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(leg_id, actor)
    await session.commit()
    return to_json(result)


@router.patch("/legs/{leg_id}/status")
async def update_leg_status(
    leg_id: int,
    body: LegStatusRequest,
    actor: Actor = Depends(get_actor),
    uc: UpdateLegUseCase = Depends(get_update_leg_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.update_status(leg_id, body.status, actor)
    await session.commit()
    return to_json(result)


@router.patch("/legs/{leg_id}/miles")
async def update_leg_miles(
    leg_id: int,
    body: LegMilesRequest,
    actor: Actor = Depends(get_actor),
    uc: UpdateLegUseCase = Depends(get_update_leg_uc),
    session: AsyncSession = Depends(get_session),
):
    leg = await uc.update_miles(
        leg_id, actor, loaded_miles=body.loaded_miles, empty_miles=body.empty_miles
    )
    await session.commit()
    return to_json(leg)


# ── Drivers ─────────────────────────────────────────────────────────

@router.get("/drivers/available")
async def available_drivers(
    start_ms: int,
    end_ms: int,
    exclude_load_id: int | None = None,
    org_id: str = Depends(get_org_id),
    uc: DriverAvailabilityUseCase = Depends(get_availability_uc),
):
    drivers = await uc.available_drivers(org_id, start_ms, end_ms, exclude_load_id)
    return {"total": len(drivers), "drivers": to_json(drivers)}


@router.get("/drivers/{driver_id}/schedule")
async def driver_schedule(
    driver_id: int,
    start_ms: int | None = None,
    end_ms: int | None = None,
    uc: DriverAvailabilityUseCase = Depends(get_availability_uc),
):
    entries = await uc.driver_schedule(driver_id, start_ms, end_ms)
    return {"total": len(entries), "entries": to_json(entries)}


@router.post("/drivers/{driver_id}/deactivate")
async def deactivate_driver(
    driver_id: int,
    actor: Actor = Depends(get_actor),
    uc: DeactivateResourceUseCase = Depends(get_deactivation_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.deactivate_driver(driver_id, actor)
    await session.commit()
    return to_json(result)


@router.post("/carrier-partnerships/{partnership_id}/deactivate")
async def deactivate_carrier(
    partnership_id: int,
    actor: Actor = Depends(get_actor),
    uc: DeactivateResourceUseCase = Depends(get_deactivation_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.deactivate_carrier(partnership_id, actor)
    await session.commit()
    return to_json(result)
