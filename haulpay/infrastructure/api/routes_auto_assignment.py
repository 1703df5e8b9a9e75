"""Auto-assignment endpoints — route table, settings and manual sweeps."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from haulpay.adapters.persistence.database import get_session
from haulpay.application.use_cases.auto_assignment import (
    AutoAssignLoadUseCase,
    AutoAssignPendingLoadsUseCase,
    RouteAssignmentConfigUseCase,
)
from haulpay.domain.value_objects.actor import Actor
from haulpay.infrastructure.api.dependencies import (
    get_actor,
    get_auto_assign_uc,
    get_org_id,
    get_route_config_uc,
    get_sweep_uc,
)
from haulpay.infrastructure.api.serializers import to_json

router = APIRouter(prefix="/auto-assignment", tags=["auto-assignment"])


class RouteAssignmentRequest(BaseModel):
    hcr: str
    name: str
    trip_number: str | None = None
    driver_id: int | None = None
    carrier_partnership_id: int | None = None
    priority: int = 0
    notes: str | None = None


class ActiveRequest(BaseModel):
    is_active: bool


class SettingsRequest(BaseModel):
    enabled: bool | None = None
    trigger_on_create: bool | None = None
    scheduled_enabled: bool | None = None
    schedule_interval_minutes: int | None = None


@router.get("/routes")
async def list_routes(
    org_id: str = Depends(get_org_id),
    uc: RouteAssignmentConfigUseCase = Depends(get_route_config_uc),
):
    routes = await uc.list_for_org(org_id)
    return {"total": len(routes), "routes": to_json(routes)}


@router.post("/routes", status_code=201)
async def create_route(
    body: RouteAssignmentRequest,
    org_id: str = Depends(get_org_id),
    actor: Actor = Depends(get_actor),
    uc: RouteAssignmentConfigUseCase = Depends(get_route_config_uc),
    session: AsyncSession = Depends(get_session),
):
    route = await uc.create(org_id, body.hcr, body.name, actor, **body.model_dump(
        exclude={"hcr", "name"}
    ))
    await session.commit()
    return to_json(route)


@router.patch("/routes/{assignment_id}")
async def set_route_active(
    assignment_id: int,
    body: ActiveRequest,
    uc: RouteAssignmentConfigUseCase = Depends(get_route_config_uc),
    session: AsyncSession = Depends(get_session),
):
    route = await uc.set_active(assignment_id, body.is_active)
    await session.commit()
    return to_json(route)


@router.get("/settings")
async def get_settings(
    org_id: str = Depends(get_org_id),
    uc: RouteAssignmentConfigUseCase = Depends(get_route_config_uc),
):
    return to_json(await uc.get_settings(org_id))


@router.put("/settings")
async def update_settings(
    body: SettingsRequest,
    org_id: str = Depends(get_org_id),
    uc: RouteAssignmentConfigUseCase = Depends(get_route_config_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.update_settings(org_id, **body.model_dump(exclude_unset=True))
    await session.commit()
    return to_json(result)


@router.post("/loads/{load_id}")
async def auto_assign_load(
    load_id: int,
    uc: AutoAssignLoadUseCase = Depends(get_auto_assign_uc),
    session: AsyncSession = Depends(get_session),
):
    outcome = await uc.execute(load_id)
    await session.commit()
    return to_json(outcome)


@router.post("/run")
async def run_sweep(
    org_id: str = Depends(get_org_id),
    uc: AutoAssignPendingLoadsUseCase = Depends(get_sweep_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(org_id)
    await session.commit()
    return to_json(result)
