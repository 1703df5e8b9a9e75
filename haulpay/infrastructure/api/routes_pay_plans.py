"""Pay plan endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from haulpay.adapters.persistence.database import get_session
from haulpay.application.use_cases.pay_plans import PayPlanUseCase
from haulpay.domain.entities.settlement import PayPlan
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import DayOfWeek, PayableTrigger, PayeeType, PayFrequency
from haulpay.infrastructure.api.dependencies import get_actor, get_org_id, get_pay_plan_uc
from haulpay.infrastructure.api.serializers import to_json

router = APIRouter(prefix="/pay-plans", tags=["pay-plans"])


class PayPlanRequest(BaseModel):
    name: str
    frequency: PayFrequency
    period_start_day_of_week: DayOfWeek | None = None
    period_start_day_of_month: int | None = None
    timezone: str | None = None
    cutoff_time: str = "23:59"
    payment_lag_days: int = 0
    payable_trigger: PayableTrigger = PayableTrigger.DELIVERY_DATE
    auto_carryover: bool = True
    include_standalone_adjustments: bool = True
    description: str | None = None


class UpdatePayPlanRequest(BaseModel):
    name: str | None = None
    frequency: PayFrequency | None = None
    period_start_day_of_week: DayOfWeek | None = None
    period_start_day_of_month: int | None = None
    timezone: str | None = None
    cutoff_time: str | None = None
    payment_lag_days: int | None = None
    payable_trigger: PayableTrigger | None = None
    auto_carryover: bool | None = None
    include_standalone_adjustments: bool | None = None
    is_active: bool | None = None
    description: str | None = None


class AssignPlanRequest(BaseModel):
    payee_type: PayeeType
    payee_id: int
    pay_plan_id: int | None = None


@router.get("")
async def list_pay_plans(
    org_id: str = Depends(get_org_id), uc: PayPlanUseCase = Depends(get_pay_plan_uc)
):
    plans = await uc.list_plans(org_id)
    return {"total": len(plans), "pay_plans": to_json(plans)}


@router.post("", status_code=201)
async def create_pay_plan(
    body: PayPlanRequest,
    org_id: str = Depends(get_org_id),
    actor: Actor = Depends(get_actor),
    uc: PayPlanUseCase = Depends(get_pay_plan_uc),
    session: AsyncSession = Depends(get_session),
):
    plan = await uc.create(PayPlan(id=None, org_id=org_id, **body.model_dump()), actor)
    await session.commit()
    return to_json(plan)


@router.patch("/{plan_id}")
async def update_pay_plan(
    plan_id: int,
    body: UpdatePayPlanRequest,
    actor: Actor = Depends(get_actor),
    uc: PayPlanUseCase = Depends(get_pay_plan_uc),
    session: AsyncSession = Depends(get_session),
):
    plan = await uc.update(plan_id, actor, **body.model_dump(exclude_unset=True))
    await session.commit()
    return to_json(plan)


@router.get("/{plan_id}/period")
async def preview_period(
    plan_id: int, reference_ms: int, uc: PayPlanUseCase = Depends(get_pay_plan_uc)
):
    return to_json(await uc.preview_period(plan_id, reference_ms))


@router.post("/assign")
async def assign_pay_plan(
    body: AssignPlanRequest,
    actor: Actor = Depends(get_actor),
    uc: PayPlanUseCase = Depends(get_pay_plan_uc),
    session: AsyncSession = Depends(get_session),
):
    await uc.assign(body.payee_type, body.payee_id, body.pay_plan_id, actor)
    await session.commit()
    return {"payee_type": body.payee_type.value, "payee_id": body.payee_id,
            "pay_plan_id": body.pay_plan_id}
