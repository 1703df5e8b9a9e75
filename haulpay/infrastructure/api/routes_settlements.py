"""Settlement endpoints — generation, workflow, adjustments and bulk actions."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from haulpay.adapters.persistence.database import get_session
from haulpay.application.use_cases.settlements import (
    BulkSettlementUseCase,
    GenerateSettlementUseCase,
    LoadHoldUseCase,
    RefreshSettlementUseCase,
    SettlementLifecycleUseCase,
)
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import PayeeType
from haulpay.infrastructure.api.dependencies import (
    get_actor,
    get_bulk_settlement_uc,
    get_generate_settlement_uc,
    get_lifecycle_uc,
    get_load_hold_uc,
    get_refresh_settlement_uc,
)
from haulpay.infrastructure.api.serializers import to_json

router = APIRouter(tags=["settlements"])


# ── Request schemas ─────────────────────────────────────────────────

class GenerateRequest(BaseModel):
    payee_type: PayeeType
    payee_id: int
    period_start: int
    period_end: int
    pay_plan_id: int | None = None
    include_held: bool = False
    notes: str | None = None


class GenerateFromPlanRequest(BaseModel):
    payee_type: PayeeType
    payee_id: int
    reference_ms: int | None = None


class BulkGenerateRequest(BaseModel):
    pay_plan_id: int
    reference_ms: int | None = None


class MarkPaidRequest(BaseModel):
    payment_method: str
    payment_reference: str | None = None


class VoidRequest(BaseModel):
    reason: str


class AdjustmentRequest(BaseModel):
    description: str
    amount: Decimal
    quantity: Decimal = Decimal("1")
    load_id: int | None = None
    receipt_storage_key: str | None = None


class UpdateAdjustmentRequest(BaseModel):
    description: str | None = None
    quantity: Decimal | None = None
    amount: Decimal | None = None


class BulkRequest(BaseModel):
    settlement_ids: list[int]


class BulkVoidRequest(BulkRequest):
    reason: str


class HoldRequest(BaseModel):
    reason: str


class ReleaseRequest(BaseModel):
    settlement_id: int | None = None


def _batch(result) -> dict:
    data = to_json(result)
    data["success_count"] = result.success_count
    data["failure_count"] = result.failure_count
    return data


# ── Generation ──────────────────────────────────────────────────────

@router.post("/settlements", status_code=201)
async def generate_settlement(
    body: GenerateRequest,
    actor: Actor = Depends(get_actor),
    uc: GenerateSettlementUseCase = Depends(get_generate_settlement_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(
        body.payee_type, body.payee_id, body.period_start, body.period_end, actor,
        pay_plan_id=body.pay_plan_id, include_held=body.include_held, notes=body.notes,
    )
    await session.commit()
    return to_json(result)


@router.post("/settlements/from-plan", status_code=201)
async def generate_from_plan(
    body: GenerateFromPlanRequest,
    actor: Actor = Depends(get_actor),
    uc: GenerateSettlementUseCase = Depends(get_generate_settlement_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute_from_plan(
        body.payee_type, body.payee_id, actor, reference_ms=body.reference_ms
    )
    await session.commit()
    return to_json(result)


@router.post("/settlements/bulk-generate")
async def bulk_generate(
    body: BulkGenerateRequest,
    actor: Actor = Depends(get_actor),
    uc: GenerateSettlementUseCase = Depends(get_generate_settlement_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.bulk_generate_by_plan(body.pay_plan_id, actor, reference_ms=body.reference_ms)
    await session.commit()
    return _batch(result)


@router.post("/settlements/{settlement_id}/refresh")
async def refresh_settlement(
    settlement_id: int,
    actor: Actor = Depends(get_actor),
    uc: RefreshSettlementUseCase = Depends(get_refresh_settlement_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.execute(settlement_id, actor)
    await session.commit()
    return to_json(result)


# ── Bulk ────────────────────────────────────────────────────────────

@router.post("/settlements/bulk/approve")
async def bulk_approve(
    body: BulkRequest,
    actor: Actor = Depends(get_actor),
    uc: BulkSettlementUseCase = Depends(get_bulk_settlement_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.approve_many(body.settlement_ids, actor)
    await session.commit()
    return _batch(result)


@router.post("/settlements/bulk/void")
async def bulk_void(
    body: BulkVoidRequest,
    actor: Actor = Depends(get_actor),
    uc: BulkSettlementUseCase = Depends(get_bulk_settlement_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.void_many(body.settlement_ids, body.reason, actor)
    await session.commit()
    return _batch(result)


@router.post("/settlements/bulk/delete")
async def bulk_delete(
    body: BulkRequest,
    actor: Actor = Depends(get_actor),
    uc: BulkSettlementUseCase = Depends(get_bulk_settlement_uc),
    session: AsyncSession = Depends(get_session),
):
    result = await uc.delete_many(body.settlement_ids, actor)
    await session.commit()
    return _batch(result)


# ── Views ───────────────────────────────────────────────────────────

@router.get("/settlements")
async def list_settlements(
    payee_type: PayeeType,
    payee_id: int,
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
):
    settlements = await uc.list_for_payee(payee_type, payee_id)
    return {"total": len(settlements), "settlements": to_json(settlements)}


@router.get("/settlements/{settlement_id}")
async def get_settlement(
    settlement_id: int, uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc)
):
    return to_json(await uc.get_details(settlement_id))


# ── Workflow ────────────────────────────────────────────────────────

@router.post("/settlements/{settlement_id}/submit")
async def submit_settlement(
    settlement_id: int,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    settlement = await uc.submit(settlement_id, actor)
    await session.commit()
    return to_json(settlement)


@router.post("/settlements/{settlement_id}/reopen")
async def reopen_settlement(
    settlement_id: int,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    settlement = await uc.reopen(settlement_id, actor)
    await session.commit()
    return to_json(settlement)


@router.post("/settlements/{settlement_id}/approve")
async def approve_settlement(
    settlement_id: int,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    settlement = await uc.approve(settlement_id, actor)
    await session.commit()
    return to_json(settlement)


@router.post("/settlements/{settlement_id}/mark-paid")
async def mark_settlement_paid(
    settlement_id: int,
    body: MarkPaidRequest,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    settlement = await uc.mark_paid(
        settlement_id, actor, body.payment_method, body.payment_reference
    )
    await session.commit()
    return to_json(settlement)


@router.post("/settlements/{settlement_id}/void")
async def void_settlement(
    settlement_id: int,
    body: VoidRequest,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    settlement = await uc.void(settlement_id, body.reason, actor)
    await session.commit()
    return to_json(settlement)


@router.delete("/settlements/{settlement_id}")
async def delete_settlement(
    settlement_id: int,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    detached = await uc.delete(settlement_id, actor)
    await session.commit()
    return {"deleted": settlement_id, "payables_detached": detached}


# ── Adjustments ─────────────────────────────────────────────────────

@router.post("/settlements/{settlement_id}/adjustments", status_code=201)
async def add_adjustment(
    settlement_id: int,
    body: AdjustmentRequest,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    payable = await uc.add_adjustment(
        settlement_id, body.description, body.amount, actor,
        quantity=body.quantity, load_id=body.load_id,
        receipt_storage_key=body.receipt_storage_key,
    )
    await session.commit()
    return to_json(payable)


@router.patch("/settlements/adjustments/{payable_id}")
async def update_adjustment(
    payable_id: int,
    body: UpdateAdjustmentRequest,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    payable = await uc.update_adjustment(payable_id, actor, **body.model_dump(exclude_unset=True))
    await session.commit()
    return to_json(payable)


@router.delete("/settlements/adjustments/{payable_id}")
async def delete_adjustment(
    payable_id: int,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    await uc.delete_adjustment(payable_id, actor)
    await session.commit()
    return {"deleted": payable_id}


@router.delete("/settlements/{settlement_id}/payables/{payable_id}")
async def remove_payable(
    settlement_id: int,
    payable_id: int,
    actor: Actor = Depends(get_actor),
    uc: SettlementLifecycleUseCase = Depends(get_lifecycle_uc),
    session: AsyncSession = Depends(get_session),
):
    payable = await uc.remove_payable(settlement_id, payable_id, actor)
    await session.commit()
    return to_json(payable)


# ── Load holds ──────────────────────────────────────────────────────

@router.post("/loads/{load_id}/hold")
async def hold_load(
    load_id: int,
    body: HoldRequest,
    actor: Actor = Depends(get_actor),
    uc: LoadHoldUseCase = Depends(get_load_hold_uc),
    session: AsyncSession = Depends(get_session),
):
    detached = await uc.hold(load_id, body.reason, actor)
    await session.commit()
    return {"load_id": load_id, "payables_detached": detached}


@router.post("/loads/{load_id}/release")
async def release_load(
    load_id: int,
    body: ReleaseRequest,
    actor: Actor = Depends(get_actor),
    uc: LoadHoldUseCase = Depends(get_load_hold_uc),
    session: AsyncSession = Depends(get_session),
):
    attached = await uc.release(load_id, actor, settlement_id=body.settlement_id)
    await session.commit()
    return {"load_id": load_id, "payables_attached": attached}
