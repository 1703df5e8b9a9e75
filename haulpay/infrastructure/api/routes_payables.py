"""Pay endpoints — leg pay calculation, previews and the payable ledger."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from haulpay.adapters.persistence.database import get_session
from haulpay.application.use_cases.calculate_pay import CalculatePayUseCase, PayCalculation
from haulpay.application.use_cases.payables import PayableLedgerUseCase
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import PayeeType
from haulpay.infrastructure.api.dependencies import (
    get_actor,
    get_calculate_pay_uc,
    get_ledger_uc,
    get_org_id,
)
from haulpay.infrastructure.api.serializers import to_json

router = APIRouter(tags=["payables"])


class ManualPayableRequest(BaseModel):
    payee_type: PayeeType
    payee_id: int
    description: str
    quantity: Decimal
    rate: Decimal
    load_id: int | None = None
    leg_id: int | None = None
    settlement_id: int | None = None
    is_rebillable: bool = False
    rebill_customer_id: int | None = None
    receipt_storage_key: str | None = None


class UpdatePayableRequest(BaseModel):
    description: str | None = None
    quantity: Decimal | None = None
    rate: Decimal | None = None
    receipt_storage_key: str | None = None


def _calculation(calc: PayCalculation) -> dict:
    data = to_json(calc)
    data["total"] = str(calc.total)
    return data


# ── Pay calculation ─────────────────────────────────────────────────

@router.post("/legs/{leg_id}/calculate")
async def calculate_leg_pay(
    leg_id: int,
    payee_type: PayeeType = PayeeType.DRIVER,
    actor: Actor = Depends(get_actor),
    uc: CalculatePayUseCase = Depends(get_calculate_pay_uc),
    session: AsyncSession = Depends(get_session),
):
    calc = await uc.execute(leg_id, payee_type, actor)
    await session.commit()
    return _calculation(calc)


@router.get("/legs/{leg_id}/preview")
async def preview_leg_pay(
    leg_id: int,
    payee_type: PayeeType = PayeeType.DRIVER,
    uc: CalculatePayUseCase = Depends(get_calculate_pay_uc),
):
    return _calculation(await uc.preview(leg_id, payee_type))


@router.post("/loads/{load_id}/recalculate")
async def recalculate_load_pay(
    load_id: int,
    actor: Actor = Depends(get_actor),
    uc: CalculatePayUseCase = Depends(get_calculate_pay_uc),
    session: AsyncSession = Depends(get_session),
):
    calcs = await uc.recalculate_for_load(load_id, actor)
    await session.commit()
    return {"legs": [_calculation(c) for c in calcs]}


# ── Ledger ──────────────────────────────────────────────────────────

@router.get("/loads/{load_id}/payables")
async def list_load_payables(
    load_id: int, uc: PayableLedgerUseCase = Depends(get_ledger_uc)
):
    payables = await uc.list_for_load(load_id)
    return {"total": len(payables), "payables": to_json(payables)}


@router.get("/payables/unassigned")
async def list_unassigned(
    payee_type: PayeeType,
    payee_id: int,
    uc: PayableLedgerUseCase = Depends(get_ledger_uc),
):
    pool = await uc.list_unassigned(payee_type, payee_id)
    return {
        "available": to_json(pool.available),
        "held": to_json(pool.held),
        "available_total": str(pool.available_total),
    }


@router.post("/payables", status_code=201)
async def add_manual_payable(
    body: ManualPayableRequest,
    org_id: str = Depends(get_org_id),
    actor: Actor = Depends(get_actor),
    uc: PayableLedgerUseCase = Depends(get_ledger_uc),
    session: AsyncSession = Depends(get_session),
):
    payable = await uc.add_manual(
        org_id,
        body.payee_type,
        body.payee_id,
        body.description,
        body.quantity,
        body.rate,
        actor,
        load_id=body.load_id,
        leg_id=body.leg_id,
        settlement_id=body.settlement_id,
        is_rebillable=body.is_rebillable,
        rebill_customer_id=body.rebill_customer_id,
        receipt_storage_key=body.receipt_storage_key,
    )
    await session.commit()
    return to_json(payable)


@router.patch("/payables/{payable_id}")
async def update_manual_payable(
    payable_id: int,
    body: UpdatePayableRequest,
    actor: Actor = Depends(get_actor),
    uc: PayableLedgerUseCase = Depends(get_ledger_uc),
    session: AsyncSession = Depends(get_session),
):
    payable = await uc.update_manual(payable_id, actor, **body.model_dump(exclude_unset=True))
    await session.commit()
    return to_json(payable)


@router.delete("/payables/{payable_id}", status_code=204)
async def delete_manual_payable(
    payable_id: int,
    actor: Actor = Depends(get_actor),
    uc: PayableLedgerUseCase = Depends(get_ledger_uc),
    session: AsyncSession = Depends(get_session),
):
    await uc.delete_manual(payable_id, actor)
    await session.commit()
    return Response(status_code=204)


@router.post("/payables/{payable_id}/lock")
async def lock_payable(
    payable_id: int,
    actor: Actor = Depends(get_actor),
    uc: PayableLedgerUseCase = Depends(get_ledger_uc),
    session: AsyncSession = Depends(get_session),
):
    payable = await uc.lock(payable_id, actor)
    await session.commit()
    return to_json(payable)


@router.post("/payables/{payable_id}/unlock")
async def unlock_payable(
    payable_id: int,
    actor: Actor = Depends(get_actor),
    uc: PayableLedgerUseCase = Depends(get_ledger_uc),
    session: AsyncSession = Depends(get_session),
):
    payable = await uc.unlock(payable_id, actor)
    await session.commit()
    return to_json(payable)
