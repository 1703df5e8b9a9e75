"""Rate configuration endpoints — profiles, rules and payee assignments."""

from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from haulpay.adapters.persistence.database import get_session
from haulpay.application.use_cases.rate_profiles import RateConfigurationUseCase
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import (
    PayBasis,
    PayeeType,
    RuleCategory,
    SelectionStrategy,
    TriggerEvent,
)
from haulpay.infrastructure.api.dependencies import get_actor, get_org_id, get_rate_config_uc
from haulpay.infrastructure.api.serializers import to_json

router = APIRouter(prefix="/rate-profiles", tags=["rate-profiles"])


class CreateProfileRequest(BaseModel):
    name: str
    profile_type: PayeeType
    pay_basis: PayBasis
    is_default: bool = False
    description: str | None = None


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    is_active: bool | None = None
    is_default: bool | None = None
    description: str | None = None


class RuleRequest(BaseModel):
    name: str
    category: RuleCategory
    trigger_event: TriggerEvent
    rate_amount: Decimal
    min_threshold: Decimal | None = None
    max_cap: Decimal | None = None


class UpdateRuleRequest(BaseModel):
    name: str | None = None
    rate_amount: Decimal | None = None
    min_threshold: Decimal | None = None
    max_cap: Decimal | None = None
    is_active: bool | None = None


class AssignProfileRequest(BaseModel):
    payee_type: PayeeType
    payee_id: int
    profile_id: int
    selection_strategy: SelectionStrategy = SelectionStrategy.ALWAYS_ACTIVE
    threshold_value: Decimal | None = None
    is_default: bool = False
    effective_date: str | None = None


# ── Profiles ────────────────────────────────────────────────────────

@router.get("")
async def list_profiles(
    profile_type: PayeeType | None = None,
    org_id: str = Depends(get_org_id),
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
):
    profiles = await uc.list_profiles(org_id, profile_type)
    return {"total": len(profiles), "profiles": to_json(profiles)}


@router.post("", status_code=201)
async def create_profile(
    body: CreateProfileRequest,
    org_id: str = Depends(get_org_id),
    actor: Actor = Depends(get_actor),
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
    session: AsyncSession = Depends(get_session),
):
    profile = await uc.create_profile(
        org_id, body.name, body.profile_type, body.pay_basis, actor,
        is_default=body.is_default, description=body.description,
    )
    await session.commit()
    return to_json(profile)


@router.patch("/{profile_id}")
async def update_profile(
    profile_id: int,
    body: UpdateProfileRequest,
    actor: Actor = Depends(get_actor),
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
    session: AsyncSession = Depends(get_session),
):
    profile = await uc.update_profile(profile_id, actor, **body.model_dump(exclude_unset=True))
    await session.commit()
    return to_json(profile)


# ── Rules ───────────────────────────────────────────────────────────

@router.get("/{profile_id}/rules")
async def list_rules(profile_id: int, uc: RateConfigurationUseCase = Depends(get_rate_config_uc)):
    rules = await uc.list_rules(profile_id)
    return {"total": len(rules), "rules": to_json(rules)}


@router.post("/{profile_id}/rules", status_code=201)
async def add_rule(
    profile_id: int,
    body: RuleRequest,
    actor: Actor = Depends(get_actor),
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
    session: AsyncSession = Depends(get_session),
):
    rule = await uc.add_rule(
        profile_id, body.name, body.category, body.trigger_event, body.rate_amount, actor,
        min_threshold=body.min_threshold, max_cap=body.max_cap,
    )
    await session.commit()
    return to_json(rule)


@router.patch("/rules/{rule_id}")
async def update_rule(
    rule_id: int,
    body: UpdateRuleRequest,
    actor: Actor = Depends(get_actor),
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
    session: AsyncSession = Depends(get_session),
):
    rule = await uc.update_rule(rule_id, actor, **body.model_dump(exclude_unset=True))
    await session.commit()
    return to_json(rule)


# ── Assignments ─────────────────────────────────────────────────────

@router.get("/assignments")
async def list_assignments(
    payee_type: PayeeType,
    payee_id: int,
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
):
    assignments = await uc.list_assignments(payee_type, payee_id)
    return {"total": len(assignments), "assignments": to_json(assignments)}


@router.post("/assignments", status_code=201)
async def assign_profile(
    body: AssignProfileRequest,
    actor: Actor = Depends(get_actor),
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
    session: AsyncSession = Depends(get_session),
):
    assignment = await uc.assign_profile(
        body.payee_type, body.payee_id, body.profile_id, actor,
        selection_strategy=body.selection_strategy,
        threshold_value=body.threshold_value,
        is_default=body.is_default,
        effective_date=body.effective_date,
    )
    await session.commit()
    return to_json(assignment)


@router.post("/assignments/{assignment_id}/default")
async def set_default_assignment(
    assignment_id: int,
    actor: Actor = Depends(get_actor),
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
    session: AsyncSession = Depends(get_session),
):
    assignment = await uc.set_default_assignment(assignment_id, actor)
    await session.commit()
    return to_json(assignment)


@router.delete("/assignments/{assignment_id}")
async def remove_assignment(
    assignment_id: int,
    actor: Actor = Depends(get_actor),
    uc: RateConfigurationUseCase = Depends(get_rate_config_uc),
    session: AsyncSession = Depends(get_session),
):
    await uc.remove_assignment(assignment_id, actor)
    await session.commit()
    return {"deleted": assignment_id}
