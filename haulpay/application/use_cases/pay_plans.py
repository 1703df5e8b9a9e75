"""PayPlanUseCase — pay-period templates and who they apply to."""

from __future__ import annotations

import logging
import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from haulpay.application.ports.carrier_repo import CarrierRepository
from haulpay.application.ports.driver_repo import DriverRepository
from haulpay.application.ports.pay_plan_repo import PayPlanRepository
from haulpay.domain.entities.settlement import PayPlan
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.domain.policies.pay_period import PayPeriod, calculate_period
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import PayeeType, PayFrequency

logger = logging.getLogger(__name__)

CUTOFF_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_plan(plan: PayPlan) -> None:
    """Raise BusinessRuleError if the plan cannot produce periods."""
    if not plan.name or not plan.name.strip():
        raise BusinessRuleError("Pay plan name is required")
    if plan.frequency in (PayFrequency.WEEKLY, PayFrequency.BIWEEKLY):
        if plan.period_start_day_of_week is None:
            raise BusinessRuleError("Weekly and biweekly plans need a start day of week")
    if plan.frequency == PayFrequency.MONTHLY:
        day = plan.period_start_day_of_month
        if day is None or not 1 <= day <= 28:
            raise BusinessRuleError("Monthly plans need a start day between 1 and 28")
    if not CUTOFF_PATTERN.match(plan.cutoff_time or ""):
        raise BusinessRuleError("Cutoff time must be HH:MM")
    if plan.payment_lag_days < 0:
        raise BusinessRuleError("Payment lag cannot be negative")
    if plan.timezone:
        try:
            ZoneInfo(plan.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise BusinessRuleError(f"Unknown timezone {plan.timezone}") from e


class PayPlanUseCase:
    def __init__(
        self,
        pay_plan_repo: PayPlanRepository,
        driver_repo: DriverRepository,
        carrier_repo: CarrierRepository,
        default_timezone: str = "UTC",
    ):
        self._plans = pay_plan_repo
        self._drivers = driver_repo
        self._carriers = carrier_repo
        self._tz = default_timezone

    async def _get(self, plan_id: int) -> PayPlan:
        plan = await self._plans.get_by_id(plan_id)
        if plan is None:
            raise EntityNotFoundError("Pay plan", plan_id)
        return plan

    async def create(self, plan: PayPlan, actor: Actor) -> PayPlan:
        validate_plan(plan)
        plan = await self._plans.save(plan)
        logger.info("Pay plan %s (%s) created by %s", plan.id, plan.name, actor.user_id)
        return plan

    async def update(self, plan_id: int, actor: Actor, **changes) -> PayPlan:
        plan = await self._get(plan_id)
        for key, value in changes.items():
            if not hasattr(plan, key) or key in ("id", "org_id"):
                raise BusinessRuleError(f"Unknown pay plan field {key}")
            setattr(plan, key, value)
        validate_plan(plan)
        plan = await self._plans.update(plan)
        logger.info("Pay plan %s updated by %s", plan.id, actor.user_id)
        return plan

    async def list_plans(self, org_id: str) -> list[PayPlan]:
        return await self._plans.get_by_org(org_id)

    async def assign(
        self, payee_type: PayeeType, payee_id: int, plan_id: int | None, actor: Actor
    ) -> None:
        """Put a payee on a plan (``plan_id=None`` takes them off)."""
        if plan_id is not None:
            plan = await self._get(plan_id)
            if not plan.is_active:
                raise BusinessRuleError("Cannot assign an inactive pay plan")
        if payee_type == PayeeType.DRIVER:
            driver = await self._drivers.get_by_id(payee_id)
            if driver is None:
                raise EntityNotFoundError("Driver", payee_id)
            driver.pay_plan_id = plan_id
            await self._drivers.update(driver)
        else:
            partnership = await self._carriers.get_by_id(payee_id)
            if partnership is None:
                raise EntityNotFoundError("Carrier partnership", payee_id)
            partnership.pay_plan_id = plan_id
            await self._carriers.update(partnership)
        logger.info(
            "%s %s moved to pay plan %s by %s", payee_type.value, payee_id, plan_id, actor.user_id
        )

    async def preview_period(self, plan_id: int, reference_ms: int) -> PayPeriod:
        return calculate_period(await self._get(plan_id), reference_ms, self._tz)
