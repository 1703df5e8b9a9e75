"""RateConfigurationUseCase — profiles, rules and payee profile assignments.

Default flags are kept consistent at write time: marking something default
demotes whatever was default before.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from haulpay.application.ports.audit_log_port import AuditLogPort
from haulpay.application.ports.carrier_repo import CarrierRepository
from haulpay.application.ports.driver_repo import DriverRepository
from haulpay.application.ports.rate_repo import RateRepository
from haulpay.domain.entities.rate_profile import ProfileAssignment, RateProfile, RateRule
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import (
    PayBasis,
    PayeeType,
    RuleCategory,
    SelectionStrategy,
    TriggerEvent,
)
from haulpay.domain.value_objects.money import to_decimal

logger = logging.getLogger(__name__)


class RateConfigurationUseCase:
    def __init__(
        self,
        rate_repo: RateRepository,
        driver_repo: DriverRepository,
        carrier_repo: CarrierRepository,
        audit: AuditLogPort,
    ):
        self._rates = rate_repo
        self._drivers = driver_repo
        self._carriers = carrier_repo
        self._audit = audit

    async def _profile(self, profile_id: int) -> RateProfile:
        profile = await self._rates.get_profile(profile_id)
        if profile is None:
            raise EntityNotFoundError("Rate profile", profile_id)
        return profile

    async def _demote_org_defaults(self, profile: RateProfile) -> None:
        for other in await self._rates.get_profiles(profile.org_id, profile.profile_type):
            if other.id != profile.id and other.is_default:
                other.is_default = False
                await self._rates.update_profile(other)
                logger.info("Profile %s is no longer the %s default", other.id, other.profile_type.value)

    async def _log(self, org_id: str, entity_id, name: str, action: str, actor: Actor, description: str):
        await self._audit.log_action(
            org_id=org_id,
            entity_type="rate_profile",
            entity_id=str(entity_id),
            entity_name=name,
            action=action,
            performed_by=actor.user_id,
            performed_by_name=actor.user_name,
            description=description,
        )

    # ─── Profiles ────────────────────────────────────────────────────

    async def create_profile(
        self,
        org_id: str,
        name: str,
        profile_type: PayeeType,
        pay_basis: PayBasis,
        actor: Actor,
        is_default: bool = False,
        description: str | None = None,
    ) -> RateProfile:
        if not name or not name.strip():
            raise BusinessRuleError("Profile name is required")
        profile = await self._rates.save_profile(
            RateProfile(
                id=None,
                org_id=org_id,
                name=name.strip(),
                profile_type=profile_type,
                pay_basis=pay_basis,
                is_default=is_default,
                description=description,
            )
        )
        if is_default:
            await self._demote_org_defaults(profile)
        await self._log(org_id, profile.id, profile.name, "created", actor, f"Created profile {profile.name}")
        return profile

    async def update_profile(
        self,
        profile_id: int,
        actor: Actor,
        name: str | None = None,
        is_active: bool | None = None,
        is_default: bool | None = None,
        description: str | None = None,
    ) -> RateProfile:
        profile = await self._profile(profile_id)
        if name is not None:
            if not name.strip():
                raise BusinessRuleError("Profile name is required")
            profile.name = name.strip()
        if description is not None:
            profile.description = description
        if is_active is not None:
            profile.is_active = is_active
        if is_default is not None:
            profile.is_default = is_default
        if profile.is_default and not profile.is_active:
            raise BusinessRuleError("An inactive profile cannot be the default")
        profile = await self._rates.update_profile(profile)
        if profile.is_default:
            await self._demote_org_defaults(profile)
        await self._log(profile.org_id, profile.id, profile.name, "updated", actor, f"Updated profile {profile.name}")
        return profile

    async def list_profiles(self, org_id: str, profile_type: PayeeType | None = None) -> list[RateProfile]:
        return await self._rates.get_profiles(org_id, profile_type)

    # ─── Rules ───────────────────────────────────────────────────────

    @staticmethod
    def _validate_rule(rule: RateRule) -> None:
        if rule.rate_amount is None or to_decimal(rule.rate_amount) < 0:
            raise BusinessRuleError("Rate amount must be zero or positive")
        if rule.min_threshold is not None and to_decimal(rule.min_threshold) < 0:
            raise BusinessRuleError("Minimum threshold cannot be negative")
        if rule.max_cap is not None and to_decimal(rule.max_cap) < 0:
            raise BusinessRuleError("Maximum cap cannot be negative")
        if rule.trigger_event == TriggerEvent.PCT_OF_LOAD and to_decimal(rule.rate_amount) > 100:
            raise BusinessRuleError("Percentage rules cannot exceed 100")

    async def add_rule(
        self,
        profile_id: int,
        name: str,
        category: RuleCategory,
        trigger_event: TriggerEvent,
        rate_amount: Decimal,
        actor: Actor,
        min_threshold: Decimal | None = None,
        max_cap: Decimal | None = None,
    ) -> RateRule:
        profile = await self._profile(profile_id)
        rule = RateRule(
            id=None,
            profile_id=profile.id,
            name=name.strip(),
            category=category,
            trigger_event=trigger_event,
            rate_amount=to_decimal(rate_amount),
            min_threshold=to_decimal(min_threshold) if min_threshold is not None else None,
            max_cap=to_decimal(max_cap) if max_cap is not None else None,
        )
        self._validate_rule(rule)
        rule = await self._rates.save_rule(rule)
        await self._log(
            profile.org_id, profile.id, profile.name, "rule_added", actor,
            f"Added rule {rule.name} ({trigger_event.value} @ {rule.rate_amount})",
        )
        return rule

    async def update_rule(
        self,
        rule_id: int,
        actor: Actor,
        name: str | None = None,
        rate_amount: Decimal | None = None,
        min_threshold: Decimal | None = None,
        max_cap: Decimal | None = None,
        is_active: bool | None = None,
    ) -> RateRule:
        """Edit a rule. Existing payables are not recalculated by this call."""
        rule = await self._rates.get_rule(rule_id)
        if rule is None:
            raise EntityNotFoundError("Rate rule", rule_id)
        if name is not None:
            rule.name = name.strip()
        if rate_amount is not None:
            rule.rate_amount = to_decimal(rate_amount)
        if min_threshold is not None:
            rule.min_threshold = to_decimal(min_threshold)
        if max_cap is not None:
            rule.max_cap = to_decimal(max_cap)
        if is_active is not None:
            rule.is_active = is_active
        self._validate_rule(rule)
        rule = await self._rates.update_rule(rule)
        profile = await self._profile(rule.profile_id)
        await self._log(profile.org_id, profile.id, profile.name, "rule_updated", actor, f"Updated rule {rule.name}")
        return rule

    async def list_rules(self, profile_id: int) -> list[RateRule]:
        await self._profile(profile_id)
        return await self._rates.get_rules(profile_id)

    # ─── Payee assignments ───────────────────────────────────────────

    async def _ensure_payee(self, payee_type: PayeeType, payee_id: int) -> str:
        if payee_type == PayeeType.DRIVER:
            driver = await self._drivers.get_by_id(payee_id)
            if driver is None:
                raise EntityNotFoundError("Driver", payee_id)
            return driver.org_id
        partnership = await self._carriers.get_by_id(payee_id)
        if partnership is None:
            raise EntityNotFoundError("Carrier partnership", payee_id)
        return partnership.org_id

    async def _demote_payee_defaults(self, assignment: ProfileAssignment) -> None:
        for other in await self._rates.get_assignments(assignment.payee_type, assignment.payee_id):
            if other.id != assignment.id and other.is_default:
                other.is_default = False
                await self._rates.update_assignment(other)

    async def assign_profile(
        self,
        payee_type: PayeeType,
        payee_id: int,
        profile_id: int,
        actor: Actor,
        selection_strategy: SelectionStrategy = SelectionStrategy.ALWAYS_ACTIVE,
        threshold_value: Decimal | None = None,
        is_default: bool = False,
        effective_date: str | None = None,
    ) -> ProfileAssignment:
        """Link a payee to a profile.

        The payee's first assignment always becomes its default.

        Raises:
            BusinessRuleError: type mismatch, missing threshold for a
                DISTANCE_THRESHOLD strategy, or a duplicate assignment.
        """
        profile = await self._profile(profile_id)
        if profile.profile_type != payee_type:
            raise BusinessRuleError(
                f"A {profile.profile_type.value} profile cannot be assigned to a {payee_type.value}"
            )
        org_id = await self._ensure_payee(payee_type, payee_id)

        if selection_strategy == SelectionStrategy.DISTANCE_THRESHOLD:
            if threshold_value is None or to_decimal(threshold_value) <= 0:
                raise BusinessRuleError("Distance-threshold assignments need a positive threshold")

        existing = await self._rates.get_assignments(payee_type, payee_id)
        if any(a.profile_id == profile.id for a in existing):
            raise BusinessRuleError(f"Profile {profile.name} is already assigned")

        assignment = await self._rates.save_assignment(
            ProfileAssignment(
                id=None,
                org_id=org_id,
                payee_type=payee_type,
                payee_id=payee_id,
                profile_id=profile.id,
                selection_strategy=selection_strategy,
                threshold_value=(
                    to_decimal(threshold_value) if threshold_value is not None else None
                ),
                is_default=is_default or not existing,
                effective_date=effective_date,
            )
        )
        if assignment.is_default:
            await self._demote_payee_defaults(assignment)
        await self._log(
            org_id, profile.id, profile.name, "assigned", actor,
            f"Assigned profile {profile.name} to {payee_type.value.lower()} {payee_id}",
        )
        return assignment

    async def set_default_assignment(self, assignment_id: int, actor: Actor) -> ProfileAssignment:
        assignment = await self._rates.get_assignment(assignment_id)
        if assignment is None:
            raise EntityNotFoundError("Profile assignment", assignment_id)
        assignment.is_default = True
        assignment = await self._rates.update_assignment(assignment)
        await self._demote_payee_defaults(assignment)
        logger.info("Assignment %s is now the default (by %s)", assignment.id, actor.user_id)
        return assignment

    async def remove_assignment(self, assignment_id: int, actor: Actor) -> None:
        """Remove an assignment; a removed default hands over to the oldest remaining one."""
        assignment = await self._rates.get_assignment(assignment_id)
        if assignment is None:
            raise EntityNotFoundError("Profile assignment", assignment_id)
        await self._rates.delete_assignment(assignment.id)
        if assignment.is_default:
            remaining = await self._rates.get_assignments(assignment.payee_type, assignment.payee_id)
            if remaining:
                heir = min(remaining, key=lambda a: a.id or 0)
                heir.is_default = True
                await self._rates.update_assignment(heir)
        logger.info("Assignment %s removed by %s", assignment.id, actor.user_id)

    async def list_assignments(self, payee_type: PayeeType, payee_id: int) -> list[ProfileAssignment]:
        return await self._rates.get_assignments(payee_type, payee_id)
