"""CalculatePayUseCase — derive SYSTEM payables for a leg from its rate profile."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal

from haulpay.application.ports.leg_repo import LegRepository
from haulpay.application.ports.load_repo import LoadRepository
from haulpay.application.ports.payable_repo import PayableRepository
from haulpay.application.ports.rate_repo import RateRepository
from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.entities.payable import Payable
from haulpay.domain.errors import EntityNotFoundError
from haulpay.domain.policies.profile_selection import ProfileSelection, select_profile
from haulpay.domain.policies.rule_evaluation import build_leg_facts, evaluate_rules
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import LegStatus, PayeeType, SourceType
from haulpay.domain.value_objects.money import ZERO, to_decimal, to_money
from haulpay.domain.value_objects.time_range import now_ms

logger = logging.getLogger(__name__)

NO_PROFILE_WARNING = "No pay profile assigned; pay calculated as $0"


@dataclass
class PayCalculation:
    """Outcome of one leg calculation (or preview)."""

    leg_id: int
    payee_type: PayeeType
    payee_id: int | None
    profile_id: int | None = None
    profile_name: str | None = None
    selection_reason: str | None = None
    payables: list[Payable] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    skipped: str | None = None

    @property
    def total(self) -> Decimal:
        return to_money(sum((p.total_amount for p in self.payables), ZERO))


class CalculatePayUseCase:
    """Replace a leg's unlocked SYSTEM payables with freshly derived ones.

    Locked rows and MANUAL rows are never touched. The same engine serves
    drivers and carrier partnerships; ``payee_type`` picks which resource on
    the leg is paid and which profiles apply.
    """

    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        rate_repo: RateRepository,
        payable_repo: PayableRepository,
        clock: Callable[[], int] = now_ms,
    ):
        self._loads = load_repo
        self._legs = leg_repo
        self._rates = rate_repo
        self._payables = payable_repo
        self._clock = clock

    async def execute(
        self, leg_id: int, payee_type: PayeeType, actor: Actor
    ) -> PayCalculation:
        """Recalculate and persist pay for one leg.

        Raises:
            EntityNotFoundError: if the leg or its load does not exist.
        """
        calc, leg = await self._calculate(leg_id, payee_type)
        if calc.skipped:
            logger.info("Leg %s: pay skipped (%s)", leg_id, calc.skipped)
            return calc

        await self.clear_replaceable(leg.id, payee_type)

        now = self._clock()
        saved = []
        for row in calc.payables:
            row.created_at = now
            row.updated_at = now
            row.created_by = actor.user_id
            saved.append(await self._payables.save(row))
        calc.payables = saved

        if payee_type == PayeeType.DRIVER and leg.sequence == 1:
            load = await self._loads.get_by_id(leg.load_id)
            if load is not None and load.primary_driver_id != leg.driver_id:
                load.primary_driver_id = leg.driver_id
                load.updated_at = now
                await self._loads.update(load)

        logger.info(
            "Leg %s: %s %s paid %s across %d line(s) (profile=%s)",
            leg_id, payee_type.value, calc.payee_id, calc.total,
            len(calc.payables), calc.profile_name,
        )
        if calc.warnings:
            logger.warning("Leg %s pay warnings: %s", leg_id, "; ".join(calc.warnings))
        return calc

    async def preview(self, leg_id: int, payee_type: PayeeType) -> PayCalculation:
        """Evaluate pay for a leg without writing anything."""
        calc, _ = await self._calculate(leg_id, payee_type)
        return calc

    async def recalculate_for_load(self, load_id: int, actor: Actor) -> list[PayCalculation]:
        """Recalculate every assigned, non-canceled leg of a load."""
        results = []
        for leg in await self._legs.get_by_load(load_id):
            if leg.status == LegStatus.CANCELED:
                continue
            if leg.driver_id is not None:
                results.append(await self.execute(leg.id, PayeeType.DRIVER, actor))
            elif leg.carrier_partnership_id is not None:
                results.append(await self.execute(leg.id, PayeeType.CARRIER, actor))
        return results

    async def clear_replaceable(self, leg_id: int, payee_type: PayeeType | None = None) -> int:
        """Delete the leg's unlocked SYSTEM rows (optionally of one payee type)."""
        stale = [
            p.id for p in await self._payables.get_by_leg(leg_id)
            if p.is_replaceable() and (payee_type is None or p.payee_type == payee_type)
        ]
        if stale:
            await self._payables.delete(stale)
        return len(stale)

    # ─── Internals ───────────────────────────────────────────────────

    async def _select(self, leg: DispatchLeg, payee_type: PayeeType, payee_id: int):
        assignments = await self._rates.get_assignments(payee_type, payee_id)
        profiles = {}
        for a in assignments:
            profile = await self._rates.get_profile(a.profile_id)
            if profile is not None:
                profiles[profile.id] = profile
        org_default = await self._rates.get_org_default(leg.org_id, payee_type)
        return select_profile(
            payee_type=payee_type,
            loaded_miles=to_decimal(leg.loaded_miles),
            assignments=assignments,
            profiles=profiles,
            org_default=org_default,
        )

    async def _calculate(
        self, leg_id: int, payee_type: PayeeType
    ) -> tuple[PayCalculation, DispatchLeg]:
        leg = await self._legs.get_by_id(leg_id)
        if leg is None:
            raise EntityNotFoundError("Leg", leg_id)

        payee_id = leg.payee_id(payee_type)
        calc = PayCalculation(leg_id=leg_id, payee_type=payee_type, payee_id=payee_id)
        if payee_id is None:
            calc.skipped = f"No {payee_type.value.lower()} assigned"
            return calc, leg

        load = await self._loads.get_by_id(leg.load_id)
        if load is None:
            raise EntityNotFoundError("Load", leg.load_id)

        selection: ProfileSelection | None = await self._select(leg, payee_type, payee_id)
        if selection is None:
            calc.warnings.append(NO_PROFILE_WARNING)
            return calc, leg

        calc.profile_id = selection.profile.id
        calc.profile_name = selection.profile.name
        calc.selection_reason = selection.reason

        stops = await self._loads.get_stops(load.id)
        sibling_legs = await self._legs.get_by_load(load.id)
        payee_sequences = [
            other.sequence for other in sibling_legs
            if other.status != LegStatus.CANCELED and other.payee_id(payee_type) == payee_id
        ]
        is_first = not payee_sequences or leg.sequence <= min(payee_sequences)

        facts = build_leg_facts(leg, load, stops, is_first_leg_for_payee=is_first)
        rules = await self._rates.get_rules(selection.profile.id)
        outcomes, warnings = evaluate_rules(rules, facts)
        calc.warnings.extend(warnings)

        for outcome in outcomes:
            calc.payables.append(
                Payable(
                    id=None,
                    org_id=leg.org_id,
                    payee_type=payee_type,
                    payee_id=payee_id,
                    description=outcome.rule.name,
                    quantity=outcome.quantity,
                    rate=to_decimal(outcome.rule.rate_amount),
                    total_amount=outcome.amount,
                    source_type=SourceType.SYSTEM,
                    load_id=leg.load_id,
                    leg_id=leg.id,
                    rule_id=outcome.rule.id,
                )
            )

        if not calc.payables and calc.warnings:
            calc.payables.append(
                Payable(
                    id=None,
                    org_id=leg.org_id,
                    payee_type=payee_type,
                    payee_id=payee_id,
                    description=f"{selection.profile.name} (No applicable charges)",
                    quantity=ZERO,
                    rate=ZERO,
                    total_amount=to_money(ZERO),
                    source_type=SourceType.SYSTEM,
                    load_id=leg.load_id,
                    leg_id=leg.id,
                    warning_message="; ".join(calc.warnings),
                )
            )
        return calc, leg
