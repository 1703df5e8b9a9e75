"""Settlement use cases — generation, refresh, hold/release and the status workflow.

A settlement owns the payables whose ``settlement_id`` points at it. Gathering
only ever takes payables that are unassigned (or already members), so a
payable is never on two settlements. Deleting a settlement detaches its
members; it never deletes pay.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from haulpay.application.ports.audit_log_port import AuditLogPort
from haulpay.application.ports.carrier_repo import CarrierRepository
from haulpay.application.ports.driver_repo import DriverRepository
from haulpay.application.ports.leg_repo import LegRepository
from haulpay.application.ports.load_repo import LoadRepository
from haulpay.application.ports.pay_plan_repo import PayPlanRepository
from haulpay.application.ports.payable_repo import PayableRepository
from haulpay.application.ports.rate_repo import RateRepository
from haulpay.application.ports.settlement_repo import SettlementRepository
from haulpay.application.ports.unit_of_work import UnitOfWork
from haulpay.application.use_cases.payables import PayableLedgerUseCase
from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.entities.load import Load, LoadStop
from haulpay.domain.entities.payable import Payable
from haulpay.domain.entities.settlement import PayPlan, Settlement
from haulpay.domain.errors import (
    BusinessRuleError,
    EntityNotFoundError,
    HaulPayError,
    SettlementStateError,
)
from haulpay.domain.policies.pay_period import (
    calculate_period,
    cutoff_instant,
    is_within_cutoff,
    payable_trigger_timestamp,
)
from haulpay.domain.policies.settlement_workflow import (
    SettlementTotals,
    compute_totals,
    ensure_editable,
    ensure_transition,
    next_statement_number,
)
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import (
    PayableTrigger,
    PayeeType,
    SettlementStatus,
    TriggerEvent,
)
from haulpay.domain.value_objects.time_range import TimeRange, now_ms

logger = logging.getLogger(__name__)

MILEAGE_TRIGGERS = (TriggerEvent.MILE_LOADED, TriggerEvent.MILE_EMPTY)


@dataclass
class GenerationResult:
    settlement: Settlement
    added: int


@dataclass
class RefreshResult:
    settlement_id: int
    added: int
    removed: int


@dataclass
class SettlementDetails:
    settlement: Settlement
    payables: list[Payable]
    totals: SettlementTotals


@dataclass
class BatchFailure:
    item_id: int
    error: str
    item_type: str | None = None


@dataclass
class BatchResult:
    """Per-item outcome of a bulk operation. One failure never stops the batch."""

    succeeded: list[int] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


class PayableGatherer:
    """Decides which payables belong to a settlement period.

    Load data (legs, stops, hold flags) is cached per instance, so create
    one per operation.
    """

    def __init__(
        self,
        leg_repo: LegRepository,
        load_repo: LoadRepository,
        default_timezone: str = "UTC",
    ):
        self._legs = leg_repo
        self._loads = load_repo
        self._tz = default_timezone
        self._load_cache: dict[int, Load | None] = {}
        self._leg_cache: dict[int, DispatchLeg | None] = {}
        self._stop_cache: dict[int, list[LoadStop]] = {}

    async def _load(self, load_id: int) -> Load | None:
        if load_id not in self._load_cache:
            self._load_cache[load_id] = await self._loads.get_by_id(load_id)
        return self._load_cache[load_id]

    async def _leg(self, leg_id: int) -> DispatchLeg | None:
        if leg_id not in self._leg_cache:
            self._leg_cache[leg_id] = await self._legs.get_by_id(leg_id)
        return self._leg_cache[leg_id]

    async def _stops(self, load_id: int) -> list[LoadStop]:
        if load_id not in self._stop_cache:
            self._stop_cache[load_id] = await self._loads.get_stops(load_id)
        return self._stop_cache[load_id]

    async def qualifies(
        self,
        payable: Payable,
        period: TimeRange,
        plan: PayPlan | None,
        include_held: bool = False,
    ) -> bool:
        """Does ``payable`` fall into ``period`` under ``plan``'s rules?

        Without a plan the trigger is the delivery date and there is no
        cutoff or carry-over.
        """
        if payable.load_id is not None:
            load = await self._load(payable.load_id)
            if load is None:
                return False
            if load.is_held and not include_held:
                return False
        elif plan is not None and not plan.include_standalone_adjustments:
            return False

        trigger = plan.payable_trigger if plan else PayableTrigger.DELIVERY_DATE
        leg = await self._leg(payable.leg_id) if payable.leg_id is not None else None
        stops = await self._stops(payable.load_id) if payable.load_id is not None else []
        timestamp = payable_trigger_timestamp(payable, trigger, leg, stops)
        if timestamp is None:
            return False

        if period.contains(timestamp):
            if plan is None:
                return True
            return is_within_cutoff(timestamp, cutoff_instant(plan, period.end, self._tz))
        return plan is not None and plan.auto_carryover and timestamp < period.start


class GenerateSettlementUseCase:
    """Create DRAFT settlements and attach qualifying unassigned payables."""

    def __init__(
        self,
        settlement_repo: SettlementRepository,
        payable_repo: PayableRepository,
        leg_repo: LegRepository,
        load_repo: LoadRepository,
        pay_plan_repo: PayPlanRepository,
        driver_repo: DriverRepository,
        carrier_repo: CarrierRepository,
        audit: AuditLogPort,
        unit_of_work: UnitOfWork,
        clock: Callable[[], int] = now_ms,
        default_timezone: str = "UTC",
    ):
        self._settlements = settlement_repo
        self._payables = payable_repo
        self._legs = leg_repo
        self._loads = load_repo
        self._plans = pay_plan_repo
        self._drivers = driver_repo
        self._carriers = carrier_repo
        self._audit = audit
        self._uow = unit_of_work
        self._clock = clock
        self._tz = default_timezone

    async def _payee(self, payee_type: PayeeType, payee_id: int) -> tuple[str, int | None, str]:
        """(org id, pay plan id, display name) of a payee."""
        if payee_type == PayeeType.DRIVER:
            driver = await self._drivers.get_by_id(payee_id)
            if driver is None:
                raise EntityNotFoundError("Driver", payee_id)
            return driver.org_id, driver.pay_plan_id, driver.full_name
        partnership = await self._carriers.get_by_id(payee_id)
        if partnership is None:
            raise EntityNotFoundError("Carrier partnership", payee_id)
        return partnership.org_id, partnership.pay_plan_id, partnership.carrier_name

    async def execute(
        self,
        payee_type: PayeeType,
        payee_id: int,
        period_start: int,
        period_end: int,
        actor: Actor,
        pay_plan_id: int | None = None,
        include_held: bool = False,
        notes: str | None = None,
    ) -> GenerationResult:
        """Generate a settlement for an explicit ``[period_start, period_end)``.

        Raises:
            EntityNotFoundError: unknown payee or pay plan.
            BusinessRuleError: empty or inverted period.
        """
        plan = None
        if pay_plan_id is not None:
            plan = await self._plans.get_by_id(pay_plan_id)
            if plan is None:
                raise EntityNotFoundError("Pay plan", pay_plan_id)
        return await self._generate(
            payee_type, payee_id, period_start, period_end, actor,
            plan=plan, include_held=include_held, notes=notes,
        )

    async def execute_from_plan(
        self,
        payee_type: PayeeType,
        payee_id: int,
        actor: Actor,
        reference_ms: int | None = None,
        require_payables: bool = False,
    ) -> GenerationResult:
        """Generate the settlement for the payee's pay-plan period containing ``reference_ms``.

        Raises:
            BusinessRuleError: no (active) pay plan, a settlement already
                exists for the period, or ``require_payables`` and nothing
                qualifies.
        """
        _, plan_id, name = await self._payee(payee_type, payee_id)
        if plan_id is None:
            raise BusinessRuleError(f"{name} has no pay plan")
        plan = await self._plans.get_by_id(plan_id)
        if plan is None or not plan.is_active:
            raise BusinessRuleError(f"Pay plan for {name} is missing or inactive")

        period = calculate_period(plan, reference_ms or self._clock(), self._tz)
        for existing in await self._settlements.get_by_payee(payee_type, payee_id):
            if existing.status != SettlementStatus.VOID and existing.period_start == period.start:
                raise BusinessRuleError(
                    f"Settlement {existing.statement_number} already exists for this period"
                )
        return await self._generate(
            payee_type, payee_id, period.start, period.end, actor,
            plan=plan, period_number=period.period_number, require_payables=require_payables,
        )

    async def bulk_generate_by_plan(
        self,
        pay_plan_id: int,
        actor: Actor,
        reference_ms: int | None = None,
    ) -> BatchResult:
        """Generate the current period's settlement for every payee on a plan."""
        plan = await self._plans.get_by_id(pay_plan_id)
        if plan is None:
            raise EntityNotFoundError("Pay plan", pay_plan_id)

        payees: list[tuple[PayeeType, int]] = [
            (PayeeType.DRIVER, d.id)
            for d in await self._drivers.get_by_pay_plan(plan.id) if d.is_assignable()
        ]
        payees += [
            (PayeeType.CARRIER, c.id)
            for c in await self._carriers.get_by_pay_plan(plan.id) if c.is_active()
        ]
        logger.info("Bulk generating %d settlements for plan %s", len(payees), plan.name)

        result = BatchResult()
        for payee_type, payee_id in payees:
            try:
                async with self._uow.savepoint():
                    generated = await self.execute_from_plan(
                        payee_type, payee_id, actor, reference_ms, require_payables=True
                    )
                result.succeeded.append(generated.settlement.id)
            except HaulPayError as e:
                logger.info("Plan %s: skipped %s %s: %s", plan.id, payee_type.value, payee_id, e)
                result.failed.append(BatchFailure(payee_id, str(e), payee_type.value))
            except Exception as e:
                logger.exception("Plan %s: failed for %s %s", plan.id, payee_type.value, payee_id)
                result.failed.append(BatchFailure(payee_id, str(e), payee_type.value))

        logger.info(
            "Bulk generation complete: %d/%d created", result.success_count, len(payees)
        )
        return result

    async def _generate(
        self,
        payee_type: PayeeType,
        payee_id: int,
        period_start: int,
        period_end: int,
        actor: Actor,
        plan: PayPlan | None = None,
        period_number: int | None = None,
        include_held: bool = False,
        notes: str | None = None,
        require_payables: bool = False,
    ) -> GenerationResult:
        if period_end <= period_start:
            raise BusinessRuleError("Period end must be after period start")
        org_id, _, name = await self._payee(payee_type, payee_id)
        period = TimeRange(start=period_start, end=period_end)

        gatherer = PayableGatherer(self._legs, self._loads, self._tz)
        qualifying = [
            p for p in await self._payables.get_unassigned(payee_type, payee_id)
            if await gatherer.qualifies(p, period, plan, include_held)
        ]
        if require_payables and not qualifying:
            raise BusinessRuleError(f"No payables available for {name} in this period")

        now = self._clock()
        year = datetime.fromtimestamp(now / 1000, tz=timezone.utc).year
        number = next_statement_number(
            await self._settlements.get_statement_numbers(org_id, year), year
        )
        settlement = await self._settlements.save(
            Settlement(
                id=None,
                org_id=org_id,
                payee_type=payee_type,
                payee_id=payee_id,
                period_start=period_start,
                period_end=period_end,
                statement_number=number,
                pay_plan_id=plan.id if plan else None,
                pay_plan_name=plan.name if plan else None,
                period_number=period_number,
                notes=notes,
                created_at=now,
                updated_at=now,
                created_by=actor.user_id,
            )
        )
        for payable in qualifying:
            payable.settlement_id = settlement.id
            payable.updated_at = now
            await self._payables.update(payable)

        await self._audit.log_action(
            org_id=org_id,
            entity_type="settlement",
            entity_id=str(settlement.id),
            entity_name=settlement.statement_number,
            action="created",
            performed_by=actor.user_id,
            performed_by_name=actor.user_name,
            description=(
                f"Generated {settlement.statement_number} for {name} "
                f"with {len(qualifying)} payables"
            ),
        )
        logger.info(
            "Settlement %s generated for %s %s: %d payables",
            settlement.statement_number, payee_type.value, payee_id, len(qualifying),
        )
        return GenerationResult(settlement=settlement, added=len(qualifying))


class RefreshSettlementUseCase:
    """Re-run the gather for a DRAFT settlement. Idempotent."""

    def __init__(
        self,
        settlement_repo: SettlementRepository,
        payable_repo: PayableRepository,
        leg_repo: LegRepository,
        load_repo: LoadRepository,
        pay_plan_repo: PayPlanRepository,
        clock: Callable[[], int] = now_ms,
        default_timezone: str = "UTC",
    ):
        self._settlements = settlement_repo
        self._payables = payable_repo
        self._legs = leg_repo
        self._loads = load_repo
        self._plans = pay_plan_repo
        self._clock = clock
        self._tz = default_timezone

    async def execute(self, settlement_id: int, actor: Actor) -> RefreshResult:
        settlement = await self._settlements.get_by_id(settlement_id)
        if settlement is None:
            raise EntityNotFoundError("Settlement", settlement_id)
        ensure_editable(settlement.status)

        plan = None
        if settlement.pay_plan_id is not None:
            plan = await self._plans.get_by_id(settlement.pay_plan_id)
        period = TimeRange(start=settlement.period_start, end=settlement.period_end)
        gatherer = PayableGatherer(self._legs, self._loads, self._tz)
        now = self._clock()

        removed = 0
        for member in await self._payables.get_by_settlement(settlement.id):
            # Manual lines were put here on purpose and stay.
            if member.is_manual():
                continue
            if not await gatherer.qualifies(member, period, plan):
                member.settlement_id = None
                member.updated_at = now
                await self._payables.update(member)
                removed += 1

        added = 0
        for candidate in await self._payables.get_unassigned(
            settlement.payee_type, settlement.payee_id
        ):
            if await gatherer.qualifies(candidate, period, plan):
                candidate.settlement_id = settlement.id
                candidate.updated_at = now
                await self._payables.update(candidate)
                added += 1

        settlement.updated_at = now
        await self._settlements.update(settlement)
        logger.info(
            "Settlement %s refreshed by %s: +%d / -%d",
            settlement.statement_number, actor.user_id, added, removed,
        )
        return RefreshResult(settlement_id=settlement.id, added=added, removed=removed)


class LoadHoldUseCase:
    """Move a load's pay out of (and back into) the settlement workflow."""

    def __init__(
        self,
        load_repo: LoadRepository,
        payable_repo: PayableRepository,
        settlement_repo: SettlementRepository,
        audit: AuditLogPort,
        clock: Callable[[], int] = now_ms,
    ):
        self._loads = load_repo
        self._payables = payable_repo
        self._settlements = settlement_repo
        self._audit = audit
        self._clock = clock

    async def hold(self, load_id: int, reason: str, actor: Actor) -> int:
        """Detach the load's payables from DRAFT settlements and flag the load.

        Returns:
            Number of payables detached.

        Raises:
            SettlementStateError: pay for the load already sits on a
                settlement that is past DRAFT.
        """
        load = await self._loads.get_by_id(load_id)
        if load is None:
            raise EntityNotFoundError("Load", load_id)

        payables = await self._payables.get_by_load(load.id)
        for settlement_id in {p.settlement_id for p in payables if p.settlement_id}:
            settlement = await self._settlements.get_by_id(settlement_id)
            if settlement is not None and settlement.status != SettlementStatus.DRAFT:
                raise SettlementStateError(
                    f"Load pay is on {settlement.statement_number} "
                    f"({settlement.status.value}) and cannot be held"
                )

        now = self._clock()
        detached = 0
        for payable in payables:
            if payable.settlement_id is not None:
                payable.settlement_id = None
                payable.updated_at = now
                await self._payables.update(payable)
                detached += 1

        load.is_held = True
        load.held_reason = reason
        load.held_at = now
        load.held_by = actor.user_id
        load.updated_at = now
        await self._loads.update(load)
        await self._log(load, actor, "held", f"Held load {load.reference()}: {reason}")
        logger.info("Load %s held (%d payables detached)", load.id, detached)
        return detached

    async def release(self, load_id: int, actor: Actor, settlement_id: int | None = None) -> int:
        """Clear the hold; optionally attach the load's pay to a DRAFT settlement.

        Returns:
            Number of payables attached to ``settlement_id`` (0 without one).
        """
        load = await self._loads.get_by_id(load_id)
        if load is None:
            raise EntityNotFoundError("Load", load_id)

        settlement = None
        if settlement_id is not None:
            settlement = await self._settlements.get_by_id(settlement_id)
            if settlement is None:
                raise EntityNotFoundError("Settlement", settlement_id)
            ensure_editable(settlement.status)

        now = self._clock()
        load.is_held = False
        load.held_reason = None
        load.held_at = None
        load.held_by = None
        load.updated_at = now
        await self._loads.update(load)

        attached = 0
        if settlement is not None:
            for payable in await self._payables.get_by_load(load.id):
                if (
                    payable.settlement_id is None
                    and payable.payee_type == settlement.payee_type
                    and payable.payee_id == settlement.payee_id
                ):
                    payable.settlement_id = settlement.id
                    payable.updated_at = now
                    await self._payables.update(payable)
                    attached += 1

        await self._log(load, actor, "released", f"Released hold on load {load.reference()}")
        return attached

    async def _log(self, load: Load, actor: Actor, action: str, description: str) -> None:
        await self._audit.log_action(
            org_id=load.org_id,
            entity_type="load",
            entity_id=str(load.id),
            entity_name=load.reference(),
            action=action,
            performed_by=actor.user_id,
            performed_by_name=actor.user_name,
            description=description,
        )


class SettlementLifecycleUseCase:
    """Status workflow, adjustments and detail views of a single settlement."""

    def __init__(
        self,
        settlement_repo: SettlementRepository,
        payable_repo: PayableRepository,
        rate_repo: RateRepository,
        ledger: PayableLedgerUseCase,
        audit: AuditLogPort,
        clock: Callable[[], int] = now_ms,
    ):
        self._settlements = settlement_repo
        self._payables = payable_repo
        self._rates = rate_repo
        self._ledger = ledger
        self._audit = audit
        self._clock = clock

    async def _get(self, settlement_id: int) -> Settlement:
        settlement = await self._settlements.get_by_id(settlement_id)
        if settlement is None:
            raise EntityNotFoundError("Settlement", settlement_id)
        return settlement

    async def _mileage_rule_ids(self, payables: list[Payable]) -> set[int]:
        rule_ids = sorted({p.rule_id for p in payables if p.rule_id is not None})
        if not rule_ids:
            return set()
        rules = await self._rates.get_rules_by_ids(rule_ids)
        return {r.id for r in rules if r.trigger_event in MILEAGE_TRIGGERS}

    async def _transition(
        self, settlement: Settlement, target: SettlementStatus, actor: Actor, description: str
    ) -> Settlement:
        previous = settlement.status
        settlement.status = target
        settlement.updated_at = self._clock()
        settlement = await self._settlements.update(settlement)
        await self._audit.log_action(
            org_id=settlement.org_id,
            entity_type="settlement",
            entity_id=str(settlement.id),
            entity_name=settlement.statement_number,
            action=target.value.lower(),
            performed_by=actor.user_id,
            performed_by_name=actor.user_name,
            description=description,
            changes={"status": [previous.value, target.value]},
        )
        logger.info(
            "Settlement %s: %s -> %s", settlement.statement_number, previous.value, target.value
        )
        return settlement

    async def submit(self, settlement_id: int, actor: Actor) -> Settlement:
        settlement = await self._get(settlement_id)
        ensure_transition(settlement.status, SettlementStatus.PENDING)
        settlement.submitted_at = self._clock()
        settlement.submitted_by = actor.user_id
        return await self._transition(
            settlement, SettlementStatus.PENDING, actor,
            f"Submitted {settlement.statement_number} for approval",
        )

    async def reopen(self, settlement_id: int, actor: Actor) -> Settlement:
        settlement = await self._get(settlement_id)
        if settlement.status != SettlementStatus.PENDING:
            raise SettlementStateError("Only PENDING settlements can be reopened")
        return await self._transition(
            settlement, SettlementStatus.DRAFT, actor,
            f"Reopened {settlement.statement_number}",
        )

    async def approve(self, settlement_id: int, actor: Actor) -> Settlement:
        """Freeze totals and lock every member payable."""
        settlement = await self._get(settlement_id)
        ensure_transition(settlement.status, SettlementStatus.APPROVED)

        members = await self._payables.get_by_settlement(settlement.id)
        totals = compute_totals(members, await self._mileage_rule_ids(members))
        now = self._clock()
        settlement.gross_total = totals.gross_total
        settlement.total_miles = totals.total_miles
        settlement.total_loads = totals.total_loads
        settlement.total_manual_adjustments = totals.total_manual_adjustments
        settlement.approved_at = now
        settlement.approved_by = actor.user_id

        for payable in members:
            payable.is_locked = True
            payable.approved_at = now
            payable.updated_at = now
            await self._payables.update(payable)

        return await self._transition(
            settlement, SettlementStatus.APPROVED, actor,
            f"Approved {settlement.statement_number}: {totals.gross_total} "
            f"across {totals.payable_count} payables",
        )

    async def mark_paid(
        self,
        settlement_id: int,
        actor: Actor,
        payment_method: str,
        payment_reference: str | None = None,
    ) -> Settlement:
        settlement = await self._get(settlement_id)
        ensure_transition(settlement.status, SettlementStatus.PAID)
        if not payment_method or not payment_method.strip():
            raise BusinessRuleError("Payment method is required")
        settlement.paid_at = self._clock()
        settlement.paid_by = actor.user_id
        settlement.payment_method = payment_method.strip()
        settlement.payment_reference = payment_reference
        return await self._transition(
            settlement, SettlementStatus.PAID, actor,
            f"Marked {settlement.statement_number} paid via {settlement.payment_method}",
        )

    async def void(self, settlement_id: int, reason: str, actor: Actor) -> Settlement:
        if not reason or not reason.strip():
            raise BusinessRuleError("A void reason is required")
        settlement = await self._get(settlement_id)
        ensure_transition(settlement.status, SettlementStatus.VOID)
        settlement.voided_at = self._clock()
        settlement.voided_by = actor.user_id
        settlement.void_reason = reason.strip()
        return await self._transition(
            settlement, SettlementStatus.VOID, actor,
            f"Voided {settlement.statement_number}: {settlement.void_reason}",
        )

    async def delete(self, settlement_id: int, actor: Actor) -> int:
        """Delete a VOID settlement; its payables return to the unassigned pool.

        Returns:
            Number of payables detached.
        """
        settlement = await self._get(settlement_id)
        if settlement.status != SettlementStatus.VOID:
            raise SettlementStateError("Only VOID settlements can be deleted")
        detached = await self._payables.clear_settlement(settlement.id)
        await self._settlements.delete(settlement.id)
        await self._audit.log_action(
            org_id=settlement.org_id,
            entity_type="settlement",
            entity_id=str(settlement.id),
            entity_name=settlement.statement_number,
            action="deleted",
            performed_by=actor.user_id,
            performed_by_name=actor.user_name,
            description=(
                f"Deleted {settlement.statement_number}; {detached} payables returned to pool"
            ),
        )
        logger.info("Settlement %s deleted, %d payables detached", settlement.id, detached)
        return detached

    async def get_details(self, settlement_id: int) -> SettlementDetails:
        """Members plus totals: frozen once approved, live before that."""
        settlement = await self._get(settlement_id)
        members = await self._payables.get_by_settlement(settlement.id)
        if settlement.has_frozen_totals():
            totals = SettlementTotals(
                gross_total=settlement.gross_total,
                total_miles=settlement.total_miles,
                total_loads=settlement.total_loads,
                total_manual_adjustments=settlement.total_manual_adjustments,
                payable_count=len(members),
            )
        else:
            totals = compute_totals(members, await self._mileage_rule_ids(members))
        return SettlementDetails(settlement=settlement, payables=members, totals=totals)

    async def list_for_payee(self, payee_type: PayeeType, payee_id: int) -> list[Settlement]:
        return await self._settlements.get_by_payee(payee_type, payee_id)

    # ─── Adjustments (DRAFT only) ────────────────────────────────────

    async def add_adjustment(
        self,
        settlement_id: int,
        description: str,
        amount: Decimal,
        actor: Actor,
        quantity: Decimal = Decimal("1"),
        load_id: int | None = None,
        receipt_storage_key: str | None = None,
    ) -> Payable:
        """Add a manual line straight onto the settlement (negative for deductions)."""
        settlement = await self._get(settlement_id)
        ensure_editable(settlement.status)
        return await self._ledger.add_manual(
            org_id=settlement.org_id,
            payee_type=settlement.payee_type,
            payee_id=settlement.payee_id,
            description=description,
            quantity=quantity,
            rate=amount,
            actor=actor,
            load_id=load_id,
            settlement_id=settlement.id,
            receipt_storage_key=receipt_storage_key,
        )

    async def update_adjustment(
        self,
        payable_id: int,
        actor: Actor,
        description: str | None = None,
        quantity: Decimal | None = None,
        amount: Decimal | None = None,
    ) -> Payable:
        return await self._ledger.update_manual(
            payable_id, actor, description=description, quantity=quantity, rate=amount
        )

    async def delete_adjustment(self, payable_id: int, actor: Actor) -> None:
        await self._ledger.delete_manual(payable_id, actor)

    async def remove_payable(self, settlement_id: int, payable_id: int, actor: Actor) -> Payable:
        """Detach one payable; it goes back to the unassigned pool."""
        settlement = await self._get(settlement_id)
        ensure_editable(settlement.status)
        payable = await self._payables.get_by_id(payable_id)
        if payable is None or payable.settlement_id != settlement.id:
            raise EntityNotFoundError("Payable", payable_id)
        payable.settlement_id = None
        payable.updated_at = self._clock()
        payable = await self._payables.update(payable)
        logger.info(
            "Payable %s removed from %s by %s",
            payable.id, settlement.statement_number, actor.user_id,
        )
        return payable


class BulkSettlementUseCase:
    """Run one lifecycle operation over many settlements, each in its own savepoint."""

    def __init__(self, lifecycle: SettlementLifecycleUseCase, unit_of_work: UnitOfWork):
        self._lifecycle = lifecycle
        self._uow = unit_of_work

    async def _run(self, name: str, settlement_ids: list[int], operation) -> BatchResult:
        result = BatchResult()
        for settlement_id in settlement_ids:
            try:
                async with self._uow.savepoint():
                    await operation(settlement_id)
                result.succeeded.append(settlement_id)
            except HaulPayError as e:
                logger.warning("Bulk %s: settlement %s rejected: %s", name, settlement_id, e)
                result.failed.append(BatchFailure(settlement_id, str(e)))
            except Exception as e:
                logger.exception("Bulk %s: settlement %s failed", name, settlement_id)
                result.failed.append(BatchFailure(settlement_id, str(e)))
        logger.info(
            "Bulk %s complete: %d/%d succeeded",
            name, result.success_count, len(settlement_ids),
        )
        return result

    async def approve_many(self, settlement_ids: list[int], actor: Actor) -> BatchResult:
        return await self._run(
            "approve", settlement_ids, lambda sid: self._lifecycle.approve(sid, actor)
        )

    async def void_many(self, settlement_ids: list[int], reason: str, actor: Actor) -> BatchResult:
        return await self._run(
            "void", settlement_ids, lambda sid: self._lifecycle.void(sid, reason, actor)
        )

    async def delete_many(self, settlement_ids: list[int], actor: Actor) -> BatchResult:
        return await self._run(
            "delete", settlement_ids, lambda sid: self._lifecycle.delete(sid, actor)
        )
