"""Dispatch-leg use cases — conflict-aware driver/carrier assignment.

Every assignment-like operation returns an AssignmentResult instead of
raising for business-rule outcomes, writes one audit entry, and triggers
pay recalculation for the legs it touched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

from haulpay.application.ports.audit_log_port import AuditLogPort
from haulpay.application.ports.carrier_repo import CarrierRepository
from haulpay.application.ports.driver_repo import DriverRepository
from haulpay.application.ports.leg_repo import LegRepository
from haulpay.application.ports.load_repo import LoadRepository
from haulpay.application.ports.payable_repo import PayableRepository
from haulpay.application.ports.settlement_repo import SettlementRepository
from haulpay.application.use_cases.calculate_pay import CalculatePayUseCase
from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.entities.driver import Driver, Truck
from haulpay.domain.entities.load import Load, LoadStop
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.domain.policies.conflict_detection import (
    ScheduledLeg,
    find_conflicting_leg,
    is_available,
)
from haulpay.domain.policies.leg_split import MileageSplitStrategy, ProportionalStopCountSplit
from haulpay.domain.policies.leg_status import can_transition_leg
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.assignment_result import (
    AssignmentConflict,
    AssignmentError,
    AssignmentResult,
    AssignmentSuccess,
)
from haulpay.domain.value_objects.enums import (
    LegStatus,
    LoadStatus,
    PayeeType,
    SettlementStatus,
)
from haulpay.domain.value_objects.money import to_decimal
from haulpay.domain.value_objects.time_range import TimeRange, get_leg_time_range, now_ms

logger = logging.getLogger(__name__)


def sync_load_assignment_cache(load: Load, legs: list[DispatchLeg]) -> None:
    """Re-derive the load's primary driver/carrier from its open legs.

    A load left with no resource at all falls back from Assigned to Open.
    """
    open_legs = sorted((lg for lg in legs if lg.is_open()), key=lambda lg: lg.sequence)
    load.primary_driver_id = next(
        (lg.driver_id for lg in open_legs if lg.driver_id is not None), None
    )
    load.primary_carrier_partnership_id = next(
        (lg.carrier_partnership_id for lg in open_legs if lg.carrier_partnership_id is not None),
        None,
    )
    if not load.is_assigned() and load.status == LoadStatus.ASSIGNED:
        load.status = LoadStatus.OPEN


class _LegWorkflow:
    """Shared plumbing for the leg use cases."""

    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        payable_repo: PayableRepository,
        audit: AuditLogPort,
        calculate_pay: CalculatePayUseCase,
        clock: Callable[[], int] = now_ms,
    ):
        self._loads = load_repo
        self._legs = leg_repo
        self._payables = payable_repo
        self._audit = audit
        self._pay = calculate_pay
        self._clock = clock

    async def _open_legs_or_synthesize(
        self, load: Load, stops: list[LoadStop]
    ) -> list[DispatchLeg] | str:
        """Open legs of the load; a load without legs gets an unsaved leg 1.

        Returns an error message instead when there is nothing to assign.
        """
        legs = await self._legs.get_by_load(load.id)
        if not legs:
            if len(stops) < 2:
                return "Load needs at least two stops before it can be assigned"
            return [
                DispatchLeg(
                    id=None,
                    load_id=load.id,
                    org_id=load.org_id,
                    sequence=1,
                    start_stop_id=stops[0].id,
                    end_stop_id=stops[-1].id,
                    loaded_miles=to_decimal(load.effective_miles),
                    created_at=self._clock(),
                )
            ]
        open_legs = [lg for lg in legs if lg.is_open()]
        if not open_legs:
            return "Load has no pending or active legs to assign"
        return open_legs

    async def _clear_leg_pay(self, legs: list[DispatchLeg]) -> None:
        for leg in legs:
            if leg.id is not None:
                await self._pay.clear_replaceable(leg.id)

    async def _persist(self, leg: DispatchLeg) -> DispatchLeg:
        leg.updated_at = self._clock()
        if leg.id is None:
            return await self._legs.save(leg)
        return await self._legs.update(leg)

    async def _log(
        self, load: Load, actor: Actor, action: str, description: str, changes: dict | None = None
    ) -> None:
        await self._audit.log_action(
            org_id=load.org_id,
            entity_type="load",
            entity_id=str(load.id),
            entity_name=load.reference(),
            action=action,
            performed_by=actor.user_id,
            performed_by_name=actor.user_name,
            description=description,
            changes=changes,
        )


class AssignDriverUseCase(_LegWorkflow):
    """Assign a driver (and optionally truck/trailer) to every open leg of a load."""

    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        driver_repo: DriverRepository,
        payable_repo: PayableRepository,
        audit: AuditLogPort,
        calculate_pay: CalculatePayUseCase,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(load_repo, leg_repo, payable_repo, audit, calculate_pay, clock)
        self._drivers = driver_repo

    async def execute(
        self,
        load_id: int,
        driver_id: int,
        actor: Actor,
        truck_id: int | None = None,
        trailer_id: int | None = None,
        force: bool = False,
    ) -> AssignmentResult:
        """Assign with conflict detection; ``force`` skips the overlap check."""
        return await self._assign(
            load_id, driver_id, actor, truck_id, trailer_id, check_conflicts=not force
        )

    async def execute_internal(
        self,
        load_id: int,
        driver_id: int,
        actor: Actor,
        truck_id: int | None = None,
        trailer_id: int | None = None,
    ) -> AssignmentResult:
        """System-initiated assignment (auto-assignment); never checks conflicts."""
        return await self._assign(
            load_id, driver_id, actor, truck_id, trailer_id, check_conflicts=False
        )

    async def _assign(
        self,
        load_id: int,
        driver_id: int,
        actor: Actor,
        truck_id: int | None,
        trailer_id: int | None,
        check_conflicts: bool,
    ) -> AssignmentResult:
        driver = await self._drivers.get_by_id(driver_id)
        if driver is None or not driver.is_assignable():
            return AssignmentError("Driver not found or not active")

        load = await self._loads.get_by_id(load_id)
        if load is None:
            return AssignmentError("Load not found")
        if load.is_canceled():
            return AssignmentError("Cannot assign a canceled load")

        stops = await self._loads.get_stops(load.id)
        legs = await self._open_legs_or_synthesize(load, stops)
        if isinstance(legs, str):
            return AssignmentError(legs)

        if check_conflicts:
            conflict = await self._find_conflict(driver, load, legs, stops)
            if conflict is not None:
                return conflict

        await self._clear_leg_pay(legs)

        saved = []
        for leg in legs:
            leg.assign_driver(driver.id, truck_id, trailer_id)
            saved.append(await self._persist(leg))

        load.primary_driver_id = driver.id
        load.primary_carrier_partnership_id = None
        if load.status == LoadStatus.OPEN:
            load.status = LoadStatus.ASSIGNED
        load.updated_at = self._clock()
        await self._loads.update(load)

        await self._log(
            load, actor, "assigned_driver",
            f"Assigned driver {driver.full_name} to load {load.reference()} "
            f"({len(saved)} legs updated)",
            {"driver_id": driver.id, "truck_id": truck_id, "trailer_id": trailer_id},
        )
        logger.info("Load %s: driver %s assigned to %d leg(s)", load.id, driver.id, len(saved))

        for leg in saved:
            await self._pay.execute(leg.id, PayeeType.DRIVER, actor)
        return AssignmentSuccess(leg_ids=tuple(lg.id for lg in saved))

    async def _find_conflict(
        self,
        driver: Driver,
        load: Load,
        legs: list[DispatchLeg],
        stops: list[LoadStop],
    ) -> AssignmentConflict | None:
        candidate_ranges = [get_leg_time_range(leg, stops) for leg in legs]
        if not any(candidate_ranges):
            return None

        stop_cache: dict[int, list[LoadStop]] = {load.id: stops}
        busy = []
        for other in await self._legs.get_by_driver(driver.id):
            if other.load_id == load.id or not other.is_open():
                continue
            if other.load_id not in stop_cache:
                stop_cache[other.load_id] = await self._loads.get_stops(other.load_id)
            busy.append(ScheduledLeg(other, get_leg_time_range(other, stop_cache[other.load_id])))

        hit = find_conflicting_leg(candidate_ranges, busy, load.id)
        if hit is None:
            return None
        other_load = await self._loads.get_by_id(hit.load_id)
        order_number = other_load.reference() if other_load else None
        logger.info(
            "Load %s: driver %s conflicts with load %s", load.id, driver.id, hit.load_id
        )
        return AssignmentConflict(
            conflicting_load_id=hit.load_id,
            conflicting_order_number=order_number,
            message=(
                f"{driver.full_name} is already booked on load {order_number or hit.load_id} "
                "during this time window"
            ),
        )


class AssignCarrierUseCase(_LegWorkflow):
    """Assign a carrier partnership to every open leg of a load.

    Carriers manage their own capacity, so no conflict detection is done.
    Power-only moves keep the broker's trailer: pass it as ``trailer_id``.
    """

    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        carrier_repo: CarrierRepository,
        payable_repo: PayableRepository,
        audit: AuditLogPort,
        calculate_pay: CalculatePayUseCase,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(load_repo, leg_repo, payable_repo, audit, calculate_pay, clock)
        self._carriers = carrier_repo

    async def execute(
        self,
        load_id: int,
        partnership_id: int,
        actor: Actor,
        trailer_id: int | None = None,
    ) -> AssignmentResult:
        partnership = await self._carriers.get_by_id(partnership_id)
        if partnership is None or not partnership.is_active():
            return AssignmentError("Carrier partnership not found or not active")

        load = await self._loads.get_by_id(load_id)
        if load is None:
            return AssignmentError("Load not found")
        if load.is_canceled():
            return AssignmentError("Cannot assign a canceled load")

        stops = await self._loads.get_stops(load.id)
        legs = await self._open_legs_or_synthesize(load, stops)
        if isinstance(legs, str):
            return AssignmentError(legs)

        await self._clear_leg_pay(legs)

        saved = []
        for leg in legs:
            leg.assign_carrier(partnership.id, trailer_id)
            saved.append(await self._persist(leg))

        load.primary_carrier_partnership_id = partnership.id
        load.primary_driver_id = None
        if load.status == LoadStatus.OPEN:
            load.status = LoadStatus.ASSIGNED
        load.updated_at = self._clock()
        await self._loads.update(load)

        await self._log(
            load, actor, "assigned_carrier",
            f"Assigned carrier {partnership.carrier_name} to load {load.reference()} "
            f"({len(saved)} legs updated)",
            {"carrier_partnership_id": partnership.id, "trailer_id": trailer_id},
        )
        logger.info(
            "Load %s: carrier %s assigned to %d leg(s)", load.id, partnership.id, len(saved)
        )

        for leg in saved:
            await self._pay.execute(leg.id, PayeeType.CARRIER, actor)
        return AssignmentSuccess(leg_ids=tuple(lg.id for lg in saved))

    async def execute_internal(
        self,
        load_id: int,
        partnership_id: int,
        actor: Actor,
        trailer_id: int | None = None,
    ) -> AssignmentResult:
        return await self.execute(load_id, partnership_id, actor, trailer_id)


class UnassignResourceUseCase(_LegWorkflow):
    """Strip driver, carrier, truck and trailer from a load's open legs."""

    async def execute(self, load_id: int, actor: Actor) -> AssignmentResult:
        load = await self._loads.get_by_id(load_id)
        if load is None:
            return AssignmentError("Load not found")

        legs = await self._legs.get_by_load(load.id)
        cleared = []
        for leg in legs:
            if not leg.is_open():
                continue
            had_resource = leg.driver_id is not None or leg.carrier_partnership_id is not None
            await self._pay.clear_replaceable(leg.id)
            if had_resource or leg.truck_id is not None or leg.trailer_id is not None:
                leg.clear_resources()
                await self._persist(leg)
                cleared.append(leg.id)

        load.primary_driver_id = None
        load.primary_carrier_partnership_id = None
        if load.status == LoadStatus.ASSIGNED:
            load.status = LoadStatus.OPEN
        load.updated_at = self._clock()
        await self._loads.update(load)

        await self._log(
            load, actor, "unassigned",
            f"Unassigned resources from load {load.reference()} ({len(cleared)} legs updated)",
        )
        return AssignmentSuccess(leg_ids=tuple(cleared))


class SplitLoadUseCase(_LegWorkflow):
    """Split a single-leg load at an intermediate stop and hand leg 2 to a new driver."""

    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        driver_repo: DriverRepository,
        payable_repo: PayableRepository,
        audit: AuditLogPort,
        calculate_pay: CalculatePayUseCase,
        split_strategy: MileageSplitStrategy | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(load_repo, leg_repo, payable_repo, audit, calculate_pay, clock)
        self._drivers = driver_repo
        self._strategy = split_strategy or ProportionalStopCountSplit()

    async def execute(
        self,
        load_id: int,
        split_stop_id: int,
        new_driver_id: int,
        actor: Actor,
        new_truck_id: int | None = None,
        new_trailer_id: int | None = None,
    ) -> AssignmentResult:
        load = await self._loads.get_by_id(load_id)
        if load is None:
            return AssignmentError("Load not found")

        stops = await self._loads.get_stops(load.id)
        index = next((i for i, s in enumerate(stops) if s.id == split_stop_id), None)
        if index is None:
            return AssignmentError("Split stop not found on this load")
        if index == 0 or index == len(stops) - 1:
            return AssignmentError("Cannot split at the first or last stop")

        legs = await self._legs.get_by_load(load.id)
        first = next((lg for lg in legs if lg.sequence == 1), None)
        if first is None:
            return AssignmentError("Load has no leg to split")
        if len(legs) > 1:
            return AssignmentError("Load is already split")
        if not first.is_open():
            return AssignmentError("Only pending or active legs can be split")

        driver = await self._drivers.get_by_id(new_driver_id)
        if driver is None or not driver.is_assignable():
            return AssignmentError("Driver not found or not active")

        miles_a, miles_b = self._strategy.split(
            to_decimal(load.effective_miles), index, len(stops)
        )

        await self._pay.clear_replaceable(first.id)
        first.end_stop_id = split_stop_id
        first.loaded_miles = miles_a
        first = await self._persist(first)

        second = await self._persist(
            DispatchLeg(
                id=None,
                load_id=load.id,
                org_id=load.org_id,
                sequence=2,
                start_stop_id=split_stop_id,
                end_stop_id=stops[-1].id,
                loaded_miles=miles_b,
                driver_id=driver.id,
                truck_id=new_truck_id,
                trailer_id=new_trailer_id,
                created_at=self._clock(),
            )
        )

        await self._log(
            load, actor, "split",
            f"Split load {load.reference()} at {stops[index].label()}; "
            f"leg 2 assigned to {driver.full_name}",
            {"leg_a_miles": str(miles_a), "leg_b_miles": str(miles_b)},
        )
        logger.info(
            "Load %s split at stop %s: %s / %s miles", load.id, split_stop_id, miles_a, miles_b
        )

        if first.driver_id is not None:
            await self._pay.execute(first.id, PayeeType.DRIVER, actor)
        elif first.carrier_partnership_id is not None:
            await self._pay.execute(first.id, PayeeType.CARRIER, actor)
        await self._pay.execute(second.id, PayeeType.DRIVER, actor)
        return AssignmentSuccess(leg_ids=(first.id, second.id))


class RemoveDriverUseCase(_LegWorkflow):
    """Remove the driver from one leg and delete the driver pay tied to it."""

    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        payable_repo: PayableRepository,
        settlement_repo: SettlementRepository,
        audit: AuditLogPort,
        calculate_pay: CalculatePayUseCase,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(load_repo, leg_repo, payable_repo, audit, calculate_pay, clock)
        self._settlements = settlement_repo

    async def execute(self, leg_id: int, actor: Actor) -> AssignmentResult:
        """Raises EntityNotFoundError if the leg does not exist."""
        leg = await self._legs.get_by_id(leg_id)
        if leg is None:
            raise EntityNotFoundError("Leg", leg_id)
        if leg.driver_id is None:
            return AssignmentError("Leg has no driver assigned")

        driver_rows = [
            p for p in await self._payables.get_by_leg(leg.id)
            if p.payee_type == PayeeType.DRIVER
        ]
        for settlement_id in {p.settlement_id for p in driver_rows if p.settlement_id}:
            settlement = await self._settlements.get_by_id(settlement_id)
            if settlement is not None and settlement.status != SettlementStatus.DRAFT:
                return AssignmentError(
                    f"Pay for this leg is on settlement {settlement.statement_number} "
                    f"({settlement.status.value})"
                )

        removed_driver = leg.driver_id
        if driver_rows:
            await self._payables.delete([p.id for p in driver_rows])
        leg.driver_id = None
        leg.truck_id = None
        await self._persist(leg)

        load = await self._loads.get_by_id(leg.load_id)
        if load is None:
            raise EntityNotFoundError("Load", leg.load_id)
        if load.primary_driver_id == removed_driver:
            sync_load_assignment_cache(load, await self._legs.get_by_load(load.id))
            load.updated_at = self._clock()
            await self._loads.update(load)

        await self._log(
            load, actor, "removed_driver",
            f"Removed driver from leg {leg.sequence} of load {load.reference()} "
            f"({len(driver_rows)} payables deleted)",
            {"leg_id": leg.id, "driver_id": removed_driver},
        )
        return AssignmentSuccess(leg_ids=(leg.id,))


class CreateLegUseCase(_LegWorkflow):
    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        driver_repo: DriverRepository,
        payable_repo: PayableRepository,
        audit: AuditLogPort,
        calculate_pay: CalculatePayUseCase,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(load_repo, leg_repo, payable_repo, audit, calculate_pay, clock)
        self._drivers = driver_repo

    async def execute(
        self,
        load_id: int,
        start_stop_id: int,
        end_stop_id: int,
        loaded_miles: Decimal,
        actor: Actor,
        empty_miles: Decimal = Decimal("0"),
        driver_id: int | None = None,
    ) -> DispatchLeg:
        """Append a leg to a load; the new leg's sequence follows the last one.

        Raises:
            EntityNotFoundError: unknown load, stop or driver.
            BusinessRuleError: stops out of order or overlapping the previous leg.
        """
        load = await self._loads.get_by_id(load_id)
        if load is None:
            raise EntityNotFoundError("Load", load_id)
        stops = {s.id: s for s in await self._loads.get_stops(load.id)}
        start, end = stops.get(start_stop_id), stops.get(end_stop_id)
        if start is None:
            raise EntityNotFoundError("Stop", start_stop_id)
        if end is None:
            raise EntityNotFoundError("Stop", end_stop_id)
        if start.sequence_number >= end.sequence_number:
            raise BusinessRuleError("Leg start stop must come before its end stop")

        legs = await self._legs.get_by_load(load.id)
        if legs:
            last = max(legs, key=lambda lg: lg.sequence)
            last_end = stops.get(last.end_stop_id)
            if last_end is not None and start.sequence_number < last_end.sequence_number:
                raise BusinessRuleError("Leg would overlap the previous leg's stops")

        if driver_id is not None:
            driver = await self._drivers.get_by_id(driver_id)
            if driver is None:
                raise EntityNotFoundError("Driver", driver_id)
            if not driver.is_assignable():
                raise BusinessRuleError("Driver is not active")

        leg = await self._persist(
            DispatchLeg(
                id=None,
                load_id=load.id,
                org_id=load.org_id,
                sequence=max((lg.sequence for lg in legs), default=0) + 1,
                start_stop_id=start_stop_id,
                end_stop_id=end_stop_id,
                loaded_miles=to_decimal(loaded_miles),
                empty_miles=to_decimal(empty_miles),
                driver_id=driver_id,
                created_at=self._clock(),
            )
        )
        await self._log(
            load, actor, "created_leg",
            f"Created leg {leg.sequence} on load {load.reference()}",
            {"leg_id": leg.id},
        )
        if driver_id is not None:
            await self._pay.execute(leg.id, PayeeType.DRIVER, actor)
        return leg


class UpdateLegUseCase(_LegWorkflow):
    """Status transitions and mileage corrections on a single leg."""

    async def update_status(
        self, leg_id: int, status: LegStatus, actor: Actor
    ) -> AssignmentResult:
        leg = await self._legs.get_by_id(leg_id)
        if leg is None:
            return AssignmentError("Leg not found")
        if leg.status == status:
            return AssignmentSuccess(leg_ids=(leg.id,))
        if not can_transition_leg(leg.status, status):
            return AssignmentError(
                f"Cannot move leg from {leg.status.value} to {status.value}"
            )

        previous = leg.status
        leg.status = status
        if status == LegStatus.COMPLETED:
            leg.completed_at = self._clock()
        await self._persist(leg)

        load = await self._loads.get_by_id(leg.load_id)
        if load is not None:
            await self._log(
                load, actor, "leg_status",
                f"Leg {leg.sequence} of load {load.reference()}: "
                f"{previous.value} -> {status.value}",
                {"leg_id": leg.id},
            )
        return AssignmentSuccess(leg_ids=(leg.id,))

    async def update_miles(
        self,
        leg_id: int,
        actor: Actor,
        loaded_miles: Decimal | None = None,
        empty_miles: Decimal | None = None,
    ) -> DispatchLeg:
        """Correct a leg's miles and recalculate pay for whoever is on it.

        Raises:
            EntityNotFoundError: unknown leg.
            BusinessRuleError: the leg is completed or canceled.
        """
        leg = await self._legs.get_by_id(leg_id)
        if leg is None:
            raise EntityNotFoundError("Leg", leg_id)
        if not leg.is_open():
            raise BusinessRuleError("Only pending or active legs can be edited")
        if loaded_miles is not None:
            leg.loaded_miles = to_decimal(loaded_miles)
        if empty_miles is not None:
            leg.empty_miles = to_decimal(empty_miles)
        leg = await self._persist(leg)

        if leg.driver_id is not None:
            await self._pay.execute(leg.id, PayeeType.DRIVER, actor)
        elif leg.carrier_partnership_id is not None:
            await self._pay.execute(leg.id, PayeeType.CARRIER, actor)
        return leg


# ─── Read models ─────────────────────────────────────────────────────


@dataclass
class AvailableDriver:
    driver: Driver
    truck: Truck | None


@dataclass
class ScheduleEntry:
    leg: DispatchLeg
    load: Load | None
    time_range: TimeRange | None


class DriverAvailabilityUseCase:
    """Availability search and per-driver schedules."""

    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        driver_repo: DriverRepository,
    ):
        self._loads = load_repo
        self._legs = leg_repo
        self._drivers = driver_repo

    async def _scheduled(
        self, legs: list[DispatchLeg], stop_cache: dict[int, list[LoadStop]]
    ) -> list[ScheduledLeg]:
        result = []
        for leg in legs:
            if leg.load_id not in stop_cache:
                stop_cache[leg.load_id] = await self._loads.get_stops(leg.load_id)
            result.append(ScheduledLeg(leg, get_leg_time_range(leg, stop_cache[leg.load_id])))
        return result

    async def available_drivers(
        self,
        org_id: str,
        start_ms: int,
        end_ms: int,
        exclude_load_id: int | None = None,
    ) -> list[AvailableDriver]:
        """Active drivers with no overlapping open leg.

        Legs whose times cannot be parsed never make a driver busy.
        """
        window = TimeRange(start=start_ms, end=end_ms)
        stop_cache: dict[int, list[LoadStop]] = {}
        available = []
        for driver in await self._drivers.get_by_org(org_id):
            if not driver.is_assignable():
                continue
            legs = await self._legs.get_by_driver(driver.id)
            busy = await self._scheduled([lg for lg in legs if lg.is_open()], stop_cache)
            if not is_available(window, busy, exclude_load_id):
                continue

            truck_id = driver.current_truck_id
            if truck_id is None:
                with_truck = [lg for lg in legs if lg.truck_id is not None]
                if with_truck:
                    latest = max(with_truck, key=lambda lg: (lg.created_at or 0, lg.id or 0))
                    truck_id = latest.truck_id
            truck = await self._drivers.get_truck(truck_id) if truck_id is not None else None
            available.append(AvailableDriver(driver=driver, truck=truck))
        return available

    async def driver_schedule(
        self,
        driver_id: int,
        start_ms: int | None = None,
        end_ms: int | None = None,
    ) -> list[ScheduleEntry]:
        """The driver's legs with resolved times, earliest first.

        With a window, only legs overlapping it are returned; legs with
        unknown times are listed last and only when no window is given.
        """
        legs = await self._legs.get_by_driver(driver_id)
        scheduled = await self._scheduled(legs, {})
        window = None
        if start_ms is not None and end_ms is not None:
            window = TimeRange(start=start_ms, end=end_ms)

        entries = []
        load_cache: dict[int, Load | None] = {}
        for item in scheduled:
            if window is not None:
                if item.time_range is None or not item.time_range.overlaps(window):
                    continue
            if item.leg.load_id not in load_cache:
                load_cache[item.leg.load_id] = await self._loads.get_by_id(item.leg.load_id)
            entries.append(
                ScheduleEntry(
                    leg=item.leg,
                    load=load_cache[item.leg.load_id],
                    time_range=item.time_range,
                )
            )
        entries.sort(
            key=lambda e: (e.time_range is None, e.time_range.start if e.time_range else 0)
        )
        return entries
