"""Auto-assignment — route loads to drivers/carriers by HCR and trip number."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from haulpay.application.ports.carrier_repo import CarrierRepository
from haulpay.application.ports.driver_repo import DriverRepository
from haulpay.application.ports.leg_repo import LegRepository
from haulpay.application.ports.load_repo import LoadRepository
from haulpay.application.ports.route_assignment_repo import RouteAssignmentRepository
from haulpay.application.use_cases.dispatch_legs import AssignCarrierUseCase, AssignDriverUseCase
from haulpay.domain.entities.route_assignment import AutoAssignmentSettings, RouteAssignment
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.domain.policies.interval_gate import should_run_interval
from haulpay.domain.policies.route_matching import match_route_assignment
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.assignment_result import AssignmentSuccess
from haulpay.domain.value_objects.enums import AutoAssignAction
from haulpay.domain.value_objects.time_range import now_ms

logger = logging.getLogger(__name__)


@dataclass
class AutoAssignOutcome:
    load_id: int
    action: AutoAssignAction
    message: str | None = None
    route_assignment_id: int | None = None
    driver_id: int | None = None
    carrier_partnership_id: int | None = None


@dataclass
class SweepResult:
    org_id: str
    assigned: int = 0
    skipped: int = 0
    errors: int = 0
    outcomes: list[AutoAssignOutcome] = field(default_factory=list)

    def record(self, outcome: AutoAssignOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.action in (AutoAssignAction.ASSIGNED_DRIVER, AutoAssignAction.ASSIGNED_CARRIER):
            self.assigned += 1
        elif outcome.action == AutoAssignAction.ERROR:
            self.errors += 1
        else:
            self.skipped += 1


class AutoAssignLoadUseCase:
    """Match one load against the route assignment table and assign it."""

    def __init__(
        self,
        load_repo: LoadRepository,
        leg_repo: LegRepository,
        driver_repo: DriverRepository,
        carrier_repo: CarrierRepository,
        route_repo: RouteAssignmentRepository,
        assign_driver: AssignDriverUseCase,
        assign_carrier: AssignCarrierUseCase,
        system_actor: Actor,
    ):
        self._loads = load_repo
        self._legs = leg_repo
        self._drivers = driver_repo
        self._carriers = carrier_repo
        self._routes = route_repo
        self._assign_driver = assign_driver
        self._assign_carrier = assign_carrier
        self._actor = system_actor

    async def execute(self, load_id: int) -> AutoAssignOutcome:
        try:
            return await self._execute(load_id)
        except Exception as e:
            logger.exception("Auto-assignment failed for load %s", load_id)
            return AutoAssignOutcome(load_id=load_id, action=AutoAssignAction.ERROR, message=str(e))

    async def on_load_created(self, load_id: int) -> AutoAssignOutcome | None:
        """Creation hook; does nothing unless the org enabled trigger-on-create."""
        load = await self._loads.get_by_id(load_id)
        if load is None:
            return None
        settings = await self._routes.get_settings(load.org_id)
        if settings is None or not settings.enabled or not settings.trigger_on_create:
            return None
        return await self.execute(load_id)

    async def _execute(self, load_id: int) -> AutoAssignOutcome:
        load = await self._loads.get_by_id(load_id)
        if load is None:
            return AutoAssignOutcome(load_id, AutoAssignAction.ERROR, "Load not found")

        legs = await self._legs.get_by_load(load.id)
        has_resource = any(
            leg.is_open() and (leg.driver_id is not None or leg.carrier_partnership_id is not None)
            for leg in legs
        )
        if load.is_assigned() or has_resource:
            return AutoAssignOutcome(load.id, AutoAssignAction.ALREADY_ASSIGNED)

        if not load.parsed_hcr:
            return AutoAssignOutcome(load.id, AutoAssignAction.NO_MATCH, "Load has no HCR")

        candidates = await self._routes.get_by_hcr(load.org_id, load.parsed_hcr)
        route = match_route_assignment(candidates, load.parsed_hcr, load.parsed_trip_number)
        if route is None:
            return AutoAssignOutcome(
                load.id, AutoAssignAction.NO_MATCH,
                f"No route assignment for HCR {load.parsed_hcr} trip {load.parsed_trip_number}",
            )

        if route.driver_id is not None:
            return await self._to_driver(load.id, route)
        if route.carrier_partnership_id is not None:
            return await self._to_carrier(load.id, route)
        return AutoAssignOutcome(
            load.id, AutoAssignAction.ERROR, "Route assignment has no target",
            route_assignment_id=route.id,
        )

    async def _to_driver(self, load_id: int, route: RouteAssignment) -> AutoAssignOutcome:
        driver = await self._drivers.get_by_id(route.driver_id)
        if driver is None or not driver.is_assignable():
            return AutoAssignOutcome(
                load_id, AutoAssignAction.DRIVER_INACTIVE,
                route_assignment_id=route.id, driver_id=route.driver_id,
            )
        result = await self._assign_driver.execute_internal(
            load_id, driver.id, self._actor, truck_id=driver.current_truck_id
        )
        if isinstance(result, AssignmentSuccess):
            logger.info("Load %s auto-assigned to driver %s via %s", load_id, driver.id, route.name)
            return AutoAssignOutcome(
                load_id, AutoAssignAction.ASSIGNED_DRIVER,
                route_assignment_id=route.id, driver_id=driver.id,
            )
        return AutoAssignOutcome(
            load_id, AutoAssignAction.ERROR, result.message,
            route_assignment_id=route.id, driver_id=driver.id,
        )

    async def _to_carrier(self, load_id: int, route: RouteAssignment) -> AutoAssignOutcome:
        partnership = await self._carriers.get_by_id(route.carrier_partnership_id)
        if partnership is None or not partnership.is_active():
            return AutoAssignOutcome(
                load_id, AutoAssignAction.CARRIER_INACTIVE,
                route_assignment_id=route.id,
                carrier_partnership_id=route.carrier_partnership_id,
            )
        result = await self._assign_carrier.execute_internal(load_id, partnership.id, self._actor)
        if isinstance(result, AssignmentSuccess):
            logger.info(
                "Load %s auto-assigned to carrier %s via %s", load_id, partnership.id, route.name
            )
            return AutoAssignOutcome(
                load_id, AutoAssignAction.ASSIGNED_CARRIER,
                route_assignment_id=route.id, carrier_partnership_id=partnership.id,
            )
        return AutoAssignOutcome(
            load_id, AutoAssignAction.ERROR, result.message,
            route_assignment_id=route.id, carrier_partnership_id=partnership.id,
        )


class AutoAssignPendingLoadsUseCase:
    """Sweep an organization's open HCR loads."""

    def __init__(self, load_repo: LoadRepository, auto_assign: AutoAssignLoadUseCase):
        self._loads = load_repo
        self._auto_assign = auto_assign

    async def execute(self, org_id: str) -> SweepResult:
        loads = await self._loads.get_open_with_hcr(org_id)
        logger.info("Auto-assignment sweep for %s: %d candidate loads", org_id, len(loads))
        result = SweepResult(org_id=org_id)
        for load in loads:
            result.record(await self._auto_assign.execute(load.id))
        logger.info(
            "Sweep %s complete: %d assigned, %d skipped, %d errors",
            org_id, result.assigned, result.skipped, result.errors,
        )
        return result


class RunScheduledAutoAssignmentUseCase:
    """Cron entry point: sweep every org whose schedule is due."""

    def __init__(
        self,
        route_repo: RouteAssignmentRepository,
        sweep: AutoAssignPendingLoadsUseCase,
        default_interval_minutes: int = 60,
        clock: Callable[[], int] = now_ms,
    ):
        self._routes = route_repo
        self._sweep = sweep
        self._default_interval = default_interval_minutes
        self._clock = clock

    async def execute(self, now: int | None = None) -> list[SweepResult]:
        now = now if now is not None else self._clock()
        results = []
        for settings in await self._routes.get_scheduled_settings():
            if not should_run_interval(
                now,
                settings.last_scheduled_run_at,
                settings.schedule_interval_minutes,
                self._default_interval,
            ):
                continue
            try:
                results.append(await self._sweep.execute(settings.org_id))
                settings.last_scheduled_run_at = now
                await self._routes.save_settings(settings)
            except Exception:
                logger.exception("Scheduled auto-assignment failed for org %s", settings.org_id)
        return results


class RouteAssignmentConfigUseCase:
    """Maintain route assignments and per-org auto-assignment settings."""

    def __init__(
        self,
        route_repo: RouteAssignmentRepository,
        driver_repo: DriverRepository,
        carrier_repo: CarrierRepository,
    ):
        self._routes = route_repo
        self._drivers = driver_repo
        self._carriers = carrier_repo

    async def create(
        self,
        org_id: str,
        hcr: str,
        name: str,
        actor: Actor,
        trip_number: str | None = None,
        driver_id: int | None = None,
        carrier_partnership_id: int | None = None,
        priority: int = 0,
        notes: str | None = None,
    ) -> RouteAssignment:
        """Raises BusinessRuleError unless exactly one target is given."""
        if not hcr or not hcr.strip():
            raise BusinessRuleError("HCR is required")
        if (driver_id is None) == (carrier_partnership_id is None):
            raise BusinessRuleError("Route assignment needs exactly one driver or carrier")
        if driver_id is not None and await self._drivers.get_by_id(driver_id) is None:
            raise EntityNotFoundError("Driver", driver_id)
        if (
            carrier_partnership_id is not None
            and await self._carriers.get_by_id(carrier_partnership_id) is None
        ):
            raise EntityNotFoundError("Carrier partnership", carrier_partnership_id)

        assignment = await self._routes.save(
            RouteAssignment(
                id=None,
                org_id=org_id,
                hcr=hcr.strip(),
                name=name,
                trip_number=trip_number.strip() if trip_number else None,
                driver_id=driver_id,
                carrier_partnership_id=carrier_partnership_id,
                priority=priority,
                notes=notes,
            )
        )
        logger.info("Route assignment %s (%s) created by %s", assignment.id, hcr, actor.user_id)
        return assignment

    async def set_active(self, assignment_id: int, is_active: bool) -> RouteAssignment:
        assignment = await self._routes.get_by_id(assignment_id)
        if assignment is None:
            raise EntityNotFoundError("Route assignment", assignment_id)
        assignment.is_active = is_active
        return await self._routes.update(assignment)

    async def list_for_org(self, org_id: str) -> list[RouteAssignment]:
        return await self._routes.get_by_org(org_id)

    async def get_settings(self, org_id: str) -> AutoAssignmentSettings:
        settings = await self._routes.get_settings(org_id)
        return settings or AutoAssignmentSettings(id=None, org_id=org_id)

    async def update_settings(self, org_id: str, **changes) -> AutoAssignmentSettings:
        settings = await self.get_settings(org_id)
        for key, value in changes.items():
            if value is None:
                continue
            if not hasattr(settings, key) or key in ("id", "org_id", "last_scheduled_run_at"):
                raise BusinessRuleError(f"Unknown setting {key}")
            setattr(settings, key, value)
        if settings.schedule_interval_minutes is not None and settings.schedule_interval_minutes < 0:
            raise BusinessRuleError("Schedule interval cannot be negative")
        return await self._routes.save_settings(settings)
