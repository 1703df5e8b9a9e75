"""Resource deactivation cascade.

Deactivating a driver or carrier partnership releases its open legs,
disables its route assignments and clears its replaceable pay. Everything is
gathered first and mutated afterwards, inside the caller's transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from haulpay.application.ports.audit_log_port import AuditLogPort
from haulpay.application.ports.carrier_repo import CarrierRepository
from haulpay.application.ports.driver_repo import DriverRepository
from haulpay.application.ports.leg_repo import LegRepository
from haulpay.application.ports.load_repo import LoadRepository
from haulpay.application.ports.route_assignment_repo import RouteAssignmentRepository
from haulpay.application.use_cases.calculate_pay import CalculatePayUseCase
from haulpay.application.use_cases.dispatch_legs import sync_load_assignment_cache
from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.entities.route_assignment import RouteAssignment
from haulpay.domain.errors import EntityNotFoundError
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import EmploymentStatus, PartnershipStatus, PayeeType
from haulpay.domain.value_objects.time_range import now_ms

logger = logging.getLogger(__name__)


@dataclass
class DeactivationResult:
    legs_released: int
    loads_updated: int
    route_assignments_disabled: int


class DeactivateResourceUseCase:
    def __init__(
        self,
        driver_repo: DriverRepository,
        carrier_repo: CarrierRepository,
        leg_repo: LegRepository,
        load_repo: LoadRepository,
        route_repo: RouteAssignmentRepository,
        calculate_pay: CalculatePayUseCase,
        audit: AuditLogPort,
        clock: Callable[[], int] = now_ms,
    ):
        self._drivers = driver_repo
        self._carriers = carrier_repo
        self._legs = leg_repo
        self._loads = load_repo
        self._routes = route_repo
        self._pay = calculate_pay
        self._audit = audit
        self._clock = clock

    async def deactivate_driver(
        self, driver_id: int, actor: Actor, status: EmploymentStatus = EmploymentStatus.INACTIVE
    ) -> DeactivationResult:
        driver = await self._drivers.get_by_id(driver_id)
        if driver is None:
            raise EntityNotFoundError("Driver", driver_id)

        legs = [lg for lg in await self._legs.get_by_driver(driver.id) if lg.is_open()]
        routes = await self._routes.get_by_target(driver_id=driver.id)

        result = await self._release(legs, routes, PayeeType.DRIVER)
        driver.employment_status = status
        await self._drivers.update(driver)
        await self._log(
            driver.org_id, "driver", driver.id, driver.full_name, actor, result,
        )
        return result

    async def deactivate_carrier(
        self,
        partnership_id: int,
        actor: Actor,
        status: PartnershipStatus = PartnershipStatus.INACTIVE,
    ) -> DeactivationResult:
        partnership = await self._carriers.get_by_id(partnership_id)
        if partnership is None:
            raise EntityNotFoundError("Carrier partnership", partnership_id)

        legs = [lg for lg in await self._legs.get_by_carrier(partnership.id) if lg.is_open()]
        routes = await self._routes.get_by_target(carrier_partnership_id=partnership.id)

        result = await self._release(legs, routes, PayeeType.CARRIER)
        partnership.status = status
        await self._carriers.update(partnership)
        await self._log(
            partnership.org_id, "carrier_partnership", partnership.id,
            partnership.carrier_name, actor, result,
        )
        return result

    async def _release(
        self,
        legs: list[DispatchLeg],
        routes: list[RouteAssignment],
        payee_type: PayeeType,
    ) -> DeactivationResult:
        now = self._clock()
        for leg in legs:
            await self._pay.clear_replaceable(leg.id, payee_type)
            leg.clear_resources()
            leg.updated_at = now
            await self._legs.update(leg)

        load_ids = sorted({leg.load_id for leg in legs})
        for load_id in load_ids:
            load = await self._loads.get_by_id(load_id)
            if load is None:
                continue
            sync_load_assignment_cache(load, await self._legs.get_by_load(load_id))
            load.updated_at = now
            await self._loads.update(load)

        disabled = 0
        for route in routes:
            if route.is_active:
                route.is_active = False
                await self._routes.update(route)
                disabled += 1

        return DeactivationResult(
            legs_released=len(legs),
            loads_updated=len(load_ids),
            route_assignments_disabled=disabled,
        )

    async def _log(
        self, org_id: str, entity_type: str, entity_id: int, name: str,
        actor: Actor, result: DeactivationResult,
    ) -> None:
        await self._audit.log_action(
            org_id=org_id,
            entity_type=entity_type,
            entity_id=str(entity_id),
            entity_name=name,
            action="deactivated",
            performed_by=actor.user_id,
            performed_by_name=actor.user_name,
            description=(
                f"Deactivated {name}: released {result.legs_released} legs, "
                f"disabled {result.route_assignments_disabled} route assignments"
            ),
        )
        logger.info(
            "%s %s deactivated: %d legs released on %d loads",
            entity_type, entity_id, result.legs_released, result.loads_updated,
        )
