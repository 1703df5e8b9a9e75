"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from haulpay.adapters.persistence.database import get_session
from haulpay.adapters.persistence.repositories import (
    SqlAuditLog,
    SqlCarrierRepository,
    SqlDriverRepository,
    SqlLegRepository,
    SqlLoadRepository,
    SqlPayableRepository,
    SqlPayPlanRepository,
    SqlRateRepository,
    SqlRouteAssignmentRepository,
    SqlSettlementRepository,
    SqlUnitOfWork,
)
from haulpay.application.use_cases.auto_assignment import (
    AutoAssignLoadUseCase,
    AutoAssignPendingLoadsUseCase,
    RouteAssignmentConfigUseCase,
)
from haulpay.application.use_cases.calculate_pay import CalculatePayUseCase
from haulpay.application.use_cases.deactivation import DeactivateResourceUseCase
from haulpay.application.use_cases.dispatch_legs import (
    AssignCarrierUseCase,
    AssignDriverUseCase,
    CreateLegUseCase,
    DriverAvailabilityUseCase,
    RemoveDriverUseCase,
    SplitLoadUseCase,
    UnassignResourceUseCase,
    UpdateLegUseCase,
)
from haulpay.application.use_cases.pay_plans import PayPlanUseCase
from haulpay.application.use_cases.payables import PayableLedgerUseCase
from haulpay.application.use_cases.rate_profiles import RateConfigurationUseCase
from haulpay.application.use_cases.settlements import (
    BulkSettlementUseCase,
    GenerateSettlementUseCase,
    LoadHoldUseCase,
    RefreshSettlementUseCase,
    SettlementLifecycleUseCase,
)
from haulpay.config import settings
from haulpay.domain.value_objects.actor import Actor

# Re-export session dependency
get_db_session = get_session


def get_actor(
    x_user_id: str = Header(...),
    x_user_name: str | None = Header(default=None),
) -> Actor:
    return Actor(user_id=x_user_id, user_name=x_user_name)


def get_org_id(x_org_id: str = Header(...)) -> str:
    return x_org_id


def system_actor() -> Actor:
    return Actor(user_id=settings.system_user_id, user_name="Auto-assignment")


# ─── Builders (shared with the CLI) ──────────────────────────────────


def build_calculate_pay(session: AsyncSession) -> CalculatePayUseCase:
    return CalculatePayUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        rate_repo=SqlRateRepository(session),
        payable_repo=SqlPayableRepository(session),
    )


def build_assign_driver(session: AsyncSession) -> AssignDriverUseCase:
    return AssignDriverUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        driver_repo=SqlDriverRepository(session),
        payable_repo=SqlPayableRepository(session),
        audit=SqlAuditLog(session),
        calculate_pay=build_calculate_pay(session),
    )


def build_assign_carrier(session: AsyncSession) -> AssignCarrierUseCase:
    return AssignCarrierUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        carrier_repo=SqlCarrierRepository(session),
        payable_repo=SqlPayableRepository(session),
        audit=SqlAuditLog(session),
        calculate_pay=build_calculate_pay(session),
    )


def build_auto_assign(session: AsyncSession) -> AutoAssignLoadUseCase:
    return AutoAssignLoadUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        driver_repo=SqlDriverRepository(session),
        carrier_repo=SqlCarrierRepository(session),
        route_repo=SqlRouteAssignmentRepository(session),
        assign_driver=build_assign_driver(session),
        assign_carrier=build_assign_carrier(session),
        system_actor=system_actor(),
    )


def build_sweep(session: AsyncSession) -> AutoAssignPendingLoadsUseCase:
    return AutoAssignPendingLoadsUseCase(
        load_repo=SqlLoadRepository(session),
        auto_assign=build_auto_assign(session),
    )


def build_ledger(session: AsyncSession) -> PayableLedgerUseCase:
    return PayableLedgerUseCase(
        payable_repo=SqlPayableRepository(session),
        settlement_repo=SqlSettlementRepository(session),
        load_repo=SqlLoadRepository(session),
        audit=SqlAuditLog(session),
    )


def build_lifecycle(session: AsyncSession) -> SettlementLifecycleUseCase:
    return SettlementLifecycleUseCase(
        settlement_repo=SqlSettlementRepository(session),
        payable_repo=SqlPayableRepository(session),
        rate_repo=SqlRateRepository(session),
        ledger=build_ledger(session),
        audit=SqlAuditLog(session),
    )


# ─── Dispatch ────────────────────────────────────────────────────────


def get_calculate_pay_uc(session: AsyncSession = Depends(get_session)) -> CalculatePayUseCase:
    return build_calculate_pay(session)


def get_assign_driver_uc(session: AsyncSession = Depends(get_session)) -> AssignDriverUseCase:
    return build_assign_driver(session)


def get_assign_carrier_uc(session: AsyncSession = Depends(get_session)) -> AssignCarrierUseCase:
    return build_assign_carrier(session)


def get_unassign_uc(session: AsyncSession = Depends(get_session)) -> UnassignResourceUseCase:
    return UnassignResourceUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        payable_repo=SqlPayableRepository(session),
        audit=SqlAuditLog(session),
        calculate_pay=build_calculate_pay(session),
    )


def get_split_uc(session: AsyncSession = Depends(get_session)) -> SplitLoadUseCase:
    return SplitLoadUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        driver_repo=SqlDriverRepository(session),
        payable_repo=SqlPayableRepository(session),
        audit=SqlAuditLog(session),
        calculate_pay=build_calculate_pay(session),
    )


def get_remove_driver_uc(session: AsyncSession = Depends(get_session)) -> RemoveDriverUseCase:
    return RemoveDriverUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        payable_repo=SqlPayableRepository(session),
        settlement_repo=SqlSettlementRepository(session),
        audit=SqlAuditLog(session),
        calculate_pay=build_calculate_pay(session),
    )


def get_create_leg_uc(session: AsyncSession = Depends(get_session)) -> CreateLegUseCase:
    return CreateLegUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        driver_repo=SqlDriverRepository(session),
        payable_repo=SqlPayableRepository(session),
        audit=SqlAuditLog(session),
        calculate_pay=build_calculate_pay(session),
    )


def get_update_leg_uc(session: AsyncSession = Depends(get_session)) -> UpdateLegUseCase:
    return UpdateLegUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        payable_repo=SqlPayableRepository(session),
        audit=SqlAuditLog(session),
        calculate_pay=build_calculate_pay(session),
    )


def get_availability_uc(session: AsyncSession = Depends(get_session)) -> DriverAvailabilityUseCase:
    return DriverAvailabilityUseCase(
        load_repo=SqlLoadRepository(session),
        leg_repo=SqlLegRepository(session),
        driver_repo=SqlDriverRepository(session),
    )


def get_deactivation_uc(session: AsyncSession = Depends(get_session)) -> DeactivateResourceUseCase:
    return DeactivateResourceUseCase(
        driver_repo=SqlDriverRepository(session),
        carrier_repo=SqlCarrierRepository(session),
        leg_repo=SqlLegRepository(session),
        load_repo=SqlLoadRepository(session),
        route_repo=SqlRouteAssignmentRepository(session),
        calculate_pay=build_calculate_pay(session),
        audit=SqlAuditLog(session),
    )


# ─── Ledger & settlements ────────────────────────────────────────────


def get_ledger_uc(session: AsyncSession = Depends(get_session)) -> PayableLedgerUseCase:
    return build_ledger(session)


def get_generate_settlement_uc(
    session: AsyncSession = Depends(get_session),
) -> GenerateSettlementUseCase:
    return GenerateSettlementUseCase(
        settlement_repo=SqlSettlementRepository(session),
        payable_repo=SqlPayableRepository(session),
        leg_repo=SqlLegRepository(session),
        load_repo=SqlLoadRepository(session),
        pay_plan_repo=SqlPayPlanRepository(session),
        driver_repo=SqlDriverRepository(session),
        carrier_repo=SqlCarrierRepository(session),
        audit=SqlAuditLog(session),
        unit_of_work=SqlUnitOfWork(session),
        default_timezone=settings.default_timezone,
    )


def get_refresh_settlement_uc(
    session: AsyncSession = Depends(get_session),
) -> RefreshSettlementUseCase:
    return RefreshSettlementUseCase(
        settlement_repo=SqlSettlementRepository(session),
        payable_repo=SqlPayableRepository(session),
        leg_repo=SqlLegRepository(session),
        load_repo=SqlLoadRepository(session),
        pay_plan_repo=SqlPayPlanRepository(session),
        default_timezone=settings.default_timezone,
    )


def get_lifecycle_uc(session: AsyncSession = Depends(get_session)) -> SettlementLifecycleUseCase:
    return build_lifecycle(session)


def get_bulk_settlement_uc(session: AsyncSession = Depends(get_session)) -> BulkSettlementUseCase:
    return BulkSettlementUseCase(
        lifecycle=build_lifecycle(session), unit_of_work=SqlUnitOfWork(session)
    )


def get_load_hold_uc(session: AsyncSession = Depends(get_session)) -> LoadHoldUseCase:
    return LoadHoldUseCase(
        load_repo=SqlLoadRepository(session),
        payable_repo=SqlPayableRepository(session),
        settlement_repo=SqlSettlementRepository(session),
        audit=SqlAuditLog(session),
    )


# ─── Configuration ───────────────────────────────────────────────────


def get_rate_config_uc(session: AsyncSession = Depends(get_session)) -> RateConfigurationUseCase:
    return RateConfigurationUseCase(
        rate_repo=SqlRateRepository(session),
        driver_repo=SqlDriverRepository(session),
        carrier_repo=SqlCarrierRepository(session),
        audit=SqlAuditLog(session),
    )


def get_pay_plan_uc(session: AsyncSession = Depends(get_session)) -> PayPlanUseCase:
    return PayPlanUseCase(
        pay_plan_repo=SqlPayPlanRepository(session),
        driver_repo=SqlDriverRepository(session),
        carrier_repo=SqlCarrierRepository(session),
        default_timezone=settings.default_timezone,
    )


def get_auto_assign_uc(session: AsyncSession = Depends(get_session)) -> AutoAssignLoadUseCase:
    return build_auto_assign(session)


def get_sweep_uc(session: AsyncSession = Depends(get_session)) -> AutoAssignPendingLoadsUseCase:
    return build_sweep(session)


def get_route_config_uc(
    session: AsyncSession = Depends(get_session),
) -> RouteAssignmentConfigUseCase:
    return RouteAssignmentConfigUseCase(
        route_repo=SqlRouteAssignmentRepository(session),
        driver_repo=SqlDriverRepository(session),
        carrier_repo=SqlCarrierRepository(session),
    )
