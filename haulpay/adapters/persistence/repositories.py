"""SQLAlchemy repository implementations."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from haulpay.adapters.persistence.models import (
    AuditLogModel,
    AutoAssignmentSettingsModel,
    CarrierPartnershipModel,
    DispatchLegModel,
    DriverModel,
    LoadModel,
    LoadStopModel,
    PayableModel,
    PayPlanModel,
    ProfileAssignmentModel,
    RateProfileModel,
    RateRuleModel,
    RouteAssignmentModel,
    SettlementModel,
    TruckModel,
)
from haulpay.application.ports.audit_log_port import AuditLogPort
from haulpay.application.ports.carrier_repo import CarrierRepository
from haulpay.application.ports.driver_repo import DriverRepository
from haulpay.application.ports.leg_repo import LegRepository
from haulpay.application.ports.load_repo import LoadRepository
from haulpay.application.ports.pay_plan_repo import PayPlanRepository
from haulpay.application.ports.payable_repo import PayableRepository
from haulpay.application.ports.rate_repo import RateRepository
from haulpay.application.ports.route_assignment_repo import RouteAssignmentRepository
from haulpay.application.ports.settlement_repo import SettlementRepository
from haulpay.application.ports.unit_of_work import UnitOfWork
from haulpay.domain.entities.dispatch_leg import OPEN_LEG_STATUSES, DispatchLeg
from haulpay.domain.entities.driver import CarrierPartnership, Driver, Truck
from haulpay.domain.entities.load import Load, LoadStop
from haulpay.domain.entities.payable import Payable
from haulpay.domain.entities.rate_profile import ProfileAssignment, RateProfile, RateRule
from haulpay.domain.entities.route_assignment import AutoAssignmentSettings, RouteAssignment
from haulpay.domain.entities.settlement import PayPlan, Settlement
from haulpay.domain.value_objects.enums import (
    DayOfWeek,
    EmploymentStatus,
    LegStatus,
    LoadStatus,
    PartnershipStatus,
    PayableTrigger,
    PayBasis,
    PayeeType,
    PayFrequency,
    RuleCategory,
    SelectionStrategy,
    SettlementStatus,
    SourceType,
    StopType,
    TriggerEvent,
)
from haulpay.domain.value_objects.time_range import now_ms

logger = logging.getLogger(__name__)


# ─── Mappers ─────────────────────────────────────────────────────────


def _load_to_domain(m: LoadModel) -> Load:
    return Load(
        id=m.id,
        org_id=m.org_id,
        internal_id=m.internal_id,
        order_number=m.order_number,
        status=LoadStatus(m.status),
        effective_miles=m.effective_miles,
        is_hazmat=m.is_hazmat,
        requires_tarp=m.requires_tarp,
        invoice_total=m.invoice_total,
        primary_driver_id=m.primary_driver_id,
        primary_carrier_partnership_id=m.primary_carrier_partnership_id,
        parsed_hcr=m.parsed_hcr,
        parsed_trip_number=m.parsed_trip_number,
        is_held=m.is_held,
        held_reason=m.held_reason,
        held_at=m.held_at,
        held_by=m.held_by,
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


def _load_values(load: Load) -> dict:
    return dict(
        org_id=load.org_id,
        internal_id=load.internal_id,
        order_number=load.order_number,
        status=load.status.value,
        effective_miles=load.effective_miles,
        is_hazmat=load.is_hazmat,
        requires_tarp=load.requires_tarp,
        invoice_total=load.invoice_total,
        primary_driver_id=load.primary_driver_id,
        primary_carrier_partnership_id=load.primary_carrier_partnership_id,
        parsed_hcr=load.parsed_hcr,
        parsed_trip_number=load.parsed_trip_number,
        is_held=load.is_held,
        held_reason=load.held_reason,
        held_at=load.held_at,
        held_by=load.held_by,
        created_at=load.created_at,
        updated_at=load.updated_at,
    )


def _stop_to_domain(m: LoadStopModel) -> LoadStop:
    return LoadStop(
        id=m.id,
        load_id=m.load_id,
        sequence_number=m.sequence_number,
        stop_type=StopType(m.stop_type),
        window_begin_date=m.window_begin_date,
        window_begin_time=m.window_begin_time,
        window_end_date=m.window_end_date,
        window_end_time=m.window_end_time,
        checked_in_at=m.checked_in_at,
        checked_out_at=m.checked_out_at,
        dwell_minutes=m.dwell_minutes,
        city=m.city,
        state=m.state,
    )


def _leg_to_domain(m: DispatchLegModel) -> DispatchLeg:
    return DispatchLeg(
        id=m.id,
        load_id=m.load_id,
        org_id=m.org_id,
        sequence=m.sequence,
        start_stop_id=m.start_stop_id,
        end_stop_id=m.end_stop_id,
        loaded_miles=m.loaded_miles,
        empty_miles=m.empty_miles,
        status=LegStatus(m.status),
        driver_id=m.driver_id,
        carrier_partnership_id=m.carrier_partnership_id,
        truck_id=m.truck_id,
        trailer_id=m.trailer_id,
        completed_at=m.completed_at,
        created_at=m.created_at,
        updated_at=m.updated_at,
    )


def _leg_values(leg: DispatchLeg) -> dict:
    return dict(
        load_id=leg.load_id,
        org_id=leg.org_id,
        sequence=leg.sequence,
        start_stop_id=leg.start_stop_id,
        end_stop_id=leg.end_stop_id,
        loaded_miles=leg.loaded_miles,
        empty_miles=leg.empty_miles,
        status=leg.status.value,
        driver_id=leg.driver_id,
        carrier_partnership_id=leg.carrier_partnership_id,
        truck_id=leg.truck_id,
        trailer_id=leg.trailer_id,
        completed_at=leg.completed_at,
        created_at=leg.created_at,
        updated_at=leg.updated_at,
    )


def _driver_to_domain(m: DriverModel) -> Driver:
    return Driver(
        id=m.id,
        org_id=m.org_id,
        first_name=m.first_name,
        last_name=m.last_name,
        employment_status=EmploymentStatus(m.employment_status),
        is_deleted=m.is_deleted,
        current_truck_id=m.current_truck_id,
        pay_plan_id=m.pay_plan_id,
        phone=m.phone,
    )


def _driver_values(driver: Driver) -> dict:
    return dict(
        org_id=driver.org_id,
        first_name=driver.first_name,
        last_name=driver.last_name,
        employment_status=driver.employment_status.value,
        is_deleted=driver.is_deleted,
        current_truck_id=driver.current_truck_id,
        pay_plan_id=driver.pay_plan_id,
        phone=driver.phone,
    )


def _truck_to_domain(m: TruckModel) -> Truck:
    return Truck(
        id=m.id,
        org_id=m.org_id,
        unit_id=m.unit_id,
        body_type=m.body_type,
        last_latitude=m.last_latitude,
        last_longitude=m.last_longitude,
        last_location_updated_at=m.last_location_updated_at,
    )


def _carrier_to_domain(m: CarrierPartnershipModel) -> CarrierPartnership:
    return CarrierPartnership(
        id=m.id,
        org_id=m.org_id,
        carrier_name=m.carrier_name,
        mc_number=m.mc_number,
        status=PartnershipStatus(m.status),
        pay_plan_id=m.pay_plan_id,
    )


def _profile_to_domain(m: RateProfileModel) -> RateProfile:
    return RateProfile(
        id=m.id,
        org_id=m.org_id,
        name=m.name,
        profile_type=PayeeType(m.profile_type),
        pay_basis=PayBasis(m.pay_basis),
        is_active=m.is_active,
        is_default=m.is_default,
        description=m.description,
    )


def _rule_to_domain(m: RateRuleModel) -> RateRule:
    return RateRule(
        id=m.id,
        profile_id=m.profile_id,
        name=m.name,
        category=RuleCategory(m.category),
        trigger_event=TriggerEvent(m.trigger_event),
        rate_amount=m.rate_amount,
        min_threshold=m.min_threshold,
        max_cap=m.max_cap,
        is_active=m.is_active,
    )


def _assignment_to_domain(m: ProfileAssignmentModel) -> ProfileAssignment:
    return ProfileAssignment(
        id=m.id,
        org_id=m.org_id,
        payee_type=PayeeType(m.payee_type),
        payee_id=m.payee_id,
        profile_id=m.profile_id,
        selection_strategy=SelectionStrategy(m.selection_strategy),
        threshold_value=m.threshold_value,
        is_default=m.is_default,
        effective_date=m.effective_date,
    )


def _payable_to_domain(m: PayableModel) -> Payable:
    return Payable(
        id=m.id,
        org_id=m.org_id,
        payee_type=PayeeType(m.payee_type),
        payee_id=m.payee_id,
        description=m.description,
        quantity=m.quantity,
        rate=m.rate,
        total_amount=m.total_amount,
        source_type=SourceType(m.source_type),
        load_id=m.load_id,
        leg_id=m.leg_id,
        is_locked=m.is_locked,
        settlement_id=m.settlement_id,
        rule_id=m.rule_id,
        warning_message=m.warning_message,
        is_rebillable=m.is_rebillable,
        rebill_customer_id=m.rebill_customer_id,
        receipt_storage_key=m.receipt_storage_key,
        approved_at=m.approved_at,
        created_at=m.created_at,
        updated_at=m.updated_at,
        created_by=m.created_by,
    )


def _payable_values(p: Payable) -> dict:
    return dict(
        org_id=p.org_id,
        payee_type=p.payee_type.value,
        payee_id=p.payee_id,
        description=p.description,
        quantity=p.quantity,
        rate=p.rate,
        total_amount=p.total_amount,
        source_type=p.source_type.value,
        load_id=p.load_id,
        leg_id=p.leg_id,
        is_locked=p.is_locked,
        settlement_id=p.settlement_id,
        rule_id=p.rule_id,
        warning_message=p.warning_message,
        is_rebillable=p.is_rebillable,
        rebill_customer_id=p.rebill_customer_id,
        receipt_storage_key=p.receipt_storage_key,
        approved_at=p.approved_at,
        created_at=p.created_at,
        updated_at=p.updated_at,
        created_by=p.created_by,
    )


_SETTLEMENT_FIELDS = (
    "org_id", "period_start", "period_end", "statement_number", "pay_plan_id",
    "pay_plan_name", "period_number", "gross_total", "total_miles", "total_loads",
    "total_manual_adjustments", "notes", "submitted_at", "submitted_by", "approved_at",
    "approved_by", "paid_at", "paid_by", "payment_method", "payment_reference",
    "voided_at", "voided_by", "void_reason", "created_at", "updated_at", "created_by",
)


def _settlement_to_domain(m: SettlementModel) -> Settlement:
    return Settlement(
        id=m.id,
        payee_type=PayeeType(m.payee_type),
        payee_id=m.payee_id,
        status=SettlementStatus(m.status),
        **{name: getattr(m, name) for name in _SETTLEMENT_FIELDS},
    )


def _settlement_values(s: Settlement) -> dict:
    values = {name: getattr(s, name) for name in _SETTLEMENT_FIELDS}
    values.update(payee_type=s.payee_type.value, payee_id=s.payee_id, status=s.status.value)
    return values


def _plan_to_domain(m: PayPlanModel) -> PayPlan:
    return PayPlan(
        id=m.id,
        org_id=m.org_id,
        name=m.name,
        frequency=PayFrequency(m.frequency),
        period_start_day_of_week=(
            DayOfWeek(m.period_start_day_of_week) if m.period_start_day_of_week else None
        ),
        period_start_day_of_month=m.period_start_day_of_month,
        timezone=m.timezone,
        cutoff_time=m.cutoff_time,
        payment_lag_days=m.payment_lag_days,
        payable_trigger=PayableTrigger(m.payable_trigger),
        auto_carryover=m.auto_carryover,
        include_standalone_adjustments=m.include_standalone_adjustments,
        is_active=m.is_active,
        description=m.description,
    )


def _plan_values(plan: PayPlan) -> dict:
    return dict(
        org_id=plan.org_id,
        name=plan.name,
        frequency=plan.frequency.value,
        period_start_day_of_week=(
            plan.period_start_day_of_week.value if plan.period_start_day_of_week else None
        ),
        period_start_day_of_month=plan.period_start_day_of_month,
        timezone=plan.timezone,
        cutoff_time=plan.cutoff_time,
        payment_lag_days=plan.payment_lag_days,
        payable_trigger=plan.payable_trigger.value,
        auto_carryover=plan.auto_carryover,
        include_standalone_adjustments=plan.include_standalone_adjustments,
        is_active=plan.is_active,
        description=plan.description,
    )


def _route_to_domain(m: RouteAssignmentModel) -> RouteAssignment:
    return RouteAssignment(
        id=m.id,
        org_id=m.org_id,
        hcr=m.hcr,
        name=m.name,
        trip_number=m.trip_number,
        driver_id=m.driver_id,
        carrier_partnership_id=m.carrier_partnership_id,
        priority=m.priority,
        is_active=m.is_active,
        notes=m.notes,
    )


def _settings_to_domain(m: AutoAssignmentSettingsModel) -> AutoAssignmentSettings:
    return AutoAssignmentSettings(
        id=m.id,
        org_id=m.org_id,
        enabled=m.enabled,
        trigger_on_create=m.trigger_on_create,
        scheduled_enabled=m.scheduled_enabled,
        schedule_interval_minutes=m.schedule_interval_minutes,
        last_scheduled_run_at=m.last_scheduled_run_at,
    )


# ─── Repositories ────────────────────────────────────────────────────


class SqlLoadRepository(LoadRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, load: Load) -> Load:
        m = LoadModel(**_load_values(load))
        self._s.add(m)
        await self._s.flush()
        load.id = m.id
        return load

    async def get_by_id(self, load_id: int) -> Load | None:
        m = await self._s.get(LoadModel, load_id)
        return _load_to_domain(m) if m else None

    async def update(self, load: Load) -> Load:
        await self._s.execute(
            update(LoadModel).where(LoadModel.id == load.id).values(**_load_values(load))
        )
        await self._s.flush()
        return load

    async def get_open_with_hcr(self, org_id: str) -> list[Load]:
        result = await self._s.execute(
            select(LoadModel)
            .where(
                LoadModel.org_id == org_id,
                LoadModel.status == LoadStatus.OPEN.value,
                LoadModel.is_held.is_(False),
                LoadModel.parsed_hcr.is_not(None),
            )
            .order_by(LoadModel.id)
        )
        return [_load_to_domain(m) for m in result.scalars()]

    async def save_stop(self, stop: LoadStop) -> LoadStop:
        m = LoadStopModel(
            load_id=stop.load_id,
            sequence_number=stop.sequence_number,
            stop_type=stop.stop_type.value,
            window_begin_date=stop.window_begin_date,
            window_begin_time=stop.window_begin_time,
            window_end_date=stop.window_end_date,
            window_end_time=stop.window_end_time,
            checked_in_at=stop.checked_in_at,
            checked_out_at=stop.checked_out_at,
            dwell_minutes=stop.dwell_minutes,
            city=stop.city,
            state=stop.state,
        )
        self._s.add(m)
        await self._s.flush()
        stop.id = m.id
        return stop

    async def get_stops(self, load_id: int) -> list[LoadStop]:
        result = await self._s.execute(
            select(LoadStopModel)
            .where(LoadStopModel.load_id == load_id)
            .order_by(LoadStopModel.sequence_number)
        )
        return [_stop_to_domain(m) for m in result.scalars()]


class SqlLegRepository(LegRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, leg: DispatchLeg) -> DispatchLeg:
        m = DispatchLegModel(**_leg_values(leg))
        self._s.add(m)
        await self._s.flush()
        leg.id = m.id
        return leg

    async def get_by_id(self, leg_id: int) -> DispatchLeg | None:
        m = await self._s.get(DispatchLegModel, leg_id)
        return _leg_to_domain(m) if m else None

    async def update(self, leg: DispatchLeg) -> DispatchLeg:
        await self._s.execute(
            update(DispatchLegModel)
            .where(DispatchLegModel.id == leg.id)
            .values(**_leg_values(leg))
        )
        await self._s.flush()
        return leg

    async def get_by_load(self, load_id: int) -> list[DispatchLeg]:
        result = await self._s.execute(
            select(DispatchLegModel)
            .where(DispatchLegModel.load_id == load_id)
            .order_by(DispatchLegModel.sequence)
        )
        return [_leg_to_domain(m) for m in result.scalars()]

    async def get_by_driver(self, driver_id: int) -> list[DispatchLeg]:
        # Row locks keep two concurrent assignments of one driver serialized.
        result = await self._s.execute(
            select(DispatchLegModel)
            .where(DispatchLegModel.driver_id == driver_id)
            .order_by(DispatchLegModel.id)
            .with_for_update()
        )
        return [_leg_to_domain(m) for m in result.scalars()]

    async def get_by_carrier(self, partnership_id: int) -> list[DispatchLeg]:
        result = await self._s.execute(
            select(DispatchLegModel)
            .where(DispatchLegModel.carrier_partnership_id == partnership_id)
            .order_by(DispatchLegModel.id)
        )
        return [_leg_to_domain(m) for m in result.scalars()]


class SqlDriverRepository(DriverRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, driver: Driver) -> Driver:
        m = DriverModel(**_driver_values(driver))
        self._s.add(m)
        await self._s.flush()
        driver.id = m.id
        return driver

    async def get_by_id(self, driver_id: int) -> Driver | None:
        m = await self._s.get(DriverModel, driver_id)
        return _driver_to_domain(m) if m else None

    async def update(self, driver: Driver) -> Driver:
        await self._s.execute(
            update(DriverModel).where(DriverModel.id == driver.id).values(**_driver_values(driver))
        )
        await self._s.flush()
        return driver

    async def get_by_org(self, org_id: str) -> list[Driver]:
        result = await self._s.execute(
            select(DriverModel)
            .where(DriverModel.org_id == org_id, DriverModel.is_deleted.is_(False))
            .order_by(DriverModel.id)
        )
        return [_driver_to_domain(m) for m in result.scalars()]

    async def get_by_pay_plan(self, pay_plan_id: int) -> list[Driver]:
        result = await self._s.execute(
            select(DriverModel)
            .where(DriverModel.pay_plan_id == pay_plan_id, DriverModel.is_deleted.is_(False))
            .order_by(DriverModel.id)
        )
        return [_driver_to_domain(m) for m in result.scalars()]

    async def get_truck(self, truck_id: int) -> Truck | None:
        m = await self._s.get(TruckModel, truck_id)
        return _truck_to_domain(m) if m else None


class SqlCarrierRepository(CarrierRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, partnership: CarrierPartnership) -> CarrierPartnership:
        m = CarrierPartnershipModel(
            org_id=partnership.org_id,
            carrier_name=partnership.carrier_name,
            mc_number=partnership.mc_number,
            status=partnership.status.value,
            pay_plan_id=partnership.pay_plan_id,
        )
        self._s.add(m)
        await self._s.flush()
        partnership.id = m.id
        return partnership

    async def get_by_id(self, partnership_id: int) -> CarrierPartnership | None:
        m = await self._s.get(CarrierPartnershipModel, partnership_id)
        return _carrier_to_domain(m) if m else None

    async def update(self, partnership: CarrierPartnership) -> CarrierPartnership:
        await self._s.execute(
            update(CarrierPartnershipModel)
            .where(CarrierPartnershipModel.id == partnership.id)
            .values(
                carrier_name=partnership.carrier_name,
                mc_number=partnership.mc_number,
                status=partnership.status.value,
                pay_plan_id=partnership.pay_plan_id,
            )
        )
        await self._s.flush()
        return partnership

    async def get_by_pay_plan(self, pay_plan_id: int) -> list[CarrierPartnership]:
        result = await self._s.execute(
            select(CarrierPartnershipModel)
            .where(CarrierPartnershipModel.pay_plan_id == pay_plan_id)
            .order_by(CarrierPartnershipModel.id)
        )
        return [_carrier_to_domain(m) for m in result.scalars()]


class SqlRateRepository(RateRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    # Profiles

    async def save_profile(self, profile: RateProfile) -> RateProfile:
        m = RateProfileModel(
            org_id=profile.org_id,
            name=profile.name,
            profile_type=profile.profile_type.value,
            pay_basis=profile.pay_basis.value,
            is_active=profile.is_active,
            is_default=profile.is_default,
            description=profile.description,
        )
        self._s.add(m)
        await self._s.flush()
        profile.id = m.id
        return profile

    async def get_profile(self, profile_id: int) -> RateProfile | None:
        m = await self._s.get(RateProfileModel, profile_id)
        return _profile_to_domain(m) if m else None

    async def update_profile(self, profile: RateProfile) -> RateProfile:
        await self._s.execute(
            update(RateProfileModel)
            .where(RateProfileModel.id == profile.id)
            .values(
                name=profile.name,
                pay_basis=profile.pay_basis.value,
                is_active=profile.is_active,
                is_default=profile.is_default,
                description=profile.description,
            )
        )
        await self._s.flush()
        return profile

    async def get_profiles(
        self, org_id: str, profile_type: PayeeType | None = None
    ) -> list[RateProfile]:
        stmt = select(RateProfileModel).where(RateProfileModel.org_id == org_id)
        if profile_type is not None:
            stmt = stmt.where(RateProfileModel.profile_type == profile_type.value)
        result = await self._s.execute(stmt.order_by(RateProfileModel.id))
        return [_profile_to_domain(m) for m in result.scalars()]

    async def get_org_default(self, org_id: str, profile_type: PayeeType) -> RateProfile | None:
        result = await self._s.execute(
            select(RateProfileModel)
            .where(
                RateProfileModel.org_id == org_id,
                RateProfileModel.profile_type == profile_type.value,
                RateProfileModel.is_default.is_(True),
                RateProfileModel.is_active.is_(True),
            )
            .order_by(RateProfileModel.id)
            .limit(1)
        )
        m = result.scalar_one_or_none()
        return _profile_to_domain(m) if m else None

    # Rules

    async def save_rule(self, rule: RateRule) -> RateRule:
        m = RateRuleModel(
            profile_id=rule.profile_id,
            name=rule.name,
            category=rule.category.value,
            trigger_event=rule.trigger_event.value,
            rate_amount=rule.rate_amount,
            min_threshold=rule.min_threshold,
            max_cap=rule.max_cap,
            is_active=rule.is_active,
        )
        self._s.add(m)
        await self._s.flush()
        rule.id = m.id
        return rule

    async def get_rule(self, rule_id: int) -> RateRule | None:
        m = await self._s.get(RateRuleModel, rule_id)
        return _rule_to_domain(m) if m else None

    async def update_rule(self, rule: RateRule) -> RateRule:
        await self._s.execute(
            update(RateRuleModel)
            .where(RateRuleModel.id == rule.id)
            .values(
                name=rule.name,
                category=rule.category.value,
                trigger_event=rule.trigger_event.value,
                rate_amount=rule.rate_amount,
                min_threshold=rule.min_threshold,
                max_cap=rule.max_cap,
                is_active=rule.is_active,
            )
        )
        await self._s.flush()
        return rule

    async def get_rules(self, profile_id: int) -> list[RateRule]:
        result = await self._s.execute(
            select(RateRuleModel)
            .where(RateRuleModel.profile_id == profile_id)
            .order_by(RateRuleModel.id)
        )
        return [_rule_to_domain(m) for m in result.scalars()]

    async def get_rules_by_ids(self, rule_ids: list[int]) -> list[RateRule]:
        if not rule_ids:
            return []
        result = await self._s.execute(
            select(RateRuleModel).where(RateRuleModel.id.in_(rule_ids))
        )
        return [_rule_to_domain(m) for m in result.scalars()]

    # Assignments

    async def save_assignment(self, assignment: ProfileAssignment) -> ProfileAssignment:
        m = ProfileAssignmentModel(
            org_id=assignment.org_id,
            payee_type=assignment.payee_type.value,
            payee_id=assignment.payee_id,
            profile_id=assignment.profile_id,
            selection_strategy=assignment.selection_strategy.value,
            threshold_value=assignment.threshold_value,
            is_default=assignment.is_default,
            effective_date=assignment.effective_date,
        )
        self._s.add(m)
        await self._s.flush()
        assignment.id = m.id
        return assignment

    async def get_assignment(self, assignment_id: int) -> ProfileAssignment | None:
        m = await self._s.get(ProfileAssignmentModel, assignment_id)
        return _assignment_to_domain(m) if m else None

    async def update_assignment(self, assignment: ProfileAssignment) -> ProfileAssignment:
        await self._s.execute(
            update(ProfileAssignmentModel)
            .where(ProfileAssignmentModel.id == assignment.id)
            .values(
                profile_id=assignment.profile_id,
                selection_strategy=assignment.selection_strategy.value,
                threshold_value=assignment.threshold_value,
                is_default=assignment.is_default,
                effective_date=assignment.effective_date,
            )
        )
        await self._s.flush()
        return assignment

    async def delete_assignment(self, assignment_id: int) -> None:
        await self._s.execute(
            delete(ProfileAssignmentModel).where(ProfileAssignmentModel.id == assignment_id)
        )
        await self._s.flush()

    async def get_assignments(
        self, payee_type: PayeeType, payee_id: int
    ) -> list[ProfileAssignment]:
        result = await self._s.execute(
            select(ProfileAssignmentModel)
            .where(
                ProfileAssignmentModel.payee_type == payee_type.value,
                ProfileAssignmentModel.payee_id == payee_id,
            )
            .order_by(ProfileAssignmentModel.id)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]


class SqlPayableRepository(PayableRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, payable: Payable) -> Payable:
        m = PayableModel(**_payable_values(payable))
        self._s.add(m)
        await self._s.flush()
        payable.id = m.id
        return payable

    async def get_by_id(self, payable_id: int) -> Payable | None:
        m = await self._s.get(PayableModel, payable_id)
        return _payable_to_domain(m) if m else None

    async def update(self, payable: Payable) -> Payable:
        await self._s.execute(
            update(PayableModel)
            .where(PayableModel.id == payable.id)
            .values(**_payable_values(payable))
        )
        await self._s.flush()
        return payable

    async def delete(self, payable_ids: list[int]) -> None:
        if not payable_ids:
            return
        await self._s.execute(delete(PayableModel).where(PayableModel.id.in_(payable_ids)))
        await self._s.flush()

    async def _where(self, *criteria) -> list[Payable]:
        result = await self._s.execute(
            select(PayableModel).where(*criteria).order_by(PayableModel.id)
        )
        return [_payable_to_domain(m) for m in result.scalars()]

    async def get_by_leg(self, leg_id: int) -> list[Payable]:
        return await self._where(PayableModel.leg_id == leg_id)

    async def get_by_load(self, load_id: int) -> list[Payable]:
        return await self._where(PayableModel.load_id == load_id)

    async def get_by_settlement(self, settlement_id: int) -> list[Payable]:
        return await self._where(PayableModel.settlement_id == settlement_id)

    async def get_unassigned(self, payee_type: PayeeType, payee_id: int) -> list[Payable]:
        return await self._where(
            PayableModel.payee_type == payee_type.value,
            PayableModel.payee_id == payee_id,
            PayableModel.settlement_id.is_(None),
        )

    async def clear_settlement(self, settlement_id: int) -> int:
        result = await self._s.execute(
            update(PayableModel)
            .where(PayableModel.settlement_id == settlement_id)
            .values(settlement_id=None, updated_at=now_ms())
        )
        await self._s.flush()
        return result.rowcount or 0


class SqlSettlementRepository(SettlementRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, settlement: Settlement) -> Settlement:
        m = SettlementModel(**_settlement_values(settlement))
        self._s.add(m)
        await self._s.flush()
        settlement.id = m.id
        return settlement

    async def get_by_id(self, settlement_id: int) -> Settlement | None:
        result = await self._s.execute(
            select(SettlementModel).where(SettlementModel.id == settlement_id).with_for_update()
        )
        m = result.scalar_one_or_none()
        return _settlement_to_domain(m) if m else None

    async def update(self, settlement: Settlement) -> Settlement:
        await self._s.execute(
            update(SettlementModel)
            .where(SettlementModel.id == settlement.id)
            .values(**_settlement_values(settlement))
        )
        await self._s.flush()
        return settlement

    async def delete(self, settlement_id: int) -> None:
        await self._s.execute(delete(SettlementModel).where(SettlementModel.id == settlement_id))
        await self._s.flush()

    async def get_by_payee(self, payee_type: PayeeType, payee_id: int) -> list[Settlement]:
        result = await self._s.execute(
            select(SettlementModel)
            .where(
                SettlementModel.payee_type == payee_type.value,
                SettlementModel.payee_id == payee_id,
            )
            .order_by(SettlementModel.period_start.desc(), SettlementModel.id.desc())
        )
        return [_settlement_to_domain(m) for m in result.scalars()]

    async def get_statement_numbers(self, org_id: str, year: int) -> list[str]:
        result = await self._s.execute(
            select(SettlementModel.statement_number).where(
                SettlementModel.org_id == org_id,
                SettlementModel.statement_number.like(f"SET-{year}-%"),
            )
        )
        return list(result.scalars())


class SqlPayPlanRepository(PayPlanRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, plan: PayPlan) -> PayPlan:
        m = PayPlanModel(**_plan_values(plan))
        self._s.add(m)
        await self._s.flush()
        plan.id = m.id
        return plan

    async def get_by_id(self, plan_id: int) -> PayPlan | None:
        m = await self._s.get(PayPlanModel, plan_id)
        return _plan_to_domain(m) if m else None

    async def update(self, plan: PayPlan) -> PayPlan:
        await self._s.execute(
            update(PayPlanModel).where(PayPlanModel.id == plan.id).values(**_plan_values(plan))
        )
        await self._s.flush()
        return plan

    async def get_by_org(self, org_id: str) -> list[PayPlan]:
        result = await self._s.execute(
            select(PayPlanModel).where(PayPlanModel.org_id == org_id).order_by(PayPlanModel.id)
        )
        return [_plan_to_domain(m) for m in result.scalars()]


class SqlRouteAssignmentRepository(RouteAssignmentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, assignment: RouteAssignment) -> RouteAssignment:
        m = RouteAssignmentModel(
            org_id=assignment.org_id,
            hcr=assignment.hcr,
            name=assignment.name,
            trip_number=assignment.trip_number,
            driver_id=assignment.driver_id,
            carrier_partnership_id=assignment.carrier_partnership_id,
            priority=assignment.priority,
            is_active=assignment.is_active,
            notes=assignment.notes,
        )
        self._s.add(m)
        await self._s.flush()
        assignment.id = m.id
        return assignment

    async def get_by_id(self, assignment_id: int) -> RouteAssignment | None:
        m = await self._s.get(RouteAssignmentModel, assignment_id)
        return _route_to_domain(m) if m else None

    async def update(self, assignment: RouteAssignment) -> RouteAssignment:
        await self._s.execute(
            update(RouteAssignmentModel)
            .where(RouteAssignmentModel.id == assignment.id)
            .values(
                name=assignment.name,
                trip_number=assignment.trip_number,
                driver_id=assignment.driver_id,
                carrier_partnership_id=assignment.carrier_partnership_id,
                priority=assignment.priority,
                is_active=assignment.is_active,
                notes=assignment.notes,
            )
        )
        await self._s.flush()
        return assignment

    async def get_by_hcr(self, org_id: str, hcr: str) -> list[RouteAssignment]:
        result = await self._s.execute(
            select(RouteAssignmentModel)
            .where(
                RouteAssignmentModel.org_id == org_id,
                RouteAssignmentModel.hcr.ilike(hcr.strip()),
            )
            .order_by(RouteAssignmentModel.priority, RouteAssignmentModel.id)
        )
        return [_route_to_domain(m) for m in result.scalars()]

    async def get_by_org(self, org_id: str) -> list[RouteAssignment]:
        result = await self._s.execute(
            select(RouteAssignmentModel)
            .where(RouteAssignmentModel.org_id == org_id)
            .order_by(RouteAssignmentModel.hcr, RouteAssignmentModel.priority)
        )
        return [_route_to_domain(m) for m in result.scalars()]

    async def get_by_target(
        self, driver_id: int | None = None, carrier_partnership_id: int | None = None
    ) -> list[RouteAssignment]:
        stmt = select(RouteAssignmentModel)
        if driver_id is not None:
            stmt = stmt.where(RouteAssignmentModel.driver_id == driver_id)
        if carrier_partnership_id is not None:
            stmt = stmt.where(
                RouteAssignmentModel.carrier_partnership_id == carrier_partnership_id
            )
        result = await self._s.execute(stmt.order_by(RouteAssignmentModel.id))
        return [_route_to_domain(m) for m in result.scalars()]

    async def get_settings(self, org_id: str) -> AutoAssignmentSettings | None:
        result = await self._s.execute(
            select(AutoAssignmentSettingsModel).where(
                AutoAssignmentSettingsModel.org_id == org_id
            )
        )
        m = result.scalar_one_or_none()
        return _settings_to_domain(m) if m else None

    async def save_settings(self, settings: AutoAssignmentSettings) -> AutoAssignmentSettings:
        result = await self._s.execute(
            select(AutoAssignmentSettingsModel)
            .where(AutoAssignmentSettingsModel.org_id == settings.org_id)
            .with_for_update()
        )
        m = result.scalar_one_or_none()
        if m is None:
            m = AutoAssignmentSettingsModel(org_id=settings.org_id)
            self._s.add(m)
        m.enabled = settings.enabled
        m.trigger_on_create = settings.trigger_on_create
        m.scheduled_enabled = settings.scheduled_enabled
        m.schedule_interval_minutes = settings.schedule_interval_minutes
        m.last_scheduled_run_at = settings.last_scheduled_run_at
        await self._s.flush()
        settings.id = m.id
        return settings

    async def get_scheduled_settings(self) -> list[AutoAssignmentSettings]:
        result = await self._s.execute(
            select(AutoAssignmentSettingsModel)
            .where(
                AutoAssignmentSettingsModel.enabled.is_(True),
                AutoAssignmentSettingsModel.scheduled_enabled.is_(True),
            )
            .order_by(AutoAssignmentSettingsModel.org_id)
        )
        return [_settings_to_domain(m) for m in result.scalars()]


class SqlAuditLog(AuditLogPort):
    """Writes audit entries inside a savepoint so a failed insert cannot
    poison the caller's transaction."""

    def __init__(self, session: AsyncSession):
        self._s = session

    async def log_action(
        self,
        org_id: str,
        entity_type: str,
        entity_id: str,
        action: str,
        performed_by: str,
        description: str,
        performed_by_name: str | None = None,
        entity_name: str | None = None,
        changes: dict | None = None,
    ) -> None:
        try:
            async with self._s.begin_nested():
                self._s.add(
                    AuditLogModel(
                        org_id=org_id,
                        entity_type=entity_type,
                        entity_id=str(entity_id),
                        entity_name=entity_name,
                        action=action,
                        performed_by=performed_by,
                        performed_by_name=performed_by_name,
                        description=description,
                        changes=changes or {},
                        created_at=now_ms(),
                    )
                )
        except Exception:
            logger.exception("Audit write failed for %s %s (%s)", entity_type, entity_id, action)


class SqlUnitOfWork(UnitOfWork):
    """Savepoints on the request session (SAVEPOINT / ROLLBACK TO SAVEPOINT)."""

    def __init__(self, session: AsyncSession):
        self._s = session

    def savepoint(self) -> AsyncSessionTransaction:
        return self._s.begin_nested()
