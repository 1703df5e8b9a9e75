"""SQLAlchemy ORM models — maps to PostgreSQL tables.

Instants are stored as epoch milliseconds (BIGINT); money as NUMERIC.
"""

from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from haulpay.adapters.persistence.database import Base

MONEY = Numeric(12, 2)
MILES = Numeric(10, 2)
RATE = Numeric(12, 4)


# ─── Loads & legs ────────────────────────────────────────────────────


class LoadModel(Base):
    __tablename__ = "loads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    internal_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Open")
    effective_miles: Mapped[Decimal] = mapped_column(MILES, nullable=False, default=0)
    is_hazmat: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_tarp: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invoice_total: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    primary_driver_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("drivers.id"), nullable=True
    )
    primary_carrier_partnership_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("carrier_partnerships.id"), nullable=True
    )
    parsed_hcr: Mapped[str | None] = mapped_column(String(50), nullable=True)
    parsed_trip_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_held: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    held_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    held_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    held_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        Index("idx_loads_org_status", "org_id", "status"),
        Index("idx_loads_hcr", "org_id", "parsed_hcr"),
    )


class LoadStopModel(Base):
    __tablename__ = "load_stops"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    load_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("loads.id", ondelete="CASCADE"), nullable=False
    )
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    stop_type: Mapped[str] = mapped_column(String(20), nullable=False)
    window_begin_date: Mapped[str | None] = mapped_column(String(40), nullable=True)
    window_begin_time: Mapped[str | None] = mapped_column(String(40), nullable=True)
    window_end_date: Mapped[str | None] = mapped_column(String(40), nullable=True)
    window_end_time: Mapped[str | None] = mapped_column(String(40), nullable=True)
    checked_in_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
    checked_out_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
    dwell_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    city: Mapped[str | None] = mapped_column(String(200), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (UniqueConstraint("load_id", "sequence_number", name="uq_stop_sequence"),)


class DispatchLegModel(Base):
    __tablename__ = "dispatch_legs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    load_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("loads.id", ondelete="CASCADE"), nullable=False
    )
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    start_stop_id: Mapped[int] = mapped_column(Integer, ForeignKey("load_stops.id"), nullable=False)
    end_stop_id: Mapped[int] = mapped_column(Integer, ForeignKey("load_stops.id"), nullable=False)
    loaded_miles: Mapped[Decimal] = mapped_column(MILES, nullable=False, default=0)
    empty_miles: Mapped[Decimal] = mapped_column(MILES, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    driver_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    carrier_partnership_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("carrier_partnerships.id"), nullable=True
    )
    truck_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("trucks.id"), nullable=True)
    trailer_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        Index("idx_legs_load", "load_id"),
        Index("idx_legs_driver_status", "driver_id", "status"),
        Index("idx_legs_carrier", "carrier_partnership_id"),
    )


# ─── Resources ───────────────────────────────────────────────────────


class TruckModel(Base):
    __tablename__ = "trucks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    unit_id: Mapped[str] = mapped_column(String(50), nullable=False)
    body_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_location_updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class DriverModel(Base):
    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    employment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="Active")
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    current_truck_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("trucks.id"), nullable=True
    )
    pay_plan_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("pay_plans.id"), nullable=True
    )
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)

    __table_args__ = (Index("idx_drivers_org", "org_id"),)


class CarrierPartnershipModel(Base):
    __tablename__ = "carrier_partnerships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    carrier_name: Mapped[str] = mapped_column(String(200), nullable=False)
    mc_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")
    pay_plan_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("pay_plans.id"), nullable=True
    )


# ─── Rate configuration ──────────────────────────────────────────────


class RateProfileModel(Base):
    __tablename__ = "rate_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    profile_type: Mapped[str] = mapped_column(String(20), nullable=False)
    pay_basis: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_profiles_org_type", "org_id", "profile_type"),)


class RateRuleModel(Base):
    __tablename__ = "rate_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rate_profiles.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    trigger_event: Mapped[str] = mapped_column(String(30), nullable=False)
    rate_amount: Mapped[Decimal] = mapped_column(RATE, nullable=False)
    min_threshold: Mapped[Decimal | None] = mapped_column(RATE, nullable=True)
    max_cap: Mapped[Decimal | None] = mapped_column(RATE, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("idx_rules_profile", "profile_id"),)


class ProfileAssignmentModel(Base):
    __tablename__ = "profile_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payee_type: Mapped[str] = mapped_column(String(20), nullable=False)
    payee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    profile_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rate_profiles.id", ondelete="CASCADE"), nullable=False
    )
    selection_strategy: Mapped[str] = mapped_column(String(30), nullable=False)
    threshold_value: Mapped[Decimal | None] = mapped_column(MILES, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    effective_date: Mapped[str | None] = mapped_column(String(10), nullable=True)

    __table_args__ = (Index("idx_assignments_payee", "payee_type", "payee_id"),)


# ─── Ledger & settlements ────────────────────────────────────────────


class PayPlanModel(Base):
    __tablename__ = "pay_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    period_start_day_of_week: Mapped[str | None] = mapped_column(String(10), nullable=True)
    period_start_day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cutoff_time: Mapped[str] = mapped_column(String(5), nullable=False, default="23:59")
    payment_lag_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payable_trigger: Mapped[str] = mapped_column(String(30), nullable=False)
    auto_carryover: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    include_standalone_adjustments: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class SettlementModel(Base):
    __tablename__ = "settlements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payee_type: Mapped[str] = mapped_column(String(20), nullable=False)
    payee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    period_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    period_end: Mapped[int] = mapped_column(BigInteger, nullable=False)
    statement_number: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="DRAFT")
    pay_plan_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("pay_plans.id"), nullable=True
    )
    pay_plan_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    period_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gross_total: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    total_miles: Mapped[Decimal | None] = mapped_column(MILES, nullable=True)
    total_loads: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_manual_adjustments: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    submitted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    voided_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    voided_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        UniqueConstraint("org_id", "statement_number", name="uq_statement_number"),
        Index("idx_settlements_payee", "payee_type", "payee_id"),
    )


class PayableModel(Base):
    __tablename__ = "payables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payee_type: Mapped[str] = mapped_column(String(20), nullable=False)
    payee_id: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(RATE, nullable=False)
    rate: Mapped[Decimal] = mapped_column(RATE, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    source_type: Mapped[str] = mapped_column(String(10), nullable=False)
    load_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("loads.id", ondelete="SET NULL"), nullable=True
    )
    leg_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("dispatch_legs.id", ondelete="SET NULL"), nullable=True
    )
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    settlement_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("settlements.id", ondelete="SET NULL"), nullable=True
    )
    rule_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("rate_rules.id", ondelete="SET NULL"), nullable=True
    )
    warning_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_rebillable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rebill_customer_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    receipt_storage_key: Mapped[str | None] = mapped_column(String(500), nullable=True)
    approved_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_payables_leg", "leg_id"),
        Index("idx_payables_load", "load_id"),
        Index("idx_payables_settlement", "settlement_id"),
        Index("idx_payables_payee", "payee_type", "payee_id"),
    )


# ─── Auto-assignment & audit ─────────────────────────────────────────


class RouteAssignmentModel(Base):
    __tablename__ = "route_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    hcr: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    trip_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    driver_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    carrier_partnership_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("carrier_partnerships.id"), nullable=True
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_routes_org_hcr", "org_id", "hcr"),)


class AutoAssignmentSettingsModel(Base):
    __tablename__ = "auto_assignment_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    trigger_on_create: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    scheduled_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    schedule_interval_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_scheduled_run_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class AuditLogModel(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    performed_by: Mapped[str] = mapped_column(String(100), nullable=False)
    performed_by_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    changes: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (Index("idx_audit_entity", "entity_type", "entity_id"),)
