"""Initial schema — loads, legs, rate configuration, ledger and settlements.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(12, 2)
MILES = sa.Numeric(10, 2)
RATE = sa.Numeric(12, 4)


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer, primary_key=True, autoincrement=True)


def _org() -> sa.Column:
    return sa.Column("org_id", sa.String(64), nullable=False)


def _ms(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.BigInteger, nullable=nullable)


def upgrade() -> None:
    # Pay plans
    op.create_table(
        "pay_plans",
        _id(),
        _org(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("frequency", sa.String(20), nullable=False),
        sa.Column("period_start_day_of_week", sa.String(10), nullable=True),
        sa.Column("period_start_day_of_month", sa.Integer, nullable=True),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("cutoff_time", sa.String(5), nullable=False, server_default="23:59"),
        sa.Column("payment_lag_days", sa.Integer, nullable=False, server_default="0"),
        sa.Column("payable_trigger", sa.String(30), nullable=False),
        sa.Column("auto_carryover", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "include_standalone_adjustments", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("description", sa.Text, nullable=True),
    )

    # Resources
    op.create_table(
        "trucks",
        _id(),
        _org(),
        sa.Column("unit_id", sa.String(50), nullable=False),
        sa.Column("body_type", sa.String(50), nullable=True),
        sa.Column("last_latitude", sa.Float, nullable=True),
        sa.Column("last_longitude", sa.Float, nullable=True),
        _ms("last_location_updated_at"),
    )
    op.create_table(
        "drivers",
        _id(),
        _org(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("employment_status", sa.String(20), nullable=False, server_default="Active"),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("current_truck_id", sa.Integer, sa.ForeignKey("trucks.id"), nullable=True),
        sa.Column("pay_plan_id", sa.Integer, sa.ForeignKey("pay_plans.id"), nullable=True),
        sa.Column("phone", sa.String(40), nullable=True),
    )
    op.create_index("idx_drivers_org", "drivers", ["org_id"])
    op.create_table(
        "carrier_partnerships",
        _id(),
        _org(),
        sa.Column("carrier_name", sa.String(200), nullable=False),
        sa.Column("mc_number", sa.String(20), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="ACTIVE"),
        sa.Column("pay_plan_id", sa.Integer, sa.ForeignKey("pay_plans.id"), nullable=True),
    )

    # Loads, stops and legs
    op.create_table(
        "loads",
        _id(),
        _org(),
        sa.Column("internal_id", sa.String(64), nullable=False),
        sa.Column("order_number", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Open"),
        sa.Column("effective_miles", MILES, nullable=False, server_default="0"),
        sa.Column("is_hazmat", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("requires_tarp", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("invoice_total", MONEY, nullable=True),
        sa.Column("primary_driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column(
            "primary_carrier_partnership_id",
            sa.Integer,
            sa.ForeignKey("carrier_partnerships.id"),
            nullable=True,
        ),
        sa.Column("parsed_hcr", sa.String(50), nullable=True),
        sa.Column("parsed_trip_number", sa.String(50), nullable=True),
        sa.Column("is_held", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("held_reason", sa.Text, nullable=True),
        _ms("held_at"),
        sa.Column("held_by", sa.String(100), nullable=True),
        _ms("created_at"),
        _ms("updated_at"),
    )
    op.create_index("idx_loads_org_status", "loads", ["org_id", "status"])
    op.create_index("idx_loads_hcr", "loads", ["org_id", "parsed_hcr"])

    op.create_table(
        "load_stops",
        _id(),
        sa.Column(
            "load_id", sa.Integer, sa.ForeignKey("loads.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("sequence_number", sa.Integer, nullable=False),
        sa.Column("stop_type", sa.String(20), nullable=False),
        sa.Column("window_begin_date", sa.String(40), nullable=True),
        sa.Column("window_begin_time", sa.String(40), nullable=True),
        sa.Column("window_end_date", sa.String(40), nullable=True),
        sa.Column("window_end_time", sa.String(40), nullable=True),
        sa.Column("checked_in_at", sa.String(40), nullable=True),
        sa.Column("checked_out_at", sa.String(40), nullable=True),
        sa.Column("dwell_minutes", sa.Integer, nullable=True),
        sa.Column("city", sa.String(200), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.UniqueConstraint("load_id", "sequence_number", name="uq_stop_sequence"),
    )

    op.create_table(
        "dispatch_legs",
        _id(),
        sa.Column(
            "load_id", sa.Integer, sa.ForeignKey("loads.id", ondelete="CASCADE"), nullable=False
        ),
        _org(),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("start_stop_id", sa.Integer, sa.ForeignKey("load_stops.id"), nullable=False),
        sa.Column("end_stop_id", sa.Integer, sa.ForeignKey("load_stops.id"), nullable=False),
        sa.Column("loaded_miles", MILES, nullable=False, server_default="0"),
        sa.Column("empty_miles", MILES, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column(
            "carrier_partnership_id",
            sa.Integer,
            sa.ForeignKey("carrier_partnerships.id"),
            nullable=True,
        ),
        sa.Column("truck_id", sa.Integer, sa.ForeignKey("trucks.id"), nullable=True),
        sa.Column("trailer_id", sa.Integer, nullable=True),
        _ms("completed_at"),
        _ms("created_at"),
        _ms("updated_at"),
    )
    op.create_index("idx_legs_load", "dispatch_legs", ["load_id"])
    op.create_index("idx_legs_driver_status", "dispatch_legs", ["driver_id", "status"])
    op.create_index("idx_legs_carrier", "dispatch_legs", ["carrier_partnership_id"])

    # Rate configuration
    op.create_table(
        "rate_profiles",
        _id(),
        _org(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("profile_type", sa.String(20), nullable=False),
        sa.Column("pay_basis", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_default", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("description", sa.Text, nullable=True),
    )
    op.create_index("idx_profiles_org_type", "rate_profiles", ["org_id", "profile_type"])

    op.create_table(
        "rate_rules",
        _id(),
        sa.Column(
            "profile_id",
            sa.Integer,
            sa.ForeignKey("rate_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("trigger_event", sa.String(30), nullable=False),
        sa.Column("rate_amount", RATE, nullable=False),
        sa.Column("min_threshold", RATE, nullable=True),
        sa.Column("max_cap", RATE, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_index("idx_rules_profile", "rate_rules", ["profile_id"])

    op.create_table(
        "profile_assignments",
        _id(),
        _org(),
        sa.Column("payee_type", sa.String(20), nullable=False),
        sa.Column("payee_id", sa.Integer, nullable=False),
        sa.Column(
            "profile_id",
            sa.Integer,
            sa.ForeignKey("rate_profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("selection_strategy", sa.String(30), nullable=False),
        sa.Column("threshold_value", MILES, nullable=True),
        sa.Column("is_default", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("effective_date", sa.String(10), nullable=True),
    )
    op.create_index("idx_assignments_payee", "profile_assignments", ["payee_type", "payee_id"])

    # Settlements and the payable ledger
    op.create_table(
        "settlements",
        _id(),
        _org(),
        sa.Column("payee_type", sa.String(20), nullable=False),
        sa.Column("payee_id", sa.Integer, nullable=False),
        _ms("period_start", nullable=False),
        _ms("period_end", nullable=False),
        sa.Column("statement_number", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="DRAFT"),
        sa.Column("pay_plan_id", sa.Integer, sa.ForeignKey("pay_plans.id"), nullable=True),
        sa.Column("pay_plan_name", sa.String(200), nullable=True),
        sa.Column("period_number", sa.Integer, nullable=True),
        sa.Column("gross_total", MONEY, nullable=True),
        sa.Column("total_miles", MILES, nullable=True),
        sa.Column("total_loads", sa.Integer, nullable=True),
        sa.Column("total_manual_adjustments", MONEY, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        _ms("submitted_at"),
        sa.Column("submitted_by", sa.String(100), nullable=True),
        _ms("approved_at"),
        sa.Column("approved_by", sa.String(100), nullable=True),
        _ms("paid_at"),
        sa.Column("paid_by", sa.String(100), nullable=True),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("payment_reference", sa.String(100), nullable=True),
        _ms("voided_at"),
        sa.Column("voided_by", sa.String(100), nullable=True),
        sa.Column("void_reason", sa.Text, nullable=True),
        _ms("created_at"),
        _ms("updated_at"),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.UniqueConstraint("org_id", "statement_number", name="uq_statement_number"),
    )
    op.create_index("idx_settlements_payee", "settlements", ["payee_type", "payee_id"])

    op.create_table(
        "payables",
        _id(),
        _org(),
        sa.Column("payee_type", sa.String(20), nullable=False),
        sa.Column("payee_id", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("quantity", RATE, nullable=False),
        sa.Column("rate", RATE, nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("source_type", sa.String(10), nullable=False),
        sa.Column(
            "load_id", sa.Integer, sa.ForeignKey("loads.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column(
            "leg_id",
            sa.Integer,
            sa.ForeignKey("dispatch_legs.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_locked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "settlement_id",
            sa.Integer,
            sa.ForeignKey("settlements.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "rule_id",
            sa.Integer,
            sa.ForeignKey("rate_rules.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("warning_message", sa.Text, nullable=True),
        sa.Column("is_rebillable", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("rebill_customer_id", sa.Integer, nullable=True),
        sa.Column("receipt_storage_key", sa.String(500), nullable=True),
        _ms("approved_at"),
        _ms("created_at"),
        _ms("updated_at"),
        sa.Column("created_by", sa.String(100), nullable=True),
    )
    op.create_index("idx_payables_leg", "payables", ["leg_id"])
    op.create_index("idx_payables_load", "payables", ["load_id"])
    op.create_index("idx_payables_settlement", "payables", ["settlement_id"])
    op.create_index("idx_payables_payee", "payables", ["payee_type", "payee_id"])

    # Auto-assignment
    op.create_table(
        "route_assignments",
        _id(),
        _org(),
        sa.Column("hcr", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("trip_number", sa.String(50), nullable=True),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column(
            "carrier_partnership_id",
            sa.Integer,
            sa.ForeignKey("carrier_partnerships.id"),
            nullable=True,
        ),
        sa.Column("priority", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text, nullable=True),
    )
    op.create_index("idx_routes_org_hcr", "route_assignments", ["org_id", "hcr"])

    op.create_table(
        "auto_assignment_settings",
        _id(),
        sa.Column("org_id", sa.String(64), unique=True, nullable=False),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("trigger_on_create", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("scheduled_enabled", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("schedule_interval_minutes", sa.Integer, nullable=True),
        _ms("last_scheduled_run_at"),
    )

    # Audit trail
    op.create_table(
        "audit_log",
        _id(),
        _org(),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("entity_name", sa.String(200), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("performed_by", sa.String(100), nullable=False),
        sa.Column("performed_by_name", sa.String(200), nullable=True),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("changes", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        _ms("created_at", nullable=False),
    )
    op.create_index("idx_audit_entity", "audit_log", ["entity_type", "entity_id"])


def downgrade() -> None:
    for table in (
        "audit_log",
        "auto_assignment_settings",
        "route_assignments",
        "payables",
        "settlements",
        "profile_assignments",
        "rate_rules",
        "rate_profiles",
        "dispatch_legs",
        "load_stops",
        "loads",
        "carrier_partnerships",
        "drivers",
        "trucks",
        "pay_plans",
    ):
        op.drop_table(table)
