"""Initial schema: users, properties, contracts, billing, terminations, settings

Revision ID: 0001
Revises: None
Create Date: 2026-09-28

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_TERMINATION_STATUSES = "status IN ('PENDING', 'ACCOUNTANT_APPROVED', 'OWNER_APPROVED')"


def _money(name: str, nullable: bool = False, default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.Numeric(12, 2),
        nullable=nullable,
        server_default="0" if default else None,
    )


def upgrade() -> None:
    """Create all tables."""

    # --- users (no FK deps) ---
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default="TENANT"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    # --- user_sessions (FK -> users) ---
    op.create_table(
        "user_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("token_jti", sa.String(255), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_user_sessions"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_user_sessions_user_id_users", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_user_sessions_token_jti", "user_sessions", ["token_jti"], unique=True)
    op.create_index("ix_user_sessions_created_at", "user_sessions", ["created_at"])
    op.create_index("ix_user_sessions_expires_at", "user_sessions", ["expires_at"])

    # --- properties (no FK deps) ---
    op.create_table(
        "properties",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("total_units", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_properties"),
    )

    # --- units (FK -> properties) ---
    op.create_table(
        "units",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("unit_number", sa.String(50), nullable=False),
        sa.Column("floor", sa.Integer(), nullable=True),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        sa.Column("bathrooms", sa.Integer(), nullable=True),
        sa.Column("area", sa.Numeric(10, 2), nullable=True),
        _money("monthly_rent", default=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_units"),
        sa.UniqueConstraint("property_id", "unit_number", name="uq_units_property_unit_number"),
        sa.ForeignKeyConstraint(
            ["property_id"], ["properties.id"],
            name="fk_units_property_id_properties", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_units_property_id", "units", ["property_id"])
    op.create_index("ix_units_status", "units", ["status"])

    # --- property_assignments (FK -> users, properties) ---
    op.create_table(
        "property_assignments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("assigned_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_property_assignments"),
        sa.UniqueConstraint("user_id", "property_id", name="uq_property_assignments_user_property"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_property_assignments_user_id_users", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["property_id"], ["properties.id"],
            name="fk_property_assignments_property_id_properties", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["assigned_by"], ["users.id"],
            name="fk_property_assignments_assigned_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_property_assignments_user_id", "property_assignments", ["user_id"])
    op.create_index("ix_property_assignments_property_id", "property_assignments", ["property_id"])

    # --- tenants (FK -> users) ---
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("id_type", sa.String(50), nullable=True),
        sa.Column("id_number", sa.String(100), nullable=True),
        sa.Column("emergency_contact_name", sa.String(255), nullable=True),
        sa.Column("emergency_contact_phone", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_tenants"),
        sa.UniqueConstraint("user_id", name="uq_tenants_user_id"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_tenants_user_id_users", ondelete="SET NULL",
        ),
    )

    # --- contracts (FK -> tenants, properties, users) ---
    op.create_table(
        "contracts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        _money("monthly_rent", default=False),
        _money("security_deposit"),
        _money("advance_payment"),
        _money("remaining_advance"),
        sa.Column("legal_agreement_url", sa.String(500), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="UNDER_REVIEW"),
        sa.Column("termination_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_contracts"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], name="fk_contracts_tenant_id_tenants"),
        sa.ForeignKeyConstraint(
            ["property_id"], ["properties.id"], name="fk_contracts_property_id_properties",
        ),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"],
            name="fk_contracts_created_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_contracts_tenant_id", "contracts", ["tenant_id"])
    op.create_index("ix_contracts_property_id", "contracts", ["property_id"])
    op.create_index("ix_contracts_status", "contracts", ["status"])
    op.create_index("ix_contracts_created_at", "contracts", ["created_at"])

    # --- contract_units (FK -> contracts, units) ---
    op.create_table(
        "contract_units",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_id", sa.Uuid(), nullable=False),
        sa.Column("unit_id", sa.Uuid(), nullable=False),
        _money("monthly_rent", default=False),
        sa.PrimaryKeyConstraint("id", name="pk_contract_units"),
        sa.ForeignKeyConstraint(
            ["contract_id"], ["contracts.id"],
            name="fk_contract_units_contract_id_contracts", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["unit_id"], ["units.id"],
            name="fk_contract_units_unit_id_units", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_contract_units_contract_id", "contract_units", ["contract_id"])
    op.create_index("ix_contract_units_unit_id", "contract_units", ["unit_id"])

    # --- invoices (FK -> contracts) ---
    op.create_table(
        "invoices",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_id", sa.Uuid(), nullable=False),
        sa.Column("invoice_number", sa.String(64), nullable=False),
        _money("amount", default=False),
        _money("tax_amount"),
        sa.Column("tax_rate", sa.Numeric(6, 2), nullable=True),
        _money("total_amount", default=False),
        _money("paid_amount"),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_invoices"),
        sa.ForeignKeyConstraint(
            ["contract_id"], ["contracts.id"],
            name="fk_invoices_contract_id_contracts", ondelete="CASCADE",
        ),
    )
    op.create_index("ix_invoices_invoice_number", "invoices", ["invoice_number"], unique=True)
    op.create_index("ix_invoices_contract_id", "invoices", ["contract_id"])
    op.create_index("ix_invoices_status", "invoices", ["status"])
    op.create_index("ix_invoices_created_at", "invoices", ["created_at"])

    # --- payments (FK -> contracts, invoices, users) ---
    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_id", sa.Uuid(), nullable=False),
        sa.Column("invoice_id", sa.Uuid(), nullable=True),
        _money("amount", default=False),
        sa.Column("payment_type", sa.String(20), nullable=False, server_default="MONTHLY"),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("transaction_id", sa.String(255), nullable=True),
        sa.Column("receipt_url", sa.String(500), nullable=True),
        sa.Column("submitted_by", sa.Uuid(), nullable=True),
        sa.Column("approved_by", sa.Uuid(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        sa.ForeignKeyConstraint(
            ["contract_id"], ["contracts.id"],
            name="fk_payments_contract_id_contracts", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["invoice_id"], ["invoices.id"],
            name="fk_payments_invoice_id_invoices", ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["submitted_by"], ["users.id"],
            name="fk_payments_submitted_by_users", ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["approved_by"], ["users.id"],
            name="fk_payments_approved_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_payments_contract_id", "payments", ["contract_id"])
    op.create_index("ix_payments_invoice_id", "payments", ["invoice_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_created_at", "payments", ["created_at"])

    # --- termination_requests (FK -> contracts, users) ---
    op.create_table(
        "termination_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_id", sa.Uuid(), nullable=False),
        sa.Column("requested_by", sa.Uuid(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        _money("refund_amount"),
        sa.Column("bank_account_number", sa.String(100), nullable=True),
        sa.Column("bank_name", sa.String(255), nullable=True),
        sa.Column("account_holder_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="PENDING"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("receipt_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_termination_requests"),
        sa.ForeignKeyConstraint(
            ["contract_id"], ["contracts.id"],
            name="fk_termination_requests_contract_id_contracts", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["requested_by"], ["users.id"],
            name="fk_termination_requests_requested_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_termination_requests_contract_id", "termination_requests", ["contract_id"])
    op.create_index("ix_termination_requests_status", "termination_requests", ["status"])
    op.create_index("ix_termination_requests_created_at", "termination_requests", ["created_at"])
    # At most one open request per contract
    op.create_index(
        "uq_termination_requests_open_contract",
        "termination_requests",
        ["contract_id"],
        unique=True,
        postgresql_where=sa.text(OPEN_TERMINATION_STATUSES),
        sqlite_where=sa.text(OPEN_TERMINATION_STATUSES),
    )

    # --- termination_history (FK -> termination_requests, users) ---
    op.create_table(
        "termination_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("request_id", sa.Uuid(), nullable=False),
        sa.Column("from_state", sa.String(30), nullable=True),
        sa.Column("to_state", sa.String(30), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_termination_history"),
        sa.ForeignKeyConstraint(
            ["request_id"], ["termination_requests.id"],
            name="fk_termination_history_request_id_termination_requests", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_termination_history_user_id_users", ondelete="SET NULL",
        ),
    )
    op.create_index("ix_termination_history_request_id", "termination_history", ["request_id"])
    op.create_index("ix_termination_history_created_at", "termination_history", ["created_at"])

    # --- system_settings (single row) ---
    op.create_table(
        "system_settings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_self_service_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("advance_payment_max_months", sa.Integer(), nullable=False, server_default="12"),
        sa.Column("late_payment_penalty_percent", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.Column("default_calendar", sa.String(20), nullable=False, server_default="gregorian"),
        sa.Column("sms_notification_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sms_api_key", sa.String(255), nullable=True),
        sa.Column("sms_base_url", sa.String(255), nullable=True),
        sa.Column("sms_sender_id", sa.String(50), nullable=True),
        sa.Column("tax_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tax_name", sa.String(50), nullable=False, server_default="VAT"),
        sa.Column("tax_type", sa.String(20), nullable=False, server_default="PERCENTAGE"),
        sa.Column("tax_rate", sa.Numeric(6, 2), nullable=False, server_default="0"),
        _money("tax_fixed_amount"),
        sa.Column("tax_registration_number", sa.String(100), nullable=True),
        sa.Column("apply_tax_to_invoices", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id", name="pk_system_settings"),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("system_settings")
    op.drop_table("termination_history")
    op.drop_index("uq_termination_requests_open_contract", table_name="termination_requests")
    op.drop_table("termination_requests")
    op.drop_table("payments")
    op.drop_table("invoices")
    op.drop_table("contract_units")
    op.drop_table("contracts")
    op.drop_table("tenants")
    op.drop_table("property_assignments")
    op.drop_table("units")
    op.drop_table("properties")
    op.drop_table("user_sessions")
    op.drop_table("users")
