"""Create tenant and shipping pipeline tables.

Revision ID: c3f1a2b4d5e6
Revises:
Create Date: 2025-06-01
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "c3f1a2b4d5e6"
down_revision = None
branch_labels = None
depends_on = None

customerstatus = sa.Enum("active", "inactive", "suspended", "pending", name="customerstatus")
customeruserrole = sa.Enum("admin", "user", "viewer", name="customeruserrole")
customeruserstatus = sa.Enum("active", "inactive", "pending", name="customeruserstatus")
leadstatus = sa.Enum("lead", "quote", "order", "dispatch", "completed", "cancelled", name="leadstatus")
leadpriority = sa.Enum("low", "normal", "high", "urgent", name="leadpriority")
trailertype = sa.Enum("open", "enclosed", name="trailertype")
vehiclecondition = sa.Enum("run", "inop", name="vehiclecondition")
quotestatus = sa.Enum("draft", "sent", "accepted", "rejected", "expired", name="quotestatus")
contracttype = sa.Enum("standard", "with_cc", "without_cc", name="contracttype")
orderstatus = sa.Enum(
    "pending_signature",
    "signed",
    "in_progress",
    "change_requested",
    "cancelled",
    name="orderstatus",
)
dispatchstatus = sa.Enum("assigned", "in_transit", "delivered", "completed", name="dispatchstatus")


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _money(name):
    return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default="0")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("admin_name", sa.String(length=160), nullable=False),
        sa.Column("admin_email", sa.String(length=255), nullable=False),
        sa.Column("status", customerstatus, nullable=False, server_default="active"),
        *_timestamps(),
        sa.UniqueConstraint("domain", name="uq_customers_domain"),
    )

    op.create_table(
        "customer_users",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=80), nullable=False),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("role", customeruserrole, nullable=False, server_default="user"),
        sa.Column("status", customeruserstatus, nullable=False, server_default="active"),
        *_timestamps(),
        sa.UniqueConstraint("customer_id", "email", name="uq_customer_users_customer_email"),
    )

    op.create_table(
        "leads",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "assigned_user_id",
            _uuid(),
            sa.ForeignKey("customer_users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("public_id", sa.String(length=10), nullable=False),
        sa.Column("contact_name", sa.String(length=160), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=40), nullable=False),
        _money("carrier_fees"),
        _money("broker_fees"),
        _money("total_tariff"),
        sa.Column("vehicle_year", sa.String(length=4), nullable=True),
        sa.Column("vehicle_make", sa.String(length=80), nullable=True),
        sa.Column("vehicle_model", sa.String(length=80), nullable=True),
        sa.Column("vehicle_type", sa.String(length=40), nullable=True),
        sa.Column("trailer_type", trailertype, nullable=False, server_default="open"),
        sa.Column("condition", vehiclecondition, nullable=False, server_default="run"),
        sa.Column("origin", sa.String(length=255), nullable=False),
        sa.Column("origin_zipcode", sa.String(length=12), nullable=True),
        sa.Column("destination", sa.String(length=255), nullable=False),
        sa.Column("destination_zipcode", sa.String(length=12), nullable=True),
        sa.Column("pickup_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", leadstatus, nullable=False, server_default="lead"),
        sa.Column("priority", leadpriority, nullable=False, server_default="normal"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=500), nullable=False, server_default="manual"),
        sa.Column("external_id", sa.String(length=120), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("public_id", name="uq_leads_public_id"),
        sa.UniqueConstraint("customer_id", "external_id", name="uq_leads_customer_external_id"),
    )
    op.create_index("ix_leads_customer_status", "leads", ["customer_id", "status"])
    op.create_index("ix_leads_assigned_user", "leads", ["assigned_user_id"])

    op.create_table(
        "quotes",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("lead_id", _uuid(), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("public_id", sa.String(length=10), nullable=False),
        sa.Column(
            "created_by_user_id",
            _uuid(),
            sa.ForeignKey("customer_users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _money("carrier_fees"),
        _money("broker_fees"),
        _money("total_tariff"),
        sa.Column("pickup_person_name", sa.String(length=160), nullable=True),
        sa.Column("pickup_person_phone", sa.String(length=40), nullable=True),
        sa.Column("pickup_address", sa.Text(), nullable=True),
        sa.Column("pickup_zip", sa.String(length=12), nullable=True),
        sa.Column("pickup_contacts", sa.JSON(), nullable=True),
        sa.Column("dropoff_person_name", sa.String(length=160), nullable=True),
        sa.Column("dropoff_person_phone", sa.String(length=40), nullable=True),
        sa.Column("dropoff_address", sa.Text(), nullable=True),
        sa.Column("dropoff_zip", sa.String(length=12), nullable=True),
        sa.Column("dropoff_contacts", sa.JSON(), nullable=True),
        sa.Column("special_terms", sa.Text(), nullable=True),
        sa.Column("standard_terms", sa.Text(), nullable=True),
        sa.Column("status", quotestatus, nullable=False, server_default="draft"),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("lead_id", name="uq_quotes_lead_id"),
        sa.UniqueConstraint("public_id", name="uq_quotes_public_id"),
    )
    op.create_index("ix_quotes_customer_status", "quotes", ["customer_id", "status"])

    op.create_table(
        "orders",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("quote_id", _uuid(), sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("lead_id", _uuid(), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("public_id", sa.String(length=10), nullable=False),
        sa.Column("contract_type", contracttype, nullable=False, server_default="standard"),
        sa.Column("contract_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("contract_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("contract_signed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("contract_signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("signature_data", sa.Text(), nullable=True),
        sa.Column("change_orders", sa.JSON(), nullable=True),
        sa.Column("status", orderstatus, nullable=False, server_default="pending_signature"),
        *_timestamps(),
        sa.UniqueConstraint("quote_id", name="uq_orders_quote_id"),
        sa.UniqueConstraint("public_id", name="uq_orders_public_id"),
    )
    op.create_index("ix_orders_customer_status", "orders", ["customer_id", "status"])

    op.create_table(
        "dispatches",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("order_id", _uuid(), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("lead_id", _uuid(), sa.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("customer_id", _uuid(), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("public_id", sa.String(length=10), nullable=False),
        sa.Column("carrier_name", sa.String(length=160), nullable=True),
        sa.Column("carrier_phone", sa.String(length=40), nullable=True),
        sa.Column("carrier_email", sa.String(length=255), nullable=True),
        sa.Column("driver_name", sa.String(length=160), nullable=True),
        sa.Column("driver_phone", sa.String(length=40), nullable=True),
        sa.Column("truck_info", sa.String(length=255), nullable=True),
        sa.Column("status", dispatchstatus, nullable=False, server_default="assigned"),
        sa.Column("pickup_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_pickup_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_delivery_date", sa.DateTime(timezone=True), nullable=True),
        _money("final_carrier_fees"),
        _money("final_broker_fees"),
        _money("final_total_tariff"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("order_id", name="uq_dispatches_order_id"),
        sa.UniqueConstraint("public_id", name="uq_dispatches_public_id"),
    )
    op.create_index("ix_dispatches_customer_status", "dispatches", ["customer_id", "status"])


def downgrade() -> None:
    op.drop_index("ix_dispatches_customer_status", table_name="dispatches")
    op.drop_table("dispatches")
    op.drop_index("ix_orders_customer_status", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_quotes_customer_status", table_name="quotes")
    op.drop_table("quotes")
    op.drop_index("ix_leads_assigned_user", table_name="leads")
    op.drop_index("ix_leads_customer_status", table_name="leads")
    op.drop_table("leads")
    op.drop_table("customer_users")
    op.drop_table("customers")

    bind = op.get_bind()
    for enum_type in (
        dispatchstatus,
        orderstatus,
        contracttype,
        quotestatus,
        vehiclecondition,
        trailertype,
        leadpriority,
        leadstatus,
        customeruserstatus,
        customeruserrole,
        customerstatus,
    ):
        enum_type.drop(bind, checkfirst=True)
