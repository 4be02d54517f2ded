"""billing schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


property_status = postgresql.ENUM("active", "inactive", name="property_status", create_type=False)
provider_status = postgresql.ENUM(
    "active", "inactive", "pending", "suspended", name="provider_status", create_type=False
)
invoice_status = postgresql.ENUM(
    "draft", "sent", "paid", "overdue", "cancelled", name="invoice_status", create_type=False
)


def upgrade() -> None:
    property_status.create(op.get_bind(), checkfirst=True)
    provider_status.create(op.get_bind(), checkfirst=True)
    invoice_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "properties",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", property_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "providers",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("business_name", sa.String(length=255), nullable=True),
        sa.Column("service", sa.String(length=255), nullable=True),
        sa.Column("status", provider_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "provider_properties",
        sa.Column("provider_id", sa.String(length=64), sa.ForeignKey("providers.id"), primary_key=True),
        sa.Column("property_id", sa.String(length=64), sa.ForeignKey("properties.id"), primary_key=True),
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("invoice_number", sa.String(length=128), nullable=False),
        sa.Column("property_id", sa.String(length=64), nullable=False),
        sa.Column("provider_id", sa.String(length=64), nullable=False),
        sa.Column("issue_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", invoice_status, nullable=False, server_default="draft"),
        sa.Column("subtotal", sa.Numeric(14, 2), nullable=False),
        sa.Column("tax", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.CheckConstraint("subtotal >= 0", name="ck_invoices_subtotal_non_negative"),
        sa.CheckConstraint("tax >= 0", name="ck_invoices_tax_non_negative"),
        sa.CheckConstraint("total >= 0", name="ck_invoices_total_non_negative"),
    )
    op.create_index("ix_invoices_property_issue_date", "invoices", ["property_id", "issue_date"])
    op.create_index("ix_invoices_provider_issue_date", "invoices", ["provider_id", "issue_date"])


def downgrade() -> None:
    op.drop_index("ix_invoices_provider_issue_date", table_name="invoices")
    op.drop_index("ix_invoices_property_issue_date", table_name="invoices")
    op.drop_table("invoices")
    op.drop_table("provider_properties")
    op.drop_table("providers")
    op.drop_table("properties")

    invoice_status.drop(op.get_bind(), checkfirst=True)
    provider_status.drop(op.get_bind(), checkfirst=True)
    property_status.drop(op.get_bind(), checkfirst=True)
