"""create crm entity and migration ledger tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _external_reference() -> list[sa.Column]:
    return [
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("external_source", sa.String(length=50), nullable=True),
        sa.Column("external_id", sa.String(length=128), nullable=True),
    ]


def _address() -> list[sa.Column]:
    return [
        sa.Column("street", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=50), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=50), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "crm_contacts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_external_reference(),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        *_address(),
        sa.Column("is_placeholder", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", "external_source", "external_id", name="uq_crm_contacts_org_external"),
    )
    op.create_index("ix_crm_contacts_org_id", "crm_contacts", ["org_id"], unique=False)

    op.create_table(
        "crm_properties",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_external_reference(),
        sa.Column("name", sa.String(length=255), nullable=False),
        *_address(),
        sa.Column("property_type", sa.String(length=50), server_default="residential", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", "external_source", "external_id", name="uq_crm_properties_org_external"),
    )
    op.create_index("ix_crm_properties_org_id", "crm_properties", ["org_id"], unique=False)

    op.create_table(
        "crm_leads",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_external_reference(),
        sa.Column("contact_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("stage", sa.String(length=32), server_default="new", nullable=False),
        sa.Column("temperature", sa.String(length=16), server_default="cold", nullable=False),
        sa.Column("value_cents", sa.BigInteger(), nullable=True),
        sa.Column("source", sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["contact_id"], ["crm_contacts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["property_id"], ["crm_properties.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", "external_source", "external_id", name="uq_crm_leads_org_external"),
    )
    op.create_index("ix_crm_leads_org_id", "crm_leads", ["org_id"], unique=False)
    op.create_index("ix_crm_leads_contact_id", "crm_leads", ["contact_id"], unique=False)

    op.create_table(
        "crm_work_orders",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        *_external_reference(),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("contact_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("lead_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), server_default="pending", nullable=False),
        sa.Column("work_type", sa.String(length=32), server_default="retail", nullable=False),
        sa.Column("value_cents", sa.BigInteger(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["crm_properties.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contact_id"], ["crm_contacts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["lead_id"], ["crm_leads.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "org_id",
            "external_source",
            "external_id",
            name="uq_crm_work_orders_org_external",
        ),
    )
    op.create_index("ix_crm_work_orders_org_id", "crm_work_orders", ["org_id"], unique=False)
    op.create_index("ix_crm_work_orders_property_id", "crm_work_orders", ["property_id"], unique=False)

    op.create_table(
        "migration_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("dry_run", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("stats", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("imported_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("skipped_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("error_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_migration_jobs_org_id_created_at",
        "migration_jobs",
        ["org_id", "created_at"],
        unique=False,
    )
    op.create_index("ix_migration_jobs_status", "migration_jobs", ["status"], unique=False)
    op.create_index(
        "uq_migration_jobs_org_running",
        "migration_jobs",
        ["org_id"],
        unique=True,
        postgresql_where=sa.text("status = 'running'"),
    )

    op.create_table(
        "migration_items",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("migration_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("external_id", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("internal_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["migration_id"], ["migration_jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "migration_id",
            "entity_type",
            "external_id",
            name="uq_migration_items_migration_entity_external",
        ),
    )
    op.create_index(
        "ix_migration_items_migration_id_status",
        "migration_items",
        ["migration_id", "status"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_migration_items_migration_id_status", table_name="migration_items")
    op.drop_table("migration_items")
    op.drop_index("uq_migration_jobs_org_running", table_name="migration_jobs")
    op.drop_index("ix_migration_jobs_status", table_name="migration_jobs")
    op.drop_index("ix_migration_jobs_org_id_created_at", table_name="migration_jobs")
    op.drop_table("migration_jobs")
    op.drop_index("ix_crm_work_orders_property_id", table_name="crm_work_orders")
    op.drop_index("ix_crm_work_orders_org_id", table_name="crm_work_orders")
    op.drop_table("crm_work_orders")
    op.drop_index("ix_crm_leads_contact_id", table_name="crm_leads")
    op.drop_index("ix_crm_leads_org_id", table_name="crm_leads")
    op.drop_table("crm_leads")
    op.drop_index("ix_crm_properties_org_id", table_name="crm_properties")
    op.drop_table("crm_properties")
    op.drop_index("ix_crm_contacts_org_id", table_name="crm_contacts")
    op.drop_table("crm_contacts")
