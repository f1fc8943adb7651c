"""
db/models/crm.py

Target CRM entities populated by migrations: contacts, properties, leads and
work orders. Every entity is scoped to an organization and may carry the
external reference it was imported from.
"""

from __future__ import annotations

import uuid

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, ExternalReferenceMixin, TimestampMixin


class LeadStage:
    NEW = "new"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"


class LeadTemperature:
    COLD = "cold"
    WARM = "warm"
    HOT = "hot"


class WorkOrderStatus:
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkType:
    INSURANCE_CLAIM = "insurance_claim"
    REPAIR = "repair"
    REPLACEMENT = "replacement"
    INSPECTION = "inspection"
    GUTTERS = "gutters"
    RETAIL = "retail"


class Contact(Base, ExternalReferenceMixin, TimestampMixin):
    __tablename__ = "crm_contacts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_placeholder: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Synthetic contact used when a job's linked contact cannot be resolved",
    )

    __table_args__ = (
        UniqueConstraint("org_id", "external_source", "external_id", name="uq_crm_contacts_org_external"),
        Index("ix_crm_contacts_org_id", "org_id"),
    )

    def __repr__(self) -> str:
        return f"<Contact id={self.id} org_id={self.org_id!r} external_id={self.external_id!r}>"


class Property(Base, ExternalReferenceMixin, TimestampMixin):
    __tablename__ = "crm_properties"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    country: Mapped[str | None] = mapped_column(String(50), nullable=True)
    property_type: Mapped[str] = mapped_column(String(50), nullable=False, default="residential")

    __table_args__ = (
        UniqueConstraint("org_id", "external_source", "external_id", name="uq_crm_properties_org_external"),
        Index("ix_crm_properties_org_id", "org_id"),
    )


class Lead(Base, ExternalReferenceMixin, TimestampMixin):
    __tablename__ = "crm_leads"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("crm_contacts.id", ondelete="CASCADE"),
        nullable=False,
    )
    property_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("crm_properties.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    stage: Mapped[str] = mapped_column(String(32), nullable=False, default=LeadStage.NEW)
    temperature: Mapped[str] = mapped_column(String(16), nullable=False, default=LeadTemperature.COLD)
    value_cents: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
        comment="Estimated value in minor currency units; null when unknown",
    )
    source: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("org_id", "external_source", "external_id", name="uq_crm_leads_org_external"),
        Index("ix_crm_leads_org_id", "org_id"),
        Index("ix_crm_leads_contact_id", "contact_id"),
    )


class WorkOrder(Base, ExternalReferenceMixin, TimestampMixin):
    """
    Execution record for a job on a property.
    """

    __tablename__ = "crm_work_orders"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("crm_properties.id", ondelete="CASCADE"),
        nullable=False,
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("crm_contacts.id", ondelete="SET NULL"),
        nullable=True,
    )
    lead_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("crm_leads.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=WorkOrderStatus.PENDING)
    work_type: Mapped[str] = mapped_column(String(32), nullable=False, default=WorkType.RETAIL)
    value_cents: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("org_id", "external_source", "external_id", name="uq_crm_work_orders_org_external"),
        Index("ix_crm_work_orders_org_id", "org_id"),
        Index("ix_crm_work_orders_property_id", "property_id"),
    )
