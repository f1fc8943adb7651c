"""
db/models/migration_item.py

Audit ledger row: the outcome of processing one external record for one
entity type during one migration run. Rows are append-only.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import EXTERNAL_ID_MAX_LENGTH, Base, SequenceIdType


class MigrationEntityType:
    CONTACT = "contact"
    PROPERTY = "property"
    LEAD = "lead"
    JOB = "job"

    ALL = (CONTACT, PROPERTY, LEAD, JOB)


class MigrationItemStatus:
    IMPORTED = "imported"
    SKIPPED = "skipped"
    ERROR = "error"


class MigrationItem(Base):
    __tablename__ = "migration_items"

    id: Mapped[int] = mapped_column(
        SequenceIdType,
        primary_key=True,
        autoincrement=True,
        comment="Monotonic sequence; reflects ledger write order",
    )
    migration_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("migration_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    external_id: Mapped[str] = mapped_column(String(EXTERNAL_ID_MAX_LENGTH), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    internal_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "migration_id",
            "entity_type",
            "external_id",
            name="uq_migration_items_migration_entity_external",
        ),
        Index("ix_migration_items_migration_id_status", "migration_id", "status"),
    )
