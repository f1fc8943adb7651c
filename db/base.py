"""
db/base.py

Declarative base and shared mixins for all SQLAlchemy models.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (the test suite runs on SQLite).
JSONType = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
SequenceIdType = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """
    Project-wide declarative base.
    All models must inherit from this class.
    """

    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at to any model.
    updated_at is automatically refreshed on every UPDATE via onupdate.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )


EXTERNAL_ID_MAX_LENGTH = 128


class ExternalReferenceMixin:
    """
    Mixin for rows that may originate from an external system.

    ``(org_id, external_source, external_id)`` is the de-duplication key for
    migrated rows; each model declares its own unique constraint over it.
    """

    org_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Owning organization",
    )
    external_source: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Source system name when created by migration, e.g. acculynx",
    )
    external_id: Mapped[str | None] = mapped_column(
        String(EXTERNAL_ID_MAX_LENGTH),
        nullable=True,
        comment="Record id in the source system",
    )
