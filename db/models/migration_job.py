"""
db/models/migration_job.py

Migration job model: one row per migration run against an external CRM.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin


class MigrationSource:
    ACCULYNX = "acculynx"


class MigrationJobStatus:
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class MigrationJob(Base, TimestampMixin):
    __tablename__ = "migration_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    org_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    source: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="External system the run imports from",
    )
    dry_run: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=MigrationJobStatus.RUNNING,
    )
    stats: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Per entity type imported/skipped/errors counts",
    )
    imported_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[str] | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Per-record and fatal error messages collected during the run",
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Fatal error that terminated the run",
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_migration_jobs_org_id_created_at", "org_id", "created_at"),
        Index("ix_migration_jobs_status", "status"),
        Index(
            "uq_migration_jobs_org_running",
            "org_id",
            unique=True,
            postgresql_where=text("status = 'running'"),
            sqlite_where=text("status = 'running'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<MigrationJob id={self.id} org_id={self.org_id!r} status={self.status!r}>"
