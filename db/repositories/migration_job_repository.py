"""
Repository for migration job lifecycle persistence and run history lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models.migration_job import MigrationJob, MigrationJobStatus
from db.repositories.errors import (
    ActiveMigrationExistsError,
    MigrationJobNotFoundError,
    MigrationJobStateError,
)


class MigrationJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        org_id: str,
        user_id: str,
        source: str,
        dry_run: bool = False,
    ) -> MigrationJob:
        job = MigrationJob(
            org_id=org_id,
            user_id=user_id,
            source=source,
            dry_run=dry_run,
            status=MigrationJobStatus.RUNNING,
            started_at=datetime.now(timezone.utc),
            imported_count=0,
            skipped_count=0,
            error_count=0,
        )
        self._session.add(job)
        try:
            self._session.flush()
        except IntegrityError as exc:
            # uq_migration_jobs_org_running: at most one running job per organization.
            raise ActiveMigrationExistsError(f"A migration is already running for org {org_id}") from exc
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> MigrationJob | None:
        return self._session.get(MigrationJob, job_id)

    def get_job_or_raise(self, job_id: uuid.UUID) -> MigrationJob:
        job = self.get_job(job_id)
        if job is None:
            raise MigrationJobNotFoundError(f"Migration job not found: {job_id}")
        return job

    def get_active_job(self, *, org_id: str) -> MigrationJob | None:
        stmt = (
            select(MigrationJob)
            .where(MigrationJob.org_id == org_id)
            .where(MigrationJob.status == MigrationJobStatus.RUNNING)
            .order_by(MigrationJob.created_at.desc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def list_jobs(
        self,
        *,
        org_id: str,
        limit: int = 100,
        status: str | None = None,
    ) -> list[MigrationJob]:
        stmt: Select[tuple[MigrationJob]] = select(MigrationJob).where(MigrationJob.org_id == org_id)

        if status:
            stmt = stmt.where(MigrationJob.status == status)

        stmt = stmt.order_by(MigrationJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        stats: dict[str, dict[str, int]],
        errors: list[str],
    ) -> MigrationJob:
        """
        Move a running job to ``completed``.

        Raises ``MigrationJobStateError`` when the job already reached a
        terminal status, e.g. it was expired as stale while still working.
        """

        return self._finish(
            job_id,
            status=MigrationJobStatus.COMPLETED,
            error_message=None,
            **self._stats_values(stats=stats, errors=errors),
        )

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
        stats: dict[str, dict[str, int]] | None = None,
        errors: list[str] | None = None,
    ) -> MigrationJob:
        return self._finish(
            job_id,
            status=MigrationJobStatus.FAILED,
            error_message=error_message,
            **self._stats_values(
                stats=stats or {},
                errors=errors if errors is not None else [error_message],
            ),
        )

    def _finish(self, job_id: uuid.UUID, **values: Any) -> MigrationJob:
        # Conditional on status so a job finalized by another session stays as it is.
        stmt = (
            update(MigrationJob)
            .where(MigrationJob.id == job_id)
            .where(MigrationJob.status == MigrationJobStatus.RUNNING)
            .values(completed_at=datetime.now(timezone.utc), **values)
            .execution_options(synchronize_session=False)
        )
        updated = self._session.execute(stmt).rowcount
        job = self._session.get(MigrationJob, job_id, populate_existing=True)
        if job is None:
            raise MigrationJobNotFoundError(f"Migration job not found: {job_id}")
        if updated == 0:
            raise MigrationJobStateError(
                f"Migration job {job_id} is already {job.status}; cannot mark it {values['status']}"
            )
        return job

    @staticmethod
    def _stats_values(*, stats: dict[str, Any], errors: list[str]) -> dict[str, Any]:
        return {
            "stats": stats,
            "errors": list(errors),
            "imported_count": sum(counts.get("imported", 0) for counts in stats.values()),
            "skipped_count": sum(counts.get("skipped", 0) for counts in stats.values()),
            "error_count": sum(counts.get("errors", 0) for counts in stats.values()),
        }
