"""
app/services/migration_service.py

Orchestration service for AccuLynx to CRM migration runs.

Phases run strictly in order: every contact is processed before the first
job. Each job fans out into a property, a lead and a work order. Every
external record read produces one ledger row per entity type it feeds, and
each per-record outcome is committed on its own so one bad record never
blocks the rest of the run.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_acculynx_settings, get_external_http_settings, get_migration_settings
from app.connectors import AccuLynxConnector
from app.domain.crm_payloads import JobFanOut
from app.domain.migration import STATS_KEYS, MigrationRequest, MigrationResult, MigrationStats
from app.logging_utils import log_event
from app.mappers import PLACEHOLDER_EXTERNAL_ID, AccuLynxMapper, record_external_id
from app.services.placeholder_cache import PlaceholderContactCache
from db.models.crm import Contact, Lead, Property, WorkOrder
from db.models.migration_item import MigrationEntityType, MigrationItem, MigrationItemStatus
from db.models.migration_job import MigrationJob
from db.repositories import (
    ActiveMigrationExistsError,
    CRMRepository,
    LedgerCounts,
    MigrationItemRepository,
    MigrationJobRepository,
    MigrationJobStateError,
)
from db.session import SessionLocal

logger = logging.getLogger(__name__)

ConnectorFactory = Callable[[str, "str | None"], AccuLynxConnector]
StepOutcome = tuple[str, "uuid.UUID | None"]

PROPERTY_UNRESOLVED_MESSAGE = "dependency unresolved: property"
CONTACT_UNRESOLVED_MESSAGE = "dependency unresolved: contact"
ABANDONED_RUN_MESSAGE = "Abandoned: run exceeded the stale run window"


class MigrationConnectionError(RuntimeError):
    """
    Raised when the external API rejects the credential before any import.
    """


def build_acculynx_connector(credential: str, base_url: str | None) -> AccuLynxConnector:
    return AccuLynxConnector(
        api_key=credential,
        settings=get_acculynx_settings(),
        http_settings=get_external_http_settings(),
        base_url=base_url,
    )


@dataclass
class _MigrationRun:
    """
    Mutable state of one in-flight migration run.
    """

    db: Session
    job_id: uuid.UUID
    org_id: str
    source: str
    stats: MigrationStats = field(default_factory=MigrationStats)
    errors: list[str] = field(default_factory=list)
    placeholders: PlaceholderContactCache = field(default_factory=PlaceholderContactCache)
    crm: CRMRepository = field(init=False)
    ledger: MigrationItemRepository = field(init=False)

    def __post_init__(self) -> None:
        self.crm = CRMRepository(self.db)
        self.ledger = MigrationItemRepository(self.db)

    def find_existing(self, model: type[Any], external_id: str) -> uuid.UUID | None:
        return self.crm.find_id_by_external_ref(
            model,
            org_id=self.org_id,
            external_source=self.source,
            external_id=external_id,
        )


class MigrationService:
    """
    Coordinates the AccuLynx connector, the mapper and the audit ledger.
    """

    def __init__(
        self,
        *,
        connector_factory: ConnectorFactory,
        mapper: AccuLynxMapper,
        source: str,
        stale_run_minutes: int,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._connector_factory = connector_factory
        self._mapper = mapper
        self._source = source
        self._stale_after = timedelta(minutes=max(1, stale_run_minutes))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def run_migration(self, request: MigrationRequest, *, db: Session) -> MigrationResult:
        """
        Run one migration for ``request.org_id`` and return its summary.

        Raises ``ActiveMigrationExistsError`` when the organization already has
        a live run. Every other failure is recorded on the job and reported
        through ``MigrationResult.success``.
        """

        started = time.monotonic()
        jobs = MigrationJobRepository(db)

        self._ensure_no_active_run(db, org_id=request.org_id)
        try:
            job = jobs.create_job(
                org_id=request.org_id,
                user_id=request.user_id,
                source=self._source,
                dry_run=request.dry_run,
            )
            db.commit()
        except ActiveMigrationExistsError:
            db.rollback()
            raise

        run = _MigrationRun(db=db, job_id=job.id, org_id=request.org_id, source=self._source)
        log_event(
            logger,
            logging.INFO,
            "migration.started",
            migration_id=job.id,
            org_id=request.org_id,
            user_id=request.user_id,
            source=self._source,
            dry_run=request.dry_run,
        )

        try:
            connector = self._connector_factory(request.credential, request.base_url_override)
            check = connector.test_connection()
            if not check.ok:
                raise MigrationConnectionError(f"Connection check failed: {check.error or 'unknown error'}")

            if not request.dry_run:
                self._import_contacts(run, connector)
                self._import_jobs(run, connector)

            jobs.mark_completed(job_id=run.job_id, stats=run.stats.as_dict(), errors=run.errors)
            db.commit()
        except MigrationJobStateError as exc:
            db.rollback()
            return self._lost_run(run, exc, started=started)
        except Exception as exc:
            db.rollback()
            return self._fail_run(run, exc, started=started)

        result = MigrationResult(
            success=True,
            migration_id=run.job_id,
            stats=run.stats.as_dict(),
            errors=list(run.errors),
            duration_ms=_elapsed_ms(started),
        )
        log_event(
            logger,
            logging.INFO,
            "migration.completed",
            migration_id=run.job_id,
            org_id=run.org_id,
            stats=result.stats,
            error_count=len(result.errors),
            duration_ms=result.duration_ms,
        )
        return result

    def get_job(self, *, db: Session, job_id: uuid.UUID) -> MigrationJob | None:
        return MigrationJobRepository(db).get_job(job_id)

    def list_jobs(
        self,
        *,
        db: Session,
        org_id: str,
        status: str | None = None,
        limit: int = 100,
    ) -> list[MigrationJob]:
        return MigrationJobRepository(db).list_jobs(org_id=org_id, status=status, limit=limit)

    def list_items(
        self,
        *,
        db: Session,
        job_id: uuid.UUID,
        entity_type: str | None = None,
        status: str | None = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[MigrationItem]:
        MigrationJobRepository(db).get_job_or_raise(job_id)
        return MigrationItemRepository(db).list_items(
            migration_id=job_id,
            entity_type=entity_type,
            status=status,
            limit=limit,
            offset=offset,
        )

    def summarize(self, *, db: Session, job_id: uuid.UUID) -> dict[str, dict[str, int]]:
        """
        Per entity type counts rebuilt from the ledger, keyed like run stats.
        """

        MigrationJobRepository(db).get_job_or_raise(job_id)
        counts = MigrationItemRepository(db).summarize(migration_id=job_id)
        return {
            STATS_KEYS[entity_type]: counts.get(entity_type, LedgerCounts()).as_dict()
            for entity_type in MigrationEntityType.ALL
        }

    def _ensure_no_active_run(self, db: Session, *, org_id: str) -> None:
        jobs = MigrationJobRepository(db)
        active = jobs.get_active_job(org_id=org_id)
        if active is None:
            return

        started_at = _as_utc(active.started_at or active.created_at)
        if started_at is not None and self._clock() - started_at > self._stale_after:
            try:
                jobs.mark_failed(
                    job_id=active.id,
                    error_message=ABANDONED_RUN_MESSAGE,
                )
                db.commit()
            except MigrationJobStateError:
                db.rollback()
                logger.info("Stale run finished before expiry migration_id=%s org_id=%s", active.id, org_id)
                return
            log_event(
                logger,
                logging.WARNING,
                "migration.stale_run_expired",
                migration_id=active.id,
                org_id=org_id,
                started_at=started_at,
            )
            return

        raise ActiveMigrationExistsError(
            f"A migration is already running for org {org_id} (migration_id={active.id})"
        )

    def _fail_run(self, run: _MigrationRun, exc: Exception, *, started: float) -> MigrationResult:
        message = _describe(exc)
        if isinstance(exc, MigrationConnectionError):
            logger.warning("Migration connection check failed migration_id=%s error=%s", run.job_id, message)
        else:
            logger.exception("Migration run failed migration_id=%s error=%s", run.job_id, message)

        run.errors.append(message)
        try:
            MigrationJobRepository(run.db).mark_failed(
                job_id=run.job_id,
                error_message=message,
                stats=run.stats.as_dict(),
                errors=run.errors,
            )
            run.db.commit()
        except MigrationJobStateError as state_exc:
            run.db.rollback()
            return self._lost_run(run, state_exc, started=started)

        result = MigrationResult(
            success=False,
            migration_id=run.job_id,
            stats=run.stats.as_dict(),
            errors=list(run.errors),
            duration_ms=_elapsed_ms(started),
        )
        log_event(
            logger,
            logging.ERROR,
            "migration.failed",
            migration_id=run.job_id,
            org_id=run.org_id,
            error=message,
            duration_ms=result.duration_ms,
        )
        return result

    def _lost_run(self, run: _MigrationRun, exc: MigrationJobStateError, *, started: float) -> MigrationResult:
        """
        Report a run whose job was finalized elsewhere; the stored job is left untouched.
        """

        message = _describe(exc)
        run.errors.append(message)
        log_event(
            logger,
            logging.WARNING,
            "migration.finalize_lost",
            migration_id=run.job_id,
            org_id=run.org_id,
            error=message,
        )
        return MigrationResult(
            success=False,
            migration_id=run.job_id,
            stats=run.stats.as_dict(),
            errors=list(run.errors),
            duration_ms=_elapsed_ms(started),
        )

    def _import_contacts(self, run: _MigrationRun, connector: AccuLynxConnector) -> None:
        records = connector.fetch_all_contacts()
        for external_id, record in _unique_records(records, entity_type=MigrationEntityType.CONTACT):
            self._run_step(
                run,
                MigrationEntityType.CONTACT,
                external_id,
                lambda: self._import_contact(run, external_id, record),
            )

        logger.info(
            "Contact phase finished migration_id=%s stats=%s",
            run.job_id,
            run.stats.for_entity(MigrationEntityType.CONTACT).as_dict(),
        )

    def _import_contact(self, run: _MigrationRun, external_id: str, record: Any) -> StepOutcome:
        existing = run.find_existing(Contact, external_id)
        if existing is not None:
            return MigrationItemStatus.SKIPPED, existing

        payload = self._mapper.map_contact(record)
        return self._insert_or_skip(run, Contact, external_id, payload.to_values())

    def _import_jobs(self, run: _MigrationRun, connector: AccuLynxConnector) -> None:
        records = connector.fetch_all_jobs()
        for external_id, record in _unique_records(records, entity_type=MigrationEntityType.JOB):
            self._import_job(run, external_id, record)

        logger.info(
            "Job phase finished migration_id=%s properties=%s leads=%s jobs=%s",
            run.job_id,
            run.stats.for_entity(MigrationEntityType.PROPERTY).as_dict(),
            run.stats.for_entity(MigrationEntityType.LEAD).as_dict(),
            run.stats.for_entity(MigrationEntityType.JOB).as_dict(),
        )

    def _import_job(self, run: _MigrationRun, external_id: str, record: Any) -> None:
        """
        Property, then contact resolution, then lead, then work order.

        A failed property does not block the lead, which only needs a
        contact. The work order requires the property and is recorded as an
        error without an insert attempt when the property is unresolved.
        """

        try:
            fan_out = self._mapper.map_job(record)
        except Exception as exc:
            message = _describe(exc)
            for entity_type in (
                MigrationEntityType.PROPERTY,
                MigrationEntityType.LEAD,
                MigrationEntityType.JOB,
            ):
                self._record_error(run, entity_type, external_id, message)
            return

        property_id = self._run_step(
            run,
            MigrationEntityType.PROPERTY,
            external_id,
            lambda: self._import_property(run, fan_out),
        )

        contact_id, contact_error = self._resolve_contact(run, fan_out)
        lead_id: uuid.UUID | None = None
        if contact_id is None:
            self._record_error(
                run,
                MigrationEntityType.LEAD,
                external_id,
                f"{CONTACT_UNRESOLVED_MESSAGE} ({contact_error})",
            )
        else:
            lead_id = self._run_step(
                run,
                MigrationEntityType.LEAD,
                external_id,
                lambda: self._import_lead(run, fan_out, contact_id=contact_id, property_id=property_id),
            )

        if property_id is None:
            self._record_error(run, MigrationEntityType.JOB, external_id, PROPERTY_UNRESOLVED_MESSAGE)
            return

        self._run_step(
            run,
            MigrationEntityType.JOB,
            external_id,
            lambda: self._import_work_order(
                run,
                fan_out,
                property_id=property_id,
                contact_id=contact_id,
                lead_id=lead_id,
            ),
        )

    def _import_property(self, run: _MigrationRun, fan_out: JobFanOut) -> StepOutcome:
        existing = run.find_existing(Property, fan_out.external_id)
        if existing is not None:
            return MigrationItemStatus.SKIPPED, existing
        return self._insert_or_skip(run, Property, fan_out.external_id, fan_out.property.to_values())

    def _import_lead(
        self,
        run: _MigrationRun,
        fan_out: JobFanOut,
        *,
        contact_id: uuid.UUID,
        property_id: uuid.UUID | None,
    ) -> StepOutcome:
        existing = run.find_existing(Lead, fan_out.external_id)
        if existing is not None:
            return MigrationItemStatus.SKIPPED, existing
        values = fan_out.lead.to_values(contact_id=contact_id, property_id=property_id)
        return self._insert_or_skip(run, Lead, fan_out.external_id, values)

    def _import_work_order(
        self,
        run: _MigrationRun,
        fan_out: JobFanOut,
        *,
        property_id: uuid.UUID,
        contact_id: uuid.UUID | None,
        lead_id: uuid.UUID | None,
    ) -> StepOutcome:
        existing = run.find_existing(WorkOrder, fan_out.external_id)
        if existing is not None:
            return MigrationItemStatus.SKIPPED, existing
        values = fan_out.work_order.to_values(property_id=property_id, contact_id=contact_id, lead_id=lead_id)
        return self._insert_or_skip(run, WorkOrder, fan_out.external_id, values)

    def _resolve_contact(
        self,
        run: _MigrationRun,
        fan_out: JobFanOut,
    ) -> tuple[uuid.UUID | None, str | None]:
        """
        Return the imported linked contact, else the organization placeholder.
        """

        linked_id = fan_out.linked_contact_external_id
        try:
            if linked_id:
                contact_id = run.find_existing(Contact, linked_id)
                if contact_id is not None:
                    return contact_id, None
                logger.info(
                    "Linked contact not imported, using placeholder migration_id=%s job=%s contact=%s",
                    run.job_id,
                    fan_out.external_id,
                    linked_id,
                )
            return run.placeholders.get_or_create(run.org_id, lambda: self._ensure_placeholder(run)), None
        except Exception as exc:
            run.db.rollback()
            logger.warning(
                "Contact resolution failed migration_id=%s job=%s error=%s",
                run.job_id,
                fan_out.external_id,
                exc,
            )
            return None, _describe(exc)

    def _ensure_placeholder(self, run: _MigrationRun) -> uuid.UUID:
        existing = run.find_existing(Contact, PLACEHOLDER_EXTERNAL_ID)
        if existing is not None:
            return existing

        payload = self._mapper.placeholder_contact(run.org_id)
        status, placeholder_id = self._insert_or_skip(run, Contact, payload.external_id, payload.to_values())
        run.db.commit()
        if status == MigrationItemStatus.IMPORTED:
            log_event(
                logger,
                logging.INFO,
                "migration.placeholder_created",
                migration_id=run.job_id,
                org_id=run.org_id,
                contact_id=placeholder_id,
            )
        return placeholder_id

    def _insert_or_skip(
        self,
        run: _MigrationRun,
        model: type[Any],
        external_id: str,
        values: dict[str, Any],
    ) -> StepOutcome:
        try:
            internal_id = run.crm.insert(
                model,
                org_id=run.org_id,
                external_source=run.source,
                external_id=external_id,
                values=values,
            )
        except IntegrityError:
            run.db.rollback()
            existing = run.find_existing(model, external_id)
            if existing is None:
                raise
            logger.info(
                "Concurrent import resolved as skip migration_id=%s model=%s external_id=%s",
                run.job_id,
                model.__tablename__,
                external_id,
            )
            return MigrationItemStatus.SKIPPED, existing
        return MigrationItemStatus.IMPORTED, internal_id

    def _run_step(
        self,
        run: _MigrationRun,
        entity_type: str,
        external_id: str,
        step: Callable[[], StepOutcome],
    ) -> uuid.UUID | None:
        """
        Execute one per-record step and commit its ledger row.

        Returns the internal id on import or skip, None on error.
        """

        try:
            status, internal_id = step()
            run.ledger.record(
                migration_id=run.job_id,
                entity_type=entity_type,
                external_id=external_id,
                status=status,
                internal_id=internal_id,
            )
            run.db.commit()
        except Exception as exc:
            run.db.rollback()
            self._record_error(run, entity_type, external_id, _describe(exc))
            return None

        run.stats.count(entity_type, status)
        return internal_id

    def _record_error(self, run: _MigrationRun, entity_type: str, external_id: str, message: str) -> None:
        run.ledger.record(
            migration_id=run.job_id,
            entity_type=entity_type,
            external_id=external_id,
            status=MigrationItemStatus.ERROR,
            error_message=message,
        )
        run.db.commit()
        run.stats.count(entity_type, MigrationItemStatus.ERROR)
        run.errors.append(f"{entity_type} {external_id}: {message}")
        logger.warning(
            "Migration record failed migration_id=%s entity_type=%s external_id=%s error=%s",
            run.job_id,
            entity_type,
            external_id,
            message,
        )


def _unique_records(records: Iterable[Any], *, entity_type: str) -> list[tuple[str, Any]]:
    """
    Pair records with their ledger key, keeping the first of any duplicate id.
    """

    seen: set[str] = set()
    unique: list[tuple[str, Any]] = []
    for index, record in enumerate(records):
        external_id = record_external_id(record) or f"<missing-id:{index}>"
        if external_id in seen:
            logger.warning(
                "Duplicate external record ignored entity_type=%s external_id=%s",
                entity_type,
                external_id,
            )
            continue
        seen.add(external_id)
        unique.append((external_id, record))
    return unique


def _describe(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or type(exc).__name__


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@lru_cache(maxsize=1)
def get_migration_service() -> MigrationService:
    """
    Build and cache the migration service.
    """

    acculynx_settings = get_acculynx_settings()
    return MigrationService(
        connector_factory=build_acculynx_connector,
        mapper=AccuLynxMapper(source_name=acculynx_settings.source_name),
        source=acculynx_settings.source_name,
        stale_run_minutes=get_migration_settings().stale_run_minutes,
    )


def run_migration(
    *,
    org_id: str,
    user_id: str,
    credential: str,
    base_url_override: str | None = None,
    dry_run: bool = False,
    db: Session | None = None,
) -> MigrationResult:
    """
    Run one migration with the default service, opening a session if needed.
    """

    request = MigrationRequest(
        org_id=org_id,
        user_id=user_id,
        credential=credential,
        base_url_override=base_url_override,
        dry_run=dry_run,
    )
    service = get_migration_service()
    if db is not None:
        return service.run_migration(request, db=db)

    session = SessionLocal()
    try:
        return service.run_migration(request, db=session)
    finally:
        session.close()
