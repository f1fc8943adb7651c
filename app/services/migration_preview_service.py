"""
app/services/migration_preview_service.py

Read-only migration preview: samples the first page of contacts and jobs,
checks them against already-imported records and reports what a full run
would do. Nothing is written.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.config import get_acculynx_settings, get_migration_settings
from app.domain.migration import MigrationPreview, PreviewSample
from app.mappers import AccuLynxMapper, MappingError, has_contact_name, record_external_id
from app.services.migration_service import ConnectorFactory, build_acculynx_connector
from db.models.crm import Contact, WorkOrder
from db.repositories import CRMRepository

logger = logging.getLogger(__name__)

MIN_SAMPLE_SIZE = 10
MAX_SAMPLE_SIZE = 500
CONTACT_SAMPLE_LIMIT = 5
JOB_SAMPLE_LIMIT = 3
WARNING_LIMIT = 20

HIGH_DUPLICATE_RATE = 0.20
LARGE_CONTACT_COUNT = 5000
MANY_WARNINGS = 10


class MigrationPreviewService:
    """
    Builds a ``MigrationPreview`` without touching the migration ledger.
    """

    def __init__(
        self,
        *,
        connector_factory: ConnectorFactory,
        mapper: AccuLynxMapper,
        source: str,
        default_sample_size: int,
    ) -> None:
        self._connector_factory = connector_factory
        self._mapper = mapper
        self._source = source
        self._default_sample_size = default_sample_size

    def preview(
        self,
        *,
        db: Session,
        org_id: str,
        credential: str,
        base_url_override: str | None = None,
        sample_size: int | None = None,
    ) -> MigrationPreview:
        size = min(MAX_SAMPLE_SIZE, max(MIN_SAMPLE_SIZE, sample_size or self._default_sample_size))
        connector = self._connector_factory(credential, base_url_override)

        contacts_page = connector.get_contacts(page=1, page_size=size)
        jobs_page = connector.get_jobs(page=1, page_size=size)
        crm = CRMRepository(db)

        warnings: list[str] = []
        contact_samples = self._sample_contacts(contacts_page.data, warnings)
        job_samples = self._sample_jobs(jobs_page.data, warnings)

        duplicate_contacts = self._count_existing(crm, Contact, org_id, contacts_page.data)
        duplicate_jobs = self._count_existing(crm, WorkOrder, org_id, jobs_page.data)

        preview = MigrationPreview(
            total_contacts=contacts_page.total_count,
            total_jobs=jobs_page.total_count,
            sampled_contacts=len(contacts_page.data),
            sampled_jobs=len(jobs_page.data),
            duplicate_contacts=duplicate_contacts,
            duplicate_jobs=duplicate_jobs,
            estimated_minutes=estimate_minutes(contacts_page.total_count, jobs_page.total_count),
            validation_warnings=warnings[:WARNING_LIMIT],
            sample_contacts=contact_samples,
            sample_jobs=job_samples,
        )
        recommendations = build_recommendations(preview, warning_count=len(warnings))

        logger.info(
            "Migration preview built org_id=%s contacts=%s jobs=%s duplicates=%s warnings=%s",
            org_id,
            preview.total_contacts,
            preview.total_jobs,
            duplicate_contacts + duplicate_jobs,
            len(warnings),
        )
        return replace(preview, recommendations=recommendations)

    def _count_existing(
        self,
        crm: CRMRepository,
        model: type[Any],
        org_id: str,
        records: list[Any],
    ) -> int:
        external_ids = [external_id for external_id in map(record_external_id, records) if external_id]
        existing = crm.existing_external_ids(
            model,
            org_id=org_id,
            external_source=self._source,
            external_ids=external_ids,
        )
        return len(existing)

    def _sample_contacts(self, records: list[Any], warnings: list[str]) -> list[PreviewSample]:
        samples: list[PreviewSample] = []
        for record in records:
            external_id = record_external_id(record) or "(missing id)"
            if not has_contact_name(record):
                warnings.append(f"contact {external_id}: missing or invalid contact name")
            try:
                payload = self._mapper.map_contact(record)
            except MappingError as exc:
                warnings.append(f"contact {external_id}: {exc}")
                continue
            if len(samples) < CONTACT_SAMPLE_LIMIT:
                samples.append(
                    PreviewSample(
                        external_id=payload.external_id,
                        source=record,
                        mapped=payload.to_values(),
                    )
                )
        return samples

    def _sample_jobs(self, records: list[Any], warnings: list[str]) -> list[PreviewSample]:
        samples: list[PreviewSample] = []
        for record in records:
            external_id = record_external_id(record) or "(missing id)"
            try:
                fan_out = self._mapper.map_job(record)
            except MappingError as exc:
                warnings.append(f"job {external_id}: {exc}")
                continue
            if fan_out.property.address.is_empty:
                warnings.append(f"job {external_id}: missing property address")
            if len(samples) < JOB_SAMPLE_LIMIT:
                samples.append(
                    PreviewSample(
                        external_id=fan_out.external_id,
                        source=record,
                        mapped={
                            "property": fan_out.property.to_values(),
                            "lead": {
                                "title": fan_out.lead.title,
                                "stage": fan_out.lead.stage,
                                "temperature": fan_out.lead.temperature,
                                "value_cents": fan_out.lead.value_cents,
                            },
                            "work_order": {
                                "title": fan_out.work_order.title,
                                "status": fan_out.work_order.status,
                                "work_type": fan_out.work_order.work_type,
                                "value_cents": fan_out.work_order.value_cents,
                            },
                            "linked_contact_external_id": fan_out.linked_contact_external_id,
                        },
                    )
                )
        return samples


def estimate_minutes(total_contacts: int, total_jobs: int) -> int:
    return math.ceil(total_contacts / 100 + total_jobs / 50)


def build_recommendations(preview: MigrationPreview, *, warning_count: int) -> list[str]:
    recommendations: list[str] = []
    if preview.duplicate_rate > HIGH_DUPLICATE_RATE:
        recommendations.append(
            f"High duplicate rate ({round(preview.duplicate_rate * 100)}%). "
            "Already imported records will be skipped."
        )
    if preview.total_contacts > LARGE_CONTACT_COUNT:
        recommendations.append("Large contact list. Expect a long-running migration.")
    if warning_count > MANY_WARNINGS:
        recommendations.append(f"{warning_count} records have validation issues. Review before importing.")
    return recommendations


@lru_cache(maxsize=1)
def get_migration_preview_service() -> MigrationPreviewService:
    """
    Build and cache the migration preview service.
    """

    acculynx_settings = get_acculynx_settings()
    return MigrationPreviewService(
        connector_factory=build_acculynx_connector,
        mapper=AccuLynxMapper(source_name=acculynx_settings.source_name),
        source=acculynx_settings.source_name,
        default_sample_size=get_migration_settings().preview_sample_size,
    )
