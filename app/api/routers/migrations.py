"""
CRM migration endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.connectors import ConnectorRequestError
from app.domain.migration import MigrationPreview, MigrationRequest
from app.schemas.migration import (
    MigrationItemListResponse,
    MigrationItemResponse,
    MigrationJobListResponse,
    MigrationJobResponse,
    MigrationPreviewRequest,
    MigrationPreviewResponse,
    MigrationResultResponse,
    MigrationRunRequest,
    MigrationSummaryResponse,
    PreviewSampleResponse,
)
from app.services.migration_preview_service import MigrationPreviewService, get_migration_preview_service
from app.services.migration_service import MigrationService, get_migration_service
from db.repositories import ActiveMigrationExistsError, MigrationJobNotFoundError
from db.session import get_db

router = APIRouter(tags=["migrations"])


@router.post("/migrations/acculynx", response_model=MigrationResultResponse)
def run_acculynx_migration(
    payload: MigrationRunRequest,
    db: Session = Depends(get_db),
    service: MigrationService = Depends(get_migration_service),
) -> MigrationResultResponse:
    request = MigrationRequest(
        org_id=payload.org_id,
        user_id=payload.user_id,
        credential=payload.api_key,
        base_url_override=payload.base_url_override,
        dry_run=payload.dry_run,
    )
    try:
        result = service.run_migration(request, db=db)
    except ActiveMigrationExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return MigrationResultResponse(
        success=result.success,
        migration_id=result.migration_id,
        stats=result.stats,
        errors=result.errors,
        duration_ms=result.duration_ms,
    )


@router.post("/migrations/acculynx/preview", response_model=MigrationPreviewResponse)
def preview_acculynx_migration(
    payload: MigrationPreviewRequest,
    db: Session = Depends(get_db),
    service: MigrationPreviewService = Depends(get_migration_preview_service),
) -> MigrationPreviewResponse:
    try:
        preview = service.preview(
            db=db,
            org_id=payload.org_id,
            credential=payload.api_key,
            base_url_override=payload.base_url_override,
            sample_size=payload.sample_size,
        )
    except ConnectorRequestError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return _to_preview_response(preview)


@router.get("/migrations", response_model=MigrationJobListResponse)
def list_migrations(
    org_id: str = Query(..., min_length=1, description="Organization whose runs are listed"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
    db: Session = Depends(get_db),
    service: MigrationService = Depends(get_migration_service),
) -> MigrationJobListResponse:
    jobs = service.list_jobs(db=db, org_id=org_id, status=status_filter, limit=limit)
    return MigrationJobListResponse(jobs=[MigrationJobResponse.model_validate(job) for job in jobs])


@router.get("/migrations/{migration_id}", response_model=MigrationJobResponse)
def get_migration(
    migration_id: UUID,
    db: Session = Depends(get_db),
    service: MigrationService = Depends(get_migration_service),
) -> MigrationJobResponse:
    job = service.get_job(db=db, job_id=migration_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Migration job not found: {migration_id}",
        )
    return MigrationJobResponse.model_validate(job)


@router.get("/migrations/{migration_id}/items", response_model=MigrationItemListResponse)
def list_migration_items(
    migration_id: UUID,
    entity_type: str | None = Query(default=None, description="Optional entity type filter"),
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=500, ge=1, le=5000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    service: MigrationService = Depends(get_migration_service),
) -> MigrationItemListResponse:
    try:
        items = service.list_items(
            db=db,
            job_id=migration_id,
            entity_type=entity_type,
            status=status_filter,
            limit=limit,
            offset=offset,
        )
    except MigrationJobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return MigrationItemListResponse(items=[MigrationItemResponse.model_validate(item) for item in items])


@router.get("/migrations/{migration_id}/summary", response_model=MigrationSummaryResponse)
def get_migration_summary(
    migration_id: UUID,
    db: Session = Depends(get_db),
    service: MigrationService = Depends(get_migration_service),
) -> MigrationSummaryResponse:
    try:
        stats = service.summarize(db=db, job_id=migration_id)
    except MigrationJobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return MigrationSummaryResponse(migration_id=migration_id, stats=stats)


def _to_preview_response(preview: MigrationPreview) -> MigrationPreviewResponse:
    return MigrationPreviewResponse(
        total_contacts=preview.total_contacts,
        total_jobs=preview.total_jobs,
        sampled_contacts=preview.sampled_contacts,
        sampled_jobs=preview.sampled_jobs,
        duplicate_contacts=preview.duplicate_contacts,
        duplicate_jobs=preview.duplicate_jobs,
        duplicate_rate=preview.duplicate_rate,
        estimated_minutes=preview.estimated_minutes,
        validation_warnings=preview.validation_warnings,
        sample_contacts=[
            PreviewSampleResponse(external_id=s.external_id, source=s.source, mapped=s.mapped)
            for s in preview.sample_contacts
        ],
        sample_jobs=[
            PreviewSampleResponse(external_id=s.external_id, source=s.source, mapped=s.mapped)
            for s in preview.sample_jobs
        ],
        recommendations=preview.recommendations,
    )
