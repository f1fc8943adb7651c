"""
app/schemas/migration.py

Request and response schemas for migration endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MigrationRunRequest(BaseModel):
    """
    Body for starting an AccuLynx migration.
    """

    org_id: str = Field(..., min_length=1, max_length=64)
    user_id: str = Field(..., min_length=1, max_length=64)
    api_key: str = Field(..., min_length=1, repr=False)
    base_url_override: str | None = None
    dry_run: bool = False


class MigrationPreviewRequest(BaseModel):
    org_id: str = Field(..., min_length=1, max_length=64)
    api_key: str = Field(..., min_length=1, repr=False)
    base_url_override: str | None = None
    sample_size: int | None = Field(default=None, ge=10, le=500)


class EntityStatsResponse(BaseModel):
    imported: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)


class MigrationResultResponse(BaseModel):
    """
    API response model for one finished migration run.
    """

    success: bool
    migration_id: UUID
    stats: dict[str, EntityStatsResponse] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    duration_ms: int = Field(..., ge=0)


class MigrationJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    org_id: str
    user_id: str
    source: str
    dry_run: bool
    status: str
    stats: dict[str, EntityStatsResponse] | None = None
    imported_count: int
    skipped_count: int
    error_count: int
    errors: list[str] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class MigrationJobListResponse(BaseModel):
    jobs: list[MigrationJobResponse] = Field(default_factory=list)


class MigrationItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    migration_id: UUID
    entity_type: str
    external_id: str
    status: str
    internal_id: UUID | None = None
    error_message: str | None = None
    created_at: datetime


class MigrationItemListResponse(BaseModel):
    items: list[MigrationItemResponse] = Field(default_factory=list)


class MigrationSummaryResponse(BaseModel):
    """
    Per entity type counts rebuilt from the ledger.
    """

    migration_id: UUID
    stats: dict[str, EntityStatsResponse] = Field(default_factory=dict)


class PreviewSampleResponse(BaseModel):
    external_id: str
    source: dict[str, Any]
    mapped: dict[str, Any]


class MigrationPreviewResponse(BaseModel):
    total_contacts: int = Field(..., ge=0)
    total_jobs: int = Field(..., ge=0)
    sampled_contacts: int = Field(..., ge=0)
    sampled_jobs: int = Field(..., ge=0)
    duplicate_contacts: int = Field(..., ge=0)
    duplicate_jobs: int = Field(..., ge=0)
    duplicate_rate: float = Field(..., ge=0.0, le=1.0)
    estimated_minutes: int = Field(..., ge=0)
    validation_warnings: list[str] = Field(default_factory=list)
    sample_contacts: list[PreviewSampleResponse] = Field(default_factory=list)
    sample_jobs: list[PreviewSampleResponse] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
