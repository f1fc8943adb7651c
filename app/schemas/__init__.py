"""
app/schemas package marker.
"""

from app.schemas.migration import (
    EntityStatsResponse,
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

__all__ = [
    "EntityStatsResponse",
    "MigrationItemListResponse",
    "MigrationItemResponse",
    "MigrationJobListResponse",
    "MigrationJobResponse",
    "MigrationPreviewRequest",
    "MigrationPreviewResponse",
    "MigrationResultResponse",
    "MigrationRunRequest",
    "MigrationSummaryResponse",
    "PreviewSampleResponse",
]
