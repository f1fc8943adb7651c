"""
app/domain package marker.
"""

from app.domain.crm_payloads import (
    Address,
    ContactPayload,
    JobFanOut,
    LeadPayload,
    PropertyPayload,
    WorkOrderPayload,
)
from app.domain.migration import (
    STATS_KEYS,
    EntityStats,
    MigrationPreview,
    MigrationRequest,
    MigrationResult,
    MigrationStats,
    PreviewSample,
)

__all__ = [
    "Address",
    "ContactPayload",
    "EntityStats",
    "JobFanOut",
    "LeadPayload",
    "MigrationPreview",
    "MigrationRequest",
    "MigrationResult",
    "MigrationStats",
    "PreviewSample",
    "PropertyPayload",
    "STATS_KEYS",
    "WorkOrderPayload",
]
