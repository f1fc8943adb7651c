"""
app/mappers package marker.
"""

from app.mappers.acculynx_mapper import (
    PLACEHOLDER_EXTERNAL_ID,
    AccuLynxMapper,
    MappingError,
    build_contact_slug,
    has_contact_name,
    record_external_id,
    to_minor_units,
)
from app.mappers.status_rules import (
    LEAD_STAGE_TABLE,
    WORK_ORDER_STATUS_TABLE,
    WORK_TYPE_TABLE,
    LeadClassification,
    StatusRule,
    StatusTable,
)

__all__ = [
    "AccuLynxMapper",
    "LEAD_STAGE_TABLE",
    "LeadClassification",
    "MappingError",
    "PLACEHOLDER_EXTERNAL_ID",
    "StatusRule",
    "StatusTable",
    "WORK_ORDER_STATUS_TABLE",
    "WORK_TYPE_TABLE",
    "build_contact_slug",
    "has_contact_name",
    "record_external_id",
    "to_minor_units",
]
