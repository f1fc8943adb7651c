"""
app/services package marker.
"""

from app.services.migration_preview_service import (
    MigrationPreviewService,
    get_migration_preview_service,
)
from app.services.migration_service import (
    MigrationConnectionError,
    MigrationService,
    build_acculynx_connector,
    get_migration_service,
    run_migration,
)
from app.services.placeholder_cache import PlaceholderContactCache

__all__ = [
    "MigrationConnectionError",
    "MigrationPreviewService",
    "MigrationService",
    "PlaceholderContactCache",
    "build_acculynx_connector",
    "get_migration_preview_service",
    "get_migration_service",
    "run_migration",
]
