"""
app/domain/migration.py

Domain models for CRM migration runs and previews.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from db.models.migration_item import MigrationEntityType, MigrationItemStatus

STATS_KEYS: dict[str, str] = {
    MigrationEntityType.CONTACT: "contacts",
    MigrationEntityType.PROPERTY: "properties",
    MigrationEntityType.LEAD: "leads",
    MigrationEntityType.JOB: "jobs",
}


@dataclass(frozen=True)
class MigrationRequest:
    """
    Input for one migration run.

    ``credential`` is the external API key; it is never persisted or logged.
    """

    org_id: str
    user_id: str
    credential: str = field(repr=False)
    base_url_override: str | None = None
    dry_run: bool = False


@dataclass
class EntityStats:
    imported: int = 0
    skipped: int = 0
    errors: int = 0

    def count(self, status: str) -> None:
        if status == MigrationItemStatus.IMPORTED:
            self.imported += 1
        elif status == MigrationItemStatus.SKIPPED:
            self.skipped += 1
        elif status == MigrationItemStatus.ERROR:
            self.errors += 1
        else:
            raise ValueError(f"Unknown migration item status: {status!r}")

    @property
    def total(self) -> int:
        return self.imported + self.skipped + self.errors

    def as_dict(self) -> dict[str, int]:
        return {"imported": self.imported, "skipped": self.skipped, "errors": self.errors}


@dataclass
class MigrationStats:
    """
    Running per entity type outcome counters for one migration run.
    """

    by_entity: dict[str, EntityStats] = field(
        default_factory=lambda: {entity_type: EntityStats() for entity_type in MigrationEntityType.ALL}
    )

    def count(self, entity_type: str, status: str) -> None:
        self.by_entity[entity_type].count(status)

    def for_entity(self, entity_type: str) -> EntityStats:
        return self.by_entity[entity_type]

    def as_dict(self) -> dict[str, dict[str, int]]:
        return {STATS_KEYS[entity_type]: stats.as_dict() for entity_type, stats in self.by_entity.items()}


@dataclass(frozen=True)
class MigrationResult:
    """
    End-of-run migration summary.
    """

    success: bool
    migration_id: uuid.UUID
    stats: dict[str, dict[str, int]]
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "migration_id": str(self.migration_id),
            "stats": self.stats,
            "errors": list(self.errors),
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class PreviewSample:
    """
    One external record next to the payload it would map to.
    """

    external_id: str
    source: dict[str, Any]
    mapped: dict[str, Any]


@dataclass(frozen=True)
class MigrationPreview:
    """
    Read-only assessment of what a migration would import.
    """

    total_contacts: int
    total_jobs: int
    sampled_contacts: int
    sampled_jobs: int
    duplicate_contacts: int
    duplicate_jobs: int
    estimated_minutes: int
    validation_warnings: list[str] = field(default_factory=list)
    sample_contacts: list[PreviewSample] = field(default_factory=list)
    sample_jobs: list[PreviewSample] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def duplicate_rate(self) -> float:
        sampled = self.sampled_contacts + self.sampled_jobs
        if sampled == 0:
            return 0.0
        return (self.duplicate_contacts + self.duplicate_jobs) / sampled
