"""
Repository-layer exceptions for migration persistence flows.
"""

from __future__ import annotations


class MigrationRepositoryError(Exception):
    """Base exception for migration repository failures."""


class MigrationJobNotFoundError(MigrationRepositoryError):
    """Raised when a referenced migration job does not exist."""


class ActiveMigrationExistsError(MigrationRepositoryError):
    """Raised when an organization already has a running migration job."""


class MigrationJobStateError(MigrationRepositoryError):
    """Raised when a terminal transition targets a job that is no longer running."""
