"""
Repository layer exports.
"""

from db.repositories.crm_repository import CRMRepository
from db.repositories.errors import (
    ActiveMigrationExistsError,
    MigrationJobNotFoundError,
    MigrationJobStateError,
    MigrationRepositoryError,
)
from db.repositories.migration_item_repository import MigrationItemRepository, ledger_key
from db.repositories.migration_job_repository import MigrationJobRepository
from db.repositories.types import LedgerCounts

__all__ = [
    "ActiveMigrationExistsError",
    "CRMRepository",
    "LedgerCounts",
    "MigrationItemRepository",
    "MigrationJobNotFoundError",
    "MigrationJobRepository",
    "MigrationJobStateError",
    "MigrationRepositoryError",
    "ledger_key",
]
