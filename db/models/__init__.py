"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.crm import Contact, Lead, Property, WorkOrder
from db.models.migration_item import MigrationItem
from db.models.migration_job import MigrationJob

__all__ = [
    "Contact",
    "Lead",
    "MigrationItem",
    "MigrationJob",
    "Property",
    "WorkOrder",
]
