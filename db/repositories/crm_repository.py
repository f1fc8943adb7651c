"""
db/repositories/crm_repository.py

Persistence for migrated CRM entities keyed by their external reference.

All methods are transaction-safe. The caller controls commit/rollback;
this repository never commits on its own.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.crm import Contact, Lead, Property, WorkOrder

CRMModel = TypeVar("CRMModel", Contact, Property, Lead, WorkOrder)


class CRMRepository:
    """
    Lookup and insert operations over the ``(org_id, external_source,
    external_id)`` de-duplication key shared by every CRM entity.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_id_by_external_ref(
        self,
        model: type[CRMModel],
        *,
        org_id: str,
        external_source: str,
        external_id: str,
    ) -> uuid.UUID | None:
        stmt = (
            select(model.id)
            .where(model.org_id == org_id)
            .where(model.external_source == external_source)
            .where(model.external_id == external_id)
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def existing_external_ids(
        self,
        model: type[CRMModel],
        *,
        org_id: str,
        external_source: str,
        external_ids: Iterable[str],
    ) -> set[str]:
        """
        Return the subset of ``external_ids`` already imported for the org.
        """

        candidates = [external_id for external_id in external_ids if external_id]
        if not candidates:
            return set()

        stmt = (
            select(model.external_id)
            .where(model.org_id == org_id)
            .where(model.external_source == external_source)
            .where(model.external_id.in_(candidates))
        )
        return {value for value in self._session.scalars(stmt).all() if value is not None}

    def insert(
        self,
        model: type[CRMModel],
        *,
        org_id: str,
        external_source: str,
        external_id: str,
        values: dict[str, Any],
    ) -> uuid.UUID:
        """
        Insert one row and flush it.

        Raises ``IntegrityError`` on flush when the external reference already
        exists, which callers treat as a concurrent import of the same record.
        """

        row = model(
            org_id=org_id,
            external_source=external_source,
            external_id=external_id,
            **values,
        )
        self._session.add(row)
        self._session.flush()
        return row.id
