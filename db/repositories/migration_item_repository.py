"""
db/repositories/migration_item_repository.py

Append-only audit ledger of per-record migration outcomes.

The repository exposes no update or delete operations. It never commits;
the migration orchestrator owns transaction boundaries.
"""

from __future__ import annotations

import hashlib
import uuid
from collections import defaultdict

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.base import EXTERNAL_ID_MAX_LENGTH
from db.models.migration_item import MigrationItem, MigrationItemStatus
from db.repositories.types import LedgerCounts

_MAX_ERROR_MESSAGE_LENGTH = 2000
_KEY_DIGEST_LENGTH = 16


def ledger_key(external_id: str) -> str:
    """
    Fit a source id into the ledger column.

    Over-long ids keep a readable prefix and end with a digest of the full
    id, so distinct ids stay distinct under the ledger unique constraint.
    """

    if len(external_id) <= EXTERNAL_ID_MAX_LENGTH:
        return external_id
    digest = hashlib.sha256(external_id.encode("utf-8")).hexdigest()[:_KEY_DIGEST_LENGTH]
    return f"{external_id[: EXTERNAL_ID_MAX_LENGTH - _KEY_DIGEST_LENGTH - 1]}~{digest}"


class MigrationItemRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def record(
        self,
        *,
        migration_id: uuid.UUID,
        entity_type: str,
        external_id: str,
        status: str,
        internal_id: uuid.UUID | None = None,
        error_message: str | None = None,
    ) -> MigrationItem:
        """
        Append one ledger row and flush it so its sequence id is assigned.
        """

        item = MigrationItem(
            migration_id=migration_id,
            entity_type=entity_type,
            external_id=ledger_key(external_id),
            status=status,
            internal_id=internal_id,
            error_message=error_message[:_MAX_ERROR_MESSAGE_LENGTH] if error_message else None,
        )
        self._session.add(item)
        self._session.flush()
        return item

    def list_items(
        self,
        *,
        migration_id: uuid.UUID,
        entity_type: str | None = None,
        status: str | None = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[MigrationItem]:
        stmt: Select[tuple[MigrationItem]] = select(MigrationItem).where(
            MigrationItem.migration_id == migration_id
        )
        if entity_type:
            stmt = stmt.where(MigrationItem.entity_type == entity_type)
        if status:
            stmt = stmt.where(MigrationItem.status == status)

        stmt = stmt.order_by(MigrationItem.id.asc()).offset(max(0, offset)).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def summarize(self, *, migration_id: uuid.UUID) -> dict[str, LedgerCounts]:
        """
        Rebuild per entity type outcome counts from the ledger rows alone.
        """

        stmt = (
            select(MigrationItem.entity_type, MigrationItem.status, func.count(MigrationItem.id))
            .where(MigrationItem.migration_id == migration_id)
            .group_by(MigrationItem.entity_type, MigrationItem.status)
        )

        counts: dict[str, dict[str, int]] = defaultdict(dict)
        for entity_type, status, total in self._session.execute(stmt).all():
            counts[entity_type][status] = int(total)

        return {
            entity_type: LedgerCounts(
                imported=by_status.get(MigrationItemStatus.IMPORTED, 0),
                skipped=by_status.get(MigrationItemStatus.SKIPPED, 0),
                errors=by_status.get(MigrationItemStatus.ERROR, 0),
            )
            for entity_type, by_status in counts.items()
        }
