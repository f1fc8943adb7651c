"""
app/services/placeholder_cache.py

Per-run cache of the synthetic placeholder contact id for each organization.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable


class PlaceholderContactCache:
    """
    Remembers the placeholder contact resolved for an organization so a run
    creates or looks it up at most once.

    Owned by a single migration run; never shared across runs.
    """

    def __init__(self) -> None:
        self._ids: dict[str, uuid.UUID] = {}

    def get(self, org_id: str) -> uuid.UUID | None:
        return self._ids.get(org_id)

    def get_or_create(self, org_id: str, create: Callable[[], uuid.UUID]) -> uuid.UUID:
        cached = self._ids.get(org_id)
        if cached is not None:
            return cached
        placeholder_id = create()
        self._ids[org_id] = placeholder_id
        return placeholder_id

    def __contains__(self, org_id: object) -> bool:
        return org_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
