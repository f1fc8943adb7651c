"""
Typed DTOs used by migration repositories.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LedgerCounts:
    """
    Ledger outcome counts for one entity type within one migration run.
    """

    imported: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.imported + self.skipped + self.errors

    def as_dict(self) -> dict[str, int]:
        return {"imported": self.imported, "skipped": self.skipped, "errors": self.errors}
