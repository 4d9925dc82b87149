# src/api/models.py — v1
"""API-level models returned by the SyncService facade."""

from __future__ import annotations

from pydantic import BaseModel, Field

from staffsync.core.models import SyncResult


class ReindexReport(BaseModel):
    """Summary of a bulk reindex over every profile record."""

    total: int = 0
    indexed: int = 0
    unchanged: int = 0
    removed: int = 0
    failed: int = 0
    reset: bool = False
    duration_seconds: float = 0.0
    failures: list[SyncResult] = Field(default_factory=list)

    def record(self, result: SyncResult) -> None:
        self.total += 1
        if result.outcome == "indexed":
            self.indexed += 1
        elif result.outcome == "unchanged":
            self.unchanged += 1
        elif result.outcome == "removed":
            self.removed += 1
        elif result.outcome == "failed":
            self.failed += 1
            self.failures.append(result)
