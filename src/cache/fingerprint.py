# src/cache/fingerprint.py — v1
"""Per-record revision fingerprints.

Maps record_id → last revision that made it into the index. Lives in process
memory and starts cold, so the first observation of any record always counts
as a change.
"""

from __future__ import annotations

from collections.abc import Iterable


class FingerprintStore:
    """In-memory record_id → revision map.

    Not thread-safe. Callers serialize mutations per entity; different
    entities touch disjoint keys.
    """

    def __init__(self) -> None:
        self._revisions: dict[str, str] = {}

    def get(self, record_id: str) -> str | None:
        return self._revisions.get(record_id)

    def put(self, record_id: str, revision: str) -> None:
        self._revisions[record_id] = revision

    def forget(self, record_ids: Iterable[str]) -> None:
        for record_id in record_ids:
            self._revisions.pop(record_id, None)

    def clear(self) -> None:
        self._revisions.clear()

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._revisions

    def __len__(self) -> int:
        return len(self._revisions)
