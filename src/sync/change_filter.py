# src/sync/change_filter.py — v1
"""ChangeFilter — skip re-derivation when no constituent revision moved.

Each of the three records is compared independently against the fingerprint
cache. Absent satellites are fingerprinted as ABSENT_REVISION, so a satellite
appearing (or disappearing) later is itself a change.
"""

from __future__ import annotations

from staffsync.cache.fingerprint import FingerprintStore
from staffsync.core.models import EntityRefs, EntityView


class ChangeFilter:
    """Revision fingerprint check over an entity's three records."""

    def __init__(self, fingerprints: FingerprintStore | None = None) -> None:
        self._fingerprints = fingerprints if fingerprints is not None else FingerprintStore()

    @property
    def fingerprints(self) -> FingerprintStore:
        return self._fingerprints

    @staticmethod
    def revision_key(view: EntityView) -> str:
        """Concatenation of the three observed revisions."""
        return "|".join(view.observed_revisions())

    def should_process(self, view: EntityView) -> bool:
        """True if any record's revision differs from (or is missing in) the cache."""
        for record_id, revision in zip(view.refs.record_ids, view.observed_revisions()):
            if self._fingerprints.get(record_id) != revision:
                return True
        return False

    def commit(self, view: EntityView) -> None:
        """Record all three observed revisions. Call only after a successful write."""
        for record_id, revision in zip(view.refs.record_ids, view.observed_revisions()):
            self._fingerprints.put(record_id, revision)

    def forget(self, refs: EntityRefs) -> None:
        """Drop the entity's fingerprints (after its index entry is removed)."""
        self._fingerprints.forget(refs.record_ids)
