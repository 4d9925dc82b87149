# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

RecordKind = Literal["profile", "satellite1", "satellite2"]

# Fingerprint value recorded for a record that does not exist in the store.
ABSENT_REVISION = "<absent>"


# === RECORD IDENTITY ===


class RecordRef(BaseModel):
    """One constituent record of an entity."""

    kind: RecordKind
    record_id: str


class EntityRefs(BaseModel):
    """The three record references composing one entity."""

    entity_id: str
    profile: RecordRef
    satellite1: RecordRef
    satellite2: RecordRef

    @property
    def refs(self) -> list[RecordRef]:
        """Refs in canonical order: profile, satellite1, satellite2."""
        return [self.profile, self.satellite1, self.satellite2]

    @property
    def record_ids(self) -> list[str]:
        return [ref.record_id for ref in self.refs]


# === STORE RECORDS ===


class RawRecord(BaseModel):
    """A record as returned by the document store."""

    record_id: str
    revision: str
    body: dict[str, Any] = Field(default_factory=dict)


class EntityView(BaseModel):
    """Profile joined with its satellites. Satellites may be absent."""

    entity_id: str
    refs: EntityRefs
    profile: RawRecord
    satellite1: RawRecord | None = None
    satellite2: RawRecord | None = None

    def observed_revisions(self) -> list[str]:
        """Revision per constituent record, ABSENT_REVISION for missing satellites."""
        return [
            record.revision if record is not None else ABSENT_REVISION
            for record in (self.profile, self.satellite1, self.satellite2)
        ]


class ChangeEvent(BaseModel):
    """One decoded change feed frame."""

    record_id: str
    revision: str | None = None
    deleted: bool = False
    checkpoint: str


# === DERIVED STATE ===


class DerivedDocument(BaseModel):
    """Canonical text and embedding derived from one EntityView."""

    entity_id: str
    text: str
    vector: list[float]
    record_ids: list[str]
    source_revisions: list[str]

    @property
    def revision_key(self) -> str:
        return "|".join(self.source_revisions)


class IndexEntry(BaseModel):
    """Persisted counterpart of a DerivedDocument inside the vector index."""

    entity_id: str
    text: str
    vector: list[float] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


# === RUN OUTCOMES ===


SyncOutcome = Literal["indexed", "unchanged", "removed", "failed", "ignored"]


class SyncResult(BaseModel):
    """Outcome of one pipeline run."""

    record_id: str
    entity_id: str | None = None
    outcome: SyncOutcome
    error: str | None = None
