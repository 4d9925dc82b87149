# src/core/keys.py — v1
"""Entity key resolution — record identifier → owning entity.

An entity is three records sharing a numeric suffix:
    <profile_prefix><n>, <satellite1_prefix><n>, <satellite2_prefix><n>

Classification is a full match on prefix + digits, so design documents and
look-alike ids (``employee_1_42_draft``) are filtered out. The reverse mapping
(entity → three refs) is a pure function, no store lookup.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pydantic import BaseModel, model_validator

from staffsync.core.models import EntityRefs, RecordKind, RecordRef


class KeyScheme(BaseModel):
    """Identifier prefixes for the three record kinds."""

    profile_prefix: str = "employee_1_"
    satellite1_prefix: str = "additionalinfo_1_"
    satellite2_prefix: str = "leave_"

    @model_validator(mode="after")
    def validate_prefixes(self) -> KeyScheme:
        prefixes = [self.profile_prefix, self.satellite1_prefix, self.satellite2_prefix]
        if any(not p for p in prefixes):
            raise ValueError("key prefixes must be non-empty")
        if len(set(prefixes)) != len(prefixes):
            raise ValueError("key prefixes must be distinct")
        return self

    def prefix_for(self, kind: RecordKind) -> str:
        return {
            "profile": self.profile_prefix,
            "satellite1": self.satellite1_prefix,
            "satellite2": self.satellite2_prefix,
        }[kind]


@dataclass(frozen=True)
class ResolvedRecord:
    """A record identifier that belongs to an entity."""

    kind: RecordKind
    entity_id: str
    record_id: str


@dataclass(frozen=True)
class NotAnEntityRecord:
    """A record identifier that matches none of the entity patterns."""

    record_id: str


class EntityKeyResolver:
    """Classify record identifiers and compute entity record sets."""

    _KINDS: tuple[RecordKind, ...] = ("profile", "satellite1", "satellite2")

    def __init__(self, scheme: KeyScheme | None = None) -> None:
        self._scheme = scheme or KeyScheme()
        self._patterns: list[tuple[RecordKind, re.Pattern[str]]] = [
            (kind, re.compile(re.escape(self._scheme.prefix_for(kind)) + r"([0-9]+)"))
            for kind in self._KINDS
        ]
        # Longest prefix first so "leave_1_" wins over "leave_" if both exist.
        self._patterns.sort(key=lambda item: len(item[1].pattern), reverse=True)

    @property
    def scheme(self) -> KeyScheme:
        return self._scheme

    def resolve(self, record_id: str) -> ResolvedRecord | NotAnEntityRecord:
        """Map a record identifier to its entity, or NotAnEntityRecord."""
        for kind, pattern in self._patterns:
            match = pattern.fullmatch(record_id)
            if match:
                return ResolvedRecord(
                    kind=kind, entity_id=match.group(1), record_id=record_id
                )
        return NotAnEntityRecord(record_id=record_id)

    def refs_for(self, entity_id: str) -> EntityRefs:
        """Compute the three record references for an entity."""
        refs = {
            kind: RecordRef(kind=kind, record_id=f"{self._scheme.prefix_for(kind)}{entity_id}")
            for kind in self._KINDS
        }
        return EntityRefs(entity_id=entity_id, **refs)

    def is_profile(self, record_id: str) -> bool:
        resolved = self.resolve(record_id)
        return isinstance(resolved, ResolvedRecord) and resolved.kind == "profile"
