# src/sync/deriver.py — v1
"""Deriver — canonical entity text and its embedding.

The text is a fixed, ordered list of ``Label: value`` lines. Field order and
the ``unknown`` sentinel never depend on dict ordering or on which satellites
exist, so identical input always renders byte-identical text.
"""

from __future__ import annotations

import logging
from typing import Any

from staffsync.core.errors import EmbeddingUnavailable
from staffsync.core.models import DerivedDocument, EntityView, RawRecord
from staffsync.rag.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

# (label, source field) in rendering order.
PROFILE_FIELDS: tuple[tuple[str, str], ...] = (
    ("Employee ID", "EmpID"),
    ("First Name", "FirstName"),
    ("Last Name", "LastName"),
    ("Start Date", "StartDate"),
    ("Manager", "Manager"),
    ("Email", "Email"),
    ("Employee Status", "EmployeeStatus"),
    ("Employee Type", "EmployeeType"),
    ("Pay Zone", "PayZone"),
    ("Department Type", "DepartmentType"),
    ("Division", "Division"),
)

SATELLITE1_FIELDS: tuple[tuple[str, str], ...] = (
    ("DOB", "DOB"),
    ("State", "State"),
    ("Gender Code", "GenderCode"),
    ("Location Code", "LocationCode"),
    ("Marital Status", "MaritalDesc"),
    ("Performance Score", "Performance Score"),
    ("Current Employee Rating", "Current Employee Rating"),
)


def _format_value(value: Any) -> str:
    if value is None:
        return UNKNOWN
    text = " ".join(str(value).split())
    return text or UNKNOWN


def _profile_fields(record: RawRecord) -> dict[str, Any]:
    data = record.body.get("data")
    return data if isinstance(data, dict) else record.body


def _leave_dates(record: RawRecord | None) -> list[str]:
    if record is None:
        return []
    entries = record.body.get("leaves")
    if not isinstance(entries, list):
        return []
    dates: list[str] = []
    for entry in entries:
        date = entry.get("date") if isinstance(entry, dict) else entry
        dates.append(_format_value(date))
    return dates


def leave_summary(record: RawRecord | None) -> str:
    dates = _leave_dates(record)
    if not dates:
        return "This employee has no leaves on record."
    noun = "leave" if len(dates) == 1 else "leaves"
    return (
        f"This employee has taken {len(dates)} {noun} "
        f"on the following dates: {', '.join(dates)}."
    )


def render_text(view: EntityView) -> str:
    """Render the canonical text for an entity. Pure."""
    profile = _profile_fields(view.profile)
    satellite = view.satellite1.body if view.satellite1 is not None else {}

    first = _format_value(profile.get("FirstName"))
    last = _format_value(profile.get("LastName"))

    lines = [
        f"Entity ID: {view.entity_id}",
        f"Name: {first} {last}",
    ]
    lines.extend(
        f"{label}: {_format_value(profile.get(field))}" for label, field in PROFILE_FIELDS
    )
    lines.extend(
        f"{label}: {_format_value(satellite.get(field))}" for label, field in SATELLITE1_FIELDS
    )
    lines.append(f"Leave Summary: {leave_summary(view.satellite2)}")
    return "\n".join(lines)


class Deriver:
    """Render an EntityView and embed it."""

    def __init__(self, embedder: BaseEmbedder) -> None:
        self._embedder = embedder

    async def derive(self, view: EntityView) -> DerivedDocument:
        """Build a DerivedDocument.

        Raises:
            EmbeddingUnavailable: Provider failed or returned no vector.
        """
        text = render_text(view)
        try:
            vectors = await self._embedder.embed_texts([text])
        except Exception as e:
            raise EmbeddingUnavailable(
                f"{self._embedder.provider_name} embedding failed: {e}",
                entity_id=view.entity_id,
            ) from e

        if not vectors or not vectors[0]:
            raise EmbeddingUnavailable(
                f"{self._embedder.provider_name} returned an empty vector",
                entity_id=view.entity_id,
            )

        return DerivedDocument(
            entity_id=view.entity_id,
            text=text,
            vector=[float(x) for x in vectors[0]],
            record_ids=view.refs.record_ids,
            source_revisions=view.observed_revisions(),
        )
