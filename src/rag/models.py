# src/rag/models.py — v1
"""Vector index read models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """One ranked hit from a vector similarity query."""

    entity_id: str
    text: str = ""
    distance: float
    metadata: dict[str, Any] = Field(default_factory=dict)
