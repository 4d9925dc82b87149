# src/cache/models.py — v1
"""Checkpoint model persisted by checkpoint stores."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class FeedCheckpoint(BaseModel):
    """Last committed change feed position."""

    database: str
    checkpoint: str
    updated_at: datetime
