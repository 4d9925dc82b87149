# src/cache/memory_store.py — v1
"""In-process checkpoint store (CHECKPOINT_BACKEND=memory).

Nothing survives a restart; the feed starts from FEED_SINCE every time.
"""

from __future__ import annotations

from staffsync.cache.base_checkpoint_store import BaseCheckpointStore
from staffsync.cache.models import FeedCheckpoint


class MemoryCheckpointStore(BaseCheckpointStore):
    def __init__(self) -> None:
        self._checkpoints: dict[str, FeedCheckpoint] = {}

    async def load(self, database: str) -> FeedCheckpoint | None:
        return self._checkpoints.get(database)

    async def save(self, checkpoint: FeedCheckpoint) -> None:
        self._checkpoints[checkpoint.database] = checkpoint

    async def clear(self, database: str) -> None:
        self._checkpoints.pop(database, None)
