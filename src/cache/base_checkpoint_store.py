# src/cache/base_checkpoint_store.py — v1
"""Abstract checkpoint store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from staffsync.cache.models import FeedCheckpoint


class BaseCheckpointStore(ABC):
    """Persists the change feed position between process runs."""

    @abstractmethod
    async def load(self, database: str) -> FeedCheckpoint | None:
        """Return the last saved checkpoint for a database, if any."""

    @abstractmethod
    async def save(self, checkpoint: FeedCheckpoint) -> None:
        """Persist a checkpoint, replacing the previous one."""

    @abstractmethod
    async def clear(self, database: str) -> None:
        """Forget the checkpoint for a database."""
