# src/cache/cache_factory.py — v1
"""Factory for checkpoint store instantiation."""

from __future__ import annotations

from staffsync.cache.base_checkpoint_store import BaseCheckpointStore
from staffsync.config.settings import Settings


def create_checkpoint_store(settings: Settings | None = None) -> BaseCheckpointStore:
    """Instantiate the configured checkpoint backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseCheckpointStore implementation.
    """
    backend = "memory" if settings is None else settings.checkpoint_backend

    if backend == "memory":
        from staffsync.cache.memory_store import MemoryCheckpointStore
        return MemoryCheckpointStore()

    if backend == "json":
        from staffsync.cache.json_store import JsonCheckpointStore
        return JsonCheckpointStore(path=settings.checkpoint_path)

    raise ValueError(f"Unsupported checkpoint backend: {backend!r}")
