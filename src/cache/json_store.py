# src/cache/json_store.py — v1
"""JSON file-based checkpoint store (CHECKPOINT_BACKEND=json).

One file holds the checkpoints of every database, keyed by database name.
Writes go to a sibling temp file first and are moved into place, so a crash
mid-write leaves the previous checkpoint intact.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from staffsync.cache.base_checkpoint_store import BaseCheckpointStore
from staffsync.cache.models import FeedCheckpoint

logger = logging.getLogger(__name__)


class JsonCheckpointStore(BaseCheckpointStore):
    """File-based checkpoint store."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self, database: str) -> FeedCheckpoint | None:
        """Return the saved checkpoint, or None if missing or unreadable."""
        data = self._read_all()
        raw = data.get(database)
        if raw is None:
            return None
        try:
            return FeedCheckpoint(**raw)
        except Exception as e:
            logger.warning("Ignoring unreadable checkpoint for %s: %s", database, e)
            return None

    async def save(self, checkpoint: FeedCheckpoint) -> None:
        data = self._read_all()
        data[checkpoint.database] = checkpoint.model_dump(mode="json")
        self._write_all(data)

    async def clear(self, database: str) -> None:
        data = self._read_all()
        if data.pop(database, None) is not None:
            self._write_all(data)

    def _read_all(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("Checkpoint file %s is corrupt, starting fresh: %s", self._path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict[str, dict]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)
