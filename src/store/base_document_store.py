# src/store/base_document_store.py — v1
"""Abstract document store interface.

The sync engine only needs point reads, a change feed and (for bulk
reindexing) an id listing. Frames from ``changes_since`` are passed through
undecoded; the consumer decodes each one individually so a single bad frame
never closes the stream.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from staffsync.core.models import RawRecord

# A raw change feed frame: a JSON line (str/bytes) or an already-parsed mapping.
ChangeFrame = str | bytes | dict[str, Any]


class BaseDocumentStore(ABC):
    """Unified interface for the primary document store."""

    @abstractmethod
    async def get(self, record_id: str) -> RawRecord:
        """Fetch one record.

        Raises:
            RecordNotFound: No live record with this id.
            TransientIOError: Network, auth or server failure.
        """

    @abstractmethod
    def changes_since(self, checkpoint: str) -> AsyncIterator[ChangeFrame]:
        """Stream change frames after ``checkpoint`` until the feed ends.

        Raises:
            FeedDisconnected: The feed could not be opened or broke mid-stream.
        """

    @abstractmethod
    async def list_record_ids(self, prefix: str = "") -> list[str]:
        """List ids of live records starting with ``prefix``."""

    async def aclose(self) -> None:
        """Release network resources."""

    @property
    @abstractmethod
    def database(self) -> str:
        """Database name, used to key persisted checkpoints."""
