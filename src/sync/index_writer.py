# src/sync/index_writer.py — v1
"""IndexWriter — one entry per entity in the vector index.

Every write is a single-id upsert keyed by entity_id, so a retried or
redelivered write replaces rather than duplicates.
"""

from __future__ import annotations

import logging

from staffsync.core.errors import IndexWriteError
from staffsync.core.models import DerivedDocument, IndexEntry
from staffsync.rag.models import SearchResult
from staffsync.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


def build_metadata(doc: DerivedDocument) -> dict[str, str]:
    """Flat metadata (Chroma only accepts scalar values)."""
    profile_id, satellite1_id, satellite2_id = doc.record_ids
    profile_rev, satellite1_rev, satellite2_rev = doc.source_revisions
    return {
        "entity_id": doc.entity_id,
        "profile_id": profile_id,
        "satellite1_id": satellite1_id,
        "satellite2_id": satellite2_id,
        "profile_rev": profile_rev,
        "satellite1_rev": satellite1_rev,
        "satellite2_rev": satellite2_rev,
        "revision_key": doc.revision_key,
    }


class IndexWriter:
    """Idempotent writes against one vector store collection."""

    def __init__(
        self,
        vector_store: BaseVectorStore,
        collection: str = "employee-embeddings",
        dimensions: int = 768,
    ) -> None:
        self._store = vector_store
        self._collection = collection
        self._dimensions = dimensions

    @property
    def collection(self) -> str:
        return self._collection

    async def ensure_collection(self) -> None:
        try:
            await self._store.create_collection(self._collection, self._dimensions)
        except Exception as e:
            raise IndexWriteError(f"Cannot create collection {self._collection}: {e}") from e

    async def upsert(self, doc: DerivedDocument) -> None:
        """Insert or replace the entry for ``doc.entity_id``."""
        try:
            await self._store.upsert(
                collection=self._collection,
                ids=[doc.entity_id],
                embeddings=[doc.vector],
                documents=[doc.text],
                metadatas=[build_metadata(doc)],
            )
        except Exception as e:
            raise IndexWriteError(
                f"Upsert failed for entity {doc.entity_id}: {e}", entity_id=doc.entity_id
            ) from e
        logger.debug("Upserted entity %s (%s)", doc.entity_id, doc.revision_key)

    async def remove(self, entity_id: str) -> None:
        """Remove the entry for ``entity_id``. No-op if absent."""
        try:
            await self._store.delete(self._collection, [entity_id])
        except Exception as e:
            raise IndexWriteError(
                f"Remove failed for entity {entity_id}: {e}", entity_id=entity_id
            ) from e
        logger.debug("Removed entity %s", entity_id)

    async def get(self, entity_id: str) -> IndexEntry | None:
        try:
            entries = await self._store.get(self._collection, [entity_id])
        except Exception as e:
            raise IndexWriteError(
                f"Read failed for entity {entity_id}: {e}", entity_id=entity_id
            ) from e
        return entries[0] if entries else None

    async def query(self, vector: list[float], k: int = 5) -> list[SearchResult]:
        try:
            return await self._store.query(self._collection, vector, top_k=k)
        except Exception as e:
            raise IndexWriteError(f"Query failed on {self._collection}: {e}") from e

    async def entity_ids(self) -> list[str]:
        """Every entity id currently in the index."""
        try:
            return await self._store.list_ids(self._collection)
        except Exception as e:
            raise IndexWriteError(f"Listing failed on {self._collection}: {e}") from e

    async def count(self) -> int:
        try:
            return await self._store.count(self._collection)
        except Exception as e:
            raise IndexWriteError(f"Count failed on {self._collection}: {e}") from e

    async def reset(self) -> None:
        """Drop and recreate the collection."""
        logger.warning("Dropping collection %s", self._collection)
        try:
            await self._store.delete_collection(self._collection)
        except Exception as e:
            raise IndexWriteError(f"Cannot drop collection {self._collection}: {e}") from e
        await self.ensure_collection()
