# src/rag/vector_store/chromadb_store.py — v1
"""ChromaDB vector store adapter.

Uses the chromadb SDK for local (persistent / in-process) or remote storage.
Collections use cosine distance.
"""

from __future__ import annotations

import logging
from pathlib import Path

from staffsync.core.models import IndexEntry
from staffsync.rag.models import SearchResult
from staffsync.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)

_COLLECTION_METADATA = {"hnsw:space": "cosine"}


class ChromaDBStore(BaseVectorStore):
    """Vector store backed by ChromaDB."""

    def __init__(
        self,
        persist_path: str | Path | None = None,
        host: str | None = None,
        port: int = 8000,
    ) -> None:
        try:
            import chromadb
        except ImportError as e:
            raise ImportError(
                "chromadb package required: pip install chromadb"
            ) from e

        if host:
            self._client = chromadb.HttpClient(host=host, port=port)
        elif persist_path:
            path = Path(persist_path).expanduser()
            path.mkdir(parents=True, exist_ok=True)
            self._client = chromadb.PersistentClient(path=str(path))
        else:
            self._client = chromadb.EphemeralClient()

    def _collection(self, collection: str):
        return self._client.get_or_create_collection(
            collection, metadata=_COLLECTION_METADATA
        )

    async def upsert(
        self,
        collection: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict] | None = None,
    ) -> None:
        """Insert or replace vectors."""
        self._collection(collection).upsert(
            ids=ids,
            embeddings=embeddings,
            documents=documents,
            metadatas=metadatas,
        )

    async def query(
        self,
        collection: str,
        query_embedding: list[float],
        top_k: int = 10,
        filter: dict | None = None,
    ) -> list[SearchResult]:
        """Query by embedding similarity."""
        col = self._collection(collection)
        available = col.count()
        if available == 0:
            return []

        kwargs: dict = {
            "query_embeddings": [query_embedding],
            "n_results": min(top_k, available),
            "include": ["documents", "metadatas", "distances"],
        }
        if filter:
            kwargs["where"] = filter

        results = col.query(**kwargs)

        search_results: list[SearchResult] = []
        if results["ids"] and results["ids"][0]:
            documents = results.get("documents") or [[]]
            metadatas = results.get("metadatas") or [[]]
            distances = results.get("distances") or [[]]
            for i, entity_id in enumerate(results["ids"][0]):
                search_results.append(
                    SearchResult(
                        entity_id=entity_id,
                        text=documents[0][i] if documents[0] else "",
                        distance=float(distances[0][i]) if distances[0] else 0.0,
                        metadata=dict(metadatas[0][i] or {}) if metadatas[0] else {},
                    )
                )
        return search_results

    async def get(self, collection: str, ids: list[str]) -> list[IndexEntry]:
        """Fetch stored entries by id."""
        results = self._collection(collection).get(
            ids=ids, include=["documents", "metadatas", "embeddings"]
        )
        documents = results.get("documents")
        metadatas = results.get("metadatas")
        embeddings = results.get("embeddings")

        entries: list[IndexEntry] = []
        for i, entity_id in enumerate(results["ids"]):
            entries.append(
                IndexEntry(
                    entity_id=entity_id,
                    text=documents[i] if documents is not None else "",
                    vector=[float(x) for x in embeddings[i]] if embeddings is not None else [],
                    metadata=dict(metadatas[i] or {}) if metadatas is not None else {},
                )
            )
        return entries

    async def delete(self, collection: str, ids: list[str]) -> None:
        """Delete vectors by ID."""
        self._collection(collection).delete(ids=ids)

    async def list_ids(self, collection: str) -> list[str]:
        return list(self._collection(collection).get(include=[])["ids"])

    async def create_collection(self, collection: str, dimensions: int) -> None:
        """Create a named collection. Chroma infers dimensions from the first upsert."""
        self._collection(collection)

    async def collection_exists(self, collection: str) -> bool:
        """Check if a collection exists."""
        try:
            self._client.get_collection(collection)
            return True
        except Exception:
            return False

    async def delete_collection(self, collection: str) -> None:
        """Drop a collection if present."""
        if await self.collection_exists(collection):
            self._client.delete_collection(collection)

    async def count(self, collection: str) -> int:
        """Return number of vectors in a collection."""
        return self._collection(collection).count()

    @property
    def provider_name(self) -> str:
        return "chromadb"
