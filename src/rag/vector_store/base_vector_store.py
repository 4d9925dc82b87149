# src/rag/vector_store/base_vector_store.py — v1
"""Abstract vector store interface.

Ids are entity ids; ``upsert`` with an existing id replaces that entry, which
is what gives the index its one-entry-per-entity invariant.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from staffsync.core.models import IndexEntry
from staffsync.rag.models import SearchResult


class BaseVectorStore(ABC):
    """Unified interface for vector store backends."""

    @abstractmethod
    async def upsert(
        self,
        collection: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict] | None = None,
    ) -> None:
        """Insert or replace vectors with associated documents and metadata."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        query_embedding: list[float],
        top_k: int = 10,
        filter: dict | None = None,
    ) -> list[SearchResult]:
        """Query vectors by similarity, closest first."""

    @abstractmethod
    async def get(self, collection: str, ids: list[str]) -> list[IndexEntry]:
        """Fetch entries by id. Unknown ids are omitted."""

    @abstractmethod
    async def delete(self, collection: str, ids: list[str]) -> None:
        """Delete vectors by ID. Unknown ids are ignored."""

    @abstractmethod
    async def list_ids(self, collection: str) -> list[str]:
        """Return every id stored in a collection."""

    @abstractmethod
    async def create_collection(self, collection: str, dimensions: int) -> None:
        """Create a named collection if it does not exist."""

    @abstractmethod
    async def collection_exists(self, collection: str) -> bool:
        """Check if a collection exists."""

    @abstractmethod
    async def delete_collection(self, collection: str) -> None:
        """Drop a collection and everything in it. Missing collections are ignored."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Return number of vectors in a collection."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier."""
