# src/rag/vector_store/vector_store_factory.py — v1
"""Factory: instantiate vector store from configuration."""

from __future__ import annotations

import logging
from urllib.parse import urlparse

from staffsync.config.settings import Settings
from staffsync.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


class UnsupportedVectorStoreError(ValueError):
    """Raised when a vector store type is not supported."""


def create_vector_store(settings: Settings) -> BaseVectorStore:
    """Instantiate the configured vector store.

    Args:
        settings: Application settings (VECTOR_DB_*).

    Returns:
        Configured BaseVectorStore instance.

    Raises:
        UnsupportedVectorStoreError: If type is not supported.
    """
    db_type = settings.vector_db_type

    if db_type == "chromadb":
        from staffsync.rag.vector_store.chromadb_store import ChromaDBStore
        url = settings.vector_db_url
        if url:
            # Remote ChromaDB server: host[:port] with or without scheme
            parsed = urlparse(url if "://" in url else f"http://{url}")
            return ChromaDBStore(host=parsed.hostname, port=parsed.port or 8000)
        return ChromaDBStore(persist_path=settings.vector_db_path)

    raise UnsupportedVectorStoreError(
        f"Unsupported vector store type: {db_type!r}. Available: chromadb"
    )
