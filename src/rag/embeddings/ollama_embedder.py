# src/rag/embeddings/ollama_embedder.py — v1
"""Ollama embedding adapter (local inference).

Uses the Ollama REST API (/api/embed) for local embedding generation.
Models: nomic-embed-text, mxbai-embed-large, etc.
"""

from __future__ import annotations

import logging

import httpx

from staffsync.rag.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class OllamaEmbedder(BaseEmbedder):
    """Local embeddings via Ollama API."""

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        dimensions: int = 768,
        timeout_s: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model_name = model
        self._base_url = base_url.rstrip("/")
        self._dimensions = dimensions
        self._timeout_s = timeout_s
        self._client = client

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed document texts in a single /api/embed call."""
        return await self._embed(texts)

    async def embed_query(self, query: str) -> list[float]:
        """Embed a single query via Ollama API."""
        vectors = await self._embed([query])
        return vectors[0]

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        payload = {"model": self._model_name, "input": texts}
        if self._client is not None:
            resp = await self._client.post(f"{self._base_url}/api/embed", json=payload)
        else:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                resp = await client.post(f"{self._base_url}/api/embed", json=payload)
        resp.raise_for_status()
        data = resp.json()
        embeddings = data.get("embeddings", [])
        if len(embeddings) != len(texts):
            raise RuntimeError(
                f"Ollama returned {len(embeddings)} embeddings for {len(texts)} "
                f"inputs (model {self._model_name})"
            )
        return embeddings

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._model_name
