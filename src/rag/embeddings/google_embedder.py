# src/rag/embeddings/google_embedder.py — v1
"""Google Gemini embedding adapter.

Uses the google-generativeai SDK.
Models: models/embedding-001, models/text-embedding-004.
"""

from __future__ import annotations

import logging

from staffsync.rag.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)


class GoogleEmbedder(BaseEmbedder):
    """Embeddings via the Gemini API."""

    def __init__(
        self,
        model: str = "models/embedding-001",
        api_key: str = "",
        dimensions: int = 768,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self.__genai = None

    @property
    def _genai(self):
        if self.__genai is None:
            try:
                import google.generativeai as genai
            except ImportError as e:
                raise ImportError(
                    "google-generativeai package required: pip install google-generativeai"
                ) from e
            genai.configure(api_key=self._api_key)
            self.__genai = genai
        return self.__genai

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed document texts (task_type=retrieval_document)."""
        result = await self._genai.embed_content_async(
            model=self._model,
            content=texts,
            task_type="retrieval_document",
        )
        return [list(vec) for vec in result["embedding"]]

    async def embed_query(self, query: str) -> list[float]:
        """Embed a search query (task_type=retrieval_query)."""
        result = await self._genai.embed_content_async(
            model=self._model,
            content=query,
            task_type="retrieval_query",
        )
        return list(result["embedding"])

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def model_name(self) -> str:
        return self._model
