# src/rag/embeddings/openai_embedder.py — v1
"""OpenAI embedding adapter (EMBEDDING_PROVIDER=openai).

text-embedding-3-* models accept a ``dimensions`` argument, so the index can
be kept at EMBEDDING_DIMENSIONS regardless of the model's native size. Older
models (text-embedding-ada-002) always return their native 1536 values.
"""

from __future__ import annotations

import logging

from staffsync.rag.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)

_SHORTENABLE_PREFIX = "text-embedding-3"


class OpenAIEmbedder(BaseEmbedder):
    """Employee texts embedded through the OpenAI embeddings endpoint."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int = 1536,
        batch_size: int = 256,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self._batch_size = max(1, batch_size)
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise ImportError(
                    "openai package required: pip install openai"
                ) from e
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or "")
        return self.__client

    def _request_kwargs(self) -> dict:
        kwargs: dict = {"model": self._model}
        if self._model.startswith(_SHORTENABLE_PREFIX):
            kwargs["dimensions"] = self._dimensions
        return kwargs

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed entity texts, one request per ``batch_size`` slice."""
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self._batch_size):
            batch = texts[start:start + self._batch_size]
            response = await self._client.embeddings.create(
                input=batch, **self._request_kwargs()
            )
            # The API may return items out of order.
            items = sorted(response.data, key=lambda item: getattr(item, "index", 0))
            vectors.extend(list(item.embedding) for item in items)
        logger.debug("Embedded %d texts with %s", len(texts), self._model)
        return vectors

    async def embed_query(self, query: str) -> list[float]:
        vectors = await self.embed_texts([query])
        return vectors[0]

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
