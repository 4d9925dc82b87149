# src/rag/embeddings/embedder_factory.py — v1
"""Factory: instantiate embedding provider from configuration.

Missing API keys are a startup failure (ConfigurationError), not a
per-entity EmbeddingUnavailable later on.
"""

from __future__ import annotations

import importlib
import logging

from staffsync.config.settings import ConfigurationError, Settings
from staffsync.rag.embeddings.base_embedder import BaseEmbedder

logger = logging.getLogger(__name__)

_PROVIDER_REGISTRY: dict[str, str] = {
    "google": "staffsync.rag.embeddings.google_embedder.GoogleEmbedder",
    "openai": "staffsync.rag.embeddings.openai_embedder.OpenAIEmbedder",
    "ollama": "staffsync.rag.embeddings.ollama_embedder.OllamaEmbedder",
}


class UnsupportedEmbeddingProviderError(ValueError):
    """Raised when an embedding provider is not registered."""


def create_embedder(settings: Settings) -> BaseEmbedder:
    """Instantiate the configured embedding provider.

    Args:
        settings: Application settings. Uses EMBEDDING_PROVIDER and EMBEDDING_MODEL.

    Returns:
        Configured BaseEmbedder instance.

    Raises:
        UnsupportedEmbeddingProviderError: Provider not registered.
        ConfigurationError: Provider requires an API key that is not set.
    """
    provider = settings.embedding_provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedEmbeddingProviderError(
            f"Unsupported embedding provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    kwargs: dict = {"dimensions": settings.embedding_dimensions}

    if provider == "google":
        if not settings.google_api_key:
            raise ConfigurationError("GOOGLE_API_KEY must be set when EMBEDDING_PROVIDER=google")
        kwargs["model"] = settings.embedding_model
        kwargs["api_key"] = settings.google_api_key
    elif provider == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY must be set when EMBEDDING_PROVIDER=openai")
        kwargs["model"] = settings.embedding_model
        kwargs["api_key"] = settings.openai_api_key
    elif provider == "ollama":
        kwargs["model"] = settings.embedding_ollama_model
        kwargs["base_url"] = settings.ollama_base_url

    cls = _import_class(_PROVIDER_REGISTRY[provider])
    logger.debug("Creating embedder: provider=%s", provider)
    return cls(**kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
