# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from staffsync.core.keys import KeyScheme


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent or incomplete."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === CouchDB (document store) ===
    couchdb_url: str = "http://localhost:5984"
    couchdb_database: str = "employees"
    couchdb_username: str = ""
    couchdb_password: str = ""
    couchdb_verify_tls: bool = True
    couchdb_timeout_s: float = 30.0
    couchdb_heartbeat_ms: int = 30_000

    # === Record key scheme ===
    key_profile_prefix: str = "employee_1_"
    key_satellite1_prefix: str = "additionalinfo_1_"
    key_satellite2_prefix: str = "leave_"

    # === Embeddings ===
    embedding_provider: Literal["google", "openai", "ollama"] = "google"
    embedding_model: str = "models/embedding-001"
    embedding_dimensions: int = 768
    embedding_ollama_model: str = "nomic-embed-text"
    google_api_key: str = ""
    openai_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # === Vector database ===
    vector_db_type: Literal["chromadb"] = "chromadb"
    vector_db_path: Path = Path("~/.staffsync/vectordb")
    vector_db_url: str = ""
    vector_db_collection: str = "employee-embeddings"

    # === Change feed ===
    feed_since: str = "now"
    feed_backoff_base_s: float = 1.0
    feed_backoff_factor: float = 2.0
    feed_backoff_max_s: float = 60.0

    # === Record fetch ===
    fetch_max_retries: int = 2
    fetch_retry_base_s: float = 0.5

    # === Sync pipeline ===
    sync_max_concurrency: int = 8

    # === Checkpoint ===
    checkpoint_backend: Literal["memory", "json"] = "memory"
    checkpoint_path: Path = Path("~/.staffsync/checkpoint.json")
    checkpoint_save_interval_s: float = 5.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("sync_max_concurrency", "couchdb_heartbeat_ms")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("fetch_max_retries")
    @classmethod
    def validate_fetch_retries(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("fetch_max_retries must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        prefixes = [
            self.key_profile_prefix,
            self.key_satellite1_prefix,
            self.key_satellite2_prefix,
        ]
        if any(not p for p in prefixes):
            errors.append("KEY_*_PREFIX values must be non-empty")
        elif len(set(prefixes)) != len(prefixes):
            errors.append("KEY_*_PREFIX values must be distinct")

        if self.feed_backoff_base_s <= 0:
            errors.append("FEED_BACKOFF_BASE_S must be > 0")
        if self.feed_backoff_max_s < self.feed_backoff_base_s:
            errors.append("FEED_BACKOFF_MAX_S must be >= FEED_BACKOFF_BASE_S")

        if not self.couchdb_database:
            errors.append("COUCHDB_DATABASE must be set")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def key_scheme(self) -> KeyScheme:
        return KeyScheme(
            profile_prefix=self.key_profile_prefix,
            satellite1_prefix=self.key_satellite1_prefix,
            satellite2_prefix=self.key_satellite2_prefix,
        )


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
