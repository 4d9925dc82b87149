# src/core/errors.py — v1
"""Error taxonomy for the synchronization engine.

Every per-entity failure derives from SyncError so the orchestrator can
contain it at a single boundary. NotAnEntityRecord is deliberately absent:
unrecognized identifiers are a resolver result (see core.keys), not an error.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for all synchronization errors."""

    def __init__(self, message: str, *, entity_id: str | None = None) -> None:
        self.entity_id = entity_id
        super().__init__(message)


class RecordNotFound(SyncError):
    """The document store has no live record for this identifier.

    Expected for satellite records: absence is data, not a failure.
    """

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Record not found: {record_id}")


class TransientIOError(SyncError):
    """Network, auth or server failure talking to a collaborator. Retryable."""

    def __init__(self, message: str, *, record_id: str | None = None) -> None:
        self.record_id = record_id
        super().__init__(message)


class MissingProfile(SyncError):
    """The profile record could not be fetched, so the entity cannot be derived."""


class PartialFetchError(SyncError):
    """A satellite fetch failed transiently; the whole entity should be retried."""

    def __init__(self, entity_id: str, record_ids: list[str]) -> None:
        self.record_ids = record_ids
        super().__init__(
            f"Transient failure fetching {', '.join(record_ids)} for entity {entity_id}",
            entity_id=entity_id,
        )


class EmbeddingUnavailable(SyncError):
    """The embedding provider failed or returned an empty vector."""


class IndexWriteError(SyncError):
    """The vector index rejected an upsert or removal."""


class FeedDisconnected(SyncError):
    """The change feed ended or failed. Triggers a reconnect, never fatal."""


class ChangeDecodeError(SyncError):
    """A single change feed frame could not be decoded."""
