# src/sync/fetcher.py — v1
"""RecordFetcher — point reads with bounded retry of transient failures.

RecordNotFound is an answer, not a failure, and is never retried.
TransientIOError is retried up to ``max_retries`` times, then re-raised
unchanged so callers never confuse "store unreachable" with "record absent".
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from staffsync.core.errors import RecordNotFound, TransientIOError
from staffsync.core.models import RawRecord
from staffsync.core.retry import RetryConfig, with_retry
from staffsync.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)

FetchError = RecordNotFound | TransientIOError


class RecordFetcher:
    """Fetch records from the document store."""

    def __init__(
        self,
        store: BaseDocumentStore,
        retry: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._retry = retry or RetryConfig(max_retries=2, base_delay_s=0.5)
        self._sleep = sleep

    async def fetch(self, record_id: str) -> RawRecord:
        """Fetch one record.

        Raises:
            RecordNotFound: The record does not exist (or was deleted).
            TransientIOError: The store stayed unreachable after retries.
        """
        return await with_retry(
            self._store.get,
            record_id,
            retry_on=(TransientIOError,),
            config=self._retry,
            label=f"fetch {record_id}",
            sleep=self._sleep,
        )

    async def fetch_many(
        self, record_ids: Sequence[str]
    ) -> dict[str, RawRecord | FetchError]:
        """Fetch records concurrently, reporting failures per record."""
        results = await asyncio.gather(
            *(self.fetch(record_id) for record_id in record_ids),
            return_exceptions=True,
        )
        outcomes: dict[str, RawRecord | FetchError] = {}
        for record_id, result in zip(record_ids, results):
            if isinstance(result, (RawRecord, RecordNotFound, TransientIOError)):
                outcomes[record_id] = result
            elif isinstance(result, BaseException):
                # Anything else is a bug in a store adapter, not a fetch outcome.
                raise result
        return outcomes
