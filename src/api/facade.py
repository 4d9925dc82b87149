# src/api/facade.py — v1
"""Public API facade — the composition root of the sync engine.

Usage:
    from staffsync.api.facade import build_sync_service
    service = build_sync_service(settings)
    await service.run()                      # follow the change feed
    await service.sync_entity("employee_1_42")
    await service.reindex_all(reset=True)
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from staffsync.api.models import ReindexReport
from staffsync.cache.fingerprint import FingerprintStore
from staffsync.config.settings import Settings
from staffsync.core.keys import EntityKeyResolver
from staffsync.core.models import SyncResult
from staffsync.core.retry import RetryConfig
from staffsync.rag.models import SearchResult
from staffsync.sync.assembler import EntityAssembler
from staffsync.sync.change_filter import ChangeFilter
from staffsync.sync.consumer import ChangeFeedConsumer
from staffsync.sync.deriver import Deriver
from staffsync.sync.fetcher import RecordFetcher
from staffsync.sync.index_writer import IndexWriter
from staffsync.sync.orchestrator import SyncOrchestrator

if TYPE_CHECKING:
    from staffsync.cache.base_checkpoint_store import BaseCheckpointStore
    from staffsync.rag.embeddings.base_embedder import BaseEmbedder
    from staffsync.rag.vector_store.base_vector_store import BaseVectorStore
    from staffsync.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)


class SyncService:
    """Owns one orchestrator and (while watching) one feed consumer."""

    def __init__(
        self,
        settings: Settings,
        document_store: BaseDocumentStore,
        embedder: BaseEmbedder,
        index_writer: IndexWriter,
        orchestrator: SyncOrchestrator,
        resolver: EntityKeyResolver,
        checkpoint_store: BaseCheckpointStore | None = None,
    ) -> None:
        self._settings = settings
        self._document_store = document_store
        self._embedder = embedder
        self._index_writer = index_writer
        self._orchestrator = orchestrator
        self._resolver = resolver
        self._checkpoint_store = checkpoint_store
        self._consumer: ChangeFeedConsumer | None = None
        self._collection_ready = False

    @property
    def orchestrator(self) -> SyncOrchestrator:
        return self._orchestrator

    @property
    def index_writer(self) -> IndexWriter:
        return self._index_writer

    @property
    def consumer(self) -> ChangeFeedConsumer | None:
        return self._consumer

    async def start(self) -> None:
        """Make sure the index collection exists."""
        if not self._collection_ready:
            await self._index_writer.ensure_collection()
            self._collection_ready = True

    async def sync_entity(self, record_id: str) -> SyncResult:
        """Re-sync the entity owning ``record_id`` (manual trigger)."""
        await self.start()
        return await self._orchestrator.sync_entity(record_id)

    async def reindex_all(self, reset: bool = False) -> ReindexReport:
        """Sync every entity that has a profile record, and drop entries that lost theirs.

        Args:
            reset: Drop the index collection first (and forget fingerprints).
        """
        start_time = time.monotonic()
        await self.start()
        if reset:
            await self._index_writer.reset()
            self._orchestrator.change_filter.fingerprints.clear()

        prefix = self._resolver.scheme.profile_prefix
        record_ids = [
            record_id
            for record_id in await self._document_store.list_record_ids(prefix)
            if self._resolver.is_profile(record_id)
        ]
        logger.info("Reindexing %d entities (reset=%s)", len(record_ids), reset)

        # Entries whose profile is gone resolve to a removal.
        live = {self._resolver.resolve(record_id).entity_id for record_id in record_ids}
        indexed_ids = await self._index_writer.entity_ids()
        orphans = [
            profile_id
            for profile_id in (
                self._resolver.refs_for(entity_id).profile.record_id
                for entity_id in indexed_ids
                if entity_id not in live
            )
            if self._resolver.is_profile(profile_id)
        ]
        if orphans:
            logger.info("Checking %d index entries without a listed profile", len(orphans))

        results = await asyncio.gather(
            *(self._orchestrator.sync_entity(record_id) for record_id in record_ids + orphans)
        )
        report = ReindexReport(reset=reset)
        for result in results:
            report.record(result)
        report.duration_seconds = time.monotonic() - start_time

        logger.info(
            "Reindex complete: %d indexed, %d unchanged, %d removed, %d failed in %.1fs",
            report.indexed, report.unchanged, report.removed, report.failed, report.duration_seconds,
        )
        return report

    async def search(self, text: str, k: int = 5) -> list[SearchResult]:
        """Embed a query and return the closest entities."""
        await self.start()
        vector = await self._embedder.embed_query(text)
        return await self._index_writer.query(vector, k)

    async def run(self) -> None:
        """Follow the change feed until ``stop()``."""
        await self.start()
        settings = self._settings
        self._consumer = ChangeFeedConsumer(
            store=self._document_store,
            orchestrator=self._orchestrator,
            checkpoint_store=self._checkpoint_store,
            since=settings.feed_since,
            backoff=RetryConfig(
                max_retries=0,
                base_delay_s=settings.feed_backoff_base_s,
                backoff_factor=settings.feed_backoff_factor,
                max_delay_s=settings.feed_backoff_max_s,
            ),
            checkpoint_save_interval_s=settings.checkpoint_save_interval_s,
        )
        await self._consumer.run()

    def stop(self) -> None:
        if self._consumer is not None:
            self._consumer.stop()

    async def aclose(self) -> None:
        await self._orchestrator.drain()
        await self._document_store.aclose()


def build_sync_service(
    settings: Settings | None = None,
    document_store: BaseDocumentStore | None = None,
    embedder: BaseEmbedder | None = None,
    vector_store: BaseVectorStore | None = None,
    checkpoint_store: BaseCheckpointStore | None = None,
) -> SyncService:
    """Wire a SyncService from settings, building any collaborator not supplied.

    Raises:
        ConfigurationError: If a provider cannot be configured (missing key...).
    """
    settings = settings or Settings()

    if document_store is None:
        from staffsync.store.store_factory import create_document_store
        document_store = create_document_store(settings)
    if embedder is None:
        from staffsync.rag.embeddings.embedder_factory import create_embedder
        embedder = create_embedder(settings)
    if vector_store is None:
        from staffsync.rag.vector_store.vector_store_factory import create_vector_store
        vector_store = create_vector_store(settings)
    if checkpoint_store is None:
        from staffsync.cache.cache_factory import create_checkpoint_store
        checkpoint_store = create_checkpoint_store(settings)

    resolver = EntityKeyResolver(settings.key_scheme)
    fetcher = RecordFetcher(
        document_store,
        retry=RetryConfig(
            max_retries=settings.fetch_max_retries,
            base_delay_s=settings.fetch_retry_base_s,
        ),
    )
    index_writer = IndexWriter(
        vector_store,
        collection=settings.vector_db_collection,
        dimensions=embedder.dimensions,
    )
    orchestrator = SyncOrchestrator(
        resolver=resolver,
        assembler=EntityAssembler(fetcher),
        change_filter=ChangeFilter(FingerprintStore()),
        deriver=Deriver(embedder),
        index_writer=index_writer,
        max_concurrency=settings.sync_max_concurrency,
    )

    logger.info(
        "Sync service ready: db=%s, embedder=%s/%s, index=%s/%s",
        document_store.database, embedder.provider_name, embedder.model_name,
        vector_store.provider_name, settings.vector_db_collection,
    )
    return SyncService(
        settings=settings,
        document_store=document_store,
        embedder=embedder,
        index_writer=index_writer,
        orchestrator=orchestrator,
        resolver=resolver,
        checkpoint_store=checkpoint_store,
    )
