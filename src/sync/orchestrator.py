# src/sync/orchestrator.py — v1
"""SyncOrchestrator — one pipeline run per admitted change.

A run resolves the changed record to its entity, assembles the entity view,
asks the ChangeFilter whether anything moved, derives text + vector, upserts
the index entry and only then commits fingerprints. Profile deletions skip
straight to IndexWriter.remove; a run that finds the profile gone (NotFound,
not unreachable) removes the entry too, so a failed removal heals on the next
event for that entity.

Per-entity ordering: every admitted run is chained behind the previous run of
the same entity, so run N has committed (or failed without mutating state)
before run N+1 looks at the fingerprint cache. Runs for different entities
proceed concurrently, bounded by a semaphore.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import Counter

from staffsync.core.errors import MissingProfile, RecordNotFound, SyncError
from staffsync.core.keys import EntityKeyResolver, NotAnEntityRecord, ResolvedRecord
from staffsync.core.models import ChangeEvent, SyncResult
from staffsync.logging.context import set_component_context, set_entity_context
from staffsync.sync.assembler import EntityAssembler
from staffsync.sync.change_filter import ChangeFilter
from staffsync.sync.deriver import Deriver
from staffsync.sync.index_writer import IndexWriter

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Wire resolver → assembler → filter → deriver → writer.

    Args:
        resolver: Record id → entity classification.
        assembler: Fetches and joins an entity's records.
        change_filter: Revision fingerprint check (owns the fingerprint cache).
        deriver: Canonical text + embedding.
        index_writer: Vector index writes.
        max_concurrency: Maximum number of runs executing at once.
    """

    def __init__(
        self,
        resolver: EntityKeyResolver,
        assembler: EntityAssembler,
        change_filter: ChangeFilter,
        deriver: Deriver,
        index_writer: IndexWriter,
        max_concurrency: int = 8,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._resolver = resolver
        self._assembler = assembler
        self._change_filter = change_filter
        self._deriver = deriver
        self._index_writer = index_writer
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tails: dict[str, asyncio.Task[SyncResult]] = {}
        self._inflight: set[asyncio.Task[SyncResult]] = set()
        self._stats: Counter[str] = Counter()

    @property
    def change_filter(self) -> ChangeFilter:
        return self._change_filter

    @property
    def stats(self) -> dict[str, int]:
        """Outcome counters since start."""
        return dict(self._stats)

    @property
    def pending(self) -> int:
        """Number of admitted runs not yet finished."""
        return len(self._inflight)

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def handle_change(self, event: ChangeEvent) -> asyncio.Task[SyncResult] | None:
        """Admit one feed event. Returns the scheduled run, or None if ignored."""
        resolved = self._resolver.resolve(event.record_id)
        if isinstance(resolved, NotAnEntityRecord):
            logger.debug("Ignoring non-entity record %s", event.record_id)
            self._stats["ignored"] += 1
            return None
        remove = event.deleted and resolved.kind == "profile"
        return self._admit(resolved, remove=remove)

    async def sync_entity(self, record_id: str) -> SyncResult:
        """Manual trigger: sync the entity owning ``record_id`` and wait for it."""
        resolved = self._resolver.resolve(record_id)
        if isinstance(resolved, NotAnEntityRecord):
            self._stats["ignored"] += 1
            return SyncResult(record_id=record_id, outcome="ignored")
        return await self._admit(resolved, remove=False)

    async def drain(self) -> None:
        """Wait for every admitted run (including ones admitted meanwhile)."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def _admit(self, resolved: ResolvedRecord, *, remove: bool) -> asyncio.Task[SyncResult]:
        entity_id = resolved.entity_id
        previous = self._tails.get(entity_id)
        task = asyncio.create_task(
            self._run_after(previous, resolved, remove),
            name=f"sync-entity-{entity_id}",
        )
        self._tails[entity_id] = task
        self._inflight.add(task)
        task.add_done_callback(functools.partial(self._on_done, entity_id))
        return task

    def _on_done(self, entity_id: str, task: asyncio.Task[SyncResult]) -> None:
        self._inflight.discard(task)
        if self._tails.get(entity_id) is task:
            del self._tails[entity_id]

    async def _run_after(
        self,
        previous: asyncio.Task[SyncResult] | None,
        resolved: ResolvedRecord,
        remove: bool,
    ) -> SyncResult:
        if previous is not None and not previous.done():
            # asyncio.wait never raises the awaited task's exception.
            await asyncio.wait({previous})
        async with self._semaphore:
            return await self._run(resolved, remove)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def _run(self, resolved: ResolvedRecord, remove: bool) -> SyncResult:
        entity_id = resolved.entity_id
        record_id = resolved.record_id
        set_entity_context(entity_id, record_id)
        set_component_context("orchestrator")

        try:
            if remove:
                result = await self._remove(resolved)
            else:
                result = await self._sync(resolved)
        except SyncError as e:
            logger.warning(
                "Sync failed for entity %s via %s: %s: %s",
                entity_id, record_id, type(e).__name__, e,
            )
            result = SyncResult(
                record_id=record_id,
                entity_id=entity_id,
                outcome="failed",
                error=f"{type(e).__name__}: {e}",
            )
        except Exception as e:
            logger.exception("Unexpected error syncing entity %s via %s", entity_id, record_id)
            result = SyncResult(
                record_id=record_id,
                entity_id=entity_id,
                outcome="failed",
                error=f"{type(e).__name__}: {e}",
            )

        self._stats[result.outcome] += 1
        return result

    async def _sync(self, resolved: ResolvedRecord) -> SyncResult:
        entity_id = resolved.entity_id
        refs = self._resolver.refs_for(entity_id)
        try:
            view = await self._assembler.assemble(entity_id, refs)
        except MissingProfile as e:
            if isinstance(e.__cause__, RecordNotFound):
                # Profile gone: the entity must have no entry.
                return await self._remove(resolved)
            raise

        if not self._change_filter.should_process(view):
            logger.debug(
                "Entity %s unchanged (%s)", entity_id, self._change_filter.revision_key(view)
            )
            return SyncResult(
                record_id=resolved.record_id, entity_id=entity_id, outcome="unchanged"
            )

        doc = await self._deriver.derive(view)
        await self._index_writer.upsert(doc)
        self._change_filter.commit(view)

        logger.info("Indexed entity %s (%s)", entity_id, doc.revision_key)
        return SyncResult(record_id=resolved.record_id, entity_id=entity_id, outcome="indexed")

    async def _remove(self, resolved: ResolvedRecord) -> SyncResult:
        entity_id = resolved.entity_id
        await self._index_writer.remove(entity_id)
        self._change_filter.forget(self._resolver.refs_for(entity_id))
        logger.info("Removed entity %s (profile absent, via %s)", entity_id, resolved.record_id)
        return SyncResult(record_id=resolved.record_id, entity_id=entity_id, outcome="removed")
