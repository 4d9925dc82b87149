# src/sync/consumer.py — v1
"""ChangeFeedConsumer — long-lived change feed reader.

State machine:

    disconnected ──connect──▶ connecting ──first frame──▶ streaming
         ▲                        │                           │
         └──── backoff ◀── feed ended / FeedDisconnected ◀────┘

    any state ──stop()──▶ (drain in-flight runs) ──▶ stopped

Frames are decoded one at a time; a frame that fails to decode is logged and
skipped without closing the stream. Each decoded event is handed to the
orchestrator, and the committed checkpoint only advances past an event once it
and every earlier event have finished their run. Reconnects resume from the
committed checkpoint, so nothing admitted-but-unfinished is lost; redelivered
events are absorbed by the ChangeFilter.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from staffsync.cache.base_checkpoint_store import BaseCheckpointStore
from staffsync.cache.models import FeedCheckpoint
from staffsync.core.errors import ChangeDecodeError, FeedDisconnected, TransientIOError
from staffsync.core.models import ChangeEvent
from staffsync.core.retry import RetryConfig, compute_delay
from staffsync.logging.context import set_component_context
from staffsync.store.base_document_store import BaseDocumentStore, ChangeFrame
from staffsync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)


class FeedState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    STOPPED = "stopped"


def decode_change(frame: ChangeFrame) -> ChangeEvent | None:
    """Decode one change feed frame.

    Returns None for frames that carry no change (heartbeat blank lines and
    the ``last_seq`` trailer).

    Raises:
        ChangeDecodeError: Malformed JSON or a frame missing ``id``/``seq``.
    """
    if isinstance(frame, bytes):
        try:
            frame = frame.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ChangeDecodeError(f"Frame is not valid UTF-8: {e}") from e

    if isinstance(frame, str):
        line = frame.strip()
        if not line:
            return None
        try:
            payload: Any = json.loads(line)
        except json.JSONDecodeError as e:
            raise ChangeDecodeError(f"Frame is not valid JSON: {line[:80]!r}") from e
    else:
        payload = frame

    if not isinstance(payload, dict):
        raise ChangeDecodeError(f"Frame is not an object: {payload!r}")

    if "id" not in payload:
        if "last_seq" in payload:
            return None
        raise ChangeDecodeError(f"Frame has no id: {payload!r}")

    record_id = payload["id"]
    seq = payload.get("seq")
    if not isinstance(record_id, str) or not record_id:
        raise ChangeDecodeError(f"Frame has an invalid id: {record_id!r}")
    if seq is None:
        raise ChangeDecodeError(f"Frame for {record_id} has no seq")

    revision: str | None = None
    changes = payload.get("changes")
    if isinstance(changes, list) and changes and isinstance(changes[0], dict):
        rev = changes[0].get("rev")
        revision = rev if isinstance(rev, str) else None

    return ChangeEvent(
        record_id=record_id,
        revision=revision,
        deleted=bool(payload.get("deleted", False)),
        checkpoint=seq if isinstance(seq, str) else json.dumps(seq),
    )


@dataclass
class _Slot:
    checkpoint: str
    done: bool = False


class _CheckpointTracker:
    """Low-water mark over admitted events, in admission order."""

    def __init__(self, initial: str) -> None:
        self._committed = initial
        self._slots: deque[_Slot] = deque()

    @property
    def committed(self) -> str:
        return self._committed

    @property
    def outstanding(self) -> int:
        return len(self._slots)

    def admit(self, checkpoint: str) -> _Slot:
        slot = _Slot(checkpoint)
        self._slots.append(slot)
        return slot

    def complete(self, slot: _Slot) -> bool:
        """Mark a slot finished. Returns True if the committed checkpoint moved."""
        slot.done = True
        advanced = False
        while self._slots and self._slots[0].done:
            self._committed = self._slots.popleft().checkpoint
            advanced = True
        return advanced


class ChangeFeedConsumer:
    """Read the change feed and drive the orchestrator, reconnecting forever.

    Args:
        store: Document store providing ``changes_since``.
        orchestrator: Pipeline that runs each admitted change.
        checkpoint_store: Optional persistence for the committed checkpoint.
        since: Starting position when no checkpoint was persisted.
        backoff: Reconnect delay policy (``max_retries`` is unused, the
            consumer retries forever).
        sleep: Injectable sleep used for the reconnect delay.
        checkpoint_save_interval_s: Minimum time between checkpoint saves
            while streaming. Saves always happen on disconnect and stop.
        on_state_change: Optional callback invoked with every new state.
    """

    def __init__(
        self,
        store: BaseDocumentStore,
        orchestrator: SyncOrchestrator,
        checkpoint_store: BaseCheckpointStore | None = None,
        since: str = "now",
        backoff: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        checkpoint_save_interval_s: float = 5.0,
        on_state_change: Callable[[FeedState], None] | None = None,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._checkpoint_store = checkpoint_store
        self._since = since
        self._backoff = backoff or RetryConfig(
            max_retries=0, base_delay_s=1.0, backoff_factor=2.0, max_delay_s=60.0
        )
        self._sleep = sleep
        self._save_interval_s = checkpoint_save_interval_s
        self._on_state_change = on_state_change

        self._state = FeedState.DISCONNECTED
        self._stop = asyncio.Event()
        self._tracker = _CheckpointTracker(since)
        self._dirty = False
        self._last_save = 0.0
        self._session_frames = 0
        self._session_events = 0
        self._counters: dict[str, int] = {
            "sessions": 0,
            "frames": 0,
            "events": 0,
            "decode_errors": 0,
        }

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def checkpoint(self) -> str:
        """Committed checkpoint (low-water mark of finished runs)."""
        return self._tracker.committed

    @property
    def counters(self) -> dict[str, int]:
        return dict(self._counters)

    def stop(self) -> None:
        """Request shutdown. ``run`` returns once in-flight runs have drained."""
        self._stop.set()

    async def run(self) -> None:
        """Consume the feed until ``stop()`` is called."""
        set_component_context("consumer")
        self._tracker = _CheckpointTracker(await self._initial_checkpoint())
        attempt = 0

        try:
            while not self._stop.is_set():
                self._set_state(FeedState.CONNECTING)
                self._counters["sessions"] += 1
                self._session_frames = 0
                self._session_events = 0
                since = self._tracker.committed
                logger.info("Connecting to change feed of %s since %s", self._store.database, since)

                try:
                    await self._run_session(since)
                    if not self._stop.is_set():
                        logger.warning("Change feed ended after %d frames", self._session_frames)
                except (FeedDisconnected, TransientIOError) as e:
                    logger.warning("Change feed disconnected: %s", e)
                except Exception:
                    logger.exception("Unexpected change feed failure")

                if self._stop.is_set():
                    break

                self._set_state(FeedState.DISCONNECTED)
                # Heartbeats alone do not prove a healthy session.
                if self._session_events > 0:
                    attempt = 0
                delay = compute_delay(self._backoff, attempt)
                attempt += 1

                # Resume point must cover every admitted event.
                await self._orchestrator.drain()
                await self._persist_checkpoint(force=True)

                logger.info("Reconnecting in %.1fs (attempt %d)", delay, attempt)
                await self._interruptible_sleep(delay)
        finally:
            await self._orchestrator.drain()
            await self._persist_checkpoint(force=True)
            self._set_state(FeedState.STOPPED)
            logger.info(
                "Change feed consumer stopped at %s (%s)", self._tracker.committed, self._counters
            )

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def _run_session(self, since: str) -> None:
        reader = asyncio.create_task(self._read_feed(since), name="change-feed-reader")
        stopper = asyncio.create_task(self._stop.wait(), name="change-feed-stop")
        try:
            done, _ = await asyncio.wait(
                {reader, stopper}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stopper.cancel()
            if not reader.done():
                reader.cancel()
                await asyncio.gather(reader, return_exceptions=True)
        if reader in done:
            reader.result()

    async def _read_feed(self, since: str) -> None:
        async for frame in self._store.changes_since(since):
            self._session_frames += 1
            self._counters["frames"] += 1
            if self._state is not FeedState.STREAMING:
                self._set_state(FeedState.STREAMING)

            try:
                event = decode_change(frame)
            except ChangeDecodeError as e:
                self._counters["decode_errors"] += 1
                logger.warning("Skipping undecodable change frame: %s", e)
                continue

            if event is not None:
                self._session_events += 1
                self._counters["events"] += 1
                self._dispatch(event)

            await self._persist_checkpoint()

    def _dispatch(self, event: ChangeEvent) -> None:
        slot = self._tracker.admit(event.checkpoint)
        task = self._orchestrator.handle_change(event)
        if task is None:
            self._complete(slot)
        else:
            task.add_done_callback(lambda _task, slot=slot: self._complete(slot))

    def _complete(self, slot: _Slot) -> None:
        if self._tracker.complete(slot):
            self._dirty = True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: FeedState) -> None:
        if state is self._state:
            return
        logger.debug("Change feed state %s → %s", self._state.value, state.value)
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    async def _interruptible_sleep(self, delay: float) -> None:
        sleeper = asyncio.ensure_future(self._sleep(delay))
        stopper = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, stopper):
                task.cancel()

    async def _initial_checkpoint(self) -> str:
        if self._checkpoint_store is None:
            return self._since
        saved = await self._checkpoint_store.load(self._store.database)
        if saved is None:
            return self._since
        logger.info("Resuming change feed from saved checkpoint %s", saved.checkpoint)
        return saved.checkpoint

    async def _persist_checkpoint(self, force: bool = False) -> None:
        """Save the checkpoint, logging failures. The next save retries."""
        try:
            await self._save_checkpoint(force=force)
        except Exception:
            logger.exception(
                "Could not persist change feed checkpoint %s", self._tracker.committed
            )

    async def _save_checkpoint(self, force: bool = False) -> None:
        if self._checkpoint_store is None or not self._dirty:
            return
        now = time.monotonic()
        if not force and now - self._last_save < self._save_interval_s:
            return
        await self._checkpoint_store.save(
            FeedCheckpoint(
                database=self._store.database,
                checkpoint=self._tracker.committed,
                updated_at=datetime.now(timezone.utc),
            )
        )
        self._dirty = False
        self._last_save = now
