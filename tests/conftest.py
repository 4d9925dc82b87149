# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides an in-memory document store with a scripted change feed, a
deterministic embedder, an in-memory vector store and sample employee records.
No external dependencies — all I/O is faked.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import math
from typing import Any, AsyncIterator

import pytest

from staffsync.cache.fingerprint import FingerprintStore
from staffsync.core.errors import RecordNotFound, TransientIOError
from staffsync.core.keys import EntityKeyResolver, KeyScheme
from staffsync.core.models import IndexEntry, RawRecord
from staffsync.core.retry import RetryConfig
from staffsync.rag.embeddings.base_embedder import BaseEmbedder
from staffsync.rag.models import SearchResult
from staffsync.rag.vector_store.base_vector_store import BaseVectorStore
from staffsync.store.base_document_store import BaseDocumentStore, ChangeFrame
from staffsync.sync.assembler import EntityAssembler
from staffsync.sync.change_filter import ChangeFilter
from staffsync.sync.deriver import Deriver
from staffsync.sync.fetcher import RecordFetcher
from staffsync.sync.index_writer import IndexWriter
from staffsync.sync.orchestrator import SyncOrchestrator


# === SAMPLE DATA ===

EMPLOYEE_DATA: dict[str, Any] = {
    "EmpID": "3427",
    "FirstName": "Uriah",
    "LastName": "Bridges",
    "StartDate": "20-Sep-19",
    "Manager": "Kelley Spencer",
    "Email": "uriah.bridges@bilearner.com",
    "EmployeeStatus": "Active",
    "EmployeeType": "Contract",
    "PayZone": "Zone C",
    "DepartmentType": "Production",
    "Division": "Finance & Accounting",
}

ADDITIONAL_INFO: dict[str, Any] = {
    "DOB": "07-10-1969",
    "State": "MA",
    "GenderCode": "Female",
    "LocationCode": 34904,
    "MaritalDesc": "Widowed",
    "Performance Score": "Fully Meets",
    "Current Employee Rating": 4,
}

LEAVES: dict[str, Any] = {
    "leaves": [
        {"date": "2023-01-10", "type": "sick"},
        {"date": "2023-03-02", "type": "vacation"},
    ]
}


def change_frame(record_id: str, seq: int | str, rev: str = "1-a", deleted: bool = False) -> str:
    """One continuous-feed JSON line as CouchDB sends it."""
    payload: dict[str, Any] = {"seq": seq, "id": record_id, "changes": [{"rev": rev}]}
    if deleted:
        payload["deleted"] = True
    return json.dumps(payload)


# === FAKES ===


class FakeDocumentStore(BaseDocumentStore):
    """In-memory document store with scripted change feed sessions.

    Each entry in ``sessions`` is one connection: a list of frames, where an
    exception instance is raised at that point. Once the script is exhausted,
    ``changes_since`` idles until cancelled.
    """

    def __init__(self, database: str = "employees") -> None:
        self._database = database
        self.records: dict[str, RawRecord] = {}
        self.sessions: list[list[ChangeFrame | BaseException]] = []
        self.since_calls: list[str] = []
        self.get_calls: list[str] = []
        self.transient_failures: dict[str, int] = {}
        self.unreachable: set[str] = set()
        self.closed = False
        self._rev_counter: dict[str, int] = {}

    @property
    def database(self) -> str:
        return self._database

    def put(self, record_id: str, body: dict[str, Any]) -> RawRecord:
        n = self._rev_counter.get(record_id, 0) + 1
        self._rev_counter[record_id] = n
        record = RawRecord(record_id=record_id, revision=f"{n}-{record_id}", body=body)
        self.records[record_id] = record
        return record

    def delete(self, record_id: str) -> None:
        self.records.pop(record_id, None)

    async def get(self, record_id: str) -> RawRecord:
        self.get_calls.append(record_id)
        await asyncio.sleep(0)
        if record_id in self.unreachable:
            raise TransientIOError(f"{record_id} unreachable", record_id=record_id)
        remaining = self.transient_failures.get(record_id, 0)
        if remaining > 0:
            self.transient_failures[record_id] = remaining - 1
            raise TransientIOError(f"{record_id} timed out", record_id=record_id)
        if record_id not in self.records:
            raise RecordNotFound(record_id)
        return self.records[record_id]

    async def changes_since(self, checkpoint: str) -> AsyncIterator[ChangeFrame]:
        self.since_calls.append(checkpoint)
        if not self.sessions:
            await asyncio.Event().wait()
            return
        for item in self.sessions.pop(0):
            await asyncio.sleep(0)
            if isinstance(item, BaseException):
                raise item
            yield item

    async def list_record_ids(self, prefix: str = "") -> list[str]:
        return sorted(r for r in self.records if r.startswith(prefix))

    async def aclose(self) -> None:
        self.closed = True


class MockEmbedder(BaseEmbedder):
    """Deterministic embedder for testing — hashes text to produce vectors."""

    def __init__(self, dimensions: int = 32) -> None:
        self._dims = dimensions
        self.call_count = 0
        self.texts: list[str] = []
        self.fail = False
        self.return_empty = False

    def _text_to_vec(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode()).hexdigest()
        raw = [int(digest[i:i + 2], 16) / 255.0 - 0.5 for i in range(0, len(digest), 2)]
        while len(raw) < self._dims:
            raw.extend(raw[: self._dims - len(raw)])
        raw = raw[: self._dims]
        norm = math.sqrt(sum(x * x for x in raw)) or 1.0
        return [x / norm for x in raw]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.call_count += len(texts)
        self.texts.extend(texts)
        if self.fail:
            raise RuntimeError("embedding service unavailable")
        if self.return_empty:
            return [[] for _ in texts]
        return [self._text_to_vec(t) for t in texts]

    async def embed_query(self, query: str) -> list[float]:
        self.call_count += 1
        return self._text_to_vec(query)

    @property
    def dimensions(self) -> int:
        return self._dims

    @property
    def provider_name(self) -> str:
        return "mock"

    @property
    def model_name(self) -> str:
        return "mock-embedder"


class InMemoryVectorStore(BaseVectorStore):
    """Dict-backed vector store with cosine distance."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, IndexEntry]] = {}
        self.upsert_calls = 0
        self.fail_writes = False

    def _collection(self, collection: str) -> dict[str, IndexEntry]:
        return self.collections.setdefault(collection, {})

    async def upsert(self, collection, ids, embeddings, documents, metadatas=None) -> None:
        self.upsert_calls += 1
        if self.fail_writes:
            raise RuntimeError("index offline")
        entries = self._collection(collection)
        metadatas = metadatas or [{} for _ in ids]
        for id_, vec, doc, meta in zip(ids, embeddings, documents, metadatas):
            entries[id_] = IndexEntry(entity_id=id_, text=doc, vector=vec, metadata=meta)

    async def query(self, collection, query_embedding, top_k=10, filter=None) -> list[SearchResult]:
        def distance(vec: list[float]) -> float:
            dot = sum(a * b for a, b in zip(vec, query_embedding))
            na = math.sqrt(sum(a * a for a in vec)) or 1.0
            nb = math.sqrt(sum(b * b for b in query_embedding)) or 1.0
            return 1.0 - dot / (na * nb)

        hits = [
            SearchResult(
                entity_id=e.entity_id, text=e.text, distance=distance(e.vector), metadata=e.metadata
            )
            for e in self._collection(collection).values()
        ]
        return sorted(hits, key=lambda h: h.distance)[:top_k]

    async def get(self, collection, ids) -> list[IndexEntry]:
        entries = self._collection(collection)
        return [entries[i] for i in ids if i in entries]

    async def delete(self, collection, ids) -> None:
        if self.fail_writes:
            raise RuntimeError("index offline")
        entries = self._collection(collection)
        for id_ in ids:
            entries.pop(id_, None)

    async def list_ids(self, collection) -> list[str]:
        return list(self._collection(collection))

    async def create_collection(self, collection, dimensions) -> None:
        self._collection(collection)

    async def collection_exists(self, collection) -> bool:
        return collection in self.collections

    async def delete_collection(self, collection) -> None:
        self.collections.pop(collection, None)

    async def count(self, collection) -> int:
        return len(self._collection(collection))

    @property
    def provider_name(self) -> str:
        return "memory"


# === FIXTURES ===


@pytest.fixture
def document_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def embedder() -> MockEmbedder:
    return MockEmbedder()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def resolver() -> EntityKeyResolver:
    return EntityKeyResolver(KeyScheme())


@pytest.fixture
def no_sleep():
    """Recording replacement for asyncio.sleep."""
    delays: list[float] = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)
        await asyncio.sleep(0)

    _sleep.delays = delays  # type: ignore[attr-defined]
    return _sleep


@pytest.fixture
def seed_employee(document_store: FakeDocumentStore):
    """Put the three records of one employee into the fake store."""

    def _seed(n: int | str, with_additional: bool = True, with_leaves: bool = True, **data: Any):
        body = {"data": {**EMPLOYEE_DATA, "EmpID": str(n), **data}}
        document_store.put(f"employee_1_{n}", body)
        if with_additional:
            document_store.put(f"additionalinfo_1_{n}", dict(ADDITIONAL_INFO))
        if with_leaves:
            document_store.put(f"leave_{n}", dict(LEAVES))

    return _seed


@pytest.fixture
def make_orchestrator(no_sleep):
    """Build a SyncOrchestrator over the given fakes."""

    def _make(
        store: BaseDocumentStore,
        embedder: BaseEmbedder,
        vector_store: BaseVectorStore,
        scheme: KeyScheme | None = None,
        max_concurrency: int = 8,
        fingerprints: FingerprintStore | None = None,
    ) -> tuple[SyncOrchestrator, IndexWriter]:
        resolver = EntityKeyResolver(scheme or KeyScheme())
        fetcher = RecordFetcher(
            store,
            retry=RetryConfig(max_retries=2, base_delay_s=0.01, jitter=False),
            sleep=no_sleep,
        )
        writer = IndexWriter(vector_store, collection="employee-embeddings", dimensions=embedder.dimensions)
        orchestrator = SyncOrchestrator(
            resolver=resolver,
            assembler=EntityAssembler(fetcher),
            change_filter=ChangeFilter(fingerprints if fingerprints is not None else FingerprintStore()),
            deriver=Deriver(embedder),
            index_writer=writer,
            max_concurrency=max_concurrency,
        )
        return orchestrator, writer

    return _make
