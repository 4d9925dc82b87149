# tests/unit/store/test_unit_couchdb_store.py — v1
"""Tests for store/couchdb_store.py — HTTP behaviour via httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from staffsync.config.settings import Settings
from staffsync.core.errors import FeedDisconnected, RecordNotFound, TransientIOError
from staffsync.store.couchdb_store import CouchDBStore
from staffsync.store.store_factory import create_document_store


def _store(handler) -> CouchDBStore:
    client = httpx.AsyncClient(
        base_url="http://couch.test:5984", transport=httpx.MockTransport(handler)
    )
    return CouchDBStore(url="http://couch.test:5984", database="employees", client=client)


class TestGet:
    @pytest.mark.asyncio
    async def test_ok(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/employees/employee_1_42"
            return httpx.Response(
                200, json={"_id": "employee_1_42", "_rev": "3-abc", "data": {"FirstName": "Jane"}}
            )

        record = await _store(handler).get("employee_1_42")
        assert record.record_id == "employee_1_42"
        assert record.revision == "3-abc"
        assert record.body["data"]["FirstName"] == "Jane"

    @pytest.mark.asyncio
    async def test_not_found(self):
        store = _store(lambda request: httpx.Response(404, json={"error": "not_found"}))
        with pytest.raises(RecordNotFound) as exc_info:
            await store.get("leave_42")
        assert exc_info.value.record_id == "leave_42"

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self):
        store = _store(lambda request: httpx.Response(503))
        with pytest.raises(TransientIOError, match="503"):
            await store.get("leave_42")

    @pytest.mark.asyncio
    async def test_auth_failure_is_transient(self):
        store = _store(lambda request: httpx.Response(401, json={"error": "unauthorized"}))
        with pytest.raises(TransientIOError, match="401"):
            await store.get("leave_42")

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransientIOError, match="connection refused"):
            await _store(handler).get("employee_1_1")

    @pytest.mark.asyncio
    async def test_missing_rev(self):
        store = _store(lambda request: httpx.Response(200, json={"_id": "employee_1_1"}))
        with pytest.raises(TransientIOError, match="_rev"):
            await store.get("employee_1_1")

    @pytest.mark.asyncio
    async def test_id_is_quoted(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["raw_path"] = request.url.raw_path
            return httpx.Response(404)

        with pytest.raises(RecordNotFound):
            await _store(handler).get("_design/views")
        assert seen["raw_path"] == b"/employees/_design%2Fviews"


class TestChangesSince:
    @pytest.mark.asyncio
    async def test_streams_lines(self):
        lines = [
            json.dumps({"seq": "1-a", "id": "employee_1_1", "changes": [{"rev": "1-x"}]}),
            "",
            json.dumps({"seq": "2-b", "id": "leave_1", "changes": [{"rev": "1-y"}]}),
        ]
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, content=("\n".join(lines) + "\n").encode())

        frames = [f async for f in _store(handler).changes_since("now")]
        assert seen["params"] == {"feed": "continuous", "since": "now", "heartbeat": "30000"}
        assert frames == lines

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        store = _store(lambda request: httpx.Response(401))
        with pytest.raises(FeedDisconnected, match="401"):
            async for _ in store.changes_since("now"):
                pass

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(FeedDisconnected, match="timed out"):
            async for _ in _store(handler).changes_since("5-abc"):
                pass


class TestListRecordIds:
    @pytest.mark.asyncio
    async def test_prefix_range(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={"rows": [{"id": "employee_1_1"}, {"id": "employee_1_2"}]},
            )

        ids = await _store(handler).list_record_ids("employee_1_")
        assert ids == ["employee_1_1", "employee_1_2"]
        assert seen["params"]["startkey"] == '"employee_1_"'
        assert seen["params"]["endkey"].startswith('"employee_1_')

    @pytest.mark.asyncio
    async def test_error(self):
        store = _store(lambda request: httpx.Response(500))
        with pytest.raises(TransientIOError):
            await store.list_record_ids()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        store = CouchDBStore(url="http://x", database="employees", client=client)
        await store.aclose()
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        store = CouchDBStore(url="http://localhost:5984", database="employees")
        await store.aclose()
        assert store._client.is_closed


class TestStoreFactory:
    def test_creates_couchdb(self):
        s = Settings(_env_file=None, couchdb_database="staff", couchdb_username="admin")
        store = create_document_store(s)
        assert isinstance(store, CouchDBStore)
        assert store.database == "staff"
