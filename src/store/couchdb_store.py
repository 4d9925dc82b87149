# src/store/couchdb_store.py — v1
"""CouchDB document store adapter.

Talks to the CouchDB HTTP API with an httpx.AsyncClient:
  - GET /{db}/{id}                       point reads
  - GET /{db}/_changes?feed=continuous   live change feed (one JSON line per change)
  - GET /{db}/_all_docs                  id listing for bulk reindex
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from urllib.parse import quote

import httpx

from staffsync.core.errors import FeedDisconnected, RecordNotFound, TransientIOError
from staffsync.core.models import RawRecord
from staffsync.store.base_document_store import BaseDocumentStore, ChangeFrame

logger = logging.getLogger(__name__)

# High sentinel for _all_docs prefix range scans.
_RANGE_END = "\ufff0"


class CouchDBStore(BaseDocumentStore):
    """Document store backed by CouchDB."""

    def __init__(
        self,
        url: str,
        database: str,
        username: str = "",
        password: str = "",
        verify_tls: bool = True,
        timeout_s: float = 30.0,
        heartbeat_ms: int = 30_000,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._database = database
        self._db_path = "/" + quote(database, safe="")
        self._heartbeat_ms = heartbeat_ms
        self._timeout_s = timeout_s
        self._owns_client = client is None
        if client is None:
            auth = (username, password) if username else None
            client = httpx.AsyncClient(
                base_url=url.rstrip("/"),
                auth=auth,
                verify=verify_tls,
                timeout=timeout_s,
            )
        self._client = client

    @property
    def database(self) -> str:
        return self._database

    async def get(self, record_id: str) -> RawRecord:
        """Fetch one document; _rev becomes the record revision."""
        path = f"{self._db_path}/{quote(record_id, safe='')}"
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as e:
            raise TransientIOError(
                f"GET {record_id} failed: {e}", record_id=record_id
            ) from e

        if response.status_code == 404:
            raise RecordNotFound(record_id)
        if response.status_code != 200:
            raise TransientIOError(
                f"GET {record_id} returned HTTP {response.status_code}",
                record_id=record_id,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransientIOError(
                f"GET {record_id} returned invalid JSON: {e}", record_id=record_id
            ) from e
        revision = body.get("_rev") if isinstance(body, dict) else None
        if not revision:
            raise TransientIOError(
                f"GET {record_id} returned a document without _rev",
                record_id=record_id,
            )
        return RawRecord(record_id=record_id, revision=str(revision), body=body)

    async def changes_since(self, checkpoint: str) -> AsyncIterator[ChangeFrame]:
        """Yield raw lines of the continuous changes feed, heartbeats included."""
        params = {
            "feed": "continuous",
            "since": checkpoint,
            "heartbeat": str(self._heartbeat_ms),
        }
        # Heartbeats arrive every heartbeat_ms; anything slower is a dead socket.
        timeout = httpx.Timeout(self._timeout_s, read=self._heartbeat_ms / 1000 * 2)
        try:
            async with self._client.stream(
                "GET", f"{self._db_path}/_changes", params=params, timeout=timeout
            ) as response:
                if response.status_code != 200:
                    raise FeedDisconnected(
                        f"_changes returned HTTP {response.status_code}"
                    )
                logger.debug("Change feed open since=%s", checkpoint)
                async for line in response.aiter_lines():
                    yield line
        except httpx.HTTPError as e:
            raise FeedDisconnected(f"_changes stream failed: {e}") from e

    async def list_record_ids(self, prefix: str = "") -> list[str]:
        """List live document ids with a key range scan over _all_docs."""
        params: dict[str, str] = {}
        if prefix:
            params["startkey"] = f'"{prefix}"'
            params["endkey"] = f'"{prefix}{_RANGE_END}"'
        try:
            response = await self._client.get(f"{self._db_path}/_all_docs", params=params)
        except httpx.HTTPError as e:
            raise TransientIOError(f"_all_docs failed: {e}") from e
        if response.status_code != 200:
            raise TransientIOError(f"_all_docs returned HTTP {response.status_code}")
        rows = response.json().get("rows", [])
        return [row["id"] for row in rows if "id" in row]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
