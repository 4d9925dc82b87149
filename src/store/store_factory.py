# src/store/store_factory.py — v1
"""Factory: instantiate the document store from configuration."""

from __future__ import annotations

import logging

from staffsync.config.settings import Settings
from staffsync.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)


def create_document_store(settings: Settings) -> BaseDocumentStore:
    """Instantiate the CouchDB document store.

    Args:
        settings: Application settings (COUCHDB_*).

    Returns:
        Configured BaseDocumentStore instance.
    """
    from staffsync.store.couchdb_store import CouchDBStore

    if not settings.couchdb_verify_tls:
        logger.warning("TLS verification disabled for %s", settings.couchdb_url)

    return CouchDBStore(
        url=settings.couchdb_url,
        database=settings.couchdb_database,
        username=settings.couchdb_username,
        password=settings.couchdb_password,
        verify_tls=settings.couchdb_verify_tls,
        timeout_s=settings.couchdb_timeout_s,
        heartbeat_ms=settings.couchdb_heartbeat_ms,
    )
