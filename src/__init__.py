# src/__init__.py — v1
"""staffsync — keeps a vector index of employee records in sync with CouchDB."""

from staffsync.version import __version__

__all__ = ["__version__"]
