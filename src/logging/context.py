# src/logging/context.py — v1
"""Contextual logging support — attach entity_id, record_id, component to log records.

Each pipeline run executes in its own asyncio task, which receives a copy of
the current context, so values set inside a run never leak into other runs.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_entity_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "entity_id", default=None
)
_record_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "record_id", default=None
)
_component: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "component", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    entity_id: str | None = None
    record_id: str | None = None
    component: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        entity_id=_entity_id.get(),
        record_id=_record_id.get(),
        component=_component.get(),
    )


def set_entity_context(entity_id: str | None, record_id: str | None = None) -> None:
    """Set entity-level context (called once per pipeline run)."""
    _entity_id.set(entity_id)
    _record_id.set(record_id)


def set_component_context(component: str) -> None:
    """Set the component currently doing work (consumer, orchestrator...)."""
    _component.set(component)


def clear_context() -> None:
    """Reset all context variables."""
    _entity_id.set(None)
    _record_id.set(None)
    _component.set(None)
