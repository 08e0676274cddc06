# src/imageproxy/logging/context.py
"""Contextual logging support: attach request_id, address, state to log records.

Each request runs in its own asyncio task, so context variables set while
handling one request never leak into another.
"""

from __future__ import annotations

import contextvars
import uuid
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_address: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "address", default=None
)
_state: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "state", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    address: str | None = None
    state: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        address=_address.get(),
        state=_state.get(),
    )


def set_request_context(request_id: str | None = None) -> str:
    """Start a request context; returns the request id."""
    rid = request_id or uuid.uuid4().hex[:12]
    _request_id.set(rid)
    _address.set(None)
    _state.set(None)
    return rid


def set_address_context(address: str) -> None:
    _address.set(address)


def set_state_context(state: str) -> None:
    _state.set(state)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _address.set(None)
    _state.set(None)
