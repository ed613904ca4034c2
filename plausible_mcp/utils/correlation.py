"""Per-request correlation ids for structured logging.

A ContextVar holds the current request id so that upstream Plausible calls made
while serving an MCP request log the same ``req_id`` as the HTTP layer.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def set_request_id(request_id: str | None = None) -> str:
    """Set (or generate) the current request correlation id and return it."""
    rid = request_id or str(uuid.uuid4())
    _request_id_var.set(rid)
    return rid


def get_request_id() -> str:
    """Return the current request correlation id, or empty string."""

    return _request_id_var.get()
