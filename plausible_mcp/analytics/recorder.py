"""In-memory traffic analytics.

:class:`AnalyticsRecorder` owns one :class:`AnalyticsState` and mutates it on
every tracked HTTP request and MCP tool call. It is created by the HTTP
application factory and handed to routes and the MCP bridge explicitly.

Concurrency: all mutations are synchronous and run on the event loop thread,
so they are atomic with respect to each other. Sharing a recorder across OS
threads would require a lock around every mutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request

from .models import (
    MAX_RECENT_CALLS,
    USER_AGENT_MAX_LENGTH,
    AnalyticsState,
    ToolCallRecord,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


@dataclass(frozen=True)
class RequestMetadata:
    """Client-identifying fields of one inbound request.

    Attributes
    ----------
    method: str
        HTTP method.
    forwarded_for: Optional[str]
        Raw ``X-Forwarded-For`` header value.
    peer: Optional[str]
        Transport-level peer address.
    user_agent: Optional[str]
        Raw ``User-Agent`` header value.
    """

    method: str = "GET"
    forwarded_for: Optional[str] = None
    peer: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "RequestMetadata":
        return cls(
            method=request.method,
            forwarded_for=request.headers.get("x-forwarded-for"),
            peer=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )

    @property
    def client_ip(self) -> str:
        """First forwarded-for hop, else the peer address, else ``unknown``."""
        if self.forwarded_for:
            first = self.forwarded_for.split(",")[0].strip()
            if first:
                return first
        return self.peer or UNKNOWN

    @property
    def short_user_agent(self) -> str:
        return (self.user_agent or UNKNOWN)[:USER_AGENT_MAX_LENGTH]


def _bump(counter: dict[str, int], key: str) -> None:
    counter[key] = counter.get(key, 0) + 1


class AnalyticsRecorder:
    """Counts requests and tool calls into an :class:`AnalyticsState`."""

    def __init__(self, state: AnalyticsState | None = None) -> None:
        self.state = state or AnalyticsState()

    def replace_state(self, state: AnalyticsState) -> None:
        """Adopt a loaded snapshot (used once at startup)."""
        self.state = state

    def record_request(self, endpoint: str, meta: RequestMetadata) -> None:
        """Count one request under its method, endpoint, client and hour."""
        s = self.state
        s.total_requests += 1
        _bump(s.requests_by_method, meta.method or UNKNOWN)
        _bump(s.requests_by_endpoint, endpoint)
        _bump(s.clients_by_ip, meta.client_ip)
        _bump(s.clients_by_user_agent, meta.short_user_agent)
        # "YYYY-MM-DDTHH"
        _bump(s.hourly_requests, utc_now_iso()[:13])

    def record_tool_call(self, tool_name: str, meta: RequestMetadata) -> None:
        """Count one tool invocation and prepend it to the recent-calls log."""
        s = self.state
        s.total_tool_calls += 1
        _bump(s.tool_calls, tool_name)
        s.recent_tool_calls.insert(
            0,
            ToolCallRecord(
                tool=tool_name,
                timestamp=utc_now_iso(),
                client_ip=meta.client_ip,
                user_agent=meta.short_user_agent,
            ),
        )
        del s.recent_tool_calls[MAX_RECENT_CALLS:]
        logger.debug("analytics.tool_call", extra={"tool": tool_name})

    def import_totals(self, total_requests: int, total_tool_calls: int) -> None:
        """Add externally accumulated totals to the live counters."""
        self.state.total_requests += max(0, total_requests)
        self.state.total_tool_calls += max(0, total_tool_calls)
