"""Stateless Streamable HTTP bridge for the ``/mcp`` endpoint.

Every request gets a fresh :class:`StreamableHTTPServerTransport` with no
session id. The protocol server behind it is looked up in the
:class:`ServerCache` by the caller's Plausible credentials, connected to the
transport for the duration of the request, and disconnected afterwards.

Credentials are taken, in order, from the ``apiKey``/``apiUrl`` query
parameters, the ``X-Plausible-Api-Key``/``X-Plausible-Api-Url`` headers, and
the configured defaults. Discovery calls (``initialize``, ``tools/list``,
``notifications/initialized``) without a key are answered by a throwaway demo
server so registries can list the tools anonymously.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import anyio
from mcp.server.fastmcp import FastMCP
from mcp.server.streamable_http import StreamableHTTPServerTransport
from mcp.server.transport_security import TransportSecuritySettings
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from ..analytics.recorder import AnalyticsRecorder, RequestMetadata
from ..utils.correlation import set_request_id
from .cache import ServerCache

logger = logging.getLogger(__name__)

MCP_ENDPOINT = "/mcp"
DISCOVERY_METHODS = frozenset(
    {"initialize", "tools/list", "notifications/initialized"}
)
REQUIRED_ACCEPT = ("application/json", "text/event-stream")

MISSING_KEY_BODY = {
    "error": "Missing Plausible API key",
    "message": (
        "Provide your API key via query parameter (?apiKey=YOUR_KEY), header "
        "(X-Plausible-Api-Key), or environment variable (PLAUSIBLE_API_KEY)"
    ),
    "example": "/mcp?apiKey=YOUR_PLAUSIBLE_API_KEY",
}
INTERNAL_ERROR_BODY = {
    "jsonrpc": "2.0",
    "error": {"code": -32603, "message": "Internal server error"},
    "id": None,
}


@dataclass(frozen=True)
class Credentials:
    """Plausible credentials resolved for one request."""

    api_url: str
    api_key: str

    @classmethod
    def from_request(
        cls, request: Request, default_url: str, default_key: str
    ) -> "Credentials":
        params = request.query_params
        headers = request.headers
        api_key = (
            params.get("apiKey") or headers.get("x-plausible-api-key") or default_key
        )
        api_url = (
            params.get("apiUrl") or headers.get("x-plausible-api-url") or default_url
        )
        return cls(api_url=api_url, api_key=api_key)


def ensure_accept(scope: Scope) -> Scope:
    """Return ``scope`` with an Accept header listing JSON and SSE.

    The streamable HTTP transport rejects POSTs whose Accept header lacks
    either media type; many clients send only one.
    """
    headers = [(k, v) for k, v in scope.get("headers", []) if k != b"accept"]
    current = ", ".join(
        v.decode("latin-1") for k, v in scope.get("headers", []) if k == b"accept"
    )
    missing = [media for media in REQUIRED_ACCEPT if media not in current]
    if not missing:
        return scope
    accept = ", ".join(([current] if current else []) + missing)
    headers.append((b"accept", accept.encode("latin-1")))
    return {**scope, "headers": headers}


def parse_messages(body: bytes) -> List[Dict[str, Any]]:
    """JSON-RPC messages in a request body; empty when absent or unparseable."""
    if not body:
        return []
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return []
    items = payload if isinstance(payload, list) else [payload]
    return [m for m in items if isinstance(m, dict)]


def _tool_names(messages: List[Dict[str, Any]]) -> List[str]:
    names = []
    for message in messages:
        if message.get("method") != "tools/call":
            continue
        params = message.get("params")
        name = params.get("name") if isinstance(params, dict) else None
        if isinstance(name, str) and name:
            names.append(name)
    return names


def _is_discovery(messages: List[Dict[str, Any]]) -> bool:
    return bool(messages) and all(
        m.get("method") in DISCOVERY_METHODS for m in messages
    )


class StatelessMCPBridge:
    """ASGI endpoint serving MCP over stateless Streamable HTTP.

    Parameters
    ----------
    cache: ServerCache
        Source of credential-scoped protocol servers.
    recorder: AnalyticsRecorder
        Receives one request record per call, plus tool-call records.
    default_api_url: str
        Upstream URL used when the request names none.
    default_api_key: str
        Upstream key used when the request supplies none; may be empty.
    json_response: bool
        Answer POSTs with a plain JSON body instead of an SSE stream.
    """

    def __init__(
        self,
        cache: ServerCache,
        recorder: AnalyticsRecorder,
        *,
        default_api_url: str,
        default_api_key: str = "",
        json_response: bool = False,
    ) -> None:
        self.cache = cache
        self.recorder = recorder
        self.default_api_url = default_api_url
        self.default_api_key = default_api_key
        self.json_response = json_response
        self.security_settings = TransportSecuritySettings(
            enable_dns_rebinding_protection=False
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        req_id = set_request_id(_header(scope, b"x-correlation-id"))
        start = time.time()
        scope = ensure_accept(scope)
        request = Request(scope, receive)
        body = await request.body()
        messages = parse_messages(body)

        meta = RequestMetadata.from_request(request)
        self.recorder.record_request(MCP_ENDPOINT, meta)
        for tool in _tool_names(messages):
            self.recorder.record_tool_call(tool, meta)

        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            creds = Credentials.from_request(
                request, self.default_api_url, self.default_api_key
            )
            if not creds.api_key:
                if _is_discovery(messages):
                    server = self.cache.build_demo(creds.api_url)
                    logger.info(
                        "mcp.request.discovery",
                        extra={"req_id": req_id, "method": messages[0].get("method")},
                    )
                else:
                    response = JSONResponse(MISSING_KEY_BODY, status_code=400)
                    await response(scope, receive, tracking_send)
                    return
            else:
                server = self.cache.resolve(creds.api_url, creds.api_key)

            await self._serve(server, scope, _replay(body, receive), tracking_send)
        except Exception:
            logger.error(
                "mcp.request.failed",
                extra={"req_id": req_id, "method": request.method},
                exc_info=True,
            )
            if not started:
                response = JSONResponse(INTERNAL_ERROR_BODY, status_code=500)
                await response(scope, receive, send)
        finally:
            logger.debug(
                "mcp.request.completed",
                extra={
                    "req_id": req_id,
                    "method": request.method,
                    "duration_ms": int((time.time() - start) * 1000),
                },
            )

    async def _serve(
        self, server: FastMCP, scope: Scope, receive: Receive, send: Send
    ) -> None:
        """Run ``server`` on a one-shot transport for this request only."""
        transport = StreamableHTTPServerTransport(
            mcp_session_id=None,
            is_json_response_enabled=self.json_response,
            event_store=None,
            security_settings=self.security_settings,
        )
        lowlevel = server._mcp_server

        async def run_server(*, task_status=anyio.TASK_STATUS_IGNORED) -> None:
            async with transport.connect() as (read_stream, write_stream):
                task_status.started()
                await lowlevel.run(
                    read_stream,
                    write_stream,
                    lowlevel.create_initialization_options(),
                    stateless=True,
                )

        async with anyio.create_task_group() as tg:
            await tg.start(run_server)
            try:
                await transport.handle_request(scope, receive, send)
            finally:
                await transport.terminate()
                tg.cancel_scope.cancel()


def _header(scope: Scope, name: bytes) -> Optional[str]:
    for key, value in scope.get("headers", []):
        if key == name:
            return value.decode("latin-1")
    return None


def _replay(body: bytes, receive: Receive) -> Receive:
    """Receive callable that yields the already-read body once, then defers."""
    delivered = False

    async def _receive() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return _receive
