"""Helpers shared by the tool groups."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

import httpx
from mcp.server.fastmcp.exceptions import ToolError

from ..adapters.plausible import PlausibleAPIError, PlausibleClient
from ..utils.correlation import get_request_id

logger = logging.getLogger(__name__)

ClientAccessor = Callable[[], PlausibleClient]


def to_text(result: Any) -> str:
    """Pretty-print an upstream result for a text content block."""
    return json.dumps(result, indent=2)


async def call_upstream(tool: str, op: Awaitable[Any]) -> Any:
    """Await an upstream call, converting its failures into tool errors.

    Raises
    ------
    ToolError
        Wrapping :class:`PlausibleAPIError` or transport errors, so the MCP
        layer reports an ``isError`` result instead of failing the request.
    """
    try:
        return await op
    except (PlausibleAPIError, httpx.HTTPError) as exc:
        logger.warning(
            "tool.upstream_error",
            extra={"req_id": get_request_id(), "tool": tool, "error": str(exc)},
        )
        raise ToolError(str(exc)) from exc
