"""Protocol-server factory.

:func:`create_mcp_server` builds one FastMCP server bound to one
:class:`PlausibleClient`, with every tool group plus the ``hello`` check tool
registered. Both transports use it: stdio builds a single server from the
environment, HTTP builds one per credential pair through the server cache.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .. import SERVER_NAME, __version__
from ..adapters.plausible import PlausibleClient
from ..tools import register_events_tools, register_sites_tools, register_stats_tools

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "Tools for the Plausible Analytics Stats API v2, Events API and Sites API v1. "
    "Sites API tools need an Enterprise Sites API key."
)


def create_mcp_server(
    client: PlausibleClient,
    *,
    transport: str = "streamable-http",
    firebase_enabled: Optional[bool] = None,
) -> FastMCP:
    """Build a FastMCP server whose tools all call through ``client``.

    Parameters
    ----------
    client: PlausibleClient
        Upstream client shared by every tool on this server.
    transport: str
        Transport label reported by ``hello`` ("stdio" or "streamable-http").
    firebase_enabled: Optional[bool]
        Remote persistence status reported by ``hello``; omitted when None.
    """
    mcp = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)
    # FastMCP does not take a version; advertise ours in initialize results
    mcp._mcp_server.version = __version__

    def get_client() -> PlausibleClient:
        return client

    register_stats_tools(mcp, get_client)
    register_events_tools(mcp, get_client)
    register_sites_tools(mcp, get_client)

    @mcp.tool(
        name="hello",
        description=(
            "A simple test tool to verify that the Plausible Analytics MCP server "
            "is working correctly"
        ),
    )
    async def hello() -> str:
        payload = {
            "message": "Hello from Plausible Analytics MCP!",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "apiUrl": client.api_url,
            "transport": transport,
        }
        if firebase_enabled is not None:
            payload["firebase"] = "enabled" if firebase_enabled else "disabled"
        return json.dumps(payload, indent=2)

    _ = hello
    logger.debug(
        "mcp.server.created",
        extra={"api_url": client.api_url, "transport": transport},
    )
    return mcp
