"""Credential-scoped cache of MCP protocol servers.

Each distinct (API URL, API key) pair gets its own FastMCP server and upstream
client, built on first use and reused afterwards. Entries are keyed by
:func:`credential_key`, which keeps only the first 8 characters of the key:
two keys that share that prefix on the same URL resolve to the same server.

An entry that leaves the cache, by eviction or invalidation, has its upstream
client closed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, NamedTuple, Optional, Set

from mcp.server.fastmcp import FastMCP

from ..adapters.plausible import PlausibleClient
from ..utils.cache import Cache
from .app import create_mcp_server

logger = logging.getLogger(__name__)

KEY_PREFIX_LENGTH = 8
DEMO_API_KEY = "demo-key"


class ServerEntry(NamedTuple):
    server: FastMCP
    client: PlausibleClient


ServerFactory = Callable[[str, str], ServerEntry]


def credential_key(api_url: str, api_key: str) -> str:
    """Cache key for a credential pair: ``"{api_url}:{first 8 chars of key}"``."""
    return f"{api_url}:{api_key[:KEY_PREFIX_LENGTH]}"


def default_factory(
    transport: str = "streamable-http", firebase_enabled: Optional[bool] = None
) -> ServerFactory:
    """Factory building a fresh client plus server for a credential pair."""

    def _build(api_url: str, api_key: str) -> ServerEntry:
        client = PlausibleClient(api_url, api_key)
        server = create_mcp_server(
            client, transport=transport, firebase_enabled=firebase_enabled
        )
        return ServerEntry(server, client)

    return _build


class ServerCache:
    """LRU map from credential key to protocol server.

    Parameters
    ----------
    factory: ServerFactory
        Called with ``(api_url, api_key)`` on a miss.
    maxsize: int
        Capacity; the least recently used server is dropped beyond it.
    """

    def __init__(self, factory: ServerFactory, maxsize: int = 1024) -> None:
        self._factory = factory
        self._servers: Cache[str, ServerEntry] = Cache(
            maxsize=maxsize, on_evict=self._release
        )
        self._closing: Set[asyncio.Task] = set()

    def resolve(self, api_url: str, api_key: str) -> FastMCP:
        """Return the server for these credentials, building it on first use."""
        key = credential_key(api_url, api_key)
        entry = self._servers.get(key)
        if entry is not None:
            return entry.server
        entry = self._factory(api_url, api_key)
        self._servers.set(key, entry)
        logger.info(
            "mcp.server_cache.created",
            extra={"api_url": api_url, "cached": len(self._servers)},
        )
        return entry.server

    def invalidate(self, api_url: str, api_key: str) -> bool:
        """Drop the entry for these credentials; True if one was present."""
        removed = self._servers.pop(credential_key(api_url, api_key)) is not None
        if removed:
            logger.info("mcp.server_cache.invalidated", extra={"api_url": api_url})
        return removed

    def build_demo(self, api_url: str) -> FastMCP:
        """Throwaway server for tool discovery without credentials; not cached."""
        return self._factory(api_url, DEMO_API_KEY).server

    async def aclose(self) -> None:
        """Drop every entry and wait until all upstream clients are closed."""
        self._servers.clear()
        if self._closing:
            await asyncio.gather(*list(self._closing))

    def _release(self, key: str, entry: ServerEntry) -> None:
        logger.info(
            "mcp.server_cache.released", extra={"api_url": entry.client.api_url}
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(entry.client.aclose())
            return
        task = loop.create_task(entry.client.aclose())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, tuple) and len(item) == 2:
            return credential_key(*item) in self._servers
        return item in self._servers

    def __len__(self) -> int:
        return len(self._servers)
