"""MCP stdio server for local AI chat client integration.

Builds a single protocol server from ``PLAUSIBLE_API_KEY`` and
``PLAUSIBLE_API_URL`` and serves it over stdio. Logs go to stderr; stdout is
reserved for protocol messages.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

from mcp.server.fastmcp import FastMCP

from ..adapters.plausible import PlausibleClient
from ..config.models import EnvSettings
from ..observability import setup_logging
from .app import create_mcp_server

logger = logging.getLogger(__name__)


async def _serve_forever(mcp_app: FastMCP, client: PlausibleClient) -> None:
    """Run FastMCP stdio server with graceful shutdown.

    Handles Ctrl-C (SIGINT) to exit cleanly without traceback; a second
    Ctrl-C exits immediately.
    """
    logger.info("Starting MCP stdio server (attach your MCP client)...")
    shutdown_event = asyncio.Event()
    shutting_down = False

    def _on_sigint() -> None:
        nonlocal shutting_down
        if not shutting_down:
            shutting_down = True
            logger.info("Shutting down MCP stdio server...")
            shutdown_event.set()
        else:
            os._exit(130)

    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, _on_sigint)
    except NotImplementedError:
        pass

    run_task = asyncio.create_task(mcp_app.run_stdio_async())
    await asyncio.wait(
        [run_task, asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )
    if shutdown_event.is_set() and not run_task.done():
        run_task.cancel()
        await asyncio.sleep(0)
    await client.aclose()


async def run_stdio(settings: EnvSettings) -> None:
    """Serve the configured Plausible account over stdio until interrupted."""
    client = PlausibleClient(settings.plausible_api_url, settings.plausible_api_key)
    mcp_app = create_mcp_server(client, transport="stdio")
    logger.info(
        "Plausible Analytics MCP Server running on stdio",
        extra={"api_url": client.api_url},
    )
    await _serve_forever(mcp_app, client)


def main() -> None:
    """CLI entrypoint: run the MCP stdio server.

    Exits with status 1 when ``PLAUSIBLE_API_KEY`` is not set.
    """
    settings = EnvSettings()
    # Prefer previously configured logging; if none, set up from env
    if not logging.getLogger().hasHandlers():
        setup_logging(settings.log_level)
    if not settings.plausible_api_key:
        logger.error("PLAUSIBLE_API_KEY environment variable is required")
        sys.exit(1)
    try:
        asyncio.run(run_stdio(settings))
    except KeyboardInterrupt:
        # Suppress traceback on Ctrl-C for a clean exit
        pass


if __name__ == "__main__":
    main()
