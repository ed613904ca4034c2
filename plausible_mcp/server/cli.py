"""Command-line interface to start the Plausible MCP server.

Usage
-----
    plausible-mcp --http --port 8080    # Streamable HTTP on /mcp
    plausible-mcp                       # stdio (needs PLAUSIBLE_API_KEY)
"""

from __future__ import annotations

import argparse
from typing import List, Optional

import uvicorn

from ..config.models import EnvSettings
from ..observability import setup_logging
from . import mcp_stdio
from .http import create_app


def build_parser(settings: EnvSettings) -> argparse.ArgumentParser:
    """Argument parser whose host/port defaults come from ``settings``."""
    parser = argparse.ArgumentParser(description="Plausible Analytics MCP server")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=[
            "CRITICAL",
            "ERROR",
            "WARNING",
            "INFO",
            "DEBUG",
        ],
        help="Logging level (overrides environment)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (once sets DEBUG)",
    )
    parser.add_argument(
        "--http",
        action="store_true",
        help="Run the Streamable HTTP server instead of stdio",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"HTTP bind host (default {settings.host})",
    )
    parser.add_argument(
        "--port", type=int, default=settings.port, help="HTTP port"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entrypoint for running the Plausible MCP server.

    Provides two modes:
    - stdio (default), for local MCP clients
    - HTTP mode with FastAPI when --http is specified
    """
    settings = EnvSettings()
    args = build_parser(settings).parse_args(argv)

    # Determine effective log level
    effective_level = args.log_level or (
        "DEBUG" if args.verbose > 0 else settings.log_level.upper()
    )
    # Apply early so subsequent imports use configured level
    setup_logging(effective_level)

    if args.http:
        app = create_app(settings)
        uvicorn.run(
            app,
            host=args.host,
            port=args.port,
            log_level=effective_level.lower(),
        )
        return

    mcp_stdio.main()


if __name__ == "__main__":
    main()
