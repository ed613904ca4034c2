"""Observability utilities: logging setup.

Configures standard library logging once for the whole process. Modules log
dotted event names (e.g. ``analytics.saved``) and attach structured fields via
``extra=``.
"""

from __future__ import annotations

import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Parameters
    ----------
    level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".

    Behavior
    --------
    - Initializes Python's logging with the requested level on stderr, so the
      stdio transport keeps stdout for protocol messages.
    - Quiets the MCP streamable HTTP transport, which logs every request at
      INFO, unless DEBUG was requested.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=("%(asctime)s %(levelname)s %(name)s - %(message)s"),
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    if numeric_level > logging.DEBUG:
        for logger_name in (
            "mcp.server.streamable_http",
            "mcp.server.lowlevel.server",
        ):
            logging.getLogger(logger_name).setLevel(logging.WARNING)
