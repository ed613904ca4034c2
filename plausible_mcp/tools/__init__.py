"""MCP tool groups forwarding to the Plausible REST APIs.

Each ``register_*_tools`` function binds one group of named, schema-validated
tools onto a FastMCP server. Tools obtain their :class:`PlausibleClient` from
an accessor so a server instance stays bound to one credential pair.
"""

from .events import register_events_tools
from .sites import register_sites_tools
from .stats import register_stats_tools

__all__ = [
    "register_events_tools",
    "register_sites_tools",
    "register_stats_tools",
]
