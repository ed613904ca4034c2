"""
Plausible Analytics MCP Python package.

This package hosts the MCP server that exposes the Plausible Stats, Events and
Sites APIs as tools, together with its HTTP transport, analytics recorder and
persistence layer.
"""

from .__version__ import SERVER_NAME, __version__

__all__ = ["__version__", "SERVER_NAME"]
