"""Server entry points: protocol-server factory, HTTP app and stdio runner."""

from .app import create_mcp_server
from .cache import ServerCache, credential_key

__all__ = ["ServerCache", "create_mcp_server", "credential_key"]
