"""
Version information for the Plausible Analytics MCP server.

The package version is read from the installed distribution metadata via
importlib.metadata, falling back to pyproject.toml for source checkouts.
"""

try:
    from importlib.metadata import version

    __version__ = version("plausible-mcp-server")
except Exception:
    # Fallback for development (package not installed)
    import tomllib
    from pathlib import Path

    try:
        pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            pyproject = tomllib.load(f)
            __version__ = pyproject["project"]["version"]
    except Exception:
        __version__ = "0.0.0-dev"

# Human-readable server name reported by descriptors and MCP handshakes
SERVER_NAME = "Plausible Analytics MCP Server"
