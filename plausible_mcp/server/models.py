"""Request/response models for the HTTP endpoints."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from .. import SERVER_NAME, __version__

DOCUMENTATION_URL = "https://github.com/hithereiamaliff/mcp-plausibleanalytics"


class ServerInfo(BaseModel):
    """Descriptor returned by ``GET /``."""

    name: str = SERVER_NAME
    version: str = __version__
    description: str = (
        "MCP server for Plausible Analytics - Stats API, Events API, and Sites API"
    )
    transport: str = "streamable-http"
    firebase: str
    endpoints: Dict[str, str] = Field(
        default_factory=lambda: {
            "mcp": "/mcp",
            "health": "/health",
            "analytics": "/analytics",
            "analyticsDashboard": "/analytics/dashboard",
        }
    )
    documentation: str = DOCUMENTATION_URL


class HealthResponse(BaseModel):
    """Liveness response for ``GET /health``."""

    status: str = "healthy"
    server: str = SERVER_NAME
    version: str = __version__
    transport: str = "streamable-http"
    firebase: str
    timestamp: str


class AnalyticsImportRequest(BaseModel):
    """Counters to add to the live totals (``POST /analytics/import``).

    Other fields of an exported snapshot are accepted and ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_requests: int = Field(0, ge=0, alias="totalRequests")
    total_tool_calls: int = Field(0, ge=0, alias="totalToolCalls")


class ErrorResponse(BaseModel):
    """Structured JSON error response for HTTP endpoints.

    Fields
    ------
    detail: str
        Human-readable explanation of the error.
    error_type: str
        Machine-readable error classification.
    """

    detail: str
    error_type: str
