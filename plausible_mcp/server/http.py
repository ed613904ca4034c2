"""HTTP server exposing the Plausible MCP tools via FastAPI.

Routes:

- ``/mcp``: stateless Streamable HTTP MCP endpoint (see :mod:`.transport`)
- ``/`` and ``/health``: descriptor and liveness
- ``/analytics``, ``/analytics/tools``, ``/analytics/import`` and
  ``/analytics/dashboard``: traffic analytics recorded by this process

Every route records the request in the application's
:class:`AnalyticsRecorder`, which is persisted by a :class:`PeriodicSaver`
for the lifetime of the app.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import psutil
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..analytics import (
    AnalyticsRecorder,
    DualModeStore,
    FirebaseStore,
    LocalFileStore,
    PeriodicSaver,
    RequestMetadata,
)
from ..analytics.storage import default_credential_paths
from ..analytics.views import build_summary, build_tool_usage
from ..config.models import EnvSettings
from ..observability import setup_logging
from .cache import ServerCache, default_factory
from .dashboard import DASHBOARD_HTML
from .models import AnalyticsImportRequest, ErrorResponse, HealthResponse, ServerInfo
from .transport import MCP_ENDPOINT, StatelessMCPBridge

logger = logging.getLogger(__name__)

CORS_ALLOWED_HEADERS = [
    "Content-Type",
    "Authorization",
    "Accept",
    "Accept-Encoding",
    "Cache-Control",
    "Connection",
    "User-Agent",
    "X-Requested-With",
    "X-Plausible-Api-Key",
    "X-Plausible-Api-Url",
    "Mcp-Session-Id",
]

__all__ = [
    "create_app",
    "_build_store",
    "_apply_cors",
    "_register_info",
    "_register_analytics",
    "_register_exception_handlers",
]


def _firebase_label(store: DualModeStore, on: str = "enabled") -> str:
    return on if store.remote_enabled else "disabled"


def _track(app: FastAPI, request: Request, endpoint: str) -> None:
    app.state.recorder.record_request(endpoint, RequestMetadata.from_request(request))


def _build_store(settings: EnvSettings) -> DualModeStore:
    """Firebase (when credentials exist) plus the local analytics file."""
    remote = FirebaseStore(
        credential_paths=default_credential_paths(
            settings.firebase_service_account_path
        ),
        database_url=settings.firebase_database_url,
    )
    return DualModeStore(remote, LocalFileStore(settings.analytics_file))


def _log_startup_memory() -> None:
    process = psutil.Process()
    mem_info = process.memory_info()
    logger.info(
        "http.startup.memory",
        extra={
            "rss_mb": round(mem_info.rss / 1024 / 1024, 1),
            "vms_mb": round(mem_info.vms / 1024 / 1024, 1),
        },
    )


def _apply_cors(app: FastAPI) -> None:
    """Open CORS to any origin so browser-based MCP clients can connect."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=CORS_ALLOWED_HEADERS,
        expose_headers=["Content-Type", "Cache-Control", "Mcp-Session-Id"],
        max_age=86400,
    )


def _register_info(app: FastAPI) -> None:
    """Register the descriptor and health endpoints."""

    @app.get("/", response_model=ServerInfo, summary="Server descriptor")
    async def root(request: Request) -> ServerInfo:
        _track(app, request, "/")
        return ServerInfo(firebase=_firebase_label(app.state.store))

    @app.get("/health", response_model=HealthResponse, summary="Liveness probe")
    async def health(request: Request) -> HealthResponse:
        _track(app, request, "/health")
        return HealthResponse(
            firebase=_firebase_label(app.state.store, on="connected"),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    _ = (root, health)


def _register_analytics(app: FastAPI) -> None:
    """Register analytics summary, tool usage, import and dashboard endpoints."""

    @app.get("/analytics", summary="Traffic analytics summary")
    async def analytics_summary(request: Request) -> dict[str, Any]:
        _track(app, request, "/analytics")
        return build_summary(
            app.state.recorder.state, firebase_enabled=app.state.store.remote_enabled
        )

    @app.get("/analytics/tools", summary="Tool usage breakdown")
    async def analytics_tools(request: Request) -> dict[str, Any]:
        _track(app, request, "/analytics/tools")
        return build_tool_usage(app.state.recorder.state)

    @app.post("/analytics/import", summary="Add exported totals to live counters")
    async def analytics_import(request: Request) -> JSONResponse:
        _track(app, request, "/analytics/import")
        try:
            payload = AnalyticsImportRequest.model_validate(await request.json())
        except (ValueError, ValidationError) as exc:
            return JSONResponse(
                status_code=400,
                content={"error": "Failed to import analytics", "details": str(exc)},
            )
        recorder: AnalyticsRecorder = app.state.recorder
        recorder.import_totals(payload.total_requests, payload.total_tool_calls)
        await app.state.store.save(recorder.state)
        logger.info(
            "analytics.imported",
            extra={
                "total_requests": payload.total_requests,
                "total_tool_calls": payload.total_tool_calls,
            },
        )
        return JSONResponse(
            {
                "message": "Analytics imported successfully",
                "currentStats": {
                    "totalRequests": recorder.state.total_requests,
                    "totalToolCalls": recorder.state.total_tool_calls,
                },
            }
        )

    @app.get(
        "/analytics/dashboard",
        response_class=HTMLResponse,
        summary="Analytics dashboard",
    )
    async def analytics_dashboard(request: Request) -> HTMLResponse:
        _track(app, request, "/analytics/dashboard")
        return HTMLResponse(DASHBOARD_HTML)

    _ = (analytics_summary, analytics_tools, analytics_import, analytics_dashboard)


def _register_exception_handlers(app: FastAPI) -> None:
    """Structured ``{"detail": ErrorResponse}`` bodies for framework errors."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Any, exc: Exception):  # noqa: D401
        err = ErrorResponse(detail=str(exc), error_type="validation_error")
        return JSONResponse(status_code=400, content={"detail": err.model_dump()})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Any, exc: Any):  # noqa: D401
        err = ErrorResponse(
            detail=str(getattr(exc, "detail", "")) or "HTTP error",
            error_type="http_error",
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": err.model_dump()},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Any, exc: Exception):  # noqa: D401
        # Avoid leaking internals; log server-side, return generic error
        logger.error("http.unhandled_exception", exc_info=exc)
        err = ErrorResponse(
            detail="Internal error. See server logs for request id.",
            error_type="internal_server_error",
        )
        return JSONResponse(status_code=500, content={"detail": err.model_dump()})

    _ = (
        validation_exception_handler,
        http_exception_handler,
        unhandled_exception_handler,
    )


def create_app(
    settings: Optional[EnvSettings] = None,
    store: Optional[DualModeStore] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    settings: Optional[EnvSettings]
        Configuration; read from the environment when omitted.
    store: Optional[DualModeStore]
        Analytics persistence; built from ``settings`` when omitted.
    """
    settings = settings or EnvSettings()
    # Respect prior logging configuration from CLI; otherwise use env setting
    if not logging.getLogger().hasHandlers():
        setup_logging(settings.log_level)

    store = store or _build_store(settings)
    recorder = AnalyticsRecorder()
    cache = ServerCache(
        default_factory(firebase_enabled=store.remote_enabled),
        maxsize=settings.mcp_server_cache_size,
    )
    saver = PeriodicSaver(store, lambda: recorder.state)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("http.startup")
        try:
            _log_startup_memory()
        except (psutil.Error, OSError):  # pragma: no cover
            pass
        recorder.replace_state(await store.load())
        saver.start()
        logger.info(
            "http.startup.settings",
            extra={
                "host": settings.host,
                "port": settings.port,
                "plausible_api_url": settings.plausible_api_url,
                "default_api_key": bool(settings.plausible_api_key),
                "analytics_file": str(settings.analytics_file),
                "firebase": _firebase_label(store),
                "server_cache_size": settings.mcp_server_cache_size,
            },
        )
        try:
            yield
        finally:
            logger.info("http.shutdown")
            await saver.stop()
            await cache.aclose()

    app = FastAPI(
        title="Plausible Analytics MCP Server", version=__version__, lifespan=lifespan
    )
    app.state.settings = settings
    app.state.store = store
    app.state.recorder = recorder
    app.state.server_cache = cache

    _register_exception_handlers(app)
    _apply_cors(app)
    _register_info(app)
    _register_analytics(app)
    app.add_route(
        MCP_ENDPOINT,
        StatelessMCPBridge(
            cache,
            recorder,
            default_api_url=settings.plausible_api_url,
            default_api_key=settings.plausible_api_key,
            json_response=settings.mcp_json_response,
        ),
        methods=["GET", "POST", "DELETE"],
    )
    return app
