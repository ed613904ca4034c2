"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so imports like
``import plausible_mcp`` resolve correctly regardless of the working directory
pytest chooses.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

Handler = Callable[[httpx.Request], httpx.Response]


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()

_ENV_PREFIXES = ("PLAUSIBLE_", "FIREBASE_", "MCP_", "ANALYTICS_")
_ENV_NAMES = {"PORT", "HOST", "LOG_LEVEL"}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove server configuration from the environment for every test.

    Settings then take their literal defaults unless a test sets a variable.
    """
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES) or name in _ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
    yield


class RecordingUpstream:
    """Fake Plausible API for ``httpx.MockTransport``.

    Records every request and answers from a ``(method, path) -> response``
    table; unknown routes get 404.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[tuple[str, str], Handler] = {}

    def on(
        self,
        method: str,
        path: str,
        status: int = 200,
        json: Optional[Any] = None,
        text: Optional[str] = None,
    ) -> None:
        def _respond(_request: httpx.Request) -> httpx.Response:
            if json is not None:
                return httpx.Response(status, json=json)
            return httpx.Response(status, text=text or "")

        self.routes[(method, path)] = _respond

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text="Not found")
        return handler(request)

    def client(self, base_url: str = "https://plausible.test") -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self), base_url=base_url
        )


@pytest.fixture
def upstream() -> RecordingUpstream:
    return RecordingUpstream()
