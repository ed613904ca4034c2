"""Environment settings and CLI dispatch."""

from __future__ import annotations

from pathlib import Path

import pytest

from plausible_mcp.config.models import EnvSettings
from plausible_mcp.server import cli, mcp_stdio


def test_settings_defaults():
    settings = EnvSettings(_env_file=None)
    assert settings.plausible_api_url == "https://plausible.io"
    assert settings.plausible_api_key == ""
    assert settings.port == 8080
    assert settings.host == "0.0.0.0"
    assert settings.analytics_file == Path("/app/data/analytics.json")
    assert settings.mcp_server_cache_size == 1024
    assert settings.mcp_json_response is False


def test_settings_read_environment(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("PLAUSIBLE_API_URL", "https://stats.example.com")
    monkeypatch.setenv("PLAUSIBLE_API_KEY", "env-key")
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("ANALYTICS_DIR", str(tmp_path))
    monkeypatch.setenv("MCP_SERVER_CACHE_SIZE", "8")

    settings = EnvSettings(_env_file=None)

    assert settings.plausible_api_url == "https://stats.example.com"
    assert settings.plausible_api_key == "env-key"
    assert settings.port == 9090
    assert settings.analytics_file == tmp_path / "analytics.json"
    assert settings.mcp_server_cache_size == 8


def test_stdio_requires_api_key():
    with pytest.raises(SystemExit) as excinfo:
        mcp_stdio.main()
    assert excinfo.value.code == 1


def test_cli_http_mode_runs_uvicorn(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("ANALYTICS_DIR", str(tmp_path))
    calls = {}

    def fake_run(app, **kwargs):
        calls["app"] = app
        calls.update(kwargs)

    monkeypatch.setattr(cli.uvicorn, "run", fake_run)
    cli.main(["--http", "--port", "9001", "--log-level", "WARNING"])

    assert calls["port"] == 9001
    assert calls["host"] == "0.0.0.0"
    assert calls["log_level"] == "warning"
    assert calls["app"].state.settings.analytics_dir == tmp_path


def test_cli_defaults_to_stdio(monkeypatch):
    called = []
    monkeypatch.setattr(cli.mcp_stdio, "main", lambda: called.append(True))
    cli.main([])
    assert called == [True]
