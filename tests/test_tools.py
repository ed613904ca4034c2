"""MCP tools exercised through an in-memory client session."""

from __future__ import annotations

import json

import pytest
from mcp.shared.memory import create_connected_server_and_client_session

from plausible_mcp.adapters.plausible import PlausibleClient
from plausible_mcp.server.app import create_mcp_server

EXPECTED_TOOLS = {
    "query_stats",
    "get_realtime_visitors",
    "get_aggregate_stats",
    "get_timeseries",
    "get_breakdown",
    "send_event",
    "send_pageview",
    "list_sites",
    "get_site",
    "create_site",
    "update_site",
    "delete_site",
    "create_shared_link",
    "list_goals",
    "create_goal",
    "delete_goal",
    "check_plausible_health",
    "hello",
}


def _server(upstream, **kwargs):
    client = PlausibleClient("https://plausible.test", "test-key-0001")
    client.inject_http_client_for_testing(upstream.client())
    return create_mcp_server(client, **kwargs)


def _text(result) -> str:
    return result.content[0].text


@pytest.mark.asyncio
async def test_all_tools_are_listed(upstream):
    server = _server(upstream)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        listed = await s.list_tools()
    assert {tool.name for tool in listed.tools} == EXPECTED_TOOLS


@pytest.mark.asyncio
async def test_query_stats_forwards_structured_arguments(upstream):
    upstream.on("POST", "/api/v2/query", json={"results": []})
    server = _server(upstream)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        result = await s.call_tool(
            "query_stats",
            {
                "site_id": "example.com",
                "metrics": ["visitors", "pageviews"],
                "date_range": ["2024-01-01", "2024-01-31"],
                "dimensions": ["visit:source"],
                "order_by": [["visitors", "desc"]],
                "include": {"total_rows": True},
                "pagination": {"limit": 5},
            },
        )

    assert not result.isError
    assert json.loads(_text(result)) == {"results": []}
    body = json.loads(upstream.requests[0].content)
    assert body["date_range"] == ["2024-01-01", "2024-01-31"]
    assert body["include"] == {"total_rows": True}
    assert body["pagination"] == {"limit": 5}


@pytest.mark.asyncio
async def test_timeseries_and_breakdown_build_dimensions(upstream):
    upstream.on("POST", "/api/v2/query", json={"results": []})
    server = _server(upstream)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        await s.call_tool(
            "get_timeseries",
            {"site_id": "example.com", "date_range": "30d", "interval": "week"},
        )
        await s.call_tool(
            "get_breakdown",
            {
                "site_id": "example.com",
                "date_range": "7d",
                "dimension": "visit:country_name",
                "limit": 3,
            },
        )
        await s.call_tool(
            "get_aggregate_stats", {"site_id": "example.com", "date_range": "day"}
        )

    series, breakdown, aggregate = (json.loads(r.content) for r in upstream.requests)
    assert series["dimensions"] == ["time:week"]
    assert series["include"] == {"time_labels": True}
    assert series["metrics"] == ["visitors", "visits", "pageviews"]
    assert breakdown["dimensions"] == ["visit:country_name"]
    assert breakdown["pagination"] == {"limit": 3}
    assert "dimensions" not in aggregate
    assert "bounce_rate" in aggregate["metrics"]


@pytest.mark.asyncio
async def test_realtime_visitors_wraps_count(upstream):
    upstream.on("GET", "/api/v1/stats/realtime/visitors", json=12)
    server = _server(upstream)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        result = await s.call_tool("get_realtime_visitors", {"site_id": "example.com"})

    payload = json.loads(_text(result))
    assert payload["realtime_visitors"] == 12
    assert payload["site_id"] == "example.com"
    assert "timestamp" in payload


@pytest.mark.asyncio
async def test_send_pageview_uses_pageview_event_name(upstream):
    upstream.on("POST", "/api/event", status=202)
    server = _server(upstream)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        result = await s.call_tool(
            "send_pageview",
            {"domain": "example.com", "url": "https://example.com/blog"},
        )

    assert json.loads(_text(result))["status"] == "accepted"
    assert json.loads(upstream.requests[0].content)["name"] == "pageview"


@pytest.mark.asyncio
async def test_send_event_passes_revenue(upstream):
    upstream.on("POST", "/api/event", status=202)
    server = _server(upstream)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        await s.call_tool(
            "send_event",
            {
                "domain": "example.com",
                "name": "Purchase",
                "url": "https://example.com/checkout",
                "revenue": {"currency": "USD", "amount": 29.99},
            },
        )

    body = json.loads(upstream.requests[0].content)
    assert body["revenue"] == {"currency": "USD", "amount": 29.99}


@pytest.mark.asyncio
async def test_upstream_error_becomes_tool_error(upstream):
    upstream.on("GET", "/api/v1/sites", status=401, text="Invalid API key")
    server = _server(upstream)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        result = await s.call_tool("list_sites", {})

    assert result.isError
    assert "Plausible API error (401 Unauthorized): Invalid API key" in _text(result)


@pytest.mark.asyncio
async def test_health_tool_reports_healthy_and_unhealthy(upstream):
    server = _server(upstream)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        upstream.on("GET", "/api/health", json={"clickhouse": "ok"})
        healthy = await s.call_tool("check_plausible_health", {})
        upstream.on("GET", "/api/health", status=503, text="down")
        unhealthy = await s.call_tool("check_plausible_health", {})

    assert json.loads(_text(healthy)) == {
        "status": "healthy",
        "response": {"clickhouse": "ok"},
    }
    assert unhealthy.isError
    assert '"status": "unhealthy"' in _text(unhealthy)


@pytest.mark.asyncio
async def test_hello_reports_transport_and_firebase(upstream):
    server = _server(upstream, firebase_enabled=False)
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        result = await s.call_tool("hello", {})

    payload = json.loads(_text(result))
    assert payload["message"] == "Hello from Plausible Analytics MCP!"
    assert payload["apiUrl"] == "https://plausible.test"
    assert payload["transport"] == "streamable-http"
    assert payload["firebase"] == "disabled"


@pytest.mark.asyncio
async def test_hello_over_stdio_omits_firebase(upstream):
    server = _server(upstream, transport="stdio")
    async with create_connected_server_and_client_session(server._mcp_server) as s:
        result = await s.call_tool("hello", {})

    payload = json.loads(_text(result))
    assert payload["transport"] == "stdio"
    assert "firebase" not in payload
