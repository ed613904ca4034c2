"""Plausible REST client behavior against a mocked upstream."""

from __future__ import annotations

import json

import httpx
import pytest

from plausible_mcp.adapters.plausible import PlausibleAPIError, PlausibleClient


def _client(upstream, api_url: str = "https://plausible.test/") -> PlausibleClient:
    client = PlausibleClient(api_url, "secret-key-123")
    client.inject_http_client_for_testing(upstream.client())
    return client


def test_trailing_slash_is_stripped():
    client = PlausibleClient("https://plausible.example.com///", "k")
    assert client.api_url == "https://plausible.example.com"


@pytest.mark.asyncio
async def test_query_posts_bearer_json_and_omits_empty_sections(upstream):
    upstream.on("POST", "/api/v2/query", json={"results": [{"metrics": [42]}]})
    client = _client(upstream)

    result = await client.query("example.com", ["visitors"], "7d", dimensions=[])

    assert result == {"results": [{"metrics": [42]}]}
    sent = upstream.requests[0]
    assert sent.headers["authorization"] == "Bearer secret-key-123"
    assert json.loads(sent.content) == {
        "site_id": "example.com",
        "metrics": ["visitors"],
        "date_range": "7d",
    }


@pytest.mark.asyncio
async def test_non_success_raises_with_status_reason_and_body(upstream):
    upstream.on("GET", "/api/v1/sites", status=401, text="invalid key")
    client = _client(upstream)

    with pytest.raises(PlausibleAPIError) as excinfo:
        await client.list_sites()

    err = excinfo.value
    assert err.status_code == 401
    assert str(err) == "Plausible API error (401 Unauthorized): invalid key"


@pytest.mark.asyncio
async def test_accepted_and_empty_responses(upstream):
    upstream.on("DELETE", "/api/v1/sites/example.com", status=202)
    upstream.on("GET", "/api/health", status=200, text="")
    client = _client(upstream)

    assert await client.delete_site("example.com") == {"status": "accepted"}
    assert await client.check_health() == {}


@pytest.mark.asyncio
async def test_send_event_forwards_visitor_headers_without_auth(upstream):
    upstream.on("POST", "/api/event", status=202)
    client = _client(upstream)

    result = await client.send_event(
        "example.com",
        "Signup",
        "https://example.com/register",
        props={"plan": "pro"},
        user_agent="Mozilla/5.0",
        ip="203.0.113.9",
    )

    assert result == {"status": "accepted", "message": "Event recorded successfully"}
    sent = upstream.requests[0]
    assert "authorization" not in sent.headers
    assert sent.headers["user-agent"] == "Mozilla/5.0"
    assert sent.headers["x-forwarded-for"] == "203.0.113.9"
    assert json.loads(sent.content)["props"] == {"plan": "pro"}


@pytest.mark.asyncio
async def test_send_event_failure_names_events_api(upstream):
    upstream.on("POST", "/api/event", status=400, text="bad domain")
    client = _client(upstream)

    with pytest.raises(PlausibleAPIError, match="Plausible Events API error"):
        await client.send_event("nope", "pageview", "https://nope/")


@pytest.mark.asyncio
async def test_goal_operations_use_sites_api_shapes(upstream):
    upstream.on("PUT", "/api/v1/sites/goals", json={"id": "g1"})
    upstream.on("DELETE", "/api/v1/sites/goals/g1", json={"deleted": True})
    upstream.on("GET", "/api/v1/sites/goals", json={"goals": []})
    client = _client(upstream)

    await client.create_goal("example.com", "event", event_name="Signup")
    await client.delete_goal("g1", "example.com")
    await client.list_goals("example.com", limit=10)

    create, delete, listing = upstream.requests
    assert json.loads(create.content) == {
        "site_id": "example.com",
        "goal_type": "event",
        "event_name": "Signup",
    }
    assert json.loads(delete.content) == {"site_id": "example.com"}
    assert listing.url.params["site_id"] == "example.com"
    assert listing.url.params["limit"] == "10"


@pytest.mark.asyncio
async def test_transport_errors_propagate():
    def _boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = PlausibleClient("https://plausible.test", "k")
    client.inject_http_client_for_testing(
        httpx.AsyncClient(
            transport=httpx.MockTransport(_boom), base_url="https://plausible.test"
        )
    )
    with pytest.raises(httpx.ConnectError):
        await client.get_realtime_visitors("example.com")
