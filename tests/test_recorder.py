"""Analytics recorder counting rules."""

from __future__ import annotations

from plausible_mcp.analytics import AnalyticsRecorder, RequestMetadata
from plausible_mcp.analytics.models import MAX_RECENT_CALLS


def _meta(**kwargs) -> RequestMetadata:
    return RequestMetadata(**kwargs)


def test_request_totals_match_method_breakdown():
    recorder = AnalyticsRecorder()
    methods = ["GET", "POST", "POST", "DELETE", "GET", "POST"]
    for method in methods:
        recorder.record_request("/mcp", _meta(method=method, peer="10.0.0.1"))

    state = recorder.state
    assert state.total_requests == len(methods)
    assert sum(state.requests_by_method.values()) == len(methods)
    assert state.requests_by_method == {"GET": 2, "POST": 3, "DELETE": 1}
    assert state.requests_by_endpoint == {"/mcp": len(methods)}
    assert sum(state.hourly_requests.values()) == len(methods)
    (hour,) = state.hourly_requests
    assert len(hour) == 13 and hour[10] == "T"


def test_client_ip_prefers_first_forwarded_hop():
    forwarded = _meta(forwarded_for=" 198.51.100.7 , 10.0.0.2", peer="10.0.0.1")
    assert forwarded.client_ip == "198.51.100.7"
    assert _meta(peer="10.0.0.1").client_ip == "10.0.0.1"
    assert _meta().client_ip == "unknown"


def test_user_agent_is_truncated_and_defaulted():
    long_ua = "Mozilla/5.0 " + "x" * 100
    recorder = AnalyticsRecorder()
    recorder.record_request("/", _meta(user_agent=long_ua))
    recorder.record_request("/", _meta())

    agents = recorder.state.clients_by_user_agent
    assert agents == {long_ua[:50]: 1, "unknown": 1}


def test_recent_tool_calls_are_newest_first_and_capped():
    recorder = AnalyticsRecorder()
    for i in range(MAX_RECENT_CALLS + 1):
        recorder.record_tool_call(f"tool_{i}", _meta(peer="10.0.0.1"))

    state = recorder.state
    assert state.total_tool_calls == MAX_RECENT_CALLS + 1
    assert len(state.recent_tool_calls) == MAX_RECENT_CALLS
    assert state.recent_tool_calls[0].tool == f"tool_{MAX_RECENT_CALLS}"
    assert all(call.tool != "tool_0" for call in state.recent_tool_calls)
    assert state.tool_calls["tool_0"] == 1


def test_import_totals_adds_to_live_counters():
    recorder = AnalyticsRecorder()
    recorder.record_request("/", _meta())
    recorder.import_totals(10, 4)
    assert recorder.state.total_requests == 11
    assert recorder.state.total_tool_calls == 4
