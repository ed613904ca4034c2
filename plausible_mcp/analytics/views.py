"""Read-only projections of :class:`AnalyticsState` for the HTTP endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from .. import SERVER_NAME
from .models import AnalyticsState

TOP_CLIENTS = 20
HOURLY_WINDOW = 24
SUMMARY_RECENT_CALLS = 20
TOOLS_RECENT_CALLS = 50


def _sorted_desc(counter: Dict[str, int]) -> Dict[str, int]:
    return dict(sorted(counter.items(), key=lambda kv: kv[1], reverse=True))


def format_uptime(server_start_time: str, now: datetime | None = None) -> str:
    """Render elapsed time since start as ``"1d 2h 3m"``, ``"2h 3m"`` or ``"3m"``."""
    now = now or datetime.now(timezone.utc)
    try:
        start = datetime.fromisoformat(server_start_time.replace("Z", "+00:00"))
    except ValueError:
        return "0m"
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    total_minutes = max(0, int((now - start).total_seconds() // 60))
    days, rem = divmod(total_minutes, 60 * 24)
    hours, minutes = divmod(rem, 60)
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def last_hours(hourly: Dict[str, int], window: int = HOURLY_WINDOW) -> Dict[str, int]:
    """Most recent ``window`` hour buckets, oldest first."""
    recent = sorted(hourly.items(), key=lambda kv: kv[0], reverse=True)[:window]
    return dict(reversed(recent))


def build_summary(state: AnalyticsState, *, firebase_enabled: bool) -> Dict[str, Any]:
    """JSON body of ``GET /analytics``."""
    return {
        "server": SERVER_NAME,
        "uptime": format_uptime(state.server_start_time),
        "serverStartTime": state.server_start_time,
        "firebase": "enabled" if firebase_enabled else "disabled",
        "summary": {
            "totalRequests": state.total_requests,
            "totalToolCalls": state.total_tool_calls,
            "uniqueClients": len(state.clients_by_ip),
        },
        "breakdown": {
            "byMethod": state.requests_by_method,
            "byEndpoint": state.requests_by_endpoint,
            "byTool": _sorted_desc(state.tool_calls),
        },
        "hourlyRequests": last_hours(state.hourly_requests),
        "clients": {
            "byIp": dict(list(_sorted_desc(state.clients_by_ip).items())[:TOP_CLIENTS]),
            "byUserAgent": state.clients_by_user_agent,
        },
        "recentToolCalls": _recent(state, SUMMARY_RECENT_CALLS),
    }


def build_tool_usage(state: AnalyticsState) -> Dict[str, Any]:
    """JSON body of ``GET /analytics/tools``."""
    total = state.total_tool_calls
    tools = [
        {
            "name": name,
            "count": count,
            "percentage": f"{count / total * 100:.1f}%" if total > 0 else "0%",
        }
        for name, count in _sorted_desc(state.tool_calls).items()
    ]
    return {
        "totalToolCalls": total,
        "tools": tools,
        "recentCalls": _recent(state, TOOLS_RECENT_CALLS),
    }


def _recent(state: AnalyticsState, limit: int) -> List[Dict[str, Any]]:
    return [
        call.model_dump(by_alias=True) for call in state.recent_tool_calls[:limit]
    ]
