"""Analytics state models.

The state is serialized with the camelCase field names used by the persisted
JSON snapshot and the Firebase document; Python code uses snake_case
attributes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

MAX_RECENT_CALLS = 100
USER_AGENT_MAX_LENGTH = 50


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and ``Z``."""
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


class ToolCallRecord(BaseModel):
    """One entry of the recent tool-call log."""

    model_config = ConfigDict(populate_by_name=True)

    tool: str
    timestamp: str
    client_ip: str = Field("unknown", alias="clientIp")
    user_agent: str = Field("unknown", alias="userAgent")


class AnalyticsState(BaseModel):
    """Process-wide traffic counters and the bounded recent-calls log.

    Absent fields take their zero value on validation, so partial documents
    (Firebase drops empty objects) load cleanly.
    """

    model_config = ConfigDict(populate_by_name=True)

    server_start_time: str = Field(default_factory=utc_now_iso, alias="serverStartTime")
    total_requests: int = Field(0, ge=0, alias="totalRequests")
    total_tool_calls: int = Field(0, ge=0, alias="totalToolCalls")
    requests_by_method: Dict[str, int] = Field(
        default_factory=dict, alias="requestsByMethod"
    )
    requests_by_endpoint: Dict[str, int] = Field(
        default_factory=dict, alias="requestsByEndpoint"
    )
    tool_calls: Dict[str, int] = Field(default_factory=dict, alias="toolCalls")
    recent_tool_calls: List[ToolCallRecord] = Field(
        default_factory=list, alias="recentToolCalls"
    )
    clients_by_ip: Dict[str, int] = Field(default_factory=dict, alias="clientsByIp")
    clients_by_user_agent: Dict[str, int] = Field(
        default_factory=dict, alias="clientsByUserAgent"
    )
    hourly_requests: Dict[str, int] = Field(
        default_factory=dict, alias="hourlyRequests"
    )

    def to_document(self) -> Dict[str, Any]:
        """Return the JSON-ready camelCase document."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "AnalyticsState":
        """Build state from a stored document, tolerating missing fields.

        ``None`` values (and an empty ``serverStartTime``) are treated as
        absent so they fall back to defaults.
        """
        cleaned = {k: v for k, v in data.items() if v is not None and v != ""}
        return cls.model_validate(cleaned)
