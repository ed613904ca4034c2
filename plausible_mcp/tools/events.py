"""Events API tools: record pageviews and custom events."""

from __future__ import annotations

from typing import Annotated, Dict, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from .common import ClientAccessor, call_upstream, to_text
from .models import Revenue

Domain = Annotated[
    str, Field(description='Domain of the site in Plausible (e.g. "example.com")')
]
Referrer = Annotated[Optional[str], Field(description="Referrer URL for this event")]
UserAgent = Annotated[
    Optional[str],
    Field(
        description=(
            "User-Agent header for unique visitor counting. Required for accurate "
            "visitor tracking."
        )
    ),
]
ClientIp = Annotated[
    Optional[str],
    Field(
        description=(
            "Client IP address (sent as X-Forwarded-For) for unique visitor "
            "counting and geolocation."
        )
    ),
]


def register_events_tools(mcp: FastMCP, get_client: ClientAccessor) -> None:
    """Register Events API tools (send_event, send_pageview) on ``mcp``."""

    @mcp.tool(
        name="send_event",
        description=(
            "Record a pageview or custom event via the Plausible Events API. Use "
            'name "pageview" for pageviews, or any other name for custom events. '
            "Useful for server-side tracking or mobile app analytics."
        ),
    )
    async def send_event(
        domain: Domain,
        name: Annotated[
            str,
            Field(
                description=(
                    'Event name. Use "pageview" for pageviews, or any custom name '
                    'for custom events (e.g. "Signup", "Purchase")'
                )
            ),
        ],
        url: Annotated[
            str,
            Field(
                description=(
                    "URL where the event occurred (e.g. "
                    '"https://example.com/pricing"). For mobile apps, use a format '
                    'like "app://localhost/screen-name"'
                )
            ),
        ],
        referrer: Referrer = None,
        props: Annotated[
            Optional[Dict[str, str]],
            Field(
                description=(
                    "Custom properties as key-value pairs (max 30 pairs). "
                    'Example: {"author": "John", "plan": "premium"}'
                )
            ),
        ] = None,
        revenue: Annotated[
            Optional[Revenue],
            Field(description="Revenue data for revenue goal tracking"),
        ] = None,
        user_agent: UserAgent = None,
        ip: ClientIp = None,
    ) -> str:
        client = get_client()
        result = await call_upstream(
            "send_event",
            client.send_event(
                domain,
                name,
                url,
                referrer=referrer,
                props=props,
                revenue=revenue.model_dump() if revenue else None,
                user_agent=user_agent,
                ip=ip,
            ),
        )
        return to_text(result)

    @mcp.tool(
        name="send_pageview",
        description=(
            "Record a pageview event. A simplified wrapper around send_event "
            "specifically for tracking page visits."
        ),
    )
    async def send_pageview(
        domain: Domain,
        url: Annotated[
            str,
            Field(
                description=(
                    "Full URL of the page visited "
                    '(e.g. "https://example.com/blog/post-1")'
                )
            ),
        ],
        referrer: Referrer = None,
        user_agent: UserAgent = None,
        ip: ClientIp = None,
    ) -> str:
        client = get_client()
        result = await call_upstream(
            "send_pageview",
            client.send_event(
                domain,
                "pageview",
                url,
                referrer=referrer,
                user_agent=user_agent,
                ip=ip,
            ),
        )
        return to_text(result)

    _ = (send_event, send_pageview)
