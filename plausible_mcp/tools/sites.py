"""Sites API v1 tools: sites, shared links, goals and API health.

All tools except ``check_plausible_health`` need a Sites API key, which
Plausible only issues on Enterprise plans.
"""

from __future__ import annotations

import json
from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from .common import ClientAccessor, call_upstream, to_text
from .models import GoalType

SiteId = Annotated[str, Field(description='Domain of the site (e.g. "example.com")')]
Limit = Annotated[
    Optional[int], Field(description="Number of results per page (default: 100)")
]
After = Annotated[Optional[str], Field(description="Pagination cursor for next page")]
Before = Annotated[
    Optional[str], Field(description="Pagination cursor for previous page")
]


def register_sites_tools(mcp: FastMCP, get_client: ClientAccessor) -> None:
    """Register Sites API and health tools on ``mcp``."""

    @mcp.tool(
        name="list_sites",
        description=(
            "List all sites in your Plausible account. Returns domains and "
            "timezones. Requires a Sites API key (Enterprise plan)."
        ),
    )
    async def list_sites(
        limit: Limit = None, after: After = None, before: Before = None
    ) -> str:
        client = get_client()
        return to_text(
            await call_upstream("list_sites", client.list_sites(limit, after, before))
        )

    @mcp.tool(
        name="get_site",
        description=(
            "Get details of a specific site including domain, timezone, custom "
            "properties, and tracker script configuration. Requires a Sites API key."
        ),
    )
    async def get_site(site_id: SiteId) -> str:
        client = get_client()
        return to_text(await call_upstream("get_site", client.get_site(site_id)))

    @mcp.tool(
        name="create_site",
        description=(
            "Create a new site in your Plausible account. The domain must be "
            "globally unique. Requires a Sites API key."
        ),
    )
    async def create_site(
        domain: Annotated[
            str,
            Field(
                description=(
                    'Domain for the new site (e.g. "example.com"). Must be '
                    "globally unique."
                )
            ),
        ],
        timezone: Annotated[
            Optional[str],
            Field(
                description=(
                    'IANA timezone (e.g. "Europe/London"). Defaults to "Etc/UTC".'
                )
            ),
        ] = None,
        team_id: Annotated[
            Optional[str],
            Field(
                description=(
                    'Team ID to create the site under. Defaults to "My Personal '
                    'Sites".'
                )
            ),
        ] = None,
    ) -> str:
        client = get_client()
        return to_text(
            await call_upstream(
                "create_site", client.create_site(domain, timezone, team_id)
            )
        )

    @mcp.tool(
        name="update_site",
        description=(
            "Update an existing site in your Plausible account. Can change the "
            "domain name. Requires a Sites API key."
        ),
    )
    async def update_site(
        site_id: Annotated[
            str, Field(description="Current domain of the site to update")
        ],
        domain: Annotated[
            Optional[str], Field(description="New domain name for the site")
        ] = None,
    ) -> str:
        client = get_client()
        return to_text(
            await call_upstream("update_site", client.update_site(site_id, domain))
        )

    @mcp.tool(
        name="delete_site",
        description=(
            "Permanently delete a site and ALL its data from Plausible. This "
            "action cannot be undone. Deletion may take up to 48 hours. Requires "
            "a Sites API key."
        ),
    )
    async def delete_site(site_id: SiteId) -> str:
        client = get_client()
        return to_text(await call_upstream("delete_site", client.delete_site(site_id)))

    @mcp.tool(
        name="create_shared_link",
        description=(
            "Find or create a shared link for embedding a public dashboard. "
            "Idempotent - won't fail if the link already exists. Returns the "
            "shareable URL. Requires a Sites API key."
        ),
    )
    async def create_shared_link(
        site_id: SiteId,
        name: Annotated[
            str,
            Field(
                description=(
                    'Name for the shared link (e.g. "WordPress", "Public Dashboard")'
                )
            ),
        ],
    ) -> str:
        client = get_client()
        return to_text(
            await call_upstream(
                "create_shared_link", client.create_shared_link(site_id, name)
            )
        )

    @mcp.tool(
        name="list_goals",
        description=(
            "List all goals configured for a site. Goals can be custom events or "
            "page visits. Requires a Sites API key."
        ),
    )
    async def list_goals(
        site_id: SiteId,
        limit: Limit = None,
        after: After = None,
        before: Before = None,
    ) -> str:
        client = get_client()
        return to_text(
            await call_upstream(
                "list_goals", client.list_goals(site_id, limit, after, before)
            )
        )

    @mcp.tool(
        name="create_goal",
        description=(
            "Find or create a goal for a site. Goals can be custom events (e.g. "
            '"Signup") or page visits (e.g. "/register"). Idempotent - won\'t '
            "fail if the goal already exists. Requires a Sites API key."
        ),
    )
    async def create_goal(
        site_id: SiteId,
        goal_type: Annotated[
            GoalType,
            Field(
                description=(
                    'Type of goal: "event" for custom events, "page" for '
                    "pageview goals"
                )
            ),
        ],
        event_name: Annotated[
            Optional[str],
            Field(
                description=(
                    'Event name (required if goal_type is "event"). E.g. "Signup"'
                )
            ),
        ] = None,
        page_path: Annotated[
            Optional[str],
            Field(
                description=(
                    'Page path (required if goal_type is "page"). E.g. "/register". '
                    "Supports wildcards."
                )
            ),
        ] = None,
        display_name: Annotated[
            Optional[str],
            Field(description="Custom display name for the goal in the dashboard"),
        ] = None,
    ) -> str:
        client = get_client()
        return to_text(
            await call_upstream(
                "create_goal",
                client.create_goal(
                    site_id,
                    goal_type,
                    event_name=event_name,
                    page_path=page_path,
                    display_name=display_name,
                ),
            )
        )

    @mcp.tool(
        name="delete_goal",
        description=(
            "Delete a goal from a site. Requires the goal ID and site domain. "
            "Requires a Sites API key."
        ),
    )
    async def delete_goal(
        goal_id: Annotated[str, Field(description="ID of the goal to delete")],
        site_id: SiteId,
    ) -> str:
        client = get_client()
        return to_text(
            await call_upstream("delete_goal", client.delete_goal(goal_id, site_id))
        )

    @mcp.tool(
        name="check_plausible_health",
        description=(
            "Check if the Plausible Analytics API is healthy and accessible. "
            "Returns the health status of the configured Plausible instance."
        ),
    )
    async def check_plausible_health() -> str:
        client = get_client()
        try:
            result = await call_upstream(
                "check_plausible_health", client.check_health()
            )
        except ToolError as exc:
            raise ToolError(
                json.dumps({"status": "unhealthy", "error": str(exc)}, indent=2)
            ) from exc
        return to_text({"status": "healthy", "response": result})

    _ = (
        list_sites,
        get_site,
        create_site,
        update_site,
        delete_site,
        create_shared_link,
        list_goals,
        create_goal,
        delete_goal,
        check_plausible_health,
    )
