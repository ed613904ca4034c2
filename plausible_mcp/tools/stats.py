"""Stats API v2 tools: queries, aggregates, time series and breakdowns."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, List, Optional

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from .common import ClientAccessor, call_upstream, to_text
from .models import DateRange, QueryInclude, QueryPagination, TimeInterval

DEFAULT_AGGREGATE_METRICS = [
    "visitors",
    "visits",
    "pageviews",
    "views_per_visit",
    "bounce_rate",
    "visit_duration",
]
DEFAULT_SERIES_METRICS = ["visitors", "visits", "pageviews"]

SiteId = Annotated[str, Field(description='Domain of the site (e.g. "example.com")')]
DateRangeArg = Annotated[
    DateRange,
    Field(
        description=(
            'Date range: "day", "7d", "30d", "month", "6mo", "12mo", "year", '
            '"all", or two ISO8601 dates like ["2024-01-01", "2024-07-01"]'
        )
    ),
]
FiltersArg = Annotated[
    Optional[List[Any]],
    Field(
        description=(
            "Filters array. Each filter is [operator, dimension, clauses]. "
            'Operators: "is", "is_not", "contains", "contains_not", "matches", '
            '"matches_not". Example: [["is", "visit:country_name", ["Germany"]]]'
        )
    ),
]

SeriesMetricsArg = Annotated[
    Optional[List[str]],
    Field(description="Metrics to retrieve. Defaults to visitors, visits, pageviews"),
]


def register_stats_tools(mcp: FastMCP, get_client: ClientAccessor) -> None:
    """Register Stats API tools on ``mcp``.

    Registers:
    - query_stats: full Stats API v2 query
    - get_realtime_visitors: current visitor count
    - get_aggregate_stats: headline metrics without dimensions
    - get_timeseries: metrics grouped by time interval
    - get_breakdown: metrics grouped by one dimension
    """

    @mcp.tool(
        name="query_stats",
        description=(
            "Query analytics data from Plausible Stats API v2. Supports metrics, "
            "dimensions, filters, ordering, and pagination. This is the primary "
            "tool for retrieving analytics data."
        ),
    )
    async def query_stats(
        site_id: SiteId,
        metrics: Annotated[
            List[str],
            Field(
                description=(
                    "Metrics to retrieve. Options: visitors, visits, pageviews, "
                    "views_per_visit, bounce_rate, visit_duration, events, "
                    "scroll_depth, percentage, conversion_rate, "
                    "group_conversion_rate, average_revenue, total_revenue, "
                    "time_on_page"
                )
            ),
        ],
        date_range: DateRangeArg,
        dimensions: Annotated[
            Optional[List[str]],
            Field(
                description=(
                    'Dimensions to group by. Examples: "event:page", '
                    '"visit:source", "visit:country_name", "visit:browser", '
                    '"visit:device", "time", "time:day", "time:month"'
                )
            ),
        ] = None,
        filters: FiltersArg = None,
        order_by: Annotated[
            Optional[List[List[str]]],
            Field(
                description=(
                    "Custom ordering. Array of [dimension_or_metric, direction]. "
                    'Example: [["visitors", "desc"]]'
                )
            ),
        ] = None,
        include: Annotated[
            Optional[QueryInclude],
            Field(description="Additional data to include in the response"),
        ] = None,
        pagination: Annotated[
            Optional[QueryPagination], Field(description="Pagination options")
        ] = None,
    ) -> str:
        client = get_client()
        result = await call_upstream(
            "query_stats",
            client.query(
                site_id,
                metrics,
                date_range,
                dimensions=dimensions,
                filters=filters,
                order_by=order_by,
                include=include.as_body() if include else None,
                pagination=pagination.as_body() if pagination else None,
            ),
        )
        return to_text(result)

    @mcp.tool(
        name="get_realtime_visitors",
        description=(
            "Get the current number of real-time visitors on a site. Returns a "
            "single number representing people currently on the site."
        ),
    )
    async def get_realtime_visitors(site_id: SiteId) -> str:
        client = get_client()
        result = await call_upstream(
            "get_realtime_visitors", client.get_realtime_visitors(site_id)
        )
        return to_text(
            {
                "realtime_visitors": result,
                "site_id": site_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    @mcp.tool(
        name="get_aggregate_stats",
        description=(
            "Get aggregate statistics for a site over a date range. A simplified "
            "wrapper around the Stats API that returns key metrics without "
            "dimensions. Perfect for quick site overview."
        ),
    )
    async def get_aggregate_stats(
        site_id: SiteId,
        date_range: DateRangeArg,
        metrics: Annotated[
            Optional[List[str]],
            Field(
                description=(
                    "Metrics to retrieve. Defaults to visitors, visits, pageviews, "
                    "views_per_visit, bounce_rate, visit_duration"
                )
            ),
        ] = None,
    ) -> str:
        client = get_client()
        result = await call_upstream(
            "get_aggregate_stats",
            client.query(site_id, metrics or DEFAULT_AGGREGATE_METRICS, date_range),
        )
        return to_text(result)

    @mcp.tool(
        name="get_timeseries",
        description=(
            "Get time-series analytics data for a site. Returns data points "
            "grouped by time intervals (hour, day, week, month). Useful for "
            "charting trends over time."
        ),
    )
    async def get_timeseries(
        site_id: SiteId,
        date_range: DateRangeArg,
        metrics: SeriesMetricsArg = None,
        interval: Annotated[
            Optional[TimeInterval],
            Field(
                description=(
                    "Time grouping interval. Defaults to auto-detection based on "
                    "the date range."
                )
            ),
        ] = None,
        filters: FiltersArg = None,
    ) -> str:
        client = get_client()
        dimension = f"time:{interval}" if interval else "time"
        result = await call_upstream(
            "get_timeseries",
            client.query(
                site_id,
                metrics or DEFAULT_SERIES_METRICS,
                date_range,
                dimensions=[dimension],
                filters=filters,
                include={"time_labels": True},
            ),
        )
        return to_text(result)

    @mcp.tool(
        name="get_breakdown",
        description=(
            "Get analytics data broken down by a specific dimension. Useful for "
            "seeing top pages, traffic sources, countries, browsers, devices, etc."
        ),
    )
    async def get_breakdown(
        site_id: SiteId,
        date_range: DateRangeArg,
        dimension: Annotated[
            str,
            Field(
                description=(
                    'Dimension to break down by. Examples: "event:page", '
                    '"visit:source", "visit:country_name", "visit:browser", '
                    '"visit:device", "visit:os", "visit:entry_page", '
                    '"visit:exit_page", "visit:utm_source", "visit:utm_medium", '
                    '"visit:utm_campaign"'
                )
            ),
        ],
        metrics: SeriesMetricsArg = None,
        filters: FiltersArg = None,
        limit: Annotated[
            Optional[int],
            Field(description="Maximum number of results to return (default: 100)"),
        ] = None,
    ) -> str:
        client = get_client()
        result = await call_upstream(
            "get_breakdown",
            client.query(
                site_id,
                metrics or DEFAULT_SERIES_METRICS,
                date_range,
                dimensions=[dimension],
                filters=filters,
                pagination={"limit": limit} if limit else None,
            ),
        )
        return to_text(result)

    # Mark as used for linters
    _ = (
        query_stats,
        get_realtime_visitors,
        get_aggregate_stats,
        get_timeseries,
        get_breakdown,
    )
