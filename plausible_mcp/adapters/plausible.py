"""Plausible Analytics REST adapter.

This adapter wraps the three Plausible REST surfaces used by the MCP tools:

- Stats API v2 (``POST /api/v2/query``) plus the v1 realtime visitors endpoint
- Events API (``POST /api/event``)
- Sites API v1 (sites, goals, shared links) and ``GET /api/health``

It encapsulates transport concerns (base URL, bearer auth, JSON encoding) and
turns non-2xx responses into :class:`PlausibleAPIError`.

Notes
-----
- No timeout is applied to upstream calls and nothing is retried; a hung
  upstream request holds the calling task until the peer gives up.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..utils.correlation import get_request_id

logger = logging.getLogger(__name__)


class PlausibleAPIError(Exception):
    """Non-2xx response from the Plausible API.

    Attributes
    ----------
    status_code: int
        HTTP status returned by Plausible.
    reason: str
        HTTP reason phrase.
    body: str
        Raw response body (may be empty).
    """

    def __init__(
        self, status_code: int, reason: str, body: str, *, api: str = "API"
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"Plausible {api} error ({status_code} {reason}): {body}")


class PlausibleClient:
    """Async client for one Plausible instance and API key.

    Parameters
    ----------
    api_url: str
        Base URL of the Plausible instance (e.g., "https://plausible.io").
        Trailing slashes are stripped.
    api_key: str
        API key sent as a bearer token on Stats and Sites API calls.

    Attributes
    ----------
    _client: httpx.AsyncClient
        Shared async client configured with base URL and no timeout.
    """

    def __init__(self, api_url: str, api_key: str) -> None:
        self.api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._client = httpx.AsyncClient(base_url=self.api_url, timeout=None)
        logger.debug("plausible.client.init", extra={"api_url": self.api_url})

    def inject_http_client_for_testing(self, client: httpx.AsyncClient) -> None:
        """Replace underlying HTTP client (testing only)."""
        self._client = client

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        body: Any | None = None,
        params: Dict[str, Any] | None = None,
    ) -> Any:
        """Send an authenticated request and decode the JSON body.

        Raises
        ------
        PlausibleAPIError
            On any non-2xx response.
        httpx.HTTPError
            On transport failures.
        """
        logger.debug(
            "plausible.http.request",
            extra={"req_id": get_request_id(), "method": method, "path": path},
        )
        kwargs: Dict[str, Any] = {"headers": self._headers}
        if params:
            kwargs["params"] = params
        if body is not None and method in ("POST", "PUT", "DELETE"):
            kwargs["json"] = body
        resp = await self._client.request(method, path, **kwargs)

        if not resp.is_success:
            logger.warning(
                "plausible.http.status_error",
                extra={
                    "req_id": get_request_id(),
                    "path": path,
                    "status": resp.status_code,
                },
            )
            raise PlausibleAPIError(resp.status_code, resp.reason_phrase, resp.text)

        # Some endpoints answer 202 with an empty body
        if resp.status_code == 202:
            return {"status": "accepted"}
        if not resp.text:
            return {}
        return resp.json()

    # ---------------- Stats API ----------------
    async def query(
        self,
        site_id: str,
        metrics: List[str],
        date_range: str | List[str],
        *,
        dimensions: Optional[List[str]] = None,
        filters: Optional[List[Any]] = None,
        order_by: Optional[List[List[str]]] = None,
        include: Optional[Dict[str, bool]] = None,
        pagination: Optional[Dict[str, int]] = None,
    ) -> Any:
        """Run a Stats API v2 query.

        Empty optional sections are omitted from the request body rather than
        sent as empty values.
        """
        body: Dict[str, Any] = {
            "site_id": site_id,
            "metrics": metrics,
            "date_range": date_range,
        }
        if dimensions:
            body["dimensions"] = dimensions
        if filters:
            body["filters"] = filters
        if order_by:
            body["order_by"] = order_by
        if include:
            body["include"] = include
        if pagination is not None:
            body["pagination"] = pagination
        return await self._request("POST", "/api/v2/query", body)

    async def get_realtime_visitors(self, site_id: str) -> Any:
        return await self._request(
            "GET", "/api/v1/stats/realtime/visitors", params={"site_id": site_id}
        )

    # ---------------- Events API ----------------
    async def send_event(
        self,
        domain: str,
        name: str,
        url: str,
        *,
        referrer: Optional[str] = None,
        props: Optional[Dict[str, str]] = None,
        revenue: Optional[Dict[str, Any]] = None,
        user_agent: Optional[str] = None,
        ip: Optional[str] = None,
    ) -> Dict[str, str]:
        """Record a pageview or custom event.

        The Events API is unauthenticated; visitor identity comes from the
        forwarded ``User-Agent`` and ``X-Forwarded-For`` headers.
        """
        headers = {"Content-Type": "application/json"}
        if user_agent:
            headers["User-Agent"] = user_agent
        if ip:
            headers["X-Forwarded-For"] = ip

        body: Dict[str, Any] = {"domain": domain, "name": name, "url": url}
        if referrer:
            body["referrer"] = referrer
        if props:
            body["props"] = props
        if revenue:
            body["revenue"] = revenue

        logger.debug(
            "plausible.event.send",
            extra={"req_id": get_request_id(), "domain": domain, "event": name},
        )
        resp = await self._client.post("/api/event", json=body, headers=headers)
        if not resp.is_success and resp.status_code != 202:
            raise PlausibleAPIError(
                resp.status_code, resp.reason_phrase, resp.text, api="Events API"
            )
        return {"status": "accepted", "message": "Event recorded successfully"}

    # ---------------- Sites API ----------------
    @staticmethod
    def _page_params(
        limit: Optional[int], after: Optional[str], before: Optional[str]
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if limit:
            params["limit"] = limit
        if after:
            params["after"] = after
        if before:
            params["before"] = before
        return params

    async def list_sites(
        self,
        limit: Optional[int] = None,
        after: Optional[str] = None,
        before: Optional[str] = None,
    ) -> Any:
        return await self._request(
            "GET", "/api/v1/sites", params=self._page_params(limit, after, before)
        )

    async def get_site(self, site_id: str) -> Any:
        return await self._request("GET", f"/api/v1/sites/{_quote(site_id)}")

    async def create_site(
        self,
        domain: str,
        timezone: Optional[str] = None,
        team_id: Optional[str] = None,
    ) -> Any:
        body: Dict[str, Any] = {"domain": domain}
        if timezone:
            body["timezone"] = timezone
        if team_id:
            body["team_id"] = team_id
        return await self._request("POST", "/api/v1/sites", body)

    async def update_site(self, site_id: str, domain: Optional[str] = None) -> Any:
        body: Dict[str, Any] = {}
        if domain:
            body["domain"] = domain
        return await self._request("PUT", f"/api/v1/sites/{_quote(site_id)}", body)

    async def delete_site(self, site_id: str) -> Any:
        return await self._request("DELETE", f"/api/v1/sites/{_quote(site_id)}")

    async def create_shared_link(self, site_id: str, name: str) -> Any:
        """Find or create a shared link (idempotent on Plausible's side)."""
        return await self._request(
            "PUT",
            "/api/v1/sites/shared-links",
            {"site_id": site_id, "name": name},
        )

    async def list_goals(
        self,
        site_id: str,
        limit: Optional[int] = None,
        after: Optional[str] = None,
        before: Optional[str] = None,
    ) -> Any:
        params = {"site_id": site_id, **self._page_params(limit, after, before)}
        return await self._request("GET", "/api/v1/sites/goals", params=params)

    async def create_goal(
        self,
        site_id: str,
        goal_type: str,
        *,
        event_name: Optional[str] = None,
        page_path: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Any:
        """Find or create a goal (idempotent on Plausible's side)."""
        body: Dict[str, Any] = {"site_id": site_id, "goal_type": goal_type}
        if event_name:
            body["event_name"] = event_name
        if page_path:
            body["page_path"] = page_path
        if display_name:
            body["display_name"] = display_name
        return await self._request("PUT", "/api/v1/sites/goals", body)

    async def delete_goal(self, goal_id: str, site_id: str) -> Any:
        return await self._request(
            "DELETE",
            f"/api/v1/sites/goals/{_quote(goal_id)}",
            {"site_id": site_id},
        )

    # ---------------- Health ----------------
    async def check_health(self) -> Any:
        return await self._request("GET", "/api/health")


def _quote(segment: str) -> str:
    """Percent-encode a single path segment (``/`` included)."""
    return quote(segment, safe="")
