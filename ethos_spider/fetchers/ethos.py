"""Ethos network API client: profile search and received-activity collection."""
import logging
from typing import Any

import httpx

from ethos_spider.config import ethos_api_v1, ethos_api_v2, ethos_timeout
from ethos_spider.errors import (
    InvalidRequestError,
    ProfileNotFoundError,
    UpstreamError,
    UpstreamTimeoutError,
)
from ethos_spider.models import ANALYZED_KINDS, SearchResult

_log = logging.getLogger(__name__)

PAGE_SIZE = 500
MAX_ACTIVITIES = 5000  # hard ceiling; upstream is unbounded

QUERY_MIN_LEN = 2
QUERY_MAX_LEN = 100


def validate_query(query: str | None) -> str:
    if not query or len(query) < QUERY_MIN_LEN or len(query) > QUERY_MAX_LEN:
        raise InvalidRequestError(
            f"Query must be between {QUERY_MIN_LEN} and {QUERY_MAX_LEN} characters"
        )
    return query


async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> Any:
    """Issue one request and return the decoded JSON body, mapping failures to UpstreamError."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise UpstreamTimeoutError("ethos", f"Ethos API timed out: {exc}") from exc
    except httpx.HTTPError as exc:
        raise UpstreamError("ethos", f"Ethos API request failed: {exc}") from exc

    if not response.is_success:
        _log.error("Ethos API %s %s -> %s: %s", method, url, response.status_code, response.text)
        raise UpstreamError(
            "ethos",
            f"Ethos API responded with status: {response.status_code}",
            status=response.status_code,
            body=response.text,
        )
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError("ethos", "Ethos API returned invalid JSON", body=response.text) from exc


async def search_profiles(
    query: str | None,
    limit: int = 10,
    offset: int = 0,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    """Proxy a free-text profile search; returns the upstream JSON verbatim."""
    query = validate_query(query)
    async with httpx.AsyncClient(base_url=ethos_api_v1(), timeout=ethos_timeout(), transport=transport) as client:
        return await _send(client, "GET", "/search", params={"query": query, "limit": limit, "offset": offset})


async def find_profile(
    username: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SearchResult:
    """Resolve a username to its search result by exact, case-insensitive match."""
    username = username.lstrip("@")
    data = await search_profiles(username, transport=transport)
    values = (data.get("data") or {}).get("values") or []
    for value in values:
        if (value.get("username") or "").lower() == username.lower():
            return SearchResult.model_validate(value)
    raise ProfileNotFoundError(f"User @{username} not found")


async def collect_activities(
    userkey: str,
    *,
    page_size: int = PAGE_SIZE,
    max_activities: int = MAX_ACTIVITIES,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[dict[str, Any]]:
    """Fetch every review and vouch received by ``userkey``, newest first.

    Pages are requested sequentially until a short page comes back or the
    next offset would reach ``max_activities``; at most ``max_activities``
    records are kept even when the page size does not divide it. Any failed
    page aborts the whole collection. The result keeps the upstream order
    (timestamp descending within each page, pages in fetch order).
    """
    collected: list[dict[str, Any]] = []
    offset = 0

    async with httpx.AsyncClient(base_url=ethos_api_v2(), timeout=ethos_timeout(), transport=transport) as client:
        while True:
            payload = {
                "userkey": userkey,
                "filter": list(ANALYZED_KINDS),
                "excludeHistorical": False,
                "orderBy": {"field": "timestamp", "direction": "desc"},
                "limit": page_size,
                "offset": offset,
            }
            _log.debug("Fetching activities for %s (offset=%d, limit=%d)", userkey, offset, page_size)
            data = await _send(client, "POST", "/activities/profile/received", json=payload)
            page = data.get("values") or []
            collected.extend(page)

            if len(page) < page_size:
                break

            offset += page_size
            if len(collected) >= max_activities or offset >= max_activities:
                _log.info("Reached safety limit of %d activities for %s", max_activities, userkey)
                break

    collected = collected[:max_activities]
    activities = [a for a in collected if a.get("type") in ANALYZED_KINDS]
    _log.info(
        "Collected %d activities for %s, %d reviews and vouches",
        len(collected), userkey, len(activities),
    )
    return activities
