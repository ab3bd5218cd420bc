"""
Client for the external feed service.

The service takes an RSS/Atom URL and returns the parsed entries as JSON,
either as a bare array or wrapped in an ``entries`` object.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

FEED_HEADERS = {
    "Accept": "application/json",
    # keeps tunnel services from answering with their interstitial page
    "ngrok-skip-browser-warning": "true",
}


class FeedError(Exception):
    """Raised when the feed endpoint fails or returns an unusable payload.

    Attributes:
        feed_url: The feed that was requested
        status_code: HTTP status code, or None for network-level failures
    """

    def __init__(self, message: str, feed_url: str, status_code: int | None = None):
        super().__init__(message)
        self.feed_url = feed_url
        self.status_code = status_code


async def fetch_feed_entries(
    feed_url: str,
    endpoint: str,
    timeout: float = 20.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[dict[str, Any]]:
    """Fetch the article records for one feed.

    Args:
        feed_url: URL of the RSS/Atom feed to fetch
        endpoint: URL of the feed service
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)

    Returns:
        The list of article records, in feed order

    Raises:
        FeedError: On network failure, non-2xx status or unexpected payload
    """
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
            resp = await client.get(endpoint, params={"rss_url": feed_url}, headers=FEED_HEADERS)
    except httpx.HTTPError as exc:
        logger.error("Feed request failed", extra={"feed_url": feed_url, "error": str(exc)})
        raise FeedError(f"{type(exc).__name__}: {exc}", feed_url) from exc

    if not resp.is_success:
        logger.error("Feed server error", extra={"feed_url": feed_url, "status": resp.status_code})
        raise FeedError(f"Server error: {resp.status_code}", feed_url, resp.status_code)

    try:
        data = resp.json()
    except ValueError as exc:
        logger.error("Feed returned invalid JSON", extra={"feed_url": feed_url})
        raise FeedError("Invalid JSON from feed server", feed_url, resp.status_code) from exc

    records = _extract_records(data)
    if records is None:
        logger.error("Unexpected feed payload", extra={"feed_url": feed_url, "payload_type": type(data).__name__})
        raise FeedError("Unexpected feed payload", feed_url, resp.status_code)
    return [item for item in records if isinstance(item, dict)]


def _extract_records(data: Any) -> list[Any] | None:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("entries"), list):
        return data["entries"]
    return None
