"""Checks a deployed feed over HTTP.

Fetches the feed and its health record from a running site, then parses the
feed the way a podcast app would (feedparser) to confirm it is usable.
"""

import json
import logging
from typing import Any

import feedparser
import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
USER_AGENT = "nostrcast-endpoint-check"


class ResourceCheck(BaseModel):
    """Outcome of fetching one URL."""

    url: str
    status_code: int | None = None
    content_type: str | None = None
    cache_control: str | None = None
    size: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status_code is not None and self.status_code < 400


class EndpointReport(BaseModel):
    """Everything learned about a deployed feed."""

    feed: ResourceCheck
    health: ResourceCheck
    health_data: dict[str, Any] | None = None
    starts_with_declaration: bool = False
    feed_title: str | None = None
    entry_count: int = 0
    parse_error: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.feed.ok and self.parse_error is None


async def _fetch(client: httpx.AsyncClient, url: str) -> tuple[ResourceCheck, bytes]:
    check = ResourceCheck(url=url)
    try:
        response = await client.get(url, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.debug(f"Request to {url} failed: {e}")
        check.error = f"{type(e).__name__}: {e}"
        return check, b""

    check.status_code = response.status_code
    check.content_type = response.headers.get("content-type")
    check.cache_control = response.headers.get("cache-control")
    check.size = len(response.content)
    if response.is_error:
        check.error = f"HTTP {response.status_code} {response.reason_phrase}"
    return check, response.content


async def check_endpoint(
    base_url: str,
    feed_path: str = "/rss.xml",
    health_path: str = "/rss-health.json",
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> EndpointReport:
    """Fetch and inspect a deployed feed.

    Network and HTTP failures are recorded in the report rather than raised.

    Args:
        base_url: Site root, e.g. ``https://podstr.example``
        feed_path: Path of the feed below the root
        health_path: Path of the health record below the root
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (used by tests)

    Returns:
        EndpointReport
    """
    root = base_url.rstrip("/")

    async with httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT, "Accept": "*/*"},
        transport=transport,
    ) as client:
        feed_check, feed_body = await _fetch(client, f"{root}{feed_path}")
        health_check, health_body = await _fetch(client, f"{root}{health_path}")

    report = EndpointReport(feed=feed_check, health=health_check)

    if feed_check.ok:
        _inspect_feed(report, feed_body)
    if health_check.ok:
        _inspect_health(report, health_body)

    return report


def _inspect_feed(report: EndpointReport, body: bytes) -> None:
    report.starts_with_declaration = body.lstrip().startswith(b"<?xml")
    if not report.starts_with_declaration:
        report.warnings.append("Feed does not start with an XML declaration")

    content_type = report.feed.content_type or ""
    if "xml" not in content_type:
        report.warnings.append(f"Unexpected feed content type: {content_type or 'none'}")

    parsed = feedparser.parse(body)
    if parsed.bozo:
        report.parse_error = str(parsed.bozo_exception)
    report.feed_title = parsed.feed.get("title")
    report.entry_count = len(parsed.entries)


def _inspect_health(report: EndpointReport, body: bytes) -> None:
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        report.warnings.append(f"Health record is not valid JSON: {e}")
        return

    if not isinstance(data, dict):
        report.warnings.append("Health record is not a JSON object")
        return

    report.health_data = data
    episode_count = data.get("episodeCount")
    if isinstance(episode_count, int) and episode_count != report.entry_count and report.feed.ok:
        report.warnings.append(
            f"Health record reports {episode_count} episodes, feed has {report.entry_count}"
        )
