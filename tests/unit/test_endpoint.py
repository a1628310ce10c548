"""Tests for the deployed-feed endpoint check."""

import json

import httpx
import pytest

from nostrcast.config.schema import GlobalConfig
from nostrcast.endpoint import check_endpoint
from nostrcast.feeds.episodes import event_to_episode
from nostrcast.feeds.renderer import RSSRenderer


def _transport(routes: dict[str, httpx.Response]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return routes.get(request.url.path, httpx.Response(404))

    return httpx.MockTransport(handler)


@pytest.fixture
def feed_xml(config: GlobalConfig, make_event) -> str:
    episodes = [event_to_episode(make_event(title=f"Ep{n}", created_at=n)) for n in (1, 2)]
    return RSSRenderer(config).render(episodes)


class TestCheckEndpoint:
    """Tests for check_endpoint."""

    @pytest.mark.asyncio
    async def test_healthy_site(self, feed_xml: str) -> None:
        """Test a served feed and health record are both reported."""
        transport = _transport(
            {
                "/rss.xml": httpx.Response(
                    200,
                    content=feed_xml.encode("utf-8"),
                    headers={"content-type": "application/rss+xml", "cache-control": "max-age=300"},
                ),
                "/rss-health.json": httpx.Response(
                    200, json={"status": "ok", "episodeCount": 2, "feedSize": len(feed_xml)}
                ),
            }
        )

        report = await check_endpoint("https://podcast.example/", transport=transport)

        assert report.ok
        assert report.feed.status_code == 200
        assert report.feed.cache_control == "max-age=300"
        assert report.feed.size == len(feed_xml.encode("utf-8"))
        assert report.starts_with_declaration
        assert report.entry_count == 2
        assert report.health_data is not None
        assert report.health_data["status"] == "ok"
        assert report.warnings == []

    @pytest.mark.asyncio
    async def test_missing_feed(self) -> None:
        """Test a 404 feed is reported as not ok."""
        report = await check_endpoint("https://podcast.example", transport=_transport({}))

        assert not report.ok
        assert report.feed.status_code == 404
        assert report.feed.error is not None
        assert report.health_data is None

    @pytest.mark.asyncio
    async def test_network_error_recorded(self) -> None:
        """Test connection failures are recorded instead of raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        report = await check_endpoint(
            "https://podcast.example", transport=httpx.MockTransport(handler)
        )

        assert not report.ok
        assert report.feed.status_code is None
        assert "ConnectError" in (report.feed.error or "")

    @pytest.mark.asyncio
    async def test_warnings(self, feed_xml: str) -> None:
        """Test content-type and episode-count mismatches produce warnings."""
        transport = _transport(
            {
                "/rss.xml": httpx.Response(
                    200, content=feed_xml.encode("utf-8"), headers={"content-type": "text/plain"}
                ),
                "/rss-health.json": httpx.Response(
                    200, content=json.dumps({"episodeCount": 5}).encode()
                ),
            }
        )

        report = await check_endpoint("https://podcast.example", transport=transport)

        assert report.ok
        assert any("content type" in warning for warning in report.warnings)
        assert any("5 episodes" in warning for warning in report.warnings)

    @pytest.mark.asyncio
    async def test_invalid_health_json(self, feed_xml: str) -> None:
        """Test an unreadable health record is a warning, not a failure."""
        transport = _transport(
            {
                "/rss.xml": httpx.Response(
                    200, content=feed_xml.encode("utf-8"), headers={"content-type": "text/xml"}
                ),
                "/rss-health.json": httpx.Response(200, content=b"<html>oops</html>"),
            }
        )

        report = await check_endpoint("https://podcast.example", transport=transport)

        assert report.ok
        assert report.health_data is None
        assert any("not valid JSON" in warning for warning in report.warnings)
