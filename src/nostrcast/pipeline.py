"""Feed generation pipeline.

Coordinates one run end to end:
1. Resolve the creator's key
2. Fetch the podcast metadata override and the episode events from relays
3. Resolve events into the canonical episode list
4. Render the RSS document
5. Write the feed and health record

Relay trouble never aborts a run: the pipeline falls back to the static
metadata and an empty episode list and still publishes a feed. Only
configuration and output errors are fatal.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from nostrcast.config.schema import GlobalConfig, PodcastMetadata
from nostrcast.feeds.episodes import resolve_episodes
from nostrcast.feeds.metadata import merge_metadata, metadata_filter, select_metadata_event
from nostrcast.feeds.models import Episode
from nostrcast.feeds.renderer import RSSRenderer
from nostrcast.nostr.models import DELETION_KIND, Filter, NostrEvent
from nostrcast.nostr.nip19 import resolve_pubkey
from nostrcast.nostr.relay import RelayClient, RelayPool, paginate
from nostrcast.output.manager import OutputManager
from nostrcast.output.models import FeedHealth, FeedOutput
from nostrcast.utils.datetime import now_utc
from nostrcast.utils.errors import InvalidConfigError, Nip19Error, NostrcastError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, dict[str, Any]], None]
ClientFactory = Callable[[list[str]], RelayClient]


class FetchResult(BaseModel):
    """What one relay snapshot produced."""

    creator_pubkey: str
    podcast: PodcastMetadata
    episodes: list[Episode] = Field(default_factory=list)
    event_count: int = 0
    metadata_override: bool = False
    degraded: bool = Field(False, description="True when relays could not be queried")


class FeedResult(BaseModel):
    """Result of a complete generate() run."""

    fetch: FetchResult
    content: str
    output: FeedOutput
    generated_at: datetime

    @property
    def episode_count(self) -> int:
        return len(self.fetch.episodes)


class FeedPipeline:
    """Orchestrates fetching, rendering and writing a feed.

    Example:
        >>> pipeline = FeedPipeline(config)
        >>> result = await pipeline.generate()
        >>> print(result.output.feed_path)
        dist/rss.xml
    """

    def __init__(
        self,
        config: GlobalConfig,
        client_factory: ClientFactory | None = None,
        output_manager: OutputManager | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Global configuration
            client_factory: Builds a relay client from the relay list
                (defaults to RelayPool)
            output_manager: Output writer (defaults to one for config.output_dir)
        """
        self.config = config
        self.client_factory = client_factory or RelayPool
        self.output_manager = output_manager or OutputManager(
            config.output_dir,
            feed_filename=config.feed_filename,
            health_filename=config.health_filename,
            write_nojekyll=config.write_nojekyll,
        )

    @property
    def creator_pubkey(self) -> str:
        """Hex key of the configured creator.

        Raises:
            InvalidConfigError: If creator_npub is neither an npub nor a hex key
        """
        try:
            return resolve_pubkey(self.config.creator_npub)
        except Nip19Error as e:
            raise InvalidConfigError(
                f"Invalid creator_npub {self.config.creator_npub!r}: {e}",
                suggestion="Set creator_npub to the creator's npub1... or 64-char hex key",
            ) from e

    async def fetch_episodes(
        self, progress_callback: ProgressCallback | None = None
    ) -> FetchResult:
        """Query relays and resolve the current episode list.

        The relay client is opened once for the run and always closed.

        Args:
            progress_callback: Called with (step_name, step_data)

        Returns:
            FetchResult; ``degraded`` is set when relays failed outright

        Raises:
            InvalidConfigError: If the creator key is invalid
        """
        creator = self.creator_pubkey
        self._notify(progress_callback, "fetch_start", {"relays": list(self.config.relays)})

        client = self.client_factory(list(self.config.relays))
        try:
            podcast, override = await self._fetch_metadata(client, creator)
            events, degraded = await self._fetch_events(client, creator)
        finally:
            await self._close_client(client)

        episodes = resolve_episodes(events, self.config.episode_kind, creator)
        if not episodes:
            logger.info("No valid podcast episodes found, generating an empty feed")

        self._notify(
            progress_callback,
            "fetch_complete",
            {
                "event_count": len(events),
                "episode_count": len(episodes),
                "metadata_override": override,
                "degraded": degraded,
            },
        )

        return FetchResult(
            creator_pubkey=creator,
            podcast=podcast,
            episodes=episodes,
            event_count=len(events),
            metadata_override=override,
            degraded=degraded,
        )

    def render(self, fetch: FetchResult, generated_at: datetime) -> str:
        """Render a fetch result into RSS."""
        return RSSRenderer(self.config, fetch.podcast).render(fetch.episodes, generated_at)

    def build_health(self, fetch: FetchResult, content: str, generated_at: datetime) -> FeedHealth:
        return FeedHealth(
            endpoint=f"/{self.config.feed_filename}",
            generated_at=generated_at,
            episode_count=len(fetch.episodes),
            feed_size=len(content.encode("utf-8")),
            environment=self.config.environment,
            relays=list(self.config.relays),
            creator_pubkey=fetch.creator_pubkey,
            base_url=self.config.base_url,
        )

    async def generate(self, progress_callback: ProgressCallback | None = None) -> FeedResult:
        """Run the whole pipeline and write the output files.

        Args:
            progress_callback: Called with (step_name, step_data)

        Returns:
            FeedResult with the rendered document and output paths

        Raises:
            InvalidConfigError: If the creator key is invalid
            OutputError: If the files cannot be written
        """
        fetch = await self.fetch_episodes(progress_callback)

        self._notify(progress_callback, "render_start", {"episode_count": len(fetch.episodes)})
        generated_at = now_utc()
        content = self.render(fetch, generated_at)
        self._notify(
            progress_callback,
            "render_complete",
            {"size_bytes": len(content.encode("utf-8"))},
        )

        self._notify(
            progress_callback, "output_start", {"directory": self.output_manager.output_dir}
        )
        health = self.build_health(fetch, content, generated_at)
        output = await self.output_manager.write_feed(content, health)
        self._notify(
            progress_callback,
            "output_complete",
            {"feed_path": output.feed_path, "health_path": output.health_path},
        )

        return FeedResult(
            fetch=fetch,
            content=content,
            output=output,
            generated_at=generated_at,
        )

    async def _fetch_metadata(
        self, client: RelayClient, creator: str
    ) -> tuple[PodcastMetadata, bool]:
        base = self.config.podcast
        try:
            events = await client.query(
                [metadata_filter(self.config, creator)],
                timeout=self.config.metadata_timeout,
            )
        except (NostrcastError, OSError) as e:
            logger.warning(f"Could not fetch podcast metadata, using configuration: {e}")
            return base, False

        event = select_metadata_event(
            events, creator, self.config.metadata_kind, self.config.metadata_identifier
        )
        if event is None:
            logger.debug("No podcast metadata event published, using configuration")
            return base, False

        podcast = merge_metadata(base, event)
        return podcast, podcast is not base

    async def _fetch_events(
        self, client: RelayClient, creator: str
    ) -> tuple[list[NostrEvent], bool]:
        episode_filter = Filter(
            kinds=[self.config.episode_kind],
            authors=[creator],
            limit=self.config.query_limit,
        )
        deletion_filter = Filter(
            kinds=[DELETION_KIND],
            authors=[creator],
            limit=self.config.query_limit,
        )

        try:
            episodes = await paginate(
                client,
                episode_filter,
                timeout=self.config.query_timeout,
                max_pages=self.config.max_pages,
            )
            deletions = await client.query([deletion_filter], timeout=self.config.query_timeout)
        except (NostrcastError, OSError) as e:
            logger.warning(f"Failed to fetch podcast episodes, continuing with none: {e}")
            return [], True

        logger.info(f"Found {len(episodes)} episode events and {len(deletions)} deletions")
        return _merge_events(episodes, deletions), False

    @staticmethod
    async def _close_client(client: RelayClient) -> None:
        try:
            await client.close()
        except (NostrcastError, OSError) as e:
            logger.debug(f"Error closing relay client: {e}")

    @staticmethod
    def _notify(
        callback: ProgressCallback | None, step_name: str, step_data: dict[str, Any]
    ) -> None:
        if callback is not None:
            callback(step_name, step_data)


def _merge_events(*batches: Iterable[NostrEvent]) -> list[NostrEvent]:
    merged: dict[str, NostrEvent] = {}
    for batch in batches:
        for event in batch:
            merged.setdefault(event.id, event)
    return list(merged.values())
