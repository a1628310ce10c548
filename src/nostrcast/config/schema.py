"""Configuration schema models using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nostrcast.config.defaults import (
    DEFAULT_BASE_URL,
    DEFAULT_CREATOR_NPUB,
    DEFAULT_RELAYS,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
PodcastType = Literal["episodic", "serial"]
Medium = Literal["podcast", "music", "video", "film", "audiobook", "newsletter", "blog"]


class _CamelModel(BaseModel):
    """Accepts both the camelCase keys used in published metadata events and snake_case."""

    model_config = ConfigDict(populate_by_name=True)


class ValueRecipient(_CamelModel):
    """Lightning split recipient for podcast:value."""

    name: str
    type: Literal["node", "keysend"] = "node"
    address: str
    split: int = Field(..., ge=0)
    custom_key: str | None = Field(None, alias="customKey")
    custom_value: str | None = Field(None, alias="customValue")


class ValueConfig(_CamelModel):
    """Value-for-value block. Rendered only when amount is positive."""

    amount: float = 0
    currency: str = "USD"
    recipients: list[ValueRecipient] = Field(default_factory=list)


class Location(_CamelModel):
    name: str
    geo: str | None = None  # latitude,longitude
    osm: str | None = None


class Person(_CamelModel):
    name: str
    role: str = "host"
    group: str | None = None
    img: str | None = None
    href: str | None = None


class License(_CamelModel):
    identifier: str
    url: str | None = None


class Txt(_CamelModel):
    purpose: str
    content: str


class RemoteItem(_CamelModel):
    feed_guid: str = Field(..., alias="feedGuid")
    feed_url: str | None = Field(None, alias="feedUrl")
    item_guid: str | None = Field(None, alias="itemGuid")
    medium: str | None = None


class Block(_CamelModel):
    id: str
    reason: str | None = None


class PodcastMetadata(_CamelModel):
    """Descriptive podcast metadata rendered into the channel block.

    The static copy lives in config.yaml; the creator may publish a newer one
    as a kind 30078 event, which is overlaid at run time.
    """

    title: str = "PODSTR Podcast"
    description: str = "A Nostr-powered podcast exploring decentralized conversations"
    author: str = "PODSTR Creator"
    email: str = "creator@podstr.example"
    image: str = "https://example.com/podcast-artwork.jpg"
    language: str = "en-us"
    categories: list[str] = Field(
        default_factory=lambda: ["Technology", "Social Networking", "Society & Culture"]
    )
    explicit: bool = False
    website: str = "https://podstr.example"
    copyright: str = "© 2025 PODSTR Creator"
    funding: list[str] = Field(default_factory=list)
    locked: bool = False
    value: ValueConfig = Field(default_factory=ValueConfig)
    type: PodcastType = "episodic"
    complete: bool = False

    # Podcasting 2.0
    guid: str | None = DEFAULT_CREATOR_NPUB
    medium: Medium | None = "podcast"
    publisher: str | None = "PODSTR Creator"
    location: Location | None = None
    person: list[Person] = Field(
        default_factory=lambda: [Person(name="PODSTR Creator", role="host", group="cast")]
    )
    license: License | None = Field(
        default_factory=lambda: License(
            identifier="CC BY 4.0",
            url="https://creativecommons.org/licenses/by/4.0/",
        )
    )
    txt: list[Txt] = Field(default_factory=list)
    remote_item: list[RemoteItem] = Field(default_factory=list, alias="remoteItem")
    block: Block | None = None
    new_feed_url: str | None = Field(None, alias="newFeedUrl")


class RSSConfig(BaseModel):
    """Channel-level RSS settings that are not podcast metadata."""

    ttl: int = Field(60, ge=0, description="Time-to-live in minutes")
    generator: str = "nostrcast - Nostr podcast feed generator"


class GlobalConfig(BaseModel):
    """Global nostrcast configuration."""

    version: str = "1"
    log_level: LogLevel = "INFO"

    # Identity and network
    creator_npub: str = DEFAULT_CREATOR_NPUB
    base_url: str = DEFAULT_BASE_URL
    relays: list[str] = Field(default_factory=lambda: list(DEFAULT_RELAYS))

    # Event kinds
    episode_kind: int = Field(54, ge=0)
    metadata_kind: int = Field(30078, ge=0)
    metadata_identifier: str = "podcast-metadata"

    # Query behaviour (seconds / event counts)
    query_timeout: float = Field(15.0, gt=0)
    metadata_timeout: float = Field(5.0, gt=0)
    query_limit: int = Field(100, gt=0)
    max_pages: int = Field(5, ge=1)

    # Output
    output_dir: Path = Field(default=Path("dist"))
    feed_filename: str = "rss.xml"
    health_filename: str = "rss-health.json"
    environment: str = "production"
    write_nojekyll: bool = False

    podcast: PodcastMetadata = Field(default_factory=PodcastMetadata)
    rss: RSSConfig = Field(default_factory=RSSConfig)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("relays")
    @classmethod
    def _check_relay_urls(cls, value: list[str]) -> list[str]:
        relays = [url.strip() for url in value if url.strip()]
        for url in relays:
            if not url.startswith(("wss://", "ws://")):
                raise ValueError(f"Relay URL must use ws:// or wss://: {url}")
        return relays
