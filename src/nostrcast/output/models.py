"""Data models for generated artifacts.

This module defines Pydantic models for:
- The health record published next to the feed
- The result of writing a feed to disk
"""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FeedHealth(BaseModel):
    """Health record written to ``rss-health.json``.

    Serialized with camelCase keys so static-site monitors can read it
    directly.

    Example:
        >>> health = FeedHealth(
        ...     endpoint="/rss.xml",
        ...     generated_at=now_utc(),
        ...     episode_count=3,
        ...     feed_size=4096,
        ...     creator_pubkey="7e7e9c42...",
        ...     base_url="https://podstr.example",
        ... )
        >>> health.to_json()
        '{\\n  "status": "ok", ...'
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str = "ok"
    endpoint: str = Field(..., description="Path of the feed relative to the site root")
    generated_at: datetime
    episode_count: int = Field(..., ge=0)
    feed_size: int = Field(..., ge=0, description="Feed size in UTF-8 bytes")
    environment: str = "production"
    accessible: bool = True
    relays: list[str] = Field(default_factory=list)
    creator_pubkey: str
    base_url: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2) + "\n"


class FeedOutput(BaseModel):
    """Paths and sizes of a completed write."""

    feed_path: Path
    health_path: Path
    nojekyll_path: Path | None = None
    feed_size: int
    health: FeedHealth

    @property
    def size_kb(self) -> float:
        return self.feed_size / 1024
