"""Data models for podcast episodes."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Episode(BaseModel):
    """A podcast episode derived from a single Nostr event.

    Episodes are never edited in place; a newer event produces a new
    Episode that replaces the old one.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str | None = None
    content: str | None = None
    audio_url: str
    audio_type: str = "audio/mpeg"
    image_url: str | None = None
    duration: int | None = Field(None, description="Duration in seconds")
    episode_number: int | None = None
    season_number: int | None = None
    explicit: bool = False
    publish_date: datetime
    tags: list[str] = Field(default_factory=list)
    event_id: str
    author_pubkey: str
    identifier: str | None = Field(None, description="d tag of addressable episodes")
    created_at: datetime

    @property
    def duration_formatted(self) -> str | None:
        """Duration as MM:SS, or HH:MM:SS when an hour or longer."""
        if not self.duration:
            return None

        hours = self.duration // 3600
        minutes = (self.duration % 3600) // 60
        seconds = self.duration % 60

        if hours > 0:
            return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
        return f"{minutes:02d}:{seconds:02d}"
