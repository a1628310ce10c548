"""Nostr event and filter models.

Events arrive from relays as untrusted JSON; they are validated into frozen
models at the relay boundary and never mutated afterwards.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Event kinds used by nostrcast
DELETION_KIND = 5
EPISODE_KIND = 54
ADDRESSABLE_EPISODE_KIND = 30054
PODCAST_METADATA_KIND = 30078

ADDRESSABLE_KIND_MIN = 30000
ADDRESSABLE_KIND_MAX = 40000


def is_addressable_kind(kind: int) -> bool:
    """Addressable kinds are identified by (kind, pubkey, d-tag) rather than event id."""
    return ADDRESSABLE_KIND_MIN <= kind < ADDRESSABLE_KIND_MAX


class NostrEvent(BaseModel):
    """A signed Nostr event as received from a relay.

    Example:
        >>> event = NostrEvent(
        ...     id="ab" * 32,
        ...     pubkey="cd" * 32,
        ...     kind=54,
        ...     created_at=1700000000,
        ...     tags=[["title", "Episode 1"], ["audio", "https://x/1.mp3", "audio/mpeg"]],
        ... )
        >>> event.tag_value("title")
        'Episode 1'
    """

    model_config = ConfigDict(frozen=True)

    id: str
    pubkey: str
    kind: int
    created_at: int
    content: str = ""
    tags: list[list[str]] = Field(default_factory=list)
    sig: str = ""

    def tag_values(self, name: str) -> list[str]:
        """Values (everything after the name) of the first tag called ``name``."""
        for tag in self.tags:
            if tag and tag[0] == name:
                return tag[1:]
        return []

    def tag_value(self, name: str) -> str | None:
        """First value of the first tag called ``name``, or None."""
        values = self.tag_values(name)
        return values[0] if values else None

    def all_tag_values(self, name: str) -> list[str]:
        """First value of every tag called ``name``, in tag order."""
        return [tag[1] for tag in self.tags if len(tag) > 1 and tag[0] == name]

    @property
    def is_addressable(self) -> bool:
        return is_addressable_kind(self.kind)

    @property
    def identifier(self) -> str | None:
        """The ``d`` tag value of an addressable event."""
        return self.tag_value("d")


class Filter(BaseModel):
    """Relay subscription filter (NIP-01).

    Tag filters use their wire names as aliases, e.g. ``Filter(d_tags=[...])``
    serializes as ``{"#d": [...]}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    ids: list[str] | None = None
    kinds: list[int] | None = None
    authors: list[str] | None = None
    e_tags: list[str] | None = Field(None, alias="#e")
    p_tags: list[str] | None = Field(None, alias="#p")
    d_tags: list[str] | None = Field(None, alias="#d")
    since: int | None = None
    until: int | None = None
    limit: int | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize for a REQ message, omitting unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
