"""Shared fixtures for nostrcast tests."""

import itertools
from collections.abc import Callable
from pathlib import Path

import pytest

from nostrcast.config.schema import GlobalConfig
from nostrcast.nostr.models import Filter, NostrEvent

# Key pair from the NIP-19 test vectors
CREATOR_PUBKEY = "7e7e9c42a91bfef19fa929e5fda1b72e0ebc1a4c1141673e2794234d86addf4e"
CREATOR_NPUB = "npub10elfcs4fr0l0r8af98jlmgdh9c8tcxjvz9qkw038js35mp4dma8qzvjptg"
OTHER_PUBKEY = "3bf0c63fcb93463407af97a5e5ee64fa883d107ef9e558472c4eb9aaaefa459d"

TEST_RELAYS = ["wss://relay.one.example", "wss://relay.two.example", "wss://relay.three.example"]


class FakeRelayClient:
    """In-memory relay client that answers filters from a fixed event list."""

    def __init__(self, events: list[NostrEvent] | None = None, error: Exception | None = None):
        self.events = list(events or [])
        self.error = error
        self.queries: list[list[Filter]] = []
        self.closed = False

    async def query(self, filters: list[Filter], timeout: float) -> list[NostrEvent]:
        self.queries.append(filters)
        if self.error is not None:
            raise self.error
        return [event for event in self.events if any(_matches(f, event) for f in filters)]

    async def close(self) -> None:
        self.closed = True


def _matches(f: Filter, event: NostrEvent) -> bool:
    if f.ids is not None and event.id not in f.ids:
        return False
    if f.kinds is not None and event.kind not in f.kinds:
        return False
    if f.authors is not None and event.pubkey not in f.authors:
        return False
    if f.d_tags is not None and event.identifier not in f.d_tags:
        return False
    if f.until is not None and event.created_at > f.until:
        return False
    if f.since is not None and event.created_at < f.since:
        return False
    return True


@pytest.fixture
def make_event() -> Callable[..., NostrEvent]:
    """Factory for episode-shaped events with unique, ordered ids."""
    counter = itertools.count(1)

    def _make(
        title: str | None = "Episode",
        created_at: int = 1_700_000_000,
        audio: str | None = "https://cdn.example/episode.mp3",
        pubkey: str = CREATOR_PUBKEY,
        kind: int = 54,
        event_id: str | None = None,
        tags: list[list[str]] | None = None,
        content: str = "",
    ) -> NostrEvent:
        all_tags: list[list[str]] = []
        if title is not None:
            all_tags.append(["title", title])
        if audio is not None:
            all_tags.append(["audio", audio, "audio/mpeg"])
        all_tags.extend(tags or [])
        return NostrEvent(
            id=event_id or f"{next(counter):064x}",
            pubkey=pubkey,
            kind=kind,
            created_at=created_at,
            content=content,
            tags=all_tags,
        )

    return _make


@pytest.fixture
def config(tmp_path: Path) -> GlobalConfig:
    """Configuration pointing at test relays and a temporary output directory."""
    return GlobalConfig(
        creator_npub=CREATOR_NPUB,
        base_url="https://podcast.example",
        relays=TEST_RELAYS,
        output_dir=tmp_path / "dist",
    )


@pytest.fixture
def fake_relay() -> type[FakeRelayClient]:
    return FakeRelayClient


@pytest.fixture
def creator_pubkey() -> str:
    return CREATOR_PUBKEY


@pytest.fixture
def creator_npub() -> str:
    return CREATOR_NPUB


@pytest.fixture
def other_pubkey() -> str:
    return OTHER_PUBKEY


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's BASE_URL and NOSTR_RELAYS out of tests."""
    monkeypatch.delenv("BASE_URL", raising=False)
    monkeypatch.delenv("NOSTR_RELAYS", raising=False)
