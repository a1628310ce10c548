"""Turning relay events into the canonical episode list.

Validation, extraction and edit resolution are pure functions over
NostrEvent lists; nothing here touches the network.
"""

import logging
from collections.abc import Iterable

from nostrcast.feeds.models import Episode
from nostrcast.nostr.models import DELETION_KIND, NostrEvent, is_addressable_kind
from nostrcast.utils.datetime import from_unix, is_representable

logger = logging.getLogger(__name__)

UNTITLED_EPISODE = "Untitled Episode"
DEFAULT_AUDIO_TYPE = "audio/mpeg"


def validate_episode_event(event: NostrEvent, episode_kind: int, creator_pubkey: str) -> bool:
    """Check whether an event is a publishable episode from the creator.

    Requires the configured kind, non-empty ``title`` and ``audio`` tags and
    the creator's pubkey. Addressable kinds additionally need a ``d`` tag.
    Timestamps outside the datetime range are rejected.
    Never raises; anything malformed is simply not an episode.
    """
    if event.kind != episode_kind:
        return False
    if not event.tag_value("title"):
        return False
    if not event.tag_value("audio"):
        return False
    if is_addressable_kind(episode_kind) and not event.identifier:
        return False
    if not is_representable(event.created_at):
        return False
    return event.pubkey == creator_pubkey


def _positive_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        number = int(value.strip())
    except ValueError:
        return None
    return number if number > 0 else None


def event_to_episode(event: NostrEvent) -> Episode:
    """Build an Episode from an event that passed validation."""
    audio = event.tag_values("audio")
    timestamp = from_unix(event.created_at)
    explicit = (event.tag_value("explicit") or "").lower() in ("true", "yes")

    return Episode(
        id=event.id,
        title=event.tag_value("title") or UNTITLED_EPISODE,
        description=event.tag_value("description"),
        content=event.content or None,
        audio_url=audio[0] if audio else "",
        audio_type=(audio[1] if len(audio) > 1 and audio[1] else DEFAULT_AUDIO_TYPE),
        image_url=event.tag_value("image"),
        duration=_positive_int(event.tag_value("duration")),
        episode_number=_positive_int(event.tag_value("episode")),
        season_number=_positive_int(event.tag_value("season")),
        explicit=explicit,
        publish_date=timestamp,
        tags=event.all_tag_values("t"),
        event_id=event.id,
        author_pubkey=event.pubkey,
        identifier=event.identifier,
        created_at=timestamp,
    )


def superseded_event_ids(events: Iterable[NostrEvent]) -> set[str]:
    """Ids named by ``edit`` tags; those originals have been replaced."""
    return {
        original
        for event in events
        if (original := event.tag_value("edit"))
    }


def deleted_event_ids(events: Iterable[NostrEvent], creator_pubkey: str) -> set[str]:
    """Ids the creator has deleted with kind 5 events (``e`` tags).

    Deletions signed by anyone else are ignored.
    """
    deleted: set[str] = set()
    for event in events:
        if event.kind == DELETION_KIND and event.pubkey == creator_pubkey:
            deleted.update(event.all_tag_values("e"))
    return deleted


def grouping_key(event: NostrEvent) -> str | None:
    """Logical identity of an episode: d tag when addressable, title otherwise."""
    if event.is_addressable:
        return event.identifier
    return event.tag_value("title")


def _is_newer(candidate: NostrEvent, current: NostrEvent) -> bool:
    # Equal timestamps keep the lowest id so relay arrival order never matters
    if candidate.created_at != current.created_at:
        return candidate.created_at > current.created_at
    return candidate.id < current.id


def resolve_episodes(
    events: Iterable[NostrEvent],
    episode_kind: int,
    creator_pubkey: str,
) -> list[Episode]:
    """Collapse raw events into one Episode per logical episode.

    Steps:
    1. Drop events named by an ``edit`` tag or by a creator deletion.
    2. Validate and group the rest by grouping_key().
    3. Keep the newest event of each group.
    4. Extract episodes, newest first.

    Args:
        events: Raw events, possibly from several relays and of mixed kinds
        episode_kind: Kind that carries episodes
        creator_pubkey: Hex pubkey of the podcast creator

    Returns:
        Episodes sorted by publish date, newest first
    """
    events = list(events)
    valid = [e for e in events if validate_episode_event(e, episode_kind, creator_pubkey)]

    excluded = superseded_event_ids(valid) | deleted_event_ids(events, creator_pubkey)

    latest: dict[str, NostrEvent] = {}
    for event in valid:
        if event.id in excluded:
            continue
        key = grouping_key(event)
        if not key:
            continue
        current = latest.get(key)
        if current is None or _is_newer(event, current):
            latest[key] = event

    episodes = [event_to_episode(event) for event in latest.values()]
    episodes.sort(key=lambda ep: ep.event_id)
    episodes.sort(key=lambda ep: ep.publish_date, reverse=True)

    logger.debug(
        f"Resolved {len(episodes)} episodes from {len(valid)} valid events "
        f"({len(excluded)} superseded or deleted ids)"
    )
    return episodes
