"""Podcast metadata published by the creator on Nostr.

The creator can update the channel metadata (title, artwork, funding, ...)
without redeploying by publishing an addressable event whose content is a
JSON object. It is overlaid on the static configuration for one run only.
"""

import json
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from nostrcast.config.schema import GlobalConfig, PodcastMetadata
from nostrcast.nostr.models import Filter, NostrEvent

logger = logging.getLogger(__name__)

# Keys the web client stores alongside the metadata that are not metadata
_IGNORED_KEYS = {"updated_at"}


def metadata_filter(config: GlobalConfig, creator_pubkey: str) -> Filter:
    """Filter for the creator's podcast metadata event."""
    return Filter(
        kinds=[config.metadata_kind],
        authors=[creator_pubkey],
        d_tags=[config.metadata_identifier],
    )


def select_metadata_event(
    events: Iterable[NostrEvent],
    creator_pubkey: str,
    kind: int,
    identifier: str,
) -> NostrEvent | None:
    """Pick the newest matching metadata event, or None."""
    candidates = [
        event
        for event in events
        if event.kind == kind
        and event.pubkey == creator_pubkey
        and event.identifier == identifier
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda event: (event.created_at, event.id))


def merge_metadata(base: PodcastMetadata, event: NostrEvent) -> PodcastMetadata:
    """Overlay the JSON content of a metadata event on ``base``.

    Returns ``base`` untouched if the content is not a JSON object or the
    merged result does not validate.
    """
    try:
        override: Any = json.loads(event.content)
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring podcast metadata event {event.id}: invalid JSON ({e})")
        return base

    if not isinstance(override, dict):
        logger.warning(f"Ignoring podcast metadata event {event.id}: content is not an object")
        return base

    merged = base.model_dump(by_alias=True)
    merged.update({k: v for k, v in override.items() if k not in _IGNORED_KEYS})

    try:
        podcast = PodcastMetadata.model_validate(merged)
    except ValidationError as e:
        logger.warning(
            f"Ignoring podcast metadata event {event.id}: "
            f"{e.error_count()} invalid field(s)"
        )
        return base

    logger.info(f"Using podcast metadata published at {event.created_at}")
    return podcast
