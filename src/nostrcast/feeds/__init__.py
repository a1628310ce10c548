"""Episode resolution, RSS rendering and feed validation."""

from nostrcast.feeds.episodes import (
    event_to_episode,
    resolve_episodes,
    validate_episode_event,
)
from nostrcast.feeds.models import Episode
from nostrcast.feeds.renderer import RSSRenderer, clean_text
from nostrcast.feeds.validator import (
    FeedValidator,
    ValidationReport,
    check_well_formed,
    find_unclosed_tags,
    lint_structure,
)

__all__ = [
    "Episode",
    "event_to_episode",
    "resolve_episodes",
    "validate_episode_event",
    "RSSRenderer",
    "clean_text",
    "FeedValidator",
    "ValidationReport",
    "check_well_formed",
    "find_unclosed_tags",
    "lint_structure",
]
