"""Configuration loading, schema and logging setup."""

from nostrcast.config.manager import ConfigManager
from nostrcast.config.schema import GlobalConfig, PodcastMetadata, RSSConfig

__all__ = ["ConfigManager", "GlobalConfig", "PodcastMetadata", "RSSConfig"]
