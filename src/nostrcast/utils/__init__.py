"""Utility functions and helpers for nostrcast."""

from nostrcast.utils.errors import (
    ConfigError,
    FeedError,
    InvalidConfigError,
    Nip19Error,
    NostrcastError,
    OutputError,
    RelayConnectionError,
    RelayError,
)
from nostrcast.utils.paths import get_config_dir, get_config_file

__all__ = [
    # Errors
    "NostrcastError",
    "ConfigError",
    "InvalidConfigError",
    "Nip19Error",
    "RelayError",
    "RelayConnectionError",
    "FeedError",
    "OutputError",
    # Paths
    "get_config_dir",
    "get_config_file",
]
