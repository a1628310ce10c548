"""XDG-compliant location for the nostrcast configuration file."""

from pathlib import Path

import platformdirs

APP_NAME = "nostrcast"


def get_config_dir() -> Path:
    """Get the configuration directory (e.g. ~/.config/nostrcast)."""
    return Path(platformdirs.user_config_dir(APP_NAME))


def get_config_file() -> Path:
    """Get the path to config.yaml."""
    return get_config_dir() / "config.yaml"
