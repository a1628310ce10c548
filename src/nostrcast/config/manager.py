"""Configuration manager for loading and saving nostrcast config."""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from nostrcast.config.defaults import (
    BASE_URL_ENV,
    RELAYS_ENV,
    get_default_config_content,
)
from nostrcast.config.schema import GlobalConfig
from nostrcast.utils.errors import InvalidConfigError
from nostrcast.utils.paths import get_config_dir, get_config_file

logger = logging.getLogger(__name__)


def parse_relay_list(value: str) -> list[str]:
    """Split a comma-separated relay list, trimming entries and dropping empties."""
    return [url.strip() for url in value.split(",") if url.strip()]


class ConfigManager:
    """Manages the nostrcast configuration file and environment overrides."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize the config manager.

        Args:
            config_dir: Optional custom config directory. Defaults to XDG config dir.
        """
        if config_dir is None:
            self.config_dir = get_config_dir()
            self.config_file = get_config_file()
        else:
            self.config_dir = config_dir
            self.config_file = config_dir / "config.yaml"

    def load_config(self, apply_env: bool = True) -> GlobalConfig:
        """Load and validate global configuration.

        Missing config files are created with defaults. Environment
        variables (BASE_URL, NOSTR_RELAYS) take precedence over the file.

        Args:
            apply_env: Whether to apply environment overrides

        Returns:
            Validated GlobalConfig instance

        Raises:
            InvalidConfigError: If the file or the overrides are invalid
        """
        if not self.config_file.exists():
            self._create_default_config()
            data: dict[str, Any] = {}
        else:
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise InvalidConfigError(
                    f"Could not read configuration {self.config_file}: {e}"
                ) from e

            if not isinstance(data, dict):
                raise InvalidConfigError(
                    f"Invalid configuration in {self.config_file}: expected a mapping"
                )

        if apply_env:
            data = self._apply_env_overrides(data)

        try:
            return GlobalConfig(**data)
        except ValidationError as e:
            raise InvalidConfigError(
                f"Invalid configuration in {self.config_file}: {e}",
                suggestion=f"Fix the file or delete it to regenerate defaults: {self.config_file}",
            ) from e

    def save_config(self, config: GlobalConfig) -> None:
        """Save global configuration.

        Args:
            config: GlobalConfig instance to save
        """
        data = config.model_dump(mode="json", by_alias=True, exclude_none=True)

        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    def _apply_env_overrides(self, data: dict[str, Any]) -> dict[str, Any]:
        data = dict(data)

        base_url = os.environ.get(BASE_URL_ENV)
        if base_url:
            logger.debug(f"Using base URL from {BASE_URL_ENV}: {base_url}")
            data["base_url"] = base_url

        relays = os.environ.get(RELAYS_ENV)
        if relays:
            relay_list = parse_relay_list(relays)
            if relay_list:
                logger.debug(f"Using {len(relay_list)} relays from {RELAYS_ENV}")
                data["relays"] = relay_list

        return data

    def _create_default_config(self) -> None:
        """Create default config.yaml file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(get_default_config_content(), encoding="utf-8")
