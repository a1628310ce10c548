"""Logging setup for the nostrcast CLI."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(
    verbose: bool = False,
    log_file: Path | None = None,
    level: str = "INFO",
) -> None:
    """Configure root logging.

    Console output goes to stderr through rich so it never mixes with
    command output on stdout.

    Args:
        verbose: Force DEBUG level
        log_file: Optional file that receives plain-text logs as well
        level: Level name used when not verbose
    """
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Replace handlers from a previous call (CliRunner invokes the callback repeatedly)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    console_handler.setLevel(log_level)
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(log_level)
        root.addHandler(file_handler)

    # websockets logs every frame at DEBUG
    logging.getLogger("websockets").setLevel(max(log_level, logging.INFO))
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))


def apply_config_level(level: str) -> None:
    """Switch to the configured level unless verbose logging is already on."""
    root = logging.getLogger()
    if root.level == logging.DEBUG:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(log_level)
    for handler in root.handlers:
        handler.setLevel(log_level)
