"""CLI logging configuration with file output.

Sets up a rotating DEBUG log under ``~/.local/share/connections-wikis/logs/``
and a console handler whose level follows ``--verbose``.

Usage from a CLI command::

    from connections_wikis.cli.logging import configure_cli_logging

    configure_cli_logging("nav", verbose=verbose)
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Standard log directory follows XDG convention
LOG_DIR = Path.home() / ".local" / "share" / "connections-wikis" / "logs"

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def get_log_file(command: str) -> Path:
    """Return the log file path for a CLI command."""
    return LOG_DIR / f"{command}.log"


def configure_cli_logging(
    command: str,
    *,
    verbose: bool = False,
    console_level: int | None = None,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 3,
) -> Path:
    """Configure logging for a CLI command with file output.

    Args:
        command: CLI command name (e.g., "nav", "page")
        verbose: If True, set console to DEBUG level
        console_level: Override console level (takes precedence over verbose)
        file_level: File log level (default: DEBUG)
        max_bytes: Max size per log file before rotation
        backup_count: Number of rotated backups to keep

    Returns:
        Path to the log file
    """
    log_file = get_log_file(command)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger("connections_wikis")

    # Remove handlers from earlier calls to avoid duplicates
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    package_logger.addHandler(file_handler)

    if console_level is None:
        console_level = logging.DEBUG if verbose else logging.WARNING
    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    package_logger.addHandler(console_handler)

    package_logger.setLevel(min(file_level, console_level))
    package_logger.propagate = False

    return log_file
