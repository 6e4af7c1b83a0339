"""Install FormatFlex's log handlers on the root logger."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from formatflex.logging.context import ConversionContextFilter
from formatflex.logging.handlers import JSONFormatter

if TYPE_CHECKING:
    from formatflex.config.models import LoggingConfig

# conversion_tag is "[run 3f2a1c attempt 2] " inside a run, else empty
TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(conversion_tag)s%(name)s: %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format.casefold() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)


def _open_log_file(config: LoggingConfig) -> logging.Handler | None:
    """Rotating handler for the configured file, None if it cannot be opened."""
    if not config.file:
        return None
    path = Path(config.file).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        # Logging is not set up yet, so report on stderr directly
        print(f"formatflex: cannot write log file {path}: {e}", file=sys.stderr)
        return None


def configure_logging(config: LoggingConfig) -> list[logging.Handler]:
    """Replace the root logger's handlers according to ``config``.

    Logs go to the configured file, to stderr, or to both. When the file
    cannot be opened, stderr is used instead.

    Args:
        config: Logging configuration.

    Returns:
        The handlers installed.
    """
    level = logging.getLevelName(config.level.upper())
    formatter = _formatter(config)
    context_filter = ConversionContextFilter()

    handlers: list[logging.Handler] = []
    file_handler = _open_log_file(config)
    if file_handler is not None:
        handlers.append(file_handler)
    if file_handler is None or config.include_stderr:
        handlers.append(logging.StreamHandler(sys.stderr))

    root = logging.getLogger()
    for old in root.handlers[:]:
        root.removeHandler(old)
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        root.addHandler(handler)
    return handlers
