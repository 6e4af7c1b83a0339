"""Apply command-line logging options on top of configured logging."""

from __future__ import annotations

import dataclasses
from pathlib import Path

from formatflex.config.models import LoggingConfig


def build_logging_config(
    base: LoggingConfig,
    *,
    level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
    include_stderr: bool | None = None,
) -> LoggingConfig:
    """Return a copy of ``base`` with the given options replaced.

    Options left as None keep the configured value. Rotation settings are
    only configurable in the config file.

    Raises:
        ValueError: If an option is invalid.
    """
    options = {
        "level": level,
        "file": file,
        "format": format,
        "include_stderr": include_stderr,
    }
    return dataclasses.replace(
        base, **{name: value for name, value in options.items() if value is not None}
    )
