"""Layered configuration.

Each source (config file, environment, command line) is read into a flat
``ConfigSource``. ``ConfigBuilder`` stacks sources in precedence order and
routes every value to its section of ``FormatFlexConfig``. Defaults live on
the section dataclasses only, so a value nobody set keeps its model default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from formatflex.config.env import EnvReader
from formatflex.config.models import (
    ConversionConfig,
    FormatFlexConfig,
    LoggingConfig,
    RetryConfig,
    ToolPathsConfig,
)
from formatflex.domain.options import Preset

logger = logging.getLogger(__name__)


@dataclass
class ConfigSource:
    """Values one source specifies; None means "not set here"."""

    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None

    temp_directory: Path | None = None
    cancel_grace_seconds: float | None = None
    log_buffer_lines: int | None = None
    diagnostic_tail_lines: int | None = None
    default_preset: str | None = None

    retry_extra_signatures: tuple[str, ...] | None = None
    retry_on_unknown_exit: bool | None = None

    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


# ConfigSource field -> (config file table, key); the table name is also
# the FormatFlexConfig section the value lands in
FIELD_LOCATIONS: dict[str, tuple[str, str]] = {
    "ffmpeg_path": ("tools", "ffmpeg"),
    "ffprobe_path": ("tools", "ffprobe"),
    "temp_directory": ("conversion", "temp_directory"),
    "cancel_grace_seconds": ("conversion", "cancel_grace_seconds"),
    "log_buffer_lines": ("conversion", "log_buffer_lines"),
    "diagnostic_tail_lines": ("conversion", "diagnostic_tail_lines"),
    "default_preset": ("conversion", "default_preset"),
    "retry_extra_signatures": ("retry", "extra_signatures"),
    "retry_on_unknown_exit": ("retry", "retry_on_unknown_exit"),
    "logging_level": ("logging", "level"),
    "logging_file": ("logging", "file"),
    "logging_format": ("logging", "format"),
    "logging_include_stderr": ("logging", "include_stderr"),
    "logging_max_bytes": ("logging", "max_bytes"),
    "logging_backup_count": ("logging", "backup_count"),
}

_PATH_FIELDS = frozenset(
    {"ffmpeg_path", "ffprobe_path", "temp_directory", "logging_file"}
)

_SECTIONS = {
    "tools": ToolPathsConfig,
    "conversion": ConversionConfig,
    "retry": RetryConfig,
    "logging": LoggingConfig,
}


class ConfigBuilder:
    """Stacks ConfigSources; later sources win for the values they set.

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config), source_name="file")
        builder.apply(source_from_env(EnvReader()), source_name="env")
        config = builder.build(presets)
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._origins: dict[str, str] = {}

    def apply(self, source: ConfigSource, source_name: str = "") -> None:
        """Overlay the values a source sets.

        Args:
            source: Source to apply.
            source_name: Label recorded as the origin of each value.
        """
        label = source_name or "unnamed"
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is None:
                continue
            previous = self._origins.get(field_obj.name)
            if previous is not None:
                logger.debug(
                    "Config %s from %s overrides %s", field_obj.name, label, previous
                )
            self._values[field_obj.name] = value
            self._origins[field_obj.name] = label

    def origin(self, field_name: str) -> str | None:
        """Name of the source that set a field, None if it is a default."""
        return self._origins.get(field_name)

    def build(self, presets: dict[str, Preset] | None = None) -> FormatFlexConfig:
        """Assemble the configuration.

        Args:
            presets: Merged preset table to attach.

        Returns:
            Complete FormatFlexConfig.

        Raises:
            ValueError: If a value fails section validation.
        """
        sections: dict[str, dict[str, Any]] = {name: {} for name in _SECTIONS}
        for field_name, value in self._values.items():
            section, key = FIELD_LOCATIONS[field_name]
            sections[section][key] = value

        conversion = sections["conversion"]
        if "cancel_grace_seconds" in conversion:
            conversion["cancel_grace_seconds"] = float(
                conversion["cancel_grace_seconds"]
            )

        built = {name: cls(**sections[name]) for name, cls in _SECTIONS.items()}
        return FormatFlexConfig(**built, presets=dict(presets or {}))


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Read the [tools], [conversion], [retry] and [logging] tables.

    Args:
        file_config: Parsed config file.

    Returns:
        ConfigSource with the values the file sets.

    Raises:
        ValueError: If one of those entries is not a table.
    """
    values: dict[str, Any] = {}
    for field_name, (table_name, key) in FIELD_LOCATIONS.items():
        table = file_config.get(table_name, {})
        if not isinstance(table, dict):
            raise ValueError(f"[{table_name}] must be a table")
        value = table.get(key)
        if value is None or value == "" or value == []:
            continue
        if field_name in _PATH_FIELDS:
            value = Path(str(value)).expanduser()
        elif field_name == "retry_extra_signatures":
            value = tuple(value)
        values[field_name] = value
    return ConfigSource(**values)


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Read FORMATFLEX_* variables.

    Tool and work directory paths are ignored when they do not exist; the
    log file may not exist yet.
    """
    return ConfigSource(
        ffmpeg_path=reader.get_path("FFMPEG_PATH"),
        ffprobe_path=reader.get_path("FFPROBE_PATH"),
        temp_directory=reader.get_path("TEMP_DIR"),
        cancel_grace_seconds=reader.get_float("CANCEL_GRACE_SECONDS"),
        default_preset=reader.get_str("DEFAULT_PRESET"),
        retry_extra_signatures=reader.get_list("RETRY_SIGNATURES"),
        retry_on_unknown_exit=reader.get_bool("RETRY_ON_UNKNOWN_EXIT"),
        logging_level=reader.get_str("LOG_LEVEL"),
        logging_file=reader.get_path("LOG_FILE", must_exist=False),
        logging_format=reader.get_str("LOG_FORMAT"),
    )
