"""Load FormatFlex configuration.

Three layers, each overriding the one before:

- ``~/.formatflex/config.toml``, or the file FORMATFLEX_CONFIG_PATH names
- FORMATFLEX_* environment variables (see ``source_from_env``)
- values passed by the caller, normally from command-line options

Example config file:

    [tools]
    ffmpeg = "/opt/ffmpeg/bin/ffmpeg"

    [conversion]
    default_preset = "space-saver"
    cancel_grace_seconds = 3

    [retry]
    extra_signatures = ["device lost"]

    [logging]
    level = "debug"
    file = "~/.formatflex/formatflex.log"
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from formatflex.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from formatflex.config.env import EnvReader
from formatflex.config.models import FormatFlexConfig
from formatflex.config.presets import load_presets
from formatflex.config.toml_parser import load_toml_file

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".formatflex"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"


class _ConfigFileCache:
    """Parsed config files keyed by path, invalidated by modification time."""

    def __init__(self) -> None:
        self._entries: dict[Path, tuple[int, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def load(self, path: Path, *, strict: bool) -> dict[str, Any]:
        try:
            stamp = path.stat().st_mtime_ns
        except OSError:
            stamp = -1
        with self._lock:
            entry = self._entries.get(path)
            if entry is not None and entry[0] == stamp:
                return entry[1]
            # Failed strict loads raise here and are never cached
            data = load_toml_file(path, strict=strict)
            self._entries[path] = (stamp, data)
            return data

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


_file_cache = _ConfigFileCache()


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Config file location, honoring FORMATFLEX_CONFIG_PATH."""
    reader = env_reader or EnvReader()
    return reader.get_path("CONFIG_PATH", must_exist=False) or DEFAULT_CONFIG_FILE


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Parse a config file, reusing the last parse while it is unchanged.

    Args:
        path: Config file; the default location when None.
        strict: Raise TomlParseError for an unreadable or invalid file
            instead of treating it as empty.

    Returns:
        Parsed tables; empty when the file does not exist.
    """
    return _file_cache.load(path or get_default_config_path(), strict=strict)


def clear_config_cache() -> None:
    """Forget every parsed config file."""
    _file_cache.clear()


def get_config(
    config_path: Path | None = None,
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    temp_directory: Path | None = None,
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> FormatFlexConfig:
    """Build the effective configuration.

    Args:
        config_path: Config file, overriding FORMATFLEX_CONFIG_PATH.
        ffmpeg_path: Caller override for the ffmpeg executable.
        ffprobe_path: Caller override for the ffprobe executable.
        temp_directory: Caller override for the work directory parent.
        env_reader: Environment to read; os.environ when None.
        strict: Raise on an invalid config file instead of ignoring it.

    Returns:
        FormatFlexConfig with built-in and user presets attached.

    Raises:
        TomlParseError: When strict and the file cannot be parsed.
        PresetError: When a user preset is invalid.
        ValueError: When a value fails validation.
    """
    reader = env_reader or EnvReader()
    path = config_path or get_default_config_path(reader)
    file_config = load_config_file(path, strict=strict)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config), source_name=f"file {path}")
    builder.apply(source_from_env(reader), source_name="environment")
    builder.apply(
        ConfigSource(
            ffmpeg_path=ffmpeg_path,
            ffprobe_path=ffprobe_path,
            temp_directory=temp_directory,
        ),
        source_name="command line",
    )
    return builder.build(presets=load_presets(file_config))
