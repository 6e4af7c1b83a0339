"""Tests for configuration loading with precedence."""

import os
from pathlib import Path

import pytest

from formatflex.config.env import EnvReader
from formatflex.config.loader import (
    DEFAULT_CONFIG_FILE,
    get_config,
    get_default_config_path,
    load_config_file,
)
from formatflex.config.presets import PresetError
from formatflex.config.toml_parser import TomlParseError


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A config file with tool, conversion and logging tables."""
    path = tmp_path / "config.toml"
    path.write_text(
        "[tools]\n"
        'ffmpeg = "/from/file/ffmpeg"\n'
        'ffprobe = "/from/file/ffprobe"\n'
        "\n"
        "[conversion]\n"
        "cancel_grace_seconds = 8.0\n"
        'default_preset = "space-saver"\n'
        "\n"
        "[logging]\n"
        'level = "debug"\n'
    )
    return path


class TestDefaultConfigPath:
    """Tests for get_default_config_path."""

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without an override the home directory file is used."""
        monkeypatch.delenv("FORMATFLEX_CONFIG_PATH", raising=False)
        assert get_default_config_path() == DEFAULT_CONFIG_FILE

    def test_env_override(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """FORMATFLEX_CONFIG_PATH replaces the default location."""
        monkeypatch.setenv("FORMATFLEX_CONFIG_PATH", str(tmp_path / "ff.toml"))
        assert get_default_config_path() == tmp_path / "ff.toml"


class TestLoadConfigFile:
    """Tests for load_config_file caching."""

    def test_cached_until_modified(self, config_file: Path) -> None:
        """The same dict is returned until the file's mtime changes."""
        first = load_config_file(config_file)
        assert load_config_file(config_file) is first

        config_file.write_text('[logging]\nlevel = "error"\n')
        stat = config_file.stat()
        os.utime(config_file, (stat.st_atime, stat.st_mtime + 10))
        reloaded = load_config_file(config_file)
        assert reloaded["logging"]["level"] == "error"

    def test_strict_invalid(self, tmp_path: Path) -> None:
        """Strict loading propagates parse errors."""
        path = tmp_path / "broken.toml"
        path.write_text("[conversion\n")
        with pytest.raises(TomlParseError):
            load_config_file(path, strict=True)


class TestGetConfig:
    """Tests for get_config precedence."""

    def test_file_values(self, config_file: Path) -> None:
        """File values apply over defaults."""
        config = get_config(config_path=config_file, env_reader=EnvReader(env={}))
        assert config.tools.ffmpeg == Path("/from/file/ffmpeg")
        assert config.conversion.cancel_grace_seconds == 8.0
        assert config.conversion.default_preset == "space-saver"
        assert config.logging.level == "debug"
        assert "web" in config.presets

    def test_env_over_file(self, config_file: Path, tmp_path: Path) -> None:
        """Environment variables override the file."""
        ffmpeg = tmp_path / "env-ffmpeg"
        ffmpeg.write_text("")
        reader = EnvReader(
            env={
                "FORMATFLEX_FFMPEG_PATH": str(ffmpeg),
                "FORMATFLEX_LOG_LEVEL": "warning",
            }
        )
        config = get_config(config_path=config_file, env_reader=reader)
        assert config.tools.ffmpeg == ffmpeg
        assert config.tools.ffprobe == Path("/from/file/ffprobe")
        assert config.logging.level == "warning"

    def test_cli_over_env(self, config_file: Path, tmp_path: Path) -> None:
        """CLI arguments override both lower layers."""
        ffmpeg = tmp_path / "env-ffmpeg"
        ffmpeg.write_text("")
        reader = EnvReader(env={"FORMATFLEX_FFMPEG_PATH": str(ffmpeg)})
        config = get_config(
            config_path=config_file,
            ffmpeg_path=Path("/cli/ffmpeg"),
            temp_directory=tmp_path,
            env_reader=reader,
        )
        assert config.tools.ffmpeg == Path("/cli/ffmpeg")
        assert config.conversion.temp_directory == tmp_path

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        """A missing config file yields defaults and built-in presets."""
        config = get_config(
            config_path=tmp_path / "absent.toml", env_reader=EnvReader(env={})
        )
        assert config.tools.ffmpeg is None
        assert config.logging.level == "info"
        assert len(config.presets) == 7

    def test_invalid_preset(self, tmp_path: Path) -> None:
        """Invalid user presets fail the load."""
        path = tmp_path / "config.toml"
        path.write_text('[presets.bad]\ncontainer = "avi"\n')
        with pytest.raises(PresetError):
            get_config(config_path=path, env_reader=EnvReader(env={}))

    def test_invalid_value(self, tmp_path: Path) -> None:
        """Values that fail validation raise ValueError."""
        path = tmp_path / "config.toml"
        path.write_text("[conversion]\nlog_buffer_lines = 0\n")
        with pytest.raises(ValueError, match="log_buffer_lines"):
            get_config(config_path=path, env_reader=EnvReader(env={}))
