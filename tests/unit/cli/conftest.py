"""Fixtures for CLI tests."""

import logging
from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner, Result

from formatflex.cli import main


@pytest.fixture(autouse=True)
def _isolate_cli(monkeypatch: pytest.MonkeyPatch):
    """Keep CLI runs away from the user's config and the root logger."""
    for var in (
        "FORMATFLEX_CONFIG_PATH",
        "FORMATFLEX_FFMPEG_PATH",
        "FORMATFLEX_FFPROBE_PATH",
        "FORMATFLEX_TEMP_DIR",
        "FORMATFLEX_LOG_LEVEL",
        "FORMATFLEX_LOG_FILE",
        "FORMATFLEX_LOG_FORMAT",
        "FORMATFLEX_CANCEL_GRACE_SECONDS",
        "FORMATFLEX_DEFAULT_PRESET",
        "FORMATFLEX_RETRY_SIGNATURES",
        "FORMATFLEX_RETRY_ON_UNKNOWN_EXIT",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr("formatflex.cli.configure_logging", lambda config: None)

    root = logging.getLogger()
    saved = root.handlers[:]
    root.handlers = [logging.NullHandler()]
    yield
    root.handlers = saved


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Config file location; absent unless a test writes it."""
    return tmp_path / "config.toml"


@pytest.fixture
def invoke(config_path: Path) -> Callable[..., Result]:
    """Run the CLI with the test config file."""

    def run(*args: str) -> Result:
        return CliRunner().invoke(main, ["--config", str(config_path), *args])

    return run
