"""Tests for FFprobeIntrospector."""

import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from formatflex.exceptions import ProbeFailure
from formatflex.introspector import ffprobe
from formatflex.introspector.ffprobe import FFprobeIntrospector

FFPROBE = Path("/usr/bin/ffprobe")


class TestGetReport:
    """Tests for FFprobeIntrospector.get_report."""

    def test_returns_parsed_json(self, input_file: Path, ffprobe_report) -> None:
        """Successful runs return the JSON report."""
        report = ffprobe_report()
        with patch.object(ffprobe.subprocess, "run") as mock_run:
            mock_run.return_value = MagicMock(stdout=json.dumps(report))
            result = FFprobeIntrospector(FFPROBE).get_report(input_file)

        assert result == report
        args = mock_run.call_args[0][0]
        assert args[0] == str(FFPROBE)
        assert "-show_streams" in args
        assert args[-1] == str(input_file)

    def test_missing_tool(self, input_file: Path) -> None:
        """No ffprobe is a probe failure."""
        with pytest.raises(ProbeFailure, match="not installed"):
            FFprobeIntrospector(None).get_report(input_file)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing inputs fail before running anything."""
        with pytest.raises(ProbeFailure, match="File not found"):
            FFprobeIntrospector(FFPROBE).get_report(tmp_path / "nope.mkv")

    @pytest.mark.parametrize(
        ("error", "message"),
        [
            (subprocess.TimeoutExpired(cmd="ffprobe", timeout=60), "timed out"),
            (
                subprocess.CalledProcessError(
                    1, "ffprobe", stderr="Invalid data found"
                ),
                "Invalid data found",
            ),
            (OSError("exec format error"), "Could not run"),
        ],
    )
    def test_process_errors(self, input_file: Path, error, message: str) -> None:
        """Process failures become ProbeFailure."""
        with patch.object(ffprobe.subprocess, "run", side_effect=error):
            with pytest.raises(ProbeFailure, match=message):
                FFprobeIntrospector(FFPROBE).get_report(input_file)

    def test_invalid_json(self, input_file: Path) -> None:
        """Unparseable output is a probe failure."""
        with patch.object(ffprobe.subprocess, "run") as mock_run:
            mock_run.return_value = MagicMock(stdout="not json")
            with pytest.raises(ProbeFailure, match="Invalid ffprobe output"):
                FFprobeIntrospector(FFPROBE).get_report(input_file)

    def test_missing_streams(self, input_file: Path) -> None:
        """A report without streams is rejected."""
        with patch.object(ffprobe.subprocess, "run") as mock_run:
            mock_run.return_value = MagicMock(stdout='{"format": {}}')
            with pytest.raises(ProbeFailure, match="Missing 'streams'"):
                FFprobeIntrospector(FFPROBE).get_report(input_file)


class TestProbe:
    """Tests for FFprobeIntrospector.probe."""

    def test_builds_profile(self, input_file: Path, ffprobe_report) -> None:
        """A successful probe returns a populated profile."""
        with patch.object(ffprobe.subprocess, "run") as mock_run:
            mock_run.return_value = MagicMock(stdout=json.dumps(ffprobe_report()))
            profile = FFprobeIntrospector(FFPROBE).probe(input_file)

        assert profile.probe_succeeded
        assert profile.video.codec_name == "h264"

    def test_degrades_on_failure(self, input_file: Path) -> None:
        """Failures degrade to an unknown profile instead of raising."""
        with patch.object(
            ffprobe.subprocess, "run", side_effect=OSError("gone")
        ):
            profile = FFprobeIntrospector(FFPROBE).probe(input_file)

        assert not profile.probe_succeeded
        assert profile.video is None
