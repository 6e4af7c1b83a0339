"""Tests for the probe command."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from formatflex.cli.exit_codes import ExitCode
from formatflex.exceptions import ProbeFailure


class TestProbeCommand:
    """Tests for the probe CLI command."""

    def test_file_not_found(self, invoke, tmp_path: Path) -> None:
        """Missing inputs exit with TARGET_NOT_FOUND."""
        result = invoke("probe", str(tmp_path / "missing.mkv"))
        assert result.exit_code == ExitCode.TARGET_NOT_FOUND
        assert "File not found" in result.output

    def test_file_not_found_json(self, invoke, tmp_path: Path) -> None:
        """JSON mode reports the error code by name."""
        result = invoke("probe", "--json", str(tmp_path / "missing.mkv"))
        assert result.exit_code == ExitCode.TARGET_NOT_FOUND
        assert '"TARGET_NOT_FOUND"' in result.output

    @patch("formatflex.cli.probe.find_tool", return_value=None)
    def test_ffprobe_missing(self, mock_find: MagicMock, invoke, input_file) -> None:
        """No ffprobe exits with TOOL_NOT_AVAILABLE."""
        result = invoke("probe", str(input_file))
        assert result.exit_code == ExitCode.TOOL_NOT_AVAILABLE
        assert "ffprobe is not installed" in result.output

    @patch("formatflex.cli.probe.FFprobeIntrospector")
    @patch("formatflex.cli.probe.find_tool", return_value=Path("/usr/bin/ffprobe"))
    def test_probe_failure(
        self, mock_find: MagicMock, mock_cls: MagicMock, invoke, input_file
    ) -> None:
        """Probe errors exit with PROBE_FAILED."""
        mock_cls.return_value.get_report.side_effect = ProbeFailure("bad data")
        result = invoke("probe", str(input_file))
        assert result.exit_code == ExitCode.PROBE_FAILED
        assert "bad data" in result.output

    @patch("formatflex.cli.probe.FFprobeIntrospector")
    @patch("formatflex.cli.probe.find_tool", return_value=Path("/usr/bin/ffprobe"))
    def test_human_output(
        self,
        mock_find: MagicMock,
        mock_cls: MagicMock,
        invoke,
        input_file,
        ffprobe_report,
    ) -> None:
        """Streams are listed with codec, size and language."""
        mock_cls.return_value.get_report.return_value = ffprobe_report()
        result = invoke("probe", str(input_file))
        assert result.exit_code == 0
        assert "Duration: 00:02:00" in result.output
        assert "h264 1920x1080 yuv420p" in result.output
        assert "aac 2ch 48000 Hz [eng]" in result.output
        mock_cls.assert_called_once_with(Path("/usr/bin/ffprobe"))

    @patch("formatflex.cli.probe.FFprobeIntrospector")
    @patch("formatflex.cli.probe.find_tool", return_value=Path("/usr/bin/ffprobe"))
    def test_json_output(
        self,
        mock_find: MagicMock,
        mock_cls: MagicMock,
        invoke,
        input_file,
        ffprobe_report,
    ) -> None:
        """JSON output is the normalized profile."""
        mock_cls.return_value.get_report.return_value = ffprobe_report(
            video={"pix_fmt": "yuv420p10le", "color_transfer": "smpte2084"}
        )
        result = invoke("probe", "--json", str(input_file))
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["is_hdr"] is True
        assert data["duration_ms"] == 120000
        assert data["video_streams"][0]["width"] == 1920
