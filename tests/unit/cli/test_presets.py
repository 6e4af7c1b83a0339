"""Tests for the presets command."""

import json
from pathlib import Path

from formatflex.cli.presets import format_preset_line
from formatflex.config.presets import BUILTIN_PRESETS


class TestPresetsCommand:
    """Tests for listing presets."""

    def test_lists_builtins(self, invoke) -> None:
        """Every built-in preset is listed without a custom marker."""
        result = invoke("presets")
        assert result.exit_code == 0
        for slug in BUILTIN_PRESETS:
            assert slug in result.output
        assert "(custom)" not in result.output

    def test_marks_custom(self, invoke, config_path: Path) -> None:
        """User presets are marked."""
        config_path.write_text(
            '[presets.phone]\ncontainer = "mp4"\nvideo_codec = "h264"\n'
            'audio_codec = "aac"\nresolution = "720p"\n'
        )
        result = invoke("presets")
        assert result.exit_code == 0
        line = next(ln for ln in result.output.splitlines() if "phone" in ln)
        assert line.endswith("(custom)")

    def test_json(self, invoke) -> None:
        """JSON output has one entry per preset."""
        result = invoke("presets", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data) == len(BUILTIN_PRESETS)
        web = next(entry for entry in data if entry["slug"] == "web")
        assert web["builtin"] is True
        assert web["quality"] == {"video_bitrate_k": 4500}
        assert web["two_pass"] is True


def test_format_preset_line() -> None:
    """The summary line shows formats and quality."""
    line = format_preset_line("web", BUILTIN_PRESETS["web"])
    assert line.startswith("web")
    assert "webm/vp9/opus" in line
    assert "4500k, two-pass" in line
