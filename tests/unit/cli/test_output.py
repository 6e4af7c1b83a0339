"""Tests for CLI output helpers."""

import json

import pytest

from formatflex.cli.exit_codes import ExitCode
from formatflex.cli.output import error_exit, error_payload, warning_output


def test_error_payload_names_code() -> None:
    """Known codes are reported by name, unknown ones generically."""
    assert error_payload("bad", ExitCode.PROBE_FAILED) == {
        "status": "failed",
        "error": {"code": "PROBE_FAILED", "message": "bad"},
    }
    assert error_payload("bad", 32)["error"]["code"] == "PROBE_FAILED"
    assert error_payload("bad", 99)["error"]["code"] == "UNKNOWN_ERROR"


def test_error_exit_text(capsys) -> None:
    """Text mode prints one Error line and exits with the code."""
    with pytest.raises(SystemExit) as exc_info:
        error_exit("no such file", ExitCode.TARGET_NOT_FOUND)
    assert exc_info.value.code == 20
    assert capsys.readouterr().err == "Error: no such file\n"


def test_error_exit_json(capsys) -> None:
    """JSON mode prints the payload on stderr."""
    with pytest.raises(SystemExit):
        error_exit("no ffmpeg", ExitCode.TOOL_NOT_AVAILABLE, json_output=True)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["error"]["code"] == "TOOL_NOT_AVAILABLE"


def test_warning_suppressed_in_json_mode(capsys) -> None:
    """Warnings only appear in text mode."""
    warning_output("tone mapping unavailable")
    warning_output("hidden", json_output=True)
    assert capsys.readouterr().err == "Warning: tone mapping unavailable\n"
