"""Tests for JSONFormatter."""

import json
import logging
import sys

from formatflex.logging.handlers import JSONFormatter


def _record(msg: str = "done", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="formatflex.executor",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter class."""

    def test_basic_fields(self) -> None:
        """Timestamp, level, message and logger are present."""
        entry = json.loads(JSONFormatter().format(_record()))
        assert list(entry) == ["timestamp", "level", "message", "logger"]
        assert entry["level"] == "WARNING"
        assert entry["message"] == "done"
        assert entry["logger"] == "formatflex.executor"
        assert entry["timestamp"].endswith("+00:00")

    def test_extra_fields(self) -> None:
        """Attributes passed with extra= go into context."""
        entry = json.loads(
            JSONFormatter().format(_record(return_code=1, output_path="/x.mp4"))
        )
        assert entry["context"] == {"return_code": 1, "output_path": "/x.mp4"}

    def test_conversion_fields(self) -> None:
        """Run id and attempt lead the context; the text tag is left out."""
        entry = json.loads(
            JSONFormatter().format(
                _record(
                    return_code=1,
                    run_id="abc",
                    attempt=2,
                    conversion_tag="[run abc] ",
                )
            )
        )
        assert entry["context"] == {"run_id": "abc", "attempt": 2, "return_code": 1}
        assert list(entry["context"])[:2] == ["run_id", "attempt"]

    def test_context_outside_run(self) -> None:
        """None context values are omitted."""
        entry = json.loads(
            JSONFormatter().format(_record(run_id=None, attempt=None))
        )
        assert "context" not in entry

    def test_exception(self) -> None:
        """Exception text is included."""
        try:
            raise ValueError("bad")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad" in entry["exception"]

    def test_non_serializable_values(self) -> None:
        """Values JSON cannot encode are stringified."""
        entry = json.loads(JSONFormatter().format(_record(path=object())))
        assert entry["context"]["path"].startswith("<object")
