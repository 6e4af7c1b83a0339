"""Tests for LogRingBuffer."""

import pytest

from formatflex.executor.log_buffer import LogRingBuffer


class TestLogRingBuffer:
    """Tests for LogRingBuffer class."""

    def test_rejects_non_positive_capacity(self) -> None:
        """Capacity must be positive."""
        with pytest.raises(ValueError, match="capacity"):
            LogRingBuffer(0)

    def test_evicts_oldest(self) -> None:
        """Only the newest lines are kept."""
        buffer = LogRingBuffer(3)
        buffer.extend(["a", "b", "c", "d"])
        assert buffer.lines() == ["b", "c", "d"]
        assert len(buffer) == 3
        assert buffer.capacity == 3

    def test_strips_newlines(self) -> None:
        """Trailing line endings are removed."""
        buffer = LogRingBuffer()
        buffer.append("error line\r\n")
        assert buffer.lines() == ["error line"]

    def test_tail(self) -> None:
        """tail returns the newest lines in order."""
        buffer = LogRingBuffer()
        buffer.extend(["1", "2", "3"])
        assert buffer.tail(2) == ["2", "3"]
        assert buffer.tail(10) == ["1", "2", "3"]
        assert buffer.tail(0) == []

    def test_clear(self) -> None:
        """clear empties the buffer."""
        buffer = LogRingBuffer()
        buffer.append("x")
        buffer.clear()
        assert buffer.lines() == []
