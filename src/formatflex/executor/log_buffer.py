"""Bounded ring buffer of engine diagnostic lines.

The buffer is owned by whoever creates it and passed to the orchestrator,
so callers (and tests) can inspect what the engine printed.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable

DEFAULT_CAPACITY = 800


class LogRingBuffer:
    """Thread-safe, bounded buffer keeping the newest diagnostic lines."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize the buffer.

        Args:
            capacity: Maximum number of lines kept; older lines are evicted.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._lines: deque[str] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Maximum number of lines kept."""
        return self._lines.maxlen or 0

    def append(self, line: str) -> None:
        """Add one line, stripping the trailing newline."""
        with self._lock:
            self._lines.append(line.rstrip("\r\n"))

    def extend(self, lines: Iterable[str]) -> None:
        """Add several lines in order."""
        with self._lock:
            self._lines.extend(line.rstrip("\r\n") for line in lines)

    def lines(self) -> list[str]:
        """Return a copy of all buffered lines, oldest first."""
        with self._lock:
            return list(self._lines)

    def tail(self, count: int) -> list[str]:
        """Return the newest ``count`` lines, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            return list(self._lines)[-count:]

    def clear(self) -> None:
        """Drop every buffered line."""
        with self._lock:
            self._lines.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)
