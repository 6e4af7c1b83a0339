"""Progress and ETA translation.

``translate_progress`` is the pure conversion from engine telemetry to a
completion ratio and remaining time. ``ProgressTracker`` wraps it for one
execution attempt and enforces the display rules: the ratio never goes
backwards and never reaches 1.0 before the engine signals end of stream.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

# Largest ratio shown before the engine reports end of stream
MAX_UNFINISHED_RATIO = 0.999


@dataclass(frozen=True)
class ProgressEstimate:
    """Completion ratio and remaining time for one telemetry sample."""

    percent: float | None
    """Completion ratio in [0, 1], None when the duration is unknown."""

    eta_ms: int | None
    """Estimated remaining milliseconds, None when the duration is unknown."""


def translate_progress(
    elapsed_ms: int | float | None,
    total_ms: int | float | None,
    speed: float | None = None,
) -> ProgressEstimate:
    """Convert elapsed output time into a completion ratio and ETA.

    Args:
        elapsed_ms: Output time encoded so far, in milliseconds.
        total_ms: Input duration in milliseconds, None or 0 if unknown.
        speed: Encoding speed as a multiple of real time, if known.

    Returns:
        ProgressEstimate. Both fields are None when the total is unknown.
    """
    if not total_ms or total_ms <= 0:
        return ProgressEstimate(percent=None, eta_ms=None)

    elapsed = max(0.0, float(elapsed_ms or 0))
    percent = min(1.0, elapsed / total_ms)
    remaining = max(0.0, total_ms - elapsed)
    # Without a usable speed, assume real time
    rate = speed if speed is not None and speed > 0 else 1.0
    return ProgressEstimate(percent=percent, eta_ms=int(remaining / rate))


@dataclass(frozen=True)
class ProgressSnapshot:
    """Progress of one attempt at a point in time."""

    elapsed_ms: int
    total_ms: int | None
    percent: float | None
    eta_ms: int | None
    speed: float | None = None
    frame: int | None = None
    finished: bool = False

    @property
    def indeterminate(self) -> bool:
        """True when no completion ratio can be shown."""
        return self.percent is None


class ProgressTracker:
    """Monotonic progress state for one execution attempt.

    Only the attempt's telemetry reader calls ``update``/``finish``; any
    thread may read ``snapshot``.
    """

    def __init__(self, total_ms: int | None) -> None:
        """Initialize the tracker.

        Args:
            total_ms: Input duration in milliseconds, None if unknown.
        """
        self._total_ms = total_ms if total_ms and total_ms > 0 else None
        self._lock = threading.Lock()
        self._snapshot = ProgressSnapshot(
            elapsed_ms=0,
            total_ms=self._total_ms,
            percent=0.0 if self._total_ms else None,
            eta_ms=self._total_ms,
        )

    @property
    def snapshot(self) -> ProgressSnapshot:
        """The latest snapshot."""
        with self._lock:
            return self._snapshot

    def update(
        self,
        elapsed_ms: int | None,
        speed: float | None = None,
        frame: int | None = None,
    ) -> ProgressSnapshot:
        """Record a telemetry sample.

        Out-of-order or repeated samples never move progress backwards.

        Args:
            elapsed_ms: Output time encoded so far.
            speed: Encoding speed multiplier.
            frame: Frames encoded so far.

        Returns:
            The resulting snapshot.
        """
        with self._lock:
            last = self._snapshot
            if last.finished:
                return last
            elapsed = max(last.elapsed_ms, int(elapsed_ms or 0))
            estimate = translate_progress(elapsed, self._total_ms, speed)
            percent = estimate.percent
            if percent is not None:
                percent = min(MAX_UNFINISHED_RATIO, max(last.percent or 0.0, percent))
            self._snapshot = ProgressSnapshot(
                elapsed_ms=elapsed,
                total_ms=self._total_ms,
                percent=percent,
                eta_ms=estimate.eta_ms,
                speed=speed if speed is not None else last.speed,
                frame=frame if frame is not None else last.frame,
            )
            return self._snapshot

    def finish(self) -> ProgressSnapshot:
        """Mark end of stream; the ratio becomes 1.0 when it is known."""
        with self._lock:
            last = self._snapshot
            self._snapshot = ProgressSnapshot(
                elapsed_ms=max(last.elapsed_ms, self._total_ms or 0),
                total_ms=self._total_ms,
                percent=1.0 if self._total_ms else None,
                eta_ms=0 if self._total_ms else None,
                speed=last.speed,
                frame=last.frame,
                finished=True,
            )
            return self._snapshot
