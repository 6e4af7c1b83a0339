"""One-way event channel from a conversion run to its observer.

Publishing never blocks the run. Progress events are superseded by later
ones, so once too many are waiting the oldest waiting progress event is
dropped. State changes, final progress and the completion event are always
delivered.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from formatflex.executor.progress import ProgressSnapshot

if TYPE_CHECKING:
    from formatflex.executor.transcode.types import (
        ConversionOutcome,
        ConversionState,
    )

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING_PROGRESS = 32


@dataclass(frozen=True)
class StateChanged:
    """The run entered a new state."""

    state: ConversionState
    attempt: int = 0


@dataclass(frozen=True)
class ProgressUpdated:
    """New progress for the current attempt."""

    attempt: int
    snapshot: ProgressSnapshot


@dataclass(frozen=True)
class ConversionCompleted:
    """The run ended; always the last event of a run."""

    outcome: ConversionOutcome


ConversionEvent = StateChanged | ProgressUpdated | ConversionCompleted


class EventChannel:
    """Unbounded event queue with a cap on pending progress events.

    When the cap is reached, publishing a progress event evicts the oldest
    pending one, so a slow observer always sees the latest snapshot. Final
    snapshots (``finished``) are never evicted.
    """

    def __init__(
        self, max_pending_progress: int = DEFAULT_MAX_PENDING_PROGRESS
    ) -> None:
        """Initialize the channel.

        Args:
            max_pending_progress: Progress events allowed to wait unread
                before older ones are superseded.

        Raises:
            ValueError: If max_pending_progress is less than 1.
        """
        if max_pending_progress < 1:
            raise ValueError(
                f"max_pending_progress must be >= 1, got {max_pending_progress}"
            )
        self._events: deque[ConversionEvent] = deque()
        self._max_pending_progress = max_pending_progress
        self._pending_progress = 0
        self._dropped_progress = 0
        self._ready = threading.Condition()

    @property
    def dropped_progress(self) -> int:
        """Number of superseded progress events dropped so far."""
        with self._ready:
            return self._dropped_progress

    def _evict_oldest_progress(self) -> bool:
        for index, queued in enumerate(self._events):
            if isinstance(queued, ProgressUpdated) and not queued.snapshot.finished:
                del self._events[index]
                self._dropped_progress += 1
                return True
        return False

    def publish(self, event: ConversionEvent) -> bool:
        """Queue an event without blocking.

        Args:
            event: Event to deliver.

        Returns:
            False if an older progress event was dropped to make room,
            True otherwise.
        """
        evicted = False
        with self._ready:
            if isinstance(event, ProgressUpdated):
                if self._pending_progress >= self._max_pending_progress:
                    evicted = self._evict_oldest_progress()
                if not evicted:
                    self._pending_progress += 1
            self._events.append(event)
            self._ready.notify()
        return not evicted

    def get(self, timeout: float | None = None) -> ConversionEvent | None:
        """Take the next event.

        Args:
            timeout: Seconds to wait; None waits forever.

        Returns:
            The event, or None if none arrived within the timeout.
        """
        with self._ready:
            if not self._ready.wait_for(lambda: self._events, timeout=timeout):
                return None
            event = self._events.popleft()
            if isinstance(event, ProgressUpdated):
                self._pending_progress -= 1
            return event

    def drain(self) -> list[ConversionEvent]:
        """Take every event that is currently queued."""
        events: list[ConversionEvent] = []
        while True:
            event = self.get(timeout=0)
            if event is None:
                return events
            events.append(event)

    def iter_until_complete(
        self, poll_interval: float = 0.25
    ) -> Iterator[ConversionEvent]:
        """Yield events until (and including) ConversionCompleted.

        Args:
            poll_interval: Seconds between queue polls, so a consumer
                thread stays responsive to KeyboardInterrupt.
        """
        while True:
            event = self.get(timeout=poll_interval)
            if event is None:
                continue
            yield event
            if isinstance(event, ConversionCompleted):
                return
