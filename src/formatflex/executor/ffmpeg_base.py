"""External process runner for FFmpeg invocations.

Runs one FFmpeg command, reading machine-readable progress from stdout
(``-progress pipe:1``) and diagnostics from stderr on separate threads.
There is no timeout: a stalled process only stops when the caller sets the
cancel event, which terminates it gracefully and kills it after a grace
window.
"""

from __future__ import annotations

import contextvars
import logging
import queue
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import IO, Protocol

from formatflex.executor.log_buffer import LogRingBuffer
from formatflex.tools.ffmpeg_progress import (
    FFmpegProgress,
    ProgressBlockParser,
    parse_stderr_progress,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[FFmpegProgress], None]

DEFAULT_CANCEL_GRACE = 5.0
DEFAULT_TAIL_LINES = 120

_STDOUT = "stdout"
_STDERR = "stderr"


@dataclass(frozen=True)
class ProcessResult:
    """Result of one FFmpeg invocation."""

    return_code: int | None
    """Exit status; None if the process never reported one."""

    cancelled: bool = False
    """True if the cancel event stopped the process."""

    saw_end: bool = False
    """True if the progress stream reported ``progress=end``."""

    diagnostic_lines: tuple[str, ...] = ()
    """Last stderr lines of this invocation."""


class ProcessRunner(Protocol):
    """Protocol for running one engine command."""

    def run(
        self,
        cmd: Sequence[str],
        cancel_event: threading.Event,
        progress_callback: ProgressCallback | None = None,
    ) -> ProcessResult:
        """Run a command to completion or cancellation.

        Raises:
            OSError: If the process cannot be started.
        """
        ...


class FFmpegProcessRunner:
    """Runs FFmpeg with threaded output readers and cooperative cancellation."""

    POLL_INTERVAL: float = 0.2
    READER_DRAIN_TIMEOUT: float = 5.0  # Timeout for draining readers after exit

    def __init__(
        self,
        log_buffer: LogRingBuffer | None = None,
        cancel_grace: float = DEFAULT_CANCEL_GRACE,
        tail_lines: int = DEFAULT_TAIL_LINES,
    ) -> None:
        """Initialize the runner.

        Args:
            log_buffer: Buffer receiving every stderr line, if any.
            cancel_grace: Seconds between the terminate and kill signals.
            tail_lines: Stderr lines kept in ProcessResult.diagnostic_lines.
        """
        self._log_buffer = log_buffer
        self._cancel_grace = cancel_grace
        self._tail_lines = tail_lines

    def run(
        self,
        cmd: Sequence[str],
        cancel_event: threading.Event,
        progress_callback: ProgressCallback | None = None,
    ) -> ProcessResult:
        """Run FFmpeg until it exits or the cancel event is set.

        Args:
            cmd: FFmpeg command arguments.
            cancel_event: Set by the caller to stop the process.
            progress_callback: Called with each parsed progress sample.

        Returns:
            ProcessResult for the invocation.

        Raises:
            OSError: If the process cannot be started.
        """
        logger.debug("Running: %s", " ".join(cmd))
        process = subprocess.Popen(  # nosec B603 - command built from a validated plan
            list(cmd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )

        lines: queue.Queue[tuple[str, str | None]] = queue.Queue()
        readers = [
            self._start_reader(process.stdout, _STDOUT, lines),
            self._start_reader(process.stderr, _STDERR, lines),
        ]

        tail: deque[str] = deque(maxlen=self._tail_lines)
        parser = ProgressBlockParser()
        saw_blocks = False
        saw_end = False
        cancelled = False
        open_streams = len(readers)

        def handle(stream: str, line: str) -> None:
            nonlocal saw_blocks, saw_end
            if stream == _STDOUT:
                progress = parser.feed(line)
                if progress is None:
                    return
                saw_blocks = True
                saw_end = saw_end or progress.is_end
            else:
                text = line.rstrip("\r\n")
                tail.append(text)
                if self._log_buffer is not None:
                    self._log_buffer.append(text)
                # Stats lines only matter when -progress output is missing
                if saw_blocks:
                    return
                progress = parse_stderr_progress(text)
                if progress is None:
                    return
            self._notify(progress_callback, progress)

        while open_streams:
            if cancel_event.is_set() and not cancelled:
                cancelled = True
                self._terminate(process)
            try:
                stream, line = lines.get(timeout=self.POLL_INTERVAL)
            except queue.Empty:
                continue
            if line is None:
                open_streams -= 1
                continue
            handle(stream, line)

        for reader in readers:
            reader.join(timeout=self.READER_DRAIN_TIMEOUT)
            if reader.is_alive():
                logger.warning("Output reader thread did not finish after exit")

        # Streams are closed; the process is exiting or already gone
        while not cancelled and process.poll() is None:
            if cancel_event.wait(timeout=self.POLL_INTERVAL):
                cancelled = True
                self._terminate(process)
        return_code = process.wait()

        # A cancel that raced with a normal exit still counts as cancelled
        cancelled = cancelled or cancel_event.is_set()
        return ProcessResult(
            return_code=return_code,
            cancelled=cancelled,
            saw_end=saw_end,
            diagnostic_lines=tuple(tail),
        )

    def _start_reader(
        self,
        pipe: IO[str] | None,
        stream: str,
        lines: queue.Queue[tuple[str, str | None]],
    ) -> threading.Thread:
        """Start a daemon thread copying a pipe into the line queue."""

        def read() -> None:
            try:
                if pipe is not None:
                    for line in pipe:
                        lines.put((stream, line))
            except (ValueError, OSError) as e:
                # Pipe closed or process terminated
                logger.debug("%s reader stopped: %s", stream, e)
            finally:
                lines.put((stream, None))  # Signal end of output

        # Carry logging context (run id, attempt) into the reader thread
        context = contextvars.copy_context()
        thread = threading.Thread(
            target=context.run, args=(read,), name=f"ffmpeg-{stream}", daemon=True
        )
        thread.start()
        return thread

    def _terminate(self, process: subprocess.Popen[str]) -> None:
        """Stop the process: graceful signal first, kill after the grace window."""
        if process.poll() is not None:
            return
        logger.info("Cancelling FFmpeg (pid %s)", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self._cancel_grace)
        except subprocess.TimeoutExpired:
            logger.warning(
                "FFmpeg did not exit within %.1fs, killing it", self._cancel_grace
            )
            process.kill()

    @staticmethod
    def _notify(
        callback: ProgressCallback | None, progress: FFmpegProgress
    ) -> None:
        if callback is None:
            return
        try:
            callback(progress)
        except Exception as e:
            logger.warning("Progress callback error: %s", e)
