"""Formatting utilities.

Pure functions for presenting progress and failures to users.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from formatflex.executor.progress import ProgressSnapshot

# Keywords that mark a diagnostic line as worth showing in a failure summary
FAILURE_KEYWORDS = ("error", "failed", "unable", "mediacodec")

FAILURE_SUMMARY_LINES = 6

NO_DETAILS_MESSAGE = "See logs for details."


def format_clock(milliseconds: int | float | None) -> str:
    """Format a duration as HH:MM:SS.

    Args:
        milliseconds: Duration in milliseconds. None or negative shows as zero.

    Returns:
        Zero-padded clock string (hours may exceed two digits).
    """
    if milliseconds is None or milliseconds < 0:
        milliseconds = 0
    total_seconds = int(milliseconds // 1000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_progress_line(snapshot: ProgressSnapshot) -> str:
    """Render a progress snapshot as a single status line.

    Example: ``00:01:02 / 00:10:00 (10.3%) • 1.25x • ETA 00:07:26``

    Unknown parts are left out, so a run without a known duration shows
    only elapsed time and speed.
    """
    parts: list[str] = []
    if snapshot.total_ms:
        elapsed = format_clock(snapshot.elapsed_ms)
        clock = f"{elapsed} / {format_clock(snapshot.total_ms)}"
        if snapshot.percent is not None:
            clock += f" ({snapshot.percent * 100:.1f}%)"
        parts.append(clock)
    else:
        parts.append(format_clock(snapshot.elapsed_ms))
    if snapshot.speed is not None and snapshot.speed > 0:
        parts.append(f"{snapshot.speed:.2f}x")
    if snapshot.eta_ms is not None and not snapshot.finished:
        parts.append(f"ETA {format_clock(snapshot.eta_ms)}")
    return " • ".join(parts)


def summarize_failure(
    lines: Iterable[str], max_lines: int = FAILURE_SUMMARY_LINES
) -> str:
    """Condense diagnostic output into a short failure summary.

    Args:
        lines: Diagnostic lines, oldest first.
        max_lines: Maximum number of matching lines to keep (the newest).

    Returns:
        Matching lines joined by newlines, or NO_DETAILS_MESSAGE if none match.
    """
    matching = [
        line.strip()
        for line in lines
        if line.strip()
        and any(keyword in line.casefold() for keyword in FAILURE_KEYWORDS)
    ]
    if not matching:
        return NO_DETAILS_MESSAGE
    return "\n".join(matching[-max_lines:])
