"""Telemetry emitted by a running ffmpeg.

Two sources are understood. ``-progress pipe:1`` writes ``key=value`` lines
in blocks, each closed by ``progress=continue`` (or ``progress=end`` for the
last one). Without it, ffmpeg rewrites a stats line on stderr such as

    frame= 1234 fps= 30 q=28.0 size= 10240kB time=00:01:23.45 speed=2.01x

Both become FFmpegProgress samples. Values ffmpeg reports as ``N/A`` or
leaves blank are treated as absent.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class FFmpegProgress:
    """One telemetry sample; fields ffmpeg did not report stay None."""

    frame: int | None = None
    fps: float | None = None
    bitrate: str | None = None
    total_size: int | None = None
    out_time_us: int | None = None
    speed: float | None = None  # 2.0 means twice real time
    is_end: bool = False

    @property
    def out_time_ms(self) -> int | None:
        if self.out_time_us is None:
            return None
        return self.out_time_us // 1000


def _speed(raw: str) -> float:
    value = float(raw.rstrip("x"))
    if value < 0:
        raise ValueError(raw)
    return value


# ffmpeg key -> (FFmpegProgress field, converter). out_time_ms is in
# microseconds too, despite the name.
_FIELDS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "frame": ("frame", int),
    "fps": ("fps", float),
    "bitrate": ("bitrate", str),
    "total_size": ("total_size", int),
    "out_time_us": ("out_time_us", int),
    "out_time_ms": ("out_time_us", int),
    "speed": ("speed", _speed),
}

_ABSENT = frozenset({"", "N/A"})
_MARKER = "progress"

_STATS_PAIR = re.compile(r"(\w+)=\s*(\S+)")
_CLOCK = re.compile(r"(\d+):(\d{2}):(\d{2})(?:\.(\d+))?")


def _convert(key: str, raw: str) -> tuple[str, Any] | None:
    spec = _FIELDS.get(key)
    if spec is None or raw in _ABSENT:
        return None
    field_name, convert = spec
    try:
        return field_name, convert(raw)
    except ValueError:
        return None


def _clock_to_us(raw: str) -> int | None:
    """``HH:MM:SS.ff`` to microseconds; negative or malformed gives None."""
    match = _CLOCK.fullmatch(raw)
    if match is None:
        return None
    hours, minutes, seconds, fraction = match.groups()
    whole = int(hours) * 3600 + int(minutes) * 60 + int(seconds)
    micros = int((fraction or "").ljust(6, "0")[:6])
    return whole * 1_000_000 + micros


def parse_progress_line(line: str) -> dict[str, Any]:
    """Decode one ``-progress`` line.

    Returns:
        ``{field: value}`` for a telemetry key, ``{"progress": marker}`` for
        a block terminator, and an empty dict for anything else.
    """
    key, sep, raw = line.strip().partition("=")
    if not sep:
        return {}
    key, raw = key.strip(), raw.strip()
    if key == _MARKER:
        return {_MARKER: raw}
    converted = _convert(key, raw)
    if converted is None:
        return {}
    field_name, value = converted
    return {field_name: value}


class ProgressBlockParser:
    """Turn a stream of ``-progress`` lines into one sample per block.

    Example:
        parser = ProgressBlockParser()
        for line in stdout:
            sample = parser.feed(line)
            if sample is not None:
                on_progress(sample)
    """

    def __init__(self) -> None:
        self._pending = FFmpegProgress()

    def feed(self, line: str) -> FFmpegProgress | None:
        """Add a line; returns the finished sample when the line closes a block."""
        decoded = parse_progress_line(line)
        marker = decoded.pop(_MARKER, None)
        for field_name, value in decoded.items():
            setattr(self._pending, field_name, value)
        if marker is None:
            return None
        sample, self._pending = self._pending, FFmpegProgress()
        sample.is_end = marker == "end"
        return sample


def parse_stderr_progress(line: str) -> FFmpegProgress | None:
    """Decode a stderr stats line.

    Returns:
        The sample, or None when the line is ordinary log output.
    """
    pairs = dict(_STATS_PAIR.findall(line))
    if "time" not in pairs or not ("frame" in pairs or "size" in pairs):
        return None
    sample = FFmpegProgress(out_time_us=_clock_to_us(pairs.pop("time")))
    for key in ("frame", "fps", "bitrate", "speed"):
        converted = _convert(key, pairs.get(key, ""))
        if converted is not None:
            setattr(sample, *converted)
    return sample
