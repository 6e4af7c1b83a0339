"""Pure parsing functions for ffprobe JSON output.

These functions transform an ffprobe report into a MediaProfile.
All functions are pure (no I/O, no side effects) for easy testing.

ffprobe is inconsistent about numeric types (``sample_rate`` is a string,
``width`` an int, ``duration`` a string of seconds), so numeric fields go
through a layered reader: a typed value first, then a string parse, then
any other real number.
"""

from __future__ import annotations

import logging
import numbers
import re
from collections.abc import Mapping
from typing import Any

from formatflex.domain.models import (
    AudioTrackInfo,
    MediaProfile,
    VideoStreamInfo,
    is_hdr_color,
)

logger = logging.getLogger(__name__)

# Matroska stores per-stream durations as "HH:MM:SS.fffffffff" tags
_TAG_DURATION_PATTERN = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)$")


def read_number(data: Mapping[str, Any], key: str) -> float | None:
    """Read a numeric field with layered fallback.

    Args:
        data: Mapping from the ffprobe report.
        key: Field name.

    Returns:
        The value as float, or None if missing or not numeric.
    """
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    if isinstance(value, numbers.Real):
        return float(value)
    return None


def read_int(data: Mapping[str, Any], key: str) -> int | None:
    """Read a non-negative integer field with layered fallback.

    Args:
        data: Mapping from the ffprobe report.
        key: Field name.

    Returns:
        The value as int, or None if missing, negative, or not numeric.
    """
    value = data.get(key)
    if isinstance(value, int) and not isinstance(value, bool):
        result: int | None = value
    else:
        number = read_number(data, key)
        result = int(number) if number is not None else None
    if result is not None and result < 0:
        logger.warning("Invalid negative %s: %d", key, result)
        return None
    return result


def read_tag(stream: Mapping[str, Any], name: str) -> str | None:
    """Read a stream tag case-insensitively."""
    tags = stream.get("tags")
    if not isinstance(tags, Mapping):
        return None
    wanted = name.casefold()
    for key, value in tags.items():
        if str(key).casefold() == wanted and value not in (None, ""):
            return str(value)
    return None


def parse_tag_duration(value: str | None) -> float | None:
    """Parse a Matroska "HH:MM:SS.fff" duration tag into seconds."""
    if not value:
        return None
    match = _TAG_DURATION_PATTERN.match(value.strip())
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def _seconds_to_ms(seconds: float | None) -> int | None:
    if seconds is None or seconds <= 0:
        return None
    return int(round(seconds * 1000))


def parse_duration_ms(data: Mapping[str, Any]) -> int | None:
    """Find the input duration in milliseconds.

    Prefers the container duration, then the first stream that reports one,
    then Matroska duration tags.

    Args:
        data: Parsed ffprobe report.

    Returns:
        Duration in milliseconds, or None if unknown.
    """
    fmt = data.get("format")
    if isinstance(fmt, Mapping):
        duration = _seconds_to_ms(read_number(fmt, "duration"))
        if duration is not None:
            return duration

    streams = [s for s in data.get("streams") or [] if isinstance(s, Mapping)]
    for stream in streams:
        duration = _seconds_to_ms(read_number(stream, "duration"))
        if duration is not None:
            return duration
    for stream in streams:
        duration = _seconds_to_ms(parse_tag_duration(read_tag(stream, "DURATION")))
        if duration is not None:
            return duration
    return None


def _is_attached_picture(stream: Mapping[str, Any]) -> bool:
    disposition = stream.get("disposition")
    if not isinstance(disposition, Mapping):
        return False
    return read_int(disposition, "attached_pic") == 1


def parse_video_stream(stream: Mapping[str, Any]) -> VideoStreamInfo:
    """Parse one video stream entry."""
    transfer = stream.get("color_transfer")
    primaries = stream.get("color_primaries")
    return VideoStreamInfo(
        index=read_int(stream, "index") or 0,
        width=read_int(stream, "width") or None,
        height=read_int(stream, "height") or None,
        codec_name=stream.get("codec_name"),
        pixel_format=stream.get("pix_fmt"),
        color_transfer=transfer,
        color_primaries=primaries,
        frame_rate=stream.get("avg_frame_rate") or stream.get("r_frame_rate"),
        is_hdr=is_hdr_color(transfer, primaries),
    )


def parse_audio_stream(stream: Mapping[str, Any]) -> AudioTrackInfo:
    """Parse one audio stream entry."""
    return AudioTrackInfo(
        index=read_int(stream, "index") or 0,
        codec_name=stream.get("codec_name"),
        channels=read_int(stream, "channels") or None,
        sample_rate_hz=read_int(stream, "sample_rate") or None,
        language=read_tag(stream, "language"),
        title=read_tag(stream, "title"),
    )


def parse_ffprobe_output(data: Mapping[str, Any]) -> MediaProfile:
    """Build a MediaProfile from an ffprobe JSON report.

    Args:
        data: Parsed ffprobe output with "streams" and "format" keys.

    Returns:
        MediaProfile; the primary video is the first non-cover-art video
        stream.
    """
    video_streams: list[VideoStreamInfo] = []
    audio_tracks: list[AudioTrackInfo] = []

    for stream in data.get("streams") or []:
        if not isinstance(stream, Mapping):
            logger.debug("Skipping malformed stream entry: %r", stream)
            continue
        codec_type = stream.get("codec_type")
        if codec_type == "video" and not _is_attached_picture(stream):
            video_streams.append(parse_video_stream(stream))
        elif codec_type == "audio":
            audio_tracks.append(parse_audio_stream(stream))

    fmt = data.get("format")
    container_format = fmt.get("format_name") if isinstance(fmt, Mapping) else None

    return MediaProfile(
        duration_ms=parse_duration_ms(data),
        video=video_streams[0] if video_streams else None,
        audio_tracks=tuple(audio_tracks),
        video_streams=tuple(video_streams),
        container_format=container_format,
        probe_succeeded=True,
    )
