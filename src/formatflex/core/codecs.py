"""Closed codec, container and resolution registry.

This module is the single source of truth for the targets FormatFlex can
produce, including:
- Container, video codec and audio codec enumerations
- Engine identifiers and display labels per variant
- Source codec alias groups for stream-copy matching
- Standard resolution ceilings

Every lookup table is checked against its enumeration at import time, so
adding a variant without its table entries fails immediately.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

_E = TypeVar("_E", bound=Enum)


class Container(Enum):
    """Output container format."""

    MP4 = "mp4"
    MKV = "mkv"
    WEBM = "webm"

    @property
    def extension(self) -> str:
        """File extension without the leading dot."""
        return _CONTAINER_EXTENSIONS[self]

    @property
    def label(self) -> str:
        """Human-readable name."""
        return _CONTAINER_LABELS[self]


class VideoCodec(Enum):
    """Target video codec family."""

    H264 = "h264"
    HEVC = "hevc"
    VP9 = "vp9"
    AV1 = "av1"

    @property
    def software_encoder(self) -> str:
        """FFmpeg software encoder for this codec."""
        return _SOFTWARE_VIDEO_ENCODERS[self]

    @property
    def label(self) -> str:
        """Human-readable name."""
        return _VIDEO_CODEC_LABELS[self]

    @property
    def max_crf(self) -> int:
        """Highest CRF the software encoder accepts."""
        return _MAX_CRF[self]

    def matches(self, codec_name: str | None) -> bool:
        """Check whether a probed codec name belongs to this family.

        Args:
            codec_name: Codec name as reported by ffprobe.

        Returns:
            True if the name is an alias of this codec family.
        """
        if not codec_name:
            return False
        return codec_name.casefold() in VIDEO_CODEC_ALIASES[self]


class AudioCodec(Enum):
    """Target audio codec."""

    AAC = "aac"
    AC3 = "ac3"
    EAC3 = "eac3"
    OPUS = "opus"
    MP3 = "mp3"

    @property
    def encoder(self) -> str:
        """FFmpeg encoder for this codec."""
        return _AUDIO_ENCODERS[self]

    @property
    def label(self) -> str:
        """Human-readable name."""
        return _AUDIO_CODEC_LABELS[self]

    def matches(self, codec_name: str | None) -> bool:
        """Check whether a probed codec name is this codec."""
        if not codec_name:
            return False
        return codec_name.casefold() in AUDIO_CODEC_ALIASES[self]


@dataclass(frozen=True)
class Resolution:
    """Resolution ceiling (bounding box) for output video."""

    width: int
    height: int
    label: str

    def __post_init__(self) -> None:
        """Validate dimensions."""
        if self.width < 2 or self.height < 2:
            raise ValueError(
                f"Resolution must be at least 2x2, got {self.width}x{self.height}"
            )

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


# =============================================================================
# Per-variant Tables
# =============================================================================

_CONTAINER_EXTENSIONS: dict[Container, str] = {
    Container.MP4: "mp4",
    Container.MKV: "mkv",
    Container.WEBM: "webm",
}

_CONTAINER_LABELS: dict[Container, str] = {
    Container.MP4: "MP4",
    Container.MKV: "Matroska (MKV)",
    Container.WEBM: "WebM",
}

_SOFTWARE_VIDEO_ENCODERS: dict[VideoCodec, str] = {
    VideoCodec.H264: "libx264",
    VideoCodec.HEVC: "libx265",
    VideoCodec.VP9: "libvpx-vp9",
    VideoCodec.AV1: "libaom-av1",
}

_VIDEO_CODEC_LABELS: dict[VideoCodec, str] = {
    VideoCodec.H264: "H.264 / AVC",
    VideoCodec.HEVC: "H.265 / HEVC",
    VideoCodec.VP9: "VP9",
    VideoCodec.AV1: "AV1",
}

# x264 and x265 stop at 51; libvpx-vp9 and libaom at 63
_MAX_CRF: dict[VideoCodec, int] = {
    VideoCodec.H264: 51,
    VideoCodec.HEVC: 51,
    VideoCodec.VP9: 63,
    VideoCodec.AV1: 63,
}

_AUDIO_ENCODERS: dict[AudioCodec, str] = {
    AudioCodec.AAC: "aac",
    AudioCodec.AC3: "ac3",
    AudioCodec.EAC3: "eac3",
    AudioCodec.OPUS: "libopus",
    AudioCodec.MP3: "libmp3lame",
}

_AUDIO_CODEC_LABELS: dict[AudioCodec, str] = {
    AudioCodec.AAC: "AAC",
    AudioCodec.AC3: "Dolby Digital (AC-3)",
    AudioCodec.EAC3: "Dolby Digital Plus (E-AC-3)",
    AudioCodec.OPUS: "Opus",
    AudioCodec.MP3: "MP3",
}

# Source codec names (as ffprobe reports them) that belong to each family
VIDEO_CODEC_ALIASES: dict[VideoCodec, frozenset[str]] = {
    VideoCodec.H264: frozenset({"h264", "avc", "avc1", "x264"}),
    VideoCodec.HEVC: frozenset({"hevc", "h265", "x265", "hvc1", "hev1"}),
    VideoCodec.VP9: frozenset({"vp9", "vp09"}),
    VideoCodec.AV1: frozenset({"av1", "av01"}),
}

AUDIO_CODEC_ALIASES: dict[AudioCodec, frozenset[str]] = {
    AudioCodec.AAC: frozenset({"aac"}),
    AudioCodec.AC3: frozenset({"ac3"}),
    AudioCodec.EAC3: frozenset({"eac3"}),
    AudioCodec.OPUS: frozenset({"opus"}),
    AudioCodec.MP3: frozenset({"mp3"}),
}

# Codec most players can decode; turbo mode always targets it
UNIVERSAL_VIDEO_CODEC = VideoCodec.H264


def require_complete(table: Mapping[_E, object], enum_cls: type[_E]) -> None:
    """Fail if a lookup table does not cover every member of an enumeration.

    Args:
        table: Mapping keyed by enum members.
        enum_cls: The enumeration the table must cover.

    Raises:
        RuntimeError: If any member is missing.
    """
    missing = [member.name for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(
            f"{enum_cls.__name__} table is missing entries for: {', '.join(missing)}"
        )


for _table, _enum_cls in (
    (_CONTAINER_EXTENSIONS, Container),
    (_CONTAINER_LABELS, Container),
    (_SOFTWARE_VIDEO_ENCODERS, VideoCodec),
    (_VIDEO_CODEC_LABELS, VideoCodec),
    (VIDEO_CODEC_ALIASES, VideoCodec),
    (_AUDIO_ENCODERS, AudioCodec),
    (_AUDIO_CODEC_LABELS, AudioCodec),
    (AUDIO_CODEC_ALIASES, AudioCodec),
):
    require_complete(_table, _enum_cls)


def video_codec_family(codec_name: str | None) -> VideoCodec | None:
    """Map a probed video codec name to its family.

    Args:
        codec_name: Codec name as reported by ffprobe.

    Returns:
        The matching VideoCodec, or None for codecs FormatFlex cannot target.
    """
    for codec in VideoCodec:
        if codec.matches(codec_name):
            return codec
    return None


# =============================================================================
# Resolution Ceilings
# =============================================================================

RES_2160P = Resolution(3840, 2160, "2160p (4K)")
RES_1080P = Resolution(1920, 1080, "1080p (FHD)")
RES_720P = Resolution(1280, 720, "720p (HD)")
RES_480P = Resolution(854, 480, "480p (SD)")

RESOLUTIONS: dict[str, Resolution] = {
    "2160p": RES_2160P,
    "1080p": RES_1080P,
    "720p": RES_720P,
    "480p": RES_480P,
}


def parse_resolution(value: str) -> Resolution:
    """Parse a resolution name ("1080p", "4k") or WIDTHxHEIGHT string.

    Args:
        value: Resolution name or explicit size.

    Returns:
        Matching Resolution.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    key = value.strip().casefold()
    if key == "4k":
        key = "2160p"
    if key in RESOLUTIONS:
        return RESOLUTIONS[key]
    width, sep, height = key.partition("x")
    if sep and width.isdigit() and height.isdigit():
        return Resolution(int(width), int(height), f"{width}x{height}")
    raise ValueError(
        f"Invalid resolution '{value}'. "
        f"Use one of {', '.join(RESOLUTIONS)} or WIDTHxHEIGHT."
    )
