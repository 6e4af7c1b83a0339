"""Core utilities package.

Pure helpers with no external dependencies: the closed codec/container
registry and display formatting.
"""

from formatflex.core.codecs import (
    RES_480P,
    RES_720P,
    RES_1080P,
    RES_2160P,
    RESOLUTIONS,
    UNIVERSAL_VIDEO_CODEC,
    AudioCodec,
    Container,
    Resolution,
    VideoCodec,
    parse_resolution,
    video_codec_family,
)
from formatflex.core.formatting import (
    format_clock,
    format_progress_line,
    summarize_failure,
)

__all__ = [
    "RESOLUTIONS",
    "RES_1080P",
    "RES_2160P",
    "RES_480P",
    "RES_720P",
    "UNIVERSAL_VIDEO_CODEC",
    "AudioCodec",
    "Container",
    "Resolution",
    "VideoCodec",
    "format_clock",
    "format_progress_line",
    "parse_resolution",
    "summarize_failure",
    "video_codec_family",
]
