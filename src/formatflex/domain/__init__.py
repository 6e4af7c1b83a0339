"""Domain models shared by the introspector, planner and orchestrator."""

from formatflex.domain.models import (
    AudioTrackInfo,
    MediaProfile,
    VideoStreamInfo,
    is_hdr_color,
)
from formatflex.domain.options import ConversionOptions, Preset

__all__ = [
    "AudioTrackInfo",
    "ConversionOptions",
    "MediaProfile",
    "Preset",
    "VideoStreamInfo",
    "is_hdr_color",
]
