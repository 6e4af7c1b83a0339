"""Domain models describing a probed input.

A MediaProfile is built once per input by the introspector and is read-only
afterwards. Planning treats an unprobed profile (probe_succeeded=False) as
"nothing is known" and picks the safest choices.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Substrings in color metadata that indicate HDR content (PQ, HLG, BT.2020)
HDR_TRANSFER_MARKERS = ("smpte2084", "arib-std-b67", "pq", "hlg")
HDR_PRIMARIES_MARKERS = ("bt2020",)

# Pixel format prefixes with 4:2:0 chroma subsampling
PIXEL_FORMATS_420 = ("yuv420", "yuvj420", "nv12", "nv21", "p010")


@dataclass(frozen=True)
class VideoStreamInfo:
    """A video stream of the input."""

    index: int  # Absolute stream index in the container
    width: int | None = None
    height: int | None = None
    codec_name: str | None = None
    pixel_format: str | None = None
    color_transfer: str | None = None  # e.g., "smpte2084" (PQ), "arib-std-b67" (HLG)
    color_primaries: str | None = None  # e.g., "bt2020"
    frame_rate: str | None = None  # Kept as the "num/den" string ffprobe reports
    is_hdr: bool = False

    @property
    def has_dimensions(self) -> bool:
        """True if both width and height are known."""
        return self.width is not None and self.height is not None

    @property
    def is_420(self) -> bool:
        """True if the pixel format is known to be a 4:2:0 layout."""
        if not self.pixel_format:
            return False
        pix = self.pixel_format.casefold()
        return pix.startswith(PIXEL_FORMATS_420)


@dataclass(frozen=True)
class AudioTrackInfo:
    """An audio track of the input."""

    index: int  # Absolute stream index in the container
    codec_name: str | None = None
    channels: int | None = None
    sample_rate_hz: int | None = None
    language: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class MediaProfile:
    """Canonical description of an input's streams.

    ``video`` is the first video stream (cover art excluded); every video
    stream is kept in ``video_streams`` and every audio track in
    ``audio_tracks`` for explicit selection.
    """

    duration_ms: int | None = None
    video: VideoStreamInfo | None = None
    audio_tracks: tuple[AudioTrackInfo, ...] = field(default_factory=tuple)
    video_streams: tuple[VideoStreamInfo, ...] = field(default_factory=tuple)
    container_format: str | None = None
    probe_succeeded: bool = True

    @classmethod
    def unknown(cls) -> MediaProfile:
        """Profile for an input whose probe failed."""
        return cls(probe_succeeded=False)

    @property
    def is_hdr(self) -> bool:
        """True if the primary video stream is flagged HDR."""
        return self.video is not None and self.video.is_hdr

    def select_video(self, position: int) -> VideoStreamInfo | None:
        """Return the video stream at a position among video streams."""
        if 0 <= position < len(self.video_streams):
            return self.video_streams[position]
        return None

    def select_audio(self, position: int) -> AudioTrackInfo | None:
        """Return the audio track at a position among audio tracks."""
        if 0 <= position < len(self.audio_tracks):
            return self.audio_tracks[position]
        return None


def is_hdr_color(transfer: str | None, primaries: str | None) -> bool:
    """Approximate HDR detection from color tags.

    This is a substring heuristic, not color science: a PQ or HLG transfer
    or BT.2020 primaries flag the stream as HDR.

    Args:
        transfer: color_transfer tag.
        primaries: color_primaries tag.

    Returns:
        True if the tags look like HDR.
    """
    if transfer:
        value = transfer.casefold()
        if any(marker in value for marker in HDR_TRANSFER_MARKERS):
            return True
    if primaries:
        value = primaries.casefold()
        if any(marker in value for marker in HDR_PRIMARIES_MARKERS):
            return True
    return False
