"""Per-stream transcode decision logic.

This module decides, for the selected video stream and audio track, whether
the encoded bytes can be passed through or must be re-encoded, and which
video processing (tone-mapping, scaling) is needed. All functions are pure.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from formatflex.core.codecs import UNIVERSAL_VIDEO_CODEC, Resolution, VideoCodec
from formatflex.domain.models import AudioTrackInfo, MediaProfile, VideoStreamInfo
from formatflex.domain.options import ConversionOptions

logger = logging.getLogger(__name__)

MIN_DIMENSION = 2


class ReencodeReason(Enum):
    """Why a stream cannot be copied."""

    UNKNOWN_SOURCE = "unknown_source"
    TONE_MAP = "tone_map"
    SCALE = "scale"
    FRAME_RATE = "frame_rate"
    CODEC_MISMATCH = "codec_mismatch"
    PIXEL_FORMAT = "pixel_format"
    CHANNELS = "channels"
    SAMPLE_RATE = "sample_rate"


@dataclass(frozen=True)
class VideoDecision:
    """Result of evaluating the selected video stream."""

    copy: bool
    tone_map: bool = False
    scale: bool = False
    target_width: int | None = None
    target_height: int | None = None
    reasons: tuple[ReencodeReason, ...] = ()


@dataclass(frozen=True)
class AudioDecision:
    """Result of evaluating the selected audio track."""

    copy: bool
    target_channels: int
    reasons: tuple[ReencodeReason, ...] = ()


def effective_video_codec(options: ConversionOptions) -> VideoCodec:
    """Codec actually produced; turbo always targets the universal codec."""
    if options.turbo:
        return UNIVERSAL_VIDEO_CODEC
    return options.video_codec


def keeps_frame_rate(options: ConversionOptions) -> bool:
    """True if the output keeps the source frame rate."""
    return options.turbo or options.frame_rate is None


def needs_tone_map(
    video: VideoStreamInfo | None, options: ConversionOptions
) -> bool:
    """Check whether HDR content must be tone-mapped to SDR.

    Args:
        video: The selected video stream, None when unknown.
        options: Conversion options.

    Returns:
        True iff tone-mapping is enabled, the selected stream is HDR, and
        turbo is off.
    """
    return (
        options.tone_map
        and video is not None
        and video.is_hdr
        and not options.turbo
    )


def compute_scale_target(
    width: int, height: int, ceiling: Resolution
) -> tuple[int, int]:
    """Fit a frame inside a resolution ceiling, keeping its aspect ratio.

    The scale factor is min(box_w / w, box_h / h); each resulting dimension
    is rounded down to an even number and kept at least 2.

    Args:
        width: Source width.
        height: Source height.
        ceiling: Bounding box.

    Returns:
        Tuple of (target_width, target_height).
    """
    # Integer arithmetic so the limiting side lands exactly on the box
    if ceiling.width * height <= ceiling.height * width:
        target_width = ceiling.width
        target_height = height * ceiling.width // width
    else:
        target_height = ceiling.height
        target_width = width * ceiling.height // height

    target_width = max(MIN_DIMENSION, target_width - (target_width % 2))
    target_height = max(MIN_DIMENSION, target_height - (target_height % 2))
    return target_width, target_height


def needs_scale(video: VideoStreamInfo | None, ceiling: Resolution) -> bool:
    """True iff both dimensions are known and either exceeds the ceiling."""
    if video is None or video.width is None or video.height is None:
        return False
    return video.width > ceiling.width or video.height > ceiling.height


def evaluate_video(
    video: VideoStreamInfo | None,
    profile: MediaProfile,
    options: ConversionOptions,
    *,
    tone_map_available: bool = True,
) -> VideoDecision:
    """Decide how the selected video stream is handled.

    Args:
        video: Selected video stream, None if the profile has none known.
        profile: Probed input.
        options: Conversion options.
        tone_map_available: False when the engine lacks the tone-map
            filters; HDR input is then left as is.

    Returns:
        VideoDecision with copy eligibility, processing flags and reasons.
    """
    reasons: list[ReencodeReason] = []

    tone_map = tone_map_available and needs_tone_map(video, options)
    if tone_map:
        reasons.append(ReencodeReason.TONE_MAP)

    scale = needs_scale(video, options.resolution)
    target_width = target_height = None
    if scale and video is not None and video.width and video.height:
        target_width, target_height = compute_scale_target(
            video.width, video.height, options.resolution
        )
        reasons.append(ReencodeReason.SCALE)
        logger.debug(
            "Video scale needed: %dx%d -> %dx%d",
            video.width,
            video.height,
            target_width,
            target_height,
        )

    if not keeps_frame_rate(options):
        reasons.append(ReencodeReason.FRAME_RATE)

    if not profile.probe_succeeded or video is None:
        reasons.append(ReencodeReason.UNKNOWN_SOURCE)
    else:
        codec = effective_video_codec(options)
        if not codec.matches(video.codec_name):
            reasons.append(ReencodeReason.CODEC_MISMATCH)
        if not video.is_420:
            reasons.append(ReencodeReason.PIXEL_FORMAT)

    return VideoDecision(
        copy=not reasons,
        tone_map=tone_map,
        scale=scale,
        target_width=target_width,
        target_height=target_height,
        reasons=tuple(reasons),
    )


def effective_audio_channels(
    source_channels: int | None, options: ConversionOptions
) -> int:
    """Channel count the output will have.

    When downmixing is not allowed and the source has more channels than
    requested, the source layout is kept.
    """
    if (
        not options.allow_downmix
        and source_channels is not None
        and source_channels > options.audio_channels
    ):
        return source_channels
    return options.audio_channels


def evaluate_audio(
    track: AudioTrackInfo,
    profile: MediaProfile,
    options: ConversionOptions,
) -> AudioDecision:
    """Decide how the selected audio track is handled.

    Args:
        track: Selected audio track.
        profile: Probed input.
        options: Conversion options.

    Returns:
        AudioDecision with copy eligibility and the output channel count.
    """
    target_channels = effective_audio_channels(track.channels, options)
    reasons: list[ReencodeReason] = []

    if not profile.probe_succeeded:
        reasons.append(ReencodeReason.UNKNOWN_SOURCE)
    if not options.audio_codec.matches(track.codec_name):
        reasons.append(ReencodeReason.CODEC_MISMATCH)
    if track.channels is not None and track.channels != target_channels:
        reasons.append(ReencodeReason.CHANNELS)
    if track.sample_rate_hz is not None and track.sample_rate_hz != options.sample_rate:
        reasons.append(ReencodeReason.SAMPLE_RATE)

    return AudioDecision(
        copy=not reasons,
        target_channels=target_channels,
        reasons=tuple(reasons),
    )
