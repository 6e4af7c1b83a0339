"""FFmpeg command building for transcoding.

This module maps quality intent onto each encoder's own arguments and
renders an EncodePlan into FFmpeg command lines, including the analysis
and encode passes of two-pass encoding.

Hardware rate control is a best-effort translation of the CRF value: the
numbers are not equivalent to software CRF, only the direction is kept
(a lower value gives higher quality).
"""

from __future__ import annotations

import logging
import platform
from collections.abc import Callable, Sequence
from pathlib import Path

from formatflex.core.codecs import Container, VideoCodec
from formatflex.domain.options import ConversionOptions
from formatflex.tools.encoders import HARDWARE_BACKENDS, HardwareBackend

from .types import EncodePlan, StreamAction, TwoPassContext

logger = logging.getLogger(__name__)

# HDR to SDR: linearize, tone-map with Hable, convert to BT.709 limited range
TONEMAP_FILTER = (
    "zscale=t=linear:npl=100,format=gbrpf32le,tonemap=hable,"
    "zscale=p=bt709:t=bt709:m=bt709,format=yuv420p"
)

VAAPI_DEVICE = "/dev/dri/renderD128"
VAAPI_UPLOAD_FILTER = "format=nv12,hwupload"

# Keyframe interval for platform media codecs, which have no GOP default
MEDIACODEC_GOP = 240

# (turbo, normal) speed presets per software codec
_SOFTWARE_SPEED: dict[VideoCodec, tuple[list[str], list[str]]] = {
    VideoCodec.H264: (["-preset", "superfast"], ["-preset", "veryfast"]),
    VideoCodec.HEVC: (["-preset", "ultrafast"], ["-preset", "fast"]),
    VideoCodec.VP9: (
        ["-deadline", "realtime", "-cpu-used", "8"],
        ["-deadline", "good", "-cpu-used", "2"],
    ),
    VideoCodec.AV1: (["-cpu-used", "8"], ["-cpu-used", "6"]),
}

# Codecs whose CRF mode needs an explicit zero bitrate
_CONSTANT_QUALITY_NEEDS_ZERO_BITRATE = frozenset({VideoCodec.VP9, VideoCodec.AV1})


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _bitrate_args(options: ConversionOptions) -> list[str]:
    return ["-b:v", f"{options.video_bitrate_k}k"]


# =============================================================================
# Software Encoders
# =============================================================================


def software_video_args(
    codec: VideoCodec, options: ConversionOptions, *, turbo: bool
) -> list[str]:
    """Build arguments for a software video encoder.

    Args:
        codec: Effective target codec.
        options: Conversion options (quality mode, CRF, bitrate).
        turbo: Use the fastest speed preset.

    Returns:
        Encoder arguments, excluding ``-c:v``.
    """
    turbo_speed, normal_speed = _SOFTWARE_SPEED[codec]
    args = list(turbo_speed if turbo else normal_speed)

    if codec == VideoCodec.H264:
        args.extend(["-profile:v", "high"])
    elif codec == VideoCodec.VP9:
        args.extend(["-row-mt", "1", "-tile-columns", "2"])
    elif codec == VideoCodec.AV1:
        args.extend(["-row-mt", "1"])
    args.extend(["-pix_fmt", "yuv420p"])

    if options.use_crf:
        args.extend(["-crf", str(options.crf)])
        if codec in _CONSTANT_QUALITY_NEEDS_ZERO_BITRATE:
            args.extend(["-b:v", "0"])
    else:
        args.extend(_bitrate_args(options))
    return args


# =============================================================================
# Hardware Encoders
# =============================================================================


def _nvenc_args(options: ConversionOptions, turbo: bool) -> list[str]:
    args = ["-preset", "p1" if turbo else "p4"]
    if options.use_crf:
        args.extend(["-rc", "vbr", "-cq", str(_clamp(options.crf, 10, 40))])
    else:
        args.extend(_bitrate_args(options))
    args.extend(["-pix_fmt", "yuv420p"])
    return args


def _qsv_args(options: ConversionOptions, turbo: bool) -> list[str]:
    args = ["-preset", "veryfast" if turbo else "medium"]
    if options.use_crf:
        args.extend(["-global_quality", str(_clamp(options.crf + 2, 18, 42))])
    else:
        args.extend(_bitrate_args(options))
    args.extend(["-pix_fmt", "nv12"])
    return args


def _amf_args(options: ConversionOptions, turbo: bool) -> list[str]:
    args = ["-quality", "speed" if turbo else "balanced"]
    if options.use_crf:
        qp = str(_clamp(options.crf, 0, 51))
        args.extend(["-rc", "cqp", "-qp_i", qp, "-qp_p", qp])
    else:
        args.extend(_bitrate_args(options))
    args.extend(["-pix_fmt", "yuv420p"])
    return args


def _vaapi_args(options: ConversionOptions, turbo: bool) -> list[str]:
    # Frames arrive as hardware surfaces from the upload filter
    if options.use_crf:
        return ["-qp", str(_clamp(options.crf, 1, 51))]
    return _bitrate_args(options)


def _videotoolbox_args(options: ConversionOptions, turbo: bool) -> list[str]:
    if options.use_crf:
        args = ["-q:v", str(_clamp(100 - options.crf * 2, 1, 100))]
    else:
        args = _bitrate_args(options)
    args.extend(["-allow_sw", "1", "-pix_fmt", "yuv420p"])
    return args


def _mediacodec_args(options: ConversionOptions, turbo: bool) -> list[str]:
    # No constant-quality mode; always bitrate driven
    return [
        *_bitrate_args(options),
        "-g",
        str(MEDIACODEC_GOP),
        "-pix_fmt",
        "yuv420p",
    ]


_HARDWARE_ARG_BUILDERS: dict[str, Callable[[ConversionOptions, bool], list[str]]] = {
    "nvenc": _nvenc_args,
    "qsv": _qsv_args,
    "amf": _amf_args,
    "vaapi": _vaapi_args,
    "videotoolbox": _videotoolbox_args,
    "mediacodec": _mediacodec_args,
}

_missing = [b.name for b in HARDWARE_BACKENDS if b.name not in _HARDWARE_ARG_BUILDERS]
if _missing:
    raise RuntimeError(f"No rate-control mapping for backends: {', '.join(_missing)}")


def hardware_video_args(
    backend: HardwareBackend, options: ConversionOptions, *, turbo: bool
) -> list[str]:
    """Build arguments for a hardware video encoder.

    Args:
        backend: Hardware backend selected for encoding.
        options: Conversion options (quality mode, CRF, bitrate).
        turbo: Use the fastest speed preset where the backend has one.

    Returns:
        Encoder arguments, excluding ``-c:v``.
    """
    return _HARDWARE_ARG_BUILDERS[backend.name](options, turbo)


def hardware_device_args(backend: HardwareBackend) -> list[str]:
    """Pre-input device setup a backend needs."""
    if backend.name == "vaapi":
        return ["-vaapi_device", VAAPI_DEVICE]
    return []


def hardware_upload_filter(backend: HardwareBackend) -> str | None:
    """Filter stage that moves frames into the backend's memory, if needed."""
    if backend.name == "vaapi":
        return VAAPI_UPLOAD_FILTER
    return None


# =============================================================================
# Shared Pieces
# =============================================================================


def codec_tag_args(codec: VideoCodec, container: Container) -> list[str]:
    """Codec tag needed for wide player support (HEVC in MP4 as hvc1)."""
    if codec == VideoCodec.HEVC and container == Container.MP4:
        return ["-tag:v", "hvc1"]
    return []


def scale_filter(width: int, height: int, *, turbo: bool) -> str:
    """Scale filter stage for the given target size."""
    flags = "fast_bilinear" if turbo else "bicubic"
    return f"scale=w={width}:h={height}:flags={flags}"


def build_filter_chain(stages: Sequence[str | None]) -> str | None:
    """Fuse filter stages into one graph description, in order."""
    present = [stage for stage in stages if stage]
    return ",".join(present) if present else None


def audio_args(bitrate_k: int, channels: int, sample_rate: int) -> list[str]:
    """Build audio encoder arguments, excluding ``-c:a``."""
    return [
        "-b:a",
        f"{bitrate_k}k",
        "-ac",
        str(channels),
        "-ar",
        str(sample_rate),
    ]


def container_args(container: Container) -> list[str]:
    """Container finalization flags."""
    if container == Container.MP4:
        # Move the index to the front for progressive playback
        return ["-movflags", "+faststart"]
    return []


def two_pass_args(encoder: str, two_pass_ctx: TwoPassContext) -> list[str]:
    """Pass selection flags for the current pass of a software encoder.

    Args:
        encoder: Software encoder name.
        two_pass_ctx: Two-pass context with the pass number and log prefix.

    Returns:
        Pass-specific arguments.
    """
    if encoder == "libx265":
        # x265 uses x265-params pass=1/2:stats=file
        x265_params = (
            f"pass={two_pass_ctx.current_pass}:"
            f"stats={two_pass_ctx.passlogfile}.log"
        )
        return ["-x265-params", x265_params]
    return [
        "-pass",
        str(two_pass_ctx.current_pass),
        "-passlogfile",
        str(two_pass_ctx.passlogfile),
    ]


def null_device() -> str:
    """Null output sink for the analysis pass."""
    return "NUL" if platform.system() == "Windows" else "/dev/null"


# =============================================================================
# Command Rendering
# =============================================================================


def _input_args(plan: EncodePlan, input_path: Path) -> list[str]:
    return [*plan.device_args, *plan.decode_args, "-i", str(input_path)]


def _video_args(plan: EncodePlan, two_pass_ctx: TwoPassContext | None) -> list[str]:
    video = plan.video
    if video is None or video.action == StreamAction.DROP:
        return ["-vn"]

    args: list[str] = []
    if video.source_map:
        args.extend(["-map", video.source_map])
    if video.action == StreamAction.COPY:
        args.extend(["-c:v", "copy"])
        return args

    assert video.encoder is not None
    args.extend(["-c:v", video.encoder, *video.encoder_args])
    if two_pass_ctx is not None and plan.supports_two_pass:
        args.extend(two_pass_args(video.encoder, two_pass_ctx))
    if plan.filter_chain:
        args.extend(["-vf", plan.filter_chain])
    if plan.frame_rate is not None:
        args.extend(["-r", f"{plan.frame_rate:g}"])
    return args


def _audio_args(plan: EncodePlan) -> list[str]:
    audio = plan.audio
    if audio is None or audio.action == StreamAction.DROP:
        return ["-an"]

    args: list[str] = []
    if audio.source_map:
        args.extend(["-map", audio.source_map])
    if audio.action == StreamAction.COPY:
        args.extend(["-c:a", "copy"])
    else:
        assert audio.encoder is not None
        args.extend(["-c:a", audio.encoder, *audio.encoder_args])
    return args


def _progress_args() -> list[str]:
    # Machine-readable progress on stdout, no stats lines on stderr
    return ["-progress", "pipe:1", "-nostats"]


def build_ffmpeg_command(
    plan: EncodePlan,
    ffmpeg_path: Path,
    input_path: Path,
    output_path: Path,
    two_pass_ctx: TwoPassContext | None = None,
) -> list[str]:
    """Build the FFmpeg command for a single-pass encode or the second pass.

    Args:
        plan: Encode plan for this attempt.
        ffmpeg_path: Path to ffmpeg.
        input_path: Source file.
        output_path: File to write.
        two_pass_ctx: Two-pass context when this is the encode pass.

    Returns:
        List of command arguments.
    """
    cmd = [str(ffmpeg_path), "-y", "-hide_banner"]
    cmd.extend(_input_args(plan, input_path))
    cmd.extend(_video_args(plan, two_pass_ctx))
    cmd.extend(_audio_args(plan))
    cmd.extend(["-threads", "0"])
    cmd.extend(plan.container_args)
    cmd.extend(_progress_args())
    cmd.append(str(output_path))
    return cmd


def build_ffmpeg_command_pass1(
    plan: EncodePlan,
    ffmpeg_path: Path,
    input_path: Path,
    two_pass_ctx: TwoPassContext,
) -> list[str]:
    """Build the FFmpeg command for the analysis pass of two-pass encoding.

    The analysis pass encodes video only and writes to the null sink; its
    useful output is the statistics log for the encode pass.

    Args:
        plan: Encode plan shared by both passes.
        ffmpeg_path: Path to ffmpeg.
        input_path: Source file.
        two_pass_ctx: Two-pass context (current_pass is set to 1).

    Returns:
        List of command arguments.
    """
    two_pass_ctx.current_pass = 1
    cmd = [str(ffmpeg_path), "-y", "-hide_banner"]
    cmd.extend(_input_args(plan, input_path))
    cmd.extend(_video_args(plan, two_pass_ctx))
    cmd.extend(["-an", "-threads", "0"])
    cmd.extend(_progress_args())
    cmd.extend(["-f", "null", null_device()])
    return cmd
