"""Encode plan builder.

``build_plan`` combines a probed MediaProfile, the user's options and the
engine's CapabilitySet into an immutable EncodePlan. It performs no I/O and
gives identical plans for identical inputs.

Decision order:
1. Effective codec (turbo forces the universal codec, no tone-map, source fps)
2. Tone-map and scale needs
3. Copy eligibility per stream
4. Encoder selection from the prioritized hardware backends
5. Encoder arguments, decode hints, fused filter chain, container flags
"""

from __future__ import annotations

import logging
from dataclasses import replace

from formatflex.core.codecs import (
    AudioCodec,
    Container,
    VideoCodec,
    video_codec_family,
)
from formatflex.domain.models import AudioTrackInfo, MediaProfile, VideoStreamInfo
from formatflex.domain.options import ConversionOptions
from formatflex.exceptions import PlanningImpossible
from formatflex.tools.encoders import (
    EncoderSelection,
    hardware_decode_args,
    select_encoder,
)
from formatflex.tools.models import CapabilitySet

from .command import (
    TONEMAP_FILTER,
    audio_args,
    build_filter_chain,
    codec_tag_args,
    container_args,
    hardware_device_args,
    hardware_upload_filter,
    hardware_video_args,
    scale_filter,
    software_video_args,
)
from .decisions import (
    VideoDecision,
    effective_audio_channels,
    effective_video_codec,
    evaluate_audio,
    evaluate_video,
    needs_tone_map,
)
from .types import EncodePlan, StreamAction, StreamDecision, StreamKind

logger = logging.getLogger(__name__)

# x264 rejects CRF rate control when it reads pass statistics
_TWO_PASS_NEEDS_BITRATE = frozenset({VideoCodec.H264})


def _check_options(options: ConversionOptions) -> None:
    """Reject option values outside their enumerations or encoder limits."""
    for value, enum_cls in (
        (options.container, Container),
        (options.video_codec, VideoCodec),
        (options.audio_codec, AudioCodec),
    ):
        if not isinstance(value, enum_cls):
            raise PlanningImpossible(
                f"{value!r} is not a valid {enum_cls.__name__} value"
            )
    codec = effective_video_codec(options)
    if options.use_crf and options.crf > codec.max_crf:
        raise PlanningImpossible(
            f"CRF {options.crf} is out of range for {codec.label} "
            f"(0-{codec.max_crf})"
        )


def _select_video(
    profile: MediaProfile, options: ConversionOptions
) -> VideoStreamInfo | None:
    if not profile.video_streams:
        return None
    video = profile.select_video(options.video_stream)
    if video is None:
        raise PlanningImpossible(
            f"Video stream {options.video_stream} does not exist "
            f"(input has {len(profile.video_streams)})"
        )
    return video


def _select_audio(
    profile: MediaProfile, options: ConversionOptions
) -> AudioTrackInfo | None:
    if not profile.audio_tracks:
        return None
    position = options.audio_stream if options.audio_stream is not None else 0
    track = profile.select_audio(position)
    if track is None:
        raise PlanningImpossible(
            f"Audio stream {position} does not exist "
            f"(input has {len(profile.audio_tracks)})"
        )
    return track


def _video_map(
    profile: MediaProfile, video: VideoStreamInfo | None, position: int
) -> str:
    if profile.probe_succeeded and video is not None:
        return f"0:{video.index}"
    # Unknown source: optional map so a missing stream is not an error
    return f"0:v:{position}?"


def _audio_map(
    profile: MediaProfile, track: AudioTrackInfo | None, position: int
) -> str:
    if profile.probe_succeeded and track is not None:
        return f"0:{track.index}"
    return f"0:a:{position}?"


def _plan_video_encode(
    codec: VideoCodec,
    selection: EncoderSelection,
    options: ConversionOptions,
) -> list[str]:
    if selection.backend is not None:
        args = hardware_video_args(selection.backend, options, turbo=options.turbo)
    else:
        args = software_video_args(codec, options, turbo=options.turbo)
    args.extend(codec_tag_args(codec, options.container))
    return args


def build_plan(
    profile: MediaProfile,
    options: ConversionOptions,
    capabilities: CapabilitySet,
    force_software_decode: bool = False,
    force_software_encode: bool = False,
) -> EncodePlan:
    """Build the plan for one execution attempt.

    Args:
        profile: Probed input; an unknown profile makes every stream
            re-encode through optional maps.
        options: Target configuration (used read-only).
        capabilities: Detected engine capabilities.
        force_software_decode: Never attach hardware decode hints.
        force_software_encode: Always use the software encoder.

    Returns:
        EncodePlan for the attempt.

    Raises:
        PlanningImpossible: If an option is outside its enumeration or an
            explicitly selected stream does not exist.
    """
    _check_options(options)
    warnings: list[str] = []
    codec = effective_video_codec(options)

    # Video
    video_stream = _select_video(profile, options) if profile.probe_succeeded else None
    has_video = video_stream is not None or not profile.probe_succeeded

    tone_map_available = capabilities.supports_software_tonemap
    if not tone_map_available and needs_tone_map(video_stream, options):
        warnings.append(
            "HDR input left untouched: the engine lacks the zscale/tonemap filters"
        )

    video_decision: VideoDecision | None = None
    video: StreamDecision | None = None
    decode_args: tuple[str, ...] = ()
    device_args: tuple[str, ...] = ()
    filter_chain: str | None = None
    hardware_backend: str | None = None
    supports_two_pass = False

    if has_video:
        encode_options = options
        video_decision = evaluate_video(
            video_stream, profile, options, tone_map_available=tone_map_available
        )
        source_map = _video_map(profile, video_stream, options.video_stream)

        if video_decision.copy:
            video = StreamDecision(
                kind=StreamKind.VIDEO, action=StreamAction.COPY, source_map=source_map
            )
        else:
            selection = select_encoder(
                codec,
                capabilities,
                prefer_hardware=options.use_hw_encoder or options.turbo,
                force_software=force_software_encode,
            )
            if selection.fallback_occurred:
                warnings.append(
                    f"No hardware encoder for {codec.label}; using {selection.encoder}"
                )

            stages: list[str | None] = []
            if video_decision.tone_map:
                stages.append(TONEMAP_FILTER)
            if video_decision.scale:
                assert video_decision.target_width and video_decision.target_height
                stages.append(
                    scale_filter(
                        video_decision.target_width,
                        video_decision.target_height,
                        turbo=options.turbo,
                    )
                )
            needs_filters = bool(stages)

            if selection.backend is not None:
                hardware_backend = selection.backend.name
                device_args = tuple(hardware_device_args(selection.backend))
                stages.append(hardware_upload_filter(selection.backend))
                # Filters need frames in system memory, so decode stays in software
                if not needs_filters and not force_software_decode:
                    source_codec = (
                        video_codec_family(video_stream.codec_name)
                        if video_stream is not None
                        else None
                    )
                    decode_args = hardware_decode_args(
                        selection.backend, source_codec, capabilities
                    )
            else:
                supports_two_pass = True
                if (
                    options.two_pass
                    and options.use_crf
                    and codec in _TWO_PASS_NEEDS_BITRATE
                ):
                    encode_options = replace(options, use_crf=False)
                    warnings.append(
                        f"Two-pass {codec.label} encodes at "
                        f"{options.video_bitrate_k}k instead of CRF {options.crf}"
                    )

            filter_chain = build_filter_chain(stages)
            video = StreamDecision(
                kind=StreamKind.VIDEO,
                action=StreamAction.ENCODE,
                source_map=source_map,
                encoder=selection.encoder,
                encoder_args=tuple(
                    _plan_video_encode(codec, selection, encode_options)
                ),
                reasons=tuple(r.value for r in video_decision.reasons),
            )

    # Audio
    audio: StreamDecision | None = None
    track = _select_audio(profile, options) if profile.probe_succeeded else None
    if track is not None or not profile.probe_succeeded:
        position = options.audio_stream if options.audio_stream is not None else 0
        source_map = _audio_map(profile, track, position)
        if track is not None:
            audio_decision = evaluate_audio(track, profile, options)
            copy, channels = audio_decision.copy, audio_decision.target_channels
            reasons = tuple(r.value for r in audio_decision.reasons)
        else:
            copy, channels = False, effective_audio_channels(None, options)
            reasons = ("unknown_source",)

        if copy:
            audio = StreamDecision(
                kind=StreamKind.AUDIO, action=StreamAction.COPY, source_map=source_map
            )
        else:
            audio = StreamDecision(
                kind=StreamKind.AUDIO,
                action=StreamAction.ENCODE,
                source_map=source_map,
                encoder=options.audio_codec.encoder,
                encoder_args=tuple(
                    audio_args(options.audio_bitrate_k, channels, options.sample_rate)
                ),
                reasons=reasons,
            )

    plan = EncodePlan(
        container=options.container,
        video_codec=codec,
        video=video,
        audio=audio,
        decode_args=decode_args,
        device_args=device_args,
        filter_chain=filter_chain,
        frame_rate=None if options.turbo else options.frame_rate,
        container_args=tuple(container_args(options.container)),
        tone_mapped=bool(video_decision and video_decision.tone_map),
        scaled=bool(video_decision and video_decision.scale),
        target_width=video_decision.target_width if video_decision else None,
        target_height=video_decision.target_height if video_decision else None,
        hardware_backend=hardware_backend,
        supports_two_pass=supports_two_pass,
        turbo=options.turbo,
        warnings=tuple(warnings),
    )

    logger.debug(
        "Plan built: video=%s audio=%s encoder=%s filters=%s",
        video.action.value if video else "none",
        audio.action.value if audio else "none",
        video.encoder if video else None,
        filter_chain,
        extra={
            "video_action": video.action.value if video else None,
            "audio_action": audio.action.value if audio else None,
            "hardware_backend": hardware_backend,
        },
    )
    return plan
