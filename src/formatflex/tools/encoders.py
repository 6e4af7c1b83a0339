"""Hardware backend table and encoder selection.

Hardware support is a single prioritized list: the first backend whose
encoder for the requested codec appears in the CapabilitySet wins, and the
software encoder is the fallback. Adding a backend is one entry in
HARDWARE_BACKENDS.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from formatflex.core.codecs import VideoCodec
from formatflex.tools.models import CapabilitySet

_ALL_CODECS = frozenset(VideoCodec)
_AVC_HEVC_AV1 = frozenset({VideoCodec.H264, VideoCodec.HEVC, VideoCodec.AV1})


@dataclass(frozen=True)
class HardwareBackend:
    """One vendor/platform encoding backend."""

    name: str
    """Short platform name (e.g., 'nvenc', 'qsv')."""

    encoder_suffix: str
    """Suffix appended to the codec name to form the encoder ('_nvenc')."""

    codecs: frozenset[VideoCodec]
    """Codecs this backend can encode."""

    hwaccel: str | None = None
    """Matching ffmpeg -hwaccel method for zero-copy decode, if any."""

    decode_codecs: frozenset[VideoCodec] = field(default_factory=frozenset)
    """Source codecs the backend's decoder handles."""

    decoder_suffix: str | None = None
    """Suffix of a dedicated hardware decoder ('_mediacodec') when decoding
    goes through a named decoder."""

    def encoder_for(self, codec: VideoCodec) -> str | None:
        """Encoder name for a codec, or None if the backend lacks it."""
        if codec not in self.codecs:
            return None
        return f"{codec.value}{self.encoder_suffix}"


# Discrete GPU first, integrated GPU second, platform media codecs last
HARDWARE_BACKENDS: tuple[HardwareBackend, ...] = (
    HardwareBackend(
        "nvenc", "_nvenc", _AVC_HEVC_AV1, hwaccel="cuda", decode_codecs=_ALL_CODECS
    ),
    HardwareBackend(
        "qsv", "_qsv", _ALL_CODECS, hwaccel="qsv", decode_codecs=_ALL_CODECS
    ),
    HardwareBackend(
        "amf", "_amf", _AVC_HEVC_AV1, hwaccel="d3d11va", decode_codecs=_ALL_CODECS
    ),
    HardwareBackend("vaapi", "_vaapi", _ALL_CODECS),
    HardwareBackend(
        "videotoolbox",
        "_videotoolbox",
        frozenset({VideoCodec.H264, VideoCodec.HEVC}),
        hwaccel="videotoolbox",
        decode_codecs=frozenset({VideoCodec.H264, VideoCodec.HEVC}),
    ),
    HardwareBackend(
        "mediacodec",
        "_mediacodec",
        _ALL_CODECS,
        hwaccel="mediacodec",
        decode_codecs=_ALL_CODECS,
        decoder_suffix="_mediacodec",
    ),
)

BACKENDS_BY_NAME: dict[str, HardwareBackend] = {b.name: b for b in HARDWARE_BACKENDS}


@dataclass(frozen=True)
class EncoderSelection:
    """Result of encoder selection."""

    encoder: str
    """FFmpeg encoder name (e.g., 'libx265', 'hevc_nvenc')."""

    encoder_type: Literal["hardware", "software"]
    """Whether this is a hardware or software encoder."""

    backend: HardwareBackend | None = None
    """Hardware backend if hardware encoder."""

    fallback_occurred: bool = False
    """True if hardware was requested but no backend offered the codec."""


def select_encoder(
    codec: VideoCodec,
    capabilities: CapabilitySet,
    *,
    prefer_hardware: bool,
    force_software: bool = False,
) -> EncoderSelection:
    """Select the encoder for a codec.

    Args:
        codec: Effective target codec.
        capabilities: Detected engine capabilities.
        prefer_hardware: Whether a hardware encoder was requested.
        force_software: Always use the software encoder; wins outright.

    Returns:
        EncoderSelection describing the chosen encoder.
    """
    if force_software or not prefer_hardware:
        return EncoderSelection(encoder=codec.software_encoder, encoder_type="software")

    for backend in HARDWARE_BACKENDS:
        encoder = backend.encoder_for(codec)
        if encoder is not None and capabilities.has_encoder(encoder):
            return EncoderSelection(
                encoder=encoder, encoder_type="hardware", backend=backend
            )

    return EncoderSelection(
        encoder=codec.software_encoder,
        encoder_type="software",
        fallback_occurred=True,
    )


def hardware_decode_args(
    backend: HardwareBackend,
    source_codec: VideoCodec | None,
    capabilities: CapabilitySet,
) -> tuple[str, ...]:
    """Pre-input arguments for decoding the source on the encoding hardware.

    Only returned when a hardware decoder is known to exist for the source
    codec; otherwise decoding stays on the general-purpose path.

    Args:
        backend: Backend chosen for encoding.
        source_codec: Family of the source video codec, None if unknown.
        capabilities: Detected engine capabilities.

    Returns:
        Arguments to place before ``-i``, or an empty tuple.
    """
    if source_codec is None or source_codec not in backend.decode_codecs:
        return ()
    if backend.hwaccel is None or not capabilities.has_hwaccel(backend.hwaccel):
        return ()

    if backend.decoder_suffix:
        decoder = f"{source_codec.value}{backend.decoder_suffix}"
        if not capabilities.has_decoder(decoder):
            return ()
        return (
            "-hwaccel",
            backend.hwaccel,
            "-c:v",
            decoder,
            "-hwaccel_output_format",
            "yuv420p",
        )

    return ("-hwaccel", backend.hwaccel)
