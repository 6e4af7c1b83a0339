"""User-chosen conversion target.

ConversionOptions is mutable and owned by the caller. The orchestrator works
from a snapshot so later edits cannot change a run (or its retry) midway.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from formatflex.core.codecs import (
    RES_1080P,
    AudioCodec,
    Container,
    Resolution,
    VideoCodec,
)

CRF_RANGE = (0, 63)
MAX_AUDIO_CHANNELS = 8


@dataclass(frozen=True)
class Preset:
    """Named bundle of target settings."""

    name: str
    container: Container
    video_codec: VideoCodec
    audio_codec: AudioCodec
    resolution: Resolution
    two_pass: bool = False
    use_crf: bool = True
    crf: int = 20
    video_bitrate_k: int = 4000
    audio_bitrate_k: int = 192
    audio_channels: int = 2
    sample_rate: int = 48000
    frame_rate: float | None = None
    tone_map: bool = True


@dataclass
class ConversionOptions:
    """Target configuration for one conversion."""

    container: Container = Container.MP4
    video_codec: VideoCodec = VideoCodec.H264
    audio_codec: AudioCodec = AudioCodec.AAC
    resolution: Resolution = RES_1080P

    # Quality: CRF when use_crf, otherwise a fixed video bitrate
    use_crf: bool = True
    crf: int = 20
    video_bitrate_k: int = 4000

    audio_bitrate_k: int = 192
    audio_channels: int = 2
    sample_rate: int = 48000

    # None keeps the source frame rate
    frame_rate: float | None = None

    tone_map: bool = True
    use_hw_encoder: bool = False
    turbo: bool = False
    two_pass: bool = False

    # Stream selection by position among streams of the same type;
    # audio_stream None picks the first audio track
    video_stream: int = 0
    audio_stream: int | None = None
    allow_downmix: bool = True

    def __post_init__(self) -> None:
        """Validate option values."""
        low, high = CRF_RANGE
        if not low <= self.crf <= high:
            raise ValueError(f"crf must be between {low} and {high}, got {self.crf}")
        codec = self.video_codec
        if isinstance(codec, VideoCodec) and self.crf > codec.max_crf:
            raise ValueError(
                f"crf for {codec.label} must be at most {codec.max_crf}, "
                f"got {self.crf}"
            )
        if self.video_bitrate_k <= 0:
            raise ValueError(
                f"video_bitrate_k must be positive, got {self.video_bitrate_k}"
            )
        if self.audio_bitrate_k <= 0:
            raise ValueError(
                f"audio_bitrate_k must be positive, got {self.audio_bitrate_k}"
            )
        if not 1 <= self.audio_channels <= MAX_AUDIO_CHANNELS:
            raise ValueError(
                f"audio_channels must be between 1 and {MAX_AUDIO_CHANNELS}, "
                f"got {self.audio_channels}"
            )
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.frame_rate is not None and self.frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {self.frame_rate}")
        if self.video_stream < 0:
            raise ValueError(f"video_stream must be >= 0, got {self.video_stream}")
        if self.audio_stream is not None and self.audio_stream < 0:
            raise ValueError(f"audio_stream must be >= 0, got {self.audio_stream}")

    @classmethod
    def from_preset(cls, preset: Preset) -> ConversionOptions:
        """Create options initialized from a preset."""
        options = cls()
        options.apply_preset(preset)
        return options

    def apply_preset(self, preset: Preset) -> None:
        """Overwrite target settings with a preset's values.

        Stream selection and the hardware/turbo/downmix toggles are kept.
        """
        self.container = preset.container
        self.video_codec = preset.video_codec
        self.audio_codec = preset.audio_codec
        self.resolution = preset.resolution
        self.two_pass = preset.two_pass
        self.use_crf = preset.use_crf
        self.crf = preset.crf
        self.video_bitrate_k = preset.video_bitrate_k
        self.audio_bitrate_k = preset.audio_bitrate_k
        self.audio_channels = preset.audio_channels
        self.sample_rate = preset.sample_rate
        self.frame_rate = preset.frame_rate
        self.tone_map = preset.tone_map
        self.__post_init__()

    def snapshot(self, **changes: object) -> ConversionOptions:
        """Return an independent copy, optionally with fields changed.

        Args:
            **changes: Field overrides applied to the copy.

        Returns:
            New ConversionOptions; the original is never modified.
        """
        return dataclasses.replace(self, **changes)
