"""Conversion presets.

Built-in presets cover common playback targets. Users may add or override
presets in the config file under ``[presets.<slug>]``; those tables are
validated with pydantic before they become Preset objects.

Example:
    [presets.phone]
    name = "Phone"
    container = "mp4"
    video_codec = "h264"
    audio_codec = "aac"
    resolution = "720p"
    crf = 23
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from formatflex.core.codecs import (
    RES_1080P,
    RES_2160P,
    RES_720P,
    AudioCodec,
    Container,
    VideoCodec,
    parse_resolution,
)
from formatflex.domain.options import CRF_RANGE, MAX_AUDIO_CHANNELS, Preset

logger = logging.getLogger(__name__)


class PresetError(Exception):
    """Error loading or validating a preset."""


class PresetNotFoundError(PresetError):
    """Preset does not exist."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(
            f"Preset '{name}' not found. Available: {', '.join(available) or 'none'}"
        )


BUILTIN_PRESETS: dict[str, Preset] = {
    "projector-safe": Preset(
        name="Projector Safe",
        container=Container.MP4,
        video_codec=VideoCodec.H264,
        audio_codec=AudioCodec.AAC,
        resolution=RES_1080P,
        crf=20,
        audio_bitrate_k=192,
        audio_channels=2,
    ),
    "smart-tv-legacy": Preset(
        name="Smart TV Legacy",
        container=Container.MP4,
        video_codec=VideoCodec.H264,
        audio_codec=AudioCodec.AC3,
        resolution=RES_1080P,
        crf=19,
        audio_bitrate_k=448,
        audio_channels=6,
    ),
    "streaming-optimized": Preset(
        name="Streaming-Optimized",
        container=Container.MP4,
        video_codec=VideoCodec.H264,
        audio_codec=AudioCodec.AAC,
        resolution=RES_720P,
        crf=22,
        audio_bitrate_k=160,
        audio_channels=2,
    ),
    "space-saver": Preset(
        name="Space Saver",
        container=Container.MKV,
        video_codec=VideoCodec.HEVC,
        audio_codec=AudioCodec.AAC,
        resolution=RES_1080P,
        crf=24,
        audio_bitrate_k=160,
    ),
    "4k-archive": Preset(
        name="4K Archive",
        container=Container.MKV,
        video_codec=VideoCodec.HEVC,
        audio_codec=AudioCodec.AC3,
        resolution=RES_2160P,
        crf=22,
        audio_bitrate_k=448,
        audio_channels=6,
    ),
    "web": Preset(
        name="Web",
        container=Container.WEBM,
        video_codec=VideoCodec.VP9,
        audio_codec=AudioCodec.OPUS,
        resolution=RES_1080P,
        use_crf=False,
        video_bitrate_k=4500,
        two_pass=True,
        audio_bitrate_k=160,
    ),
    "next-gen": Preset(
        name="Next-Gen",
        container=Container.MKV,
        video_codec=VideoCodec.AV1,
        audio_codec=AudioCodec.OPUS,
        resolution=RES_1080P,
        crf=28,
        audio_bitrate_k=160,
    ),
}


class PresetModel(BaseModel):
    """Pydantic model for a user preset table."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str | None = None
    container: str
    video_codec: str
    audio_codec: str
    resolution: str = "1080p"
    two_pass: bool = False
    use_crf: bool = True
    crf: int = Field(default=20, ge=CRF_RANGE[0], le=CRF_RANGE[1])
    video_bitrate_k: int = Field(default=4000, gt=0)
    audio_bitrate_k: int = Field(default=192, gt=0)
    audio_channels: int = Field(default=2, ge=1, le=MAX_AUDIO_CHANNELS)
    sample_rate: int = Field(default=48000, gt=0)
    frame_rate: float | None = Field(default=None, gt=0)
    tone_map: bool = True

    @field_validator("container")
    @classmethod
    def validate_container(cls, v: str) -> str:
        """Validate container name."""
        return _check_choice(v, Container)

    @field_validator("video_codec")
    @classmethod
    def validate_video_codec(cls, v: str) -> str:
        """Validate video codec name."""
        return _check_choice(v, VideoCodec)

    @field_validator("audio_codec")
    @classmethod
    def validate_audio_codec(cls, v: str) -> str:
        """Validate audio codec name."""
        return _check_choice(v, AudioCodec)

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, v: str) -> str:
        """Validate resolution name or WIDTHxHEIGHT."""
        parse_resolution(v)
        return v

    @model_validator(mode="after")
    def validate_crf_for_codec(self) -> "PresetModel":
        """CRF must fit the chosen codec's encoder."""
        codec = VideoCodec(self.video_codec.casefold())
        if self.crf > codec.max_crf:
            raise ValueError(
                f"crf for {codec.label} must be at most {codec.max_crf}, "
                f"got {self.crf}"
            )
        return self

    def to_preset(self, slug: str) -> Preset:
        """Convert to a Preset, using the slug when no name is given."""
        return Preset(
            name=self.name or slug,
            container=Container(self.container.casefold()),
            video_codec=VideoCodec(self.video_codec.casefold()),
            audio_codec=AudioCodec(self.audio_codec.casefold()),
            resolution=parse_resolution(self.resolution),
            two_pass=self.two_pass,
            use_crf=self.use_crf,
            crf=self.crf,
            video_bitrate_k=self.video_bitrate_k,
            audio_bitrate_k=self.audio_bitrate_k,
            audio_channels=self.audio_channels,
            sample_rate=self.sample_rate,
            frame_rate=self.frame_rate,
            tone_map=self.tone_map,
        )


def _check_choice(
    value: str, enum_cls: type[Container | VideoCodec | AudioCodec]
) -> str:
    choices = [member.value for member in enum_cls]
    if value.casefold() not in choices:
        raise ValueError(
            f"Invalid value '{value}'. Must be one of: {', '.join(choices)}"
        )
    return value


def _format_validation_error(slug: str, error: ValidationError) -> str:
    errors = error.errors()
    if errors:
        first_error = errors[0]
        loc = ".".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", str(error))
        if loc:
            return f"Preset '{slug}' is invalid: {loc}: {msg}"
        return f"Preset '{slug}' is invalid: {msg}"
    return f"Preset '{slug}' is invalid: {error}"


def parse_preset(slug: str, table: dict[str, Any]) -> Preset:
    """Validate one ``[presets.<slug>]`` table.

    Args:
        slug: Preset key.
        table: Raw TOML table.

    Returns:
        Validated Preset.

    Raises:
        PresetError: If the table is not a valid preset.
    """
    if not isinstance(table, dict):
        raise PresetError(f"Preset '{slug}' must be a table")
    try:
        model = PresetModel.model_validate(table)
    except ValidationError as e:
        raise PresetError(_format_validation_error(slug, e)) from e
    return model.to_preset(slug)


def load_presets(file_config: dict[str, Any]) -> dict[str, Preset]:
    """Merge built-in presets with the config file's ``[presets]`` tables.

    User presets with a built-in slug replace the built-in.

    Args:
        file_config: Parsed configuration dictionary.

    Returns:
        Preset table keyed by slug.

    Raises:
        PresetError: If a user preset is invalid.
    """
    presets = dict(BUILTIN_PRESETS)
    user_tables = file_config.get("presets", {})
    if not isinstance(user_tables, dict):
        raise PresetError("[presets] must be a table of preset tables")
    for slug, table in user_tables.items():
        key = slug.casefold()
        if key in BUILTIN_PRESETS:
            logger.info("User preset '%s' overrides the built-in preset", key)
        presets[key] = parse_preset(key, table)
    return presets


def get_preset(name: str, presets: dict[str, Preset] | None = None) -> Preset:
    """Look up a preset by slug (case-insensitive).

    Args:
        name: Preset slug.
        presets: Table to search; built-ins when None.

    Returns:
        The matching Preset.

    Raises:
        PresetNotFoundError: If no preset has that slug.
    """
    table = presets if presets is not None else BUILTIN_PRESETS
    key = name.strip().casefold()
    if key not in table:
        raise PresetNotFoundError(name, sorted(table))
    return table[key]
