"""Tests for ConversionOptions and Preset."""

import pytest

from formatflex.core.codecs import RES_720P, AudioCodec, Container, VideoCodec
from formatflex.domain.options import ConversionOptions, Preset


@pytest.fixture
def web_preset() -> Preset:
    """A bitrate-driven two-pass preset."""
    return Preset(
        name="Web",
        container=Container.WEBM,
        video_codec=VideoCodec.VP9,
        audio_codec=AudioCodec.OPUS,
        resolution=RES_720P,
        two_pass=True,
        use_crf=False,
        video_bitrate_k=2500,
        audio_bitrate_k=128,
        tone_map=False,
    )


class TestConversionOptionsValidation:
    """Tests for option validation."""

    def test_defaults_are_valid(self) -> None:
        """Default options construct without error."""
        options = ConversionOptions()
        assert options.container is Container.MP4
        assert options.audio_stream is None

    @pytest.mark.parametrize(
        ("field", "value", "message"),
        [
            ("crf", 64, "crf"),
            ("crf", -1, "crf"),
            ("video_bitrate_k", 0, "video_bitrate_k"),
            ("audio_bitrate_k", -5, "audio_bitrate_k"),
            ("audio_channels", 0, "audio_channels"),
            ("audio_channels", 9, "audio_channels"),
            ("sample_rate", 0, "sample_rate"),
            ("frame_rate", 0.0, "frame_rate"),
            ("video_stream", -1, "video_stream"),
            ("audio_stream", -1, "audio_stream"),
        ],
    )
    def test_rejects_invalid_values(self, field: str, value, message: str) -> None:
        """Out-of-range values raise ValueError naming the field."""
        with pytest.raises(ValueError, match=message):
            ConversionOptions(**{field: value})

    @pytest.mark.parametrize(
        ("codec", "crf", "valid"),
        [
            (VideoCodec.H264, 51, True),
            (VideoCodec.H264, 55, False),
            (VideoCodec.HEVC, 52, False),
            (VideoCodec.VP9, 55, True),
            (VideoCodec.AV1, 63, True),
        ],
    )
    def test_crf_limit_per_codec(
        self, codec: VideoCodec, crf: int, valid: bool
    ) -> None:
        """x264 and x265 stop at 51; VP9 and AV1 go to 63."""
        if valid:
            assert ConversionOptions(video_codec=codec, crf=crf).crf == crf
        else:
            with pytest.raises(ValueError, match="at most 51"):
                ConversionOptions(video_codec=codec, crf=crf)


class TestPresets:
    """Tests for applying presets."""

    def test_from_preset(self, web_preset: Preset) -> None:
        """from_preset copies every target setting."""
        options = ConversionOptions.from_preset(web_preset)
        assert options.container is Container.WEBM
        assert options.video_codec is VideoCodec.VP9
        assert options.two_pass is True
        assert options.use_crf is False
        assert options.video_bitrate_k == 2500
        assert options.tone_map is False

    def test_apply_preset_keeps_toggles(self, web_preset: Preset) -> None:
        """Stream selection and hardware toggles survive a preset."""
        options = ConversionOptions(use_hw_encoder=True, audio_stream=2, turbo=True)
        options.apply_preset(web_preset)
        assert options.use_hw_encoder is True
        assert options.turbo is True
        assert options.audio_stream == 2


class TestSnapshot:
    """Tests for ConversionOptions.snapshot."""

    def test_snapshot_is_independent(self) -> None:
        """Editing the original does not change the snapshot."""
        options = ConversionOptions(crf=18)
        copy = options.snapshot()
        options.crf = 30
        assert copy.crf == 18

    def test_snapshot_with_changes(self) -> None:
        """Changes apply to the copy only."""
        options = ConversionOptions(use_hw_encoder=True, turbo=True)
        copy = options.snapshot(use_hw_encoder=False, turbo=False)
        assert copy.use_hw_encoder is False
        assert options.use_hw_encoder is True

    def test_snapshot_validates(self) -> None:
        """Invalid changes are rejected."""
        with pytest.raises(ValueError):
            ConversionOptions().snapshot(crf=100)
