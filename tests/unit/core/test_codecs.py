"""Tests for the codec, container and resolution registry."""

from enum import Enum

import pytest

from formatflex.core.codecs import (
    RES_720P,
    RES_1080P,
    RES_2160P,
    AudioCodec,
    Container,
    Resolution,
    VideoCodec,
    parse_resolution,
    require_complete,
    video_codec_family,
)


class TestContainer:
    """Tests for Container enum."""

    @pytest.mark.parametrize("container", list(Container))
    def test_every_container_has_extension_and_label(
        self, container: Container
    ) -> None:
        """Each variant resolves its lookup entries."""
        assert container.extension
        assert container.label

    def test_mkv_extension(self) -> None:
        """MKV uses the mkv extension."""
        assert Container.MKV.extension == "mkv"


class TestVideoCodec:
    """Tests for VideoCodec enum."""

    def test_software_encoders(self) -> None:
        """Software encoders map to the expected engine names."""
        assert VideoCodec.H264.software_encoder == "libx264"
        assert VideoCodec.HEVC.software_encoder == "libx265"
        assert VideoCodec.VP9.software_encoder == "libvpx-vp9"
        assert VideoCodec.AV1.software_encoder == "libaom-av1"

    def test_matches_aliases_case_insensitively(self) -> None:
        """Aliases match regardless of case."""
        assert VideoCodec.H264.matches("AVC1")
        assert VideoCodec.HEVC.matches("hev1")
        assert not VideoCodec.HEVC.matches("h264")

    def test_matches_none_is_false(self) -> None:
        """Missing codec names never match."""
        assert not VideoCodec.H264.matches(None)
        assert not VideoCodec.H264.matches("")


class TestAudioCodec:
    """Tests for AudioCodec enum."""

    def test_encoders(self) -> None:
        """Audio codecs resolve to their encoders."""
        assert AudioCodec.OPUS.encoder == "libopus"
        assert AudioCodec.MP3.encoder == "libmp3lame"
        assert AudioCodec.AAC.encoder == "aac"

    def test_matches(self) -> None:
        """Only the exact codec name matches."""
        assert AudioCodec.AC3.matches("AC3")
        assert not AudioCodec.AC3.matches("eac3")


class TestVideoCodecFamily:
    """Tests for video_codec_family function."""

    def test_known_alias(self) -> None:
        """Aliases resolve to their family."""
        assert video_codec_family("h265") is VideoCodec.HEVC
        assert video_codec_family("av01") is VideoCodec.AV1

    def test_unknown_codec(self) -> None:
        """Codecs outside the registry resolve to None."""
        assert video_codec_family("mpeg2video") is None
        assert video_codec_family(None) is None


class TestRequireComplete:
    """Tests for require_complete function."""

    def test_complete_table_passes(self) -> None:
        """A table covering every member raises nothing."""
        require_complete({c: c.value for c in Container}, Container)

    def test_missing_member_raises(self) -> None:
        """A missing member is reported by name."""

        class Color(Enum):
            RED = 1
            BLUE = 2

        with pytest.raises(RuntimeError, match="BLUE"):
            require_complete({Color.RED: "red"}, Color)


class TestResolution:
    """Tests for Resolution and parse_resolution."""

    def test_rejects_tiny_dimensions(self) -> None:
        """Dimensions below 2 are invalid."""
        with pytest.raises(ValueError, match="at least 2x2"):
            Resolution(1, 720, "bad")

    def test_str(self) -> None:
        """String form is WIDTHxHEIGHT."""
        assert str(RES_1080P) == "1920x1080"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1080p", RES_1080P),
            ("720P", RES_720P),
            ("4k", RES_2160P),
            (" 2160p ", RES_2160P),
        ],
    )
    def test_parse_named(self, value: str, expected: Resolution) -> None:
        """Named resolutions resolve to the standard ceilings."""
        assert parse_resolution(value) == expected

    def test_parse_explicit_size(self) -> None:
        """WIDTHxHEIGHT strings build a custom ceiling."""
        res = parse_resolution("1024x576")
        assert (res.width, res.height) == (1024, 576)
        assert res.label == "1024x576"

    @pytest.mark.parametrize("value", ["huge", "1920x", "x1080", "-1x5"])
    def test_parse_invalid(self, value: str) -> None:
        """Unparseable values raise ValueError."""
        with pytest.raises(ValueError, match="Invalid resolution"):
            parse_resolution(value)
