"""Tests for media profile models."""

import pytest

from formatflex.domain.models import (
    AudioTrackInfo,
    MediaProfile,
    VideoStreamInfo,
    is_hdr_color,
)


class TestIsHdrColor:
    """Tests for is_hdr_color function."""

    @pytest.mark.parametrize(
        ("transfer", "primaries"),
        [
            ("smpte2084", None),
            ("arib-std-b67", None),
            (None, "bt2020"),
            ("SMPTE2084", "bt709"),
        ],
    )
    def test_hdr_tags(self, transfer, primaries) -> None:
        """PQ, HLG or BT.2020 tags flag HDR."""
        assert is_hdr_color(transfer, primaries)

    def test_sdr_tags(self) -> None:
        """BT.709 and missing tags are SDR."""
        assert not is_hdr_color("bt709", "bt709")
        assert not is_hdr_color(None, None)


class TestVideoStreamInfo:
    """Tests for VideoStreamInfo properties."""

    def test_is_420(self) -> None:
        """4:2:0 layouts are recognized, others are not."""
        assert VideoStreamInfo(index=0, pixel_format="yuv420p10le").is_420
        assert VideoStreamInfo(index=0, pixel_format="nv12").is_420
        assert not VideoStreamInfo(index=0, pixel_format="yuv444p").is_420
        assert not VideoStreamInfo(index=0).is_420

    def test_has_dimensions(self) -> None:
        """Both dimensions are needed."""
        assert VideoStreamInfo(index=0, width=1920, height=1080).has_dimensions
        assert not VideoStreamInfo(index=0, width=1920).has_dimensions


class TestMediaProfile:
    """Tests for MediaProfile."""

    def test_unknown(self) -> None:
        """An unknown profile carries nothing."""
        profile = MediaProfile.unknown()
        assert not profile.probe_succeeded
        assert profile.video is None
        assert not profile.is_hdr

    def test_is_hdr_uses_primary_video(self) -> None:
        """HDR follows the primary video stream only."""
        primary = VideoStreamInfo(index=0, is_hdr=False)
        secondary = VideoStreamInfo(index=1, is_hdr=True)
        profile = MediaProfile(video=primary, video_streams=(primary, secondary))
        assert not profile.is_hdr

    def test_select_streams(self) -> None:
        """Selection is by position, out of range gives None."""
        video = VideoStreamInfo(index=0)
        tracks = (AudioTrackInfo(index=1), AudioTrackInfo(index=2))
        profile = MediaProfile(video=video, video_streams=(video,), audio_tracks=tracks)
        assert profile.select_video(0) is video
        assert profile.select_video(1) is None
        assert profile.select_audio(1).index == 2
        assert profile.select_audio(-1) is None
