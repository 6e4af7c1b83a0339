"""Tests for per-stream transcode decisions."""

from dataclasses import replace

import pytest

from formatflex.core.codecs import (
    RES_720P,
    RES_1080P,
    RES_2160P,
    AudioCodec,
    Resolution,
    VideoCodec,
)
from formatflex.domain.models import AudioTrackInfo, MediaProfile, VideoStreamInfo
from formatflex.domain.options import ConversionOptions
from formatflex.executor.transcode.decisions import (
    ReencodeReason,
    compute_scale_target,
    effective_audio_channels,
    effective_video_codec,
    evaluate_audio,
    evaluate_video,
    needs_scale,
    needs_tone_map,
)


class TestEffectiveCodec:
    """Tests for effective_video_codec function."""

    def test_turbo_forces_h264(self) -> None:
        """Turbo always targets the universal codec."""
        options = ConversionOptions(video_codec=VideoCodec.AV1, turbo=True)
        assert effective_video_codec(options) is VideoCodec.H264

    def test_requested_codec(self) -> None:
        """Without turbo the requested codec is kept."""
        options = ConversionOptions(video_codec=VideoCodec.VP9)
        assert effective_video_codec(options) is VideoCodec.VP9


class TestNeedsToneMap:
    """Tests for needs_tone_map function."""

    def test_hdr_with_tone_map(self, hdr_profile: MediaProfile) -> None:
        """HDR input with tone-map enabled is tone-mapped."""
        assert needs_tone_map(hdr_profile.video, ConversionOptions())

    def test_disabled(self, hdr_profile: MediaProfile) -> None:
        """Tone-map off leaves HDR alone."""
        assert not needs_tone_map(hdr_profile.video, ConversionOptions(tone_map=False))

    def test_turbo_skips(self, hdr_profile: MediaProfile) -> None:
        """Turbo never tone-maps."""
        assert not needs_tone_map(hdr_profile.video, ConversionOptions(turbo=True))

    def test_sdr(self, sdr_profile: MediaProfile) -> None:
        """SDR input never needs tone-mapping."""
        assert not needs_tone_map(sdr_profile.video, ConversionOptions())

    def test_unknown_stream(self) -> None:
        """Without a known stream nothing is tone-mapped."""
        assert not needs_tone_map(None, ConversionOptions())

    def test_selected_stream_decides(
        self, sdr_profile: MediaProfile, hdr_profile: MediaProfile
    ) -> None:
        """An HDR second stream is tone-mapped although the first is SDR."""
        hdr_stream = replace(hdr_profile.video, index=2)
        profile = replace(
            sdr_profile, video_streams=(sdr_profile.video, hdr_stream)
        )
        selected = profile.select_video(1)
        decision = evaluate_video(selected, profile, ConversionOptions())
        assert decision.tone_map
        assert ReencodeReason.TONE_MAP in decision.reasons
        assert not evaluate_video(
            profile.select_video(0), profile, ConversionOptions()
        ).tone_map


class TestComputeScaleTarget:
    """Tests for compute_scale_target function."""

    @pytest.mark.parametrize(
        ("width", "height", "ceiling", "expected"),
        [
            (3840, 2160, RES_1080P, (1920, 1080)),
            (3840, 1600, RES_1080P, (1920, 800)),
            (1440, 1080, RES_720P, (960, 720)),
            (1920, 1080, RES_720P, (1280, 720)),
            (4096, 2160, RES_1080P, (1920, 1012)),
        ],
    )
    def test_fits_box(self, width, height, ceiling, expected) -> None:
        """The limiting side lands on the box, the other keeps aspect."""
        assert compute_scale_target(width, height, ceiling) == expected

    def test_results_are_even(self) -> None:
        """Odd results are rounded down to even."""
        target_w, target_h = compute_scale_target(1001, 1001, Resolution(853, 480, "x"))
        assert target_w % 2 == 0
        assert target_h % 2 == 0

    def test_minimum_dimension(self) -> None:
        """Extreme aspect ratios never go below 2 pixels."""
        assert compute_scale_target(10_000, 2, RES_720P) == (1280, 2)


class TestNeedsScale:
    """Tests for needs_scale function."""

    def test_exceeds(self) -> None:
        """Either side above the ceiling triggers scaling."""
        assert needs_scale(VideoStreamInfo(index=0, width=1920, height=1200), RES_1080P)

    def test_fits(self) -> None:
        """Inputs inside the box are not scaled."""
        video = VideoStreamInfo(index=0, width=1920, height=1080)
        assert not needs_scale(video, RES_1080P)
        assert not needs_scale(video, RES_2160P)

    def test_unknown_dimensions(self) -> None:
        """Missing dimensions mean no scaling."""
        assert not needs_scale(VideoStreamInfo(index=0, width=4000), RES_1080P)
        assert not needs_scale(None, RES_1080P)


class TestEvaluateVideo:
    """Tests for evaluate_video function."""

    def test_copy_when_everything_matches(self, sdr_profile: MediaProfile) -> None:
        """Matching codec, 4:2:0, fitting size and source fps allow copy."""
        decision = evaluate_video(sdr_profile.video, sdr_profile, ConversionOptions())
        assert decision.copy
        assert decision.reasons == ()

    def test_codec_mismatch(self, sdr_profile: MediaProfile) -> None:
        """A different target codec forces re-encode."""
        options = ConversionOptions(video_codec=VideoCodec.HEVC)
        decision = evaluate_video(sdr_profile.video, sdr_profile, options)
        assert not decision.copy
        assert ReencodeReason.CODEC_MISMATCH in decision.reasons

    def test_frame_rate_forces_encode(self, sdr_profile: MediaProfile) -> None:
        """A requested frame rate forces re-encode."""
        options = ConversionOptions(frame_rate=30.0)
        decision = evaluate_video(sdr_profile.video, sdr_profile, options)
        assert ReencodeReason.FRAME_RATE in decision.reasons

    def test_unknown_pixel_format_blocks_copy(self) -> None:
        """Copy requires a known 4:2:0 pixel format."""
        video = VideoStreamInfo(index=0, width=1280, height=720, codec_name="h264")
        profile = MediaProfile(video=video, video_streams=(video,))
        decision = evaluate_video(video, profile, ConversionOptions())
        assert decision.reasons == (ReencodeReason.PIXEL_FORMAT,)

    def test_hdr_tone_map_and_scale(self, hdr_profile: MediaProfile) -> None:
        """4K HDR to 1080p needs both tone-map and scale."""
        options = ConversionOptions(video_codec=VideoCodec.HEVC)
        decision = evaluate_video(hdr_profile.video, hdr_profile, options)
        assert decision.tone_map
        assert decision.scale
        assert (decision.target_width, decision.target_height) == (1920, 1080)
        assert not decision.copy

    def test_tone_map_unavailable(self, hdr_profile: MediaProfile) -> None:
        """Missing tone-map filters leave HDR as is."""
        options = ConversionOptions(
            video_codec=VideoCodec.HEVC, resolution=RES_2160P
        )
        decision = evaluate_video(
            hdr_profile.video, hdr_profile, options, tone_map_available=False
        )
        assert not decision.tone_map
        assert decision.copy

    def test_unknown_profile(self) -> None:
        """An unprobed input always re-encodes."""
        decision = evaluate_video(None, MediaProfile.unknown(), ConversionOptions())
        assert not decision.copy
        assert ReencodeReason.UNKNOWN_SOURCE in decision.reasons


class TestEvaluateAudio:
    """Tests for evaluate_audio and effective_audio_channels."""

    def test_copy_when_matching(self, sdr_profile: MediaProfile) -> None:
        """Same codec, channels and rate allow copy."""
        decision = evaluate_audio(
            sdr_profile.audio_tracks[0], sdr_profile, ConversionOptions()
        )
        assert decision.copy
        assert decision.target_channels == 2

    def test_downmix(self, hdr_profile: MediaProfile) -> None:
        """Six channels to stereo re-encodes."""
        options = ConversionOptions(audio_codec=AudioCodec.EAC3)
        decision = evaluate_audio(hdr_profile.audio_tracks[0], hdr_profile, options)
        assert not decision.copy
        assert decision.reasons == (ReencodeReason.CHANNELS,)
        assert decision.target_channels == 2

    def test_downmix_refused_keeps_layout(self, hdr_profile: MediaProfile) -> None:
        """With downmix disallowed the source channel count is kept."""
        options = ConversionOptions(audio_codec=AudioCodec.EAC3, allow_downmix=False)
        decision = evaluate_audio(hdr_profile.audio_tracks[0], hdr_profile, options)
        assert decision.copy
        assert decision.target_channels == 6

    def test_upmix_allowed(self) -> None:
        """Requesting more channels than the source is honored."""
        options = ConversionOptions(audio_channels=6, allow_downmix=False)
        assert effective_audio_channels(2, options) == 6

    def test_sample_rate_mismatch(self, sdr_profile: MediaProfile) -> None:
        """A different sample rate re-encodes."""
        track = AudioTrackInfo(
            index=1, codec_name="aac", channels=2, sample_rate_hz=44100
        )
        decision = evaluate_audio(track, sdr_profile, ConversionOptions())
        assert decision.reasons == (ReencodeReason.SAMPLE_RATE,)
