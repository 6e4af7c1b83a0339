"""Shared test fixtures for FormatFlex."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from formatflex.config.loader import clear_config_cache
from formatflex.domain.models import AudioTrackInfo, MediaProfile, VideoStreamInfo
from formatflex.tools.detection import clear_capabilities_cache


@pytest.fixture(autouse=True)
def _reset_caches():
    """Keep process-wide caches from leaking between tests."""
    clear_config_cache()
    clear_capabilities_cache()
    yield
    clear_config_cache()
    clear_capabilities_cache()


@pytest.fixture
def input_file(tmp_path: Path) -> Path:
    """An existing (empty) input file."""
    path = tmp_path / "movie.mkv"
    path.write_bytes(b"\x1a\x45\xdf\xa3")
    return path


@pytest.fixture
def ffprobe_report() -> Callable[..., dict[str, Any]]:
    """Factory for ffprobe JSON reports.

    Called with keyword overrides for the video and audio stream entries;
    pass ``video=None`` or ``audio=None`` to leave a stream out.
    """

    def build(
        video: dict[str, Any] | None = None,
        audio: dict[str, Any] | None = None,
        duration: str | None = "120.000000",
        extra_streams: list[dict[str, Any]] | None = None,
        no_video: bool = False,
        no_audio: bool = False,
    ) -> dict[str, Any]:
        streams: list[dict[str, Any]] = []
        if not no_video:
            streams.append(
                {
                    "index": 0,
                    "codec_type": "video",
                    "codec_name": "h264",
                    "width": 1920,
                    "height": 1080,
                    "pix_fmt": "yuv420p",
                    "avg_frame_rate": "24000/1001",
                    **(video or {}),
                }
            )
        if not no_audio:
            streams.append(
                {
                    "index": 1,
                    "codec_type": "audio",
                    "codec_name": "aac",
                    "channels": 2,
                    "sample_rate": "48000",
                    "tags": {"language": "eng"},
                    **(audio or {}),
                }
            )
        streams.extend(extra_streams or [])
        report: dict[str, Any] = {
            "streams": streams,
            "format": {"format_name": "matroska,webm"},
        }
        if duration is not None:
            report["format"]["duration"] = duration
        return report

    return build


@pytest.fixture
def sdr_profile() -> MediaProfile:
    """1080p H.264 SDR input with stereo AAC at 48 kHz."""
    video = VideoStreamInfo(
        index=0,
        width=1920,
        height=1080,
        codec_name="h264",
        pixel_format="yuv420p",
        frame_rate="24/1",
    )
    audio = AudioTrackInfo(
        index=1, codec_name="aac", channels=2, sample_rate_hz=48000, language="eng"
    )
    return MediaProfile(
        duration_ms=120_000,
        video=video,
        video_streams=(video,),
        audio_tracks=(audio,),
        container_format="matroska,webm",
    )


@pytest.fixture
def hdr_profile() -> MediaProfile:
    """4K HEVC HDR10 input with 5.1 E-AC-3."""
    video = VideoStreamInfo(
        index=0,
        width=3840,
        height=2160,
        codec_name="hevc",
        pixel_format="yuv420p10le",
        color_transfer="smpte2084",
        color_primaries="bt2020",
        frame_rate="24000/1001",
        is_hdr=True,
    )
    audio = AudioTrackInfo(
        index=1, codec_name="eac3", channels=6, sample_rate_hz=48000
    )
    return MediaProfile(
        duration_ms=5_400_000,
        video=video,
        video_streams=(video,),
        audio_tracks=(audio,),
    )
