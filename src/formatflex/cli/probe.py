"""CLI probe command: show the normalized profile of an input."""

import dataclasses
import logging
from pathlib import Path
from typing import Any

import click

from formatflex.cli.exit_codes import ExitCode
from formatflex.cli.output import echo_json, error_exit
from formatflex.config import FormatFlexConfig
from formatflex.core.formatting import format_clock
from formatflex.domain.models import MediaProfile
from formatflex.exceptions import ProbeFailure
from formatflex.introspector import FFprobeIntrospector, parse_ffprobe_output
from formatflex.tools import find_tool

logger = logging.getLogger(__name__)


def format_profile_human(path: Path, profile: MediaProfile) -> str:
    """Format a profile for terminal output.

    Args:
        path: Probed file.
        profile: Normalized profile.

    Returns:
        Multi-line description.
    """
    lines = [f"File: {path}"]
    if profile.container_format:
        lines.append(f"Container: {profile.container_format}")
    duration = (
        format_clock(profile.duration_ms)
        if profile.duration_ms is not None
        else "unknown"
    )
    lines.append(f"Duration: {duration}")

    lines.append("")
    lines.append("Video:")
    if not profile.video_streams:
        lines.append("  (none)")
    for position, video in enumerate(profile.video_streams):
        size = f"{video.width}x{video.height}" if video.has_dimensions else "?x?"
        hdr = " HDR" if video.is_hdr else ""
        lines.append(
            f"  #{position} (stream {video.index}): {video.codec_name or 'unknown'} "
            f"{size} {video.pixel_format or '?'}{hdr}"
        )

    lines.append("")
    lines.append("Audio:")
    if not profile.audio_tracks:
        lines.append("  (none)")
    for position, track in enumerate(profile.audio_tracks):
        details = [track.codec_name or "unknown"]
        if track.channels is not None:
            details.append(f"{track.channels}ch")
        if track.sample_rate_hz is not None:
            details.append(f"{track.sample_rate_hz} Hz")
        if track.language:
            details.append(f"[{track.language}]")
        lines.append(f"  #{position} (stream {track.index}): {' '.join(details)}")

    return "\n".join(lines)


def profile_to_dict(profile: MediaProfile) -> dict[str, Any]:
    """Serialize a profile for JSON output."""
    data = dataclasses.asdict(profile)
    data["is_hdr"] = profile.is_hdr
    return data


@click.command("probe")
@click.argument("input_file", type=click.Path(path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_obj
def probe_command(obj: dict, input_file: Path, json_output: bool) -> None:
    """Show the streams FormatFlex sees in INPUT_FILE."""
    config: FormatFlexConfig = obj["config"]

    if not input_file.exists():
        error_exit(
            f"File not found: {input_file}", ExitCode.TARGET_NOT_FOUND, json_output
        )

    ffprobe_path = find_tool("ffprobe", config.tools.ffprobe)
    if ffprobe_path is None:
        error_exit(
            "ffprobe is not installed or not in PATH",
            ExitCode.TOOL_NOT_AVAILABLE,
            json_output,
        )

    introspector = FFprobeIntrospector(ffprobe_path)
    try:
        report = introspector.get_report(input_file)
    except ProbeFailure as e:
        error_exit(str(e), ExitCode.PROBE_FAILED, json_output)

    profile = parse_ffprobe_output(report)
    if json_output:
        echo_json(profile_to_dict(profile))
    else:
        click.echo(format_profile_human(input_file, profile))
