"""CLI presets command: list available conversion presets."""

from typing import Any

import click

from formatflex.cli.output import echo_json
from formatflex.config import BUILTIN_PRESETS, FormatFlexConfig
from formatflex.domain.options import Preset


def preset_to_dict(slug: str, preset: Preset) -> dict[str, Any]:
    """Serialize a preset for JSON output."""
    return {
        "slug": slug,
        "name": preset.name,
        "builtin": BUILTIN_PRESETS.get(slug) == preset,
        "container": preset.container.value,
        "video_codec": preset.video_codec.value,
        "audio_codec": preset.audio_codec.value,
        "resolution": preset.resolution.label,
        "quality": (
            {"crf": preset.crf}
            if preset.use_crf
            else {"video_bitrate_k": preset.video_bitrate_k}
        ),
        "two_pass": preset.two_pass,
        "audio_bitrate_k": preset.audio_bitrate_k,
        "audio_channels": preset.audio_channels,
        "sample_rate": preset.sample_rate,
    }


def format_preset_line(slug: str, preset: Preset) -> str:
    """One-line summary of a preset."""
    quality = f"crf {preset.crf}" if preset.use_crf else f"{preset.video_bitrate_k}k"
    if preset.two_pass:
        quality += ", two-pass"
    return (
        f"{slug:<20} {preset.name}: {preset.container.value}/"
        f"{preset.video_codec.value}/{preset.audio_codec.value}, "
        f"{preset.resolution.label}, {quality}, "
        f"{preset.audio_bitrate_k}k {preset.audio_channels}ch"
    )


@click.command("presets")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_obj
def presets_command(obj: dict, json_output: bool) -> None:
    """List built-in and configured presets."""
    config: FormatFlexConfig = obj["config"]

    if json_output:
        echo_json([preset_to_dict(slug, p) for slug, p in config.presets.items()])
        return

    for slug, preset in config.presets.items():
        marker = "" if BUILTIN_PRESETS.get(slug) == preset else " (custom)"
        click.echo(format_preset_line(slug, preset) + marker)
