"""CLI capabilities command: report what the media engine supports."""

from typing import Any

import click

from formatflex.cli.exit_codes import ExitCode
from formatflex.cli.output import echo_json, error_exit
from formatflex.config import FormatFlexConfig
from formatflex.tools import (
    HARDWARE_BACKENDS,
    CapabilitySet,
    find_tool,
    get_capabilities,
)


def _available_backends(caps: CapabilitySet) -> list[str]:
    return [
        backend.name
        for backend in HARDWARE_BACKENDS
        if any(
            caps.has_encoder(backend.encoder_for(codec) or "")
            for codec in backend.codecs
        )
    ]


def capabilities_to_dict(caps: CapabilitySet) -> dict[str, Any]:
    """Serialize a capability set for JSON output."""
    return {
        "version": caps.version,
        "detected_at": caps.detected_at.isoformat() if caps.detected_at else None,
        "hardware_backends": _available_backends(caps),
        "hardware_encoders": sorted(caps.hardware_encoders),
        "hwaccels": sorted(caps.hwaccels),
        "gpu_scale": caps.supports_gpu_scale,
        "gpu_tonemap": caps.supports_gpu_tonemap,
        "software_tonemap": caps.supports_software_tonemap,
        "encoder_count": len(caps.encoders),
        "decoder_count": len(caps.decoders),
        "filter_count": len(caps.filters),
    }


def _yes_no(value: bool) -> str:
    return "yes" if value else "no"


@click.command("capabilities")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.option(
    "--refresh",
    is_flag=True,
    help="Detect again instead of using the cached result.",
)
@click.pass_obj
def capabilities_command(obj: dict, json_output: bool, refresh: bool) -> None:
    """Show encoders, hardware backends and GPU filters of ffmpeg."""
    config: FormatFlexConfig = obj["config"]

    ffmpeg_path = find_tool("ffmpeg", config.tools.ffmpeg)
    if ffmpeg_path is None:
        error_exit(
            "ffmpeg is not installed or not in PATH",
            ExitCode.TOOL_NOT_AVAILABLE,
            json_output,
        )

    caps = get_capabilities(ffmpeg_path, refresh=refresh)
    data = capabilities_to_dict(caps)

    if json_output:
        data["ffmpeg_path"] = str(ffmpeg_path)
        echo_json(data)
        return

    click.echo(f"ffmpeg: {ffmpeg_path} (version {caps.version or 'unknown'})")
    click.echo(
        f"  Encoders: {data['encoder_count']}, decoders: {data['decoder_count']}, "
        f"filters: {data['filter_count']}"
    )
    click.echo()
    click.echo("Hardware:")
    click.echo(f"  Backends: {', '.join(data['hardware_backends']) or 'none'}")
    click.echo(f"  Encoders: {', '.join(data['hardware_encoders']) or 'none'}")
    click.echo(f"  Decode methods: {', '.join(data['hwaccels']) or 'none'}")
    click.echo()
    click.echo("Filters:")
    click.echo(f"  GPU scale: {_yes_no(caps.supports_gpu_scale)}")
    click.echo(f"  GPU tone-map: {_yes_no(caps.supports_gpu_tonemap)}")
    click.echo(f"  Software tone-map: {_yes_no(caps.supports_software_tonemap)}")
