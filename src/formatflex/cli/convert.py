"""CLI convert command: run one conversion with live progress."""

from __future__ import annotations

import logging
import shlex
import threading
from pathlib import Path
from typing import Any

import click

from formatflex.cli.exit_codes import ExitCode
from formatflex.cli.output import echo_json, error_exit, warning_output
from formatflex.config import FormatFlexConfig, PresetNotFoundError, get_preset
from formatflex.core.codecs import AudioCodec, Container, VideoCodec, parse_resolution
from formatflex.core.formatting import format_progress_line
from formatflex.domain.options import ConversionOptions
from formatflex.exceptions import PlanningImpossible
from formatflex.executor import (
    ConversionCompleted,
    EventChannel,
    LogRingBuffer,
    ProgressUpdated,
    StateChanged,
)
from formatflex.executor.transcode import (
    ConversionOrchestrator,
    ConversionOutcome,
    OutcomeStatus,
    SignatureRetryPredicate,
)
from formatflex.introspector import FFprobeIntrospector
from formatflex.tools import find_tool, get_capabilities

logger = logging.getLogger(__name__)

# Seconds between event polls, so Ctrl+C is noticed promptly
POLL_INTERVAL = 0.25

_OUTCOME_EXIT_CODES = {
    OutcomeStatus.SUCCEEDED: ExitCode.SUCCESS,
    OutcomeStatus.FAILED: ExitCode.CONVERSION_FAILED,
    OutcomeStatus.CANCELLED: ExitCode.CANCELLED,
}


def default_output_path(input_path: Path, container: Container) -> Path:
    """Output path next to the input, named after it."""
    return input_path.with_name(f"{input_path.stem}_converted.{container.extension}")


def build_options(
    config: FormatFlexConfig,
    preset_name: str | None,
    overrides: dict[str, Any],
) -> ConversionOptions:
    """Resolve conversion options: defaults, then preset, then CLI flags.

    Args:
        config: Loaded configuration (presets and default preset).
        preset_name: Preset slug from the command line, if any.
        overrides: Option fields given on the command line (None = not given).

    Returns:
        Validated ConversionOptions.

    Raises:
        PresetNotFoundError: If the preset does not exist.
        ValueError: If a resulting value is invalid.
    """
    options = ConversionOptions()
    name = preset_name or config.conversion.default_preset
    if name:
        options.apply_preset(get_preset(name, config.presets))
    changes = {key: value for key, value in overrides.items() if value is not None}
    return options.snapshot(**changes)


def _render_dry_run(result: dict[str, Any]) -> None:
    plan = result["plan"]
    click.echo(f"Input:  {result['input']}")
    click.echo(f"Output: {result['output']}")
    if not result["probe_succeeded"]:
        click.echo("Probe failed: every stream will be re-encoded")
    click.echo(f"Container: {plan['container']}")
    for kind in ("video", "audio"):
        stream = plan[kind]
        if stream is None:
            click.echo(f"{kind.capitalize()}: none")
        elif stream["action"] == "copy":
            click.echo(f"{kind.capitalize()}: copy {stream['map']}")
        else:
            reasons = ", ".join(stream["reasons"]) or "-"
            click.echo(
                f"{kind.capitalize()}: encode with {stream['encoder']} "
                f"({reasons})"
            )
    if plan["filter_chain"]:
        click.echo(f"Filters: {plan['filter_chain']}")
    if plan["hardware_backend"]:
        click.echo(f"Hardware: {plan['hardware_backend']}")
    for warning in plan["warnings"]:
        warning_output(warning)
    click.echo()
    for command in result["commands"]:
        click.echo(shlex.join(command))


def _run_with_progress(
    orchestrator: ConversionOrchestrator,
    input_path: Path,
    output_path: Path,
    options: ConversionOptions,
    show_progress: bool,
) -> ConversionOutcome | None:
    """Run the conversion on a worker thread and render its events.

    Ctrl+C requests cancellation; the run then ends with a CANCELLED outcome.

    Returns:
        The outcome, or None if the run aborted with an unexpected error.
    """
    errors: list[BaseException] = []

    def worker() -> None:
        try:
            orchestrator.run(input_path, output_path, options)
        except Exception as e:
            errors.append(e)

    thread = threading.Thread(target=worker, name="formatflex-convert", daemon=True)
    thread.start()

    outcome: ConversionOutcome | None = None
    while outcome is None:
        try:
            event = orchestrator.events.get(timeout=POLL_INTERVAL)
        except KeyboardInterrupt:
            click.echo("\nCancelling...", err=True)
            orchestrator.cancel()
            continue
        if event is None:
            if not thread.is_alive() and errors:
                break
            continue

        if isinstance(event, ProgressUpdated) and show_progress:
            click.echo(f"\r{format_progress_line(event.snapshot)}", nl=False, err=True)
        elif isinstance(event, StateChanged) and show_progress:
            if event.attempt > 1:
                click.echo("\nRetrying in software...", err=True)
        elif isinstance(event, ConversionCompleted):
            outcome = event.outcome

    thread.join()
    if show_progress:
        click.echo(err=True)
    if errors:
        logger.error("Conversion aborted: %s", errors[0])
        return None
    return outcome


@click.command("convert")
@click.argument("input_file", type=click.Path(path_type=Path))
@click.option(
    "--output",
    "-o",
    "output_file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Output file (default: <input>_converted.<container>).",
)
@click.option("--preset", "-p", default=None, help="Preset slug (see 'presets').")
@click.option(
    "--container",
    type=click.Choice([c.value for c in Container], case_sensitive=False),
    default=None,
    help="Output container.",
)
@click.option(
    "--video-codec",
    type=click.Choice([c.value for c in VideoCodec], case_sensitive=False),
    default=None,
    help="Output video codec.",
)
@click.option(
    "--audio-codec",
    type=click.Choice([c.value for c in AudioCodec], case_sensitive=False),
    default=None,
    help="Output audio codec.",
)
@click.option(
    "--resolution",
    default=None,
    help="Resolution ceiling: 2160p, 1080p, 720p, 480p or WIDTHxHEIGHT.",
)
@click.option("--crf", type=int, default=None, help="Constant quality value.")
@click.option(
    "--video-bitrate",
    type=int,
    default=None,
    help="Video bitrate in kbit/s (disables CRF).",
)
@click.option(
    "--audio-bitrate", type=int, default=None, help="Audio bitrate in kbit/s."
)
@click.option("--channels", type=int, default=None, help="Audio channel count.")
@click.option("--sample-rate", type=int, default=None, help="Audio sample rate.")
@click.option(
    "--fps", type=float, default=None, help="Output frame rate (default: source)."
)
@click.option(
    "--tone-map/--no-tone-map",
    default=None,
    help="Tone-map HDR input to SDR (default: on).",
)
@click.option(
    "--hw/--no-hw", default=None, help="Prefer a hardware video encoder."
)
@click.option(
    "--turbo",
    is_flag=True,
    help="Fastest settings: H.264, source frame rate, no tone-mapping.",
)
@click.option(
    "--two-pass",
    is_flag=True,
    help="Two-pass software encode.",
)
@click.option(
    "--video-stream", type=int, default=None, help="Video stream position."
)
@click.option(
    "--audio-stream",
    type=int,
    default=None,
    help="Audio stream position (default: first track).",
)
@click.option(
    "--downmix/--no-downmix",
    default=None,
    help="Allow reducing the channel count (default: allowed).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Print the plan and ffmpeg commands without running them.",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_obj
def convert_command(
    obj: dict,
    input_file: Path,
    output_file: Path | None,
    preset: str | None,
    container: str | None,
    video_codec: str | None,
    audio_codec: str | None,
    resolution: str | None,
    crf: int | None,
    video_bitrate: int | None,
    audio_bitrate: int | None,
    channels: int | None,
    sample_rate: int | None,
    fps: float | None,
    tone_map: bool | None,
    hw: bool | None,
    turbo: bool,
    two_pass: bool,
    video_stream: int | None,
    audio_stream: int | None,
    downmix: bool | None,
    dry_run: bool,
    json_output: bool,
) -> None:
    """Convert INPUT_FILE to the selected target.

    Streams that already match the target are copied; everything else is
    re-encoded. A hardware failure is retried once in software.
    """
    config: FormatFlexConfig = obj["config"]

    if not input_file.is_file():
        error_exit(
            f"File not found: {input_file}", ExitCode.TARGET_NOT_FOUND, json_output
        )
    if crf is not None and video_bitrate is not None:
        raise click.UsageError("--crf and --video-bitrate are mutually exclusive")

    try:
        parsed_resolution = parse_resolution(resolution) if resolution else None
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--resolution") from e

    overrides: dict[str, Any] = {
        "container": Container(container.casefold()) if container else None,
        "video_codec": VideoCodec(video_codec.casefold()) if video_codec else None,
        "audio_codec": AudioCodec(audio_codec.casefold()) if audio_codec else None,
        "resolution": parsed_resolution,
        "crf": crf,
        "use_crf": (
            True if crf is not None else False if video_bitrate is not None else None
        ),
        "video_bitrate_k": video_bitrate,
        "audio_bitrate_k": audio_bitrate,
        "audio_channels": channels,
        "sample_rate": sample_rate,
        "frame_rate": fps,
        "tone_map": tone_map,
        "use_hw_encoder": hw,
        "turbo": turbo or None,
        "two_pass": two_pass or None,
        "video_stream": video_stream,
        "audio_stream": audio_stream,
        "allow_downmix": downmix,
    }
    try:
        options = build_options(config, preset, overrides)
    except PresetNotFoundError as e:
        error_exit(str(e), ExitCode.PRESET_NOT_FOUND, json_output)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    output_path = output_file or default_output_path(input_file, options.container)
    if output_path.resolve() == input_file.resolve():
        error_exit(
            "Output would overwrite the input file",
            ExitCode.GENERAL_ERROR,
            json_output,
        )

    ffmpeg_path = find_tool("ffmpeg", config.tools.ffmpeg)
    if ffmpeg_path is None:
        error_exit(
            "ffmpeg is not installed or not in PATH",
            ExitCode.TOOL_NOT_AVAILABLE,
            json_output,
        )
    ffprobe_path = find_tool("ffprobe", config.tools.ffprobe)
    if ffprobe_path is None:
        warning_output(
            "ffprobe not found; every stream will be re-encoded", json_output
        )

    orchestrator = ConversionOrchestrator(
        prober=FFprobeIntrospector(ffprobe_path),
        capabilities=get_capabilities(ffmpeg_path),
        ffmpeg_path=ffmpeg_path,
        events=EventChannel(),
        log_buffer=LogRingBuffer(config.conversion.log_buffer_lines),
        retry_predicate=SignatureRetryPredicate.with_extra_signatures(
            config.retry.extra_signatures,
            retry_on_unknown_exit=config.retry.retry_on_unknown_exit,
        ),
        temp_directory=config.conversion.temp_directory,
        diagnostic_tail_lines=config.conversion.diagnostic_tail_lines,
        cancel_grace=config.conversion.cancel_grace_seconds,
    )

    if dry_run:
        try:
            result = orchestrator.dry_run(input_file, output_path, options)
        except PlanningImpossible as e:
            error_exit(str(e), ExitCode.PLANNING_FAILED, json_output)
        if json_output:
            echo_json(result)
        else:
            _render_dry_run(result)
        return

    outcome = _run_with_progress(
        orchestrator, input_file, output_path, options, show_progress=not json_output
    )
    if outcome is None:
        error_exit(
            "Conversion aborted unexpectedly", ExitCode.GENERAL_ERROR, json_output
        )

    if json_output:
        echo_json(outcome.to_dict())
    elif outcome.success:
        for warning in outcome.warnings:
            warning_output(warning)
        suffix = " (software retry)" if outcome.software_fallback else ""
        click.echo(f"{outcome.summary}{suffix}")
    else:
        click.echo(outcome.summary, err=True)

    if isinstance(outcome.error, PlanningImpossible):
        raise SystemExit(int(ExitCode.PLANNING_FAILED))
    exit_code = _OUTCOME_EXIT_CODES[outcome.status]
    if exit_code != ExitCode.SUCCESS:
        raise SystemExit(int(exit_code))
