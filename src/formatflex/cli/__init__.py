"""FormatFlex command line.

The ``main`` group loads configuration once (file, environment, then the
global options below), sets up logging and hands the config to every
command through ``ctx.obj["config"]``.
"""

import logging
from pathlib import Path

import click

from formatflex.cli.exit_codes import ExitCode
from formatflex.cli.output import error_exit
from formatflex.config import (
    FormatFlexConfig,
    PresetError,
    TomlParseError,
    build_logging_config,
    get_config,
)
from formatflex.logging import configure_logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ("debug", "info", "warning", "error")


def _load_config(config_path: Path | None) -> FormatFlexConfig:
    # Broken config is fatal on the command line rather than silently ignored
    try:
        return get_config(config_path=config_path, strict=True)
    except (TomlParseError, PresetError) as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR)
    except ValueError as e:
        error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR)


@click.group()
@click.version_option(package_name="formatflex")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Read settings from this file instead of ~/.formatflex/config.toml.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Minimum level to log; overrides [logging] level.",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Also log to this file; overrides [logging] file.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Write log records as JSON objects.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """FormatFlex - Convert media files for the devices that play them."""
    config = _load_config(config_path)
    configure_logging(
        build_logging_config(
            config.logging,
            level=log_level,
            file=log_file,
            format="json" if log_json else None,
        )
    )
    ctx.ensure_object(dict)["config"] = config
    logger.debug(
        "Loaded configuration with %d presets, default %s",
        len(config.presets),
        config.conversion.default_preset or "none",
    )


def _register_commands() -> None:
    # Command modules import from this package, so they load last
    from formatflex.cli.capabilities import capabilities_command
    from formatflex.cli.convert import convert_command
    from formatflex.cli.presets import presets_command
    from formatflex.cli.probe import probe_command

    for command in (
        convert_command,
        probe_command,
        capabilities_command,
        presets_command,
    ):
        main.add_command(command)


_register_commands()
