"""How commands report results, warnings and failures.

Results go to stdout. Warnings and errors go to stderr so that ``--json``
output on stdout stays parseable.
"""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import click

from formatflex.cli.exit_codes import ExitCode


def _code_name(code: ExitCode | int) -> str:
    try:
        return ExitCode(int(code)).name
    except ValueError:
        return "UNKNOWN_ERROR"


def error_payload(message: str, code: ExitCode | int) -> dict[str, Any]:
    """Machine-readable failure report."""
    return {
        "status": "failed",
        "error": {"code": _code_name(code), "message": message},
    }


def error_exit(
    message: str, code: ExitCode | int, json_output: bool = False
) -> NoReturn:
    """Report a failure on stderr and exit with ``code``.

    In JSON mode the report is an ``error_payload`` object; otherwise it is
    a single ``Error:`` line.
    """
    if json_output:
        click.echo(json.dumps(error_payload(message, code)), err=True)
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(int(code))


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def warning_output(message: str, json_output: bool = False) -> None:
    """Print a warning; JSON mode stays quiet so stderr is only the payload."""
    if not json_output:
        click.echo(f"Warning: {message}", err=True)
