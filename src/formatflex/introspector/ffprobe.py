"""Probe input files with ffprobe."""

from __future__ import annotations

import json
import logging
import subprocess  # nosec B404 - subprocess is required for ffprobe invocation
from pathlib import Path
from typing import Any

from formatflex.domain.models import MediaProfile
from formatflex.exceptions import ProbeFailure
from formatflex.introspector.parsers import parse_ffprobe_output

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 60

# Quiet JSON report of every stream plus the container
_REPORT_ARGS = (
    "-v",
    "error",
    "-print_format",
    "json",
    "-show_streams",
    "-show_format",
)


class FFprobeIntrospector:
    """MediaProber backed by an ffprobe executable.

    ``probe`` never raises and degrades to an unknown profile; ``get_report``
    is the strict variant that raises ProbeFailure. Without an executable
    (``ffprobe_path`` None) every probe degrades.
    """

    def __init__(self, ffprobe_path: Path | None) -> None:
        self._ffprobe_path = ffprobe_path

    def probe(self, path: Path) -> MediaProfile:
        """Describe the streams of an input file.

        Args:
            path: Path to the input file.

        Returns:
            MediaProfile, or MediaProfile.unknown() if probing failed.
        """
        try:
            report = self.get_report(path)
        except ProbeFailure as e:
            logger.warning(
                "Probe failed, planning with unknown source: %s",
                e,
                extra={"input_path": str(path)},
            )
            return MediaProfile.unknown()
        return parse_ffprobe_output(report)

    def get_report(self, path: Path) -> dict[str, Any]:
        """The raw ffprobe JSON report for a file.

        Raises:
            ProbeFailure: If ffprobe is missing, fails, times out, or prints
                something that is not a stream report.
        """
        if self._ffprobe_path is None:
            raise ProbeFailure(
                "ffprobe is not installed or not in PATH. "
                "Configure it via FORMATFLEX_FFPROBE_PATH or the config file."
            )
        if not path.exists():
            raise ProbeFailure(f"File not found: {path}")

        try:
            result = subprocess.run(  # nosec B603 - resolved binary, fixed flags
                [str(self._ffprobe_path), *_REPORT_ARGS, str(path)],
                capture_output=True,
                text=True,
                errors="replace",  # tags are not always UTF-8
                check=True,
                timeout=PROBE_TIMEOUT,
            )
            data = json.loads(result.stdout)
        except subprocess.TimeoutExpired as e:
            raise ProbeFailure(
                f"ffprobe timed out for {path} after {e.timeout}s"
            ) from e
        except subprocess.CalledProcessError as e:
            raise ProbeFailure(
                f"ffprobe failed for {path}: {(e.stderr or '').strip() or e}"
            ) from e
        except json.JSONDecodeError as e:
            raise ProbeFailure(f"Invalid ffprobe output for {path}: {e}") from e
        except OSError as e:
            raise ProbeFailure(f"Could not run ffprobe for {path}: {e}") from e

        if not isinstance(data, dict) or "streams" not in data:
            raise ProbeFailure(
                f"Missing 'streams' in ffprobe output for {path}; "
                "it is probably not a media file"
            )
        return data
