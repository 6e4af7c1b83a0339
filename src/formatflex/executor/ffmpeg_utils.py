"""Run-scoped files: the work directory and the artifact ffmpeg writes.

Every run gets a fresh work directory holding the temporary artifact and
the two-pass statistics. The artifact is only handed to placement after it
passes ``artifact_problem``; the directory is removed when the run ends.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

WORK_DIR_PREFIX = "formatflex_"
ARTIFACT_PREFIX = ".formatflex_temp_"


def make_work_dir(parent: Path | None = None) -> Path:
    """Create a private work directory, under ``parent`` if given."""
    if parent is not None:
        parent.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=WORK_DIR_PREFIX, dir=parent))


def temp_artifact_path(
    output_path: Path, work_dir: Path, extension: str | None = None
) -> Path:
    """Where ffmpeg writes before placement.

    Args:
        output_path: Requested final path.
        work_dir: The run's work directory.
        extension: Extension (no dot) of the target container, so ffmpeg
            picks the right muxer; None keeps the output's name.
    """
    name = f"{output_path.stem}.{extension}" if extension else output_path.name
    return work_dir / f"{ARTIFACT_PREFIX}{name}"


def artifact_problem(path: Path) -> str | None:
    """Why an artifact cannot be delivered, or None if it can.

    A successful exit status is not enough: the file must exist and hold
    data.
    """
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return f"ffmpeg produced no output file at {path}"
    except OSError as e:
        return f"Cannot read output file {path}: {e}"
    if size == 0:
        return f"ffmpeg produced an empty output file at {path}"
    return None


def discard(path: Path) -> None:
    """Delete a temporary artifact if present; failures are only logged."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove temporary file %s: %s", path, e)


def remove_work_dir(work_dir: Path) -> None:
    """Delete a run's work directory and everything in it."""
    shutil.rmtree(work_dir, ignore_errors=True)
    if work_dir.exists():
        logger.warning("Work directory %s was not fully removed", work_dir)
