"""Collaborator protocols used by the orchestrator.

File placement and lifecycle handling belong to the embedding application.
The orchestrator only needs the calls below; the defaults here make the
library usable from a plain command line.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class FilePlacement(Protocol):
    """Protocol for making a finished artifact visible at its destination."""

    def place(self, artifact: Path, destination: Path) -> Path | None:
        """Move a completed temporary artifact into place.

        Args:
            artifact: Validated output in the run's temporary directory.
            destination: Requested final path.

        Returns:
            The resolved final path, or None if placement failed.
        """
        ...


class LifecycleHooks(Protocol):
    """Protocol for keep-alive and visible progress collaborators.

    Every call is fire-and-forget; failures are logged by the caller and
    never abort a conversion.
    """

    def start_keep_alive(self, title: str) -> None:
        """Keep the host awake while encoding."""
        ...

    def update_progress_text(self, text: str) -> None:
        """Show progress text to the user."""
        ...

    def stop_keep_alive(self) -> None:
        """Release whatever start_keep_alive acquired."""
        ...


class MoveFilePlacement:
    """Place artifacts with a plain file move."""

    def place(self, artifact: Path, destination: Path) -> Path | None:
        """Move the artifact to the destination path.

        Missing parent directories are created. An existing destination is
        replaced.
        """
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(artifact), str(destination))
        except OSError as e:
            logger.error(
                "Could not move %s to %s: %s",
                artifact,
                destination,
                e,
                extra={"output_path": str(destination)},
            )
            return None
        return destination


class NullLifecycleHooks:
    """Lifecycle hooks that do nothing."""

    def start_keep_alive(self, title: str) -> None:
        pass

    def update_progress_text(self, text: str) -> None:
        pass

    def stop_keep_alive(self) -> None:
        pass
