"""MediaProber interface for input inspection."""

from pathlib import Path
from typing import Protocol

from formatflex.domain.models import MediaProfile


class MediaProber(Protocol):
    """Protocol for media probing implementations.

    Implementations must not raise: a failed probe returns
    ``MediaProfile.unknown()`` so planning falls back to the safest choices.
    """

    def probe(self, path: Path) -> MediaProfile:
        """Describe the streams of an input file.

        Args:
            path: Path to the input file.

        Returns:
            MediaProfile, degraded to an unknown profile on failure.
        """
        ...
