"""Exception taxonomy for conversions.

Every failure a conversion run can end in has its own type so callers can
tell recoverable conditions from terminal ones:

- ProbeFailure: recoverable, planning degrades to the safest choices
- PlanningImpossible: guarded, unreachable with well-formed options
- HardwareEncodeFailure: recoverable once, triggers a software retry
- SoftwareEncodeFailure: terminal for the run
- OutputValidationFailure: terminal even when the exit status looked fine
- UserCancelled: terminal, not an error
"""

from __future__ import annotations

from collections.abc import Sequence


class ConversionError(Exception):
    """Base exception for conversion failures.

    All conversion-related exceptions inherit from this class, allowing
    callers to catch every outcome with a single except clause if desired.
    """


class ProbeFailure(ConversionError):
    """Raised when the probe tool fails or returns no parseable report."""


class PlanningImpossible(ConversionError):
    """Raised when no valid plan exists for the given inputs."""


class EncodeFailure(ConversionError):
    """Raised when the encoding engine fails.

    Attributes:
        return_code: Exit status of the engine, None if it never reported one.
        diagnostic_tail: Last lines of the engine's diagnostic output.
    """

    def __init__(
        self,
        message: str,
        return_code: int | None = None,
        diagnostic_tail: Sequence[str] = (),
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description.
            return_code: Engine exit status, if known.
            diagnostic_tail: Last diagnostic lines from the engine.
        """
        self.return_code = return_code
        self.diagnostic_tail = tuple(diagnostic_tail)
        super().__init__(message)


class HardwareEncodeFailure(EncodeFailure):
    """Raised when an attempt fails in a way attributed to hardware acceleration."""


class SoftwareEncodeFailure(EncodeFailure):
    """Raised when an attempt fails and no retry applies."""


class OutputValidationFailure(ConversionError):
    """Raised when the engine exited cleanly but produced no usable output."""


class UserCancelled(ConversionError):
    """Raised when the user cancels a run.

    Not an error condition; it lives in the hierarchy so outcomes can be
    handled uniformly.
    """
