"""Hardware-failure detection for the software retry.

Whether a failed attempt is worth retrying in software is a heuristic:
engines word their errors differently across versions, so the decision is
a pluggable predicate. The default matches known diagnostic substrings and
treats a missing or signal-style exit status as a hardware crash.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Protocol

# Diagnostic substrings seen when hardware decode/encode setup fails
DEFAULT_HARDWARE_FAILURE_SIGNATURES: tuple[str, ...] = (
    "mediacodec",
    "decoder failed to start",
    "unable to configure codec",
    "both surface and native_window are null",
    "cannot load nvenc",
    "no nvenc capable devices found",
    "failed to initialise vaapi",
    "hwaccel initialisation returned error",
    "device creation failed",
    "no device available",
    "error initializing output stream",
)


class RetryPredicate(Protocol):
    """Decides whether a failed attempt should be retried in software."""

    def should_retry(
        self, return_code: int | None, diagnostic_tail: Sequence[str]
    ) -> bool:
        """Check a failed attempt.

        Args:
            return_code: Engine exit status, None if unknown.
            diagnostic_tail: Last diagnostic lines of the attempt.

        Returns:
            True if the failure looks caused by hardware acceleration.
        """
        ...


class SignatureRetryPredicate:
    """Match diagnostic output against hardware-failure signatures."""

    def __init__(
        self,
        signatures: Iterable[str] = DEFAULT_HARDWARE_FAILURE_SIGNATURES,
        retry_on_unknown_exit: bool = True,
    ) -> None:
        """Initialize the predicate.

        Args:
            signatures: Case-insensitive substrings marking hardware failures.
            retry_on_unknown_exit: Also retry when the exit status is missing
                or reports a signal (negative).
        """
        self._signatures = tuple(s.casefold() for s in signatures if s.strip())
        self._retry_on_unknown_exit = retry_on_unknown_exit

    @property
    def signatures(self) -> tuple[str, ...]:
        """Normalized signatures."""
        return self._signatures

    def matching_line(self, diagnostic_tail: Sequence[str]) -> str | None:
        """Return the first line containing a signature, if any."""
        for line in diagnostic_tail:
            text = line.casefold()
            if any(signature in text for signature in self._signatures):
                return line
        return None

    def should_retry(
        self, return_code: int | None, diagnostic_tail: Sequence[str]
    ) -> bool:
        """Check a failed attempt against the signatures."""
        if self._retry_on_unknown_exit and (return_code is None or return_code < 0):
            return True
        return self.matching_line(diagnostic_tail) is not None

    @classmethod
    def with_extra_signatures(
        cls, extra: Iterable[str], retry_on_unknown_exit: bool = True
    ) -> SignatureRetryPredicate:
        """Default signatures plus additional ones (e.g., from config)."""
        return cls(
            (*DEFAULT_HARDWARE_FAILURE_SIGNATURES, *extra),
            retry_on_unknown_exit=retry_on_unknown_exit,
        )
