"""Conversion context for structured logging.

Provides context propagation using contextvars, enabling automatic
injection of the run id and attempt number into log records, including
records emitted by the engine's output reader threads.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

# Context variables for conversion identification
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_attempt: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "attempt", default=None
)


def set_attempt(attempt: int | None) -> None:
    """Set the execution attempt number of the current run."""
    _attempt.set(attempt)


def get_conversion_context() -> tuple[str | None, int | None]:
    """Get current conversion context.

    Returns:
        Tuple of (run_id, attempt), either may be None.
    """
    return _run_id.get(), _attempt.get()


@contextmanager
def conversion_context(run_id: str) -> Generator[None, None, None]:
    """Context manager for one conversion run.

    Sets the run id on entry and restores the previous context on exit.

    Args:
        run_id: Short run identifier (e.g., "3f2a1c").

    Yields:
        None

    Example:
        with conversion_context("3f2a1c"):
            logger.info("Probing input")  # Automatically includes run id
    """
    run_token = _run_id.set(run_id)
    attempt_token = _attempt.set(None)
    try:
        yield
    finally:
        _attempt.reset(attempt_token)
        _run_id.reset(run_token)


class ConversionContextFilter(logging.Filter):
    """Logging filter that injects conversion context into log records.

    Adds run_id and attempt attributes from contextvars. For text format,
    also adds a conversion_tag such as ``[run 3f2a1c attempt 2] ``.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject conversion context into log record.

        Args:
            record: The log record to process.

        Returns:
            Always True (does not filter, only enriches).
        """
        run_id, attempt = get_conversion_context()

        record.run_id = run_id
        record.attempt = attempt

        if run_id:
            if attempt:
                record.conversion_tag = f"[run {run_id} attempt {attempt}] "
            else:
                record.conversion_tag = f"[run {run_id}] "
        else:
            record.conversion_tag = ""

        return True  # Never filter out records
