"""FormatFlex settings, one dataclass per config file table.

Defaults live here. Each section checks its values in ``__post_init__`` and
raises ValueError naming the offending field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from formatflex.domain.options import Preset

VALID_LOG_LEVELS = frozenset({"debug", "info", "warning", "error"})
VALID_LOG_FORMATS = frozenset({"text", "json"})


@dataclass
class ToolPathsConfig:
    """[tools]: engine executables; unset ones are looked up on PATH."""

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class LoggingConfig:
    """[logging]: where records go and how they look.

    Attributes:
        level: One of VALID_LOG_LEVELS.
        file: Rotating log file; None logs to stderr only.
        format: "text" or "json".
        include_stderr: Keep logging to stderr when a file is set.
        max_bytes: Size at which the file rotates.
        backup_count: Rotated files kept.
    """

    level: str = "info"
    file: Path | None = None
    format: str = "text"
    include_stderr: bool = False
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    def __post_init__(self) -> None:
        if self.level.lower() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"level must be one of {sorted(VALID_LOG_LEVELS)}, got {self.level}"
            )
        if self.format.lower() not in VALID_LOG_FORMATS:
            raise ValueError(
                f"format must be one of {sorted(VALID_LOG_FORMATS)}, "
                f"got {self.format}"
            )
        if self.max_bytes <= 0:
            raise ValueError(f"max_bytes must be positive, got {self.max_bytes}")
        if self.backup_count < 0:
            raise ValueError(f"backup_count must be >= 0, got {self.backup_count}")


@dataclass
class ConversionConfig:
    """Settings for conversion runs."""

    # Parent of each run's work directory (None = system temp dir)
    temp_directory: Path | None = None

    # Seconds to wait after terminating the engine before killing it
    cancel_grace_seconds: float = 5.0

    # Capacity of the diagnostic log ring buffer
    log_buffer_lines: int = 800

    # Diagnostic lines kept for failure reports
    diagnostic_tail_lines: int = 120

    # Preset applied when the CLI is given none
    default_preset: str | None = None

    def __post_init__(self) -> None:
        if self.cancel_grace_seconds <= 0:
            raise ValueError(
                "cancel_grace_seconds must be positive, "
                f"got {self.cancel_grace_seconds}"
            )
        if self.log_buffer_lines < 1:
            raise ValueError(
                f"log_buffer_lines must be >= 1, got {self.log_buffer_lines}"
            )
        if self.diagnostic_tail_lines < 1:
            raise ValueError(
                "diagnostic_tail_lines must be >= 1, "
                f"got {self.diagnostic_tail_lines}"
            )


@dataclass
class RetryConfig:
    """Settings for the hardware-failure software retry."""

    # Diagnostic substrings added to the built-in hardware failure signatures
    extra_signatures: tuple[str, ...] = ()

    # Retry when the engine exit status is missing or reports a signal
    retry_on_unknown_exit: bool = True

    def __post_init__(self) -> None:
        """Normalize and validate signatures."""
        self.extra_signatures = tuple(self.extra_signatures)
        for signature in self.extra_signatures:
            if not isinstance(signature, str) or not signature.strip():
                raise ValueError(
                    f"extra_signatures entries must be non-empty strings, "
                    f"got {signature!r}"
                )


@dataclass
class FormatFlexConfig:
    """Main configuration for FormatFlex.

    Aggregates all configuration sections plus the merged preset table
    (built-in presets overlaid with user presets, keyed by slug).
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    presets: dict[str, Preset] = field(default_factory=dict)
