"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Validation errors (config, presets)
    20-29: Target/file errors
    30-39: Tool/dependency errors
    40-49: Conversion errors
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for FormatFlex CLI commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1
    INTERRUPTED = 2  # Ctrl+C / SIGINT

    # Validation errors (10-19)
    CONFIG_ERROR = 11
    PRESET_NOT_FOUND = 12

    # Target/file errors (20-29)
    TARGET_NOT_FOUND = 20

    # Tool/dependency errors (30-39)
    TOOL_NOT_AVAILABLE = 30
    PROBE_FAILED = 32

    # Conversion errors (40-49)
    CONVERSION_FAILED = 40
    CANCELLED = 41
    PLANNING_FAILED = 43
