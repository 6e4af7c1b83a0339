"""Structured logging module for FormatFlex.

Provides configurable logging with JSON format support and file rotation.
Includes conversion context support so every record of a run carries its
run id and attempt number.
"""

from formatflex.logging.config import configure_logging
from formatflex.logging.context import (
    ConversionContextFilter,
    conversion_context,
    get_conversion_context,
    set_attempt,
)
from formatflex.logging.handlers import JSONFormatter

__all__ = [
    "ConversionContextFilter",
    "JSONFormatter",
    "configure_logging",
    "conversion_context",
    "get_conversion_context",
    "set_attempt",
]
