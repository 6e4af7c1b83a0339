"""JSON log formatting.

One JSON object per line:

    {"timestamp": "2026-01-05T10:12:03.512000+00:00", "level": "WARNING",
     "message": "Attempt 1 failed",
     "logger": "formatflex.executor.transcode.executor",
     "context": {"run_id": "3f2a1c", "attempt": 1, "return_code": 1}}

``context`` holds the run id and attempt inside a conversion run plus
whatever the caller passed with ``extra=``. ``exception`` carries the
traceback text when the record has one.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes of a plain LogRecord; anything else came from extra= or a filter
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

# Set by ConversionContextFilter; the text tag only matters to text output
_CONTEXT_ATTRS = ("run_id", "attempt")
_SKIPPED_ATTRS = _RECORD_ATTRS | {*_CONTEXT_ATTRS, "conversion_tag"}


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        context: dict[str, Any] = {}
        for attr in _CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value is not None:
                context[attr] = value
        context.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _SKIPPED_ATTRS and not key.startswith("_")
        )
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)
