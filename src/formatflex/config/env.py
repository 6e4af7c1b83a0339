"""FORMATFLEX_* environment variables.

Lookups take the name without the prefix (``reader.get_path("FFMPEG_PATH")``
reads ``FORMATFLEX_FFMPEG_PATH``). Blank values count as unset. Values
that cannot be converted are ignored with a warning, so a typo in the
environment never stops a conversion.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

ENV_PREFIX = "FORMATFLEX_"

_T = TypeVar("_T")
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


class EnvReader:
    """Typed access to FORMATFLEX_* variables.

    Tests pass a plain mapping instead of patching os.environ:

        reader = EnvReader(env={"FORMATFLEX_CANCEL_GRACE_SECONDS": "2.5"})
        reader.get_float("CANCEL_GRACE_SECONDS")  # 2.5
    """

    def __init__(
        self, env: Mapping[str, str] | None = None, prefix: str = ENV_PREFIX
    ) -> None:
        self._env: Mapping[str, str] = os.environ if env is None else env
        self._prefix = prefix

    def name(self, key: str) -> str:
        """Full variable name for a key."""
        return f"{self._prefix}{key}"

    def _raw(self, key: str) -> str | None:
        value = self._env.get(self.name(key))
        if value is None or not value.strip():
            return None
        return value.strip()

    def _convert(
        self, key: str, convert: Callable[[str], _T], kind: str
    ) -> _T | None:
        raw = self._raw(key)
        if raw is None:
            return None
        try:
            return convert(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: not %s", self.name(key), raw, kind)
            return None

    def get_str(self, key: str) -> str | None:
        """String value, or None when unset."""
        return self._raw(key)

    def get_int(self, key: str) -> int | None:
        """Integer value, or None when unset or not an integer."""
        return self._convert(key, int, "an integer")

    def get_float(self, key: str) -> float | None:
        """Float value, or None when unset or not a number."""
        return self._convert(key, float, "a number")

    def get_bool(self, key: str) -> bool | None:
        """Boolean value.

        Accepts 1/true/yes/on and 0/false/no/off in any case. Anything else
        is ignored with a warning.
        """

        def to_bool(raw: str) -> bool:
            folded = raw.casefold()
            if folded in _TRUTHY:
                return True
            if folded in _FALSY:
                return False
            raise ValueError(raw)

        return self._convert(key, to_bool, "a boolean")

    def get_list(self, key: str, separator: str = ",") -> tuple[str, ...] | None:
        """Separator-delimited values with blanks dropped.

        Returns:
            The items, or None when unset or when no item is left.
        """
        raw = self._raw(key)
        if raw is None:
            return None
        items = tuple(item.strip() for item in raw.split(separator) if item.strip())
        return items or None

    def get_path(self, key: str, must_exist: bool = True) -> Path | None:
        """Path value with ``~`` expanded.

        Args:
            key: Variable name without the prefix.
            must_exist: Ignore the value, with a warning, when nothing
                exists at that path.

        Returns:
            The path, or None.
        """
        raw = self._raw(key)
        if raw is None:
            return None
        path = Path(raw).expanduser()
        if must_exist and not path.exists():
            logger.warning("Ignoring %s: %s does not exist", self.name(key), path)
            return None
        return path
