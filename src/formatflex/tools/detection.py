"""Locate the media engine and find out what it can do.

``ffmpeg -encoders``, ``-decoders``, ``-filters`` and ``-hwaccels`` are
parsed into a CapabilitySet. Probing never raises: an engine that cannot be
run yields an empty set, which planning reads as "software only", and a
single listing that fails leaves only its own category empty.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess  # nosec B404 - ffmpeg is queried through a subprocess
import threading
from datetime import datetime, timezone
from pathlib import Path

from formatflex.tools.models import CapabilitySet

logger = logging.getLogger(__name__)

QUERY_TIMEOUT = 10  # seconds per ffmpeg query

_VERSION = re.compile(r"ffmpeg version (\S+)")

# " V....D libx264   libx264 H.264 / AVC"; flag columns then the name
_CODEC_ROW = re.compile(r"\s+[VASFXBDI.]{6}\s+([^\s=]\S*)")
# " T.C zscale   V->V   Apply resizing, colorspace and bit depth"
_FILTER_ROW = re.compile(r"\s+[TSC.]{3}\s+([^\s=]\S*)")

_cache: dict[str, CapabilitySet] = {}
_cache_lock = threading.Lock()


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Resolve an executable: the configured file if it exists, else PATH.

    Args:
        name: Executable name, e.g. "ffprobe".
        configured_path: Path from configuration, if any.

    Returns:
        The executable, or None when it cannot be found.
    """
    if configured_path is not None:
        if configured_path.is_file():
            return configured_path
        logger.warning(
            "Ignoring configured %s path %s: not a file", name, configured_path
        )
    found = shutil.which(name)
    return Path(found) if found else None


def _query(ffmpeg_path: Path, *flags: str) -> str | None:
    """stdout of ``ffmpeg -hide_banner <flags>``, or None if it failed."""
    command = [str(ffmpeg_path), "-hide_banner", *flags]
    try:
        result = subprocess.run(  # nosec B603 - fixed flags on a resolved binary
            command,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=QUERY_TIMEOUT,
        )
    except subprocess.TimeoutExpired:
        logger.warning("ffmpeg %s timed out after %ds", " ".join(flags), QUERY_TIMEOUT)
        return None
    except OSError as e:
        logger.warning("Cannot run %s: %s", ffmpeg_path, e)
        return None
    if result.returncode != 0:
        logger.warning(
            "ffmpeg %s exited with %d: %s",
            " ".join(flags),
            result.returncode,
            result.stderr.strip(),
            extra={"ffmpeg_path": str(ffmpeg_path)},
        )
        return None
    return result.stdout


def _names(listing: str | None, row: re.Pattern[str]) -> frozenset[str]:
    if not listing:
        return frozenset()
    return frozenset(
        match.group(1).casefold()
        for line in listing.splitlines()
        if (match := row.match(line))
    )


def _hwaccel_names(listing: str | None) -> frozenset[str]:
    # A "Hardware acceleration methods:" header, then one name per line
    if not listing:
        return frozenset()
    return frozenset(
        line.strip().casefold()
        for line in listing.splitlines()
        if line.strip() and not line.rstrip().endswith(":")
    )


def detect_capabilities(ffmpeg_path: Path | None) -> CapabilitySet:
    """Query an ffmpeg build for its encoders, decoders, filters and hwaccels.

    Args:
        ffmpeg_path: The engine, or None when none was found.

    Returns:
        What the build supports; empty when it cannot be queried.
    """
    if ffmpeg_path is None:
        logger.warning("No ffmpeg found; only software encoding is assumed")
        return CapabilitySet.empty()

    banner = _query(ffmpeg_path, "-version")
    version_match = _VERSION.search(banner) if banner else None

    caps = CapabilitySet(
        encoders=_names(_query(ffmpeg_path, "-encoders"), _CODEC_ROW),
        decoders=_names(_query(ffmpeg_path, "-decoders"), _CODEC_ROW),
        filters=_names(_query(ffmpeg_path, "-filters"), _FILTER_ROW),
        hwaccels=_hwaccel_names(_query(ffmpeg_path, "-hwaccels")),
        version=version_match.group(1) if version_match else None,
        detected_at=datetime.now(timezone.utc),
    )
    logger.debug(
        "ffmpeg %s: %d encoders, %d filters, hardware encoders %s",
        caps.version or "(unknown version)",
        len(caps.encoders),
        len(caps.filters),
        sorted(caps.hardware_encoders),
        extra={"hwaccels": sorted(caps.hwaccels)},
    )
    return caps


def get_capabilities(
    ffmpeg_path: Path | None, *, refresh: bool = False
) -> CapabilitySet:
    """Capabilities of an engine, detected once per path and then reused.

    Args:
        ffmpeg_path: The engine, or None when none was found.
        refresh: Detect again even when a result is cached.
    """
    key = str(ffmpeg_path or "")
    with _cache_lock:
        if refresh or key not in _cache:
            _cache[key] = detect_capabilities(ffmpeg_path)
        return _cache[key]


def clear_capabilities_cache() -> None:
    with _cache_lock:
        _cache.clear()
