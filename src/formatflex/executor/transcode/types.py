"""Transcode data types and result classes.

This module defines the core data structures of a conversion run: the
immutable EncodePlan for one attempt, the two-pass statistics context, the
run state machine states and the final ConversionOutcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from formatflex.core.codecs import Container, VideoCodec
from formatflex.exceptions import ConversionError

logger = logging.getLogger(__name__)


class StreamKind(Enum):
    """Kind of stream a decision applies to."""

    VIDEO = "video"
    AUDIO = "audio"


class StreamAction(Enum):
    """What happens to a stream."""

    COPY = "copy"  # Pass encoded bytes through unchanged
    ENCODE = "encode"  # Decode and re-encode
    DROP = "drop"  # Leave the stream out of the output


@dataclass(frozen=True)
class StreamDecision:
    """Copy-or-encode decision for one output stream."""

    kind: StreamKind
    action: StreamAction
    source_map: str | None = None
    """Argument for -map (e.g. "0:1", or "0:a:0?" when the source is unknown)."""

    encoder: str | None = None
    """Encoder name when action is ENCODE."""

    encoder_args: tuple[str, ...] = ()
    """Codec arguments (rate control, presets, channel layout...)."""

    reasons: tuple[str, ...] = ()
    """Why the stream is re-encoded (empty for copy)."""

    @property
    def is_copy(self) -> bool:
        """True if the stream is passed through."""
        return self.action == StreamAction.COPY


@dataclass(frozen=True)
class EncodePlan:
    """Fully resolved, side-effect-free description of one execution attempt.

    A plan is only valid for the profile and capability set it was built
    from. Retries build a new plan; plans are never patched.
    """

    container: Container
    video_codec: VideoCodec
    """Effective target video codec (turbo may override the requested one)."""

    video: StreamDecision | None
    audio: StreamDecision | None

    decode_args: tuple[str, ...] = ()
    """Pre-input decode hints (hardware decode)."""

    device_args: tuple[str, ...] = ()
    """Pre-input hardware device setup the encoder needs (VA-API)."""

    filter_chain: str | None = None
    """Single fused -vf graph (tone-map stage before scale stage)."""

    frame_rate: float | None = None
    container_args: tuple[str, ...] = ()

    tone_mapped: bool = False
    scaled: bool = False
    target_width: int | None = None
    target_height: int | None = None

    hardware_backend: str | None = None
    """Name of the hardware backend encoding video, None for software."""

    supports_two_pass: bool = False
    """True when video is re-encoded in software (pass flags apply)."""

    turbo: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def uses_hardware(self) -> bool:
        """True if the attempt depends on hardware acceleration."""
        return self.hardware_backend is not None or bool(self.decode_args)

    @property
    def copies_everything(self) -> bool:
        """True if no stream is re-encoded."""
        streams = [s for s in (self.video, self.audio) if s is not None]
        return all(s.action != StreamAction.ENCODE for s in streams)

    def describe(self) -> dict[str, Any]:
        """Summarize the plan for dry-run output."""
        return {
            "container": self.container.value,
            "video_codec": self.video_codec.value,
            "video": _describe_stream(self.video),
            "audio": _describe_stream(self.audio),
            "decode_args": list(self.decode_args),
            "device_args": list(self.device_args),
            "filter_chain": self.filter_chain,
            "frame_rate": self.frame_rate,
            "tone_mapped": self.tone_mapped,
            "scaled": self.scaled,
            "target_resolution": (
                f"{self.target_width}x{self.target_height}" if self.scaled else None
            ),
            "hardware_backend": self.hardware_backend,
            "warnings": list(self.warnings),
        }


def _describe_stream(decision: StreamDecision | None) -> dict[str, Any] | None:
    if decision is None:
        return None
    return {
        "action": decision.action.value,
        "map": decision.source_map,
        "encoder": decision.encoder,
        "args": list(decision.encoder_args),
        "reasons": list(decision.reasons),
    }


@dataclass
class TwoPassContext:
    """Context for two-pass encoding.

    Two-pass encoding requires running FFmpeg twice:
    - Pass 1: Analyze video, output to the null sink, create log file
    - Pass 2: Encode video using the log file for accurate bitrate targeting
    """

    passlogfile: Path
    """Path prefix for pass log files (FFmpeg adds suffixes)."""

    current_pass: int = 1
    """Current pass number (1 or 2)."""

    # x265 creates: prefix.log, prefix.log.cutree
    # x264/libvpx/libaom create: prefix-0.log, prefix-0.log.mbtree
    SUFFIXES = (".log", ".log.cutree", ".log.temp", "-0.log", "-0.log.mbtree")

    def stats_files(self) -> list[Path]:
        """Statistics files currently on disk for this context."""
        directory = self.passlogfile.parent
        if not directory.is_dir():
            return []
        return sorted(directory.glob(f"{self.passlogfile.name}*"))

    def cleanup(self) -> None:
        """Remove pass log files after encoding."""
        candidates = {Path(str(self.passlogfile) + s) for s in self.SUFFIXES}
        candidates.update(self.stats_files())
        for log_file in sorted(candidates):
            if log_file.exists():
                try:
                    log_file.unlink()
                    logger.debug("Cleaned up pass log file: %s", log_file)
                except OSError as e:
                    logger.warning(
                        "Could not clean up pass log file %s: %s", log_file, e
                    )


class ConversionState(Enum):
    """States of one conversion run."""

    IDLE = "idle"
    PROBING = "probing"
    PLANNING = "planning"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """True for states a run ends in."""
        return self in (
            ConversionState.DONE,
            ConversionState.FAILED,
            ConversionState.CANCELLED,
        )


class OutcomeStatus(Enum):
    """Final status of a conversion run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AttemptResult:
    """Result of one execution attempt (one or two engine invocations)."""

    return_code: int | None
    cancelled: bool
    tail: tuple[str, ...]
    invocations: int
    saw_end: bool = False

    @property
    def exited_cleanly(self) -> bool:
        """True if the engine reported success."""
        return not self.cancelled and self.return_code == 0


@dataclass(frozen=True)
class ConversionOutcome:
    """Result of a conversion run."""

    status: OutcomeStatus
    return_code: int | None = None
    tail_log: str = ""
    output_path: Path | None = None
    attempts: int = 0
    software_fallback: bool = False
    error: ConversionError | None = None
    summary: str = ""
    plan: EncodePlan | None = None
    invocations: int = 0
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        """True if the run produced a validated output."""
        return self.status == OutcomeStatus.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        """True if the user cancelled the run."""
        return self.status == OutcomeStatus.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "status": self.status.value,
            "return_code": self.return_code,
            "output_path": str(self.output_path) if self.output_path else None,
            "attempts": self.attempts,
            "invocations": self.invocations,
            "software_fallback": self.software_fallback,
            "error": type(self.error).__name__ if self.error else None,
            "summary": self.summary,
            "warnings": list(self.warnings),
        }
