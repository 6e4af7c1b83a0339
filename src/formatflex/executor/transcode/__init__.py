"""Transcode planning and execution.

This package is organized into focused modules:
- types: EncodePlan, StreamDecision, TwoPassContext, ConversionOutcome
- decisions: tone-map, scale and stream-copy rules
- command: per-encoder arguments and FFmpeg command rendering
- planner: build_plan, the encode plan builder
- retry: hardware-failure retry predicates
- executor: ConversionOrchestrator
"""

from .command import build_ffmpeg_command, build_ffmpeg_command_pass1
from .decisions import (
    compute_scale_target,
    effective_audio_channels,
    effective_video_codec,
    needs_scale,
    needs_tone_map,
)
from .executor import ConversionOrchestrator
from .planner import build_plan
from .retry import (
    DEFAULT_HARDWARE_FAILURE_SIGNATURES,
    RetryPredicate,
    SignatureRetryPredicate,
)
from .types import (
    ConversionOutcome,
    ConversionState,
    EncodePlan,
    OutcomeStatus,
    StreamAction,
    StreamDecision,
    StreamKind,
    TwoPassContext,
)

__all__ = [
    # Types
    "ConversionOutcome",
    "ConversionState",
    "EncodePlan",
    "OutcomeStatus",
    "StreamAction",
    "StreamDecision",
    "StreamKind",
    "TwoPassContext",
    # Decisions
    "compute_scale_target",
    "effective_audio_channels",
    "effective_video_codec",
    "needs_scale",
    "needs_tone_map",
    # Planning and commands
    "build_plan",
    "build_ffmpeg_command",
    "build_ffmpeg_command_pass1",
    # Retry
    "DEFAULT_HARDWARE_FAILURE_SIGNATURES",
    "RetryPredicate",
    "SignatureRetryPredicate",
    # Orchestrator
    "ConversionOrchestrator",
]
