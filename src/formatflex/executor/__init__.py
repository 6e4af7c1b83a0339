"""Execution layer for FormatFlex.

This module drives the external encoding engine:
- ffmpeg_base: process runner with telemetry readers and cancellation
- ffmpeg_utils: temp output and output validation helpers
- events: one-way event channel to the observer
- interface: file placement and lifecycle collaborator protocols
- log_buffer: bounded ring buffer of diagnostic lines
- progress: progress/ETA translation
- transcode: planning and the conversion orchestrator
"""

from formatflex.executor.events import (
    ConversionCompleted,
    ConversionEvent,
    EventChannel,
    ProgressUpdated,
    StateChanged,
)
from formatflex.executor.ffmpeg_base import (
    FFmpegProcessRunner,
    ProcessResult,
    ProcessRunner,
)
from formatflex.executor.interface import (
    FilePlacement,
    LifecycleHooks,
    MoveFilePlacement,
    NullLifecycleHooks,
)
from formatflex.executor.log_buffer import LogRingBuffer
from formatflex.executor.progress import (
    ProgressEstimate,
    ProgressSnapshot,
    ProgressTracker,
    translate_progress,
)

__all__ = [
    # Events
    "ConversionCompleted",
    "ConversionEvent",
    "EventChannel",
    "ProgressUpdated",
    "StateChanged",
    # Process runner
    "FFmpegProcessRunner",
    "ProcessResult",
    "ProcessRunner",
    # Collaborators
    "FilePlacement",
    "LifecycleHooks",
    "MoveFilePlacement",
    "NullLifecycleHooks",
    # Buffers and progress
    "LogRingBuffer",
    "ProgressEstimate",
    "ProgressSnapshot",
    "ProgressTracker",
    "translate_progress",
]
