"""External media engine tooling.

- detection: find ffmpeg/ffprobe and enumerate engine capabilities
- encoders: prioritized hardware backends and encoder selection
- ffmpeg_progress: telemetry parsing
- models: CapabilitySet
"""

from formatflex.tools.detection import (
    clear_capabilities_cache,
    detect_capabilities,
    find_tool,
    get_capabilities,
)
from formatflex.tools.encoders import (
    HARDWARE_BACKENDS,
    EncoderSelection,
    HardwareBackend,
    select_encoder,
)
from formatflex.tools.ffmpeg_progress import (
    FFmpegProgress,
    ProgressBlockParser,
    parse_stderr_progress,
)
from formatflex.tools.models import CapabilitySet

__all__ = [
    "HARDWARE_BACKENDS",
    "CapabilitySet",
    "EncoderSelection",
    "FFmpegProgress",
    "HardwareBackend",
    "ProgressBlockParser",
    "clear_capabilities_cache",
    "detect_capabilities",
    "find_tool",
    "get_capabilities",
    "parse_stderr_progress",
    "select_encoder",
]
