"""Data models for media engine capabilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# Encoder name suffixes that identify hardware implementations
HARDWARE_ENCODER_SUFFIXES = (
    "_nvenc",  # NVIDIA NVENC
    "_qsv",  # Intel Quick Sync
    "_amf",  # AMD AMF
    "_vaapi",  # VA-API (Intel/AMD on Linux)
    "_videotoolbox",  # Apple VideoToolbox
    "_mediacodec",  # Android MediaCodec
)

GPU_SCALE_FILTERS = frozenset({"scale_cuda", "scale_npp", "scale_qsv", "scale_vaapi"})
GPU_TONEMAP_FILTERS = frozenset(
    {"tonemap_opencl", "tonemap_cuda", "tonemap_vaapi", "libplacebo"}
)
# Filters the software tone-map chain needs
SOFTWARE_TONEMAP_FILTERS = frozenset({"zscale", "tonemap"})


@dataclass(frozen=True)
class CapabilitySet:
    """Encoders, decoders and filters one media engine build exposes.

    Built once per process and read-only afterwards. An empty set means
    "unknown", and planning then stays on software paths.
    """

    encoders: frozenset[str] = field(default_factory=frozenset)
    decoders: frozenset[str] = field(default_factory=frozenset)
    filters: frozenset[str] = field(default_factory=frozenset)
    hwaccels: frozenset[str] = field(default_factory=frozenset)
    version: str | None = None
    detected_at: datetime | None = None

    @classmethod
    def empty(cls) -> CapabilitySet:
        """Capability set meaning "software only"."""
        return cls()

    @property
    def is_empty(self) -> bool:
        """True if nothing was detected."""
        return not (self.encoders or self.decoders or self.filters or self.hwaccels)

    def has_encoder(self, name: str) -> bool:
        """Check if encoder is available."""
        return name.casefold() in self.encoders

    def has_decoder(self, name: str) -> bool:
        """Check if decoder is available."""
        return name.casefold() in self.decoders

    def has_filter(self, name: str) -> bool:
        """Check if filter is available."""
        return name.casefold() in self.filters

    def has_hwaccel(self, name: str) -> bool:
        """Check if a hardware decode method is available."""
        return name.casefold() in self.hwaccels

    @property
    def hardware_encoders(self) -> frozenset[str]:
        """Encoders backed by hardware."""
        return frozenset(
            name for name in self.encoders if name.endswith(HARDWARE_ENCODER_SUFFIXES)
        )

    @property
    def supports_gpu_scale(self) -> bool:
        """True if any GPU-accelerated scale filter is present."""
        return bool(self.filters & GPU_SCALE_FILTERS)

    @property
    def supports_gpu_tonemap(self) -> bool:
        """True if any GPU-accelerated tone-map filter is present."""
        return bool(self.filters & GPU_TONEMAP_FILTERS)

    @property
    def supports_software_tonemap(self) -> bool:
        """True if the software tone-map chain can run.

        Unknown (empty) filter lists count as supported so an undetected
        engine still gets tone-mapped output.
        """
        if not self.filters:
            return True
        return SOFTWARE_TONEMAP_FILTERS <= self.filters
