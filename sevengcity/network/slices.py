"""
Network Slices and Physical Bands

Slices are logical traffic classes sharing the access network, each
with its own shaped bandwidth and latency target. Bands model the
physical medium a message travels over.

┌─────────────────────────────────────────────────────────────────┐
│  THz      : ~1 ms base latency, low jitter, 80 Mbps capacity     │
│  OPTICAL  : ~2 ms base latency, very low loss, 150 Mbps capacity │
└─────────────────────────────────────────────────────────────────┘
"""

from dataclasses import dataclass
from enum import Enum


class Band(Enum):
    """Physical-medium models available to the channel."""
    THZ = "thz"
    OPTICAL = "optical"


@dataclass(frozen=True)
class BandProfile:
    """Static per-band propagation parameters."""
    base_latency_ms: float
    jitter_ms: float
    loss_probability: float
    capacity_bps: int

    def __post_init__(self):
        if self.base_latency_ms < 0 or self.jitter_ms < 0:
            raise ValueError("latency and jitter must be non-negative")
        if not 0.0 <= self.loss_probability <= 1.0:
            raise ValueError(f"loss_probability out of range: {self.loss_probability}")
        if self.capacity_bps <= 0:
            raise ValueError(f"capacity_bps must be positive: {self.capacity_bps}")

    def serialization_delay_ms(self, nbytes: int) -> float:
        """Time to clock ``nbytes`` onto the medium, in milliseconds."""
        return (nbytes * 8000.0) / self.capacity_bps


@dataclass(eq=False)
class Slice:
    """
    A logical traffic class.

    ``bandwidth_bps`` is the only mutable field and is written solely by
    the bandwidth controller. Readers (token buckets, exporter, dashboard)
    tolerate a value that is up to one control tick stale.
    """
    slice_id: str
    description: str
    bandwidth_bps: int
    bucket_capacity_bytes: int
    target_latency_ms: float

    def __post_init__(self):
        if self.bandwidth_bps <= 0:
            raise ValueError(f"{self.slice_id}: bandwidth_bps must be positive")
        if self.bucket_capacity_bytes <= 0:
            raise ValueError(f"{self.slice_id}: bucket_capacity_bytes must be positive")


# ═══════════════════════════════════════════════════════════════════════════════
#  DEFAULT CITY PROFILES
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_BAND_PROFILES = {
    Band.THZ: BandProfile(
        base_latency_ms=1.0,
        jitter_ms=0.3,
        loss_probability=0.003,
        capacity_bps=80_000_000,
    ),
    Band.OPTICAL: BandProfile(
        base_latency_ms=2.0,
        jitter_ms=0.5,
        loss_probability=0.001,
        capacity_bps=150_000_000,
    ),
}


def default_slices():
    """Fresh copies of the three city slices (safety, holography, sensors)."""
    return [
        Slice("slice-safety", "Safety-critical IoT", 3_000_000, 128 * 1024, 5),
        Slice("slice-holo", "Holography/3D", 25_000_000, 1024 * 1024, 8),
        Slice("slice-city", "City sensors", 2_000_000, 64 * 1024, 15),
    ]
