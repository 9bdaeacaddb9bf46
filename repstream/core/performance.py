"""
Performance-adaptive detector tuning.

PerformanceController tracks recent per-frame processing time against the
real-time budget and picks a quality tier. Each tier maps to a fixed
DetectorConfiguration; lower tiers keep shorter histories and react with
wider hysteresis and fewer confirmation frames.

MemoryManager flags memory pressure independently of the quality tier.
"""

import logging
from dataclasses import dataclass

import numpy as np

from repstream.config import QualityTier
from repstream.core.buffers import RingBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectorConfiguration:
    """
    Tunable detector parameters for one quality tier.

    Replaced wholesale on tier change, never mutated.
    """
    buffer_size: int = 180
    smoothing_window: int = 5
    smoothing_factor: float = 0.30
    hysteresis_low: float = 0.05
    hysteresis_high: float = 0.10
    confidence_frames: int = 3
    confidence_threshold: float = 0.70

    def __post_init__(self):
        if self.buffer_size < 1 or self.smoothing_window < 1 or self.confidence_frames < 1:
            raise ValueError(
                f"Buffer sizes must be positive: buffer_size={self.buffer_size}, "
                f"smoothing_window={self.smoothing_window}, "
                f"confidence_frames={self.confidence_frames}"
            )
        if not 0 < self.smoothing_factor <= 1:
            raise ValueError(f"smoothing_factor must be in (0, 1], got {self.smoothing_factor}")
        if not self.hysteresis_low < self.hysteresis_high:
            raise ValueError(
                f"hysteresis_low ({self.hysteresis_low}) must be below "
                f"hysteresis_high ({self.hysteresis_high})"
            )
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}"
            )

    @classmethod
    def for_tier(cls, tier: QualityTier) -> "DetectorConfiguration":
        """Fixed configuration for a quality tier."""
        return TIER_CONFIGURATIONS[tier]


TIER_CONFIGURATIONS = {
    QualityTier.HIGH: DetectorConfiguration(
        buffer_size=180, smoothing_window=5, smoothing_factor=0.30,
        hysteresis_low=0.05, hysteresis_high=0.10,
        confidence_frames=3, confidence_threshold=0.70,
    ),
    QualityTier.MEDIUM: DetectorConfiguration(
        buffer_size=120, smoothing_window=3, smoothing_factor=0.25,
        hysteresis_low=0.07, hysteresis_high=0.12,
        confidence_frames=3, confidence_threshold=0.60,
    ),
    QualityTier.LOW: DetectorConfiguration(
        buffer_size=60, smoothing_window=2, smoothing_factor=0.20,
        hysteresis_low=0.10, hysteresis_high=0.15,
        confidence_frames=2, confidence_threshold=0.50,
    ),
    QualityTier.MINIMAL: DetectorConfiguration(
        buffer_size=30, smoothing_window=1, smoothing_factor=0.10,
        hysteresis_low=0.15, hysteresis_high=0.20,
        confidence_frames=1, confidence_threshold=0.40,
    ),
}


class PerformanceController:
    """
    Picks a quality tier from recent frame processing times.

    Tier by ratio of average frame time to the target frame time:
    < 0.8 high, < 1.2 medium, < 1.5 low, otherwise minimal.
    """

    HIGH_RATIO = 0.8
    MEDIUM_RATIO = 1.2
    LOW_RATIO = 1.5

    def __init__(self, target_fps: float = 30.0, window: int = 60):
        if target_fps <= 0:
            raise ValueError(f"target_fps must be positive, got {target_fps}")
        self.target_frame_time = 1.0 / target_fps
        self._frame_times: RingBuffer[float] = RingBuffer(window)

    def record_frame_time(self, duration: float):
        self._frame_times.append(duration)

    @property
    def average_frame_time(self) -> float:
        if self._frame_times.count == 0:
            return 0.0
        return float(np.mean(self._frame_times.to_chronological()))

    def get_optimal_quality(self) -> QualityTier:
        if self._frame_times.count == 0:
            return QualityTier.HIGH

        ratio = self.average_frame_time / self.target_frame_time
        if ratio < self.HIGH_RATIO:
            return QualityTier.HIGH
        if ratio < self.MEDIUM_RATIO:
            return QualityTier.MEDIUM
        if ratio < self.LOW_RATIO:
            return QualityTier.LOW
        return QualityTier.MINIMAL

    def reset(self):
        self._frame_times.clear()


class MemoryManager:
    """Flags when estimated buffer usage crosses a fraction of the budget."""

    def __init__(self, budget_bytes: int = 50_000_000, pressure_ratio: float = 0.8):
        if budget_bytes <= 0:
            raise ValueError(f"budget_bytes must be positive, got {budget_bytes}")
        if not 0 < pressure_ratio <= 1:
            raise ValueError(f"pressure_ratio must be in (0, 1], got {pressure_ratio}")
        self.budget_bytes = budget_bytes
        self.pressure_ratio = pressure_ratio

    @property
    def pressure_limit(self) -> int:
        return int(self.budget_bytes * self.pressure_ratio)

    def should_reduce_footprint(self, estimated_usage: int) -> bool:
        if estimated_usage > self.pressure_limit:
            logger.warning(f"Memory pressure: ~{estimated_usage} bytes "
                           f"> {self.pressure_limit} bytes limit")
            return True
        return False
