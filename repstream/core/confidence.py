"""Per-phase multi-frame confidence confirmation."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict

import numpy as np

from repstream.core.buffers import RingBuffer


class PhaseType(Enum):
    """Instantaneous motion phase."""
    REST = "rest"
    STARTING = "starting"
    ECCENTRIC = "eccentric"
    PEAK = "peak"
    CONCENTRIC = "concentric"
    ENDING = "ending"


@dataclass(frozen=True)
class RepetitionPhase:
    """A contiguous phase segment within a feature sequence."""
    type: PhaseType
    start_frame: int
    end_frame: int
    confidence: float = 1.0


def phase_confidence(phase: PhaseType, intensity: float, rest_threshold: float = 0.1) -> float:
    """
    How clearly an intensity supports its phase label (0-1).

    Rest is most certain at zero intensity; moving phases become certain at
    twice the rest threshold.
    """
    if rest_threshold <= 0:
        return 1.0
    if phase == PhaseType.REST:
        return float(np.clip(1.0 - intensity / rest_threshold, 0.0, 1.0))
    return float(np.clip(intensity / (2 * rest_threshold), 0.0, 1.0))


class ConfidenceAccumulator:
    """
    Rolling confidence per phase.

    A phase is confirmed once its buffer holds `required_frames` samples
    and their average reaches `threshold`.
    """

    def __init__(self, required_frames: int = 3, threshold: float = 0.7):
        if required_frames < 1:
            raise ValueError(f"required_frames must be >= 1, got {required_frames}")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {threshold}")
        self.required_frames = required_frames
        self.threshold = threshold
        self._buffers: Dict[PhaseType, RingBuffer[float]] = {}

    def accumulate(self, phase: PhaseType, confidence: float):
        buffer = self._buffers.get(phase)
        if buffer is None:
            buffer = RingBuffer(self.required_frames)
            self._buffers[phase] = buffer
        buffer.append(confidence)

    def average(self, phase: PhaseType) -> float:
        buffer = self._buffers.get(phase)
        if buffer is None or buffer.count == 0:
            return 0.0
        return float(np.mean(buffer.to_chronological()))

    def is_confirmed(self, phase: PhaseType) -> bool:
        buffer = self._buffers.get(phase)
        if buffer is None or not buffer.is_full:
            return False
        return self.average(phase) >= self.threshold

    def reset(self):
        self._buffers.clear()
