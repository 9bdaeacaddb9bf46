"""
Temporal plausibility checks for detected repetitions.

A detected motion cycle is only counted when its duration is humanly
plausible. Failures are reported as rejection reasons, never raised.
"""

from dataclasses import dataclass
from typing import List, Optional


class RejectionReason:
    """Explicit reasons for rejecting a detected cycle."""
    TOO_FAST = "too_fast"
    TOO_SLOW = "too_slow"
    PHASE_TOO_SHORT = "phase_too_short"

    DESCRIPTIONS = {
        TOO_FAST: "Repetition finished faster than a plausible rep",
        TOO_SLOW: "Repetition took longer than a plausible rep",
        PHASE_TOO_SHORT: "Movement phase was too short to be deliberate",
    }

    @classmethod
    def all(cls) -> List[str]:
        return [cls.TOO_FAST, cls.TOO_SLOW, cls.PHASE_TOO_SHORT]

    @classmethod
    def get_description(cls, reason: str) -> str:
        return cls.DESCRIPTIONS.get(reason, reason)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a duration check."""
    is_valid: bool
    duration: float
    reason: Optional[str] = None

    @property
    def description(self) -> str:
        if self.is_valid:
            return "valid"
        return f"{self.reason} ({self.duration:.2f}s)"


class TemporalValidator:
    """Duration bounds for repetitions and phases (fixed, not tier dependent)."""

    MIN_REPETITION_DURATION = 0.8   # seconds
    MAX_REPETITION_DURATION = 10.0  # seconds
    MIN_PHASE_DURATION = 0.2        # seconds

    def validate_repetition(self, start: float, end: float) -> ValidationResult:
        duration = end - start
        if duration < self.MIN_REPETITION_DURATION:
            return ValidationResult(False, duration, RejectionReason.TOO_FAST)
        if duration > self.MAX_REPETITION_DURATION:
            return ValidationResult(False, duration, RejectionReason.TOO_SLOW)
        return ValidationResult(True, duration)

    def validate_phase(self, start: float, end: float) -> ValidationResult:
        duration = end - start
        if duration < self.MIN_PHASE_DURATION:
            return ValidationResult(False, duration, RejectionReason.PHASE_TOO_SHORT)
        return ValidationResult(True, duration)
