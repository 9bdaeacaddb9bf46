"""
Streaming repetition detector.

Turns a stream of pose frames (or scalar samples) into repetition lifecycle
events, one StreamingResult per frame.

PIPELINE (per frame):
1. FeatureExtractor: sliding-window movement features
2. SmoothingFilter + HysteresisFilter: stable boolean "moving" signal
3. Phase classification from intensity + signed metric velocity
4. ConfidenceAccumulator: multi-frame phase confirmation
5. State machine transition + TemporalValidator on completion

STATE MACHINE:
    Monitoring -> PotentialStart(n) -> InProgress(phase)
        -> PotentialEnd(t) -> Cooldown(until) -> Monitoring

"Motion stopped" (hysteresis) and "repetition confirmed" (phase confidence
over several frames) are separate checks, so single-frame dips do not end a
repetition. "Detected end" and "accepted end" are also separate: a cycle
outside the plausible duration bounds is rejected, not counted.

TemplateRepetitionDetector is the learned-pattern alternative: segment
boundaries come from a SequenceDetector instead of hysteresis + confidence.
"""

import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from repstream.config import Settings
from repstream.core.buffers import RingBuffer
from repstream.core.confidence import ConfidenceAccumulator, PhaseType, phase_confidence
from repstream.core.feature_extractor import FeatureExtractor, MovementFeatures
from repstream.core.performance import DetectorConfiguration, QualityTier
from repstream.core.pose import PoseFrame, PoseSample
from repstream.core.sequence_matching import ExerciseTemporalPattern, SequenceDetector
from repstream.core.signal_filters import HysteresisFilter, SmoothingFilter
from repstream.core.temporal_validator import TemporalValidator

logger = logging.getLogger(__name__)


# =============================================================================
# Detection states (closed union, matched exhaustively in _transition)
# =============================================================================

@dataclass(frozen=True)
class Monitoring:
    """Waiting for movement."""


@dataclass(frozen=True)
class PotentialStart:
    """Movement seen, waiting for it to persist."""
    frame_count: int


@dataclass(frozen=True)
class InProgress:
    """Repetition under way."""
    phase: PhaseType


@dataclass(frozen=True)
class PotentialEnd:
    """Movement stopped with a confirmed phase; end pending."""
    candidate_end_time: float


@dataclass(frozen=True)
class Cooldown:
    """Ignoring movement until `until` after a completed/rejected cycle."""
    until: float


DetectionState = Union[Monitoring, PotentialStart, InProgress, PotentialEnd, Cooldown]


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class RepetitionLog:
    """A completed, validated repetition. Owned by the caller once emitted."""
    start_time: float
    end_time: float
    confidence: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class ResultKind(Enum):
    MONITORING = "monitoring"
    REPETITION_STARTED = "repetition_started"
    REPETITION_IN_PROGRESS = "repetition_in_progress"
    REPETITION_COMPLETED = "repetition_completed"
    REPETITION_REJECTED = "repetition_rejected"


@dataclass(frozen=True)
class StreamingResult:
    """Event emitted for each processed frame."""
    kind: ResultKind
    confidence: Optional[float] = None
    phase: Optional[PhaseType] = None
    log: Optional[RepetitionLog] = None
    reason: Optional[str] = None

    @classmethod
    def monitoring(cls) -> "StreamingResult":
        return cls(ResultKind.MONITORING)

    @classmethod
    def started(cls, confidence: float) -> "StreamingResult":
        return cls(ResultKind.REPETITION_STARTED, confidence=confidence)

    @classmethod
    def in_progress(cls, phase: PhaseType) -> "StreamingResult":
        return cls(ResultKind.REPETITION_IN_PROGRESS, phase=phase)

    @classmethod
    def completed(cls, log: RepetitionLog) -> "StreamingResult":
        return cls(ResultKind.REPETITION_COMPLETED, confidence=log.confidence, log=log)

    @classmethod
    def rejected(cls, reason: str) -> "StreamingResult":
        return cls(ResultKind.REPETITION_REJECTED, reason=reason)


@dataclass(frozen=True)
class DetectorPerformanceMetrics:
    """Self-measured detector cost."""
    average_processing_time: float
    memory_usage: int
    quality_tier: QualityTier
    frames_processed: int


def _as_frame(pose: Union[PoseFrame, PoseSample], timestamp: Optional[float]) -> PoseFrame:
    frame = pose.to_frame() if isinstance(pose, PoseSample) else pose
    if timestamp is not None and timestamp != frame.time:
        frame = replace(frame, time=timestamp)
    return frame


# =============================================================================
# Detector
# =============================================================================

class RepetitionDetector:
    """
    Finite-state repetition detector with adaptive sub-filters.

    Not thread-safe: call process_frame serially from one producer, and
    switch tiers on the same call path.
    """

    STARTED_CONFIDENCE = 0.1

    def __init__(
        self,
        settings: Optional[Settings] = None,
        quality: Optional[QualityTier] = None,
        pattern: Optional[ExerciseTemporalPattern] = None
    ):
        """
        Initialize detector.

        Args:
            settings: Engine settings (a fresh Settings() when omitted)
            quality: Initial quality tier (defaults to settings.initial_quality)
            pattern: Optional learned pattern weighting completion confidence
        """
        self.settings = settings or Settings()
        self.pattern = pattern
        self.validator = TemporalValidator()

        self.state: DetectionState = Monitoring()
        self.start_time: Optional[float] = None
        self.last_features: MovementFeatures = MovementFeatures.neutral()
        self._end_confidence = 1.0

        self._processing_times: RingBuffer[float] = RingBuffer(self.settings.frame_time_window)
        self._frames_processed = 0

        self.quality_tier = quality or self.settings.initial_quality
        self.configuration = DetectorConfiguration.for_tier(self.quality_tier)
        self._build_components()

        logger.info(f"RepetitionDetector initialized: tier={self.quality_tier.value}, "
                    f"pattern={'yes' if pattern else 'no'}")

    def _build_components(self):
        config = self.configuration
        self.feature_extractor = FeatureExtractor(
            buffer_size=config.buffer_size,
            analysis_window=self.settings.analysis_window_frames,
            cache_seconds=self.settings.feature_cache_seconds,
            min_joint_confidence=self.settings.min_joint_confidence
        )
        self.intensity_filter = SmoothingFilter(config.smoothing_window, config.smoothing_factor)
        self.movement_hysteresis = HysteresisFilter(config.hysteresis_low, config.hysteresis_high)
        self.confidence = ConfidenceAccumulator(
            config.confidence_frames, config.confidence_threshold
        )

    def process_frame(
        self,
        pose: Union[PoseFrame, PoseSample],
        timestamp: Optional[float] = None
    ) -> StreamingResult:
        """
        Process one frame or sample and return the resulting event.

        Args:
            pose: Joint frame or scalar sample
            timestamp: Overrides the pose's own time when given

        Returns:
            StreamingResult for this frame
        """
        started = time.perf_counter()

        frame = _as_frame(pose, timestamp)

        features = self.feature_extractor.process_new_frame(frame)
        self.last_features = features

        smoothed = self.intensity_filter.update(features.movement_intensity)
        moving = self.movement_hysteresis.update(smoothed)
        phase = self.classify_phase(features)
        self.confidence.accumulate(
            phase,
            phase_confidence(phase, features.movement_intensity,
                             self.settings.rest_intensity_threshold)
        )

        result = self._transition(frame.time, moving, phase)

        self._frames_processed += 1
        self._processing_times.append(time.perf_counter() - started)

        if self._frames_processed % 30 == 0:
            logger.debug(f"t={frame.time:.2f}s: intensity={features.movement_intensity:.3f}, "
                         f"smoothed={smoothed:.3f}, moving={moving}, phase={phase.value}, "
                         f"state={type(self.state).__name__}")

        return result

    def classify_phase(self, features: MovementFeatures) -> PhaseType:
        """Rest below the intensity threshold, else direction of the metric velocity."""
        if features.movement_intensity < self.settings.rest_intensity_threshold:
            return PhaseType.REST
        if features.metric_velocity > 0:
            return PhaseType.ECCENTRIC
        return PhaseType.CONCENTRIC

    def _transition(self, now: float, moving: bool, phase: PhaseType) -> StreamingResult:
        state = self.state

        if isinstance(state, Monitoring):
            if moving:
                self.state = PotentialStart(frame_count=1)
                self.start_time = now
                logger.debug(f"t={now:.2f}s: potential start")
                return StreamingResult.started(self.STARTED_CONFIDENCE)
            return StreamingResult.monitoring()

        if isinstance(state, PotentialStart):
            if not moving:
                self.state = Monitoring()
                self.start_time = None
            elif state.frame_count + 1 > self.settings.start_confirmation_frames:
                self.state = InProgress(phase=phase)
            else:
                self.state = PotentialStart(frame_count=state.frame_count + 1)
            return StreamingResult.monitoring()

        if isinstance(state, InProgress):
            if not moving and self.confidence.is_confirmed(phase):
                self.state = PotentialEnd(candidate_end_time=now)
                self._end_confidence = self.confidence.average(phase)
            else:
                self.state = InProgress(phase=phase)
            return StreamingResult.in_progress(phase)

        if isinstance(state, PotentialEnd):
            if moving:
                self.state = InProgress(phase=phase)
                return StreamingResult.in_progress(phase)
            return self._finish_cycle(now, state.candidate_end_time)

        if isinstance(state, Cooldown):
            if now >= state.until:
                self.state = Monitoring()
            return StreamingResult.monitoring()

        raise AssertionError(f"Unhandled detection state: {state!r}")

    def _finish_cycle(self, now: float, end_time: float) -> StreamingResult:
        start_time = self.start_time if self.start_time is not None else end_time
        validation = self.validator.validate_repetition(start_time, end_time)
        confidence = self._completion_confidence(end_time - start_time)

        self.confidence.reset()
        self.state = Cooldown(until=now + self.settings.cooldown_seconds)
        self.start_time = None

        if not validation.is_valid:
            logger.info(f"Rejected repetition {start_time:.2f}-{end_time:.2f}s: "
                        f"{validation.description}")
            return StreamingResult.rejected(validation.description)

        log = RepetitionLog(start_time=start_time, end_time=end_time, confidence=confidence)
        logger.info(f"Completed repetition {start_time:.2f}-{end_time:.2f}s "
                    f"(duration={log.duration:.2f}s, confidence={confidence:.2f})")
        return StreamingResult.completed(log)

    def _completion_confidence(self, duration: float) -> float:
        """End-phase confirmation average, weighted by the pattern's duration score."""
        confidence = self._end_confidence
        if self.pattern is not None:
            confidence *= self.pattern.score_duration(duration)
        return confidence

    # =========================================================================
    # Performance management
    # =========================================================================

    def adapt_to_performance_level(self, tier: QualityTier):
        """
        Swap in the configuration for `tier`.

        Sub-filter history (features, smoothing, hysteresis, confidence) is
        rebuilt from scratch; the state machine state is kept.
        """
        if tier == self.quality_tier:
            return

        logger.info(f"Quality tier change: {self.quality_tier.value} -> {tier.value}")
        self.quality_tier = tier
        self.configuration = DetectorConfiguration.for_tier(tier)
        self._build_components()

    def reduce_memory_footprint(self):
        """Drop buffered frames, cached features and phase confidence."""
        logger.info("Reducing detector memory footprint")
        self.feature_extractor.reset()
        self.confidence.reset()

    def estimate_memory_usage(self) -> int:
        return self.feature_extractor.estimate_memory_usage()

    def get_performance_metrics(self) -> DetectorPerformanceMetrics:
        times = self._processing_times.to_chronological()
        return DetectorPerformanceMetrics(
            average_processing_time=sum(times) / len(times) if times else 0.0,
            memory_usage=self.estimate_memory_usage(),
            quality_tier=self.quality_tier,
            frames_processed=self._frames_processed
        )

    def reset(self):
        """Return to Monitoring with empty history."""
        self.state = Monitoring()
        self.start_time = None
        self.last_features = MovementFeatures.neutral()
        self._end_confidence = 1.0
        self._build_components()


class TemplateRepetitionDetector:
    """
    Repetition detector driven by a learned ExerciseTemporalPattern.

    Monitoring -> InProgress -> Cooldown. Movement above the rest threshold
    starts a repetition; it completes when the SequenceDetector closes its
    segment, or when intensity falls below END_INTENSITY. Completed cycles
    still pass the TemporalValidator.
    """

    STARTED_CONFIDENCE = 1.0
    END_INTENSITY = 0.05

    def __init__(
        self,
        pattern: ExerciseTemporalPattern,
        settings: Optional[Settings] = None,
        quality: Optional[QualityTier] = None
    ):
        self.settings = settings or Settings()
        self.pattern = pattern
        self.validator = TemporalValidator()
        self.sequence_detector = SequenceDetector(
            pattern, rest_threshold=self.settings.rest_intensity_threshold
        )

        self.state: DetectionState = Monitoring()
        self.start_time: Optional[float] = None
        self.last_features: MovementFeatures = MovementFeatures.neutral()

        self._processing_times: RingBuffer[float] = RingBuffer(self.settings.frame_time_window)
        self._frames_processed = 0

        self.quality_tier = quality or self.settings.initial_quality
        self.configuration = DetectorConfiguration.for_tier(self.quality_tier)
        self._build_extractor()

        logger.info(f"TemplateRepetitionDetector initialized: tier={self.quality_tier.value}, "
                    f"expected duration={pattern.expected_duration:.2f}s")

    def _build_extractor(self):
        self.feature_extractor = FeatureExtractor(
            buffer_size=self.configuration.buffer_size,
            analysis_window=self.settings.analysis_window_frames,
            cache_seconds=self.settings.feature_cache_seconds,
            min_joint_confidence=self.settings.min_joint_confidence
        )

    def process_frame(
        self,
        pose: Union[PoseFrame, PoseSample],
        timestamp: Optional[float] = None
    ) -> StreamingResult:
        started = time.perf_counter()

        frame = _as_frame(pose, timestamp)
        features = self.feature_extractor.process_new_frame(frame)
        self.last_features = features
        result = self._transition(frame.time, features)

        self._frames_processed += 1
        self._processing_times.append(time.perf_counter() - started)
        return result

    def _transition(self, now: float, features: MovementFeatures) -> StreamingResult:
        state = self.state

        if isinstance(state, Monitoring):
            # After an overlong segment, wait for rest before starting again
            if self.sequence_detector.awaiting_rest:
                self.sequence_detector.process_features(features, now)
                return StreamingResult.monitoring()
            if features.movement_intensity > self.settings.rest_intensity_threshold:
                self.state = InProgress(phase=PhaseType.STARTING)
                self.start_time = now
                self.sequence_detector.process_features(features, now)
                return StreamingResult.started(self.STARTED_CONFIDENCE)
            return StreamingResult.monitoring()

        if isinstance(state, InProgress):
            match = self.sequence_detector.process_features(features, now)
            if match.completed:
                return self._finish_cycle(now, match.confidence)
            if match.rejected:
                self.state = Cooldown(until=now + self.settings.cooldown_seconds)
                self.start_time = None
                logger.info(f"Rejected template repetition: {match.reason}")
                return StreamingResult.rejected(match.reason)
            if features.movement_intensity < self.END_INTENSITY:
                return self._finish_cycle(now, 1.0)
            self.state = InProgress(phase=match.phase)
            return StreamingResult.in_progress(match.phase)

        if isinstance(state, Cooldown):
            if now >= state.until:
                self.state = Monitoring()
            return StreamingResult.monitoring()

        raise AssertionError(f"Unhandled template detection state: {state!r}")

    def _finish_cycle(self, now: float, confidence: float) -> StreamingResult:
        start_time = self.start_time if self.start_time is not None else now
        validation = self.validator.validate_repetition(start_time, now)

        self.sequence_detector.reset()
        self.state = Cooldown(until=now + self.settings.cooldown_seconds)
        self.start_time = None

        if not validation.is_valid:
            logger.info(f"Rejected template repetition {start_time:.2f}-{now:.2f}s: "
                        f"{validation.description}")
            return StreamingResult.rejected(validation.description)

        log = RepetitionLog(start_time=start_time, end_time=now, confidence=confidence)
        logger.info(f"Completed template repetition {start_time:.2f}-{now:.2f}s "
                    f"(confidence={confidence:.2f})")
        return StreamingResult.completed(log)

    def adapt_to_performance_level(self, tier: QualityTier):
        """Resize the feature history for `tier`; detection state is kept."""
        if tier == self.quality_tier:
            return

        logger.info(f"Quality tier change: {self.quality_tier.value} -> {tier.value}")
        self.quality_tier = tier
        self.configuration = DetectorConfiguration.for_tier(tier)
        self._build_extractor()

    def reduce_memory_footprint(self):
        logger.info("Reducing template detector memory footprint")
        self.feature_extractor.reset()

    def estimate_memory_usage(self) -> int:
        return self.feature_extractor.estimate_memory_usage()

    def get_performance_metrics(self) -> DetectorPerformanceMetrics:
        times = self._processing_times.to_chronological()
        return DetectorPerformanceMetrics(
            average_processing_time=sum(times) / len(times) if times else 0.0,
            memory_usage=self.estimate_memory_usage(),
            quality_tier=self.quality_tier,
            frames_processed=self._frames_processed
        )

    def reset(self):
        self.state = Monitoring()
        self.start_time = None
        self.last_features = MovementFeatures.neutral()
        self.sequence_detector.reset()
        self._build_extractor()


class ThresholdRepCounter:
    """
    Minimal single-scalar counter.

    A repetition runs from the metric dropping to `low_threshold` until it
    climbs back to `high_threshold`.
    """

    def __init__(self, low_threshold: float = 0.2, high_threshold: float = 0.8):
        if not low_threshold < high_threshold:
            raise ValueError(f"low_threshold ({low_threshold}) must be below "
                             f"high_threshold ({high_threshold})")
        self.low_threshold = low_threshold
        self.high_threshold = high_threshold
        self._is_down = False
        self._current_start: Optional[float] = None
        self.detected: List[Tuple[float, float]] = []

    def process(self, sample: PoseSample) -> Optional[Tuple[float, float]]:
        """Return (start, end) when a repetition completes on this sample."""
        if not self._is_down:
            if sample.metric <= self.low_threshold:
                self._is_down = True
                self._current_start = sample.time
            return None

        if sample.metric >= self.high_threshold and self._current_start is not None:
            repetition = (self._current_start, sample.time)
            self._is_down = False
            self._current_start = None
            self.detected.append(repetition)
            return repetition
        return None
