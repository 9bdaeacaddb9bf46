"""
Template-based repetition matching.

Secondary detection path reusing the MovementFeatures representation:
- TemporalPatternLearner: builds an ExerciseTemporalPattern from example reps
- SequenceDetector: segments a feature stream and scores completed segments
  against the pattern's expected duration
- DTWMatcher: dynamic time warping similarity between feature sequences
- PatternLearner: averages whole-example features into an ExercisePattern
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.interpolate import interp1d

from repstream.core.buffers import RingBuffer
from repstream.core.confidence import PhaseType, RepetitionPhase
from repstream.core.feature_extractor import MovementFeatures, extract_sequence
from repstream.core.pose import PoseFrame, PoseSample
from repstream.core.temporal_validator import TemporalValidator

logger = logging.getLogger(__name__)

Pose = Union[PoseFrame, PoseSample]


@dataclass(frozen=True)
class ExerciseTemporalPattern:
    """Learned timing template for one exercise (read-only during detection)."""
    expected_duration: float
    velocity_template: Tuple[float, ...] = ()
    intensity_template: Tuple[float, ...] = ()

    def score_duration(self, duration: float) -> float:
        """1 - relative duration error, clamped to [0, 1]."""
        if self.expected_duration <= 0:
            return 0.0
        error = abs(duration - self.expected_duration) / self.expected_duration
        return max(0.0, 1.0 - error)

    def template_features(self) -> List[MovementFeatures]:
        """
        Template as a feature sequence for DTW.

        Uses the learned intensity profile when present (same statistic as
        the observed segment); otherwise falls back to velocity magnitude.
        """
        if self.intensity_template:
            return [MovementFeatures(movement_intensity=v) for v in self.intensity_template]
        return [MovementFeatures(movement_intensity=abs(v)) for v in self.velocity_template]


class DTWMatcher:
    """Dynamic time warping over movement intensity."""

    @staticmethod
    def align_sequences(
        observed: Sequence[MovementFeatures],
        template: Sequence[MovementFeatures]
    ) -> float:
        """
        Similarity in [0, 1] between two feature sequences.

        Cell cost is the absolute intensity difference; the accumulated cost
        is normalized as 1 - cost / (n + m). Empty input scores 0.
        """
        if not observed or not template:
            return 0.0

        n = len(observed)
        m = len(template)
        obs = np.array([f.movement_intensity for f in observed])
        tpl = np.array([f.movement_intensity for f in template])
        costs = np.abs(obs[:, None] - tpl[None, :])

        dtw = np.full((n + 1, m + 1), np.inf)
        dtw[0, 0] = 0.0
        for i in range(1, n + 1):
            for j in range(1, m + 1):
                dtw[i, j] = costs[i - 1, j - 1] + min(
                    dtw[i - 1, j], dtw[i, j - 1], dtw[i - 1, j - 1]
                )

        return max(0.0, 1.0 - float(dtw[n, m]) / (n + m))

    @staticmethod
    def extract_phases(sequence: Sequence[MovementFeatures]) -> List[RepetitionPhase]:
        """Split a sequence into rising (eccentric) / falling (concentric) runs."""
        if not sequence:
            return []

        phases: List[RepetitionPhase] = []
        start = 0
        current = PhaseType.REST
        for i in range(1, len(sequence)):
            diff = sequence[i].movement_intensity - sequence[i - 1].movement_intensity
            new_phase = PhaseType.ECCENTRIC if diff > 0 else PhaseType.CONCENTRIC
            if new_phase != current:
                phases.append(RepetitionPhase(current, start, i - 1))
                start = i - 1
                current = new_phase
        phases.append(RepetitionPhase(current, start, len(sequence) - 1))
        return phases

    @staticmethod
    def velocity_profile(sequence: Sequence[MovementFeatures]) -> List[float]:
        """Frame-to-frame intensity deltas."""
        return [
            sequence[i].movement_intensity - sequence[i - 1].movement_intensity
            for i in range(1, len(sequence))
        ]


@dataclass
class SequenceResult:
    """Per-frame output of the SequenceDetector."""
    completed: bool = False
    phase: PhaseType = PhaseType.REST
    confidence: float = 0.0  # Duration score, set on completion
    similarity: float = 0.0  # DTW similarity to the template, set on completion
    duration: float = 0.0
    rejected: bool = False  # Segment outlived the maximum repetition duration
    reason: Optional[str] = None


class SequenceDetector:
    """
    Segments a feature stream into repetitions using a learned pattern.

    A segment opens when intensity rises above the rest threshold and closes
    on return to rest; its phase follows the sign of the intensity delta.
    A segment running past the maximum repetition duration is rejected and
    dropped, and no new segment opens until the stream returns to rest.
    """

    def __init__(
        self,
        pattern: ExerciseTemporalPattern,
        rest_threshold: float = 0.1,
        max_segment_frames: int = 600
    ):
        """
        Args:
            pattern: Learned exercise pattern
            rest_threshold: Intensity below which the stream is at rest
            max_segment_frames: Most recent segment frames kept for DTW
        """
        self.pattern = pattern
        self.rest_threshold = rest_threshold
        self._validator = TemporalValidator()
        self._template = pattern.template_features()

        self._segment_start: Optional[float] = None
        self._segment: RingBuffer[MovementFeatures] = RingBuffer(max_segment_frames)
        self._previous_intensity = 0.0
        self._awaiting_rest = False

    @property
    def is_active(self) -> bool:
        return self._segment_start is not None

    @property
    def segment_length(self) -> int:
        return self._segment.count

    @property
    def awaiting_rest(self) -> bool:
        return self._awaiting_rest

    def process_features(self, features: MovementFeatures, timestamp: float) -> SequenceResult:
        intensity = features.movement_intensity

        if self._segment_start is None:
            if intensity < self.rest_threshold:
                self._awaiting_rest = False
                return SequenceResult(phase=PhaseType.REST)
            if self._awaiting_rest:
                return SequenceResult(phase=PhaseType.REST)
            self._segment_start = timestamp
            self._segment.append(features)
            self._previous_intensity = intensity
            return SequenceResult(phase=PhaseType.STARTING)

        if intensity < self.rest_threshold:
            return self._close_segment(timestamp)

        if timestamp - self._segment_start > self._validator.MAX_REPETITION_DURATION:
            return self._abandon_segment(timestamp)

        delta = intensity - self._previous_intensity
        self._previous_intensity = intensity
        self._segment.append(features)
        phase = PhaseType.ECCENTRIC if delta > 0 else PhaseType.CONCENTRIC
        return SequenceResult(phase=phase)

    def _close_segment(self, timestamp: float) -> SequenceResult:
        duration = timestamp - self._segment_start
        segment = self._segment.to_chronological()
        self.reset()

        # Blips shorter than a single deliberate phase are noise
        if not self._validator.validate_phase(0.0, duration).is_valid:
            logger.debug(f"Ignoring {duration:.2f}s segment (shorter than one phase)")
            return SequenceResult(phase=PhaseType.REST)

        score = self.pattern.score_duration(duration)
        similarity = DTWMatcher.align_sequences(segment, self._template) if self._template else 0.0
        logger.debug(f"Segment complete: duration={duration:.2f}s, score={score:.2f}, "
                     f"similarity={similarity:.2f}")
        return SequenceResult(
            completed=True,
            phase=PhaseType.ENDING,
            confidence=score,
            similarity=similarity,
            duration=duration
        )

    def _abandon_segment(self, timestamp: float) -> SequenceResult:
        validation = self._validator.validate_repetition(self._segment_start, timestamp)
        self.reset()
        self._awaiting_rest = True
        logger.info(f"Dropping segment: {validation.description}")
        return SequenceResult(
            phase=PhaseType.REST,
            duration=validation.duration,
            rejected=True,
            reason=validation.description
        )

    def reset(self):
        self._segment_start = None
        self._segment.clear()
        self._previous_intensity = 0.0
        self._awaiting_rest = False


@dataclass
class _ExampleSequence:
    duration: float
    profile: List[float] = field(default_factory=list)
    intensities: List[float] = field(default_factory=list)


class TemporalPatternLearner:
    """
    Learns an ExerciseTemporalPattern from recorded example repetitions.

    Each example is reduced to its metric-velocity and intensity profiles;
    the templates are the means of all profiles resampled to their median
    length.
    """

    def __init__(self):
        self._examples: List[_ExampleSequence] = []

    @property
    def example_count(self) -> int:
        return len(self._examples)

    def start_learning_session(self):
        self._examples.clear()

    def record_example_sequence(self, poses: Sequence[Pose]):
        """Record one example repetition (frames or scalar samples)."""
        if len(poses) < 2:
            logger.warning(f"Ignoring example with {len(poses)} pose(s); need at least 2")
            return

        features = extract_sequence(list(poses))[1:]
        duration = poses[-1].time - poses[0].time
        self._examples.append(_ExampleSequence(
            duration=duration,
            profile=[f.metric_velocity for f in features],
            intensities=[f.movement_intensity for f in features]
        ))
        logger.info(f"Recorded example #{len(self._examples)}: "
                    f"{duration:.2f}s, {len(features)} feature samples")

    def generate_temporal_pattern(self) -> ExerciseTemporalPattern:
        if not self._examples:
            return ExerciseTemporalPattern(expected_duration=0.0)

        expected_duration = float(np.mean([e.duration for e in self._examples]))
        length = int(np.median([len(e.profile) for e in self._examples]))

        return ExerciseTemporalPattern(
            expected_duration=expected_duration,
            velocity_template=self._mean_profile([e.profile for e in self._examples], length),
            intensity_template=self._mean_profile([e.intensities for e in self._examples], length)
        )

    @classmethod
    def _mean_profile(cls, profiles: List[List[float]], length: int) -> Tuple[float, ...]:
        if length == 0:
            return ()
        resampled = np.vstack([cls._resample(p, length) for p in profiles])
        return tuple(float(v) for v in np.mean(resampled, axis=0))

    @staticmethod
    def _resample(profile: List[float], length: int) -> np.ndarray:
        if len(profile) == length:
            return np.asarray(profile, dtype=float)
        if len(profile) == 1:
            return np.full(length, profile[0], dtype=float)

        source = np.linspace(0.0, 1.0, len(profile))
        target = np.linspace(0.0, 1.0, length)
        return interp1d(source, np.asarray(profile, dtype=float))(target)


@dataclass(frozen=True)
class ExercisePattern:
    """Average whole-repetition features of the positive examples."""
    joint_velocities: Dict[str, float] = field(default_factory=dict)
    joint_angles: Dict[str, float] = field(default_factory=dict)
    movement_intensity: float = 0.0
    symmetry: float = 1.0


class PatternLearner:
    """
    Averages example repetitions into an ExercisePattern.

    Each example is summarized as the mean of its per-frame features.
    Negative examples are kept for inspection but do not shape the pattern.
    """

    def __init__(self):
        self._positive: List[MovementFeatures] = []
        self._negative: List[MovementFeatures] = []

    @property
    def positive_count(self) -> int:
        return len(self._positive)

    @property
    def negative_count(self) -> int:
        return len(self._negative)

    def start_learning_session(self):
        self._positive.clear()
        self._negative.clear()

    def record_positive_example(self, poses: Sequence[Pose]):
        self._positive.append(self.summarize(poses))

    def record_negative_example(self, poses: Sequence[Pose]):
        self._negative.append(self.summarize(poses))

    def generate_pattern(self) -> ExercisePattern:
        if not self._positive:
            return ExercisePattern()

        return ExercisePattern(
            joint_velocities=self._mean_maps([f.joint_velocities for f in self._positive]),
            joint_angles=self._mean_maps([f.joint_angles for f in self._positive]),
            movement_intensity=float(np.mean([f.movement_intensity for f in self._positive])),
            symmetry=float(np.mean([f.symmetry for f in self._positive]))
        )

    @classmethod
    def summarize(cls, poses: Sequence[Pose]) -> MovementFeatures:
        """Mean features over an example (the first, pair-less frame is skipped)."""
        features = extract_sequence(list(poses))[1:]
        if not features:
            return MovementFeatures.neutral()

        return MovementFeatures(
            joint_velocities=cls._mean_maps([f.joint_velocities for f in features]),
            joint_angles=cls._mean_maps([f.joint_angles for f in features]),
            movement_intensity=float(np.mean([f.movement_intensity for f in features])),
            symmetry=float(np.mean([f.symmetry for f in features]))
        )

    @staticmethod
    def _mean_maps(maps: List[Dict[str, float]]) -> Dict[str, float]:
        """Per-key mean over the maps that contain the key."""
        values: Dict[str, List[float]] = {}
        for m in maps:
            for key, value in m.items():
                values.setdefault(key, []).append(value)
        return {key: float(np.mean(v)) for key, v in values.items()}
