"""
Streaming repetition detection engine.

PIPELINE COMPONENTS:
1. PoseRingBuffer: bounded, time-queryable pose history
2. FeatureExtractor: velocities, joint angles, intensity, symmetry per frame
3. SmoothingFilter / HysteresisFilter: stable "moving" signal
4. ConfidenceAccumulator: multi-frame phase confirmation
5. TemporalValidator: plausible repetition durations
6. RepetitionDetector: Monitoring -> PotentialStart -> InProgress -> PotentialEnd -> Cooldown
7. PerformanceController: quality tiers from processing latency

TEMPLATE MATCHING:
TemporalPatternLearner / SequenceDetector / DTWMatcher provide an optional
template path using learned exercise timing; TemplateRepetitionDetector runs
it as a streaming detector. PatternLearner averages whole-example features.

Usage:
    from repstream.core import RepetitionDetector, ResultKind

    detector = RepetitionDetector()
    for frame in frames:
        result = detector.process_frame(frame)
        if result.kind == ResultKind.REPETITION_COMPLETED:
            print(f"Rep: {result.log.duration:.2f}s")
"""

from repstream.core.pose import JointName, JointPoint, PoseFrame, PoseSample
from repstream.core.buffers import RingBuffer, PoseRingBuffer
from repstream.core.feature_extractor import FeatureExtractor, MovementFeatures
from repstream.core.signal_filters import SmoothingFilter, HysteresisFilter
from repstream.core.confidence import (
    ConfidenceAccumulator, PhaseType, RepetitionPhase, phase_confidence
)
from repstream.core.temporal_validator import (
    TemporalValidator, ValidationResult, RejectionReason
)
from repstream.core.performance import (
    DetectorConfiguration, MemoryManager, PerformanceController, QualityTier
)
from repstream.core.sequence_matching import (
    DTWMatcher, ExercisePattern, ExerciseTemporalPattern, PatternLearner, SequenceDetector,
    SequenceResult, TemporalPatternLearner
)
from repstream.core.repetition_detector import (
    RepetitionDetector,
    RepetitionLog,
    ResultKind,
    StreamingResult,
    DetectionState,
    Monitoring,
    PotentialStart,
    InProgress,
    PotentialEnd,
    Cooldown,
    TemplateRepetitionDetector,
    ThresholdRepCounter,
)

__all__ = [
    # Pose data
    "JointName",
    "JointPoint",
    "PoseFrame",
    "PoseSample",

    # Buffers
    "RingBuffer",
    "PoseRingBuffer",

    # Features
    "FeatureExtractor",
    "MovementFeatures",

    # Signal conditioning
    "SmoothingFilter",
    "HysteresisFilter",

    # Confidence
    "ConfidenceAccumulator",
    "PhaseType",
    "RepetitionPhase",
    "phase_confidence",

    # Validation
    "TemporalValidator",
    "ValidationResult",
    "RejectionReason",

    # Performance
    "DetectorConfiguration",
    "MemoryManager",
    "PerformanceController",
    "QualityTier",

    # Template matching
    "DTWMatcher",
    "ExercisePattern",
    "ExerciseTemporalPattern",
    "PatternLearner",
    "SequenceDetector",
    "SequenceResult",
    "TemporalPatternLearner",

    # Detector
    "RepetitionDetector",
    "RepetitionLog",
    "ResultKind",
    "StreamingResult",
    "DetectionState",
    "Monitoring",
    "PotentialStart",
    "InProgress",
    "PotentialEnd",
    "Cooldown",
    "TemplateRepetitionDetector",
    "ThresholdRepCounter",
]
