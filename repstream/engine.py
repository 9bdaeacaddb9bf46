"""
Streaming workout engine.

Per-frame orchestration around the RepetitionDetector (or the
TemplateRepetitionDetector when a learned pattern is supplied):
1. Pick the quality tier from recent processing times and apply it
2. Run the detector on the frame (timed)
3. Check memory pressure and shrink buffers when needed
4. Forward completed repetitions and intensity to the session manager
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from repstream.config import Settings
from repstream.core.performance import MemoryManager, PerformanceController, QualityTier
from repstream.core.pose import PoseFrame, PoseSample
from repstream.core.repetition_detector import (
    RepetitionDetector, RepetitionLog, ResultKind, StreamingResult, TemplateRepetitionDetector
)
from repstream.core.sequence_matching import ExerciseTemporalPattern
from repstream.models.session import SessionManager
from repstream.schemas.session import WorkoutSessionSummary

logger = logging.getLogger(__name__)


class UpdateKind(Enum):
    NO_EVENT = "no_event"
    REPETITION_LOGGED = "repetition_logged"
    REPETITION_REJECTED = "repetition_rejected"


@dataclass(frozen=True)
class WorkoutUpdate:
    """Engine-level outcome of one frame."""
    kind: UpdateKind
    log: Optional[RepetitionLog] = None
    reason: Optional[str] = None
    result: Optional[StreamingResult] = None


class StreamingWorkoutEngine:
    """
    Adaptive wrapper that feeds a detector and a session manager.

    Single-threaded like the detector it owns.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        pattern: Optional[ExerciseTemporalPattern] = None,
        clock: Callable[[], float] = time.perf_counter
    ):
        """
        Initialize engine.

        Args:
            settings: Engine settings (a fresh Settings() when omitted)
            pattern: Learned exercise pattern; selects the template-driven detector
            clock: Monotonic clock used only to measure processing latency
        """
        self.settings = settings or Settings()
        self.clock = clock

        self.detector: Union[RepetitionDetector, TemplateRepetitionDetector]
        if pattern is not None:
            self.detector = TemplateRepetitionDetector(pattern, settings=self.settings)
        else:
            self.detector = RepetitionDetector(settings=self.settings)
        self.performance_controller = PerformanceController(
            target_fps=self.settings.target_fps,
            window=self.settings.frame_time_window
        )
        self.memory_manager = MemoryManager(
            budget_bytes=self.settings.memory_budget_bytes,
            pressure_ratio=self.settings.memory_pressure_ratio
        )
        self.session_manager = SessionManager(
            intensity_threshold=self.settings.rest_intensity_threshold
        )

        self.repetition_count = 0
        self.rejected_count = 0

        logger.info(f"{self.settings.app_name} engine initialized: "
                    f"detector={type(self.detector).__name__}, target={self.settings.target_fps} fps, "
                    f"memory budget={self.settings.memory_budget_bytes} bytes")

    @property
    def quality_tier(self) -> QualityTier:
        return self.detector.quality_tier

    def process_frame(
        self,
        pose: Union[PoseFrame, PoseSample],
        timestamp: Optional[float] = None
    ) -> WorkoutUpdate:
        started = self.clock()

        quality = self.performance_controller.get_optimal_quality()
        self.detector.adapt_to_performance_level(quality)

        result = self.detector.process_frame(pose, timestamp)
        self.performance_controller.record_frame_time(self.clock() - started)

        if self.memory_manager.should_reduce_footprint(self.detector.estimate_memory_usage()):
            self.detector.reduce_memory_footprint()

        frame_time = timestamp if timestamp is not None else pose.time
        self.session_manager.update_intensity(
            self.detector.last_features.movement_intensity, frame_time
        )
        return self._to_update(result)

    def _to_update(self, result: StreamingResult) -> WorkoutUpdate:
        if result.kind == ResultKind.REPETITION_COMPLETED:
            self.repetition_count += 1
            self.session_manager.log_repetition(result.log)
            return WorkoutUpdate(UpdateKind.REPETITION_LOGGED, log=result.log, result=result)

        if result.kind == ResultKind.REPETITION_REJECTED:
            self.rejected_count += 1
            return WorkoutUpdate(UpdateKind.REPETITION_REJECTED, reason=result.reason, result=result)

        return WorkoutUpdate(UpdateKind.NO_EVENT, result=result)

    # Session passthrough

    def start_session(self, exercise_type: str):
        self.session_manager.start_session(exercise_type)

    def pause_session(self):
        self.session_manager.pause_session()

    def resume_session(self):
        self.session_manager.resume_session()

    def end_session(self):
        self.session_manager.end_session()

    def session_summary(self) -> Optional[WorkoutSessionSummary]:
        return self.session_manager.summary()
