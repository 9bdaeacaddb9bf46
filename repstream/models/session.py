"""
Workout session bookkeeping.

Receives completed repetitions from the engine and tracks rest intervals
between them. Persistence is handled by the embedding application.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

import numpy as np

from repstream.core.repetition_detector import RepetitionLog
from repstream.schemas.session import RepetitionLogSchema, WorkoutSessionSummary

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass
class WorkoutSession:
    """One workout of a single exercise."""
    exercise_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    repetitions: List[RepetitionLog] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


class SessionAnalytics:
    """
    Rest-interval bookkeeping.

    A rest interval is either the gap between two repetitions or a stretch
    of low motion intensity ended by renewed movement.
    """

    def __init__(self, intensity_threshold: float = 0.1):
        self.intensity_threshold = intensity_threshold
        self.rest_durations: List[float] = []
        self._last_rep_end: Optional[float] = None
        self._rest_start: Optional[float] = None
        self._is_resting = False

    def update_motion_intensity(self, intensity: float, offset: float):
        if intensity < self.intensity_threshold:
            if not self._is_resting:
                self._rest_start = offset
                self._is_resting = True
        elif self._is_resting:
            if self._rest_start is not None and offset - self._rest_start > 0:
                self.rest_durations.append(offset - self._rest_start)
            self._rest_start = None
            self._is_resting = False

    def register_repetition(self, start: float, end: float):
        if self._last_rep_end is not None and start - self._last_rep_end > 0:
            self.rest_durations.append(start - self._last_rep_end)
        self._last_rep_end = end
        self._rest_start = None
        self._is_resting = False

    @property
    def average_rest(self) -> float:
        return float(np.mean(self.rest_durations)) if self.rest_durations else 0.0


class SessionManager:
    """Session lifecycle: idle -> running <-> paused -> ended."""

    def __init__(self, intensity_threshold: float = 0.1):
        self.state = SessionState.IDLE
        self.sessions: List[WorkoutSession] = []
        self._session: Optional[WorkoutSession] = None
        self._intensity_threshold = intensity_threshold
        self.analytics = SessionAnalytics(intensity_threshold)

    @property
    def current_session(self) -> Optional[WorkoutSession]:
        return self._session

    def start_session(self, exercise_type: str):
        if self.state not in (SessionState.IDLE, SessionState.ENDED):
            logger.warning(f"Cannot start session while {self.state.value}")
            return
        self._session = WorkoutSession(
            exercise_type=exercise_type,
            start_time=datetime.now(timezone.utc)
        )
        self.analytics = SessionAnalytics(self._intensity_threshold)
        self.state = SessionState.RUNNING
        logger.info(f"Session {self._session.id} started: {exercise_type}")

    def pause_session(self):
        if self.state == SessionState.RUNNING:
            self.state = SessionState.PAUSED

    def resume_session(self):
        if self.state == SessionState.PAUSED:
            self.state = SessionState.RUNNING

    def end_session(self):
        if self.state not in (SessionState.RUNNING, SessionState.PAUSED):
            return
        if self._session is not None:
            self._session.end_time = datetime.now(timezone.utc)
            self.sessions.append(self._session)
            logger.info(f"Session {self._session.id} ended: "
                        f"{len(self._session.repetitions)} repetitions")
        self._session = None
        self.state = SessionState.ENDED

    def update_intensity(self, intensity: float, offset: float):
        if self.state == SessionState.RUNNING:
            self.analytics.update_motion_intensity(intensity, offset)

    def log_repetition(self, log: RepetitionLog):
        """Record a completed repetition; ignored unless running."""
        if self.state != SessionState.RUNNING or self._session is None:
            return
        self._session.repetitions.append(log)
        self.analytics.register_repetition(log.start_time, log.end_time)

    def summary(self, session: Optional[WorkoutSession] = None) -> Optional[WorkoutSessionSummary]:
        """Summary of `session` (default: current or most recent)."""
        session = session or self._session or (self.sessions[-1] if self.sessions else None)
        if session is None:
            return None

        durations = [r.duration for r in session.repetitions]
        return WorkoutSessionSummary(
            id=session.id,
            exercise_type=session.exercise_type,
            start_time=session.start_time,
            end_time=session.end_time,
            total_repetitions=len(session.repetitions),
            average_repetition_duration=float(np.mean(durations)) if durations else 0.0,
            rest_durations=list(self.analytics.rest_durations),
            average_rest=self.analytics.average_rest,
            repetitions=[RepetitionLogSchema.model_validate(r) for r in session.repetitions]
        )
