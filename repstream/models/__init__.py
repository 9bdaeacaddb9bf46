"""Session models."""

from repstream.models.session import (
    SessionAnalytics, SessionManager, SessionState, WorkoutSession
)

__all__ = [
    "SessionAnalytics",
    "SessionManager",
    "SessionState",
    "WorkoutSession",
]
