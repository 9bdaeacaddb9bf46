"""Pydantic schemas."""

from repstream.schemas.session import RepetitionLogSchema, WorkoutSessionSummary

__all__ = [
    "RepetitionLogSchema",
    "WorkoutSessionSummary",
]
