"""Session summary schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class RepetitionLogSchema(BaseModel):
    """Schema for a single completed repetition."""
    start_time: float
    end_time: float
    confidence: float

    class Config:
        from_attributes = True


class WorkoutSessionSummary(BaseModel):
    """Schema for a workout session summary."""
    id: str
    exercise_type: str
    start_time: datetime
    end_time: Optional[datetime] = None

    total_repetitions: int
    average_repetition_duration: float

    # Rest-interval bookkeeping
    rest_durations: List[float]
    average_rest: float

    repetitions: List[RepetitionLogSchema]
