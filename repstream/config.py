"""Detector configuration."""

import logging
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class QualityTier(str, Enum):
    """Performance/accuracy trade-off levels, best first."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    MINIMAL = "minimal"


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (REPSTREAM_*)."""

    # Application
    app_name: str = "Repstream"
    debug: bool = False

    # Performance
    target_fps: float = 30.0  # Real-time budget = 1 / target_fps
    frame_time_window: int = 60  # Recent frame durations kept for tier selection
    initial_quality: QualityTier = QualityTier.HIGH

    # Memory
    memory_budget_bytes: int = 50_000_000  # 50MB
    memory_pressure_ratio: float = 0.8  # Reduce footprint above 80% of budget

    # Detection
    rest_intensity_threshold: float = 0.1  # Below this = rest phase
    start_confirmation_frames: int = 5  # Moving frames before a start is promoted
    cooldown_seconds: float = 0.5
    feature_cache_seconds: float = 10.0
    analysis_window_frames: int = 3
    min_joint_confidence: float = 0.0  # 0 = keep every reported joint

    class Config:
        env_prefix = "REPSTREAM_"
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None):
    """Configure root logging for a process embedding the engine."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
