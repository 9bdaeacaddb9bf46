"""Real-time exercise repetition detection from streaming pose data."""

__version__ = "1.0.0"
