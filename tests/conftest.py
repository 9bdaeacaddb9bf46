"""Shared fixtures for detector tests."""

from typing import Callable, List

import pytest

from repstream.config import Settings
from repstream.core import RepetitionDetector, ResultKind, StreamingResult


class FakeClock:
    """Monotonic clock advancing a fixed step per call."""

    def __init__(self, step: float):
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def detector(settings) -> RepetitionDetector:
    return RepetitionDetector(settings=settings)


@pytest.fixture
def run_stream() -> Callable[[RepetitionDetector, list], List[StreamingResult]]:
    def _run(detector: RepetitionDetector, poses: list) -> List[StreamingResult]:
        return [detector.process_frame(pose) for pose in poses]
    return _run


@pytest.fixture
def completed() -> Callable[[List[StreamingResult]], list]:
    def _completed(results: List[StreamingResult]) -> list:
        return [r.log for r in results if r.kind == ResultKind.REPETITION_COMPLETED]
    return _completed


@pytest.fixture
def fake_clock() -> Callable[[float], FakeClock]:
    return FakeClock
