import logging

import pytest
from pydantic import ValidationError

from repstream.config import Settings, configure_logging, get_settings
from repstream.core.mock_data import generate_repetition_frames, generate_repetition_samples
from repstream.core.performance import QualityTier
from repstream.core.repetition_detector import RepetitionDetector, TemplateRepetitionDetector
from repstream.core.sequence_matching import ExerciseTemporalPattern
from repstream.engine import StreamingWorkoutEngine, UpdateKind


def test_engine_logs_repetitions_into_session(fake_clock):
    engine = StreamingWorkoutEngine(clock=fake_clock(0.001))
    engine.start_session("bicep_curl")

    updates = [engine.process_frame(s) for s in generate_repetition_samples(3)]
    logged = [u for u in updates if u.kind == UpdateKind.REPETITION_LOGGED]

    assert len(logged) == 3
    assert engine.repetition_count == 3
    assert engine.quality_tier == QualityTier.HIGH

    summary = engine.session_summary()
    assert summary.total_repetitions == 3
    assert 0.8 <= summary.average_repetition_duration <= 10.0
    assert summary.rest_durations
    assert [r.start_time for r in summary.repetitions] == [u.log.start_time for u in logged]

    engine.end_session()
    assert len(engine.session_manager.sessions) == 1


def test_engine_counts_rejections(fake_clock):
    engine = StreamingWorkoutEngine(clock=fake_clock(0.001))
    samples = generate_repetition_samples(2, rep_duration=0.3)

    updates = [engine.process_frame(s) for s in samples]

    assert engine.rejected_count == 2
    assert engine.repetition_count == 0
    assert all(
        u.reason.startswith("too_fast")
        for u in updates if u.kind == UpdateKind.REPETITION_REJECTED
    )


def test_engine_without_session_still_reports(fake_clock):
    engine = StreamingWorkoutEngine(clock=fake_clock(0.001))
    updates = [engine.process_frame(s) for s in generate_repetition_samples(1)]

    assert [u.kind for u in updates].count(UpdateKind.REPETITION_LOGGED) == 1
    assert engine.session_summary() is None


def test_engine_drops_quality_when_frames_are_slow(fake_clock):
    engine = StreamingWorkoutEngine(clock=fake_clock(0.06))
    samples = generate_repetition_samples(1)

    engine.process_frame(samples[0])
    assert engine.quality_tier == QualityTier.HIGH

    engine.process_frame(samples[1])
    assert engine.quality_tier == QualityTier.MINIMAL


def test_engine_reduces_footprint_under_memory_pressure(fake_clock, caplog):
    engine = StreamingWorkoutEngine(
        settings=Settings(memory_budget_bytes=2000),
        clock=fake_clock(0.001)
    )

    with caplog.at_level(logging.WARNING):
        engine.process_frame(generate_repetition_frames(1)[0])

    assert engine.detector.feature_extractor.buffer.count == 0
    assert "Memory pressure" in caplog.text


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("REPSTREAM_TARGET_FPS", "60")
    monkeypatch.setenv("REPSTREAM_COOLDOWN_SECONDS", "0.25")

    settings = Settings()
    assert settings.target_fps == 60.0
    assert settings.cooldown_seconds == 0.25
    assert settings.memory_budget_bytes == 50_000_000


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_configure_logging_accepts_settings():
    configure_logging(Settings(debug=True))


def test_configure_logging_without_settings():
    configure_logging()


def test_engine_with_pattern_uses_template_detector(fake_clock):
    engine = StreamingWorkoutEngine(
        pattern=ExerciseTemporalPattern(expected_duration=2.0),
        clock=fake_clock(0.001)
    )
    engine.start_session("bicep_curl")

    updates = [engine.process_frame(s) for s in generate_repetition_samples(3)]

    assert isinstance(engine.detector, TemplateRepetitionDetector)
    assert [u.kind for u in updates].count(UpdateKind.REPETITION_LOGGED) == 3
    assert engine.session_summary().total_repetitions == 3


def test_engine_without_pattern_uses_state_machine_detector(fake_clock):
    engine = StreamingWorkoutEngine(clock=fake_clock(0.001))
    assert isinstance(engine.detector, RepetitionDetector)


def test_engine_init_log_names_app(fake_clock, caplog):
    with caplog.at_level(logging.INFO, logger="repstream.engine"):
        StreamingWorkoutEngine(settings=Settings(app_name="GymFloor"), clock=fake_clock(0.001))

    assert "GymFloor engine initialized" in caplog.text


def test_initial_quality_accepts_tier_names(monkeypatch):
    monkeypatch.setenv("REPSTREAM_INITIAL_QUALITY", "minimal")
    assert Settings().initial_quality == QualityTier.MINIMAL


def test_initial_quality_rejects_unknown_tier(monkeypatch):
    with pytest.raises(ValidationError):
        Settings(initial_quality="turbo")

    monkeypatch.setenv("REPSTREAM_INITIAL_QUALITY", "bogus")
    with pytest.raises(ValidationError):
        Settings()
