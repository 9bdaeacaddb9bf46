import pytest

from repstream.core.mock_data import generate_mock_pose_data
from repstream.core.repetition_detector import RepetitionLog, ThresholdRepCounter
from repstream.models.session import SessionAnalytics, SessionManager, SessionState
from repstream.schemas.session import WorkoutSessionSummary


def test_session_records_repetitions_and_rest():
    manager = SessionManager()
    counter = ThresholdRepCounter()
    manager.start_session("bicep_curl")

    for sample in generate_mock_pose_data(2):
        repetition = counter.process(sample)
        if repetition:
            start, end = repetition
            manager.log_repetition(RepetitionLog(start_time=start, end_time=end, confidence=1.0))
        manager.update_intensity(sample.metric, sample.time)

    manager.end_session()

    assert manager.state == SessionState.ENDED
    assert len(manager.sessions) == 1
    session = manager.sessions[0]
    assert len(session.repetitions) == 2
    assert session.end_time is not None
    assert manager.analytics.rest_durations
    assert manager.analytics.rest_durations[-1] == pytest.approx(0.2)


def test_repetitions_ignored_unless_running():
    manager = SessionManager()
    log = RepetitionLog(start_time=0.0, end_time=2.0, confidence=0.9)

    manager.log_repetition(log)
    assert manager.current_session is None

    manager.start_session("squat")
    manager.pause_session()
    manager.log_repetition(log)
    assert manager.current_session.repetitions == []

    manager.resume_session()
    manager.log_repetition(log)
    assert manager.current_session.repetitions == [log]


def test_start_while_running_keeps_current_session():
    manager = SessionManager()
    manager.start_session("squat")
    session_id = manager.current_session.id

    manager.start_session("deadlift")
    assert manager.current_session.id == session_id
    assert manager.current_session.exercise_type == "squat"


def test_summary_schema():
    manager = SessionManager()
    assert manager.summary() is None

    manager.start_session("press")
    manager.log_repetition(RepetitionLog(start_time=1.0, end_time=3.0, confidence=0.9))
    manager.log_repetition(RepetitionLog(start_time=4.0, end_time=7.0, confidence=0.8))
    manager.end_session()

    summary = manager.summary()
    assert isinstance(summary, WorkoutSessionSummary)
    assert summary.exercise_type == "press"
    assert summary.total_repetitions == 2
    assert summary.average_repetition_duration == pytest.approx(2.5)
    assert summary.rest_durations == [pytest.approx(1.0)]
    assert summary.average_rest == pytest.approx(1.0)
    assert summary.repetitions[1].confidence == 0.8
    assert summary.end_time is not None


def test_low_intensity_stretch_counts_as_rest():
    analytics = SessionAnalytics(intensity_threshold=0.1)
    analytics.update_motion_intensity(0.5, 0.0)
    analytics.update_motion_intensity(0.0, 1.0)
    analytics.update_motion_intensity(0.0, 2.0)
    analytics.update_motion_intensity(0.5, 3.5)

    assert analytics.rest_durations == [pytest.approx(2.5)]
    assert analytics.average_rest == pytest.approx(2.5)
