import pytest

from repstream.core.confidence import ConfidenceAccumulator, PhaseType, phase_confidence


def test_phase_confirmed_once_buffer_full_and_average_high():
    accumulator = ConfidenceAccumulator(required_frames=3, threshold=0.7)

    accumulator.accumulate(PhaseType.ECCENTRIC, 0.8)
    accumulator.accumulate(PhaseType.ECCENTRIC, 0.8)
    assert not accumulator.is_confirmed(PhaseType.ECCENTRIC)

    accumulator.accumulate(PhaseType.ECCENTRIC, 0.8)
    assert accumulator.is_confirmed(PhaseType.ECCENTRIC)
    assert accumulator.average(PhaseType.ECCENTRIC) == pytest.approx(0.8)


def test_low_frame_keeps_phase_unconfirmed_until_it_rolls_off():
    accumulator = ConfidenceAccumulator(required_frames=3, threshold=0.7)
    for value in [0.9, 0.9, 0.2]:
        accumulator.accumulate(PhaseType.REST, value)
    assert not accumulator.is_confirmed(PhaseType.REST)

    accumulator.accumulate(PhaseType.REST, 0.9)
    accumulator.accumulate(PhaseType.REST, 0.9)
    assert not accumulator.is_confirmed(PhaseType.REST)

    accumulator.accumulate(PhaseType.REST, 0.9)
    assert accumulator.is_confirmed(PhaseType.REST)


def test_phases_are_tracked_independently():
    accumulator = ConfidenceAccumulator(required_frames=2, threshold=0.5)
    accumulator.accumulate(PhaseType.REST, 1.0)
    accumulator.accumulate(PhaseType.REST, 1.0)
    accumulator.accumulate(PhaseType.CONCENTRIC, 1.0)

    assert accumulator.is_confirmed(PhaseType.REST)
    assert not accumulator.is_confirmed(PhaseType.CONCENTRIC)
    assert accumulator.average(PhaseType.PEAK) == 0.0


def test_reset_clears_all_phases():
    accumulator = ConfidenceAccumulator(required_frames=1, threshold=0.5)
    accumulator.accumulate(PhaseType.REST, 1.0)
    accumulator.reset()
    assert not accumulator.is_confirmed(PhaseType.REST)


@pytest.mark.parametrize("frames,threshold", [(0, 0.7), (3, 1.5), (3, -0.1)])
def test_invalid_accumulator_arguments(frames, threshold):
    with pytest.raises(ValueError):
        ConfidenceAccumulator(frames, threshold)


@pytest.mark.parametrize("phase,intensity,expected", [
    (PhaseType.REST, 0.0, 1.0),
    (PhaseType.REST, 0.05, 0.5),
    (PhaseType.REST, 0.3, 0.0),
    (PhaseType.ECCENTRIC, 0.1, 0.5),
    (PhaseType.ECCENTRIC, 0.2, 1.0),
    (PhaseType.CONCENTRIC, 5.0, 1.0),
])
def test_phase_confidence(phase, intensity, expected):
    assert phase_confidence(phase, intensity, rest_threshold=0.1) == pytest.approx(expected)
