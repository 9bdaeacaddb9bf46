import pytest

from repstream.core.temporal_validator import RejectionReason, TemporalValidator


@pytest.fixture
def validator():
    return TemporalValidator()


def test_too_fast(validator):
    result = validator.validate_repetition(1.0, 1.5)
    assert not result.is_valid
    assert result.reason == RejectionReason.TOO_FAST
    assert result.description == "too_fast (0.50s)"


def test_too_slow(validator):
    result = validator.validate_repetition(0.0, 11.0)
    assert not result.is_valid
    assert result.reason == RejectionReason.TOO_SLOW


@pytest.mark.parametrize("duration", [0.8, 2.0, 10.0])
def test_plausible_durations_are_valid(validator, duration):
    result = validator.validate_repetition(0.0, duration)
    assert result.is_valid
    assert result.reason is None
    assert result.description == "valid"


def test_phase_minimum_duration(validator):
    assert not validator.validate_phase(0.0, 0.1).is_valid
    assert validator.validate_phase(0.0, 0.5).is_valid


def test_rejection_reasons_have_descriptions():
    for reason in RejectionReason.all():
        assert RejectionReason.get_description(reason) != reason
    assert RejectionReason.get_description("unknown") == "unknown"
