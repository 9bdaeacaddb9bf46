import pytest

from repstream.core.feature_extractor import FeatureExtractor, MovementFeatures, extract_sequence
from repstream.core.pose import METRIC_KEY, JointPoint, PoseFrame, PoseSample


def frame(t, **joints):
    return PoseFrame(time=t, joints={name: JointPoint(*xy) for name, xy in joints.items()})


def test_single_frame_is_neutral():
    features = FeatureExtractor().process_new_frame(frame(0.0, leftWrist=(0, 0)))

    assert features == MovementFeatures.neutral()
    assert features.movement_intensity == 0.0
    assert features.symmetry == 1.0
    assert features.joint_velocities == {}


def test_velocities_intensity_and_symmetry():
    extractor = FeatureExtractor()
    extractor.process_new_frame(frame(0.0, leftWrist=(0.0, 0.0), rightWrist=(1.0, 0.0)))
    features = extractor.process_new_frame(
        frame(0.1, leftWrist=(0.3, 0.0), rightWrist=(1.1, 0.0))
    )

    assert features.joint_velocities["leftWrist"] == pytest.approx(3.0)
    assert features.joint_velocities["rightWrist"] == pytest.approx(1.0)
    assert features.metric_velocity == pytest.approx(2.0)
    assert features.movement_intensity == pytest.approx(5 ** 0.5)
    assert features.symmetry == pytest.approx(1 / 3)


def test_joint_missing_from_one_frame_does_not_contribute():
    extractor = FeatureExtractor()
    extractor.process_new_frame(frame(0.0, leftWrist=(0.0, 0.0), rightWrist=(1.0, 0.0)))
    features = extractor.process_new_frame(frame(0.1, leftWrist=(0.3, 0.0)))

    assert set(features.joint_velocities) == {"leftWrist", METRIC_KEY}
    assert features.symmetry == 0.0


def test_pairs_without_elapsed_time_are_skipped():
    extractor = FeatureExtractor()
    extractor.process_new_frame(frame(1.0, leftWrist=(0.0, 0.0)))
    features = extractor.process_new_frame(frame(1.0, leftWrist=(0.5, 0.0)))

    assert features == MovementFeatures.neutral()


def test_angles_come_from_latest_frame():
    extractor = FeatureExtractor()
    extractor.process_new_frame(
        frame(0.0, leftShoulder=(0, 0), leftElbow=(0, 1), leftWrist=(1, 1))
    )
    features = extractor.process_new_frame(
        frame(0.1, leftShoulder=(0, 0), leftElbow=(0, 1), leftWrist=(0, 2))
    )

    assert features.joint_angles == {"leftElbow": pytest.approx(180.0)}


def test_angle_skipped_when_joint_missing():
    extractor = FeatureExtractor()
    extractor.process_new_frame(frame(0.0, leftShoulder=(0, 0), leftElbow=(0, 1)))
    features = extractor.process_new_frame(frame(0.1, leftShoulder=(0, 0), leftElbow=(0, 1)))

    assert features.joint_angles == {}


def test_scalar_samples_keep_velocity_sign():
    extractor = FeatureExtractor()
    rising = [extractor.process_sample(PoseSample(t, m))
              for t, m in [(0.0, 0.0), (0.1, 0.5), (0.2, 1.0)]][-1]
    assert rising.metric_velocity == pytest.approx(5.0)
    assert rising.movement_intensity == pytest.approx(5.0)

    extractor.reset()
    falling = [extractor.process_sample(PoseSample(t, m))
               for t, m in [(0.0, 1.0), (0.1, 0.5), (0.2, 0.0)]][-1]
    assert falling.metric_velocity == pytest.approx(-5.0)
    assert falling.movement_intensity == pytest.approx(5.0)


def test_low_confidence_joints_are_ignored():
    extractor = FeatureExtractor(min_joint_confidence=0.5)
    extractor.process_new_frame(PoseFrame(0.0, {"leftWrist": JointPoint(0, 0, 0.2)}))
    features = extractor.process_new_frame(PoseFrame(0.1, {"leftWrist": JointPoint(1, 0, 0.2)}))

    assert features.movement_intensity == 0.0
    assert "leftWrist" not in features.joint_velocities


def test_feature_cache_is_pruned_to_time_horizon():
    extractor = FeatureExtractor(cache_seconds=10.0)
    for t in range(21):
        extractor.process_new_frame(frame(float(t), leftWrist=(t * 0.01, 0.0)))

    assert extractor.cached_count == 11
    assert [t for t, _ in extractor.features_in_window(2.0)] == [18.0, 19.0, 20.0]


def test_memory_estimate_grows_and_resets():
    extractor = FeatureExtractor()
    empty = extractor.estimate_memory_usage()
    extractor.process_new_frame(frame(0.0, leftWrist=(0, 0), rightWrist=(1, 0)))
    assert extractor.estimate_memory_usage() > empty

    extractor.reset()
    assert extractor.estimate_memory_usage() == 0
    assert extractor.buffer.count == 0


def test_analysis_window_must_hold_a_pair():
    with pytest.raises(ValueError):
        FeatureExtractor(analysis_window=1)


def test_extract_sequence_returns_feature_per_pose():
    samples = [PoseSample(0.1 * i, float(i)) for i in range(5)]
    features = extract_sequence(samples)

    assert len(features) == 5
    assert features[0] == MovementFeatures.neutral()
    assert features[-1].metric_velocity == pytest.approx(10.0)
