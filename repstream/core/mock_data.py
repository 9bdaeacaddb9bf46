"""
Synthetic pose streams for tests and benchmarks.

Repetitions use a triangular displacement profile (constant speed up, then
constant speed down) separated by still rest periods.
"""

from typing import Dict, List, Optional

import numpy as np

from repstream.core.pose import JointName, JointPoint, PoseFrame, PoseSample

# Standing skeleton in normalized image coordinates (y grows downward)
BASE_SKELETON: Dict[JointName, tuple] = {
    JointName.LEFT_SHOULDER: (0.40, 0.30),
    JointName.RIGHT_SHOULDER: (0.60, 0.30),
    JointName.LEFT_ELBOW: (0.38, 0.45),
    JointName.RIGHT_ELBOW: (0.62, 0.45),
    JointName.LEFT_WRIST: (0.37, 0.60),
    JointName.RIGHT_WRIST: (0.63, 0.60),
    JointName.LEFT_HIP: (0.44, 0.60),
    JointName.RIGHT_HIP: (0.56, 0.60),
    JointName.LEFT_KNEE: (0.44, 0.78),
    JointName.RIGHT_KNEE: (0.56, 0.78),
    JointName.LEFT_ANKLE: (0.44, 0.95),
    JointName.RIGHT_ANKLE: (0.56, 0.95),
}


def generate_mock_pose_data(repetitions: int, step: float = 0.1) -> List[PoseSample]:
    """Up/down/up metric pattern (1, 0, 1) per repetition."""
    samples: List[PoseSample] = []
    t = 0.0
    for _ in range(repetitions):
        for metric in (1.0, 0.0, 1.0):
            samples.append(PoseSample(time=t, metric=metric))
            t += step
    return samples


def repetition_profile(
    repetitions: int,
    fps: float = 30.0,
    rep_duration: float = 2.0,
    rest_duration: float = 1.5,
    lead_in: float = 1.0
) -> List[tuple]:
    """(time, displacement 0-1) pairs for a sequence of triangular repetitions."""
    cycle = rep_duration + rest_duration
    total = lead_in + repetitions * cycle
    n_frames = int(round(total * fps)) + 1

    profile = []
    for i in range(n_frames):
        t = i / fps
        local = t - lead_in
        displacement = 0.0
        if local >= 0:
            within = local % cycle
            if int(local // cycle) < repetitions and within <= rep_duration:
                displacement = 1.0 - abs(2.0 * within / rep_duration - 1.0)
        profile.append((t, displacement))
    return profile


def generate_repetition_samples(
    repetitions: int,
    fps: float = 30.0,
    rep_duration: float = 2.0,
    rest_duration: float = 1.5,
    lead_in: float = 1.0,
    amplitude: float = 1.0
) -> List[PoseSample]:
    """Scalar stream: metric rises and falls once per repetition."""
    return [
        PoseSample(time=t, metric=amplitude * d)
        for t, d in repetition_profile(repetitions, fps, rep_duration, rest_duration, lead_in)
    ]


def generate_repetition_frames(
    repetitions: int,
    fps: float = 30.0,
    rep_duration: float = 2.0,
    rest_duration: float = 1.5,
    lead_in: float = 1.0,
    amplitude: float = 0.5,
    noise: float = 0.0,
    seed: Optional[int] = None,
    missing_joints: tuple = ()
) -> List[PoseFrame]:
    """
    Joint stream resembling a two-arm curl.

    Wrists travel `amplitude` upward and back per repetition, elbows half
    of it; the rest of the skeleton stays still (plus optional noise).
    """
    rng = np.random.default_rng(seed)
    frames: List[PoseFrame] = []
    for t, d in repetition_profile(repetitions, fps, rep_duration, rest_duration, lead_in):
        joints = {}
        for joint, (x, y) in BASE_SKELETON.items():
            if joint in missing_joints:
                continue
            if joint in (JointName.LEFT_WRIST, JointName.RIGHT_WRIST):
                y -= amplitude * d
            elif joint in (JointName.LEFT_ELBOW, JointName.RIGHT_ELBOW):
                y -= 0.5 * amplitude * d
            if noise > 0:
                x += rng.normal(0.0, noise)
                y += rng.normal(0.0, noise)
            joints[joint] = JointPoint(x=float(x), y=float(y), confidence=0.9)
        frames.append(PoseFrame(time=t, joints=joints))
    return frames


def generate_high_frequency_frame_stream(
    sample_count: int,
    fps: float = 60.0,
    seed: Optional[int] = 0
) -> List[PoseFrame]:
    """Continuous curl stream at a high frame rate for timing benchmarks."""
    duration = sample_count / fps
    repetitions = max(1, int(np.ceil(duration / 3.5)))
    frames = generate_repetition_frames(repetitions, fps=fps, noise=0.001, seed=seed)
    return frames[:sample_count]
