"""
Sliding-window movement feature extraction.

Each incoming frame is appended to a bounded pose buffer and the last few
frames (3 by default) are turned into a MovementFeatures snapshot:
1. Per-joint speeds from consecutive frames (joints present in both)
2. Synthetic "metric" velocity for the single-scalar pipeline
3. Elbow/knee angles at the most recent frame
4. Movement intensity (RMS of per-joint speed sums / pair count)
5. Left/right symmetry

Missing joints and too-short windows degrade to neutral features, never errors.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Tuple, Union

import numpy as np

from repstream.core.buffers import PoseRingBuffer
from repstream.core.pose import (
    METRIC_KEY, JointName, JointPoint, PoseFrame, PoseSample, joint_key, three_point_angle
)

logger = logging.getLogger(__name__)

# Rough per-item footprints used for memory pressure estimates (bytes)
FRAME_BYTES_ESTIMATE = 64
JOINT_BYTES_ESTIMATE = 96
FEATURE_BYTES_ESTIMATE = 512


@dataclass
class MovementFeatures:
    """Movement snapshot derived from a short window of frames."""
    joint_velocities: Dict[str, float] = field(default_factory=dict)
    joint_angles: Dict[str, float] = field(default_factory=dict)
    movement_intensity: float = 0.0
    symmetry: float = 1.0  # 0-1, 1 = both sides moving equally

    @classmethod
    def neutral(cls) -> "MovementFeatures":
        return cls()

    @property
    def metric_velocity(self) -> float:
        return self.joint_velocities.get(METRIC_KEY, 0.0)


class FeatureExtractor:
    """
    Streaming feature extractor over a bounded pose history.

    Keeps a PoseRingBuffer plus a time-ordered cache of the features
    computed during the last `cache_seconds`.
    """

    # Joint triples (a, vertex, c) for the angles reported per frame
    ANGLE_TRIPLES = {
        "leftElbow": (JointName.LEFT_SHOULDER, JointName.LEFT_ELBOW, JointName.LEFT_WRIST),
        "rightElbow": (JointName.RIGHT_SHOULDER, JointName.RIGHT_ELBOW, JointName.RIGHT_WRIST),
        "leftKnee": (JointName.LEFT_HIP, JointName.LEFT_KNEE, JointName.LEFT_ANKLE),
        "rightKnee": (JointName.RIGHT_HIP, JointName.RIGHT_KNEE, JointName.RIGHT_ANKLE),
    }

    def __init__(
        self,
        buffer_size: int = 180,
        analysis_window: int = 3,
        cache_seconds: float = 10.0,
        min_joint_confidence: float = 0.0
    ):
        """
        Initialize extractor.

        Args:
            buffer_size: Number of frames retained in the pose buffer
            analysis_window: Frames used per feature snapshot
            cache_seconds: How long computed features stay cached
            min_joint_confidence: Joints below this confidence are treated as absent
        """
        if analysis_window < 2:
            raise ValueError(f"analysis_window must be at least 2, got {analysis_window}")
        self.buffer = PoseRingBuffer(capacity=buffer_size)
        self.analysis_window = analysis_window
        self.cache_seconds = cache_seconds
        self.min_joint_confidence = min_joint_confidence

        self._cache: Deque[Tuple[float, MovementFeatures]] = deque()

    def process_new_frame(self, frame: PoseFrame) -> MovementFeatures:
        """Append a frame and return features for the current window."""
        self.buffer.append(frame)
        window = self.buffer.recent_frames(self.analysis_window)
        features = self._extract(window)

        self._cache.append((frame.time, features))
        self._prune_cache(frame.time - self.cache_seconds)
        return features

    def process_sample(self, sample: PoseSample) -> MovementFeatures:
        return self.process_new_frame(sample.to_frame())

    def features_in_window(self, duration: float) -> List[Tuple[float, MovementFeatures]]:
        """Cached (timestamp, features) pairs from the last `duration` seconds."""
        if not self._cache:
            return []
        cutoff = self._cache[-1][0] - duration
        return [(t, f) for t, f in self._cache if t >= cutoff]

    @property
    def cached_count(self) -> int:
        return len(self._cache)

    def estimate_memory_usage(self) -> int:
        """Approximate bytes held by buffered frames and cached features."""
        frame_bytes = sum(
            FRAME_BYTES_ESTIMATE + JOINT_BYTES_ESTIMATE * len(f.joints)
            for f in self.buffer
        )
        return frame_bytes + FEATURE_BYTES_ESTIMATE * len(self._cache)

    def reset(self):
        self.buffer.clear()
        self._cache.clear()

    def _prune_cache(self, cutoff: float):
        while self._cache and self._cache[0][0] < cutoff:
            self._cache.popleft()

    def _usable_joints(self, frame: PoseFrame) -> Dict[str, JointPoint]:
        return {
            joint_key(name): point
            for name, point in frame.joints.items()
            if point.confidence >= self.min_joint_confidence
        }

    def _extract(self, frames: List[PoseFrame]) -> MovementFeatures:
        if len(frames) < 2:
            return MovementFeatures.neutral()

        velocity_sums: Dict[str, float] = {}
        left_total = 0.0
        right_total = 0.0
        pair_count = 0

        metric_velocity_sum = 0.0
        metric_pairs = 0

        for prev, cur in zip(frames, frames[1:]):
            dt = cur.time - prev.time
            if dt <= 0:
                continue

            prev_joints = self._usable_joints(prev)
            cur_joints = self._usable_joints(cur)
            for name in prev_joints.keys() & cur_joints.keys():
                p1 = prev_joints[name]
                p2 = cur_joints[name]
                speed = float(np.hypot(p2.x - p1.x, p2.y - p1.y)) / dt
                velocity_sums[name] = velocity_sums.get(name, 0.0) + speed
                if "left" in name:
                    left_total += speed
                elif "right" in name:
                    right_total += speed

            if prev.metric is not None and cur.metric is not None:
                metric_velocity_sum += (cur.metric - prev.metric) / dt
                metric_pairs += 1

            pair_count += 1

        if pair_count == 0:
            return MovementFeatures.neutral()

        velocities = {name: total / pair_count for name, total in velocity_sums.items()}

        # Scalar input keeps its sign so direction survives; joint input uses mean speed
        if metric_pairs > 0:
            velocities[METRIC_KEY] = metric_velocity_sum / metric_pairs
        elif velocity_sums:
            velocities[METRIC_KEY] = float(np.mean(list(velocity_sums.values()))) / pair_count
        else:
            velocities[METRIC_KEY] = 0.0

        latest = self._usable_joints(frames[-1])
        angles: Dict[str, float] = {}
        for label, (a, b, c) in self.ANGLE_TRIPLES.items():
            angle = three_point_angle(
                latest.get(a.value), latest.get(b.value), latest.get(c.value)
            )
            if angle is not None:
                angles[label] = angle

        if velocity_sums:
            sums = np.array(list(velocity_sums.values()))
            intensity = float(np.sqrt(np.mean(sums ** 2))) / pair_count
        else:
            intensity = 0.0

        larger = max(left_total, right_total)
        symmetry = min(left_total, right_total) / larger if larger > 0 else 1.0

        return MovementFeatures(
            joint_velocities=velocities,
            joint_angles=angles,
            movement_intensity=intensity,
            symmetry=symmetry
        )


def extract_sequence(
    poses: List[Union[PoseFrame, PoseSample]],
    **kwargs
) -> List[MovementFeatures]:
    """Run a fresh extractor over a finite pose sequence."""
    extractor = FeatureExtractor(buffer_size=max(len(poses), 1), **kwargs)
    features = []
    for pose in poses:
        frame = pose.to_frame() if isinstance(pose, PoseSample) else pose
        features.append(extractor.process_new_frame(frame))
    return features
