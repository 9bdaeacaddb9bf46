"""
Pose data model consumed by the streaming detector.

Pose values come from an external capture pipeline (camera + pose model).
Two representations are supported:
- PoseFrame: timestamped joint map with per-joint confidence
- PoseSample: single scalar motion metric (e.g. an elbow angle)

Absent joints mean "not detected" and never contribute to features.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Union

import numpy as np


class JointName(str, Enum):
    """Body joints reported by the pose source."""
    ROOT = "root"
    NECK = "neck"
    NOSE = "nose"
    LEFT_EYE = "leftEye"
    RIGHT_EYE = "rightEye"
    LEFT_EAR = "leftEar"
    RIGHT_EAR = "rightEar"
    LEFT_SHOULDER = "leftShoulder"
    RIGHT_SHOULDER = "rightShoulder"
    LEFT_ELBOW = "leftElbow"
    RIGHT_ELBOW = "rightElbow"
    LEFT_WRIST = "leftWrist"
    RIGHT_WRIST = "rightWrist"
    LEFT_HIP = "leftHip"
    RIGHT_HIP = "rightHip"
    LEFT_KNEE = "leftKnee"
    RIGHT_KNEE = "rightKnee"
    LEFT_ANKLE = "leftAnkle"
    RIGHT_ANKLE = "rightAnkle"


# MoveNet keypoint order (index -> joint)
MOVENET_JOINTS = [
    JointName.NOSE,
    JointName.LEFT_EYE,
    JointName.RIGHT_EYE,
    JointName.LEFT_EAR,
    JointName.RIGHT_EAR,
    JointName.LEFT_SHOULDER,
    JointName.RIGHT_SHOULDER,
    JointName.LEFT_ELBOW,
    JointName.RIGHT_ELBOW,
    JointName.LEFT_WRIST,
    JointName.RIGHT_WRIST,
    JointName.LEFT_HIP,
    JointName.RIGHT_HIP,
    JointName.LEFT_KNEE,
    JointName.RIGHT_KNEE,
    JointName.LEFT_ANKLE,
    JointName.RIGHT_ANKLE,
]

# Key used for the scalar metric when a PoseSample is wrapped as a frame
METRIC_KEY = "metric"


def joint_key(joint: Union[JointName, str]) -> str:
    """Plain string name of a joint key."""
    return joint.value if isinstance(joint, JointName) else str(joint)


@dataclass(frozen=True)
class JointPoint:
    """Normalized joint location and detection confidence."""
    x: float
    y: float
    confidence: float = 1.0


@dataclass(frozen=True)
class PoseSample:
    """Scalar fallback representation of a pose."""
    time: float
    metric: float

    def to_frame(self) -> "PoseFrame":
        """Wrap the metric as a single-joint frame."""
        return PoseFrame(
            time=self.time,
            joints={METRIC_KEY: JointPoint(x=self.metric, y=0.0, confidence=1.0)},
            metric=self.metric
        )


@dataclass(frozen=True)
class PoseFrame:
    """All detected joints for a single timestamp."""
    time: float
    joints: Mapping[Union[JointName, str], JointPoint] = field(default_factory=dict)
    metric: Optional[float] = None  # Set when built from a PoseSample

    def get(self, joint: Union[JointName, str]) -> Optional[JointPoint]:
        point = self.joints.get(joint)
        if point is None and isinstance(joint, JointName):
            point = self.joints.get(joint.value)
        return point

    @classmethod
    def from_movenet(
        cls,
        time: float,
        keypoints: np.ndarray,
        min_confidence: float = 0.0
    ) -> "PoseFrame":
        """
        Build a frame from MoveNet output.

        Args:
            time: Capture timestamp in seconds
            keypoints: Array of shape (17, 3) with (y, x, confidence) per keypoint
            min_confidence: Keypoints below this are treated as not detected

        Returns:
            PoseFrame with detected joints only
        """
        keypoints = np.asarray(keypoints, dtype=float).reshape(-1, 3)
        joints: Dict[JointName, JointPoint] = {}
        for idx, joint in enumerate(MOVENET_JOINTS[:len(keypoints)]):
            y, x, conf = keypoints[idx]
            if conf < min_confidence:
                continue
            joints[joint] = JointPoint(x=float(x), y=float(y), confidence=float(conf))
        return cls(time=time, joints=joints)

    def to_pose_sample(self) -> PoseSample:
        """Convert to a scalar sample using the right elbow angle (degrees)."""
        angle = three_point_angle(
            self.get(JointName.RIGHT_SHOULDER),
            self.get(JointName.RIGHT_ELBOW),
            self.get(JointName.RIGHT_WRIST)
        )
        return PoseSample(time=self.time, metric=angle if angle is not None else 0.0)


def three_point_angle(
    a: Optional[JointPoint],
    b: Optional[JointPoint],
    c: Optional[JointPoint]
) -> Optional[float]:
    """Angle ABC in degrees, None if a point is missing or a limb has zero length."""
    if a is None or b is None or c is None:
        return None

    v1 = np.array([a.x - b.x, a.y - b.y])
    v2 = np.array([c.x - b.x, c.y - b.y])
    m1 = np.linalg.norm(v1)
    m2 = np.linalg.norm(v2)
    if m1 == 0 or m2 == 0:
        return None

    cos_angle = np.clip(np.dot(v1, v2) / (m1 * m2), -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_angle)))
