"""
landmarks.py - Joint identities, frame container and pose-source adapters.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional, Sequence

DEFAULT_MIN_VISIBILITY = 0.35


class Joint(Enum):
    """Anatomical landmarks tracked by the analyzers."""
    NOSE = "nose"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


# MediaPipe Pose landmark index -> Joint
MEDIAPIPE_TO_JOINT = {
    0: Joint.NOSE,
    11: Joint.LEFT_SHOULDER,
    12: Joint.RIGHT_SHOULDER,
    13: Joint.LEFT_ELBOW,
    14: Joint.RIGHT_ELBOW,
    15: Joint.LEFT_WRIST,
    16: Joint.RIGHT_WRIST,
    23: Joint.LEFT_HIP,
    24: Joint.RIGHT_HIP,
    25: Joint.LEFT_KNEE,
    26: Joint.RIGHT_KNEE,
    27: Joint.LEFT_ANKLE,
    28: Joint.RIGHT_ANKLE,
}

_JOINTS_BY_NAME = {joint.value: joint for joint in Joint}


class Point(NamedTuple):
    """2D point in normalized image coordinates (y grows downward)."""
    x: float
    y: float


@dataclass
class Frame:
    """
    One timestamped snapshot of the joints observed in a video frame.

    Joints the pose source could not see are simply absent from `points`.
    """
    timestamp_ms: float
    points: Dict[Joint, Point] = field(default_factory=dict)

    def get(self, joint: Joint) -> Optional[Point]:
        return self.points.get(joint)

    def has(self, *joints: Joint) -> bool:
        return all(joint in self.points for joint in joints)


def frame_from_landmarks(
    landmarks: Mapping[str, Sequence[float]],
    timestamp_ms: float,
    min_visibility: float = DEFAULT_MIN_VISIBILITY
) -> Frame:
    """
    Build a Frame from a detector landmark dictionary.

    Args:
        landmarks: Mapping of landmark name to [x, y, z, visibility] (or [x, y]
            when the source carries no visibility score)
        timestamp_ms: Monotonic capture time in milliseconds
        min_visibility: Landmarks at or below this visibility are dropped

    Returns:
        Frame holding the recognised, visible joints
    """
    points = {}
    for name, coords in landmarks.items():
        joint = _JOINTS_BY_NAME.get(name)
        if joint is None or len(coords) < 2:
            continue
        if len(coords) > 3 and coords[3] <= min_visibility:
            continue
        points[joint] = Point(float(coords[0]), float(coords[1]))
    return Frame(timestamp_ms=timestamp_ms, points=points)


def frame_from_mediapipe(
    pose_landmarks: Sequence[Any],
    timestamp_ms: float,
    min_visibility: float = DEFAULT_MIN_VISIBILITY
) -> Frame:
    """
    Build a Frame from a MediaPipe landmark list (objects with x, y, visibility).
    """
    points = {}
    for idx, joint in MEDIAPIPE_TO_JOINT.items():
        if idx >= len(pose_landmarks):
            continue
        landmark = pose_landmarks[idx]
        if landmark is None or getattr(landmark, "visibility", 1.0) <= min_visibility:
            continue
        points[joint] = Point(float(landmark.x), float(landmark.y))
    return Frame(timestamp_ms=timestamp_ms, points=points)
