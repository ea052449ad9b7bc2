"""
Pose source boundary: joint identities and frame adapters.
"""

from .landmarks import (
    DEFAULT_MIN_VISIBILITY,
    MEDIAPIPE_TO_JOINT,
    Frame,
    Joint,
    Point,
    frame_from_landmarks,
    frame_from_mediapipe,
)

__all__ = [
    'DEFAULT_MIN_VISIBILITY',
    'MEDIAPIPE_TO_JOINT',
    'Frame',
    'Joint',
    'Point',
    'frame_from_landmarks',
    'frame_from_mediapipe',
]
