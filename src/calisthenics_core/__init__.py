"""
Real-time motion analysis for squats, push-ups and planks.

Turns per-frame 2D joint positions into rep counts, timed holds and form grades.
"""

from .exercise_analysis import (
    ExerciseType,
    FormQuality,
    Hold,
    Metrics,
    PhaseInfo,
    PlankAnalyzer,
    PushupAnalyzer,
    Rep,
    SquatAnalyzer,
    create_analyzer,
)
from .pose_detection import Frame, Joint, Point, frame_from_landmarks, frame_from_mediapipe
from .session import WorkoutResult, WorkoutSession

__version__ = "0.1.0"

__all__ = [
    'ExerciseType',
    'FormQuality',
    'Frame',
    'Hold',
    'Joint',
    'Metrics',
    'PhaseInfo',
    'PlankAnalyzer',
    'Point',
    'PushupAnalyzer',
    'Rep',
    'SquatAnalyzer',
    'WorkoutResult',
    'WorkoutSession',
    'create_analyzer',
    'frame_from_landmarks',
    'frame_from_mediapipe',
]
