"""
pose_utils.py - Shared utilities for pose geometry and smoothing.
"""
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from ..pose_detection.landmarks import Point

_MIN_RAY_LENGTH = 1e-4


# --- Math & Geometry Utilities ---
def calculate_angle(a: Point, b: Point, c: Point) -> float:
    """
    Calculate the angle between three points.

    Point ordering convention:
    - a: First point (e.g., shoulder for elbow angle)
    - b: Middle point (e.g., elbow for elbow angle)
    - c: Last point (e.g., wrist for elbow angle)
    - The angle is calculated at point 'b' between vectors 'ba' and 'bc'

    Args:
        a: First point
        b: Vertex point - angle is calculated here
        c: Last point
    Returns:
        Angle in degrees in [0, 180], or 0.0 when either ray is degenerate
    """
    ba = np.array([a.x - b.x, a.y - b.y])
    bc = np.array([c.x - b.x, c.y - b.y])
    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba < _MIN_RAY_LENGTH or norm_bc < _MIN_RAY_LENGTH:
        return 0.0
    cosine_angle = np.dot(ba, bc) / (norm_ba * norm_bc)
    cosine_angle = np.clip(cosine_angle, -1.0, 1.0)
    return float(np.degrees(np.arccos(cosine_angle)))


def calculate_midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) * 0.5, (a.y + b.y) * 0.5)


def calculate_length(a: Point, b: Point) -> float:
    """Calculate Euclidean distance between two points."""
    return float(np.linalg.norm(np.array([a.x - b.x, a.y - b.y])))


def average_point(a: Optional[Point], b: Optional[Point]) -> Optional[Point]:
    """
    Combine a left/right landmark pair robustly:
    - If both are present, return their midpoint.
    - If only one side is present, return that side.
    - If neither side is available, return None.
    """
    if a is not None and b is not None:
        return calculate_midpoint(a, b)
    if a is not None:
        return a
    return b


def average_angle(values: Sequence[Optional[float]]) -> Optional[float]:
    """Mean of the available angles, None if none are available."""
    present = [v for v in values if v is not None]
    return float(np.mean(present)) if present else None


# --- Temporal Smoothing ---
class FilterState(Enum):
    UNINITIALIZED = "uninitialized"
    SEEDED = "seeded"


class EMAFilter:
    """
    Exponential moving average for a single signal.

    The first sample after construction or reset() seeds the filter exactly.
    """

    def __init__(self, alpha: float = 0.3):
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"EMA alpha must be in (0, 1], got {alpha}")
        self.alpha = alpha
        self.state = FilterState.UNINITIALIZED
        self.value = 0.0

    @property
    def initialized(self) -> bool:
        return self.state is FilterState.SEEDED

    def update(self, raw: float) -> float:
        if self.state is FilterState.UNINITIALIZED:
            self.state = FilterState.SEEDED
            self.value = raw
        else:
            self.value = self.alpha * raw + (1.0 - self.alpha) * self.value
        return self.value

    def reset(self) -> None:
        self.state = FilterState.UNINITIALIZED
        self.value = 0.0
