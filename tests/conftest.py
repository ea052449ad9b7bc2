import copy
import math

import pytest

from calisthenics_core.exercise_analysis.config_utils import (load_plank_config, load_pushup_config,
                                                              load_squat_config)
from calisthenics_core.pose_detection.landmarks import Frame, Joint, Point


def _ray(origin, length, angle_deg):
    """Point at `angle_deg` from the upward ray (0, -1) around origin, swinging toward +x."""
    theta = math.radians(angle_deg)
    return Point(origin.x + length * math.sin(theta), origin.y - length * math.cos(theta))


def squat_points(knee_angle, right_knee_angle=None, sides=("left", "right"), with_shoulders=True):
    """Leg chains whose hip-knee-ankle angle equals knee_angle exactly."""
    angles = {"left": knee_angle, "right": knee_angle if right_knee_angle is None else right_knee_angle}
    joints = {
        "left": (Joint.LEFT_SHOULDER, Joint.LEFT_HIP, Joint.LEFT_KNEE, Joint.LEFT_ANKLE, 0.45),
        "right": (Joint.RIGHT_SHOULDER, Joint.RIGHT_HIP, Joint.RIGHT_KNEE, Joint.RIGHT_ANKLE, 0.55),
    }
    points = {}
    for side in sides:
        shoulder, hip, knee, ankle, x = joints[side]
        knee_pt = Point(x, 0.7)
        points[hip] = Point(x, 0.5)
        points[knee] = knee_pt
        points[ankle] = _ray(knee_pt, 0.2, angles[side])
        if with_shoulders:
            points[shoulder] = Point(x, 0.3)
    return points


def pushup_points(elbow_angle, alignment=180.0, with_ankles=True):
    """Side-on push-up pose with exact elbow and shoulder-hip-ankle angles."""
    shoulder = Point(0.3, 0.5)
    elbow = Point(0.3, 0.65)
    wrist = _ray(elbow, 0.15, elbow_angle)
    hip = Point(0.55, 0.5)
    theta = math.radians(alignment)
    ankle = Point(hip.x - 0.3 * math.cos(theta), hip.y + 0.3 * math.sin(theta))
    points = {
        Joint.LEFT_SHOULDER: shoulder, Joint.RIGHT_SHOULDER: shoulder,
        Joint.LEFT_ELBOW: elbow, Joint.RIGHT_ELBOW: elbow,
        Joint.LEFT_WRIST: wrist, Joint.RIGHT_WRIST: wrist,
        Joint.LEFT_HIP: hip, Joint.RIGHT_HIP: hip,
    }
    if with_ankles:
        points[Joint.LEFT_ANKLE] = ankle
        points[Joint.RIGHT_ANKLE] = ankle
    return points


def plank_points(alignment, horizontal=True):
    """Shoulder and ankle level, hip dropped so the angle at the hip equals alignment."""
    if not horizontal:
        return {
            Joint.LEFT_SHOULDER: Point(0.5, 0.2),
            Joint.LEFT_HIP: Point(0.5, 0.55),
            Joint.LEFT_ANKLE: Point(0.5, 0.9),
        }
    sag = 0.25 / math.tan(math.radians(alignment) / 2.0)
    return {
        Joint.LEFT_SHOULDER: Point(0.25, 0.5),
        Joint.LEFT_HIP: Point(0.5, 0.5 + sag),
        Joint.LEFT_ANKLE: Point(0.75, 0.5),
    }


def make_frame(points, timestamp_ms):
    return Frame(timestamp_ms=timestamp_ms, points=dict(points))


class FrameFeeder:
    """Feeds frames at a fixed interval and remembers the last Metrics."""

    def __init__(self, analyzer, step_ms=100.0, start_ms=1000.0):
        self.analyzer = analyzer
        self.step_ms = step_ms
        self.now = start_ms
        self.metrics = []

    def feed(self, points, repeat=1):
        for _ in range(repeat):
            self.metrics.append(self.analyzer.analyze_frame(make_frame(points, self.now)))
            self.now += self.step_ms
        return self.metrics[-1]

    def wait(self, ms):
        self.now += ms


@pytest.fixture
def squat_config_unsmoothed():
    config = copy.deepcopy(load_squat_config())
    config["smoothing"]["knee_alpha"] = 1.0
    return config


@pytest.fixture
def pushup_config_unsmoothed():
    config = copy.deepcopy(load_pushup_config())
    config["smoothing"]["elbow_alpha"] = 1.0
    config["smoothing"]["alignment_alpha"] = 1.0
    return config


@pytest.fixture
def plank_config_unsmoothed():
    config = copy.deepcopy(load_plank_config())
    config["smoothing"]["alignment_alpha"] = 1.0
    return config
