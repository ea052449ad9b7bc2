import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional

from ..pose_detection.landmarks import Frame, Joint, Point
from .base_analyzer import (AnalyzerState, BaseExerciseAnalyzer, ExerciseType, Metrics, Rep,
                            register_analyzer)
from .config_utils import load_squat_config, require_section
from .form_quality import FormQuality, grade_from_bands, parse_phase_bands
from .pose_utils import EMAFilter, average_angle, calculate_angle, calculate_midpoint

# --- Logger Setup ---
logger = logging.getLogger("SquatAnalyzer")
if not logger.hasHandlers():
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)

_SIDES = {
    "left": (Joint.LEFT_SHOULDER, Joint.LEFT_HIP, Joint.LEFT_KNEE, Joint.LEFT_ANKLE),
    "right": (Joint.RIGHT_SHOULDER, Joint.RIGHT_HIP, Joint.RIGHT_KNEE, Joint.RIGHT_ANKLE),
}


# --- Phase Enum ---
class SquatPhase(Enum):
    NOT_READY = "notReady"
    STANDING = "standing"
    DESCENDING = "descending"
    BOTTOM = "bottom"
    ASCENDING = "ascending"


_ACTIVE_PHASES = (SquatPhase.DESCENDING, SquatPhase.BOTTOM, SquatPhase.ASCENDING)


class LegCenters(NamedTuple):
    hip: Point
    knee: Point
    ankle: Point


@dataclass
class SquatState(AnalyzerState):
    phase: SquatPhase = SquatPhase.NOT_READY
    knee_filter: EMAFilter = None
    standing_reference: EMAFilter = None
    deepest_angle: float = 180.0
    deepest_depth: float = 0.0
    worst_quality: FormQuality = FormQuality.GOOD
    rep_start_ms: Optional[float] = None
    last_rep_ms: float = 0.0


@register_analyzer(ExerciseType.SQUATS)
class SquatAnalyzer(BaseExerciseAnalyzer):
    """Counts squats from the averaged hip-knee-ankle angle."""

    PHASE_LABELS = {
        SquatPhase.NOT_READY: "Stand up straight",
        SquatPhase.STANDING: "Starting stance",
        SquatPhase.DESCENDING: "Lower down",
        SquatPhase.BOTTOM: "Bottom position",
        SquatPhase.ASCENDING: "Stand back up",
    }

    def _load_default_config(self) -> Dict[str, Any]:
        return load_squat_config()

    def _apply_config(self, config: Mapping[str, Any]) -> None:
        smoothing = require_section(config, "smoothing", ["knee_alpha", "standing_reference_alpha"])
        self._knee_alpha = smoothing["knee_alpha"]
        self._reference_alpha = smoothing["standing_reference_alpha"]
        self._thresholds = require_section(config, "phase_thresholds", [
            "standing_enter", "descent_start", "bottom_reached", "ascent_start",
            "bottom_regress", "standing_reference_min", "depth_floor", "min_rep_interval_ms",
        ])
        self._penalties = require_section(config, "form_penalties", ["max_knee_asymmetry", "min_trunk_angle"])
        bands = require_section(config, "quality_bands", [p.value for p in SquatPhase if p is not SquatPhase.NOT_READY])
        self._quality_bands = parse_phase_bands(bands)

    def _initial_state(self) -> SquatState:
        return SquatState(
            knee_filter=EMAFilter(self._knee_alpha),
            standing_reference=EMAFilter(self._reference_alpha),
        )

    def has_required_landmarks(self, frame: Frame) -> bool:
        return self._leg_centers(frame) is not None

    def analyze_frame(self, frame: Frame) -> Metrics:
        state = self.state
        centers = self._leg_centers(frame)
        if centers is None:
            if state.phase is not SquatPhase.NOT_READY:
                logger.debug(f"Legs lost in phase {state.phase.value}, waiting for full stance")
            state.phase = SquatPhase.NOT_READY
            state.knee_filter.reset()
            return self._rep_metrics(False)

        knee_angle = state.knee_filter.update(self._averaged_knee_angle(frame))
        self._update_standing_reference(knee_angle)
        depth = self._normalized_depth(knee_angle)
        quality = self._evaluate_quality(knee_angle, frame, centers)

        if state.phase in _ACTIVE_PHASES:
            state.deepest_angle = min(state.deepest_angle, knee_angle)
            if depth is not None:
                state.deepest_depth = max(state.deepest_depth, depth)
            if quality.is_worse_than(state.worst_quality):
                state.worst_quality = quality

        self._update_phase_state_machine(knee_angle, depth, quality, frame.timestamp_ms)
        return self._rep_metrics(True, knee_angle, depth, quality)

    def _update_phase_state_machine(
        self,
        knee_angle: float,
        depth: Optional[float],
        quality: FormQuality,
        now: float
    ) -> None:
        state = self.state
        th = self._thresholds
        previous = state.phase

        if state.phase == SquatPhase.NOT_READY:
            if knee_angle >= th["standing_enter"]:
                state.phase = SquatPhase.STANDING
                self._reset_accumulators()
        elif state.phase == SquatPhase.STANDING:
            if knee_angle < th["descent_start"]:
                state.phase = SquatPhase.DESCENDING
                state.worst_quality = quality
                state.rep_start_ms = now
                state.deepest_angle = knee_angle
                state.deepest_depth = depth if depth is not None else 0.0
        elif state.phase == SquatPhase.DESCENDING:
            if knee_angle <= th["bottom_reached"]:
                state.phase = SquatPhase.BOTTOM
            elif knee_angle >= th["standing_enter"]:
                logger.debug(f"Squat aborted before bottom (deepest {state.deepest_angle:.1f})")
                state.phase = SquatPhase.STANDING
                self._reset_accumulators()
        elif state.phase == SquatPhase.BOTTOM:
            if knee_angle >= th["ascent_start"]:
                state.phase = SquatPhase.ASCENDING
        elif state.phase == SquatPhase.ASCENDING:
            if knee_angle >= th["standing_enter"]:
                self._finish_rep(now)
                state.phase = SquatPhase.STANDING
                self._reset_accumulators()
            elif knee_angle <= th["bottom_regress"]:
                state.phase = SquatPhase.BOTTOM

        if state.phase != previous:
            logger.debug(f"[PHASE] {previous.value} -> {state.phase.value} at knee {knee_angle:.1f}")

    def _finish_rep(self, now: float) -> None:
        state = self.state
        th = self._thresholds
        if state.deepest_angle > th["bottom_reached"]:
            logger.debug(f"Rep discarded: deepest knee angle {state.deepest_angle:.1f} never reached bottom")
            return
        if now - state.last_rep_ms < th["min_rep_interval_ms"]:
            logger.debug(f"Rep discarded: {now - state.last_rep_ms:.0f} ms since previous rep")
            return
        state.rep_counter += 1
        state.last_rep_ms = now
        duration = (now - state.rep_start_ms) / 1000.0 if state.rep_start_ms is not None else 0.0
        rep = Rep(
            id=state.rep_counter,
            deepest_angle=state.deepest_angle,
            depth_percent=state.deepest_depth,
            form_quality=state.worst_quality,
            duration=duration,
            timestamp=now,
        )
        state.rep_history.append(rep)
        logger.info(f"Squat rep {rep.id}: deepest {rep.deepest_angle:.1f}, depth {rep.depth_percent:.2f}, "
                    f"quality {rep.form_quality.value}, {rep.duration:.2f}s")

    def _reset_accumulators(self) -> None:
        state = self.state
        state.deepest_angle = 180.0
        state.deepest_depth = 0.0
        state.worst_quality = FormQuality.GOOD
        state.rep_start_ms = None

    def _evaluate_quality(self, knee_angle: float, frame: Frame, centers: LegCenters) -> FormQuality:
        state = self.state
        bands = self._quality_bands.get(state.phase.value)
        quality = grade_from_bands(knee_angle, bands) if bands is not None else FormQuality.UNKNOWN

        left = self._knee_angle_side(frame, "left")
        right = self._knee_angle_side(frame, "right")
        if left is not None and right is not None and abs(left - right) > self._penalties["max_knee_asymmetry"]:
            quality = quality.degrade()

        trunk = self._trunk_angle(frame)
        if trunk is not None and trunk < self._penalties["min_trunk_angle"]:
            quality = quality.degrade()

        # y grows downward: hip.y <= knee.y puts the hip center at or above the knee
        if state.phase not in (SquatPhase.BOTTOM, SquatPhase.DESCENDING) and centers.hip.y <= centers.knee.y:
            quality = FormQuality.POOR

        return quality

    def _update_standing_reference(self, knee_angle: float) -> None:
        if knee_angle >= self._thresholds["standing_reference_min"]:
            self.state.standing_reference.update(knee_angle)

    def _normalized_depth(self, knee_angle: float) -> Optional[float]:
        reference = self.state.standing_reference
        if not reference.initialized:
            return None
        angle_range = reference.value - self._thresholds["depth_floor"]
        if angle_range <= 1.0:
            return None
        return max(0.0, min(1.0, (reference.value - knee_angle) / angle_range))

    def _averaged_knee_angle(self, frame: Frame) -> Optional[float]:
        return average_angle([self._knee_angle_side(frame, "left"), self._knee_angle_side(frame, "right")])

    @staticmethod
    def _knee_angle_side(frame: Frame, side: str) -> Optional[float]:
        _, hip, knee, ankle = _SIDES[side]
        if not frame.has(hip, knee, ankle):
            return None
        return calculate_angle(frame.get(hip), frame.get(knee), frame.get(ankle))

    @staticmethod
    def _trunk_angle(frame: Frame) -> Optional[float]:
        angles = []
        for shoulder, hip, knee, _ in _SIDES.values():
            if frame.has(shoulder, hip, knee):
                angles.append(calculate_angle(frame.get(shoulder), frame.get(hip), frame.get(knee)))
        return average_angle(angles)

    @staticmethod
    def _leg_centers(frame: Frame) -> Optional[LegCenters]:
        """Hip/knee/ankle centers from whichever leg chains are fully observed."""
        chains = [
            (frame.get(hip), frame.get(knee), frame.get(ankle))
            for _, hip, knee, ankle in _SIDES.values()
            if frame.has(hip, knee, ankle)
        ]
        if not chains:
            return None
        if len(chains) == 1:
            return LegCenters(*chains[0])
        (lh, lk, la), (rh, rk, ra) = chains
        return LegCenters(calculate_midpoint(lh, rh), calculate_midpoint(lk, rk), calculate_midpoint(la, ra))
