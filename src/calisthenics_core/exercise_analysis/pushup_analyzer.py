import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..pose_detection.landmarks import Frame, Joint
from .base_analyzer import (AnalyzerState, BaseExerciseAnalyzer, ExerciseType, Metrics, Rep,
                            register_analyzer)
from .config_utils import load_pushup_config, require_section
from .form_quality import FormQuality, grade_from_bands, parse_quality_bands
from .pose_utils import EMAFilter, average_angle, average_point, calculate_angle

# --- Logger Setup ---
logger = logging.getLogger("PushupAnalyzer")
if not logger.hasHandlers():
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)

_ARM_CHAINS = (
    (Joint.LEFT_SHOULDER, Joint.LEFT_ELBOW, Joint.LEFT_WRIST),
    (Joint.RIGHT_SHOULDER, Joint.RIGHT_ELBOW, Joint.RIGHT_WRIST),
)


class PushupPhase(Enum):
    """Push-up exercise phases."""
    NOT_READY = "notReady"  # No usable arm chain yet
    UP = "up"               # Arms extended
    LOWERING = "lowering"   # Lowering phase
    BOTTOM = "bottom"       # Chest near floor
    PUSHING = "pushing"     # Rising phase


@dataclass
class PushupState(AnalyzerState):
    phase: PushupPhase = PushupPhase.NOT_READY
    elbow_filter: EMAFilter = None
    alignment_filter: EMAFilter = None
    deepest_elbow: float = 180.0
    worst_quality: FormQuality = FormQuality.GOOD
    rep_start_ms: Optional[float] = None


@register_analyzer(ExerciseType.PUSH_UPS)
class PushupAnalyzer(BaseExerciseAnalyzer):
    """
    Counts push-ups from the elbow angle and grades them by body alignment.

    Only the shoulder-hip-ankle line affects the grade; the elbow angle
    drives the phases.
    """

    PHASE_LABELS = {
        PushupPhase.NOT_READY: "Get into plank position",
        PushupPhase.UP: "Top, lower down",
        PushupPhase.LOWERING: "Lowering",
        PushupPhase.BOTTOM: "Bottom, push up!",
        PushupPhase.PUSHING: "Pushing up",
    }

    def _load_default_config(self) -> Dict[str, Any]:
        return load_pushup_config()

    def _apply_config(self, config: Mapping[str, Any]) -> None:
        smoothing = require_section(config, "smoothing", ["elbow_alpha", "alignment_alpha"])
        self._elbow_alpha = smoothing["elbow_alpha"]
        self._alignment_alpha = smoothing["alignment_alpha"]
        self._thresholds = require_section(config, "phase_thresholds", ["up", "lower", "bottom", "push", "default_alignment"])
        self._depth_range = require_section(config, "depth", ["min_elbow", "max_elbow"])
        if self._depth_range["max_elbow"] <= self._depth_range["min_elbow"]:
            raise ValueError(f"Invalid push-up depth range: {self._depth_range}")
        bands = require_section(config, "quality_bands", ["alignment"])
        self._alignment_bands = parse_quality_bands(bands["alignment"])

    def _initial_state(self) -> PushupState:
        return PushupState(
            elbow_filter=EMAFilter(self._elbow_alpha),
            alignment_filter=EMAFilter(self._alignment_alpha),
        )

    def has_required_landmarks(self, frame: Frame) -> bool:
        has_arm = any(frame.has(*chain) for chain in _ARM_CHAINS)
        has_hip = frame.has(Joint.LEFT_HIP) or frame.has(Joint.RIGHT_HIP)
        return has_arm and has_hip

    def analyze_frame(self, frame: Frame) -> Metrics:
        state = self.state
        if not self.has_required_landmarks(frame):
            if state.phase is not PushupPhase.NOT_READY:
                logger.debug(f"Arms or hips lost in phase {state.phase.value}")
            state.phase = PushupPhase.NOT_READY
            state.elbow_filter.reset()
            state.alignment_filter.reset()
            return self._rep_metrics(False)

        raw_elbow = average_angle([
            calculate_angle(frame.get(s), frame.get(e), frame.get(w))
            for s, e, w in _ARM_CHAINS if frame.has(s, e, w)
        ])
        elbow = state.elbow_filter.update(raw_elbow)
        alignment = self._body_alignment(frame)
        quality = grade_from_bands(alignment, self._alignment_bands)

        self._update_phase_state_machine(elbow, quality, frame.timestamp_ms)
        return self._rep_metrics(True, elbow, self.depth_percent(elbow), quality)

    def _body_alignment(self, frame: Frame) -> float:
        """Smoothed shoulder-hip-ankle angle; straight when ankles are unseen."""
        state = self.state
        shoulder = average_point(frame.get(Joint.LEFT_SHOULDER), frame.get(Joint.RIGHT_SHOULDER))
        hip = average_point(frame.get(Joint.LEFT_HIP), frame.get(Joint.RIGHT_HIP))
        ankle = average_point(frame.get(Joint.LEFT_ANKLE), frame.get(Joint.RIGHT_ANKLE))
        if ankle is None:
            state.alignment_filter.reset()
            return self._thresholds["default_alignment"]
        return state.alignment_filter.update(calculate_angle(shoulder, hip, ankle))

    def _update_phase_state_machine(self, elbow: float, quality: FormQuality, now: float) -> None:
        state = self.state
        th = self._thresholds
        previous = state.phase

        if state.phase == PushupPhase.NOT_READY:
            if elbow >= th["up"]:
                state.phase = PushupPhase.UP
        elif state.phase == PushupPhase.UP:
            if elbow < th["lower"]:
                state.phase = PushupPhase.LOWERING
                state.rep_start_ms = now
                state.deepest_elbow = elbow
                state.worst_quality = quality
        elif state.phase == PushupPhase.LOWERING:
            self._track_extrema(elbow, quality)
            if elbow <= th["bottom"]:
                state.phase = PushupPhase.BOTTOM
            elif elbow >= th["up"]:
                logger.debug(f"Push-up aborted before bottom (deepest {state.deepest_elbow:.1f})")
                state.phase = PushupPhase.UP
                self._reset_rep()
        elif state.phase == PushupPhase.BOTTOM:
            self._track_extrema(elbow, quality)
            if elbow > th["push"]:
                state.phase = PushupPhase.PUSHING
        elif state.phase == PushupPhase.PUSHING:
            if quality.is_worse_than(state.worst_quality):
                state.worst_quality = quality
            if elbow >= th["up"]:
                self._finish_rep(now)
                state.phase = PushupPhase.UP
                self._reset_rep()
            elif elbow <= th["bottom"]:
                state.phase = PushupPhase.BOTTOM

        if state.phase != previous:
            logger.debug(f"[PHASE] {previous.value} -> {state.phase.value} at elbow {elbow:.1f}")

    def _track_extrema(self, elbow: float, quality: FormQuality) -> None:
        state = self.state
        state.deepest_elbow = min(state.deepest_elbow, elbow)
        if quality.is_worse_than(state.worst_quality):
            state.worst_quality = quality

    def _finish_rep(self, now: float) -> None:
        state = self.state
        state.rep_counter += 1
        duration = (now - state.rep_start_ms) / 1000.0 if state.rep_start_ms is not None else 0.0
        rep = Rep(
            id=state.rep_counter,
            deepest_angle=state.deepest_elbow,
            depth_percent=self.depth_percent(state.deepest_elbow),
            form_quality=state.worst_quality,
            duration=duration,
            timestamp=now,
        )
        state.rep_history.append(rep)
        logger.info(f"Push-up rep {rep.id}: deepest {rep.deepest_angle:.1f}, depth {rep.depth_percent:.2f}, "
                    f"quality {rep.form_quality.value}, {rep.duration:.2f}s")

    def _reset_rep(self) -> None:
        state = self.state
        state.deepest_elbow = 180.0
        state.worst_quality = FormQuality.GOOD
        state.rep_start_ms = None

    def depth_percent(self, elbow: float) -> float:
        """Map the elbow angle onto [0, 1]: straight arm is 0, min_elbow or less is 1."""
        low = self._depth_range["min_elbow"]
        high = self._depth_range["max_elbow"]
        clamped = max(low, min(high, elbow))
        return (high - clamped) / (high - low)
