import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..pose_detection.landmarks import Frame, Joint
from .base_analyzer import (AnalyzerState, BaseExerciseAnalyzer, ExerciseType, Hold, Metrics,
                            register_analyzer)
from .config_utils import load_plank_config, require_section
from .form_quality import FormQuality, dominant_quality, grade_from_bands, parse_quality_bands
from .pose_utils import EMAFilter, average_point, calculate_angle

# --- Logger Setup ---
logger = logging.getLogger("PlankAnalyzer")
if not logger.hasHandlers():
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)


class PlankPhase(Enum):
    NOT_READY = "notReady"
    HOLDING = "holding"
    BROKEN = "broken"


@dataclass
class PlankState(AnalyzerState):
    phase: PlankPhase = PlankPhase.NOT_READY
    alignment_filter: EMAFilter = None
    hold_start_ms: Optional[float] = None
    current_hold_duration: float = 0.0
    best_hold_duration: float = 0.0
    quality_samples: List[FormQuality] = field(default_factory=list)


def format_hold_time(seconds: float) -> str:
    """Format seconds as m:ss."""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


@register_analyzer(ExerciseType.PLANK)
class PlankAnalyzer(BaseExerciseAnalyzer):
    """
    Times plank holds from the shoulder-hip-ankle line.

    A hold starts once the body is straight enough and horizontal, and ends
    when alignment drops below the break threshold, the body tilts upright,
    or the landmarks disappear. Holds shorter than the minimum are dropped.
    """

    PHASE_LABELS = {
        PlankPhase.NOT_READY: "Get into plank position",
        PlankPhase.HOLDING: "Holding the plank!",
        PlankPhase.BROKEN: "Plank broken, straighten up",
    }

    def _load_default_config(self) -> Dict[str, Any]:
        return load_plank_config()

    def _apply_config(self, config: Mapping[str, Any]) -> None:
        smoothing = require_section(config, "smoothing", ["alignment_alpha"])
        self._alignment_alpha = smoothing["alignment_alpha"]
        self._thresholds = require_section(config, "phase_thresholds", [
            "hold", "break", "max_horizontal_offset", "min_hold_seconds",
        ])
        if self._thresholds["break"] > self._thresholds["hold"]:
            raise ValueError(f"Plank break threshold must not exceed hold threshold: {self._thresholds}")
        bands = require_section(config, "quality_bands", ["alignment"])
        self._alignment_bands = parse_quality_bands(bands["alignment"])

    def _initial_state(self) -> PlankState:
        return PlankState(alignment_filter=EMAFilter(self._alignment_alpha))

    def has_required_landmarks(self, frame: Frame) -> bool:
        return all(
            frame.has(left) or frame.has(right)
            for left, right in (
                (Joint.LEFT_SHOULDER, Joint.RIGHT_SHOULDER),
                (Joint.LEFT_HIP, Joint.RIGHT_HIP),
                (Joint.LEFT_ANKLE, Joint.RIGHT_ANKLE),
            )
        )

    @property
    def longest_hold(self) -> float:
        return self.state.best_hold_duration

    def analyze_frame(self, frame: Frame) -> Metrics:
        state = self.state
        now = frame.timestamp_ms
        th = self._thresholds

        if not self.has_required_landmarks(frame):
            if state.phase is PlankPhase.HOLDING:
                logger.debug("Body lost mid-hold")
                self._finish_hold(now)
            state.phase = PlankPhase.NOT_READY
            state.alignment_filter.reset()
            return self._hold_metrics(False, now)

        shoulder = average_point(frame.get(Joint.LEFT_SHOULDER), frame.get(Joint.RIGHT_SHOULDER))
        hip = average_point(frame.get(Joint.LEFT_HIP), frame.get(Joint.RIGHT_HIP))
        ankle = average_point(frame.get(Joint.LEFT_ANKLE), frame.get(Joint.RIGHT_ANKLE))

        alignment = state.alignment_filter.update(calculate_angle(shoulder, hip, ankle))
        # Rejects someone standing upright and merely leaning
        is_horizontal = abs(shoulder.y - ankle.y) < th["max_horizontal_offset"]
        quality = grade_from_bands(alignment, self._alignment_bands)

        if state.phase in (PlankPhase.NOT_READY, PlankPhase.BROKEN):
            if alignment >= th["hold"] and is_horizontal:
                self._start_hold(now, quality)
        elif state.phase == PlankPhase.HOLDING:
            state.current_hold_duration = (now - state.hold_start_ms) / 1000.0
            state.quality_samples.append(quality)
            if alignment < th["break"] or not is_horizontal:
                self._finish_hold(now)
                state.phase = PlankPhase.BROKEN
            else:
                state.best_hold_duration = max(state.best_hold_duration, state.current_hold_duration)

        return self._hold_metrics(True, now, alignment, quality)

    def _start_hold(self, now: float, quality: FormQuality) -> None:
        state = self.state
        logger.debug(f"[PHASE] {state.phase.value} -> holding")
        state.phase = PlankPhase.HOLDING
        state.hold_start_ms = now
        state.current_hold_duration = 0.0
        state.quality_samples = [quality]

    def _finish_hold(self, now: float) -> None:
        state = self.state
        duration = (now - state.hold_start_ms) / 1000.0
        if duration < self._thresholds["min_hold_seconds"]:
            logger.debug(f"Hold discarded: {duration:.2f}s is below the minimum")
        else:
            state.hold_counter += 1
            hold = Hold(
                id=state.hold_counter,
                duration=duration,
                average_quality=dominant_quality(state.quality_samples),
                timestamp=state.hold_start_ms,
            )
            state.hold_history.append(hold)
            logger.info(f"Plank hold {hold.id}: {hold.duration:.2f}s, quality {hold.average_quality.value}")
        state.hold_start_ms = None
        state.current_hold_duration = 0.0
        state.quality_samples = []

    def _hold_metrics(
        self,
        body_detected: bool,
        now: float,
        alignment: Optional[float] = None,
        quality: FormQuality = FormQuality.UNKNOWN
    ) -> Metrics:
        state = self.state
        hold = 0.0
        if state.phase is PlankPhase.HOLDING and state.hold_start_ms is not None:
            hold = (now - state.hold_start_ms) / 1000.0
        return Metrics(
            rep_count=0,
            phase=self._phase_info(),
            quality=quality if body_detected else FormQuality.UNKNOWN,
            body_detected=body_detected,
            primary_angle=alignment,
            hold_duration=hold,
            longest_hold=state.best_hold_duration,
            primary_value=format_hold_time(hold),
        )
