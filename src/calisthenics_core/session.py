import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from .exercise_analysis.base_analyzer import (BaseExerciseAnalyzer, ExerciseType, Hold, Metrics, Rep,
                                              create_analyzer, resolve_exercise_type)
from .pose_detection.landmarks import Frame

# --- Logger Setup ---
logger = logging.getLogger("WorkoutSession")
if not logger.hasHandlers():
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)


@dataclass(frozen=True)
class WorkoutResult:
    """Session-end payload handed to the reporting layer."""
    exercise_type: ExerciseType
    reps: Tuple[Rep, ...]
    holds: Tuple[Hold, ...]
    total_duration: float  # seconds, pauses excluded
    started_at: float  # ms
    ended_at: float  # ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exerciseType": self.exercise_type.value,
            "reps": [rep.to_dict() for rep in self.reps],
            "holds": [hold.to_dict() for hold in self.holds],
            "totalDuration": self.total_duration,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
        }


class WorkoutSession:
    """Drives one exercise analyzer for the lifetime of a workout."""

    def __init__(self, exercise_type: Union[ExerciseType, str], config: Optional[Dict[str, Any]] = None):
        """
        Initialize the session.

        Args:
            exercise_type: Exercise to analyze
            config: Optional analyzer threshold override

        Raises:
            ValueError: for an unsupported exercise type or invalid config
        """
        self.exercise_type = resolve_exercise_type(exercise_type)
        self.analyzer: BaseExerciseAnalyzer = create_analyzer(self.exercise_type, config)
        self.started_at: Optional[float] = None
        self.ended_at: Optional[float] = None
        self.is_paused = False
        self._elapsed_before_pause = 0.0
        self._last_resume: Optional[float] = None
        self.last_metrics: Optional[Metrics] = None

    @property
    def is_running(self) -> bool:
        return self.started_at is not None and self.ended_at is None

    def start(self, now_ms: float) -> None:
        if self.started_at is not None:
            raise RuntimeError("Workout session already started")
        self.started_at = now_ms
        self._last_resume = now_ms
        logger.info(f"Started {self.exercise_type.value} session")

    def pause(self, now_ms: float) -> None:
        self._require_running()
        if self.is_paused:
            return
        self._elapsed_before_pause += (now_ms - self._last_resume) / 1000.0
        self._last_resume = None
        self.is_paused = True

    def resume(self, now_ms: float) -> None:
        self._require_running()
        if not self.is_paused:
            return
        self._last_resume = now_ms
        self.is_paused = False

    def elapsed(self, now_ms: float) -> float:
        """Active workout time in seconds."""
        total = self._elapsed_before_pause
        if self._last_resume is not None:
            total += (now_ms - self._last_resume) / 1000.0
        return total

    def process_frame(self, frame: Frame) -> Optional[Metrics]:
        """
        Feed one frame to the analyzer.

        Returns:
            The analyzer's Metrics, or None while paused
        """
        self._require_running()
        if self.is_paused:
            return None
        self.last_metrics = self.analyzer.analyze_frame(frame)
        return self.last_metrics

    def finish(self, now_ms: float) -> WorkoutResult:
        self._require_running()
        total_duration = self.elapsed(now_ms)
        self._last_resume = None
        self.ended_at = now_ms
        result = WorkoutResult(
            exercise_type=self.exercise_type,
            reps=self.analyzer.rep_history,
            holds=self.analyzer.hold_history,
            total_duration=total_duration,
            started_at=self.started_at,
            ended_at=now_ms,
        )
        logger.info(f"Finished {self.exercise_type.value} session: {len(result.reps)} reps, "
                    f"{len(result.holds)} holds, {total_duration:.1f}s")
        return result

    def _require_running(self) -> None:
        if self.started_at is None:
            raise RuntimeError("Workout session not started")
        if self.ended_at is not None:
            raise RuntimeError("Workout session already finished")
