from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type, Union

from ..pose_detection.landmarks import Frame
from .form_quality import FormQuality


class ExerciseType(Enum):
    """Supported exercises."""
    SQUATS = "squats"
    PUSH_UPS = "pushUps"
    PLANK = "plank"

    @property
    def display_name(self) -> str:
        return _EXERCISE_INFO[self][0]

    @property
    def is_rep_based(self) -> bool:
        return _EXERCISE_INFO[self][1]

    @property
    def guidance_text(self) -> str:
        return _EXERCISE_INFO[self][2]


_EXERCISE_INFO = {
    ExerciseType.SQUATS: (
        "Squats", True,
        "Step 2-3 meters back. Shoulders, hips, knees and feet must be in frame."
    ),
    ExerciseType.PUSH_UPS: (
        "Push-ups", True,
        "Place the camera at floor level, side on. Shoulders, elbows and feet must be in frame."
    ),
    ExerciseType.PLANK: (
        "Plank", False,
        "Place the camera at floor level, side on. Shoulders, hips and feet must be in frame."
    ),
}


@dataclass(frozen=True)
class PhaseInfo:
    """Machine state name plus a short human-readable label."""
    type: str
    label: str


@dataclass(frozen=True)
class Rep:
    """A confirmed repetition. Created once, never mutated."""
    id: int
    deepest_angle: float
    depth_percent: float
    form_quality: FormQuality
    duration: float  # seconds
    timestamp: float  # completion time, ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "deepestAngle": self.deepest_angle,
            "depthPercent": self.depth_percent,
            "formQuality": self.form_quality.value,
            "duration": self.duration,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Hold:
    """A recorded plank hold. Created once, never mutated."""
    id: int
    duration: float  # seconds
    average_quality: FormQuality  # dominant grade over the hold
    timestamp: float  # start time, ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "duration": self.duration,
            "averageQuality": self.average_quality.value,
            "timestamp": self.timestamp,
        }


@dataclass
class Metrics:
    """Per-frame snapshot handed to the presentation layer."""
    rep_count: int
    phase: PhaseInfo
    quality: FormQuality
    body_detected: bool
    primary_value: str
    primary_angle: Optional[float] = None
    depth_percent: Optional[float] = None
    hold_duration: Optional[float] = None
    longest_hold: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repCount": self.rep_count,
            "phase": {"type": self.phase.type, "label": self.phase.label},
            "quality": self.quality.value,
            "bodyDetected": self.body_detected,
            "primaryAngle": self.primary_angle,
            "depthPercent": self.depth_percent,
            "holdDuration": self.hold_duration,
            "longestHold": self.longest_hold,
            "primaryValue": self.primary_value,
        }


@dataclass
class AnalyzerState:
    """Live state shared by every analyzer; subclasses add their accumulators."""
    phase: Enum
    rep_counter: int = 0
    hold_counter: int = 0
    rep_history: List[Rep] = field(default_factory=list)
    hold_history: List[Hold] = field(default_factory=list)


class BaseExerciseAnalyzer(ABC):
    """Base class for exercise analysis implementations."""

    exercise_type: ExerciseType = None
    PHASE_LABELS: Dict[Enum, str] = {}

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        """
        Initialize the analyzer with configuration parameters.

        Args:
            config: Threshold configuration; the packaged JSON config when None
        """
        self.config = dict(config) if config is not None else self._load_default_config()
        self._apply_config(self.config)
        self.state = self._initial_state()

    @abstractmethod
    def _load_default_config(self) -> Dict[str, Any]:
        """Load the packaged configuration for this exercise."""
        pass

    @abstractmethod
    def _apply_config(self, config: Mapping[str, Any]) -> None:
        """Read thresholds from config; raise ValueError on missing keys."""
        pass

    @abstractmethod
    def _initial_state(self) -> AnalyzerState:
        """Return a fresh session state."""
        pass

    @abstractmethod
    def analyze_frame(self, frame: Frame) -> Metrics:
        """
        Advance the state machine by one frame.

        Args:
            frame: Observed joints plus capture timestamp

        Returns:
            Metrics snapshot for this frame
        """
        pass

    @abstractmethod
    def has_required_landmarks(self, frame: Frame) -> bool:
        """Whether the frame carries enough joints to analyze this exercise."""
        pass

    def get_exercise_name(self) -> str:
        return self.exercise_type.value

    def reset(self) -> None:
        """Drop all session state, as if freshly constructed."""
        self.state = self._initial_state()

    @property
    def phase(self) -> Enum:
        return self.state.phase

    @property
    def rep_count(self) -> int:
        return self.state.rep_counter

    @property
    def rep_history(self) -> Tuple[Rep, ...]:
        return tuple(self.state.rep_history)

    @property
    def hold_history(self) -> Tuple[Hold, ...]:
        return tuple(self.state.hold_history)

    def _phase_info(self) -> PhaseInfo:
        return PhaseInfo(type=self.state.phase.value, label=self.PHASE_LABELS[self.state.phase])

    def _rep_metrics(
        self,
        body_detected: bool,
        angle: Optional[float] = None,
        depth: Optional[float] = None,
        quality: FormQuality = FormQuality.UNKNOWN
    ) -> Metrics:
        """Metrics for rep-based exercises: the rep count is the display value."""
        return Metrics(
            rep_count=self.state.rep_counter,
            phase=self._phase_info(),
            quality=quality if body_detected else FormQuality.UNKNOWN,
            body_detected=body_detected,
            primary_angle=angle,
            depth_percent=depth,
            primary_value=str(self.state.rep_counter),
        )


# --- Analyzer Registry ---
ANALYZER_REGISTRY: Dict[ExerciseType, Type[BaseExerciseAnalyzer]] = {}


def register_analyzer(exercise_type: ExerciseType) -> Callable[[Type[BaseExerciseAnalyzer]], Type[BaseExerciseAnalyzer]]:
    def decorator(cls):
        cls.exercise_type = exercise_type
        ANALYZER_REGISTRY[exercise_type] = cls
        return cls
    return decorator


def resolve_exercise_type(kind: Union[ExerciseType, str]) -> ExerciseType:
    """
    Raises:
        ValueError: if kind names no supported exercise
    """
    if isinstance(kind, ExerciseType):
        return kind
    try:
        return ExerciseType(kind)
    except ValueError:
        raise ValueError(f"Unsupported exercise type: {kind}") from None


def create_analyzer(kind: Union[ExerciseType, str], config: Optional[Mapping[str, Any]] = None) -> BaseExerciseAnalyzer:
    """
    Build the analyzer registered for an exercise.

    Raises:
        ValueError: for an unknown exercise or an invalid config
    """
    exercise_type = resolve_exercise_type(kind)
    analyzer_cls = ANALYZER_REGISTRY.get(exercise_type)
    if analyzer_cls is None:
        raise ValueError(f"Unsupported exercise type: {kind}")
    return analyzer_cls(config=config)
