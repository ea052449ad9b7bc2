"""
Exercise analysis package: per-exercise phase state machines and form grading.
"""

from .base_analyzer import (
    ANALYZER_REGISTRY,
    AnalyzerState,
    BaseExerciseAnalyzer,
    ExerciseType,
    Hold,
    Metrics,
    PhaseInfo,
    Rep,
    create_analyzer,
    resolve_exercise_type,
)
from .form_quality import FormQuality, QualityBand, degrade_quality, dominant_quality, is_worse_than
from .plank_analyzer import PlankAnalyzer, PlankPhase
from .pushup_analyzer import PushupAnalyzer, PushupPhase
from .squat_analyzer import SquatAnalyzer, SquatPhase

__all__ = [
    'ANALYZER_REGISTRY',
    'AnalyzerState',
    'BaseExerciseAnalyzer',
    'ExerciseType',
    'FormQuality',
    'Hold',
    'Metrics',
    'PhaseInfo',
    'PlankAnalyzer',
    'PlankPhase',
    'PushupAnalyzer',
    'PushupPhase',
    'QualityBand',
    'Rep',
    'SquatAnalyzer',
    'SquatPhase',
    'create_analyzer',
    'degrade_quality',
    'dominant_quality',
    'is_worse_than',
    'resolve_exercise_type',
]
