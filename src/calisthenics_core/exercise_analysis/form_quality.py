"""
form_quality.py - Ordered form grades and band-table grading.
"""
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


class FormQuality(Enum):
    """Form grade, ordered by severity: good < acceptable < poor < unknown."""
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    POOR = "poor"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def is_worse_than(self, other: "FormQuality") -> bool:
        return self.severity > other.severity

    def degrade(self) -> "FormQuality":
        """Step one grade down; poor and unknown are fixed points."""
        return _DEGRADED.get(self, self)


_SEVERITY = {
    FormQuality.GOOD: 0,
    FormQuality.ACCEPTABLE: 1,
    FormQuality.POOR: 2,
    FormQuality.UNKNOWN: 3,
}

_DEGRADED = {
    FormQuality.GOOD: FormQuality.ACCEPTABLE,
    FormQuality.ACCEPTABLE: FormQuality.POOR,
}


def is_worse_than(a: FormQuality, b: FormQuality) -> bool:
    return a.is_worse_than(b)


def degrade_quality(quality: FormQuality) -> FormQuality:
    return quality.degrade()


def dominant_quality(samples: Iterable[FormQuality]) -> FormQuality:
    """
    Majority vote over quality samples.

    Ties resolve toward the better grade; unknown samples do not vote.
    An empty sample set yields unknown.
    """
    counts = Counter(samples)
    graded = [FormQuality.GOOD, FormQuality.ACCEPTABLE, FormQuality.POOR]
    if not any(counts[q] for q in graded):
        return FormQuality.UNKNOWN
    # max() keeps the first of equal counts, i.e. the better grade
    return max(graded, key=lambda q: counts[q])


@dataclass(frozen=True)
class QualityBand:
    """Inclusive [low, high] angle range mapped to a grade; None is unbounded."""
    low: Optional[float]
    high: Optional[float]
    grade: FormQuality

    def contains(self, value: float) -> bool:
        if self.low is not None and value < self.low:
            return False
        if self.high is not None and value > self.high:
            return False
        return True


def grade_from_bands(value: float, bands: Sequence[QualityBand], default: FormQuality = FormQuality.POOR) -> FormQuality:
    """Return the grade of the first band containing value, else default."""
    for band in bands:
        if band.contains(value):
            return band.grade
    return default


def parse_quality_bands(rows: Sequence[Mapping[str, Any]]) -> List[QualityBand]:
    """
    Convert config rows like {"low": 100, "high": 165, "grade": "good"} into bands.
    """
    bands = []
    for row in rows:
        try:
            grade = FormQuality(row["grade"])
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid quality band {dict(row)}: {e}") from e
        bands.append(QualityBand(low=row.get("low"), high=row.get("high"), grade=grade))
    return bands


def parse_phase_bands(table: Mapping[str, Sequence[Mapping[str, Any]]]) -> Dict[str, List[QualityBand]]:
    return {phase: parse_quality_bands(rows) for phase, rows in table.items()}
