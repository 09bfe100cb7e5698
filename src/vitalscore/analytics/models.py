"""Value types shared by the scoring engines.

Everything here is immutable: engines read samples and baselines and hand
back fresh result objects, superseding (never editing) earlier ones.

Three band scales coexist and must not be mixed:
  - RecoveryBand  -- 3-tier health-quality scale (75 / 50)
  - ScoreBand     -- general 4-tier display scale (80 / 60 / 40), used by Sleep
  - StrainBand    -- load-magnitude scale (75 / 50); low strain is not "bad"
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable

import numpy as np


class MetricKind(str, Enum):
    """Daily physiological metrics the engines understand."""

    HRV = "hrv"  # ms
    RHR = "rhr"  # bpm
    RESPIRATORY_RATE = "respiratory_rate"  # breaths/min
    SLEEP_DURATION = "sleep_duration"  # hours
    SLEEP_SCORE = "sleep_score"  # 0-100
    STEPS = "steps"  # count
    ACTIVE_ENERGY = "active_energy"  # kcal


@dataclass(frozen=True)
class MetricSample:
    """A single timestamped reading as delivered by the health-data layer."""

    kind: MetricKind
    value: float
    timestamp: datetime
    unit: str = ""
    source: str = ""


def daily_values(samples: Iterable[MetricSample]) -> dict[date, float]:
    """Collapse samples to one mean value per calendar day, oldest first."""
    by_day: dict[date, list[float]] = defaultdict(list)
    for s in samples:
        by_day[s.timestamp.date()].append(s.value)
    return {
        day: float(np.mean(by_day[day]))
        for day in sorted(by_day)
    }


@dataclass(frozen=True)
class Baseline:
    """Personal reference value for one metric."""

    kind: MetricKind
    value: float
    sample_count: int
    window_days: int

    @property
    def is_valid(self) -> bool:
        """Non-positive baselines can't be used as a divisor."""
        return self.value > 0

    def __repr__(self) -> str:
        return (
            f"Baseline({self.kind.value}={self.value:.1f}, "
            f"n={self.sample_count}/{self.window_days}d)"
        )


@dataclass(frozen=True)
class WorkoutRecord:
    """One workout/activity as reported by a device or platform.

    Only ``duration_s`` is expected from every source; the power, heart
    rate and training-stress fields are filled in when the source has them.
    """

    duration_s: float | None = None
    average_power: float | None = None
    normalized_power: float | None = None
    average_hr: float | None = None
    max_hr: float | None = None
    tss: float | None = None
    activity_type: str = "other"
    timestamp: datetime | None = None
    source: str = ""

    @property
    def duration_min(self) -> float | None:
        if self.duration_s is None:
            return None
        return self.duration_s / 60.0


# ---------------------------------------------------------------------------
# Band scales
# ---------------------------------------------------------------------------


class RecoveryBand(str, Enum):
    OPTIMAL = "Optimal"
    GOOD = "Good"
    FAIR = "Fair"

    @classmethod
    def from_score(cls, score: float) -> RecoveryBand:
        if score >= 75:
            return cls.OPTIMAL
        if score >= 50:
            return cls.GOOD
        return cls.FAIR


class ScoreBand(str, Enum):
    OPTIMAL = "Optimal"
    GOOD = "Good"
    FAIR = "Fair"
    PAY_ATTENTION = "Pay Attention"

    @classmethod
    def from_score(cls, score: float) -> ScoreBand:
        if score >= 80:
            return cls.OPTIMAL
        if score >= 60:
            return cls.GOOD
        if score >= 40:
            return cls.FAIR
        return cls.PAY_ATTENTION


class StrainBand(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"

    @classmethod
    def from_score(cls, score: float) -> StrainBand:
        if score >= 75:
            return cls.HIGH
        if score >= 50:
            return cls.MODERATE
        return cls.LOW


# ---------------------------------------------------------------------------
# Score results
# ---------------------------------------------------------------------------


class ScoreKind(str, Enum):
    SLEEP = "sleep"
    RECOVERY = "recovery"
    STRAIN = "strain"


def clamp_score(value: float) -> int:
    """Truncate a raw score into an integer on [0, 100]."""
    if not np.isfinite(value):
        return 0
    # round first so 79.99999999 from weight arithmetic doesn't truncate to 79
    return int(max(0.0, min(100.0, round(value, 6))))


@dataclass(frozen=True)
class ScoreResult:
    """Output of the Sleep, Recovery and Strain engines."""

    kind: ScoreKind
    score: int  # 0-100
    band: RecoveryBand | ScoreBand | StrainBand
    sub_scores: dict[str, float]
    inputs: dict[str, Any]  # snapshot of exactly what was scored
    computed_at: datetime
    summary: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-friendly dict."""
        return {
            "kind": self.kind.value,
            "score": self.score,
            "band": self.band.value,
            "sub_scores": dict(self.sub_scores),
            "inputs": _jsonable(self.inputs),
            "computed_at": self.computed_at.isoformat(),
            "summary": self.summary,
            "details": _jsonable(self.details),
        }

    def __repr__(self) -> str:
        return (
            f"ScoreResult({self.kind.value}={self.score}, "
            f"band={self.band.value})"
        )


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {str(_jsonable(k)): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    return obj
