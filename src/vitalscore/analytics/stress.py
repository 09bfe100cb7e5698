"""Synthesized stress index (0-100, higher = more stress).

There's no direct stress sensor, so the index is built from five signals
that each push a neutral 50 up or down:

    stress = 50
           + (100 - recovery)                  * 0.30
           + (hrv_baseline - hrv)/baseline*100 * 0.25
           + max(0, rhr - 60) * 2              * 0.20
           + (100 - sleep)                     * 0.15
           + load                              * 0.10

clamped to [0, 100].  A day needs at least two of the five factors; a
single-factor estimate is considered unreliable and is not reported.

On top of the daily series this module derives the acute (today) vs.
chronic (rolling average) stress picture and a personal alert threshold.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Mapping, Sequence

import numpy as np
from loguru import logger

from vitalscore.analytics.baseline import baseline_value


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------

BASELINE_STRESS = 50.0
W_RECOVERY = 0.30
W_HRV = 0.25
W_RHR = 0.20
W_SLEEP = 0.15
W_LOAD = 0.10

RHR_REFERENCE_BPM = 60.0
RHR_POINTS_PER_BPM = 2.0

MIN_FACTORS = 2

# Personal alert threshold
THRESHOLD_DEFAULT = 50.0
THRESHOLD_MIN_HISTORY = 7
THRESHOLD_SD_MULT = 1.5
THRESHOLD_CTL_REFERENCE = 70.0
THRESHOLD_BOUNDS = (40.0, 70.0)

TREND_MARGIN = 5.0


class StressLevel(str, Enum):
    LOW = "low"  # 0-30
    MODERATE = "moderate"  # 31-60
    HIGH = "high"  # 61-100

    @classmethod
    def from_score(cls, score: float) -> StressLevel:
        if score <= 30:
            return cls.LOW
        if score <= 60:
            return cls.MODERATE
        return cls.HIGH


class StressTrend(str, Enum):
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


@dataclass(frozen=True)
class StressPoint:
    """Stress index for one day."""

    day: date
    value: float
    factors: int  # how many of the five inputs were present

    def __repr__(self) -> str:
        return f"StressPoint({self.day}: {self.value:.1f}, factors={self.factors})"


@dataclass
class StressAssessment:
    """Today's stress relative to its own recent history."""

    acute: float
    chronic: float
    threshold: float
    level: StressLevel
    trend: StressTrend
    contributors: dict[str, float] = field(default_factory=dict)  # name -> points

    @property
    def is_elevated(self) -> bool:
        return self.acute > self.threshold

    def to_dict(self) -> dict:
        return {
            "acute": round(self.acute, 1),
            "chronic": round(self.chronic, 1),
            "threshold": round(self.threshold, 1),
            "level": self.level.value,
            "trend": self.trend.value,
            "elevated": self.is_elevated,
            "contributors": {k: round(v, 1) for k, v in self.contributors.items()},
        }

    def __repr__(self) -> str:
        return (
            f"StressAssessment(acute={self.acute:.0f}, chronic={self.chronic:.0f}, "
            f"threshold={self.threshold:.0f}, {self.level.value})"
        )


# ---------------------------------------------------------------------------
# Daily synthesis
# ---------------------------------------------------------------------------


def stress_contributors(
    recovery: float | None = None,
    hrv: float | None = None,
    hrv_baseline: float | None = None,
    rhr: float | None = None,
    sleep: float | None = None,
    load: float | None = None,
) -> dict[str, float]:
    """Points each present factor adds to the neutral baseline."""
    points: dict[str, float] = {}
    if recovery is not None:
        points["recovery"] = (100.0 - recovery) * W_RECOVERY
    base = baseline_value(hrv_baseline)
    if hrv is not None and base is not None:
        points["hrv"] = (base - hrv) / base * 100.0 * W_HRV
    if rhr is not None:
        points["rhr"] = max(0.0, rhr - RHR_REFERENCE_BPM) * RHR_POINTS_PER_BPM * W_RHR
    if sleep is not None:
        points["sleep"] = (100.0 - sleep) * W_SLEEP
    if load is not None:
        points["load"] = load * W_LOAD
    return points


def daily_stress(
    recovery: float | None = None,
    hrv: float | None = None,
    hrv_baseline: float | None = None,
    rhr: float | None = None,
    sleep: float | None = None,
    load: float | None = None,
) -> float | None:
    """Stress for one day, or None with fewer than two factors."""
    points = stress_contributors(recovery, hrv, hrv_baseline, rhr, sleep, load)
    if len(points) < MIN_FACTORS:
        return None
    return max(0.0, min(100.0, BASELINE_STRESS + sum(points.values())))


def synthesize_stress(
    recovery: Mapping[date, float] | None = None,
    hrv: Mapping[date, float] | None = None,
    hrv_baseline: Mapping[date, float] | float | None = None,
    rhr: Mapping[date, float] | None = None,
    sleep: Mapping[date, float] | None = None,
    load: Mapping[date, float] | None = None,
) -> list[StressPoint]:
    """Build the stress series over every date any source has data for.

    Args:
        recovery: Recovery score by date.
        hrv: HRV (ms) by date.
        hrv_baseline: A single HRV baseline, or one per date.
        rhr: Resting HR by date.
        sleep: Sleep score by date.
        load: Daily training load by date.

    Returns:
        StressPoints sorted by date; dates with fewer than two factors
        are left out.
    """
    recovery = recovery or {}
    hrv = hrv or {}
    rhr = rhr or {}
    sleep = sleep or {}
    load = load or {}

    days = set(recovery) | set(hrv) | set(rhr) | set(sleep) | set(load)
    points: list[StressPoint] = []
    for day in sorted(days):
        if isinstance(hrv_baseline, Mapping):
            base = hrv_baseline.get(day)
        else:
            base = hrv_baseline
        contributions = stress_contributors(
            recovery.get(day), hrv.get(day), base, rhr.get(day), sleep.get(day), load.get(day)
        )
        value = daily_stress(
            recovery.get(day), hrv.get(day), base, rhr.get(day), sleep.get(day), load.get(day)
        )
        if value is None:
            logger.debug(f"Stress skipped for {day}: only {len(contributions)} factor(s)")
            continue
        points.append(StressPoint(day=day, value=value, factors=len(contributions)))
    return points


# ---------------------------------------------------------------------------
# Acute vs. chronic
# ---------------------------------------------------------------------------


def chronic_stress(history: Sequence[float], today: float) -> float:
    """Mean of the recent history together with today."""
    return float(np.mean([*history, today]))


def stress_threshold(history: Sequence[float], ctl: float | None = None) -> float:
    """Personal alert threshold.

    With a week or more of history: mean + 1.5 SD, nudged up for fitter
    athletes (higher CTL tolerates more), clamped to 40-70.  Otherwise 50.
    """
    if len(history) < THRESHOLD_MIN_HISTORY:
        return THRESHOLD_DEFAULT
    arr = np.asarray(history, dtype=np.float64)
    ctl = THRESHOLD_CTL_REFERENCE if ctl is None else ctl
    threshold = (
        arr.mean()
        + THRESHOLD_SD_MULT * arr.std()
        + (ctl - THRESHOLD_CTL_REFERENCE) / 60.0 * 10.0
    )
    low, high = THRESHOLD_BOUNDS
    return float(max(low, min(high, threshold)))


def assess_stress(
    history: Sequence[float],
    recovery: float | None = None,
    hrv: float | None = None,
    hrv_baseline: float | None = None,
    rhr: float | None = None,
    sleep: float | None = None,
    load: float | None = None,
    ctl: float | None = None,
) -> StressAssessment | None:
    """Today's acute stress against the chronic level and personal threshold.

    Args:
        history: Previous days' stress values (oldest first, typically 7-30).
        ctl: Chronic training load, for the fitness adjustment.

    Returns:
        StressAssessment, or None if today has fewer than two factors.
    """
    acute = daily_stress(recovery, hrv, hrv_baseline, rhr, sleep, load)
    if acute is None:
        return None
    chronic = chronic_stress(history, acute)
    if acute > chronic + TREND_MARGIN:
        trend = StressTrend.INCREASING
    elif acute < chronic - TREND_MARGIN:
        trend = StressTrend.DECREASING
    else:
        trend = StressTrend.STABLE

    return StressAssessment(
        acute=acute,
        chronic=chronic,
        threshold=stress_threshold(history, ctl),
        level=StressLevel.from_score(acute),
        trend=trend,
        contributors=stress_contributors(recovery, hrv, hrv_baseline, rhr, sleep, load),
    )
