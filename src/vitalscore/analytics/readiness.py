"""HRV-guided training readiness.

Four signals, each roughly -100..+100 (recovery is 0..100):

  - HRV trend      -- 7-day rolling HRV vs baseline; +-20% maps to +-100
  - HRV stability  -- from the day-to-day coefficient of variation;
                      CV < 5% is very stable, > 15% unstable
  - recovery       -- today's recovery score (50 when unknown)
  - form           -- TSB * 2.5

A short decision tree turns them into one of four recommendations.  Clear
fatigue (falling HRV, erratic HRV, overreaching) always wins; a hard day
needs every signal to agree.  Confidence blends how much data was present
with how consistently the signals point the same way.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from loguru import logger

from vitalscore.analytics.baseline import (
    baseline_value,
    estimate_baseline,
    hrv_cv,
    rolling_ln_hrv,
)
from vitalscore.analytics.models import Baseline, MetricKind


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

TREND_GAIN = 5.0  # % change -> signal points
FORM_GAIN = 2.5  # TSB -> signal points
DEFAULT_RECOVERY = 50

HRV_POSITIVE = 5
HRV_NEGATIVE = -10
CV_LOW = 50  # stability signal above this: CV < 5%
CV_HIGH = -20  # stability signal below this: CV > 15%
RECOVERED = 70
FATIGUED = 50
FRESH = 20
OVERREACHED = -20

CLARITY_MARGIN = 10
LIMITED_DATA = 50

QUICK_HARD_RECOVERY = 80
QUICK_HARD_MAX_TSS = 150
QUICK_MODERATE_RECOVERY = 60
QUICK_EASY_RECOVERY = 40


class TrainingRecommendation(str, Enum):
    TRAIN_HARD = "Train Hard"
    TRAIN_MODERATE = "Train Moderate"
    TRAIN_EASY = "Train Easy"
    REST = "Rest"

    @property
    def description(self) -> str:
        return RECOMMENDATION_TEXT[self]

    @property
    def tss_range(self) -> tuple[int, int]:
        return SUGGESTED_TSS[self]

    @property
    def intensity_factor(self) -> float:
        return SUGGESTED_IF[self]


RECOMMENDATION_TEXT = {
    TrainingRecommendation.TRAIN_HARD: (
        "Your body is primed for a challenging workout. "
        "High-intensity or long sessions are appropriate."
    ),
    TrainingRecommendation.TRAIN_MODERATE: (
        "Good conditions for a standard training day. Moderate intensity recommended."
    ),
    TrainingRecommendation.TRAIN_EASY: (
        "Some fatigue signals detected. Keep intensity low and focus on "
        "technique or active recovery."
    ),
    TrainingRecommendation.REST: (
        "Multiple fatigue indicators suggest rest is needed. "
        "Consider a complete rest day or very light activity."
    ),
}

SUGGESTED_TSS = {
    TrainingRecommendation.TRAIN_HARD: (100, 200),
    TrainingRecommendation.TRAIN_MODERATE: (50, 100),
    TrainingRecommendation.TRAIN_EASY: (20, 50),
    TrainingRecommendation.REST: (0, 20),
}

SUGGESTED_IF = {
    TrainingRecommendation.TRAIN_HARD: 0.85,
    TrainingRecommendation.TRAIN_MODERATE: 0.70,
    TrainingRecommendation.TRAIN_EASY: 0.55,
    TrainingRecommendation.REST: 0.40,
}


@dataclass(frozen=True)
class ReadinessInputs:
    rolling_hrv: float | None = None  # 7-day rolling HRV (ms)
    hrv_baseline: Baseline | float | None = None
    hrv_cv: float | None = None  # %
    recovery_score: int | None = None
    tsb: float | None = None


@dataclass(frozen=True)
class ReadinessFactors:
    hrv_trend: int
    hrv_stability: int
    recovery: int
    form: int

    def signals(self) -> list[int]:
        """All four signals centred on zero."""
        return [self.hrv_trend, self.hrv_stability, self.recovery - 50, self.form]


@dataclass
class ReadinessResult:
    recommendation: TrainingRecommendation
    confidence: int  # 0-100
    factors: ReadinessFactors
    reasoning: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        low, high = self.recommendation.tss_range
        return {
            "recommendation": self.recommendation.value,
            "description": self.recommendation.description,
            "confidence": self.confidence,
            "suggested_tss": [low, high],
            "suggested_if": self.recommendation.intensity_factor,
            "factors": {
                "hrv_trend": self.factors.hrv_trend,
                "hrv_stability": self.factors.hrv_stability,
                "recovery": self.factors.recovery,
                "form": self.factors.form,
            },
            "reasoning": list(self.reasoning),
        }

    def __repr__(self) -> str:
        return f"ReadinessResult({self.recommendation.value}, confidence={self.confidence}%)"


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------


def hrv_trend_signal(rolling_hrv: float | None, baseline: Baseline | float | None) -> int:
    base = baseline_value(baseline)
    if rolling_hrv is None or base is None:
        return 0
    change = (rolling_hrv - base) / base * 100.0
    return int(max(-100.0, min(100.0, change * TREND_GAIN)))


def hrv_stability_signal(cv: float | None) -> int:
    """+100 for a perfectly steady HRV down to -100 for CV >= 20%."""
    if cv is None:
        return 0
    if cv < 5.0:
        return int(100 - cv * 10)
    if cv < 10.0:
        return int(50 - (cv - 5) * 10)
    if cv < 15.0:
        return int(-(cv - 10) * 10)
    return int(max(-100.0, -50 - (cv - 15) * 10))


def form_signal(tsb: float | None) -> int:
    if tsb is None:
        return 0
    return int(max(-100.0, min(100.0, tsb * FORM_GAIN)))


def signal_clarity(factors: ReadinessFactors) -> int:
    """How much the signals agree, 0-100."""
    signals = factors.signals()
    positive = sum(1 for s in signals if s > CLARITY_MARGIN)
    negative = sum(1 for s in signals if s < -CLARITY_MARGIN)
    neutral = len(signals) - positive - negative
    if positive >= 3 or negative >= 3:
        return 80 + neutral * 5
    if neutral == len(signals):
        return 60
    return 40


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


def assess_readiness(inputs: ReadinessInputs) -> ReadinessResult:
    """Recommend today's training from HRV, recovery and form.

    Args:
        inputs: Any subset of the readiness signals.

    Returns:
        ReadinessResult.  With nothing known it falls back to TRAIN_EASY at
        low confidence.
    """
    trend = hrv_trend_signal(inputs.rolling_hrv, inputs.hrv_baseline)
    stability = hrv_stability_signal(inputs.hrv_cv)
    recovery = inputs.recovery_score if inputs.recovery_score is not None else DEFAULT_RECOVERY
    form = form_signal(inputs.tsb)

    quality = 0
    if trend != 0:
        quality += 25
    if stability != 0:
        quality += 25
    if inputs.recovery_score is not None:
        quality += 25
    if inputs.tsb is not None:
        quality += 25

    factors = ReadinessFactors(
        hrv_trend=trend, hrv_stability=stability, recovery=recovery, form=form
    )

    hrv_positive = trend > HRV_POSITIVE
    hrv_negative = trend < HRV_NEGATIVE
    cv_low = stability > CV_LOW
    cv_moderate = stability > 0
    cv_high = stability < CV_HIGH
    recovered = recovery >= RECOVERED
    fatigued = recovery < FATIGUED
    fresh = form > FRESH
    overreached = form < OVERREACHED

    reasoning: list[str] = []
    if hrv_negative or cv_high or overreached:
        rec = TrainingRecommendation.REST
        if hrv_negative:
            reasoning.append(f"HRV is {abs(trend) / TREND_GAIN:.0f}% below baseline")
        if cv_high:
            reasoning.append("HRV variability is high (CV > 15%)")
        if overreached:
            reasoning.append("Training load indicates functional overreaching")
    elif fatigued and not fresh:
        rec = TrainingRecommendation.TRAIN_EASY
        reasoning.append("Recovery score is below 50%")
        reasoning.append("Recommend low-intensity activity")
    elif hrv_positive and cv_low and recovered:
        rec = TrainingRecommendation.TRAIN_HARD
        reasoning.append(f"HRV is {trend / TREND_GAIN:.0f}% above baseline")
        reasoning.append("Excellent HRV stability (CV < 5%)")
        reasoning.append(f"Recovery score is {recovery}%")
    elif hrv_positive and cv_moderate and recovery >= 60:
        rec = TrainingRecommendation.TRAIN_MODERATE
        reasoning.append("HRV trend is positive")
        reasoning.append(f"Recovery is adequate ({recovery}%)")
    elif recovered and fresh:
        rec = TrainingRecommendation.TRAIN_MODERATE
        reasoning.append("Recovery and form are good")
        if inputs.rolling_hrv is None:
            reasoning.append("Limited HRV data - moderate recommendation")
    else:
        rec = TrainingRecommendation.TRAIN_EASY
        reasoning.append("Mixed readiness signals detected")
        reasoning.append("Conservative approach recommended")

    confidence = min(100, (quality + signal_clarity(factors)) // 2)
    if quality < LIMITED_DATA:
        reasoning.append("Note: Limited data available - confidence reduced")

    logger.debug(
        f"Readiness {rec.value} ({confidence}%): trend={trend} "
        f"stability={stability} recovery={recovery} form={form}"
    )
    return ReadinessResult(
        recommendation=rec, confidence=confidence, factors=factors, reasoning=reasoning
    )


def readiness_from_history(
    hrv_values: Sequence[float | None],
    recovery_score: int | None = None,
    tsb: float | None = None,
) -> ReadinessResult:
    """Readiness straight from a daily HRV series (oldest first)."""
    baseline = estimate_baseline(hrv_values, MetricKind.HRV)
    return assess_readiness(
        ReadinessInputs(
            rolling_hrv=rolling_ln_hrv(hrv_values),
            hrv_baseline=baseline,
            hrv_cv=hrv_cv(hrv_values),
            recovery_score=recovery_score,
            tsb=tsb,
        )
    )


def quick_readiness(recovery_score: int, yesterday_tss: float | None = None) -> TrainingRecommendation:
    """Recommendation from the recovery score alone.

    A hard day also needs yesterday's load to have been manageable.
    """
    tss = yesterday_tss or 0.0
    if recovery_score >= QUICK_HARD_RECOVERY and tss <= QUICK_HARD_MAX_TSS:
        return TrainingRecommendation.TRAIN_HARD
    if recovery_score >= QUICK_MODERATE_RECOVERY:
        return TrainingRecommendation.TRAIN_MODERATE
    if recovery_score >= QUICK_EASY_RECOVERY:
        return TrainingRecommendation.TRAIN_EASY
    return TrainingRecommendation.REST
