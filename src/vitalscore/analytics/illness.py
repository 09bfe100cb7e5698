"""Illness / body-stress detection over a rolling 7-day window.

Five signals are compared against the user's baselines:

  HRV           -- a drop (fatigue, strain) or a very large spike
                   (parasympathetic overdrive seen early in infections)
  RHR           -- elevation
  Sleep score   -- a drop, or a middling score below the user's norm
  Respiratory   -- change in either direction
  Activity      -- a drop in daily movement

Signals past their threshold form a candidate indicator with an initial
severity and confidence.  Confidence is then adjusted by a deterministic
heuristic: sustained multi-day HRV/RHR trends and several simultaneous
signals raise it.  Only indicators reaching ``min_confidence`` are
reported; anything weaker is treated as no detection at all.

All thresholds live in :class:`IllnessThresholds` so they can be tuned
without touching the detection logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Sequence

from loguru import logger

from vitalscore.analytics.baseline import baseline_value, percent_deviation
from vitalscore.analytics.models import Baseline
from vitalscore.analytics.trend import Direction, detect_trend, trend_consistency


class Severity(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class SignalType(str, Enum):
    HRV_DROP = "hrv_drop"
    HRV_SPIKE = "hrv_spike"
    ELEVATED_RHR = "elevated_rhr"
    SLEEP_DISRUPTION = "sleep_disruption"
    RESPIRATORY_RATE = "respiratory_rate"
    ACTIVITY_DROP = "activity_drop"


SIGNAL_CONTEXT = {
    SignalType.HRV_SPIKE: "Elevated HRV detected. ",
    SignalType.HRV_DROP: "Suppressed HRV detected. ",
    SignalType.ELEVATED_RHR: "Elevated resting heart rate detected. ",
    SignalType.SLEEP_DISRUPTION: "Sleep disruption detected. ",
    SignalType.RESPIRATORY_RATE: "Respiratory changes detected. ",
    SignalType.ACTIVITY_DROP: "Activity levels reduced. ",
}

SEVERITY_ADVICE = {
    Severity.LOW: "Monitor your recovery metrics. Consider taking it easy if symptoms persist.",
    Severity.MODERATE: "Your body is showing stress signals. Prioritize rest and recovery today.",
    Severity.HIGH: "Rest is strongly recommended. Consult a healthcare provider if you feel unwell.",
}


@dataclass(frozen=True)
class IllnessThresholds:
    """Tunable detection constants (percent deviations from baseline).

    Override with ``dataclasses.replace(DEFAULT_THRESHOLDS, rhr_rise_pct=5.0)``.
    """

    hrv_drop_pct: float = -10.0
    hrv_spike_pct: float = 100.0
    rhr_rise_pct: float = 3.0
    sleep_drop_pct: float = -15.0
    sleep_moderate_range: tuple[float, float] = (60.0, 85.0)
    respiratory_change_pct: float = 8.0
    activity_drop_pct: float = -25.0
    min_signals: int = 1

    # Deviation weights when averaging across signals
    hrv_spike_weight: float = 1.2
    sleep_weight: float = 0.7
    respiratory_weight: float = 0.7
    activity_weight: float = 0.3

    # Severity: worst signal's |deviation| / |threshold|
    moderate_excess: float = 2.5
    high_excess: float = 5.0
    moderate_signal_count: int = 3
    high_signal_count: int = 4

    # Confidence
    count_saturation: int = 5
    deviation_saturation: float = 50.0
    count_share: float = 0.6
    deviation_share: float = 0.4
    trend_consistency_min: float = 0.7
    trend_boost: float = 0.1
    multi_signal_min: int = 3
    multi_signal_boost: float = 0.05
    min_confidence: float = 0.5


DEFAULT_THRESHOLDS = IllnessThresholds()


@dataclass(frozen=True)
class Signal:
    """One physiological signal past its threshold."""

    type: SignalType
    value: float
    baseline: float
    deviation: float  # percent from baseline, signed
    threshold: float  # percent threshold it was tested against
    consecutive_days: int = 1

    @property
    def excess(self) -> float:
        """How many thresholds past baseline the signal sits."""
        return abs(self.deviation) / abs(self.threshold) if self.threshold else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "value": round(self.value, 2),
            "baseline": round(self.baseline, 2),
            "deviation": round(self.deviation, 1),
            "consecutive_days": self.consecutive_days,
        }


@dataclass(frozen=True)
class IllnessIndicator:
    """A surfaced body-stress indicator."""

    date: date
    severity: Severity
    confidence: float  # 0.0-1.0
    signals: tuple[Signal, ...]
    recommendation: str

    @property
    def primary_signal(self) -> Signal | None:
        if not self.signals:
            return None
        return max(self.signals, key=lambda s: abs(s.deviation))

    @property
    def is_significant(self) -> bool:
        """Worth an alert: moderate or worse with at least 50% confidence."""
        return self.severity != Severity.LOW and self.confidence >= 0.5

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "severity": self.severity.value,
            "confidence": round(self.confidence, 3),
            "signals": [s.to_dict() for s in self.signals],
            "recommendation": self.recommendation,
        }

    def __repr__(self) -> str:
        names = ", ".join(s.type.value for s in self.signals)
        return (
            f"IllnessIndicator({self.severity.value}, "
            f"confidence={self.confidence:.2f}, signals=[{names}])"
        )


@dataclass
class IllnessWindow:
    """Multi-day series (oldest first) and baselines for the five signals."""

    day: date
    hrv: Sequence[float] = field(default_factory=list)
    rhr: Sequence[float] = field(default_factory=list)
    respiratory: Sequence[float] = field(default_factory=list)
    sleep_score: Sequence[float] = field(default_factory=list)
    activity: Sequence[float] = field(default_factory=list)
    hrv_baseline: Baseline | float | None = None
    rhr_baseline: Baseline | float | None = None
    respiratory_baseline: Baseline | float | None = None
    sleep_baseline: Baseline | float | None = None
    activity_baseline: Baseline | float | None = None


# ---------------------------------------------------------------------------
# Signal tests
# ---------------------------------------------------------------------------


def _latest(values: Sequence[float]) -> float | None:
    return float(values[-1]) if len(values) else None


def collect_signals(
    window: IllnessWindow,
    thresholds: IllnessThresholds = DEFAULT_THRESHOLDS,
) -> tuple[list[Signal], float]:
    """Test each signal's latest value against its baseline.

    Returns:
        (signals past threshold, total weighted |deviation|).  Signals
        without a usable baseline are skipped.
    """
    t = thresholds
    signals: list[Signal] = []
    total = 0.0

    hrv = _latest(window.hrv)
    dev = percent_deviation(hrv, window.hrv_baseline)
    if dev is not None:
        base = baseline_value(window.hrv_baseline)
        if dev <= t.hrv_drop_pct:
            run = detect_trend(window.hrv, base, t.hrv_drop_pct, Direction.DECREASING)
            signals.append(Signal(SignalType.HRV_DROP, hrv, base, dev, t.hrv_drop_pct,
                                  run.consecutive_days))
            total += abs(dev)
        elif dev >= t.hrv_spike_pct:
            run = detect_trend(window.hrv, base, t.hrv_spike_pct, Direction.INCREASING)
            signals.append(Signal(SignalType.HRV_SPIKE, hrv, base, dev, t.hrv_spike_pct,
                                  run.consecutive_days))
            total += abs(dev) * t.hrv_spike_weight

    rhr = _latest(window.rhr)
    dev = percent_deviation(rhr, window.rhr_baseline)
    if dev is not None and dev >= t.rhr_rise_pct:
        base = baseline_value(window.rhr_baseline)
        run = detect_trend(window.rhr, base, t.rhr_rise_pct, Direction.INCREASING)
        signals.append(Signal(SignalType.ELEVATED_RHR, rhr, base, dev, t.rhr_rise_pct,
                              run.consecutive_days))
        total += abs(dev)

    sleep = _latest(window.sleep_score)
    dev = percent_deviation(sleep, window.sleep_baseline)
    if dev is not None:
        low, high = t.sleep_moderate_range
        middling = low <= sleep < high and dev < 0
        if dev <= t.sleep_drop_pct or middling:
            base = baseline_value(window.sleep_baseline)
            signals.append(Signal(SignalType.SLEEP_DISRUPTION, sleep, base, dev,
                                  t.sleep_drop_pct))
            total += abs(dev) * t.sleep_weight

    resp = _latest(window.respiratory)
    dev = percent_deviation(resp, window.respiratory_baseline)
    if dev is not None and abs(dev) >= t.respiratory_change_pct:
        base = baseline_value(window.respiratory_baseline)
        signals.append(Signal(SignalType.RESPIRATORY_RATE, resp, base, dev,
                              t.respiratory_change_pct))
        total += abs(dev) * t.respiratory_weight

    activity = _latest(window.activity)
    dev = percent_deviation(activity, window.activity_baseline)
    if dev is not None and dev <= t.activity_drop_pct:
        base = baseline_value(window.activity_baseline)
        signals.append(Signal(SignalType.ACTIVITY_DROP, activity, base, dev,
                              t.activity_drop_pct))
        total += abs(dev) * t.activity_weight

    return signals, total


# ---------------------------------------------------------------------------
# Severity and confidence
# ---------------------------------------------------------------------------


def classify_severity(
    signals: Sequence[Signal],
    thresholds: IllnessThresholds = DEFAULT_THRESHOLDS,
) -> Severity:
    """Severity from the worst signal's distance past threshold and signal count."""
    t = thresholds
    worst = max((s.excess for s in signals), default=0.0)
    if worst >= t.high_excess or len(signals) >= t.high_signal_count:
        return Severity.HIGH
    if worst >= t.moderate_excess or len(signals) >= t.moderate_signal_count:
        return Severity.MODERATE
    return Severity.LOW


def initial_confidence(
    signal_count: int,
    weighted_deviation: float,
    thresholds: IllnessThresholds = DEFAULT_THRESHOLDS,
) -> float:
    """Blend of how many signals fired and how far they deviate."""
    t = thresholds
    count_part = min(signal_count / t.count_saturation, 1.0)
    deviation_part = min(weighted_deviation / t.deviation_saturation, 1.0)
    return count_part * t.count_share + deviation_part * t.deviation_share


def adjust_confidence(
    confidence: float,
    signal_count: int,
    window: IllnessWindow,
    thresholds: IllnessThresholds = DEFAULT_THRESHOLDS,
) -> float:
    """Raise confidence for sustained trends and co-occurring signals.

    Stands in for a trained classifier: a sustained HRV decline or RHR rise
    across the window adds ``trend_boost``; every signal beyond two adds
    ``multi_signal_boost``.  Clamped to [0, 1].
    """
    t = thresholds
    hrv_consistency = trend_consistency(window.hrv, Direction.DECREASING)
    rhr_consistency = trend_consistency(window.rhr, Direction.INCREASING)
    if hrv_consistency > t.trend_consistency_min or rhr_consistency > t.trend_consistency_min:
        confidence += t.trend_boost
        logger.debug(
            f"Sustained trend (hrv={hrv_consistency:.2f}, rhr={rhr_consistency:.2f}), "
            f"confidence boosted"
        )
    if signal_count >= t.multi_signal_min:
        confidence += t.multi_signal_boost * (signal_count - 2)
    return max(0.0, min(1.0, confidence))


def recommendation(severity: Severity, signals: Sequence[Signal]) -> str:
    context = ""
    if signals:
        primary = max(signals, key=lambda s: abs(s.deviation))
        context = SIGNAL_CONTEXT[primary.type]
    return context + SEVERITY_ADVICE[severity]


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_illness(
    window: IllnessWindow,
    thresholds: IllnessThresholds = DEFAULT_THRESHOLDS,
) -> IllnessIndicator | None:
    """Run detection over a 7-day window.

    Args:
        window: Daily series (oldest first) and baselines.
        thresholds: Detection constants.

    Returns:
        An IllnessIndicator when enough evidence exists and the adjusted
        confidence reaches ``thresholds.min_confidence``; otherwise None.
    """
    signals, total = collect_signals(window, thresholds)
    if not signals or len(signals) < thresholds.min_signals:
        return None

    weighted = total / len(signals)
    severity = classify_severity(signals, thresholds)
    confidence = initial_confidence(len(signals), weighted, thresholds)
    confidence = adjust_confidence(confidence, len(signals), window, thresholds)

    if confidence < thresholds.min_confidence:
        logger.debug(
            f"Illness candidate dropped: {len(signals)} signal(s), "
            f"confidence {confidence:.2f} < {thresholds.min_confidence}"
        )
        return None

    indicator = IllnessIndicator(
        date=window.day,
        severity=severity,
        confidence=confidence,
        signals=tuple(signals),
        recommendation=recommendation(severity, signals),
    )
    logger.info(f"Illness indicator: {indicator!r}")
    return indicator
