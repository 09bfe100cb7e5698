"""Personal baselines for daily physiological metrics.

The core estimator is a plain trailing-window mean: missing days are
skipped (not interpolated) and a window with fewer than ``MIN_SAMPLES``
present values yields no baseline at all.  The remaining helpers are the
statistics the recovery and readiness engines layer on top of it:

  - robust_baseline   -- 3-sigma outlier rejection + median
  - adaptive_baseline -- exponentially weighted mean (recent days count more)
  - rolling_ln_hrv    -- 7-day LnRMSSD average, back in ms
  - hrv_cv / hrv_stability -- day-to-day HRV coefficient of variation
  - hrv_trend         -- 7-day vs 30-day HRV comparison
  - recovery_profile  -- how quickly HRV rebounds after hard days
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np
from loguru import logger
from scipy import stats

from vitalscore.analytics.models import Baseline, MetricKind


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

WINDOW_DAYS = 30
MIN_SAMPLES = 3
OUTLIER_SIGMA = 3.0
HALF_LIFE_DAYS = 10.0

SHORT_TERM_DAYS = 7
TREND_STABLE_PCT = 5.0


def _present(values: Sequence[float | None]) -> list[float]:
    return [float(v) for v in values if v is not None and not math.isnan(v)]


def _window(values: Sequence[float | None], window_days: int) -> list[float]:
    return _present(list(values)[-window_days:]) if window_days > 0 else []


# ---------------------------------------------------------------------------
# Rolling baseline
# ---------------------------------------------------------------------------


def estimate_baseline(
    values: Sequence[float | None],
    kind: MetricKind,
    window_days: int = WINDOW_DAYS,
    min_samples: int = MIN_SAMPLES,
) -> Baseline | None:
    """Trailing-window mean of a metric's daily values.

    Args:
        values: Daily aggregated values, oldest first. ``None`` marks a day
            with no data.
        kind: Which metric the values belong to.
        window_days: How many trailing days to consider.
        min_samples: Minimum number of present values.

    Returns:
        A Baseline, or None when fewer than ``min_samples`` values exist in
        the window.
    """
    present = _window(values, window_days)
    if len(present) < min_samples:
        logger.debug(
            f"{kind.value} baseline unavailable: {len(present)}/{min_samples} samples"
        )
        return None

    baseline = Baseline(
        kind=kind,
        value=float(np.mean(present)),
        sample_count=len(present),
        window_days=window_days,
    )
    if not baseline.is_valid:
        logger.warning(f"{kind.value} baseline is non-positive ({baseline.value:.2f})")
    return baseline


def baseline_value(baseline: Baseline | float | None) -> float | None:
    """Usable divisor for a baseline, or None if missing or non-positive."""
    if baseline is None:
        return None
    value = baseline.value if isinstance(baseline, Baseline) else float(baseline)
    if value <= 0 or math.isnan(value):
        return None
    return value


def percent_deviation(
    value: float | None,
    baseline: Baseline | float | None,
) -> float | None:
    """(value - baseline) / baseline * 100, or None if either is unusable."""
    base = baseline_value(baseline)
    if value is None or base is None:
        return None
    return (value - base) / base * 100.0


# ---------------------------------------------------------------------------
# Robust and adaptive variants
# ---------------------------------------------------------------------------


def _reject_outliers(values: list[float], sigma: float) -> list[float]:
    if len(values) < 3:
        return values
    arr = np.asarray(values, dtype=np.float64)
    mean = arr.mean()
    sd = arr.std()
    return [float(v) for v in arr if abs(v - mean) <= sd * sigma]


def robust_baseline(
    values: Sequence[float | None],
    kind: MetricKind,
    window_days: int = WINDOW_DAYS,
    min_samples: int = MIN_SAMPLES,
    sigma: float = OUTLIER_SIGMA,
) -> Baseline | None:
    """Median of the trailing window after dropping values beyond N sigma.

    Used for HRV, RHR and respiratory rate where a single bad night
    (alcohol, illness, sensor glitch) would otherwise drag the mean.
    """
    cleaned = _reject_outliers(_window(values, window_days), sigma)
    if len(cleaned) < min_samples:
        return None
    return Baseline(
        kind=kind,
        value=float(np.median(cleaned)),
        sample_count=len(cleaned),
        window_days=window_days,
    )


def adaptive_baseline(
    values: Sequence[float | None],
    half_life_days: float = HALF_LIFE_DAYS,
) -> float | None:
    """Exponentially weighted mean; the latest day has weight 1.

    A value ``half_life_days`` old counts half as much as today's.  Gaps
    still age the older values.
    """
    seq = list(values)
    if not _present(seq) or half_life_days <= 0:
        return None
    decay = math.log(2.0) / half_life_days
    n = len(seq)
    weighted = 0.0
    total = 0.0
    for i, v in enumerate(seq):
        if v is None:
            continue
        w = math.exp(-decay * (n - 1 - i))
        weighted += v * w
        total += w
    return weighted / total


# ---------------------------------------------------------------------------
# HRV statistics
# ---------------------------------------------------------------------------


class HRVStability(str, Enum):
    EXCELLENT = "excellent"  # CV < 5%
    GOOD = "good"  # 5-10%
    MODERATE = "moderate"  # 10-15%
    POOR = "poor"  # > 15%


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass
class HRVTrend:
    """Short-term HRV relative to the longer baseline."""

    direction: TrendDirection
    change_pct: float  # short-term mean vs long-term baseline
    short_term_avg: float
    long_term_baseline: float
    slope_per_day: float  # least-squares slope over the short-term window (ms/day)

    def __repr__(self) -> str:
        return (
            f"HRVTrend({self.direction.value}, {self.change_pct:+.1f}%, "
            f"slope={self.slope_per_day:+.2f}ms/d)"
        )


def rolling_ln_hrv(
    values: Sequence[float | None],
    days: int = SHORT_TERM_DAYS,
) -> float | None:
    """Mean of ln(HRV) over the last ``days`` present values, returned in ms."""
    recent = [v for v in _present(values) if v > 0][-days:]
    if not recent:
        return None
    return math.exp(float(np.mean(np.log(recent))))


def hrv_cv(values: Sequence[float | None], days: int = SHORT_TERM_DAYS) -> float | None:
    """Coefficient of variation (%) of the last ``days`` HRV values.

    Returns None with fewer than 3 values or a non-positive mean.
    """
    recent = _present(values)[-days:]
    if len(recent) < 3:
        return None
    arr = np.asarray(recent, dtype=np.float64)
    mean = arr.mean()
    if mean <= 0:
        return None
    return float(arr.std() / mean * 100.0)


def hrv_stability(cv: float) -> HRVStability:
    if cv < 5.0:
        return HRVStability.EXCELLENT
    if cv < 10.0:
        return HRVStability.GOOD
    if cv < 15.0:
        return HRVStability.MODERATE
    return HRVStability.POOR


def hrv_trend(
    values: Sequence[float | None],
    short_term_days: int = SHORT_TERM_DAYS,
    long_term_days: int = WINDOW_DAYS,
) -> HRVTrend | None:
    """Compare the recent HRV average with the robust long-term baseline.

    Args:
        values: Daily HRV values (ms), oldest first.
        short_term_days: Recent window length.
        long_term_days: Baseline window length.

    Returns:
        HRVTrend, or None if there isn't a full short-term window of data.
    """
    present = _present(values)
    if len(present) < short_term_days:
        return None

    recent = present[-short_term_days:]
    short_avg = float(np.mean(recent))
    base = robust_baseline(present, MetricKind.HRV, window_days=long_term_days)
    if base is None or not base.is_valid:
        return None

    change = (short_avg - base.value) / base.value * 100.0
    if change > TREND_STABLE_PCT:
        direction = TrendDirection.IMPROVING
    elif change < -TREND_STABLE_PCT:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE

    fit = stats.linregress(np.arange(len(recent), dtype=np.float64), recent)

    return HRVTrend(
        direction=direction,
        change_pct=round(change, 2),
        short_term_avg=round(short_avg, 2),
        long_term_baseline=round(base.value, 2),
        slope_per_day=round(float(fit.slope), 3),
    )


# ---------------------------------------------------------------------------
# Recovery profile
# ---------------------------------------------------------------------------


class RecoveryProfile(str, Enum):
    FAST = "fast"
    NORMAL = "normal"
    SLOW = "slow"
    UNKNOWN = "unknown"


HARD_DAY_TSS = 100.0
RECOVERED_FRACTION = 0.95  # HRV within 5% of baseline counts as recovered
MIN_PROFILE_DAYS = 14
MIN_HARD_DAYS = 3


def recovery_profile(
    hrv_values: Sequence[float],
    tss_values: Sequence[float],
) -> RecoveryProfile:
    """Classify how many days HRV takes to rebound after a hard (>100 TSS) day.

    Both series are daily and aligned, oldest first.
    """
    if len(hrv_values) < MIN_PROFILE_DAYS or len(tss_values) < MIN_PROFILE_DAYS:
        return RecoveryProfile.UNKNOWN

    base = robust_baseline(hrv_values, MetricKind.HRV, window_days=len(hrv_values))
    if base is None or not base.is_valid:
        return RecoveryProfile.UNKNOWN
    threshold = base.value * RECOVERED_FRACTION

    recovery_days: list[int] = []
    for i in range(len(tss_values) - 3):
        if tss_values[i] <= HARD_DAY_TSS:
            continue
        for j in range(i + 1, min(i + 5, len(hrv_values))):
            if hrv_values[j] >= threshold:
                recovery_days.append(j - i)
                break

    if len(recovery_days) < MIN_HARD_DAYS:
        return RecoveryProfile.UNKNOWN

    avg = float(np.mean(recovery_days))
    if avg < 1.5:
        return RecoveryProfile.FAST
    if avg < 2.5:
        return RecoveryProfile.NORMAL
    return RecoveryProfile.SLOW
