"""Recovery score: how ready the body is to take on strain today.

Five sub-scores, each 0-100 and each judged against the user's own
baseline rather than population norms:

  HRV          30%  -- at/above baseline is full marks, drops are penalized
                      progressively harder
  RHR          20%  -- at/below baseline is full marks
  Sleep        30%  -- tonight's sleep score, or duration vs. usual
  Respiratory  10%  -- stable breathing rate is best; elevation hurts most
  Form         10%  -- acute/chronic load ratio minus a recent-TSS penalty

A sub-score whose inputs (or baseline) are missing is left out and the
remaining weights are renormalized, so partial data neither drags the
score down nor inflates it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone

from loguru import logger

from vitalscore.analytics.baseline import baseline_value
from vitalscore.analytics.models import (
    RecoveryBand,
    ScoreKind,
    ScoreResult,
    clamp_score,
)


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------

WEIGHTS = {
    "hrv": 0.30,
    "rhr": 0.20,
    "sleep": 0.30,
    "respiratory": 0.10,
    "form": 0.10,
}

# Alcohol compound-effect detection
ALCOHOL_MAX_PENALTY = 25.0
ALCOHOL_CONFIDENCE_MIN = 50.0
ALCOHOL_CONFIDENCE_MIN_NO_SLEEP = 40.0

# (HRV drop below baseline %, confidence, base penalty), most severe first
ALCOHOL_HRV_TIERS = [
    (-35.0, 30.0, 20.0),
    (-30.0, 28.0, 16.0),
    (-25.0, 25.0, 12.0),
    (-20.0, 20.0, 10.0),
    (-15.0, 15.0, 7.0),
    (-10.0, 10.0, 4.0),
]


@dataclass(frozen=True)
class RecoveryInputs:
    """Everything the recovery engine may use; any field may be missing."""

    hrv: float | None = None
    overnight_hrv: float | None = None  # HRV over the actual sleep window
    hrv_baseline: float | None = None
    rhr: float | None = None
    rhr_baseline: float | None = None
    sleep_duration: float | None = None  # hours
    sleep_baseline: float | None = None  # hours
    respiratory_rate: float | None = None
    respiratory_baseline: float | None = None
    atl: float | None = None
    ctl: float | None = None
    recent_strain: float | None = None  # recent cumulative TSS
    sleep_score: int | None = None
    has_illness_indicator: bool = False
    has_sleep_data: bool = True


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------


def hrv_component(hrv: float | None, baseline: float | None) -> float | None:
    """HRV vs. baseline; None when either side is unusable."""
    base = baseline_value(baseline)
    if hrv is None or base is None:
        return None
    change = (hrv - base) / base
    if change >= 0:
        return 100.0
    drop = abs(change)
    if drop <= 0.10:
        return max(85.0, 100.0 - drop * 150.0)
    if drop <= 0.20:
        return max(60.0, 85.0 - (drop - 0.10) * 250.0)
    if drop <= 0.35:
        return max(30.0, 60.0 - (drop - 0.20) * 200.0)
    return max(0.0, 30.0 - (drop - 0.35) * 60.0)


def rhr_component(rhr: float | None, baseline: float | None) -> float | None:
    base = baseline_value(baseline)
    if rhr is None or base is None:
        return None
    rise = (rhr - base) / base
    if rise <= 0:
        return 100.0
    if rise <= 0.08:
        return max(88.0, 100.0 - rise * 150.0)
    if rise <= 0.15:
        return max(67.0, 88.0 - (rise - 0.08) * 300.0)
    if rise <= 0.25:
        return max(37.0, 67.0 - (rise - 0.15) * 300.0)
    return max(0.0, 37.0 - (rise - 0.25) * 100.0)


def sleep_component(
    sleep_score: float | None,
    duration: float | None,
    baseline: float | None,
) -> float | None:
    """Tonight's sleep score when known, otherwise duration vs. usual."""
    if sleep_score is not None:
        return max(0.0, min(100.0, float(sleep_score)))
    base = baseline_value(baseline)
    if duration is None or base is None:
        return None
    return max(0.0, min(100.0, duration / base * 100.0))


def respiratory_component(rate: float | None, baseline: float | None) -> float | None:
    """Elevated breathing rate is a stronger stress signal than suppressed."""
    base = baseline_value(baseline)
    if rate is None or base is None:
        return None
    change = (rate - base) / base
    if change > 0.15:
        return max(0.0, 50.0 - change * 200.0)
    if change > 0.05:
        return max(50.0, 100.0 - (change - 0.05) * 500.0)
    if change >= -0.05:
        return 100.0
    if change >= -0.15:
        return max(70.0, 100.0 - (abs(change) - 0.05) * 300.0)
    return max(40.0, 70.0 - (abs(change) - 0.15) * 200.0)


def tss_penalty(tss: float) -> float:
    """Points taken off form for recent training stress."""
    if tss < 50:
        return 0.0
    if tss < 100:
        return (tss - 50) * 0.2
    if tss < 200:
        return 10.0 + (tss - 100) * 0.15
    return min(40.0, 25.0 + (tss - 200) * 0.1)


def form_component(
    atl: float | None,
    ctl: float | None,
    recent_strain: float | None = None,
) -> float | None:
    """Freshness from the acute:chronic load ratio, less recent strain."""
    if atl is None or ctl is None or ctl <= 0:
        return None
    ratio = atl / ctl
    if ratio < 1.0:
        score = 100.0
    elif ratio < 1.5:
        score = max(50.0, 100.0 - (ratio - 1.0) * 100.0)
    else:
        score = max(0.0, 50.0 - (ratio - 1.5) * 50.0)
    if recent_strain is not None and recent_strain > 0:
        score -= tss_penalty(recent_strain)
    return max(0.0, score)


def compute_sub_scores(inputs: RecoveryInputs) -> dict[str, float]:
    """All sub-scores that can be computed from ``inputs``."""
    hrv = inputs.overnight_hrv if inputs.overnight_hrv is not None else inputs.hrv
    candidates = {
        "hrv": hrv_component(hrv, inputs.hrv_baseline),
        "rhr": rhr_component(inputs.rhr, inputs.rhr_baseline),
        "sleep": sleep_component(
            inputs.sleep_score, inputs.sleep_duration, inputs.sleep_baseline
        ) if inputs.has_sleep_data else None,
        "respiratory": respiratory_component(
            inputs.respiratory_rate, inputs.respiratory_baseline
        ),
        "form": form_component(inputs.atl, inputs.ctl, inputs.recent_strain),
    }
    return {k: v for k, v in candidates.items() if v is not None}


def weighted_score(sub_scores: dict[str, float]) -> float | None:
    """Weighted mean over the present sub-scores (weights renormalized)."""
    total_weight = sum(WEIGHTS[k] for k in sub_scores)
    if total_weight <= 0:
        return None
    return sum(WEIGHTS[k] * v for k, v in sub_scores.items()) / total_weight


# ---------------------------------------------------------------------------
# Alcohol compound effect
# ---------------------------------------------------------------------------


def alcohol_penalty(
    inputs: RecoveryInputs,
    rhr_score: float | None,
    day: date | None = None,
) -> float:
    """Extra points to subtract when the overnight pattern looks like alcohol.

    HRV suppression is required; poor sleep, elevated RHR, a stable
    respiratory rate and a weekend night add confidence.  An elevated
    respiratory rate points at illness instead and lowers confidence.
    Skipped entirely when an illness indicator is present.

    Args:
        inputs: Recovery inputs.
        rhr_score: Already computed RHR sub-score, if any.
        day: The morning being scored; decides the weekend factor.
    """
    if inputs.has_illness_indicator:
        return 0.0

    hrv = inputs.overnight_hrv if inputs.overnight_hrv is not None else inputs.hrv
    base = baseline_value(inputs.hrv_baseline)
    if hrv is None or base is None:
        return 0.0

    change = (hrv - base) / base * 100.0
    confidence = 0.0
    penalty = 0.0
    for limit, conf, pts in ALCOHOL_HRV_TIERS:
        if change < limit:
            confidence, penalty = conf, pts
            break
    if confidence == 0:
        return 0.0

    if inputs.sleep_score is not None:
        if inputs.sleep_score < 40:
            confidence += 20.0
        elif inputs.sleep_score < 60:
            confidence += 10.0
        if inputs.sleep_score < 50:
            confidence += 15.0  # likely deep sleep suppression

    if rhr_score is not None:
        if rhr_score < 30:
            confidence += 15.0
        elif rhr_score < 50:
            confidence += 10.0

    resp_base = baseline_value(inputs.respiratory_baseline)
    if inputs.respiratory_rate is not None and resp_base is not None:
        rr_change = (inputs.respiratory_rate - resp_base) / resp_base
        if abs(rr_change) < 0.10:
            confidence += 15.0
        elif rr_change > 0.15:
            confidence -= 20.0

    weekend = day is not None and day.weekday() >= 5
    if weekend:
        confidence += 10.0

    confidence = max(0.0, min(100.0, confidence))
    threshold = (
        ALCOHOL_CONFIDENCE_MIN_NO_SLEEP
        if inputs.sleep_score is None
        else ALCOHOL_CONFIDENCE_MIN
    )
    if confidence < threshold:
        return 0.0

    penalty *= confidence / 100.0
    if rhr_score is not None:
        if rhr_score < 30:
            penalty *= 1.5
        elif rhr_score < 50:
            penalty *= 1.25
    if weekend and confidence > 60:
        penalty *= 1.2
    if inputs.sleep_score is not None:
        if inputs.sleep_score >= 80:
            penalty *= 0.70
        elif inputs.sleep_score >= 65:
            penalty *= 0.85

    penalty = min(penalty, ALCOHOL_MAX_PENALTY)
    logger.debug(f"Alcohol pattern: confidence={confidence:.0f}%, penalty={penalty:.1f}")
    return penalty


# ---------------------------------------------------------------------------
# Composite scoring
# ---------------------------------------------------------------------------


def _explain(band: RecoveryBand, inputs: RecoveryInputs, sub_scores: dict[str, float]) -> str:
    if band == RecoveryBand.OPTIMAL:
        text = "Recovery is strong."
    elif band == RecoveryBand.GOOD:
        text = "Recovery is moderate."
    else:
        text = "Recovery is low."

    weakest = min(sub_scores, key=sub_scores.get)
    if sub_scores[weakest] < 60:
        text += f" Weakest factor: {weakest}."
    if inputs.has_illness_indicator:
        text += " Body stress signals detected; prioritize rest."
    if not inputs.has_sleep_data:
        text += " No sleep data for last night."
    return text


def score_recovery(
    inputs: RecoveryInputs,
    day: date | None = None,
    computed_at: datetime | None = None,
) -> ScoreResult | None:
    """Compute the recovery score.

    Args:
        inputs: Physiological inputs and their baselines.
        day: Date being scored (enables the weekend part of the alcohol
            heuristic; omit to skip it).
        computed_at: Timestamp stamped on the result (default: now, UTC).

    Returns:
        ScoreResult with a RecoveryBand, or None when no sub-score can be
        computed at all.
    """
    sub_scores = compute_sub_scores(inputs)
    base = weighted_score(sub_scores)
    if base is None:
        logger.debug("Recovery: no usable inputs")
        return None

    penalty = alcohol_penalty(inputs, sub_scores.get("rhr"), day)
    score = clamp_score(base - penalty)
    band = RecoveryBand.from_score(score)
    logger.debug(f"Recovery {score} ({band.value}) from {sorted(sub_scores)}")

    return ScoreResult(
        kind=ScoreKind.RECOVERY,
        score=score,
        band=band,
        sub_scores={k: round(v, 1) for k, v in sub_scores.items()},
        inputs=asdict(inputs),
        computed_at=computed_at or datetime.now(timezone.utc),
        summary=_explain(band, inputs, sub_scores),
        details={"alcohol_penalty": round(penalty, 1)},
    )
