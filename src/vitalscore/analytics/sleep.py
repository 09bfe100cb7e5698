"""Sleep score from one night's staged sleep summary.

The night is judged on five components:

  performance   -- hours slept vs. personal sleep need
  efficiency    -- hours slept vs. time in bed
  stage quality -- share of deep + REM sleep
  disturbances  -- number of wake events
  timing        -- bedtime / wake time vs. the usual schedule

A component whose inputs are missing scores a neutral 50 rather than
dropping out, so a night from a source without stage data is still
comparable to the others.  Bands use the general 4-tier display scale.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from loguru import logger

from vitalscore.analytics.models import ScoreBand, ScoreKind, ScoreResult, clamp_score


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------

W_PERFORMANCE = 0.30
W_EFFICIENCY = 0.22
W_STAGE_QUALITY = 0.32
W_DISTURBANCES = 0.14
W_TIMING = 0.02

NEUTRAL = 50.0

# Deep + REM share of total sleep
STAGE_EXCELLENT = 0.40
STAGE_ADEQUATE = 0.30


@dataclass(frozen=True)
class SleepInputs:
    """One night.  Durations in hours, clock times as fractional hours."""

    duration_h: float | None = None
    need_h: float | None = None
    time_in_bed_h: float | None = None
    deep_h: float | None = None
    rem_h: float | None = None
    wake_events: int | None = None
    bedtime_hour: float | None = None
    wake_hour: float | None = None
    baseline_bedtime_hour: float | None = None
    baseline_wake_hour: float | None = None


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


def performance_score(duration_h: float | None, need_h: float | None) -> float:
    if duration_h is None or need_h is None or need_h <= 0:
        return NEUTRAL
    return max(0.0, min(100.0, duration_h / need_h * 100.0))


def efficiency_score(duration_h: float | None, time_in_bed_h: float | None) -> float:
    if duration_h is None or time_in_bed_h is None or time_in_bed_h <= 0:
        return NEUTRAL
    return max(0.0, min(100.0, duration_h / time_in_bed_h * 100.0))


def stage_quality_score(
    duration_h: float | None,
    deep_h: float | None,
    rem_h: float | None,
) -> float:
    """100 at >= 40% deep+REM, 50-100 between 30 and 40%, linear below."""
    if duration_h is None or duration_h <= 0:
        return NEUTRAL
    share = ((deep_h or 0.0) + (rem_h or 0.0)) / duration_h
    if share >= STAGE_EXCELLENT:
        return 100.0
    if share >= STAGE_ADEQUATE:
        return max(50.0, 50.0 + (share - STAGE_ADEQUATE) * 500.0)
    return max(0.0, share * 166.67)


def disturbances_score(wake_events: int | None) -> float:
    if wake_events is None:
        return NEUTRAL
    if wake_events <= 2:
        return 100.0
    if wake_events <= 5:
        return 75.0
    if wake_events <= 8:
        return 50.0
    return 25.0


def _clock_diff_min(a: float, b: float) -> float:
    """Shortest distance between two clock times, in minutes."""
    diff = abs(a - b) % 24.0
    return min(diff, 24.0 - diff) * 60.0


def timing_score(
    bedtime_hour: float | None,
    wake_hour: float | None,
    baseline_bedtime_hour: float | None,
    baseline_wake_hour: float | None,
) -> float:
    if None in (bedtime_hour, wake_hour, baseline_bedtime_hour, baseline_wake_hour):
        return NEUTRAL
    avg_dev = (
        _clock_diff_min(bedtime_hour, baseline_bedtime_hour)
        + _clock_diff_min(wake_hour, baseline_wake_hour)
    ) / 2.0
    if avg_dev <= 30:
        return 100.0
    if avg_dev <= 60:
        return 75.0
    if avg_dev <= 90:
        return 50.0
    return 25.0


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------


def score_sleep(
    inputs: SleepInputs,
    computed_at: datetime | None = None,
) -> ScoreResult:
    """Compute the night's sleep score.

    Args:
        inputs: Sleep summary for the night.
        computed_at: Timestamp stamped on the result (default: now, UTC).

    Returns:
        ScoreResult with the 0-100 score, a ScoreBand and the five
        component scores.
    """
    components = {
        "performance": performance_score(inputs.duration_h, inputs.need_h),
        "efficiency": efficiency_score(inputs.duration_h, inputs.time_in_bed_h),
        "stage_quality": stage_quality_score(inputs.duration_h, inputs.deep_h, inputs.rem_h),
        "disturbances": disturbances_score(inputs.wake_events),
        "timing": timing_score(
            inputs.bedtime_hour,
            inputs.wake_hour,
            inputs.baseline_bedtime_hour,
            inputs.baseline_wake_hour,
        ),
    }

    raw = (
        components["performance"] * W_PERFORMANCE
        + components["efficiency"] * W_EFFICIENCY
        + components["stage_quality"] * W_STAGE_QUALITY
        + components["disturbances"] * W_DISTURBANCES
        + components["timing"] * W_TIMING
    )
    score = clamp_score(raw)
    band = ScoreBand.from_score(score)
    logger.debug(f"Sleep score {score} ({band.value}): {components}")

    return ScoreResult(
        kind=ScoreKind.SLEEP,
        score=score,
        band=band,
        sub_scores={k: round(v, 1) for k, v in components.items()},
        inputs=asdict(inputs),
        computed_at=computed_at or datetime.now(timezone.utc),
    )
