"""Scoring engines for daily physiological data.

Modules:
    models     -- Samples, baselines, workouts, score results and bands
    baseline   -- Rolling personal baselines and HRV statistics
    load       -- Workout load fallback chain and ATL/CTL/TSB
    trend      -- Multi-day trend consistency
    sleep      -- Sleep score
    recovery   -- Recovery score
    strain     -- Strain score
    illness    -- Illness / body-stress detection
    stress     -- Synthesized stress index
    circadian  -- Bedtime/wake averages and schedule consistency
    readiness  -- HRV-guided training recommendation
    summary    -- Daily summary aggregation
    pipeline   -- Engine ordering and async input gathering
"""

from vitalscore.analytics.models import (
    MetricKind,
    MetricSample,
    Baseline,
    WorkoutRecord,
    RecoveryBand,
    ScoreBand,
    StrainBand,
    ScoreResult,
    daily_values,
)
from vitalscore.analytics.baseline import (
    estimate_baseline,
    percent_deviation,
    robust_baseline,
    adaptive_baseline,
    hrv_trend,
)
from vitalscore.analytics.load import (
    UserPhysiology,
    LoadEstimate,
    TrainingLoadState,
    estimate_load,
    daily_load,
    progressive_load,
)
from vitalscore.analytics.trend import Direction, TrendResult, trend_consistency, detect_trend
from vitalscore.analytics.sleep import SleepInputs, score_sleep
from vitalscore.analytics.recovery import RecoveryInputs, score_recovery
from vitalscore.analytics.strain import StrainInputs, StrengthSession, score_strain
from vitalscore.analytics.illness import (
    IllnessThresholds,
    IllnessWindow,
    IllnessIndicator,
    detect_illness,
)
from vitalscore.analytics.stress import StressPoint, synthesize_stress, assess_stress
from vitalscore.analytics.circadian import (
    SleepSession,
    CircadianRhythmData,
    analyze_circadian,
    sleep_consistency,
)
from vitalscore.analytics.readiness import (
    TrainingRecommendation,
    assess_readiness,
    quick_readiness,
)
from vitalscore.analytics.summary import build_daily_summary, DailySummary
from vitalscore.analytics.pipeline import DailyInputs, run_daily, gather_daily

__all__ = [
    # models
    "MetricKind",
    "MetricSample",
    "Baseline",
    "WorkoutRecord",
    "RecoveryBand",
    "ScoreBand",
    "StrainBand",
    "ScoreResult",
    "daily_values",
    # baseline
    "estimate_baseline",
    "percent_deviation",
    "robust_baseline",
    "adaptive_baseline",
    "hrv_trend",
    # load
    "UserPhysiology",
    "LoadEstimate",
    "TrainingLoadState",
    "estimate_load",
    "daily_load",
    "progressive_load",
    # trend
    "Direction",
    "TrendResult",
    "trend_consistency",
    "detect_trend",
    # scores
    "SleepInputs",
    "score_sleep",
    "RecoveryInputs",
    "score_recovery",
    "StrainInputs",
    "StrengthSession",
    "score_strain",
    # illness
    "IllnessThresholds",
    "IllnessWindow",
    "IllnessIndicator",
    "detect_illness",
    # stress
    "StressPoint",
    "synthesize_stress",
    "assess_stress",
    # circadian
    "SleepSession",
    "CircadianRhythmData",
    "analyze_circadian",
    "sleep_consistency",
    # readiness
    "TrainingRecommendation",
    "assess_readiness",
    "quick_readiness",
    # summary / pipeline
    "build_daily_summary",
    "DailySummary",
    "DailyInputs",
    "run_daily",
    "gather_daily",
]
