"""Analytics pipeline: run every engine over one day's fetched inputs.

This module takes a :class:`DailyInputs` (metric history, workouts,
tonight's sleep, sleep sessions) and produces a :class:`DailySummary`.
Engine ordering:

    baselines, daily loads, ATL/CTL
        -> Sleep -> Recovery -> Stress, Readiness
        -> Strain, Illness, Circadian   (independent of each other)

The engines themselves are pure; this module only decides which inputs
each one sees.  :func:`gather_daily` adds the async front end: input
fetchers are awaited together and no engine starts until all of them
have resolved.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field, fields
from datetime import date, datetime, time, timedelta
from typing import Any, Awaitable, Callable, Mapping, Sequence

from loguru import logger

from vitalscore.analytics.baseline import WINDOW_DAYS, baseline_value, estimate_baseline
from vitalscore.analytics.circadian import SleepSession, analyze_circadian
from vitalscore.analytics.illness import (
    DEFAULT_THRESHOLDS,
    IllnessIndicator,
    IllnessThresholds,
    IllnessWindow,
    detect_illness,
)
from vitalscore.analytics.load import (
    TrainingLoadState,
    UserPhysiology,
    estimate_load,
    progressive_load,
)
from vitalscore.analytics.models import Baseline, MetricKind, WorkoutRecord
from vitalscore.analytics.readiness import readiness_from_history
from vitalscore.analytics.recovery import RecoveryInputs, score_recovery
from vitalscore.analytics.sleep import SleepInputs, score_sleep
from vitalscore.analytics.strain import (
    StrainInputs,
    StrengthSession,
    score_strain,
    strength_workout_load,
)
from vitalscore.analytics.stress import assess_stress, synthesize_stress
from vitalscore.analytics.summary import DailySummary, build_daily_summary


ILLNESS_WINDOW_DAYS = 7
RECENT_STRAIN_DAYS = 7
STRESS_HISTORY_DAYS = 30


@dataclass
class DailyInputs:
    """Everything the engines may use for one day, already fetched."""

    day: date
    user: UserPhysiology = field(default_factory=UserPhysiology)
    metrics: dict[MetricKind, dict[date, float]] = field(default_factory=dict)
    workouts: list[WorkoutRecord] = field(default_factory=list)
    sleep: SleepInputs | None = None
    overnight_hrv: float | None = None
    sleep_sessions: list[SleepSession] = field(default_factory=list)
    strength: StrengthSession | None = None
    training_load: TrainingLoadState | None = None  # state at the end of yesterday
    illness_thresholds: IllnessThresholds = DEFAULT_THRESHOLDS
    computed_at: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return not (
            any(self.metrics.values())
            or self.workouts
            or self.sleep is not None
            or self.sleep_sessions
            or self.strength is not None
            or self.training_load is not None
        )

    def metric(self, kind: MetricKind) -> dict[date, float]:
        return self.metrics.get(kind, {})

    def today(self, kind: MetricKind) -> float | None:
        return self.metric(kind).get(self.day)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def daily_series(values: Mapping[date, float], end: date, days: int) -> list[float | None]:
    """``days`` consecutive daily values ending at ``end``; gaps are None."""
    start = end - timedelta(days=days - 1)
    return [values.get(start + timedelta(days=i)) for i in range(days)]


def _history_baseline(inputs: DailyInputs, kind: MetricKind, end: date) -> Baseline | None:
    return estimate_baseline(daily_series(inputs.metric(kind), end, WINDOW_DAYS), kind)


def end_of_day(inputs: DailyInputs) -> datetime:
    """Midnight after ``inputs.day``, in the sleep sessions' timezone."""
    tz = inputs.sleep_sessions[0].wake_time.tzinfo if inputs.sleep_sessions else None
    return datetime.combine(inputs.day + timedelta(days=1), time.min, tzinfo=tz)


def _workout_day(record: WorkoutRecord, default: date) -> date:
    return record.timestamp.date() if record.timestamp is not None else default


def past_training_times(inputs: DailyInputs) -> list[datetime]:
    """Start times of workouts on or before ``inputs.day``."""
    return [
        w.timestamp for w in inputs.workouts
        if w.timestamp is not None and _workout_day(w, inputs.day) <= inputs.day
    ]


def daily_loads(inputs: DailyInputs) -> dict[date, float]:
    """Summed load per day; workouts without a timestamp count as today."""
    loads: dict[date, float] = defaultdict(float)
    for w in inputs.workouts:
        day = _workout_day(w, inputs.day)
        if day > inputs.day:
            continue
        loads[day] += estimate_load(w, inputs.user).value
    if inputs.strength is not None:
        s = inputs.strength
        loads[inputs.day] += strength_workout_load(
            s.duration_min, s.rpe, s.muscle_groups, s.eccentric
        )
    return dict(loads)


def training_states(
    inputs: DailyInputs,
    loads: Mapping[date, float],
) -> tuple[TrainingLoadState | None, TrainingLoadState | None]:
    """(state at the end of yesterday, state after today)."""
    today_load = loads.get(inputs.day, 0.0)
    if inputs.training_load is not None:
        return inputs.training_load, inputs.training_load.update(today_load)
    if not loads:
        return None, None

    first = min(loads)
    days = (inputs.day - first).days + 1
    states = progressive_load([loads.get(first + timedelta(days=i), 0.0) for i in range(days)])
    yesterday = states[-2] if len(states) > 1 else None
    return yesterday, states[-1]


def _average_intensity(workouts: Sequence[WorkoutRecord], ftp: float | None) -> float | None:
    """Duration-weighted NP / FTP over the workouts that have power."""
    if ftp is None or ftp <= 0:
        return None
    powered = [
        w for w in workouts
        if w.normalized_power and w.duration_s and w.normalized_power > 0 and w.duration_s > 0
    ]
    if not powered:
        return None
    total = sum(w.duration_s for w in powered)
    return sum(w.normalized_power / ftp * w.duration_s for w in powered) / total


# ---------------------------------------------------------------------------
# Engine wiring
# ---------------------------------------------------------------------------


def build_strain_inputs(
    inputs: DailyInputs,
    today_workouts: Sequence[WorkoutRecord],
    cardio_load: float,
    sleep_score: float | None,
) -> StrainInputs | None:
    """None when nothing strain-related was recorded today."""
    steps = inputs.today(MetricKind.STEPS)
    energy = inputs.today(MetricKind.ACTIVE_ENERGY)
    if not today_workouts and inputs.strength is None and steps is None and energy is None:
        return None

    minutes = [w.duration_min for w in today_workouts if w.duration_min]
    s = inputs.strength
    yesterday = inputs.day - timedelta(days=1)
    return StrainInputs(
        cardio_trimp=cardio_load if today_workouts else None,
        cardio_duration_min=sum(minutes) if minutes else None,
        average_intensity=_average_intensity(today_workouts, inputs.user.ftp),
        workout_types=tuple(w.activity_type for w in today_workouts),
        strength_duration_min=s.duration_min if s else None,
        strength_rpe=s.rpe if s else None,
        muscle_groups=s.muscle_groups if s else (),
        strength_volume_kg=s.volume_kg if s else None,
        strength_sets=s.sets if s else None,
        body_mass_kg=inputs.user.body_mass_kg,
        steps=steps,
        active_energy_kcal=energy,
        hrv=inputs.today(MetricKind.HRV),
        hrv_baseline=baseline_value(_history_baseline(inputs, MetricKind.HRV, yesterday)),
        rhr=inputs.today(MetricKind.RHR),
        rhr_baseline=baseline_value(_history_baseline(inputs, MetricKind.RHR, yesterday)),
        sleep_score=sleep_score,
    )


def build_illness_window(inputs: DailyInputs) -> IllnessWindow:
    """Last 7 days of each signal, with baselines from the 30 days before."""
    before = inputs.day - timedelta(days=ILLNESS_WINDOW_DAYS)

    def recent(kind: MetricKind) -> list[float]:
        values = daily_series(inputs.metric(kind), inputs.day, ILLNESS_WINDOW_DAYS)
        return [v for v in values if v is not None]

    return IllnessWindow(
        day=inputs.day,
        hrv=recent(MetricKind.HRV),
        rhr=recent(MetricKind.RHR),
        respiratory=recent(MetricKind.RESPIRATORY_RATE),
        sleep_score=recent(MetricKind.SLEEP_SCORE),
        activity=recent(MetricKind.STEPS),
        hrv_baseline=_history_baseline(inputs, MetricKind.HRV, before),
        rhr_baseline=_history_baseline(inputs, MetricKind.RHR, before),
        respiratory_baseline=_history_baseline(inputs, MetricKind.RESPIRATORY_RATE, before),
        sleep_baseline=_history_baseline(inputs, MetricKind.SLEEP_SCORE, before),
        activity_baseline=_history_baseline(inputs, MetricKind.STEPS, before),
    )


def build_recovery_inputs(
    inputs: DailyInputs,
    loads: Mapping[date, float],
    yesterday: TrainingLoadState | None,
    sleep_score: int | None,
    illness: IllnessIndicator | None,
) -> RecoveryInputs:
    prior = inputs.day - timedelta(days=1)
    recent = [
        loads.get(inputs.day - timedelta(days=i), 0.0)
        for i in range(1, RECENT_STRAIN_DAYS + 1)
    ]
    sleep_duration = inputs.today(MetricKind.SLEEP_DURATION)
    if sleep_duration is None and inputs.sleep is not None:
        sleep_duration = inputs.sleep.duration_h
    return RecoveryInputs(
        hrv=inputs.today(MetricKind.HRV),
        overnight_hrv=inputs.overnight_hrv,
        hrv_baseline=baseline_value(_history_baseline(inputs, MetricKind.HRV, prior)),
        rhr=inputs.today(MetricKind.RHR),
        rhr_baseline=baseline_value(_history_baseline(inputs, MetricKind.RHR, prior)),
        sleep_duration=sleep_duration,
        sleep_baseline=baseline_value(
            _history_baseline(inputs, MetricKind.SLEEP_DURATION, prior)
        ),
        respiratory_rate=inputs.today(MetricKind.RESPIRATORY_RATE),
        respiratory_baseline=baseline_value(
            _history_baseline(inputs, MetricKind.RESPIRATORY_RATE, prior)
        ),
        atl=yesterday.atl if yesterday else None,
        ctl=yesterday.ctl if yesterday else None,
        recent_strain=sum(recent) if loads else None,
        sleep_score=sleep_score,
        has_illness_indicator=illness is not None,
        has_sleep_data=sleep_score is not None or sleep_duration is not None,
    )


def run_daily(inputs: DailyInputs) -> DailySummary:
    """Run every engine for ``inputs.day``.

    Args:
        inputs: The day's fetched data and history.

    Returns:
        A DailySummary.  Engines without enough data leave their slot
        empty; with no data at all every slot is empty.
    """
    day = inputs.day
    if inputs.is_empty:
        logger.info(f"No data for {day}; returning an empty summary")
        return build_daily_summary(day)

    computed_at = inputs.computed_at
    loads = daily_loads(inputs)
    yesterday_state, today_state = training_states(inputs, loads)
    today_load = loads.get(day, 0.0)

    # Sleep -> Recovery
    sleep_result = score_sleep(inputs.sleep, computed_at) if inputs.sleep is not None else None
    sleep_score = sleep_result.score if sleep_result is not None else None
    if sleep_score is None:
        metric_sleep = inputs.today(MetricKind.SLEEP_SCORE)
        sleep_score = int(metric_sleep) if metric_sleep is not None else None

    illness = detect_illness(build_illness_window(inputs), inputs.illness_thresholds)

    recovery_result = score_recovery(
        build_recovery_inputs(inputs, loads, yesterday_state, sleep_score, illness),
        day=day,
        computed_at=computed_at,
    )
    recovery_score = recovery_result.score if recovery_result is not None else None

    # Strain
    today_workouts = [w for w in inputs.workouts if _workout_day(w, day) == day]
    cardio_load = sum(estimate_load(w, inputs.user).value for w in today_workouts)
    strain_inputs = build_strain_inputs(inputs, today_workouts, cardio_load, sleep_score)
    strain_result = (
        score_strain(strain_inputs, computed_at) if strain_inputs is not None else None
    )

    # Stress
    hrv_base = baseline_value(_history_baseline(inputs, MetricKind.HRV, day - timedelta(days=1)))
    sleep_by_day = dict(inputs.metric(MetricKind.SLEEP_SCORE))
    if sleep_score is not None:
        sleep_by_day[day] = float(sleep_score)
    series = synthesize_stress(
        recovery={day: float(recovery_score)} if recovery_score is not None else None,
        hrv=inputs.metric(MetricKind.HRV),
        hrv_baseline=hrv_base,
        rhr=inputs.metric(MetricKind.RHR),
        sleep=sleep_by_day,
        load=loads,
    )
    series = [p for p in series if p.day <= day][-STRESS_HISTORY_DAYS:]
    stress = assess_stress(
        [p.value for p in series if p.day < day],
        recovery=recovery_score,
        hrv=inputs.today(MetricKind.HRV),
        hrv_baseline=hrv_base,
        rhr=inputs.today(MetricKind.RHR),
        sleep=sleep_score,
        load=today_load if loads else None,
        ctl=today_state.ctl if today_state else None,
    )

    # Circadian
    circadian = None
    if inputs.sleep_sessions:
        circadian = analyze_circadian(
            inputs.sleep_sessions,
            now=end_of_day(inputs),
            training_times=past_training_times(inputs),
        )

    # Readiness
    readiness = None
    hrv_history = daily_series(inputs.metric(MetricKind.HRV), day, WINDOW_DAYS)
    if recovery_score is not None or yesterday_state is not None or any(
        v is not None for v in hrv_history
    ):
        readiness = readiness_from_history(
            hrv_history,
            recovery_score=recovery_score,
            tsb=yesterday_state.tsb if yesterday_state else None,
        )

    summary = build_daily_summary(
        day,
        sleep=sleep_result,
        recovery=recovery_result,
        strain=strain_result,
        training_load=today_state,
        daily_load=today_load,
        illness=illness,
        stress=stress,
        stress_series=series,
        circadian=circadian,
        readiness=readiness,
    )
    logger.info(f"{summary!r}")
    return summary


# ---------------------------------------------------------------------------
# Async scatter/gather
# ---------------------------------------------------------------------------


Fetcher = Callable[[], Awaitable[Any]]


async def gather_inputs(
    day: date,
    fetchers: Mapping[str, Fetcher],
    **fixed: Any,
) -> DailyInputs:
    """Await all fetchers concurrently and assemble a DailyInputs.

    Args:
        day: The day being scored.
        fetchers: DailyInputs field name -> coroutine function producing it.
            A fetcher returning None leaves the field at its default.
        **fixed: Already-known DailyInputs fields.

    Raises:
        ValueError: A fetcher key isn't a DailyInputs field.
    """
    known = {f.name for f in fields(DailyInputs)} - {"day"}
    unknown = set(fetchers) - known
    if unknown:
        raise ValueError(f"Unknown input field(s): {', '.join(sorted(unknown))}")

    names = list(fetchers)
    results = await asyncio.gather(*(fetchers[name]() for name in names))
    values = {name: value for name, value in zip(names, results) if value is not None}
    logger.debug(f"Fetched {len(values)}/{len(names)} inputs for {day}")
    return DailyInputs(day=day, **{**fixed, **values})


async def gather_daily(
    day: date,
    fetchers: Mapping[str, Fetcher],
    **fixed: Any,
) -> DailySummary:
    """Fetch everything for ``day``, then run the engines."""
    inputs = await gather_inputs(day, fetchers, **fixed)
    return run_daily(inputs)
