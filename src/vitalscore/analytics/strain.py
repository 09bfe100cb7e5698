"""Daily strain score (0-100): how much load the body took on today.

Three sub-scores, each compressed logarithmically so that doubling the
work never doubles the score:

  cardio        -- 18 * log10(TRIMP + 1), bonuses for long and intense
                   sessions, scaled by the metabolic cost of the sport
  strength      -- session RPE x minutes, adjusted for muscle groups,
                   volume and set count
  non-exercise  -- steps and active calories with a daily cap

The weighted sum is then scaled by a recovery factor: the same session
costs more on a morning with suppressed HRV and elevated RHR than on a
well-recovered one.

Strain bands describe load magnitude only; they say nothing about
whether the day was good or bad for the user.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Sequence

from loguru import logger

from vitalscore.analytics.baseline import baseline_value
from vitalscore.analytics.models import ScoreKind, ScoreResult, StrainBand, clamp_score


# ---------------------------------------------------------------------------
# Scale factors
# ---------------------------------------------------------------------------

CARDIO_SCALE = 18.0
STRENGTH_SCALE = 2.0
STRENGTH_COMPRESSION = 0.8  # strength curve sits slightly below cardio
ACTIVITY_SCALE = 12.0
ACTIVITY_CAP = 45.0  # MET-minute equivalents from non-exercise movement

STEPS_PER_UNIT = 2000.0
MET_MIN_PER_STEP_UNIT = 20.0
MET_MIN_PER_KCAL = 0.003

DEFAULT_RPE = 6.5
CONCURRENT_TRAINING_FACTOR = 1.15  # cardio + strength on the same day

RECOVERY_MODULATION = 0.15  # +-15%

# Contribution of each sub-score to the composite
W_CARDIO = 1.0
W_STRENGTH = 0.8
W_ACTIVITY = 0.5

# Metabolic cost relative to cycling, matched on substrings of the type tag
WORKOUT_TYPE_MULTIPLIERS = [
    ("run", 1.2),
    ("swim", 1.3),
    ("cycl", 1.0),
    ("bike", 1.0),
    ("walk", 0.6),
    ("hik", 0.9),
    ("row", 1.15),
]


class MuscleGroup(str, Enum):
    LEGS = "legs"
    BACK = "back"
    CHEST = "chest"
    SHOULDERS = "shoulders"
    ARMS = "arms"
    CORE = "core"
    PUSH = "push"
    PULL = "pull"
    FULL_BODY = "full_body"
    CONDITIONING = "conditioning"


# Systemic fatigue relative to a chest session
MUSCLE_GROUP_FACTORS = {
    MuscleGroup.LEGS: 1.5,
    MuscleGroup.BACK: 1.2,
    MuscleGroup.CHEST: 1.0,
    MuscleGroup.SHOULDERS: 0.9,
    MuscleGroup.ARMS: 0.7,
    MuscleGroup.CORE: 0.8,
    MuscleGroup.PUSH: 1.1,
    MuscleGroup.PULL: 1.2,
    MuscleGroup.FULL_BODY: 1.4,
    MuscleGroup.CONDITIONING: 1.3,
}

SPECIFIC_MUSCLES = {
    MuscleGroup.LEGS,
    MuscleGroup.BACK,
    MuscleGroup.CHEST,
    MuscleGroup.SHOULDERS,
    MuscleGroup.ARMS,
    MuscleGroup.CORE,
}
PUSH_GROUPS = (MuscleGroup.PUSH, MuscleGroup.CHEST, MuscleGroup.SHOULDERS)
PULL_GROUPS = (MuscleGroup.PULL, MuscleGroup.BACK)


@dataclass(frozen=True)
class StrengthSession:
    """A logged lifting session (the wearable can't see these)."""

    duration_min: float
    rpe: float | None = None
    muscle_groups: tuple[MuscleGroup, ...] = ()
    volume_kg: float | None = None
    sets: int | None = None
    eccentric: bool = False


@dataclass(frozen=True)
class StrainInputs:
    """Today's training and activity, plus the recovery context."""

    cardio_trimp: float | None = None
    cardio_duration_min: float | None = None
    average_intensity: float | None = None  # intensity factor (NP / FTP)
    workout_types: tuple[str, ...] = ()
    strength_duration_min: float | None = None
    strength_rpe: float | None = None
    muscle_groups: tuple[MuscleGroup, ...] = ()
    strength_volume_kg: float | None = None
    strength_sets: int | None = None
    body_mass_kg: float | None = None
    steps: float | None = None
    active_energy_kcal: float | None = None
    met_minutes: float | None = None
    hrv: float | None = None
    hrv_baseline: float | None = None
    rhr: float | None = None
    rhr_baseline: float | None = None
    sleep_score: float | None = None


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------


def workout_type_multiplier(workout_types: Sequence[str]) -> float:
    """Highest metabolic multiplier among the day's workout types."""
    best = 1.0
    for wt in workout_types:
        tag = wt.lower()
        for key, mult in WORKOUT_TYPE_MULTIPLIERS:
            if key in tag:
                best = max(best, mult)
                break
    return best


def cardio_load(inputs: StrainInputs) -> float:
    if inputs.cardio_trimp is None or inputs.cardio_trimp <= 0:
        return 0.0
    score = CARDIO_SCALE * math.log10(inputs.cardio_trimp + 1.0)
    duration = inputs.cardio_duration_min
    if duration is not None and duration > 60:
        score += min(10.0, (duration - 60) * 0.1)
    intensity = inputs.average_intensity
    if intensity is not None and intensity > 0.8:
        score += min(15.0, (intensity - 0.8) * 75.0)
    score *= workout_type_multiplier(inputs.workout_types)
    return max(0.0, min(100.0, score))


def muscle_group_factor(groups: Sequence[MuscleGroup]) -> float:
    """Systemic fatigue factor for one or more trained muscle groups.

    Compound and multi-group sessions cost more than any single group, but
    full body is already the ceiling and isn't compounded further.
    """
    groups = [MuscleGroup(g) for g in groups]
    if not groups:
        return 1.0
    if len(groups) == 1:
        return MUSCLE_GROUP_FACTORS[groups[0]]

    has_conditioning = MuscleGroup.CONDITIONING in groups
    has_push = any(g in PUSH_GROUPS for g in groups)
    has_pull = any(g in PULL_GROUPS for g in groups)

    if MuscleGroup.FULL_BODY in groups:
        base = MUSCLE_GROUP_FACTORS[MuscleGroup.FULL_BODY]
        return base + 0.1 if has_conditioning else base

    if MuscleGroup.LEGS in groups and (has_push or has_pull):
        return 1.6  # upper/lower in one session

    if has_push and has_pull:
        push = next(MUSCLE_GROUP_FACTORS[g] for g in groups if g in PUSH_GROUPS)
        pull = next(MUSCLE_GROUP_FACTORS[g] for g in groups if g in PULL_GROUPS)
        return (push + pull) / 2 + 0.15

    specific = [MUSCLE_GROUP_FACTORS[g] for g in groups if g in SPECIFIC_MUSCLES]
    if len(specific) >= 2:
        return max(specific) + 0.1

    if has_conditioning:
        others = [MUSCLE_GROUP_FACTORS[g] for g in groups if g != MuscleGroup.CONDITIONING]
        return (max(others) if others else 1.0) + 0.2

    return max(MUSCLE_GROUP_FACTORS[g] for g in groups) + 0.05


def strength_load(inputs: StrainInputs) -> float:
    duration = inputs.strength_duration_min
    if duration is None or duration <= 0:
        return 0.0
    rpe = inputs.strength_rpe if inputs.strength_rpe is not None else DEFAULT_RPE
    rpe = max(1.0, min(10.0, rpe))

    load = STRENGTH_SCALE * rpe * duration * muscle_group_factor(inputs.muscle_groups)

    if (
        inputs.strength_volume_kg is not None
        and inputs.body_mass_kg is not None
        and inputs.body_mass_kg > 0
        and inputs.strength_volume_kg > 0
    ):
        relative = inputs.strength_volume_kg / inputs.body_mass_kg
        load *= 1.0 + 0.15 * min(2.0, relative ** 0.25)

    if inputs.strength_sets is not None and inputs.strength_sets > 0:
        load *= min(1.3, 1.0 + (inputs.strength_sets - 1) * 0.05)

    score = CARDIO_SCALE * STRENGTH_COMPRESSION * math.log10(load + 1.0)
    return max(0.0, min(100.0, score))


def activity_load(inputs: StrainInputs) -> float:
    """Non-exercise movement with diminishing returns and a daily cap."""
    total = 0.0
    if inputs.steps is not None and inputs.steps > 0:
        total += MET_MIN_PER_STEP_UNIT * inputs.steps / STEPS_PER_UNIT
    if inputs.active_energy_kcal is not None and inputs.active_energy_kcal > 0:
        total += inputs.active_energy_kcal * MET_MIN_PER_KCAL
    if inputs.met_minutes is not None and inputs.met_minutes > 0:
        total += inputs.met_minutes
    total = min(total, ACTIVITY_CAP)
    return max(0.0, min(100.0, ACTIVITY_SCALE * math.log1p(total)))


def recovery_factor(inputs: StrainInputs) -> float:
    """Multiplier in [0.85, 1.15]; > 1 when the body is under-recovered."""
    z_hrv = 0.0
    z_rhr = 0.0
    z_sleep = 0.0
    hrv_base = baseline_value(inputs.hrv_baseline)
    if inputs.hrv is not None and hrv_base is not None:
        z_hrv = (hrv_base - inputs.hrv) / hrv_base
    rhr_base = baseline_value(inputs.rhr_baseline)
    if inputs.rhr is not None and rhr_base is not None:
        z_rhr = (inputs.rhr - rhr_base) / rhr_base
    if inputs.sleep_score is not None:
        z_sleep = (75.0 - inputs.sleep_score) / 25.0

    signal = 0.6 * z_hrv + 0.3 * z_rhr + 0.1 * z_sleep
    signal = max(-1.0, min(1.0, signal))
    return 1.0 + RECOVERY_MODULATION * signal


def strength_workout_load(
    duration_min: float,
    rpe: float | None = None,
    muscle_groups: Sequence[MuscleGroup] = (),
    eccentric: bool = False,
) -> float:
    """TRIMP-equivalent load of one strength session for the ATL/CTL model.

    RPE stands in for heart rate: RPE 10 maps to full reserve, and any
    lifting session counts as at least 50%.
    """
    rpe = DEFAULT_RPE if rpe is None else max(1.0, min(10.0, rpe))
    hr_fraction = max(0.5, (rpe - 1.0) / 9.0)
    load = hr_fraction * duration_min * 120.0 * muscle_group_factor(muscle_groups)
    if eccentric:
        load *= 1.3
    return load


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------


def score_strain(
    inputs: StrainInputs,
    computed_at: datetime | None = None,
) -> ScoreResult:
    """Compute the day's strain score.

    Args:
        inputs: Training, activity and recovery context for the day.
        computed_at: Timestamp stamped on the result (default: now, UTC).

    Returns:
        ScoreResult with a StrainBand.  A day with nothing recorded scores 0.
    """
    cardio = cardio_load(inputs)
    strength = strength_load(inputs)
    activity = activity_load(inputs)

    raw = W_CARDIO * cardio + W_STRENGTH * strength + W_ACTIVITY * activity
    concurrent = cardio > 0 and strength > 0
    if concurrent:
        raw *= CONCURRENT_TRAINING_FACTOR

    factor = recovery_factor(inputs)
    score = clamp_score(raw * factor)
    band = StrainBand.from_score(score)
    logger.debug(
        f"Strain {score} ({band.value}): cardio={cardio:.1f} "
        f"strength={strength:.1f} activity={activity:.1f} factor={factor:.3f}"
    )

    return ScoreResult(
        kind=ScoreKind.STRAIN,
        score=score,
        band=band,
        sub_scores={
            "cardio": round(cardio, 1),
            "strength": round(strength, 1),
            "activity": round(activity, 1),
        },
        inputs=asdict(inputs),
        computed_at=computed_at or datetime.now(timezone.utc),
        details={
            "recovery_factor": round(factor, 3),
            "concurrent_training": concurrent,
        },
    )
