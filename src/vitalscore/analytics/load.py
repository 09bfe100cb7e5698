"""Training load estimation (TSS / TRIMP) and the ATL/CTL/TSB model.

Workout records arrive with very different levels of detail depending on
the source: a power meter ride carries normalized power, a platform
export may carry a precomputed TSS, a watch run only average heart rate,
and a manually logged session just a duration.  Each record is run
through an ordered list of estimation strategies and the first one that
can produce a value wins:

    power -> precomputed TSS -> heart-rate TRIMP -> duration -> 0

Daily load feeds the classic exponentially weighted fitness/fatigue
model (Coggan/Banister):

    ATL' = ATL + (L - ATL) / 7      acute load, "fatigue"
    CTL' = CTL + (L - CTL) / 42     chronic load, "fitness"
    TSB  = CTL - ATL                training stress balance, "form"
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable, Sequence

import numpy as np
from loguru import logger

from vitalscore.analytics.models import WorkoutRecord


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ATL_DAYS = 7.0
CTL_DAYS = 42.0

TRIMP_COEFF = 0.64
TRIMP_EXPONENT = 1.92

DURATION_ONLY_FACTOR = 0.6  # assume a moderate %HRR of 0.6

# Banister exponent by sex
BANISTER_EXPONENTS = {
    "female": 1.67,
    "male": 1.92,
    "unspecified": 1.85,
}

# Edwards zone TRIMP: minutes in zone N are weighted by N
EDWARDS_ZONE_WEIGHTS = [1.0, 2.0, 3.0, 4.0, 5.0]

# Progressive load seeding: first two weeks of data
SEED_DAYS = 14
SEED_CTL_FACTOR = 0.7
SEED_ATL_FACTOR = 0.4


class Sex(str, Enum):
    FEMALE = "female"
    MALE = "male"
    UNSPECIFIED = "unspecified"


@dataclass(frozen=True)
class UserPhysiology:
    """User constants the fallback formulas need."""

    ftp: float | None = None  # watts
    max_hr: float | None = None  # bpm
    resting_hr: float | None = None  # bpm
    body_mass_kg: float | None = None
    sex: Sex = Sex.UNSPECIFIED


@dataclass(frozen=True)
class LoadEstimate:
    """Load for one workout and the strategy that produced it."""

    value: float
    method: str  # "power" | "tss" | "heart_rate" | "duration" | "none"

    def __repr__(self) -> str:
        return f"LoadEstimate({self.value:.1f} via {self.method})"


# ---------------------------------------------------------------------------
# Per-workout strategies
# ---------------------------------------------------------------------------


def _positive(x: float | None) -> bool:
    return x is not None and x > 0


def _from_power(record: WorkoutRecord, user: UserPhysiology) -> float | None:
    if not (_positive(record.normalized_power) and _positive(user.ftp)):
        return None
    if not _positive(record.duration_s):
        return None
    intensity = record.normalized_power / user.ftp
    hours = record.duration_s / 3600.0
    return hours * intensity ** 2 * 100.0


def _from_tss(record: WorkoutRecord, user: UserPhysiology) -> float | None:
    if record.tss is None or record.tss < 0:
        return None
    return float(record.tss)


def _from_heart_rate(record: WorkoutRecord, user: UserPhysiology) -> float | None:
    max_hr = record.max_hr if _positive(record.max_hr) else user.max_hr
    rest = user.resting_hr
    if not (_positive(record.average_hr) and _positive(max_hr) and _positive(rest)):
        return None
    if max_hr <= rest or not _positive(record.duration_s):
        return None
    hrr = heart_rate_reserve(record.average_hr, rest, max_hr)
    minutes = record.duration_s / 60.0
    if user.sex == Sex.UNSPECIFIED:
        return hr_trimp(minutes, hrr)
    return banister_trimp(minutes, hrr, user.sex)


def _from_duration(record: WorkoutRecord, user: UserPhysiology) -> float | None:
    if not _positive(record.duration_s):
        return None
    return record.duration_s / 60.0 * DURATION_ONLY_FACTOR


# Ordered by how much we trust each source of intensity information.
STRATEGIES: list[tuple[str, Callable[[WorkoutRecord, UserPhysiology], float | None]]] = [
    ("power", _from_power),
    ("tss", _from_tss),
    ("heart_rate", _from_heart_rate),
    ("duration", _from_duration),
]


def heart_rate_reserve(avg_hr: float, resting_hr: float, max_hr: float) -> float:
    """Fraction of heart-rate reserve, clamped to [0, 1]."""
    hrr = (avg_hr - resting_hr) / (max_hr - resting_hr)
    return max(0.0, min(1.0, hrr))


def hr_trimp(minutes: float, hrr: float) -> float:
    """Exponential HR TRIMP: min * %HRR * 0.64 * e^(1.92 * %HRR)."""
    return minutes * hrr * TRIMP_COEFF * math.exp(TRIMP_EXPONENT * hrr)


def banister_trimp(minutes: float, hrr: float, sex: Sex = Sex.UNSPECIFIED) -> float:
    """Banister TRIMP with the sex-specific weighting exponent."""
    exponent = BANISTER_EXPONENTS[Sex(sex).value]
    return minutes * hrr * TRIMP_COEFF * math.exp(exponent * hrr)


def zone_trimp(minutes_in_zone: Sequence[float]) -> float:
    """Edwards TRIMP from minutes spent in HR zones 1-5."""
    weights = EDWARDS_ZONE_WEIGHTS[: len(minutes_in_zone)]
    return float(np.dot(np.asarray(minutes_in_zone[: len(weights)], dtype=np.float64), weights))


def estimate_load(record: WorkoutRecord, user: UserPhysiology | None = None) -> LoadEstimate:
    """Estimate one workout's load through the fallback chain.

    Args:
        record: The workout.
        user: FTP / HR constants. Missing constants simply disable the
            strategies that need them.

    Returns:
        LoadEstimate; value 0 with method "none" when nothing usable exists.
    """
    user = user or UserPhysiology()
    for name, strategy in STRATEGIES:
        value = strategy(record, user)
        if value is not None:
            logger.debug(f"{record.activity_type} load {value:.1f} via {name}")
            return LoadEstimate(value=value, method=name)

    logger.warning(
        f"Unusable workout record from {record.source or 'unknown source'} "
        f"({record.activity_type}): no duration, power, HR or TSS"
    )
    return LoadEstimate(value=0.0, method="none")


def daily_load(
    records: Iterable[WorkoutRecord],
    user: UserPhysiology | None = None,
) -> float:
    """Sum of per-workout loads for one day (records already deduplicated)."""
    return float(sum(estimate_load(r, user).value for r in records))


# ---------------------------------------------------------------------------
# ATL / CTL
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrainingLoadState:
    """Acute and chronic training load; form is derived."""

    atl: float = 0.0
    ctl: float = 0.0

    @property
    def tsb(self) -> float:
        return self.ctl - self.atl

    def update(self, load: float, elapsed_days: int = 1) -> TrainingLoadState:
        """Advance the model by ``elapsed_days`` ending with ``load``.

        Days skipped between the previous update and this one are rest
        days (zero load).  ``elapsed_days`` of 0 returns the state as-is.
        """
        if elapsed_days <= 0:
            return self
        atl, ctl = self.atl, self.ctl
        for day in range(elapsed_days):
            day_load = load if day == elapsed_days - 1 else 0.0
            atl = atl + (day_load - atl) / ATL_DAYS
            ctl = ctl + (day_load - ctl) / CTL_DAYS
        return replace(self, atl=atl, ctl=ctl)

    def to_dict(self) -> dict[str, float]:
        return {
            "atl": round(self.atl, 2),
            "ctl": round(self.ctl, 2),
            "tsb": round(self.tsb, 2),
        }

    def __repr__(self) -> str:
        return (
            f"TrainingLoadState(ctl={self.ctl:.1f}, atl={self.atl:.1f}, "
            f"tsb={self.tsb:+.1f})"
        )


def progressive_load(
    daily_loads: Sequence[float],
    seed: TrainingLoadState | None = None,
) -> list[TrainingLoadState]:
    """Walk a day-by-day load series and return the state after each day.

    Without an explicit ``seed`` the model starts from the average of the
    first two weeks (CTL at 70% and ATL at 40% of it) instead of zero, so
    a user with a long training history isn't shown as completely unfit.
    """
    if not len(daily_loads):
        return []
    if seed is None:
        avg = float(np.mean(daily_loads[:SEED_DAYS]))
        seed = TrainingLoadState(atl=avg * SEED_ATL_FACTOR, ctl=avg * SEED_CTL_FACTOR)

    states: list[TrainingLoadState] = []
    state = seed
    for load in daily_loads:
        state = state.update(load)
        states.append(state)
    return states
