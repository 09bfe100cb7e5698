"""Circadian rhythm and sleep-schedule consistency.

Clock times are averaged as fractional hours.  Bedtimes need care around
midnight: averaging 23:00 and 01:00 naively gives 12:00.  Any bedtime
before 06:00 is therefore treated as belonging to the previous evening
(01:00 -> 25.0), averaged, and folded back into [0, 24).  Wake times sit
comfortably inside a single day and are averaged as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence

import numpy as np
from loguru import logger


EARLY_MORNING_HOUR = 6.0  # bedtimes before this belong to the previous evening
HOURS_PER_DAY = 24.0

CONSISTENCY_MIN_SESSIONS = 3
NOON_MIN = 720  # consistency: bedtimes before noon count as overnight


@dataclass(frozen=True)
class SleepSession:
    bedtime: datetime
    wake_time: datetime


@dataclass(frozen=True)
class CircadianRhythmData:
    """Average schedule and how much the bedtime wanders."""

    avg_bedtime: float  # fractional hour, [0, 24)
    avg_wake_time: float  # fractional hour, [0, 24)
    bedtime_variance: float  # standard deviation, minutes
    avg_training_time: float | None  # fractional hour
    consistency: float | None  # 0-100
    sessions: int

    def to_dict(self) -> dict:
        return {
            "avg_bedtime": format_hour(self.avg_bedtime),
            "avg_wake_time": format_hour(self.avg_wake_time),
            "bedtime_variance_min": round(self.bedtime_variance, 1),
            "avg_training_time": (
                format_hour(self.avg_training_time)
                if self.avg_training_time is not None
                else None
            ),
            "consistency": self.consistency,
            "sessions": self.sessions,
        }

    def __repr__(self) -> str:
        return (
            f"CircadianRhythmData(bed={format_hour(self.avg_bedtime)}, "
            f"wake={format_hour(self.avg_wake_time)}, "
            f"sd={self.bedtime_variance:.0f}min)"
        )


def format_hour(hour: float) -> str:
    """23.5 -> '23:30'."""
    total = int(round(hour * 60)) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def _clock_hour(ts: datetime) -> float:
    return ts.hour + ts.minute / 60.0 + ts.second / 3600.0


def _evening_anchored(hour: float) -> float:
    return hour + HOURS_PER_DAY if hour < EARLY_MORNING_HOUR else hour


def average_bedtime(bedtimes: Sequence[datetime]) -> float:
    """Mean bedtime with midnight wraparound, folded into [0, 24)."""
    hours = [_evening_anchored(_clock_hour(b)) for b in bedtimes]
    avg = float(np.mean(hours))
    return avg - HOURS_PER_DAY if avg >= HOURS_PER_DAY else avg


def average_wake_time(wake_times: Sequence[datetime]) -> float:
    return float(np.mean([_clock_hour(w) for w in wake_times]))


def bedtime_variance(bedtimes: Sequence[datetime]) -> float:
    """Population standard deviation of bedtimes, in minutes.

    Computed on the evening-anchored hours so that nights either side of
    midnight are minutes apart, not most of a day.
    """
    minutes = np.asarray(
        [_evening_anchored(_clock_hour(b)) * 60.0 for b in bedtimes],
        dtype=np.float64,
    )
    return float(np.std(minutes))


def analyze_circadian(
    sessions: Sequence[SleepSession],
    now: datetime,
    consistency_score: float | None = None,
    training_times: Sequence[datetime] = (),
) -> CircadianRhythmData | None:
    """Summarize the sleep schedule from past sessions.

    Args:
        sessions: Sleep sessions in any order.
        now: Reference time; sessions that haven't ended yet are ignored.
        consistency_score: Externally computed consistency score (0-100). When
            omitted, :func:`sleep_consistency` is used if it has enough data.
        training_times: Workout start times, for the average training hour.

    Returns:
        CircadianRhythmData, or None if no session has ended before ``now``.
    """
    past = [s for s in sessions if s.wake_time < now]
    if not past:
        logger.debug("Circadian: no past sleep sessions")
        return None

    bedtimes = [s.bedtime for s in past]
    if consistency_score is None:
        result = sleep_consistency(past)
        consistency_score = float(result.score) if result is not None else None

    avg_training = None
    if training_times:
        avg_training = float(np.mean([_clock_hour(t) for t in training_times]))

    return CircadianRhythmData(
        avg_bedtime=average_bedtime(bedtimes),
        avg_wake_time=average_wake_time([s.wake_time for s in past]),
        bedtime_variance=bedtime_variance(bedtimes),
        avg_training_time=avg_training,
        consistency=consistency_score,
        sessions=len(past),
    )


# ---------------------------------------------------------------------------
# Sleep consistency
# ---------------------------------------------------------------------------


class ConsistencyBand(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"

    @classmethod
    def from_score(cls, score: float) -> ConsistencyBand:
        if score >= 90:
            return cls.EXCELLENT
        if score >= 70:
            return cls.GOOD
        if score >= 50:
            return cls.FAIR
        return cls.POOR


@dataclass(frozen=True)
class SleepConsistency:
    score: int  # 0-100
    band: ConsistencyBand
    bedtime_sd: float  # minutes
    wake_time_sd: float  # minutes


def variability_score(variability_min: float) -> int:
    """Map average schedule SD (minutes) onto 0-100.

    < 30 min -> 90-100, 30-60 -> 70-89, 60-90 -> 50-69, beyond falls to 0
    over the next hour.
    """
    v = variability_min
    if v < 30:
        return int(100 - v / 30 * 10)
    if v < 60:
        return int(89 - (v - 30) / 30 * 19)
    if v < 90:
        return int(69 - (v - 60) / 30 * 19)
    return max(0, int(50 - (v - 90) / 60 * 50))


def sleep_consistency(sessions: Sequence[SleepSession]) -> SleepConsistency | None:
    """Score how regular bedtimes and wake times are (needs 3+ nights)."""
    if len(sessions) < CONSISTENCY_MIN_SESSIONS:
        return None

    bed = []
    wake = []
    for s in sessions:
        b = s.bedtime.hour * 60 + s.bedtime.minute
        if b < NOON_MIN:
            b += 24 * 60
        bed.append(b)
        wake.append(s.wake_time.hour * 60 + s.wake_time.minute)

    bed_sd = float(np.std(bed, ddof=1))
    wake_sd = float(np.std(wake, ddof=1))
    score = variability_score((bed_sd + wake_sd) / 2.0)
    return SleepConsistency(
        score=score,
        band=ConsistencyBand.from_score(score),
        bedtime_sd=round(bed_sd, 1),
        wake_time_sd=round(wake_sd, 1),
    )
