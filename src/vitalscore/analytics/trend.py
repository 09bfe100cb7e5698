"""Multi-day trend consistency.

A single abnormal reading is weak evidence; the same metric moving the
same way night after night is much stronger.  ``trend_consistency``
measures the share of day-over-day changes that go in the expected
direction and is used to raise confidence in illness detection and
stress synthesis, never to flag anything on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from vitalscore.analytics.baseline import percent_deviation


class Direction(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"


@dataclass(frozen=True)
class TrendResult:
    """Whether the latest days sit beyond a threshold, and for how long."""

    is_abnormal: bool
    consecutive_days: int


def trend_consistency(values: Sequence[float], direction: Direction) -> float:
    """Fraction of day-over-day deltas moving in ``direction``.

    Args:
        values: Daily values, oldest first.
        direction: Expected direction of travel.

    Returns:
        matching transitions / total transitions, in [0, 1]. 0.0 when
        there are fewer than 2 values. Flat days never match.
    """
    if len(values) < 2:
        return 0.0
    deltas = np.diff(np.asarray(values, dtype=np.float64))
    if direction == Direction.INCREASING:
        matching = int(np.sum(deltas > 0))
    else:
        matching = int(np.sum(deltas < 0))
    return matching / len(deltas)


def detect_trend(
    values: Sequence[float],
    baseline: float | None,
    threshold_pct: float,
    direction: Direction,
) -> TrendResult:
    """Count the most recent consecutive days beyond a percentage threshold.

    ``threshold_pct`` is a magnitude; ``direction`` says which side of the
    baseline is abnormal (DECREASING: at least threshold_pct below it).
    """
    limit = abs(threshold_pct)
    run = 0
    for value in reversed(values):
        dev = percent_deviation(value, baseline)
        if dev is None:
            break
        beyond = dev <= -limit if direction == Direction.DECREASING else dev >= limit
        if not beyond:
            break
        run += 1
    return TrendResult(is_abnormal=run > 0, consecutive_days=run)
