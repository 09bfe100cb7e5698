"""Daily summary aggregator.

Collects every engine's output for one day into a single DailySummary
that is JSON-serializable.  Engines that had nothing to work with leave
their slot as None.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any

from vitalscore.analytics.circadian import CircadianRhythmData
from vitalscore.analytics.illness import IllnessIndicator
from vitalscore.analytics.load import TrainingLoadState
from vitalscore.analytics.models import ScoreResult
from vitalscore.analytics.readiness import ReadinessResult
from vitalscore.analytics.stress import StressAssessment, StressPoint


@dataclass
class DailySummary:
    """A single day's derived health signals."""

    date: str  # ISO date string, e.g. "2026-02-13"

    sleep: dict[str, Any] | None = None
    recovery: dict[str, Any] | None = None
    strain: dict[str, Any] | None = None
    training_load: dict[str, Any] | None = None
    illness: dict[str, Any] | None = None
    stress: dict[str, Any] | None = None
    stress_series: list[dict[str, Any]] = field(default_factory=list)
    circadian: dict[str, Any] | None = None
    readiness: dict[str, Any] | None = None

    @property
    def is_empty(self) -> bool:
        """True when no engine produced anything."""
        return all(
            getattr(self, name) is None
            for name in (
                "sleep", "recovery", "strain", "training_load",
                "illness", "stress", "circadian", "readiness",
            )
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict (JSON-friendly)."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        def score(slot: dict | None) -> str:
            return str(slot["score"]) if slot else "-"

        return (
            f"DailySummary({self.date}: sleep={score(self.sleep)}, "
            f"recovery={score(self.recovery)}, strain={score(self.strain)}, "
            f"illness={'yes' if self.illness else 'no'})"
        )


def build_daily_summary(
    day: date | str,
    sleep: ScoreResult | None = None,
    recovery: ScoreResult | None = None,
    strain: ScoreResult | None = None,
    training_load: TrainingLoadState | None = None,
    daily_load: float | None = None,
    illness: IllnessIndicator | None = None,
    stress: StressAssessment | None = None,
    stress_series: list[StressPoint] | None = None,
    circadian: CircadianRhythmData | None = None,
    readiness: ReadinessResult | None = None,
) -> DailySummary:
    """Build a daily summary from individual engine results.

    Args:
        day: The date for this summary.
        sleep: Sleep score.
        recovery: Recovery score.
        strain: Strain score.
        training_load: ATL/CTL state after today.
        daily_load: Today's summed training load.
        illness: Surfaced illness indicator, if any.
        stress: Today's stress assessment.
        stress_series: Daily stress values leading up to today.
        circadian: Sleep-schedule summary.
        readiness: Training recommendation.

    Returns:
        A populated DailySummary.
    """
    date_str = day if isinstance(day, str) else day.isoformat()
    summary = DailySummary(date=date_str)

    if sleep is not None:
        summary.sleep = sleep.to_dict()
    if recovery is not None:
        summary.recovery = recovery.to_dict()
    if strain is not None:
        summary.strain = strain.to_dict()

    if training_load is not None:
        summary.training_load = training_load.to_dict()
        if daily_load is not None:
            summary.training_load["daily_load"] = round(daily_load, 1)

    if illness is not None:
        summary.illness = illness.to_dict()
    if stress is not None:
        summary.stress = stress.to_dict()
    if stress_series:
        summary.stress_series = [
            {"date": p.day.isoformat(), "value": round(p.value, 1), "factors": p.factors}
            for p in stress_series
        ]
    if circadian is not None:
        summary.circadian = circadian.to_dict()
    if readiness is not None:
        summary.readiness = readiness.to_dict()

    return summary
