"""Shared fixtures and helpers for the vitalscore test suite."""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from vitalscore.analytics.circadian import SleepSession
from vitalscore.analytics.models import MetricKind, WorkoutRecord


DAY = date(2026, 3, 10)  # a Tuesday
FIXED_NOW = datetime(2026, 3, 10, 8, 0, 0)


# ---------------------------------------------------------------------------
# Series builders
# ---------------------------------------------------------------------------


def dated(values: list[float | None], end: date = DAY) -> dict[date, float]:
    """Map a list of daily values (oldest first) onto dates ending at ``end``."""
    start = end - timedelta(days=len(values) - 1)
    return {
        start + timedelta(days=i): float(v)
        for i, v in enumerate(values)
        if v is not None
    }


def declining(start: float, days: int, rate: float = 0.10) -> list[float]:
    """Compounding daily decline: start, start*(1-rate), ..."""
    return [start * (1.0 - rate) ** k for k in range(days)]


def make_session(night: date, bed: str, wake: str) -> SleepSession:
    """Sleep session starting the evening of ``night``.

    Bedtimes before noon fall after midnight, i.e. on the next calendar day.
    """
    bh, bm = (int(x) for x in bed.split(":"))
    wh, wm = (int(x) for x in wake.split(":"))
    bed_day = night + timedelta(days=1) if bh < 12 else night
    return SleepSession(
        bedtime=datetime(bed_day.year, bed_day.month, bed_day.day, bh, bm),
        wake_time=datetime.combine(night + timedelta(days=1), datetime.min.time()).replace(
            hour=wh, minute=wm
        ),
    )


def make_workout(minutes: float | None = 60.0, **kwargs) -> WorkoutRecord:
    duration_s = minutes * 60.0 if minutes is not None else None
    return WorkoutRecord(duration_s=duration_s, **kwargs)


# ---------------------------------------------------------------------------
# Input documents
# ---------------------------------------------------------------------------


def metric_entries(values: dict[date, float]) -> list[dict]:
    return [{"date": d.isoformat(), "value": v} for d, v in sorted(values.items())]


def sample_document() -> dict:
    """Thirty days of steady history plus a normal morning."""
    history = 30
    hrv = dated([60.0 + (i % 3) for i in range(history)] + [61.0])
    rhr = dated([52.0] * history + [52.0])
    resp = dated([14.0] * history + [14.1])
    sleep_h = dated([7.5] * history + [7.4])
    sleep_score = dated([80.0] * history)
    sleep_score.pop(DAY, None)
    steps = dated([9000.0] * history + [8500.0])

    return {
        "date": DAY.isoformat(),
        "user": {"ftp": 250, "max_hr": 190, "resting_hr": 50, "body_mass_kg": 72, "sex": "male"},
        "metrics": {
            MetricKind.HRV.value: metric_entries(hrv),
            MetricKind.RHR.value: metric_entries(rhr),
            MetricKind.RESPIRATORY_RATE.value: metric_entries(resp),
            MetricKind.SLEEP_DURATION.value: metric_entries(sleep_h),
            MetricKind.SLEEP_SCORE.value: metric_entries(sleep_score),
            MetricKind.STEPS.value: metric_entries(steps),
        },
        "workouts": [
            {
                "duration_s": 3600,
                "normalized_power": 200,
                "activity_type": "ride",
                "timestamp": (DAY - timedelta(days=d)).isoformat() + "T07:00:00",
                "source": "strava",
            }
            for d in range(1, 15, 2)
        ] + [
            {"duration_s": 2700, "average_hr": 150, "activity_type": "run",
             "timestamp": DAY.isoformat() + "T17:30:00"},
        ],
        "sleep": {
            "duration_h": 7.4, "need_h": 8.0, "time_in_bed_h": 8.0,
            "deep_h": 1.5, "rem_h": 1.7, "wake_events": 2,
            "bedtime_hour": 23.0, "wake_hour": 6.9,
            "baseline_bedtime_hour": 23.2, "baseline_wake_hour": 7.0,
        },
        "sleep_sessions": [
            {"bedtime": "2026-03-06T23:05:00", "wake_time": "2026-03-07T06:50:00"},
            {"bedtime": "2026-03-07T23:40:00", "wake_time": "2026-03-08T07:30:00"},
            {"bedtime": "2026-03-09T00:20:00", "wake_time": "2026-03-09T07:10:00"},
            {"bedtime": "2026-03-09T23:00:00", "wake_time": "2026-03-10T06:55:00"},
        ],
    }


@pytest.fixture
def input_file(tmp_path: Path) -> Path:
    path = tmp_path / "day.json"
    path.write_text(json.dumps(sample_document()))
    return path
