"""Load a day's inputs from a JSON document.

Document layout (every key except ``date`` is optional)::

    {
      "date": "2026-03-10",
      "user": {"ftp": 250, "max_hr": 190, "resting_hr": 50,
               "body_mass_kg": 72, "sex": "male"},
      "metrics": {
        "hrv": [{"date": "2026-03-09", "value": 62.0},
                {"timestamp": "2026-03-10T06:10:00", "value": 58.5}],
        "rhr": [...], "respiratory_rate": [...], "sleep_duration": [...],
        "sleep_score": [...], "steps": [...], "active_energy": [...]
      },
      "workouts": [{"duration_s": 3600, "normalized_power": 240,
                    "average_hr": 150, "tss": null, "activity_type": "ride",
                    "timestamp": "2026-03-10T07:00:00", "source": "strava"}],
      "sleep": {"duration_h": 7.2, "need_h": 8, "time_in_bed_h": 7.9,
                "deep_h": 1.4, "rem_h": 1.6, "wake_events": 3,
                "bedtime_hour": 23.2, "wake_hour": 6.9},
      "overnight_hrv": 60.1,
      "sleep_sessions": [{"bedtime": "2026-03-09T23:10:00",
                          "wake_time": "2026-03-10T06:55:00"}],
      "strength": {"duration_min": 45, "rpe": 7, "muscle_groups": ["legs"]},
      "training_load": {"atl": 55.0, "ctl": 62.0}
    }

Metric entries may carry a ``date`` or a full ``timestamp``; several
entries on one day are averaged.
"""

from __future__ import annotations

import json
from dataclasses import fields
from datetime import date, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from vitalscore.analytics.circadian import SleepSession
from vitalscore.analytics.load import Sex, TrainingLoadState, UserPhysiology
from vitalscore.analytics.models import MetricKind, MetricSample, WorkoutRecord, daily_values
from vitalscore.analytics.pipeline import DailyInputs
from vitalscore.analytics.sleep import SleepInputs
from vitalscore.analytics.strain import MuscleGroup, StrengthSession


def _date(value: Any, where: str) -> date:
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise ValueError(f"{where}: invalid date {value!r}") from exc


def _datetime(value: Any, where: str) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"{where}: invalid timestamp {value!r}") from exc


def _section(doc: dict, key: str, kind: type) -> Any:
    value = doc.get(key)
    if value is not None and not isinstance(value, kind):
        raise ValueError(f"'{key}' must be a {kind.__name__}")
    return value


# Field annotations (as strings) whose values must be JSON numbers
NUMERIC_FIELDS = {"float": float, "float | None": float, "int | None": int}


def _number(value: Any, where: str, cast: type = float) -> Any:
    if value is None:
        return None
    # bool is an int subclass; JSON true/false is never a measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{where}: expected a number, got {value!r}")
    if cast is int and value != int(value):
        raise ValueError(f"{where}: expected a whole number, got {value!r}")
    return cast(value)


def _kwargs(cls: type, data: dict, where: str) -> dict[str, Any]:
    """Keep the keys ``cls`` accepts, with numeric fields checked.

    Raises:
        ValueError: Unknown keys, or a non-number in a numeric field.
    """
    types = {f.name: f.type for f in fields(cls)}
    unknown = set(data) - set(types)
    if unknown:
        raise ValueError(f"{where}: unknown field(s) {', '.join(sorted(unknown))}")
    kwargs = dict(data)
    for name, value in data.items():
        cast = NUMERIC_FIELDS.get(types[name])
        if cast is not None:
            kwargs[name] = _number(value, f"{where}.{name}", cast)
    return kwargs


def parse_metrics(raw: dict) -> dict[MetricKind, dict[date, float]]:
    metrics: dict[MetricKind, dict[date, float]] = {}
    for name, entries in raw.items():
        try:
            kind = MetricKind(name)
        except ValueError as exc:
            raise ValueError(f"Unknown metric kind {name!r}") from exc
        if not isinstance(entries, list):
            raise ValueError(f"metrics.{name} must be a list")

        samples = []
        for i, entry in enumerate(entries):
            where = f"metrics.{name}[{i}]"
            if not isinstance(entry, dict) or "value" not in entry:
                raise ValueError(f"{where}: expected an object with a 'value'")
            if entry["value"] is None:
                continue
            if "timestamp" in entry:
                ts = _datetime(entry["timestamp"], where)
            elif "date" in entry:
                ts = datetime.combine(_date(entry["date"], where), datetime.min.time())
            else:
                raise ValueError(f"{where}: needs a 'date' or 'timestamp'")
            samples.append(
                MetricSample(
                    kind=kind,
                    value=_number(entry["value"], where),
                    timestamp=ts,
                    unit=entry.get("unit", ""),
                    source=entry.get("source", ""),
                )
            )
        metrics[kind] = daily_values(samples)
    return metrics


def parse_workout(raw: Any, where: str) -> WorkoutRecord:
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: expected an object")
    data = _kwargs(WorkoutRecord, raw, where)
    if data.get("timestamp") is not None:
        data["timestamp"] = _datetime(data["timestamp"], where)
    return WorkoutRecord(**data)


def parse_session(raw: Any, where: str) -> SleepSession:
    if not isinstance(raw, dict):
        raise ValueError(f"{where}: expected an object")
    session = SleepSession(
        bedtime=_datetime(raw.get("bedtime"), where),
        wake_time=_datetime(raw.get("wake_time"), where),
    )
    if (session.bedtime.tzinfo is None) != (session.wake_time.tzinfo is None):
        raise ValueError(f"{where}: mixes timezone-aware and naive timestamps")
    if session.wake_time <= session.bedtime:
        raise ValueError(f"{where}: wake_time must be after bedtime")
    return session


def parse_strength(raw: dict) -> StrengthSession:
    data = _kwargs(StrengthSession, raw, "strength")
    if data.get("duration_min") is None:
        raise ValueError("strength: 'duration_min' is required")
    groups = data.get("muscle_groups", [])
    if not isinstance(groups, list):
        raise ValueError("strength: 'muscle_groups' must be a list")
    try:
        data["muscle_groups"] = tuple(MuscleGroup(g) for g in groups)
    except ValueError as exc:
        raise ValueError(f"strength: {exc}") from exc
    return StrengthSession(**data)


def parse_document(doc: dict) -> DailyInputs:
    """Build DailyInputs from an already-decoded document.

    Raises:
        ValueError: The document is malformed.
    """
    if not isinstance(doc, dict):
        raise ValueError("Input document must be a JSON object")
    if "date" not in doc:
        raise ValueError("Input document needs a 'date'")
    day = _date(doc["date"], "date")

    user_raw = _section(doc, "user", dict) or {}
    user_data = _kwargs(UserPhysiology, user_raw, "user")
    if "sex" in user_data:
        try:
            user_data["sex"] = Sex(user_data["sex"])
        except ValueError as exc:
            raise ValueError(f"user: {exc}") from exc

    workouts = [
        parse_workout(w, f"workouts[{i}]")
        for i, w in enumerate(_section(doc, "workouts", list) or [])
    ]
    sessions = [
        parse_session(s, f"sleep_sessions[{i}]")
        for i, s in enumerate(_section(doc, "sleep_sessions", list) or [])
    ]
    if len({s.wake_time.tzinfo is None for s in sessions}) > 1:
        raise ValueError("sleep_sessions: mixes timezone-aware and naive timestamps")
    sleep_raw = _section(doc, "sleep", dict)
    strength_raw = _section(doc, "strength", dict)
    load_raw = _section(doc, "training_load", dict)

    inputs = DailyInputs(
        day=day,
        user=UserPhysiology(**user_data),
        metrics=parse_metrics(_section(doc, "metrics", dict) or {}),
        workouts=workouts,
        sleep=SleepInputs(**_kwargs(SleepInputs, sleep_raw, "sleep")) if sleep_raw else None,
        overnight_hrv=_number(doc.get("overnight_hrv"), "overnight_hrv"),
        sleep_sessions=sessions,
        strength=parse_strength(strength_raw) if strength_raw else None,
        training_load=(
            TrainingLoadState(**_kwargs(TrainingLoadState, load_raw, "training_load"))
            if load_raw else None
        ),
    )
    logger.debug(
        f"Loaded inputs for {day}: {len(inputs.metrics)} metric(s), "
        f"{len(workouts)} workout(s), {len(sessions)} sleep session(s)"
    )
    return inputs


def load_inputs(path: str | Path) -> DailyInputs:
    """Read a JSON input document from ``path``.

    Raises:
        ValueError: The file isn't valid JSON or the document is malformed.
    """
    text = Path(path).read_text()
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path}: not valid JSON ({exc})") from exc
    return parse_document(doc)
