"""Tests for vitalscore.inputs -- JSON input documents."""

import json
from datetime import date

import pytest

from vitalscore.analytics.load import Sex
from vitalscore.analytics.models import MetricKind
from vitalscore.analytics.strain import MuscleGroup
from vitalscore.inputs import load_inputs, parse_document, parse_metrics, parse_session

from tests.conftest import DAY, sample_document


class TestParseDocument:
    def test_sample(self):
        inputs = parse_document(sample_document())
        assert inputs.day == DAY
        assert inputs.user.sex == Sex.MALE
        assert inputs.user.ftp == 250
        assert len(inputs.workouts) == 8
        assert inputs.workouts[-1].activity_type == "run"
        assert inputs.workouts[0].timestamp.date() == date(2026, 3, 9)
        assert inputs.sleep.deep_h == 1.5
        assert len(inputs.sleep_sessions) == 4
        assert inputs.today(MetricKind.HRV) == 61.0
        assert inputs.strength is None
        assert inputs.training_load is None

    def test_minimal(self):
        inputs = parse_document({"date": "2026-03-10"})
        assert inputs.is_empty

    def test_whole_number_floats_accepted(self):
        inputs = parse_document({"date": "2026-03-10", "sleep": {"wake_events": 3.0, "duration_h": 7}})
        assert inputs.sleep.wake_events == 3
        assert isinstance(inputs.sleep.duration_h, float)

    def test_sessions_mixing_timezones(self):
        doc = sample_document()
        first = doc["sleep_sessions"][0]
        first["bedtime"] += "+00:00"
        first["wake_time"] += "+00:00"
        with pytest.raises(ValueError, match="sleep_sessions: mixes timezone"):
            parse_document(doc)

    def test_sessions_all_aware(self):
        doc = sample_document()
        for s in doc["sleep_sessions"]:
            s["bedtime"] += "+00:00"
            s["wake_time"] += "+00:00"
        assert len(parse_document(doc).sleep_sessions) == 4

    def test_strength_and_load(self):
        doc = {
            "date": "2026-03-10",
            "strength": {"duration_min": 45, "rpe": 7, "muscle_groups": ["legs", "core"]},
            "training_load": {"atl": 55.0, "ctl": 62.0},
        }
        inputs = parse_document(doc)
        assert inputs.strength.muscle_groups == (MuscleGroup.LEGS, MuscleGroup.CORE)
        assert inputs.training_load.tsb == pytest.approx(7.0)

    @pytest.mark.parametrize(
        "doc, message",
        [
            ([], "JSON object"),
            ({}, "needs a 'date'"),
            ({"date": "March"}, "invalid date"),
            ({"date": "2026-03-10", "user": {"ftp": 250, "weight": 70}}, "unknown field"),
            ({"date": "2026-03-10", "user": {"sex": "x"}}, "user:"),
            ({"date": "2026-03-10", "workouts": {}}, "'workouts' must be a list"),
            ({"date": "2026-03-10", "workouts": [42]}, "workouts\\[0\\]"),
            ({"date": "2026-03-10", "strength": {"rpe": 7}}, "duration_min"),
            ({"date": "2026-03-10", "strength": {"duration_min": 30, "muscle_groups": ["wings"]}},
             "strength:"),
            ({"date": "2026-03-10", "sleep": {"duration_h": 7, "naps": 2}}, "sleep: unknown"),
            ({"date": "2026-03-10", "user": {"ftp": "250"}}, "user.ftp: expected a number"),
            ({"date": "2026-03-10", "workouts": [{"duration_s": "1h"}]}, "workouts\\[0\\].duration_s"),
            ({"date": "2026-03-10", "sleep": {"wake_events": 2.5}}, "whole number"),
            ({"date": "2026-03-10", "sleep": {"deep_h": True}}, "sleep.deep_h"),
            ({"date": "2026-03-10", "training_load": {"atl": [55]}}, "training_load.atl"),
            ({"date": "2026-03-10", "overnight_hrv": "60"}, "overnight_hrv"),
            ({"date": "2026-03-10", "strength": {"duration_min": None}}, "duration_min"),
            ({"date": "2026-03-10", "strength": {"duration_min": 30, "muscle_groups": "legs"}},
             "must be a list"),
        ],
    )
    def test_malformed(self, doc, message):
        with pytest.raises(ValueError, match=message):
            parse_document(doc)


class TestParseMetrics:
    def test_timestamps_averaged_per_day(self):
        raw = {
            "hrv": [
                {"timestamp": "2026-03-10T06:00:00", "value": 50},
                {"timestamp": "2026-03-10T22:00:00", "value": 70},
                {"date": "2026-03-09", "value": 55},
                {"date": "2026-03-08", "value": None},
            ]
        }
        metrics = parse_metrics(raw)
        assert metrics[MetricKind.HRV] == {date(2026, 3, 9): 55.0, date(2026, 3, 10): 60.0}

    @pytest.mark.parametrize(
        "raw, message",
        [
            ({"glucose": []}, "Unknown metric kind"),
            ({"hrv": {}}, "must be a list"),
            ({"hrv": [{"date": "2026-03-10"}]}, "'value'"),
            ({"hrv": [{"value": 50}]}, "'date' or 'timestamp'"),
            ({"hrv": [{"timestamp": "soon", "value": 50}]}, "invalid timestamp"),
            ({"hrv": [{"date": "2026-03-10", "value": "fast"}]}, "expected a number"),
            ({"hrv": [{"date": "2026-03-10", "value": [50]}]}, "expected a number"),
        ],
    )
    def test_malformed(self, raw, message):
        with pytest.raises(ValueError, match=message):
            parse_metrics(raw)


class TestParseSession:
    def test_valid(self):
        s = parse_session({"bedtime": "2026-03-09T23:00:00", "wake_time": "2026-03-10T07:00:00"}, "s")
        assert s.wake_time.hour == 7

    def test_wake_before_bed(self):
        with pytest.raises(ValueError, match="after bedtime"):
            parse_session({"bedtime": "2026-03-10T07:00:00", "wake_time": "2026-03-09T23:00:00"}, "s")

    def test_mixed_timezones(self):
        with pytest.raises(ValueError, match="timezone"):
            parse_session(
                {"bedtime": "2026-03-09T23:00:00+00:00", "wake_time": "2026-03-10T07:00:00"}, "s"
            )

    def test_missing_field(self):
        with pytest.raises(ValueError, match="invalid timestamp"):
            parse_session({"bedtime": "2026-03-09T23:00:00"}, "s")


class TestLoadInputs:
    def test_file(self, input_file):
        assert load_inputs(input_file).day == DAY

    def test_not_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_inputs(path)

    def test_json_but_wrong_shape(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps([1, 2, 3]))
        with pytest.raises(ValueError, match="JSON object"):
            load_inputs(path)
