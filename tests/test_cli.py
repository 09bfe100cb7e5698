"""Tests for the vitalscore command line."""

import json

import pytest
from click.testing import CliRunner
from loguru import logger

from vitalscore.cli import main

from tests.conftest import DAY, dated, declining, metric_entries, sample_document


@pytest.fixture
def runner():
    yield CliRunner()
    # the CLI points loguru at the runner's captured stderr
    logger.remove()


@pytest.fixture
def write_doc(tmp_path):
    def write(doc, name="doc.json"):
        path = tmp_path / name
        path.write_text(json.dumps(doc))
        return str(path)
    return write


class TestScore:
    def test_prints_summary(self, runner, input_file):
        result = runner.invoke(main, ["score", str(input_file)])
        assert result.exit_code == 0, result.output
        summary = json.loads(result.output)
        assert summary["date"] == DAY.isoformat()
        assert summary["recovery"]["kind"] == "recovery"

    def test_output_file(self, runner, input_file, tmp_path):
        out = tmp_path / "summary.json"
        result = runner.invoke(main, ["score", str(input_file), "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "Wrote DailySummary(2026-03-10" in result.output
        assert json.loads(out.read_text())["date"] == DAY.isoformat()

    def test_invalid_json(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{")
        result = runner.invoke(main, ["score", str(bad)])
        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_string_valued_number(self, runner, write_doc):
        path = write_doc({"date": DAY.isoformat(), "user": {"ftp": "250"}})
        result = runner.invoke(main, ["score", path])
        assert result.exit_code == 1
        assert not isinstance(result.exception, TypeError)
        assert "user.ftp: expected a number" in result.output

    def test_sessions_mixing_timezones(self, runner, write_doc):
        doc = sample_document()
        doc["sleep_sessions"][0]["bedtime"] += "+00:00"
        doc["sleep_sessions"][0]["wake_time"] += "+00:00"
        result = runner.invoke(main, ["score", write_doc(doc)])
        assert result.exit_code == 1
        assert "mixes timezone-aware and naive" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, ["score", str(tmp_path / "nope.json")])
        assert result.exit_code == 2

    def test_log_level_option(self, runner, input_file):
        result = runner.invoke(main, ["--log-level", "error", "score", str(input_file)])
        assert result.exit_code == 0, result.output

    def test_log_file(self, runner, input_file, tmp_path):
        log = tmp_path / "logs" / "vitalscore.log"
        result = runner.invoke(
            main, ["--log-level", "DEBUG", "--log-file", str(log), "illness", str(input_file)]
        )
        assert result.exit_code == 0, result.output
        assert "Logging at DEBUG" in log.read_text()


class TestLoad:
    def test_table(self, runner, input_file):
        result = runner.invoke(main, ["load", str(input_file)])
        assert result.exit_code == 0, result.output
        assert "power" in result.output
        assert "heart_rate" in result.output
        assert "ATL" in result.output and "TSB" in result.output

    def test_strength_row(self, runner, write_doc):
        path = write_doc({"date": DAY.isoformat(), "strength": {"duration_min": 60, "rpe": 10}})
        result = runner.invoke(main, ["load", path])
        assert result.exit_code == 0, result.output
        assert "strength" in result.output
        assert "7200.0" in result.output

    def test_no_workouts(self, runner, write_doc):
        result = runner.invoke(main, ["load", write_doc({"date": DAY.isoformat()})])
        assert result.exit_code == 0
        assert "No workouts." in result.output


class TestIllness:
    def test_none(self, runner, input_file):
        result = runner.invoke(main, ["illness", str(input_file)])
        assert result.exit_code == 0, result.output
        assert "No illness indicator." in result.output

    def test_hrv_decline(self, runner, write_doc):
        hrv = dated([60.0] * 30 + declining(60.0, 7))
        path = write_doc({"date": DAY.isoformat(), "metrics": {"hrv": metric_entries(hrv)}})
        result = runner.invoke(main, ["illness", path])
        assert result.exit_code == 0, result.output
        assert "Severity: moderate" in result.output
        assert "hrv_drop" in result.output
        assert "Suppressed HRV detected." in result.output


class TestCircadian:
    def test_summary(self, runner, input_file):
        result = runner.invoke(main, ["circadian", str(input_file)])
        assert result.exit_code == 0, result.output
        assert "Average bedtime:   23:31" in result.output
        assert "Consistency:" in result.output
        assert "Average training:" in result.output

    def test_no_sessions(self, runner, write_doc):
        result = runner.invoke(main, ["circadian", write_doc({"date": DAY.isoformat()})])
        assert result.exit_code == 0
        assert "No sleep sessions." in result.output
