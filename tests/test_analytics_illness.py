"""Tests for vitalscore.analytics.illness -- 7-day body-stress detection."""

from dataclasses import replace

import pytest

from vitalscore.analytics.illness import (
    DEFAULT_THRESHOLDS,
    IllnessIndicator,
    IllnessWindow,
    Severity,
    Signal,
    SignalType,
    adjust_confidence,
    classify_severity,
    collect_signals,
    detect_illness,
    initial_confidence,
    recommendation,
)
from vitalscore.analytics.models import Baseline, MetricKind

from tests.conftest import DAY, declining


def _types(signals):
    return {s.type for s in signals}


class TestCollectSignals:
    def test_hrv_drop(self):
        window = IllnessWindow(DAY, hrv=[60.0, 50.0], hrv_baseline=60.0)
        signals, total = collect_signals(window)
        assert _types(signals) == {SignalType.HRV_DROP}
        assert signals[0].deviation == pytest.approx(-16.67, abs=0.01)
        assert total == pytest.approx(16.67, abs=0.01)

    def test_hrv_spike_weighted(self):
        window = IllnessWindow(DAY, hrv=[130.0], hrv_baseline=60.0)
        signals, total = collect_signals(window)
        assert _types(signals) == {SignalType.HRV_SPIKE}
        assert total == pytest.approx(abs(signals[0].deviation) * 1.2)

    def test_hrv_in_normal_range(self):
        window = IllnessWindow(DAY, hrv=[95.0], hrv_baseline=60.0)
        assert collect_signals(window) == ([], 0.0)

    def test_threshold_inclusive(self):
        window = IllnessWindow(DAY, rhr=[50.0], rhr_baseline=40.0)
        signals, _ = collect_signals(window, replace(DEFAULT_THRESHOLDS, rhr_rise_pct=25.0))
        assert _types(signals) == {SignalType.ELEVATED_RHR}

    def test_middling_sleep_below_norm(self):
        # only 12.5% below baseline, but in the middling 60-85 band
        window = IllnessWindow(DAY, sleep_score=[70.0], sleep_baseline=80.0)
        signals, _ = collect_signals(window)
        assert _types(signals) == {SignalType.SLEEP_DISRUPTION}

    def test_good_sleep_not_flagged(self):
        window = IllnessWindow(DAY, sleep_score=[88.0], sleep_baseline=92.0)
        assert collect_signals(window)[0] == []

    def test_respiratory_either_direction(self):
        up = IllnessWindow(DAY, respiratory=[15.4], respiratory_baseline=14.0)
        down = IllnessWindow(DAY, respiratory=[12.6], respiratory_baseline=14.0)
        assert _types(collect_signals(up)[0]) == {SignalType.RESPIRATORY_RATE}
        assert _types(collect_signals(down)[0]) == {SignalType.RESPIRATORY_RATE}

    def test_activity_drop(self):
        window = IllnessWindow(DAY, activity=[5000.0], activity_baseline=9000.0)
        signals, total = collect_signals(window)
        assert _types(signals) == {SignalType.ACTIVITY_DROP}
        assert total == pytest.approx(abs(signals[0].deviation) * 0.3)

    def test_invalid_baseline_skips_signal(self):
        window = IllnessWindow(
            DAY,
            hrv=[30.0], hrv_baseline=Baseline(MetricKind.HRV, 0.0, 10, 30),
            rhr=[60.0], rhr_baseline=50.0,
        )
        signals, _ = collect_signals(window)
        assert _types(signals) == {SignalType.ELEVATED_RHR}

    def test_missing_series(self):
        assert collect_signals(IllnessWindow(DAY, hrv_baseline=60.0)) == ([], 0.0)


class TestSeverity:
    @staticmethod
    def _signal(deviation, threshold=-10.0):
        return Signal(SignalType.HRV_DROP, 50.0, 60.0, deviation, threshold)

    def test_low(self):
        assert classify_severity([self._signal(-15.0)]) == Severity.LOW

    def test_moderate_by_excess(self):
        assert classify_severity([self._signal(-25.0)]) == Severity.MODERATE

    def test_high_by_excess(self):
        assert classify_severity([self._signal(-50.0)]) == Severity.HIGH

    def test_signal_count_escalates(self):
        three = [self._signal(-11.0)] * 3
        four = [self._signal(-11.0)] * 4
        assert classify_severity(three) == Severity.MODERATE
        assert classify_severity(four) == Severity.HIGH

    def test_excess(self):
        assert self._signal(-25.0).excess == pytest.approx(2.5)
        assert self._signal(-25.0, threshold=0.0).excess == 0.0


class TestConfidence:
    def test_initial(self):
        assert initial_confidence(1, 25.0) == pytest.approx(0.6 / 5 + 0.4 * 0.5)
        assert initial_confidence(10, 500.0) == pytest.approx(1.0)

    def test_trend_boost(self):
        window = IllnessWindow(DAY, hrv=declining(60.0, 7))
        assert adjust_confidence(0.4, 1, window) == pytest.approx(0.5)

    def test_no_boost_without_trend(self):
        window = IllnessWindow(DAY, hrv=[60.0, 50.0, 60.0, 50.0])
        assert adjust_confidence(0.4, 1, window) == pytest.approx(0.4)

    def test_multi_signal_boost(self):
        window = IllnessWindow(DAY)
        assert adjust_confidence(0.4, 4, window) == pytest.approx(0.5)

    def test_clamped(self):
        window = IllnessWindow(DAY, hrv=declining(60.0, 7), rhr=[50.0, 52.0, 54.0, 56.0])
        assert adjust_confidence(0.98, 5, window) == 1.0


class TestDetectIllness:
    def test_seven_day_hrv_decline(self):
        window = IllnessWindow(DAY, hrv=declining(60.0, 7), hrv_baseline=60.0)
        indicator = detect_illness(window)
        assert indicator is not None
        assert indicator.date == DAY
        assert indicator.severity == Severity.MODERATE
        assert indicator.confidence >= 0.5
        assert indicator.confidence == pytest.approx(0.595, abs=0.01)
        assert indicator.primary_signal.type == SignalType.HRV_DROP
        assert indicator.primary_signal.consecutive_days >= 5
        assert indicator.is_significant

    def test_weak_evidence_not_reported(self):
        window = IllnessWindow(DAY, rhr=[50.0, 50.0, 52.0], rhr_baseline=50.0)
        assert detect_illness(window) is None

    def test_nothing_abnormal(self):
        window = IllnessWindow(
            DAY, hrv=[60.0] * 7, hrv_baseline=60.0, rhr=[50.0] * 7, rhr_baseline=50.0
        )
        assert detect_illness(window) is None

    def test_many_signals(self):
        window = IllnessWindow(
            DAY,
            hrv=declining(60.0, 7, rate=0.08), hrv_baseline=60.0,
            rhr=[50.0, 52.0, 54.0, 56.0, 58.0, 60.0, 62.0], rhr_baseline=50.0,
            respiratory=[17.0], respiratory_baseline=14.0,
            sleep_score=[50.0], sleep_baseline=82.0,
            activity=[3000.0], activity_baseline=9000.0,
        )
        indicator = detect_illness(window)
        assert indicator.severity == Severity.HIGH
        assert len(indicator.signals) == 5
        assert 0.0 <= indicator.confidence <= 1.0

    def test_threshold_override(self):
        window = IllnessWindow(
            DAY, rhr=[50.0, 52.0, 54.0, 56.0, 58.0, 60.0, 62.0], rhr_baseline=58.0,
        )
        signals, _ = collect_signals(window)
        assert _types(signals) == {SignalType.ELEVATED_RHR}
        strict = replace(DEFAULT_THRESHOLDS, rhr_rise_pct=10.0)
        assert collect_signals(window, strict)[0] == []

    def test_min_signals(self):
        window = IllnessWindow(DAY, hrv=declining(60.0, 7), hrv_baseline=60.0)
        assert detect_illness(window, replace(DEFAULT_THRESHOLDS, min_signals=2)) is None

    def test_to_dict(self):
        window = IllnessWindow(DAY, hrv=declining(60.0, 7), hrv_baseline=60.0)
        d = detect_illness(window).to_dict()
        assert d["date"] == DAY.isoformat()
        assert d["severity"] == "moderate"
        assert d["signals"][0]["type"] == "hrv_drop"
        assert "Suppressed HRV detected." in d["recommendation"]


class TestRecommendation:
    def test_primary_signal_context(self):
        signals = [
            Signal(SignalType.ELEVATED_RHR, 55.0, 50.0, 10.0, 3.0),
            Signal(SignalType.HRV_DROP, 40.0, 60.0, -33.3, -10.0),
        ]
        text = recommendation(Severity.HIGH, signals)
        assert text.startswith("Suppressed HRV detected.")
        assert "Rest is strongly recommended." in text

    def test_no_signals(self):
        assert recommendation(Severity.LOW, []).startswith("Monitor")

    def test_indicator_repr(self):
        indicator = IllnessIndicator(DAY, Severity.LOW, 0.42, (), "x")
        assert repr(indicator) == "IllnessIndicator(low, confidence=0.42, signals=[])"
        assert indicator.primary_signal is None
        assert not indicator.is_significant
