"""Tests for vitalscore.analytics.stress -- synthesized stress index."""

from datetime import date, timedelta

import pytest

from vitalscore.analytics.stress import (
    StressLevel,
    StressPoint,
    StressTrend,
    assess_stress,
    chronic_stress,
    daily_stress,
    stress_contributors,
    stress_threshold,
    synthesize_stress,
)

from tests.conftest import DAY


class TestDailyStress:
    def test_single_factor_unreliable(self):
        assert daily_stress(recovery=80.0) is None
        assert daily_stress() is None

    def test_two_factors(self):
        # 50 + (100-80)*0.3 + (100-80)*0.15
        assert daily_stress(recovery=80.0, sleep=80.0) == pytest.approx(59.0)

    def test_clamped(self):
        assert daily_stress(recovery=0.0, rhr=200.0) == 100.0
        assert daily_stress(recovery=100.0, sleep=100.0, hrv=200.0, hrv_baseline=50.0) == 0.0

    def test_rhr_below_reference_adds_nothing(self):
        assert stress_contributors(rhr=48.0) == {"rhr": 0.0}

    def test_high_hrv_lowers_stress(self):
        assert daily_stress(hrv=72.0, hrv_baseline=60.0, sleep=100.0) == pytest.approx(45.0)

    def test_hrv_needs_baseline(self):
        assert stress_contributors(hrv=50.0) == {}
        assert stress_contributors(hrv=50.0, hrv_baseline=0.0) == {}

    def test_load(self):
        assert stress_contributors(load=80.0) == {"load": pytest.approx(8.0)}


class TestSynthesizeStress:
    def test_per_date_baseline(self):
        d1, d2, d3 = DAY - timedelta(days=2), DAY - timedelta(days=1), DAY
        points = synthesize_stress(
            hrv={d1: 50.0, d2: 50.0},
            hrv_baseline={d1: 50.0, d2: 100.0},
            sleep={d1: 80.0, d2: 80.0, d3: 80.0},
        )
        assert [p.day for p in points] == [d1, d2]
        assert points[0].value == pytest.approx(53.0)
        assert points[1].value == pytest.approx(65.5)
        assert points[1].factors == 2

    def test_single_baseline(self):
        points = synthesize_stress(
            hrv={DAY: 54.0}, hrv_baseline=60.0, rhr={DAY: 65.0},
        )
        # 50 + 10*0.25 + 5*2*0.2
        assert len(points) == 1
        assert points[0].value == pytest.approx(54.5)
        assert points[0].factors == 2

    def test_sorted_and_sparse(self):
        days = [DAY - timedelta(days=k) for k in (0, 5, 3)]
        points = synthesize_stress(
            recovery={d: 70.0 for d in days}, sleep={d: 70.0 for d in days}
        )
        assert [p.day for p in points] == sorted(days)

    def test_empty(self):
        assert synthesize_stress() == []

    def test_repr(self):
        assert repr(StressPoint(date(2026, 3, 1), 42.3, 3)) == (
            "StressPoint(2026-03-01: 42.3, factors=3)"
        )


class TestThreshold:
    def test_default_with_short_history(self):
        assert stress_threshold([80.0] * 6) == 50.0

    def test_mean_plus_sd(self):
        assert stress_threshold([50.0] * 10) == pytest.approx(50.0)

    def test_clamped(self):
        assert stress_threshold([30.0] * 10) == 40.0
        assert stress_threshold([50.0, 70.0] * 5) == 70.0

    def test_fitter_athletes_tolerate_more(self):
        assert stress_threshold([50.0] * 10, ctl=130.0) == pytest.approx(60.0)
        assert stress_threshold([50.0] * 10, ctl=40.0) == pytest.approx(45.0)


class TestStressLevel:
    @pytest.mark.parametrize(
        "score, level",
        [(0, StressLevel.LOW), (30, StressLevel.LOW), (31, StressLevel.MODERATE),
         (60, StressLevel.MODERATE), (61, StressLevel.HIGH)],
    )
    def test_boundaries(self, score, level):
        assert StressLevel.from_score(score) == level


class TestAssessStress:
    def test_acute_spike(self):
        result = assess_stress([40.0] * 7, recovery=30.0, sleep=50.0)
        assert result.acute == pytest.approx(78.5)
        assert result.chronic == pytest.approx((40.0 * 7 + 78.5) / 8)
        assert result.trend == StressTrend.INCREASING
        assert result.level == StressLevel.HIGH
        assert result.threshold == 40.0
        assert result.is_elevated
        assert set(result.contributors) == {"recovery", "sleep"}

    def test_stable(self):
        result = assess_stress([50.0] * 3, recovery=100.0, sleep=100.0)
        assert result.trend == StressTrend.STABLE
        assert result.threshold == 50.0
        assert not result.is_elevated

    def test_decreasing(self):
        result = assess_stress([80.0] * 7, recovery=100.0, sleep=100.0)
        assert result.trend == StressTrend.DECREASING
        assert result.level == StressLevel.MODERATE

    def test_no_history(self):
        result = assess_stress([], recovery=80.0, sleep=80.0)
        assert result.chronic == pytest.approx(result.acute)

    def test_insufficient_factors(self):
        assert assess_stress([50.0] * 10, recovery=60.0) is None

    def test_to_dict(self):
        d = assess_stress([40.0] * 7, recovery=30.0, sleep=50.0).to_dict()
        assert d["level"] == "high"
        assert d["trend"] == "increasing"
        assert d["elevated"] is True
        assert d["contributors"] == {"recovery": 21.0, "sleep": 7.5}


class TestChronicStress:
    def test_includes_today(self):
        assert chronic_stress([40.0, 60.0], 80.0) == pytest.approx(60.0)
