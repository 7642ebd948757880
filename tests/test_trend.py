"""
Test Suite for the Trend Detector

Tests direction classification, regression outputs, breakpoint detection
and input handling.
"""

import random

import pytest
from search_insights.analysis import (
    BreakpointDirection,
    TrendAnalysis,
    TrendDirection,
    TrendPoint,
    detect_trend,
    trend_to_signal,
)


class TestInsufficientData:
    """Series shorter than two points."""

    @pytest.mark.parametrize("points", [
        [],
        [{"date": "2024-01-01", "value": 42}],
    ])
    def test_neutral_result(self, points):
        result = detect_trend(points)

        assert result.direction == TrendDirection.STABLE
        assert result.slope == 0
        assert result.percent_change == 0
        assert result.volatility == 0
        assert result.confidence == 0
        assert result.breakpoints == []
        assert "Insufficient data" in result.summary

    def test_invalid_dates_do_not_count(self):
        result = detect_trend([
            {"date": "2024-01-01", "value": 10},
            {"date": "not-a-date", "value": 20},
        ])

        assert result.confidence == 0
        assert "Insufficient data" in result.summary


class TestDirection:
    """Direction, slope and fit quality."""

    def test_rising_series(self, rising_points):
        result = detect_trend(rising_points)

        assert isinstance(result, TrendAnalysis)
        assert result.direction == TrendDirection.RISING
        assert result.slope == pytest.approx(10.0)
        assert result.percent_change == pytest.approx(290.0)
        assert result.confidence == pytest.approx(1.0)

    def test_falling_series(self, falling_points):
        result = detect_trend(falling_points)

        assert result.direction == TrendDirection.FALLING
        assert result.slope == pytest.approx(-10.0)
        assert result.percent_change == pytest.approx(-72.5)

    def test_flat_series(self, flat_points):
        result = detect_trend(flat_points)

        assert result.direction == TrendDirection.STABLE
        assert result.slope == 0
        assert result.volatility == 0
        assert result.confidence == 0
        assert result.breakpoints == []

    def test_small_slope_is_stable(self, make_series):
        """0.1% of the mean per day stays under the direction threshold."""
        result = detect_trend(make_series([1000 + i for i in range(20)]))

        assert result.direction == TrendDirection.STABLE

    def test_confidence_bounds(self, make_series):
        noisy = make_series([100, 140, 90, 150, 80, 160, 95, 130, 85, 145])
        result = detect_trend(noisy)

        assert 0 <= result.confidence <= 1
        assert result.volatility >= 0

    def test_zero_first_value(self, make_series):
        result = detect_trend(make_series([0, 10, 20, 30]))

        assert result.percent_change == 0
        assert result.direction == TrendDirection.RISING

    def test_uses_calendar_days(self, make_series):
        """Gaps between dates stretch the x axis."""
        points = [
            {"date": "2024-01-01", "value": 100},
            {"date": "2024-01-11", "value": 200},
        ]
        result = detect_trend(points)

        assert result.slope == pytest.approx(10.0)


class TestOrderInvariance:
    """Results do not depend on input order."""

    def test_shuffled_input(self, rising_points):
        shuffled = list(rising_points)
        random.Random(7).shuffle(shuffled)

        assert detect_trend(shuffled).to_dict() == detect_trend(rising_points).to_dict()

    def test_reversed_input(self, falling_points):
        reversed_points = list(reversed(falling_points))

        assert detect_trend(reversed_points).to_dict() == detect_trend(falling_points).to_dict()

    def test_duplicate_dates(self):
        a = [
            {"date": "2024-01-01", "value": 5},
            {"date": "2024-01-01", "value": 9},
            {"date": "2024-01-02", "value": 7},
        ]
        b = [a[1], a[2], a[0]]

        assert detect_trend(a).to_dict() == detect_trend(b).to_dict()


class TestBreakpoints:
    """Sudden change detection."""

    def test_single_jump(self, make_series):
        points = make_series([100, 101, 102, 103, 104, 105, 106, 212])
        result = detect_trend(points)

        assert len(result.breakpoints) == 1
        bp = result.breakpoints[0]
        assert bp.date == points[-1]["date"]
        assert bp.direction == BreakpointDirection.UP
        assert bp.change_percent == pytest.approx(100.0)

    def test_single_drop(self, make_series):
        points = make_series([200, 201, 200, 201, 200, 201, 100, 101])
        result = detect_trend(points)

        assert len(result.breakpoints) == 1
        assert result.breakpoints[0].direction == BreakpointDirection.DOWN
        assert result.breakpoints[0].date == points[6]["date"]

    def test_steady_series_has_none(self, rising_points):
        assert detect_trend(rising_points).breakpoints == []

    def test_summary_counts_breakpoints(self, make_series):
        result = detect_trend(make_series([100, 101, 102, 103, 104, 105, 106, 212]))

        assert "1 sudden change detected." in result.summary


class TestInputHandling:
    """Accepted point shapes and date formats."""

    def test_trend_point_objects(self):
        points = [TrendPoint("2024-03-01", 10), TrendPoint("2024-03-02", 20), TrendPoint("2024-03-03", 30)]

        assert detect_trend(points).direction == TrendDirection.RISING

    def test_datetime_strings(self):
        points = [
            {"date": "2024-03-01T00:00:00Z", "value": 30},
            {"date": "2024-03-02T00:00:00Z", "value": 20},
            {"date": "2024-03-03T00:00:00+00:00", "value": 10},
        ]

        assert detect_trend(points).direction == TrendDirection.FALLING

    def test_dates_without_zero_padding(self):
        unpadded = detect_trend([{"date": "2024-1-5", "value": 1}, {"date": "2024-1-6", "value": 2}])
        padded = detect_trend([{"date": "2024-01-05", "value": 1}, {"date": "2024-01-06", "value": 2}])

        assert "Insufficient data" not in unpadded.summary
        assert unpadded.direction == TrendDirection.RISING
        assert unpadded.slope == pytest.approx(padded.slope)
        assert unpadded.summary == padded.summary

    def test_invalid_points_skipped(self, rising_points):
        noisy = rising_points + [
            {"date": "garbage", "value": 1},
            {"date": "2024-06-01", "value": "n/a"},
            {"date": None, "value": 3},
        ]

        assert detect_trend(noisy).to_dict() == detect_trend(rising_points).to_dict()


class TestSummary:
    """Deterministic summary text."""

    def test_rising_summary(self, rising_points):
        summary = detect_trend(rising_points).summary

        assert summary.startswith("Trend is upward (+290.0% over the period).")
        assert "Strong trend signal." in summary

    def test_falling_summary(self, falling_points):
        summary = detect_trend(falling_points).summary

        assert summary.startswith("Trend is downward (-72.5% over the period).")

    def test_stable_summary(self, flat_points):
        summary = detect_trend(flat_points).summary

        assert summary.startswith("Trend is stable (+0.0% over the period).")
        assert "Weak trend signal" in summary


class TestTrendSignal:
    """Conversion to the opportunity scorer's trend input."""

    def test_rising_positive(self, rising_points):
        assert trend_to_signal(detect_trend(rising_points)) == pytest.approx(1.0)

    def test_falling_negative(self, falling_points):
        assert trend_to_signal(detect_trend(falling_points)) == pytest.approx(-1.0)

    def test_stable_zero(self, flat_points):
        assert trend_to_signal(detect_trend(flat_points)) == 0.0
