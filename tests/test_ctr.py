"""
Test Suite for the CTR Benchmark Model

Tests expected CTR lookup, performance labels and actual-vs-expected
analysis.
"""

import pytest
from search_insights.analysis import (
    CTR_CURVE,
    CtrAnalysis,
    CtrPerformance,
    analyze_ctr,
    batch_analyze_ctr,
    get_ctr_performance_label,
    get_expected_ctr,
)


class TestExpectedCtr:
    """Test benchmark lookup by position."""

    @pytest.mark.parametrize("position,expected", [
        (1, 0.317),
        (5, 0.095),
        (10, 0.022),
        (15, 0.015),
        (50, 0.005),
    ])
    def test_benchmark_values(self, position, expected):
        assert get_expected_ctr(position) == expected

    def test_fractional_position_rounds_to_nearest(self):
        """1.6 rounds to rank 2."""
        assert get_expected_ctr(1.6) == 0.247
        assert get_expected_ctr(1.4) == 0.317

    def test_half_position_rounds_up(self):
        """2.5 is rank 3, not rank 2."""
        assert get_expected_ctr(2.5) == 0.187

    def test_positions_below_one_use_rank_one(self):
        assert get_expected_ctr(0) == 0.317
        assert get_expected_ctr(0.3) == 0.317
        assert get_expected_ctr(-4) == 0.317

    def test_page_boundaries(self):
        assert get_expected_ctr(20) == 0.015
        assert get_expected_ctr(20.4) == 0.015
        assert get_expected_ctr(20.5) == 0.005
        assert get_expected_ctr(11) == 0.015

    def test_curve_is_non_increasing(self):
        values = [get_expected_ctr(p) for p in range(1, 40)]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_always_positive(self):
        for position in [0, 1, 7.3, 19.9, 100, 10_000]:
            assert get_expected_ctr(position) > 0

    def test_curve_covers_first_page(self):
        assert sorted(CTR_CURVE) == list(range(1, 11))


class TestPerformanceLabel:
    """Test ratio thresholds."""

    @pytest.mark.parametrize("ratio,label", [
        (2.0, CtrPerformance.EXCELLENT),
        (1.5, CtrPerformance.EXCELLENT),
        (1.49, CtrPerformance.GOOD),
        (1.1, CtrPerformance.GOOD),
        (1.0, CtrPerformance.AVERAGE),
        (0.8, CtrPerformance.AVERAGE),
        (0.79, CtrPerformance.BELOW_AVERAGE),
        (0.5, CtrPerformance.BELOW_AVERAGE),
        (0.49, CtrPerformance.POOR),
        (0.0, CtrPerformance.POOR),
    ])
    def test_thresholds(self, ratio, label):
        assert get_ctr_performance_label(ratio) == label


class TestAnalyzeCtr:
    """Test single position/CTR analysis."""

    def test_excellent_top_result(self):
        result = analyze_ctr(1, 0.5)

        assert isinstance(result, CtrAnalysis)
        assert result.expected_ctr == 0.317
        assert result.ctr_gap == pytest.approx(0.183)
        assert result.ctr_ratio == pytest.approx(1.577, abs=1e-3)
        assert result.performance == CtrPerformance.EXCELLENT

    def test_poor_ctr(self):
        result = analyze_ctr(2, 0.01)

        assert result.ctr_gap < 0
        assert result.performance == CtrPerformance.POOR

    def test_zero_ctr(self):
        result = analyze_ctr(5, 0.0)

        assert result.ctr_ratio == 0.0
        assert result.ctr_gap == pytest.approx(-0.095)
        assert result.performance == CtrPerformance.POOR

    def test_to_dict(self):
        data = analyze_ctr(3, 0.187).to_dict()

        assert data["performance"] == "average"
        assert data["expected_ctr"] == 0.187
        assert set(data) == {
            "position", "actual_ctr", "expected_ctr", "ctr_gap", "ctr_ratio", "performance",
        }


class TestBatchAnalyzeCtr:
    """Test batch analysis."""

    def test_preserves_order_and_length(self, sample_rows):
        results = batch_analyze_ctr(sample_rows)

        assert len(results) == len(sample_rows)
        for row, result in zip(sample_rows, results):
            assert result.position == row.position
            assert result.actual_ctr == row.ctr

    def test_accepts_dicts(self):
        results = batch_analyze_ctr([
            {"position": 1, "ctr": 0.5},
            {"position": 10, "ctr": 0.0},
        ])

        assert results[0].performance == CtrPerformance.EXCELLENT
        assert results[1].performance == CtrPerformance.POOR

    def test_empty(self):
        assert batch_analyze_ctr([]) == []
