"""
Test Suite for Site Health Grading

Tests the traffic, CTR efficiency and position sub-scores, the letter
grade and the issues raised while grading.
"""

import pytest
from search_insights.analysis import (
    HealthGrade,
    Priority,
    detect_trend,
    get_health_grade,
    get_position_distribution,
    grade_site_health,
    score_ctr_efficiency,
    score_position_distribution,
    score_traffic_trend,
)


@pytest.fixture
def query_rows(make_row):
    """Four queries: two at benchmark CTR, two far below it."""
    return [
        make_row("a", "", clicks=317, impressions=1000, ctr=0.317, position=1),
        make_row("b", "", clicks=100, impressions=1000, ctr=0.1, position=1),
        make_row("c", "", clicks=80, impressions=1000, ctr=0.08, position=5),
        make_row("d", "", clicks=0, impressions=1000, ctr=0.0, position=10),
    ]


class TestSubScores:
    """Individual 0-100 sub-scores."""

    @pytest.mark.parametrize("change,score", [
        (10, 100),
        (5, 80),
        (-2, 80),
        (-2.1, 60),
        (-10, 60),
        (-10.5, 40),
        (-25, 40),
        (-30, 20),
    ])
    def test_traffic_bands(self, change, score):
        assert score_traffic_trend(change) == score

    def test_ctr_efficiency(self, query_rows):
        assert score_ctr_efficiency(query_rows) == (50, 2)

    def test_ctr_efficiency_empty_is_neutral(self):
        assert score_ctr_efficiency([]) == (50, 0)

    def test_position_distribution(self, make_row):
        rows = [make_row(position=p) for p in (1, 2, 5, 15, 30)]
        distribution = get_position_distribution(rows)

        assert distribution == {"1-3": 2, "4-10": 1, "11-20": 1, "20+": 1}
        assert score_position_distribution(distribution) == 60

    def test_position_distribution_empty_is_neutral(self):
        assert score_position_distribution(get_position_distribution([])) == 50

    @pytest.mark.parametrize("score,grade", [
        (90, HealthGrade.A),
        (89, HealthGrade.B),
        (75, HealthGrade.B),
        (74, HealthGrade.C),
        (60, HealthGrade.C),
        (59, HealthGrade.D),
        (40, HealthGrade.D),
        (39, HealthGrade.F),
    ])
    def test_grade_boundaries(self, score, grade):
        assert get_health_grade(score) == grade


class TestGradeSiteHealth:
    """Weighted overall grade and issues."""

    def test_weighted_overall(self, query_rows, rising_points):
        report = grade_site_health(detect_trend(rising_points), query_rows)

        assert report.traffic_score == 100
        assert report.ctr_score == 50
        assert report.position_score == 85
        assert report.sitemap_score == 50
        # 100×.30 + 50×.25 + 85×.25 + 50×.20 = 73.75
        assert report.overall_score == 74
        assert report.grade == HealthGrade.C

    def test_poor_ctr_issue(self, query_rows, rising_points):
        issues = grade_site_health(detect_trend(rising_points), query_rows).issues

        assert len(issues) == 1
        assert issues[0].severity == Priority.HIGH
        assert issues[0].message.startswith("2 of your top 4 queries have CTR significantly below benchmark.")

    def test_nothing_available_is_neutral(self):
        report = grade_site_health(None, [])

        assert report.overall_score == 50
        assert report.grade == HealthGrade.D
        assert [i.severity for i in report.issues] == [Priority.MEDIUM]
        assert "Could not analyze traffic trends" in report.issues[0].message

    def test_falling_traffic_is_critical_and_first(self, query_rows, falling_points):
        report = grade_site_health(detect_trend(falling_points), query_rows, sitemap_score=100)

        assert report.traffic_score == 20
        assert report.sitemap_score == 100
        assert [i.severity for i in report.issues] == [Priority.CRITICAL, Priority.HIGH]
        assert report.issues[0].message.startswith("Traffic is falling (-72.5% over the period).")

    def test_breakpoint_issue(self, make_series, make_row):
        trend = detect_trend(make_series([100] * 9 + [300]))
        report = grade_site_health(trend, [make_row(position=2, ctr=0.3)])

        spikes = [i for i in report.issues if "Sudden traffic spike" in i.message]
        assert len(spikes) == 1
        assert spikes[0].severity == Priority.MEDIUM

    def test_buried_queries(self, make_row, flat_points):
        rows = [make_row(query=f"q{i}", position=30, clicks=0, ctr=0.0) for i in range(4)]
        messages = [i.message for i in grade_site_health(detect_trend(flat_points), rows).issues]

        assert any(m.startswith("100% of queries rank beyond position 20.") for m in messages)
        assert any(m.startswith("Only 0% of queries rank in positions 1-3.") for m in messages)

    def test_dict_rows(self, query_rows, rising_points):
        report = grade_site_health(detect_trend(rising_points), [r.to_dict() for r in query_rows])

        assert report.overall_score == 74

    def test_to_dict(self, query_rows, rising_points):
        data = grade_site_health(detect_trend(rising_points), query_rows).to_dict()

        assert data["grade"] == "C"
        assert data["description"].startswith("Fair")
        assert data["sub_scores"] == {"traffic": 100, "ctr_efficiency": 50, "position": 85, "sitemap": 50}
        assert data["issues"][0]["severity"] == "high"
