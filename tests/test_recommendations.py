"""
Test Suite for the Recommendation Engine

Tests each rule's trigger conditions, optional-input gating, ordering
and deduplication.
"""

import pytest
from search_insights.analysis import (
    Effort,
    Priority,
    Recommendation,
    RecommendationInput,
    batch_analyze_ctr,
    deduplicate_recommendations,
    detect_trend,
    generate_recommendations,
    is_question_query,
    score_rows,
    sort_recommendations,
)


def generate(rows, **kwargs):
    return generate_recommendations(RecommendationInput(rows=rows, **kwargs))


def of_type(recs, rec_type):
    return [r for r in recs if r.type == rec_type]


def make_rec(rec_type="title_optimization", priority=Priority.HIGH, **data):
    return Recommendation(
        type=rec_type,
        priority=priority,
        title="t",
        description="d",
        impact="i",
        effort=Effort.LOW,
        data=data,
    )


class TestTitleOptimization:
    """Top-3 rankings with poor CTR."""

    def test_fires_for_low_ctr_top_result(self, make_row):
        recs = generate([make_row(clicks=10, impressions=5000, ctr=0.002, position=2)])
        titles = of_type(recs, "title_optimization")

        assert len(titles) == 1
        assert titles[0].priority == Priority.HIGH
        assert titles[0].effort == Effort.LOW

    def test_not_for_position_five(self, make_row):
        recs = generate([make_row(clicks=10, impressions=5000, ctr=0.002, position=5)])

        assert of_type(recs, "title_optimization") == []

    def test_needs_impressions(self, make_row):
        recs = generate([make_row(clicks=0, impressions=99, ctr=0.0, position=1)])

        assert of_type(recs, "title_optimization") == []

    def test_uses_ctr_ratio_when_analysis_given(self, make_row):
        """CTR 15% at #1 is well under the 31.7% benchmark but above the raw 5% cut-off."""
        rows = [make_row(clicks=150, impressions=1000, ctr=0.15, position=1)]

        without = generate(rows)
        with_analysis = generate(rows, ctr_analyses=batch_analyze_ctr(rows))

        assert of_type(without, "title_optimization") == []
        assert len(of_type(with_analysis, "title_optimization")) == 1

    def test_healthy_ratio_not_flagged(self, make_row):
        rows = [make_row(clicks=300, impressions=1000, ctr=0.3, position=1)]

        recs = generate(rows, ctr_analyses=batch_analyze_ctr(rows))

        assert of_type(recs, "title_optimization") == []

    def test_description_and_impact(self, make_row):
        row = make_row(
            query="seo audit tool", page="https://example.com/audit",
            clicks=50, impressions=5000, ctr=0.01, position=2,
        )
        rec = of_type(generate([row]), "title_optimization")[0]

        assert '"https://example.com/audit"' in rec.description
        assert "position 2.0" in rec.description
        assert "5,000 impressions" in rec.description
        assert "1.0% CTR" in rec.description
        assert rec.impact == "Could increase clicks by 2970%+ by closing the CTR gap."

    def test_evidence(self, make_row):
        row = make_row(clicks=10, impressions=5000, ctr=0.002, position=2)
        rec = of_type(generate([row]), "title_optimization")[0]

        assert rec.data["query"] == row.query
        assert rec.data["page"] == row.page
        assert rec.data["impressions"] == 5000
        assert rec.data["position"] == 2


class TestPositionRules:
    """Content expansion, page two and niche keyword rules."""

    def test_content_expansion(self, make_row):
        recs = generate([make_row(impressions=2000, clicks=80, position=6)])
        expansions = of_type(recs, "content_expansion")

        assert len(expansions) == 1
        assert expansions[0].priority == Priority.HIGH
        assert expansions[0].effort == Effort.MEDIUM

    @pytest.mark.parametrize("position,impressions", [(3.9, 5000), (10.1, 5000), (6, 999)])
    def test_content_expansion_bounds(self, make_row, position, impressions):
        recs = generate([make_row(impressions=impressions, clicks=10, position=position)])

        assert of_type(recs, "content_expansion") == []

    def test_page_two(self, make_row):
        recs = generate([make_row(impressions=3000, clicks=15, position=14)])
        page_two = of_type(recs, "page_two_optimization")

        assert len(page_two) == 1
        assert page_two[0].priority == Priority.MEDIUM
        assert page_two[0].effort == Effort.HIGH

    @pytest.mark.parametrize("position", [10.5, 20.5, 35])
    def test_page_two_bounds(self, make_row, position):
        recs = generate([make_row(impressions=3000, clicks=15, position=position)])

        assert of_type(recs, "page_two_optimization") == []

    def test_low_value_keyword(self, make_row):
        recs = generate([make_row(impressions=4, clicks=1, ctr=0.25, position=1)])
        low = of_type(recs, "low_value_keyword")

        assert len(low) == 1
        assert low[0].priority == Priority.LOW
        assert low[0].effort == Effort.LOW

    def test_low_value_needs_good_rank(self, make_row):
        recs = generate([make_row(impressions=4, clicks=0, ctr=0, position=6)])

        assert of_type(recs, "low_value_keyword") == []


class TestQuestionContent:
    """Question queries without a top-3 ranking."""

    @pytest.mark.parametrize("query,expected", [
        ("how to do an seo audit", True),
        ("What is seo", True),
        ("should i buy a vpn", True),
        ("however this goes", False),
        ("seo how to", False),
        ("", False),
    ])
    def test_question_detection(self, query, expected):
        assert is_question_query(query) is expected

    def test_fires(self, make_row):
        recs = generate([make_row(query="how to do an seo audit", impressions=800, clicks=20, position=7)])
        questions = of_type(recs, "question_content")

        assert len(questions) == 1
        assert questions[0].priority == Priority.MEDIUM

    def test_not_for_top_three(self, make_row):
        recs = generate([make_row(query="what is seo", impressions=800, clicks=200, position=2)])

        assert of_type(recs, "question_content") == []

    def test_needs_impressions(self, make_row):
        recs = generate([make_row(query="what is seo", impressions=50, clicks=1, position=7)])

        assert of_type(recs, "question_content") == []


class TestConsolidation:
    """Several pages ranking for the same query."""

    def test_two_pages_one_recommendation(self, make_row):
        rows = [
            make_row(query="rank tracker", page="/rank", impressions=900, position=8),
            make_row(query="rank tracker", page="/blog/rank", impressions=400, position=12),
        ]
        consolidations = of_type(generate(rows), "consolidation")

        assert len(consolidations) == 1
        rec = consolidations[0]
        assert rec.priority == Priority.HIGH
        assert rec.data["pages"] == ["/rank", "/blog/rank"]
        assert rec.data["page_count"] == 2
        assert rec.data["total_impressions"] == 1300
        assert '"/rank"' in rec.description and '"/blog/rank"' in rec.description

    def test_same_page_twice_is_not_cannibalization(self, make_row):
        rows = [
            make_row(query="rank tracker", page="/rank"),
            make_row(query="rank tracker", page="/rank"),
        ]

        assert of_type(generate(rows), "consolidation") == []

    def test_single_page(self, make_row):
        assert of_type(generate([make_row()]), "consolidation") == []


class TestContentRefresh:
    """Falling trends."""

    def test_requires_trends(self, sample_rows):
        assert of_type(generate(sample_rows), "content_refresh") == []

    def test_falling_trend_is_critical(self, sample_rows, falling_points):
        trends = {"keyword research": detect_trend(falling_points)}
        refresh = of_type(generate(sample_rows, trends=trends), "content_refresh")

        assert len(refresh) == 1
        assert refresh[0].priority == Priority.CRITICAL
        assert refresh[0].data["key"] == "keyword research"
        assert refresh[0].data["impressions"] == 2000
        assert "-72.5% change" in refresh[0].description
        assert "strong, consistent decline" in refresh[0].description

    def test_rising_trend_ignored(self, sample_rows, rising_points):
        trends = {"keyword research": detect_trend(rising_points)}

        assert of_type(generate(sample_rows, trends=trends), "content_refresh") == []

    def test_low_volume_row_suppresses(self, sample_rows, falling_points):
        trends = {"example seo widget": detect_trend(falling_points)}

        assert of_type(generate(sample_rows, trends=trends), "content_refresh") == []

    def test_unmatched_key_still_reported(self, sample_rows, falling_points):
        trends = {"https://example.com/unknown": detect_trend(falling_points)}
        refresh = of_type(generate(sample_rows, trends=trends), "content_refresh")

        assert len(refresh) == 1
        assert refresh[0].data["impressions"] is None

    def test_matches_by_page(self, sample_rows, falling_points):
        trends = {"https://example.com/keywords": detect_trend(falling_points)}
        refresh = of_type(generate(sample_rows, trends=trends), "content_refresh")

        assert refresh[0].data["impressions"] == 2000


class TestOpportunityEvidence:
    """Opportunity scores attached to evidence."""

    def test_no_scores_without_opportunities(self, sample_rows):
        for rec in generate(sample_rows):
            assert "opportunity_score" not in rec.data

    def test_scores_attached(self, sample_rows):
        opportunities = score_rows(sample_rows)
        recs = generate(sample_rows, opportunities=opportunities)

        title = of_type(recs, "title_optimization")[0]
        assert title.data["opportunity_score"] == opportunities["seo audit tool"].score
        assert title.data["opportunity_priority"] == opportunities["seo audit tool"].priority.value

        consolidation = of_type(recs, "consolidation")[0]
        assert consolidation.data["opportunity_score"] == opportunities["rank tracker"].score


class TestGenerateRecommendations:
    """Whole-input behaviour."""

    def test_empty_rows(self):
        assert generate([]) == []

    def test_sample_rows(self, sample_rows):
        recs = generate(sample_rows)

        assert sorted(r.type for r in recs) == sorted([
            "title_optimization",
            "content_expansion",
            "page_two_optimization",
            "question_content",
            "low_value_keyword",
            "consolidation",
        ])

    def test_dict_rows(self):
        recs = generate([{
            "query": "a", "page": "b", "clicks": 1, "impressions": 5000, "ctr": 0.001, "position": 2,
        }])

        titles = of_type(recs, "title_optimization")
        assert len(titles) == 1
        assert titles[0].data["query"] == "a"
        assert titles[0].data["page"] == "b"

    def test_dict_rows_match_objects(self, sample_rows):
        from_dicts = generate([row.to_dict() for row in sample_rows])

        assert from_dicts == generate(sample_rows)

    def test_dict_row_missing_metric(self):
        with pytest.raises(ValueError):
            generate([{"query": "a", "page": "b", "impressions": 100, "position": 1}])

    def test_to_dict(self, sample_rows):
        data = generate(sample_rows)[0].to_dict()

        assert set(data) == {"type", "priority", "title", "description", "impact", "effort", "data"}
        assert data["priority"] in {"critical", "high", "medium", "low"}


class TestSortRecommendations:
    """Priority then impressions ordering."""

    def test_sample_order(self, sample_rows):
        ordered = sort_recommendations(generate(sample_rows))

        assert [r.type for r in ordered] == [
            "title_optimization",     # high, 5000
            "content_expansion",      # high, 2000
            "consolidation",          # high, 1300 total
            "page_two_optimization",  # medium, 3000
            "question_content",       # medium, 800
            "low_value_keyword",      # low
        ]

    def test_priority_order(self):
        recs = [
            make_rec(priority=Priority.LOW),
            make_rec(priority=Priority.CRITICAL),
            make_rec(priority=Priority.MEDIUM),
            make_rec(priority=Priority.HIGH),
        ]

        assert [r.priority for r in sort_recommendations(recs)] == [
            Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW,
        ]

    def test_does_not_mutate_input(self):
        recs = [make_rec(priority=Priority.LOW), make_rec(priority=Priority.HIGH)]
        before = list(recs)

        sort_recommendations(recs)

        assert recs == before

    def test_stable_for_ties(self):
        first = make_rec(query="a", page="/a", impressions=100)
        second = make_rec(query="b", page="/b", impressions=100)

        assert sort_recommendations([first, second]) == [first, second]

    def test_missing_impressions_sort_last(self):
        none = make_rec(key="x", impressions=None)
        some = make_rec(query="a", page="/a", impressions=10)

        assert sort_recommendations([none, some]) == [some, none]


class TestDeduplicate:
    """One recommendation per (type, query, page)."""

    def test_keeps_highest_priority(self):
        medium = make_rec(priority=Priority.MEDIUM, query="q", page="/p", impressions=10)
        high = make_rec(priority=Priority.HIGH, query="q", page="/p", impressions=10)

        result = deduplicate_recommendations([medium, high])

        assert result == [high]

    def test_different_types_kept(self):
        a = make_rec("title_optimization", query="q", page="/p")
        b = make_rec("content_expansion", query="q", page="/p")

        assert len(deduplicate_recommendations([a, b])) == 2

    def test_without_page_never_deduplicated(self):
        a = make_rec("consolidation", query="q", pages=["/a", "/b"])
        b = make_rec("consolidation", query="q", pages=["/a", "/b"])

        assert len(deduplicate_recommendations([a, b])) == 2

    def test_result_is_sorted(self, sample_rows):
        recs = generate(sample_rows)

        assert deduplicate_recommendations(recs) == sort_recommendations(recs)
