"""
Analysis Module for Search Insights Engine

Pure, synchronous analysis over search performance data:

1. **CTR Benchmark**
   Expected CTR by position and actual-vs-expected labelling.

2. **Trend Detector**
   Linear-regression direction, volatility and sudden changes.

3. **Query Intent Classifier**
   Ordered pattern rules mapping a query to one of five intents.

4. **Opportunity Score** (0-100)
   Weighted blend of impressions, CTR gap, position, trend and query breadth.

5. **Recommendation Engine**
   Rule-based, prioritized recommendations with evidence.

Supplemental scans (finders, period comparison, query landscape,
content planning, site health grading) build on the five modules above.

Example Usage:
    from search_insights.analysis import (
        PerformanceRow,
        RecommendationInput,
        batch_analyze_ctr,
        generate_recommendations,
        deduplicate_recommendations,
    )

    rows = [PerformanceRow.from_dict(r) for r in raw_rows]
    recs = generate_recommendations(RecommendationInput(
        rows=rows,
        ctr_analyses=batch_analyze_ctr(rows),
    ))
    for rec in deduplicate_recommendations(recs):
        print(f"[{rec.priority.value}] {rec.title}")
"""

# Helper utilities and constants
from .helpers import (
    # CTR curve
    CTR_CURVE,
    PAGE_TWO_CTR,
    DEEP_CTR,
    benchmark_ctr,

    # Priority / effort
    Priority,
    Effort,
    PRIORITY_ORDER,

    # Numeric
    round_half_up,
    clamp,
)

# Input models
from .models import (
    PerformanceRow,
    TrendPoint,
    row_key,
    to_rows,
)

# CTR Benchmark
from .ctr import (
    CtrPerformance,
    CtrAnalysis,
    get_expected_ctr,
    get_ctr_performance_label,
    analyze_ctr,
    batch_analyze_ctr,
)

# Trend Detector
from .trend import (
    TrendDirection,
    BreakpointDirection,
    Breakpoint,
    TrendAnalysis,
    detect_trend,
    trend_to_signal,
)

# Query Intent
from .intent import (
    QueryIntent,
    ClassifiedQuery,
    CLASSIFICATION_RULES,
    classify_query,
    classify_queries,
    get_intent_distribution,
)

# Opportunity Score
from .opportunity import (
    WEIGHTS,
    ScoreFactor,
    OpportunityScore,
    get_priority,
    score_opportunity,
    score_row,
    score_rows,
    get_opportunity_summary,
)

# Recommendations
from .recommendations import (
    Recommendation,
    RecommendationInput,
    generate_recommendations,
    sort_recommendations,
    deduplicate_recommendations,
    is_question_query,
)

# Finders
from .finders import (
    QuickWinCategory,
    QuickWin,
    QuickWinReport,
    CtrOpportunity,
    CompetingPage,
    CannibalizationCase,
    calculate_impact_score,
    find_quick_wins,
    find_ctr_opportunities,
    find_cannibalization,
)

# Period comparison
from .comparison import (
    DeclineCause,
    QueryStatus,
    DecliningPage,
    NewQuery,
    aggregate_rows,
    find_declining_pages,
    find_new_queries,
)

# Query landscape
from .landscape import (
    BrandSplit,
    QueryLandscape,
    analyze_query_landscape,
    extract_brand_name,
)

# Content planning
from .content import (
    ContentGapCategory,
    ContentGap,
    GapCluster,
    ContentGapReport,
    PlannedQuery,
    TopicGroup,
    BuildNextReport,
    find_content_gaps,
    find_what_to_build_next,
    extract_topic_key,
)

# Site health
from .health import (
    HealthGrade,
    HealthIssue,
    HealthReport,
    score_traffic_trend,
    score_ctr_efficiency,
    score_position_distribution,
    get_position_distribution,
    get_health_grade,
    grade_site_health,
)

__all__ = [
    # Helpers
    "CTR_CURVE",
    "PAGE_TWO_CTR",
    "DEEP_CTR",
    "benchmark_ctr",
    "Priority",
    "Effort",
    "PRIORITY_ORDER",
    "round_half_up",
    "clamp",

    # Models
    "PerformanceRow",
    "TrendPoint",
    "row_key",
    "to_rows",

    # CTR
    "CtrPerformance",
    "CtrAnalysis",
    "get_expected_ctr",
    "get_ctr_performance_label",
    "analyze_ctr",
    "batch_analyze_ctr",

    # Trend
    "TrendDirection",
    "BreakpointDirection",
    "Breakpoint",
    "TrendAnalysis",
    "detect_trend",
    "trend_to_signal",

    # Intent
    "QueryIntent",
    "ClassifiedQuery",
    "CLASSIFICATION_RULES",
    "classify_query",
    "classify_queries",
    "get_intent_distribution",

    # Opportunity
    "WEIGHTS",
    "ScoreFactor",
    "OpportunityScore",
    "get_priority",
    "score_opportunity",
    "score_row",
    "score_rows",
    "get_opportunity_summary",

    # Recommendations
    "Recommendation",
    "RecommendationInput",
    "generate_recommendations",
    "sort_recommendations",
    "deduplicate_recommendations",
    "is_question_query",

    # Finders
    "QuickWinCategory",
    "QuickWin",
    "QuickWinReport",
    "CtrOpportunity",
    "CompetingPage",
    "CannibalizationCase",
    "calculate_impact_score",
    "find_quick_wins",
    "find_ctr_opportunities",
    "find_cannibalization",

    # Comparison
    "DeclineCause",
    "QueryStatus",
    "DecliningPage",
    "NewQuery",
    "aggregate_rows",
    "find_declining_pages",
    "find_new_queries",

    # Landscape
    "BrandSplit",
    "QueryLandscape",
    "analyze_query_landscape",
    "extract_brand_name",

    # Content planning
    "ContentGapCategory",
    "ContentGap",
    "GapCluster",
    "ContentGapReport",
    "PlannedQuery",
    "TopicGroup",
    "BuildNextReport",
    "find_content_gaps",
    "find_what_to_build_next",
    "extract_topic_key",

    # Health
    "HealthGrade",
    "HealthIssue",
    "HealthReport",
    "score_traffic_trend",
    "score_ctr_efficiency",
    "score_position_distribution",
    "get_position_distribution",
    "get_health_grade",
    "grade_site_health",
]
