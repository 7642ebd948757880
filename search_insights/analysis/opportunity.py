"""
Opportunity Score Calculator

Scores an SEO opportunity (0-100) from five independently normalized
factors:

1. Impressions (30%) - Opportunity size, log-scaled
2. CTR Gap (25%) - Shortfall against the positional benchmark
3. Position (25%) - Feasibility, closer to #1 is easier to improve
4. Trend (10%) - Momentum, declining is most urgent
5. Query Count (10%) - Breadth of queries driving the page

Formula:
    Opportunity_Score = clamp(
        Impressions × 0.30 +
        CTR_Gap × 0.25 +
        Position × 0.25 +
        Trend × 0.10 +
        Query_Count × 0.10
    , 0, 100)

Priority:
    >=80 critical, >=60 high, >=40 medium, else low
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .helpers import Priority, benchmark_ctr, clamp, round_half_up
from .models import PerformanceRow, row_key

logger = logging.getLogger(__name__)


# Factor weights (sum to 1.0)
WEIGHTS: Dict[str, float] = {
    "impressions": 0.30,
    "ctrGap": 0.25,
    "position": 0.25,
    "trend": 0.10,
    "queryCount": 0.10,
}

# 100k impressions maps to 100
MAX_IMPRESSIONS_LOG = math.log10(100_001)

# 1000 distinct queries maps to 100
MAX_QUERY_COUNT_LOG = math.log10(1001)


@dataclass(frozen=True)
class ScoreFactor:
    """One weighted input to the opportunity score."""
    name: str
    weight: float
    value: float          # normalized 0-100
    contribution: float   # weight × value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "weight": self.weight,
            "value": self.value,
            "contribution": self.contribution,
        }


@dataclass(frozen=True)
class OpportunityScore:
    """Scored opportunity with factor breakdown."""
    score: float
    priority: Priority
    factors: List[ScoreFactor] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "priority": self.priority.value,
            "factors": [f.to_dict() for f in self.factors],
        }


def get_priority(score: float) -> Priority:
    """
    Bucket a 0-100 score into a priority.

    Args:
        score: Opportunity score

    Returns:
        Priority enum
    """
    if score >= 80:
        return Priority.CRITICAL
    elif score >= 60:
        return Priority.HIGH
    elif score >= 40:
        return Priority.MEDIUM
    else:
        return Priority.LOW


def score_opportunity(
    impressions: float,
    clicks: float,
    ctr: float,
    position: float,
    expected_ctr: Optional[float] = None,
    trend: Optional[float] = None,
    query_count: Optional[int] = None,
) -> OpportunityScore:
    """
    Score an SEO opportunity on a 0-100 scale.

    Args:
        impressions: Total impressions for the page/query
        clicks: Total clicks (informational, not a factor)
        ctr: Actual CTR as decimal
        position: Average SERP position
        expected_ctr: Benchmark CTR; looked up from the CTR curve if omitted
        trend: Momentum in [-1, 1] (1 rising, 0 stable, -1 declining), default 0
        query_count: Distinct queries driving the page, default 1

    Returns:
        OpportunityScore with exactly five factors
    """
    if expected_ctr is None:
        expected_ctr = benchmark_ctr(position)
    if trend is None:
        trend = 0.0
    if query_count is None:
        query_count = 1

    values = {
        "impressions": _normalize_impressions(impressions),
        "ctrGap": _normalize_ctr_gap(ctr, expected_ctr),
        "position": _normalize_position(position),
        "trend": _normalize_trend(trend),
        "queryCount": _normalize_query_count(query_count),
    }

    factors = [
        ScoreFactor(
            name=name,
            weight=weight,
            value=values[name],
            contribution=weight * values[name],
        )
        for name, weight in WEIGHTS.items()
    ]

    score = clamp(sum(f.contribution for f in factors))

    return OpportunityScore(
        score=round_half_up(score, 2),
        priority=get_priority(score),
        factors=factors,
    )


def score_row(
    row: PerformanceRow,
    trend: Optional[float] = None,
    query_count: Optional[int] = None,
) -> OpportunityScore:
    """Score a performance row with the benchmark CTR for its position."""
    return score_opportunity(
        impressions=row.impressions,
        clicks=row.clicks,
        ctr=row.ctr,
        position=row.position,
        trend=trend,
        query_count=query_count,
    )


def score_rows(
    rows: Iterable[PerformanceRow],
    trends: Optional[Mapping[str, float]] = None,
) -> Dict[str, OpportunityScore]:
    """
    Score every row, keyed by query (falling back to page).

    Query count is the number of distinct queries seen for the row's page.
    When a key appears on several rows the first row wins.

    Args:
        rows: Performance rows
        trends: Optional trend signals in [-1, 1] keyed by query or page

    Returns:
        Dict mapping row key -> OpportunityScore
    """
    rows = list(rows)
    trends = trends or {}

    queries_per_page: Dict[str, set] = {}
    for row in rows:
        queries_per_page.setdefault(row.page, set()).add(row.query)

    scores: Dict[str, OpportunityScore] = {}
    for row in rows:
        key = row_key(row)
        if key is None or key in scores:
            continue
        trend = trends.get(row.query, trends.get(row.page))
        scores[key] = score_row(
            row,
            trend=trend,
            query_count=len(queries_per_page.get(row.page, ())) or 1,
        )

    logger.debug(f"Scored {len(scores)} opportunities from {len(rows)} rows")
    return scores


def get_opportunity_summary(scores: Iterable[OpportunityScore]) -> Dict[str, Any]:
    """
    Summarize a batch of opportunity scores.

    Args:
        scores: OpportunityScore results

    Returns:
        Summary dict with priority distribution, average and max score
    """
    scores = list(scores)
    distribution = {p.value: 0 for p in Priority}
    for s in scores:
        distribution[s.priority.value] += 1

    if not scores:
        return {
            "total": 0,
            "avg_score": 0.0,
            "max_score": 0.0,
            "priority_distribution": distribution,
        }

    values = [s.score for s in scores]
    return {
        "total": len(scores),
        "avg_score": round_half_up(sum(values) / len(values), 1),
        "max_score": max(values),
        "priority_distribution": distribution,
    }


# ============================================================================
# FACTOR NORMALIZATION
# ============================================================================

def _normalize_impressions(impressions: float) -> float:
    """Log-scale impressions to 0-100."""
    if impressions <= 0:
        return 0.0
    return clamp(math.log10(impressions + 1) / MAX_IMPRESSIONS_LOG * 100)


def _normalize_ctr_gap(actual_ctr: float, expected_ctr: float) -> float:
    """Relative CTR shortfall, 0 when actual meets or beats expected."""
    if expected_ctr <= 0:
        return 0.0
    gap = expected_ctr - actual_ctr
    if gap <= 0:
        return 0.0
    return clamp(gap / expected_ctr * 100)


def _normalize_position(position: float) -> float:
    """Position 1 = 100, 10 = 50, 100+ = 0."""
    if position <= 0:
        return 100.0
    if position >= 100:
        return 0.0
    return clamp(100 * (1 - math.log10(position) / 2))


def _normalize_trend(trend: float) -> float:
    """Map [-1, 1] to [100, 0]; declining is most urgent."""
    return clamp(50 - trend * 50)


def _normalize_query_count(query_count: float) -> float:
    """Log-scale query breadth to 0-100."""
    if query_count <= 0:
        return 0.0
    return clamp(math.log10(query_count + 1) / MAX_QUERY_COUNT_LOG * 100)
