"""
Site Health Grading

Grades overall search health from A to F using four weighted sub-scores:

    overall = traffic × 0.30 + ctr_efficiency × 0.25
            + position × 0.25 + sitemap × 0.20

Sub-scores (0-100):
- Traffic trend: banded from the trend's percent change
- CTR efficiency: share of queries at ≥80% of their CTR benchmark
- Position distribution: queries weighted 100 (1-3), 70 (4-10),
  30 (11-20) and 0 (20+)
- Sitemap: supplied by the caller

A sub-score with no data falls back to a neutral 50.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .ctr import CtrPerformance, analyze_ctr
from .helpers import PRIORITY_ORDER, Priority, round_half_up
from .models import PerformanceRow, to_rows
from .trend import BreakpointDirection, TrendAnalysis

logger = logging.getLogger(__name__)


GRADE_WEIGHTS = {
    "traffic": 0.30,
    "ctr_efficiency": 0.25,
    "position": 0.25,
    "sitemap": 0.20,
}

NEUTRAL_SCORE = 50

# CTR ratio at which a query counts as performing at benchmark
CTR_EFFICIENCY_RATIO = 0.8

# Points per query in each position bucket
POSITION_POINTS = {"1-3": 100, "4-10": 70, "11-20": 30, "20+": 0}


class HealthGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


GRADE_DESCRIPTIONS = {
    HealthGrade.A: "Excellent -- Your site is performing very well across all SEO dimensions.",
    HealthGrade.B: "Good -- Strong performance with a few areas for improvement.",
    HealthGrade.C: "Fair -- Several areas need attention to improve organic performance.",
    HealthGrade.D: "Needs Work -- Significant issues are holding back your organic performance.",
    HealthGrade.F: "Critical -- Urgent action is needed to address fundamental SEO issues.",
}


@dataclass(frozen=True)
class HealthIssue:
    """A problem found while grading."""
    severity: Priority
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"severity": self.severity.value, "message": self.message}


@dataclass
class HealthReport:
    """Overall grade, sub-scores and issues."""
    traffic_score: int
    ctr_score: int
    position_score: int
    sitemap_score: int
    overall_score: int
    grade: HealthGrade
    issues: List[HealthIssue] = field(default_factory=list)

    @property
    def description(self) -> str:
        return GRADE_DESCRIPTIONS[self.grade]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "grade": self.grade.value,
            "description": self.description,
            "overall_score": self.overall_score,
            "sub_scores": {
                "traffic": self.traffic_score,
                "ctr_efficiency": self.ctr_score,
                "position": self.position_score,
                "sitemap": self.sitemap_score,
            },
            "issues": [i.to_dict() for i in self.issues],
        }


# ============================================================================
# SUB-SCORES
# ============================================================================

def score_traffic_trend(percent_change: float) -> int:
    """
    Score a traffic trend from its percent change.

    >5% growth: 100, -2% to 5%: 80, -10% to -2%: 60, -25% to -10%: 40,
    worse: 20.
    """
    if percent_change > 5:
        return 100
    elif percent_change >= -2:
        return 80
    elif percent_change >= -10:
        return 60
    elif percent_change >= -25:
        return 40
    else:
        return 20


def score_ctr_efficiency(rows: Iterable[PerformanceRow]) -> Tuple[int, int]:
    """
    Share of queries at or above 80% of their CTR benchmark.

    Returns:
        (score 0-100, number of queries with "poor" CTR performance).
        No rows scores NEUTRAL_SCORE.
    """
    rows = list(rows)
    if not rows:
        return NEUTRAL_SCORE, 0

    efficient = 0
    poor = 0
    for row in rows:
        analysis = analyze_ctr(row.position, row.ctr)
        if analysis.ctr_ratio >= CTR_EFFICIENCY_RATIO:
            efficient += 1
        if analysis.performance == CtrPerformance.POOR:
            poor += 1

    return int(round_half_up(efficient / len(rows) * 100)), poor


def get_position_distribution(rows: Iterable[PerformanceRow]) -> Dict[str, int]:
    """Count queries per position bucket (1-3, 4-10, 11-20, 20+)."""
    buckets = {bucket: 0 for bucket in POSITION_POINTS}
    for row in rows:
        if row.position <= 3:
            buckets["1-3"] += 1
        elif row.position <= 10:
            buckets["4-10"] += 1
        elif row.position <= 20:
            buckets["11-20"] += 1
        else:
            buckets["20+"] += 1
    return buckets


def score_position_distribution(distribution: Mapping[str, int]) -> int:
    """Points-weighted average over the position buckets."""
    total = sum(distribution.values())
    if total == 0:
        return NEUTRAL_SCORE
    points = sum(POSITION_POINTS[bucket] * count for bucket, count in distribution.items())
    return int(round_half_up(points / total))


def get_health_grade(score: float) -> HealthGrade:
    """Letter grade: A ≥90, B ≥75, C ≥60, D ≥40, else F."""
    if score >= 90:
        return HealthGrade.A
    elif score >= 75:
        return HealthGrade.B
    elif score >= 60:
        return HealthGrade.C
    elif score >= 40:
        return HealthGrade.D
    else:
        return HealthGrade.F


# ============================================================================
# GRADING
# ============================================================================

def grade_site_health(
    traffic_trend: Optional[TrendAnalysis],
    query_rows: Iterable[Union[PerformanceRow, Mapping[str, Any]]],
    sitemap_score: Optional[float] = None
) -> HealthReport:
    """
    Grade site health from a traffic trend and query-level rows.

    Args:
        traffic_trend: Trend of daily clicks, or None when unavailable
        query_rows: One row per query (page is ignored)
        sitemap_score: Sitemap health 0-100, or None when unavailable

    Returns:
        HealthReport with issues sorted by severity
    """
    rows = to_rows(query_rows)
    issues: List[HealthIssue] = []

    # Traffic
    if traffic_trend is None:
        traffic_score = NEUTRAL_SCORE
        issues.append(HealthIssue(
            Priority.MEDIUM,
            "Could not analyze traffic trends. Ensure daily click data is available for the period.",
        ))
    else:
        change = traffic_trend.percent_change
        traffic_score = score_traffic_trend(change)
        if traffic_score <= 60:
            issues.append(HealthIssue(
                Priority.CRITICAL if traffic_score <= 40 else Priority.HIGH,
                f"Traffic is {traffic_trend.direction.value} "
                f"({'+' if change >= 0 else ''}{change:.1f}% over the period). {traffic_trend.summary}",
            ))
        if traffic_trend.breakpoints:
            bp = traffic_trend.breakpoints[0]
            kind = "spike" if bp.direction == BreakpointDirection.UP else "drop"
            issues.append(HealthIssue(
                Priority.MEDIUM,
                f"Sudden traffic {kind} detected on {bp.date} ({bp.change_percent:.1f}% change). "
                f"Investigate potential algorithm update or site change.",
            ))

    # CTR efficiency
    ctr_score, poor = score_ctr_efficiency(rows)
    if rows:
        if poor > len(rows) * 0.3:
            issues.append(HealthIssue(
                Priority.HIGH,
                f"{poor} of your top {len(rows)} queries have CTR significantly below benchmark. "
                f"Consider improving title tags and meta descriptions.",
            ))
        elif ctr_score < 50:
            issues.append(HealthIssue(
                Priority.MEDIUM,
                f"CTR efficiency is at {ctr_score}%. Many queries underperform their position benchmarks.",
            ))

    # Position distribution
    distribution = get_position_distribution(rows)
    position_score = score_position_distribution(distribution)
    if rows:
        total = len(rows)
        if distribution["20+"] > total * 0.5:
            issues.append(HealthIssue(
                Priority.HIGH,
                f"{_pct(distribution['20+'] / total)} of queries rank beyond position 20. "
                f"Focus content improvement efforts on these buried pages.",
            ))
        if distribution["1-3"] < total * 0.05:
            issues.append(HealthIssue(
                Priority.MEDIUM,
                f"Only {_pct(distribution['1-3'] / total)} of queries rank in positions 1-3. "
                f"Work on improving top-ranking content authority.",
            ))

    sitemap = NEUTRAL_SCORE if sitemap_score is None else int(round_half_up(sitemap_score))

    overall = int(round_half_up(
        traffic_score * GRADE_WEIGHTS["traffic"]
        + ctr_score * GRADE_WEIGHTS["ctr_efficiency"]
        + position_score * GRADE_WEIGHTS["position"]
        + sitemap * GRADE_WEIGHTS["sitemap"]
    ))

    issues.sort(key=lambda i: PRIORITY_ORDER[i.severity])
    logger.debug(f"Health score {overall} from {len(rows)} queries, {len(issues)} issues")

    return HealthReport(
        traffic_score=traffic_score,
        ctr_score=ctr_score,
        position_score=position_score,
        sitemap_score=sitemap,
        overall_score=overall,
        grade=get_health_grade(overall),
        issues=issues,
    )


def _pct(share: float) -> str:
    return f"{int(round_half_up(share * 100))}%"
