"""
Opportunity Finders

Row-level scans that surface "money on the table" opportunities:

1. Quick wins - underperforming top-3 CTR, almost page 1, small position gains
2. CTR opportunities - CTR far below the positional benchmark
3. Cannibalization - several pages competing for one query

Each finder filters by an impressions threshold and returns dataclasses
with to_dict() for API output.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List

from .ctr import analyze_ctr
from .helpers import PRIORITY_ORDER, Priority, benchmark_ctr, round_half_up
from .models import PerformanceRow

logger = logging.getLogger(__name__)


# CTR ratio below which a top-3 row counts as a quick win
QUICK_WIN_CTR_RATIO = 0.8

# CTR ratio below which a row counts as a CTR opportunity
CTR_OPPORTUNITY_RATIO = 0.7

# Rank used as the target for "almost page 1" rows
ALMOST_PAGE_ONE_TARGET = 5

# Ranks gained for a quick position gain
QUICK_GAIN_STEP = 2


class QuickWinCategory(str, Enum):
    """Kind of quick win."""
    CTR = "ctr"
    ALMOST_PAGE_ONE = "almost_page_one"
    QUICK_GAIN = "quick_gain"


@dataclass(frozen=True)
class QuickWin:
    """A row with a cheap path to more clicks."""
    query: str
    page: str
    category: QuickWinCategory
    position: float
    impressions: float
    clicks: float
    ctr: float
    expected_ctr: float
    additional_clicks: int
    impact_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "page": self.page,
            "category": self.category.value,
            "position": self.position,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "ctr": self.ctr,
            "expected_ctr": self.expected_ctr,
            "additional_clicks": self.additional_clicks,
            "impact_score": self.impact_score,
        }


@dataclass
class QuickWinReport:
    """Quick wins grouped by category plus a combined ranking."""
    ctr_wins: List[QuickWin] = field(default_factory=list)
    almost_page_one: List[QuickWin] = field(default_factory=list)
    quick_gains: List[QuickWin] = field(default_factory=list)
    wins: List[QuickWin] = field(default_factory=list)
    total_additional_clicks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "summary": {
                "total": len(self.wins),
                "total_additional_clicks": self.total_additional_clicks,
                "ctr": _category_summary(self.ctr_wins),
                "almost_page_one": _category_summary(self.almost_page_one),
                "quick_gain": _category_summary(self.quick_gains),
            },
            "wins": [w.to_dict() for w in self.wins],
        }


@dataclass(frozen=True)
class CtrOpportunity:
    """A row whose CTR is far below the benchmark for its position."""
    query: str
    page: str
    position: float
    impressions: float
    clicks: float
    actual_ctr: float
    expected_ctr: float
    ctr_gap: float
    ctr_ratio: float
    additional_clicks: int
    recommendation: str

    @property
    def impact(self) -> float:
        return self.impressions * abs(self.ctr_gap)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "page": self.page,
            "position": self.position,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "actual_ctr": self.actual_ctr,
            "expected_ctr": self.expected_ctr,
            "ctr_gap": self.ctr_gap,
            "ctr_ratio": self.ctr_ratio,
            "additional_clicks": self.additional_clicks,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class CompetingPage:
    """One page ranking for a cannibalized query."""
    url: str
    position: float
    clicks: float
    impressions: float
    ctr: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "position": self.position,
            "clicks": self.clicks,
            "impressions": self.impressions,
            "ctr": self.ctr,
        }


@dataclass(frozen=True)
class CannibalizationCase:
    """A query served by several pages of the same site."""
    query: str
    pages: List[CompetingPage]
    total_impressions: float
    total_clicks: float
    severity: Priority

    @property
    def winner(self) -> CompetingPage:
        return self.pages[0]

    @property
    def losers(self) -> List[CompetingPage]:
        return self.pages[1:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "severity": self.severity.value,
            "total_impressions": self.total_impressions,
            "total_clicks": self.total_clicks,
            "winner": self.winner.to_dict(),
            "losers": [p.to_dict() for p in self.losers],
            "pages": [p.to_dict() for p in self.pages],
        }


# ============================================================================
# QUICK WINS
# ============================================================================

def calculate_impact_score(
    impressions: float,
    ctr: float,
    expected_ctr: float,
    position: float
) -> int:
    """
    Traffic impact of closing a CTR gap, weighted by position and volume.

    impact = impressions × max(0, expected - ctr)
             × position_multiplier × log10(max(impressions, 1) + 1)

    Args:
        impressions: Row impressions
        ctr: Actual CTR
        expected_ctr: Benchmark CTR for the row's position
        position: Average position

    Returns:
        Rounded impact score (higher = more valuable)
    """
    additional = impressions * max(0.0, expected_ctr - ctr)

    if position <= 3:
        position_multiplier = 2.0
    elif position <= 5:
        position_multiplier = 1.5
    elif position <= 10:
        position_multiplier = 1.2
    elif position <= 20:
        position_multiplier = 0.8
    else:
        position_multiplier = 0.4

    volume_multiplier = math.log10(max(impressions, 1) + 1)

    return int(round_half_up(additional * position_multiplier * volume_multiplier))


def find_quick_wins(
    rows: Iterable[PerformanceRow],
    min_impressions: float = 100
) -> QuickWinReport:
    """
    Find quick wins in three categories.

    - ctr: position 1-3 with CTR under 80% of the benchmark
    - almost_page_one: position 8-20, valued at the rank-5 CTR
    - quick_gain: position 4-10, valued at the CTR two ranks higher

    A row can appear in more than one category (positions 8-10).

    Args:
        rows: Performance rows
        min_impressions: Minimum impressions for a row to be considered

    Returns:
        QuickWinReport
    """
    rows = [r for r in rows if r.impressions >= min_impressions]
    report = QuickWinReport()

    for row in rows:
        expected = benchmark_ctr(row.position)

        if 1 <= row.position <= 3:
            ratio = row.ctr / expected if expected > 0 else 1.0
            if ratio < QUICK_WIN_CTR_RATIO:
                report.ctr_wins.append(
                    _quick_win(row, QuickWinCategory.CTR, expected, expected)
                )

        if 8 <= row.position <= 20:
            target = benchmark_ctr(ALMOST_PAGE_ONE_TARGET)
            report.almost_page_one.append(
                _quick_win(row, QuickWinCategory.ALMOST_PAGE_ONE, expected, target)
            )

        if 4 <= row.position <= 10:
            target_position = max(1, int(round_half_up(row.position)) - QUICK_GAIN_STEP)
            target = benchmark_ctr(target_position)
            report.quick_gains.append(
                _quick_win(row, QuickWinCategory.QUICK_GAIN, expected, target)
            )

    for group in (report.ctr_wins, report.almost_page_one, report.quick_gains):
        group.sort(key=lambda w: -w.additional_clicks)

    report.wins = sorted(
        report.ctr_wins + report.almost_page_one + report.quick_gains,
        key=lambda w: -w.impact_score,
    )
    report.total_additional_clicks = sum(w.additional_clicks for w in report.wins)

    logger.debug(
        f"Quick wins: {len(report.ctr_wins)} ctr, {len(report.almost_page_one)} "
        f"almost page 1, {len(report.quick_gains)} quick gains"
    )
    return report


def _quick_win(
    row: PerformanceRow,
    category: QuickWinCategory,
    expected: float,
    target: float
) -> QuickWin:
    return QuickWin(
        query=row.query,
        page=row.page,
        category=category,
        position=row.position,
        impressions=row.impressions,
        clicks=row.clicks,
        ctr=row.ctr,
        expected_ctr=expected,
        additional_clicks=int(round_half_up(row.impressions * max(0.0, target - row.ctr))),
        impact_score=calculate_impact_score(row.impressions, row.ctr, expected, row.position),
    )


def _category_summary(wins: List[QuickWin]) -> Dict[str, Any]:
    return {
        "count": len(wins),
        "additional_clicks": sum(w.additional_clicks for w in wins),
    }


# ============================================================================
# CTR OPPORTUNITIES
# ============================================================================

CTR_ADVICE = {
    "top": (
        "Rewrite title tag and meta description. Consider adding structured data "
        "for rich snippets (FAQ, HowTo, Review). Test emotional triggers and numbers in titles."
    ),
    "upper": (
        "Improve title to be more compelling. Add the current year, numbers, or power words "
        '("Ultimate", "Complete", "Proven"). Ensure meta description includes a clear call-to-action.'
    ),
    "lower": (
        "Focus on moving up in position first (improve content quality and depth), then "
        "optimize CTR. Add internal links from high-authority pages."
    ),
    "beyond": (
        "Priority should be improving position to page 1. Strengthen content with comprehensive "
        "coverage, better internal linking, and building topical authority."
    ),
}


def get_ctr_advice(position: float) -> str:
    """Position-band advice for an underperforming CTR."""
    rank = int(round_half_up(position))
    if rank <= 3:
        return CTR_ADVICE["top"]
    elif rank <= 7:
        return CTR_ADVICE["upper"]
    elif rank <= 10:
        return CTR_ADVICE["lower"]
    else:
        return CTR_ADVICE["beyond"]


def find_ctr_opportunities(
    rows: Iterable[PerformanceRow],
    min_impressions: float = 50
) -> List[CtrOpportunity]:
    """
    Find rows performing 30%+ below the CTR benchmark.

    Args:
        rows: Performance rows
        min_impressions: Minimum impressions for a row to be considered

    Returns:
        CtrOpportunity list sorted by impressions × |ctr_gap| descending
    """
    opportunities = []

    for row in rows:
        if row.impressions < min_impressions:
            continue

        analysis = analyze_ctr(row.position, row.ctr)
        if analysis.ctr_ratio >= CTR_OPPORTUNITY_RATIO:
            continue

        opportunities.append(CtrOpportunity(
            query=row.query,
            page=row.page,
            position=row.position,
            impressions=row.impressions,
            clicks=row.clicks,
            actual_ctr=row.ctr,
            expected_ctr=analysis.expected_ctr,
            ctr_gap=analysis.ctr_gap,
            ctr_ratio=analysis.ctr_ratio,
            additional_clicks=int(round_half_up(
                row.impressions * max(0.0, analysis.expected_ctr - row.ctr)
            )),
            recommendation=get_ctr_advice(row.position),
        ))

    opportunities.sort(key=lambda o: -o.impact)
    return opportunities


# ============================================================================
# CANNIBALIZATION
# ============================================================================

def get_cannibalization_severity(best_position: float, second_position: float) -> Priority:
    """
    Severity from the two best-ranking competing pages.

    Both on page 1: critical. Page 1 + page 2: high. Otherwise medium.
    """
    if best_position <= 10 and second_position <= 10:
        return Priority.CRITICAL
    elif best_position <= 10 and second_position <= 20:
        return Priority.HIGH
    else:
        return Priority.MEDIUM


def find_cannibalization(
    rows: Iterable[PerformanceRow],
    min_impressions: float = 20
) -> List[CannibalizationCase]:
    """
    Detect queries where several distinct pages compete.

    Args:
        rows: Query/page performance rows
        min_impressions: Minimum total impressions across a query's pages

    Returns:
        Cases sorted by severity, then total impressions descending
    """
    by_query: Dict[str, Dict[str, PerformanceRow]] = {}
    for row in rows:
        pages = by_query.setdefault(row.query, {})
        if row.page not in pages:
            pages[row.page] = row

    cases = []
    for query, pages in by_query.items():
        if len(pages) < 2:
            continue

        query_rows = list(pages.values())
        total_impressions = sum(r.impressions for r in query_rows)
        if total_impressions < min_impressions:
            continue

        competing = [
            CompetingPage(
                url=r.page,
                position=r.position,
                clicks=r.clicks,
                impressions=r.impressions,
                ctr=r.ctr,
            )
            for r in sorted(query_rows, key=lambda r: r.position)
        ]

        cases.append(CannibalizationCase(
            query=query,
            pages=competing,
            total_impressions=total_impressions,
            total_clicks=sum(r.clicks for r in query_rows),
            severity=get_cannibalization_severity(competing[0].position, competing[1].position),
        ))

    cases.sort(key=lambda c: (PRIORITY_ORDER[c.severity], -c.total_impressions))
    logger.debug(f"Found {len(cases)} cannibalized queries")
    return cases
