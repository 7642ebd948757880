"""
Recommendation Engine

Turns performance rows, and optionally CTR analyses, trends and
opportunity scores, into actionable SEO recommendations.

Rules (independent, a row may trigger several):

| Rule                  | Trigger                                        | Priority | Effort |
|-----------------------|------------------------------------------------|----------|--------|
| title_optimization    | pos <=3, impr >=100, CTR ratio <0.6 (ctr <0.05) | high     | low    |
| content_expansion     | pos 4-10, impr >=1000                          | high     | medium |
| page_two_optimization | pos 11-20, impr >=1000                         | medium   | high   |
| consolidation         | >=2 distinct pages for the same query          | high     | medium |
| content_refresh       | falling trend (row impr >=100 when matched)    | critical | medium |
| low_value_keyword     | pos <=5, impr <10                              | low      | low    |
| question_content      | question query, impr >=100, pos >3             | medium   | medium |

Optional inputs gate their rule groups: without trends there are no
content_refresh recommendations, without CTR analyses title_optimization
falls back to the raw CTR threshold, and without opportunity scores no
score evidence is attached.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .ctr import CtrAnalysis
from .helpers import PRIORITY_ORDER, Effort, Priority, round_half_up
from .models import PerformanceRow, to_rows
from .opportunity import OpportunityScore
from .trend import TrendAnalysis, TrendDirection

logger = logging.getLogger(__name__)


HIGH_IMPRESSIONS_THRESHOLD = 1000
MEDIUM_IMPRESSIONS_THRESHOLD = 100
NICHE_IMPRESSIONS_THRESHOLD = 10

# CTR ratio (actual / expected) below which a top-3 result is underperforming
LOW_CTR_RATIO = 0.6

# Raw CTR used instead of the ratio when no CTR analysis is supplied
LOW_CTR_FALLBACK = 0.05

QUESTION_PATTERN = re.compile(
    r"^(how|what|why|when|where|who|which|can|does|is|are|do|should|will)\b"
)


@dataclass(frozen=True)
class Recommendation:
    """A single actionable recommendation."""
    type: str
    priority: Priority
    title: str
    description: str
    impact: str
    effort: Effort
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.type,
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "impact": self.impact,
            "effort": self.effort.value,
            "data": dict(self.data),
        }


@dataclass(frozen=True)
class RecommendationInput:
    """
    Inputs to the recommendation engine.

    Only `rows` is required. Each optional field switches on the rules
    that need it.

    Attributes:
        rows: Query/page performance rows (PerformanceRow objects or dicts)
        ctr_analyses: CTR analyses paired with rows by index
        trends: Trend analyses keyed by query or page
        opportunities: Opportunity scores keyed by query or page
    """
    rows: Sequence[Union[PerformanceRow, Mapping[str, Any]]]
    ctr_analyses: Optional[Sequence[CtrAnalysis]] = None
    trends: Optional[Mapping[str, TrendAnalysis]] = None
    opportunities: Optional[Mapping[str, OpportunityScore]] = None


def is_question_query(query: str) -> bool:
    """Check whether a query opens with an interrogative word."""
    return bool(QUESTION_PATTERN.search((query or "").lower().strip()))


def find_cannibalizing_queries(
    rows: Iterable[PerformanceRow]
) -> Dict[str, List[PerformanceRow]]:
    """
    Group rows by query and keep queries served by more than one page.

    Args:
        rows: Performance rows

    Returns:
        Dict of query -> rows (one per distinct page, first occurrence kept)
    """
    by_query: Dict[str, Dict[str, PerformanceRow]] = {}
    for row in rows:
        pages = by_query.setdefault(row.query, {})
        if row.page not in pages:
            pages[row.page] = row

    return {
        query: list(pages.values())
        for query, pages in by_query.items()
        if len(pages) > 1
    }


def generate_recommendations(data: RecommendationInput) -> List[Recommendation]:
    """
    Generate recommendations from analysis data.

    Args:
        data: RecommendationInput with rows and optional analyses

    Returns:
        Unsorted list of recommendations. Use sort_recommendations() or
        deduplicate_recommendations() to order them.

    Raises:
        ValueError: If a dict row is missing a required metric
    """
    rows = to_rows(data.rows or [])
    recommendations: List[Recommendation] = []

    ctr_by_key: Dict[Tuple[str, str], CtrAnalysis] = {}
    if data.ctr_analyses is not None:
        for row, analysis in zip(rows, data.ctr_analyses):
            ctr_by_key[(row.query, row.page)] = analysis

    # Per-row rules
    for row in rows:
        ctr_analysis = ctr_by_key.get((row.query, row.page))
        for rec in (
            _check_title_optimization(row, ctr_analysis),
            _check_content_expansion(row),
            _check_page_two_content(row),
            _check_niche_keyword(row),
            _check_question_content(row),
        ):
            if rec is not None:
                recommendations.append(rec)

    # Cross-row rules
    for query, query_rows in find_cannibalizing_queries(rows).items():
        recommendations.append(_build_consolidation(query, query_rows))

    # Trend rules
    if data.trends is not None:
        for key, trend in data.trends.items():
            # First matching row in list order provides context
            matching_row = next(
                (r for r in rows if r.query == key or r.page == key),
                None,
            )
            rec = _check_declining_trend(key, trend, matching_row)
            if rec is not None:
                recommendations.append(rec)

    if data.opportunities is not None:
        recommendations = [
            _attach_opportunity(rec, data.opportunities) for rec in recommendations
        ]

    logger.debug(f"Generated {len(recommendations)} recommendations from {len(rows)} rows")
    return recommendations


def sort_recommendations(recommendations: Iterable[Recommendation]) -> List[Recommendation]:
    """
    Sort by priority (critical first), then by impressions descending.

    Impressions come from the recommendation's data bag, falling back to
    total_impressions. The sort is stable and returns a new list.

    Args:
        recommendations: Recommendations to sort

    Returns:
        New sorted list
    """
    return sorted(
        recommendations,
        key=lambda rec: (PRIORITY_ORDER[rec.priority], -_impressions_of(rec)),
    )


def deduplicate_recommendations(
    recommendations: Iterable[Recommendation]
) -> List[Recommendation]:
    """
    Keep only the highest-priority recommendation per (type, query, page).

    Recommendations without both a query and a page in their data are
    always kept.

    Args:
        recommendations: Possibly overlapping recommendations

    Returns:
        New sorted, deduplicated list
    """
    seen = set()
    result = []

    for rec in sort_recommendations(recommendations):
        query = rec.data.get("query")
        page = rec.data.get("page")
        if query and page:
            key = (rec.type, query, page)
            if key in seen:
                continue
            seen.add(key)
        result.append(rec)

    return result


# ============================================================================
# RULES
# ============================================================================

def _check_title_optimization(
    row: PerformanceRow,
    ctr_analysis: Optional[CtrAnalysis] = None
) -> Optional[Recommendation]:
    """Ranks in the top 3 but is not clicked: a title/snippet problem."""
    if row.position > 3:
        return None
    if row.impressions < MEDIUM_IMPRESSIONS_THRESHOLD:
        return None

    if ctr_analysis is not None:
        is_low_ctr = ctr_analysis.ctr_ratio < LOW_CTR_RATIO
    else:
        is_low_ctr = row.ctr < LOW_CTR_FALLBACK
    if not is_low_ctr:
        return None

    uplift = int(round_half_up((1 / max(row.ctr, 0.001) - 1) * 30))

    return Recommendation(
        type="title_optimization",
        priority=Priority.HIGH,
        title="Rewrite your title tag and meta description",
        description=(
            f'The page "{row.page}" ranks in position {row.position:.1f} for "{row.query}" '
            f"with {_fmt_count(row.impressions)} impressions but only a {row.ctr * 100:.1f}% CTR. "
            "This is significantly below the expected CTR for this position. "
            "Improving the title tag and meta description to be more compelling and relevant "
            "could substantially increase clicks."
        ),
        impact=f"Could increase clicks by {uplift}%+ by closing the CTR gap.",
        effort=Effort.LOW,
        data={
            "query": row.query,
            "page": row.page,
            "position": row.position,
            "impressions": row.impressions,
            "ctr": row.ctr,
            "ctr_ratio": ctr_analysis.ctr_ratio if ctr_analysis is not None else None,
        },
    )


def _check_content_expansion(row: PerformanceRow) -> Optional[Recommendation]:
    """On page 1 but outside the top 3 with real volume."""
    if row.position < 4 or row.position > 10:
        return None
    if row.impressions < HIGH_IMPRESSIONS_THRESHOLD:
        return None

    return Recommendation(
        type="content_expansion",
        priority=Priority.HIGH,
        title="Add internal links and expand content to push into top 3",
        description=(
            f'The page "{row.page}" ranks at position {row.position:.1f} for "{row.query}" '
            f"with {_fmt_count(row.impressions)} impressions. It is on page 1 but not in the top 3. "
            "Adding internal links from related pages, expanding the content depth, and improving "
            "on-page SEO signals could push it into the top positions where CTR is significantly higher."
        ),
        impact="Moving from position 5 to position 1 can increase CTR by 3-4x.",
        effort=Effort.MEDIUM,
        data=_row_evidence(row),
    )


def _check_page_two_content(row: PerformanceRow) -> Optional[Recommendation]:
    """Page 2 keyword with enough volume to justify investment."""
    if row.position < 11 or row.position > 20:
        return None
    if row.impressions < HIGH_IMPRESSIONS_THRESHOLD:
        return None

    return Recommendation(
        type="page_two_optimization",
        priority=Priority.MEDIUM,
        title="Page 2 keyword needs content refresh and link building",
        description=(
            f'The page "{row.page}" ranks at position {row.position:.1f} for "{row.query}" '
            f"with {_fmt_count(row.impressions)} impressions. This keyword is on page 2 of search results. "
            "A content refresh (updating information, improving structure, adding media) combined with "
            "link building could push this onto page 1 where the vast majority of clicks occur."
        ),
        impact="Moving from page 2 to page 1 typically increases traffic by 5-10x.",
        effort=Effort.HIGH,
        data=_row_evidence(row),
    )


def _build_consolidation(query: str, rows: List[PerformanceRow]) -> Recommendation:
    """Several pages compete for one query."""
    pages = [r.page for r in rows]
    total_impressions = sum(r.impressions for r in rows)
    page_list = ", ".join(f'"{p}"' for p in pages)

    return Recommendation(
        type="consolidation",
        priority=Priority.HIGH,
        title="Consolidate or canonicalize competing pages",
        description=(
            f'{len(pages)} pages are competing for the query "{query}": {page_list}. '
            "This keyword cannibalization can dilute ranking signals. "
            "Consider consolidating content into a single authoritative page and setting up "
            "301 redirects or canonical tags for the others."
        ),
        impact="Consolidation often leads to a single page ranking higher than any individual competing page.",
        effort=Effort.MEDIUM,
        data={
            "query": query,
            "pages": pages,
            "total_impressions": total_impressions,
            "page_count": len(pages),
        },
    )


def _check_declining_trend(
    key: str,
    trend: TrendAnalysis,
    row: Optional[PerformanceRow] = None
) -> Optional[Recommendation]:
    """Falling traffic needs an urgent refresh."""
    if trend.direction != TrendDirection.FALLING:
        return None
    if row is not None and row.impressions < MEDIUM_IMPRESSIONS_THRESHOLD:
        return None

    strength = (
        "This is a strong, consistent decline. "
        if trend.confidence >= 0.7
        else "The trend signal is moderate. "
    )

    return Recommendation(
        type="content_refresh",
        priority=Priority.CRITICAL,
        title="Urgent: content refresh needed to reverse declining trend",
        description=(
            f'Traffic for "{key}" is declining ({trend.percent_change:.1f}% change). '
            f"{strength}"
            "Immediate action is recommended: update the content with fresh information, "
            "improve the user experience, and check for any technical SEO issues. "
            "Also verify that competitors have not published superior content."
        ),
        impact="Stopping a decline early preserves existing traffic and can reverse losses.",
        effort=Effort.MEDIUM,
        data={
            "key": key,
            "percent_change": trend.percent_change,
            "confidence": trend.confidence,
            "direction": trend.direction.value,
            "impressions": row.impressions if row is not None else None,
        },
    )


def _check_niche_keyword(row: PerformanceRow) -> Optional[Recommendation]:
    """Ranks well but almost nobody searches for it."""
    if row.position > 5:
        return None
    if row.impressions >= NICHE_IMPRESSIONS_THRESHOLD:
        return None

    return Recommendation(
        type="low_value_keyword",
        priority=Priority.LOW,
        title="Niche keyword with minimal search volume",
        description=(
            f'The page "{row.page}" ranks at position {row.position:.1f} for "{row.query}" '
            f"but only received {_fmt_count(row.impressions)} impressions. This keyword has very low "
            "search volume and may not be worth dedicating significant optimization effort to."
        ),
        impact="Minimal. Focus effort on higher-volume opportunities instead.",
        effort=Effort.LOW,
        data=_row_evidence(row),
    )


def _check_question_content(row: PerformanceRow) -> Optional[Recommendation]:
    """Question query without a strong ranking: FAQ/how-to opportunity."""
    if not is_question_query(row.query):
        return None
    if row.impressions < MEDIUM_IMPRESSIONS_THRESHOLD:
        return None
    if row.position <= 3:
        return None

    return Recommendation(
        type="question_content",
        priority=Priority.MEDIUM,
        title="Create FAQ or how-to content for this question query",
        description=(
            f'The question "{row.query}" generates {_fmt_count(row.impressions)} impressions '
            f"but your page ranks at position {row.position:.1f}. "
            "Creating dedicated FAQ or how-to content that directly answers this question could "
            "significantly improve rankings. Consider adding structured data (FAQ schema) to "
            "increase the chance of appearing in featured snippets."
        ),
        impact="Question queries often trigger featured snippets, which can dramatically increase CTR.",
        effort=Effort.MEDIUM,
        data=_row_evidence(row),
    )


# ============================================================================
# INTERNALS
# ============================================================================

def _row_evidence(row: PerformanceRow) -> Dict[str, Any]:
    return {
        "query": row.query,
        "page": row.page,
        "position": row.position,
        "impressions": row.impressions,
    }


def _attach_opportunity(
    rec: Recommendation,
    opportunities: Mapping[str, OpportunityScore]
) -> Recommendation:
    """Copy the matching opportunity score into the evidence bag."""
    score = None
    for key_name in ("query", "page", "key"):
        key = rec.data.get(key_name)
        if key and key in opportunities:
            score = opportunities[key]
            break
    if score is None:
        return rec

    data = dict(rec.data)
    data["opportunity_score"] = score.score
    data["opportunity_priority"] = score.priority.value
    return Recommendation(
        type=rec.type,
        priority=rec.priority,
        title=rec.title,
        description=rec.description,
        impact=rec.impact,
        effort=rec.effort,
        data=data,
    )


def _impressions_of(rec: Recommendation) -> float:
    impressions = rec.data.get("impressions")
    if impressions is None:
        impressions = rec.data.get("total_impressions")
    return impressions or 0


def _fmt_count(value: float) -> str:
    """Thousands-separated count, without a trailing .0 for whole numbers."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"
