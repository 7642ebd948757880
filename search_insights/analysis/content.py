"""
Content Planning

Two scans that answer "what content should exist that doesn't yet":

1. Content gaps - queries landing on the wrong page, zero-click queries,
   queries new this period, and queries only one page ranks for
2. What to build next - queries bucketed by intent (questions,
   comparisons, problems, buying) and grouped into topics, each with the
   content format its dominant intent calls for

Both group queries into topic clusters by a cheap prefix key. Clusters
need manual review; shared words are not shared meaning.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from urllib.parse import urlparse

from .intent import QueryIntent, classify_query
from .models import PerformanceRow, to_rows

logger = logging.getLogger(__name__)


# Gaps per category that feed topic clustering
MAX_CLUSTERED_GAPS = 20

# A topic needs at least this many members to count as a cluster
MIN_CLUSTER_SIZE = 2

# Single-page gaps need this multiple of the impressions threshold
SINGLE_PAGE_IMPRESSIONS_MULTIPLIER = 2

# Single-page gaps rank worse than this position
SINGLE_PAGE_MIN_POSITION = 5


# ============================================================================
# CONTENT GAPS
# ============================================================================

class ContentGapCategory(str, Enum):
    """Kind of content gap."""
    HOMEPAGE = "homepage"
    ZERO_CLICK = "zero_click"
    NEW_QUERY = "new_query"
    SINGLE_PAGE = "single_page"


GAP_ACTIONS = {
    ContentGapCategory.HOMEPAGE: (
        "Create a dedicated page targeting this query for better relevance and rankings."
    ),
    ContentGapCategory.ZERO_CLICK: (
        "Content exists but does not satisfy this query. Consider creating targeted content "
        "or improving the existing page to better match search intent."
    ),
    ContentGapCategory.NEW_QUERY: (
        "Emerging query. If high impressions, create or optimize content to capture this "
        "growing interest."
    ),
    ContentGapCategory.SINGLE_PAGE: (
        "Only one page ranks for this query. Create supporting content (hub-and-spoke model) "
        "to build topical authority."
    ),
}


@dataclass(frozen=True)
class ContentGap:
    """A query that needs new or better-targeted content."""
    query: str
    current_page: str
    impressions: float
    clicks: float
    position: float
    category: ContentGapCategory

    @property
    def action(self) -> str:
        return GAP_ACTIONS[self.category]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "current_page": self.current_page,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "position": self.position,
            "category": self.category.value,
            "action": self.action,
        }


@dataclass(frozen=True)
class GapCluster:
    """Content gaps sharing a topic prefix."""
    topic: str
    gaps: List[ContentGap]

    @property
    def total_impressions(self) -> float:
        return sum(g.impressions for g in self.gaps)

    @property
    def categories(self) -> List[ContentGapCategory]:
        """Gap categories present, in first-seen order."""
        return list(dict.fromkeys(g.category for g in self.gaps))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "query_count": len(self.gaps),
            "total_impressions": self.total_impressions,
            "categories": [c.value for c in self.categories],
            "queries": [g.query for g in self.gaps],
        }


@dataclass
class ContentGapReport:
    """Content gaps by category plus the topic clusters they form."""
    homepage: List[ContentGap] = field(default_factory=list)
    zero_click: List[ContentGap] = field(default_factory=list)
    new_queries: List[ContentGap] = field(default_factory=list)
    single_page: List[ContentGap] = field(default_factory=list)
    clusters: List[GapCluster] = field(default_factory=list)
    homepage_url: Optional[str] = None

    @property
    def clustered_gaps(self) -> List[ContentGap]:
        """The top gaps of each category, as used for clustering."""
        return (
            self.homepage[:MAX_CLUSTERED_GAPS]
            + self.zero_click[:MAX_CLUSTERED_GAPS]
            + self.new_queries[:MAX_CLUSTERED_GAPS]
            + self.single_page[:MAX_CLUSTERED_GAPS]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        gaps = self.clustered_gaps
        return {
            "summary": {
                "total_gaps": len(gaps),
                "total_impressions": sum(g.impressions for g in gaps),
                "cluster_count": len(self.clusters),
                "homepage": _gap_summary(self.homepage),
                "zero_click": _gap_summary(self.zero_click),
                "new_query": _gap_summary(self.new_queries),
                "single_page": _gap_summary(self.single_page),
            },
            "homepage_url": self.homepage_url,
            "homepage": [g.to_dict() for g in self.homepage],
            "zero_click": [g.to_dict() for g in self.zero_click],
            "new_queries": [g.to_dict() for g in self.new_queries],
            "single_page": [g.to_dict() for g in self.single_page],
            "clusters": [c.to_dict() for c in self.clusters],
        }


def is_homepage_url(url: str) -> bool:
    """Check whether an absolute URL points at the site root."""
    parsed = urlparse(url or "")
    return bool(parsed.scheme and parsed.netloc) and parsed.path in ("", "/")


def get_gap_topic_key(query: str) -> str:
    """Topic key for a gap: the first two words of the query."""
    words = query.lower().split()
    if len(words) >= 2:
        return " ".join(words[:2])
    return words[0] if words else query


def find_content_gaps(
    rows: Iterable[Union[PerformanceRow, Mapping[str, Any]]],
    previous_rows: Optional[Iterable[Union[PerformanceRow, Mapping[str, Any]]]] = None,
    min_impressions: float = 20
) -> ContentGapReport:
    """
    Find queries that need new or better-targeted content.

    Categories:
    - homepage: non-navigational queries ranking on the site root
    - zero_click: queries with impressions but no clicks on any page
    - new_query: queries absent from the previous period
    - single_page: queries with one ranking row, position > 5 and at
      least twice the impressions threshold

    Args:
        rows: Query/page rows for the current period
        previous_rows: Rows for the previous period (only queries are used).
            None skips the new_query category.
        min_impressions: Minimum impressions for a row to be considered

    Returns:
        ContentGapReport with each category sorted by impressions descending
    """
    rows = [r for r in to_rows(rows) if r.impressions >= min_impressions]
    previous_queries = None if previous_rows is None else {r.query for r in to_rows(previous_rows)}
    report = ContentGapReport()

    by_page: Dict[str, List[PerformanceRow]] = {}
    by_query: Dict[str, List[PerformanceRow]] = {}
    for row in rows:
        by_page.setdefault(row.page, []).append(row)
        by_query.setdefault(row.query, []).append(row)

    report.homepage_url = next((p for p in by_page if is_homepage_url(p)), None)
    if report.homepage_url is not None:
        for row in by_page[report.homepage_url]:
            if classify_query(row.query).intent == QueryIntent.NAVIGATIONAL:
                continue
            report.homepage.append(_gap(row, ContentGapCategory.HOMEPAGE))

    for query, query_rows in by_query.items():
        best = max(query_rows, key=lambda r: r.impressions)
        total_impressions = sum(r.impressions for r in query_rows)
        total_clicks = sum(r.clicks for r in query_rows)

        if total_clicks == 0 and total_impressions >= min_impressions:
            report.zero_click.append(ContentGap(
                query=query,
                current_page=best.page,
                impressions=total_impressions,
                clicks=0,
                position=best.position,
                category=ContentGapCategory.ZERO_CLICK,
            ))

        if previous_queries is not None and query not in previous_queries:
            report.new_queries.append(ContentGap(
                query=query,
                current_page=best.page,
                impressions=total_impressions,
                clicks=total_clicks,
                position=best.position,
                category=ContentGapCategory.NEW_QUERY,
            ))

        if len(query_rows) == 1:
            row = query_rows[0]
            if (row.impressions >= min_impressions * SINGLE_PAGE_IMPRESSIONS_MULTIPLIER
                    and row.position > SINGLE_PAGE_MIN_POSITION):
                report.single_page.append(_gap(row, ContentGapCategory.SINGLE_PAGE))

    for gaps in (report.homepage, report.zero_click, report.new_queries, report.single_page):
        gaps.sort(key=lambda g: -g.impressions)

    topics: Dict[str, List[ContentGap]] = {}
    for gap in report.clustered_gaps:
        topics.setdefault(get_gap_topic_key(gap.query), []).append(gap)

    report.clusters = sorted(
        (GapCluster(topic, gaps) for topic, gaps in topics.items() if len(gaps) >= MIN_CLUSTER_SIZE),
        key=lambda c: -c.total_impressions,
    )

    logger.debug(
        f"Content gaps: {len(report.homepage)} homepage, {len(report.zero_click)} zero click, "
        f"{len(report.new_queries)} new, {len(report.single_page)} single page"
    )
    return report


def _gap(row: PerformanceRow, category: ContentGapCategory) -> ContentGap:
    return ContentGap(
        query=row.query,
        current_page=row.page,
        impressions=row.impressions,
        clicks=row.clicks,
        position=row.position,
        category=category,
    )


def _gap_summary(gaps: List[ContentGap]) -> Dict[str, Any]:
    return {
        "count": len(gaps),
        "impressions": sum(g.impressions for g in gaps),
    }


# ============================================================================
# WHAT TO BUILD NEXT
# ============================================================================

QUESTION_SUB_TYPES = {"how-to", "definition", "explanation", "temporal", "location", "identity"}
COMPARISON_SUB_TYPES = {"comparison", "alternative", "best", "review"}

# Intent words removed before picking topic words
INTENT_WORDS_PATTERN = re.compile(
    r"\b(how to|what is|what are|why does|why is|best|top|review|vs|versus|fix|error|price|buy|cheap)\b"
)

CONTENT_BY_INTENT = {
    QueryIntent.INFORMATIONAL: "Create a comprehensive guide or FAQ page covering this topic in depth.",
    QueryIntent.INVESTIGATIONAL: (
        "Create a comparison or review page. Include pros/cons, feature tables, "
        "and clear recommendations."
    ),
    QueryIntent.PROBLEM_SOLVING: (
        "Create a troubleshooting guide with step-by-step solutions. Include common "
        "error messages and fixes."
    ),
    QueryIntent.TRANSACTIONAL: (
        "Create a product/service page with clear pricing, benefits, and CTAs. Consider "
        "adding reviews or social proof."
    ),
}
DEFAULT_CONTENT = "Create targeted content matching the dominant search intent for this topic."


@dataclass(frozen=True)
class PlannedQuery:
    """A query aggregated across pages, with its intent."""
    query: str
    impressions: float
    clicks: float
    best_position: float
    pages: List[str]
    intent: QueryIntent
    sub_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "best_position": self.best_position,
            "pages": list(self.pages),
            "intent": self.intent.value,
            "sub_type": self.sub_type,
        }


@dataclass(frozen=True)
class TopicGroup:
    """Queries sharing a topic, with the content their intent calls for."""
    topic: str
    queries: List[PlannedQuery]
    dominant_intent: QueryIntent

    @property
    def total_impressions(self) -> float:
        return sum(q.impressions for q in self.queries)

    @property
    def total_clicks(self) -> float:
        return sum(q.clicks for q in self.queries)

    @property
    def intents(self) -> List[QueryIntent]:
        return list(dict.fromkeys(q.intent for q in self.queries))

    @property
    def recommendation(self) -> str:
        return CONTENT_BY_INTENT.get(self.dominant_intent, DEFAULT_CONTENT)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "query_count": len(self.queries),
            "total_impressions": self.total_impressions,
            "total_clicks": self.total_clicks,
            "intents": [i.value for i in self.intents],
            "dominant_intent": self.dominant_intent.value,
            "recommendation": self.recommendation,
            "queries": [q.query for q in self.queries],
        }


@dataclass
class BuildNextReport:
    """Intent buckets and topic groups for content planning."""
    total_queries: int = 0
    questions: List[PlannedQuery] = field(default_factory=list)
    comparisons: List[PlannedQuery] = field(default_factory=list)
    problems: List[PlannedQuery] = field(default_factory=list)
    buying: List[PlannedQuery] = field(default_factory=list)
    topics: List[TopicGroup] = field(default_factory=list)

    @property
    def clusters(self) -> List[TopicGroup]:
        """Topics with more than one query."""
        return [t for t in self.topics if len(t.queries) >= MIN_CLUSTER_SIZE]

    @property
    def top_priority(self) -> Optional[TopicGroup]:
        return self.topics[0] if self.topics else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_queries": self.total_queries,
            "topic_count": len(self.topics),
            "top_priority": self.top_priority.to_dict() if self.top_priority else None,
            "buckets": {
                "questions": _bucket(self.questions),
                "comparisons": _bucket(self.comparisons),
                "problems": _bucket(self.problems),
                "buying": _bucket(self.buying),
            },
            "clusters": [t.to_dict() for t in self.clusters],
            "topics": [t.to_dict() for t in self.topics],
        }


def extract_topic_key(query: str) -> str:
    """
    Core topic of a query: intent words stripped, first two words of 3+ letters.

    Examples:
        "how to fix wifi router" -> "wifi router"
        "best running shoes" -> "running shoes"
    """
    lowered = query.lower()
    cleaned = re.sub(r"\s+", " ", INTENT_WORDS_PATTERN.sub("", lowered)).strip()
    words = [w for w in cleaned.split(" ") if len(w) > 2]
    if len(words) >= 2:
        return " ".join(words[:2])
    if words:
        return words[0]
    return lowered.split(" ")[0] or "other"


def find_what_to_build_next(
    rows: Iterable[Union[PerformanceRow, Mapping[str, Any]]],
    min_impressions: float = 10
) -> BuildNextReport:
    """
    Plan content from search demand, grouped by intent and topic.

    Buckets:
    - questions: informational how-to/definition/explanation/temporal/
      location/identity queries
    - comparisons: investigational comparison/alternative/best/review queries
    - problems: problem-solving queries
    - buying: transactional queries

    Args:
        rows: Query/page rows
        min_impressions: Minimum impressions for a row to be considered

    Returns:
        BuildNextReport; buckets and topics sorted by impressions descending
    """
    aggregated: Dict[str, Dict[str, Any]] = {}
    for row in to_rows(rows):
        if row.impressions < min_impressions:
            continue
        entry = aggregated.get(row.query)
        if entry is None:
            aggregated[row.query] = {
                "impressions": row.impressions,
                "clicks": row.clicks,
                "best_position": row.position,
                "pages": [row.page],
            }
            continue
        entry["impressions"] += row.impressions
        entry["clicks"] += row.clicks
        entry["best_position"] = min(entry["best_position"], row.position)
        if row.page not in entry["pages"]:
            entry["pages"].append(row.page)

    planned = []
    for query, entry in aggregated.items():
        classified = classify_query(query)
        planned.append(PlannedQuery(
            query=query,
            intent=classified.intent,
            sub_type=classified.sub_type,
            **entry,
        ))

    report = BuildNextReport(total_queries=len(planned))
    for q in planned:
        if q.intent == QueryIntent.INFORMATIONAL and q.sub_type in QUESTION_SUB_TYPES:
            report.questions.append(q)
        elif q.intent == QueryIntent.INVESTIGATIONAL and q.sub_type in COMPARISON_SUB_TYPES:
            report.comparisons.append(q)
        elif q.intent == QueryIntent.PROBLEM_SOLVING:
            report.problems.append(q)
        elif q.intent == QueryIntent.TRANSACTIONAL:
            report.buying.append(q)

    for bucket in (report.questions, report.comparisons, report.problems, report.buying):
        bucket.sort(key=lambda q: -q.impressions)

    topics: Dict[str, List[PlannedQuery]] = {}
    for q in planned:
        topics.setdefault(extract_topic_key(q.query), []).append(q)

    report.topics = sorted(
        (
            TopicGroup(topic, queries, Counter(q.intent for q in queries).most_common(1)[0][0])
            for topic, queries in topics.items()
        ),
        key=lambda t: -t.total_impressions,
    )

    logger.debug(f"Planned {len(planned)} queries into {len(report.topics)} topics")
    return report


def _bucket(queries: List[PlannedQuery]) -> Dict[str, Any]:
    return {
        "count": len(queries),
        "impressions": sum(q.impressions for q in queries),
        "queries": [q.to_dict() for q in queries],
    }
