"""
Query Landscape

Summarizes a site's query mix: intent distribution, branded vs
non-branded split, position buckets and the top queries per intent.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from .comparison import aggregate_rows
from .intent import QueryIntent, classify_query, get_intent_distribution
from .models import PerformanceRow

logger = logging.getLogger(__name__)


TOP_QUERIES_PER_INTENT = 5

POSITION_BUCKETS = ("1-3", "4-10", "11-20", "20+")


@dataclass
class BrandSplit:
    branded_queries: int = 0
    branded_impressions: float = 0.0
    non_branded_queries: int = 0
    non_branded_impressions: float = 0.0

    @property
    def branded_share(self) -> float:
        total = self.branded_queries + self.non_branded_queries
        return self.branded_queries / total if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "branded_queries": self.branded_queries,
            "branded_impressions": self.branded_impressions,
            "non_branded_queries": self.non_branded_queries,
            "non_branded_impressions": self.non_branded_impressions,
            "branded_share": self.branded_share,
        }


@dataclass
class QueryLandscape:
    """Aggregate view of all queries for a site."""
    total_queries: int = 0
    total_clicks: float = 0.0
    total_impressions: float = 0.0
    average_position: float = 0.0
    intent_distribution: Dict[str, int] = field(default_factory=dict)
    brand_split: BrandSplit = field(default_factory=BrandSplit)
    position_buckets: Dict[str, int] = field(default_factory=dict)
    top_queries: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_queries": self.total_queries,
            "total_clicks": self.total_clicks,
            "total_impressions": self.total_impressions,
            "average_position": self.average_position,
            "intent_distribution": dict(self.intent_distribution),
            "brand_split": self.brand_split.to_dict(),
            "position_buckets": dict(self.position_buckets),
            "top_queries": {k: list(v) for k, v in self.top_queries.items()},
        }


def extract_brand_name(site_url: str) -> str:
    """
    Derive a brand term from a site URL or domain property.

    "https://www.example.com/" -> "example"
    "sc-domain:example.com" -> "example"

    Args:
        site_url: Site URL or "sc-domain:" property

    Returns:
        Host without scheme, "www." and top-level domain
    """
    cleaned = re.sub(r"^sc-domain:", "", site_url or "")
    cleaned = re.sub(r"^https?://", "", cleaned)
    cleaned = re.sub(r"^www\.", "", cleaned)
    cleaned = re.sub(r"/.*$", "", cleaned)

    parts = cleaned.split(".")
    return ".".join(parts[:-1]) if len(parts) > 1 else cleaned


def get_position_bucket(position: float) -> str:
    if position <= 3:
        return "1-3"
    elif position <= 10:
        return "4-10"
    elif position <= 20:
        return "11-20"
    else:
        return "20+"


def analyze_query_landscape(
    rows: Iterable[PerformanceRow],
    brand_terms: Sequence[str] = (),
    min_impressions: float = 5
) -> QueryLandscape:
    """
    Build the query landscape for a set of rows.

    Rows are first summed per query, so query+page rows are accepted.

    Args:
        rows: Performance rows
        brand_terms: Terms marking a query as branded (case-insensitive)
        min_impressions: Minimum impressions for a query to be included

    Returns:
        QueryLandscape (empty when no query passes the threshold)
    """
    totals = {
        query: t
        for query, t in aggregate_rows(rows, lambda r: r.query).items()
        if t.impressions >= min_impressions
    }

    terms = [t.lower().strip() for t in brand_terms if t and t.strip()]

    landscape = QueryLandscape(
        intent_distribution={intent.value: 0 for intent in QueryIntent},
        position_buckets={bucket: 0 for bucket in POSITION_BUCKETS},
    )
    if not totals:
        return landscape

    classified = [classify_query(q) for q in totals]
    landscape.intent_distribution = get_intent_distribution(classified)
    landscape.total_queries = len(totals)

    weighted_position = 0.0
    split = landscape.brand_split
    for query, t in totals.items():
        landscape.total_clicks += t.clicks
        landscape.total_impressions += t.impressions
        weighted_position += t.position * t.impressions
        landscape.position_buckets[get_position_bucket(t.position)] += 1

        lowered = query.lower()
        if any(term in lowered for term in terms):
            split.branded_queries += 1
            split.branded_impressions += t.impressions
        else:
            split.non_branded_queries += 1
            split.non_branded_impressions += t.impressions

    if landscape.total_impressions > 0:
        landscape.average_position = weighted_position / landscape.total_impressions

    for item in classified:
        landscape.top_queries.setdefault(item.intent.value, []).append({
            "query": item.query,
            "sub_type": item.sub_type,
            "clicks": totals[item.query].clicks,
            "impressions": totals[item.query].impressions,
            "ctr": totals[item.query].ctr,
            "position": totals[item.query].position,
        })
    for intent, queries in landscape.top_queries.items():
        queries.sort(key=lambda q: -q["clicks"])
        del queries[TOP_QUERIES_PER_INTENT:]

    logger.debug(f"Query landscape built from {landscape.total_queries} queries")
    return landscape
