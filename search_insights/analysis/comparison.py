"""
Period Comparison

Compares a current and a previous period of performance rows to find
pages losing traffic and queries that are new or growing fast.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from .intent import QueryIntent, classify_query
from .models import PerformanceRow

logger = logging.getLogger(__name__)


# Click change (percent) below which a page counts as declining
DECLINE_THRESHOLD_PCT = -20.0

# Position change (positive = worse) that marks a ranking drop
POSITION_DROP_THRESHOLD = 2.0

# Current impressions below this share of previous mark a demand drop
IMPRESSION_DROP_RATIO = 0.7

# Impression growth (as a fraction) needed for an "emerging" query
EMERGING_GROWTH = 1.0


class DeclineCause(str, Enum):
    """Likely reason a page lost clicks."""
    POSITION_DROP = "position_drop"
    CTR_DROP = "ctr_drop"
    IMPRESSION_DROP = "impression_drop"


class QueryStatus(str, Enum):
    NEW = "new"
    EMERGING = "emerging"


@dataclass
class Totals:
    """Summed metrics for one page or query across rows."""
    clicks: float = 0.0
    impressions: float = 0.0
    weighted_position: float = 0.0
    positions: List[float] = field(default_factory=list)

    def add(self, row: PerformanceRow) -> None:
        self.clicks += row.clicks
        self.impressions += row.impressions
        self.weighted_position += row.position * row.impressions
        self.positions.append(row.position)

    @property
    def position(self) -> float:
        """Impression-weighted average position."""
        if self.impressions > 0:
            return self.weighted_position / self.impressions
        return sum(self.positions) / len(self.positions) if self.positions else 0.0

    @property
    def ctr(self) -> float:
        return self.clicks / self.impressions if self.impressions > 0 else 0.0


def aggregate_rows(
    rows: Iterable[PerformanceRow],
    key: Callable[[PerformanceRow], str]
) -> Dict[str, Totals]:
    """
    Sum rows that share a key.

    Args:
        rows: Performance rows
        key: Function extracting the grouping key (e.g. page or query)

    Returns:
        Dict of key -> Totals, in first-seen order
    """
    totals: Dict[str, Totals] = {}
    for row in rows:
        totals.setdefault(key(row), Totals()).add(row)
    return totals


@dataclass(frozen=True)
class DecliningPage:
    """A page that lost a significant share of its clicks."""
    page: str
    current_clicks: float
    previous_clicks: float
    click_change: float
    click_change_pct: float
    current_impressions: float
    previous_impressions: float
    current_position: float
    previous_position: float
    position_change: float   # positive = worse
    lost_clicks: float
    causes: List[DeclineCause] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "page": self.page,
            "current_clicks": self.current_clicks,
            "previous_clicks": self.previous_clicks,
            "click_change": self.click_change,
            "click_change_pct": self.click_change_pct,
            "current_impressions": self.current_impressions,
            "previous_impressions": self.previous_impressions,
            "current_position": self.current_position,
            "previous_position": self.previous_position,
            "position_change": self.position_change,
            "lost_clicks": self.lost_clicks,
            "causes": [c.value for c in self.causes],
        }


@dataclass(frozen=True)
class NewQuery:
    """A query that is absent from, or much bigger than, the previous period."""
    query: str
    status: QueryStatus
    impressions: float
    clicks: float
    ctr: float
    position: float
    intent: QueryIntent
    growth_pct: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "status": self.status.value,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "ctr": self.ctr,
            "position": self.position,
            "intent": self.intent.value,
            "growth_pct": self.growth_pct,
        }


def find_declining_pages(
    current_rows: Iterable[PerformanceRow],
    previous_rows: Iterable[PerformanceRow],
    min_previous_clicks: float = 10
) -> List[DecliningPage]:
    """
    Find pages whose clicks dropped more than 20% period over period.

    Only pages present in both periods are compared.

    Args:
        current_rows: Rows for the current period
        previous_rows: Rows for the previous period
        min_previous_clicks: Minimum previous-period clicks to consider a page

    Returns:
        DecliningPage list sorted by lost clicks descending
    """
    current = aggregate_rows(current_rows, lambda r: r.page)
    previous = aggregate_rows(previous_rows, lambda r: r.page)

    declining = []
    for page, now in current.items():
        before = previous.get(page)
        if before is None or before.clicks < min_previous_clicks:
            continue

        click_change = now.clicks - before.clicks
        click_change_pct = click_change / before.clicks * 100 if before.clicks > 0 else 0.0
        if click_change_pct >= DECLINE_THRESHOLD_PCT:
            continue

        position_change = now.position - before.position

        causes = []
        if position_change > POSITION_DROP_THRESHOLD:
            causes.append(DeclineCause.POSITION_DROP)
        elif abs(position_change) <= POSITION_DROP_THRESHOLD:
            causes.append(DeclineCause.CTR_DROP)
        if now.impressions < before.impressions * IMPRESSION_DROP_RATIO:
            causes.append(DeclineCause.IMPRESSION_DROP)

        declining.append(DecliningPage(
            page=page,
            current_clicks=now.clicks,
            previous_clicks=before.clicks,
            click_change=click_change,
            click_change_pct=click_change_pct,
            current_impressions=now.impressions,
            previous_impressions=before.impressions,
            current_position=now.position,
            previous_position=before.position,
            position_change=position_change,
            lost_clicks=before.clicks - now.clicks,
            causes=causes,
        ))

    declining.sort(key=lambda p: -p.lost_clicks)
    logger.debug(f"Found {len(declining)} declining pages out of {len(current)}")
    return declining


def find_new_queries(
    current_rows: Iterable[PerformanceRow],
    previous_rows: Iterable[PerformanceRow],
    min_impressions: float = 5
) -> List[NewQuery]:
    """
    Find queries that are new this period or grew impressions by >100%.

    Args:
        current_rows: Rows for the current period
        previous_rows: Rows for the previous period
        min_impressions: Minimum current-period impressions for a query

    Returns:
        NewQuery list sorted by impressions descending
    """
    current = aggregate_rows(current_rows, lambda r: r.query)
    previous = aggregate_rows(previous_rows, lambda r: r.query)

    results = []
    for query, now in current.items():
        if now.impressions < min_impressions:
            continue

        before = previous.get(query)
        growth = None
        if before is None:
            status = QueryStatus.NEW
        elif before.impressions > 0:
            growth = (now.impressions - before.impressions) / before.impressions
            if growth <= EMERGING_GROWTH:
                continue
            status = QueryStatus.EMERGING
        else:
            continue

        results.append(NewQuery(
            query=query,
            status=status,
            impressions=now.impressions,
            clicks=now.clicks,
            ctr=now.ctr,
            position=now.position,
            intent=classify_query(query).intent,
            growth_pct=growth * 100 if growth is not None else None,
        ))

    results.sort(key=lambda q: -q.impressions)
    return results
