"""
Pytest Configuration and Shared Fixtures

Provides common fixtures and configuration for all test modules.
"""

import pytest
from datetime import date, timedelta
from typing import Any, Callable, Dict, List

from search_insights.analysis import PerformanceRow


# ============================================================================
# Row Fixtures
# ============================================================================

@pytest.fixture
def make_row() -> Callable[..., PerformanceRow]:
    """Factory for performance rows with sensible defaults."""
    def _make(
        query: str = "seo audit tool",
        page: str = "https://example.com/audit",
        clicks: float = 10,
        impressions: float = 1000,
        ctr: float = None,
        position: float = 5.0,
    ) -> PerformanceRow:
        if ctr is None:
            ctr = clicks / impressions if impressions else 0.0
        return PerformanceRow(
            query=query,
            page=page,
            clicks=clicks,
            impressions=impressions,
            ctr=ctr,
            position=position,
        )
    return _make


@pytest.fixture
def sample_rows(make_row) -> List[PerformanceRow]:
    """A small but varied query/page export."""
    return [
        # Top-3 with poor CTR
        make_row("seo audit tool", "https://example.com/audit", clicks=10, impressions=5000, ctr=0.002, position=2.0),
        # Page 1, outside top 3
        make_row("keyword research", "https://example.com/keywords", clicks=80, impressions=2000, ctr=0.04, position=6.0),
        # Page 2
        make_row("backlink checker", "https://example.com/backlinks", clicks=15, impressions=3000, ctr=0.005, position=14.0),
        # Question query
        make_row("how to do an seo audit", "https://example.com/blog/audit", clicks=20, impressions=800, ctr=0.025, position=7.0),
        # Niche keyword
        make_row("example seo widget", "https://example.com/widget", clicks=1, impressions=4, ctr=0.25, position=1.0),
        # Cannibalized query
        make_row("rank tracker", "https://example.com/rank", clicks=30, impressions=900, ctr=0.033, position=8.0),
        make_row("rank tracker", "https://example.com/blog/rank", clicks=5, impressions=400, ctr=0.0125, position=12.0),
    ]


@pytest.fixture
def raw_rows() -> List[Dict[str, Any]]:
    """Rows as returned by a search analytics export (dimension keys list)."""
    return [
        {"keys": ["seo audit tool", "https://example.com/audit"], "clicks": 10, "impressions": 5000, "ctr": 0.002, "position": 2.0},
        {"keys": ["rank tracker", "https://example.com/rank"], "clicks": 30, "impressions": 900, "ctr": 0.0333, "position": 8.0},
        {"keys": ["rank tracker", "https://example.com/blog/rank"], "clicks": 5, "impressions": 400, "ctr": 0.0125, "position": 12.0},
    ]


# ============================================================================
# Time Series Fixtures
# ============================================================================

def daily_series(values: List[float], start: date = date(2024, 1, 1)) -> List[Dict[str, Any]]:
    """Build consecutive daily points from a list of values."""
    return [
        {"date": (start + timedelta(days=i)).isoformat(), "value": v}
        for i, v in enumerate(values)
    ]


@pytest.fixture
def make_series() -> Callable[..., List[Dict[str, Any]]]:
    return daily_series


@pytest.fixture
def rising_points() -> List[Dict[str, Any]]:
    return daily_series([100 + 10 * i for i in range(30)])


@pytest.fixture
def falling_points() -> List[Dict[str, Any]]:
    return daily_series([400 - 10 * i for i in range(30)])


@pytest.fixture
def flat_points() -> List[Dict[str, Any]]:
    return daily_series([100.0] * 14)
