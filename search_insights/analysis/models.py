"""
Input Data Models

Defines the externally sourced records the analysis modules consume:
- Performance rows (query/page metrics from the search analytics source)
- Time-series points for trend detection
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union


@dataclass(frozen=True)
class PerformanceRow:
    """A single query/page row of search performance data."""
    query: str
    page: str
    clicks: float
    impressions: float
    ctr: float        # 0-1
    position: float   # average rank, 1 = top

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PerformanceRow":
        """
        Build a row from a plain dict.

        Accepts either flat rows ({"query": ..., "page": ...}) or the raw
        search analytics shape where dimensions arrive as a "keys" list
        ordered [query, page].

        Raises:
            ValueError: If a required metric is missing or not numeric
        """
        keys = data.get("keys") or []
        query = data.get("query", keys[0] if len(keys) > 0 else "")
        page = data.get("page", keys[1] if len(keys) > 1 else "")

        metrics = {}
        for name in ("clicks", "impressions", "position"):
            value = data.get(name)
            if value is None:
                raise ValueError(f"Row is missing required field '{name}'")
            try:
                metrics[name] = float(value)
            except (TypeError, ValueError):
                raise ValueError(f"Row field '{name}' is not numeric: {value!r}")

        ctr = data.get("ctr")
        if ctr is None:
            impressions = metrics["impressions"]
            ctr = metrics["clicks"] / impressions if impressions > 0 else 0.0

        return cls(
            query=str(query or ""),
            page=str(page or ""),
            clicks=metrics["clicks"],
            impressions=metrics["impressions"],
            ctr=float(ctr),
            position=metrics["position"],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class TrendPoint:
    """One observation in a time series."""
    date: str   # ISO date, e.g. "2024-01-15"
    value: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrendPoint":
        return cls(date=str(data["date"]), value=float(data["value"]))


def row_key(row: PerformanceRow) -> Optional[str]:
    """Lookup key for per-row side data: the query, falling back to the page."""
    return row.query or row.page or None


def to_rows(
    rows: Iterable[Union[PerformanceRow, Mapping[str, Any]]]
) -> List[PerformanceRow]:
    """
    Normalize a mix of rows and plain dicts into PerformanceRow objects.

    Raises:
        ValueError: If a dict row is missing a required metric
    """
    return [
        PerformanceRow.from_dict(row) if isinstance(row, Mapping) else row
        for row in rows
    ]
