"""
Trend Detector

Classifies a date/value series as rising, falling or stable using
ordinary least-squares regression, and flags sudden changes.

Outputs:
    slope          - change per day from the linear fit
    confidence     - R² of the fit (0-1, floored at 0)
    percent_change - (last - first) / |first| × 100
    volatility     - coefficient of variation (population stddev / |mean|)
    breakpoints    - days whose |Δ| exceeds 2× the mean |Δ|

Direction uses the slope normalized by |mean|, so a series is only called
rising/falling when it moves more than 0.5% of its mean per day.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from dateutil import parser as date_parser

from .helpers import mean, population_stddev
from .models import TrendPoint

logger = logging.getLogger(__name__)

# Normalized slope (per day, as a fraction of the mean) needed to call a direction
DIRECTION_THRESHOLD = 0.005

# A day-over-day change must exceed this multiple of the average change
BREAKPOINT_MULTIPLIER = 2

MIN_POINTS = 2

SECONDS_PER_DAY = 86400


class TrendDirection(str, Enum):
    """Overall direction of a series."""
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class BreakpointDirection(str, Enum):
    """Direction of a sudden change."""
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class Breakpoint:
    """A date where the series moved anomalously."""
    date: str
    change_percent: float
    direction: BreakpointDirection

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "change_percent": self.change_percent,
            "direction": self.direction.value,
        }


@dataclass(frozen=True)
class TrendAnalysis:
    """Complete trend analysis for a time series."""
    direction: TrendDirection
    slope: float
    percent_change: float
    volatility: float
    confidence: float
    breakpoints: List[Breakpoint] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "direction": self.direction.value,
            "slope": self.slope,
            "percent_change": self.percent_change,
            "volatility": self.volatility,
            "confidence": self.confidence,
            "breakpoints": [b.to_dict() for b in self.breakpoints],
            "summary": self.summary,
        }


def detect_trend(
    points: Iterable[Union[TrendPoint, Mapping[str, Any]]]
) -> TrendAnalysis:
    """
    Detect the trend, breakpoints and volatility of a time series.

    Points may arrive in any order; they are sorted by date first, so the
    result does not depend on input order. Points whose date cannot be
    parsed are dropped.

    Args:
        points: TrendPoint objects or {"date", "value"} dicts

    Returns:
        TrendAnalysis. With fewer than 2 usable points, a neutral stable
        result with zero confidence.
    """
    parsed = _parse_points(points)

    if len(parsed) < MIN_POINTS:
        return TrendAnalysis(
            direction=TrendDirection.STABLE,
            slope=0.0,
            percent_change=0.0,
            volatility=0.0,
            confidence=0.0,
            breakpoints=[],
            summary="Insufficient data for trend analysis (need at least 2 points).",
        )

    # Ties on date are broken by value so duplicate dates stay order-independent
    parsed.sort(key=lambda p: (p[0], p[2]))

    base_time = parsed[0][0]
    xs = [(ts - base_time).total_seconds() / SECONDS_PER_DAY for ts, _, _ in parsed]
    ys = [value for _, _, value in parsed]

    slope, _, r_squared = _linear_regression(xs, ys)

    first_value = ys[0]
    last_value = ys[-1]
    percent_change = (
        (last_value - first_value) / abs(first_value) * 100 if first_value != 0 else 0.0
    )

    mean_value = mean(ys)
    stddev_value = population_stddev(ys, mean_value)
    volatility = stddev_value / abs(mean_value) if mean_value != 0 else 0.0

    breakpoints = _find_breakpoints([date for _, date, _ in parsed], ys)

    normalized_slope = slope / abs(mean_value) if mean_value != 0 else 0.0
    if normalized_slope > DIRECTION_THRESHOLD:
        direction = TrendDirection.RISING
    elif normalized_slope < -DIRECTION_THRESHOLD:
        direction = TrendDirection.FALLING
    else:
        direction = TrendDirection.STABLE

    return TrendAnalysis(
        direction=direction,
        slope=slope,
        percent_change=percent_change,
        volatility=volatility,
        confidence=r_squared,
        breakpoints=breakpoints,
        summary=_build_summary(direction, percent_change, r_squared, breakpoints, volatility),
    )


def trend_to_signal(analysis: TrendAnalysis) -> float:
    """
    Convert a trend analysis into the opportunity scorer's trend input.

    Rising maps to +confidence, falling to -confidence, stable to 0, so a
    weak fit pulls the signal towards neutral.

    Args:
        analysis: Result of detect_trend

    Returns:
        Trend signal in [-1, 1]
    """
    if analysis.direction == TrendDirection.RISING:
        return analysis.confidence
    if analysis.direction == TrendDirection.FALLING:
        return -analysis.confidence
    return 0.0


# ============================================================================
# INTERNALS
# ============================================================================

def _parse_points(
    points: Iterable[Union[TrendPoint, Mapping[str, Any]]]
) -> List[Tuple[datetime, str, float]]:
    """Parse dates into UTC datetimes, dropping points that do not parse."""
    parsed = []
    for point in points:
        if isinstance(point, Mapping):
            date_str, value = point.get("date"), point.get("value")
        else:
            date_str, value = point.date, point.value

        timestamp = _parse_date(date_str)
        number = _parse_value(value)
        if timestamp is None or number is None:
            logger.warning(f"Skipping trend point with invalid date or value: {date_str!r}")
            continue
        parsed.append((timestamp, str(date_str), number))
    return parsed


def _parse_value(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_date(date_str: Any) -> Optional[datetime]:
    """
    Parse a date/datetime string; naive values are treated as UTC.

    ISO strings take the fast path. Anything else (e.g. "2024-1-5" without
    zero padding) goes through dateutil.
    """
    if not isinstance(date_str, str) or not date_str.strip():
        return None
    try:
        parsed = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = date_parser.parse(date_str)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _linear_regression(
    xs: Sequence[float],
    ys: Sequence[float]
) -> Tuple[float, float, float]:
    """
    Least-squares fit of ys on xs.

    Returns:
        (slope, intercept, r_squared) with r_squared floored at 0
    """
    n = len(xs)
    if n < MIN_POINTS:
        return 0.0, (ys[0] if ys else 0.0), 0.0

    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0, sum_y / n, 0.0

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    mean_y = sum_y / n
    ss_tot = sum((y - mean_y) ** 2 for y in ys)
    ss_res = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, ys))

    r_squared = 0.0 if ss_tot == 0 else 1 - ss_res / ss_tot
    return slope, intercept, max(0.0, r_squared)


def _find_breakpoints(dates: Sequence[str], ys: Sequence[float]) -> List[Breakpoint]:
    """Flag days whose absolute change exceeds 2× the mean absolute change."""
    deltas = [ys[i] - ys[i - 1] for i in range(1, len(ys))]
    avg_change = mean(abs(d) for d in deltas)
    if avg_change <= 0:
        return []

    breakpoints = []
    for i, change in enumerate(deltas, start=1):
        if abs(change) <= BREAKPOINT_MULTIPLIER * avg_change:
            continue
        previous = ys[i - 1]
        change_pct = abs(change) / abs(previous) * 100 if previous != 0 else 0.0
        breakpoints.append(Breakpoint(
            date=dates[i],
            change_percent=change_pct,
            direction=BreakpointDirection.UP if change > 0 else BreakpointDirection.DOWN,
        ))
    return breakpoints


def _build_summary(
    direction: TrendDirection,
    percent_change: float,
    confidence: float,
    breakpoints: Sequence[Breakpoint],
    volatility: float
) -> str:
    """Compose a short deterministic description of the trend."""
    labels = {
        TrendDirection.RISING: "upward",
        TrendDirection.FALLING: "downward",
        TrendDirection.STABLE: "stable",
    }
    sign = "+" if percent_change >= 0 else ""
    parts = [f"Trend is {labels[direction]} ({sign}{percent_change:.1f}% over the period)."]

    if confidence >= 0.7:
        parts.append("Strong trend signal.")
    elif confidence >= 0.4:
        parts.append("Moderate trend signal.")
    else:
        parts.append("Weak trend signal; data is noisy.")

    if volatility > 0.5:
        parts.append("High volatility detected.")
    elif volatility > 0.2:
        parts.append("Moderate volatility.")

    if breakpoints:
        plural = "s" if len(breakpoints) > 1 else ""
        parts.append(f"{len(breakpoints)} sudden change{plural} detected.")

    return " ".join(parts)
