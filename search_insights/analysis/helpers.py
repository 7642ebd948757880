"""
Analysis Helper Functions and Constants

Contains the CTR benchmark curve, shared enums, and small numeric utilities
used across all analysis modules.
"""

import math
from enum import Enum
from typing import Dict, Iterable, List, Optional


# ============================================================================
# CTR CURVE (industry-average organic CTR by position)
# ============================================================================

CTR_CURVE: Dict[int, float] = {
    1: 0.317,   # 31.7% CTR for position 1
    2: 0.247,   # 24.7%
    3: 0.187,   # 18.7%
    4: 0.136,   # 13.6%
    5: 0.095,   # 9.5%
    6: 0.062,   # 6.2%
    7: 0.042,   # 4.2%
    8: 0.031,   # 3.1%
    9: 0.024,   # 2.4%
    10: 0.022,  # 2.2%
}

# Flat average for positions 11-20
PAGE_TWO_CTR = 0.015

# Floor for positions 21+
DEEP_CTR = 0.005


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round with halves going up (1.5 -> 2, 2.5 -> 3).

    Python's built-in round() uses banker's rounding, which would put
    position 2.5 on rank 2 instead of rank 3.

    Args:
        value: Number to round
        digits: Decimal places to keep

    Returns:
        Rounded value
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def benchmark_ctr(position: float) -> float:
    """
    Look up the benchmark CTR for a (possibly fractional) position.

    Args:
        position: Average SERP position

    Returns:
        Expected CTR as decimal (always > 0)
    """
    rank = max(1, int(round_half_up(position)))
    if rank in CTR_CURVE:
        return CTR_CURVE[rank]
    if rank <= 20:
        return PAGE_TWO_CTR
    return DEEP_CTR


# ============================================================================
# PRIORITY & EFFORT
# ============================================================================

class Priority(str, Enum):
    """Urgency of an opportunity or recommendation."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Effort(str, Enum):
    """Estimated effort to act on a recommendation."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Lower rank = more urgent
PRIORITY_ORDER: Dict[Priority, int] = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


# ============================================================================
# NUMERIC HELPERS
# ============================================================================

def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp a value into [low, high]."""
    return max(low, min(high, value))


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_stddev(values: List[float], avg: Optional[float] = None) -> float:
    """
    Population standard deviation.

    Args:
        values: Numbers to measure
        avg: Pre-computed mean (optional)

    Returns:
        Standard deviation, 0.0 for an empty sequence
    """
    if not values:
        return 0.0
    m = mean(values) if avg is None else avg
    return math.sqrt(sum((v - m) ** 2 for v in values) / len(values))
