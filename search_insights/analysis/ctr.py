"""
CTR Benchmark Model

Expected organic click-through rate by search position, and analysis of
actual CTR against that benchmark.

Benchmarks:
    Positions 1-10: industry-average curve (31.7% at #1 down to 2.2% at #10)
    Positions 11-20: flat 1.5%
    Positions 21+: flat 0.5%

Performance labels (ratio = actual / expected):
    >=1.5 excellent, >=1.1 good, >=0.8 average, >=0.5 below_average, else poor
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Union

from .helpers import benchmark_ctr
from .models import PerformanceRow

logger = logging.getLogger(__name__)


class CtrPerformance(str, Enum):
    """CTR performance relative to the positional benchmark."""
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    BELOW_AVERAGE = "below_average"
    POOR = "poor"


@dataclass(frozen=True)
class CtrAnalysis:
    """Actual vs. expected CTR for one position/CTR pair."""
    position: float
    actual_ctr: float
    expected_ctr: float
    ctr_gap: float      # actual - expected
    ctr_ratio: float    # actual / expected
    performance: CtrPerformance

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "position": self.position,
            "actual_ctr": self.actual_ctr,
            "expected_ctr": self.expected_ctr,
            "ctr_gap": self.ctr_gap,
            "ctr_ratio": self.ctr_ratio,
            "performance": self.performance.value,
        }


def get_expected_ctr(position: float) -> float:
    """
    Get the expected organic CTR for a search position.

    Fractional positions are rounded to the nearest rank (halves up) and
    anything below 1 is treated as rank 1.

    Args:
        position: Average SERP position

    Returns:
        Expected CTR as decimal (e.g. 0.317 for 31.7%)
    """
    return benchmark_ctr(position)


def get_ctr_performance_label(ratio: float) -> CtrPerformance:
    """
    Classify a CTR ratio (actual / expected) into a performance label.

    Args:
        ratio: Actual CTR divided by expected CTR

    Returns:
        CtrPerformance enum
    """
    if ratio >= 1.5:
        return CtrPerformance.EXCELLENT
    elif ratio >= 1.1:
        return CtrPerformance.GOOD
    elif ratio >= 0.8:
        return CtrPerformance.AVERAGE
    elif ratio >= 0.5:
        return CtrPerformance.BELOW_AVERAGE
    else:
        return CtrPerformance.POOR


def analyze_ctr(position: float, actual_ctr: float) -> CtrAnalysis:
    """
    Analyze a single position/CTR pair against the benchmark.

    Args:
        position: Average SERP position
        actual_ctr: Observed CTR as decimal

    Returns:
        CtrAnalysis with gap, ratio and performance label
    """
    expected_ctr = get_expected_ctr(position)
    ctr_ratio = actual_ctr / expected_ctr if expected_ctr > 0 else 0.0

    return CtrAnalysis(
        position=position,
        actual_ctr=actual_ctr,
        expected_ctr=expected_ctr,
        ctr_gap=actual_ctr - expected_ctr,
        ctr_ratio=ctr_ratio,
        performance=get_ctr_performance_label(ctr_ratio),
    )


def batch_analyze_ctr(
    rows: Iterable[Union[PerformanceRow, Mapping[str, Any]]]
) -> List[CtrAnalysis]:
    """
    Analyze many rows against the benchmark.

    Args:
        rows: PerformanceRow objects or dicts with "position" and "ctr"

    Returns:
        One CtrAnalysis per row, in input order
    """
    results = []
    for row in rows:
        if isinstance(row, Mapping):
            results.append(analyze_ctr(row["position"], row["ctr"]))
        else:
            results.append(analyze_ctr(row.position, row.ctr))

    logger.debug(f"Analyzed CTR for {len(results)} rows")
    return results
