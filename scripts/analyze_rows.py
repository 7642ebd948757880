#!/usr/bin/env python3
"""
Search Performance Analysis Runner

Runs the analysis engine over exported search performance rows and
prints a JSON report with:
1. Prioritized recommendations
2. Quick wins
3. Query landscape
4. What to build next, by intent and topic
5. Content gaps (new-query gaps need --previous)
6. Declining pages and new queries (with --previous)

Usage:
    # Rows as a JSON list, or a {"rows": [...]} API export:
    python scripts/analyze_rows.py rows.json

    # With options:
    python scripts/analyze_rows.py rows.json \
        --previous previous.json \
        --trends trends.json \
        --brand example \
        --min-impressions 50
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from search_insights.analysis import (
    PerformanceRow,
    RecommendationInput,
    analyze_query_landscape,
    batch_analyze_ctr,
    deduplicate_recommendations,
    detect_trend,
    find_declining_pages,
    find_content_gaps,
    find_new_queries,
    find_quick_wins,
    find_what_to_build_next,
    generate_recommendations,
    score_rows,
    trend_to_signal,
)
from search_insights.utils.config import get_settings

# Configure logging (stderr keeps stdout clean for the JSON report)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def load_rows(path: str) -> List[PerformanceRow]:
    """
    Load performance rows from a JSON file.

    Raises:
        ValueError: If the file is not a row list or a row is malformed
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("rows", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of rows")

    return [PerformanceRow.from_dict(item) for item in data]


def load_trends(path: str) -> Dict[str, Any]:
    """Load {key: [{"date", "value"}, ...]} series and run trend detection."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected an object of series keyed by query or page")

    return {key: detect_trend(points) for key, points in data.items()}


def run_analysis(
    rows: List[PerformanceRow],
    previous_rows: Optional[List[PerformanceRow]] = None,
    trends: Optional[Dict[str, Any]] = None,
    brand_terms: Optional[List[str]] = None,
    min_impressions: Optional[float] = None,
) -> Dict[str, Any]:
    """Run every analysis and build the report document."""
    settings = get_settings()

    signals = {key: trend_to_signal(t) for key, t in (trends or {}).items()}
    recommendations = deduplicate_recommendations(generate_recommendations(RecommendationInput(
        rows=rows,
        ctr_analyses=batch_analyze_ctr(rows),
        trends=trends,
        opportunities=score_rows(rows, signals),
    )))

    quick_wins = find_quick_wins(
        rows,
        min_impressions=(
            min_impressions if min_impressions is not None
            else settings.QUICK_WIN_MIN_IMPRESSIONS
        ),
    )

    report = {
        "rows": len(rows),
        "recommendations": [
            r.to_dict() for r in recommendations[:settings.MAX_RECOMMENDATIONS]
        ],
        "quick_wins": quick_wins.to_dict(),
        "landscape": analyze_query_landscape(rows, brand_terms=brand_terms or []).to_dict(),
        "build_next": find_what_to_build_next(
            rows, min_impressions=settings.BUILD_NEXT_MIN_IMPRESSIONS,
        ).to_dict(),
        "content_gaps": find_content_gaps(
            rows, previous_rows,
            min_impressions=settings.CONTENT_GAP_MIN_IMPRESSIONS,
        ).to_dict(),
    }

    if previous_rows is not None:
        report["declining_pages"] = [
            p.to_dict() for p in find_declining_pages(
                rows, previous_rows,
                min_previous_clicks=settings.DECLINE_MIN_PREVIOUS_CLICKS,
            )
        ]
        report["new_queries"] = [
            q.to_dict() for q in find_new_queries(
                rows, previous_rows,
                min_impressions=settings.NEW_QUERY_MIN_IMPRESSIONS,
            )
        ]

    logger.info(
        f"Analyzed {len(rows)} rows: {len(recommendations)} recommendations, "
        f"{len(quick_wins.wins)} quick wins"
    )
    return report


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Analyze search performance rows and print a JSON report"
    )
    parser.add_argument(
        "rows",
        help="JSON file with query/page rows for the current period"
    )
    parser.add_argument(
        "--previous",
        default=None,
        help="JSON file with rows for the previous period (enables period comparison)"
    )
    parser.add_argument(
        "--trends",
        default=None,
        help="JSON file with date/value series keyed by query or page"
    )
    parser.add_argument(
        "--brand",
        action="append",
        default=[],
        help="Brand term for the branded/non-branded split (repeatable)"
    )
    parser.add_argument(
        "--min-impressions",
        type=float,
        default=None,
        help="Minimum impressions for quick wins (default: from settings)"
    )

    args = parser.parse_args()

    load_dotenv()
    logging.getLogger().setLevel(get_settings().LOG_LEVEL.upper())

    try:
        rows = load_rows(args.rows)
        previous_rows = load_rows(args.previous) if args.previous else None
        trends = load_trends(args.trends) if args.trends else None
    except (OSError, ValueError) as e:
        logger.error(f"Could not read input: {e}")
        sys.exit(1)

    report = run_analysis(
        rows,
        previous_rows=previous_rows,
        trends=trends,
        brand_terms=args.brand,
        min_impressions=args.min_impressions,
    )
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
