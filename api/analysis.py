"""
API Endpoints for Search Analysis

FastAPI app exposing the analysis engine over HTTP:
1. CTR benchmarking, trend detection and intent classification
2. Opportunity scoring and recommendations
3. Finders (quick wins, CTR opportunities, cannibalization)
4. Period comparison and query landscape
5. Content planning and site health grading

All endpoints are stateless; request bodies carry the performance data.
"""

import logging
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from search_insights import __version__
from search_insights.analysis import (
    PerformanceRow,
    RecommendationInput,
    TrendPoint,
    analyze_query_landscape,
    batch_analyze_ctr,
    classify_queries,
    deduplicate_recommendations,
    detect_trend,
    extract_brand_name,
    find_cannibalization,
    find_content_gaps,
    find_ctr_opportunities,
    find_declining_pages,
    find_new_queries,
    find_quick_wins,
    find_what_to_build_next,
    generate_recommendations,
    get_intent_distribution,
    grade_site_health,
    score_opportunity,
    score_rows,
    trend_to_signal,
)
from search_insights.utils.config import Settings, get_settings

# Configure logging to stdout
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

router = APIRouter(prefix="/api/analysis", tags=["Search Analysis"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class RowModel(BaseModel):
    """One query/page performance row."""
    query: str = ""
    page: str = ""
    clicks: float = Field(..., ge=0)
    impressions: float = Field(..., ge=0)
    ctr: Optional[float] = Field(default=None, ge=0, le=1, description="Computed from clicks/impressions when omitted")
    position: float = Field(..., ge=0)


class PointModel(BaseModel):
    date: str = Field(..., description="Date, e.g. 2024-01-15")
    value: float


class RowsRequest(BaseModel):
    rows: List[RowModel]
    min_impressions: Optional[float] = Field(default=None, ge=0)


class TrendRequest(BaseModel):
    points: List[PointModel]


class ClassifyRequest(BaseModel):
    queries: List[str]


class OpportunityRequest(BaseModel):
    """Metrics for scoring a single opportunity."""
    impressions: float = Field(..., ge=0)
    clicks: float = Field(default=0, ge=0)
    ctr: float = Field(..., ge=0, le=1)
    position: float = Field(..., ge=0)
    expected_ctr: Optional[float] = Field(default=None, ge=0, le=1)
    trend: Optional[float] = Field(default=None, ge=-1, le=1, description="1 rising, 0 stable, -1 declining")
    query_count: Optional[int] = Field(default=None, ge=0)


class RecommendationsRequest(BaseModel):
    """
    Rows plus switches for the optional analyses.

    Trend series are keyed by query or page.
    """
    rows: List[RowModel]
    trends: Optional[Dict[str, List[PointModel]]] = None
    include_ctr: bool = True
    include_opportunities: bool = True
    limit: Optional[int] = Field(default=None, ge=1)


class ComparisonRequest(BaseModel):
    current_rows: List[RowModel]
    previous_rows: List[RowModel]
    min_previous_clicks: Optional[float] = Field(default=None, ge=0)
    min_impressions: Optional[float] = Field(default=None, ge=0)


class LandscapeRequest(BaseModel):
    rows: List[RowModel]
    brand_terms: List[str] = []
    site_url: Optional[str] = Field(default=None, description="Brand term is derived from it when brand_terms is empty")
    min_impressions: float = Field(default=5, ge=0)


class ContentGapsRequest(BaseModel):
    """Current rows plus, optionally, the previous period used to spot new queries."""
    rows: List[RowModel]
    previous_rows: Optional[List[RowModel]] = None
    min_impressions: Optional[float] = Field(default=None, ge=0)


class HealthCheckRequest(BaseModel):
    """
    Inputs for the site health grade.

    Traffic points are daily clicks; rows are one per query.
    """
    traffic_points: Optional[List[PointModel]] = None
    rows: List[RowModel]
    sitemap_score: Optional[float] = Field(default=None, ge=0, le=100)


def _to_rows(models: List[RowModel]) -> List[PerformanceRow]:
    rows = []
    for model in models:
        try:
            rows.append(PerformanceRow.from_dict(model.model_dump()))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    return rows


def _threshold(value: Optional[float], default: float) -> float:
    return default if value is None else value


# =============================================================================
# CORE ANALYSIS
# =============================================================================

@router.post("/ctr")
def analyze_ctr_endpoint(request: RowsRequest) -> Dict[str, Any]:
    """Benchmark each row's CTR against its position."""
    rows = _to_rows(request.rows)
    analyses = batch_analyze_ctr(rows)
    return {
        "analyses": [
            {"query": row.query, "page": row.page, **analysis.to_dict()}
            for row, analysis in zip(rows, analyses)
        ],
    }


@router.post("/trend")
def detect_trend_endpoint(request: TrendRequest) -> Dict[str, Any]:
    """Detect direction, volatility and breakpoints of a series."""
    points = [TrendPoint(date=p.date, value=p.value) for p in request.points]
    return detect_trend(points).to_dict()


@router.post("/classify")
def classify_endpoint(request: ClassifyRequest) -> Dict[str, Any]:
    """Classify queries by intent."""
    classified = classify_queries(request.queries)
    return {
        "classifications": [c.to_dict() for c in classified],
        "distribution": get_intent_distribution(classified),
    }


@router.post("/opportunity")
def opportunity_endpoint(request: OpportunityRequest) -> Dict[str, Any]:
    """Score a single opportunity (0-100)."""
    return score_opportunity(
        impressions=request.impressions,
        clicks=request.clicks,
        ctr=request.ctr,
        position=request.position,
        expected_ctr=request.expected_ctr,
        trend=request.trend,
        query_count=request.query_count,
    ).to_dict()


@router.post("/recommendations")
def recommendations_endpoint(
    request: RecommendationsRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Generate deduplicated, prioritized recommendations.

    CTR analyses, trends and opportunity scores are computed here from the
    request, then passed to the engine.
    """
    rows = _to_rows(request.rows)

    trends = None
    if request.trends is not None:
        trends = {
            key: detect_trend([TrendPoint(date=p.date, value=p.value) for p in points])
            for key, points in request.trends.items()
        }

    opportunities = None
    if request.include_opportunities:
        signals = {key: trend_to_signal(t) for key, t in (trends or {}).items()}
        opportunities = score_rows(rows, signals)

    recommendations = deduplicate_recommendations(generate_recommendations(RecommendationInput(
        rows=rows,
        ctr_analyses=batch_analyze_ctr(rows) if request.include_ctr else None,
        trends=trends,
        opportunities=opportunities,
    )))

    limit = min(request.limit or settings.MAX_RECOMMENDATIONS, settings.MAX_RECOMMENDATIONS)
    logger.info(f"Generated {len(recommendations)} recommendations for {len(rows)} rows")

    return {
        "total": len(recommendations),
        "recommendations": [r.to_dict() for r in recommendations[:limit]],
    }


# =============================================================================
# FINDERS
# =============================================================================

@router.post("/quick-wins")
def quick_wins_endpoint(
    request: RowsRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Find underperforming top-3 CTRs, almost page 1 rows and quick position gains."""
    report = find_quick_wins(
        _to_rows(request.rows),
        min_impressions=_threshold(request.min_impressions, settings.QUICK_WIN_MIN_IMPRESSIONS),
    )
    return report.to_dict()


@router.post("/ctr-opportunities")
def ctr_opportunities_endpoint(
    request: RowsRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    opportunities = find_ctr_opportunities(
        _to_rows(request.rows),
        min_impressions=_threshold(request.min_impressions, settings.CTR_OPPORTUNITY_MIN_IMPRESSIONS),
    )
    return {
        "total_additional_clicks": sum(o.additional_clicks for o in opportunities),
        "opportunities": [o.to_dict() for o in opportunities],
    }


@router.post("/cannibalization")
def cannibalization_endpoint(
    request: RowsRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    cases = find_cannibalization(
        _to_rows(request.rows),
        min_impressions=_threshold(request.min_impressions, settings.CANNIBALIZATION_MIN_IMPRESSIONS),
    )
    return {"cases": [c.to_dict() for c in cases]}


# =============================================================================
# PERIOD COMPARISON & LANDSCAPE
# =============================================================================

@router.post("/declining-pages")
def declining_pages_endpoint(
    request: ComparisonRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    pages = find_declining_pages(
        _to_rows(request.current_rows),
        _to_rows(request.previous_rows),
        min_previous_clicks=_threshold(request.min_previous_clicks, settings.DECLINE_MIN_PREVIOUS_CLICKS),
    )
    return {
        "total_lost_clicks": sum(p.lost_clicks for p in pages),
        "pages": [p.to_dict() for p in pages],
    }


@router.post("/new-queries")
def new_queries_endpoint(
    request: ComparisonRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    queries = find_new_queries(
        _to_rows(request.current_rows),
        _to_rows(request.previous_rows),
        min_impressions=_threshold(request.min_impressions, settings.NEW_QUERY_MIN_IMPRESSIONS),
    )
    return {"queries": [q.to_dict() for q in queries]}


@router.post("/landscape")
def landscape_endpoint(request: LandscapeRequest) -> Dict[str, Any]:
    """Intent mix, branded split and position buckets for a set of queries."""
    brand_terms = list(request.brand_terms)
    if not brand_terms and request.site_url:
        brand = extract_brand_name(request.site_url)
        if not brand:
            raise HTTPException(status_code=400, detail=f"Cannot derive a brand from site_url {request.site_url!r}")
        brand_terms = [brand]

    landscape = analyze_query_landscape(
        _to_rows(request.rows),
        brand_terms=brand_terms,
        min_impressions=request.min_impressions,
    )
    return {"brand_terms": brand_terms, **landscape.to_dict()}


# =============================================================================
# CONTENT PLANNING & HEALTH
# =============================================================================

@router.post("/content-gaps")
def content_gaps_endpoint(
    request: ContentGapsRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Find homepage-ranking, zero-click, new and single-page queries."""
    report = find_content_gaps(
        _to_rows(request.rows),
        _to_rows(request.previous_rows) if request.previous_rows is not None else None,
        min_impressions=_threshold(request.min_impressions, settings.CONTENT_GAP_MIN_IMPRESSIONS),
    )
    return report.to_dict()


@router.post("/build-next")
def build_next_endpoint(
    request: RowsRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Bucket queries by intent and group them into topics for content planning."""
    report = find_what_to_build_next(
        _to_rows(request.rows),
        min_impressions=_threshold(request.min_impressions, settings.BUILD_NEXT_MIN_IMPRESSIONS),
    )
    return report.to_dict()


@router.post("/health-check")
def health_check_endpoint(request: HealthCheckRequest) -> Dict[str, Any]:
    """Grade site health A-F from traffic trend, CTR efficiency and positions."""
    trend = None
    if request.traffic_points is not None:
        trend = detect_trend([TrendPoint(date=p.date, value=p.value) for p in request.traffic_points])

    report = grade_site_health(trend, _to_rows(request.rows), sitemap_score=request.sitemap_score)
    logger.info(f"Health check: grade {report.grade.value} ({report.overall_score}/100)")
    return report.to_dict()


# =============================================================================
# APP
# =============================================================================

app = FastAPI(
    title="Search Insights Engine",
    description="SEO analysis of search performance data: CTR, trends, intent, opportunities, recommendations",
    version=__version__,
)
app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Search Insights Engine"}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": __version__,
    }
