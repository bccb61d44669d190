"""
Flight Search - FastAPI application for hybrid flight ranking

Endpoints:
- GET  /v1/search/hybrid       free text + filters, BM25/TF-IDF hybrid ranking
- POST /v1/search/advanced     multi-route / multi-airline search, rule-based ranking
- GET  /v1/search/suggestions  route and airline autocomplete
- GET  /health                 liveness for the container platform

Price sampling is done by an external job writing through the store; this
service only reads.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__, config
from .errors import InvalidFilterError, UpstreamFetchError
from .filters import parse_filters
from .logging_config import setup_logging
from .models import RankingResult
from .ranking import RankingEngine, RankingMode
from .stores import CandidateStore, PostgresFlightStore, create_store

setup_logging(
    log_file=config.LOG_FILE,
    console_level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    file_level=logging.DEBUG  # Always DEBUG in file for troubleshooting
)

logger = logging.getLogger(__name__)

APP_START_TIME = datetime.now(timezone.utc)

# Global instances (set in lifespan)
candidate_store: Optional[CandidateStore] = None
ranking_engine: Optional[RankingEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup resources"""
    global candidate_store, ranking_engine

    candidate_store = create_store()
    if isinstance(candidate_store, PostgresFlightStore):
        logger.info("Connecting to database...")
        await candidate_store.connect()
        await candidate_store.init_schema()
        logger.info("Database initialized successfully")

    ranking_engine = RankingEngine(candidate_store)
    logger.info(
        f"Ranking engine ready (candidate_cap={config.CANDIDATE_CAP}, "
        f"fetch_timeout={config.FETCH_TIMEOUT_SECONDS}s)"
    )

    yield

    logger.info("Shutting down...")
    await candidate_store.close()
    candidate_store = None
    ranking_engine = None


app = FastAPI(
    title="Flight Search API",
    description="Hybrid BM25 + TF-IDF ranking over tracked flight prices",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store() -> CandidateStore:
    if candidate_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Candidate store not initialized",
        )
    return candidate_store


def get_engine() -> RankingEngine:
    if ranking_engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ranking engine not initialized",
        )
    return ranking_engine


# Request/Response models
class HealthResponse(BaseModel):
    status: str
    version: str
    store_backend: str
    started_at: str
    uptime_seconds: float


class RouteFilter(BaseModel):
    origin: str = Field(..., description="3-letter origin airport code", examples=["LHE"])
    destination: str = Field(..., description="3-letter destination airport code", examples=["BKK"])


class AdvancedSearchRequest(BaseModel):
    routes: Optional[List[RouteFilter]] = Field(default=None, description="Match any of these routes")
    airlines: Optional[List[str]] = Field(default=None, description="Match any of these airlines")
    cabin_class: Optional[str] = Field(default=None, description="Economy, Business or First")
    price_min: Optional[float] = Field(default=None, description="Lower bound on latest price")
    price_max: Optional[float] = Field(default=None, description="Upper bound on latest price")
    date_start: Optional[str] = Field(default=None, description="First flight date (YYYY-MM-DD, inclusive)")
    date_end: Optional[str] = Field(default=None, description="Last flight date (YYYY-MM-DD, inclusive)")
    sort_by: str = Field(default="relevance", description="relevance | price_asc | price_desc | date_asc | date_desc")
    page: int = Field(default=1, description="1-indexed page number")
    limit: int = Field(default=config.DEFAULT_PAGE_SIZE, description="Results per page")

    class Config:
        json_schema_extra = {
            "example": {
                "routes": [{"origin": "LHE", "destination": "BKK"}, {"origin": "SIN", "destination": "BKK"}],
                "airlines": ["Thai Airways", "Singapore Airlines"],
                "price_max": 700,
                "date_start": "2026-01-01",
                "date_end": "2026-03-31",
                "sort_by": "relevance",
                "limit": 20,
            }
        }


class SearchResultItem(BaseModel):
    id: int
    origin: str
    destination: str
    airline: str
    flight_date: str
    aircraft: Optional[str] = None
    cabin_class: Optional[str] = None
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    duration: Optional[str] = None
    tracking_interval: Optional[str] = None
    is_active: bool
    latest_price: Optional[float] = None
    price_count: int
    avg_price: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    variance_ratio: Optional[float] = None
    scores: Dict[str, float] = Field(default_factory=dict)


class PaginationInfo(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool


class SearchResponse(BaseModel):
    success: bool = True
    mode: str
    data: List[SearchResultItem]
    pagination: PaginationInfo
    filters: dict
    truncated: bool = Field(default=False, description="True when the candidate cap cut the match set")


class SuggestionItem(BaseModel):
    type: str
    value: str
    label: str


class SuggestionResponse(BaseModel):
    success: bool = True
    data: List[SuggestionItem]


def _to_response(result: RankingResult) -> SearchResponse:
    return SearchResponse(
        mode=result.mode,
        data=[SearchResultItem(**item.to_dict()) for item in result.items],
        pagination=PaginationInfo(**result.pagination.to_dict()),
        filters=result.applied_filters,
        truncated=result.truncated,
    )


# Routes
@app.get("/", response_model=dict)
async def root():
    """Root endpoint"""
    return {
        "service": "Flight Search API",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint"""
    uptime = (datetime.now(timezone.utc) - APP_START_TIME).total_seconds()
    return HealthResponse(
        status="healthy",
        version=__version__,
        store_backend=config.STORE_BACKEND,
        started_at=APP_START_TIME.isoformat(),
        uptime_seconds=round(uptime, 2),
    )


@app.get("/v1/search/hybrid", response_model=SearchResponse)
async def hybrid_search(
    query: Optional[str] = Query(None, description="Free text, e.g. 'emirates lhr'"),
    origin: Optional[str] = Query(None, description="Origin airport code"),
    destination: Optional[str] = Query(None, description="Destination airport code"),
    airline: Optional[str] = Query(None, description="Airline name (exact, case-insensitive)"),
    min_price: Optional[str] = Query(None, description="Lower bound on latest price"),
    max_price: Optional[str] = Query(None, description="Upper bound on latest price"),
    start_date: Optional[str] = Query(None, description="First flight date (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="Last flight date (YYYY-MM-DD)"),
    sort_by: str = Query("relevance"),
    alpha: Optional[str] = Query(None, description="BM25 weight in [0, 1]; 1 = pure BM25, 0 = pure TF-IDF"),
    page: int = Query(1),
    limit: int = Query(config.DEFAULT_PAGE_SIZE),
    engine: RankingEngine = Depends(get_engine),
):
    """
    Hybrid search: free-text pre-filter + structured filters, ranked by
    alpha × BM25 + (1 - alpha) × TF-IDF cosine (both min-max normalized).

    **Example:** `/v1/search/hybrid?query=emirates&destination=LHR&sort_by=relevance&alpha=0.7`

    Invalid filters return 422 with the offending `field`; store failures
    return 503.
    """
    filters = parse_filters(
        origin=origin,
        destination=destination,
        category=airline,
        query=query,
        price_min=min_price,
        price_max=max_price,
        date_start=start_date,
        date_end=end_date,
    )
    result = await engine.rank(
        filters,
        sort_by=sort_by,
        alpha=alpha,
        page=page,
        page_size=limit,
        mode=RankingMode.HYBRID,
    )
    return _to_response(result)


@app.post("/v1/search/advanced", response_model=SearchResponse)
async def advanced_search(
    request: AdvancedSearchRequest,
    engine: RankingEngine = Depends(get_engine),
):
    """
    Advanced search over several routes / airlines, ranked by the rule-based
    composite score (has prices +5, price stability +1..+3, future flight +2,
    plus (1000 - latest price) × 0.001).
    """
    filters = parse_filters(
        routes=[(r.origin, r.destination) for r in request.routes or []],
        categories=request.airlines,
        cabin_class=request.cabin_class,
        price_min=request.price_min,
        price_max=request.price_max,
        date_start=request.date_start,
        date_end=request.date_end,
    )
    result = await engine.rank(
        filters,
        sort_by=request.sort_by,
        page=request.page,
        page_size=request.limit,
        mode=RankingMode.COMPOSITE,
    )
    return _to_response(result)


@app.get("/v1/search/suggestions", response_model=SuggestionResponse)
async def search_suggestions(
    q: Optional[str] = Query(None, description="At least 2 characters"),
    type: str = Query("all", description="all | routes | airlines"),
    store: CandidateStore = Depends(get_store),
):
    """Autocomplete for routes ("LHE-BKK") and airline names"""
    try:
        suggestions = await store.suggest(q or "", kind=type)
    except InvalidFilterError:
        raise
    except Exception as e:
        logger.error(f"Suggestion lookup failed: {e}")
        raise UpstreamFetchError(f"Suggestion lookup failed: {e}") from e
    return SuggestionResponse(
        data=[SuggestionItem(type=s.type, value=s.value, label=s.label) for s in suggestions]
    )


@app.exception_handler(InvalidFilterError)
async def invalid_filter_handler(request, exc: InvalidFilterError):
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "Invalid filter",
            "field": exc.field,
            "detail": exc.message,
        },
    )


@app.exception_handler(UpstreamFetchError)
async def upstream_failure_handler(request, exc: UpstreamFetchError):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "success": False,
            "error": "Candidate store unavailable",
            "detail": str(exc),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flight_search.main:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=True,  # Development only
    )
