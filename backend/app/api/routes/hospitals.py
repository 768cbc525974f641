import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...agents.intent_extraction_agent import intent_extraction_agent
from ...core.config import settings
from ...matching import (
    CatalogUnavailable,
    MatchingEngine,
    MatchingError,
    MatchOutcome,
    MatchTimeout,
    ValidationError,
)
from ...schemas.match import (
    BrowseResponse,
    MatchRequest,
    MatchResponse,
    MatchTextRequest,
    SuggestResponse,
)
from ...services.catalog import catalog_service

logger = logging.getLogger(__name__)

router = APIRouter()

matching_engine = MatchingEngine(
    hospitals=catalog_service,
    conditions=catalog_service,
    timeout_seconds=settings.MATCH_TIMEOUT_SECONDS,
    default_page_size=settings.BROWSE_DEFAULT_LIMIT,
    max_page_size=settings.BROWSE_MAX_LIMIT,
)


def get_engine() -> MatchingEngine:
    return matching_engine


def _to_http_error(error: MatchingError) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, CatalogUnavailable):
        return HTTPException(status_code=503, detail="Hospital catalog is temporarily unavailable")
    if isinstance(error, MatchTimeout):
        return HTTPException(status_code=504, detail="Matching timed out, please retry")
    logger.error("Unhandled matching error: %s", error)
    return HTTPException(status_code=500, detail="Matching failed")


def _match_response(outcome: MatchOutcome, source: Optional[str] = None) -> MatchResponse:
    return MatchResponse(
        hospitals=[r.to_dict() for r in outcome.results],
        total=outcome.total,
        intent=outcome.intent.to_dict(),
        source=source,
    )


@router.get("", response_model=BrowseResponse)
async def browse_hospitals(
    city: Optional[str] = Query(None, description="City contains (case-insensitive)"),
    specialty: Optional[str] = Query(None, description="Specialty contains (case-insensitive)"),
    condition: Optional[str] = Query(None, description="Treatment or specialty contains"),
    price_min: Optional[int] = Query(None, ge=0, description="Minimum of hospital price range"),
    price_max: Optional[int] = Query(None, ge=0, description="Maximum of hospital price range"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, description="Page size, capped at 50"),
    sort: str = Query("default", description="default (rating), outcomes, or price"),
    engine: MatchingEngine = Depends(get_engine)
):
    """Hard-filtered, paginated hospital listing."""
    try:
        result = await engine.browse(
            city=city,
            specialty=specialty,
            condition=condition,
            price_min=price_min,
            price_max=price_max,
            sort=sort,
            page=page,
            limit=limit,
        )
    except MatchingError as e:
        raise _to_http_error(e)

    return BrowseResponse(
        hospitals=[h.model_dump() for h in result.items],
        total=result.total,
        page=result.page,
        total_pages=result.total_pages,
    )


@router.get("/suggest", response_model=SuggestResponse)
async def suggest_hospitals(
    q: str = Query("", description="Typeahead query"),
    limit: int = Query(settings.SUGGEST_LIMIT, ge=1, le=50),
    engine: MatchingEngine = Depends(get_engine)
):
    """Typeahead over conditions, hospital names/specialties and cities."""
    try:
        result = await engine.suggest(q, limit)
    except MatchingError as e:
        raise _to_http_error(e)
    return SuggestResponse(**asdict(result))


@router.post("/match", response_model=MatchResponse)
async def match_hospitals(
    request: MatchRequest,
    limit: Optional[int] = Query(None, ge=1, description="Return at most this many hospitals"),
    engine: MatchingEngine = Depends(get_engine)
):
    """
    Score and rank every listed hospital for a treatment request.

    Budget, country and condition are soft signals: hospitals outside them
    are returned with a lower score rather than dropped.
    """
    try:
        outcome = await engine.match(request.model_dump(), limit)
    except MatchingError as e:
        raise _to_http_error(e)
    return _match_response(outcome)


@router.post("/match/text", response_model=MatchResponse)
async def match_hospitals_from_text(
    request: MatchTextRequest,
    limit: Optional[int] = Query(None, ge=1),
    engine: MatchingEngine = Depends(get_engine)
):
    """Extract a treatment request from free text, then match it."""
    try:
        snapshot = await engine.read_snapshot()
        extraction = await intent_extraction_agent.process({
            "message": request.message,
            "conditions": snapshot.conditions,
            "hospitals": snapshot.hospitals,
        })
        outcome = await engine.match(extraction["raw_intent"], limit, snapshot=snapshot)
    except MatchingError as e:
        raise _to_http_error(e)
    return _match_response(outcome, source=extraction["source"])
