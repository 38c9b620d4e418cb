"""
Public search API router.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ... import __version__
from ...schema.common import ErrorDetail, ErrorResponse, HealthStatus
from ...schema.search import SearchResponse
from ...search.search_service import SearchFailed, SearchRateLimited, SearchService
from ...utils.logging import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."
MAX_QUERY_LENGTH = 500

router = APIRouter(prefix="/search", tags=["search"])


def get_search_service(request: Request) -> SearchService:
    """Get the search service attached to the application."""
    service: Optional[SearchService] = getattr(request.app.state, "search_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Search service not initialized")
    return service


def get_client_key(request: Request) -> str:
    """Identify the caller for rate limiting, honouring reverse proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


@router.get("", response_model=SearchResponse)
async def search(
    q: Optional[str] = Query(None, description="Search query", max_length=MAX_QUERY_LENGTH),
    client_key: str = Depends(get_client_key),
    service: SearchService = Depends(get_search_service),
):
    """
    Search portal content using hybrid keyword + fuzzy + semantic ranking.

    Results are grouped into posts, documents, pages and events. Queries
    shorter than two characters return an empty result.
    """
    outcome = await service.search(q, client_key)

    if isinstance(outcome, SearchRateLimited):
        body = ErrorResponse(error=ErrorDetail(code=outcome.decision.code, message=RATE_LIMIT_MESSAGE))
        return JSONResponse(
            status_code=429,
            content=body.model_dump(),
            headers={"Retry-After": str(outcome.decision.retry_after)},
        )

    if isinstance(outcome, SearchFailed):
        return JSONResponse(status_code=500, content=outcome.response.model_dump(mode="json", by_alias=True))

    return outcome.response


@router.get("/health", response_model=HealthStatus)
async def health_check(service: SearchService = Depends(get_search_service)) -> HealthStatus:
    """
    Health check endpoint for the search service.

    Checks connectivity to the index store and the embedding provider.
    """
    try:
        components = await service.health_check()
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        return HealthStatus(status="down", version=__version__, store="down", embeddings="down")

    store_status = "ok" if components["store"] else "down"
    embeddings_status = "ok" if components["embeddings"] else "down"

    if components["store"] and components["embeddings"]:
        status = "ok"
    elif components["store"]:
        status = "degraded"  # Semantic signal missing, keyword + fuzzy still work
    else:
        status = "down"

    return HealthStatus(status=status, version=__version__, store=store_status, embeddings=embeddings_status)
