"""
Search API Routes
Server-side proxies for YouTube Data API and Invidious video search.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.models.api.calendar_request import SearchRequest
from mediacal.routes.dependencies import get_invidious, get_youtube
from mediacal.services.search.youtube_service import (
    InvidiousClient,
    InvidiousError,
    YouTubeSearchClient,
    YouTubeSearchError,
)

logger = get_logger(__name__)

router = APIRouter(tags=["search"])


def _require_query(body: SearchRequest) -> str:
    query = (body.q or "").strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing q")
    return query


@router.post("/youtube/search")
async def youtube_search(
    body: SearchRequest,
    youtube: YouTubeSearchClient = Depends(get_youtube),
):
    """Proxy a YouTube search so the API key never reaches the browser."""
    query = _require_query(body)
    if not youtube.configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="YouTube search is not configured on this server",
        )

    try:
        return await youtube.search(query)
    except YouTubeSearchError as e:
        logger.error("YouTube search failed", upstream_status=e.status_code, error=e.detail())
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="YouTube search failed")


@router.post("/invidious/search")
async def invidious_search(
    body: SearchRequest,
    invidious: InvidiousClient = Depends(get_invidious),
):
    query = _require_query(body)
    try:
        return await invidious.search(query)
    except InvidiousError as e:
        logger.error("Invidious search failed", upstream_status=e.status_code, error=e.detail())
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Invidious search failed")


@router.get("/invidious/popular")
async def invidious_popular(invidious: InvidiousClient = Depends(get_invidious)):
    try:
        return await invidious.popular()
    except InvidiousError as e:
        logger.error("Invidious popular failed", upstream_status=e.status_code, error=e.detail())
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not load popular feed"
        )
