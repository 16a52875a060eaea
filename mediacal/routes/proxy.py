"""
Media proxy routes: same-origin playback of provider-hosted media and a
diagnostic inspector for provider CDN URLs.
"""

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.routes.dependencies import get_media_proxy
from mediacal.services.search.media_proxy import MediaProxy, ProxyRequestError

logger = get_logger(__name__)

router = APIRouter(tags=["proxy"])


@router.get("/proxy/video")
async def proxy_video(
    request: Request,
    src: str | None = Query(None),
    proxy: MediaProxy = Depends(get_media_proxy),
):
    """Stream a remote https URL with Range forwarded and permissive CORS."""
    try:
        upstream = await proxy.open_stream(src, request.headers.get("range"))
    except ProxyRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except httpx.HTTPError as e:
        logger.error("Proxy upstream request failed", error=str(e))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Proxy error")

    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=upstream.status_code,
        headers=proxy.response_headers(upstream),
        background=BackgroundTask(upstream.aclose),
    )


@router.get("/debug/inspect")
async def debug_inspect(
    src: str | None = Query(None),
    proxy: MediaProxy = Depends(get_media_proxy),
):
    """Headers, first bytes and range support of a provider CDN URL."""
    try:
        return await proxy.inspect(src)
    except ProxyRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.exception("Inspection failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Inspection failed", "details": str(e)},
        )
