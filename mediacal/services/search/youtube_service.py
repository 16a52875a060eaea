"""
Video search proxies.
Forward searches to the YouTube Data API (keeping the key server-side) or to
an Invidious instance, returning the upstream JSON untouched.
"""

from typing import Any

import httpx

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.services.errors import ExternalAPIError, parse_response

logger = get_logger(__name__)

YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
SEARCH_MAX_RESULTS = 12
REQUEST_TIMEOUT = 15  # seconds


class YouTubeSearchError(ExternalAPIError):
    """Custom exception for YouTube Data API errors."""


class InvidiousError(ExternalAPIError):
    """Custom exception for Invidious API errors."""


class YouTubeSearchClient:
    def __init__(self, api_key: str | None, timeout: float = REQUEST_TIMEOUT):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=YOUTUBE_API_BASE_URL, timeout=httpx.Timeout(timeout)
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def close(self) -> None:
        await self._client.aclose()

    async def search(self, query: str) -> dict[str, Any]:
        """
        Video search, snippet part only.

        Raises:
            YouTubeSearchError: If no key is configured or the API call fails
        """
        if not self._api_key:
            raise YouTubeSearchError("No YouTube API key configured on server")

        params = {
            "part": "snippet",
            "type": "video",
            "maxResults": SEARCH_MAX_RESULTS,
            "q": query,
            "key": self._api_key,
        }
        try:
            response = await self._client.get("/search", params=params)
        except httpx.HTTPError as e:
            logger.error("YouTube search request error", error=str(e))
            raise YouTubeSearchError(f"YouTube search failed: {e}") from e

        body = parse_response(response, YouTubeSearchError, "YouTube search")
        logger.info("YouTube search completed", items=len(body.get("items") or []))
        return body


class InvidiousClient:
    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=httpx.Timeout(timeout), follow_redirects=True
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, operation: str, params: dict | None = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Invidious {operation} request error", error=str(e), base=self.base_url)
            raise InvidiousError(f"Invidious {operation} failed: {e}") from e
        return parse_response(response, InvidiousError, f"Invidious {operation}")

    async def search(self, query: str) -> Any:
        return await self._get("/api/v1/search", "search", params={"q": query, "type": "video"})

    async def popular(self) -> Any:
        return await self._get("/api/v1/popular", "popular")
