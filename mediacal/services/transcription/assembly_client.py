"""
AssemblyAI API client.
Low-level wrapper over the v2 REST endpoints: ingest upload, transcript
creation and transcript lookup.
"""

import httpx

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.services.errors import ExternalAPIError, parse_response

logger = get_logger(__name__)

ASSEMBLY_API_BASE_URL = "https://api.assemblyai.com/v2"
REQUEST_TIMEOUT = 120  # seconds, uploads of large media are slow


class AssemblyAIError(ExternalAPIError):
    """Custom exception for AssemblyAI API errors."""


class AssemblyAIClient:
    def __init__(self, api_key: str, timeout: float = REQUEST_TIMEOUT):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=ASSEMBLY_API_BASE_URL,
            timeout=httpx.Timeout(timeout),
            headers={"Authorization": api_key},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, operation: str, **kwargs) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"AssemblyAI {operation} request error", error=str(e))
            raise AssemblyAIError(f"AssemblyAI {operation} failed: {e}") from e

        body = parse_response(response, AssemblyAIError, f"AssemblyAI {operation}")
        if not isinstance(body, dict):
            raise AssemblyAIError(
                f"AssemblyAI {operation}: unexpected response", response_data=body
            )
        return body

    async def upload(self, data: bytes) -> str:
        """
        Push media bytes to the ingest endpoint.

        Returns:
            str: Provider-side URL to reference in a transcript request
        """
        body = await self._request(
            "POST",
            "/upload",
            "upload",
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        upload_url = body.get("upload_url") or body.get("url")
        if not upload_url:
            raise AssemblyAIError("AssemblyAI upload returned no URL", response_data=body)

        logger.info("AssemblyAI upload completed", size=len(data))
        return upload_url

    async def create_transcript(self, audio_url: str) -> dict:
        """Submit a transcription job with punctuation and text formatting enabled."""
        body = await self._request(
            "POST",
            "/transcript",
            "create transcript",
            json={"audio_url": audio_url, "punctuate": True, "format_text": True},
        )
        if not body.get("id"):
            raise AssemblyAIError(
                "Could not create AssemblyAI transcription job", response_data=body
            )

        logger.info("AssemblyAI transcript created", transcript_id=body["id"])
        return body

    async def get_transcript(self, transcript_id: str) -> dict:
        return await self._request("GET", f"/transcript/{transcript_id}", "get transcript")
