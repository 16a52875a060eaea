"""
Vercel Blob client.
Uploads raw bytes to a public blob store through its HTTP API so uploads
survive on serverless hosts with only an ephemeral temp directory.
"""

from urllib.parse import quote

import httpx

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.services.errors import ExternalAPIError, parse_response

logger = get_logger(__name__)

BLOB_API_BASE_URL = "https://blob.vercel-storage.com"
BLOB_API_VERSION = "7"
REQUEST_TIMEOUT = 120  # seconds


class BlobStorageError(ExternalAPIError):
    """Raised when the blob store rejects or fails an upload."""


class BlobStorageClient:
    """Minimal put-only client for Vercel Blob."""

    def __init__(self, token: str, base_url: str = BLOB_API_BASE_URL):
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(REQUEST_TIMEOUT))

    async def close(self) -> None:
        await self._client.aclose()

    async def put(self, pathname: str, data: bytes, content_type: str | None = None) -> str:
        """
        Upload bytes with public access.

        Returns:
            str: Public download URL of the blob

        Raises:
            BlobStorageError: If the upload fails or no URL comes back
        """
        headers = {
            "Authorization": f"Bearer {self._token}",
            "x-api-version": BLOB_API_VERSION,
            "access": "public",
        }
        if content_type:
            headers["x-content-type"] = content_type

        url = f"{self._base_url}/{quote(pathname, safe='/')}"
        try:
            response = await self._client.put(url, content=data, headers=headers)
        except httpx.HTTPError as e:
            raise BlobStorageError(f"Blob upload request failed: {e}") from e

        body = parse_response(response, BlobStorageError, "Blob upload")
        if not isinstance(body, dict):
            raise BlobStorageError("Blob upload: unexpected response", response_data=body)
        blob_url = body.get("downloadUrl") or body.get("url")
        if not blob_url:
            raise BlobStorageError("Blob upload returned no URL", response_data=body)

        logger.info("Blob upload completed", pathname=pathname, size=len(data))
        return blob_url
