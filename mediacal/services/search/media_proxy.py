"""
Media proxy and CDN inspector.

The proxy lets the browser play provider-hosted media from our own origin:
the Range header goes upstream, a fixed set of playback headers comes back,
and the body is streamed through without buffering.

The inspector is a diagnostic for provider CDN URLs only.
"""

import base64
from urllib.parse import urlsplit

import httpx

from mediacal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

PROXY_TIMEOUT = 120  # seconds
INSPECT_TIMEOUT = 20  # seconds

COPIED_HEADERS = (
    "content-type",
    "content-length",
    "accept-ranges",
    "content-range",
    "cache-control",
    "last-modified",
)
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cross-Origin-Resource-Policy": "same-site",
}
INSPECT_ALLOWED_HOSTS = frozenset({"cdn.assemblyai.com"})
FIRST_BYTES_RANGE = "bytes=0-127"
RANGE_PROBE = "bytes=0-1"


class ProxyRequestError(Exception):
    """The caller's src parameter is missing or not acceptable."""


class MediaProxy:
    def __init__(self, timeout: float = PROXY_TIMEOUT, inspect_timeout: float = INSPECT_TIMEOUT):
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True)
        self._inspect_timeout = inspect_timeout

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def validate_source(src: str | None) -> str:
        if not src:
            raise ProxyRequestError("Missing src")
        if not src.lower().startswith("https://"):
            raise ProxyRequestError("Invalid src")
        return src

    async def open_stream(self, src: str, range_header: str | None = None) -> httpx.Response:
        """
        Open the upstream response without reading the body.
        The caller owns the response and must aclose() it.
        """
        src = self.validate_source(src)
        headers = {"Range": range_header} if range_header else {}
        request = self._client.build_request("GET", src, headers=headers)
        response = await self._client.send(request, stream=True)
        logger.info(
            "Proxying media",
            host=urlsplit(src).hostname,
            status=response.status_code,
            ranged=bool(range_header),
        )
        return response

    @staticmethod
    def response_headers(upstream: httpx.Response) -> dict[str, str]:
        headers = {
            name: upstream.headers[name] for name in COPIED_HEADERS if name in upstream.headers
        }
        headers.update(CORS_HEADERS)
        return headers

    @staticmethod
    def validate_inspect_source(src: str | None) -> str:
        if not src:
            raise ProxyRequestError("Missing src query parameter")
        try:
            host = urlsplit(src).hostname
        except ValueError as e:
            raise ProxyRequestError("Invalid URL") from e
        if not host:
            raise ProxyRequestError("Invalid URL")
        if host not in INSPECT_ALLOWED_HOSTS:
            raise ProxyRequestError("Host not allowed for inspection")
        return src

    async def inspect(self, src: str) -> dict:
        """
        HEAD the URL, fetch its first 128 bytes and probe range support.
        Each step records null on failure instead of aborting the report.
        """
        src = self.validate_inspect_source(src)
        timeout = httpx.Timeout(self._inspect_timeout)

        head = None
        try:
            head = await self._client.head(src, timeout=timeout)
        except httpx.HTTPError as e:
            logger.error("Inspect HEAD failed", error=str(e))

        ranged = None
        first_bytes = b""
        try:
            ranged = await self._client.get(
                src, headers={"Range": FIRST_BYTES_RANGE}, timeout=timeout
            )
            first_bytes = ranged.content[:128]
        except httpx.HTTPError as e:
            logger.error("Inspect ranged GET failed", error=str(e))

        range_check = None
        try:
            async with self._client.stream(
                "GET", src, headers={"Range": RANGE_PROBE}, timeout=timeout
            ) as probe:
                range_check = {"status": probe.status_code, "headers": dict(probe.headers)}
        except httpx.HTTPError as e:
            logger.error("Inspect range check failed", error=str(e))

        return {
            "url": src,
            "headStatus": head.status_code if head is not None else None,
            "headHeaders": dict(head.headers) if head is not None else None,
            "rangeStatus": ranged.status_code if ranged is not None else None,
            "rangeHeaders": dict(ranged.headers) if ranged is not None else None,
            "rangeCheck": range_check,
            "firstBytesHex": first_bytes.hex()[:1024] if first_bytes else None,
            "firstBytesBase64": base64.b64encode(first_bytes).decode("ascii") if first_bytes else None,
            "firstBytesLength": len(first_bytes),
        }
