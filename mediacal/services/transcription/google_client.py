"""
Google Speech-to-Text client.
Wraps the v1 REST API with key authentication: synchronous recognize,
longrunningrecognize and operation lookup.
"""

import base64

import httpx

from mediacal.infrastructure.observability.logging import get_logger
from mediacal.services.errors import ExternalAPIError, parse_response

logger = get_logger(__name__)

SPEECH_API_BASE_URL = "https://speech.googleapis.com/v1"
REQUEST_TIMEOUT = 120  # seconds

# Client-side extraction produces 16kHz mono PCM WAV
DEFAULT_ENCODING = "LINEAR16"
DEFAULT_SAMPLE_RATE_HERTZ = 16000


class GoogleSpeechError(ExternalAPIError):
    """Custom exception for Google Speech API errors."""


def build_recognition_config(language_code: str, word_offsets: bool) -> dict:
    return {
        "encoding": DEFAULT_ENCODING,
        "sampleRateHertz": DEFAULT_SAMPLE_RATE_HERTZ,
        "languageCode": language_code,
        "enableWordTimeOffsets": word_offsets,
        "enableAutomaticPunctuation": True,
    }


def extract_transcript(body: dict) -> str:
    """Join results[].alternatives[0].transcript with spaces."""
    parts = []
    for result in body.get("results") or []:
        alternatives = result.get("alternatives") or []
        if alternatives:
            parts.append(alternatives[0].get("transcript") or "")
    return " ".join(parts).strip()


def extract_words(body: dict) -> list[str]:
    """Word-level output from results[].alternatives[0].words[].word."""
    words = []
    for result in body.get("results") or []:
        alternatives = result.get("alternatives") or []
        if not alternatives:
            continue
        for word in alternatives[0].get("words") or []:
            if word.get("word"):
                words.append(word["word"])
    return words


class GoogleSpeechClient:
    def __init__(self, api_key: str, timeout: float = REQUEST_TIMEOUT):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=SPEECH_API_BASE_URL,
            timeout=httpx.Timeout(timeout),
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, operation: str, **kwargs) -> dict:
        try:
            response = await self._client.request(
                method, path, params={"key": self._api_key}, **kwargs
            )
        except httpx.HTTPError as e:
            logger.error(f"Google Speech {operation} request error", error=str(e))
            raise GoogleSpeechError(f"Google Speech {operation} failed: {e}") from e

        body = parse_response(response, GoogleSpeechError, f"Google Speech {operation}")
        return body if isinstance(body, dict) else {}

    def _payload(self, data: bytes, language_code: str, word_offsets: bool) -> dict:
        return {
            "config": build_recognition_config(language_code, word_offsets),
            "audio": {"content": base64.b64encode(data).decode("ascii")},
        }

    async def recognize(self, data: bytes, language_code: str, word_offsets: bool) -> dict:
        """Synchronous recognition for short audio."""
        return await self._request(
            "POST",
            "/speech:recognize",
            "recognize",
            json=self._payload(data, language_code, word_offsets),
        )

    async def long_running_recognize(
        self, data: bytes, language_code: str, word_offsets: bool
    ) -> str:
        """
        Start a long-running recognition.

        Returns:
            str: Operation name to poll
        """
        body = await self._request(
            "POST",
            "/speech:longrunningrecognize",
            "longrunningrecognize",
            json=self._payload(data, language_code, word_offsets),
        )
        operation_name = body.get("name") or (body.get("operation") or {}).get("name")
        if not operation_name:
            raise GoogleSpeechError(
                "Could not start longrunning transcription (no operation name returned)",
                response_data=body,
            )

        logger.info("Google longrunning operation started", operation=operation_name)
        return operation_name

    async def get_operation(self, operation_name: str) -> dict:
        return await self._request("GET", f"/operations/{operation_name}", "get operation")
