"""
Exceptions shared by the outbound API clients.
"""

import json
from typing import Any

import httpx


class ExternalAPIError(Exception):
    """Base exception for failures talking to a third-party API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data

    def detail(self) -> str:
        """Upstream payload when the provider sent one, else the message."""
        if self.response_data:
            if isinstance(self.response_data, str):
                return self.response_data
            return json.dumps(self.response_data)
        return str(self)


def parse_response(response: httpx.Response, error_cls: type[ExternalAPIError], operation: str):
    """
    Return the decoded JSON body of a successful response.

    Raises:
        error_cls: On non-2xx status or an undecodable body
    """
    if response.is_success:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise error_cls(
                f"{operation}: invalid response format",
                status_code=response.status_code,
                response_data=response.text[:500],
            ) from e

    try:
        payload = response.json() if response.content else None
    except ValueError:
        payload = response.text[:500] if response.text else None

    raise error_cls(
        f"{operation} failed (HTTP {response.status_code})",
        status_code=response.status_code,
        response_data=payload,
    )
