"""
Async client for the dashboard's MBTA proxy.

Thin wrapper around httpx. Prefixes endpoint paths with the proxy URL and
raises ApiError on failures.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class ApiError(Exception):
    """Raised when a call through the proxy fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApiClient:
    """Async client for the proxy endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "http://127.0.0.1:8000/api/mbta",
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    async def get(self, endpoint: str) -> Any:
        """
        GET ``endpoint`` (path plus optional query string) through the proxy.

        Returns the decoded JSON body.
        Raises ApiError with the HTTP status text on non-2xx responses.
        """
        url = f"{self._base_url}{endpoint}"
        try:
            response = await self._http.get(url, headers=JSON_HEADERS, timeout=None)
        except httpx.HTTPError as exc:
            logger.error("Proxy request failed: %s %s -> %s", "GET", url, exc)
            raise ApiError(f"Connection error: {exc}") from exc

        if not response.is_success:
            raise ApiError(
                response.reason_phrase or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return response.json()
