"""
Forwarding proxy to the MBTA v3 API.

Holds the upstream API key server-side. Relays upstream status and JSON body
unchanged; transport or decode failures become a generic 500 envelope.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class MBTAProxy:
    """Forwards GET requests to the upstream API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api-v3.mbta.com",
        api_key: Optional[str] = None,
        upstream_name: str = "MBTA API",
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._upstream_name = upstream_name

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    def upstream_url(self, path: str, query: str = "") -> str:
        url = f"{self._base_url}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{query}"
        return url

    async def forward(self, path: str, query: str = "") -> tuple[int, Any]:
        """
        GET ``path`` upstream with the original query string.

        Returns (status_code, json_body). No retry and no timeout: a hung
        upstream hangs the caller.
        """
        url = self.upstream_url(path, query)
        try:
            response = await self._http.get(url, headers=self._headers(), timeout=None)
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("%s proxy error: GET %s -> %s", self._upstream_name, url, exc)
            return 500, {"error": f"Failed to fetch from {self._upstream_name}"}

        if not response.is_success:
            logger.info(
                "%s returned %d for %s", self._upstream_name, response.status_code, url
            )
        return response.status_code, body
