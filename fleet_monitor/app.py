"""
FastAPI application for fleet-monitor.

Lifespan manages the httpx client and the MBTA proxy.
Routes: {proxy_prefix}/{path}, /health.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from fleet_monitor.config import AppConfig, configure_logging, load_config
from fleet_monitor.proxy import MBTAProxy

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig, http_client: Optional[httpx.AsyncClient] = None
) -> FastAPI:
    """
    Build the app around an explicit config.

    When ``http_client`` is given the caller owns it; otherwise one is opened
    and closed by the lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Proxying %s -> %s (api key %s)",
            config.proxy_prefix,
            config.mbta_base_url,
            "set" if config.mbta_api_key else "not set",
        )
        if http_client is not None:
            app.state.proxy = _make_proxy(config, http_client)
            yield
        else:
            async with httpx.AsyncClient() as client:
                app.state.proxy = _make_proxy(config, client)
                yield
        app.state.proxy = None

    app = FastAPI(
        title="Fleet Monitor",
        version="1.0.0",
        description="Proxy to the MBTA v3 API for the fleet-monitoring dashboard.",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "proxy", "description": "Pass-through to the MBTA v3 API"},
            {"name": "health", "description": "Service health check"},
        ],
    )
    app.state.config = config
    app.state.proxy = None

    @app.get("/health", tags=["health"], summary="Health check")
    async def health():
        """Always returns HTTP 200 with a simple JSON response."""
        return {"status": "healthy"}

    @app.get(
        f"{config.proxy_prefix}/{{path:path}}",
        tags=["proxy"],
        summary="Forward a GET to the MBTA API",
        responses={
            500: {
                "description": "Upstream unreachable or returned invalid JSON",
                "content": {
                    "application/json": {
                        "example": {"error": f"Failed to fetch from {config.upstream_name}"}
                    }
                },
            },
        },
    )
    async def forward(path: str, request: Request):
        """
        Forward ``path`` and the full query string upstream, adding the API key.

        The upstream status code and JSON body are returned unchanged,
        including upstream errors.
        """
        proxy: Optional[MBTAProxy] = request.app.state.proxy
        if proxy is None:
            raise HTTPException(status_code=503, detail="Service not ready")
        status_code, body = await proxy.forward(path, request.url.query)
        return JSONResponse(content=body, status_code=status_code)

    return app


def _make_proxy(config: AppConfig, http_client: httpx.AsyncClient) -> MBTAProxy:
    return MBTAProxy(
        http_client=http_client,
        base_url=config.mbta_base_url,
        api_key=config.mbta_api_key,
        upstream_name=config.upstream_name,
    )


def main_app() -> FastAPI:
    """Factory for ``uvicorn --factory fleet_monitor.app:main_app``."""
    config = load_config()
    configure_logging(config.log_level)
    return create_app(config)
