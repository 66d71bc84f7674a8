"""Application entrypoint for the financial-data failover gateway."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

import httpx
import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from fin_gateway.config.settings import Settings, get_settings
from fin_gateway.providers.fmp import FmpProvider
from fin_gateway.providers.router import FallbackOrchestrator
from fin_gateway.providers.synth import SynthProvider
from fin_gateway.schemas.models import CanonicalRequest
from fin_gateway.utils.http import HttpClient
from fin_gateway.utils.logging import configure_logging

LOGGER = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

# Never seen by the client; only recorded by the server for abandoned requests.
CLIENT_CLOSED_REQUEST = 499


def build_orchestrator(settings: Settings, http_client: HttpClient) -> FallbackOrchestrator:
    """Wire providers, rule engine and shaper."""

    return FallbackOrchestrator(
        primary=SynthProvider(settings.primary, http_client),
        secondary=FmpProvider(settings.secondary, settings.fmp_api_key, http_client),
    )


async def to_canonical_request(request: Request) -> CanonicalRequest:
    """Build the canonical request; the route prefix has already been matched away."""

    body = await request.body()
    return CanonicalRequest(
        method=request.method,
        path="/" + request.path_params.get("path", ""),
        # multi_items preserves order, so the last duplicate wins
        query_params=dict(request.query_params.multi_items()),
        headers=dict(request.headers),
        body=body.decode("utf-8", errors="replace"),
    )


async def wait_for_disconnect(request: Request) -> None:
    """Return once the client goes away; the request body must already be consumed."""

    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


def create_app(settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> Starlette:
    """Create the Starlette application serving the canonical API."""

    settings = settings or get_settings()
    http_client = HttpClient(transport=transport)
    orchestrator = build_orchestrator(settings, http_client)

    async def health_check(_: Request) -> Response:
        return JSONResponse({"status": "ok", "service": settings.app_name, "version": settings.app_version})

    async def proxy(request: Request) -> Response:
        canonical = await to_canonical_request(request)
        LOGGER.info("Processing canonical API request", extra={"endpoint": canonical.path, "method": canonical.method})
        handling = asyncio.create_task(orchestrator.handle(canonical))
        disconnect = asyncio.create_task(wait_for_disconnect(request))
        try:
            done, _ = await asyncio.wait({handling, disconnect}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (handling, disconnect):
                task.cancel()
        if handling not in done:
            LOGGER.info(
                "Client disconnected, abandoning upstream calls",
                extra={"endpoint": canonical.path, "method": canonical.method},
            )
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        result = handling.result()
        return Response(content=result.body, status_code=result.status_code, media_type=result.media_type)

    @contextlib.asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await http_client.close()

    prefix = settings.route_prefix.rstrip("/")
    return Starlette(
        routes=[
            Route(settings.health_path, health_check, methods=["GET"]),
            Route(f"{prefix}/{{path:path}}", proxy, methods=PROXY_METHODS),
        ],
        lifespan=lifespan,
    )


async def run() -> None:
    """Initialize services and serve HTTP."""

    settings = get_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    LOGGER.info(
        "Starting gateway",
        extra={"host": settings.host, "port": settings.port, "route_prefix": settings.route_prefix},
    )
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
    await uvicorn.Server(config).serve()


def main() -> None:
    """Synchronous entrypoint."""

    asyncio.run(run())


if __name__ == "__main__":
    main()
