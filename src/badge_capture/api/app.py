"""
badge_capture.api.app

FastAPI app factory for the badge capture service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own the shared outbound HTTP client and the collaborators built on it.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from badge_capture import __version__
from badge_capture.api.cors import CorsMiddleware
from badge_capture.api.routers.badge import router as badge_router
from badge_capture.api.routers.health import router as health_router
from badge_capture.collaborators.kv import build_kv_store
from badge_capture.observability.logging import configure_logging, get_logger
from badge_capture.observability.middleware import RequestContextMiddleware
from badge_capture.services.submission_service import build_submission_service
from badge_capture.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    `transport` replaces the network layer of the shared httpx client; tests pass an
    `httpx.MockTransport` to stand in for the mail, KV and webhook services.
    """

    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info(
            "startup",
            env=settings.env,
            mail_provider=settings.mail_provider,
            kv_backend=settings.kv_backend,
        )
        # One client for every collaborator; its timeout bounds each external call.
        http = httpx.AsyncClient(
            timeout=settings.http_timeout_seconds,
            follow_redirects=True,
            transport=transport,
        )
        kv_store = build_kv_store(settings, http)
        app.state.http = http
        app.state.submission_service = build_submission_service(
            settings, http=http, kv_store=kv_store
        )
        try:
            yield
        finally:
            await http.aclose()
            log.info("shutdown")

    app = FastAPI(
        title="Badge Capture",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Last added runs first: CORS wraps everything, including 405/415 responses.
    app.add_middleware(RequestContextMiddleware, client_ip_header=settings.client_ip_header)
    app.add_middleware(CorsMiddleware, allowed_origins=settings.cors_allowed_origins)

    app.include_router(health_router, prefix=settings.route_prefix, tags=["health"])
    app.include_router(badge_router, prefix=settings.route_prefix)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; validation and step orchestration live in the service
# and orchestrator layers.
