"""Application factory for the FastAPI app.

Builds the app with its middleware, handlers and routers, and ties the
service container's lifetime to the app lifespan: the rate-limit sweep starts
with the app and stops, together with the HTTP client, on shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import health_router, rate_limits_router, regions_router
from app.core.config import Settings, settings as default_settings
from app.core.dependencies import ServiceContainer
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import build_request_id_middleware


def create_app(
    services: ServiceContainer | None = None,
    cfg: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        services: Pre-built container (tests inject one with a mock
            transport); built from settings at startup when omitted.
        cfg: Settings to use; defaults to the global settings.

    Returns:
        Configured FastAPI app.
    """
    cfg = cfg or default_settings
    configure_logging(cfg.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container = services or ServiceContainer.build(cfg)
        await container.start()
        app.state.services = container
        try:
            yield
        finally:
            await container.aclose()

    app = FastAPI(
        title="Region Gateway",
        description=(
            "Administrative region lookups (province, regency, district, "
            "village) for address entry, cached with a fixed TTL, plus "
            "per-action fixed-window rate-limit checks."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(build_request_id_middleware(cfg.log.request_id_header))
    setup_exception_handlers(app)

    app.include_router(regions_router, prefix="/v1")
    app.include_router(rate_limits_router, prefix="/v1")
    app.include_router(health_router)

    return app
