from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers, static files) so tests can build isolated instances.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api.routes import changelog_router, health_router, pages_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import (
    minify_html_middleware,
    request_id_middleware,
    security_headers_middleware,
)
from app.core.rate_limit import build_rate_limiter, get_rate_limiter, rate_limit_middleware
from app.core.templates import STATIC_DIR

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Stop the rate limiter's sweeper when the server shuts down."""

    logger.info(
        "app.startup",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": get_rate_limiter(app) is not None,
        },
    )
    try:
        yield
    finally:
        limiter = get_rate_limiter(app)
        if limiter is not None:
            limiter.shutdown()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title=settings.site.name,
        description=settings.site.description,
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.state.rate_limiter = (
        build_rate_limiter(settings.app) if settings.app.rate_limit_enabled else None
    )

    # Middleware (innermost first)
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(minify_html_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(pages_router)
    app.include_router(changelog_router)
    app.include_router(health_router)

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    return app
