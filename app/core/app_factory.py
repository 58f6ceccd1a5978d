"""Application factory for the FastAPI app.

Centralizes app construction (limiter ownership, middleware, handlers,
routers) so tests can build isolated apps with their own limiter and clock.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit import AbstractRateLimiter, InMemoryFixedWindowRateLimiter, RateLimitSweeper
from app.api.routes import health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import rate_limit_middleware


def create_app(*, rate_limiter: AbstractRateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to own; a fresh in-memory limiter when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    limiter = rate_limiter if rate_limiter is not None else InMemoryFixedWindowRateLimiter()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweeper = RateLimitSweeper(
            limiter,
            interval_seconds=settings.app.rate_limit_sweep_interval_seconds,
        )
        await sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(
        title="RetroWeb Builder API",
        description=(
            "API edge of the RetroWeb Builder: per-client rate limiting for "
            "/api/ routes and input validation helpers for the builder routes."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.rate_limiter = limiter

    # Middleware: last registered runs first, so request ids wrap rate limiting
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(health_router)

    return app
