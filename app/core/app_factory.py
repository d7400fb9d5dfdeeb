"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns the lifecycle of the rate limit store: it is created when the app
starts, exposed on ``app.state.rate_limit_store`` and closed on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimitStore
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from app.api.routes import health_router, profile_router, rate_limit_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import TAGS_METADATA, apply_openapi_customizations

logger = logging.getLogger(__name__)


def _default_store() -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore(
        cleanup_interval_seconds=settings.app.rate_limit_cleanup_interval_seconds,
    )


def create_app(rate_limit_store: AbstractRateLimitStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limit_store: Store to use instead of a fresh in-memory one
            (tests, or a shared backend). The app closes it on shutdown.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    store = rate_limit_store if rate_limit_store is not None else _default_store()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store.start()
        logger.info(
            "app.startup",
            extra={
                "app_env": settings.app_env,
                "rate_limit_enabled": settings.app.rate_limit_enabled,
                "rate_limit_store": type(store).__name__,
            },
        )
        try:
            yield
        finally:
            store.close()
            logger.info("app.shutdown")

    app = FastAPI(
        title="Finanwas Profile API",
        description=(
            "Servicio de Finanwas que clasifica el perfil de inversor "
            "(conservador, moderado o agresivo) a partir del cuestionario de "
            "onboarding y aplica límites de uso por cliente y endpoint."
        ),
        version="0.1.0",
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )
    # Available before startup too, e.g. for TestClient without a context
    app.state.rate_limit_store = store

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(profile_router, prefix="/v1")
    app.include_router(rate_limit_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
