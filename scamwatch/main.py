"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scamwatch.api.v1.router import api_router
from scamwatch.config import settings
from scamwatch.core.logging import setup_logging
from scamwatch.core.redis import close_redis, ping_redis
from scamwatch.dependencies import build_services
from scamwatch.integrations.google_trends import GoogleTrendsClient
from scamwatch.integrations.search_console import SearchConsoleClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Authentication against Search Console is mandatory: an error here
    propagates and the application does not start.
    """
    setup_logging()

    logger.info(
        "Starting ScamWatch",
        extra={
            "environment": settings.environment,
            "version": settings.app_version,
            "site_url": settings.search_console_site_url,
            "cache_backend": settings.cache_backend,
        },
    )

    services = build_services()
    source = services.source
    if isinstance(source, SearchConsoleClient):
        if settings.search_console_enabled:
            await source.open()
        else:
            logger.warning("Search Console disabled - analytics endpoints will fail")

    if await services.matcher.initialize():
        logger.info("Semantic matching enabled", extra=services.matcher.status())
    else:
        logger.info("Semantic matching unavailable, using lexical similarity only")

    app.state.services = services

    yield

    logger.info("Shutting down ScamWatch")
    if isinstance(source, SearchConsoleClient):
        await source.aclose()
    if isinstance(services.trends_source, GoogleTrendsClient):
        await services.trends_source.aclose()
    if settings.cache_backend == "redis":
        await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description=(
            "Scam query detection over search analytics: rule-based keyword "
            "classification, dynamic CTR benchmarks and emerging threat scoring"
        ),
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        cast(Any, CORSMiddleware),
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_v1_prefix)

    @app.get(
        "/health",
        summary="Health check",
        description="Return service health, version, cache backend and semantic matcher readiness.",
    )
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        services = getattr(app.state, "services", None)
        cache_ok = await ping_redis() if settings.cache_backend == "redis" else True
        return {
            "status": "healthy" if cache_ok else "degraded",
            "version": settings.app_version,
            "cache_backend": settings.cache_backend,
            "semantic_ready": bool(services and services.matcher.ready()),
        }

    return app


app = create_app()
