# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Portal Handoff - Main Application Module."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from beartype import beartype
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.response_patterns import register_exception_handlers
from .api.v1 import router as v1_router
from .core.cache import close_redis_pool, init_redis_pool
from .core.config import Settings, get_settings
from .core.database import close_db_pool, init_db_pool
from .core.logging_utils import configure_logging, get_logger
from .core.rate_limiter import get_rate_limiter
from .exchange import ExchangeSweeper, get_exchange_store

logger = get_logger(__name__)


def _needs_database(settings: Settings) -> bool:
    return "postgres" in (settings.exchange_backend, settings.scope_backend)


def _needs_redis(settings: Settings) -> bool:
    return "redis" in (settings.exchange_backend, settings.rate_limit_backend)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    settings = get_settings()
    logger.info(
        "Starting Portal Handoff in %s mode (delivery=%s, exchange=%s)",
        settings.api_env,
        settings.handoff_delivery,
        settings.exchange_backend,
    )

    if _needs_database(settings):
        await init_db_pool()
        logger.info("Database connection pool initialized")
    if _needs_redis(settings):
        await init_redis_pool()
        logger.info("Redis connection pool initialized")

    sweeper = ExchangeSweeper(
        get_exchange_store(),
        interval_seconds=settings.exchange_sweep_interval_seconds,
        rate_limiter=get_rate_limiter(),
    )
    await sweeper.start()
    app.state.sweeper = sweeper

    yield

    logger.info("Shutting down Portal Handoff")
    await sweeper.stop()
    if _needs_redis(settings):
        await close_redis_pool()
    if _needs_database(settings):
        await close_db_pool()


@beartype
def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    configure_logging()
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        description="Short-lived token issuance and one-time state exchange "
        "for cross-domain application launch",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    register_exception_handlers(app)
    app.include_router(v1_router)

    return app


# Create the application instance
app = create_app()


@beartype
def main() -> None:
    """Run the main application entry point."""
    settings = get_settings()

    uvicorn.run(
        "portal_handoff.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level="info" if not settings.is_production else "error",
    )


if __name__ == "__main__":
    main()
