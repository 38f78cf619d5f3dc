"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from vpe.config import get_settings
from vpe.database import close_db, init_db
from vpe.engine.facade import ProgressionEngine
from vpe.engine.router import router as progression_router
from vpe.engine_config import EngineConfig
from vpe.health.router import router as health_router
from vpe.middleware import setup_middleware
from vpe.redis_client import close_redis, get_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # One engine per process: its per-account locks must be shared by all requests
    app.state.engine = ProgressionEngine(EngineConfig.from_settings(settings), redis=get_redis())
    logger.info(
        "engine_started",
        environment=settings.environment,
        redis_enabled=get_redis() is not None,
        holdings_boost_curve=settings.holdings_boost_curve,
    )

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="VOID Progression Engine",
        description="Reputation score, message rate limits and seasonal burn XP",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progression_router)

    return app


app = create_app()
