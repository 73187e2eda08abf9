"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from simplysecure.config import get_settings
from simplysecure.database import close_db, init_db
from simplysecure.gamification.router import router as gamification_router
from simplysecure.health.router import router as health_router
from simplysecure.middleware import setup_middleware
from simplysecure.missions.router import router as missions_router
from simplysecure.permissions.router import router as permissions_router
from simplysecure.redis_client import close_redis, init_redis
from simplysecure.training.router import router as training_router
from simplysecure.users.router import router as users_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SimplySecure API",
        description="Security training for macOS users: permission risk, guided hardening tasks, XP and achievements",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(permissions_router)
    app.include_router(training_router)
    app.include_router(gamification_router)
    app.include_router(missions_router)

    return app


app = create_app()
