"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from inkwell.config import get_settings
from inkwell.database import close_db, init_db
from inkwell.goals.router import router as goals_router
from inkwell.health.router import router as health_router
from inkwell.leaderboards.router import router as leaderboards_router
from inkwell.ledger.router import router as tallies_router
from inkwell.middleware import setup_middleware
from inkwell.tags.router import router as tags_router
from inkwell.works.router import router as works_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url, pool_size=settings.database_pool_size)

    yield

    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Inkwell API",
        description="Writing progress ledger, goals and leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(works_router)
    app.include_router(tags_router)
    app.include_router(tallies_router)
    app.include_router(goals_router)
    app.include_router(leaderboards_router)

    return app


app = create_app()
