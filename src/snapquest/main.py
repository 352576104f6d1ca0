"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from snapquest.challenges.router import router as challenges_router
from snapquest.config import Settings, get_settings
from snapquest.database import close_db, get_session_factory, init_db
from snapquest.health.router import router as health_router
from snapquest.middleware import setup_middleware
from snapquest.progression.badge_catalog import seed_badges
from snapquest.progression.router import router as progression_router
from snapquest.quests.router import router as quests_router
from snapquest.redis_client import close_redis, init_redis
from snapquest.submissions.router import router as submissions_router

logger = logging.getLogger(__name__)


async def _seed_catalog() -> None:
    try:
        async with get_session_factory()() as db:
            created = await seed_badges(db)
    except SQLAlchemyError:
        logger.warning("Badge seeding skipped, schema not migrated yet?", exc_info=True)
        return
    if created:
        logger.info("Seeded %d badge definitions", created)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)
    else:
        logger.info("Redis disabled: events are not published and rate limits are off")
    await _seed_catalog()

    yield

    await close_redis()
    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="SnapQuest API",
        description="Daily photo challenges: verification, XP, streaks, badges and quests",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    for router in (progression_router, challenges_router, submissions_router, quests_router):
        app.include_router(router)

    # Local-disk photos; a CDN-backed storage serves its own URLs.
    app.mount("/media", StaticFiles(directory=settings.media_dir, check_dir=False), name="media")
    return app


app = create_app()
