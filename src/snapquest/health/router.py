"""Liveness, readiness and version endpoints."""

import logging

from fastapi import APIRouter, Depends, Response
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.config import get_settings
from snapquest.database import get_session
from snapquest.redis_client import get_redis

logger = logging.getLogger(__name__)

router = APIRouter()


async def _database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Readiness: database check failed: %s", exc)
        return "error"
    return "ok"


async def _redis_status() -> str:
    try:
        redis = get_redis()
    except RuntimeError:
        return "disabled"
    try:
        await redis.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Readiness: redis check failed: %s", exc)
        return "error"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    response: Response,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Ready when the database answers. Redis only feeds events and rate limits, so it may be off."""
    checks = {
        "database": await _database_status(db),
        "redis": await _redis_status(),
        "match_scorer": "enabled" if get_settings().match_scorer_enabled else "disabled",
    }
    ready = checks["database"] == "ok" and checks["redis"] != "error"
    if not ready:
        response.status_code = 503
    return {"status": "ready" if ready else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
