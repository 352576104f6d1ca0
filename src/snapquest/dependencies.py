"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator
from datetime import date, datetime
from zoneinfo import ZoneInfo

from snapquest.config import get_settings
from snapquest.database import get_session as _get_session
from snapquest.redis_client import get_redis as _get_redis
from snapquest.storage import LocalPhotoStorage, PhotoStorage
from snapquest.verification.scorer import HuggingFaceClipScorer, MatchScorer

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client, or None when Redis is not configured for this process."""
    try:
        client: object = _get_redis()
    except RuntimeError:
        client = None
    yield client


def get_today() -> date:
    """Current date in the reference calendar used for streaks."""
    settings = get_settings()
    return datetime.now(ZoneInfo(settings.streak_timezone)).date()


def get_match_scorer() -> MatchScorer:
    """Build the configured image/label scorer."""
    settings = get_settings()
    return HuggingFaceClipScorer(
        url=settings.match_scorer_url,
        api_token=settings.match_scorer_token or None,
        timeout=settings.match_scorer_timeout_seconds,
        enabled=settings.match_scorer_enabled,
    )


def get_photo_storage() -> PhotoStorage:
    """Build the configured photo blob storage."""
    settings = get_settings()
    return LocalPhotoStorage(settings.media_dir, settings.media_base_url)
