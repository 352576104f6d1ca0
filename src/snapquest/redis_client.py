"""Redis pool and progression event fan-out.

Redis is optional: without ``SNAPQUEST_REDIS_URL`` the pool is never
created, ``get_redis`` raises, and publishers receive ``None``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

EVENT_CHANNELS = frozenset({"level_up", "badge_earned", "streak_update", "quest_completed"})

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
        health_check_interval=30,
    )
    logger.info("Redis client created for %s", url.rsplit("@", 1)[-1])


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Return the shared client; RuntimeError when Redis is disabled."""
    if _client is None:
        msg = "Redis is not configured"
        raise RuntimeError(msg)
    return _client


def encode_event(channel: str, payload: dict[str, Any]) -> str:
    return json.dumps(
        {"type": channel, "at": datetime.now(timezone.utc).isoformat(), **payload},
        default=str,
        ensure_ascii=False,
    )


async def publish_event(redis_client: object, channel: str, payload: dict[str, Any]) -> None:
    """Publish to ``pubsub:<channel>``. Failures are logged and never reach the caller."""
    if channel not in EVENT_CHANNELS:
        msg = f"Unknown event channel: {channel}"
        raise ValueError(msg)
    if redis_client is None:
        return
    try:
        await redis_client.publish(f"pubsub:{channel}", encode_event(channel, payload))  # type: ignore[attr-defined]
    except (RedisError, OSError):
        logger.warning("Failed to publish %s event", channel, exc_info=True)
