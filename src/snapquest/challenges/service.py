"""Challenge catalog and daily challenge rotation."""

from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.db.models import Challenge
from snapquest.exceptions import ChallengeNotFoundError
from snapquest.verification.keywords import challenge_prompt, extract_keywords


def daily_index(today: date, count: int) -> int:
    """Position of today's challenge in the ``day_number`` ordered rotation."""
    return (today.timetuple().tm_yday - 1) % count


async def list_challenges(
    db: AsyncSession,
    category: str | None = None,
    difficulty: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Challenge]:
    stmt = select(Challenge)
    if category:
        stmt = stmt.where(Challenge.category == category)
    if difficulty:
        stmt = stmt.where(Challenge.difficulty == difficulty)
    result = await db.execute(
        stmt.order_by(Challenge.day_number.asc().nulls_last(), Challenge.created_at.desc(), Challenge.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def get_challenge(db: AsyncSession, challenge_id: uuid.UUID) -> Challenge:
    challenge = await db.get(Challenge, challenge_id)
    if challenge is None:
        raise ChallengeNotFoundError(f"Challenge not found: {challenge_id}")
    return challenge


async def get_daily_challenge(db: AsyncSession, today: date) -> Challenge:
    """The shared prompt for ``today``, cycling through daily challenges by day of year."""
    result = await db.execute(
        select(Challenge)
        .where(Challenge.is_daily.is_(True))
        .order_by(Challenge.day_number.asc().nulls_last(), Challenge.id)
    )
    dailies = list(result.scalars().all())
    if not dailies:
        raise ChallengeNotFoundError("No daily challenges configured")
    return dailies[daily_index(today, len(dailies))]


def challenge_keywords(challenge: Challenge) -> list[str]:
    return extract_keywords(challenge_prompt(challenge.title, challenge.description))
