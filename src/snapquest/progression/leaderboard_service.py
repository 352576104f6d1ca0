"""XP leaderboard read straight from the profiles table.

Rank is ``1 + count(profiles with strictly more XP)``: users with equal XP
share a rank. Pages of the top list use a deterministic secondary order
(earliest ``created_at``, then id) so positions do not depend on storage order.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.db.models import Profile
from snapquest.exceptions import ProfileNotFoundError


@dataclass(frozen=True)
class LeaderboardEntry:
    position: int
    profile: Profile


async def rank(db: AsyncSession, user_id: uuid.UUID) -> int:
    """1-based rank of a user by XP."""
    xp = (await db.execute(select(Profile.xp).where(Profile.id == user_id))).scalar_one_or_none()
    if xp is None:
        raise ProfileNotFoundError(user_id)

    higher = (await db.execute(
        select(func.count(Profile.id)).where(Profile.xp > xp)
    )).scalar_one()
    return higher + 1


async def top(db: AsyncSession, limit: int = 10, offset: int = 0) -> list[LeaderboardEntry]:
    """Highest-XP profiles, each with its 1-based position in the overall ordering."""
    result = await db.execute(
        select(Profile)
        .order_by(Profile.xp.desc(), Profile.created_at.asc(), Profile.id.asc())
        .limit(limit)
        .offset(offset)
    )
    return [
        LeaderboardEntry(position=offset + i + 1, profile=profile)
        for i, profile in enumerate(result.scalars().all())
    ]


async def count_profiles(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(Profile.id)))).scalar_one()
