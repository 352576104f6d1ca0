"""Daily streak tracking.

A streak counts consecutive calendar days with at least one XP-earning
action, in the reference calendar configured by ``streak_timezone``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import case, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.config import get_settings
from snapquest.db.models import Profile
from snapquest.exceptions import ProfileNotFoundError
from snapquest.redis_client import publish_event

logger = logging.getLogger(__name__)


def reference_today(tz_name: str | None = None) -> date:
    """Today in the reference calendar."""
    return datetime.now(ZoneInfo(tz_name or get_settings().streak_timezone)).date()


async def update_streak(
    db: AsyncSession,
    redis: object,
    user_id: uuid.UUID,
    today: date | None = None,
) -> Profile:
    """Count ``today`` towards the user's streak.

    A single UPDATE, guarded so it only matches rows not yet active today:
    - last activity yesterday: streak + 1
    - gap, or no prior activity: streak = 1
    ``longest_streak`` keeps the maximum and ``last_activity_date`` becomes today.
    When the guard does not match, the day was already counted and nothing
    changes; concurrent same-day calls therefore advance the streak once.
    """
    if today is None:
        today = reference_today()
    yesterday = today - timedelta(days=1)

    new_streak = case(
        (Profile.last_activity_date == yesterday, Profile.streak + 1),
        else_=1,
    )

    result = await db.execute(
        update(Profile)
        .where(
            Profile.id == user_id,
            or_(Profile.last_activity_date.is_(None), Profile.last_activity_date < today),
        )
        .values(
            streak=new_streak,
            longest_streak=case(
                (new_streak > Profile.longest_streak, new_streak),
                else_=Profile.longest_streak,
            ),
            last_activity_date=today,
        )
        .returning(Profile.streak, Profile.longest_streak)
        .execution_options(synchronize_session=False)
    )
    advanced = result.one_or_none()

    profile = await db.get(Profile, user_id, populate_existing=True)
    if profile is None:
        raise ProfileNotFoundError(user_id)

    if advanced is not None:
        streak, longest = advanced
        logger.info("Streak for %s is now %d (longest %d)", user_id, streak, longest)
        await publish_event(redis, "streak_update", {
            "user_id": str(user_id),
            "streak": streak,
            "longest_streak": longest,
            "date": today.isoformat(),
        })

    return profile
