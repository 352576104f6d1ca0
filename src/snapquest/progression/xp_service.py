"""XP ledger: atomic credit with idempotency and level-up detection."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.db.models import Photo, Profile, XPLedger
from snapquest.exceptions import InvalidXPAmountError, ProfileNotFoundError
from snapquest.progression.level_thresholds import compute_level, level_case
from snapquest.redis_client import publish_event

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _username_from_email(user_id: uuid.UUID, email: str | None) -> str:
    if email and "@" in email:
        local = email.split("@", 1)[0].strip()
        if local:
            return local[:64]
    return f"user_{user_id.hex[:8]}"


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    """Fetch a profile or raise ``ProfileNotFoundError``."""
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise ProfileNotFoundError(user_id)
    return profile


async def get_or_create_profile(db: AsyncSession, user_id: uuid.UUID, email: str | None = None) -> Profile:
    """Get or create the profile row for an authenticated user.

    Two first requests racing on the same id both end up with the row: the
    loser's insert hits the primary key and re-reads.
    """
    profile = await db.get(Profile, user_id)
    if profile is not None:
        return profile

    try:
        async with db.begin_nested():
            profile = Profile(id=user_id, username=_username_from_email(user_id, email))
            db.add(profile)
            await db.flush()
    except IntegrityError:
        profile = await db.get(Profile, user_id, populate_existing=True)
        if profile is None:
            raise
        return profile

    await db.refresh(profile)
    logger.info("Created profile %s", user_id)
    return profile


async def update_profile(
    db: AsyncSession,
    profile: Profile,
    username: str | None = None,
    display_name: str | None = None,
    avatar_url: str | None = None,
) -> Profile:
    """Update user-chosen profile fields. Progression columns are not writable here."""
    if username is not None:
        profile.username = username
    if display_name is not None:
        profile.display_name = display_name
    if avatar_url is not None:
        profile.avatar_url = avatar_url
    await db.flush()
    await db.refresh(profile)
    return profile


async def add_xp(
    db: AsyncSession,
    redis: object,
    user_id: uuid.UUID,
    amount: int,
    source: str,
    source_id: str | None = None,
    description: str | None = None,
    idempotency_key: str | None = None,
) -> Profile | None:
    """Credit ``amount`` XP to a user.

    Returns the refreshed profile, or None when ``idempotency_key`` was
    already credited. Runs in a savepoint of the caller's transaction:
    1. Atomic ``xp = xp + amount`` with the level recomputed in the same statement
    2. Append the ledger row (duplicate key rolls the savepoint back)
    3. If the level changed, emit level_up

    The increment is a single UPDATE, so concurrent credits never lose updates.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidXPAmountError(amount)

    try:
        async with db.begin_nested():
            result = await db.execute(
                update(Profile)
                .where(Profile.id == user_id)
                .values(xp=Profile.xp + amount, level=level_case(Profile.xp + amount))
                .returning(Profile.xp)
                .execution_options(synchronize_session=False)
            )
            new_xp = result.scalar_one_or_none()
            if new_xp is None:
                raise ProfileNotFoundError(user_id)

            db.add(XPLedger(
                user_id=user_id,
                amount=amount,
                source=source,
                source_id=source_id,
                description=description,
                idempotency_key=idempotency_key,
            ))
            await db.flush()
    except IntegrityError:
        if idempotency_key is None:
            raise
        logger.info("XP already credited for %s", idempotency_key)
        return None

    profile = await db.get(Profile, user_id, populate_existing=True)
    if profile is None:
        raise ProfileNotFoundError(user_id)

    old_level = compute_level(new_xp - amount)["level"]
    logger.info("Credited %d XP to %s (%s), total %d", amount, user_id, source, new_xp)

    if profile.level > old_level:
        await publish_event(redis, "level_up", {
            "user_id": str(user_id),
            "old_level": old_level,
            "new_level": profile.level,
            "title": compute_level(new_xp)["title"],
        })

    return profile


async def get_xp_history(
    db: AsyncSession,
    user_id: uuid.UUID,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[XPLedger], int]:
    """Newest-first ledger entries and the total entry count."""
    total = (await db.execute(
        select(func.count()).select_from(XPLedger).where(XPLedger.user_id == user_id)
    )).scalar_one()
    result = await db.execute(
        select(XPLedger)
        .where(XPLedger.user_id == user_id)
        .order_by(XPLedger.created_at.desc(), XPLedger.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


def _local_date(ts: datetime, tz: ZoneInfo) -> date:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).date()


async def get_weekly_activity(
    db: AsyncSession,
    user_id: uuid.UUID,
    today: date,
    tz_name: str = "UTC",
) -> list[dict]:
    """XP earned per day from Monday to Sunday of the week containing ``today``."""
    tz = ZoneInfo(tz_name)
    monday = today - timedelta(days=today.weekday())
    # One day of slack on each side; exact bucketing happens in the local calendar.
    window_start = datetime.combine(monday - timedelta(days=1), datetime.min.time(), tzinfo=timezone.utc)

    result = await db.execute(
        select(Photo.created_at, Photo.xp_earned).where(
            Photo.user_id == user_id,
            Photo.xp_earned > 0,
            Photo.created_at >= window_start,
        )
    )

    totals = {monday + timedelta(days=i): 0 for i in range(7)}
    for created_at, xp_earned in result.all():
        day = _local_date(created_at, tz)
        if day in totals:
            totals[day] += xp_earned

    return [
        {"date": day, "day": WEEKDAY_NAMES[day.weekday()], "xp": xp}
        for day, xp in totals.items()
    ]
