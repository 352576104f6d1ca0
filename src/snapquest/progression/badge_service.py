"""Badge evaluation and idempotent award."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.config import get_settings
from snapquest.db.models import BadgeDefinition, Challenge, Event, Photo, QuestProgress, UserBadge
from snapquest.progression.badge_catalog import RequirementType
from snapquest.progression.xp_service import get_profile
from snapquest.redis_client import publish_event

logger = logging.getLogger(__name__)

# Local hours [start, end) in the reference calendar
EARLY_BIRD_HOURS = (3, 6)
NIGHT_OWL_HOURS = (0, 3)


@dataclass(frozen=True)
class BadgeMetrics:
    """Aggregates from a user's history, one per requirement type."""

    longest_streak: int = 0
    photos: int = 0
    likes_received: int = 0
    top_photos: int = 0
    theme_repeats: int = 0
    favorite_theme: str | None = None
    xp: int = 0
    level: int = 1
    hunts_completed: int = 0
    events_created: int = 0
    events_joined: int = 0
    has_early_photo: bool = False
    has_late_photo: bool = False


@dataclass(frozen=True)
class BadgeProgress:
    badge: BadgeDefinition
    earned_at: datetime | None
    value: int
    percent: int

    @property
    def earned(self) -> bool:
        return self.earned_at is not None


def local_hour(moment: datetime, tz: ZoneInfo) -> int:
    """Hour of ``moment`` in ``tz``. Naive timestamps are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).hour


async def _photo_hours(db: AsyncSession, user_id: uuid.UUID, tz: ZoneInfo) -> set[int]:
    result = await db.execute(select(Photo.created_at).where(Photo.user_id == user_id))
    return {local_hour(created_at, tz) for created_at in result.scalars()}


async def compute_metrics(
    db: AsyncSession,
    user_id: uuid.UUID,
    top_photo_likes: int | None = None,
    timezone_name: str | None = None,
) -> BadgeMetrics:
    """Aggregate the user's progression history.

    Photo hours are read in the streak calendar (``timezone_name``).
    """
    settings = get_settings()
    if top_photo_likes is None:
        top_photo_likes = settings.top_photo_likes
    tz = ZoneInfo(timezone_name or settings.streak_timezone)

    profile = await get_profile(db, user_id)

    photo_row = (await db.execute(
        select(
            func.count(Photo.id),
            func.coalesce(func.sum(Photo.likes_count), 0),
            func.count(Photo.id).filter(Photo.likes_count >= top_photo_likes),
        ).where(Photo.user_id == user_id)
    )).one()
    photos, likes_received, top_photos = photo_row

    theme_count = func.count(Photo.id).label("theme_count")
    theme_row = (await db.execute(
        select(Challenge.title, theme_count)
        .select_from(Photo)
        .join(Challenge, Photo.challenge_id == Challenge.id)
        .where(Photo.user_id == user_id)
        .group_by(Challenge.title)
        .order_by(theme_count.desc(), Challenge.title)
        .limit(1)
    )).one_or_none()

    hunts_completed = (await db.execute(
        select(func.count(QuestProgress.id)).where(
            QuestProgress.user_id == user_id,
            QuestProgress.quest_kind == "hunt",
            QuestProgress.completed_at.is_not(None),
        )
    )).scalar_one()

    events_created = (await db.execute(
        select(func.count(Event.id)).where(Event.creator_id == user_id)
    )).scalar_one()

    # Joining an event starts its progress row; the creator joins their own event.
    events_joined = (await db.execute(
        select(func.count(QuestProgress.id)).where(
            QuestProgress.user_id == user_id,
            QuestProgress.quest_kind == "event",
        )
    )).scalar_one()

    hours = await _photo_hours(db, user_id, tz)

    return BadgeMetrics(
        longest_streak=profile.longest_streak,
        photos=photos,
        likes_received=int(likes_received),
        top_photos=top_photos,
        theme_repeats=theme_row[1] if theme_row else 0,
        favorite_theme=theme_row[0] if theme_row else None,
        xp=profile.xp,
        level=profile.level,
        hunts_completed=hunts_completed,
        events_created=events_created,
        events_joined=events_joined,
        has_early_photo=any(EARLY_BIRD_HOURS[0] <= h < EARLY_BIRD_HOURS[1] for h in hours),
        has_late_photo=any(NIGHT_OWL_HOURS[0] <= h < NIGHT_OWL_HOURS[1] for h in hours),
    )


def progress_value(badge: BadgeDefinition, metrics: BadgeMetrics) -> int:
    """The metric a badge's requirement is measured against."""
    try:
        requirement = RequirementType(badge.requirement_type)
    except ValueError:
        logger.warning("Unknown badge requirement type %r on %s", badge.requirement_type, badge.slug)
        return 0

    if requirement is RequirementType.STREAK:
        return metrics.longest_streak
    if requirement is RequirementType.PHOTOS:
        return metrics.photos
    if requirement is RequirementType.LIKES_RECEIVED:
        return metrics.likes_received
    if requirement is RequirementType.TOP_PHOTOS:
        return metrics.top_photos
    if requirement is RequirementType.THEME_REPEATS:
        return metrics.theme_repeats
    if requirement is RequirementType.XP:
        return metrics.xp
    if requirement is RequirementType.LEVEL:
        return metrics.level
    if requirement is RequirementType.HUNTS:
        return metrics.hunts_completed
    if requirement is RequirementType.EVENTS_CREATED:
        return metrics.events_created
    if requirement is RequirementType.EVENTS_JOINED:
        return metrics.events_joined
    if requirement is RequirementType.EARLY_BIRD:
        return int(metrics.has_early_photo)
    return int(metrics.has_late_photo)


def required_value(badge: BadgeDefinition) -> int:
    """Threshold of a badge; a non-positive stored value means 1."""
    return badge.requirement_value if badge.requirement_value > 0 else 1


def progress_towards(badge: BadgeDefinition, metrics: BadgeMetrics) -> int:
    """Percent progress, 0..100, rounded half up."""
    return min(100, int(progress_value(badge, metrics) * 100 / required_value(badge) + 0.5))


def is_eligible(badge: BadgeDefinition, metrics: BadgeMetrics) -> bool:
    return progress_value(badge, metrics) >= required_value(badge)


async def list_badge_definitions(db: AsyncSession) -> list[BadgeDefinition]:
    result = await db.execute(select(BadgeDefinition).order_by(BadgeDefinition.sort_order, BadgeDefinition.id))
    return list(result.scalars().all())


async def get_user_badges(db: AsyncSession, user_id: uuid.UUID) -> list[UserBadge]:
    result = await db.execute(
        select(UserBadge).where(UserBadge.user_id == user_id).order_by(UserBadge.earned_at, UserBadge.id)
    )
    return list(result.scalars().unique().all())


async def sync_badges(db: AsyncSession, redis: object, user_id: uuid.UUID) -> list[BadgeDefinition]:
    """Award every badge the user now qualifies for. Returns the newly awarded ones.

    Safe to repeat and to run concurrently: each award is an insert guarded by
    UNIQUE(user_id, badge_id) inside its own savepoint, so a duplicate is a
    no-op. Earned badges are never revoked.
    """
    metrics = await compute_metrics(db, user_id)
    earned_ids = set((await db.execute(
        select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
    )).scalars().all())

    awarded: list[BadgeDefinition] = []
    for badge in await list_badge_definitions(db):
        if badge.id in earned_ids or not is_eligible(badge, metrics):
            continue
        try:
            async with db.begin_nested():
                db.add(UserBadge(user_id=user_id, badge_id=badge.id))
                await db.flush()
        except IntegrityError:
            continue  # Race condition: badge already awarded
        awarded.append(badge)

    for badge in awarded:
        logger.info("Awarded badge %s to %s", badge.slug, user_id)
        await publish_event(redis, "badge_earned", {
            "user_id": str(user_id),
            "badge_slug": badge.slug,
            "badge_name": badge.name,
        })

    return awarded


async def get_badge_progress(db: AsyncSession, user_id: uuid.UUID) -> list[BadgeProgress]:
    """Every catalog badge with the user's earned date and progress."""
    metrics = await compute_metrics(db, user_id)
    earned = {ub.badge_id: ub.earned_at for ub in await get_user_badges(db, user_id)}
    return [
        BadgeProgress(
            badge=badge,
            earned_at=earned.get(badge.id),
            value=progress_value(badge, metrics),
            percent=100 if badge.id in earned else progress_towards(badge, metrics),
        )
        for badge in await list_badge_definitions(db)
    ]


async def get_user_achievements(db: AsyncSession, user_id: uuid.UUID) -> dict:
    """Profile achievement summary."""
    metrics = await compute_metrics(db, user_id)
    return {
        "longest_streak": metrics.longest_streak,
        "total_photos": metrics.photos,
        "total_likes": metrics.likes_received,
        "top_photos_count": metrics.top_photos,
        "favorite_theme": metrics.favorite_theme,
        "favorite_theme_count": metrics.theme_repeats,
    }
