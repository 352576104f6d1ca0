"""Hunt catalog and private event management."""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.db.models import Event, EventChallenge, Hunt, HuntTask, QuestProgress
from snapquest.exceptions import EventCodeNotFoundError, InvalidInputError, PersistenceError
from snapquest.quests.tracker import QuestKind, QuestTracker

logger = logging.getLogger(__name__)

ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 6
ACCESS_CODE_ATTEMPTS = 5
EVENT_TYPES = frozenset({"wedding", "party", "teambuilding", "birthday", "other"})


@dataclass(frozen=True)
class HuntSummary:
    hunt: Hunt
    task_count: int
    total_xp: int
    participants_count: int


def generate_access_code() -> str:
    """Six characters from an alphabet without 0/O or 1/I."""
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


# ---------------------------------------------------------------------------
# Hunts
# ---------------------------------------------------------------------------


async def _participant_counts(db: AsyncSession, kind: QuestKind, quest_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
    if not quest_ids:
        return {}
    result = await db.execute(
        select(QuestProgress.quest_id, func.count(QuestProgress.id))
        .where(QuestProgress.quest_kind == kind.value, QuestProgress.quest_id.in_(quest_ids))
        .group_by(QuestProgress.quest_id)
    )
    return {row[0]: row[1] for row in result.all()}


async def list_active_hunts(db: AsyncSession) -> list[HuntSummary]:
    """Active hunts, newest first, with task count, total XP and participants."""
    task_stats = (
        select(
            HuntTask.hunt_id.label("hunt_id"),
            func.count(HuntTask.id).label("task_count"),
            func.coalesce(func.sum(HuntTask.xp_reward), 0).label("total_xp"),
        )
        .group_by(HuntTask.hunt_id)
        .subquery()
    )
    result = await db.execute(
        select(Hunt, task_stats.c.task_count, task_stats.c.total_xp)
        .outerjoin(task_stats, task_stats.c.hunt_id == Hunt.id)
        .where(Hunt.is_active.is_(True))
        .order_by(Hunt.created_at.desc(), Hunt.id)
    )
    rows = result.all()
    participants = await _participant_counts(db, QuestKind.HUNT, [row[0].id for row in rows])
    return [
        HuntSummary(
            hunt=hunt,
            task_count=task_count or 0,
            total_xp=int(total_xp or 0),
            participants_count=participants.get(hunt.id, 0),
        )
        for hunt, task_count, total_xp in rows
    ]


async def get_hunt_tasks(db: AsyncSession, hunt_id: uuid.UUID) -> list[HuntTask]:
    result = await db.execute(
        select(HuntTask).where(HuntTask.hunt_id == hunt_id).order_by(HuntTask.order_num, HuntTask.id)
    )
    return list(result.scalars().all())


async def get_hunt_detail(db: AsyncSession, hunt_id: uuid.UUID) -> tuple[Hunt, list[HuntTask]]:
    """Hunt with its tasks in order."""
    hunt = await QuestTracker(db).load_quest(QuestKind.HUNT, hunt_id)
    return hunt, await get_hunt_tasks(db, hunt_id)  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


async def create_event(
    db: AsyncSession,
    creator_id: uuid.UUID,
    name: str,
    event_type: str = "party",
    description: str | None = None,
    challenges: list[dict] | None = None,
    default_xp_reward: int = 30,
) -> Event:
    """Create an active event with a fresh access code; the creator joins it.

    Challenges are ``{"title", "description"?, "xp_reward"?}`` dicts, ordered
    as given.
    """
    if event_type not in EVENT_TYPES:
        raise InvalidInputError(f"Unknown event type: {event_type}")

    event: Event | None = None
    for _ in range(ACCESS_CODE_ATTEMPTS):
        try:
            async with db.begin_nested():
                event = Event(
                    name=name,
                    description=description,
                    access_code=generate_access_code(),
                    creator_id=creator_id,
                    event_type=event_type,
                    status="active",
                )
                db.add(event)
                await db.flush()
            break
        except IntegrityError:
            event = None  # Access code collision
    if event is None:
        raise PersistenceError("Could not allocate a unique access code")

    for index, challenge in enumerate(challenges or []):
        db.add(EventChallenge(
            event_id=event.id,
            title=challenge["title"],
            description=challenge.get("description"),
            order_num=index,
            xp_reward=challenge.get("xp_reward") or default_xp_reward,
        ))
    await db.flush()

    await QuestTracker(db).start(creator_id, QuestKind.EVENT, event.id)
    await db.refresh(event)
    logger.info("Event %s created by %s with code %s", event.id, creator_id, event.access_code)
    return event


async def join_event_by_code(db: AsyncSession, user_id: uuid.UUID, code: str) -> Event:
    """Join an active event by its access code (case insensitive). Rejoining is a no-op."""
    result = await db.execute(
        select(Event).where(Event.access_code == code.strip().upper(), Event.status == "active")
    )
    event = result.scalar_one_or_none()
    if event is None:
        raise EventCodeNotFoundError(f"No active event with code {code.strip().upper()}")

    await QuestTracker(db).start(user_id, QuestKind.EVENT, event.id)
    return event


async def get_event_challenges(db: AsyncSession, event_id: uuid.UUID) -> list[EventChallenge]:
    result = await db.execute(
        select(EventChallenge).where(EventChallenge.event_id == event_id).order_by(EventChallenge.order_num, EventChallenge.id)
    )
    return list(result.scalars().all())


async def get_event_detail(db: AsyncSession, event_id: uuid.UUID) -> tuple[Event, list[EventChallenge], int]:
    """Event, its challenges in order, and participant count."""
    event = await QuestTracker(db).load_quest(QuestKind.EVENT, event_id)
    challenges = await get_event_challenges(db, event_id)
    participants = await _participant_counts(db, QuestKind.EVENT, [event_id])
    return event, challenges, participants.get(event_id, 0)  # type: ignore[return-value]
