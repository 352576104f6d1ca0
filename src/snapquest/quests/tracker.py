"""Per-(user, quest) progress for scavenger hunts and private events.

States: NOT_STARTED -> IN_PROGRESS -> COMPLETED (terminal).

A task completion is one unit: the completion record, the quest XP total,
the ledger credit and the streak advance are applied inside one savepoint of
the caller's transaction, so they land together or not at all.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.db.models import (
    Event,
    EventChallenge,
    Hunt,
    HuntTask,
    Profile,
    QuestProgress,
    QuestTaskCompletion,
)
from snapquest.exceptions import (
    InvalidXPAmountError,
    QuestInactiveError,
    QuestNotFoundError,
    TaskNotFoundError,
)
from snapquest.progression.streak_service import update_streak
from snapquest.progression.xp_service import add_xp
from snapquest.redis_client import publish_event

logger = logging.getLogger(__name__)


class QuestKind(str, Enum):
    HUNT = "hunt"
    EVENT = "event"


class QuestState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class QuestTask:
    id: uuid.UUID
    quest_id: uuid.UUID
    title: str
    xp_reward: int


@dataclass
class TaskCompletion:
    """Outcome of ``complete_task``. ``credited`` is False for a repeat completion."""

    progress: QuestProgress
    task_id: uuid.UUID
    credited: bool
    xp_awarded: int = 0
    quest_completed: bool = False
    profile: Profile | None = None
    completed_task_ids: list[uuid.UUID] = field(default_factory=list)


def _quest_model(kind: QuestKind) -> type[Hunt] | type[Event]:
    return Hunt if kind is QuestKind.HUNT else Event


def _task_model(kind: QuestKind) -> type[HuntTask] | type[EventChallenge]:
    return HuntTask if kind is QuestKind.HUNT else EventChallenge


def _task_parent(kind: QuestKind):  # noqa: ANN202
    return HuntTask.hunt_id if kind is QuestKind.HUNT else EventChallenge.event_id


def state_of(progress: QuestProgress | None) -> QuestState:
    if progress is None:
        return QuestState.NOT_STARTED
    if progress.completed_at is not None:
        return QuestState.COMPLETED
    return QuestState.IN_PROGRESS


class QuestTracker:
    """Hunt and event progress layered on the progression ledger."""

    def __init__(self, db: AsyncSession, redis: object = None) -> None:
        self.db = db
        self.redis = redis

    # --- Lookups ---

    async def load_quest(self, kind: QuestKind, quest_id: uuid.UUID) -> Hunt | Event:
        quest = await self.db.get(_quest_model(kind), quest_id)
        if quest is None:
            raise QuestNotFoundError(f"{kind.value.capitalize()} not found: {quest_id}")
        return quest

    def ensure_active(self, kind: QuestKind, quest: Hunt | Event) -> None:
        if kind is QuestKind.HUNT:
            active = quest.is_active  # type: ignore[union-attr]
        else:
            active = quest.status == "active"  # type: ignore[union-attr]
        if not active:
            raise QuestInactiveError(f"{kind.value.capitalize()} is not active: {quest.id}")

    async def resolve_task(self, kind: QuestKind, task_id: uuid.UUID) -> QuestTask:
        task = await self.db.get(_task_model(kind), task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: {task_id}")
        quest_id = task.hunt_id if kind is QuestKind.HUNT else task.event_id  # type: ignore[union-attr]
        return QuestTask(id=task.id, quest_id=quest_id, title=task.title, xp_reward=task.xp_reward)

    async def task_count(self, kind: QuestKind, quest_id: uuid.UUID) -> int:
        model = _task_model(kind)
        return (await self.db.execute(
            select(func.count(model.id)).where(_task_parent(kind) == quest_id)
        )).scalar_one()

    async def get_progress(self, user_id: uuid.UUID, kind: QuestKind, quest_id: uuid.UUID) -> QuestProgress | None:
        result = await self.db.execute(
            select(QuestProgress).where(
                QuestProgress.user_id == user_id,
                QuestProgress.quest_kind == kind.value,
                QuestProgress.quest_id == quest_id,
            )
        )
        return result.scalar_one_or_none()

    async def completed_task_ids(self, progress_id: int) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(QuestTaskCompletion.task_id)
            .where(QuestTaskCompletion.progress_id == progress_id)
            .order_by(QuestTaskCompletion.completed_at, QuestTaskCompletion.id)
        )
        return list(result.scalars().all())

    async def list_progress(self, user_id: uuid.UUID, kind: QuestKind) -> list[QuestProgress]:
        result = await self.db.execute(
            select(QuestProgress)
            .where(QuestProgress.user_id == user_id, QuestProgress.quest_kind == kind.value)
            .order_by(QuestProgress.started_at.desc(), QuestProgress.id.desc())
        )
        return list(result.scalars().all())

    async def state(self, user_id: uuid.UUID, kind: QuestKind, quest_id: uuid.UUID) -> QuestState:
        return state_of(await self.get_progress(user_id, kind, quest_id))

    # --- Transitions ---

    async def start(self, user_id: uuid.UUID, kind: QuestKind, quest_id: uuid.UUID) -> QuestProgress:
        """NOT_STARTED -> IN_PROGRESS. Returns the existing row when already started."""
        quest = await self.load_quest(kind, quest_id)
        existing = await self.get_progress(user_id, kind, quest_id)
        if existing is not None:
            return existing

        self.ensure_active(kind, quest)
        try:
            async with self.db.begin_nested():
                progress = QuestProgress(user_id=user_id, quest_kind=kind.value, quest_id=quest_id, total_xp_earned=0)
                self.db.add(progress)
                await self.db.flush()
        except IntegrityError:
            # Started concurrently
            existing = await self.get_progress(user_id, kind, quest_id)
            if existing is None:
                raise
            return existing

        await self.db.refresh(progress)
        logger.info("User %s started %s %s", user_id, kind.value, quest_id)
        return progress

    async def complete_task(
        self,
        user_id: uuid.UUID,
        kind: QuestKind,
        task_id: uuid.UUID,
        photo_id: uuid.UUID | None = None,
        xp_reward: int | None = None,
        today: date | None = None,
    ) -> TaskCompletion:
        """Record a task completion and credit its reward exactly once.

        Starts the quest implicitly. A repeat completion of the same task is a
        no-op returning ``credited=False``. When the last task completes, the
        quest moves to COMPLETED and ``completed_at`` is stamped once.
        """
        task = await self.resolve_task(kind, task_id)
        amount = task.xp_reward if xp_reward is None else xp_reward
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidXPAmountError(amount)

        progress = await self.start(user_id, kind, task.quest_id)

        async with self.db.begin_nested():
            try:
                async with self.db.begin_nested():
                    self.db.add(QuestTaskCompletion(
                        progress_id=progress.id,
                        task_id=task.id,
                        photo_id=photo_id,
                        xp_awarded=amount,
                    ))
                    await self.db.flush()
            except IntegrityError:
                logger.info("Task %s already completed by %s", task.id, user_id)
                return TaskCompletion(
                    progress=progress,
                    task_id=task.id,
                    credited=False,
                    completed_task_ids=await self.completed_task_ids(progress.id),
                )

            await self.db.execute(
                update(QuestProgress)
                .where(QuestProgress.id == progress.id)
                .values(total_xp_earned=QuestProgress.total_xp_earned + amount)
                .execution_options(synchronize_session=False)
            )

            await add_xp(
                self.db,
                self.redis,
                user_id,
                amount,
                source=kind.value,
                source_id=str(task.id),
                description=f'Completed "{task.title}"',
                idempotency_key=f"quest:{kind.value}:{task.id}:{user_id}",
            )
            profile = await update_streak(self.db, self.redis, user_id, today=today)

            completed_ids = await self.completed_task_ids(progress.id)
            quest_completed = False
            if len(completed_ids) >= await self.task_count(kind, task.quest_id):
                result = await self.db.execute(
                    update(QuestProgress)
                    .where(QuestProgress.id == progress.id, QuestProgress.completed_at.is_(None))
                    .values(completed_at=datetime.now(timezone.utc))
                    .returning(QuestProgress.id)
                    .execution_options(synchronize_session=False)
                )
                quest_completed = result.scalar_one_or_none() is not None

        await self.db.refresh(progress)

        if quest_completed:
            logger.info("User %s completed %s %s", user_id, kind.value, task.quest_id)
            await publish_event(self.redis, "quest_completed", {
                "user_id": str(user_id),
                "kind": kind.value,
                "quest_id": str(task.quest_id),
                "total_xp_earned": progress.total_xp_earned,
            })

        return TaskCompletion(
            progress=progress,
            task_id=task.id,
            credited=True,
            xp_awarded=amount,
            quest_completed=quest_completed,
            profile=profile,
            completed_task_ids=completed_ids,
        )
