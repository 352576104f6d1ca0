"""ORM models for the SnapQuest schema.

The PostgreSQL schema is created by the Alembic migration; tests build the
same tables on SQLite through ``Base.metadata.create_all``.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snapquest.db.base import Base
from snapquest.submissions.targets import (
    ChallengeTarget,
    EventTaskTarget,
    HuntTaskTarget,
    SubmissionTarget,
)

# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class Profile(Base):
    """Per-user progression state. Mutated only through the progression services."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("xp >= 0", name="xp_non_negative"),
        CheckConstraint("level >= 1", name="level_positive"),
        CheckConstraint("streak >= 0", name="streak_non_negative"),
        CheckConstraint("longest_streak >= streak", name="longest_streak_covers_streak"),
        Index("ix_profiles_xp", "xp"),
    )

    # Same value as the identity provider's user id.
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


# ---------------------------------------------------------------------------
# Challenges & photos
# ---------------------------------------------------------------------------


class Challenge(Base):
    """A photo prompt. Daily challenges rotate by ``day_number``."""

    __tablename__ = "challenges"
    __table_args__ = (
        CheckConstraint("xp_reward > 0", name="xp_reward_positive"),
        CheckConstraint("difficulty IN ('easy', 'medium', 'hard')", name="difficulty_valid"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="general", server_default="general")
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="medium", server_default="medium")
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=50, server_default="50")
    day_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_daily: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Photo(Base):
    """A submitted photo. ``xp_earned`` is captured at creation and never recomputed."""

    __tablename__ = "photos"
    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN challenge_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN event_challenge_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN hunt_task_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="single_target",
        ),
        CheckConstraint("likes_count >= 0", name="likes_non_negative"),
        Index("ix_photos_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    challenge_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("challenges.id", ondelete="SET NULL"), nullable=True
    )
    event_challenge_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("event_challenges.id", ondelete="SET NULL"), nullable=True
    )
    hunt_task_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("hunt_tasks.id", ondelete="SET NULL"), nullable=True
    )
    filter_applied: Mapped[str | None] = mapped_column(String(32), nullable=True)
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    likes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    verification_status: Mapped[str] = mapped_column(String(32), nullable=False)
    verification_confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def target(self) -> SubmissionTarget:
        if self.challenge_id is not None:
            return ChallengeTarget(self.challenge_id)
        if self.event_challenge_id is not None:
            return EventTaskTarget(self.event_challenge_id)
        if self.hunt_task_id is not None:
            return HuntTaskTarget(self.hunt_task_id)
        return None


class PhotoLike(Base):
    """UNIQUE(photo_id, user_id): one like per user per photo."""

    __tablename__ = "photo_likes"
    __table_args__ = (UniqueConstraint("photo_id", "user_id", name="photo_likes_photo_id_user_id_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    photo_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("photos.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------


class XPLedger(Base):
    """Append-only XP transaction log with idempotency key."""

    __tablename__ = "xp_ledger"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        Index("ix_xp_ledger_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class BadgeDefinition(Base):
    """Badge catalog. Seeded on startup, read-only afterwards."""

    __tablename__ = "badge_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="general", server_default="general")
    requirement_type: Mapped[str] = mapped_column(String(32), nullable=False)
    requirement_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    icon: Mapped[str] = mapped_column(String(32), nullable=False, default="award", server_default="award")
    color: Mapped[str] = mapped_column(String(32), nullable=False, default="primary", server_default="primary")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class UserBadge(Base):
    """Badges earned by users. UNIQUE(user_id, badge_id) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[int] = mapped_column(Integer, ForeignKey("badge_definitions.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    badge: Mapped[BadgeDefinition] = relationship("BadgeDefinition", lazy="joined")


# ---------------------------------------------------------------------------
# Hunts & events
# ---------------------------------------------------------------------------


class Hunt(Base):
    """A themed scavenger hunt: an ordered list of photo tasks."""

    __tablename__ = "hunts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    theme: Mapped[str] = mapped_column(String(32), nullable=False, default="general", server_default="general")
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="medium", server_default="medium")
    duration: Mapped[str] = mapped_column(String(32), nullable=False, default="day", server_default="day")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class HuntTask(Base):
    __tablename__ = "hunt_tasks"
    __table_args__ = (CheckConstraint("xp_reward > 0", name="xp_reward_positive"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    hunt_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("hunts.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_num: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=20, server_default="20")
    hint: Mapped[str | None] = mapped_column(Text, nullable=True)


class Event(Base):
    """A private event joined by access code."""

    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_code: Mapped[str] = mapped_column(String(6), unique=True, nullable=False)
    creator_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(32), nullable=False, default="party", server_default="party")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", server_default="active")
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class EventChallenge(Base):
    __tablename__ = "event_challenges"
    __table_args__ = (CheckConstraint("xp_reward > 0", name="xp_reward_positive"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_num: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=30, server_default="30")


class QuestProgress(Base):
    """Per-(user, quest) progress. UNIQUE(user_id, quest_kind, quest_id)."""

    __tablename__ = "quest_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "quest_kind", "quest_id", name="quest_progress_user_id_quest_kind_quest_id_key"),
        CheckConstraint("quest_kind IN ('hunt', 'event')", name="quest_kind_valid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    quest_kind: Mapped[str] = mapped_column(String(16), nullable=False)
    quest_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    total_xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class QuestTaskCompletion(Base):
    """One completed task. UNIQUE(progress_id, task_id) makes completion at-most-once."""

    __tablename__ = "quest_task_completions"
    __table_args__ = (
        UniqueConstraint("progress_id", "task_id", name="quest_task_completions_progress_id_task_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    progress_id: Mapped[int] = mapped_column(Integer, ForeignKey("quest_progress.id", ondelete="CASCADE"), nullable=False)
    task_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    photo_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("photos.id", ondelete="SET NULL"), nullable=True
    )
    xp_awarded: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
