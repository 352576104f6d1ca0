"""Photo submission flow.

verify -> store blob -> (one transaction: photo row, XP + streak or quest
task completion, badge sync) -> rank.

A rejected verification records nothing unless the user forces the upload.
Any storage or database failure rolls the whole unit back and surfaces as
``PersistenceError``; the stored blob is removed again and the caller may
retry with the photo it still holds.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.config import Settings, get_settings
from snapquest.db.models import BadgeDefinition, Challenge, EventChallenge, HuntTask, Photo, Profile
from snapquest.exceptions import ChallengeNotFoundError, PersistenceError, SnapQuestError, TaskNotFoundError
from snapquest.progression.badge_service import sync_badges
from snapquest.progression.leaderboard_service import rank
from snapquest.progression.streak_service import reference_today, update_streak
from snapquest.progression.xp_service import add_xp, get_profile
from snapquest.quests.tracker import QuestKind, QuestTracker, TaskCompletion
from snapquest.storage import PhotoStorage
from snapquest.submissions.targets import (
    ChallengeTarget,
    EventTaskTarget,
    SubmissionTarget,
    target_columns,
)
from snapquest.verification.keywords import challenge_prompt, extract_keywords
from snapquest.verification.policy import VerificationResult, skipped_result, verify_image
from snapquest.verification.scorer import MatchScorer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetContext:
    """What a submission target asks for and what it pays."""

    title: str
    description: str | None
    xp_reward: int

    @property
    def keywords(self) -> list[str]:
        return extract_keywords(challenge_prompt(self.title, self.description))


@dataclass
class SubmissionResult:
    recorded: bool
    verification: VerificationResult
    photo: Photo | None = None
    xp_awarded: int = 0
    profile: Profile | None = None
    new_badges: list[BadgeDefinition] = field(default_factory=list)
    rank: int | None = None
    quest: TaskCompletion | None = None


def challenge_xp_key(challenge_id: uuid.UUID, user_id: uuid.UUID, today: date) -> str:
    """One daily challenge credit per user per day."""
    return f"challenge:{challenge_id}:{user_id}:{today.isoformat()}"


async def resolve_target(db: AsyncSession, target: SubmissionTarget) -> TargetContext | None:
    if target is None:
        return None
    if isinstance(target, ChallengeTarget):
        challenge = await db.get(Challenge, target.challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(f"Challenge not found: {target.challenge_id}")
        return TargetContext(challenge.title, challenge.description, challenge.xp_reward)
    if isinstance(target, EventTaskTarget):
        task = await db.get(EventChallenge, target.event_challenge_id)
        if task is None:
            raise TaskNotFoundError(f"Event challenge not found: {target.event_challenge_id}")
        return TargetContext(task.title, task.description, task.xp_reward)
    task = await db.get(HuntTask, target.hunt_task_id)
    if task is None:
        raise TaskNotFoundError(f"Hunt task not found: {target.hunt_task_id}")
    return TargetContext(task.title, task.description, task.xp_reward)


async def verify_submission(
    db: AsyncSession,
    scorer: MatchScorer,
    image: bytes,
    target: SubmissionTarget,
    settings: Settings | None = None,
) -> VerificationResult:
    """Check ``image`` against the target's prompt. Free uploads skip verification."""
    context = await resolve_target(db, target)
    return await _verify_context(scorer, image, context, settings or get_settings())


async def _verify_context(
    scorer: MatchScorer,
    image: bytes,
    context: TargetContext | None,
    settings: Settings,
) -> VerificationResult:
    if context is None:
        return skipped_result()
    return await verify_image(
        scorer,
        image,
        context.keywords,
        high_confidence=settings.verification_high_confidence,
        threshold=settings.verification_threshold,
        max_labels=settings.verification_max_labels,
    )


async def _credit(
    db: AsyncSession,
    redis: object,
    user_id: uuid.UUID,
    target: SubmissionTarget,
    context: TargetContext,
    photo: Photo,
    today: date,
) -> tuple[int, TaskCompletion | None]:
    """Apply the target's reward. Returns (XP credited, quest completion)."""
    if isinstance(target, ChallengeTarget):
        profile = await add_xp(
            db,
            redis,
            user_id,
            context.xp_reward,
            source="challenge",
            source_id=str(target.challenge_id),
            description=f'Completed challenge "{context.title}"',
            idempotency_key=challenge_xp_key(target.challenge_id, user_id, today),
        )
        if profile is None:
            return 0, None
        await update_streak(db, redis, user_id, today=today)
        return context.xp_reward, None

    tracker = QuestTracker(db, redis)
    if isinstance(target, EventTaskTarget):
        completion = await tracker.complete_task(
            user_id, QuestKind.EVENT, target.event_challenge_id, photo_id=photo.id, today=today
        )
    else:
        completion = await tracker.complete_task(
            user_id, QuestKind.HUNT, target.hunt_task_id, photo_id=photo.id, today=today  # type: ignore[union-attr]
        )
    return (completion.xp_awarded if completion.credited else 0), completion


async def _discard_blob(storage: PhotoStorage, image_url: str) -> None:
    """Drop the stored photo of a submission that was not recorded."""
    try:
        await storage.delete(image_url)
    except OSError:
        logger.warning("Could not remove orphaned photo %s", image_url, exc_info=True)


async def submit_photo(
    db: AsyncSession,
    redis: object,
    scorer: MatchScorer,
    storage: PhotoStorage,
    user_id: uuid.UUID,
    image: bytes,
    filename: str,
    target: SubmissionTarget = None,
    content_type: str | None = None,
    force: bool = False,
    filter_applied: str | None = None,
    today: date | None = None,
    settings: Settings | None = None,
) -> SubmissionResult:
    """Run the full submission flow for one photo."""
    settings = settings or get_settings()
    if today is None:
        today = reference_today(settings.streak_timezone)

    context = await resolve_target(db, target)
    verification = await _verify_context(scorer, image, context, settings)

    if not verification.is_valid and not force:
        logger.info("Submission by %s rejected by verification", user_id)
        return SubmissionResult(recorded=False, verification=verification)

    try:
        image_url = await storage.save(user_id, filename, image, content_type)
    except OSError as exc:
        logger.exception("Photo storage failed for %s", user_id)
        raise PersistenceError("Photo storage failed") from exc

    try:
        photo = Photo(
            user_id=user_id,
            image_url=image_url,
            filter_applied=filter_applied,
            xp_earned=0,
            likes_count=0,
            verification_status=verification.status.value,
            verification_confidence=verification.confidence,
            **target_columns(target),
        )
        db.add(photo)
        await db.flush()

        xp_awarded, quest = 0, None
        if context is not None:
            xp_awarded, quest = await _credit(db, redis, user_id, target, context, photo, today)
        photo.xp_earned = xp_awarded

        new_badges = await sync_badges(db, redis, user_id)
        await db.commit()
    except SnapQuestError:
        await db.rollback()
        await _discard_blob(storage, image_url)
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Submission by %s rolled back", user_id)
        await _discard_blob(storage, image_url)
        raise PersistenceError("Submission could not be recorded") from exc

    await db.refresh(photo)
    profile = await get_profile(db, user_id)
    await db.refresh(profile)
    logger.info("Photo %s recorded for %s, %d XP", photo.id, user_id, xp_awarded)

    return SubmissionResult(
        recorded=True,
        verification=verification,
        photo=photo,
        xp_awarded=xp_awarded,
        profile=profile,
        new_badges=new_badges,
        rank=await rank(db, user_id),
        quest=quest,
    )
