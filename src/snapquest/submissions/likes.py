"""Photo likes.

Like and unlike are idempotent; ``likes_count`` moves by atomic increments.
``LikeState`` is the client-visible like status, including the window in
which an optimistic toggle has not yet been confirmed.
"""

from __future__ import annotations

import logging
import uuid
from enum import Enum

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.db.models import Photo, PhotoLike
from snapquest.exceptions import PersistenceError, PhotoNotFoundError
from snapquest.progression.badge_service import sync_badges

logger = logging.getLogger(__name__)


class LikeState(str, Enum):
    UNKNOWN = "unknown"
    PENDING = "pending"
    LIKED = "liked"
    NOT_LIKED = "not_liked"


def resolve_like_state(previous: LikeState, requested: bool, ok: bool) -> LikeState:
    """Reconcile an optimistic like toggle with the mutation outcome.

    On success the requested state is confirmed. On failure the last confirmed
    state comes back; if there was none, the state is unknown and must be re-read.
    """
    if ok:
        return LikeState.LIKED if requested else LikeState.NOT_LIKED
    if previous in (LikeState.LIKED, LikeState.NOT_LIKED):
        return previous
    return LikeState.UNKNOWN


async def _get_photo(db: AsyncSession, photo_id: uuid.UUID) -> Photo:
    photo = await db.get(Photo, photo_id)
    if photo is None:
        raise PhotoNotFoundError(f"Photo not found: {photo_id}")
    return photo


async def like_state(db: AsyncSession, user_id: uuid.UUID, photo_id: uuid.UUID) -> LikeState:
    result = await db.execute(
        select(PhotoLike.id).where(PhotoLike.photo_id == photo_id, PhotoLike.user_id == user_id)
    )
    return LikeState.LIKED if result.scalar_one_or_none() is not None else LikeState.NOT_LIKED


async def like_photo(db: AsyncSession, redis: object, user_id: uuid.UUID, photo_id: uuid.UUID) -> Photo:
    """Like a photo and re-check the owner's badges. Liking twice is a no-op.

    Raises ``PersistenceError`` when the like could not be stored.
    """
    photo = await _get_photo(db, photo_id)
    try:
        try:
            async with db.begin_nested():
                db.add(PhotoLike(photo_id=photo_id, user_id=user_id))
                await db.flush()
        except IntegrityError:
            return photo

        await db.execute(
            update(Photo)
            .where(Photo.id == photo_id)
            .values(likes_count=Photo.likes_count + 1)
            .execution_options(synchronize_session=False)
        )
        await sync_badges(db, redis, photo.user_id)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Like of %s by %s rolled back", photo_id, user_id)
        raise PersistenceError("Like could not be recorded") from exc
    await db.refresh(photo)
    return photo


async def unlike_photo(db: AsyncSession, user_id: uuid.UUID, photo_id: uuid.UUID) -> Photo:
    """Remove a like. Unliking a photo that is not liked is a no-op."""
    photo = await _get_photo(db, photo_id)
    try:
        result = await db.execute(
            delete(PhotoLike)
            .where(PhotoLike.photo_id == photo_id, PhotoLike.user_id == user_id)
            .returning(PhotoLike.id)
            .execution_options(synchronize_session=False)
        )
        if result.scalar_one_or_none() is None:
            return photo

        await db.execute(
            update(Photo)
            .where(Photo.id == photo_id, Photo.likes_count > 0)
            .values(likes_count=Photo.likes_count - 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Unlike of %s by %s rolled back", photo_id, user_id)
        raise PersistenceError("Like could not be removed") from exc
    await db.refresh(photo)
    return photo
