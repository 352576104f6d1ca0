"""Photo verification, submission and like endpoints."""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import date

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.auth.dependencies import get_current_profile
from snapquest.config import get_settings
from snapquest.db.models import Photo, Profile
from snapquest.dependencies import get_db, get_match_scorer, get_photo_storage, get_redis_dep, get_today
from snapquest.exceptions import PersistenceError
from snapquest.progression.schemas import badge_response, profile_response
from snapquest.quests.tracker import state_of
from snapquest.storage import PhotoStorage
from snapquest.submissions.likes import like_photo, like_state, resolve_like_state, unlike_photo
from snapquest.submissions.schemas import (
    LikeResponse,
    PhotoResponse,
    QuestProgressResponse,
    SubmissionResponse,
    VerificationResponse,
    verification_response,
)
from snapquest.submissions.service import submit_photo, verify_submission
from snapquest.submissions.targets import target_from_ids
from snapquest.verification.scorer import MatchScorer

router = APIRouter(prefix="/api/v1", tags=["Submissions"])


async def _read_image(file: UploadFile) -> bytes:
    """Read an uploaded image, enforcing type and size limits."""
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")
    max_bytes = get_settings().max_upload_bytes
    data = await file.read(max_bytes + 1)
    if not data:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(data) > max_bytes:
        raise HTTPException(status_code=413, detail="Image too large")
    return data


def _photo_response(photo: Photo) -> PhotoResponse:
    return PhotoResponse(
        id=photo.id,
        user_id=photo.user_id,
        image_url=photo.image_url,
        challenge_id=photo.challenge_id,
        event_challenge_id=photo.event_challenge_id,
        hunt_task_id=photo.hunt_task_id,
        filter_applied=photo.filter_applied,
        xp_earned=photo.xp_earned,
        likes_count=photo.likes_count,
        verification_status=photo.verification_status,
        created_at=photo.created_at,
    )


@router.post("/verify", response_model=VerificationResponse)
async def verify_photo(
    file: UploadFile = File(...),
    challenge_id: uuid.UUID | None = Form(None),
    event_challenge_id: uuid.UUID | None = Form(None),
    hunt_task_id: uuid.UUID | None = Form(None),
    _profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    scorer: MatchScorer = Depends(get_match_scorer),
):
    """Check a photo against its prompt without recording anything."""
    target = target_from_ids(challenge_id, event_challenge_id, hunt_task_id)
    image = await _read_image(file)
    return verification_response(await verify_submission(db, scorer, image, target))


@router.post("/submissions", response_model=SubmissionResponse)
async def create_submission(
    file: UploadFile = File(...),
    challenge_id: uuid.UUID | None = Form(None),
    event_challenge_id: uuid.UUID | None = Form(None),
    hunt_task_id: uuid.UUID | None = Form(None),
    force: bool = Form(False),
    filter_applied: str | None = Form(None, max_length=32),
    profile: Profile = Depends(get_current_profile),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    scorer: MatchScorer = Depends(get_match_scorer),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    """
    Verify, store and credit a photo.

    A rejected photo is returned unrecorded; resubmit with ``force=true`` to
    upload it anyway.
    """
    target = target_from_ids(challenge_id, event_challenge_id, hunt_task_id)
    image = await _read_image(file)
    result = await submit_photo(
        db,
        redis,
        scorer,
        storage,
        profile.id,
        image,
        file.filename or "photo.jpg",
        target=target,
        content_type=file.content_type,
        force=force,
        filter_applied=filter_applied,
        today=today,
    )

    quest = None
    if result.quest is not None:
        progress = result.quest.progress
        quest = QuestProgressResponse(
            kind=progress.quest_kind,
            quest_id=progress.quest_id,
            state=state_of(progress).value,
            completed_task_ids=result.quest.completed_task_ids,
            total_xp_earned=progress.total_xp_earned,
            task_credited=result.quest.credited,
            quest_completed=result.quest.quest_completed,
        )

    return SubmissionResponse(
        recorded=result.recorded,
        verification=verification_response(result.verification),
        photo=_photo_response(result.photo) if result.photo else None,
        xp_awarded=result.xp_awarded,
        profile=profile_response(result.profile) if result.profile else None,
        new_badges=[badge_response(b) for b in result.new_badges],
        rank=result.rank,
        quest=quest,
    )


async def _toggle_like(
    db: AsyncSession,
    user_id: uuid.UUID,
    photo_id: uuid.UUID,
    requested: bool,
    mutate: Callable[[], Awaitable[Photo]],
) -> LikeResponse | JSONResponse:
    """Apply a like toggle and report the confirmed state.

    On a storage failure the response is 503 and carries the last confirmed
    state, so an optimistic client can roll back its override.
    """
    previous = await like_state(db, user_id, photo_id)
    try:
        photo = await mutate()
    except PersistenceError as exc:
        state = resolve_like_state(previous, requested=requested, ok=False)
        return JSONResponse(
            status_code=503,
            content={"detail": exc.detail, "photo_id": str(photo_id), "likes_count": None, "state": state.value},
        )
    state = resolve_like_state(previous, requested=requested, ok=True)
    return LikeResponse(photo_id=photo.id, likes_count=photo.likes_count, state=state.value)


@router.post("/photos/{photo_id}/like", response_model=LikeResponse)
async def like(
    photo_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
):
    return await _toggle_like(
        db, profile.id, photo_id, True, lambda: like_photo(db, redis, profile.id, photo_id)
    )


@router.delete("/photos/{photo_id}/like", response_model=LikeResponse)
async def unlike(
    photo_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    return await _toggle_like(
        db, profile.id, photo_id, False, lambda: unlike_photo(db, profile.id, photo_id)
    )
