"""Scavenger hunt and private event endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.auth.dependencies import get_current_profile
from snapquest.config import get_settings
from snapquest.db.models import Event, Hunt, Profile, QuestProgress
from snapquest.dependencies import get_db, get_redis_dep
from snapquest.progression.badge_service import sync_badges
from snapquest.quests import service
from snapquest.quests.schemas import (
    EventChallengeResponse,
    EventCreateRequest,
    EventDetailResponse,
    EventJoinRequest,
    EventResponse,
    HuntDetailResponse,
    HuntListResponse,
    HuntResponse,
    HuntTaskResponse,
    QuestProgressDetail,
    QuestProgressListResponse,
)
from snapquest.quests.tracker import QuestKind, QuestTracker, state_of

router = APIRouter(prefix="/api/v1", tags=["Quests"])


def _hunt_fields(hunt: Hunt) -> dict:
    return {
        "id": hunt.id,
        "title": hunt.title,
        "description": hunt.description,
        "cover_image": hunt.cover_image,
        "theme": hunt.theme,
        "difficulty": hunt.difficulty,
        "duration": hunt.duration,
        "is_active": hunt.is_active,
        "starts_at": hunt.starts_at,
        "ends_at": hunt.ends_at,
    }


def _event_fields(event: Event) -> dict:
    return {
        "id": event.id,
        "name": event.name,
        "description": event.description,
        "access_code": event.access_code,
        "creator_id": event.creator_id,
        "event_type": event.event_type,
        "status": event.status,
        "created_at": event.created_at,
    }


async def _progress_detail(
    tracker: QuestTracker,
    kind: QuestKind,
    quest_id: uuid.UUID,
    progress: QuestProgress | None,
) -> QuestProgressDetail:
    if progress is None:
        return QuestProgressDetail(kind=kind.value, quest_id=quest_id, state=state_of(None).value)
    return QuestProgressDetail(
        kind=kind.value,
        quest_id=quest_id,
        state=state_of(progress).value,
        completed_task_ids=await tracker.completed_task_ids(progress.id),
        total_xp_earned=progress.total_xp_earned,
        started_at=progress.started_at,
        completed_at=progress.completed_at,
    )


# ── Hunts ──


@router.get("/hunts", response_model=HuntListResponse)
async def list_hunts(db: AsyncSession = Depends(get_db)):
    """Active hunts with task counts."""
    summaries = await service.list_active_hunts(db)
    return HuntListResponse(
        hunts=[
            HuntResponse(
                **_hunt_fields(s.hunt),
                task_count=s.task_count,
                total_xp=s.total_xp,
                participants_count=s.participants_count,
            )
            for s in summaries
        ]
    )


@router.get("/hunts/{hunt_id}", response_model=HuntDetailResponse)
async def get_hunt(hunt_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    hunt, tasks = await service.get_hunt_detail(db, hunt_id)
    return HuntDetailResponse(
        **_hunt_fields(hunt),
        task_count=len(tasks),
        total_xp=sum(t.xp_reward for t in tasks),
        tasks=[
            HuntTaskResponse(
                id=t.id,
                title=t.title,
                description=t.description,
                order_num=t.order_num,
                xp_reward=t.xp_reward,
                hint=t.hint,
            )
            for t in tasks
        ],
    )


@router.post("/hunts/{hunt_id}/start", response_model=QuestProgressDetail)
async def start_hunt(
    hunt_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
):
    tracker = QuestTracker(db, redis)
    progress = await tracker.start(profile.id, QuestKind.HUNT, hunt_id)
    await db.commit()
    return await _progress_detail(tracker, QuestKind.HUNT, hunt_id, progress)


@router.get("/hunts/{hunt_id}/progress", response_model=QuestProgressDetail)
async def get_hunt_progress(
    hunt_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    tracker = QuestTracker(db)
    await tracker.load_quest(QuestKind.HUNT, hunt_id)
    progress = await tracker.get_progress(profile.id, QuestKind.HUNT, hunt_id)
    return await _progress_detail(tracker, QuestKind.HUNT, hunt_id, progress)


@router.get("/users/me/hunts", response_model=QuestProgressListResponse)
async def list_my_hunts(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """Caller's hunt progress, most recently started first."""
    tracker = QuestTracker(db)
    rows = await tracker.list_progress(profile.id, QuestKind.HUNT)
    return QuestProgressListResponse(
        progress=[await _progress_detail(tracker, QuestKind.HUNT, p.quest_id, p) for p in rows]
    )


# ── Events ──


@router.post("/events", response_model=EventDetailResponse, status_code=201)
async def create_event(
    body: EventCreateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
):
    """Create a private event; the creator joins it."""
    event = await service.create_event(
        db,
        profile.id,
        body.name,
        event_type=body.event_type,
        description=body.description,
        challenges=[c.model_dump() for c in body.challenges],
        default_xp_reward=get_settings().default_event_challenge_xp,
    )
    await sync_badges(db, redis, profile.id)
    await db.commit()
    return await _event_detail(db, event.id)


@router.post("/events/join", response_model=EventResponse)
async def join_event(
    body: EventJoinRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
):
    """Join an active event by access code."""
    event = await service.join_event_by_code(db, profile.id, body.code)
    await sync_badges(db, redis, profile.id)
    await db.commit()
    return EventResponse(**_event_fields(event))


async def _event_detail(db: AsyncSession, event_id: uuid.UUID) -> EventDetailResponse:
    event, challenges, participants = await service.get_event_detail(db, event_id)
    return EventDetailResponse(
        **_event_fields(event),
        challenges=[
            EventChallengeResponse(
                id=c.id,
                title=c.title,
                description=c.description,
                order_num=c.order_num,
                xp_reward=c.xp_reward,
            )
            for c in challenges
        ],
        participants_count=participants,
    )


@router.get("/events/{event_id}", response_model=EventDetailResponse)
async def get_event(event_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await _event_detail(db, event_id)


@router.get("/events/{event_id}/progress", response_model=QuestProgressDetail)
async def get_event_progress(
    event_id: uuid.UUID,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    tracker = QuestTracker(db)
    await tracker.load_quest(QuestKind.EVENT, event_id)
    progress = await tracker.get_progress(profile.id, QuestKind.EVENT, event_id)
    return await _progress_detail(tracker, QuestKind.EVENT, event_id, progress)
