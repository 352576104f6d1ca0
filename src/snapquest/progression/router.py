"""Progression API endpoints: profiles, XP, streaks, levels, badges, leaderboard."""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.auth.dependencies import get_current_profile
from snapquest.config import get_settings
from snapquest.db.models import Profile
from snapquest.dependencies import get_db, get_redis_dep, get_today
from snapquest.progression import badge_service, leaderboard_service
from snapquest.progression.level_thresholds import LEVEL_THRESHOLDS, compute_level
from snapquest.progression.schemas import (
    AchievementsResponse,
    AllBadgesResponse,
    AllLevelsResponse,
    BadgeProgressResponse,
    BadgeSyncResponse,
    DayActivity,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    LevelEntry,
    ProfileResponse,
    ProfileUpdateRequest,
    RankResponse,
    StreakResponse,
    UserBadgesResponse,
    WeeklyActivityResponse,
    XPHistoryEntry,
    XPHistoryResponse,
    XPResponse,
    badge_response,
    profile_response,
)
from snapquest.progression.xp_service import (
    get_profile,
    get_weekly_activity,
    get_xp_history,
    update_profile,
)

router = APIRouter(prefix="/api/v1", tags=["Progression"])


# ── Public endpoints ──


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level thresholds."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(level=t["level"], title=t["title"], cumulative=t["cumulative"])
            for t in LEVEL_THRESHOLDS
        ]
    )


@router.get("/badges", response_model=AllBadgesResponse)
async def list_badges(db: AsyncSession = Depends(get_db)):
    """Get all badge definitions."""
    badges = await badge_service.list_badge_definitions(db)
    return AllBadgesResponse(badges=[badge_response(b) for b in badges])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int = Query(10, ge=1),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """Top profiles by XP."""
    limit = min(limit, get_settings().leaderboard_max_limit)
    entries = await leaderboard_service.top(db, limit=limit, offset=offset)
    total = await leaderboard_service.count_profiles(db)
    return LeaderboardResponse(
        entries=[
            LeaderboardEntryResponse(
                position=e.position,
                user_id=e.profile.id,
                username=e.profile.username,
                display_name=e.profile.display_name,
                avatar_url=e.profile.avatar_url,
                xp=e.profile.xp,
                level=e.profile.level,
                streak=e.profile.streak,
            )
            for e in entries
        ],
        total=total,
        limit=limit,
        offset=offset,
    )


# ── Authenticated endpoints ──


@router.get("/users/me", response_model=ProfileResponse)
async def get_me(profile: Profile = Depends(get_current_profile)):
    return profile_response(profile)


@router.patch("/users/me", response_model=ProfileResponse)
async def update_me(
    body: ProfileUpdateRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """Update username, display name or avatar."""
    profile = await update_profile(
        db,
        profile,
        username=body.username,
        display_name=body.display_name,
        avatar_url=body.avatar_url,
    )
    await db.commit()
    return profile_response(profile)


@router.get("/users/me/xp", response_model=XPResponse)
async def get_my_xp(profile: Profile = Depends(get_current_profile)):
    """Current XP and level progress."""
    info = compute_level(profile.xp)
    return XPResponse(
        total_xp=profile.xp,
        level=info["level"],
        level_title=info["title"],
        xp_into_level=info["xp_into_level"],
        xp_for_level=info["xp_for_level"],
        next_level=info["next_level"],
        next_title=info["next_title"],
    )


@router.get("/users/me/xp/history", response_model=XPHistoryResponse)
async def get_my_xp_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """Paginated XP ledger, newest first."""
    entries, total = await get_xp_history(db, profile.id, limit=per_page, offset=(page - 1) * per_page)
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                id=e.id,
                amount=e.amount,
                source=e.source,
                source_id=e.source_id,
                description=e.description,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/me/streak", response_model=StreakResponse)
async def get_my_streak(
    profile: Profile = Depends(get_current_profile),
    today: date = Depends(get_today),
):
    return StreakResponse(
        streak=profile.streak,
        longest_streak=profile.longest_streak,
        last_activity_date=profile.last_activity_date,
        active_today=profile.last_activity_date == today,
    )


@router.get("/users/me/activity/week", response_model=WeeklyActivityResponse)
async def get_my_week(
    profile: Profile = Depends(get_current_profile),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """XP per day, Monday to Sunday of the current week."""
    days = await get_weekly_activity(db, profile.id, today, get_settings().streak_timezone)
    return WeeklyActivityResponse(
        days=[DayActivity(**d) for d in days],
        total_xp=sum(d["xp"] for d in days),
    )


@router.get("/users/me/achievements", response_model=AchievementsResponse)
async def get_my_achievements(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    return AchievementsResponse(**await badge_service.get_user_achievements(db, profile.id))


@router.get("/users/me/badges", response_model=UserBadgesResponse)
async def get_my_badges(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    """Every badge with earned status and progress."""
    progress = await badge_service.get_badge_progress(db, profile.id)
    return UserBadgesResponse(
        badges=[
            BadgeProgressResponse(
                **badge_response(p.badge).model_dump(),
                earned=p.earned,
                earned_at=p.earned_at,
                progress_value=p.value,
                progress_percent=p.percent,
            )
            for p in progress
        ],
        total_available=len(progress),
        total_earned=sum(1 for p in progress if p.earned),
    )


@router.post("/users/me/badges/sync", response_model=BadgeSyncResponse)
async def sync_my_badges(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
):
    """Award any badges the caller now qualifies for."""
    awarded = await badge_service.sync_badges(db, redis, profile.id)
    await db.commit()
    return BadgeSyncResponse(awarded=[badge_response(b) for b in awarded])


@router.get("/users/me/rank", response_model=RankResponse)
async def get_my_rank(
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_db),
):
    return RankResponse(
        rank=await leaderboard_service.rank(db, profile.id),
        xp=profile.xp,
        total=await leaderboard_service.count_profiles(db),
    )


# Declared after /users/me so "me" is not parsed as a user id.
@router.get("/users/{user_id}", response_model=ProfileResponse)
async def get_public_profile(user_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Another user's public profile."""
    return profile_response(await get_profile(db, user_id))
