"""Pydantic request/response models for progression endpoints."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from snapquest.db.models import BadgeDefinition, Profile
from snapquest.progression.badge_catalog import render_metadata
from snapquest.progression.level_thresholds import compute_level


# --- Profile ---


class ProfileResponse(BaseModel):
    id: uuid.UUID
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    xp: int
    level: int
    level_title: str
    streak: int
    longest_streak: int
    last_activity_date: date | None = None
    created_at: datetime | None = None


class ProfileUpdateRequest(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=64)
    display_name: str | None = Field(default=None, min_length=1, max_length=64)
    avatar_url: str | None = Field(default=None, max_length=2048)


# --- XP & levels ---


class XPResponse(BaseModel):
    total_xp: int
    level: int
    level_title: str
    xp_into_level: int
    xp_for_level: int
    next_level: int
    next_title: str


class XPHistoryEntry(BaseModel):
    id: int
    amount: int
    source: str
    source_id: str | None = None
    description: str | None = None
    created_at: datetime


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


class LevelEntry(BaseModel):
    level: int
    title: str
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


# --- Streak & activity ---


class StreakResponse(BaseModel):
    streak: int
    longest_streak: int
    last_activity_date: date | None = None
    active_today: bool


class DayActivity(BaseModel):
    date: date
    day: str
    xp: int


class WeeklyActivityResponse(BaseModel):
    days: list[DayActivity]
    total_xp: int


class AchievementsResponse(BaseModel):
    longest_streak: int
    total_photos: int
    total_likes: int
    top_photos_count: int
    favorite_theme: str | None = None
    favorite_theme_count: int = 0


# --- Badges ---


class BadgeDefinitionResponse(BaseModel):
    slug: str
    name: str
    description: str
    category: str
    requirement_type: str
    requirement_value: int
    icon: str
    icon_component: str
    color: str
    color_class: str


class AllBadgesResponse(BaseModel):
    badges: list[BadgeDefinitionResponse]


class BadgeProgressResponse(BadgeDefinitionResponse):
    earned: bool
    earned_at: datetime | None = None
    progress_value: int
    progress_percent: int


class UserBadgesResponse(BaseModel):
    badges: list[BadgeProgressResponse]
    total_available: int
    total_earned: int


class BadgeSyncResponse(BaseModel):
    awarded: list[BadgeDefinitionResponse]


# --- Leaderboard ---


class LeaderboardEntryResponse(BaseModel):
    position: int
    user_id: uuid.UUID
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    xp: int
    level: int
    streak: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse]
    total: int
    limit: int
    offset: int


class RankResponse(BaseModel):
    rank: int
    xp: int
    total: int


def profile_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        id=profile.id,
        username=profile.username,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        xp=profile.xp,
        level=profile.level,
        level_title=compute_level(profile.xp)["title"],
        streak=profile.streak,
        longest_streak=profile.longest_streak,
        last_activity_date=profile.last_activity_date,
        created_at=profile.created_at,
    )


def badge_response(badge: BadgeDefinition) -> BadgeDefinitionResponse:
    return BadgeDefinitionResponse(
        slug=badge.slug,
        name=badge.name,
        description=badge.description,
        category=badge.category,
        requirement_type=badge.requirement_type,
        requirement_value=badge.requirement_value,
        **render_metadata(badge.icon, badge.color),
    )
