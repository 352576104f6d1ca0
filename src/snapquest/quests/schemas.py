"""Pydantic request/response models for hunt and event endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


# --- Hunts ---


class HuntResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    cover_image: str | None = None
    theme: str
    difficulty: str
    duration: str
    is_active: bool
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    task_count: int = 0
    total_xp: int = 0
    participants_count: int = 0


class HuntListResponse(BaseModel):
    hunts: list[HuntResponse]


class HuntTaskResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    order_num: int
    xp_reward: int
    hint: str | None = None


class HuntDetailResponse(HuntResponse):
    tasks: list[HuntTaskResponse]


# --- Progress ---


class QuestProgressDetail(BaseModel):
    kind: str
    quest_id: uuid.UUID
    state: str
    completed_task_ids: list[uuid.UUID] = []
    total_xp_earned: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


class QuestProgressListResponse(BaseModel):
    progress: list[QuestProgressDetail]


# --- Events ---


class EventChallengeInput(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    xp_reward: int | None = Field(default=None, gt=0)


class EventCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    event_type: str = "party"
    description: str | None = Field(default=None, max_length=2000)
    challenges: list[EventChallengeInput] = []


class EventJoinRequest(BaseModel):
    code: str = Field(min_length=6, max_length=6)


class EventChallengeResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    order_num: int
    xp_reward: int


class EventResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    access_code: str
    creator_id: uuid.UUID
    event_type: str
    status: str
    created_at: datetime | None = None


class EventDetailResponse(EventResponse):
    challenges: list[EventChallengeResponse]
    participants_count: int
