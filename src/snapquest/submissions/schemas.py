"""Pydantic response models for submission endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from snapquest.progression.schemas import BadgeDefinitionResponse, ProfileResponse
from snapquest.verification.policy import VerificationResult


class LabelScoreResponse(BaseModel):
    label: str
    score: float


class VerificationResponse(BaseModel):
    is_valid: bool
    confidence: float
    matched_keyword: str | None = None
    message: str
    status: str
    all_scores: list[LabelScoreResponse] = []


class PhotoResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    image_url: str
    challenge_id: uuid.UUID | None = None
    event_challenge_id: uuid.UUID | None = None
    hunt_task_id: uuid.UUID | None = None
    filter_applied: str | None = None
    xp_earned: int
    likes_count: int
    verification_status: str
    created_at: datetime | None = None


class QuestProgressResponse(BaseModel):
    kind: str
    quest_id: uuid.UUID
    state: str
    completed_task_ids: list[uuid.UUID]
    total_xp_earned: int
    task_credited: bool
    quest_completed: bool


class SubmissionResponse(BaseModel):
    recorded: bool
    verification: VerificationResponse
    photo: PhotoResponse | None = None
    xp_awarded: int = 0
    profile: ProfileResponse | None = None
    new_badges: list[BadgeDefinitionResponse] = []
    rank: int | None = None
    quest: QuestProgressResponse | None = None


class LikeResponse(BaseModel):
    photo_id: uuid.UUID
    likes_count: int
    state: str


def verification_response(result: VerificationResult) -> VerificationResponse:
    return VerificationResponse(
        is_valid=result.is_valid,
        confidence=result.confidence,
        matched_keyword=result.matched_keyword,
        message=result.message,
        status=result.status.value,
        all_scores=[LabelScoreResponse(label=s.label, score=s.score) for s in result.all_scores],
    )
