"""Challenge catalog endpoints."""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.challenges.service import challenge_keywords, get_challenge, get_daily_challenge, list_challenges
from snapquest.db.models import Challenge
from snapquest.dependencies import get_db, get_today

router = APIRouter(prefix="/api/v1", tags=["Challenges"])


class ChallengeResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None = None
    category: str
    difficulty: str
    xp_reward: int
    day_number: int | None = None
    is_daily: bool


class ChallengeListResponse(BaseModel):
    challenges: list[ChallengeResponse]


class DailyChallengeResponse(ChallengeResponse):
    date: str
    keywords: list[str]


class KeywordsResponse(BaseModel):
    challenge_id: uuid.UUID
    keywords: list[str]


def _challenge_fields(c: Challenge) -> dict:
    return {
        "id": c.id,
        "title": c.title,
        "description": c.description,
        "category": c.category,
        "difficulty": c.difficulty,
        "xp_reward": c.xp_reward,
        "day_number": c.day_number,
        "is_daily": c.is_daily,
    }


@router.get("/challenges", response_model=ChallengeListResponse)
async def get_challenges(
    category: str | None = Query(None),
    difficulty: str | None = Query(None, pattern="^(easy|medium|hard)$"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    challenges = await list_challenges(db, category=category, difficulty=difficulty, limit=limit, offset=offset)
    return ChallengeListResponse(challenges=[ChallengeResponse(**_challenge_fields(c)) for c in challenges])


@router.get("/challenges/daily", response_model=DailyChallengeResponse)
async def get_daily(
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
):
    """Today's shared prompt."""
    challenge = await get_daily_challenge(db, today)
    return DailyChallengeResponse(
        **_challenge_fields(challenge),
        date=today.isoformat(),
        keywords=challenge_keywords(challenge),
    )


@router.get("/challenges/{challenge_id}/keywords", response_model=KeywordsResponse)
async def get_keywords(challenge_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Labels the photo will be checked against."""
    challenge = await get_challenge(db, challenge_id)
    return KeywordsResponse(challenge_id=challenge.id, keywords=challenge_keywords(challenge))
