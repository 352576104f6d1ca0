"""FastAPI authentication dependencies."""

from __future__ import annotations

import uuid

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from snapquest.auth.jwt import verify_token
from snapquest.database import get_session
from snapquest.db.models import Profile
from snapquest.progression.xp_service import get_or_create_profile

_bearer = HTTPBearer()


async def get_current_profile(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    """
    Return the caller's profile, creating it on first access.

    The profile row is keyed by the identity provider's user id.
    """
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    profile = await get_or_create_profile(db, uuid.UUID(payload["sub"]), payload.get("email"))
    await db.commit()
    return profile
