"""
Supabase access token verification.

The identity provider issues HS256 tokens signed with the project's JWT
secret. ``sub`` carries the user's UUID and ``aud`` is ``authenticated``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from snapquest.config import get_settings


def create_access_token(user_id: uuid.UUID, email: str | None = None, expires_minutes: int = 60) -> str:
    """
    Issue a token in the identity provider's format.

    Used by local tooling and tests; production tokens come from Supabase.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no UUID subject.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    try:
        uuid.UUID(str(payload.get("sub")))
    except ValueError:
        msg = "Token subject is not a user id"
        raise jwt.InvalidTokenError(msg) from None

    return payload
