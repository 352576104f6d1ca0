"""Shared test fixtures.

Tests run against a throwaway SQLite file per test; Redis is not initialised,
so event publishing and rate limiting are bypassed.
"""

from __future__ import annotations

import os

os.environ["SNAPQUEST_REDIS_URL"] = ""
os.environ["SNAPQUEST_LOG_FORMAT"] = "console"
os.environ["SNAPQUEST_LOG_LEVEL"] = "WARNING"
os.environ["SNAPQUEST_STREAK_TIMEZONE"] = "UTC"

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from snapquest.auth.jwt import create_access_token  # noqa: E402
from snapquest.config import get_settings  # noqa: E402
from snapquest.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from snapquest.db import models  # noqa: E402, F401
from snapquest.db.base import Base  # noqa: E402
from snapquest.db.models import Challenge, Event, EventChallenge, Hunt, HuntTask, Profile  # noqa: E402
from snapquest.dependencies import get_match_scorer, get_photo_storage  # noqa: E402
from snapquest.exceptions import MatchScorerUnavailable  # noqa: E402
from snapquest.main import create_app  # noqa: E402
from snapquest.progression.badge_catalog import seed_badges  # noqa: E402
from snapquest.progression.xp_service import get_or_create_profile  # noqa: E402
from snapquest.storage import LocalPhotoStorage  # noqa: E402
from snapquest.verification.scorer import MatchScorer  # noqa: E402

get_settings.cache_clear()


class FakeScorer(MatchScorer):
    """Returns fixed scores; labels it does not know score 0."""

    def __init__(self, scores: dict[str, float] | None = None, fail: bool = False) -> None:
        self.scores = scores or {}
        self.fail = fail
        self.calls: list[list[str]] = []

    async def score(self, image: bytes, labels: list[str]) -> dict[str, float]:
        self.calls.append(labels)
        if self.fail:
            msg = "scorer down"
            raise MatchScorerUnavailable(msg)
        return {label: self.scores.get(label, 0.0) for label in labels}


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh SQLite schema for one test."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'snapquest.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    """Session with the badge catalog seeded."""
    await seed_badges(db_session)
    return db_session


@pytest_asyncio.fixture
async def make_profile(db_session: AsyncSession):
    """Factory creating committed profiles."""

    async def _make(email: str | None = None, **fields) -> Profile:
        profile = await get_or_create_profile(db_session, uuid.uuid4(), email)
        for name, value in fields.items():
            setattr(profile, name, value)
        await db_session.commit()
        return profile

    return _make


@pytest_asyncio.fixture
async def challenge(db_session: AsyncSession) -> Challenge:
    row = Challenge(
        title="Закат",
        description="Поймайте закат в городе",
        category="light",
        difficulty="easy",
        xp_reward=50,
        day_number=1,
        is_daily=True,
    )
    db_session.add(row)
    await db_session.commit()
    return row


@pytest_asyncio.fixture
async def hunt(db_session: AsyncSession) -> Hunt:
    """Active hunt with two tasks worth 20 and 30 XP."""
    row = Hunt(title="Городская охота", theme="urban", difficulty="easy", duration="day", is_active=True)
    db_session.add(row)
    await db_session.flush()
    db_session.add_all([
        HuntTask(hunt_id=row.id, title="Граффити", order_num=0, xp_reward=20),
        HuntTask(hunt_id=row.id, title="Отражение в витрине", order_num=1, xp_reward=30),
    ])
    await db_session.commit()
    return row


@pytest_asyncio.fixture
async def hunt_tasks(db_session: AsyncSession, hunt: Hunt) -> list[HuntTask]:
    from sqlalchemy import select

    result = await db_session.execute(
        select(HuntTask).where(HuntTask.hunt_id == hunt.id).order_by(HuntTask.order_num)
    )
    return list(result.scalars().all())


@pytest_asyncio.fixture
async def event_with_task(db_session: AsyncSession, make_profile) -> tuple[Event, EventChallenge]:
    creator = await make_profile()
    event = Event(name="Свадьба", access_code="ABCD23", creator_id=creator.id, event_type="wedding")
    db_session.add(event)
    await db_session.flush()
    task = EventChallenge(event_id=event.id, title="Кофе", order_num=0, xp_reward=30)
    db_session.add(task)
    await db_session.commit()
    return event, task


@pytest.fixture
def make_scorer():
    return FakeScorer


@pytest.fixture
def scorer() -> FakeScorer:
    return FakeScorer({"sunset": 0.30, "golden hour": 0.10})


@pytest.fixture
def storage(tmp_path) -> LocalPhotoStorage:
    return LocalPhotoStorage(str(tmp_path / "media"), "http://testserver/media")


@pytest_asyncio.fixture
async def app(database, scorer: FakeScorer, storage: LocalPhotoStorage) -> FastAPI:
    """The application with a fake scorer, temp storage and the badge catalog seeded."""
    async with get_session_factory()() as session:
        await seed_badges(session)

    application = create_app()
    application.dependency_overrides[get_match_scorer] = lambda: scorer
    application.dependency_overrides[get_photo_storage] = lambda: storage
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _auth_headers(user_id: uuid.UUID | None = None, email: str | None = None) -> dict[str, str]:
    token = create_access_token(user_id or uuid.uuid4(), email=email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Bearer header factory; a new user id when none is given."""
    return _auth_headers
