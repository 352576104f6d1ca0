"""XP ledger: atomic credit, idempotency and level derivation."""

from __future__ import annotations

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from snapquest.database import get_session_factory
from snapquest.db.models import Profile, XPLedger
from snapquest.exceptions import InvalidXPAmountError, ProfileNotFoundError
from snapquest.progression.level_thresholds import compute_level
from snapquest.progression.xp_service import add_xp, get_or_create_profile, get_xp_history


class TestGetOrCreateProfile:

    @pytest.mark.asyncio
    async def test_creates_profile_with_defaults(self, db_session):
        user_id = uuid.uuid4()
        profile = await get_or_create_profile(db_session, user_id, "anna@example.com")
        assert profile.id == user_id
        assert profile.username == "anna"
        assert (profile.xp, profile.level, profile.streak, profile.longest_streak) == (0, 1, 0, 0)
        assert profile.last_activity_date is None

    @pytest.mark.asyncio
    async def test_returns_existing_profile(self, db_session):
        user_id = uuid.uuid4()
        first = await get_or_create_profile(db_session, user_id)
        await db_session.commit()
        second = await get_or_create_profile(db_session, user_id, "other@example.com")
        assert second is first
        assert second.username == f"user_{user_id.hex[:8]}"


class TestAddXP:

    @pytest.mark.asyncio
    async def test_credit_increases_xp_and_records_ledger(self, db_session, make_profile):
        profile = await make_profile()

        updated = await add_xp(db_session, None, profile.id, 50, source="challenge", source_id="c1")
        await db_session.commit()

        assert updated.xp == 50
        entries, total = await get_xp_history(db_session, profile.id)
        assert total == 1
        assert entries[0].amount == 50
        assert entries[0].source == "challenge"

    @pytest.mark.asyncio
    async def test_level_follows_xp(self, db_session, make_profile):
        profile = await make_profile()

        updated = await add_xp(db_session, None, profile.id, 350, source="bonus")

        assert updated.level == compute_level(350)["level"] == 3

    @pytest.mark.asyncio
    async def test_level_up_published(self, db_session, make_profile):
        profile = await make_profile()
        redis = AsyncMock()

        await add_xp(db_session, redis, profile.id, 100, source="challenge")

        redis.publish.assert_awaited_once()
        channel = redis.publish.await_args.args[0]
        assert channel == "pubsub:level_up"

    @pytest.mark.asyncio
    async def test_no_level_up_event_within_level(self, db_session, make_profile):
        profile = await make_profile()
        redis = AsyncMock()

        await add_xp(db_session, redis, profile.id, 10, source="challenge")

        redis.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_fail_credit(self, db_session, make_profile):
        profile = await make_profile()
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")

        updated = await add_xp(db_session, redis, profile.id, 150, source="challenge")

        assert updated.xp == 150

    @pytest.mark.asyncio
    async def test_idempotency_key_credits_once(self, db_session, make_profile):
        profile = await make_profile()

        first = await add_xp(db_session, None, profile.id, 50, source="challenge", idempotency_key="k1")
        second = await add_xp(db_session, None, profile.id, 50, source="challenge", idempotency_key="k1")
        await db_session.commit()

        assert first is not None
        assert second is None
        refreshed = await db_session.get(Profile, profile.id, populate_existing=True)
        assert refreshed.xp == 50
        count = (await db_session.execute(select(func.count(XPLedger.id)))).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, 2.5, True])
    async def test_invalid_amount_rejected_without_mutation(self, db_session, make_profile, amount):
        profile = await make_profile()

        with pytest.raises(InvalidXPAmountError):
            await add_xp(db_session, None, profile.id, amount, source="challenge")

        refreshed = await db_session.get(Profile, profile.id, populate_existing=True)
        assert refreshed.xp == 0

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(ProfileNotFoundError):
            await add_xp(db_session, None, uuid.uuid4(), 10, source="challenge")

        count = (await db_session.execute(select(func.count(XPLedger.id)))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_sequential_credits_sum(self, db_session, make_profile):
        profile = await make_profile()
        for amount in (10, 20, 30, 40):
            await add_xp(db_session, None, profile.id, amount, source="challenge")
        await db_session.commit()

        refreshed = await db_session.get(Profile, profile.id, populate_existing=True)
        assert refreshed.xp == 100
        assert refreshed.level == 2

    @pytest.mark.asyncio
    async def test_concurrent_credits_from_separate_sessions_sum(self, db_session, make_profile):
        profile = await make_profile()

        async def credit(amount: int) -> None:
            async with get_session_factory()() as session:
                await add_xp(session, None, profile.id, amount, source="challenge")
                await session.commit()

        await asyncio.gather(*(credit(a) for a in (5, 10, 15, 20, 50)))

        refreshed = await db_session.get(Profile, profile.id, populate_existing=True)
        assert refreshed.xp == 100
        assert refreshed.level == 2


class TestXPHistory:

    @pytest.mark.asyncio
    async def test_paginated_newest_first(self, db_session, make_profile):
        profile = await make_profile()
        for amount in (1, 2, 3):
            await add_xp(db_session, None, profile.id, amount, source="challenge")
        await db_session.commit()

        entries, total = await get_xp_history(db_session, profile.id, limit=2, offset=0)

        assert total == 3
        assert [e.amount for e in entries] == [3, 2]
