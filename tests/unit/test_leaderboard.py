"""Leaderboard rank and top list."""

from __future__ import annotations

import uuid

import pytest

from snapquest.exceptions import ProfileNotFoundError
from snapquest.progression.leaderboard_service import count_profiles, rank, top


class TestRank:

    @pytest.mark.asyncio
    async def test_single_user_is_first(self, db_session, make_profile):
        profile = await make_profile()
        assert await rank(db_session, profile.id) == 1

    @pytest.mark.asyncio
    async def test_rank_counts_strictly_higher(self, db_session, make_profile):
        low = await make_profile(xp=10)
        mid = await make_profile(xp=50)
        high = await make_profile(xp=90)

        assert await rank(db_session, high.id) == 1
        assert await rank(db_session, mid.id) == 2
        assert await rank(db_session, low.id) == 3

    @pytest.mark.asyncio
    async def test_ties_share_rank(self, db_session, make_profile):
        a = await make_profile(xp=50)
        b = await make_profile(xp=50)
        c = await make_profile(xp=10)

        assert await rank(db_session, a.id) == await rank(db_session, b.id) == 1
        assert await rank(db_session, c.id) == 3

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(ProfileNotFoundError):
            await rank(db_session, uuid.uuid4())


class TestTop:

    @pytest.mark.asyncio
    async def test_ordered_by_xp_with_positions(self, db_session, make_profile):
        for xp in (30, 90, 60):
            await make_profile(xp=xp)

        entries = await top(db_session, limit=10)

        assert [e.profile.xp for e in entries] == [90, 60, 30]
        assert [e.position for e in entries] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_offset_positions_continue(self, db_session, make_profile):
        for xp in (10, 20, 30, 40):
            await make_profile(xp=xp)

        entries = await top(db_session, limit=2, offset=2)

        assert [e.profile.xp for e in entries] == [20, 10]
        assert [e.position for e in entries] == [3, 4]
        assert await count_profiles(db_session) == 4

    @pytest.mark.asyncio
    async def test_ordering_is_deterministic(self, db_session, make_profile):
        for _ in range(4):
            await make_profile(xp=25)

        first = [e.profile.id for e in await top(db_session)]
        second = [e.profile.id for e in await top(db_session)]

        assert first == second
