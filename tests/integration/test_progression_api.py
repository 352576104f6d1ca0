"""Integration tests for profile, XP, badge and leaderboard endpoints."""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

from snapquest.progression.badge_catalog import BADGE_SEED_DATA
from snapquest.progression.level_thresholds import LEVEL_THRESHOLDS
from snapquest.progression.xp_service import add_xp


class TestPublicEndpoints:

    @pytest.mark.asyncio
    async def test_levels(self, client: AsyncClient):
        response = await client.get("/api/v1/levels")
        assert response.status_code == 200
        levels = response.json()["levels"]
        assert len(levels) == len(LEVEL_THRESHOLDS)
        assert levels[0] == {"level": 1, "title": "Novice", "cumulative": 0}

    @pytest.mark.asyncio
    async def test_badges_carry_render_metadata(self, client: AsyncClient):
        response = await client.get("/api/v1/badges")
        assert response.status_code == 200
        badges = response.json()["badges"]
        assert {b["slug"] for b in badges} == {b["slug"] for b in BADGE_SEED_DATA}
        first = next(b for b in badges if b["slug"] == "first_step")
        assert first["icon_component"] == "Camera"
        assert first["color_class"] == "bg-primary"

    @pytest.mark.asyncio
    async def test_leaderboard_limit_validated(self, client: AsyncClient):
        response = await client.get("/api/v1/leaderboard", params={"limit": 0})
        assert response.status_code == 422
        assert "detail" in response.json()


class TestProfile:

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_rejects_bad_token(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_profile_created_on_first_access(self, client: AsyncClient, auth_headers):
        user_id = uuid.uuid4()
        response = await client.get("/api/v1/users/me", headers=auth_headers(user_id, "mila@example.com"))
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(user_id)
        assert data["username"] == "mila"
        assert data["xp"] == 0
        assert data["level"] == 1
        assert data["level_title"] == "Novice"
        assert data["streak"] == 0

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, auth_headers):
        headers = auth_headers()
        response = await client.patch("/api/v1/users/me", json={"display_name": "Mila K"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["display_name"] == "Mila K"

        again = await client.get("/api/v1/users/me", headers=headers)
        assert again.json()["display_name"] == "Mila K"

    @pytest.mark.asyncio
    async def test_public_profile(self, client: AsyncClient, auth_headers):
        user_id = uuid.uuid4()
        await client.get("/api/v1/users/me", headers=auth_headers(user_id))

        response = await client.get(f"/api/v1/users/{user_id}")
        assert response.status_code == 200
        assert response.json()["id"] == str(user_id)

    @pytest.mark.asyncio
    async def test_public_profile_not_found(self, client: AsyncClient):
        response = await client.get(f"/api/v1/users/{uuid.uuid4()}")
        assert response.status_code == 404


class TestXPAndRank:

    @pytest.mark.asyncio
    async def test_xp_history_and_rank(self, client: AsyncClient, db_session, make_profile, auth_headers):
        other = await make_profile(xp=500)
        me = await make_profile()
        await add_xp(db_session, None, me.id, 120, source="challenge", description="Completed challenge")
        await db_session.commit()
        headers = auth_headers(me.id)

        xp = (await client.get("/api/v1/users/me/xp", headers=headers)).json()
        assert xp["total_xp"] == 120
        assert xp["level"] == 2
        assert xp["xp_into_level"] == 20

        history = (await client.get("/api/v1/users/me/xp/history", headers=headers)).json()
        assert history["total"] == 1
        assert history["entries"][0]["amount"] == 120

        rank = (await client.get("/api/v1/users/me/rank", headers=headers)).json()
        assert rank == {"rank": 2, "xp": 120, "total": 2}

        board = (await client.get("/api/v1/leaderboard")).json()
        assert [e["user_id"] for e in board["entries"]] == [str(other.id), str(me.id)]
        assert [e["position"] for e in board["entries"]] == [1, 2]


class TestBadges:

    @pytest.mark.asyncio
    async def test_my_badges_and_sync(self, client: AsyncClient, make_profile, auth_headers):
        me = await make_profile(streak=3, longest_streak=3)
        headers = auth_headers(me.id)

        before = (await client.get("/api/v1/users/me/badges", headers=headers)).json()
        assert before["total_earned"] == 0
        assert before["total_available"] == len(BADGE_SEED_DATA)
        on_a_roll = next(b for b in before["badges"] if b["slug"] == "on_a_roll")
        assert on_a_roll["progress_percent"] == 100
        assert on_a_roll["earned"] is False

        synced = (await client.post("/api/v1/users/me/badges/sync", headers=headers)).json()
        assert [b["slug"] for b in synced["awarded"]] == ["on_a_roll"]

        again = (await client.post("/api/v1/users/me/badges/sync", headers=headers)).json()
        assert again["awarded"] == []

        after = (await client.get("/api/v1/users/me/badges", headers=headers)).json()
        assert after["total_earned"] == 1

    @pytest.mark.asyncio
    async def test_achievements(self, client: AsyncClient, auth_headers):
        response = await client.get("/api/v1/users/me/achievements", headers=auth_headers())
        assert response.status_code == 200
        assert response.json()["total_photos"] == 0
