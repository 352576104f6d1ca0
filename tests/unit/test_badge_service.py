"""Badge evaluation, idempotent award and progress."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import delete, func, select, update

from snapquest.db.models import BadgeDefinition, Photo, Profile, UserBadge
from snapquest.progression.badge_catalog import BADGE_SEED_DATA, seed_badges
from snapquest.progression.badge_service import (
    BadgeMetrics,
    compute_metrics,
    get_badge_progress,
    get_user_achievements,
    is_eligible,
    local_hour,
    progress_towards,
    sync_badges,
)
from snapquest.quests import service as quests

NOON = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _badge(requirement_type: str, value: int) -> BadgeDefinition:
    return BadgeDefinition(
        slug="t", name="T", description="", requirement_type=requirement_type, requirement_value=value
    )


async def _add_photos(db, user_id, count: int, likes: int = 0, challenge_id=None, created_at=NOON) -> None:
    for _ in range(count):
        db.add(Photo(
            user_id=user_id,
            created_at=created_at,
            image_url="http://testserver/media/x.jpg",
            challenge_id=challenge_id,
            likes_count=likes,
            verification_status="accepted",
            verification_confidence=0.2,
        ))
    await db.commit()


class TestProgressTowards:

    def test_rounds_half_up(self):
        assert progress_towards(_badge("photos", 3), BadgeMetrics(photos=1)) == 33
        assert progress_towards(_badge("photos", 8), BadgeMetrics(photos=1)) == 13

    def test_capped_at_100(self):
        assert progress_towards(_badge("photos", 5), BadgeMetrics(photos=50)) == 100

    def test_streak_uses_longest(self):
        assert progress_towards(_badge("streak", 10), BadgeMetrics(longest_streak=7)) == 70

    def test_unknown_requirement_type_is_zero(self):
        assert progress_towards(_badge("moon_phase", 3), BadgeMetrics(photos=9)) == 0

    def test_zero_requirement_counts_as_one(self):
        assert is_eligible(_badge("photos", 0), BadgeMetrics(photos=0)) is False
        assert is_eligible(_badge("photos", 0), BadgeMetrics(photos=1)) is True
        assert progress_towards(_badge("photos", 0), BadgeMetrics(photos=0)) == 0

    def test_clock_badges_are_binary(self):
        assert progress_towards(_badge("early_bird", 1), BadgeMetrics(has_early_photo=True)) == 100
        assert progress_towards(_badge("night_owl", 1), BadgeMetrics(has_early_photo=True)) == 0


class TestSeedBadges:

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db_session):
        assert await seed_badges(db_session) == len(BADGE_SEED_DATA)
        assert await seed_badges(db_session) == 0
        count = (await db_session.execute(select(func.count(BadgeDefinition.id)))).scalar_one()
        assert count == len(BADGE_SEED_DATA)


class TestSyncBadges:

    @pytest.mark.asyncio
    async def test_awards_first_photo_badge_once(self, seeded_db, make_profile):
        profile = await make_profile()
        await _add_photos(seeded_db, profile.id, 1)

        awarded = await sync_badges(seeded_db, None, profile.id)
        await seeded_db.commit()
        again = await sync_badges(seeded_db, None, profile.id)

        assert [b.slug for b in awarded] == ["first_step"]
        assert again == []

    @pytest.mark.asyncio
    async def test_never_revokes(self, seeded_db, make_profile):
        profile = await make_profile()
        await _add_photos(seeded_db, profile.id, 1)
        await sync_badges(seeded_db, None, profile.id)
        await seeded_db.commit()

        await seeded_db.execute(delete(Photo).where(Photo.user_id == profile.id))
        await seeded_db.commit()
        await sync_badges(seeded_db, None, profile.id)
        await seeded_db.commit()

        held = (await seeded_db.execute(
            select(func.count(UserBadge.id)).where(UserBadge.user_id == profile.id)
        )).scalar_one()
        assert held == 1

    @pytest.mark.asyncio
    async def test_streak_badge_from_longest_streak(self, seeded_db, make_profile):
        profile = await make_profile(streak=1, longest_streak=7)

        slugs = {b.slug for b in await sync_badges(seeded_db, None, profile.id)}

        assert {"on_a_roll", "week_of_light"} <= slugs
        assert "month_of_frames" not in slugs

    @pytest.mark.asyncio
    async def test_likes_and_top_photos(self, seeded_db, make_profile):
        profile = await make_profile()
        await _add_photos(seeded_db, profile.id, 1, likes=10)

        slugs = {b.slug for b in await sync_badges(seeded_db, None, profile.id)}

        assert {"first_step", "first_star", "top_shot"} <= slugs

    @pytest.mark.asyncio
    async def test_xp_badge_does_not_grant_xp(self, seeded_db, make_profile):
        profile = await make_profile()
        await seeded_db.execute(update(Profile).where(Profile.id == profile.id).values(xp=1000, level=5))
        await seeded_db.commit()

        slugs = {b.slug for b in await sync_badges(seeded_db, None, profile.id)}
        await seeded_db.commit()

        assert "rising_star" in slugs
        refreshed = await seeded_db.get(Profile, profile.id, populate_existing=True)
        assert refreshed.xp == 1000


class TestProgressAndAchievements:

    @pytest.mark.asyncio
    async def test_progress_lists_every_badge(self, seeded_db, make_profile):
        profile = await make_profile()
        await _add_photos(seeded_db, profile.id, 2)
        await sync_badges(seeded_db, None, profile.id)
        await seeded_db.commit()

        progress = {p.badge.slug: p for p in await get_badge_progress(seeded_db, profile.id)}

        assert len(progress) == len(BADGE_SEED_DATA)
        assert progress["first_step"].earned is True
        assert progress["first_step"].percent == 100
        assert progress["beginner"].earned is False
        assert progress["beginner"].percent == 40
        assert progress["beginner"].value == 2

    @pytest.mark.asyncio
    async def test_favorite_theme(self, seeded_db, make_profile, challenge):
        profile = await make_profile()
        await _add_photos(seeded_db, profile.id, 3, challenge_id=challenge.id)
        await _add_photos(seeded_db, profile.id, 1, likes=4)

        metrics = await compute_metrics(seeded_db, profile.id)
        achievements = await get_user_achievements(seeded_db, profile.id)

        assert metrics.theme_repeats == 3
        assert achievements["favorite_theme"] == challenge.title
        assert achievements["total_photos"] == 4
        assert achievements["total_likes"] == 4


class TestEventAndClockBadges:

    @pytest.mark.asyncio
    async def test_host_badge_for_created_event(self, seeded_db, make_profile):
        creator = await make_profile()
        await quests.create_event(seeded_db, creator.id, "Rooftop party")
        await seeded_db.commit()

        slugs = {b.slug for b in await sync_badges(seeded_db, None, creator.id)}

        assert "host" in slugs
        assert "socialite" not in slugs

    @pytest.mark.asyncio
    async def test_socialite_after_three_events(self, seeded_db, make_profile):
        guest = await make_profile()
        for name in ("Wedding", "Picnic", "Concert"):
            host = await make_profile()
            event = await quests.create_event(seeded_db, host.id, name)
            await quests.join_event_by_code(seeded_db, guest.id, event.access_code)
            await seeded_db.commit()

        metrics = await compute_metrics(seeded_db, guest.id)
        slugs = {b.slug for b in await sync_badges(seeded_db, None, guest.id)}

        assert (metrics.events_created, metrics.events_joined) == (0, 3)
        assert "socialite" in slugs
        assert "host" not in slugs

    @pytest.mark.asyncio
    async def test_early_bird(self, seeded_db, make_profile):
        profile = await make_profile()
        await _add_photos(seeded_db, profile.id, 1, created_at=datetime(2026, 6, 1, 4, 30, tzinfo=timezone.utc))

        slugs = {b.slug for b in await sync_badges(seeded_db, None, profile.id)}

        assert "early_bird" in slugs
        assert "night_owl" not in slugs

    @pytest.mark.asyncio
    async def test_night_owl(self, seeded_db, make_profile):
        profile = await make_profile()
        await _add_photos(seeded_db, profile.id, 1, created_at=datetime(2026, 6, 1, 1, 15, tzinfo=timezone.utc))

        slugs = {b.slug for b in await sync_badges(seeded_db, None, profile.id)}

        assert "night_owl" in slugs
        assert "early_bird" not in slugs

    @pytest.mark.asyncio
    async def test_photo_hour_read_in_streak_calendar(self, seeded_db, make_profile):
        profile = await make_profile()
        # 22:30 UTC is 01:30 in Moscow
        await _add_photos(seeded_db, profile.id, 1, created_at=datetime(2026, 6, 1, 22, 30, tzinfo=timezone.utc))

        utc = await compute_metrics(seeded_db, profile.id, timezone_name="UTC")
        moscow = await compute_metrics(seeded_db, profile.id, timezone_name="Europe/Moscow")

        assert utc.has_late_photo is False
        assert moscow.has_late_photo is True

    def test_naive_timestamps_are_utc(self):
        assert local_hour(datetime(2026, 6, 1, 23, 0), ZoneInfo("Asia/Tokyo")) == 8
