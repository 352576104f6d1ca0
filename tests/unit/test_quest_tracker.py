"""Hunt and event progress state machine."""

from __future__ import annotations

import uuid
from datetime import date
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from snapquest.db.models import Profile, QuestTaskCompletion, XPLedger
from snapquest.exceptions import InvalidXPAmountError, QuestInactiveError, QuestNotFoundError, TaskNotFoundError
from snapquest.quests.tracker import QuestKind, QuestState, QuestTracker

TODAY = date(2026, 5, 4)


class TestStart:

    @pytest.mark.asyncio
    async def test_not_started_then_in_progress(self, db_session, make_profile, hunt):
        profile = await make_profile()
        tracker = QuestTracker(db_session)

        assert await tracker.state(profile.id, QuestKind.HUNT, hunt.id) is QuestState.NOT_STARTED
        await tracker.start(profile.id, QuestKind.HUNT, hunt.id)
        assert await tracker.state(profile.id, QuestKind.HUNT, hunt.id) is QuestState.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_start_twice_returns_same_progress(self, db_session, make_profile, hunt):
        profile = await make_profile()
        tracker = QuestTracker(db_session)

        first = await tracker.start(profile.id, QuestKind.HUNT, hunt.id)
        second = await tracker.start(profile.id, QuestKind.HUNT, hunt.id)

        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_inactive_hunt_rejected(self, db_session, make_profile, hunt):
        profile = await make_profile()
        hunt.is_active = False
        await db_session.commit()

        with pytest.raises(QuestInactiveError):
            await QuestTracker(db_session).start(profile.id, QuestKind.HUNT, hunt.id)

    @pytest.mark.asyncio
    async def test_unknown_quest(self, db_session, make_profile):
        profile = await make_profile()
        with pytest.raises(QuestNotFoundError):
            await QuestTracker(db_session).start(profile.id, QuestKind.EVENT, uuid.uuid4())


class TestCompleteTask:

    @pytest.mark.asyncio
    async def test_completion_credits_task_reward(self, db_session, make_profile, hunt_tasks):
        profile = await make_profile()
        tracker = QuestTracker(db_session)

        completion = await tracker.complete_task(profile.id, QuestKind.HUNT, hunt_tasks[0].id, today=TODAY)
        await db_session.commit()

        assert completion.credited is True
        assert completion.xp_awarded == 20
        assert completion.quest_completed is False
        assert completion.progress.total_xp_earned == 20
        assert completion.profile.xp == 20
        assert completion.profile.streak == 1
        assert completion.completed_task_ids == [hunt_tasks[0].id]

    @pytest.mark.asyncio
    async def test_repeat_completion_credits_once(self, db_session, make_profile, hunt_tasks):
        profile = await make_profile()
        tracker = QuestTracker(db_session)

        await tracker.complete_task(profile.id, QuestKind.HUNT, hunt_tasks[0].id, today=TODAY)
        repeat = await tracker.complete_task(profile.id, QuestKind.HUNT, hunt_tasks[0].id, today=TODAY)
        await db_session.commit()

        assert repeat.credited is False
        assert repeat.xp_awarded == 0
        refreshed = await db_session.get(Profile, profile.id, populate_existing=True)
        assert refreshed.xp == 20
        completions = (await db_session.execute(select(func.count(QuestTaskCompletion.id)))).scalar_one()
        assert completions == 1

    @pytest.mark.asyncio
    async def test_last_task_completes_quest_once(self, db_session, make_profile, hunt, hunt_tasks):
        profile = await make_profile()
        redis = AsyncMock()
        tracker = QuestTracker(db_session, redis)

        await tracker.complete_task(profile.id, QuestKind.HUNT, hunt_tasks[0].id, today=TODAY)
        final = await tracker.complete_task(profile.id, QuestKind.HUNT, hunt_tasks[1].id, today=TODAY)
        await db_session.commit()

        assert final.quest_completed is True
        assert final.progress.total_xp_earned == 50
        assert final.progress.completed_at is not None
        assert await tracker.state(profile.id, QuestKind.HUNT, hunt.id) is QuestState.COMPLETED
        channels = [call.args[0] for call in redis.publish.await_args_list]
        assert channels.count("pubsub:quest_completed") == 1

        stamped = final.progress.completed_at
        again = await tracker.complete_task(profile.id, QuestKind.HUNT, hunt_tasks[1].id, today=TODAY)
        assert again.credited is False
        assert again.progress.completed_at == stamped

    @pytest.mark.asyncio
    async def test_explicit_reward_override(self, db_session, make_profile, event_with_task):
        _event, task = event_with_task
        profile = await make_profile()

        completion = await QuestTracker(db_session).complete_task(
            profile.id, QuestKind.EVENT, task.id, xp_reward=45, today=TODAY
        )

        assert completion.xp_awarded == 45
        ledger = (await db_session.execute(select(XPLedger).where(XPLedger.user_id == profile.id))).scalar_one()
        assert ledger.source == "event"
        assert ledger.amount == 45

    @pytest.mark.asyncio
    async def test_invalid_reward_rejected(self, db_session, make_profile, hunt_tasks):
        profile = await make_profile()
        with pytest.raises(InvalidXPAmountError):
            await QuestTracker(db_session).complete_task(
                profile.id, QuestKind.HUNT, hunt_tasks[0].id, xp_reward=0, today=TODAY
            )

    @pytest.mark.asyncio
    async def test_unknown_task(self, db_session, make_profile):
        profile = await make_profile()
        with pytest.raises(TaskNotFoundError):
            await QuestTracker(db_session).complete_task(profile.id, QuestKind.HUNT, uuid.uuid4(), today=TODAY)
