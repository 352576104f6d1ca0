"""Private events and hunt catalog."""

from __future__ import annotations

import pytest

from snapquest.exceptions import EventCodeNotFoundError, InvalidInputError
from snapquest.quests import service
from snapquest.quests.service import ACCESS_CODE_ALPHABET, ACCESS_CODE_LENGTH, generate_access_code
from snapquest.quests.tracker import QuestKind, QuestState, QuestTracker


class TestAccessCode:

    def test_shape(self):
        for _ in range(50):
            code = generate_access_code()
            assert len(code) == ACCESS_CODE_LENGTH
            assert set(code) <= set(ACCESS_CODE_ALPHABET)


class TestEvents:

    @pytest.mark.asyncio
    async def test_create_event_with_challenges(self, db_session, make_profile):
        creator = await make_profile()

        event = await service.create_event(
            db_session,
            creator.id,
            "Day at the lake",
            event_type="birthday",
            challenges=[{"title": "Вода"}, {"title": "Облака", "xp_reward": 40}],
        )
        await db_session.commit()

        _event, challenges, participants = await service.get_event_detail(db_session, event.id)
        assert [c.title for c in challenges] == ["Вода", "Облака"]
        assert [c.xp_reward for c in challenges] == [30, 40]
        assert participants == 1
        state = await QuestTracker(db_session).state(creator.id, QuestKind.EVENT, event.id)
        assert state is QuestState.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_unknown_event_type(self, db_session, make_profile):
        creator = await make_profile()
        with pytest.raises(InvalidInputError):
            await service.create_event(db_session, creator.id, "x", event_type="rave")

    @pytest.mark.asyncio
    async def test_join_by_code_case_insensitive(self, db_session, make_profile, event_with_task):
        event, _task = event_with_task
        guest = await make_profile()

        joined = await service.join_event_by_code(db_session, guest.id, " abcd23 ")
        again = await service.join_event_by_code(db_session, guest.id, "ABCD23")
        await db_session.commit()

        assert joined.id == again.id == event.id
        _event, _challenges, participants = await service.get_event_detail(db_session, event.id)
        assert participants == 1

    @pytest.mark.asyncio
    async def test_join_unknown_code(self, db_session, make_profile):
        guest = await make_profile()
        with pytest.raises(EventCodeNotFoundError):
            await service.join_event_by_code(db_session, guest.id, "ZZZZZZ")


class TestHunts:

    @pytest.mark.asyncio
    async def test_list_active_hunts(self, db_session, hunt):
        summaries = await service.list_active_hunts(db_session)

        assert len(summaries) == 1
        assert summaries[0].hunt.id == hunt.id
        assert summaries[0].task_count == 2
        assert summaries[0].total_xp == 50
        assert summaries[0].participants_count == 0
