"""
Tests for pair generation and listing.

Tests:
- Round-robin pairs persisted with seeded proposals
- Regeneration replaces every previous pair
- Visibility of pairs and meeting links per role
"""

import random
from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from api.services import pairing as pairing_service
from core.errors import NotFoundError
from core.events import PAIRS_GENERATED
from core.policy import ViewScope
from database.models.feedback import Feedback
from database.models.pairs import Pair, PairStatus, SlotProposal
from database.models.users import UserRole


async def _count(session, model, *where):
    result = await session.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar()


class TestGeneratePairs:
    async def test_pairs_cover_every_participant(self, session, students, make_event, notifier):
        event = await make_event(participants=students)

        result = await pairing_service.generate_pairs(session, event.id, notifier, rng=random.Random(1))

        assert result["count"] == len(students)
        interviewers = Counter(p["interviewer"]["id"] for p in result["pairs"])
        interviewees = Counter(p["interviewee"]["id"] for p in result["pairs"])
        ids = Counter(s.id for s in students)
        assert interviewers == ids
        assert interviewees == ids
        assert all(p["status"] == "pending" for p in result["pairs"])
        assert notifier.channels() == [PAIRS_GENERATED]

    async def test_default_slot_seeded_as_proposal(self, session, students, make_event, notifier):
        event = await make_event(participants=students[:2])
        at = datetime.now(timezone.utc)

        result = await pairing_service.generate_pairs(session, event.id, notifier, at=at)

        for pair in result["pairs"]:
            assert pair["default_time_slot"] is not None
            assert pair["proposed_time"] == pair["default_time_slot"]
        proposals = (await session.execute(select(SlotProposal))).scalars().all()
        assert len(proposals) == 4
        assert all(len(p.slots) == 1 for p in proposals)

    async def test_single_participant_yields_no_pairs(self, session, students, make_event, notifier):
        event = await make_event(participants=students[:1])
        result = await pairing_service.generate_pairs(session, event.id, notifier)
        assert result["count"] == 0
        assert result["pairs"] == []

    async def test_unknown_event(self, session, notifier):
        with pytest.raises(NotFoundError):
            await pairing_service.generate_pairs(session, 999, notifier)

    async def test_regeneration_replaces_pairs(self, session, students, make_event, notifier):
        event = await make_event(participants=students)
        await pairing_service.generate_pairs(session, event.id, notifier, rng=random.Random(1))
        second = await pairing_service.generate_pairs(session, event.id, notifier, rng=random.Random(2))

        assert second["count"] == len(students)
        assert await _count(session, Pair, Pair.event_id == event.id) == len(students)
        assert await _count(session, SlotProposal, SlotProposal.event_id == event.id) == 2 * len(students)

    async def test_regeneration_keeps_feedback(self, session, students, make_event, notifier):
        event = await make_event(participants=students[:2])
        first = await pairing_service.generate_pairs(session, event.id, notifier)
        pair = first["pairs"][0]
        session.add(Feedback(
            event_id=event.id,
            pair_id=pair["id"],
            from_user_id=pair["interviewer"]["id"],
            to_user_id=pair["interviewee"]["id"],
            marks=70,
        ))
        await session.commit()

        await pairing_service.generate_pairs(session, event.id, notifier)

        feedback = (await session.execute(select(Feedback))).scalar_one()
        await session.refresh(feedback)
        assert feedback.pair_id is None
        assert feedback.marks == 70

    async def test_emails_sent_when_enabled(self, session, students, make_event, notifier, dispatcher, sender, monkeypatch):
        event = await make_event(participants=students[:3])
        monkeypatch.setattr("api.services.pairing.settings.email_on_pairing", True)
        await pairing_service.generate_pairs(session, event.id, notifier, dispatcher)

        assert len(sender.sent) == 6
        assert set(sender.subjects()) == {"You have been paired for Mock Interview Drive"}


class TestListPairs:
    async def _scheduled_event(self, session, students, make_event, notifier, starts_in):
        event = await make_event(participants=students[:3])
        await pairing_service.generate_pairs(session, event.id, notifier)
        pairs = await pairing_service.load_event_pairs(session, event.id)
        for pair in pairs:
            pair.status = PairStatus.SCHEDULED
            pair.scheduled_at = datetime.now(timezone.utc) + starts_in
            pair.meeting_link = f"https://meet.jit.si/Interview-{pair.id}-abcdef"
        await session.commit()
        return event

    async def test_student_sees_only_own_pairs(self, session, students, make_event, notifier):
        event = await self._scheduled_event(session, students, make_event, notifier, timedelta(days=1))
        scope = ViewScope.for_user(students[0])

        pairs = await pairing_service.list_pairs(session, event.id, scope)

        assert len(pairs) == 2
        assert {p["my_role"] for p in pairs} == {"interviewer", "interviewee"}

    async def test_admin_sees_all_pairs(self, session, students, make_event, notifier, admin):
        event = await self._scheduled_event(session, students, make_event, notifier, timedelta(days=1))
        pairs = await pairing_service.list_pairs(session, event.id, ViewScope.for_user(admin))

        assert len(pairs) == 3
        assert all(p["meeting_link"] for p in pairs)
        assert all("my_role" not in p for p in pairs)

    async def test_link_hidden_until_an_hour_before(self, session, students, make_event, notifier):
        event = await self._scheduled_event(session, students, make_event, notifier, timedelta(hours=3))
        pairs = await pairing_service.list_pairs(session, event.id, ViewScope.for_user(students[0]))
        assert all(p["meeting_link"] is None for p in pairs)

    async def test_link_visible_inside_window(self, session, students, make_event, notifier):
        event = await self._scheduled_event(session, students, make_event, notifier, timedelta(minutes=30))
        pairs = await pairing_service.list_pairs(session, event.id, ViewScope.for_user(students[0]))
        assert all(p["meeting_link"] for p in pairs)

    async def test_non_participant_sees_nothing(self, session, students, make_event, notifier, make_user):
        event = await self._scheduled_event(session, students, make_event, notifier, timedelta(days=1))
        outsider = await make_user(UserRole.STUDENT)
        assert await pairing_service.list_pairs(session, event.id, ViewScope.for_user(outsider)) == []
