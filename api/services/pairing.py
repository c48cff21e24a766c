"""Pair generation and listing service functions."""

from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta
import logging

from sqlalchemy import select, delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.events import get_event_or_404, participant_ids
from core.config import settings
from core.errors import NotFoundError
from core.events import Notifier, PAIRS_GENERATED
from core.notifications import NotificationDispatcher
from core.policy import ViewScope
from core.scheduling import RandomSource, default_slot, generate_pairing, meeting_link_window_open
from core.utils.datetime import now, to_iso
from database.models.feedback import Feedback
from database.models.pairs import Pair, PairRejection, SlotProposal
from database.models.users import User

logger = logging.getLogger(__name__)


def link_lead() -> timedelta:
    return timedelta(minutes=settings.meeting_link_lead_minutes)


def _party(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "student_id": user.student_id,
    }


def serialize_pair(
    pair: Pair,
    scope: Optional[ViewScope] = None,
    at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Render a pair for the caller. Non-admins only see the meeting link from
    one hour before the start.
    """
    link = pair.meeting_link
    if scope is not None and link:
        window_open = pair.scheduled_at is not None and meeting_link_window_open(
            pair.scheduled_at, at or now(), link_lead()
        )
        if not scope.can_see_meeting_link(window_open):
            link = None

    data = {
        "id": pair.id,
        "event_id": pair.event_id,
        "interviewer": _party(pair.interviewer),
        "interviewee": _party(pair.interviewee),
        "status": pair.status.value,
        "default_time_slot": to_iso(pair.default_time_slot),
        "proposed_time": to_iso(pair.proposed_time),
        "scheduled_at": to_iso(pair.scheduled_at),
        "meeting_link": link,
        "interviewer_proposals": pair.interviewer_proposals,
        "interviewee_proposals": pair.interviewee_proposals,
        "rejection_count": pair.rejection_count,
    }
    if scope is not None and not scope.is_admin:
        data["my_role"] = pair.side_of(scope.user_id)
    return data


async def get_pair_or_404(session: AsyncSession, pair_id: int) -> Pair:
    result = await session.execute(
        select(Pair).where(Pair.id == pair_id).execution_options(populate_existing=True)
    )
    pair = result.unique().scalar_one_or_none()
    if not pair:
        raise NotFoundError(f"Pair {pair_id} not found")
    return pair


async def load_event_pairs(
    session: AsyncSession,
    event_id: int,
    scope: Optional[ViewScope] = None,
) -> List[Pair]:
    query = select(Pair).where(Pair.event_id == event_id)
    if scope is not None:
        query = query.where(scope.pair_filter())
    result = await session.execute(
        query.order_by(Pair.id).execution_options(populate_existing=True)
    )
    return list(result.unique().scalars().all())


async def clear_event_pairs(session: AsyncSession, event_id: int) -> None:
    """Delete every pair of the event with its proposals and rejection history."""
    pair_ids = select(Pair.id).where(Pair.event_id == event_id).scalar_subquery()
    await session.execute(
        update(Feedback).where(Feedback.pair_id.in_(pair_ids)).values(pair_id=None)
    )
    await session.execute(delete(SlotProposal).where(SlotProposal.event_id == event_id))
    await session.execute(delete(PairRejection).where(PairRejection.pair_id.in_(pair_ids)))
    await session.execute(delete(Pair).where(Pair.event_id == event_id))
    await session.commit()


async def generate_pairs(
    session: AsyncSession,
    event_id: int,
    notifier: Notifier,
    dispatcher: Optional[NotificationDispatcher] = None,
    rng: Optional[RandomSource] = None,
    at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Replace the event's pairs with a fresh round-robin assignment.

    Deletion and insertion are committed separately; on an insert failure
    the event is left without pairs and generation can simply be re-run.

    Raises:
        NotFoundError: Unknown event
    """
    event = await get_event_or_404(session, event_id)
    ids = await participant_ids(session, event_id)
    assignments = generate_pairing(ids, rng)

    await clear_event_pairs(session, event_id)

    at = at or now()
    created: List[Pair] = []
    for interviewer_id, interviewee_id in assignments:
        slot = default_slot(
            at,
            tz_name=settings.scheduling_timezone,
            start_hour=settings.slot_window_start_hour,
            end_hour=settings.slot_window_end_hour,
            rng=rng,
            attempts=settings.default_slot_attempts,
            horizon_days=settings.default_slot_horizon_days,
        )
        pair = Pair(
            event_id=event_id,
            interviewer_id=interviewer_id,
            interviewee_id=interviewee_id,
            default_time_slot=slot,
            proposed_time=slot,
        )
        session.add(pair)
        created.append(pair)
    await session.flush()

    for pair in created:
        seeded = [to_iso(pair.default_time_slot)]
        session.add_all([
            SlotProposal(pair_id=pair.id, event_id=event_id, user_id=pair.interviewer_id, slots=seeded),
            SlotProposal(pair_id=pair.id, event_id=event_id, user_id=pair.interviewee_id, slots=list(seeded)),
        ])
    await session.commit()

    logger.info(f"Generated {len(created)} pairs for event {event_id}")

    pairs = await load_event_pairs(session, event_id)
    if settings.email_on_pairing and dispatcher is not None:
        for pair in pairs:
            dispatcher.pairing_created(event.name, pair.interviewer, pair.interviewee)

    await notifier.publish(PAIRS_GENERATED, {"event_id": event_id, "count": len(pairs)})
    return {
        "event_id": event_id,
        "count": len(pairs),
        "pairs": [serialize_pair(pair) for pair in pairs],
    }


async def list_pairs(
    session: AsyncSession,
    event_id: int,
    scope: ViewScope,
) -> List[Dict[str, Any]]:
    """Pairs of an event visible to the caller."""
    await get_event_or_404(session, event_id)
    at = now()
    return [
        serialize_pair(pair, scope, at)
        for pair in await load_event_pairs(session, event_id, scope)
    ]
