"""
Slot negotiation service functions.

A pair moves pending -> scheduled -> completed, with `rejected` as a side
state that returns to pending on the next proposal. Authorization and
existence checks run before any state change.
"""

from typing import Any, Dict, List, Optional, Sequence, Union
from datetime import datetime, timedelta
import logging

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.pairing import get_pair_or_404, link_lead, serialize_pair
from core.config import settings
from core.errors import (
    CooldownError,
    InvalidStateError,
    NotAuthorizedError,
    ValidationError,
)
from core.events import (
    Notifier,
    MEETING_LINK_SET,
    PAIR_SCHEDULED,
    SLOTS_PROPOSED,
    SLOTS_REJECTED,
)
from core.notifications import NotificationDispatcher
from core.policy import ViewScope
from core.scheduling import common_slot, meeting_link_window_open
from core.utils.datetime import ensure_utc, now, parse_iso, to_iso
from database.models.events import Event
from database.models.pairs import Pair, PairRejection, PairStatus, SlotProposal
from database.models.users import User

logger = logging.getLogger(__name__)

Candidate = Union[datetime, str]

# Completed pairs keep accepting a link; the window has no upper bound
LINKABLE_STATUSES = frozenset({PairStatus.SCHEDULED, PairStatus.COMPLETED})


def _require_party(pair: Pair, user: User) -> str:
    side = pair.side_of(user.id)
    if side is None:
        raise NotAuthorizedError("You are not part of this pair")
    return side


def parse_candidates(candidates: Sequence[Candidate]) -> List[datetime]:
    """
    Normalize a candidate list to distinct aware UTC datetimes, keeping order.

    Raises:
        ValidationError: Empty list or an unparseable timestamp
    """
    if not candidates:
        raise ValidationError("At least one time slot is required")

    parsed: List[datetime] = []
    for value in candidates:
        if isinstance(value, datetime):
            parsed.append(ensure_utc(value))
            continue
        try:
            parsed.append(parse_iso(str(value)))
        except ValueError:
            raise ValidationError(f"Invalid time slot: {value!r}")
    return list(dict.fromkeys(parsed))


def _check_event_window(event: Optional[Event], slots: List[datetime]) -> None:
    if event is None:
        return
    start = ensure_utc(event.start_date)
    end = ensure_utc(event.end_date)
    for slot in slots:
        if (start and slot < start) or (end and slot > end):
            raise ValidationError(
                "Time slots must fall within the event window",
                details={"slot": to_iso(slot), "start": to_iso(start), "end": to_iso(end)},
            )


async def _stored_slots(session: AsyncSession, pair_id: int, user_id: int) -> Optional[SlotProposal]:
    result = await session.execute(
        select(SlotProposal).where(
            SlotProposal.pair_id == pair_id,
            SlotProposal.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


def _proposals_view(mine: Sequence[str], partner: Sequence[str]) -> Dict[str, Any]:
    mine_dt = [parse_iso(s) for s in mine]
    partner_dt = [parse_iso(s) for s in partner]
    return {
        "mine": [to_iso(t) for t in mine_dt],
        "partner": [to_iso(t) for t in partner_dt],
        "common": to_iso(common_slot(mine_dt, partner_dt)),
    }


async def propose_slots(
    session: AsyncSession,
    pair_id: int,
    user: User,
    candidates: Sequence[Candidate],
    notifier: Notifier,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Dict[str, Any]:
    """
    Replace the caller's candidate list and report the earliest common slot.

    The common slot is advisory; the pair is not confirmed here.

    Raises:
        NotFoundError: Unknown pair
        NotAuthorizedError: Caller is not in the pair
        ValidationError: Empty, malformed or out-of-window candidates, or
            too many alternatives from the interviewee
    """
    pair = await get_pair_or_404(session, pair_id)
    side = _require_party(pair, user)
    slots = parse_candidates(candidates)

    if side == "interviewee" and len(slots) > settings.interviewee_max_alternatives:
        raise ValidationError(
            f"Interviewee can propose at most {settings.interviewee_max_alternatives} alternative slots"
        )
    _check_event_window(await session.get(Event, pair.event_id), slots)

    serialized = [to_iso(slot) for slot in slots]
    proposal = await _stored_slots(session, pair.id, user.id)
    if proposal is None:
        session.add(SlotProposal(pair_id=pair.id, event_id=pair.event_id, user_id=user.id, slots=serialized))
    else:
        proposal.slots = serialized

    if side == "interviewer":
        pair.interviewer_proposals += 1
    else:
        pair.interviewee_proposals += 1
    pair.proposed_time = slots[0]
    if pair.status == PairStatus.REJECTED:
        pair.status = PairStatus.PENDING
    await session.commit()

    partner_id = pair.partner_of(user.id)
    partner = await _stored_slots(session, pair.id, partner_id)
    view = _proposals_view(serialized, partner.slots if partner else [])

    logger.info(f"User {user.id} proposed {len(slots)} slots for pair {pair.id}")
    await notifier.publish(
        SLOTS_PROPOSED,
        {"pair_id": pair.id, "event_id": pair.event_id, "by": user.id, "common": view["common"]},
    )
    if dispatcher is not None:
        partner_user = pair.interviewee if side == "interviewer" else pair.interviewer
        dispatcher.slots_proposed(user, partner_user, slots)

    return {"pair_id": pair.id, **view}


async def get_proposals(session: AsyncSession, pair_id: int, user: User) -> Dict[str, Any]:
    """Read-only view of both sides' current candidates."""
    pair = await get_pair_or_404(session, pair_id)
    _require_party(pair, user)

    mine = await _stored_slots(session, pair.id, user.id)
    partner = await _stored_slots(session, pair.id, pair.partner_of(user.id))
    view = _proposals_view(mine.slots if mine else [], partner.slots if partner else [])
    return {"pair_id": pair.id, **view}


async def confirm_schedule(
    session: AsyncSession,
    pair_id: int,
    user: User,
    scheduled_at: Candidate,
    notifier: Notifier,
    dispatcher: Optional[NotificationDispatcher] = None,
    meeting_link: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Fix the interview time. The time is not checked against earlier
    proposals.

    Raises:
        NotFoundError: Unknown pair
        NotAuthorizedError: Caller is not in the pair
    """
    pair = await get_pair_or_404(session, pair_id)
    _require_party(pair, user)
    when = parse_candidates([scheduled_at])[0]

    pair.scheduled_at = when
    pair.status = PairStatus.SCHEDULED
    pair.day_reminder_sent = False
    pair.hour_reminder_sent = False
    if meeting_link:
        pair.meeting_link = meeting_link
    await session.commit()

    logger.info(f"Pair {pair.id} scheduled at {to_iso(when)} by user {user.id}")
    await notifier.publish(
        PAIR_SCHEDULED,
        {"pair_id": pair.id, "event_id": pair.event_id, "scheduled_at": to_iso(when)},
    )
    if dispatcher is not None:
        dispatcher.interview_scheduled(pair.id, when, pair.interviewer, pair.interviewee, pair.meeting_link)

    return serialize_pair(pair, ViewScope.for_user(user))


async def reject_slots(
    session: AsyncSession,
    pair_id: int,
    user: User,
    notifier: Notifier,
    dispatcher: Optional[NotificationDispatcher] = None,
    reason: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Interviewee turns down the current proposals; negotiation restarts.

    Raises:
        NotFoundError: Unknown pair
        NotAuthorizedError: Caller is not the interviewee
        InvalidStateError: Pair already scheduled or rejection limit reached
        CooldownError: Previous rejection is too recent
    """
    pair = await get_pair_or_404(session, pair_id)
    if _require_party(pair, user) != "interviewee":
        raise NotAuthorizedError("Only the interviewee can reject proposed slots")

    if pair.status == PairStatus.SCHEDULED:
        raise InvalidStateError("Cannot reject a pair that is already scheduled")
    if pair.rejection_count >= settings.max_rejections:
        raise InvalidStateError(f"Maximum of {settings.max_rejections} rejections reached")

    at = at or now()
    cooldown = timedelta(minutes=settings.rejection_cooldown_minutes)
    if pair.last_rejected_at is not None:
        elapsed = at - ensure_utc(pair.last_rejected_at)
        if elapsed < cooldown:
            remaining = int((cooldown - elapsed).total_seconds())
            raise CooldownError(
                f"Please wait {remaining // 60 + 1} minutes before rejecting again",
                details={"retry_after_seconds": remaining},
            )

    await session.execute(delete(SlotProposal).where(SlotProposal.pair_id == pair.id))
    pair.status = PairStatus.REJECTED
    pair.scheduled_at = None
    pair.proposed_time = None
    pair.meeting_link = None
    pair.rejection_count += 1
    pair.last_rejected_at = at
    session.add(PairRejection(pair_id=pair.id, rejected_by=user.id, reason=reason, rejected_at=at))
    await session.commit()

    logger.info(f"Pair {pair.id} rejected by interviewee ({pair.rejection_count} total)")
    await notifier.publish(
        SLOTS_REJECTED,
        {"pair_id": pair.id, "event_id": pair.event_id, "rejection_count": pair.rejection_count},
    )
    if dispatcher is not None:
        dispatcher.slots_rejected(pair.interviewer, pair.interviewee, reason)

    return serialize_pair(pair, ViewScope.for_user(user), at)


async def set_meeting_link(
    session: AsyncSession,
    pair_id: int,
    user: User,
    meeting_link: str,
    notifier: Notifier,
    dispatcher: Optional[NotificationDispatcher] = None,
    at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Attach a meeting room to a scheduled or completed pair, from one hour
    before the start onward.

    Raises:
        NotAuthorizedError: Caller is not an admin
        NotFoundError: Unknown pair
        InvalidStateError: Pair not scheduled, or the link window is not open yet
    """
    if not user.is_admin:
        raise NotAuthorizedError("Only admins can set meeting links")

    pair = await get_pair_or_404(session, pair_id)
    if pair.status not in LINKABLE_STATUSES or pair.scheduled_at is None:
        raise InvalidStateError("Pair is not scheduled")

    at = at or now()
    if not meeting_link_window_open(pair.scheduled_at, at, link_lead()):
        raise InvalidStateError(
            "Meeting link can only be set within one hour of the interview",
            details={"opens_at": to_iso(ensure_utc(pair.scheduled_at) - link_lead())},
        )

    pair.meeting_link = meeting_link
    await session.commit()

    logger.info(f"Meeting link set for pair {pair.id}")
    await notifier.publish(MEETING_LINK_SET, {"pair_id": pair.id, "event_id": pair.event_id})
    if dispatcher is not None:
        dispatcher.meeting_link_set(meeting_link, pair.scheduled_at, pair.interviewer, pair.interviewee)

    return serialize_pair(pair)
