"""Event and participant registry service functions."""

from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime
import csv
import io
import logging

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import InvalidStateError, NotAuthorizedError, NotFoundError, ValidationError
from core.policy import ViewScope
from core.utils.datetime import ensure_utc, now, to_iso
from database.models.events import Event, EventParticipant, EventAllowedParticipant
from database.models.feedback import Feedback
from database.models.pairs import Pair, PairStatus
from database.models.users import User

logger = logging.getLogger(__name__)

PARTICIPANT_CSV_HEADER = ["name", "email", "student_id", "course", "branch", "college"]


def _event_ended(event: Event, at: Optional[datetime] = None) -> bool:
    return event.end_date is not None and ensure_utc(event.end_date) < (at or now())


def join_closed(event: Event, at: Optional[datetime] = None) -> bool:
    """Joining is closed manually or once join_disable_time has passed."""
    if event.join_disabled:
        return True
    return event.join_disable_time is not None and (at or now()) >= ensure_utc(event.join_disable_time)


def serialize_event(
    event: Event,
    participant_count: Optional[int] = None,
    joined: Optional[bool] = None,
) -> Dict[str, Any]:
    data = {
        "id": event.id,
        "name": event.name,
        "description": event.description,
        "start_date": to_iso(event.start_date),
        "end_date": to_iso(event.end_date),
        "capacity": event.capacity,
        "is_special": event.is_special,
        "join_disabled": join_closed(event),
        "join_disable_time": to_iso(event.join_disable_time),
        "ended": _event_ended(event),
    }
    if participant_count is not None:
        data["participant_count"] = participant_count
    if joined is not None:
        data["joined"] = joined
    return data


async def get_event_or_404(session: AsyncSession, event_id: int) -> Event:
    event = await session.get(Event, event_id)
    if not event:
        raise NotFoundError(f"Event {event_id} not found")
    return event


async def participant_count(session: AsyncSession, event_id: int) -> int:
    result = await session.execute(
        select(func.count()).select_from(EventParticipant).where(EventParticipant.event_id == event_id)
    )
    return result.scalar() or 0


async def participant_ids(session: AsyncSession, event_id: int) -> List[int]:
    """Participant user ids in join order."""
    result = await session.execute(
        select(EventParticipant.user_id)
        .where(EventParticipant.event_id == event_id)
        .order_by(EventParticipant.id)
    )
    return list(result.scalars().all())


async def resolve_identifiers(session: AsyncSession, identifiers: Sequence[str]) -> List[int]:
    """Map user ids, emails or student ids to user ids; unknown values are dropped."""
    numeric = {int(i) for i in identifiers if str(i).isdigit()}
    texts = {str(i).strip() for i in identifiers if not str(i).isdigit()}
    conditions = []
    if numeric:
        conditions.append(User.id.in_(numeric))
    if texts:
        conditions.append(User.email.in_({t.lower() for t in texts}))
        conditions.append(User.student_id.in_(texts))
    if not conditions:
        return []

    result = await session.execute(select(User.id).where(or_(*conditions)).order_by(User.id))
    return list(dict.fromkeys(result.scalars().all()))


async def create_event(
    session: AsyncSession,
    name: str,
    description: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    capacity: Optional[int] = None,
    join_disable_time: Optional[datetime] = None,
    created_by: Optional[int] = None,
    is_special: bool = False,
    allowed: Optional[Sequence[str]] = None,
) -> Dict[str, Any]:
    """
    Create an event; special events also get an allow-list.

    Raises:
        ValidationError: end_date precedes start_date
    """
    if start_date and end_date and ensure_utc(end_date) < ensure_utc(start_date):
        raise ValidationError("End date cannot be before start date")

    event = Event(
        name=name,
        description=description,
        start_date=start_date,
        end_date=end_date,
        capacity=capacity,
        join_disable_time=join_disable_time,
        created_by=created_by,
        is_special=is_special,
    )
    session.add(event)
    await session.flush()

    invited = 0
    if is_special and allowed:
        user_ids = await resolve_identifiers(session, allowed)
        session.add_all(
            EventAllowedParticipant(event_id=event.id, user_id=user_id) for user_id in user_ids
        )
        invited = len(user_ids)

    await session.commit()
    await session.refresh(event)
    logger.info(f"Created event {event.id} (special={is_special}, invited={invited})")

    data = serialize_event(event, participant_count=0)
    if is_special:
        data["invited"] = invited
    return data


async def _allow_listed_event_ids(session: AsyncSession, user_id: int) -> set[int]:
    result = await session.execute(
        select(EventAllowedParticipant.event_id).where(EventAllowedParticipant.user_id == user_id)
    )
    return set(result.scalars().all())


async def is_allow_listed(session: AsyncSession, event_id: int, user_id: int) -> bool:
    result = await session.execute(
        select(EventAllowedParticipant.id).where(
            EventAllowedParticipant.event_id == event_id,
            EventAllowedParticipant.user_id == user_id,
        )
    )
    return result.first() is not None


async def list_events(session: AsyncSession, scope: ViewScope) -> List[Dict[str, Any]]:
    """Events visible to the caller, newest first, with a `joined` flag."""
    allow_listed = await _allow_listed_event_ids(session, scope.user_id)

    joined_result = await session.execute(
        select(EventParticipant.event_id).where(EventParticipant.user_id == scope.user_id)
    )
    joined = set(joined_result.scalars().all())

    counts_result = await session.execute(
        select(EventParticipant.event_id, func.count()).group_by(EventParticipant.event_id)
    )
    counts = dict(counts_result.all())

    result = await session.execute(select(Event).order_by(Event.created_at.desc(), Event.id.desc()))
    return [
        serialize_event(event, participant_count=counts.get(event.id, 0), joined=event.id in joined)
        for event in result.scalars().all()
        if scope.can_see_event(event.is_special, event.id in allow_listed)
    ]


async def get_event(session: AsyncSession, event_id: int) -> Dict[str, Any]:
    event = await get_event_or_404(session, event_id)
    return serialize_event(event, participant_count=await participant_count(session, event_id))


async def join_event(session: AsyncSession, event_id: int, user: User) -> Dict[str, Any]:
    """
    Add the user to the event's participants.

    Raises:
        NotFoundError: Unknown event
        NotAuthorizedError: Special event and the user is not allow-listed
        InvalidStateError: Joining disabled or capacity reached
    """
    event = await get_event_or_404(session, event_id)

    if event.is_special and not await is_allow_listed(session, event_id, user.id):
        raise NotAuthorizedError("This event is restricted to invited participants")

    existing = await session.execute(
        select(EventParticipant.id).where(
            EventParticipant.event_id == event_id,
            EventParticipant.user_id == user.id,
        )
    )
    if existing.first() is not None:
        return {"event_id": event_id, "joined": True, "already_joined": True}

    if join_closed(event):
        raise InvalidStateError("Joining this event is disabled")

    count = await participant_count(session, event_id)
    if event.capacity is not None and count >= event.capacity:
        raise InvalidStateError("Event is at full capacity")

    session.add(EventParticipant(event_id=event_id, user_id=user.id))
    await session.commit()
    logger.info(f"User {user.id} joined event {event_id}")
    return {"event_id": event_id, "joined": True, "already_joined": False}


async def update_capacity(session: AsyncSession, event_id: int, capacity: Optional[int]) -> Dict[str, Any]:
    event = await get_event_or_404(session, event_id)
    count = await participant_count(session, event_id)
    if capacity is not None and capacity < count:
        raise ValidationError(f"Capacity cannot be below the current participant count ({count})")

    event.capacity = capacity
    await session.commit()
    return serialize_event(event, participant_count=count)


async def update_join_settings(
    session: AsyncSession,
    event_id: int,
    join_disabled: bool,
    join_disable_time: Optional[datetime] = None,
) -> Dict[str, Any]:
    event = await get_event_or_404(session, event_id)
    event.join_disabled = join_disabled
    event.join_disable_time = join_disable_time
    await session.commit()
    return serialize_event(event, participant_count=await participant_count(session, event_id))


async def event_analytics(session: AsyncSession, event_id: int) -> Dict[str, Any]:
    await get_event_or_404(session, event_id)

    pair_total = (
        await session.execute(select(func.count()).select_from(Pair).where(Pair.event_id == event_id))
    ).scalar() or 0
    scheduled = (
        await session.execute(
            select(func.count())
            .select_from(Pair)
            .where(Pair.event_id == event_id, Pair.status.in_([PairStatus.SCHEDULED, PairStatus.COMPLETED]))
        )
    ).scalar() or 0
    feedback_count, average = (
        await session.execute(
            select(func.count(Feedback.id), func.avg(Feedback.marks)).where(Feedback.event_id == event_id)
        )
    ).one()

    return {
        "event_id": event_id,
        "joined": await participant_count(session, event_id),
        "pairs": pair_total,
        "scheduled_pairs": scheduled,
        "feedback_submissions": feedback_count or 0,
        "average_score": round(float(average), 2) if average is not None else None,
    }


async def export_participants_csv(session: AsyncSession, event_id: int) -> str:
    await get_event_or_404(session, event_id)
    result = await session.execute(
        select(User)
        .join(EventParticipant, EventParticipant.user_id == User.id)
        .where(EventParticipant.event_id == event_id)
        .order_by(EventParticipant.id)
    )

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(PARTICIPANT_CSV_HEADER)
    for user in result.scalars().all():
        writer.writerow([getattr(user, column) or "" for column in PARTICIPANT_CSV_HEADER])
    return buffer.getvalue()
