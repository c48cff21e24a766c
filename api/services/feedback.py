"""Interview feedback service functions."""

from typing import Any, Dict, List, Optional
from datetime import datetime
import csv
import io
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.events import get_event_or_404
from api.services.pairing import get_pair_or_404
from core.errors import InvalidStateError, NotAuthorizedError
from core.events import Notifier, FEEDBACK_SUBMITTED
from core.utils.datetime import ensure_utc, now, to_iso
from database.models.events import Event
from database.models.feedback import Feedback, CRITERIA
from database.models.users import User

logger = logging.getLogger(__name__)

FEEDBACK_CSV_HEADER = ["event", "interviewer", "interviewee", "marks", "comments"]


def serialize_feedback(feedback: Feedback) -> Dict[str, Any]:
    return {
        "id": feedback.id,
        "event_id": feedback.event_id,
        "pair_id": feedback.pair_id,
        "interviewer": {"id": feedback.from_user.id, "name": feedback.from_user.name},
        "interviewee": {
            "id": feedback.to_user.id,
            "name": feedback.to_user.name,
            "college": feedback.to_user.college,
        },
        "marks": feedback.marks,
        "criteria": {name: getattr(feedback, name) for name in CRITERIA},
        "total_marks": feedback.total_marks,
        "comments": feedback.comments,
        "suggestions": feedback.suggestions,
        "submitted_at": to_iso(feedback.submitted_at),
    }


def _feedback_open(scheduled_at: Optional[datetime], event: Event, at: datetime) -> bool:
    if scheduled_at is not None and at >= ensure_utc(scheduled_at):
        return True
    return event.end_date is not None and at >= ensure_utc(event.end_date)


async def submit_feedback(
    session: AsyncSession,
    pair_id: int,
    user: User,
    marks: int,
    notifier: Notifier,
    criteria: Optional[Dict[str, int]] = None,
    comments: Optional[str] = None,
    suggestions: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Record the interviewer's assessment of the interviewee.

    Raises:
        NotFoundError: Unknown pair
        NotAuthorizedError: Caller is not the pair's interviewer
        InvalidStateError: Interview has not happened yet, or feedback was
            already submitted
    """
    pair = await get_pair_or_404(session, pair_id)
    if pair.interviewer_id != user.id:
        raise NotAuthorizedError("Only the interviewer can submit feedback")

    event = await get_event_or_404(session, pair.event_id)
    if not _feedback_open(pair.scheduled_at, event, at or now()):
        raise InvalidStateError("Feedback can be submitted once the interview has taken place")

    existing = await session.execute(select(Feedback.id).where(Feedback.pair_id == pair.id))
    if existing.first() is not None:
        raise InvalidStateError("Feedback already submitted for this pair")

    ratings = {name: value for name, value in (criteria or {}).items() if name in CRITERIA}
    feedback = Feedback(
        event_id=pair.event_id,
        pair_id=pair.id,
        from_user_id=user.id,
        to_user_id=pair.interviewee_id,
        marks=marks,
        total_marks=sum(ratings.values()) if ratings else None,
        comments=comments,
        suggestions=suggestions,
        **ratings,
    )
    session.add(feedback)
    await session.commit()

    feedback = await _get_feedback(session, feedback.id)
    logger.info(f"Feedback {feedback.id} submitted for pair {pair.id}")
    await notifier.publish(FEEDBACK_SUBMITTED, {"pair_id": pair.id, "event_id": pair.event_id})
    return serialize_feedback(feedback)


async def _get_feedback(session: AsyncSession, feedback_id: int) -> Feedback:
    result = await session.execute(
        select(Feedback).where(Feedback.id == feedback_id).execution_options(populate_existing=True)
    )
    return result.unique().scalar_one()


async def list_feedback(
    session: AsyncSession,
    event_id: Optional[int] = None,
    college: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Admin listing filtered by event and the interviewee's college."""
    query = select(Feedback)
    if event_id is not None:
        query = query.where(Feedback.event_id == event_id)
    if college:
        query = query.join(User, User.id == Feedback.to_user_id).where(
            func.lower(User.college) == college.strip().lower()
        )
    result = await session.execute(query.order_by(Feedback.submitted_at.desc(), Feedback.id.desc()))
    return [serialize_feedback(f) for f in result.unique().scalars().all()]


async def my_feedback(
    session: AsyncSession,
    user: User,
    event_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Feedback the caller has submitted."""
    query = select(Feedback).where(Feedback.from_user_id == user.id)
    if event_id is not None:
        query = query.where(Feedback.event_id == event_id)
    result = await session.execute(query.order_by(Feedback.id.desc()))
    return [serialize_feedback(f) for f in result.unique().scalars().all()]


async def export_feedback_csv(session: AsyncSession, event_id: int) -> str:
    event = await get_event_or_404(session, event_id)
    result = await session.execute(
        select(Feedback).where(Feedback.event_id == event_id).order_by(Feedback.id)
    )

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(FEEDBACK_CSV_HEADER)
    for feedback in result.unique().scalars().all():
        writer.writerow([
            event.name,
            feedback.from_user.display_name,
            feedback.to_user.display_name,
            feedback.marks,
            feedback.comments or "",
        ])
    return buffer.getvalue()
