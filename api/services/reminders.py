"""Periodic reminder sweep over scheduled pairs."""

from typing import Dict, Optional
from datetime import datetime, timedelta
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.events import Notifier, MEETING_LINK_SET
from core.notifications import NotificationDispatcher
from core.scheduling import generate_meeting_link
from core.utils.datetime import ensure_utc, now
from database.models.pairs import Pair, PairStatus

logger = logging.getLogger(__name__)

HOUR = timedelta(hours=1)


async def run_reminder_sweep(
    session: AsyncSession,
    dispatcher: NotificationDispatcher,
    notifier: Optional[Notifier] = None,
    at: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Send upcoming-interview reminders and close out finished interviews.

    Pairs starting within the lookahead get a one-day reminder; inside the
    last hour they get a meeting link (if missing) and a one-hour reminder.
    Each reminder is sent once per scheduled time.

    Returns:
        Counts of pairs checked, reminders sent, links generated and pairs completed
    """
    at = at or now()
    horizon = at + timedelta(hours=settings.reminder_lookahead_hours)
    counts = {"checked": 0, "reminders_sent": 0, "links_generated": 0, "completed": 0}

    result = await session.execute(
        select(Pair)
        .where(
            Pair.status == PairStatus.SCHEDULED,
            Pair.scheduled_at >= at,
            Pair.scheduled_at <= horizon,
        )
        .order_by(Pair.scheduled_at)
        .execution_options(populate_existing=True)
    )
    upcoming = list(result.unique().scalars().all())

    generated = []
    for pair in upcoming:
        counts["checked"] += 1
        starts_in = ensure_utc(pair.scheduled_at) - at

        if starts_in <= HOUR:
            if not pair.meeting_link:
                pair.meeting_link = generate_meeting_link(settings.meeting_link_base, pair.id)
                counts["links_generated"] += 1
                generated.append(pair)
            if pair.hour_reminder_sent:
                continue
            label = "1 hour"
            pair.hour_reminder_sent = True
            pair.day_reminder_sent = True
        else:
            if pair.day_reminder_sent:
                continue
            label = "1 day"
            pair.day_reminder_sent = True

        counts["reminders_sent"] += dispatcher.reminder(
            label, pair.scheduled_at, pair.interviewer, pair.interviewee, pair.meeting_link
        )

    duration = timedelta(minutes=settings.interview_duration_minutes)
    finished = await session.execute(
        update(Pair)
        .where(Pair.status == PairStatus.SCHEDULED, Pair.scheduled_at < at - duration)
        .values(status=PairStatus.COMPLETED)
        .execution_options(synchronize_session=False)
    )
    counts["completed"] = finished.rowcount or 0
    await session.commit()

    if notifier is not None:
        for pair in generated:
            await notifier.publish(MEETING_LINK_SET, {"pair_id": pair.id, "event_id": pair.event_id})

    logger.info(f"Reminder sweep: {counts}")
    return counts
