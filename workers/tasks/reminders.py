"""Periodic interview reminder task."""

import asyncio
import logging

from workers.celery_app import celery_app
from api.services.reminders import run_reminder_sweep
from core.events import build_notifier
from core.notifications import NotificationDispatcher
from database.engine import AsyncSessionLocal, db_engine

logger = logging.getLogger(__name__)


async def _sweep() -> dict:
    notifier = build_notifier()
    try:
        async with AsyncSessionLocal() as session:
            return await run_reminder_sweep(session, NotificationDispatcher(), notifier)
    finally:
        close = getattr(notifier, "close", None)
        if close is not None:
            await close()
        # Pooled connections are bound to this event loop
        await db_engine.dispose()


@celery_app.task(name="workers.tasks.reminders.sweep_reminders")
def sweep_reminders() -> dict:
    """Beat entry point; runs the async sweep to completion."""
    return asyncio.run(_sweep())
