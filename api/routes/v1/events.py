"""
Event registry endpoints.

Admins create and manage events; students list, inspect and join them.
"""

import logging

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_dispatcher,
    get_notifier,
    get_view_scope,
    require_admin,
    require_student,
)
from api.schemas.events import (
    CapacityUpdate,
    EventAnalytics,
    EventCreate,
    EventResponse,
    JoinResponse,
    JoinSettingsUpdate,
    SpecialEventCreate,
)
from api.services import events as event_service
from api.services import pairing as pairing_service
from core.errors import DomainError
from core.events import Notifier
from core.notifications import NotificationDispatcher
from core.policy import ViewScope
from database.engine import get_db
from database.models.users import User

logger = logging.getLogger(__name__)

router = APIRouter()


async def _maybe_generate_pairs(
    db: AsyncSession,
    event: dict,
    notifier: Notifier,
    dispatcher: NotificationDispatcher,
) -> None:
    """Pairing failures are logged; the event itself stays created."""
    if event.get("participant_count", 0) < 2:
        return
    try:
        await pairing_service.generate_pairs(db, event["id"], notifier, dispatcher)
    except (DomainError, SQLAlchemyError) as e:
        await db.rollback()
        logger.error(f"Pair generation after creating event {event['id']} failed: {e}")


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Event",
)
async def create_event(
    request: EventCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    event = await event_service.create_event(
        db,
        **request.model_dump(exclude={"generate_pairs"}),
        created_by=admin.id,
    )
    if request.generate_pairs:
        await _maybe_generate_pairs(db, event, notifier, dispatcher)
    return event


@router.post(
    "/special",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Special Event",
    description="Create an event visible only to the allow-listed users. Unknown identifiers are ignored.",
)
async def create_special_event(
    request: SpecialEventCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    event = await event_service.create_event(
        db,
        **request.model_dump(exclude={"generate_pairs"}),
        created_by=admin.id,
        is_special=True,
    )
    if request.generate_pairs:
        await _maybe_generate_pairs(db, event, notifier, dispatcher)
    return event


@router.get("", response_model=list[EventResponse], summary="List Events")
async def list_events(
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.list_events(db, scope)


@router.get(
    "/{event_id}",
    response_model=EventResponse,
    summary="Get Event",
    dependencies=[Depends(require_admin)],
)
async def get_event(
    event_id: int = Path(..., description="Event ID"),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.get_event(db, event_id)


@router.post("/{event_id}/join", response_model=JoinResponse, summary="Join Event")
async def join_event(
    event_id: int = Path(..., description="Event ID"),
    student: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.join_event(db, event_id, student)


@router.patch(
    "/{event_id}/capacity",
    response_model=EventResponse,
    summary="Update Capacity",
    dependencies=[Depends(require_admin)],
)
async def update_capacity(
    request: CapacityUpdate,
    event_id: int = Path(..., description="Event ID"),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.update_capacity(db, event_id, request.capacity)


@router.patch(
    "/{event_id}/join-settings",
    response_model=EventResponse,
    summary="Update Join Settings",
    description="Disable joining now, or schedule a time after which joining closes.",
    dependencies=[Depends(require_admin)],
)
async def update_join_settings(
    request: JoinSettingsUpdate,
    event_id: int = Path(..., description="Event ID"),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.update_join_settings(
        db, event_id, request.join_disabled, request.join_disable_time
    )


@router.get(
    "/{event_id}/analytics",
    response_model=EventAnalytics,
    summary="Event Analytics",
    dependencies=[Depends(require_admin)],
)
async def event_analytics(
    event_id: int = Path(..., description="Event ID"),
    db: AsyncSession = Depends(get_db),
):
    return await event_service.event_analytics(db, event_id)


@router.get(
    "/{event_id}/participants.csv",
    response_class=PlainTextResponse,
    summary="Export Participants",
    dependencies=[Depends(require_admin)],
)
async def export_participants(
    event_id: int = Path(..., description="Event ID"),
    db: AsyncSession = Depends(get_db),
):
    content = await event_service.export_participants_csv(db, event_id)
    return PlainTextResponse(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="event-{event_id}-participants.csv"'},
    )
