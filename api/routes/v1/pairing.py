"""
Pair generation and listing endpoints.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_dispatcher, get_notifier, get_view_scope, require_admin
from api.schemas.pairs import GeneratePairsResponse, PairResponse
from api.services import pairing as pairing_service
from core.events import Notifier
from core.notifications import NotificationDispatcher
from core.policy import ViewScope
from database.engine import get_db

router = APIRouter()


@router.post(
    "/{event_id}/pairs/generate",
    response_model=GeneratePairsResponse,
    summary="Generate Pairs",
    description=(
        "Replace the event's pairs with a fresh shuffled round-robin. "
        "Each participant interviews once and is interviewed once."
    ),
    dependencies=[Depends(require_admin)],
)
async def generate_pairs(
    event_id: int = Path(..., description="Event ID"),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await pairing_service.generate_pairs(db, event_id, notifier, dispatcher)


@router.get(
    "/{event_id}/pairs",
    response_model=list[PairResponse],
    summary="List Pairs",
    description="Admins see every pair; participants see only their own.",
)
async def list_pairs(
    event_id: int = Path(..., description="Event ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await pairing_service.list_pairs(db, event_id, scope)
