"""
Slot negotiation endpoints.

Both sides of a pair propose candidate times, either side confirms, the
interviewee may reject, and admins attach the meeting link.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_dispatcher, get_notifier, require_admin
from api.schemas.pairs import (
    ConfirmRequest,
    MeetingLinkRequest,
    PairResponse,
    ProposalsResponse,
    ProposeRequest,
    RejectRequest,
)
from api.services import schedule as schedule_service
from core.events import Notifier
from core.notifications import NotificationDispatcher
from database.engine import get_db
from database.models.users import User

router = APIRouter()


@router.post(
    "/{pair_id}/proposals",
    response_model=ProposalsResponse,
    summary="Propose Slots",
    description="Replace your candidate times and get the earliest slot both sides share.",
)
async def propose_slots(
    request: ProposeRequest,
    pair_id: int = Path(..., description="Pair ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await schedule_service.propose_slots(
        db, pair_id, current_user, request.slots, notifier, dispatcher
    )


@router.get("/{pair_id}/proposals", response_model=ProposalsResponse, summary="Get Proposals")
async def get_proposals(
    pair_id: int = Path(..., description="Pair ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await schedule_service.get_proposals(db, pair_id, current_user)


@router.post(
    "/{pair_id}/confirm",
    response_model=PairResponse,
    summary="Confirm Schedule",
    description="Fix the interview time; both sides get a calendar invite.",
)
async def confirm_schedule(
    request: ConfirmRequest,
    pair_id: int = Path(..., description="Pair ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await schedule_service.confirm_schedule(
        db,
        pair_id,
        current_user,
        request.scheduled_at,
        notifier,
        dispatcher,
        meeting_link=request.meeting_link,
    )


@router.post(
    "/{pair_id}/reject",
    response_model=PairResponse,
    summary="Reject Slots",
    description="Interviewee only. Clears proposals; limited to 5 rejections, 30 minutes apart.",
)
async def reject_slots(
    request: RejectRequest,
    pair_id: int = Path(..., description="Pair ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await schedule_service.reject_slots(
        db, pair_id, current_user, notifier, dispatcher, reason=request.reason
    )


@router.put(
    "/{pair_id}/meeting-link",
    response_model=PairResponse,
    summary="Set Meeting Link",
    description="Admin only; allowed from one hour before the interview onward.",
)
async def set_meeting_link(
    request: MeetingLinkRequest,
    pair_id: int = Path(..., description="Pair ID"),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await schedule_service.set_meeting_link(
        db, pair_id, admin, request.meeting_link, notifier, dispatcher
    )
