"""
Interview feedback endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_notifier, require_admin
from api.schemas.feedback import FeedbackCreate, FeedbackResponse
from api.services import feedback as feedback_service
from core.events import Notifier
from database.engine import get_db
from database.models.users import User

router = APIRouter()


@router.post(
    "",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Feedback",
    description="Interviewer only, once per pair, after the interview time.",
)
async def submit_feedback(
    request: FeedbackCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    criteria = request.criteria.model_dump(exclude_none=True) if request.criteria else None
    return await feedback_service.submit_feedback(
        db,
        request.pair_id,
        current_user,
        request.marks,
        notifier,
        criteria=criteria,
        comments=request.comments,
        suggestions=request.suggestions,
    )


@router.get(
    "",
    response_model=list[FeedbackResponse],
    summary="List Feedback",
    dependencies=[Depends(require_admin)],
)
async def list_feedback(
    event_id: Optional[int] = Query(None, description="Filter by event"),
    college: Optional[str] = Query(None, description="Interviewee college (case-insensitive)"),
    db: AsyncSession = Depends(get_db),
):
    return await feedback_service.list_feedback(db, event_id=event_id, college=college)


@router.get("/mine", response_model=list[FeedbackResponse], summary="My Submitted Feedback")
async def my_feedback(
    event_id: Optional[int] = Query(None, description="Filter by event"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await feedback_service.my_feedback(db, current_user, event_id=event_id)


@router.get(
    "/events/{event_id}/export.csv",
    response_class=PlainTextResponse,
    summary="Export Event Feedback",
    dependencies=[Depends(require_admin)],
)
async def export_feedback(
    event_id: int = Path(..., description="Event ID"),
    db: AsyncSession = Depends(get_db),
):
    content = await feedback_service.export_feedback_csv(db, event_id)
    return PlainTextResponse(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="event-{event_id}-feedback.csv"'},
    )
