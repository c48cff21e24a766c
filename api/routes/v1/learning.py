"""
Learning catalogue endpoints.

Admins and coordinators manage semesters, subjects, chapters and topics;
students browse the catalogue for their semester and record progress.
"""

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_notifier,
    get_view_scope,
    require_admin_or_coordinator,
    require_student,
)
from api.schemas.learning import (
    ChapterCreate,
    ChapterUpdate,
    OverallProgress,
    ProgressResponse,
    ProgressUpdate,
    ReorderRequest,
    SemesterCreate,
    SemesterUpdate,
    SubjectCreate,
    SubjectProgress,
    SubjectUpdate,
    TopicCreate,
    TopicUpdate,
)
from api.services import learning as learning_service
from core.events import Notifier
from core.policy import ViewScope
from database.engine import get_db
from database.models.users import User

router = APIRouter()


@router.get("/semesters", summary="Catalogue")
async def catalogue(
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.catalogue(db, scope)


@router.post(
    "/semesters",
    status_code=status.HTTP_201_CREATED,
    summary="Create Semester",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def create_semester(
    request: SemesterCreate,
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.create_semester(
        db, scope, request.name, request.description, request.coordinator_id
    )


@router.delete(
    "/semesters/{semester_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Semester",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def delete_semester(
    semester_id: int = Path(..., description="Semester ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    await learning_service.delete_semester(db, scope, semester_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/semesters/{semester_id}/subjects",
    status_code=status.HTTP_201_CREATED,
    summary="Create Subject",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def create_subject(
    request: SubjectCreate,
    semester_id: int = Path(..., description="Semester ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.create_subject(
        db, scope, semester_id, request.name, request.description, request.order
    )


@router.post(
    "/subjects/{subject_id}/chapters",
    status_code=status.HTTP_201_CREATED,
    summary="Create Chapter",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def create_chapter(
    request: ChapterCreate,
    subject_id: int = Path(..., description="Subject ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.create_chapter(db, scope, subject_id, request.name, request.order)


@router.post(
    "/chapters/{chapter_id}/topics",
    status_code=status.HTTP_201_CREATED,
    summary="Create Topic",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def create_topic(
    request: TopicCreate,
    chapter_id: int = Path(..., description="Chapter ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.create_topic(db, scope, chapter_id, **request.model_dump())


@router.post(
    "/topics/{topic_id}/progress",
    response_model=ProgressResponse,
    summary="Record Progress",
    description="Report video watch time; the topic completes at the configured threshold.",
)
async def record_progress(
    request: ProgressUpdate,
    topic_id: int = Path(..., description="Topic ID"),
    student: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    return await learning_service.record_progress(
        db, student, topic_id, request.video_watched_seconds, notifier
    )


@router.get(
    "/subjects/{subject_id}/progress",
    response_model=SubjectProgress,
    summary="Subject Progress",
)
async def subject_progress(
    subject_id: int = Path(..., description="Subject ID"),
    student: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.subject_progress(db, student, subject_id)


@router.get("/progress", response_model=OverallProgress, summary="Overall Progress")
async def overall_progress(
    student: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.overall_progress(db, student)


@router.get(
    "/topics/{topic_id}/progress",
    response_model=ProgressResponse,
    summary="Topic Progress",
)
async def topic_progress(
    topic_id: int = Path(..., description="Topic ID"),
    student: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.topic_progress(db, student, topic_id)


# ==================== Updates ==================== #

@router.patch(
    "/semesters/{semester_id}",
    summary="Update Semester",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def update_semester(
    request: SemesterUpdate,
    semester_id: int = Path(..., description="Semester ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.update_semester(
        db, scope, semester_id, request.model_dump(exclude_unset=True)
    )


@router.patch(
    "/subjects/{subject_id}",
    summary="Update Subject",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def update_subject(
    request: SubjectUpdate,
    subject_id: int = Path(..., description="Subject ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.update_subject(
        db, scope, subject_id, request.model_dump(exclude_unset=True)
    )


@router.delete(
    "/subjects/{subject_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Subject",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def delete_subject(
    subject_id: int = Path(..., description="Subject ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    await learning_service.delete_subject(db, scope, subject_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/chapters/{chapter_id}",
    summary="Update Chapter",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def update_chapter(
    request: ChapterUpdate,
    chapter_id: int = Path(..., description="Chapter ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.update_chapter(
        db, scope, chapter_id, request.model_dump(exclude_unset=True)
    )


@router.delete(
    "/chapters/{chapter_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Chapter",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def delete_chapter(
    chapter_id: int = Path(..., description="Chapter ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    await learning_service.delete_chapter(db, scope, chapter_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/topics/{topic_id}",
    summary="Update Topic",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def update_topic(
    request: TopicUpdate,
    topic_id: int = Path(..., description="Topic ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.update_topic(
        db, scope, topic_id, request.model_dump(exclude_unset=True)
    )


@router.delete(
    "/topics/{topic_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Topic",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def delete_topic(
    topic_id: int = Path(..., description="Topic ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    await learning_service.delete_topic(db, scope, topic_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==================== Reordering ==================== #

@router.post(
    "/semesters/reorder",
    summary="Reorder Semesters",
    description="Ids the caller does not own are skipped.",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def reorder_semesters(
    request: ReorderRequest,
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.reorder_semesters(db, scope, request.ids)


@router.post(
    "/semesters/{semester_id}/subjects/reorder",
    summary="Reorder Subjects",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def reorder_subjects(
    request: ReorderRequest,
    semester_id: int = Path(..., description="Semester ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.reorder_subjects(db, scope, semester_id, request.ids)


@router.post(
    "/subjects/{subject_id}/chapters/reorder",
    summary="Reorder Chapters",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def reorder_chapters(
    request: ReorderRequest,
    subject_id: int = Path(..., description="Subject ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.reorder_chapters(db, scope, subject_id, request.ids)


@router.post(
    "/chapters/{chapter_id}/topics/reorder",
    summary="Reorder Topics",
    dependencies=[Depends(require_admin_or_coordinator)],
)
async def reorder_topics(
    request: ReorderRequest,
    chapter_id: int = Path(..., description="Chapter ID"),
    scope: ViewScope = Depends(get_view_scope),
    db: AsyncSession = Depends(get_db),
):
    return await learning_service.reorder_topics(db, scope, chapter_id, request.ids)
