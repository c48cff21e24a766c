"""Learning catalogue and progress service functions."""

from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
import logging

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.errors import ConflictError, NotAuthorizedError, NotFoundError, ValidationError
from core.events import Notifier, LEARNING_UPDATED
from core.policy import ViewScope
from core.utils.datetime import now, to_iso
from database.models.learning import (
    Chapter,
    Difficulty,
    Semester,
    Subject,
    Topic,
    TopicProgress,
)
from database.models.users import User

logger = logging.getLogger(__name__)


# ==================== Serialization ==================== #

def _topic(topic: Topic, progress: Optional[Dict[int, TopicProgress]] = None) -> Dict[str, Any]:
    data = {
        "id": topic.id,
        "chapter_id": topic.chapter_id,
        "name": topic.name,
        "difficulty": topic.difficulty.value,
        "importance": topic.importance,
        "video_link": topic.video_link,
        "problem_link": topic.problem_link,
        "order": topic.order,
    }
    if progress is not None:
        entry = progress.get(topic.id)
        data["completed"] = bool(entry and entry.completed)
        data["video_watched_seconds"] = entry.video_watched_seconds if entry else 0
    return data


def _chapter(chapter: Chapter, progress=None, nested: bool = True) -> Dict[str, Any]:
    data = {
        "id": chapter.id,
        "subject_id": chapter.subject_id,
        "name": chapter.name,
        "order": chapter.order,
    }
    if nested:
        data["topics"] = [_topic(t, progress) for t in chapter.topics]
    return data


def _subject(subject: Subject, progress=None, nested: bool = True) -> Dict[str, Any]:
    data = {
        "id": subject.id,
        "semester_id": subject.semester_id,
        "name": subject.name,
        "description": subject.description,
        "order": subject.order,
    }
    if nested:
        data["chapters"] = [_chapter(c, progress) for c in subject.chapters]
    return data


def _semester(semester: Semester, progress=None, nested: bool = True) -> Dict[str, Any]:
    data = {
        "id": semester.id,
        "name": semester.name,
        "description": semester.description,
        "coordinator_id": semester.coordinator_id,
        "order": semester.order,
    }
    if nested:
        data["subjects"] = [_subject(s, progress) for s in semester.subjects]
    return data


# ==================== Ownership ==================== #

async def _semester_of_subject(session: AsyncSession, subject_id: int) -> Tuple[str, str]:
    """(coordinator_id, semester name) owning a subject."""
    result = await session.execute(
        select(Semester.coordinator_id, Semester.name)
        .join(Subject, Subject.semester_id == Semester.id)
        .where(Subject.id == subject_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError(f"Subject {subject_id} not found")
    return row[0], row[1]


async def _subject_of_chapter(session: AsyncSession, chapter_id: int) -> int:
    result = await session.execute(select(Chapter.subject_id).where(Chapter.id == chapter_id))
    subject_id = result.scalar_one_or_none()
    if subject_id is None:
        raise NotFoundError(f"Chapter {chapter_id} not found")
    return subject_id


async def _subject_of_topic(session: AsyncSession, topic_id: int) -> int:
    result = await session.execute(
        select(Chapter.subject_id)
        .join(Topic, Topic.chapter_id == Chapter.id)
        .where(Topic.id == topic_id)
    )
    subject_id = result.scalar_one_or_none()
    if subject_id is None:
        raise NotFoundError(f"Topic {topic_id} not found")
    return subject_id


def _require_owner(scope: ViewScope, coordinator_id: str) -> None:
    if not scope.owns_semester(coordinator_id):
        raise NotAuthorizedError("You can only manage your own semesters")


# ==================== Catalogue CRUD ==================== #

async def create_semester(
    session: AsyncSession,
    scope: ViewScope,
    name: str,
    description: Optional[str] = None,
    coordinator_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Coordinators create semesters under their own id; admins must name
    the owning coordinator.
    """
    if scope.is_coordinator:
        coordinator_id = scope.coordinator_id
    elif not scope.is_admin:
        raise NotAuthorizedError("Only admins and coordinators can create semesters")
    if not coordinator_id:
        raise ValidationError("coordinator_id is required")

    name = name.strip()
    name_key = name.lower()
    duplicate = await session.execute(
        select(Semester.id).where(
            Semester.coordinator_id == coordinator_id,
            Semester.name_key == name_key,
        )
    )
    if duplicate.first() is not None:
        raise ConflictError(f"Semester '{name}' already exists")

    semester = Semester(
        name=name,
        name_key=name_key,
        description=description,
        coordinator_id=coordinator_id,
    )
    session.add(semester)
    await session.commit()
    logger.info(f"Created semester {semester.id} for coordinator {coordinator_id}")
    return _semester(semester, nested=False)


async def delete_semester(session: AsyncSession, scope: ViewScope, semester_id: int) -> None:
    """Delete a semester with its subjects, chapters, topics and progress."""
    # Full tree is loaded so the ORM cascade can remove children
    result = await session.execute(
        select(Semester).where(Semester.id == semester_id).execution_options(populate_existing=True)
    )
    semester = result.scalar_one_or_none()
    if not semester:
        raise NotFoundError(f"Semester {semester_id} not found")
    _require_owner(scope, semester.coordinator_id)

    subject_ids = select(Subject.id).where(Subject.semester_id == semester_id).scalar_subquery()
    await session.execute(delete(TopicProgress).where(TopicProgress.subject_id.in_(subject_ids)))
    await session.delete(semester)
    await session.commit()
    logger.info(f"Deleted semester {semester_id}")


async def create_subject(
    session: AsyncSession,
    scope: ViewScope,
    semester_id: int,
    name: str,
    description: Optional[str] = None,
    order: int = 0,
) -> Dict[str, Any]:
    result = await session.execute(select(Semester.coordinator_id).where(Semester.id == semester_id))
    coordinator_id = result.scalar_one_or_none()
    if coordinator_id is None:
        raise NotFoundError(f"Semester {semester_id} not found")
    _require_owner(scope, coordinator_id)

    subject = Subject(semester_id=semester_id, name=name, description=description, order=order)
    session.add(subject)
    await session.commit()
    return _subject(subject, nested=False)


async def create_chapter(
    session: AsyncSession,
    scope: ViewScope,
    subject_id: int,
    name: str,
    order: int = 0,
) -> Dict[str, Any]:
    coordinator_id, _ = await _semester_of_subject(session, subject_id)
    _require_owner(scope, coordinator_id)

    chapter = Chapter(subject_id=subject_id, name=name, order=order)
    session.add(chapter)
    await session.commit()
    return _chapter(chapter, nested=False)


async def create_topic(
    session: AsyncSession,
    scope: ViewScope,
    chapter_id: int,
    name: str,
    difficulty: Difficulty = Difficulty.MEDIUM,
    importance: int = 3,
    video_link: Optional[str] = None,
    problem_link: Optional[str] = None,
    order: int = 0,
) -> Dict[str, Any]:
    subject_id = await _subject_of_chapter(session, chapter_id)
    coordinator_id, _ = await _semester_of_subject(session, subject_id)
    _require_owner(scope, coordinator_id)

    topic = Topic(
        chapter_id=chapter_id,
        name=name,
        difficulty=difficulty,
        importance=importance,
        video_link=video_link,
        problem_link=problem_link,
        order=order,
    )
    session.add(topic)
    await session.commit()
    return _topic(topic)


# ==================== Catalogue Updates ==================== #

SEMESTER_FIELDS = ("name", "description")
SUBJECT_FIELDS = ("name", "description", "order")
CHAPTER_FIELDS = ("name", "order")
TOPIC_FIELDS = ("name", "difficulty", "importance", "video_link", "problem_link", "order")


# Only these may be cleared with null
NULLABLE_FIELDS = frozenset({"description", "video_link", "problem_link"})


def _apply(target: Any, updates: Dict[str, Any], allowed_fields: Tuple[str, ...]) -> None:
    for field in allowed_fields:
        if field not in updates:
            continue
        if updates[field] is None and field not in NULLABLE_FIELDS:
            continue
        setattr(target, field, updates[field])


async def _fresh(session: AsyncSession, model: Any, item_id: int) -> Any:
    # Reload children too; cached collections miss rows added since
    result = await session.execute(
        select(model).where(model.id == item_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _owned_semester(session: AsyncSession, scope: ViewScope, semester_id: int) -> Semester:
    semester = await _fresh(session, Semester, semester_id)
    if not semester:
        raise NotFoundError(f"Semester {semester_id} not found")
    _require_owner(scope, semester.coordinator_id)
    return semester


async def _owned_subject(session: AsyncSession, scope: ViewScope, subject_id: int) -> Subject:
    coordinator_id, _ = await _semester_of_subject(session, subject_id)
    _require_owner(scope, coordinator_id)
    return await _fresh(session, Subject, subject_id)


async def _owned_chapter(session: AsyncSession, scope: ViewScope, chapter_id: int) -> Chapter:
    subject_id = await _subject_of_chapter(session, chapter_id)
    await _owned_subject(session, scope, subject_id)
    return await _fresh(session, Chapter, chapter_id)


async def _owned_topic(session: AsyncSession, scope: ViewScope, topic_id: int) -> Topic:
    subject_id = await _subject_of_topic(session, topic_id)
    await _owned_subject(session, scope, subject_id)
    return await _fresh(session, Topic, topic_id)


async def update_semester(
    session: AsyncSession,
    scope: ViewScope,
    semester_id: int,
    updates: Dict[str, Any],
) -> Dict[str, Any]:
    """
    Rename or re-describe a semester.

    Raises:
        NotFoundError: Unknown semester
        NotAuthorizedError: Semester belongs to another coordinator
        ConflictError: The new name is taken by another semester of the same coordinator
    """
    semester = await _owned_semester(session, scope, semester_id)

    if updates.get("name") is not None:
        name = updates["name"].strip()
        duplicate = await session.execute(
            select(Semester.id).where(
                Semester.coordinator_id == semester.coordinator_id,
                Semester.name_key == name.lower(),
                Semester.id != semester.id,
            )
        )
        if duplicate.first() is not None:
            raise ConflictError(f"Semester '{name}' already exists")
        updates = {**updates, "name": name}
        semester.name_key = name.lower()

    _apply(semester, updates, SEMESTER_FIELDS)
    await session.commit()
    logger.info(f"Updated semester {semester.id}")
    return _semester(semester, nested=False)


async def update_subject(
    session: AsyncSession,
    scope: ViewScope,
    subject_id: int,
    updates: Dict[str, Any],
) -> Dict[str, Any]:
    subject = await _owned_subject(session, scope, subject_id)
    _apply(subject, updates, SUBJECT_FIELDS)
    await session.commit()
    return _subject(subject, nested=False)


async def update_chapter(
    session: AsyncSession,
    scope: ViewScope,
    chapter_id: int,
    updates: Dict[str, Any],
) -> Dict[str, Any]:
    chapter = await _owned_chapter(session, scope, chapter_id)
    _apply(chapter, updates, CHAPTER_FIELDS)
    await session.commit()
    return _chapter(chapter, nested=False)


async def update_topic(
    session: AsyncSession,
    scope: ViewScope,
    topic_id: int,
    updates: Dict[str, Any],
) -> Dict[str, Any]:
    topic = await _owned_topic(session, scope, topic_id)
    _apply(topic, updates, TOPIC_FIELDS)
    await session.commit()
    return _topic(topic)


async def delete_subject(session: AsyncSession, scope: ViewScope, subject_id: int) -> None:
    """Delete a subject with its chapters, topics and progress."""
    subject = await _owned_subject(session, scope, subject_id)
    await session.execute(delete(TopicProgress).where(TopicProgress.subject_id == subject_id))
    await session.delete(subject)
    await session.commit()
    logger.info(f"Deleted subject {subject_id}")


async def delete_chapter(session: AsyncSession, scope: ViewScope, chapter_id: int) -> None:
    chapter = await _owned_chapter(session, scope, chapter_id)
    topic_ids = select(Topic.id).where(Topic.chapter_id == chapter_id).scalar_subquery()
    await session.execute(delete(TopicProgress).where(TopicProgress.topic_id.in_(topic_ids)))
    await session.delete(chapter)
    await session.commit()
    logger.info(f"Deleted chapter {chapter_id}")


async def delete_topic(session: AsyncSession, scope: ViewScope, topic_id: int) -> None:
    topic = await _owned_topic(session, scope, topic_id)
    await session.execute(delete(TopicProgress).where(TopicProgress.topic_id == topic_id))
    await session.delete(topic)
    await session.commit()
    logger.info(f"Deleted topic {topic_id}")


# ==================== Reordering ==================== #

def _reorder(items: List[Any], ordered_ids: List[int]) -> List[Any]:
    """
    Assign `order` by position in `ordered_ids`. Ids that are not among
    `items` are ignored; items not listed keep their current order.
    """
    by_id = {item.id: item for item in items}
    for position, item_id in enumerate(dict.fromkeys(ordered_ids)):
        item = by_id.get(item_id)
        if item is not None:
            item.order = position
    return sorted(items, key=lambda item: (item.order, item.id))


async def reorder_semesters(
    session: AsyncSession,
    scope: ViewScope,
    semester_ids: List[int],
) -> List[Dict[str, Any]]:
    """Reorder the caller's own semesters; admins may reorder any."""
    result = await session.execute(select(Semester).where(Semester.id.in_(semester_ids)))
    owned = [s for s in result.scalars().all() if scope.owns_semester(s.coordinator_id)]
    ordered = _reorder(owned, semester_ids)
    await session.commit()
    return [_semester(s, nested=False) for s in ordered]


async def reorder_subjects(
    session: AsyncSession,
    scope: ViewScope,
    semester_id: int,
    subject_ids: List[int],
) -> List[Dict[str, Any]]:
    await _owned_semester(session, scope, semester_id)
    result = await session.execute(select(Subject).where(Subject.semester_id == semester_id))
    ordered = _reorder(list(result.scalars().all()), subject_ids)
    await session.commit()
    return [_subject(s, nested=False) for s in ordered]


async def reorder_chapters(
    session: AsyncSession,
    scope: ViewScope,
    subject_id: int,
    chapter_ids: List[int],
) -> List[Dict[str, Any]]:
    await _owned_subject(session, scope, subject_id)
    result = await session.execute(select(Chapter).where(Chapter.subject_id == subject_id))
    ordered = _reorder(list(result.scalars().all()), chapter_ids)
    await session.commit()
    return [_chapter(c, nested=False) for c in ordered]


async def reorder_topics(
    session: AsyncSession,
    scope: ViewScope,
    chapter_id: int,
    topic_ids: List[int],
) -> List[Dict[str, Any]]:
    await _owned_chapter(session, scope, chapter_id)
    result = await session.execute(select(Topic).where(Topic.chapter_id == chapter_id))
    ordered = _reorder(list(result.scalars().all()), topic_ids)
    await session.commit()
    return [_topic(t) for t in ordered]


async def _progress_map(session: AsyncSession, student_id: int) -> Dict[int, TopicProgress]:
    result = await session.execute(select(TopicProgress).where(TopicProgress.student_id == student_id))
    return {p.topic_id: p for p in result.scalars().all()}


async def catalogue(session: AsyncSession, scope: ViewScope) -> List[Dict[str, Any]]:
    """Semesters visible to the caller; students also get per-topic progress."""
    result = await session.execute(
        select(Semester)
        .order_by(Semester.order, Semester.name, Semester.id)
        .execution_options(populate_existing=True)
    )
    progress = None
    if not scope.is_admin and not scope.is_coordinator:
        progress = await _progress_map(session, scope.user_id)

    return [
        _semester(semester, progress)
        for semester in result.scalars().all()
        if scope.semester_visible(semester.name, semester.coordinator_id)
    ]


# ==================== Progress ==================== #

async def record_progress(
    session: AsyncSession,
    user: User,
    topic_id: int,
    video_watched_seconds: int,
    notifier: Notifier,
    at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Upsert watch time for a topic. A topic becomes completed once the
    threshold is reached and stays completed.
    """
    scope = ViewScope.for_user(user)
    subject_id = await _subject_of_topic(session, topic_id)
    coordinator_id, semester_name = await _semester_of_subject(session, subject_id)
    if not scope.semester_visible(semester_name, coordinator_id):
        raise NotAuthorizedError("This topic is not available for your semester")

    at = at or now()
    result = await session.execute(
        select(TopicProgress).where(
            TopicProgress.student_id == user.id,
            TopicProgress.topic_id == topic_id,
        )
    )
    progress = result.scalar_one_or_none()
    if progress is None:
        progress = TopicProgress(
            student_id=user.id,
            topic_id=topic_id,
            subject_id=subject_id,
            video_watched_seconds=0,
            completed=False,
        )
        session.add(progress)

    progress.video_watched_seconds = max(progress.video_watched_seconds or 0, video_watched_seconds)
    progress.last_watched_at = at
    if not progress.completed and progress.video_watched_seconds >= settings.video_completion_seconds:
        progress.completed = True
        progress.completed_at = at
    await session.commit()

    await notifier.publish(
        LEARNING_UPDATED,
        {"student_id": user.id, "topic_id": topic_id, "subject_id": subject_id, "completed": progress.completed},
    )
    return {
        "topic_id": topic_id,
        "subject_id": subject_id,
        "video_watched_seconds": progress.video_watched_seconds,
        "completed": progress.completed,
        "completed_at": to_iso(progress.completed_at),
    }


async def topic_progress(session: AsyncSession, user: User, topic_id: int) -> Dict[str, Any]:
    """The caller's progress on one topic; untouched topics report zero."""
    subject_id = await _subject_of_topic(session, topic_id)
    result = await session.execute(
        select(TopicProgress).where(
            TopicProgress.student_id == user.id,
            TopicProgress.topic_id == topic_id,
        )
    )
    progress = result.scalar_one_or_none()
    return {
        "topic_id": topic_id,
        "subject_id": subject_id,
        "video_watched_seconds": progress.video_watched_seconds if progress else 0,
        "completed": bool(progress and progress.completed),
        "completed_at": to_iso(progress.completed_at) if progress else None,
    }


def _percentage(completed: int, total: int) -> int:
    return round(completed * 100 / total) if total else 0


async def _topic_totals(session: AsyncSession) -> Dict[int, int]:
    result = await session.execute(
        select(Chapter.subject_id, func.count(Topic.id))
        .join(Topic, Topic.chapter_id == Chapter.id)
        .group_by(Chapter.subject_id)
    )
    return dict(result.all())


async def _completed_counts(session: AsyncSession, student_id: int) -> Dict[int, int]:
    result = await session.execute(
        select(TopicProgress.subject_id, func.count(TopicProgress.id))
        .where(TopicProgress.student_id == student_id, TopicProgress.completed.is_(True))
        .group_by(TopicProgress.subject_id)
    )
    return dict(result.all())


async def subject_progress(session: AsyncSession, user: User, subject_id: int) -> Dict[str, Any]:
    await _semester_of_subject(session, subject_id)
    total = (await _topic_totals(session)).get(subject_id, 0)
    completed = (await _completed_counts(session, user.id)).get(subject_id, 0)
    return {
        "subject_id": subject_id,
        "total_topics": total,
        "completed_topics": completed,
        "percentage": _percentage(completed, total),
    }


async def overall_progress(session: AsyncSession, user: User) -> Dict[str, Any]:
    """Progress grouped by subject across the semesters visible to the student."""
    scope = ViewScope.for_user(user)
    totals = await _topic_totals(session)
    completed = await _completed_counts(session, user.id)

    result = await session.execute(
        select(Subject.id, Subject.name, Semester.name, Semester.coordinator_id)
        .join(Semester, Semester.id == Subject.semester_id)
        .order_by(Semester.name, Subject.order, Subject.id)
    )
    subjects = []
    for subject_id, subject_name, semester_name, coordinator_id in result.all():
        if not scope.semester_visible(semester_name, coordinator_id):
            continue
        total = totals.get(subject_id, 0)
        done = completed.get(subject_id, 0)
        subjects.append({
            "subject_id": subject_id,
            "subject_name": subject_name,
            "semester": semester_name,
            "total_topics": total,
            "completed_topics": done,
            "percentage": _percentage(done, total),
        })

    total_topics = sum(s["total_topics"] for s in subjects)
    completed_topics = sum(s["completed_topics"] for s in subjects)
    return {
        "subjects": subjects,
        "total_topics": total_topics,
        "completed_topics": completed_topics,
        "percentage": _percentage(completed_topics, total_topics),
    }
