"""User administration service functions."""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, or_, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ConflictError, NotFoundError
from core.security import generate_temporary_password, hash_password
from database.models.learning import Semester
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)


async def get_user(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def _ensure_unique(
    session: AsyncSession,
    email: Optional[str] = None,
    student_id: Optional[str] = None,
    coordinator_id: Optional[str] = None,
) -> None:
    checks = []
    if email:
        checks.append(User.email == email)
    if student_id:
        checks.append(User.student_id == student_id)
    if coordinator_id:
        checks.append(User.coordinator_id == coordinator_id)
    if not checks:
        return

    result = await session.execute(select(User).where(or_(*checks)))
    existing = result.scalars().first()
    if not existing:
        return
    if email and existing.email == email:
        raise ConflictError(f"A user with email {email} already exists")
    if student_id and existing.student_id == student_id:
        raise ConflictError(f"Student id {student_id} is already registered")
    raise ConflictError(f"Coordinator id {coordinator_id} is already registered")


async def _create_user(session: AsyncSession, role: UserRole, **fields: Any) -> Dict[str, Any]:
    temporary_password = generate_temporary_password()
    user = User(
        role=role,
        password_hash=hash_password(temporary_password),
        must_change_password=True,
        **fields,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)

    logger.info(f"Created {role.value} account {user.id}")
    return {"user": user, "temporary_password": temporary_password}


async def create_student(
    session: AsyncSession,
    name: str,
    email: str,
    student_id: str,
    course: Optional[str] = None,
    branch: Optional[str] = None,
    college: Optional[str] = None,
    semester: Optional[int] = None,
    group: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a student with a temporary password they must change."""
    email = email.lower()
    await _ensure_unique(session, email=email, student_id=student_id)
    return await _create_user(
        session,
        UserRole.STUDENT,
        name=name,
        email=email,
        student_id=student_id,
        course=course,
        branch=branch,
        college=college,
        semester=semester,
        group=group,
    )


async def create_coordinator(
    session: AsyncSession,
    name: str,
    email: str,
    coordinator_id: str,
    department: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a coordinator with a temporary password they must change."""
    email = email.lower()
    await _ensure_unique(session, email=email, coordinator_id=coordinator_id)
    return await _create_user(
        session,
        UserRole.COORDINATOR,
        name=name,
        email=email,
        coordinator_id=coordinator_id,
        department=department,
    )


async def list_users(
    session: AsyncSession,
    role: Optional[UserRole] = None,
    limit: int = 50,
    offset: int = 0,
) -> Dict[str, Any]:
    query = select(User)
    if role:
        query = query.where(User.role == role)

    total = (
        await session.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0

    result = await session.execute(query.order_by(User.id).limit(limit).offset(offset))
    users: List[User] = list(result.scalars().all())
    return {"items": users, "total": total}


COORDINATOR_FIELDS = ("name", "email", "coordinator_id", "department")


async def _get_coordinator(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if not user or user.role != UserRole.COORDINATOR:
        raise NotFoundError(f"Coordinator {user_id} not found")
    return user


async def update_coordinator(
    session: AsyncSession,
    user_id: int,
    updates: Dict[str, Any],
) -> User:
    """
    Update a coordinator's profile. Changing the coordinator id moves the
    semesters they own to the new id.

    Raises:
        NotFoundError: Unknown user, or the user is not a coordinator
        ConflictError: Email or coordinator id belongs to someone else
    """
    coordinator = await _get_coordinator(session, user_id)
    updates = {k: v for k, v in updates.items() if k in COORDINATOR_FIELDS and v is not None}
    if "email" in updates:
        updates["email"] = updates["email"].lower()

    email = updates.get("email")
    new_id = updates.get("coordinator_id")
    await _ensure_unique(
        session,
        email=email if email != coordinator.email else None,
        coordinator_id=new_id if new_id != coordinator.coordinator_id else None,
    )

    if new_id and new_id != coordinator.coordinator_id:
        await session.execute(
            update(Semester)
            .where(Semester.coordinator_id == coordinator.coordinator_id)
            .values(coordinator_id=new_id)
        )
    for field, value in updates.items():
        setattr(coordinator, field, value)
    await session.commit()
    await session.refresh(coordinator)

    logger.info(f"Updated coordinator {coordinator.id}")
    return coordinator


async def delete_coordinator(session: AsyncSession, user_id: int) -> None:
    """Remove a coordinator account. Their semesters stay and remain manageable by admins."""
    coordinator = await _get_coordinator(session, user_id)
    await session.delete(coordinator)
    await session.commit()
    logger.info(f"Deleted coordinator {user_id}")
