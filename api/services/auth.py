"""Authentication service functions."""

import logging

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotAuthenticatedError, NotAuthorizedError
from core.security import hash_password, verify_password
from core.utils.datetime import now
from database.models.users import User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


async def authenticate(session: AsyncSession, identifier: str, password: str) -> User:
    """
    Resolve a user by email, student id or coordinator id and check the password.

    Raises:
        NotAuthenticatedError: Unknown identifier or wrong password
        NotAuthorizedError: The account is deactivated
    """
    identifier = identifier.strip()
    result = await session.execute(
        select(User).where(
            or_(
                User.email == identifier.lower(),
                User.student_id == identifier,
                User.coordinator_id == identifier,
            )
        )
    )
    user = result.scalars().first()

    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login attempt")
        raise NotAuthenticatedError(INVALID_CREDENTIALS)
    if not user.is_active:
        raise NotAuthorizedError("Account is disabled")

    user.last_login_at = now()
    await session.commit()
    logger.info(f"User {user.id} logged in")
    return user


async def change_password(
    session: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    """Replace the password after re-verifying the current one."""
    if not verify_password(current_password, user.password_hash):
        raise NotAuthenticatedError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    user.must_change_password = False
    user.password_changed_at = now()
    await session.commit()
    logger.info(f"User {user.id} changed password")
