"""FastAPI dependencies for dependency injection."""

from typing import Optional
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import jwt

from database.engine import get_db
from database.models.users import User, UserRole
from core.config import settings
from core.errors import NotAuthenticatedError, NotAuthorizedError
from core.events import Notifier, build_notifier
from core.notifications import NotificationDispatcher
from core.policy import ViewScope
from core.security import verify_jwt_token

logger = logging.getLogger(__name__)

# auto_error=False so the cookie can be tried when the header is absent
security = HTTPBearer(auto_error=False)


def extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Bearer header first, then the auth cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated user or raise NotAuthenticatedError."""
    token = extract_token(request, credentials)
    if not token:
        raise NotAuthenticatedError("Authentication required")

    try:
        payload = verify_jwt_token(token)
        user_id = int(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise NotAuthenticatedError("Token has expired")
    except (jwt.InvalidTokenError, ValueError):
        raise NotAuthenticatedError("Invalid token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotAuthenticatedError("User not found")
    if not user.is_active:
        raise NotAuthorizedError("Inactive user account")

    request.state.user_id = user.id
    return user


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require user to be an admin."""
    if current_user.role != UserRole.ADMIN:
        raise NotAuthorizedError("Admin access required")
    return current_user


async def require_admin_or_coordinator(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require user to be an admin or coordinator."""
    if current_user.role not in (UserRole.ADMIN, UserRole.COORDINATOR):
        raise NotAuthorizedError("Admin or coordinator access required")
    return current_user


async def require_student(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require user to be a student."""
    if current_user.role != UserRole.STUDENT:
        raise NotAuthorizedError("Student access required")
    return current_user


async def get_view_scope(
    current_user: User = Depends(get_current_user),
) -> ViewScope:
    return ViewScope.for_user(current_user)


def get_notifier(request: Request) -> Notifier:
    """Application-wide bus created in the lifespan handler."""
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        notifier = build_notifier()
        request.app.state.notifier = notifier
    return notifier


def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()
