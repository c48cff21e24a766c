"""
Per-request visibility policy.

A ViewScope is resolved once from the authenticated user; services ask it
for query filters instead of branching on roles themselves.
"""

import re
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_, true
from sqlalchemy.sql.elements import ColumnElement

from database.models.users import User, UserRole
from database.models.pairs import Pair

_SEMESTER_NUMBER = re.compile(r"\d+")


def semester_number(name: str) -> Optional[int]:
    """First integer in a semester name ("Semester 3" -> 3)."""
    match = _SEMESTER_NUMBER.search(name or "")
    return int(match.group()) if match else None


@dataclass(frozen=True)
class ViewScope:
    user_id: int
    role: UserRole
    coordinator_id: Optional[str] = None
    max_semester: Optional[int] = None

    @classmethod
    def for_user(cls, user: User) -> "ViewScope":
        return cls(
            user_id=user.id,
            role=user.role,
            coordinator_id=user.coordinator_id,
            max_semester=user.semester if user.role == UserRole.STUDENT else None,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_coordinator(self) -> bool:
        return self.role == UserRole.COORDINATOR

    def pair_filter(self) -> ColumnElement[bool]:
        """Admins see every pair; everyone else only pairs they belong to."""
        if self.is_admin:
            return true()
        return or_(
            Pair.interviewer_id == self.user_id,
            Pair.interviewee_id == self.user_id,
        )

    def can_see_event(self, is_special: bool, allow_listed: bool) -> bool:
        """Special events are limited to admins and allow-listed users."""
        return not is_special or self.is_admin or allow_listed

    def can_see_meeting_link(self, link_window_open: bool) -> bool:
        return self.is_admin or link_window_open

    def owns_semester(self, coordinator_id: str) -> bool:
        """Write access to a semester's content."""
        if self.is_admin:
            return True
        return self.is_coordinator and self.coordinator_id == coordinator_id

    def semester_visible(self, name: str, coordinator_id: str) -> bool:
        """Read access to a semester in the catalogue."""
        if self.is_admin:
            return True
        if self.is_coordinator:
            return self.coordinator_id == coordinator_id
        number = semester_number(name)
        if number is None or self.max_semester is None:
            return True
        return number <= self.max_semester
