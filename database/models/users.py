from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
    Integer,
    DateTime,
    func,
    Enum as SQLEnum,
)
from database.engine import Base, IdType
from datetime import datetime
from enum import Enum as PyEnum


# ==================== User Role ===================== #
class UserRole(str, PyEnum):
    ADMIN = "admin"  # platform admin, manages events and pairings
    COORDINATOR = "coordinator"  # owns learning content
    STUDENT = "student"  # participant in events and learner


class User(Base):
    """
    Identity record for students, coordinators and admins.
    """

    __tablename__: str = "users"
    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, native_enum=False, length=50),
        nullable=False,
        default=UserRole.STUDENT,
    )
    name: Mapped[str | None] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True, index=True
    )
    student_id: Mapped[str | None] = mapped_column(
        String(100), unique=True, nullable=True, index=True
    )
    # Business identifier for coordinators; semesters reference it
    coordinator_id: Mapped[str | None] = mapped_column(
        String(100), unique=True, nullable=True, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    must_change_password: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Student profile
    course: Mapped[str | None] = mapped_column(String(100))
    branch: Mapped[str | None] = mapped_column(String(100))
    college: Mapped[str | None] = mapped_column(String(200), index=True)
    semester: Mapped[int | None] = mapped_column(Integer)
    group: Mapped[str | None] = mapped_column(String(50))
    department: Mapped[str | None] = mapped_column(String(100))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    password_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.student_id or f"user-{self.id}"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
