"""
Events Module

Mock-interview events and their participant rosters.
"""

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    Integer,
    DateTime,
    func,
    Text,
    UniqueConstraint,
)
from database.engine import Base, IdType
from datetime import datetime


# ==================== Event Model ===================== #
class Event(Base):
    """
    An interview event; its participant roster feeds the pairing generator.
    """

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # None means unlimited
    capacity: Mapped[int | None] = mapped_column(Integer)

    # Special events are only visible / joinable for allow-listed users
    is_special: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Manual disable wins over the scheduled disable time
    join_disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    join_disable_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_by: Mapped[int | None] = mapped_column(
        IdType, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


# ==================== EventParticipant Model ===================== #
class EventParticipant(Base):
    """
    Roster entry. The autoincrement id gives the stable join order used as
    pairing input.
    """

    __tablename__ = "event_participants"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_participant"),
    )

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    event_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ==================== EventAllowedParticipant Model ===================== #
class EventAllowedParticipant(Base):
    """Allow-list for special events."""

    __tablename__ = "event_allowed_participants"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_allowed_participant"),
    )

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    event_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
