"""
Pairs Module

Interviewer / interviewee assignments and the slot negotiation around them.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    Integer,
    DateTime,
    func,
    Text,
    JSON,
    UniqueConstraint,
    CheckConstraint,
    Enum as SQLEnum,
)
from database.engine import Base, IdType
from database.models.users import User
from datetime import datetime
from enum import Enum as PyEnum
from typing import List


# ==================== Pair Status ===================== #
class PairStatus(str, PyEnum):
    PENDING = "pending"  # negotiating a slot
    SCHEDULED = "scheduled"  # confirmed time
    REJECTED = "rejected"  # interviewee turned the proposals down
    COMPLETED = "completed"  # interview time has passed


# ==================== Pair Model ===================== #
class Pair(Base):
    """
    One interviewer/interviewee assignment within an event.
    """

    __tablename__ = "pairs"
    __table_args__ = (
        CheckConstraint("interviewer_id <> interviewee_id", name="ck_pair_distinct"),
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
    interviewer_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    interviewee_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Slot negotiation
    default_time_slot: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    proposed_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), index=True
    )
    meeting_link: Mapped[str | None] = mapped_column(String(500))
    status: Mapped[PairStatus] = mapped_column(
        SQLEnum(PairStatus, native_enum=False, length=20),
        nullable=False,
        default=PairStatus.PENDING,
        index=True,
    )

    # Counters
    interviewer_proposals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    interviewee_proposals: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rejection_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Reset whenever scheduled_at changes
    day_reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    hour_reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Both sides are always needed to render a pair; load them eagerly
    interviewer: Mapped[User] = relationship(
        User, foreign_keys=[interviewer_id], lazy="joined"
    )
    interviewee: Mapped[User] = relationship(
        User, foreign_keys=[interviewee_id], lazy="joined"
    )

    def side_of(self, user_id: int) -> str | None:
        """'interviewer', 'interviewee' or None for a non-party."""
        if user_id == self.interviewer_id:
            return "interviewer"
        if user_id == self.interviewee_id:
            return "interviewee"
        return None

    def partner_of(self, user_id: int) -> int:
        return self.interviewee_id if user_id == self.interviewer_id else self.interviewer_id


# ==================== SlotProposal Model ===================== #
class SlotProposal(Base):
    """
    Latest candidate list from one side of a pair. Later proposals replace
    the stored list.
    """

    __tablename__ = "slot_proposals"
    __table_args__ = (
        UniqueConstraint("pair_id", "user_id", name="uq_slot_proposal_pair_user"),
    )

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    pair_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("pairs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
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
    )
    # ISO 8601 UTC strings, in the order proposed
    slots: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


# ==================== PairRejection Model ===================== #
class PairRejection(Base):
    """Rejection history for a pair."""

    __tablename__ = "pair_rejections"

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    pair_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("pairs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rejected_by: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text)
    rejected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
