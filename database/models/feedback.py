from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    ForeignKey,
    Integer,
    DateTime,
    func,
    Text,
    UniqueConstraint,
    CheckConstraint,
)
from database.engine import Base, IdType
from database.models.users import User
from datetime import datetime


CRITERIA = ("integrity", "communication", "preparedness", "problem_solving", "attitude")


class Feedback(Base):
    """
    Interviewer's assessment of the interviewee after a session.
    One row per pair.
    """

    __tablename__ = "feedback"
    __table_args__ = (
        UniqueConstraint("pair_id", name="uq_feedback_pair"),
        CheckConstraint("marks >= 0 AND marks <= 100", name="ck_feedback_marks"),
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
    # Detached (NULL) when the event's pairs are regenerated
    pair_id: Mapped[int | None] = mapped_column(
        IdType,
        ForeignKey("pairs.id", ondelete="SET NULL"),
        nullable=True,
    )
    from_user_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    to_user_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    marks: Mapped[int] = mapped_column(Integer, nullable=False)

    # Criteria ratings, 1..5 each
    integrity: Mapped[int | None] = mapped_column(Integer)
    communication: Mapped[int | None] = mapped_column(Integer)
    preparedness: Mapped[int | None] = mapped_column(Integer)
    problem_solving: Mapped[int | None] = mapped_column(Integer)
    attitude: Mapped[int | None] = mapped_column(Integer)
    total_marks: Mapped[int | None] = mapped_column(Integer)

    comments: Mapped[str | None] = mapped_column(Text)
    suggestions: Mapped[str | None] = mapped_column(Text)

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    from_user: Mapped[User] = relationship(
        User, foreign_keys=[from_user_id], lazy="joined"
    )
    to_user: Mapped[User] = relationship(
        User, foreign_keys=[to_user_id], lazy="joined"
    )
