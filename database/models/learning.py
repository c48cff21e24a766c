"""
Learning Module

Semester -> subject -> chapter -> topic catalogue and per-student
topic progress.
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
    UniqueConstraint,
    Enum as SQLEnum,
)
from database.engine import Base, IdType
from datetime import datetime
from enum import Enum as PyEnum
from typing import List


# ==================== Difficulty ===================== #
class Difficulty(str, PyEnum):
    EASY = "easy"
    EASY_MEDIUM = "easy-medium"
    MEDIUM = "medium"
    MEDIUM_HARD = "medium-hard"
    HARD = "hard"


# ==================== Semester Model ===================== #
class Semester(Base):
    __tablename__ = "semesters"
    __table_args__ = (
        UniqueConstraint("coordinator_id", "name_key", name="uq_semester_coordinator_name"),
    )

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Lower-cased name; uniqueness per coordinator is case-insensitive
    name_key: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    coordinator_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    subjects: Mapped[List["Subject"]] = relationship(
        back_populates="semester",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Subject.order",
    )


# ==================== Subject Model ===================== #
class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    semester_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("semesters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    semester: Mapped[Semester] = relationship(back_populates="subjects")
    chapters: Mapped[List["Chapter"]] = relationship(
        back_populates="subject",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Chapter.order",
    )


# ==================== Chapter Model ===================== #
class Chapter(Base):
    __tablename__ = "chapters"

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    subject_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    subject: Mapped[Subject] = relationship(back_populates="chapters")
    topics: Mapped[List["Topic"]] = relationship(
        back_populates="chapter",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Topic.order",
    )


# ==================== Topic Model ===================== #
class Topic(Base):
    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    chapter_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("chapters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    difficulty: Mapped[Difficulty] = mapped_column(
        SQLEnum(
            Difficulty,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=Difficulty.MEDIUM,
    )
    importance: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    video_link: Mapped[str | None] = mapped_column(String(500))
    problem_link: Mapped[str | None] = mapped_column(String(500))
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    chapter: Mapped[Chapter] = relationship(back_populates="topics")


# ==================== TopicProgress Model ===================== #
class TopicProgress(Base):
    """Video-watch progress of one student on one topic."""

    __tablename__ = "topic_progress"
    __table_args__ = (
        UniqueConstraint("student_id", "topic_id", name="uq_progress_student_topic"),
    )

    id: Mapped[int] = mapped_column(
        IdType, primary_key=True, nullable=False, autoincrement=True
    )
    student_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    topic_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False
    )
    subject_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    video_watched_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_watched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
