"""Learning catalogue schemas."""

from typing import Optional
from pydantic import BaseModel, Field

from database.models.learning import Difficulty


class SemesterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    coordinator_id: Optional[str] = Field(
        None, description="Owning coordinator; required for admins, ignored for coordinators"
    )


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    order: int = Field(0, ge=0)


class ChapterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    order: int = Field(0, ge=0)


class TopicCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    difficulty: Difficulty = Difficulty.MEDIUM
    importance: int = Field(3, ge=1, le=5)
    video_link: Optional[str] = Field(None, max_length=500)
    problem_link: Optional[str] = Field(None, max_length=500)
    order: int = Field(0, ge=0)


class ProgressUpdate(BaseModel):
    video_watched_seconds: int = Field(..., ge=0)


class ProgressResponse(BaseModel):
    topic_id: int
    subject_id: int
    video_watched_seconds: int
    completed: bool
    completed_at: Optional[str] = None


class SubjectProgress(BaseModel):
    subject_id: int
    subject_name: Optional[str] = None
    semester: Optional[str] = None
    total_topics: int
    completed_topics: int
    percentage: int


class OverallProgress(BaseModel):
    subjects: list[SubjectProgress]
    total_topics: int
    completed_topics: int
    percentage: int


class SemesterUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    order: Optional[int] = Field(None, ge=0)


class ChapterUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    order: Optional[int] = Field(None, ge=0)


class TopicUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    difficulty: Optional[Difficulty] = None
    importance: Optional[int] = Field(None, ge=1, le=5)
    video_link: Optional[str] = Field(None, max_length=500)
    problem_link: Optional[str] = Field(None, max_length=500)
    order: Optional[int] = Field(None, ge=0)


class ReorderRequest(BaseModel):
    """Ids in their new order; ids outside the parent are ignored."""

    ids: list[int] = Field(..., description="Ids in display order")
