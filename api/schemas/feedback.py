"""Feedback schemas."""

from typing import Optional
from pydantic import BaseModel, Field


class CriteriaRatings(BaseModel):
    """Optional 1..5 ratings; their sum is stored as total_marks."""

    integrity: Optional[int] = Field(None, ge=1, le=5)
    communication: Optional[int] = Field(None, ge=1, le=5)
    preparedness: Optional[int] = Field(None, ge=1, le=5)
    problem_solving: Optional[int] = Field(None, ge=1, le=5)
    attitude: Optional[int] = Field(None, ge=1, le=5)


class FeedbackCreate(BaseModel):
    pair_id: int
    marks: int = Field(..., ge=0, le=100)
    criteria: Optional[CriteriaRatings] = None
    comments: Optional[str] = Field(None, max_length=5000)
    suggestions: Optional[str] = Field(None, max_length=5000)


class FeedbackParty(BaseModel):
    id: int
    name: Optional[str] = None
    college: Optional[str] = None


class FeedbackResponse(BaseModel):
    id: int
    event_id: int
    pair_id: Optional[int] = None
    interviewer: FeedbackParty
    interviewee: FeedbackParty
    marks: int
    criteria: dict[str, Optional[int]]
    total_marks: Optional[int] = None
    comments: Optional[str] = None
    suggestions: Optional[str] = None
    submitted_at: Optional[str] = None
