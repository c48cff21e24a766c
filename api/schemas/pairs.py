"""Pair and slot negotiation schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class PairParty(BaseModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    student_id: Optional[str] = None


class PairResponse(BaseModel):
    id: int
    event_id: int
    interviewer: Optional[PairParty] = None
    interviewee: Optional[PairParty] = None
    status: str
    default_time_slot: Optional[str] = None
    proposed_time: Optional[str] = None
    scheduled_at: Optional[str] = None
    meeting_link: Optional[str] = Field(None, description="Hidden from participants until one hour before start")
    interviewer_proposals: int = 0
    interviewee_proposals: int = 0
    rejection_count: int = 0
    my_role: Optional[str] = None


class GeneratePairsResponse(BaseModel):
    event_id: int
    count: int
    pairs: list[PairResponse]


class ProposeRequest(BaseModel):
    """Candidate times, ISO 8601; replaces the caller's previous list."""

    slots: list[str] = Field(..., description="ISO 8601 timestamps in order of preference")


class ProposalsResponse(BaseModel):
    pair_id: int
    mine: list[str]
    partner: list[str]
    common: Optional[str] = Field(None, description="Earliest slot present in both lists")


class ConfirmRequest(BaseModel):
    scheduled_at: datetime
    meeting_link: Optional[str] = Field(None, max_length=500)


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class MeetingLinkRequest(BaseModel):
    meeting_link: str = Field(..., min_length=1, max_length=500)
