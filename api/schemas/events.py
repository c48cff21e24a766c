"""Event schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    """Request to create an event."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    capacity: Optional[int] = Field(None, ge=1, description="Maximum participants; omit for unlimited")
    join_disable_time: Optional[datetime] = Field(None, description="Joining closes at this time")
    generate_pairs: bool = Field(False, description="Generate pairs immediately if participants exist")


class SpecialEventCreate(EventCreate):
    """Event restricted to an allow-list."""

    allowed: list[str] = Field(
        default_factory=list,
        description="User ids, emails or student ids allowed to see and join",
    )


class EventResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    capacity: Optional[int] = None
    is_special: bool
    join_disabled: bool
    join_disable_time: Optional[str] = None
    ended: bool
    participant_count: Optional[int] = None
    joined: Optional[bool] = None
    invited: Optional[int] = None


class CapacityUpdate(BaseModel):
    capacity: Optional[int] = Field(None, ge=1, description="New capacity; null for unlimited")


class JoinSettingsUpdate(BaseModel):
    join_disabled: bool = False
    join_disable_time: Optional[datetime] = None


class JoinResponse(BaseModel):
    event_id: int
    joined: bool
    already_joined: bool


class EventAnalytics(BaseModel):
    event_id: int
    joined: int
    pairs: int
    scheduled_pairs: int
    feedback_submissions: int
    average_score: Optional[float] = None
