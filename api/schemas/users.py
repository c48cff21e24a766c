"""User and authentication schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from core.security import password_strength_errors
from database.models.users import UserRole


class UserResponse(BaseModel):
    """Public profile of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: UserRole
    name: Optional[str] = None
    email: Optional[str] = None
    student_id: Optional[str] = None
    coordinator_id: Optional[str] = None
    course: Optional[str] = None
    branch: Optional[str] = None
    college: Optional[str] = None
    semester: Optional[int] = None
    group: Optional[str] = None
    department: Optional[str] = None
    must_change_password: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None


class LoginRequest(BaseModel):
    """Login with an email, student id or coordinator id."""

    identifier: str = Field(..., min_length=1, max_length=255, description="Email, student id or coordinator id")
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., max_length=100)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        errors = password_strength_errors(v)
        if errors:
            raise ValueError("; ".join(errors))
        return v


class StudentCreate(BaseModel):
    """Admin request to create a student account."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    student_id: str = Field(..., min_length=1, max_length=100)
    course: Optional[str] = Field(None, max_length=100)
    branch: Optional[str] = Field(None, max_length=100)
    college: Optional[str] = Field(None, max_length=200)
    semester: Optional[int] = Field(None, ge=1, le=8)
    group: Optional[str] = Field(None, max_length=50)


class CoordinatorCreate(BaseModel):
    """Admin request to create a coordinator account."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    coordinator_id: str = Field(..., min_length=1, max_length=100)
    department: Optional[str] = Field(None, max_length=100)


class CreatedUserResponse(BaseModel):
    """New account plus its one-time temporary password."""

    user: UserResponse
    temporary_password: str


class CoordinatorUpdate(BaseModel):
    """Partial update of a coordinator account."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    coordinator_id: Optional[str] = Field(None, min_length=1, max_length=100)
    department: Optional[str] = Field(None, max_length=100)
