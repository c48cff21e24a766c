"""
User administration endpoints (admin only).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import require_admin
from api.schemas.common import PaginatedResponse, PaginationParams
from api.schemas.users import (
    CoordinatorCreate,
    CoordinatorUpdate,
    CreatedUserResponse,
    StudentCreate,
    UserResponse,
)
from api.services import users as user_service
from database.engine import get_db
from database.models.users import UserRole

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post(
    "/students",
    response_model=CreatedUserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Student",
    description="Create a student with a one-time temporary password.",
)
async def create_student(request: StudentCreate, db: AsyncSession = Depends(get_db)):
    result = await user_service.create_student(db, **request.model_dump())
    return CreatedUserResponse(
        user=UserResponse.model_validate(result["user"]),
        temporary_password=result["temporary_password"],
    )


@router.post(
    "/coordinators",
    response_model=CreatedUserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Coordinator",
    description="Create a coordinator with a one-time temporary password.",
)
async def create_coordinator(request: CoordinatorCreate, db: AsyncSession = Depends(get_db)):
    result = await user_service.create_coordinator(db, **request.model_dump())
    return CreatedUserResponse(
        user=UserResponse.model_validate(result["user"]),
        temporary_password=result["temporary_password"],
    )


@router.get("", response_model=PaginatedResponse[UserResponse], summary="List Users")
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    pagination = PaginationParams(page=page, page_size=page_size)
    result = await user_service.list_users(
        db, role=role, limit=pagination.page_size, offset=pagination.offset
    )
    return PaginatedResponse[UserResponse].create(
        items=[UserResponse.model_validate(u) for u in result["items"]],
        total=result["total"],
        pagination=pagination,
    )


@router.patch(
    "/coordinators/{user_id}",
    response_model=UserResponse,
    summary="Update Coordinator",
    description="Changing the coordinator id moves their semesters to the new id.",
)
async def update_coordinator(
    request: CoordinatorUpdate,
    user_id: int = Path(..., description="User ID"),
    db: AsyncSession = Depends(get_db),
):
    updates = request.model_dump(exclude_unset=True)
    return await user_service.update_coordinator(db, user_id, updates)


@router.delete(
    "/coordinators/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Coordinator",
)
async def delete_coordinator(
    user_id: int = Path(..., description="User ID"),
    db: AsyncSession = Depends(get_db),
):
    await user_service.delete_coordinator(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
