"""User management router: /api/v1/users endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure.db.models import User
from simplysecure.dependencies import get_db
from simplysecure.users.schemas import CreateUserRequest, UserResponse
from simplysecure.users.service import create_user, get_user, record_login

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        current_day=user.current_day,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
    )


@router.post("", response_model=UserResponse, status_code=201)
async def create(body: CreateUserRequest | None = None, db: AsyncSession = Depends(get_db)):
    """Create a trainee profile."""
    user = await create_user(db, username=body.username if body else None)
    return _user_response(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_one(user_id: int, db: AsyncSession = Depends(get_db)):
    """Get a user profile."""
    return _user_response(await get_user(db, user_id))


@router.post("/{user_id}/login", response_model=UserResponse)
async def login(user_id: int, db: AsyncSession = Depends(get_db)):
    """Record a login."""
    return _user_response(await record_login(db, user_id))
