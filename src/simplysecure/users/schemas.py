"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateUserRequest(BaseModel):
    username: str | None = Field(default=None, max_length=64)


class UserResponse(BaseModel):
    id: int
    username: str
    current_day: int
    created_at: datetime
    last_login_at: datetime | None = None
