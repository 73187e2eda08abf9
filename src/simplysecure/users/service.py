"""User profile business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from simplysecure.database import commit_or_raise
from simplysecure.db.models import User, UserXP
from simplysecure.exceptions import UnknownUserError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

DEFAULT_USERNAME = "Security Ninja"


async def create_user(db: AsyncSession, username: str | None = None) -> User:
    """Create a trainee on day 1 with an empty XP summary."""
    now = datetime.now(timezone.utc)
    user = User(
        username=(username or "").strip() or DEFAULT_USERNAME,
        current_day=1,
        created_at=now,
        last_login_at=now,
    )
    db.add(user)
    await db.flush()

    db.add(UserXP(user_id=user.id, total_xp=0, tasks_completed=0, achievements_unlocked=0, updated_at=now))
    await commit_or_raise(db, "new user")

    logger.info("user_created", user_id=user.id, username=user.username)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    """Fetch a user or raise UnknownUserError."""
    user = await db.get(User, user_id)
    if user is None:
        raise UnknownUserError(user_id)
    return user


async def record_login(db: AsyncSession, user_id: int) -> User:
    """Touch last_login_at."""
    user = await get_user(db, user_id)
    user.last_login_at = datetime.now(timezone.utc)
    await commit_or_raise(db, "login")
    return user
