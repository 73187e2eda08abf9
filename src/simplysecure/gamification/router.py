"""Gamification API endpoints: levels, XP, achievements and admin overrides."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure.config import get_settings
from simplysecure.database import commit_or_raise
from simplysecure.dependencies import get_db
from simplysecure.gamification.achievements import ACHIEVEMENT_DEFINITIONS, get_unlocked
from simplysecure.gamification.level_thresholds import LEVEL_THRESHOLDS, compute_level
from simplysecure.gamification.schemas import (
    AchievementDefinitionResponse,
    AllAchievementsResponse,
    AllLevelsResponse,
    GrantXPRequest,
    GrantXPResponse,
    LevelEntry,
    LevelInfo,
    SetLevelRequest,
    UserAchievementResponse,
    UserAchievementsResponse,
    XPHistoryEntry,
    XPHistoryResponse,
    XPResponse,
)
from simplysecure.gamification.xp_service import get_or_create_xp, get_xp_history, grant_xp, reset_xp, set_level
from simplysecure.locks import user_locks
from simplysecure.users.service import get_user

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


async def _xp_response(db: AsyncSession, user_id: int) -> XPResponse:
    xp = await get_or_create_xp(db, user_id)
    return XPResponse(
        user_id=user_id,
        total_xp=xp.total_xp,
        tasks_completed=xp.tasks_completed,
        achievements_unlocked=xp.achievements_unlocked,
        level=LevelInfo(**compute_level(xp.total_xp)),
    )


# ── Public endpoints ──


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level definitions."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(
                key=t["key"].value,
                level=t["level"],
                title=t["title"],
                xp_required=t["xp_required"],
                next_level_xp=t["next_level_xp"],
            )
            for t in LEVEL_THRESHOLDS
        ]
    )


@router.get("/achievements", response_model=AllAchievementsResponse)
async def list_achievements():
    """Get all achievement definitions."""
    return AllAchievementsResponse(
        achievements=[
            AchievementDefinitionResponse(
                slug=a["slug"],
                title=a["title"],
                description=a["description"],
                icon=a["icon"],
                category=a["category"],
                requirement=a["requirement"],
                xp_reward=a["xp_reward"],
            )
            for a in ACHIEVEMENT_DEFINITIONS
        ]
    )


# ── Per-user endpoints ──


@router.get("/users/{user_id}/xp", response_model=XPResponse)
async def get_user_xp(user_id: int, db: AsyncSession = Depends(get_db)):
    """Get a user's XP and derived level."""
    await get_user(db, user_id)
    return await _xp_response(db, user_id)


@router.get("/users/{user_id}/xp/history", response_model=XPHistoryResponse)
async def get_user_xp_history(
    user_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Get XP ledger history (paginated)."""
    await get_user(db, user_id)
    per_page = min(per_page, get_settings().xp_history_max_per_page)
    entries, total = await get_xp_history(db, user_id, page=page, per_page=per_page)
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                amount=e.amount,
                source=e.source,
                source_id=e.source_id,
                description=e.description,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/{user_id}/achievements", response_model=UserAchievementsResponse)
async def get_user_achievements(user_id: int, db: AsyncSession = Depends(get_db)):
    """Get every achievement with the user's unlock state."""
    await get_user(db, user_id)
    unlocked = await get_unlocked(db, user_id)
    items = [
        UserAchievementResponse(
            slug=a["slug"],
            title=a["title"],
            xp_reward=a["xp_reward"],
            is_unlocked=a["slug"] in unlocked,
            unlocked_at=unlocked[a["slug"]].unlocked_at if a["slug"] in unlocked else None,
        )
        for a in ACHIEVEMENT_DEFINITIONS
    ]
    return UserAchievementsResponse(
        achievements=items,
        total_available=len(items),
        total_unlocked=sum(1 for i in items if i.is_unlocked),
    )


# ── Admin endpoints ──


@router.post("/admin/users/{user_id}/xp", response_model=GrantXPResponse)
async def admin_grant_xp(user_id: int, body: GrantXPRequest, db: AsyncSession = Depends(get_db)):
    """Grant XP by hand."""
    async with user_locks.lock_for(user_id):
        await get_user(db, user_id)
        grant = await grant_xp(
            db=db,
            user_id=user_id,
            amount=body.amount,
            source="admin",
            source_id=None,
            description=body.description,
        )
        await commit_or_raise(db, "XP grant")

    logger.info("admin_xp_granted", user_id=user_id, amount=body.amount)
    return GrantXPResponse(
        xp_awarded=grant.amount,
        total_xp=grant.total_xp,
        level=LevelInfo(**compute_level(grant.total_xp)),
        leveled_up=grant.leveled_up,
    )


@router.post("/admin/users/{user_id}/xp/reset", response_model=XPResponse)
async def admin_reset_xp(user_id: int, db: AsyncSession = Depends(get_db)):
    """Reset a user to 0 XP."""
    async with user_locks.lock_for(user_id):
        await get_user(db, user_id)
        await reset_xp(db, user_id)
        await commit_or_raise(db, "XP reset")
    logger.info("admin_xp_reset", user_id=user_id)
    return await _xp_response(db, user_id)


@router.post("/admin/users/{user_id}/level", response_model=XPResponse)
async def admin_set_level(user_id: int, body: SetLevelRequest, db: AsyncSession = Depends(get_db)):
    """Put a user exactly at a level's XP threshold."""
    async with user_locks.lock_for(user_id):
        await get_user(db, user_id)
        await set_level(db, user_id, body.level)
        await commit_or_raise(db, "level override")
    logger.info("admin_level_set", user_id=user_id, level=body.level.value)
    return await _xp_response(db, user_id)
