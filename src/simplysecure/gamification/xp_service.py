"""XP grant service with idempotency and level-up detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure.db.models import UserXP, XPLedger
from simplysecure.exceptions import InvalidXPAmountError
from simplysecure.gamification.level_thresholds import NinjaLevel, derive_level, level_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class XPGrant:
    """Outcome of one XP grant."""

    amount: int
    total_xp: int
    old_level: NinjaLevel
    new_level: NinjaLevel

    @property
    def leveled_up(self) -> bool:
        return level_entry(self.new_level)["level"] > level_entry(self.old_level)["level"]


async def get_or_create_xp(db: AsyncSession, user_id: int) -> UserXP:
    """Get or create the denormalized XP row for a user."""
    result = await db.execute(select(UserXP).where(UserXP.user_id == user_id))
    xp = result.scalar_one_or_none()
    if xp is None:
        xp = UserXP(
            user_id=user_id,
            total_xp=0,
            tasks_completed=0,
            achievements_unlocked=0,
            updated_at=datetime.now(timezone.utc),
        )
        db.add(xp)
        await db.flush()
    return xp


def _validate_amount(amount: object) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidXPAmountError(amount)
    return amount


async def grant_xp(
    db: AsyncSession,
    user_id: int,
    amount: int,
    source: str,
    source_id: str | None,
    description: str,
    idempotency_key: str | None = None,
) -> XPGrant | None:
    """Grant XP to a user. Returns None if the idempotency key was already used.

    1. Insert into xp_ledger
    2. Update user_xp.total_xp
    3. Re-derive the level from the new total

    Only flushes; the caller owns the transaction.
    """
    amount = _validate_amount(amount)

    if idempotency_key is not None:
        existing = await db.execute(select(XPLedger.id).where(XPLedger.idempotency_key == idempotency_key))
        if existing.scalar_one_or_none() is not None:
            return None

    now = datetime.now(timezone.utc)
    db.add(
        XPLedger(
            user_id=user_id,
            amount=amount,
            source=source,
            source_id=source_id,
            description=description,
            idempotency_key=idempotency_key,
            created_at=now,
        )
    )

    xp = await get_or_create_xp(db, user_id)
    old_level = derive_level(xp.total_xp)
    xp.total_xp += amount
    xp.updated_at = now
    await db.flush()

    grant = XPGrant(amount=amount, total_xp=xp.total_xp, old_level=old_level, new_level=derive_level(xp.total_xp))
    if grant.leveled_up:
        logger.info("User %s leveled up: %s -> %s", user_id, old_level.value, grant.new_level.value)
    return grant


async def _adjust_total(db: AsyncSession, user_id: int, target: int, description: str) -> UserXP:
    """Move the total to ``target`` and log the signed difference."""
    xp = await get_or_create_xp(db, user_id)
    delta = target - xp.total_xp
    now = datetime.now(timezone.utc)
    if delta != 0:
        db.add(
            XPLedger(
                user_id=user_id,
                amount=delta,
                source="adjustment",
                source_id=None,
                description=description,
                idempotency_key=None,
                created_at=now,
            )
        )
    xp.total_xp = target
    xp.updated_at = now
    await db.flush()
    return xp


async def reset_xp(db: AsyncSession, user_id: int) -> UserXP:
    """Reset a user to 0 XP (Novice). Demo/test operation."""
    logger.info("Resetting XP for user %s", user_id)
    return await _adjust_total(db, user_id, 0, "XP reset")


async def set_level(db: AsyncSession, user_id: int, level: NinjaLevel | str) -> UserXP:
    """Admin override: put the user exactly at a level's threshold."""
    entry = level_entry(level)
    logger.info("Setting user %s to level %s", user_id, entry["key"].value)
    return await _adjust_total(db, user_id, entry["xp_required"], f"Level set to {entry['title']}")


async def get_xp_history(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[XPLedger], int]:
    """Return one page of ledger entries (newest first) and the total entry count."""
    total_result = await db.execute(select(func.count(XPLedger.id)).where(XPLedger.user_id == user_id))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(XPLedger)
        .where(XPLedger.user_id == user_id)
        .order_by(XPLedger.created_at.desc(), XPLedger.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
