"""Achievement definitions and the evaluator that unlocks them.

Achievements are static reference data. Evaluation only ever adds unlocks:
an unlocked achievement is skipped entirely, so it is never re-stamped or
re-awarded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure.db.models import UserAchievement
from simplysecure.gamification.xp_service import XPGrant, get_or_create_xp, grant_xp
from simplysecure.training.catalog import DEFAULT_CATALOG, Catalog

logger = logging.getLogger(__name__)

ACHIEVEMENT_DEFINITIONS: list[dict] = [
    {
        "slug": "security-novice",
        "title": "Security Novice",
        "description": "Complete your first security task",
        "icon": "shield.fill",
        "category": "general",
        "requirement": "Complete 1 task",
        "xp_reward": 50,
        "trigger_type": "tasks_done",
        "trigger_config": {"threshold": 1},
        "sort_order": 1,
    },
    {
        "slug": "foundation-builder",
        "title": "Foundation Builder",
        "description": "Complete all Day 1 tasks",
        "icon": "building.2.fill",
        "category": "general",
        "requirement": "Complete all Day 1 tasks",
        "xp_reward": 200,
        "trigger_type": "day_complete",
        "trigger_config": {"day": 1},
        "sort_order": 2,
    },
    {
        "slug": "privacy-guardian",
        "title": "Privacy Guardian",
        "description": "Complete all privacy-related tasks",
        "icon": "eye.slash.fill",
        "category": "privacy",
        "requirement": "Complete 3 privacy tasks",
        "xp_reward": 150,
        "trigger_type": "category_done",
        "trigger_config": {"category": "privacy", "threshold": 3},
        "sort_order": 3,
    },
    {
        "slug": "network-defender",
        "title": "Network Defender",
        "description": "Complete all networking tasks",
        "icon": "network",
        "category": "networking",
        "requirement": "Complete 2 networking tasks",
        "xp_reward": 100,
        "trigger_type": "category_done",
        "trigger_config": {"category": "networking", "threshold": 2},
        "sort_order": 4,
    },
    {
        "slug": "security-master",
        "title": "Security Master",
        "description": "Complete all 15 security tasks",
        "icon": "crown.fill",
        "category": "general",
        "requirement": "Complete all tasks across all days",
        "xp_reward": 500,
        "trigger_type": "tasks_done",
        "trigger_config": {"threshold": 15},
        "sort_order": 5,
    },
]

ACHIEVEMENTS_BY_SLUG: dict[str, dict] = {a["slug"]: a for a in ACHIEVEMENT_DEFINITIONS}


@dataclass(frozen=True)
class Unlock:
    slug: str
    title: str
    xp_awarded: int
    unlocked_at: datetime
    grant: XPGrant | None


def is_satisfied(definition: dict, done_task_ids: set[str], catalog: Catalog = DEFAULT_CATALOG) -> bool:
    """Check one achievement predicate against the set of completed-or-verified task ids."""
    config = definition["trigger_config"]
    trigger = definition["trigger_type"]

    if trigger == "tasks_done":
        return len(done_task_ids) >= config["threshold"]
    if trigger == "day_complete":
        return set(catalog.day(config["day"]).task_ids) <= done_task_ids
    if trigger == "category_done":
        in_category = {t.id for t in catalog.in_category(config["category"])}
        return len(in_category & done_task_ids) >= config["threshold"]

    logger.warning("Unknown achievement trigger type: %s", trigger)
    return False


async def get_unlocked(db: AsyncSession, user_id: int) -> dict[str, UserAchievement]:
    result = await db.execute(select(UserAchievement).where(UserAchievement.user_id == user_id))
    return {row.achievement_id: row for row in result.scalars()}


class AchievementEvaluator:
    """Unlocks every newly satisfied achievement for a user.

    Runs inside the caller's transaction and only flushes.
    """

    def __init__(
        self,
        db: AsyncSession,
        catalog: Catalog = DEFAULT_CATALOG,
        definitions: Iterable[dict] = ACHIEVEMENT_DEFINITIONS,
    ) -> None:
        self.db = db
        self.catalog = catalog
        self.definitions = list(definitions)

    async def evaluate(self, user_id: int, done_task_ids: set[str]) -> list[Unlock]:
        """Returns the achievements unlocked by this call, in definition order."""
        unlocked = await get_unlocked(self.db, user_id)
        newly: list[Unlock] = []

        for definition in self.definitions:
            if definition["slug"] in unlocked:
                continue
            if not is_satisfied(definition, done_task_ids, self.catalog):
                continue
            newly.append(await self._unlock(user_id, definition))

        return newly

    async def _unlock(self, user_id: int, definition: dict) -> Unlock:
        now = datetime.now(timezone.utc)
        slug = definition["slug"]

        self.db.add(
            UserAchievement(
                user_id=user_id,
                achievement_id=slug,
                xp_awarded=definition["xp_reward"],
                unlocked_at=now,
            )
        )
        await self.db.flush()

        grant = await grant_xp(
            db=self.db,
            user_id=user_id,
            amount=definition["xp_reward"],
            source="achievement",
            source_id=slug,
            description=f'Unlocked achievement: "{definition["title"]}"',
            idempotency_key=f"achievement:{slug}:{user_id}",
        )

        xp = await get_or_create_xp(self.db, user_id)
        xp.achievements_unlocked += 1
        xp.updated_at = now

        logger.info("User %s unlocked achievement %s", user_id, slug)
        return Unlock(
            slug=slug,
            title=definition["title"],
            xp_awarded=definition["xp_reward"],
            unlocked_at=now,
            grant=grant,
        )
