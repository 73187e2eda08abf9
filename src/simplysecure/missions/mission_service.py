"""Security scan missions: one mission per scanner check.

The scanner itself runs elsewhere and posts its check results here. A check
that passed counts as a completed mission; a failed check stays open until
the user fixes it and completes the mission by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure import events
from simplysecure.database import commit_or_raise
from simplysecure.db.models import Mission, User
from simplysecure.exceptions import UnknownMissionError, UnknownUserError
from simplysecure.gamification.level_thresholds import compute_level
from simplysecure.gamification.xp_service import get_or_create_xp, grant_xp
from simplysecure.locks import UserLockRegistry, user_locks

logger = logging.getLogger(__name__)

MAX_SECURITY_SCORE = 100


@dataclass(frozen=True)
class ScanResult:
    name: str
    passed: bool
    message: str
    points: int
    fix_instructions: str = ""


def security_score(missions: list[Mission]) -> int:
    """Sum of points of the checks that passed in the latest scan."""
    return sum(m.xp_reward for m in missions if m.passed)


class MissionService:
    def __init__(
        self,
        db: AsyncSession,
        redis: object | None = None,
        locks: UserLockRegistry = user_locks,
    ) -> None:
        self.db = db
        self.redis = redis
        self.locks = locks

    async def _require_user(self, user_id: int) -> None:
        if await self.db.get(User, user_id) is None:
            raise UnknownUserError(user_id)

    async def list_missions(self, user_id: int) -> list[Mission]:
        await self._require_user(user_id)
        result = await self.db.execute(select(Mission).where(Mission.user_id == user_id).order_by(Mission.id))
        return list(result.scalars().all())

    async def sync_missions(self, user_id: int, results: list[ScanResult]) -> list[Mission]:
        """Replace the user's open missions with the latest scan.

        Completed missions stay completed even if the check fails again.
        A name repeated within one scan keeps its last result.
        Open missions missing from the scan are dropped.
        """
        async with self.locks.lock_for(user_id):
            await self._require_user(user_id)
            existing = {m.mission_id: m for m in await self.list_missions(user_id)}
            now = datetime.now(timezone.utc)
            seen: set[str] = set()

            for r in results:
                seen.add(r.name)
                mission = existing.get(r.name)
                if mission is None:
                    mission = Mission(
                        user_id=user_id,
                        mission_id=r.name,
                        is_completed=False,
                        xp_awarded=0,
                    )
                    self.db.add(mission)
                    existing[r.name] = mission
                mission.title = r.name
                mission.description = r.message
                mission.xp_reward = r.points
                mission.passed = r.passed
                mission.fix_instructions = r.fix_instructions
                mission.updated_at = now
                if r.passed and not mission.is_completed:
                    mission.is_completed = True
                    mission.completed_at = now

            for mission_id, mission in existing.items():
                if mission_id not in seen and not mission.is_completed:
                    await self.db.delete(mission)

            await commit_or_raise(self.db, "mission sync")

        logger.info("Synced %d missions for user %s", len(results), user_id)
        return await self.list_missions(user_id)

    async def complete_mission(self, user_id: int, mission_id: str) -> dict:
        """Mark a mission done and award its points once."""
        async with self.locks.lock_for(user_id):
            await self._require_user(user_id)
            result = await self.db.execute(
                select(Mission).where(Mission.user_id == user_id, Mission.mission_id == mission_id)
            )
            mission = result.scalar_one_or_none()
            if mission is None:
                raise UnknownMissionError(mission_id)

            xp = await get_or_create_xp(self.db, user_id)
            if mission.is_completed:
                return {
                    "mission_id": mission_id,
                    "already_completed": True,
                    "xp_awarded": 0,
                    "total_xp": xp.total_xp,
                    "level": compute_level(xp.total_xp),
                    "leveled_up": False,
                }

            grant = None
            if mission.xp_reward > 0:
                grant = await grant_xp(
                    db=self.db,
                    user_id=user_id,
                    amount=mission.xp_reward,
                    source="mission",
                    source_id=mission_id,
                    description=f'Completed mission: "{mission.title}"',
                    idempotency_key=f"mission:{mission_id}:{user_id}",
                )

            now = datetime.now(timezone.utc)
            mission.is_completed = True
            mission.completed_at = now
            mission.xp_awarded = grant.amount if grant else 0
            mission.updated_at = now
            await commit_or_raise(self.db, f"completion of mission {mission_id}")

        outcome = {
            "mission_id": mission_id,
            "already_completed": False,
            "xp_awarded": mission.xp_awarded,
            "total_xp": xp.total_xp,
            "level": compute_level(xp.total_xp),
            "leveled_up": bool(grant and grant.leveled_up),
        }
        await events.publish(self.redis, events.MISSION_COMPLETED, {
            "user_id": user_id,
            "mission_id": mission_id,
            "xp_awarded": outcome["xp_awarded"],
        })
        if outcome["leveled_up"]:
            await events.publish(self.redis, events.LEVEL_UP, {
                "user_id": user_id,
                "level": outcome["level"]["key"],
                "title": outcome["level"]["title"],
                "total_xp": outcome["total_xp"],
            })
        return outcome
