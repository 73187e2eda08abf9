"""Mission API endpoints: security scan results as completable missions."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure.db.models import Mission
from simplysecure.dependencies import get_db, get_redis_dep
from simplysecure.missions.mission_service import MAX_SECURITY_SCORE, MissionService, ScanResult, security_score
from simplysecure.missions.schemas import MissionResponse, MissionsResponse, SyncMissionsRequest

router = APIRouter(prefix="/api/v1/users/{user_id}/missions", tags=["Missions"])


def _missions_response(missions: list[Mission]) -> MissionsResponse:
    return MissionsResponse(
        missions=[
            MissionResponse(
                mission_id=m.mission_id,
                title=m.title,
                description=m.description,
                xp_reward=m.xp_reward,
                passed=m.passed,
                is_completed=m.is_completed,
                xp_awarded=m.xp_awarded,
                fix_instructions=m.fix_instructions,
                completed_at=m.completed_at,
            )
            for m in missions
        ],
        security_score=security_score(missions),
        max_score=MAX_SECURITY_SCORE,
    )


@router.get("", response_model=MissionsResponse)
async def list_missions(user_id: int, db: AsyncSession = Depends(get_db)):
    """Current missions and security score."""
    return _missions_response(await MissionService(db).list_missions(user_id))


@router.put("", response_model=MissionsResponse)
async def sync_missions(
    user_id: int,
    body: SyncMissionsRequest,
    db: AsyncSession = Depends(get_db),
):
    """Replace missions with the latest scan results."""
    results = [ScanResult(**r.model_dump()) for r in body.results]
    return _missions_response(await MissionService(db).sync_missions(user_id, results))


@router.post("/{mission_id}/complete")
async def complete_mission(
    user_id: int,
    mission_id: str,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> dict:
    """Complete a mission and award its points as XP."""
    return await MissionService(db, redis=redis).complete_mission(user_id, mission_id)
