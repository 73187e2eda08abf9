"""Training API endpoints: the task catalog and per-user task progress."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure.dependencies import get_catalog, get_db, get_redis_dep, prerequisites_enforced
from simplysecure.training.catalog import Catalog
from simplysecure.training.progress_service import TrainingService
from simplysecure.training.schemas import (
    AllChallengesResponse,
    ChallengeSetResponse,
    NotesRequest,
    TaskResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Training"])


def get_training_service(
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
    catalog: Catalog = Depends(get_catalog),
    enforce: bool = Depends(prerequisites_enforced),
) -> TrainingService:
    return TrainingService(db, redis=redis, catalog=catalog, enforce_prerequisites=enforce)


# ---- Catalog (public) ----


@router.get("/training/challenges", response_model=AllChallengesResponse)
async def list_challenges(catalog: Catalog = Depends(get_catalog)):
    """All daily challenge sets with their tasks."""
    days = [ChallengeSetResponse.from_set(c) for c in catalog.days]
    return AllChallengesResponse(
        days=days,
        total_tasks=len(catalog),
        total_xp=sum(d.total_xp for d in days),
    )


@router.get("/training/challenges/{day}", response_model=ChallengeSetResponse)
async def get_challenge(day: int, catalog: Catalog = Depends(get_catalog)):
    """One day's challenge set."""
    return ChallengeSetResponse.from_set(catalog.day(day))


@router.get("/training/tasks/{ref}", response_model=TaskResponse)
async def get_task(ref: str, catalog: Catalog = Depends(get_catalog)):
    """A task by slug id or title."""
    return TaskResponse.from_task(catalog.resolve(ref))


# ---- Progress ----


@router.post("/users/{user_id}/tasks/{ref}/start")
async def start_task(user_id: int, ref: str, svc: TrainingService = Depends(get_training_service)) -> dict:
    """Start a task. Prerequisites are reported and, if configured, enforced."""
    return await svc.start_task(user_id, ref)


@router.post("/users/{user_id}/tasks/{ref}/complete")
async def complete_task(
    user_id: int,
    ref: str,
    body: NotesRequest | None = None,
    svc: TrainingService = Depends(get_training_service),
) -> dict:
    """Complete an in-progress task and award its XP."""
    return await svc.complete_task(user_id, ref, notes=body.notes if body else "")


@router.post("/users/{user_id}/tasks/{ref}/verify")
async def verify_task(user_id: int, ref: str, svc: TrainingService = Depends(get_training_service)) -> dict:
    """Verify a completed task for bonus XP."""
    return await svc.verify_task(user_id, ref)


@router.post("/users/{user_id}/tasks/{ref}/fail")
async def fail_task(
    user_id: int,
    ref: str,
    body: NotesRequest | None = None,
    svc: TrainingService = Depends(get_training_service),
) -> dict:
    """Record a failed attempt at an in-progress task."""
    return await svc.fail_task(user_id, ref, notes=body.notes if body else "")


@router.get("/users/{user_id}/progress")
async def get_progress(user_id: int, svc: TrainingService = Depends(get_training_service)) -> dict:
    """Tasks, achievements, XP, level and current day for one user."""
    return await svc.get_progress(user_id)


@router.get("/users/{user_id}/days/{day}")
async def get_day_progress(user_id: int, day: int, svc: TrainingService = Depends(get_training_service)) -> dict:
    """Progress within one challenge day."""
    return await svc.get_day_progress(user_id, day)
