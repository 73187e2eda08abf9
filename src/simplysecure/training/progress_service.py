"""Task progress tracking: start, complete, verify and fail catalog tasks.

Every mutating call runs as one unit of work per user: the progress row, the
XP ledger, achievement unlocks and the active-day pointer are committed
together or not at all. Events are published only after the commit.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure import events
from simplysecure.database import commit_or_raise
from simplysecure.db.models import TaskProgress, User
from simplysecure.exceptions import (
    InvalidTransitionError,
    NotCompletedError,
    NotStartedError,
    PrerequisitesNotMetError,
    UnknownUserError,
)
from simplysecure.gamification.achievements import (
    ACHIEVEMENT_DEFINITIONS,
    AchievementEvaluator,
    Unlock,
    get_unlocked,
)
from simplysecure.gamification.level_thresholds import compute_level, derive_level, level_entry
from simplysecure.gamification.xp_service import get_or_create_xp, grant_xp
from simplysecure.locks import UserLockRegistry, user_locks
from simplysecure.training.catalog import DEFAULT_CATALOG, Catalog, DailyChallengeSet, SecurityTask
from simplysecure.training.day_progression import advance_user

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    VERIFIED = "verified"
    FAILED = "failed"

    @property
    def is_done(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.VERIFIED)


VALID_TRANSITIONS: dict[TaskStatus, list[TaskStatus]] = {
    TaskStatus.NOT_STARTED: [TaskStatus.IN_PROGRESS],
    TaskStatus.IN_PROGRESS: [TaskStatus.COMPLETED, TaskStatus.FAILED],
    TaskStatus.COMPLETED: [TaskStatus.VERIFIED],
    TaskStatus.VERIFIED: [],
    TaskStatus.FAILED: [TaskStatus.IN_PROGRESS],
}

DONE_STATUSES = [TaskStatus.COMPLETED.value, TaskStatus.VERIFIED.value]


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


def verification_bonus(task: SecurityTask) -> int:
    """Bonus XP for verifying a completed task: half the reward, rounded down."""
    return task.xp_reward // 2


class TrainingService:
    """Drives the per-user task state machine and everything it triggers."""

    def __init__(
        self,
        db: AsyncSession,
        redis: object | None = None,
        catalog: Catalog = DEFAULT_CATALOG,
        enforce_prerequisites: bool = False,
        locks: UserLockRegistry = user_locks,
    ) -> None:
        self.db = db
        self.redis = redis
        self.catalog = catalog
        self.enforce_prerequisites = enforce_prerequisites
        self.locks = locks

    # --- Helpers ---

    async def _load_user(self, user_id: int, for_update: bool = False) -> User:
        stmt = select(User).where(User.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        user = result.scalar_one_or_none()
        if user is None:
            raise UnknownUserError(user_id)
        return user

    @asynccontextmanager
    async def _unit_of_work(self, user_id: int) -> AsyncIterator[User]:
        """Serialize on the user and roll back anything left open on failure."""
        async with self.locks.lock_for(user_id):
            try:
                yield await self._load_user(user_id, for_update=True)
            except BaseException:
                await self.db.rollback()
                raise

    async def _get_row(self, user_id: int, task_id: str) -> TaskProgress | None:
        result = await self.db.execute(
            select(TaskProgress).where(
                TaskProgress.user_id == user_id,
                TaskProgress.task_id == task_id,
            )
        )
        return result.scalar_one_or_none()

    async def _rows(self, user_id: int) -> dict[str, TaskProgress]:
        result = await self.db.execute(select(TaskProgress).where(TaskProgress.user_id == user_id))
        return {row.task_id: row for row in result.scalars()}

    async def _done_task_ids(self, user_id: int) -> set[str]:
        result = await self.db.execute(
            select(TaskProgress.task_id).where(
                TaskProgress.user_id == user_id,
                TaskProgress.status.in_(DONE_STATUSES),
            )
        )
        known = {t.id for t in self.catalog}
        return {task_id for task_id in result.scalars() if task_id in known}

    async def missing_prerequisites(self, user_id: int, task: SecurityTask) -> list[SecurityTask]:
        done = await self._done_task_ids(user_id)
        return [p for p in self.catalog.prerequisites_of(task) if p.id not in done]

    async def _after_progress(self, user: User) -> tuple[list[Unlock], bool]:
        """Achievement evaluation then day progression, both inside the open transaction."""
        done = await self._done_task_ids(user.id)
        unlocks = await AchievementEvaluator(self.db, self.catalog).evaluate(user.id, done)
        day_advanced = advance_user(user, done, self.catalog)
        await self.db.flush()
        return unlocks, day_advanced

    @staticmethod
    def _status_of(row: TaskProgress | None) -> TaskStatus:
        return TaskStatus(row.status) if row is not None else TaskStatus.NOT_STARTED

    async def _publish_outcome(self, channel: str, user_id: int, task: SecurityTask, result: dict) -> None:
        await events.publish(self.redis, channel, {
            "user_id": user_id,
            "task_id": task.id,
            "task_title": task.title,
            "xp_awarded": result["xp_awarded"],
        })
        for unlock in result["achievements_unlocked"]:
            await events.publish(self.redis, events.ACHIEVEMENT_UNLOCKED, {"user_id": user_id, **unlock})
        if result["leveled_up"]:
            await events.publish(self.redis, events.LEVEL_UP, {
                "user_id": user_id,
                "level": result["level"]["key"],
                "title": result["level"]["title"],
                "total_xp": result["total_xp"],
            })
        if result["day_advanced"]:
            await events.publish(self.redis, events.DAY_ADVANCED, {
                "user_id": user_id,
                "previous_day": result["previous_day"],
                "current_day": result["current_day"],
            })

    def _outcome(
        self,
        task: SecurityTask,
        row: TaskProgress,
        user: User,
        total_xp: int,
        old_total: int,
        xp_awarded: int,
        unlocks: list[Unlock],
        day_advanced: bool,
        previous_day: int | None = None,
        **flags: bool,
    ) -> dict:
        old_level = level_entry(derive_level(old_total))["level"]
        level = compute_level(total_xp)
        return {
            "task_id": task.id,
            "status": row.status,
            "xp_awarded": xp_awarded,
            "achievements_unlocked": [
                {"slug": u.slug, "title": u.title, "xp_awarded": u.xp_awarded} for u in unlocks
            ],
            "total_xp": total_xp,
            "level": level,
            "leveled_up": level["level"] > old_level,
            "current_day": user.current_day,
            "previous_day": user.current_day if previous_day is None else previous_day,
            "day_advanced": day_advanced,
            **flags,
        }

    # --- Transitions ---

    async def start_task(self, user_id: int, ref: str) -> dict:
        """Move a task to in progress. Starting an in-progress task again is a no-op."""
        task = self.catalog.resolve(ref)

        async with self._unit_of_work(user_id):
            row = await self._get_row(user_id, task.id)
            status = self._status_of(row)

            if status is TaskStatus.IN_PROGRESS:
                return {
                    "task_id": task.id,
                    "status": status.value,
                    "started_at": row.started_at,
                    "already_started": True,
                    "missing_prerequisites": [],
                }
            if not can_transition(status, TaskStatus.IN_PROGRESS):
                raise InvalidTransitionError(
                    f"Task {task.id!r} cannot be started again (status: {status.value})", task.id, status.value
                )

            missing = await self.missing_prerequisites(user_id, task)
            if missing and self.enforce_prerequisites:
                raise PrerequisitesNotMetError(task.id, [p.title for p in missing])

            now = datetime.now(timezone.utc)
            if row is None:
                row = TaskProgress(
                    user_id=user_id,
                    task_id=task.id,
                    status=TaskStatus.IN_PROGRESS.value,
                    started_at=now,
                    notes="",
                    xp_earned=0,
                    updated_at=now,
                )
                self.db.add(row)
            else:
                row.status = TaskStatus.IN_PROGRESS.value
                row.started_at = now
                row.failed_at = None
                row.updated_at = now

            await commit_or_raise(self.db, f"start of task {task.id}")

        logger.info("User %s started task %s", user_id, task.id)
        return {
            "task_id": task.id,
            "status": TaskStatus.IN_PROGRESS.value,
            "started_at": now,
            "already_started": False,
            "missing_prerequisites": [p.title for p in missing],
        }

    async def complete_task(self, user_id: int, ref: str, notes: str = "") -> dict:
        """Complete an in-progress task: award its XP, check achievements, advance the day."""
        task = self.catalog.resolve(ref)

        async with self._unit_of_work(user_id) as user:
            row = await self._get_row(user_id, task.id)
            status = self._status_of(row)
            xp = await get_or_create_xp(self.db, user_id)

            if status.is_done:
                return self._outcome(
                    task, row, user, xp.total_xp, xp.total_xp, 0, [], False, already_completed=True
                )
            if status is not TaskStatus.IN_PROGRESS:
                raise NotStartedError(task.id, status.value)

            old_total = xp.total_xp
            now = datetime.now(timezone.utc)
            row.status = TaskStatus.COMPLETED.value
            row.completed_at = now
            row.notes = notes
            row.xp_earned = task.xp_reward
            row.updated_at = now
            xp.tasks_completed += 1

            grant = await grant_xp(
                db=self.db,
                user_id=user_id,
                amount=task.xp_reward,
                source="task",
                source_id=task.id,
                description=f'Completed task: "{task.title}"',
                idempotency_key=f"task:{task.id}:{user_id}",
            )
            previous_day = user.current_day
            unlocks, day_advanced = await self._after_progress(user)
            await commit_or_raise(self.db, f"completion of task {task.id}")

        result = self._outcome(
            task,
            row,
            user,
            xp.total_xp,
            old_total,
            grant.amount if grant else 0,
            unlocks,
            day_advanced,
            previous_day=previous_day,
            already_completed=False,
        )
        logger.info("User %s completed task %s (+%s XP)", user_id, task.id, result["xp_awarded"])
        await self._publish_outcome(events.TASK_COMPLETED, user_id, task, result)
        return result

    async def verify_task(self, user_id: int, ref: str) -> dict:
        """Verify a completed task for half its reward in bonus XP."""
        task = self.catalog.resolve(ref)

        async with self._unit_of_work(user_id) as user:
            row = await self._get_row(user_id, task.id)
            status = self._status_of(row)
            xp = await get_or_create_xp(self.db, user_id)

            if status is TaskStatus.VERIFIED:
                return self._outcome(
                    task, row, user, xp.total_xp, xp.total_xp, 0, [], False, already_verified=True
                )
            if status is not TaskStatus.COMPLETED:
                raise NotCompletedError(task.id, status.value)

            old_total = xp.total_xp
            now = datetime.now(timezone.utc)
            row.status = TaskStatus.VERIFIED.value
            row.verified_at = now
            row.updated_at = now

            bonus = verification_bonus(task)
            grant = None
            if bonus > 0:
                grant = await grant_xp(
                    db=self.db,
                    user_id=user_id,
                    amount=bonus,
                    source="verification",
                    source_id=task.id,
                    description=f'Verified task: "{task.title}"',
                    idempotency_key=f"verify:{task.id}:{user_id}",
                )
                if grant is not None:
                    row.xp_earned += grant.amount

            previous_day = user.current_day
            unlocks, day_advanced = await self._after_progress(user)
            await commit_or_raise(self.db, f"verification of task {task.id}")

        result = self._outcome(
            task,
            row,
            user,
            xp.total_xp,
            old_total,
            grant.amount if grant else 0,
            unlocks,
            day_advanced,
            previous_day=previous_day,
            already_verified=False,
        )
        logger.info("User %s verified task %s (+%s XP)", user_id, task.id, result["xp_awarded"])
        await self._publish_outcome(events.TASK_VERIFIED, user_id, task, result)
        return result

    async def fail_task(self, user_id: int, ref: str, notes: str = "") -> dict:
        """Record that applying an in-progress task failed. The task can be started again."""
        task = self.catalog.resolve(ref)

        async with self._unit_of_work(user_id):
            row = await self._get_row(user_id, task.id)
            status = self._status_of(row)

            if status.is_done:
                raise InvalidTransitionError(
                    f"Task {task.id!r} is already {status.value} and cannot fail", task.id, status.value
                )
            if status is not TaskStatus.IN_PROGRESS:
                raise NotStartedError(task.id, status.value)

            now = datetime.now(timezone.utc)
            row.status = TaskStatus.FAILED.value
            row.failed_at = now
            row.updated_at = now
            if notes:
                row.notes = notes

            await commit_or_raise(self.db, f"failure of task {task.id}")

        logger.info("User %s failed task %s", user_id, task.id)
        return {"task_id": task.id, "status": TaskStatus.FAILED.value, "failed_at": now, "notes": row.notes}

    # --- Reads ---

    def _task_entry(self, task: SecurityTask, row: TaskProgress | None) -> dict:
        return {
            "task_id": task.id,
            "title": task.title,
            "day": task.day,
            "order": task.order,
            "category": task.category.value,
            "xp_reward": task.xp_reward,
            "status": self._status_of(row).value,
            "started_at": row.started_at if row else None,
            "completed_at": row.completed_at if row else None,
            "verified_at": row.verified_at if row else None,
            "failed_at": row.failed_at if row else None,
            "notes": row.notes if row else "",
            "xp_earned": row.xp_earned if row else 0,
        }

    def _day_entry(self, challenge: DailyChallengeSet, rows: dict[str, TaskProgress], current_day: int) -> dict:
        completed = sum(1 for tid in challenge.task_ids if self._status_of(rows.get(tid)).is_done)
        total = len(challenge.tasks)
        return {
            "day": challenge.day,
            "title": challenge.title,
            "theme": challenge.theme,
            "completion_badge": challenge.completion_badge,
            "completed_tasks": completed,
            "total_tasks": total,
            "progress": completed / total if total else 1.0,
            "is_complete": completed == total,
            "is_unlocked": challenge.day <= current_day,
        }

    async def get_progress(self, user_id: int) -> dict:
        """Full progress snapshot: tasks, achievements, XP, level and days."""
        user = await self._load_user(user_id)
        rows = await self._rows(user_id)
        xp = await get_or_create_xp(self.db, user_id)
        unlocked = await get_unlocked(self.db, user_id)

        achievements = []
        for definition in ACHIEVEMENT_DEFINITIONS:
            row = unlocked.get(definition["slug"])
            achievements.append({
                "slug": definition["slug"],
                "title": definition["title"],
                "description": definition["description"],
                "xp_reward": definition["xp_reward"],
                "is_unlocked": row is not None,
                "unlocked_at": row.unlocked_at if row else None,
            })

        return {
            "user_id": user.id,
            "current_day": user.current_day,
            "total_xp": xp.total_xp,
            "level": compute_level(xp.total_xp),
            "tasks": [self._task_entry(task, rows.get(task.id)) for task in self.catalog],
            "achievements": achievements,
            "days": [self._day_entry(c, rows, user.current_day) for c in self.catalog.days],
        }

    async def get_day_progress(self, user_id: int, day: int) -> dict:
        """Progress within one challenge day."""
        challenge = self.catalog.day(day)
        user = await self._load_user(user_id)
        rows = await self._rows(user_id)
        entry = self._day_entry(challenge, rows, user.current_day)
        entry["tasks"] = [self._task_entry(task, rows.get(task.id)) for task in challenge.tasks]
        return entry
