"""Task progress tracker: transitions, XP, achievements and day unlocks."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from simplysecure.database import get_session
from simplysecure.db.models import TaskProgress, XPLedger
from simplysecure.exceptions import (
    InvalidTransitionError,
    NotCompletedError,
    NotStartedError,
    PersistenceError,
    PrerequisitesNotMetError,
    UnknownTaskError,
    UnknownUserError,
)
from simplysecure.training.catalog import DEFAULT_CATALOG
from simplysecure.training.progress_service import TrainingService


async def _finish(service: TrainingService, user_id: int, task_id: str) -> dict:
    await service.start_task(user_id, task_id)
    return await service.complete_task(user_id, task_id)


async def _ledger_total(db, user_id: int) -> int:
    result = await db.execute(select(func.coalesce(func.sum(XPLedger.amount), 0)).where(XPLedger.user_id == user_id))
    return result.scalar()


class TestStartTask:
    @pytest.mark.asyncio
    async def test_start(self, db_session, user_id):
        service = TrainingService(db_session)
        result = await service.start_task(user_id, "enable-filevault")
        assert result["status"] == "in_progress"
        assert result["already_started"] is False
        assert result["started_at"] is not None

    @pytest.mark.asyncio
    async def test_start_by_title(self, db_session, user_id):
        service = TrainingService(db_session)
        result = await service.start_task(user_id, "Enable macOS Firewall")
        assert result["task_id"] == "enable-firewall"

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, db_session, user_id):
        service = TrainingService(db_session)
        await service.start_task(user_id, "enable-filevault")
        second = await service.start_task(user_id, "enable-filevault")
        assert second["already_started"] is True
        assert second["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_start_completed_task_rejected(self, db_session, user_id):
        service = TrainingService(db_session)
        await _finish(service, user_id, "enable-filevault")
        with pytest.raises(InvalidTransitionError):
            await service.start_task(user_id, "enable-filevault")

    @pytest.mark.asyncio
    async def test_unknown_task(self, db_session, user_id):
        with pytest.raises(UnknownTaskError):
            await TrainingService(db_session).start_task(user_id, "format-disk")

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(UnknownUserError):
            await TrainingService(db_session).start_task(9999, "enable-filevault")

    @pytest.mark.asyncio
    async def test_prerequisites_reported(self, db_session, user_id):
        result = await TrainingService(db_session).start_task(user_id, "configure-dns-privacy")
        assert result["status"] == "in_progress"
        assert result["missing_prerequisites"] == ["Enable macOS Firewall"]

    @pytest.mark.asyncio
    async def test_prerequisites_enforced(self, db_session, user_id):
        service = TrainingService(db_session, enforce_prerequisites=True)
        with pytest.raises(PrerequisitesNotMetError) as exc_info:
            await service.start_task(user_id, "configure-dns-privacy")
        assert exc_info.value.missing == ["Enable macOS Firewall"]

        await _finish(service, user_id, "enable-firewall")
        result = await service.start_task(user_id, "configure-dns-privacy")
        assert result["missing_prerequisites"] == []


class TestCompleteTask:
    @pytest.mark.asyncio
    async def test_first_completion(self, db_session, user_id):
        service = TrainingService(db_session)
        await service.start_task(user_id, "enable-filevault")
        result = await service.complete_task(user_id, "enable-filevault", notes="Recovery key stored")

        assert result["status"] == "completed"
        assert result["xp_awarded"] == 50
        assert [a["slug"] for a in result["achievements_unlocked"]] == ["security-novice"]
        # 50 for the task + 50 for Security Novice
        assert result["total_xp"] == 100
        assert result["level"]["key"] == "novice"
        assert result["leveled_up"] is False
        assert result["already_completed"] is False
        assert await _ledger_total(db_session, user_id) == 100

    @pytest.mark.asyncio
    async def test_complete_without_start(self, db_session, user_id):
        service = TrainingService(db_session)
        with pytest.raises(NotStartedError):
            await service.complete_task(user_id, "enable-filevault")

        progress = await service.get_progress(user_id)
        assert progress["total_xp"] == 0

    @pytest.mark.asyncio
    async def test_complete_twice_awards_once(self, db_session, user_id):
        service = TrainingService(db_session)
        await _finish(service, user_id, "enable-firewall")
        again = await service.complete_task(user_id, "enable-firewall")

        assert again["already_completed"] is True
        assert again["xp_awarded"] == 0
        assert again["achievements_unlocked"] == []
        assert again["total_xp"] == 90
        assert await _ledger_total(db_session, user_id) == 90

    @pytest.mark.asyncio
    async def test_notes_saved(self, db_session, user_id):
        service = TrainingService(db_session)
        await service.start_task(user_id, "enable-firewall")
        await service.complete_task(user_id, "enable-firewall", notes="Stealth mode on")
        row = (
            await db_session.execute(select(TaskProgress).where(TaskProgress.task_id == "enable-firewall"))
        ).scalar_one()
        assert row.notes == "Stealth mode on"
        assert row.xp_earned == 40

    @pytest.mark.asyncio
    async def test_level_up_flag(self, db_session, user_id):
        service = TrainingService(db_session)
        results = [await _finish(service, user_id, tid) for tid in DEFAULT_CATALOG.day(1).task_ids[:4]]
        # 50 + 40 + 35 + 25 of tasks plus 50 for Security Novice reaches 200
        assert [r["leveled_up"] for r in results] == [False, False, False, True]
        assert results[-1]["level"]["key"] == "apprentice"


class TestVerifyTask:
    @pytest.mark.asyncio
    async def test_verify_awards_half(self, db_session, user_id):
        service = TrainingService(db_session)
        await _finish(service, user_id, "enable-filevault")
        result = await service.verify_task(user_id, "enable-filevault")

        assert result["status"] == "verified"
        assert result["xp_awarded"] == 25
        assert result["total_xp"] == 125
        assert result["already_verified"] is False

    @pytest.mark.asyncio
    async def test_verify_twice_awards_once(self, db_session, user_id):
        service = TrainingService(db_session)
        await _finish(service, user_id, "enable-filevault")
        await service.verify_task(user_id, "enable-filevault")
        again = await service.verify_task(user_id, "enable-filevault")
        assert again["already_verified"] is True
        assert again["xp_awarded"] == 0
        assert again["total_xp"] == 125

    @pytest.mark.asyncio
    async def test_verify_requires_completion(self, db_session, user_id):
        service = TrainingService(db_session)
        with pytest.raises(NotCompletedError):
            await service.verify_task(user_id, "enable-filevault")
        await service.start_task(user_id, "enable-filevault")
        with pytest.raises(NotCompletedError):
            await service.verify_task(user_id, "enable-filevault")

    @pytest.mark.asyncio
    async def test_complete_after_verify_is_noop(self, db_session, user_id):
        service = TrainingService(db_session)
        await _finish(service, user_id, "enable-filevault")
        await service.verify_task(user_id, "enable-filevault")
        result = await service.complete_task(user_id, "enable-filevault")
        assert result["already_completed"] is True
        assert result["status"] == "verified"
        assert result["xp_awarded"] == 0


class TestFailTask:
    @pytest.mark.asyncio
    async def test_fail_and_restart(self, db_session, user_id):
        service = TrainingService(db_session)
        await service.start_task(user_id, "configure-time-machine")
        failed = await service.fail_task(user_id, "configure-time-machine", notes="No backup disk")
        assert failed["status"] == "failed"
        assert failed["notes"] == "No backup disk"

        restarted = await service.start_task(user_id, "configure-time-machine")
        assert restarted["status"] == "in_progress"
        done = await service.complete_task(user_id, "configure-time-machine")
        assert done["xp_awarded"] == 80

    @pytest.mark.asyncio
    async def test_fail_requires_in_progress(self, db_session, user_id):
        with pytest.raises(NotStartedError):
            await TrainingService(db_session).fail_task(user_id, "enable-sip")

    @pytest.mark.asyncio
    async def test_cannot_fail_completed(self, db_session, user_id):
        service = TrainingService(db_session)
        await _finish(service, user_id, "enable-sip")
        with pytest.raises(InvalidTransitionError):
            await service.fail_task(user_id, "enable-sip")


class TestDayProgression:
    @pytest.mark.asyncio
    async def test_day_unlocks_after_last_task(self, db_session, user_id):
        service = TrainingService(db_session)
        day_one = DEFAULT_CATALOG.day(1).task_ids
        for tid in day_one[:-1]:
            result = await _finish(service, user_id, tid)
            assert result["current_day"] == 1
            assert result["day_advanced"] is False

        last = await _finish(service, user_id, day_one[-1])
        assert last["current_day"] == 2
        assert last["day_advanced"] is True
        assert "foundation-builder" in [a["slug"] for a in last["achievements_unlocked"]]

    @pytest.mark.asyncio
    async def test_later_day_tasks_do_not_advance(self, db_session, user_id):
        service = TrainingService(db_session)
        for tid in DEFAULT_CATALOG.day(2).task_ids:
            await _finish(service, user_id, tid)
        progress = await service.get_progress(user_id)
        assert progress["current_day"] == 1

    @pytest.mark.asyncio
    async def test_cascade_when_current_day_finishes_last(self, db_session, user_id):
        service = TrainingService(db_session)
        for tid in DEFAULT_CATALOG.day(2).task_ids:
            await _finish(service, user_id, tid)
        for tid in DEFAULT_CATALOG.day(1).task_ids:
            result = await _finish(service, user_id, tid)
        assert result["current_day"] == 3
        assert result["previous_day"] == 1
        assert result["day_advanced"] is True


class TestFullProgram:
    @pytest.mark.asyncio
    async def test_all_fifteen_tasks(self, db_session, user_id):
        service = TrainingService(db_session)
        unlocked = []
        for task in DEFAULT_CATALOG:
            result = await _finish(service, user_id, task.id)
            unlocked.extend(a["slug"] for a in result["achievements_unlocked"])

        assert unlocked == ["security-novice", "foundation-builder", "security-master"]
        # 980 task XP + 50 + 200 + 500 achievement XP
        assert result["total_xp"] == 1730
        assert result["current_day"] == 3
        assert result["level"]["key"] == "master"

        progress = await service.get_progress(user_id)
        assert all(d["is_complete"] for d in progress["days"])
        assert all(d["progress"] == 1.0 for d in progress["days"])
        assert await _ledger_total(db_session, user_id) == 1730


class TestProgressSnapshot:
    @pytest.mark.asyncio
    async def test_fresh_user(self, db_session, user_id):
        progress = await TrainingService(db_session).get_progress(user_id)
        assert progress["current_day"] == 1
        assert progress["total_xp"] == 0
        assert len(progress["tasks"]) == 15
        assert all(t["status"] == "not_started" for t in progress["tasks"])
        assert [d["is_unlocked"] for d in progress["days"]] == [True, False, False]
        assert all(not a["is_unlocked"] for a in progress["achievements"])

    @pytest.mark.asyncio
    async def test_day_progress(self, db_session, user_id):
        service = TrainingService(db_session)
        await _finish(service, user_id, "enable-filevault")
        await service.start_task(user_id, "enable-firewall")
        day = await service.get_day_progress(user_id, 1)

        assert day["completed_tasks"] == 1
        assert day["total_tasks"] == 5
        assert day["progress"] == pytest.approx(0.2)
        statuses = {t["task_id"]: t["status"] for t in day["tasks"]}
        assert statuses["enable-filevault"] == "completed"
        assert statuses["enable-firewall"] == "in_progress"


class TestAtomicity:
    @pytest.mark.asyncio
    async def test_failed_commit_rolls_back_everything(self, db_session, user_id, monkeypatch):
        service = TrainingService(db_session)
        await service.start_task(user_id, "enable-filevault")

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(PersistenceError):
            await service.complete_task(user_id, "enable-filevault")
        monkeypatch.undo()

        progress = await service.get_progress(user_id)
        statuses = {t["task_id"]: t["status"] for t in progress["tasks"]}
        assert progress["total_xp"] == 0
        assert statuses["enable-filevault"] == "in_progress"
        assert all(not a["is_unlocked"] for a in progress["achievements"])
        assert await _ledger_total(db_session, user_id) == 0


async def _finish_in_own_session(user_id: int, task_id: str) -> dict:
    sessions = get_session()
    session = await sessions.__anext__()
    try:
        return await _finish(TrainingService(session), user_id, task_id)
    finally:
        await sessions.aclose()


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_completions_lose_no_xp(self, db_session, user_id):
        task_ids = ["enable-filevault", "enable-firewall", "configure-privacy-settings"]
        results = await asyncio.gather(*(_finish_in_own_session(user_id, tid) for tid in task_ids))

        # 50 + 40 + 35 of tasks plus 50 for Security Novice
        assert sorted(r["total_xp"] for r in results)[-1] == 175
        assert len({r["total_xp"] for r in results}) == 3
        assert sum(r["xp_awarded"] for r in results) == 125
        assert sum(len(r["achievements_unlocked"]) for r in results) == 1

        db_session.expire_all()
        progress = await TrainingService(db_session).get_progress(user_id)
        assert progress["total_xp"] == 175
        assert await _ledger_total(db_session, user_id) == 175
