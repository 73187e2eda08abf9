"""XP ledger: grants, idempotency, admin adjustments and history."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from simplysecure.db.models import XPLedger
from simplysecure.exceptions import InvalidXPAmountError
from simplysecure.gamification.level_thresholds import NinjaLevel
from simplysecure.gamification.xp_service import (
    get_or_create_xp,
    get_xp_history,
    grant_xp,
    reset_xp,
    set_level,
)


async def _grant(db, user_id: int, amount: int, key: str | None = None):
    return await grant_xp(
        db=db,
        user_id=user_id,
        amount=amount,
        source="admin",
        source_id=None,
        description="Manual grant",
        idempotency_key=key,
    )


class TestGrantXP:
    @pytest.mark.asyncio
    async def test_grant_updates_total(self, db_session, user_id):
        grant = await _grant(db_session, user_id, 75)
        assert grant.amount == 75
        assert grant.total_xp == 75
        assert grant.leveled_up is False

    @pytest.mark.asyncio
    async def test_level_boundary(self, db_session, user_id):
        first = await _grant(db_session, user_id, 199)
        assert first.new_level is NinjaLevel.NOVICE

        second = await _grant(db_session, user_id, 1)
        assert second.old_level is NinjaLevel.NOVICE
        assert second.new_level is NinjaLevel.APPRENTICE
        assert second.leveled_up is True

    @pytest.mark.asyncio
    async def test_idempotency_key(self, db_session, user_id):
        assert await _grant(db_session, user_id, 40, key="task:enable-firewall:1") is not None
        assert await _grant(db_session, user_id, 40, key="task:enable-firewall:1") is None

        xp = await get_or_create_xp(db_session, user_id)
        assert xp.total_xp == 40

        rows = (await db_session.execute(select(XPLedger).where(XPLedger.user_id == user_id))).scalars().all()
        assert len(rows) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, True, 2.5])
    async def test_invalid_amounts(self, db_session, user_id, amount):
        with pytest.raises(InvalidXPAmountError):
            await _grant(db_session, user_id, amount)

    @pytest.mark.asyncio
    async def test_multi_level_jump(self, db_session, user_id):
        grant = await _grant(db_session, user_id, 450)
        assert grant.old_level is NinjaLevel.NOVICE
        assert grant.new_level is NinjaLevel.MASTER


class TestAdjustments:
    @pytest.mark.asyncio
    async def test_reset(self, db_session, user_id):
        await _grant(db_session, user_id, 250)
        xp = await reset_xp(db_session, user_id)
        assert xp.total_xp == 0

        entries, _ = await get_xp_history(db_session, user_id)
        assert entries[0].source == "adjustment"
        assert entries[0].amount == -250

    @pytest.mark.asyncio
    async def test_reset_at_zero_writes_nothing(self, db_session, user_id):
        await reset_xp(db_session, user_id)
        _, total = await get_xp_history(db_session, user_id)
        assert total == 0

    @pytest.mark.asyncio
    async def test_set_level(self, db_session, user_id):
        xp = await set_level(db_session, user_id, NinjaLevel.MASTER)
        assert xp.total_xp == 400

        xp = await set_level(db_session, user_id, "apprentice")
        assert xp.total_xp == 200

        entries, total = await get_xp_history(db_session, user_id)
        assert total == 2
        assert sorted(e.amount for e in entries) == [-200, 400]


class TestHistory:
    @pytest.mark.asyncio
    async def test_pagination(self, db_session, user_id):
        for amount in range(1, 6):
            await _grant(db_session, user_id, amount)

        page_one, total = await get_xp_history(db_session, user_id, page=1, per_page=2)
        page_three, _ = await get_xp_history(db_session, user_id, page=3, per_page=2)
        assert total == 5
        assert len(page_one) == 2
        assert len(page_three) == 1

    @pytest.mark.asyncio
    async def test_newest_first(self, db_session, user_id):
        await _grant(db_session, user_id, 10)
        await _grant(db_session, user_id, 20)
        entries, _ = await get_xp_history(db_session, user_id)
        assert [e.amount for e in entries] == [20, 10]
