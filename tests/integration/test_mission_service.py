"""Scanner missions: sync, sticky completion and one-time awards."""

from __future__ import annotations

import pytest

from simplysecure.exceptions import UnknownMissionError, UnknownUserError
from simplysecure.missions.mission_service import MissionService, ScanResult, security_score

SCAN = [
    ScanResult(name="FileVault", passed=True, message="Disk encryption is on", points=20),
    ScanResult(
        name="Firewall",
        passed=False,
        message="Application firewall is off",
        points=15,
        fix_instructions="System Settings > Network > Firewall",
    ),
    ScanResult(name="Gatekeeper", passed=False, message="Gatekeeper is disabled", points=10),
]


class TestSync:
    @pytest.mark.asyncio
    async def test_creates_missions(self, db_session, user_id):
        missions = await MissionService(db_session).sync_missions(user_id, SCAN)
        by_id = {m.mission_id: m for m in missions}

        assert set(by_id) == {"FileVault", "Firewall", "Gatekeeper"}
        assert by_id["FileVault"].is_completed is True
        assert by_id["FileVault"].xp_awarded == 0
        assert by_id["Firewall"].is_completed is False
        assert by_id["Firewall"].fix_instructions.startswith("System Settings")
        assert security_score(missions) == 20

    @pytest.mark.asyncio
    async def test_resync_updates_in_place(self, db_session, user_id):
        service = MissionService(db_session)
        await service.sync_missions(user_id, SCAN)
        fixed = [ScanResult(name="Firewall", passed=True, message="Firewall is on", points=15)]
        missions = await service.sync_missions(user_id, SCAN[:1] + fixed)

        by_id = {m.mission_id: m for m in missions}
        assert by_id["Firewall"].is_completed is True
        assert by_id["Firewall"].description == "Firewall is on"
        # open mission missing from the scan is dropped
        assert "Gatekeeper" not in by_id
        assert security_score(missions) == 35

    @pytest.mark.asyncio
    async def test_completion_is_sticky(self, db_session, user_id):
        service = MissionService(db_session)
        await service.sync_missions(user_id, SCAN)
        regressed = [ScanResult(name="FileVault", passed=False, message="Disk encryption is off", points=20)]
        missions = await service.sync_missions(user_id, regressed)

        assert len(missions) == 1
        assert missions[0].is_completed is True
        assert missions[0].passed is False
        assert security_score(missions) == 0

    @pytest.mark.asyncio
    async def test_repeated_name_keeps_last_result(self, db_session, user_id):
        repeated = [
            ScanResult(name="Firewall", passed=False, message="Firewall is off", points=15),
            ScanResult(name="Firewall", passed=True, message="Firewall is on", points=15),
        ]
        missions = await MissionService(db_session).sync_missions(user_id, repeated)

        assert len(missions) == 1
        assert missions[0].description == "Firewall is on"
        assert missions[0].passed is True
        assert missions[0].is_completed is True

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(UnknownUserError):
            await MissionService(db_session).sync_missions(4242, SCAN)


class TestComplete:
    @pytest.mark.asyncio
    async def test_awards_points_once(self, db_session, user_id):
        service = MissionService(db_session)
        await service.sync_missions(user_id, SCAN)

        first = await service.complete_mission(user_id, "Firewall")
        assert first["xp_awarded"] == 15
        assert first["total_xp"] == 15
        assert first["already_completed"] is False

        second = await service.complete_mission(user_id, "Firewall")
        assert second["already_completed"] is True
        assert second["xp_awarded"] == 0
        assert second["total_xp"] == 15

    @pytest.mark.asyncio
    async def test_passed_mission_is_already_complete(self, db_session, user_id):
        service = MissionService(db_session)
        await service.sync_missions(user_id, SCAN)
        result = await service.complete_mission(user_id, "FileVault")
        assert result["already_completed"] is True
        assert result["xp_awarded"] == 0

    @pytest.mark.asyncio
    async def test_unknown_mission(self, db_session, user_id):
        with pytest.raises(UnknownMissionError):
            await MissionService(db_session).complete_mission(user_id, "Bluetooth")
