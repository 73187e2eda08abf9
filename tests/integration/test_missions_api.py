"""Mission endpoints."""

from __future__ import annotations

import pytest

SCAN = {
    "results": [
        {"name": "SIP", "passed": True, "message": "System Integrity Protection enabled", "points": 25},
        {
            "name": "Screen Lock",
            "passed": False,
            "message": "Password not required after sleep",
            "points": 10,
            "fix_instructions": "Lock Screen > Require password immediately",
        },
    ]
}


class TestMissions:
    @pytest.mark.asyncio
    async def test_sync_and_list(self, client, api_user):
        base = f"/api/v1/users/{api_user['id']}/missions"
        synced = await client.put(base, json=SCAN)
        assert synced.status_code == 200
        data = synced.json()
        assert data["security_score"] == 25
        assert data["max_score"] == 100

        listed = (await client.get(base)).json()
        assert [m["mission_id"] for m in listed["missions"]] == ["SIP", "Screen Lock"]

    @pytest.mark.asyncio
    async def test_complete(self, client, api_user):
        base = f"/api/v1/users/{api_user['id']}/missions"
        await client.put(base, json=SCAN)

        response = await client.post(f"{base}/Screen Lock/complete")
        assert response.status_code == 200
        assert response.json()["xp_awarded"] == 10

        xp = (await client.get(f"/api/v1/users/{api_user['id']}/xp")).json()
        assert xp["total_xp"] == 10

    @pytest.mark.asyncio
    async def test_unknown_mission(self, client, api_user):
        response = await client.post(f"/api/v1/users/{api_user['id']}/missions/FileVault/complete")
        assert response.status_code == 404
        assert response.json()["error"] == "unknown_mission"

    @pytest.mark.asyncio
    async def test_negative_points_rejected(self, client, api_user):
        response = await client.put(
            f"/api/v1/users/{api_user['id']}/missions",
            json={"results": [{"name": "Firewall", "passed": False, "points": -5}]},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duplicate_names_rejected(self, client, api_user):
        response = await client.put(
            f"/api/v1/users/{api_user['id']}/missions",
            json={
                "results": [
                    {"name": "Firewall", "passed": False, "points": 15},
                    {"name": "Firewall", "passed": True, "points": 15},
                ]
            },
        )
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

        listed = (await client.get(f"/api/v1/users/{api_user['id']}/missions")).json()
        assert listed["missions"] == []
