"""Installation assessment from Info.plist keys or explicit permissions."""

from __future__ import annotations

from simplysecure.permissions.classifier import Permission, PermissionRecommendation, PermissionType, RiskLevel
from simplysecure.permissions.installation_service import (
    IMPLIED_NETWORK_DESCRIPTION,
    assess_installation,
    permissions_from_usage_descriptions,
)


class TestUsageDescriptions:
    def test_maps_known_keys(self):
        perms = permissions_from_usage_descriptions(
            {
                "NSCameraUsageDescription": "Video calls",
                "NSContactsUsageDescription": "Invite friends",
                "CFBundleName": "Chat",
            }
        )
        assert [p.type for p in perms] == [PermissionType.CAMERA, PermissionType.CONTACTS, PermissionType.NETWORK]
        assert perms[0].description == "Video calls"

    def test_network_always_implied(self):
        perms = permissions_from_usage_descriptions({})
        assert len(perms) == 1
        assert perms[0].type is PermissionType.NETWORK
        assert perms[0].description == IMPLIED_NETWORK_DESCRIPTION

    def test_empty_descriptions_ignored(self):
        perms = permissions_from_usage_descriptions(
            {"NSMicrophoneUsageDescription": "   ", "NSLocationUsageDescription": 42}
        )
        assert [p.type for p in perms] == [PermissionType.NETWORK]

    def test_missing_plist(self):
        assert permissions_from_usage_descriptions(None) == []


class TestAssessInstallation:
    def test_aggregates(self):
        perms = [
            Permission(type=PermissionType.CAMERA, description="Video"),
            Permission(type=PermissionType.CALENDAR, description="Meetings"),
            Permission(type=PermissionType.NETWORK, description=""),
        ]
        result = assess_installation("com.example.chat", "Chat", perms, version="2.1")
        assert result.highest_risk is RiskLevel.HIGH
        assert result.risk_counts == {"low": 1, "medium": 1, "high": 1}
        assert result.overall_recommendation is PermissionRecommendation.DENY
        assert result.version == "2.1"

    def test_strictest_recommendation_wins(self):
        perms = [
            Permission(type=PermissionType.NOTIFICATIONS, description=""),
            Permission(type=PermissionType.PHOTOS, description=""),
        ]
        result = assess_installation("com.example.pics", "Pics", perms)
        assert result.overall_recommendation is PermissionRecommendation.LIMITED
        assert result.highest_risk is RiskLevel.HIGH

    def test_no_permissions(self):
        result = assess_installation("com.example.empty", "Empty", [])
        assert result.highest_risk is None
        assert result.overall_recommendation is None
        assert result.risk_counts == {"low": 0, "medium": 0, "high": 0}
