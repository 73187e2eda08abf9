"""Installation assessment and permission-decision logging.

Discovering new application bundles and reading their Info.plist happens
outside this service; callers hand over either the usage-description keys or
an explicit list of permission types.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure.database import commit_or_raise
from simplysecure.db.models import PermissionDecision, User
from simplysecure.exceptions import UnknownUserError
from simplysecure.permissions.classifier import (
    Permission,
    PermissionRecommendation,
    PermissionType,
    RiskLevel,
)

logger = logging.getLogger(__name__)

# Info.plist usage-description key -> permission type
USAGE_DESCRIPTION_KEYS: dict[str, PermissionType] = {
    "NSCameraUsageDescription": PermissionType.CAMERA,
    "NSMicrophoneUsageDescription": PermissionType.MICROPHONE,
    "NSLocationUsageDescription": PermissionType.LOCATION,
    "NSContactsUsageDescription": PermissionType.CONTACTS,
    "NSPhotoLibraryUsageDescription": PermissionType.PHOTOS,
    "NSCalendarsUsageDescription": PermissionType.CALENDAR,
    "NSRemindersUsageDescription": PermissionType.REMINDERS,
    "NSDocumentsFolderUsageDescription": PermissionType.FILES,
}

IMPLIED_NETWORK_DESCRIPTION = "Network access for app functionality"


class PermissionDecisionChoice(str, Enum):
    ALLOW = "allow"
    LIMITED = "limited"
    DENY = "deny"
    SKIP = "skip"


@dataclass(frozen=True)
class InstallationAssessment:
    bundle_identifier: str
    app_name: str
    version: str | None
    permissions: tuple[Permission, ...]
    highest_risk: RiskLevel | None
    risk_counts: dict[str, int]
    overall_recommendation: PermissionRecommendation | None


def permissions_from_usage_descriptions(info_plist: dict[str, Any] | None) -> list[Permission]:
    """Map Info.plist usage descriptions to permissions.

    Only non-empty string descriptions count. Network access is assumed for
    every application and always appended last.
    """
    if info_plist is None:
        return []

    permissions: list[Permission] = []
    for key, ptype in USAGE_DESCRIPTION_KEYS.items():
        value = info_plist.get(key)
        if isinstance(value, str) and value.strip():
            permissions.append(Permission(type=ptype, description=value))

    permissions.append(Permission(type=PermissionType.NETWORK, description=IMPLIED_NETWORK_DESCRIPTION))
    return permissions


def assess_installation(
    bundle_identifier: str,
    app_name: str,
    permissions: list[Permission],
    version: str | None = None,
) -> InstallationAssessment:
    """Aggregate the classified permissions of one application."""
    counts = Counter(p.risk_level.value for p in permissions)
    risk_counts = {level.value: counts.get(level.value, 0) for level in RiskLevel}

    highest = max((p.risk_level for p in permissions), key=lambda r: r.rank, default=None)
    strictest = max((p.recommendation for p in permissions), key=lambda r: r.strictness, default=None)

    return InstallationAssessment(
        bundle_identifier=bundle_identifier,
        app_name=app_name,
        version=version,
        permissions=tuple(permissions),
        highest_risk=highest,
        risk_counts=risk_counts,
        overall_recommendation=strictest,
    )


async def record_decision(
    db: AsyncSession,
    assessment: InstallationAssessment,
    decision: PermissionDecisionChoice,
    user_id: int | None = None,
) -> PermissionDecision:
    """Persist and log a user's decision about an installation's permissions."""
    if user_id is not None and await db.get(User, user_id) is None:
        raise UnknownUserError(user_id)

    row = PermissionDecision(
        user_id=user_id,
        bundle_identifier=assessment.bundle_identifier,
        app_name=assessment.app_name,
        app_version=assessment.version,
        decision=decision.value,
        permissions=[p.type.value for p in assessment.permissions],
        highest_risk=assessment.highest_risk.value if assessment.highest_risk else None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(row)
    await commit_or_raise(db, "permission decision")

    logger.info(
        "Permission decision: app=%s bundle=%s decision=%s permissions=%s",
        assessment.app_name,
        assessment.bundle_identifier,
        decision.value,
        ", ".join(p.type.label for p in assessment.permissions),
    )
    return row


async def list_decisions(db: AsyncSession, bundle_identifier: str | None = None, limit: int = 50) -> list[PermissionDecision]:
    """Most recent decisions first, optionally for one bundle."""
    stmt = select(PermissionDecision).order_by(PermissionDecision.created_at.desc(), PermissionDecision.id.desc())
    if bundle_identifier:
        stmt = stmt.where(PermissionDecision.bundle_identifier == bundle_identifier)
    result = await db.execute(stmt.limit(limit))
    return list(result.scalars().all())
