"""Request/response schemas for permission endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from simplysecure.permissions.classifier import Classification, Permission, PermissionType
from simplysecure.permissions.installation_service import InstallationAssessment, PermissionDecisionChoice


class ClassificationResponse(BaseModel):
    type: str
    label: str
    risk_level: str
    risk_description: str
    recommendation: str
    recommendation_label: str
    reasoning: str

    @classmethod
    def build(cls, ptype: PermissionType, result: Classification) -> ClassificationResponse:
        return cls(
            type=ptype.value,
            label=ptype.label,
            risk_level=result.risk_level.value,
            risk_description=result.risk_level.description,
            recommendation=result.recommendation.value,
            recommendation_label=result.recommendation.label,
            reasoning=result.reasoning,
        )


class AllClassificationsResponse(BaseModel):
    types: list[ClassificationResponse]


class PermissionIn(BaseModel):
    type: PermissionType
    description: str = ""
    is_required: bool = False


class InstallationIn(BaseModel):
    """An installed application, described by explicit permissions or its Info.plist keys."""

    bundle_identifier: str = Field(min_length=1, max_length=256)
    app_name: str = Field(min_length=1, max_length=256)
    version: str | None = Field(default=None, max_length=64)
    permissions: list[PermissionIn] | None = None
    info_plist: dict[str, Any] | None = None


class DecisionIn(InstallationIn):
    decision: PermissionDecisionChoice
    user_id: int | None = None


class PermissionOut(BaseModel):
    type: str
    label: str
    description: str
    is_required: bool
    risk_level: str
    recommendation: str
    reasoning: str

    @classmethod
    def from_permission(cls, p: Permission) -> PermissionOut:
        return cls(
            type=p.type.value,
            label=p.type.label,
            description=p.description,
            is_required=p.is_required,
            risk_level=p.risk_level.value,
            recommendation=p.recommendation.value,
            reasoning=p.reasoning,
        )


class AssessmentResponse(BaseModel):
    bundle_identifier: str
    app_name: str
    version: str | None = None
    permissions: list[PermissionOut]
    highest_risk: str | None = None
    risk_counts: dict[str, int]
    overall_recommendation: str | None = None

    @classmethod
    def from_assessment(cls, a: InstallationAssessment) -> AssessmentResponse:
        return cls(
            bundle_identifier=a.bundle_identifier,
            app_name=a.app_name,
            version=a.version,
            permissions=[PermissionOut.from_permission(p) for p in a.permissions],
            highest_risk=a.highest_risk.value if a.highest_risk else None,
            risk_counts=a.risk_counts,
            overall_recommendation=a.overall_recommendation.value if a.overall_recommendation else None,
        )


class DecisionResponse(BaseModel):
    id: int
    user_id: int | None = None
    bundle_identifier: str
    app_name: str
    app_version: str | None = None
    decision: str
    permissions: list[str]
    highest_risk: str | None = None
    created_at: datetime


class DecisionListResponse(BaseModel):
    decisions: list[DecisionResponse]
