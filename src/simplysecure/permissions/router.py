"""Permission API endpoints: classification tables, installation assessment, decision log."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from simplysecure.db.models import PermissionDecision
from simplysecure.dependencies import get_db
from simplysecure.permissions.classifier import Permission, PermissionType, all_classifications, classify
from simplysecure.permissions.installation_service import (
    InstallationAssessment,
    assess_installation,
    list_decisions,
    permissions_from_usage_descriptions,
    record_decision,
)
from simplysecure.permissions.schemas import (
    AllClassificationsResponse,
    AssessmentResponse,
    ClassificationResponse,
    DecisionIn,
    DecisionListResponse,
    DecisionResponse,
    InstallationIn,
)

router = APIRouter(prefix="/api/v1/permissions", tags=["Permissions"])


def _assess(body: InstallationIn) -> InstallationAssessment:
    if body.permissions is not None:
        permissions = [
            Permission(type=p.type, description=p.description, is_required=p.is_required) for p in body.permissions
        ]
    else:
        permissions = permissions_from_usage_descriptions(body.info_plist)
    return assess_installation(body.bundle_identifier, body.app_name, permissions, version=body.version)


def _decision_response(row: PermissionDecision) -> DecisionResponse:
    return DecisionResponse(
        id=row.id,
        user_id=row.user_id,
        bundle_identifier=row.bundle_identifier,
        app_name=row.app_name,
        app_version=row.app_version,
        decision=row.decision,
        permissions=list(row.permissions or []),
        highest_risk=row.highest_risk,
        created_at=row.created_at,
    )


@router.get("/types", response_model=AllClassificationsResponse)
async def list_types():
    """Risk, recommendation and reasoning for every permission type."""
    return AllClassificationsResponse(
        types=[ClassificationResponse.build(ptype, result) for ptype, result in all_classifications().items()]
    )


@router.get("/types/{permission_type}", response_model=ClassificationResponse)
async def get_type(permission_type: PermissionType):
    """Classify a single permission type."""
    return ClassificationResponse.build(permission_type, classify(permission_type))


@router.post("/assess", response_model=AssessmentResponse)
async def assess(body: InstallationIn):
    """Classify every permission of an application and summarize the risk."""
    return AssessmentResponse.from_assessment(_assess(body))


@router.post("/decisions", response_model=DecisionResponse, status_code=201)
async def create_decision(body: DecisionIn, db: AsyncSession = Depends(get_db)):
    """Record the user's decision about an application's permissions."""
    row = await record_decision(db, _assess(body), body.decision, user_id=body.user_id)
    return _decision_response(row)


@router.get("/decisions", response_model=DecisionListResponse)
async def get_decisions(
    bundle_identifier: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """Recent permission decisions, newest first."""
    rows = await list_decisions(db, bundle_identifier=bundle_identifier, limit=limit)
    return DecisionListResponse(decisions=[_decision_response(r) for r in rows])
