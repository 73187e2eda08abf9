"""Request/response schemas for mission endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class ScanResultIn(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    passed: bool
    message: str = ""
    points: int = Field(default=0, ge=0)
    fix_instructions: str = ""


class SyncMissionsRequest(BaseModel):
    results: list[ScanResultIn]

    @model_validator(mode="after")
    def check_unique_names(self) -> SyncMissionsRequest:
        seen: set[str] = set()
        for r in self.results:
            if r.name in seen:
                msg = f"Duplicate check name in scan results: {r.name!r}"
                raise ValueError(msg)
            seen.add(r.name)
        return self


class MissionResponse(BaseModel):
    mission_id: str
    title: str
    description: str
    xp_reward: int
    passed: bool
    is_completed: bool
    xp_awarded: int
    fix_instructions: str
    completed_at: datetime | None = None


class MissionsResponse(BaseModel):
    missions: list[MissionResponse]
    security_score: int
    max_score: int
