"""Pydantic models for XP, level and achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from simplysecure.gamification.level_thresholds import NinjaLevel


# --- Levels ---


class LevelInfo(BaseModel):
    key: str
    level: int
    title: str
    xp_required: int
    next_level_xp: int
    xp_into_level: int
    xp_for_level: int
    next_title: str
    is_max_level: bool
    progress: float


class LevelEntry(BaseModel):
    key: str
    level: int
    title: str
    xp_required: int
    next_level_xp: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


# --- XP ---


class XPResponse(BaseModel):
    user_id: int
    total_xp: int
    tasks_completed: int
    achievements_unlocked: int
    level: LevelInfo


class XPHistoryEntry(BaseModel):
    amount: int
    source: str
    source_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


# --- Achievements ---


class AchievementDefinitionResponse(BaseModel):
    slug: str
    title: str
    description: str
    icon: str
    category: str
    requirement: str
    xp_reward: int


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementDefinitionResponse]


class UserAchievementResponse(BaseModel):
    slug: str
    title: str
    xp_reward: int
    is_unlocked: bool
    unlocked_at: datetime | None = None


class UserAchievementsResponse(BaseModel):
    achievements: list[UserAchievementResponse]
    total_available: int
    total_unlocked: int


# --- Admin ---


class GrantXPRequest(BaseModel):
    amount: int
    description: str = Field(default="Manual XP grant", max_length=256)


class SetLevelRequest(BaseModel):
    level: NinjaLevel


class GrantXPResponse(BaseModel):
    xp_awarded: int
    total_xp: int
    level: LevelInfo
    leveled_up: bool
