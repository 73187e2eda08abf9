"""Request/response schemas for training endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from simplysecure.training.catalog import DailyChallengeSet, SecurityTask


class TaskResponse(BaseModel):
    id: str
    title: str
    description: str
    detailed_instructions: str
    category: str
    category_label: str
    difficulty: str
    difficulty_label: str
    estimated_time_minutes: int
    xp_reward: int
    verification_bonus_xp: int
    prerequisites: list[str]
    verification_command: str | None = None
    verification_description: str | None = None
    day: int
    order: int

    @classmethod
    def from_task(cls, task: SecurityTask) -> TaskResponse:
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            detailed_instructions=task.detailed_instructions,
            category=task.category.value,
            category_label=task.category.label,
            difficulty=task.difficulty.value,
            difficulty_label=task.difficulty.label,
            estimated_time_minutes=task.estimated_time_minutes,
            xp_reward=task.xp_reward,
            verification_bonus_xp=task.xp_reward // 2,
            prerequisites=list(task.prerequisites),
            verification_command=task.verification_command,
            verification_description=task.verification_description,
            day=task.day,
            order=task.order,
        )


class ChallengeSetResponse(BaseModel):
    day: int
    title: str
    description: str
    theme: str
    completion_badge: str
    total_xp: int
    estimated_time_minutes: int
    tasks: list[TaskResponse]

    @classmethod
    def from_set(cls, challenge: DailyChallengeSet) -> ChallengeSetResponse:
        return cls(
            day=challenge.day,
            title=challenge.title,
            description=challenge.description,
            theme=challenge.theme,
            completion_badge=challenge.completion_badge,
            total_xp=challenge.total_xp,
            estimated_time_minutes=challenge.estimated_time_minutes,
            tasks=[TaskResponse.from_task(t) for t in challenge.tasks],
        )


class AllChallengesResponse(BaseModel):
    days: list[ChallengeSetResponse]
    total_tasks: int
    total_xp: int


class NotesRequest(BaseModel):
    notes: str = Field(default="", max_length=4000)
