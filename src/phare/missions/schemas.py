"""Pydantic result models for mission operations."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from phare.db.models import Mission
from phare.gamification.schemas import LevelUpResult, StreakInfo


class MissionView(BaseModel):
    id: int
    slot_number: int
    status: str
    is_recommended: bool
    mission_date: date
    type: str
    title: str
    content_idea: str
    idea_title: str | None = None
    idea_text: str | None = None
    photo_tips: str | None = None
    tutorial_id: int | None = None
    assigned_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_mission(cls, mission: Mission) -> MissionView:
        template = mission.template
        idea = mission.content_idea
        return cls(
            id=mission.id,
            slot_number=mission.slot_number,
            status=mission.status,
            is_recommended=mission.is_recommended,
            mission_date=mission.mission_date,
            type=template.type,
            title=template.title,
            content_idea=template.content_idea,
            idea_title=idea.title if idea else None,
            idea_text=idea.suggestion_text if idea else None,
            photo_tips=idea.photo_tips if idea else None,
            tutorial_id=template.tutorial_id,
            assigned_at=mission.assigned_at,
            completed_at=mission.completed_at,
        )


class ActionResult(BaseModel):
    success: bool
    error: str | None = None


class ReloadResult(ActionResult):
    mission: MissionView | None = None


class CompletionResult(ActionResult):
    mission: MissionView | None = None
    streak: StreakInfo | None = None
    xp_gained: int = 0
    new_badges: list[str] = []
    level_up: LevelUpResult | None = None
