"""Pydantic result models for the gamification engine."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel

# --- Streak ---


class StreakStatus(str, Enum):
    NONE = "none"  # never active
    ACTIVE_TODAY = "active_today"
    AT_RISK = "at_risk"  # last activity yesterday, nothing yet today
    BROKEN = "broken"


class StreakInfo(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    status: StreakStatus = StreakStatus.NONE

    @property
    def is_at_risk(self) -> bool:
        return self.status is StreakStatus.AT_RISK


class StreakUpdate(BaseModel):
    """What a completion did to the streak."""

    current_streak: int
    longest_streak: int
    advanced: bool  # False on a same-day repeat


class StreakCheckReport(BaseModel):
    checked: int = 0
    reset: int = 0
    failed: int = 0


# --- XP / Levels ---


class LevelInfo(BaseModel):
    xp_total: int
    level: int
    name: str | None = None
    icon: str | None = None
    next_level: int | None = None
    xp_for_next_level: int | None = None
    xp_to_next_level: int = 0
    xp_into_level: int = 0
    progress_percent: int = 100
    is_max_level: bool = False


class LevelUpResult(BaseModel):
    old_level: int
    new_level: int
    name: str | None = None


class XpAward(BaseModel):
    action_type: str
    xp_added: int = 0
    xp_total: int = 0
    level_up: LevelUpResult | None = None


# --- Badges ---


class UnlockedBadge(BaseModel):
    id: int
    slug: str
    name: str
    icon: str | None = None
    criteria_type: str
    criteria_value: int


class BadgeStatus(BaseModel):
    slug: str
    name: str
    description: str | None = None
    icon: str | None = None
    criteria_type: str
    criteria_value: int
    unlocked: bool = False
    unlocked_at: datetime | None = None


# --- Engine ---


class GamificationOutcome(BaseModel):
    """Everything one ``record_completion`` call changed."""

    streak: StreakUpdate | None = None
    xp_gained: int = 0
    level_up: LevelUpResult | None = None
    unlocked_badges: list[UnlockedBadge] = []
    failed_steps: list[str] = []
