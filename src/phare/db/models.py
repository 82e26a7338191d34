"""ORM models for restaurants, missions and gamification state.

Enumerated columns are stored as plain strings; the ``str`` enums below are the
single source of truth for their allowed values.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from phare.db.base import Base
from phare.db.tags import TagFilter


class RestaurantType(str, Enum):
    BRASSERIE = "brasserie"
    GASTRONOMIQUE = "gastronomique"
    FAST_FOOD = "fast_food"
    PIZZERIA = "pizzeria"
    CAFE_BAR = "cafe_bar"
    AUTRE = "autre"


class PublicationRhythm(str, Enum):
    DAILY = "daily"
    FIVE_WEEK = "five_week"
    THREE_WEEK = "three_week"
    ONCE_WEEK = "once_week"


class MissionType(str, Enum):
    POST = "post"
    STORY = "story"
    REEL = "reel"
    CAROUSEL = "carousel"
    TUTO = "tuto"
    ENGAGEMENT = "engagement"


class MissionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class BadgeCriteria(str, Enum):
    MISSIONS_COMPLETED = "missions_completed"
    STREAK_DAYS = "streak_days"
    TUTORIALS_VIEWED = "tutorials_viewed"


class XpActionType(str, Enum):
    MISSION_COMPLETED = "mission_completed"
    TUTORIAL_COMPLETED = "tutorial_completed"
    STREAK_DAY = "streak_day"
    FIRST_MISSION = "first_mission"
    FIRST_TUTORIAL = "first_tutorial"
    WEEKLY_STREAK = "weekly_streak"
    BADGE_EARNED = "badge_earned"


# ---------------------------------------------------------------------------
# Users and restaurants
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("xp_total >= 0", name="ck_users_xp_total_non_negative"),
        CheckConstraint("current_level >= 1", name="ck_users_level_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    xp_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    notification_time: Mapped[str] = mapped_column(String(5), nullable=False, default="09:00", server_default="09:00")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())

    restaurant: Mapped[Restaurant | None] = relationship("Restaurant", back_populates="user", uselist=False)


class Strategy(Base):
    """A content-marketing track, e.g. a grand opening."""

    __tablename__ = "strategies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")


class Restaurant(Base):
    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default=RestaurantType.AUTRE.value)
    strategy_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("strategies.id", ondelete="SET NULL"), nullable=True
    )
    publication_rhythm: Mapped[str | None] = mapped_column(String(16), nullable=True)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")

    user: Mapped[User] = relationship("User", back_populates="restaurant")
    strategy: Mapped[Strategy | None] = relationship("Strategy", lazy="joined")


# ---------------------------------------------------------------------------
# Content catalog
# ---------------------------------------------------------------------------


class ThematicCategory(Base):
    __tablename__ = "thematic_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(10), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")


class Tutorial(Base):
    __tablename__ = "tutorials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    required_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")


class TutorialCompletion(Base):
    __tablename__ = "tutorial_completions"
    __table_args__ = (UniqueConstraint("user_id", "tutorial_id", name="uq_tutorial_completions_user_tutorial"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tutorial_id: Mapped[int] = mapped_column(Integer, ForeignKey("tutorials.id", ondelete="CASCADE"), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class MissionTemplate(Base):
    """Reusable mission definition, instantiated into daily missions."""

    __tablename__ = "mission_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    strategy_id: Mapped[int] = mapped_column(Integer, ForeignKey("strategies.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content_idea: Mapped[str] = mapped_column(Text, nullable=False, default="")
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    tutorial_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tutorials.id", ondelete="SET NULL"), nullable=True
    )
    required_tutorial_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tutorials.id", ondelete="SET NULL"), nullable=True
    )
    thematic_category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("thematic_categories.id", ondelete="SET NULL"), nullable=True
    )
    notification_time: Mapped[str | None] = mapped_column(String(5), nullable=True)


class ContentIdea(Base):
    """Suggested idea text shown alongside a mission.

    The three JSON tag columns are only read and written through the
    ``TagFilter`` properties; NULL means "matches everything".
    """

    __tablename__ = "content_ideas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mission_template_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("mission_templates.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    suggestion_text: Mapped[str] = mapped_column(Text, nullable=False)
    photo_tips: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    restaurant_tags_raw: Mapped[list[Any] | None] = mapped_column("restaurant_tags", JSON, nullable=True)
    content_types_raw: Mapped[list[Any] | None] = mapped_column("content_types", JSON, nullable=True)
    thematic_category_ids_raw: Mapped[list[Any] | None] = mapped_column("thematic_category_ids", JSON, nullable=True)

    @property
    def restaurant_tags(self) -> TagFilter:
        return TagFilter.from_storage(self.restaurant_tags_raw, lambda v: RestaurantType(v).value)

    @restaurant_tags.setter
    def restaurant_tags(self, value: TagFilter) -> None:
        for tag in value.values:
            RestaurantType(tag)
        self.restaurant_tags_raw = value.to_storage()

    @property
    def content_types(self) -> TagFilter:
        return TagFilter.from_storage(self.content_types_raw, lambda v: MissionType(v).value)

    @content_types.setter
    def content_types(self, value: TagFilter) -> None:
        for tag in value.values:
            MissionType(tag)
        self.content_types_raw = value.to_storage()

    @property
    def thematic_category_ids(self) -> TagFilter:
        return TagFilter.from_storage(self.thematic_category_ids_raw, int)

    @thematic_category_ids.setter
    def thematic_category_ids(self, value: TagFilter) -> None:
        self.thematic_category_ids_raw = value.to_storage()


# ---------------------------------------------------------------------------
# Daily missions
# ---------------------------------------------------------------------------


class Mission(Base):
    """One template instantiated for one user on one regional calendar day.

    UNIQUE(user_id, slot_number, mission_date) rejects concurrent double assignment.
    """

    __tablename__ = "missions"
    __table_args__ = (
        UniqueConstraint("user_id", "slot_number", "mission_date", name="uq_missions_user_slot_date"),
        Index("ix_missions_user_assigned", "user_id", "assigned_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    mission_template_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("mission_templates.id", ondelete="CASCADE"), nullable=False
    )
    content_idea_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("content_ideas.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=MissionStatus.PENDING.value)
    slot_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_recommended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    mission_date: Mapped[date] = mapped_column(Date, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    used_pass: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_reload: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    template: Mapped[MissionTemplate] = relationship("MissionTemplate", lazy="joined")
    content_idea: Mapped[ContentIdea | None] = relationship("ContentIdea", lazy="joined")

    @property
    def is_pending(self) -> bool:
        return self.status == MissionStatus.PENDING.value

    def can_use_daily_action(self, today: date) -> bool:
        """Skip and reload share one action per mission, only on its own day while pending."""
        return self.mission_date == today and self.is_pending and not self.used_pass and not self.used_reload


# ---------------------------------------------------------------------------
# Gamification
# ---------------------------------------------------------------------------


class Streak(Base):
    __tablename__ = "streaks"
    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="ck_streaks_current_non_negative"),
        CheckConstraint("longest_streak >= current_streak", name="ck_streaks_longest_covers_current"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Badge(Base):
    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    criteria_type: Mapped[str] = mapped_column(String(32), nullable=False)
    criteria_value: Mapped[int] = mapped_column(Integer, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")


class BadgeUnlock(Base):
    """Badges earned by users. UNIQUE(user_id, badge_id) prevents duplicates."""

    __tablename__ = "badge_unlocks"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="uq_badge_unlocks_user_badge"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[int] = mapped_column(Integer, ForeignKey("badges.id", ondelete="CASCADE"), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    badge: Mapped[Badge] = relationship("Badge", lazy="joined")


class LevelThreshold(Base):
    __tablename__ = "level_thresholds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    level: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    xp_required: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(10), nullable=True)


class XpAction(Base):
    __tablename__ = "xp_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action_type: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    xp_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")


# ---------------------------------------------------------------------------
# In-app notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
