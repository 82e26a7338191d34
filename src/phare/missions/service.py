"""Mission assignment engine.

Every user gets up to three missions per regional calendar day:

* slot 1: a publication (post, story, reel, carousel)
* slot 2: an engagement mission
* slot 3: a tutorial, or another publication type when none is eligible

Assignment is idempotent. The (user_id, slot_number, mission_date) unique
constraint rejects a concurrent second assignment, and the loser re-reads the
winner's rows instead of failing.
"""

from __future__ import annotations

import logging
import random
from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from phare.clock import Clock, get_clock
from phare.config import get_settings
from phare.db.models import (
    ContentIdea,
    Mission,
    MissionStatus,
    MissionTemplate,
    MissionType,
    Restaurant,
    TutorialCompletion,
    XpActionType,
)
from phare.gamification.engine import GamificationEngine
from phare.gamification.schemas import GamificationOutcome
from phare.gamification.streak_service import get_streak_info
from phare.missions.rhythm import is_publication_day
from phare.missions.schemas import ActionResult, CompletionResult, MissionView, ReloadResult
from phare.missions.selection import (
    ENGAGEMENT_SLOT,
    PUBLICATION_SLOT,
    SLOT_PLAN,
    SelectionContext,
    match_content_idea,
    pick_for_slot,
    pick_replacement,
)
from phare.notifications.service import create_notification, notify_gamification_outcome

logger = logging.getLogger(__name__)

MISSION_NOT_FOUND = "Mission not found"
ALREADY_HANDLED = "This mission has already been handled"
ACTION_ALREADY_USED = "You have already used your action for today"
NO_OTHER_MISSION = "No other mission available"
MISSING_CONFIGURATION = "Missing configuration"
NO_TUTO_MISSION = "No tutorial mission for today"


class MissionService:
    def __init__(
        self,
        db: AsyncSession,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        redis: Any | None = None,
    ) -> None:
        self.db = db
        self.clock = clock or get_clock()
        self.rng = rng or random.Random()
        self.redis = redis
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _get_restaurant(self, user_id: int) -> Restaurant | None:
        result = await self.db.execute(select(Restaurant).where(Restaurant.user_id == user_id))
        return result.scalar_one_or_none()

    async def _find_missions(self, user_id: int) -> list[Mission]:
        result = await self.db.execute(
            select(Mission)
            .where(Mission.user_id == user_id, Mission.mission_date == self.clock.today())
            .order_by(Mission.slot_number.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _get_owned_mission(self, mission_id: int, user_id: int) -> Mission | None:
        result = await self.db.execute(
            select(Mission)
            .where(Mission.id == mission_id, Mission.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _active_templates(self, strategy_id: int) -> list[MissionTemplate]:
        result = await self.db.execute(
            select(MissionTemplate)
            .where(MissionTemplate.strategy_id == strategy_id, MissionTemplate.is_active.is_(True))
            .order_by(MissionTemplate.order.asc(), MissionTemplate.id.asc())
        )
        return list(result.scalars().all())

    async def _active_ideas(self) -> list[ContentIdea]:
        result = await self.db.execute(select(ContentIdea).where(ContentIdea.is_active.is_(True)))
        return list(result.scalars().all())

    async def _selection_context(self, user_id: int) -> SelectionContext:
        completed = await self.db.execute(
            select(Mission.mission_template_id)
            .where(Mission.user_id == user_id, Mission.status == MissionStatus.COMPLETED.value)
            .distinct()
        )
        tutorials = await self.db.execute(
            select(TutorialCompletion.tutorial_id).where(TutorialCompletion.user_id == user_id)
        )

        today = self.clock.today()
        since = today - timedelta(days=self.settings.category_rotation_days)
        recent = await self.db.execute(
            select(MissionTemplate.thematic_category_id)
            .join(Mission, Mission.mission_template_id == MissionTemplate.id)
            .where(
                Mission.user_id == user_id,
                Mission.mission_date >= since,
                Mission.mission_date < today,
                MissionTemplate.thematic_category_id.is_not(None),
            )
            .distinct()
        )

        return SelectionContext(
            completed_tutorial_ids=frozenset(tutorials.scalars().all()),
            completed_template_ids=frozenset(completed.scalars().all()),
            recent_category_ids=frozenset(recent.scalars().all()),
        )

    # ------------------------------------------------------------------
    # Today's missions
    # ------------------------------------------------------------------

    async def get_today_missions(self, user_id: int) -> list[Mission]:
        """Return today's missions, assigning them on the first call of the day."""
        missions = await self._find_missions(user_id)
        if missions:
            return missions
        return await self._prescribe(user_id)

    async def get_today_mission(self, user_id: int) -> Mission | None:
        """The recommended mission of the day, else the first one."""
        missions = await self.get_today_missions(user_id)
        return next((m for m in missions if m.is_recommended), missions[0] if missions else None)

    async def _prescribe(self, user_id: int) -> list[Mission]:
        restaurant = await self._get_restaurant(user_id)
        if restaurant is None or restaurant.strategy_id is None:
            return []
        templates = await self._active_templates(restaurant.strategy_id)
        if not templates:
            logger.info("No active templates for strategy %s", restaurant.strategy_id)
            return []

        today = self.clock.today()
        now = self.clock.now_utc()
        ctx = await self._selection_context(user_id)
        ideas = await self._active_ideas()

        missions: list[Mission] = []
        for slot_number in sorted(SLOT_PLAN):
            template = pick_for_slot(slot_number, templates, ctx, self.rng)
            if template is None:
                continue
            ctx.mark_used(template)
            idea = match_content_idea(ideas, template, restaurant.type, self.rng)
            missions.append(
                Mission(
                    user_id=user_id,
                    mission_template_id=template.id,
                    content_idea_id=idea.id if idea else None,
                    status=MissionStatus.PENDING.value,
                    slot_number=slot_number,
                    is_recommended=False,
                    mission_date=today,
                    assigned_at=now,
                    used_pass=False,
                    used_reload=False,
                )
            )
        if not missions:
            return []

        wanted = PUBLICATION_SLOT if is_publication_day(restaurant.publication_rhythm, today) else ENGAGEMENT_SLOT
        recommended = next((m for m in missions if m.slot_number == wanted), missions[0])
        recommended.is_recommended = True

        self.db.add_all(missions)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("Missions for user %s on %s already assigned concurrently, re-reading", user_id, today)
        return await self._find_missions(user_id)

    # ------------------------------------------------------------------
    # Skip / reload
    # ------------------------------------------------------------------

    def _check_daily_action(self, mission: Mission | None) -> str | None:
        if mission is None:
            return MISSION_NOT_FOUND
        if not mission.is_pending:
            return ALREADY_HANDLED
        if not mission.can_use_daily_action(self.clock.today()):
            return ACTION_ALREADY_USED
        return None

    async def skip_mission(self, mission_id: int, user_id: int) -> ActionResult:
        mission = await self._get_owned_mission(mission_id, user_id)
        error = self._check_daily_action(mission)
        if error is not None:
            return ActionResult(success=False, error=error)

        mission.status = MissionStatus.SKIPPED.value
        mission.used_pass = True
        await self.db.commit()
        logger.info("User %s skipped mission %s", user_id, mission_id)
        return ActionResult(success=True)

    async def reload_mission(self, mission_id: int, user_id: int) -> ReloadResult:
        """Swap the template of a pending mission for another eligible one."""
        mission = await self._get_owned_mission(mission_id, user_id)
        error = self._check_daily_action(mission)
        if error is not None:
            return ReloadResult(success=False, error=error)

        restaurant = await self._get_restaurant(user_id)
        if restaurant is None or restaurant.strategy_id is None:
            return ReloadResult(success=False, error=MISSING_CONFIGURATION)

        templates = await self._active_templates(restaurant.strategy_id)
        ctx = await self._selection_context(user_id)
        for other in await self._find_missions(user_id):
            if other.id != mission.id:
                ctx.mark_used(other.template)

        replacement = pick_replacement(
            mission.slot_number,
            templates,
            ctx,
            exclude_ids={mission.mission_template_id},
            rng=self.rng,
        )
        if replacement is None:
            return ReloadResult(success=False, error=NO_OTHER_MISSION)

        idea = match_content_idea(await self._active_ideas(), replacement, restaurant.type, self.rng)
        mission.template = replacement
        mission.content_idea = idea
        mission.used_reload = True
        await self.db.commit()
        logger.info("User %s reloaded mission %s with template %s", user_id, mission_id, replacement.id)
        return ReloadResult(success=True, mission=MissionView.from_mission(mission))

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete_mission(self, mission_id: int, user_id: int) -> CompletionResult:
        """Mark a mission completed, then run the gamification side effects.

        The completion is committed before anything else. Gamification and
        notifications are best effort and cannot undo it.
        """
        mission = await self._get_owned_mission(mission_id, user_id)
        if mission is None:
            return CompletionResult(success=False, error=MISSION_NOT_FOUND)
        if not mission.is_pending:
            return CompletionResult(success=False, error=ALREADY_HANDLED)

        mission.status = MissionStatus.COMPLETED.value
        mission.completed_at = self.clock.now_utc()
        await self.db.commit()
        view = MissionView.from_mission(mission)

        outcome = await self._run_gamification(user_id, XpActionType.MISSION_COMPLETED.value)
        await self._notify_completion(user_id, view, outcome)

        try:
            streak = await get_streak_info(self.db, user_id, self.clock)
        except Exception:
            logger.exception("Could not read streak for user %s", user_id)
            streak = None

        return CompletionResult(
            success=True,
            mission=view,
            streak=streak,
            xp_gained=outcome.xp_gained,
            new_badges=[badge.slug for badge in outcome.unlocked_badges],
            level_up=outcome.level_up,
        )

    async def _run_gamification(self, user_id: int, action: str) -> GamificationOutcome:
        """Engine side effects of a committed action. Never raises."""
        try:
            return await GamificationEngine(self.db, clock=self.clock).record_completion(user_id, action)
        except Exception:
            logger.exception("Gamification failed for user %s (action=%s)", user_id, action)
            await self.db.rollback()
            return GamificationOutcome(failed_steps=["engine"])

    async def complete_tuto_mission(self, user_id: int, tutorial_id: int) -> CompletionResult:
        """Complete today's pending tutorial mission pointing at ``tutorial_id``."""
        result = await self.db.execute(
            select(Mission.id)
            .join(MissionTemplate, Mission.mission_template_id == MissionTemplate.id)
            .where(
                Mission.user_id == user_id,
                Mission.mission_date == self.clock.today(),
                Mission.status == MissionStatus.PENDING.value,
                MissionTemplate.type == MissionType.TUTO.value,
                MissionTemplate.tutorial_id == tutorial_id,
            )
            .order_by(Mission.slot_number.asc())
            .limit(1)
        )
        mission_id = result.scalar_one_or_none()
        if mission_id is None:
            return CompletionResult(success=False, error=NO_TUTO_MISSION)
        return await self.complete_mission(mission_id, user_id)

    async def _notify_completion(self, user_id: int, view: MissionView, outcome: GamificationOutcome) -> None:
        try:
            await create_notification(
                self.db,
                user_id,
                "mission_completed",
                "Mission completed! ✅",
                f"\"{view.title}\" is done. +{outcome.xp_gained} XP",
                {"mission_id": view.id, "xp_gained": outcome.xp_gained},
                redis=self.redis,
                now=self.clock.now_utc(),
            )
        except Exception:
            logger.warning("Failed to create completion notification for user %s", user_id, exc_info=True)
            await self.db.rollback()
        await notify_gamification_outcome(self.db, user_id, outcome, redis=self.redis, now=self.clock.now_utc())

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_mission_history(self, user_id: int, limit: int | None = None) -> list[Mission]:
        """Completed and skipped missions, most recently assigned first."""
        result = await self.db.execute(
            select(Mission)
            .where(
                Mission.user_id == user_id,
                Mission.status.in_([MissionStatus.COMPLETED.value, MissionStatus.SKIPPED.value]),
            )
            .order_by(Mission.assigned_at.desc(), Mission.id.desc())
            .limit(limit or self.settings.mission_history_limit)
        )
        return list(result.scalars().all())
