"""Gamification engine: streak, XP, level and badges after a completion.

Steps run in a fixed order and each one commits on its own. A failing step is
logged and rolled back without stopping the next ones, so a broken badge rule
can never undo a streak update or the completion that triggered it.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from phare.clock import Clock, get_clock
from phare.db.models import XpActionType
from phare.gamification.badge_service import (
    CRITERIA_BY_ACTION,
    check_badge_unlocks,
    count_completed_missions,
    count_tutorial_completions,
)
from phare.gamification.catalog import GamificationCatalog, load_catalog
from phare.gamification.level_service import add_xp
from phare.gamification.schemas import GamificationOutcome, LevelUpResult, StreakUpdate
from phare.gamification.streak_service import update_streak

logger = logging.getLogger(__name__)

WEEKLY_STREAK_DAYS = 7

# action -> (badge category, "first time" bonus action)
_ACTIONS: dict[str, tuple[str, str]] = {
    XpActionType.MISSION_COMPLETED.value: ("mission", XpActionType.FIRST_MISSION.value),
    XpActionType.TUTORIAL_COMPLETED.value: ("tutorial", XpActionType.FIRST_TUTORIAL.value),
}


def _merge_level_up(first: LevelUpResult | None, latest: LevelUpResult | None) -> LevelUpResult | None:
    if latest is None:
        return first
    if first is None:
        return latest
    return LevelUpResult(old_level=first.old_level, new_level=latest.new_level, name=latest.name)


class GamificationEngine:
    """Applies the side effects of one user action.

    The configuration snapshot is loaded lazily on the first call and reused
    for the lifetime of the engine.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock | None = None,
        catalog: GamificationCatalog | None = None,
    ) -> None:
        self.db = db
        self.clock = clock or get_clock()
        self.catalog = catalog

    async def _catalog(self) -> GamificationCatalog:
        if self.catalog is None:
            self.catalog = await load_catalog(self.db)
        return self.catalog

    async def record_completion(
        self,
        user_id: int,
        action: str = XpActionType.MISSION_COMPLETED.value,
    ) -> GamificationOutcome:
        if action not in _ACTIONS:
            raise ValueError(f"Unsupported completion action: {action}")
        category, first_action = _ACTIONS[action]

        outcome = GamificationOutcome()
        try:
            catalog = await self._catalog()
        except Exception:
            logger.exception("Could not load the gamification catalog for user %s", user_id)
            await self.db.rollback()
            outcome.failed_steps.append("catalog")
            return outcome

        # 1. Streak
        try:
            outcome.streak = await update_streak(self.db, user_id, self.clock)
            await self.db.commit()
        except Exception:
            logger.exception("Streak update failed for user %s", user_id)
            await self.db.rollback()
            outcome.streak = None
            outcome.failed_steps.append("streak")

        # 2. XP and level
        try:
            actions = await self._xp_actions(user_id, action, first_action, outcome.streak)
            gained = 0
            level_up = None
            for xp_action in actions:
                award = await add_xp(self.db, user_id, xp_action, catalog)
                gained += award.xp_added
                level_up = _merge_level_up(level_up, award.level_up)
            await self.db.commit()
            outcome.xp_gained += gained
            outcome.level_up = _merge_level_up(outcome.level_up, level_up)
        except Exception:
            logger.exception("XP award failed for user %s (action=%s)", user_id, action)
            await self.db.rollback()
            outcome.failed_steps.append("xp")

        # 3. Badges
        try:
            outcome.unlocked_badges = await check_badge_unlocks(
                self.db,
                user_id,
                catalog,
                criteria=CRITERIA_BY_ACTION[category],
                now=self.clock.now_utc(),
            )
        except Exception:
            logger.exception("Badge evaluation failed for user %s", user_id)
            await self.db.rollback()
            outcome.failed_steps.append("badges")

        # 4. XP for each new badge
        if outcome.unlocked_badges:
            try:
                level_up = None
                gained = 0
                for _ in outcome.unlocked_badges:
                    award = await add_xp(self.db, user_id, XpActionType.BADGE_EARNED.value, catalog)
                    gained += award.xp_added
                    level_up = _merge_level_up(level_up, award.level_up)
                await self.db.commit()
                outcome.xp_gained += gained
                outcome.level_up = _merge_level_up(outcome.level_up, level_up)
            except Exception:
                logger.exception("Badge XP award failed for user %s", user_id)
                await self.db.rollback()
                outcome.failed_steps.append("badge_xp")

        return outcome

    async def _xp_actions(
        self,
        user_id: int,
        action: str,
        first_action: str,
        streak: StreakUpdate | None,
    ) -> list[str]:
        actions = [action]

        if action == XpActionType.MISSION_COMPLETED.value:
            total = await count_completed_missions(self.db, user_id)
        else:
            total = await count_tutorial_completions(self.db, user_id)
        if total == 1:
            actions.append(first_action)

        if streak is not None and streak.advanced:
            actions.append(XpActionType.STREAK_DAY.value)
            if streak.current_streak % WEEKLY_STREAK_DAYS == 0:
                actions.append(XpActionType.WEEKLY_STREAK.value)
        return actions
