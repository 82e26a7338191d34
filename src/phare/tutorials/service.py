"""Tutorial completion: record once, reward, then close today's tutorial mission."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from phare.clock import Clock, get_clock
from phare.db.models import Tutorial, TutorialCompletion, XpActionType
from phare.gamification.engine import GamificationEngine
from phare.gamification.schemas import GamificationOutcome, LevelUpResult
from phare.missions.schemas import ActionResult
from phare.missions.service import MissionService
from phare.notifications.service import notify_gamification_outcome

logger = logging.getLogger(__name__)


class TutorialCompletionResult(ActionResult):
    already_completed: bool = False
    xp_gained: int = 0
    new_badges: list[str] = []
    level_up: LevelUpResult | None = None
    mission_completed: bool = False


async def record_tutorial_completion(
    db: AsyncSession,
    user_id: int,
    tutorial_id: int,
    clock: Clock | None = None,
    redis: Any | None = None,
) -> TutorialCompletionResult:
    """Record that ``user_id`` finished a tutorial.

    Repeating a completion is a successful no-op.
    """
    clock = clock or get_clock()

    tutorial = await db.get(Tutorial, tutorial_id)
    if tutorial is None or not tutorial.is_active:
        return TutorialCompletionResult(success=False, error="Tutorial not found")

    existing = await db.execute(
        select(TutorialCompletion.id).where(
            TutorialCompletion.user_id == user_id,
            TutorialCompletion.tutorial_id == tutorial_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        return TutorialCompletionResult(success=True, already_completed=True)

    db.add(TutorialCompletion(user_id=user_id, tutorial_id=tutorial_id, completed_at=clock.now_utc()))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return TutorialCompletionResult(success=True, already_completed=True)

    try:
        outcome = await GamificationEngine(db, clock=clock).record_completion(
            user_id, XpActionType.TUTORIAL_COMPLETED.value
        )
    except Exception:
        logger.exception("Gamification failed for user %s (tutorial %s)", user_id, tutorial_id)
        await db.rollback()
        outcome = GamificationOutcome(failed_steps=["engine"])
    await notify_gamification_outcome(db, user_id, outcome, redis=redis, now=clock.now_utc())

    result = TutorialCompletionResult(
        success=True,
        xp_gained=outcome.xp_gained,
        new_badges=[badge.slug for badge in outcome.unlocked_badges],
        level_up=outcome.level_up,
    )

    mission = await MissionService(db, clock=clock, redis=redis).complete_tuto_mission(user_id, tutorial_id)
    if mission.success:
        result.mission_completed = True
        result.xp_gained += mission.xp_gained
        result.new_badges.extend(mission.new_badges)
        if mission.level_up is not None:
            old = result.level_up.old_level if result.level_up else mission.level_up.old_level
            result.level_up = LevelUpResult(old_level=old, new_level=mission.level_up.new_level, name=mission.level_up.name)
    else:
        logger.debug("No tutorial mission to complete for user %s (tutorial %s)", user_id, tutorial_id)
    return result
