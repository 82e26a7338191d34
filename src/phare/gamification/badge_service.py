"""Badge evaluation with duplicate prevention."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from phare.db.models import Badge, BadgeCriteria, BadgeUnlock, Mission, MissionStatus, Streak, TutorialCompletion
from phare.gamification.catalog import GamificationCatalog, load_catalog
from phare.gamification.schemas import BadgeStatus, UnlockedBadge

logger = logging.getLogger(__name__)

# Which badge families an action can move.
CRITERIA_BY_ACTION: dict[str, tuple[str, ...]] = {
    "mission": (BadgeCriteria.MISSIONS_COMPLETED.value, BadgeCriteria.STREAK_DAYS.value),
    "tutorial": (BadgeCriteria.TUTORIALS_VIEWED.value, BadgeCriteria.STREAK_DAYS.value),
}


async def count_completed_missions(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Mission)
        .where(Mission.user_id == user_id, Mission.status == MissionStatus.COMPLETED.value)
    )
    return result.scalar_one()


async def count_tutorial_completions(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(TutorialCompletion).where(TutorialCompletion.user_id == user_id)
    )
    return result.scalar_one()


async def _longest_streak(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(Streak.longest_streak).where(Streak.user_id == user_id))
    return result.scalar_one_or_none() or 0


async def get_badge_counters(db: AsyncSession, user_id: int, criteria: Iterable[str]) -> dict[str, int]:
    """Current value of each requested counter."""
    counters: dict[str, int] = {}
    for criteria_type in set(criteria):
        if criteria_type == BadgeCriteria.MISSIONS_COMPLETED.value:
            counters[criteria_type] = await count_completed_missions(db, user_id)
        elif criteria_type == BadgeCriteria.STREAK_DAYS.value:
            counters[criteria_type] = await _longest_streak(db, user_id)
        elif criteria_type == BadgeCriteria.TUTORIALS_VIEWED.value:
            counters[criteria_type] = await count_tutorial_completions(db, user_id)
        else:
            logger.warning("Unknown badge criteria %r", criteria_type)
    return counters


async def get_unlocked_badge_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(select(BadgeUnlock.badge_id).where(BadgeUnlock.user_id == user_id))
    return set(result.scalars().all())


async def check_badge_unlocks(
    db: AsyncSession,
    user_id: int,
    catalog: GamificationCatalog | None = None,
    criteria: Iterable[str] | None = None,
    now: datetime | None = None,
) -> list[UnlockedBadge]:
    """Unlock every active badge whose counter has reached its threshold.

    Each unlock is committed on its own. A concurrent duplicate hits the
    (user_id, badge_id) unique constraint and is skipped.
    """
    catalog = catalog or await load_catalog(db)
    wanted = tuple(criteria) if criteria is not None else tuple(c.value for c in BadgeCriteria)
    rules = catalog.badges_for(wanted)
    if not rules:
        return []

    counters = await get_badge_counters(db, user_id, {rule.criteria_type for rule in rules})
    already = await get_unlocked_badge_ids(db, user_id)
    unlocked_at = now or datetime.now(timezone.utc)

    unlocked: list[UnlockedBadge] = []
    for rule in rules:
        if rule.id in already or counters.get(rule.criteria_type, 0) < rule.criteria_value:
            continue

        db.add(BadgeUnlock(user_id=user_id, badge_id=rule.id, unlocked_at=unlocked_at))
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            continue  # Race condition: badge already unlocked

        logger.info("User %s unlocked badge %s", user_id, rule.slug)
        unlocked.append(
            UnlockedBadge(
                id=rule.id,
                slug=rule.slug,
                name=rule.name,
                icon=rule.icon,
                criteria_type=rule.criteria_type,
                criteria_value=rule.criteria_value,
            )
        )
    return unlocked


async def get_user_badges(db: AsyncSession, user_id: int) -> list[BadgeStatus]:
    """Every active badge with the user's unlock state, in display order."""
    badges = await db.execute(select(Badge).where(Badge.is_active.is_(True)).order_by(Badge.order.asc(), Badge.id.asc()))
    unlocks = await db.execute(select(BadgeUnlock).where(BadgeUnlock.user_id == user_id))
    unlocked_at = {row.badge_id: row.unlocked_at for row in unlocks.scalars().unique()}

    return [
        BadgeStatus(
            slug=badge.slug,
            name=badge.name,
            description=badge.description,
            icon=badge.icon,
            criteria_type=badge.criteria_type,
            criteria_value=badge.criteria_value,
            unlocked=badge.id in unlocked_at,
            unlocked_at=unlocked_at.get(badge.id),
        )
        for badge in badges.scalars()
    ]
