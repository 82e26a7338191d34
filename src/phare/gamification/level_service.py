"""XP awards and level computation from the threshold table."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from phare.db.models import User
from phare.gamification.catalog import GamificationCatalog, LevelRow, load_catalog
from phare.gamification.schemas import LevelInfo, LevelUpResult, XpAward

logger = logging.getLogger(__name__)


def _ordered(thresholds: Sequence[LevelRow]) -> list[LevelRow]:
    return sorted(thresholds, key=lambda row: row.xp_required)


def find_threshold(thresholds: Sequence[LevelRow], xp_total: int) -> LevelRow | None:
    """Highest threshold with ``xp_required <= xp_total``, or None for an empty table."""
    current = None
    for row in _ordered(thresholds):
        if xp_total >= row.xp_required:
            current = row
    return current


def compute_level(thresholds: Sequence[LevelRow], xp_total: int) -> int:
    """Level number for ``xp_total``. An empty table (or XP below every row) is level 1."""
    row = find_threshold(thresholds, xp_total)
    return row.level if row is not None else 1


def build_level_info(thresholds: Sequence[LevelRow], xp_total: int) -> LevelInfo:
    ordered = _ordered(thresholds)
    current = find_threshold(ordered, xp_total)
    level = current.level if current is not None else 1
    floor = current.xp_required if current is not None else 0

    following = [row for row in ordered if row.xp_required > xp_total]
    if not following:
        return LevelInfo(
            xp_total=xp_total,
            level=level,
            name=current.name if current else None,
            icon=current.icon if current else None,
            is_max_level=True,
        )

    nxt = following[0]
    span = nxt.xp_required - floor
    into = max(0, xp_total - floor)
    percent = min(100, max(0, round(into / span * 100))) if span > 0 else 0
    return LevelInfo(
        xp_total=xp_total,
        level=level,
        name=current.name if current else None,
        icon=current.icon if current else None,
        next_level=nxt.level,
        xp_for_next_level=nxt.xp_required,
        xp_to_next_level=nxt.xp_required - xp_total,
        xp_into_level=into,
        progress_percent=percent,
    )


async def get_level_info(
    db: AsyncSession,
    user_id: int,
    catalog: GamificationCatalog | None = None,
) -> LevelInfo | None:
    user = await db.get(User, user_id)
    if user is None:
        return None
    catalog = catalog or await load_catalog(db)
    return build_level_info(catalog.thresholds, user.xp_total)


async def add_xp(
    db: AsyncSession,
    user_id: int,
    action_type: str,
    catalog: GamificationCatalog,
) -> XpAward:
    """Add the configured XP for ``action_type`` and recompute the level.

    Flushes but does not commit. A missing or inactive action awards nothing.
    """
    amount = catalog.xp_for(action_type)
    user = await db.get(User, user_id)
    if user is None:
        logger.warning("XP award for unknown user %s", user_id)
        return XpAward(action_type=action_type)
    if amount <= 0:
        return XpAward(action_type=action_type, xp_total=user.xp_total)

    old_level = user.current_level
    user.xp_total += amount

    level_up = None
    if catalog.thresholds:
        row = find_threshold(catalog.thresholds, user.xp_total)
        new_level = row.level if row is not None else 1
        user.current_level = new_level
        if new_level > old_level:
            level_up = LevelUpResult(old_level=old_level, new_level=new_level, name=row.name if row else None)
            logger.info("User %s reached level %s", user_id, new_level)

    await db.flush()
    return XpAward(action_type=action_type, xp_added=amount, xp_total=user.xp_total, level_up=level_up)
