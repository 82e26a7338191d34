"""Daily streak tracking.

A streak counts consecutive regional calendar days with at least one
completion. Completions advance it; the nightly job zeroes streaks whose last
activity is older than yesterday so they lapse even when the user does nothing.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from phare.clock import Clock, get_clock
from phare.db.models import Streak
from phare.gamification.schemas import StreakCheckReport, StreakInfo, StreakStatus, StreakUpdate

logger = logging.getLogger(__name__)


def advance_streak(
    current: int,
    longest: int,
    last_activity: date | None,
    today: date,
) -> tuple[int, int, bool]:
    """Apply one completion on ``today``. Returns (current, longest, advanced)."""
    if last_activity == today:
        return current, max(longest, current), False
    if last_activity == today - timedelta(days=1):
        current += 1
    else:
        current = 1
    return current, max(longest, current), True


def classify_streak(current: int, last_activity: date | None, today: date) -> StreakStatus:
    if last_activity is None:
        return StreakStatus.NONE
    if current <= 0:
        return StreakStatus.BROKEN
    if last_activity == today:
        return StreakStatus.ACTIVE_TODAY
    if last_activity == today - timedelta(days=1):
        return StreakStatus.AT_RISK
    return StreakStatus.BROKEN


async def get_streak_row(db: AsyncSession, user_id: int) -> Streak | None:
    result = await db.execute(select(Streak).where(Streak.user_id == user_id))
    return result.scalar_one_or_none()


async def update_streak(db: AsyncSession, user_id: int, clock: Clock) -> StreakUpdate:
    """Record activity for today. Flushes but does not commit."""
    today = clock.today()
    streak = await get_streak_row(db, user_id)
    if streak is None:
        streak = Streak(
            user_id=user_id,
            current_streak=1,
            longest_streak=1,
            last_activity_date=today,
            updated_at=clock.now_utc(),
        )
        db.add(streak)
        await db.flush()
        return StreakUpdate(current_streak=1, longest_streak=1, advanced=True)

    current, longest, advanced = advance_streak(
        streak.current_streak, streak.longest_streak, streak.last_activity_date, today
    )
    streak.current_streak = current
    streak.longest_streak = longest
    streak.last_activity_date = today
    streak.updated_at = clock.now_utc()
    await db.flush()
    return StreakUpdate(current_streak=current, longest_streak=longest, advanced=advanced)


async def check_streak_reset(db: AsyncSession, user_id: int, clock: Clock | None = None) -> bool:
    """Zero the streak when the last activity is older than yesterday. Returns True on reset."""
    clock = clock or get_clock()
    streak = await get_streak_row(db, user_id)
    if streak is None or streak.current_streak == 0:
        return False

    last = streak.last_activity_date
    if last is not None and last >= clock.yesterday():
        return False

    logger.info("Resetting streak for user %s (was %s, last activity %s)", user_id, streak.current_streak, last)
    streak.current_streak = 0
    streak.updated_at = clock.now_utc()
    await db.commit()
    return True


async def check_all_streaks(db: AsyncSession, clock: Clock | None = None) -> StreakCheckReport:
    """Run ``check_streak_reset`` for every user with a running streak.

    One user's failure is logged and counted; the batch carries on.
    """
    clock = clock or get_clock()
    result = await db.execute(select(Streak.user_id).where(Streak.current_streak > 0).order_by(Streak.user_id))
    user_ids = list(result.scalars().all())

    report = StreakCheckReport()
    for user_id in user_ids:
        report.checked += 1
        try:
            if await check_streak_reset(db, user_id, clock):
                report.reset += 1
        except Exception:
            logger.exception("Streak check failed for user %s", user_id)
            await db.rollback()
            report.failed += 1
    return report


async def get_streak_info(db: AsyncSession, user_id: int, clock: Clock | None = None) -> StreakInfo:
    """Read-only view. A lapsed streak reads as 0 even before the nightly job runs."""
    clock = clock or get_clock()
    streak = await get_streak_row(db, user_id)
    if streak is None:
        return StreakInfo(current_streak=0, longest_streak=0)

    status = classify_streak(streak.current_streak, streak.last_activity_date, clock.today())
    current = 0 if status is StreakStatus.BROKEN else streak.current_streak
    return StreakInfo(
        current_streak=current,
        longest_streak=streak.longest_streak,
        last_activity_date=streak.last_activity_date,
        status=status,
    )


def get_streak_encouragement(current_streak: int, status: StreakStatus) -> str:
    if status is StreakStatus.AT_RISK:
        return f"Complete today's mission to keep your {current_streak}-day streak! 🔥"
    if status is StreakStatus.BROKEN:
        return "Your streak has ended. Start a new one today!"
    if current_streak <= 0:
        return "Start your streak today!"
    if current_streak == 1:
        return "Day one, let's go! 💪"
    if current_streak <= 3:
        return f"{current_streak} days in a row, keep it up!"
    if current_streak <= 7:
        return f"{current_streak} days in a row, you're on fire! 🔥"
    if current_streak <= 14:
        return f"{current_streak} days, you're a real chef! 👨‍🍳"
    if current_streak <= 30:
        return f"{current_streak} days, incredible consistency! ⭐"
    return f"{current_streak} days, you're a legend! 🏆"
