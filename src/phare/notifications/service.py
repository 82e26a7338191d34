"""In-app notification creation and delivery.

Notifications are:
1. Persisted in the database
2. Pushed to the user via Redis pub/sub on ``ws:user:{user_id}``

Types: mission_reminder, mission_completed, streak_milestone, badge_unlocked, level_up
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from phare.config import get_settings
from phare.db.models import Notification
from phare.gamification.schemas import GamificationOutcome

logger = logging.getLogger(__name__)

VALID_TYPES = {"mission_reminder", "mission_completed", "streak_milestone", "badge_unlocked", "level_up"}


async def push_notification_to_user(redis: Any | None, notification: Notification) -> None:
    """Publish a notification to ``ws:user:{user_id}``. The row must already have an id."""
    if redis is None:
        return

    ws_payload = {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "type": notification.type,
            "title": notification.title,
            "body": notification.body,
            "data": notification.data or {},
            "timestamp": notification.created_at.isoformat() if notification.created_at else None,
            "read": False,
        },
    }
    try:
        await redis.publish(f"ws:user:{notification.user_id}", json.dumps(ws_payload))
    except Exception:
        logger.warning("Failed to push notification via ws:user:%s", notification.user_id, exc_info=True)


async def create_notification(
    db: AsyncSession,
    user_id: int,
    type_: str,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
    redis: Any | None = None,
    now: datetime | None = None,
) -> Notification:
    """Create a notification, commit it and push it via WebSocket."""
    if type_ not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {VALID_TYPES}")

    notification = Notification(
        user_id=user_id,
        type=type_,
        title=title,
        body=body,
        data=data or {},
        created_at=now or datetime.now(timezone.utc),
    )
    db.add(notification)
    await db.commit()

    await push_notification_to_user(redis, notification)
    return notification


async def get_notifications(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Notification], int]:
    """Get user's notifications (paginated, most recent first)."""
    offset = (page - 1) * per_page

    total_result = await db.execute(
        select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def mark_as_read(db: AsyncSession, user_id: int, notification_id: int) -> bool:
    """Mark a single notification as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
            Notification.read_at.is_(None),
        )
        .values(read_at=datetime.now(timezone.utc))
    )
    await db.commit()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        .values(read_at=datetime.now(timezone.utc))
    )
    await db.commit()
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
    )
    return result.scalar_one()


async def notify_gamification_outcome(
    db: AsyncSession,
    user_id: int,
    outcome: GamificationOutcome,
    redis: Any | None = None,
    now: datetime | None = None,
) -> int:
    """Create the streak-milestone, badge and level-up notifications for an outcome.

    Best effort: a failure is logged and the remaining notifications still go out.
    Returns the number created.
    """
    interval = get_settings().streak_milestone_interval
    pending: list[tuple[str, str, str, dict[str, Any]]] = []

    streak = outcome.streak
    if streak is not None and streak.advanced and interval > 0 and streak.current_streak % interval == 0:
        pending.append((
            "streak_milestone",
            f"{streak.current_streak}-day streak! 🔥",
            f"You have completed a mission {streak.current_streak} days in a row.",
            {"current_streak": streak.current_streak},
        ))

    for badge in outcome.unlocked_badges:
        pending.append((
            "badge_unlocked",
            f"New badge: {badge.name}",
            f"{badge.icon or '🏅'} You unlocked the \"{badge.name}\" badge.",
            {"badge_slug": badge.slug},
        ))

    if outcome.level_up is not None:
        name = outcome.level_up.name or f"Level {outcome.level_up.new_level}"
        pending.append((
            "level_up",
            "Level up!",
            f"You reached level {outcome.level_up.new_level}: {name}",
            {"old_level": outcome.level_up.old_level, "new_level": outcome.level_up.new_level},
        ))

    created = 0
    for type_, title, body, data in pending:
        try:
            await create_notification(db, user_id, type_, title, body, data, redis=redis, now=now)
            created += 1
        except Exception:
            logger.warning("Failed to create %s notification for user %s", type_, user_id, exc_info=True)
            await db.rollback()
    return created
