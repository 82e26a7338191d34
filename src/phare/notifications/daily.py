"""Daily mission reminders, dispatched every minute by the worker."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from phare.clock import Clock, get_clock
from phare.config import get_settings
from phare.db.models import Restaurant, User
from phare.kv_store import KeyValueStore
from phare.missions.service import MissionService
from phare.notifications.service import create_notification

logger = logging.getLogger(__name__)


class ReminderReport(BaseModel):
    checked: int = 0
    sent: int = 0
    failed: int = 0


def reminder_key(user_id: int, day: str) -> str:
    return f"reminder:{user_id}:{day}"


async def dispatch_daily_reminders(
    db: AsyncSession,
    redis: Any | None,
    store: KeyValueStore,
    clock: Clock | None = None,
) -> ReminderReport:
    """Remind every onboarded user whose reminder time is now.

    The effective time is the recommended mission's template override, else
    the user's preference. ``store`` guarantees at most one reminder per user
    and day across worker instances.
    """
    clock = clock or get_clock()
    settings = get_settings()
    now_hhmm = clock.hhmm()
    today = clock.today().isoformat()

    result = await db.execute(
        select(User.id, User.notification_time)
        .join(Restaurant, Restaurant.user_id == User.id)
        .where(Restaurant.onboarding_completed.is_(True))
        .order_by(User.id)
    )
    users = [(row.id, row.notification_time) for row in result]

    service = MissionService(db, clock=clock, redis=redis)
    report = ReminderReport()
    for user_id, preferred_time in users:
        report.checked += 1
        try:
            missions = await service.get_today_missions(user_id)
            mission = next((m for m in missions if m.is_recommended and m.is_pending), None)
            if mission is None:
                continue

            send_at = mission.template.notification_time or preferred_time or settings.default_notification_time
            if send_at != now_hhmm:
                continue
            if not await store.set_once(reminder_key(user_id, today), settings.reminder_dedup_ttl_seconds):
                continue

            await create_notification(
                db,
                user_id,
                "mission_reminder",
                "Your mission of the day is waiting 📸",
                mission.template.title,
                {"mission_id": mission.id},
                redis=redis,
                now=clock.now_utc(),
            )
            report.sent += 1
        except Exception:
            logger.exception("Daily reminder failed for user %s", user_id)
            await db.rollback()
            report.failed += 1
    return report
