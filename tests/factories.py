"""Row builders and test doubles shared by the test modules."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from phare.db.models import Restaurant, User

PARIS = ZoneInfo("Europe/Paris")

# Wednesday 11 March 2026, 10:00 in Paris
FROZEN_NOW = datetime(2026, 3, 11, 10, 0, tzinfo=PARIS)


class MemoryKeyValueStore:
    """In-process KeyValueStore."""

    def __init__(self) -> None:
        self.keys: dict[str, int] = {}

    async def set_once(self, key: str, ttl_seconds: int) -> bool:
        if key in self.keys:
            return False
        self.keys[key] = ttl_seconds
        return True


async def make_user(
    db: AsyncSession,
    email: str,
    strategy_id: int | None = None,
    restaurant_type: str = "brasserie",
    rhythm: str | None = "daily",
    notification_time: str = "10:00",
    onboarded: bool = True,
) -> int:
    """Create a user with a restaurant and return the user id."""
    user = User(email=email, full_name=email.split("@")[0], notification_time=notification_time)
    db.add(user)
    await db.flush()
    db.add(
        Restaurant(
            user_id=user.id,
            name=f"Chez {user.full_name}",
            type=restaurant_type,
            strategy_id=strategy_id,
            publication_rhythm=rhythm,
            onboarding_completed=onboarded,
        )
    )
    await db.commit()
    return user.id
