"""Regional clock used for every day-boundary decision.

Missions, streaks and reminders all agree on what "today" means by asking a
``Clock``. Production code builds one from settings; tests pass a clock frozen
at a chosen instant.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from phare.config import get_settings
from phare.exceptions import PhareError


class Clock:
    """Wall clock pinned to a fixed regional timezone."""

    def __init__(self, tz_name: str, fixed_now: datetime | None = None) -> None:
        try:
            self.tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise PhareError(f"Unknown timezone: {tz_name}") from exc
        if fixed_now is not None and fixed_now.tzinfo is None:
            raise PhareError("fixed_now must be timezone-aware")
        self._fixed_now = fixed_now

    def now(self) -> datetime:
        """Current instant expressed in the regional timezone."""
        if self._fixed_now is not None:
            return self._fixed_now.astimezone(self.tz)
        return datetime.now(self.tz)

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)

    def today(self) -> date:
        """Calendar date in the regional timezone."""
        return self.now().date()

    def yesterday(self) -> date:
        return self.today() - timedelta(days=1)

    def hhmm(self) -> str:
        """Current local time formatted as HH:MM."""
        return self.now().strftime("%H:%M")


def get_clock() -> Clock:
    """Build the default clock from application settings."""
    return Clock(get_settings().timezone)
