"""Publication rhythm: which weekdays a restaurant is expected to publish."""

from __future__ import annotations

from datetime import date, timedelta

from phare.db.models import PublicationRhythm

# date.weekday(): Monday is 0
_PUBLICATION_WEEKDAYS: dict[str, frozenset[int]] = {
    PublicationRhythm.DAILY.value: frozenset(range(7)),
    PublicationRhythm.FIVE_WEEK.value: frozenset({0, 1, 2, 3, 4}),
    PublicationRhythm.THREE_WEEK.value: frozenset({0, 2, 4}),
    PublicationRhythm.ONCE_WEEK.value: frozenset({0}),
}


def is_publication_day(rhythm: str | None, day: date) -> bool:
    """True when ``day`` is a publishing day. No rhythm (or an unknown one) means daily."""
    weekdays = _PUBLICATION_WEEKDAYS.get(rhythm or PublicationRhythm.DAILY.value)
    if weekdays is None:
        return True
    return day.weekday() in weekdays


def planned_mission_days(rhythm: str | None, today: date, days_ahead: int = 30) -> list[date]:
    """Publishing days from ``today`` inclusive over the next ``days_ahead`` days."""
    return [
        day
        for day in (today + timedelta(days=offset) for offset in range(days_ahead))
        if is_publication_day(rhythm, day)
    ]
