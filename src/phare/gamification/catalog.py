"""Read-only snapshot of the gamification configuration rows.

Level thresholds, XP actions and badges are edited from the back-office.
The engine loads them once per invocation and passes the snapshot around so a
single completion never sees two different versions of the rules.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from phare.db.models import Badge, LevelThreshold, XpAction


@dataclass(frozen=True)
class LevelRow:
    level: int
    xp_required: int
    name: str | None = None
    icon: str | None = None


@dataclass(frozen=True)
class BadgeRule:
    id: int
    slug: str
    name: str
    criteria_type: str
    criteria_value: int
    icon: str | None = None


@dataclass(frozen=True)
class GamificationCatalog:
    thresholds: tuple[LevelRow, ...] = ()
    xp_amounts: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    badges: tuple[BadgeRule, ...] = ()

    def xp_for(self, action_type: str) -> int:
        """XP for an action; a missing or inactive action is worth nothing."""
        return self.xp_amounts.get(action_type, 0)

    def badges_for(self, criteria: Iterable[str]) -> list[BadgeRule]:
        wanted = set(criteria)
        return [badge for badge in self.badges if badge.criteria_type in wanted]


async def load_catalog(db: AsyncSession) -> GamificationCatalog:
    """Load the active configuration rows into an immutable snapshot."""
    thresholds = await db.execute(select(LevelThreshold).order_by(LevelThreshold.xp_required.asc()))
    actions = await db.execute(select(XpAction).where(XpAction.is_active.is_(True)))
    badges = await db.execute(
        select(Badge).where(Badge.is_active.is_(True)).order_by(Badge.order.asc(), Badge.id.asc())
    )

    return GamificationCatalog(
        thresholds=tuple(
            LevelRow(level=row.level, xp_required=row.xp_required, name=row.name, icon=row.icon)
            for row in thresholds.scalars()
        ),
        xp_amounts=MappingProxyType({row.action_type: row.xp_amount for row in actions.scalars()}),
        badges=tuple(
            BadgeRule(
                id=row.id,
                slug=row.slug,
                name=row.name,
                criteria_type=row.criteria_type,
                criteria_value=row.criteria_value,
                icon=row.icon,
            )
            for row in badges.scalars()
        ),
    )
