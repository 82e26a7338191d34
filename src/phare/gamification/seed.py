"""Default gamification catalog: 10 levels, 7 XP actions and 10 badges."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from phare.db.models import Badge, LevelThreshold, XpAction

logger = logging.getLogger(__name__)

LEVEL_SEED_DATA: list[dict] = [
    {"level": 1, "xp_required": 0, "name": "Débutant", "icon": "🌱"},
    {"level": 2, "xp_required": 50, "name": "Apprenti", "icon": "🌿"},
    {"level": 3, "xp_required": 150, "name": "Curieux", "icon": "🌲"},
    {"level": 4, "xp_required": 300, "name": "Motivé", "icon": "🌳"},
    {"level": 5, "xp_required": 500, "name": "Régulier", "icon": "⭐"},
    {"level": 6, "xp_required": 750, "name": "Engagé", "icon": "🌟"},
    {"level": 7, "xp_required": 1000, "name": "Expert", "icon": "💫"},
    {"level": 8, "xp_required": 1500, "name": "Maître", "icon": "🏆"},
    {"level": 9, "xp_required": 2000, "name": "Légende", "icon": "👑"},
    {"level": 10, "xp_required": 3000, "name": "Le Phare", "icon": "🔥"},
]

XP_ACTION_SEED_DATA: list[dict] = [
    {"action_type": "mission_completed", "xp_amount": 10, "description": "Daily mission completed"},
    {"action_type": "tutorial_completed", "xp_amount": 5, "description": "Tutorial completed"},
    {"action_type": "streak_day", "xp_amount": 2, "description": "Consecutive streak day"},
    {"action_type": "first_mission", "xp_amount": 20, "description": "First mission completed"},
    {"action_type": "first_tutorial", "xp_amount": 10, "description": "First tutorial completed"},
    {"action_type": "weekly_streak", "xp_amount": 15, "description": "7-day streak"},
    {"action_type": "badge_earned", "xp_amount": 25, "description": "Badge unlocked"},
]

BADGE_SEED_DATA: list[dict] = [
    # Missions
    {"slug": "commis", "name": "Commis", "description": "Complete 5 missions", "icon": "👨‍🍳",
     "criteria_type": "missions_completed", "criteria_value": 5, "order": 1},
    {"slug": "sous-chef", "name": "Sous-chef", "description": "Complete 20 missions", "icon": "🍳",
     "criteria_type": "missions_completed", "criteria_value": 20, "order": 2},
    {"slug": "chef", "name": "Chef", "description": "Complete 50 missions", "icon": "👨‍🍳",
     "criteria_type": "missions_completed", "criteria_value": 50, "order": 3},
    {"slug": "chef-etoile", "name": "Chef Étoilé", "description": "Complete 100 missions", "icon": "⭐",
     "criteria_type": "missions_completed", "criteria_value": 100, "order": 4},
    # Streaks
    {"slug": "regulier", "name": "Régulier", "description": "Keep a 7-day streak", "icon": "🔥",
     "criteria_type": "streak_days", "criteria_value": 7, "order": 5},
    {"slug": "assidu", "name": "Assidu", "description": "Keep a 14-day streak", "icon": "💪",
     "criteria_type": "streak_days", "criteria_value": 14, "order": 6},
    {"slug": "machine", "name": "Machine", "description": "Keep a 30-day streak", "icon": "🚀",
     "criteria_type": "streak_days", "criteria_value": 30, "order": 7},
    # Tutorials
    {"slug": "curieux", "name": "Curieux", "description": "Watch 3 tutorials", "icon": "📚",
     "criteria_type": "tutorials_viewed", "criteria_value": 3, "order": 8},
    {"slug": "apprenti", "name": "Apprenti", "description": "Watch 10 tutorials", "icon": "🎓",
     "criteria_type": "tutorials_viewed", "criteria_value": 10, "order": 9},
    {"slug": "expert", "name": "Expert", "description": "Watch every tutorial", "icon": "🏆",
     "criteria_type": "tutorials_viewed", "criteria_value": 20, "order": 10},
]


async def ensure_default_catalog(db: AsyncSession) -> int:
    """Insert the default rows that are missing. Returns the number inserted.

    Existing rows are left untouched so back-office edits survive a re-run.
    """
    inserted = 0

    levels = set((await db.execute(select(LevelThreshold.level))).scalars().all())
    for data in LEVEL_SEED_DATA:
        if data["level"] not in levels:
            db.add(LevelThreshold(**data))
            inserted += 1

    actions = set((await db.execute(select(XpAction.action_type))).scalars().all())
    for data in XP_ACTION_SEED_DATA:
        if data["action_type"] not in actions:
            db.add(XpAction(is_active=True, **data))
            inserted += 1

    badges = set((await db.execute(select(Badge.slug))).scalars().all())
    for data in BADGE_SEED_DATA:
        if data["slug"] not in badges:
            db.add(Badge(is_active=True, **data))
            inserted += 1

    await db.commit()
    if inserted:
        logger.info("Seeded %d gamification catalog rows", inserted)
    return inserted
