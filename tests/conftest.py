"""Shared test fixtures."""

from __future__ import annotations

import os
import random
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from phare.clock import Clock
from phare.config import get_settings
from phare.database import create_all
from phare.db.base import Base
from phare.db.models import (
    ContentIdea,
    MissionTemplate,
    Strategy,
    ThematicCategory,
    Tutorial,
)
from phare.db.tags import TagFilter
from phare.gamification.seed import ensure_default_catalog
from tests.factories import FROZEN_NOW, make_user


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("PHARE_TIMEZONE", "Europe/Paris")
    monkeypatch.setenv("PHARE_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> Clock:
    return Clock("Europe/Paris", fixed_now=FROZEN_NOW)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    url = os.environ.get("PHARE_TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    if url.startswith("sqlite"):
        test_engine = create_async_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        test_engine = create_async_engine(url)

    await create_all(test_engine)
    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@dataclass
class World:
    """Primary keys of the seeded rows (plain ints stay valid across rollbacks)."""

    user_id: int
    strategy_id: int
    tutorial_id: int
    terrasse_id: int
    dessert_id: int
    post_id: int
    story_id: int
    reel_id: int
    engagement_id: int
    engagement_alt_id: int
    tuto_id: int
    idea_id: int
    pizzeria_idea_id: int


@pytest_asyncio.fixture
async def world(db_session: AsyncSession) -> World:
    """One onboarded brasserie on a strategy with every mission type, plus the default catalog."""
    db = db_session
    await ensure_default_catalog(db)

    strategy = Strategy(name="Ouverture", slug="ouverture", is_active=True)
    tutorial = Tutorial(title="Bien cadrer un plat", order=1, is_active=True)
    terrasse = ThematicCategory(name="Terrasse", slug="terrasse")
    dessert = ThematicCategory(name="Dessert", slug="dessert")
    db.add_all([strategy, tutorial, terrasse, dessert])
    await db.flush()

    def template(type_: str, title: str, order: int, **kwargs) -> MissionTemplate:
        return MissionTemplate(
            strategy_id=strategy.id,
            type=type_,
            title=title,
            content_idea=f"Idea for {title}",
            order=order,
            is_active=True,
            **kwargs,
        )

    post = template("post", "Photo du plat du jour", 1, thematic_category_id=terrasse.id)
    story = template("story", "Coulisses en cuisine", 2, thematic_category_id=dessert.id)
    reel = template("reel", "Dressage en accéléré", 3)
    engagement = template("engagement", "Répondre aux commentaires", 4)
    engagement_alt = template("engagement", "Liker cinq comptes du quartier", 5)
    tuto = template("tuto", "Regarder le tutoriel cadrage", 6, tutorial_id=tutorial.id)
    db.add_all([post, story, reel, engagement, engagement_alt, tuto])

    idea = ContentIdea(suggestion_text="Montre la préparation du jour", is_active=True)
    idea.restaurant_tags = TagFilter.only(["brasserie"])
    pizzeria_idea = ContentIdea(suggestion_text="La pâte qui lève", is_active=True)
    pizzeria_idea.restaurant_tags = TagFilter.only(["pizzeria"])
    db.add_all([idea, pizzeria_idea])
    await db.commit()

    user_id = await make_user(db, "chef@bistro.fr", strategy_id=strategy.id)
    return World(
        user_id=user_id,
        strategy_id=strategy.id,
        tutorial_id=tutorial.id,
        terrasse_id=terrasse.id,
        dessert_id=dessert.id,
        post_id=post.id,
        story_id=story.id,
        reel_id=reel.id,
        engagement_id=engagement.id,
        engagement_alt_id=engagement_alt.id,
        tuto_id=tuto.id,
        idea_id=idea.id,
        pizzeria_idea_id=pizzeria_idea.id,
    )
