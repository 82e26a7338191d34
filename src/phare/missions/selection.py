"""Template and content-idea selection for daily missions.

Everything here is pure: callers load the rows, this module ranks them.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from phare.db.models import ContentIdea, MissionTemplate, MissionType

PUBLICATION_TYPES: tuple[str, ...] = (
    MissionType.POST.value,
    MissionType.STORY.value,
    MissionType.REEL.value,
    MissionType.CAROUSEL.value,
)

# slot number -> type groups tried in order
SLOT_PLAN: dict[int, tuple[tuple[str, ...], ...]] = {
    1: (PUBLICATION_TYPES,),
    2: ((MissionType.ENGAGEMENT.value,),),
    3: ((MissionType.TUTO.value,), PUBLICATION_TYPES),
}

PUBLICATION_SLOT = 1
ENGAGEMENT_SLOT = 2


def slot_types(slot_number: int) -> tuple[str, ...]:
    """Every type a slot may hold, in preference order."""
    types: list[str] = []
    for group in SLOT_PLAN.get(slot_number, (PUBLICATION_TYPES,)):
        types.extend(t for t in group if t not in types)
    return tuple(types)


@dataclass
class SelectionContext:
    """What the engine knows about the user when picking templates."""

    completed_tutorial_ids: frozenset[int] = frozenset()
    completed_template_ids: frozenset[int] = frozenset()
    recent_category_ids: frozenset[int] = frozenset()
    used_template_ids: set[int] = field(default_factory=set)
    used_types: set[str] = field(default_factory=set)
    used_category_ids: set[int] = field(default_factory=set)

    def mark_used(self, template: MissionTemplate) -> None:
        self.used_template_ids.add(template.id)
        self.used_types.add(template.type)
        if template.thematic_category_id is not None:
            self.used_category_ids.add(template.thematic_category_id)


def eligible_templates(
    templates: Iterable[MissionTemplate],
    allowed_types: Sequence[str],
    ctx: SelectionContext,
    exclude_ids: Iterable[int] = (),
    enforce_unique_type: bool = True,
) -> list[MissionTemplate]:
    excluded = set(exclude_ids) | ctx.used_template_ids
    result = []
    for template in templates:
        if not template.is_active or template.type not in allowed_types:
            continue
        if template.id in excluded:
            continue
        if enforce_unique_type and template.type in ctx.used_types:
            continue
        if template.required_tutorial_id is not None and template.required_tutorial_id not in ctx.completed_tutorial_ids:
            continue
        result.append(template)
    return result


def choose_template(
    candidates: Sequence[MissionTemplate],
    ctx: SelectionContext,
    rng: random.Random,
) -> MissionTemplate | None:
    """Pick one template, preferring never-completed ones and fresh categories.

    When every candidate was already completed the engine cycles back through them.
    """
    if not candidates:
        return None

    fresh = [t for t in candidates if t.id not in ctx.completed_template_ids]
    pool = fresh or list(candidates)

    blocked = ctx.recent_category_ids | ctx.used_category_ids
    rotated = [t for t in pool if t.thematic_category_id is None or t.thematic_category_id not in blocked]
    pool = rotated or pool

    pool = sorted(pool, key=lambda t: (t.order, t.id))
    return rng.choice(pool)


def pick_for_slot(
    slot_number: int,
    templates: Sequence[MissionTemplate],
    ctx: SelectionContext,
    rng: random.Random,
) -> MissionTemplate | None:
    for group in SLOT_PLAN.get(slot_number, (PUBLICATION_TYPES,)):
        chosen = choose_template(eligible_templates(templates, group, ctx), ctx, rng)
        if chosen is not None:
            return chosen
    return None


def pick_replacement(
    slot_number: int,
    templates: Sequence[MissionTemplate],
    ctx: SelectionContext,
    exclude_ids: Iterable[int],
    rng: random.Random,
) -> MissionTemplate | None:
    """Replacement for a reloaded slot: same type group first, then any type."""
    exclude_ids = set(exclude_ids)
    preferred = eligible_templates(templates, slot_types(slot_number), ctx, exclude_ids, enforce_unique_type=False)
    chosen = choose_template(preferred, ctx, rng)
    if chosen is not None:
        return chosen
    every_type = tuple(t.value for t in MissionType)
    return choose_template(
        eligible_templates(templates, every_type, ctx, exclude_ids, enforce_unique_type=False),
        ctx,
        rng,
    )


def match_content_idea(
    ideas: Iterable[ContentIdea],
    template: MissionTemplate,
    restaurant_type: str | None,
    rng: random.Random,
) -> ContentIdea | None:
    """An active idea whose tag filters accept this restaurant and template.

    Ideas bound to the template win over generic ones; ideas bound to another
    template are never used.
    """
    bound: list[ContentIdea] = []
    generic: list[ContentIdea] = []
    for idea in ideas:
        if not idea.is_active:
            continue
        if idea.mission_template_id is not None and idea.mission_template_id != template.id:
            continue
        if not idea.restaurant_tags.matches(restaurant_type):
            continue
        if not idea.content_types.matches(template.type):
            continue
        if not idea.thematic_category_ids.matches(template.thematic_category_id):
            continue
        (bound if idea.mission_template_id == template.id else generic).append(idea)

    pool = bound or generic
    if not pool:
        return None
    return rng.choice(sorted(pool, key=lambda idea: idea.id))
