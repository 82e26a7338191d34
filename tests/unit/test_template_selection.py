"""Template ranking and content-idea matching, on in-memory rows."""

import random

import pytest

from phare.db.models import ContentIdea, MissionTemplate
from phare.db.tags import TagFilter
from phare.missions.selection import (
    SelectionContext,
    choose_template,
    eligible_templates,
    match_content_idea,
    pick_for_slot,
    pick_replacement,
    slot_types,
)


def _template(id_, type_, order=0, category=None, required_tutorial=None, active=True):
    return MissionTemplate(
        id=id_,
        strategy_id=1,
        type=type_,
        title=f"{type_} {id_}",
        order=order,
        thematic_category_id=category,
        required_tutorial_id=required_tutorial,
        is_active=active,
    )


def _idea(id_, template_id=None, restaurants=None, types=None, categories=None, active=True):
    idea = ContentIdea(id=id_, suggestion_text=f"idea {id_}", mission_template_id=template_id, is_active=active)
    idea.restaurant_tags = TagFilter.only(restaurants) if restaurants else TagFilter.any()
    idea.content_types = TagFilter.only(types) if types else TagFilter.any()
    idea.thematic_category_ids = TagFilter.only(categories) if categories else TagFilter.any()
    return idea


@pytest.fixture
def rng():
    return random.Random(7)


class TestSlotTypes:
    def test_tuto_slot_falls_back_to_publications(self):
        assert slot_types(3)[0] == "tuto"
        assert "post" in slot_types(3)

    def test_engagement_slot(self):
        assert slot_types(2) == ("engagement",)


class TestEligibility:
    def test_inactive_and_wrong_type_excluded(self):
        templates = [_template(1, "post", active=False), _template(2, "engagement"), _template(3, "story")]
        assert [t.id for t in eligible_templates(templates, ("post", "story"), SelectionContext())] == [3]

    def test_prerequisite_tutorial(self):
        gated = _template(1, "reel", required_tutorial=9)
        assert eligible_templates([gated], ("reel",), SelectionContext()) == []
        ctx = SelectionContext(completed_tutorial_ids=frozenset({9}))
        assert eligible_templates([gated], ("reel",), ctx) == [gated]

    def test_one_mission_per_type_per_day(self):
        ctx = SelectionContext()
        ctx.mark_used(_template(1, "post"))
        assert eligible_templates([_template(2, "post")], ("post",), ctx) == []
        assert len(eligible_templates([_template(2, "post")], ("post",), ctx, enforce_unique_type=False)) == 1


class TestChooseTemplate:
    def test_never_completed_preferred(self, rng):
        done, fresh = _template(1, "post"), _template(2, "post")
        ctx = SelectionContext(completed_template_ids=frozenset({1}))
        assert choose_template([done, fresh], ctx, rng) is fresh

    def test_cycles_when_everything_completed(self, rng):
        done = _template(1, "post")
        ctx = SelectionContext(completed_template_ids=frozenset({1}))
        assert choose_template([done], ctx, rng) is done

    def test_recent_category_rotated_out(self, rng):
        recent, other = _template(1, "post", category=5), _template(2, "post", category=6)
        ctx = SelectionContext(recent_category_ids=frozenset({5}))
        assert choose_template([recent, other], ctx, rng) is other

    def test_same_seed_same_choice(self):
        templates = [_template(i, "post", order=i) for i in range(1, 6)]
        first = choose_template(templates, SelectionContext(), random.Random(3))
        second = choose_template(list(reversed(templates)), SelectionContext(), random.Random(3))
        assert first is second

    def test_empty(self, rng):
        assert choose_template([], SelectionContext(), rng) is None


class TestPickForSlot:
    def test_tuto_slot_without_tuto_uses_publication(self, rng):
        post = _template(1, "post")
        assert pick_for_slot(3, [post, _template(2, "engagement")], SelectionContext(), rng) is post

    def test_replacement_excludes_current(self, rng):
        current, alt = _template(1, "engagement"), _template(2, "engagement")
        assert pick_replacement(2, [current, alt], SelectionContext(), {1}, rng) is alt

    def test_replacement_falls_back_to_any_type(self, rng):
        current, story = _template(1, "engagement"), _template(2, "story")
        assert pick_replacement(2, [current, story], SelectionContext(), {1}, rng) is story

    def test_no_replacement(self, rng):
        assert pick_replacement(2, [_template(1, "engagement")], SelectionContext(), {1}, rng) is None


class TestMatchContentIdea:
    def test_bound_idea_wins(self, rng):
        template = _template(1, "post")
        generic, bound = _idea(1), _idea(2, template_id=1)
        assert match_content_idea([generic, bound], template, "brasserie", rng) is bound

    def test_idea_bound_elsewhere_ignored(self, rng):
        assert match_content_idea([_idea(1, template_id=99)], _template(1, "post"), "brasserie", rng) is None

    def test_tag_filters(self, rng):
        template = _template(1, "reel", category=4)
        ideas = [
            _idea(1, restaurants=["pizzeria"]),
            _idea(2, types=["post"]),
            _idea(3, categories=[8]),
            _idea(4, restaurants=["brasserie"], types=["reel"], categories=[4]),
        ]
        assert match_content_idea(ideas, template, "brasserie", rng).id == 4

    def test_inactive_skipped(self, rng):
        assert match_content_idea([_idea(1, active=False)], _template(1, "post"), "brasserie", rng) is None
