"""Tag filters on content ideas."""

import pytest

from phare.db.models import ContentIdea
from phare.db.tags import TagFilter, TagMode


class TestTagFilter:
    def test_empty_storage_is_unrestricted(self):
        assert TagFilter.from_storage(None).is_unrestricted
        assert TagFilter.from_storage([]).is_unrestricted

    def test_only_matches_listed_values(self):
        tags = TagFilter.from_storage(["brasserie", "bistrot"])
        assert tags.mode is TagMode.ONLY
        assert tags.matches("bistrot") is True
        assert tags.matches("pizzeria") is False

    def test_missing_value_only_passes_any(self):
        assert TagFilter.any().matches(None) is True
        assert TagFilter.only(["brasserie"]).matches(None) is False

    def test_integer_coercion(self):
        tags = TagFilter.from_storage([3, "4"], coerce=int)
        assert tags.matches(4) is True
        assert tags.matches("4") is False

    def test_storage_round_trip_shape(self):
        assert TagFilter.any().to_storage() is None
        assert TagFilter.only(["b", "a"]).to_storage() == ["a", "b"]

    def test_invalid_states_rejected(self):
        with pytest.raises(ValueError):
            TagFilter(TagMode.ONLY)
        with pytest.raises(ValueError):
            TagFilter(TagMode.ANY, frozenset({"x"}))

    def test_non_list_storage_rejected(self):
        with pytest.raises(ValueError):
            TagFilter.from_storage("brasserie")


class TestContentIdeaTags:
    def test_properties_store_null_for_unrestricted(self):
        idea = ContentIdea(suggestion_text="Plat du jour", is_active=True)
        idea.restaurant_tags = TagFilter.only(["brasserie"])
        idea.content_types = TagFilter.any()

        assert idea.restaurant_tags_raw == ["brasserie"]
        assert idea.content_types_raw is None
        assert idea.thematic_category_ids.is_unrestricted
