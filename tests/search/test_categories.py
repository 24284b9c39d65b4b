"""Tests for somrec.search.categories.Category."""

import pytest

from somrec.search.categories import Category, ObjectKind, TrackArtistLinkType, all_categories

pytestmark = pytest.mark.unit


class TestCategory:
    @pytest.mark.parametrize(
        "category, text",
        [
            (Category.track(), "track"),
            (Category.release(), "release"),
            (Category.artist(TrackArtistLinkType.COMPOSER), "artist:composer"),
        ],
    )
    def test_string_form_parses_back(self, category, text):
        assert str(category) == text
        assert Category.parse(text) == category

    @pytest.mark.parametrize("text", ["album", "artist:dj", "track:composer", "artist"])
    def test_malformed_category_raises(self, text):
        with pytest.raises(ValueError):
            Category.parse(text)

    def test_artist_requires_link_type(self):
        with pytest.raises(ValueError, match="link type"):
            Category(ObjectKind.ARTIST)

    def test_categories_are_hashable_keys(self):
        keys = {Category.track(): 1, Category.artist("writer"): 2}
        assert keys[Category.artist(TrackArtistLinkType.WRITER)] == 2

    def test_all_categories_cover_every_link_type(self):
        categories = all_categories()
        assert len(categories) == 2 + len(TrackArtistLinkType)
        assert len(set(categories)) == len(categories)
