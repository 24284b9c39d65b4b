"""Tests for somrec.engine.library.InMemoryLibrary."""

import json

import pytest

from somrec.engine.library import InMemoryLibrary, TrackRecord
from somrec.search.categories import TrackArtistLinkType

pytestmark = pytest.mark.unit


@pytest.fixture
def library_json(tmp_path):
    path = tmp_path / "library.json"
    path.write_text(
        json.dumps(
            {
                "tracks": [
                    {"id": 1, "release": 10, "artists": {"artist": [100], "composer": [200, 201]}},
                    {"id": 2, "release": 10},
                    {"id": "mbid-3", "artists": {"remixer": ["dj-x"]}},
                ],
                "tracklists": {"5": [1, 2], "favourites": ["mbid-3"]},
            }
        )
    )
    return path


class TestInMemoryLibrary:
    def test_from_json(self, library_json):
        library = InMemoryLibrary.from_json(library_json)

        assert library.track_ids() == [1, 2, "mbid-3"]
        assert library.release_of(1) == 10
        assert library.release_of("mbid-3") is None
        assert library.artists_of(1, TrackArtistLinkType.COMPOSER) == (200, 201)
        assert library.artists_of("mbid-3", TrackArtistLinkType.REMIXER) == ("dj-x",)

    def test_tracklist_keys_restored(self, library_json):
        library = InMemoryLibrary.from_json(library_json)
        assert library.tracks_of_list(5) == (1, 2)
        assert library.tracks_of_list("favourites") == ("mbid-3",)

    def test_unknown_lookups_are_empty(self):
        library = InMemoryLibrary([TrackRecord(1)])
        assert library.release_of(99) is None
        assert library.artists_of(99, TrackArtistLinkType.ARTIST) == ()
        assert library.artists_of(1, TrackArtistLinkType.ARTIST) == ()
        assert library.tracks_of_list(3) == ()

    def test_duplicate_track_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            InMemoryLibrary([TrackRecord(1), TrackRecord(1)])

    def test_unknown_link_type_in_json_rejected(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"tracks": [{"id": 1, "artists": {"drummer": [3]}}]}))
        with pytest.raises(ValueError):
            InMemoryLibrary.from_json(path)
