"""Tests for somrec.search.indices: category indices and index building."""

import numpy as np
import pytest

from somrec.cancellation import Cancelled, CancellationToken
from somrec.search.categories import Category, TrackArtistLinkType
from somrec.search.indices import (
    CategoryIndex,
    CategoryIndexBuilder,
    FeatureVector,
    Snapshot,
    build_indices,
)
from somrec.som.network import Position

pytestmark = pytest.mark.unit


class TestCategoryIndexBuilder:
    def test_both_directions_filled(self, scenario_index):
        assert scenario_index.positions_of("A") == (Position(0, 0),)
        assert scenario_index.objects_at(Position(0, 0)) == ("A", "B")
        assert scenario_index.objects_at(Position(1, 0)) == ()
        assert scenario_index.is_consistent()

    def test_object_keeps_distinct_positions_in_order(self):
        builder = CategoryIndexBuilder()
        builder.add(1, Position(1, 1))
        builder.add(1, Position(0, 0))
        builder.add(1, Position(1, 1))
        index = builder.build()

        assert index.positions_of(1) == (Position(1, 1), Position(0, 0))
        assert index.objects_at(Position(1, 1)) == (1,)

    def test_built_index_is_read_only(self, scenario_index):
        with pytest.raises(TypeError):
            scenario_index.positions["Z"] = (Position(0, 0),)

    def test_inconsistent_index_detected(self):
        index = CategoryIndex({"A": [Position(0, 0)]}, {Position(0, 1): ["A"]})
        assert not index.is_consistent()

    def test_repeated_id_in_cell_is_inconsistent(self):
        index = CategoryIndex({"A": [Position(0, 0)]}, {Position(0, 0): ["A", "A"]})
        assert not index.is_consistent()

    def test_unknown_id_has_no_positions(self, scenario_index):
        assert scenario_index.positions_of("Z") == ()
        assert "Z" not in scenario_index


class TestBuildIndices:
    def test_assigns_closest_cell_per_category(self, close_grid_network):
        shared = np.array([0.9, 0.0])
        vectors = [
            FeatureVector("t1", Category.track(), np.array([0.0, 0.1])),
            FeatureVector("t2", Category.track(), shared),
            FeatureVector("r1", Category.release(), shared),
            FeatureVector("a1", Category.artist(TrackArtistLinkType.ARTIST), np.array([10.0, 9.0])),
        ]
        indices = build_indices(close_grid_network, vectors, batch_size=2)

        assert set(indices) == {
            Category.track(),
            Category.release(),
            Category.artist(TrackArtistLinkType.ARTIST),
        }
        assert indices[Category.track()].positions_of("t1") == (Position(0, 0),)
        assert indices[Category.track()].positions_of("t2") == (Position(0, 1),)
        assert indices[Category.release()].objects_at(Position(0, 1)) == ("r1",)
        assert indices[Category.artist("artist")].positions_of("a1") == (Position(1, 1),)
        assert all(index.is_consistent() for index in indices.values())

    def test_object_from_several_vectors_gets_several_positions(self, close_grid_network):
        vectors = [
            FeatureVector("r1", Category.release(), np.array([0.0, 0.0])),
            FeatureVector("r1", Category.release(), np.array([10.0, 10.0])),
        ]
        index = build_indices(close_grid_network, vectors)[Category.release()]
        assert index.positions_of("r1") == (Position(0, 0), Position(1, 1))

    def test_cancelled_build_raises(self, close_grid_network):
        token = CancellationToken()
        token.cancel()
        vectors = [FeatureVector("t1", Category.track(), np.zeros(2))]
        with pytest.raises(Cancelled):
            build_indices(close_grid_network, vectors, cancel=token)

    def test_empty_input_gives_no_indices(self, close_grid_network):
        assert build_indices(close_grid_network, []) == {}


class TestSnapshot:
    def test_missing_category_reads_as_empty(self, close_grid_network, scenario_index):
        snapshot = Snapshot(close_grid_network, {Category.track(): scenario_index})
        assert len(snapshot.index(Category.release())) == 0
        assert snapshot.index(Category.track()) is scenario_index

    def test_indices_mapping_is_read_only(self, close_grid_network, scenario_index):
        snapshot = Snapshot(close_grid_network, {Category.track(): scenario_index})
        with pytest.raises(TypeError):
            snapshot.indices[Category.release()] = scenario_index
