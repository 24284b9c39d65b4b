"""Tests for somrec.som.normalizer.DataNormalizer."""

import numpy as np
import pytest

from somrec.som.normalizer import DataNormalizer

pytestmark = pytest.mark.unit


class TestDataNormalizer:
    def test_training_data_maps_to_unit_range(self):
        data = np.array([[1.0, 10.0], [3.0, 20.0], [2.0, 15.0]])
        normalized = DataNormalizer.fit(data).normalize(data)

        assert normalized.min() == pytest.approx(0.0)
        assert normalized.max() == pytest.approx(1.0)
        np.testing.assert_allclose(normalized[2], [0.5, 0.5])

    def test_constant_dimension_maps_to_zero(self):
        data = np.array([[1.0, 7.0], [3.0, 7.0]])
        normalized = DataNormalizer.fit(data).normalize(data)
        np.testing.assert_array_equal(normalized[:, 1], [0.0, 0.0])

    def test_constant_dimension_stays_zero_for_new_vectors(self):
        normalizer = DataNormalizer.fit(np.array([[1.0, 7.0], [3.0, 7.0]]))
        np.testing.assert_allclose(normalizer.normalize(np.array([[2.0, 9.0]])), [[0.5, 0.0]])

    def test_exposes_fitted_range(self):
        normalizer = DataNormalizer.fit(np.array([[1.0, 10.0], [3.0, 20.0]]))
        np.testing.assert_array_equal(normalizer.minimums, [1.0, 10.0])
        np.testing.assert_array_equal(normalizer.maximums, [3.0, 20.0])
        assert normalizer.dimension_count == 2

    def test_values_outside_range_not_clipped(self):
        normalizer = DataNormalizer.fit(np.array([[0.0], [1.0]]))
        np.testing.assert_allclose(normalizer.normalize(np.array([2.0])), [2.0])

    def test_dimension_mismatch_raises(self):
        normalizer = DataNormalizer.fit(np.zeros((2, 3)))
        with pytest.raises(ValueError, match="Dimension mismatch"):
            normalizer.normalize(np.zeros((1, 4)))

    def test_fit_rejects_empty(self):
        with pytest.raises(ValueError):
            DataNormalizer.fit(np.zeros((0, 2)))
