"""Tests for somrec.features.defs: feature registry and training settings."""

import numpy as np
import pytest

from somrec.features.defs import (
    DEFAULT_TRAIN_FEATURES,
    FeatureSettings,
    TrainSettings,
    default_train_settings,
    get_feature_def,
)

pytestmark = pytest.mark.unit


class TestRegistry:
    def test_known_feature(self):
        assert get_feature_def("tonal.hpcp.median").dimension_count == 36

    def test_unknown_feature_raises(self):
        with pytest.raises(KeyError, match="Unknown feature"):
            get_feature_def("lowlevel.nope")


class TestTrainSettings:
    def test_feature_names_sorted(self):
        settings = TrainSettings(
            feature_settings={
                "tonal.hpcp.mean": FeatureSettings(),
                "lowlevel.mfcc.mean": FeatureSettings(),
            }
        )
        assert settings.feature_names == ["lowlevel.mfcc.mean", "tonal.hpcp.mean"]

    def test_dimension_count_sums_features(self):
        settings = TrainSettings(
            feature_settings={
                "tonal.hpcp.mean": FeatureSettings(),
                "lowlevel.mfcc.mean": FeatureSettings(),
            }
        )
        assert settings.dimension_count == 36 + 13

    def test_dimension_weights_spread_feature_weight(self):
        settings = TrainSettings(
            feature_settings={
                "lowlevel.mfcc.mean": FeatureSettings(weight=2.0),
                "rhythm.bpm": FeatureSettings(weight=1.0),
            }
        )
        weights = settings.dimension_weights()

        assert weights.shape == (14,)
        np.testing.assert_allclose(weights[:13].sum(), 2.0)
        np.testing.assert_allclose(weights[13], 1.0)

    def test_empty_features_rejected(self):
        with pytest.raises(ValueError, match="at least one feature"):
            TrainSettings(feature_settings={})

    def test_unknown_feature_rejected(self):
        with pytest.raises(KeyError):
            TrainSettings(feature_settings={"bogus": FeatureSettings()})

    def test_non_positive_weight_rejected(self):
        with pytest.raises(ValueError, match="positive weight"):
            TrainSettings(feature_settings={"rhythm.bpm": FeatureSettings(weight=0.0)})

    def test_zero_iterations_rejected(self):
        with pytest.raises(ValueError, match="iteration_count"):
            TrainSettings(iteration_count=0, feature_settings={"rhythm.bpm": FeatureSettings()})


class TestDefaults:
    def test_default_settings_dimensions(self):
        settings = default_train_settings(iteration_count=3, sample_count_per_neuron=2.0)
        assert settings.iteration_count == 3
        assert settings.sample_count_per_neuron == 2.0
        assert set(settings.feature_names) == set(DEFAULT_TRAIN_FEATURES)
        assert settings.dimension_count == 175
