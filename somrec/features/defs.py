"""
Feature definitions and training settings.

Each feature is a named, fixed-size numeric array produced by the audio
analysis side (lowlevel/rhythm/tonal descriptors). Training settings select a
subset of features and give each a weight; the concatenated input vector is
laid out in sorted feature-name order.

Usage:
    from somrec.features.defs import default_train_settings

    settings = default_train_settings()
    settings.dimension_count  # 175
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True)
class FeatureDef:
    """Static description of one feature."""

    name: str
    dimension_count: int


@dataclass(frozen=True)
class FeatureSettings:
    """Per-feature training settings."""

    weight: float = 1.0


def _stat_variants(name: str, dimension_count: int) -> dict[str, int]:
    return {f"{name}.{stat}": dimension_count for stat in ("mean", "median")}


_FEATURE_DIMENSIONS: dict[str, int] = {
    "lowlevel.average_loudness": 1,
    "lowlevel.dynamic_complexity": 1,
    **_stat_variants("lowlevel.barkbands", 27),
    **_stat_variants("lowlevel.dissonance", 1),
    **_stat_variants("lowlevel.erbbands", 40),
    **_stat_variants("lowlevel.gfcc", 13),
    **_stat_variants("lowlevel.hfc", 1),
    **_stat_variants("lowlevel.melbands", 40),
    **_stat_variants("lowlevel.mfcc", 13),
    **_stat_variants("lowlevel.pitch_salience", 1),
    **_stat_variants("lowlevel.spectral_centroid", 1),
    **_stat_variants("lowlevel.spectral_contrast_coeffs", 6),
    **_stat_variants("lowlevel.spectral_contrast_valleys", 6),
    **_stat_variants("lowlevel.spectral_energy", 1),
    **_stat_variants("lowlevel.spectral_flux", 1),
    **_stat_variants("lowlevel.zerocrossingrate", 1),
    "rhythm.bpm": 1,
    "rhythm.danceability": 1,
    "rhythm.onset_rate": 1,
    **_stat_variants("tonal.chords_strength", 1),
    **_stat_variants("tonal.hpcp", 36),
    **_stat_variants("tonal.hpcp_entropy", 1),
    "tonal.tuning_frequency": 1,
}

FEATURE_REGISTRY: dict[str, FeatureDef] = {
    name: FeatureDef(name=name, dimension_count=dims)
    for name, dims in _FEATURE_DIMENSIONS.items()
}


def get_feature_def(name: str) -> FeatureDef:
    """Look up a registered feature, raising KeyError with the known names."""
    try:
        return FEATURE_REGISTRY[name]
    except KeyError as exc:
        raise KeyError(f"Unknown feature '{name}'") from exc


@dataclass(frozen=True)
class TrainSettings:
    """
    Settings for one training run.

    Attributes:
        iteration_count: Full passes over the training vectors
        sample_count_per_neuron: Training vectors per grid cell (sizes the grid)
        feature_settings: Feature name -> FeatureSettings
    """

    iteration_count: int = 10
    sample_count_per_neuron: float = 4.0
    feature_settings: Mapping[str, FeatureSettings] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.iteration_count < 1:
            raise ValueError("iteration_count must be at least 1")
        if self.sample_count_per_neuron <= 0:
            raise ValueError("sample_count_per_neuron must be positive")
        if not self.feature_settings:
            raise ValueError("feature_settings must name at least one feature")
        for name, settings in self.feature_settings.items():
            get_feature_def(name)
            if settings.weight <= 0:
                raise ValueError(f"Feature '{name}' must have a positive weight")

    @property
    def feature_names(self) -> list[str]:
        """Feature names in input-vector layout order."""
        return sorted(self.feature_settings)

    @property
    def dimension_count(self) -> int:
        return sum(get_feature_def(name).dimension_count for name in self.feature_names)

    def dimension_weights(self) -> np.ndarray:
        """
        Per-dimension distance weights.

        Each dimension of a feature gets weight / dimension_count, so wide
        features (e.g. 40 mel bands) do not dominate narrow ones.
        """
        weights: list[float] = []
        for name in self.feature_names:
            feature_def = get_feature_def(name)
            weight = self.feature_settings[name].weight
            weights.extend([weight / feature_def.dimension_count] * feature_def.dimension_count)
        return np.asarray(weights, dtype=np.float64)


DEFAULT_TRAIN_FEATURES = (
    "lowlevel.spectral_contrast_coeffs.median",
    "lowlevel.erbbands.median",
    "tonal.hpcp.median",
    "lowlevel.melbands.median",
    "lowlevel.barkbands.median",
    "lowlevel.mfcc.mean",
    "lowlevel.gfcc.mean",
)


def default_train_settings(
    iteration_count: int | None = None,
    sample_count_per_neuron: float | None = None,
) -> TrainSettings:
    """Build the default training settings, with iteration/ratio from config unless given."""
    from ..config import somrec_config

    return TrainSettings(
        iteration_count=iteration_count or somrec_config.iteration_count,
        sample_count_per_neuron=sample_count_per_neuron or somrec_config.sample_count_per_neuron,
        feature_settings={name: FeatureSettings(weight=1.0) for name in DEFAULT_TRAIN_FEATURES},
    )
