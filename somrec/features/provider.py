"""
Feature provider port and the on-disk production implementation.

The engine never extracts features itself: a FeatureProvider hands back the
named feature arrays for one track, or None to exclude that track.

Layout read by NpyFeatureProvider:
    features/
    ├── lowlevel.mfcc.mean/
    │   ├── 17.npy
    │   └── 18.npy
    └── tonal.hpcp.median/
        └── 17.npy
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from pathlib import Path
from typing import Protocol

import numpy as np

from .defs import TrainSettings, get_feature_def

logger = logging.getLogger(__name__)


class FeatureProvider(Protocol):
    """Protocol for per-track feature retrieval."""

    def fetch(
        self,
        track_id: int | str,
        feature_names: Collection[str],
    ) -> Mapping[str, np.ndarray] | None:
        """Return feature name -> array for one track, or None to exclude it."""
        ...


class NpyFeatureProvider:
    """Read per-track feature arrays from one .npy file per feature."""

    def __init__(self, features_dir: str | Path | None = None) -> None:
        if features_dir is None:
            from ..config import somrec_config
            features_dir = somrec_config.features_dir

        self.features_dir = Path(features_dir)

    def feature_path(self, track_id: int | str, feature_name: str) -> Path:
        return self.features_dir / feature_name / f"{track_id}.npy"

    def fetch(
        self,
        track_id: int | str,
        feature_names: Collection[str],
    ) -> dict[str, np.ndarray] | None:
        features: dict[str, np.ndarray] = {}
        for name in feature_names:
            path = self.feature_path(track_id, name)
            if not path.exists():
                return None  # Incomplete analysis, skip the track
            features[name] = np.asarray(np.load(path), dtype=np.float64).reshape(-1)
        return features


class InMemoryFeatureProvider:
    """Serve features from a dict; used for experiments and tests."""

    def __init__(self, features: Mapping[int | str, Mapping[str, np.ndarray]]) -> None:
        self._features = dict(features)

    def fetch(
        self,
        track_id: int | str,
        feature_names: Collection[str],
    ) -> dict[str, np.ndarray] | None:
        track_features = self._features.get(track_id)
        if track_features is None:
            return None
        if any(name not in track_features for name in feature_names):
            return None
        return {name: np.asarray(track_features[name], dtype=np.float64) for name in feature_names}


def build_feature_vector(
    features: Mapping[str, np.ndarray],
    settings: TrainSettings,
    source_name: str = "<track>",
) -> np.ndarray | None:
    """
    Concatenate fetched features into one input vector.

    Features are laid out in settings.feature_names order. Returns None when a
    feature is missing or its size does not match its definition.
    """
    parts: list[np.ndarray] = []
    for name in settings.feature_names:
        values = features.get(name)
        if values is None:
            logger.debug(f"{source_name}: missing feature {name}")
            return None

        arr = np.asarray(values, dtype=np.float64).reshape(-1)
        expected = get_feature_def(name).dimension_count
        if arr.shape[0] != expected:
            logger.warning(
                f"{source_name}: feature {name} has {arr.shape[0]} dimensions, expected {expected}"
            )
            return None
        if not np.all(np.isfinite(arr)):
            logger.warning(f"{source_name}: feature {name} contains non-finite values")
            return None
        parts.append(arr)

    return np.concatenate(parts)
