"""Min/max normalisation of input vectors into the [0, 1] training range."""

from __future__ import annotations

import numpy as np
from sklearn.preprocessing import MinMaxScaler


class DataNormalizer:
    """
    Per-dimension min/max scaler fitted on the training set.

    Dimensions that are constant over the training set normalise to 0.
    Values outside the fitted range are not clipped.
    """

    def __init__(self, scaler: MinMaxScaler) -> None:
        self.scaler = scaler
        self._constant = scaler.data_range_ == 0

    @classmethod
    def fit(cls, data: np.ndarray) -> DataNormalizer:
        arr = np.asarray(data, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[0] == 0:
            raise ValueError(f"Expected non-empty 2D data, got shape {arr.shape}")
        return cls(MinMaxScaler(feature_range=(0.0, 1.0), clip=False).fit(arr))

    @property
    def minimums(self) -> np.ndarray:
        return self.scaler.data_min_

    @property
    def maximums(self) -> np.ndarray:
        return self.scaler.data_max_

    @property
    def dimension_count(self) -> int:
        return int(self.scaler.n_features_in_)

    def normalize(self, data: np.ndarray) -> np.ndarray:
        arr = np.asarray(data, dtype=np.float64)
        if arr.shape[-1] != self.dimension_count:
            raise ValueError(
                f"Dimension mismatch: expected {self.dimension_count}, got {arr.shape[-1]}"
            )
        normalized = self.scaler.transform(arr.reshape(-1, self.dimension_count))
        # MinMaxScaler only shifts constant columns; pin them to 0 outside the training set too
        normalized[:, self._constant] = 0.0
        return normalized.reshape(arr.shape)
