"""
Self-organizing map over normalised feature vectors.

A Network is a rows x columns grid of reference vectors. Grid-adjacent cells
hold similar reference vectors after training, which is what the similarity
search relies on when it expands from one cell to its closest neighbour.
Training runs on a MiniSom subclass; the trained weights are wrapped in a
read-only Network for querying.

Usage:
    from somrec.som.network import train_network

    network = train_network(vectors, iteration_count=10, sample_count_per_neuron=4)
    position = network.closest_position(vectors[0])
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
from minisom import MiniSom

from ..cancellation import CancellationToken, ProgressCallback, ProgressReporter

logger = logging.getLogger(__name__)

# Rows per chunk when classifying many vectors at once
_CLASSIFY_CHUNK = 2048


@dataclass(frozen=True, order=True)
class Position:
    """Integer (row, column) cell coordinate in a network grid."""

    row: int
    column: int

    def __iter__(self):
        yield self.row
        yield self.column


class Network:
    """
    Immutable grid of reference vectors with a weighted Euclidean metric.

    Args:
        ref_vectors: Array of shape (rows, columns, dimension_count)
        weights: Per-dimension distance weights (default: all ones)
    """

    def __init__(self, ref_vectors: np.ndarray, weights: np.ndarray | None = None) -> None:
        arr = np.array(ref_vectors, dtype=np.float64)
        if arr.ndim != 3 or 0 in arr.shape:
            raise ValueError(f"Expected non-empty (rows, columns, dims) array, got shape {arr.shape}")

        if weights is None:
            weights = np.ones(arr.shape[2], dtype=np.float64)
        weights = np.array(weights, dtype=np.float64).reshape(-1)
        if weights.shape[0] != arr.shape[2]:
            raise ValueError(
                f"Weight count mismatch: expected {arr.shape[2]}, got {weights.shape[0]}"
            )
        if np.any(weights < 0):
            raise ValueError("weights must not be negative")

        arr.flags.writeable = False
        weights.flags.writeable = False
        self._ref_vectors = arr
        self._weights = weights
        self._flat = arr.reshape(-1, arr.shape[2])
        self.ref_vectors_distance_median = self._compute_ref_vectors_distance_median()

    @property
    def rows(self) -> int:
        return int(self._ref_vectors.shape[0])

    @property
    def columns(self) -> int:
        return int(self._ref_vectors.shape[1])

    @property
    def dimension_count(self) -> int:
        return int(self._ref_vectors.shape[2])

    @property
    def ref_vectors(self) -> np.ndarray:
        """Read-only (rows, columns, dims) view of the reference vectors."""
        return self._ref_vectors

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Network):
            return NotImplemented
        return (
            self._ref_vectors.shape == other._ref_vectors.shape
            and np.array_equal(self._ref_vectors, other._ref_vectors)
            and np.array_equal(self._weights, other._weights)
        )

    def __repr__(self) -> str:
        return f"Network(rows={self.rows}, columns={self.columns}, dims={self.dimension_count})"

    def contains(self, position: Position) -> bool:
        return 0 <= position.row < self.rows and 0 <= position.column < self.columns

    def ref_vector(self, position: Position) -> np.ndarray:
        if not self.contains(position):
            raise IndexError(f"{position} is outside the {self.rows}x{self.columns} grid")
        return self._ref_vectors[position.row, position.column]

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
        return float(np.sqrt(np.sum(self._weights * diff * diff)))

    def neighbours(self, position: Position) -> list[Position]:
        """4-adjacent positions inside the grid (up, down, left, right)."""
        candidates = [
            Position(position.row - 1, position.column),
            Position(position.row + 1, position.column),
            Position(position.row, position.column - 1),
            Position(position.row, position.column + 1),
        ]
        return [p for p in candidates if self.contains(p)]

    def closest_position(self, vector: np.ndarray) -> Position:
        """Position of the reference vector closest to vector (row-major first on ties)."""
        return self.closest_positions(np.asarray(vector).reshape(1, -1))[0]

    def closest_positions(self, vectors: np.ndarray) -> list[Position]:
        arr = np.asarray(vectors, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != self.dimension_count:
            raise ValueError(
                f"Expected (n, {self.dimension_count}) vectors, got shape {arr.shape}"
            )

        positions: list[Position] = []
        for start in range(0, arr.shape[0], _CLASSIFY_CHUNK):
            chunk = arr[start:start + _CLASSIFY_CHUNK]
            diff = chunk[:, None, :] - self._flat[None, :, :]
            d2 = np.einsum("cmd,d,cmd->cm", diff, self._weights, diff)
            for flat_idx in np.argmin(d2, axis=1):
                row, column = divmod(int(flat_idx), self.columns)
                positions.append(Position(row, column))
        return positions

    def get_closest_ref_vector_position(
        self,
        from_positions: Iterable[Position],
        max_distance: float,
    ) -> Position | None:
        """
        Closest cell adjacent to, but not in, from_positions.

        Closeness is the distance between the candidate's reference vector and
        the reference vector of the frontier cell it is adjacent to. Candidates
        further than max_distance are ignored. Returns None when nothing is left.
        """
        frontier = list(dict.fromkeys(from_positions))
        in_frontier = set(frontier)

        best: Position | None = None
        best_distance = math.inf
        for position in frontier:
            origin = self.ref_vector(position)
            for neighbour in self.neighbours(position):
                if neighbour in in_frontier:
                    continue
                distance = self.distance(origin, self.ref_vector(neighbour))
                if distance > max_distance:
                    continue
                if distance < best_distance:
                    best = neighbour
                    best_distance = distance
        return best

    def _compute_ref_vectors_distance_median(self) -> float:
        distances: list[float] = []
        for row in range(self.rows):
            for column in range(self.columns):
                current = self._ref_vectors[row, column]
                if column + 1 < self.columns:
                    distances.append(self.distance(current, self._ref_vectors[row, column + 1]))
                if row + 1 < self.rows:
                    distances.append(self.distance(current, self._ref_vectors[row + 1, column]))

        if not distances:
            return 0.0
        return float(np.median(distances))


def compute_grid_side(sample_count: int, sample_count_per_neuron: float) -> int:
    """Side of the square grid holding roughly sample_count_per_neuron samples per cell."""
    if sample_count_per_neuron <= 0:
        raise ValueError("sample_count_per_neuron must be positive")
    return max(1, int(math.sqrt(sample_count / sample_count_per_neuron)))


def learning_rate_at(iteration: int, iteration_count: int, initial_rate: float) -> float:
    """Linearly decaying learning rate; never reaches 0 within the run."""
    return initial_rate * (1.0 - iteration / iteration_count)


def neighbourhood_radius_at(iteration: int, iteration_count: int, initial_radius: float) -> float:
    """Linearly decaying radius reaching 0 (winner only) on the last iteration."""
    if iteration_count <= 1:
        return 0.0
    return initial_radius * (1.0 - iteration / (iteration_count - 1))


def _neighbourhood(grid_d2: np.ndarray, radius: float) -> np.ndarray:
    if radius <= 0:
        return (grid_d2 == 0).astype(np.float64)
    influence = np.exp(-grid_d2 / (2.0 * radius * radius))
    influence[grid_d2 > radius * radius] = 0.0
    return influence


def weighted_euclidean(weights: np.ndarray):
    """MiniSom activation distance: weighted Euclidean distance of x to every neuron."""
    weights = np.asarray(weights, dtype=np.float64)

    def _distance(x: np.ndarray, w: np.ndarray) -> np.ndarray:
        diff = x - w
        return np.sqrt(np.sum(weights * diff * diff, axis=-1))

    return _distance


class MiniSomWithCallback(MiniSom):
    """
    MiniSom trained in shuffled passes with cooperative cancellation.

    update() is overridden so that the learning rate and neighbourhood radius
    follow the per-pass schedules above: the Gaussian is truncated at the
    radius and the last pass only moves the winner.
    """

    def __init__(self, side: int, input_len: int, weights: np.ndarray,
                 learning_rate: float = 0.5, random_seed: int | None = None):
        super().__init__(
            side, side, input_len,
            sigma=side / 2.0,
            learning_rate=learning_rate,
            neighborhood_function="gaussian",
            activation_distance=weighted_euclidean(weights),
            random_seed=random_seed,
        )
        rows, columns = np.meshgrid(np.arange(side), np.arange(side), indexing="ij")
        self._grid_rows = rows.astype(np.float64)
        self._grid_columns = columns.astype(np.float64)

    def update(self, x, win, t, max_iteration):
        """Move win and its neighbourhood toward x; t is the pass index, max_iteration the pass count."""
        eta = learning_rate_at(t, max_iteration, self._learning_rate)
        radius = neighbourhood_radius_at(t, max_iteration, self._sigma)
        grid_d2 = (self._grid_rows - win[0]) ** 2 + (self._grid_columns - win[1]) ** 2
        g = _neighbourhood(grid_d2, radius) * eta
        self._weights += g[:, :, None] * (x - self._weights)

    def train(self, data, num_iteration, random_order=True, verbose=False,
              batch_size: int = 64, cancel: CancellationToken | None = None,
              callback: ProgressCallback | None = None):
        """
        Run num_iteration passes over data.

        Every pass visits each sample once (shuffled when random_order is set).
        cancel is polled before every pass and every batch_size updates;
        callback receives the fraction of updates done after each batch.
        """
        self._check_iteration_number(num_iteration)
        self._check_input_len(data)
        cancel = cancel or CancellationToken()

        X = np.asarray(data)
        n_samples = len(X)
        total_updates = num_iteration * n_samples
        for t in range(num_iteration):
            cancel.raise_if_cancelled()
            if random_order:
                order = self._random_generator.permutation(n_samples)
            else:
                order = np.arange(n_samples)

            for start in range(0, n_samples, batch_size):
                cancel.raise_if_cancelled()
                for iteration in order[start:start + batch_size]:
                    self.update(X[iteration], self.winner(X[iteration]), t, num_iteration)

                if callback:
                    done = t * n_samples + min(start + batch_size, n_samples)
                    callback(done / total_updates)

        if verbose:
            logger.info(f"Quantization error: {self.quantization_error(X):.4f}")


def train_network(
    data: np.ndarray,
    iteration_count: int,
    sample_count_per_neuron: float,
    weights: np.ndarray | None = None,
    learning_rate: float = 0.5,
    seed: int | None = 0,
    batch_size: int = 64,
    cancel: CancellationToken | None = None,
    progress: ProgressCallback | ProgressReporter | None = None,
) -> Network:
    """
    Train a square network by online competitive learning.

    Reference vectors start from randomly drawn training samples. Every
    iteration shuffles the samples; for each sample the winner cell and its
    grid neighbourhood move toward it. Learning rate and radius decay
    monotonically and the last iteration only moves the winner.

    Args:
        data: (n_samples, dims) array, normally min/max normalised
        iteration_count: Full passes over data
        sample_count_per_neuron: Sizes the grid (see compute_grid_side)
        weights: Per-dimension distance weights
        learning_rate: Initial learning rate in (0, 1]
        seed: RNG seed for initialisation and shuffling
        batch_size: Sample updates between cancellation checks
        cancel: Cancellation token polled per iteration and per batch
        progress: Callback or reporter receiving the training fraction

    Returns:
        Trained Network

    Raises:
        Cancelled: If cancel was set during training
    """
    arr = np.asarray(data, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise ValueError(f"Expected non-empty 2D data, got shape {arr.shape}")
    if iteration_count < 1:
        raise ValueError("iteration_count must be at least 1")
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    n_samples, dims = arr.shape
    if weights is None:
        weights = np.ones(dims, dtype=np.float64)
    weights = np.asarray(weights, dtype=np.float64)

    reporter = progress if isinstance(progress, ProgressReporter) else ProgressReporter(progress)
    cancel = cancel or CancellationToken()

    side = compute_grid_side(n_samples, sample_count_per_neuron)
    som = MiniSomWithCallback(side, dims, weights, learning_rate=learning_rate, random_seed=seed)
    som.random_weights_init(arr)

    logger.info(
        f"Training {side}x{side} network on {n_samples} samples "
        f"({dims} dims, {iteration_count} iterations)"
    )
    som.train(
        arr, iteration_count,
        random_order=True,
        batch_size=batch_size,
        cancel=cancel,
        callback=reporter.report,
    )

    cancel.raise_if_cancelled()
    return Network(np.array(som.get_weights()), weights)
