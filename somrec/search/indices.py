"""
Position index and grid matrix per category.

A CategoryIndex pairs the forward index (object id -> grid positions) with
the reverse index (grid position -> object ids). Both are filled by one
CategoryIndexBuilder so they always agree, and neither is mutated after
build().
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Union

import numpy as np

from ..cancellation import CancellationToken, ProgressCallback, ProgressReporter
from ..som.network import Network, Position
from .categories import Category

logger = logging.getLogger(__name__)

ObjectId = Union[int, str]

DEFAULT_INDEX_BATCH_SIZE = 256


@dataclass(frozen=True)
class FeatureVector:
    """Input vector of one object in one category."""

    object_id: ObjectId
    category: Category
    components: np.ndarray


class CategoryIndex:
    """Read-only pair of position index and grid matrix for one category."""

    def __init__(
        self,
        positions: Mapping[ObjectId, Sequence[Position]],
        matrix: Mapping[Position, Sequence[ObjectId]],
    ) -> None:
        self._positions = MappingProxyType({k: tuple(v) for k, v in positions.items()})
        self._matrix = MappingProxyType({k: tuple(v) for k, v in matrix.items()})

    @classmethod
    def empty(cls) -> CategoryIndex:
        return cls({}, {})

    @property
    def positions(self) -> Mapping[ObjectId, tuple[Position, ...]]:
        """Object id -> ordered distinct positions."""
        return self._positions

    @property
    def matrix(self) -> Mapping[Position, tuple[ObjectId, ...]]:
        """Position -> ordered distinct object ids."""
        return self._matrix

    def positions_of(self, object_id: ObjectId) -> tuple[Position, ...]:
        return self._positions.get(object_id, ())

    def objects_at(self, position: Position) -> tuple[ObjectId, ...]:
        return self._matrix.get(position, ())

    def __contains__(self, object_id: object) -> bool:
        return object_id in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CategoryIndex):
            return NotImplemented
        return dict(self._positions) == dict(other._positions) and dict(self._matrix) == dict(other._matrix)

    def __repr__(self) -> str:
        return f"CategoryIndex(objects={len(self._positions)}, cells={len(self._matrix)})"

    def is_consistent(self) -> bool:
        """True when every (id, position) pair appears exactly once in both directions."""
        forward = [(oid, pos) for oid, positions in self._positions.items() for pos in positions]
        reverse = [(oid, pos) for pos, ids in self._matrix.items() for oid in ids]
        forward_set, reverse_set = set(forward), set(reverse)
        if len(forward_set) != len(forward) or len(reverse_set) != len(reverse):
            return False
        return forward_set == reverse_set


class CategoryIndexBuilder:
    """Accumulate (object id, position) pairs into both directions at once."""

    def __init__(self) -> None:
        self._positions: dict[ObjectId, list[Position]] = {}
        self._matrix: dict[Position, list[ObjectId]] = {}

    def add(self, object_id: ObjectId, position: Position) -> None:
        object_positions = self._positions.setdefault(object_id, [])
        if position in object_positions:
            return
        object_positions.append(position)
        self._matrix.setdefault(position, []).append(object_id)

    def build(self) -> CategoryIndex:
        return CategoryIndex(self._positions, self._matrix)


@dataclass(frozen=True)
class Snapshot:
    """Trained network plus every category index; installed as one unit."""

    network: Network
    indices: Mapping[Category, CategoryIndex] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "indices", MappingProxyType(dict(self.indices)))

    def index(self, category: Category) -> CategoryIndex:
        """Index for category; empty when nothing of that category was indexed."""
        index = self.indices.get(category)
        return index if index is not None else CategoryIndex.empty()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self.network == other.network and dict(self.indices) == dict(other.indices)


def build_indices(
    network: Network,
    vectors: Iterable[FeatureVector],
    cancel: CancellationToken | None = None,
    progress: ProgressCallback | ProgressReporter | None = None,
    batch_size: int = DEFAULT_INDEX_BATCH_SIZE,
) -> dict[Category, CategoryIndex]:
    """
    Assign every vector to its closest cell and build one index per category.

    Vectors sharing the same components array (e.g. a track vector reused for
    its release and artists) are classified once.

    Raises:
        Cancelled: If cancel was set; checked once per batch
    """
    cancel = cancel or CancellationToken()
    reporter = progress if isinstance(progress, ProgressReporter) else ProgressReporter(progress)

    vector_list = list(vectors)
    builders: dict[Category, CategoryIndexBuilder] = {}
    classified: dict[int, tuple[np.ndarray, Position]] = {}

    for start in range(0, len(vector_list), batch_size):
        cancel.raise_if_cancelled()
        batch = vector_list[start:start + batch_size]

        unclassified: dict[int, FeatureVector] = {}
        for vector in batch:
            key = id(vector.components)
            if key not in classified and key not in unclassified:
                unclassified[key] = vector
        pending = list(unclassified.values())
        if pending:
            stacked = np.stack([np.asarray(v.components, dtype=np.float64) for v in pending])
            for vector, position in zip(pending, network.closest_positions(stacked)):
                # Keep the array alive so its id() cannot be reused
                classified[id(vector.components)] = (vector.components, position)

        for vector in batch:
            _, position = classified[id(vector.components)]
            builders.setdefault(vector.category, CategoryIndexBuilder()).add(vector.object_id, position)

        reporter.report(min(start + batch_size, len(vector_list)) / len(vector_list))

    cancel.raise_if_cancelled()
    indices = {category: builder.build() for category, builder in builders.items()}
    for category, index in indices.items():
        logger.debug(f"Indexed {len(index)} objects in category {category}")
    return indices
