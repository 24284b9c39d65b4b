"""
Expanding-radius similarity search over a trained network.

Starting from the cells of the seed objects, collect the objects mapped to
the searched cells; while more results are needed, add the closest adjacent
cell whose reference vector lies within the distance cutoff and collect again.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..som.network import Network, Position
from .indices import CategoryIndex, ObjectId

DEFAULT_SEARCH_CUTOFF_FACTOR = 0.75


def get_matching_positions(ids: Iterable[ObjectId], index: CategoryIndex) -> list[Position]:
    """Distinct positions of the given ids, in id order; unknown ids are skipped."""
    positions: dict[Position, None] = {}
    for object_id in ids:
        for position in index.positions_of(object_id):
            positions.setdefault(position, None)
    return list(positions)


def get_object_ids(positions: Iterable[Position], index: CategoryIndex) -> list[ObjectId]:
    """Distinct object ids mapped from positions, in position order."""
    ids: dict[ObjectId, None] = {}
    for position in positions:
        for object_id in index.objects_at(position):
            ids.setdefault(object_id, None)
    return list(ids)


def get_similar_objects(
    ids: Iterable[ObjectId],
    network: Network,
    index: CategoryIndex,
    max_count: int,
    cutoff_factor: float = DEFAULT_SEARCH_CUTOFF_FACTOR,
) -> list[ObjectId]:
    """
    Find up to max_count objects similar to ids.

    Args:
        ids: Seed object ids, all of index's category
        network: Network the index was built against
        index: Category index to search
        max_count: Result cap
        cutoff_factor: Expansion stops beyond cutoff_factor * reference vector distance median

    Returns:
        Distinct ids in discovery order, never containing a seed. May hold
        fewer than max_count ids when the distance budget runs out.
    """
    if max_count < 0:
        raise ValueError("max_count must not be negative")

    seeds = list(dict.fromkeys(ids))
    if not seeds or max_count == 0:
        return []

    searched = get_matching_positions(seeds, index)
    if not searched:
        return []

    excluded = set(seeds)
    max_distance = network.ref_vectors_distance_median * cutoff_factor
    result: list[ObjectId] = []
    reported: set[ObjectId] = set()

    while True:
        for object_id in get_object_ids(searched, index):
            if len(result) == max_count:
                break
            if object_id in excluded or object_id in reported:
                continue
            result.append(object_id)
            reported.add(object_id)

        if len(result) == max_count:
            break

        closest = network.get_closest_ref_vector_position(searched, max_distance)
        if closest is None:
            break
        searched.append(closest)

    return result
