"""Exact nearest neighbor queries against a built octree.

The search is a depth first branch and bound: the octant holding the query
is searched first, then the remaining octants in order of their distance
to the query, stopping as soon as an octant cannot hold anything closer
than the best point found so far.
"""
import math
from collections import namedtuple

import numpy as np

Neighbor = namedtuple("Neighbor", ["distance", "index"])

_NOT_FOUND = (math.inf, -1)


def _scan(leaf, store, position, excluding, best):
    indices = leaf.indices
    if excluding >= 0:
        indices = indices[indices != excluding]
    if indices.shape[0] == 0:
        return best

    dx = store.x[indices] - position[0]
    dy = store.y[indices] - position[1]
    dz = store.z[indices] - position[2]
    distances = np.sqrt(dx * dx + dy * dy + dz * dz)

    nearest = int(np.argmin(distances))
    if distances[nearest] < best[0]:
        return float(distances[nearest]), int(indices[nearest])
    return best


def _search(node, store, position, excluding, best):
    if node.isleaf:
        return _scan(node, store, position, excluding, best)

    key = node.bounds.key(position)
    best = _search(node.children[key], store, position, excluding, best)

    alternatives = sorted(
        (child.bounds.distance(position), alternative_key)
        for alternative_key, child in enumerate(node.children)
        if alternative_key != key and len(child) > 0
    )
    for lower_bound, alternative_key in alternatives:
        if lower_bound >= best[0]:
            break
        best = _search(node.children[alternative_key], store, position, excluding, best)

    return best


def nearest_neighbor(octree, store, position):
    """Return the stored point closest to `position`.

    Parameters
    ----------
    octree : Octree
        Index built over `store`.
    store : CoordinateStore
        Normalized point coordinates.
    position : array_like, shape (3,)
        Query position in normalized space. It need not be a stored point.

    Returns
    -------
    Neighbor or None
        ``(distance, index)`` of the closest point, or ``None`` when the
        octree holds no points.
    """
    position = np.asarray(position, dtype=np.float32).reshape(3)
    distance, index = _search(octree.root, store, position, -1, _NOT_FOUND)
    if index < 0:
        return None
    return Neighbor(distance, index)


def nearest_neighbor_of(octree, store, point_index):
    """Return the point closest to stored point `point_index`, itself excluded.

    ``None`` means the point has no neighbor, which only happens in a
    cloud of a single point.
    """
    point_index = int(point_index)
    if not 0 <= point_index < len(store):
        raise IndexError(f"point index {point_index} out of range for {len(store)} points")

    position = store.position(point_index)
    distance, index = _search(octree.root, store, position, point_index, _NOT_FOUND)
    if index < 0:
        return None
    return Neighbor(distance, index)
