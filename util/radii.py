import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np

from util.nearest_neighbor import nearest_neighbor_of
from util.timer import Timer

log = logging.getLogger(__name__)

CHUNK_SIZE = 4096


def _derive_chunk(octree, store, start, stop, radii):
    chunk = np.full(stop - start, math.inf, dtype=np.float32)
    for offset, point_index in enumerate(range(start, stop)):
        neighbor = nearest_neighbor_of(octree, store, point_index)
        if neighbor is not None:
            chunk[offset] = neighbor.distance / 2
    # one write per chunk, slices never overlap
    radii[start:stop] = chunk


def derive_radii(octree, store, jobs=None, chunk_size=CHUNK_SIZE):
    """Half the distance from every point to its nearest other point.

    Parameters
    ----------
    octree : Octree
        Fully built index over `store`.
    store : CoordinateStore
        Normalized point coordinates.
    jobs : int, optional
        Worker threads. ``None`` lets the executor decide, ``1`` runs in the
        calling thread.
    chunk_size : int
        Number of consecutive points handed to a worker at once.

    Returns
    -------
    numpy.ndarray, shape (N,), dtype float32
        ``radii[i]`` is half the nearest neighbor distance of point ``i``,
        ``inf`` for a point without any neighbor.
    """
    if jobs is not None and jobs < 1:
        raise ValueError(f"jobs must be >= 1, got {jobs}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    count = len(store)
    radii = np.full(count, math.inf, dtype=np.float32)
    chunks = [(start, min(start + chunk_size, count)) for start in range(0, count, chunk_size)]

    timer = Timer("Radius derivation:")
    if jobs == 1 or len(chunks) <= 1:
        for start, stop in chunks:
            _derive_chunk(octree, store, start, stop, radii)
    else:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = [
                executor.submit(_derive_chunk, octree, store, start, stop, radii)
                for start, stop in chunks
            ]
            for future in as_completed(futures):
                future.result()
    timer.toc()

    return radii
