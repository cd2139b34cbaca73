"""Shared fixtures for the point cloud tests."""

import numpy as np
import pytest

from scene.coordinate_store import CoordinateStore


def brute_force_nearest(store, position, excluding=-1):
    """Exhaustive nearest neighbor in float64, used as the reference answer."""
    positions = store.positions.astype(np.float64)
    distances = np.linalg.norm(positions - np.asarray(position, dtype=np.float64), axis=1)
    if excluding >= 0:
        distances[excluding] = np.inf
    index = int(np.argmin(distances))
    return float(distances[index]), index


def random_store(count, seed=0):
    rng = np.random.default_rng(seed)
    coordinates = rng.uniform(-1.0, 1.0, size=(count, 3)).astype(np.float32)
    intensity = rng.integers(0, 256, size=count)
    return CoordinateStore(coordinates[:, 0], coordinates[:, 1], coordinates[:, 2], intensity)


@pytest.fixture
def unit_axis_records():
    """Origin plus one point on each positive unit axis."""
    return [
        (0.0, 0.0, 0.0, 10),
        (1.0, 0.0, 0.0, 20),
        (0.0, 1.0, 0.0, 30),
        (0.0, 0.0, 1.0, 40),
    ]


@pytest.fixture
def random_cloud():
    """500 uniformly distributed points."""
    return random_store(500, seed=7)


@pytest.fixture
def clustered_cloud():
    """Two tight gaussian clusters plus uniform noise."""
    rng = np.random.default_rng(3)
    coordinates = np.concatenate([
        rng.normal(-0.5, 0.02, size=(300, 3)),
        rng.normal(0.4, 0.05, size=(300, 3)),
        rng.uniform(-1.0, 1.0, size=(100, 3)),
    ])
    coordinates = np.clip(coordinates, -1.0, 1.0).astype(np.float32)
    return CoordinateStore(coordinates[:, 0], coordinates[:, 1], coordinates[:, 2],
                           np.zeros(len(coordinates), dtype=np.uint8))
