import numpy as np

import util.file_import as file_import
from scene.coordinate_store import CoordinateStore
from util.nearest_neighbor import nearest_neighbor
from util.octree import MAXIMUM_DEPTH, Octree
from util.radii import CHUNK_SIZE, derive_radii


def build(points, maximum_points_per_leaf=128, maximum_depth=MAXIMUM_DEPTH):
    """Index already normalized ``(x, y, z, intensity)`` records.

    Raises
    ------
    EmptyPointCloudError
        If `points` is empty.
    """
    store = CoordinateStore.from_records(points)
    octree = Octree(store, maximum_points_per_leaf, maximum_depth)
    return store, octree


class PointCloud:

    conf = {
            "maximum_points_per_leaf": 128,
            "maximum_depth": MAXIMUM_DEPTH,
            "jobs": None,
            "chunk_size": CHUNK_SIZE,
        }

    def __init__(self, store, conf=None):

        unknown = set(conf or {}) - set(PointCloud.conf)
        if unknown:
            raise ValueError(f"unknown configuration keys: {sorted(unknown)}")
        self.conf = {**PointCloud.conf, **(conf or {})}

        self.store = store
        self.num_points = len(store)

        # the octree needs every coordinate, the radii need the whole octree
        self.octree = Octree(store, self.conf["maximum_points_per_leaf"], self.conf["maximum_depth"])
        self.radii = derive_radii(self.octree, store, jobs=self.conf["jobs"],
                                  chunk_size=self.conf["chunk_size"])
        self.radii.flags.writeable = False

    @classmethod
    def read(cls, filename, conf=None):
        raw = file_import.read(filename)
        store = CoordinateStore.from_geodetic(raw.latitudes, raw.longitudes, raw.elevations, raw.intensities)
        return cls(store, conf)

    def __len__(self):
        return self.num_points

    def __getitem__(self, index):
        return self.store[index]

    @property
    def latitude_bounds(self):
        return self.store.latitude_bounds

    @property
    def longitude_bounds(self):
        return self.store.longitude_bounds

    @property
    def elevation_bounds(self):
        return self.store.elevation_bounds

    def nearest_point(self, position):
        return nearest_neighbor(self.octree, self.store, position)

    def get_compute_data(self):
        """
        Interleaved vertex data for the GPU, position and radius followed by the color.
        """
        radii = np.where(np.isfinite(self.radii), self.radii, 0)
        gray = self.store.intensity.astype(np.float32) / 255

        compute_data = np.empty((self.num_points * 2, 4), dtype="f4")
        compute_data[0::2, :] = np.c_[self.store.positions, radii]
        compute_data[1::2, :] = np.c_[gray, gray, gray, np.ones(self.num_points)]
        return compute_data
