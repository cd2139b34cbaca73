import logging
from collections import namedtuple

import numpy as np

log = logging.getLogger(__name__)


class EmptyPointCloudError(ValueError):
    """Raised when a point cloud is built from zero points."""


Point = namedtuple("Point", ["position", "intensity"])


class Range(namedtuple("Range", ["lower", "upper"])):
    """Closed interval [lower, upper] over the raw values of one axis."""

    __slots__ = ()

    @classmethod
    def spanning(cls, values):
        values = np.asarray(values)
        if values.size == 0:
            raise EmptyPointCloudError("cannot compute the range of zero values")
        return cls(float(np.min(values)), float(np.max(values)))

    @property
    def length(self):
        return self.upper - self.lower

    @property
    def half_length(self):
        return self.length / 2

    @property
    def center(self):
        return self.lower + self.half_length


def normalize(values, bounds):
    """Map values spanning `bounds` onto [-1, 1].

    The extremes of the range land exactly on -1 and 1. Rounding can push a
    value a hair past the cube, so results are clipped. A range of zero
    length carries no extent to scale and maps every value to 0.
    """
    values = np.asarray(values, dtype=np.float64)
    if bounds.half_length == 0:
        return np.zeros(values.shape, dtype=np.float32)
    normalized = (values - bounds.center) / bounds.half_length
    return np.clip(normalized, -1.0, 1.0).astype(np.float32)


def _as_intensity(intensities):
    intensities = np.asarray(intensities, dtype=np.float64)
    if not np.all(np.isfinite(intensities)) or np.any(np.floor(intensities) != intensities):
        raise ValueError("intensities must be whole numbers")
    if intensities.size and (np.min(intensities) < 0 or np.max(intensities) > 255):
        raise ValueError("intensities must lie in [0, 255]")
    return intensities.astype(np.uint8)


def _freeze(array):
    array = np.ascontiguousarray(array)
    array.flags.writeable = False
    return array


class CoordinateStore:
    """Parallel point arrays in normalized space.

    ``x``, ``y`` and ``z`` hold float32 coordinates inside [-1, 1]^3 and
    ``intensity`` holds one uint8 per point. Slot ``i`` of every array
    describes the same point for the lifetime of the store. The arrays are
    read-only once the store exists.

    The raw ranges of the geodetic input are kept as metadata when the
    store was created with :meth:`from_geodetic`.
    """

    def __init__(self, x, y, z, intensity, latitude_bounds=None,
                 longitude_bounds=None, elevation_bounds=None):

        x = np.asarray(x, dtype=np.float32)
        y = np.asarray(y, dtype=np.float32)
        z = np.asarray(z, dtype=np.float32)
        intensity = _as_intensity(intensity)

        if not (x.ndim == y.ndim == z.ndim == intensity.ndim == 1):
            raise ValueError("coordinate and intensity arrays must be one dimensional")
        if not (len(x) == len(y) == len(z) == len(intensity)):
            raise ValueError(
                f"arrays must have the same length, got "
                f"{len(x)}, {len(y)}, {len(z)} and {len(intensity)}"
            )

        self.x = _freeze(x)
        self.y = _freeze(y)
        self.z = _freeze(z)
        self.intensity = _freeze(intensity)

        self.latitude_bounds = latitude_bounds
        self.longitude_bounds = longitude_bounds
        self.elevation_bounds = elevation_bounds

    @classmethod
    def from_geodetic(cls, latitudes, longitudes, elevations, intensities):
        """Normalize raw geodetic values into a new store.

        Longitude becomes ``x``, elevation ``y`` and latitude ``z``.
        """
        if len(latitudes) == 0:
            raise EmptyPointCloudError("point cloud contains no points")

        latitude_bounds = Range.spanning(latitudes)
        longitude_bounds = Range.spanning(longitudes)
        elevation_bounds = Range.spanning(elevations)

        log.debug(f"latitude {latitude_bounds}, longitude {longitude_bounds}, "
                  f"elevation {elevation_bounds}")

        return cls(normalize(longitudes, longitude_bounds),
                   normalize(elevations, elevation_bounds),
                   normalize(latitudes, latitude_bounds),
                   intensities,
                   latitude_bounds=latitude_bounds,
                   longitude_bounds=longitude_bounds,
                   elevation_bounds=elevation_bounds)

    @classmethod
    def from_records(cls, points):
        """Create a store from already normalized ``(x, y, z, intensity)`` records.

        ``points`` may be a sequence of 4-tuples, an (N, 4) array or a
        structured array with ``x``, ``y``, ``z`` and ``intensity`` fields.
        """
        if isinstance(points, np.ndarray) and points.dtype.names is not None:
            if len(points) == 0:
                raise EmptyPointCloudError("point cloud contains no points")
            return cls(points["x"], points["y"], points["z"], points["intensity"])

        if not isinstance(points, np.ndarray):
            points = list(points)
        records = np.asarray(points, dtype=np.float64)
        if records.size == 0:
            raise EmptyPointCloudError("point cloud contains no points")
        if records.ndim != 2 or records.shape[1] != 4:
            raise ValueError(
                f"points must be records of (x, y, z, intensity), got shape {records.shape}"
            )
        return cls(records[:, 0], records[:, 1], records[:, 2], records[:, 3])

    def __len__(self):
        return self.x.shape[0]

    def __getitem__(self, index):
        return Point(self.position(index), int(self.intensity[index]))

    def position(self, index):
        return np.array([self.x[index], self.y[index], self.z[index]], dtype=np.float32)

    @property
    def positions(self):
        return np.column_stack((self.x, self.y, self.z))
