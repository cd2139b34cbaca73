import os
from collections import namedtuple

import laspy
import meshio
import numpy as np
import logging
from util.timer import Timer

log = logging.getLogger(__name__)

RawPoints = namedtuple("RawPoints", ["latitudes", "longitudes", "elevations", "intensities"])


class ParseError(ValueError):
    """Raised when a point file cannot be read."""


def _parse_decimal(token, filename, line_number):
    if "." not in token:
        raise ParseError(f"{filename}:{line_number}: expected a decimal number, got {token!r}")
    try:
        return float(token)
    except ValueError:
        raise ParseError(f"{filename}:{line_number}: invalid number {token!r}") from None


def _parse_intensity(token, filename, line_number):
    if not (token.isascii() and token.isdigit()) or int(token) > 255:
        raise ParseError(f"{filename}:{line_number}: intensity must be an integer in [0, 255], got {token!r}")
    return int(token)


def read_text(filename):
    """Read the viewer's text format.

    One point per line: ``latitude longitude elevation intensity``, the
    first three as decimal numbers and the intensity as an integer in
    [0, 255].
    """
    latitudes = []
    longitudes = []
    elevations = []
    intensities = []

    with open(filename, 'r', encoding='utf8') as infile:
        for line_number, line in enumerate(infile, start=1):
            fields = line.split()
            if not fields:
                continue
            if len(fields) != 4:
                raise ParseError(f"{filename}:{line_number}: expected 4 fields, got {len(fields)}")

            latitudes.append(_parse_decimal(fields[0], filename, line_number))
            longitudes.append(_parse_decimal(fields[1], filename, line_number))
            elevations.append(_parse_decimal(fields[2], filename, line_number))
            intensities.append(_parse_intensity(fields[3], filename, line_number))

    return RawPoints(np.array(latitudes, dtype=np.float64),
                     np.array(longitudes, dtype=np.float64),
                     np.array(elevations, dtype=np.float64),
                     np.array(intensities, dtype=np.uint8))


def to_byte_intensity(values):
    """Bring intensities of any range into [0, 255]."""
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        return values.astype(np.uint8)
    values = values - min(np.min(values), 0)
    peak = np.max(values)
    if peak > 255:
        values = values * (255.0 / peak)
    return np.round(values).astype(np.uint8)


def read_las(filename):
    las = laspy.read(filename)

    # x is easting/longitude, y is northing/latitude
    return RawPoints(np.asarray(las.y, dtype=np.float64),
                     np.asarray(las.x, dtype=np.float64),
                     np.asarray(las.z, dtype=np.float64),
                     to_byte_intensity(las.intensity))


def read_mesh(filename):
    mesh = meshio.read(filename)
    points = np.asarray(mesh.points, dtype=np.float64)

    if 'intensity' in mesh.point_data:
        intensities = to_byte_intensity(mesh.point_data['intensity'])
    elif all(channel in mesh.point_data for channel in ('red', 'green', 'blue')):
        colors = np.column_stack([mesh.point_data[channel].astype(np.float64)
                                  for channel in ('red', 'green', 'blue')])
        intensities = to_byte_intensity(np.mean(colors, axis=1))
    else:
        intensities = np.zeros(points.shape[0], dtype=np.uint8)

    return RawPoints(points[:, 1], points[:, 0], points[:, 2], intensities)


readers = {
    ".txt": read_text,
    ".xyz": read_text,
    ".las": read_las,
    ".laz": read_las,
    ".ply": read_mesh,
    ".obj": read_mesh,
}


def read(filename):

    name, extension = os.path.splitext(filename)
    reader = readers.get(extension.lower())
    if reader is None:
        raise ParseError(f"unsupported point file {filename!r}")

    timer = Timer(f"Import {filename}")
    raw = reader(filename)
    timer.toc()

    log.info(f"Number of Points: {raw.latitudes.shape[0]}")

    return raw
