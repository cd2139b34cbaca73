import argparse
import logging
import os

import numpy as np

from scene.coordinate_store import EmptyPointCloudError
from scene.point_cloud import PointCloud
from util.file_import import ParseError

log = logging.getLogger(__name__)


def _count(minimum):
    def parse(text):
        value = int(text)
        if value < minimum:
            raise argparse.ArgumentTypeError(f"must be at least {minimum}, got {value}")
        return value
    return parse


def _bounds(bounds):
    if bounds is None:
        return np.full(2, np.nan)
    return np.array(bounds, dtype=np.float64)


def run(filename, output, conf):

    log.info(f"File: {filename}")
    cloud = PointCloud.read(filename, conf)

    store = cloud.store
    with open(output, "wb") as outfile:
        np.savez(outfile,
                 x=store.x,
                 y=store.y,
                 z=store.z,
                 intensity=store.intensity,
                 radius=cloud.radii,
                 latitude_bounds=_bounds(cloud.latitude_bounds),
                 longitude_bounds=_bounds(cloud.longitude_bounds),
                 elevation_bounds=_bounds(cloud.elevation_bounds))
    log.info(f"wrote file to disk @ {os.path.abspath(output)}")

    return cloud


def main(raw_args=None):
    parser = argparse.ArgumentParser(
        prog="pointofview",
        description="Compute a nearest neighbor radius for every point of a point file.")

    parser.add_argument('input', help="point file (.txt, .xyz, .las, .laz, .ply, .obj)")
    parser.add_argument('output', help="destination .npz archive")

    parser.add_argument('-l', '--leaf-points', type=_count(1), default=PointCloud.conf["maximum_points_per_leaf"],
                        help="maximum points per octree leaf")
    parser.add_argument('-d', '--maximum-depth', type=_count(0), default=PointCloud.conf["maximum_depth"],
                        help="maximum octree depth")
    parser.add_argument('-j', '--jobs', type=_count(1), default=None,
                        help="worker threads for the radius pass")
    parser.add_argument('-c', '--chunk-size', type=_count(1), default=PointCloud.conf["chunk_size"],
                        help="points per radius work item")
    parser.add_argument('-v', '--verbose', action='store_true')

    args = parser.parse_args(raw_args)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    conf = {
        "maximum_points_per_leaf": args.leaf_points,
        "maximum_depth": args.maximum_depth,
        "jobs": args.jobs,
        "chunk_size": args.chunk_size,
    }

    try:
        run(args.input, args.output, conf)
    except (ParseError, EmptyPointCloudError) as e:
        log.error(f"{args.input}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
