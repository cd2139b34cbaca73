import logging
import numpy as np
from util.timer import Timer

log = logging.getLogger(__name__)

# float32 cells stop shrinking in a meaningful way past this level
MAXIMUM_DEPTH = 24


class Bounds:
    """Axis aligned box given by a closed range per axis.

    Octant keys use bit 0 for x, bit 1 for y and bit 2 for z. A coordinate
    equal to the mid plane belongs to the upper half, both when the tree is
    built and when it is queried.
    """

    def __init__(self, lower, upper):
        self.lower = np.asarray(lower, dtype=np.float32)
        self.upper = np.asarray(upper, dtype=np.float32)

        self.extent = self.upper - self.lower
        self.mid = self.lower + self.extent / np.float32(2)

    @classmethod
    def base(cls):
        return cls((-1, -1, -1), (1, 1, 1))

    def __repr__(self):
        return f"Bounds({self.lower.tolist()}, {self.upper.tolist()})"

    def child(self, key):
        upper_half = np.array([key & 1, key & 2, key & 4], dtype=bool)
        return Bounds(np.where(upper_half, self.mid, self.lower),
                      np.where(upper_half, self.upper, self.mid))

    def key(self, position):
        return (int(position[0] >= self.mid[0])
                | int(position[1] >= self.mid[1]) << 1
                | int(position[2] >= self.mid[2]) << 2)

    def keys(self, x, y, z):
        return ((x >= self.mid[0]).astype(np.int64)
                | (y >= self.mid[1]).astype(np.int64) << 1
                | (z >= self.mid[2]).astype(np.int64) << 2)

    def contains(self, position):
        position = np.asarray(position, dtype=np.float32)
        return bool(np.all(self.lower <= position) and np.all(position <= self.upper))

    def distance(self, position):
        """Distance from `position` to the closest point of the box, 0 inside."""
        outside = np.maximum(np.maximum(self.lower - position, 0), position - self.upper)
        return float(np.sqrt(np.dot(outside, outside)))


class Node:
    def __init__(self, bounds, nodeindex, level, octree):
        self.bounds = bounds
        self.isleaf = False
        self.nodeindex = nodeindex  # octant key in the parent, None for the root
        self.level = level

        if len(octree.node_count) <= level:
            octree.node_count.append(1)
        else:
            octree.node_count[level] += 1


class Leaf(Node):
    def __init__(self, indices, bounds, nodeindex, level, octree):
        super().__init__(bounds, nodeindex, level, octree)
        self.isleaf = True
        self.indices = indices
        octree.leaf_count += 1

    def __len__(self):
        return self.indices.shape[0]

    def __repr__(self):
        return f"Leaf(level={self.level}, points={len(self)})"


class Knot(Node):

    def __init__(self, indices, bounds, nodeindex, level, octree):
        super().__init__(bounds, nodeindex, level, octree)
        self.children = None
        self.total_points = None
        self.setup_children(indices, octree)
        octree.knot_count += 1

    def __len__(self):
        return self.total_points

    def __repr__(self):
        return f"Knot(level={self.level}, points={len(self)})"

    def setup_children(self, indices, octree):
        store = octree.store
        keys = self.bounds.keys(store.x[indices], store.y[indices], store.z[indices])

        self.children = []
        self.total_points = 0
        for key in range(8):
            child = create_node(octree, indices[keys == key], self.bounds.child(key), key, self.level + 1)
            self.children.append(child)
            self.total_points += len(child)


def _coincident(store, indices):
    x, y, z = store.x[indices], store.y[indices], store.z[indices]
    return x.min() == x.max() and y.min() == y.max() and z.min() == z.max()


def create_node(octree, indices, bounds, nodeindex, level):
    if len(indices) <= octree.num_leaf_points:
        return Leaf(indices, bounds, nodeindex, level, octree)

    if level >= octree.maximum_depth or _coincident(octree.store, indices):
        log.debug(f"keeping {len(indices)} points in one leaf at level {level}")
        octree.oversized_leaf_count += 1
        return Leaf(indices, bounds, nodeindex, level, octree)

    return Knot(indices, bounds, nodeindex, level, octree)


class Octree:
    """Point-region octree over the normalized positions of a coordinate store.

    The whole point set is partitioned at once: a node holding more than
    ``maximum_points_per_leaf`` points is split into 8 octants until every
    leaf is small enough. Points that share one position, or that still
    crowd a leaf at ``maximum_depth``, stay together in an oversized leaf.
    The tree is never modified after construction.
    """

    def __init__(self, store, maximum_points_per_leaf=128, maximum_depth=MAXIMUM_DEPTH):

        if maximum_points_per_leaf < 1:
            raise ValueError(f"maximum_points_per_leaf must be >= 1, got {maximum_points_per_leaf}")
        if maximum_depth < 0:
            raise ValueError(f"maximum_depth must be >= 0, got {maximum_depth}")

        self.store = store
        self.num_leaf_points = maximum_points_per_leaf  # stopage criterion
        self.maximum_depth = maximum_depth

        self.node_count = []  # nodes per level
        self.leaf_count = 0
        self.knot_count = 0
        self.oversized_leaf_count = 0
        self.point_count = len(store)

        timer = Timer("Octree Creation:")
        self.root = create_node(self, np.arange(self.point_count, dtype=np.int64), Bounds.base(), None, 0)
        timer.toc()

        log.info(f"Octree: {self.point_count} points, {self.leaf_count} leaves, "
                 f"{self.knot_count} knots, depth {self.depth}")
        if self.oversized_leaf_count:
            log.info(f"Octree: {self.oversized_leaf_count} leaves exceed {self.num_leaf_points} points")

    def __len__(self):
        return self.point_count

    @property
    def depth(self):
        return len(self.node_count) - 1

    def leaves(self):
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.isleaf:
                yield node
            else:
                stack.extend(reversed(node.children))

    def find_leaf(self, position):
        position = np.asarray(position, dtype=np.float32)
        if not self.root.bounds.contains(position):
            raise ValueError(f"{position.tolist()} lies outside the octree bounds")

        node = self.root
        while not node.isleaf:
            node = node.children[node.bounds.key(position)]
        return node
