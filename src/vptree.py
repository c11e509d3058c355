# coding=utf-8
import copy
from operator import itemgetter

from points import CachingPoint
from search_results import SearchResults


DEFAULT_BIN_SIZE = 32

# raised by distance functions handed something they cannot measure
UNMEASURABLE = (AttributeError, TypeError, ValueError)


class PartitionError(Exception):
    """A node's points could not be split; they are all the same distance from the center."""


class InvalidNodeError(RuntimeError):
    """An operation was attempted on the wrong kind of node (leaf vs. internal)."""


class VPTree(object):
    """
    Mutable vantage-point tree over points in a metric space.

    Every internal node has a center point and a distance threshold: points no
    farther than the threshold from the center live under the closer child, the
    rest under the farther child. Points themselves are stored only in leaves,
    up to bin_size per leaf; a leaf whose points are all coincident can't be
    split and may hold more.

    Points are stored by reference. Changing a stored point's coordinates other
    than through move_point will corrupt the tree.
    """
    __slots__ = ('root', 'bin_size')

    def __init__(self, points=(), bin_size=DEFAULT_BIN_SIZE):
        """
        :param points: initial points, indexed in bulk
        :param bin_size: maximum number of points a leaf holds before it is split
        """
        if bin_size < 1:
            raise ValueError(f'bin_size must be at least 1, got {bin_size}')
        self.bin_size = bin_size
        self.root = VPNode(list(points), bin_size)

    def __len__(self):
        return self.root.size()

    def size(self):
        return self.root.size()

    def is_empty(self):
        return self.root.is_empty()

    def __iter__(self):
        for leaf in self.root.leaves():
            yield from leaf.points

    def __contains__(self, point):
        return self.contains(point)

    def contains(self, point):
        try:
            return self.root.contains(point)
        except UNMEASURABLE:
            # not something we can measure, so not something we store
            return False

    def contains_all(self, points):
        return all(self.contains(point) for point in points)

    def to_list(self):
        result = []
        self.root.add_points_to(result)
        return result

    def clear(self):
        self.root = VPNode((), self.bin_size)

    def add(self, point):
        self.root.add(point)
        return True

    def add_all(self, points):
        """
        Add many points, splitting each overfull leaf once at the end rather
        than every time it overflows.

        Returns True if any points were given.
        """
        points = list(points)
        nodes_to_partition = set()
        for point in points:
            self.root.add(point, nodes_to_partition)
        for node in nodes_to_partition:
            node.try_partition()
        return bool(points)

    def remove(self, point):
        try:
            return self._remove(point)
        except UNMEASURABLE:
            return False

    def remove_all(self, points):
        """
        Remove many points, collapsing emptied parts of the tree once at the end.

        Returns True if any point was removed.
        """
        # points may be a live view of this tree, which removal changes underneath
        points = list(points)
        any_removed = False
        nodes_to_prune = {}
        for point in points:
            try:
                removed = self._remove(point, nodes_to_prune)
            except UNMEASURABLE:
                continue
            any_removed = any_removed or removed
        # both children of one node may be listed; the second prune finds its leaf already absorbed
        for path in nodes_to_prune.values():
            self._prune(path)
        return any_removed

    def retain_all(self, points):
        raise NotImplementedError('vp-trees do not support retain_all')

    def _remove(self, point, nodes_to_prune=None):
        path = self.root.find_path(point)
        leaf = path[-1]
        removed = leaf.remove(point)
        if removed and leaf.is_empty():
            if nodes_to_prune is None:
                self._prune(path)
            else:
                nodes_to_prune[leaf] = path
        return removed

    def _prune(self, path):
        """
        Collapse the empty leaf at the end of path into its ancestors.

        Walks upward, having each ancestor absorb its children, until one ends up
        holding points or the root is reached. Does nothing if the leaf has been
        refilled or is no longer attached along path.
        """
        leaf = path[-1]
        if not leaf.is_leaf or leaf.points or path[0] is not self.root:
            return
        for parent, child in zip(path, path[1:]):
            if parent.closer is not child and parent.farther is not child:
                return  # already absorbed by an earlier prune

        for ancestor in reversed(path[:-1]):
            ancestor.absorb_children()
            if ancestor.points:
                if len(ancestor.points) > self.bin_size:
                    ancestor.try_partition()
                break

    def nearest_neighbors(self, query, max_results, max_distance=float('inf'), criteria=None):
        """
        Find the points closest to query.

        :param query: anything with coordinates that stored points can measure against
        :param max_results: maximum number of points to return
        :param max_distance: ignore points farther than this
        :param criteria: optional predicate; only points it accepts are returned
        :return: list of at most max_results points, closest first
        """
        results = SearchResults(query, max_results, max_distance, criteria)
        self.root.get_nearest_neighbors(query, results)
        return results.sorted_points()

    def all_within_distance(self, query, max_distance, criteria=None):
        """
        Find every point no farther than max_distance from query.

        Returns a list, closest first.
        """
        query = CachingPoint(query)
        results = []
        self.root.get_all_within_distance(query, max_distance, criteria, results)
        results.sort(key=itemgetter(0))
        return [point for _, point in results]

    def move_point(self, point, coordinates):
        """
        Give a stored point new coordinates, keeping the tree consistent.

        If the point's old and new position fall in the same leaf it is simply
        updated; otherwise it is removed and added back.
        """
        source = self.root.find_path(point)[-1]
        if point not in source.points:
            raise ValueError(f'{point!r} is not in the tree')
        moved = copy.copy(point)
        moved.set_coordinates(*coordinates)
        destination = self.root.find_path(moved)[-1]

        if source is destination:
            point.set_coordinates(*coordinates)
        else:
            self._remove(point)
            point.set_coordinates(*coordinates)
            self.root.add(point)


class VPNode(object):
    """
    A node of a vp-tree: a leaf holding points, or an internal node with a center,
    threshold and two children. Nodes change between the two in place.
    """
    __slots__ = ('bin_size', 'points', 'center', 'threshold', 'closer', 'farther')

    def __init__(self, points, bin_size):
        """
        :param points: sequence of points to store, may be reordered
        :param bin_size: maximum points per leaf
        """
        self.bin_size = bin_size
        self.center = None
        self.threshold = None
        self.closer = None
        self.farther = None
        self.points = list(points)
        if len(self.points) > bin_size:
            self.try_partition()

    @property
    def is_leaf(self):
        return self.closer is None

    def size(self):
        if self.is_leaf:
            return len(self.points)
        return self.closer.size() + self.farther.size()

    def is_empty(self):
        if self.is_leaf:
            return not self.points
        return self.closer.is_empty() and self.farther.is_empty()

    def _child_for(self, point):
        if self.center.distance_to(point) <= self.threshold:
            return self.closer
        return self.farther

    def add(self, point, nodes_to_partition=None):
        """
        Store point in the leaf it belongs to.

        An overfull leaf is split right away, or recorded in nodes_to_partition
        to be split later if that set is given.
        """
        node = self
        while not node.is_leaf:
            node = node._child_for(point)
        node.points.append(point)
        if len(node.points) > node.bin_size:
            if nodes_to_partition is None:
                node.try_partition()
            else:
                nodes_to_partition.add(node)

    def contains(self, point):
        return point in self.find_path(point)[-1].points

    def find_path(self, point):
        """Nodes visited descending from here to the leaf where point belongs, this node first."""
        path = [self]
        node = self
        while not node.is_leaf:
            node = node._child_for(point)
            path.append(node)
        return path

    def remove(self, point):
        """Remove point from this leaf; returns False if it isn't here."""
        if not self.is_leaf:
            raise InvalidNodeError('Cannot remove points from an internal node')
        try:
            self.points.remove(point)
        except ValueError:
            return False
        return True

    def try_partition(self):
        """Split this leaf if possible; returns whether it was split."""
        try:
            self.partition()
        except PartitionError:
            # all coincident; stay an oversized leaf
            return False
        return True

    def partition(self):
        """
        Turn this leaf into an internal node with two children.

        The first point becomes the center and the median distance from it the
        threshold. If the points at the median are tied, the threshold moves out
        past the ties or, failing that, in below them, so that every point is
        unambiguously on one side. Raises PartitionError if no threshold
        separates the points.
        """
        if not self.is_leaf:
            raise PartitionError('Cannot partition an internal node')
        if not self.points:
            raise PartitionError('Cannot partition an empty node')

        center = CachingPoint(self.points[0])
        ranked = sorted(((center.distance_to(point), point) for point in self.points), key=itemgetter(0))
        distances = [distance for distance, _ in ranked]

        median_index = (len(ranked) - 1) // 2
        median_distance = distances[median_index]
        threshold = partition_index = None

        for i in range(median_index + 1, len(ranked)):
            if distances[i] > median_distance:
                threshold, partition_index = median_distance, i
                break
        else:
            for i in range(median_index, -1, -1):
                if distances[i] < median_distance:
                    threshold, partition_index = distances[i], i + 1
                    break

        if partition_index is None:
            raise PartitionError('All points are the same distance from the center')

        points = [point for _, point in ranked]
        self.center = center
        self.threshold = threshold
        self.closer = VPNode(points[:partition_index], self.bin_size)
        self.farther = VPNode(points[partition_index:], self.bin_size)
        self.points = None

    def absorb_children(self):
        """Pull every point below this node into it, making it a leaf again."""
        if self.is_leaf:
            raise InvalidNodeError('Leaf nodes have no children')
        if not self.closer.is_leaf:
            self.closer.absorb_children()
        if not self.farther.is_leaf:
            self.farther.absorb_children()
        self.points = self.closer.points + self.farther.points
        self.center = self.threshold = self.closer = self.farther = None

    def get_nearest_neighbors(self, query, results):
        if self.is_leaf:
            results.offer_all(self.points)
            return

        distance_to_center = self.center.distance_to(query)
        if distance_to_center <= self.threshold:
            self.closer.get_nearest_neighbors(query, results)
            # a point past the threshold is at least this far from the query
            if results.longest_distance > self.threshold - distance_to_center:
                self.farther.get_nearest_neighbors(query, results)
        else:
            self.farther.get_nearest_neighbors(query, results)
            # a point within the threshold is at least this far from the query
            if distance_to_center - self.threshold <= results.longest_distance:
                self.closer.get_nearest_neighbors(query, results)

    def get_all_within_distance(self, query, max_distance, criteria, results):
        """Append (distance, point) to results for every matching point under this node."""
        if self.is_leaf:
            for point in self.points:
                distance = query.distance_to(point)
                if distance <= max_distance and (criteria is None or criteria(point)):
                    results.append((distance, point))
            return

        distance_to_center = self.center.distance_to(query)
        # does the query ball reach inside the threshold?
        if distance_to_center <= self.threshold + max_distance:
            self.closer.get_all_within_distance(query, max_distance, criteria, results)
        # does it reach outside?
        if distance_to_center + max_distance > self.threshold:
            self.farther.get_all_within_distance(query, max_distance, criteria, results)

    def add_points_to(self, result):
        for leaf in self.leaves():
            result.extend(leaf.points)

    def leaves(self):
        """Iterate over the leaves under this node, closer before farther."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                yield node
            else:
                stack.append(node.farther)
                stack.append(node.closer)
