# coding=utf-8
import heapq
import itertools


class SearchResults(object):
    """
    Collects the best candidates for a nearest-neighbor query.

    Holds at most max_results points, each no farther than max_distance from the
    query point and accepted by criteria (if given). When full, a closer point
    evicts the current farthest one.
    """
    __slots__ = ('query', 'max_results', 'max_distance', 'criteria', '_heap', '_counter')

    def __init__(self, query, max_results, max_distance=float('inf'), criteria=None):
        """
        :param query: point distances are measured from
        :param max_results: maximum number of points to keep
        :param max_distance: points farther than this are never kept
        :param criteria: optional predicate, called with each candidate point
        """
        if max_results < 1:
            raise ValueError(f'max_results must be at least 1, got {max_results}')
        self.query = query
        self.max_results = max_results
        self.max_distance = max_distance
        self.criteria = criteria
        # max-heap of (-distance, -order, point); order breaks ties and keeps points uncompared
        self._heap = []
        self._counter = itertools.count()

    def __len__(self):
        return len(self._heap)

    @property
    def longest_distance(self):
        """
        Distance a new candidate has to beat to be kept.

        This is max_distance until the results are full, then the distance of the
        farthest kept point.
        """
        if len(self._heap) < self.max_results:
            return self.max_distance
        return -self._heap[0][0]

    def offer(self, point):
        """Offer a point; returns True if it was kept."""
        distance = self.query.distance_to(point)
        if distance > self.max_distance:
            return False
        if len(self._heap) >= self.max_results and distance >= -self._heap[0][0]:
            return False
        if self.criteria is not None and not self.criteria(point):
            return False
        entry = (-distance, -next(self._counter), point)
        if len(self._heap) < self.max_results:
            heapq.heappush(self._heap, entry)
        else:
            heapq.heapreplace(self._heap, entry)
        return True

    def offer_all(self, points):
        for point in points:
            self.offer(point)

    def sorted_points(self):
        """Kept points in ascending order of distance; ties keep the order they were offered in."""
        return [point for _, _, point in sorted(self._heap, reverse=True)]
