# coding=utf-8
import gc
import math
import weakref

import pytest

from points import CachingPoint, CartesianPoint, GeospatialPoint, great_circle_distance
from search_results import SearchResults


def line(count):
    return [CartesianPoint(x, 0) for x in range(count)]


def test_keeps_closest():
    points = line(10)
    results = SearchResults(CartesianPoint(0, 0), 3)
    assert results.longest_distance == math.inf
    results.offer_all(reversed(points))
    assert len(results) == 3
    assert results.longest_distance == 2
    assert results.sorted_points() == points[:3]
    assert not results.offer(CartesianPoint(2, 0))
    assert results.offer(CartesianPoint(1.5, 0))
    assert results.longest_distance == 1.5


def test_max_distance():
    results = SearchResults(CartesianPoint(0, 0), 5, max_distance=3)
    assert results.longest_distance == 3
    results.offer_all(line(10))
    assert len(results) == 4
    # not full, so the ceiling still bounds the search
    assert results.longest_distance == 3


def test_criteria():
    seen = []

    def even(point):
        seen.append(point)
        return point.coordinates[0] % 2 == 0

    points = line(10)
    results = SearchResults(CartesianPoint(0, 0), 2, criteria=even)
    results.offer_all(points)
    assert results.sorted_points() == [points[0], points[2]]
    # once full, points too far away to be kept are never handed to the predicate
    assert points[9] not in seen


def test_ties_keep_offer_order():
    points = [CartesianPoint(1, 0), CartesianPoint(0, 1), CartesianPoint(-1, 0)]
    results = SearchResults(CartesianPoint(0, 0), 2)
    results.offer_all(points)
    assert results.sorted_points() == points[:2]


def test_invalid_max_results():
    with pytest.raises(ValueError):
        SearchResults(CartesianPoint(0, 0), 0)


def test_great_circle_distance():
    # one degree of arc along the equator
    assert great_circle_distance(0, 0, 0, 1) == pytest.approx(111194.93, abs=0.01)
    assert great_circle_distance(0, 0, 0, 180) == pytest.approx(math.pi * 6371e3)
    a = GeospatialPoint(42.396745, -71.122479)
    b = GeospatialPoint(40.7127, -74.0059)
    assert a.distance_to(b) == b.distance_to(a)
    assert a.distance_to(a) == 0


def test_caching_point():
    point = CartesianPoint(1, 1)
    center = CachingPoint(point)
    other = CartesianPoint(4, 5)
    assert center.distance_to(other) == 5
    assert center.distance_to(other) == 5

    # the center is a snapshot of the point it was made from
    point.set_coordinates(10, 10)
    assert center.coordinates == (1, 1)

    # a point that moved since it was last measured is measured again
    other.set_coordinates(1, 2)
    assert center.distance_to(other) == 1
    assert center.distance_to(CachingPoint(other)) == 1


def test_caching_point_does_not_keep_points_alive():
    class Tracked(CartesianPoint):
        pass  # no __slots__, so it can be weakly referenced

    center = CachingPoint(CartesianPoint(0, 0))
    other = Tracked(3, 4)
    assert center.distance_to(other) == 5
    ref = weakref.ref(other)
    del other
    gc.collect()
    assert ref() is None
