# coding=utf-8
import copy
import math


EARTH_RADIUS = 6371e3  # meters


def great_circle_distance(latitude1, longitude1, latitude2, longitude2):
    """
    Haversine distance in meters between two (latitude, longitude) pairs given in degrees.
    """
    lat1, lon1, lat2, lon2 = map(math.radians, (latitude1, longitude1, latitude2, longitude2))
    a = math.sin((lat2 - lat1) / 2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2)**2
    return 2 * EARTH_RADIUS * math.asin(min(1.0, math.sqrt(a)))


class GeospatialPoint(object):
    """A mutable point on the surface of the earth, in degrees."""
    __slots__ = ('latitude', 'longitude')

    def __init__(self, latitude, longitude):
        self.latitude = latitude
        self.longitude = longitude

    @property
    def coordinates(self):
        return self.latitude, self.longitude

    def set_coordinates(self, latitude, longitude):
        self.latitude = latitude
        self.longitude = longitude

    def distance_to(self, other):
        return great_circle_distance(self.latitude, self.longitude, *other.coordinates)

    def __repr__(self):
        return f'{type(self).__name__}({self.latitude!r}, {self.longitude!r})'


class CartesianPoint(object):
    """A mutable point in n-dimensional euclidean space."""
    __slots__ = ('coordinates',)

    def __init__(self, *coordinates):
        self.coordinates = tuple(coordinates)

    def set_coordinates(self, *coordinates):
        self.coordinates = tuple(coordinates)

    def distance_to(self, other):
        return math.dist(self.coordinates, other.coordinates)

    def __repr__(self):
        return f'{type(self).__name__}{self.coordinates!r}'


class CachingPoint(object):
    """
    Wraps a snapshot of a point and remembers the last distance it computed.

    Tree nodes measure many points against the same center, and the same point
    is often measured several times in a row (finding a point, then removing it).
    The cache is keyed on the other point's id *and* its coordinates at the
    time, so a point that has moved since is measured again. Only the id is
    kept, not the point; a new object reusing the id at the same coordinates is
    the same distance away anyway.
    """
    __slots__ = ('point', '_last_id', '_last_coordinates', '_last_distance')

    def __init__(self, point):
        # copy so that relocating the stored point does not drag the center along
        self.point = copy.copy(point)
        self._last_id = None
        self._last_coordinates = None
        self._last_distance = None

    @property
    def coordinates(self):
        return self.point.coordinates

    def distance_to(self, other):
        coordinates = other.coordinates
        if id(other) == self._last_id and coordinates == self._last_coordinates:
            return self._last_distance
        distance = self.point.distance_to(other)
        self._last_id, self._last_coordinates, self._last_distance = id(other), coordinates, distance
        return distance

    def __repr__(self):
        return f'{type(self).__name__}({self.point!r})'
