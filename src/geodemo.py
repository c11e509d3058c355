# coding=utf-8
import sys

import numpy as np
from tqdm import tqdm

from points import EARTH_RADIUS, GeospatialPoint
from vptree import DEFAULT_BIN_SIZE, VPTree


# Davis Square, Somerville, MA, USA
DEFAULT_ORIGIN = (42.396745, -71.122479)


def log(*s):
    print(*s)


def random_coordinates(count, origin, spread):
    """Normally distributed (latitude, longitude) rows around origin, spread in degrees"""
    coords = np.random.normal(loc=origin, scale=spread, size=(count, 2))
    coords[:, 0] = np.clip(coords[:, 0], -90, 90)
    # wrap longitude into [-180, 180)
    coords[:, 1] = (coords[:, 1] + 180) % 360 - 180
    return coords


def great_circle_distances(coords, origin):
    """Vectorized haversine distance in meters from origin to every (latitude, longitude) row"""
    lat, lon = np.radians(coords).T
    origin_lat, origin_lon = np.radians(origin)
    a = np.sin((lat - origin_lat) / 2)**2 + np.cos(lat) * np.cos(origin_lat) * np.sin((lon - origin_lon) / 2)**2
    return 2 * EARTH_RADIUS * np.arcsin(np.minimum(1.0, np.sqrt(a)))


def print_points(header, query, points):
    log(header)
    for point in points:
        log(f'\t{point} ({query.distance_to(point) / 1000:.3f} km)')


def main(count='100000', origin=None, bin_size=None, neighbor_count='10', radius='10000', spread='0.5'):
    # init params
    count = int(count)
    if origin is None:
        origin = DEFAULT_ORIGIN
    else:
        origin = tuple(map(float, origin.split(',')))
    bin_size = DEFAULT_BIN_SIZE if bin_size is None else int(bin_size)
    neighbor_count = int(neighbor_count)
    radius = float(radius)
    spread = float(spread)

    log(f'generating {count} points around {origin}')
    coords = random_coordinates(count, origin, spread)
    points = [GeospatialPoint(lat, lon) for lat, lon in coords.tolist()]

    log(f'building tree with bin size {bin_size}')
    tree = VPTree(points, bin_size)
    log(f'{len(tree)} points indexed')

    query = GeospatialPoint(*origin)

    nearest = tree.nearest_neighbors(query, neighbor_count)
    print_points(f'{len(nearest)} nearest points to {origin}:', query, nearest)

    within = tree.all_within_distance(query, radius)
    log(f'{len(within)} points within {radius / 1000:g} km of {origin}')

    log('checking against brute force')
    distances = np.sort(great_circle_distances(coords, origin))
    found = np.array([query.distance_to(point) for point in nearest])
    if not np.allclose(found, distances[:neighbor_count]):
        log('Error: nearest neighbors disagree with brute force')
        return
    if len(within) != np.count_nonzero(distances <= radius):
        log('Error: points within range disagree with brute force')
        return

    log('moving points')
    moving = points[:count // 10]
    destinations = random_coordinates(len(moving), origin, spread)
    for point, destination in tqdm(zip(moving, destinations.tolist()), total=len(moving)):
        tree.move_point(point, destination)

    log('removing points')
    removing = points[::2]
    for point in tqdm(removing[:len(removing) // 2]):
        tree.remove(point)
    tree.remove_all(removing[len(removing) // 2:])
    log(f'{len(tree)} points remain')

    nearest = tree.nearest_neighbors(query, neighbor_count)
    print_points(f'{len(nearest)} nearest remaining points to {origin}:', query, nearest)
    log('done!')


if __name__ == '__main__':
    main(*sys.argv[1:])
