"""
Geohash encoding and range planning for radius queries.

The presence index stores a geohash per device, so a radius query becomes a
handful of lexicographic range scans over the ``geohash`` field. The ranges
returned here over-approximate the radius disk; exact distance filtering
happens later in ``filter_utils``.
"""

import math
from typing import List, Tuple

from .geo_utils import EARTH_RADIUS_M

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5
GEOHASH_PRECISION = 10
MAXIMUM_BITS_PRECISION = 22 * BITS_PER_CHAR

# Sorts after every base32 character, closes a range at the end of its parent cell
RANGE_END = "~"

METERS_PER_DEGREE_LATITUDE = math.pi * EARTH_RADIUS_M / 180.0
EPSILON = 1e-12

Location = Tuple[float, float]
GeohashRange = Tuple[str, str]


def geohash_for_location(location: Location, precision: int = GEOHASH_PRECISION) -> str:
    """
    Encode a (latitude, longitude) pair as a geohash.

    Args:
        location: (latitude, longitude) in decimal degrees
        precision: Number of characters in the result

    Returns:
        Geohash string
    """
    latitude, longitude = location
    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    geohash = []
    hash_value = 0
    bits = 0
    even = True

    while len(geohash) < precision:
        value = longitude if even else latitude
        value_range = lon_range if even else lat_range
        mid = (value_range[0] + value_range[1]) / 2
        if value > mid:
            hash_value = (hash_value << 1) + 1
            value_range[0] = mid
        else:
            hash_value = hash_value << 1
            value_range[1] = mid

        even = not even
        if bits < 4:
            bits += 1
        else:
            geohash.append(BASE32[hash_value])
            bits = 0
            hash_value = 0

    return "".join(geohash)


def meters_to_longitude_degrees(distance: float, latitude: float) -> float:
    radians = math.radians(latitude)
    meters_per_degree = math.cos(radians) * METERS_PER_DEGREE_LATITUDE
    if meters_per_degree < EPSILON:
        return 360.0 if distance > 0 else 0.0
    return min(360.0, distance / meters_per_degree)


def _latitude_bits_for_resolution(resolution: float) -> float:
    return min(math.log2(math.pi * EARTH_RADIUS_M / resolution), MAXIMUM_BITS_PRECISION)


def _longitude_bits_for_resolution(resolution: float, latitude: float) -> float:
    degrees = meters_to_longitude_degrees(resolution, latitude)
    if abs(degrees) > 0.000001:
        return max(1.0, math.log2(360.0 / degrees))
    return 1.0


def wrap_longitude(longitude: float) -> float:
    if -180.0 <= longitude <= 180.0:
        return longitude
    adjusted = longitude + 180.0
    if adjusted > 0:
        return (adjusted % 360.0) - 180.0
    return 180.0 - (-adjusted % 360.0)


def _bounding_box_bits(center: Location, size: float) -> int:
    """Number of geohash bits whose cells are at least ``size`` meters in both directions."""
    lat_delta = size / METERS_PER_DEGREE_LATITUDE
    latitude_north = min(90.0, center[0] + lat_delta)
    latitude_south = max(-90.0, center[0] - lat_delta)
    bits_lat = math.floor(_latitude_bits_for_resolution(size)) * 2
    bits_long_north = math.floor(_longitude_bits_for_resolution(size, latitude_north)) * 2 - 1
    bits_long_south = math.floor(_longitude_bits_for_resolution(size, latitude_south)) * 2 - 1
    return min(bits_lat, bits_long_north, bits_long_south, MAXIMUM_BITS_PRECISION)


def _bounding_box_coordinates(center: Location, radius: float) -> List[Location]:
    """Center plus the edge midpoints and corners of the box around the radius disk."""
    lat, lon = center
    lat_degrees = radius / METERS_PER_DEGREE_LATITUDE
    latitude_north = min(90.0, lat + lat_degrees)
    latitude_south = max(-90.0, lat - lat_degrees)
    long_degrees = max(meters_to_longitude_degrees(radius, latitude_north),
                       meters_to_longitude_degrees(radius, latitude_south))
    if long_degrees >= 180.0:
        # Box spans every longitude, wrapping would fold both edges onto the center
        west, east = -180.0, 180.0
    else:
        west = wrap_longitude(lon - long_degrees)
        east = wrap_longitude(lon + long_degrees)
    return [
        (lat, lon), (lat, west), (lat, east),
        (latitude_north, lon), (latitude_north, west), (latitude_north, east),
        (latitude_south, lon), (latitude_south, west), (latitude_south, east),
    ]


def geohash_query(geohash: str, bits: int) -> GeohashRange:
    """
    Build the [start, end) range covering the cell of ``geohash`` truncated to ``bits``.
    """
    precision = math.ceil(bits / BITS_PER_CHAR)
    if len(geohash) < precision:
        return geohash, geohash + RANGE_END

    ghash = geohash[:precision]
    base = ghash[:-1]
    last_value = BASE32.index(ghash[-1])
    significant_bits = bits - len(base) * BITS_PER_CHAR
    unused_bits = BITS_PER_CHAR - significant_bits

    start_value = (last_value >> unused_bits) << unused_bits
    end_value = start_value + (1 << unused_bits)
    if end_value > 31:
        return base + BASE32[start_value], base + RANGE_END
    return base + BASE32[start_value], base + BASE32[end_value]


def geohash_query_bounds(center: Location, radius_meters: float) -> List[GeohashRange]:
    """
    Plan the geohash ranges to scan for every point within ``radius_meters`` of ``center``.

    Cell size is chosen so one cell spans at least the radius in latitude and in
    longitude at both edges of the radius box; sampling the center and the eight
    box edges then touches every cell the disk can intersect. Ranges may overlap
    and include points outside the disk.

    Args:
        center: (latitude, longitude) in decimal degrees, already validated
        radius_meters: Positive radius in meters

    Returns:
        Non-empty list of unique (start, end) ranges in planning order
    """
    query_bits = max(1, _bounding_box_bits(center, radius_meters))
    precision = math.ceil(query_bits / BITS_PER_CHAR)

    bounds = []
    for coordinate in _bounding_box_coordinates(center, radius_meters):
        bound = geohash_query(geohash_for_location(coordinate, precision), query_bits)
        if bound not in bounds:
            bounds.append(bound)
    return bounds
