"""
Geographic utility functions.

This module provides core geospatial calculations used throughout the application.
"""

from math import radians, cos, sin, asin, sqrt
from typing import Optional, Tuple

EARTH_RADIUS_M = 6371000


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.
    
    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point
    
    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(a))
    return c * EARTH_RADIUS_M


def bounding_box(lat: float, lon: float, radius_km: float) -> Tuple[float, float, float, float]:
    """
    Rough lat/lon box that fully contains the circle of ``radius_km``.

    Used as an indexed prefilter before the exact haversine check.

    Returns:
        (min_lat, max_lat, min_lon, max_lon)
    """
    lat_offset = radius_km / 111.0
    lon_scale = abs(cos(radians(lat))) or 1e-6
    lon_offset = radius_km / (111.0 * lon_scale)
    return lat - lat_offset, lat + lat_offset, lon - lon_offset, lon + lon_offset


def parse_coordinates(value) -> Optional[Tuple[float, float]]:
    """
    Parse a "lat,lng" location descriptor.

    Returns None for free-text addresses or out-of-range values.
    """
    if value is None:
        return None
    if isinstance(value, (tuple, list)) and len(value) == 2:
        parts = list(value)
    else:
        parts = str(value).split(",")
        if len(parts) != 2:
            return None
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except (TypeError, ValueError):
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng
