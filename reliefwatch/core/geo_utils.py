"""
ReliefWatch - Geospatial Utilities
Great-circle distance and bearing calculations.
"""

import math
from typing import Any, Optional, Tuple
from dataclasses import dataclass

from reliefwatch.core.constants import EARTH_RADIUS_M, LATITUDE_RANGE, LONGITUDE_RANGE


@dataclass(frozen=True)
class Point:
    """Geographic point with latitude and longitude."""
    latitude: float
    longitude: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push a a hair above 1 for antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def calculate_bearing(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the initial bearing from point 1 to point 2.

    Args:
        lat1, lon1: Start point coordinates in decimal degrees
        lat2, lon2: End point coordinates in decimal degrees

    Returns:
        Bearing in degrees (0-360, where 0=North, 90=East)
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lon = math.radians(lon2 - lon1)

    x = math.sin(delta_lon) * math.cos(lat2_rad)
    y = (
        math.cos(lat1_rad) * math.sin(lat2_rad) -
        math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(delta_lon)
    )

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def degrees_to_cardinal(degrees: float) -> str:
    """
    Convert bearing in degrees to cardinal direction.

    Args:
        degrees: Bearing in degrees (0-360)

    Returns:
        Cardinal direction string (N, NE, E, SE, S, SW, W, NW)
    """
    directions = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
    index = round(degrees / 45) % 8
    return directions[index]


def is_valid_coordinate(latitude: Any, longitude: Any) -> bool:
    """Check that latitude and longitude are finite numbers within range."""
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        return False

    if math.isnan(lat) or math.isnan(lon):
        return False

    return (
        LATITUDE_RANGE[0] <= lat <= LATITUDE_RANGE[1] and
        LONGITUDE_RANGE[0] <= lon <= LONGITUDE_RANGE[1]
    )


def to_point(latitude: Optional[float], longitude: Optional[float]) -> Optional[Point]:
    """Build a Point, or None when either coordinate is missing."""
    if latitude is None or longitude is None:
        return None
    return Point(latitude=float(latitude), longitude=float(longitude))
