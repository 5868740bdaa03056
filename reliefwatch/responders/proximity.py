"""
Proximity matcher
Ranks responders by great-circle distance to an incident
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from reliefwatch.core.config import settings
from reliefwatch.core.geo_utils import (
    Point,
    calculate_bearing,
    degrees_to_cardinal,
    haversine_distance,
    to_point,
)


@dataclass(frozen=True)
class Match:
    """A candidate together with its distance from the origin."""
    candidate: Any
    distance_m: float

    def __iter__(self):
        # Unpacks as (candidate, distance) pairs
        return iter((self.candidate, self.distance_m))


def _coordinates(candidate: Any) -> Optional[Point]:
    if isinstance(candidate, dict):
        return to_point(candidate.get("latitude"), candidate.get("longitude"))
    return to_point(getattr(candidate, "latitude", None), getattr(candidate, "longitude", None))


def _identifier(candidate: Any) -> str:
    value = candidate.get("id") if isinstance(candidate, dict) else getattr(candidate, "id", None)
    return str(value)


def nearest(
    origin_lat: float,
    origin_lon: float,
    candidates: Iterable[Any],
    max_distance_meters: Optional[float] = None,
    limit: Optional[int] = None
) -> List[Match]:
    """
    Rank candidates by distance to an origin.

    Candidates without a location are skipped. Results within
    max_distance_meters are sorted by distance, ties broken by candidate id,
    and truncated to limit.

    Args:
        origin_lat, origin_lon: Incident coordinates in decimal degrees
        candidates: Objects or dicts exposing id, latitude and longitude
        max_distance_meters: Inclusive distance cutoff (default 10 km)
        limit: Maximum number of results (default 5)

    Returns:
        Ordered list of Match(candidate, distance_m)
    """
    if max_distance_meters is None:
        max_distance_meters = settings.proximity_max_distance_m
    if limit is None:
        limit = settings.proximity_limit
    if limit <= 0:
        return []

    matches = []
    for candidate in candidates:
        point = _coordinates(candidate)
        if point is None:
            continue
        distance = haversine_distance(origin_lat, origin_lon, point.latitude, point.longitude)
        if distance <= max_distance_meters:
            matches.append(Match(candidate=candidate, distance_m=distance))

    matches.sort(key=lambda m: (m.distance_m, _identifier(m.candidate)))
    return matches[:limit]


def describe_match(origin_lat: float, origin_lon: float, match: Match) -> dict:
    """API dictionary for a matched responder, with a direction hint."""
    lat, lon = _coordinates(match.candidate).to_tuple()
    bearing = calculate_bearing(origin_lat, origin_lon, lat, lon)
    body = match.candidate.to_dict() if hasattr(match.candidate, "to_dict") else dict(match.candidate)
    body.update({
        "distance": round(match.distance_m, 1),
        "bearing": round(bearing, 1),
        "direction": degrees_to_cardinal(bearing),
    })
    return body
