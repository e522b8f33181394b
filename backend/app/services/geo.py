"""
Distance and locality scoring.

Both job proximity and feed locality use the same distance tiers, so the
tier table lives here once.
"""

import math
from typing import List, Optional, Tuple

EARTH_RADIUS_KM = 6371.0

# (max distance km, score, counts as local)
DISTANCE_TIERS: List[Tuple[float, float, bool]] = [
    (10, 100.0, True),
    (25, 80.0, True),
    (50, 60.0, False),
    (100, 40.0, False),
]
FAR_SCORE = 20.0
NEUTRAL_LOCATION_SCORE = 50.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_tier(distance_km: float) -> Tuple[float, bool]:
    """Map a distance to (score, is_local)."""
    for max_km, score, is_local in DISTANCE_TIERS:
        if distance_km <= max_km:
            return score, is_local
    return FAR_SCORE, False


def proximity_score(
    lat1: Optional[float],
    lon1: Optional[float],
    lat2: Optional[float],
    lon2: Optional[float],
) -> Tuple[float, bool]:
    """
    Score the distance between two optional points.

    Returns the neutral 50 (not local) when any coordinate is missing.
    """
    if lat1 is None or lon1 is None or lat2 is None or lon2 is None:
        return NEUTRAL_LOCATION_SCORE, False
    return distance_tier(haversine_km(lat1, lon1, lat2, lon2))
