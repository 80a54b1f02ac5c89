"""Fast distance and trace simplification helpers.

Haversine is accurate to well under 0.5% at workout scales and much cheaper
than an ellipsoidal geodesic, which matters when summing thousands of samples.
"""

from __future__ import annotations
import math
from collections.abc import Sequence

# Earth's mean radius in meters
EARTH_RADIUS_M = 6_371_000

# Minimum spacing kept when thinning a raw GPS trace
DEFAULT_SIMPLIFY_TOLERANCE_M = 10.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points using Haversine formula.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_M * c


def route_length(samples: Sequence[tuple[float, float]]) -> float:
    """Sum of great-circle distances between consecutive (lat, lon) samples.

    Returns 0.0 for traces with fewer than two samples.
    """
    total = 0.0
    for i in range(1, len(samples)):
        lat1, lon1 = samples[i - 1]
        lat2, lon2 = samples[i]
        total += haversine_distance(lat1, lon1, lat2, lon2)
    return total


def simplify_route(
    samples: Sequence[tuple[float, float]],
    tolerance_m: float = DEFAULT_SIMPLIFY_TOLERANCE_M,
) -> list[tuple[float, float]]:
    """Drop samples lying within `tolerance_m` of the last kept sample.

    The first sample is always kept, so order and starting point are preserved.
    """
    if not samples:
        return []

    simplified = [samples[0]]
    for lat, lon in samples[1:]:
        last_lat, last_lon = simplified[-1]
        if haversine_distance(last_lat, last_lon, lat, lon) > tolerance_m:
            simplified.append((lat, lon))
    return simplified
