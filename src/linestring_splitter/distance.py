"""Distance between coordinates, either planar or on a sphere."""

from __future__ import annotations

import math

from .models import Coordinate, Polyline

EARTH_RADIUS_IN_METERS = 6372797.560856


class DistanceModel:
    """Computes distances in one mode fixed at construction.

    In geographic mode x/y are longitude/latitude in degrees. The longitude
    and latitude deltas are scaled by the Earth radius independently and
    combined as a flat distance, which is an approximation and not haversine.
    """

    def __init__(self, geographic: bool = False):
        self.geographic = geographic

    def distance(self, a: Coordinate, b: Coordinate) -> float:
        if self.geographic:
            dx = EARTH_RADIUS_IN_METERS * math.radians(b[0] - a[0])
            dy = EARTH_RADIUS_IN_METERS * math.radians(b[1] - a[1])
            return math.hypot(dx, dy)
        return math.hypot(b[0] - a[0], b[1] - a[1])

    def length(self, polyline: Polyline) -> float:
        """Sum of the distances between consecutive vertices."""
        total = 0.0
        for i in range(1, len(polyline)):
            total += self.distance(polyline[i - 1], polyline[i])
        return total

    def __repr__(self) -> str:
        mode = "geographic" if self.geographic else "planar"
        return f"DistanceModel({mode})"
