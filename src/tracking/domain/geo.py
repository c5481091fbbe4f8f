"""Geofence validation using great-circle (haversine) distance."""

import math
from dataclasses import dataclass
from typing import Optional

from tracking.domain.model import Coordinate

EARTH_RADIUS_METERS = 6371e3


@dataclass(frozen=True)
class GeofenceVerdict:
    ok: bool
    distance_meters: Optional[float] = None  # None when the check was skipped

    @property
    def skipped(self) -> bool:
        return self.distance_meters is None


def haversine_distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in meters."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    delta_phi = math.radians(b.latitude - a.latitude)
    delta_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # clamp float drift for antipodal points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def check_geofence(
    center: Optional[Coordinate], radius_meters: float, point: Coordinate
) -> GeofenceVerdict:
    """
    Decide whether point lies inside the circle (center, radius_meters).

    A task without a configured reference point operates without location
    enforcement: the check is skipped and always passes.
    """
    if center is None:
        return GeofenceVerdict(ok=True)
    distance = haversine_distance_meters(center, point)
    return GeofenceVerdict(ok=distance <= radius_meters, distance_meters=distance)


def within_geofence(
    center: Optional[Coordinate], radius_meters: float, point: Coordinate
) -> bool:
    return check_geofence(center, radius_meters, point).ok
