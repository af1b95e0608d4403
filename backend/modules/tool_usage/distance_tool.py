"""
modules/tool_usage/distance_tool.py
-------------------------------------
Offline driving estimator using the Haversine formula, a road detour factor
and a fixed cruising speed. No external HTTP calls are made.

Config knobs (config.py):
  DRIVING_FALLBACK_SPEED_KMH -- average highway speed incl. slowdowns (default: 88.0)
  ROAD_DETOUR_FACTOR         -- road km per great-circle km          (default: 1.25)
"""

from __future__ import annotations
import math
from typing import Optional

import config
from schemas.itinerary import NormalizedLeg
from schemas.trip import Place

# ---------------------------------------------------------------------------
# Pure maths
# ---------------------------------------------------------------------------

_EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (Haversine formula) in km."""
    r = _EARTH_RADIUS_KM
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return 2 * r * math.asin(math.sqrt(a))


def _km_to_seconds(km: float, speed_kmh: float) -> float:
    return (km / speed_kmh) * 3600.0


# ---------------------------------------------------------------------------
# DistanceTool
# ---------------------------------------------------------------------------


class DistanceTool:
    """
    Estimates driving legs between places. Road distance is the great-circle
    distance scaled by the detour factor; duration is that distance at the
    fallback speed.
    """

    def __init__(
        self,
        speed_kmh: Optional[float] = None,
        detour_factor: Optional[float] = None,
    ) -> None:
        self.speed_kmh: float = speed_kmh or config.DRIVING_FALLBACK_SPEED_KMH
        self.detour_factor: float = detour_factor or config.ROAD_DETOUR_FACTOR

    def road_km(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        if lat1 == lat2 and lon1 == lon2:
            return 0.0
        return haversine_km(lat1, lon1, lat2, lon2) * self.detour_factor

    def drive_seconds(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        return _km_to_seconds(self.road_km(lat1, lon1, lat2, lon2), self.speed_kmh)

    def estimate_leg(self, origin: Place, dest: Place) -> NormalizedLeg:
        """Return an estimated NormalizedLeg origin → dest (kind left unset)."""
        km = self.road_km(origin.lat, origin.lng, dest.lat, dest.lng)
        return NormalizedLeg(
            from_place_id=origin.id,
            to_place_id=dest.id,
            duration_sec=round(_km_to_seconds(km, self.speed_kmh)),
            distance_meters=round(km * 1000.0),
            start_address=origin.address or None,
            end_address=dest.address or None,
        )

    def estimate_route(self, places: list[Place]) -> list[NormalizedLeg]:
        """One estimated leg per consecutive pair of *places*."""
        return [self.estimate_leg(a, b) for a, b in zip(places, places[1:])]
