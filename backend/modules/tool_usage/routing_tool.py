"""
modules/tool_usage/routing_tool.py
------------------------------------
Driving directions for ordered waypoint sequences, normalized to
NormalizedLeg lists.

Providers (config.ROUTING_PROVIDER):
  estimate -- offline DistanceTool (haversine × detour factor at fixed speed)
  osrm     -- OSRM Route API

OSRM endpoint:
    GET {OSRM_BASE_URL}/route/v1/driving/{lng,lat;lng,lat;...}?overview=false
Response fields used:
    code                     → "Ok" on success
    routes[0].legs[i].duration → seconds (float)
    routes[0].legs[i].distance → meters  (float)

The normalizer also accepts Google Directions shaped legs
({duration: {value}, distance: {value}, start_address, end_address}), so
saved Directions responses can be replayed.
"""

from __future__ import annotations
import logging
from typing import Any, Optional

import requests

import config
from schemas.itinerary import NormalizedLeg
from schemas.trip import Place, Trip
from modules.planning.segments import SegmentSpec
from modules.tool_usage.distance_tool import DistanceTool
from modules.tool_usage.route_cache import InMemoryRouteCache, RouteCache

logger = logging.getLogger(__name__)

PROVIDER_ESTIMATE = "estimate"
PROVIDER_OSRM     = "osrm"


class RoutingError(RuntimeError):
    """Routing provider failure. Messages carry an ERROR_ROUTING_* prefix."""


# ─────────────────────────────────────────────────────────────────────────────
# Leg normalizer
# ─────────────────────────────────────────────────────────────────────────────

def _numeric(value: Any) -> float:
    """Accept a bare number or a Google {value: n} object; anything else is 0."""
    if isinstance(value, dict):
        value = value.get("value")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def normalize_directions_response(
    place_ids: list[str],
    legs: list[dict[str, Any]],
) -> list[NormalizedLeg]:
    """
    Pair place_ids[i] → place_ids[i+1] with legs[i].

    Legs without both endpoints in *place_ids* are skipped; missing
    duration/distance values become 0.
    """
    out: list[NormalizedLeg] = []
    for i, leg in enumerate(legs):
        if i + 1 >= len(place_ids):
            break
        from_id, to_id = place_ids[i], place_ids[i + 1]
        if not from_id or not to_id:
            continue
        out.append(NormalizedLeg(
            from_place_id=from_id,
            to_place_id=to_id,
            duration_sec=_numeric(leg.get("duration")),
            distance_meters=_numeric(leg.get("distance")),
            start_address=leg.get("start_address"),
            end_address=leg.get("end_address"),
        ))
    return out


# ─────────────────────────────────────────────────────────────────────────────
# RoutingTool
# ─────────────────────────────────────────────────────────────────────────────

class RoutingTool:
    """
    Routes waypoint sequences through the configured provider, consulting the
    injected cache first. Waypoint ids resolve through the place table set
    by bind_places() (route_segments binds the trip's places itself).
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        cache: Optional[RouteCache] = None,
        distance_tool: Optional[DistanceTool] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.provider: str = (provider or config.ROUTING_PROVIDER).lower()
        if self.provider not in (PROVIDER_ESTIMATE, PROVIDER_OSRM):
            raise ValueError(f"ERROR_ROUTING_PROVIDER: unknown provider {self.provider!r}")
        self.cache: RouteCache = cache if cache is not None else InMemoryRouteCache()
        self.distance_tool = distance_tool or DistanceTool()
        self.session = session or requests.Session()
        self._places_by_id: dict[str, Place] = {}

    def bind_places(self, places_by_id: dict[str, Place]) -> "RoutingTool":
        """Set the place table used to resolve waypoint ids to coordinates."""
        self._places_by_id = dict(places_by_id)
        return self

    # ── Public API ───────────────────────────────────────────────────────────

    def route(self, place_ids: list[str]) -> list[NormalizedLeg]:
        """Route one ordered waypoint sequence. Raises RoutingError on failure."""
        if len(place_ids) < 2:
            return []
        missing = [pid for pid in place_ids if pid not in self._places_by_id]
        if missing:
            raise RoutingError(f"ERROR_ROUTING_UNKNOWN_PLACE: {', '.join(missing)}")

        key = ">".join(place_ids)
        cached = self.cache.get(self.provider, key)
        if cached is not None:
            logger.debug("Route cache hit %s", key)
            return cached

        places = [self._places_by_id[pid] for pid in place_ids]
        if self.provider == PROVIDER_OSRM:
            legs = self._route_osrm(places)
        else:
            legs = self.distance_tool.estimate_route(places)

        self.cache.set(self.provider, key, legs)
        return legs

    def route_segments(self, trip: Trip, specs: list[SegmentSpec]) -> list[NormalizedLeg]:
        """Route every segment of *trip* in order, tagging legs with the segment kind."""
        self.bind_places(trip.places_by_id)
        legs: list[NormalizedLeg] = []
        for spec in specs:
            legs.extend(leg.with_kind(spec.kind) for leg in self.route(spec.place_ids))
        logger.info(
            "Routed %d segment(s) → %d leg(s) via %s",
            len(specs), len(legs), self.provider,
        )
        return legs

    # ── Providers ────────────────────────────────────────────────────────────

    def _route_osrm(self, places: list[Place]) -> list[NormalizedLeg]:
        coords = ";".join(f"{p.lng},{p.lat}" for p in places)
        url = f"{config.OSRM_BASE_URL.rstrip('/')}/route/v1/driving/{coords}"
        try:
            resp = self.session.get(
                url,
                params={"overview": "false", "steps": "false"},
                timeout=config.OSRM_REQUEST_TIMEOUT,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise RoutingError(f"ERROR_ROUTING_HTTP: {exc}") from exc

        if data.get("code") != "Ok" or not data.get("routes"):
            raise RoutingError(
                f"ERROR_ROUTING_STATUS: {data.get('code')} {data.get('message', '')}".rstrip()
            )

        raw_legs = data["routes"][0].get("legs", [])
        if len(raw_legs) != len(places) - 1:
            raise RoutingError(
                f"ERROR_ROUTING_LEG_COUNT: expected {len(places) - 1}, got {len(raw_legs)}"
            )

        for leg, a, b in zip(raw_legs, places, places[1:]):
            leg.setdefault("start_address", a.address or None)
            leg.setdefault("end_address", b.address or None)
        return normalize_directions_response([p.id for p in places], raw_legs)
