"""
modules/planning/day_trips.py
------------------------------
Resolves per-day DayTripPlans into routed DayTripRoutes.

Resolution rules for one day:
  destination : CUSTOM  → plan.destination_place_id
                NYC     → first place whose name contains "new york"
                PA      → first place whose name contains "pa friends"
  start       : plan.start_place_id, else the base place that day,
                else the scenario's selected origin
  end         : plan.end_place_id, else start

A plan whose destination, start or end does not resolve to a known place is
skipped. Base places come from a main-route-only scheduling pass, so day
trips never influence their own start point.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from schemas.itinerary import DayTripRoute, LegKind, NormalizedLeg
from schemas.trip import DayTripPreset, Scenario, Trip
from modules.planning.base_location import compute_base_place_by_day
from modules.planning.scheduler import ItineraryScheduler

logger = logging.getLogger(__name__)

_PRESET_NAME_NEEDLES: dict[DayTripPreset, str] = {
    DayTripPreset.NYC: "new york",
    DayTripPreset.PA:  "pa friends",
}


class SupportsRoute(Protocol):
    def route(self, place_ids: list[str]) -> list[NormalizedLeg]: ...


@dataclass
class DayTripRequest:
    day_iso: str
    start_place_id: str
    destination_place_id: str
    end_place_id: str
    dwell_minutes: float

    @property
    def waypoint_ids(self) -> list[str]:
        return [self.start_place_id, self.destination_place_id, self.end_place_id]

    @property
    def cache_key(self) -> str:
        return f"dt:{self.start_place_id}->{self.destination_place_id}->{self.end_place_id}"


def find_preset_place_id(trip: Trip, preset: DayTripPreset) -> Optional[str]:
    needle = _PRESET_NAME_NEEDLES.get(preset)
    if needle is None:
        return None
    for place in trip.places_by_id.values():
        if needle in place.name.lower():
            return place.id
    return None


def resolve_day_trip_requests(
    trip: Trip,
    scenario: Scenario,
    base_place_by_day: dict[str, Optional[str]],
) -> list[DayTripRequest]:
    requests: list[DayTripRequest] = []
    for day_iso, override in sorted(scenario.day_overrides_by_iso.items()):
        plan = override.day_trip
        if plan is None:
            continue

        if plan.preset == DayTripPreset.CUSTOM:
            dest = plan.destination_place_id
        else:
            dest = find_preset_place_id(trip, plan.preset)

        start = (
            plan.start_place_id
            or base_place_by_day.get(day_iso)
            or scenario.selected_origin_place_id
        )
        end = plan.end_place_id or start

        if not dest or not start or not end:
            continue
        if any(pid not in trip.places_by_id for pid in (dest, start, end)):
            continue

        requests.append(DayTripRequest(
            day_iso=day_iso,
            start_place_id=start,
            destination_place_id=dest,
            end_place_id=end,
            dwell_minutes=plan.dwell_minutes,
        ))
    return requests


def build_day_trip_routes(
    trip: Trip,
    scenario: Scenario,
    legs: list[NormalizedLeg],
    routing_tool: SupportsRoute,
    scheduler: Optional[ItineraryScheduler] = None,
) -> dict[str, DayTripRoute]:
    """
    Route every resolvable day trip of *scenario*.

    Identical start/destination/end triangles are routed once. A routing
    failure drops that day trip and is logged; the rest still resolve.
    """
    if not any(o.day_trip for o in scenario.day_overrides_by_iso.values()):
        return {}

    scheduler = scheduler or ItineraryScheduler()
    main_only = scheduler.compute(trip.window, scenario, legs, None, trip.places_by_id)
    base_by_day = compute_base_place_by_day(main_only.days, scenario)

    routed: dict[str, list[NormalizedLeg]] = {}
    out: dict[str, DayTripRoute] = {}
    for req in resolve_day_trip_requests(trip, scenario, base_by_day):
        if req.cache_key not in routed:
            try:
                routed[req.cache_key] = [
                    leg.with_kind(LegKind.other) for leg in routing_tool.route(req.waypoint_ids)
                ]
            except RuntimeError as exc:
                logger.warning("Day trip %s on %s not routed: %s", req.cache_key, req.day_iso, exc)
                continue
        out[req.day_iso] = DayTripRoute(
            legs=routed[req.cache_key],
            dwell_minutes=req.dwell_minutes,
            destination_place_id=req.destination_place_id,
        )
    return out
