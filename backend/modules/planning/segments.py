"""
modules/planning/segments.py
-----------------------------
Turns a scenario into the ordered waypoint sequences the routing provider
is queried with, each tagged with the segment kind its legs belong to.

  up    : [actual_start, selected_origin]                  (only when they differ)
  up    : [selected_origin, *intermediate_stops, first_anchor]
  other : [first_anchor, *between_anchor_stops, last_anchor]  (≥ 2 anchors)
  home  : [last_anchor, *return_stops, return_to]

Unknown place ids are dropped; sequences shorter than two places are dropped.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from schemas.itinerary import LegKind
from schemas.trip import Scenario, Trip


@dataclass
class SegmentSpec:
    place_ids: list[str]
    kind: LegKind

    @property
    def cache_key(self) -> str:
        return ">".join(self.place_ids)


def resolve_return_to(scenario: Scenario) -> str:
    return scenario.return_to_place_id or scenario.selected_origin_place_id


def _stops_between(trip: Trip, stop_ids: list[str], start: str, end: str) -> list[str]:
    return [pid for pid in stop_ids if pid not in (start, end) and pid in trip.places_by_id]


def build_segment_specs(trip: Trip, scenario: Scenario) -> list[SegmentSpec]:
    actual_start = scenario.start_place_id
    origin = scenario.selected_origin_place_id
    return_to = resolve_return_to(scenario)

    specs: list[SegmentSpec] = []

    if actual_start and origin and actual_start != origin:
        specs.append(SegmentSpec([actual_start, origin], LegKind.up))

    anchors = [pid for pid in scenario.anchor_place_ids if pid not in (origin, return_to)]
    first_anchor: Optional[str] = anchors[0] if anchors else None
    last_anchor: Optional[str] = anchors[-1] if len(anchors) > 1 else None

    if first_anchor and origin and first_anchor != origin:
        stops = _stops_between(trip, scenario.intermediate_stop_place_ids, origin, first_anchor)
        specs.append(SegmentSpec([origin, *stops, first_anchor], LegKind.up))

    if first_anchor and last_anchor and first_anchor != last_anchor:
        stops = _stops_between(trip, scenario.between_anchor_stop_place_ids, first_anchor, last_anchor)
        specs.append(SegmentSpec([first_anchor, *stops, last_anchor], LegKind.other))

    if last_anchor and return_to and last_anchor != return_to:
        stops = _stops_between(trip, scenario.return_stop_place_ids, last_anchor, return_to)
        specs.append(SegmentSpec([last_anchor, *stops, return_to], LegKind.home))

    out: list[SegmentSpec] = []
    for spec in specs:
        ids = [pid for pid in spec.place_ids if pid in trip.places_by_id]
        if len(ids) >= 2:
            out.append(SegmentSpec(ids, spec.kind))
    return out


def build_place_order(trip: Trip, scenario: Scenario) -> list[str]:
    """Deduplicated marker order: start, origin, intermediates, anchors, return."""
    candidates = [
        scenario.start_place_id,
        scenario.selected_origin_place_id,
        *scenario.intermediate_stop_place_ids,
        *scenario.anchor_place_ids,
        resolve_return_to(scenario),
    ]
    seen: set[str] = set()
    ordered: list[str] = []
    for pid in candidates:
        if not pid or pid not in trip.places_by_id or pid in seen:
            continue
        seen.add(pid)
        ordered.append(pid)
    return ordered
