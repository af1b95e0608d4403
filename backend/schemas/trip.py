"""
schemas/trip.py
---------------
Dataclass definitions for the planning inputs: places, the trip window,
scenarios and per-day overrides.

The scheduler only ever sees the latest (schema v2) shape of these objects.
Legacy saved shapes are migrated by modules/input/trip_loader.py first.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PlaceTag(str, Enum):
    lodging = "lodging"
    anchor = "anchor"
    attraction = "attraction"
    friend = "friend"
    park = "park"


class DayMode(str, Enum):
    auto = "auto"    # driving allowed
    rest = "rest"    # no new drive departures


class DayTripPreset(str, Enum):
    NYC = "NYC"
    PA = "PA"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class Place:
    """An identified point of interest. Looked up by id everywhere else."""
    id: str
    name: str
    address: str = ""
    lat: float = 0.0
    lng: float = 0.0
    tags: tuple[PlaceTag, ...] = ()


@dataclass
class TripWindow:
    """
    Calendar window of the trip.

    start_time_hhmm  : first possible departure on day 1 (also the daily start
                       time for day trips and leftover dwell blocks)
    end_time_hhmm    : hard arrival cutoff on the last day
    return_depart_*  : optional user-requested departure for the drive home;
                       clamped into the feasible window by the scheduler
    """
    start_date_iso: str
    end_date_iso: str
    start_time_hhmm: str = "08:00"
    end_time_hhmm: str = "23:59"
    return_depart_date_iso: Optional[str] = None
    return_depart_time_hhmm: Optional[str] = None


@dataclass
class DwellBlock:
    """Ad-hoc non-driving time pinned to a place on a given day."""
    id: str
    place_id: str
    minutes: float
    label: Optional[str] = None


@dataclass
class DayTripPlan:
    preset: DayTripPreset
    dwell_minutes: float
    destination_place_id: Optional[str] = None   # required when preset is CUSTOM
    start_place_id: Optional[str] = None         # default: base location that day
    end_place_id: Optional[str] = None           # default: start_place_id


@dataclass
class DayOverride:
    mode: DayMode = DayMode.auto
    base_place_id: Optional[str] = None
    notes: str = ""
    day_trip: Optional[DayTripPlan] = None
    dwell_blocks: list[DwellBlock] = field(default_factory=list)


@dataclass
class ScenarioSettings:
    buffer_minutes_per_stop: float = 20


@dataclass
class Scenario:
    """
    One full plan variant.

    Segments (see modules/planning/segments.py):
      up    : actual_start → selected_origin → intermediate stops → first anchor
      other : first anchor → between-anchor stops → last anchor
      home  : last anchor → return stops → return_to
    """
    id: str
    name: str
    selected_origin_place_id: str
    actual_start_place_id: Optional[str] = None
    return_to_place_id: Optional[str] = None
    intermediate_stop_place_ids: list[str] = field(default_factory=list)
    between_anchor_stop_place_ids: list[str] = field(default_factory=list)
    return_stop_place_ids: list[str] = field(default_factory=list)
    anchor_place_ids: list[str] = field(default_factory=list)
    settings: ScenarioSettings = field(default_factory=ScenarioSettings)
    day_overrides_by_iso: dict[str, DayOverride] = field(default_factory=dict)

    @property
    def start_place_id(self) -> str:
        """Physical start of the trip (may differ from the route origin)."""
        return self.actual_start_place_id or self.selected_origin_place_id

    def override_for(self, day_iso: str) -> Optional[DayOverride]:
        return self.day_overrides_by_iso.get(day_iso)


@dataclass
class Trip:
    id: str
    title: str
    window: TripWindow
    places_by_id: dict[str, Place] = field(default_factory=dict)
    scenarios_by_id: dict[str, Scenario] = field(default_factory=dict)
    active_scenario_id: str = ""

    def active_scenario(self) -> Scenario:
        scenario = self.scenarios_by_id.get(self.active_scenario_id)
        if scenario is not None:
            return scenario
        if not self.scenarios_by_id:
            raise ValueError("Trip has no scenarios")
        return next(iter(self.scenarios_by_id.values()))

    def place_name(self, place_id: str, default: str = "stop") -> str:
        place = self.places_by_id.get(place_id)
        return place.name if place else default
