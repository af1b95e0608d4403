"""
modules/planning/default_trip.py
---------------------------------
Built-in sample trip: Colorado Bend → Annapolis → Lake House → Houston over
10–19 January 2026, with two scenarios that differ only in where the route
begins. Used by the CLI demo, the /default-trip endpoint and the tests.

Place ids are fixed slugs so saved legs and overrides stay addressable
across runs.
"""

from __future__ import annotations

from schemas.trip import Place, PlaceTag, Scenario, ScenarioSettings, Trip, TripWindow

# ── Scenario ids ──────────────────────────────────────────────────────────────
BASE_SCENARIO_ID: str = "base-colorado-bend"
ALT_SCENARIO_ID:  str = "alt-houston-first"


def _default_places() -> list[Place]:
    return [
        Place("houston", "Houston, TX", "Houston, TX, USA", 29.7604, -95.3698),
        Place("colorado-bend", "Colorado Bend State Park", "Colorado Bend State Park, TX, USA",
              31.0087, -98.4891, (PlaceTag.park,)),
        Place("annapolis", "Annapolis, MD", "Annapolis, MD, USA",
              38.9784, -76.4922, (PlaceTag.anchor,)),
        # roughly Deep Creek Lake
        Place("lake-house", "Lake House", "Western Maryland (lake house address TBD)",
              39.5937, -79.2673, (PlaceTag.lodging, PlaceTag.anchor)),
        Place("nyc", "New York City", "New York, NY, USA",
              40.7128, -74.0060, (PlaceTag.attraction,)),
        # roughly Harrisburg
        Place("pa-friends", "PA Friends (placeholder)", "Pennsylvania (Sean & Sarah) address TBD",
              40.2737, -76.8844, (PlaceTag.friend,)),
        Place("hot-springs", "Hot Springs National Park", "Hot Springs National Park, AR, USA",
              34.5219, -93.0423, (PlaceTag.park,)),
        Place("nashville", "Nashville, TN", "Nashville, TN, USA",
              36.1627, -86.7816, (PlaceTag.attraction,)),
        Place("mammoth-cave", "Mammoth Cave National Park", "Mammoth Cave National Park, KY, USA",
              37.1860, -86.1005, (PlaceTag.park,)),
        Place("new-river-gorge", "New River Gorge National Park",
              "New River Gorge National Park & Preserve, WV, USA",
              38.0669, -81.0796, (PlaceTag.park,)),
        Place("shenandoah", "Shenandoah National Park", "Shenandoah National Park, VA, USA",
              38.5333, -78.4356, (PlaceTag.park,)),
    ]


def make_default_trip() -> Trip:
    places = _default_places()

    def _scenario(scenario_id: str, name: str, origin: str) -> Scenario:
        return Scenario(
            id=scenario_id,
            name=name,
            actual_start_place_id="colorado-bend",
            selected_origin_place_id=origin,
            return_to_place_id="houston",
            intermediate_stop_place_ids=["hot-springs", "nashville", "mammoth-cave"],
            anchor_place_ids=["annapolis", "lake-house"],
            settings=ScenarioSettings(buffer_minutes_per_stop=20),
        )

    scenarios = [
        _scenario(BASE_SCENARIO_ID, "Base Plan (Start: Colorado Bend)", "colorado-bend"),
        # physically starts at Colorado Bend; the route proper begins in Houston
        _scenario(ALT_SCENARIO_ID, "Alt Plan (Stop in Houston first)", "houston"),
    ]

    return Trip(
        id="maryland-trip",
        title="Maryland Trip Planner",
        window=TripWindow(
            start_date_iso="2026-01-10",
            end_date_iso="2026-01-19",
            start_time_hhmm="21:00",
            end_time_hhmm="23:59",
            return_depart_date_iso="2026-01-19",
            return_depart_time_hhmm="23:59",
        ),
        places_by_id={p.id: p for p in places},
        scenarios_by_id={s.id: s for s in scenarios},
        active_scenario_id=BASE_SCENARIO_ID,
    )
