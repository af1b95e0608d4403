"""
test_full_pipeline.py
──────────────────────────────────────────────────────────────────────────────
End-to-end run of the road-trip pipeline on the built-in Maryland trip with
the offline estimate provider (no network, in-memory route cache):

  PART 1: Segments + routing     (Stage 2)
  PART 2: Scheduling             (Stage 4)
  PART 3: Base places + return   (Stage 5)
  PART 4: Day trip override      (Stage 3)
  PART 5: CLI entry point

Run:
    pytest backend/test_full_pipeline.py
    python test_full_pipeline.py          # prints the itinerary with banners
──────────────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import sys
from datetime import datetime

from schemas.itinerary import DwellSourceType, LegKind
from schemas.trip import DayMode, DayOverride, DayTripPlan, DayTripPreset
from modules.input.trip_loader import decode_trip_json
from modules.planning.calendar_utils import next_midnight
from modules.planning.default_trip import ALT_SCENARIO_ID, BASE_SCENARIO_ID, make_default_trip
from modules.tool_usage.route_cache import InMemoryRouteCache
from modules.tool_usage.routing_tool import RoutingTool
from main import _print_itinerary, main, run_pipeline


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _banner(title: str) -> None:
    width = 70
    print("\n" + "═" * width)
    print(f"  {title}")
    print("═" * width)

def _ok(msg: str)   -> None: print(f"  ✓  {msg}")
def _info(msg: str) -> None: print(f"  ·  {msg}")


def _tool() -> RoutingTool:
    return RoutingTool(provider="estimate", cache=InMemoryRouteCache())


# ─────────────────────────────────────────────────────────────────────────────
# PART 1 + 2 + 3
# ─────────────────────────────────────────────────────────────────────────────

def test_default_trip_end_to_end():
    outcome = run_pipeline(make_default_trip(), routing_tool=_tool(), session_id="test_pipeline")
    result = outcome.result

    assert outcome.scenario.id == BASE_SCENARIO_ID
    assert [leg.kind for leg in outcome.legs] == [LegKind.up] * 4 + [LegKind.other, LegKind.home]
    assert [d.day_iso for d in result.days][0] == "2026-01-10"
    assert len(result.days) == 10
    assert not result.spills_beyond_end_date
    assert outcome.warnings == []

    # every routed second lands on exactly one day
    routed = sum(int(round(leg.duration_sec)) for leg in outcome.legs)
    assert sum(d.total_drive_sec for d in result.days) == routed

    # drive chunks never cross midnight
    for day in result.days:
        for ev in day.drive_events:
            assert ev.depart_at.strftime("%Y-%m-%d") == day.day_iso
            assert ev.arrive_at <= next_midnight(ev.depart_at)

    assert outcome.base_place_by_day["2026-01-10"] == "colorado-bend"
    assert outcome.latest_return_depart is not None

    # requested 23:59 departure is clamped so the drive home lands at the cutoff
    home = [ev for d in result.days for ev in d.drive_events if ev.kind == LegKind.home]
    assert home[0].depart_at == outcome.latest_return_depart
    assert home[-1].to_place_id == "houston"
    assert home[-1].arrive_at == datetime(2026, 1, 19, 23, 59)


def test_alt_scenario_routes_through_houston_first():
    outcome = run_pipeline(make_default_trip(), scenario_id=ALT_SCENARIO_ID, routing_tool=_tool())
    first = outcome.result.days[0].drive_events[0]
    assert (first.from_place_id, first.to_place_id) == ("colorado-bend", "houston")


def test_outcome_serializes_to_json():
    payload = run_pipeline(make_default_trip(), routing_tool=_tool()).to_dict()
    text = json.dumps(payload)
    assert payload["trip_id"] == "maryland-trip"
    assert payload["days"][0]["day_iso"] == "2026-01-10"
    assert payload["latest_return_depart"].startswith("2026-01-1")
    assert "dayTrip" not in text


def test_rest_day_pushes_outbound_past_it():
    trip = make_default_trip()
    trip.scenarios_by_id[BASE_SCENARIO_ID].day_overrides_by_iso["2026-01-10"] = DayOverride(mode=DayMode.rest)
    result = run_pipeline(trip, routing_tool=_tool()).result

    assert result.days[0].drive_events == []
    assert result.days[0].warnings
    assert result.days[1].drive_events[0].from_place_id == "colorado-bend"


# ─────────────────────────────────────────────────────────────────────────────
# PART 4: Day trip override
# ─────────────────────────────────────────────────────────────────────────────

def test_nyc_day_trip_from_lake_house():
    trip = make_default_trip()
    trip.scenarios_by_id[BASE_SCENARIO_ID].day_overrides_by_iso["2026-01-14"] = DayOverride(
        day_trip=DayTripPlan(DayTripPreset.NYC, 240),
    )
    outcome = run_pipeline(trip, routing_tool=_tool())

    dwells = [
        ev for d in outcome.result.days for ev in d.legs
        if ev.dwell_source is not None and ev.dwell_source.type == DwellSourceType.day_trip
    ]
    assert len(dwells) == 1
    assert dwells[0].to_place_id == "nyc"
    assert dwells[0].duration_sec == 240 * 60
    assert dwells[0].label == "Time at New York City"

    day_trip_drives = [
        ev for d in outcome.result.days for ev in d.drive_events
        if "nyc" in (ev.from_place_id, ev.to_place_id)
    ]
    assert day_trip_drives[0].from_place_id == "lake-house"
    assert day_trip_drives[-1].to_place_id == "lake-house"
    assert day_trip_drives[0].depart_at.strftime("%Y-%m-%d %H:%M") == "2026-01-14 21:00"


def test_day_trips_can_be_switched_off():
    trip = make_default_trip()
    trip.scenarios_by_id[BASE_SCENARIO_ID].day_overrides_by_iso["2026-01-14"] = DayOverride(
        day_trip=DayTripPlan(DayTripPreset.PA, 120),
    )
    outcome = run_pipeline(trip, routing_tool=_tool(), include_day_trips=False)
    assert not any(
        ev.dwell_source is not None and ev.dwell_source.type == DwellSourceType.day_trip
        for d in outcome.result.days for ev in d.legs
    )


# ─────────────────────────────────────────────────────────────────────────────
# PART 5: CLI
# ─────────────────────────────────────────────────────────────────────────────

def test_cli_prints_json(capsys):
    assert main(["--json", "--provider", "estimate"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["scenario_id"] == BASE_SCENARIO_ID


def test_cli_missing_trip_file_exits_2(tmp_path, capsys):
    assert main(["--trip", str(tmp_path / "nope.json")]) == 2
    assert "Invalid trip" in capsys.readouterr().err


def test_cli_unknown_scenario_exits_2(capsys):
    assert main(["--scenario", "nope", "--provider", "estimate"]) == 2


def test_cli_exports_the_trip(tmp_path, capsys):
    out_dir = tmp_path / "exports"
    assert main(["--json", "--provider", "estimate", "--no-day-trips", "--export-dir", str(out_dir)]) == 0
    capsys.readouterr()

    (path,) = out_dir.glob("*.json")
    assert path.name.startswith("maryland-trip-planner-")
    assert decode_trip_json(path.read_text(encoding="utf-8")) == make_default_trip()


# ─────────────────────────────────────────────────────────────────────────────
# Manual run
# ─────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    _banner("PART 1-3: Default trip, estimate provider")
    outcome = run_pipeline(make_default_trip(), routing_tool=_tool(), session_id="manual_pipeline")
    for leg in outcome.legs:
        _info(f"{leg.kind.value:>5}  {leg.from_place_id} → {leg.to_place_id}  "
              f"{leg.duration_sec / 3600:.1f} h  {leg.distance_meters / 1000:.0f} km")
    _print_itinerary(outcome)
    _ok(f"spills beyond end date: {outcome.result.spills_beyond_end_date}")

    _banner("PART 4: NYC day trip on 2026-01-14")
    trip = make_default_trip()
    trip.scenarios_by_id[BASE_SCENARIO_ID].day_overrides_by_iso["2026-01-14"] = DayOverride(
        day_trip=DayTripPlan(DayTripPreset.NYC, 240),
    )
    _print_itinerary(run_pipeline(trip, routing_tool=_tool(), session_id="manual_pipeline"))
    sys.exit(0)
