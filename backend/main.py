"""
main.py
--------
Road-trip planner pipeline entry point.
Orchestrates the stages of one itinerary computation:
  Stage 1: Validate the trip window and scenario references
  Stage 2: Route the scenario's segments (or accept pre-routed legs)
  Stage 3: Resolve and route day trips from a main-route-only pass
  Stage 4: Schedule the itinerary across the calendar window
  Stage 5: Track base places and the latest allowed return departure

Run:
  python main.py                                  # built-in sample trip
  python main.py --trip my_trip.json --scenario alt-houston-first
  python main.py --provider osrm --json
  python main.py --export-dir exports             # also save a dated trip export

Exit codes: 0 ok, 1 routing failure, 2 invalid trip document or failed export.
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
import time as _time_mod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import config

# ── Schemas ────────────────────────────────────────────────────────────────────
from schemas.itinerary import ItineraryResult, NormalizedLeg
from schemas.trip import Scenario, Trip

# ── Planning Module ────────────────────────────────────────────────────────────
from modules.planning.base_location import compute_base_place_by_day
from modules.planning.calendar_utils import format_date_short, format_duration, format_time_short
from modules.planning.day_trips import build_day_trip_routes
from modules.planning.default_trip import make_default_trip
from modules.planning.scheduler import ItineraryScheduler, latest_return_depart
from modules.planning.segments import build_place_order, build_segment_specs

# ── Tool-usage Module ──────────────────────────────────────────────────────────
from modules.tool_usage.route_cache import build_route_cache
from modules.tool_usage.routing_tool import RoutingError, RoutingTool

# ── Input / Validation / Observability ─────────────────────────────────────────
from modules.input.trip_loader import TripFormatError, encode_trip_export, load_trip_file, make_export_filename
from modules.observability.logger import StructuredLogger, configure_logging
from modules.validation import TripValidationError, validate_legs, validate_trip

logger = logging.getLogger(__name__)
_perf_logger = StructuredLogger()


@dataclass
class PipelineOutcome:
    """Everything one pipeline run produced."""
    trip: Trip
    scenario: Scenario
    legs: list[NormalizedLeg]
    result: ItineraryResult
    base_place_by_day: dict[str, Optional[str]] = field(default_factory=dict)
    latest_return_depart: Optional[datetime] = None
    place_order: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "trip_id":                self.trip.id,
            "scenario_id":            self.scenario.id,
            "spills_beyond_end_date": self.result.spills_beyond_end_date,
            "days":                   [d.to_dict() for d in self.result.days],
            "base_place_by_day":      dict(self.base_place_by_day),
            "latest_return_depart": (
                self.latest_return_depart.isoformat() if self.latest_return_depart else None
            ),
            "legs":                   [leg.to_dict() for leg in self.legs],
            "place_order":            list(self.place_order),
            "warnings":               list(self.warnings),
        }


def _select_scenario(trip: Trip, scenario_id: Optional[str]) -> Scenario:
    if not scenario_id:
        return trip.active_scenario()
    scenario = trip.scenarios_by_id.get(scenario_id)
    if scenario is None:
        raise TripFormatError(f"Unknown scenario {scenario_id!r}")
    return scenario


def run_pipeline(
    trip: Trip,
    scenario_id: Optional[str] = None,
    routing_tool: Optional[RoutingTool] = None,
    legs: Optional[list[NormalizedLeg]] = None,
    include_day_trips: bool = True,
    session_id: str = "default",
) -> PipelineOutcome:
    """
    End-to-end itinerary computation for one scenario of *trip*.

    When *legs* is given the main route is used verbatim and the routing
    provider is only consulted for day trips.

    Raises:
        TripFormatError:     scenario_id names no scenario.
        TripValidationError: the window or the legs are malformed.
        RoutingError:        the main route could not be routed.
    """
    _t0 = _time_mod.perf_counter()
    scenario = _select_scenario(trip, scenario_id)

    # ══════════════════════════════════════════════════════════════
    # STAGE 1: Validation
    # ══════════════════════════════════════════════════════════════
    validation = validate_trip(trip, scenario)
    if not validation.valid:
        raise TripValidationError(validation)
    for warning in validation.warnings:
        logger.warning("Trip %s: %s", trip.id, warning)

    # ══════════════════════════════════════════════════════════════
    # STAGE 2: Routing
    # ══════════════════════════════════════════════════════════════
    routing_tool = routing_tool or RoutingTool(cache=build_route_cache())
    routing_tool.bind_places(trip.places_by_id)
    if legs is None:
        specs = build_segment_specs(trip, scenario)
        with _perf_logger.timed(session_id, "RoutingTool.route_segments",
                                provider=routing_tool.provider, segments=len(specs)) as perf:
            legs = routing_tool.route_segments(trip, specs)
            perf["legs"] = len(legs)
    leg_check = validate_legs(legs)
    if not leg_check.valid:
        raise TripValidationError(leg_check)

    # ══════════════════════════════════════════════════════════════
    # STAGE 3: Day trips
    # ══════════════════════════════════════════════════════════════
    scheduler = ItineraryScheduler()
    day_trips = {}
    if include_day_trips:
        with _perf_logger.timed(session_id, "build_day_trip_routes") as perf:
            day_trips = build_day_trip_routes(trip, scenario, legs, routing_tool, scheduler)
            perf["day_trips"] = len(day_trips)

    # ══════════════════════════════════════════════════════════════
    # STAGE 4: Scheduling
    # ══════════════════════════════════════════════════════════════
    with _perf_logger.timed(session_id, "ItineraryScheduler.compute", legs=len(legs)):
        result = scheduler.compute(trip.window, scenario, legs, day_trips, trip.places_by_id)

    # ══════════════════════════════════════════════════════════════
    # STAGE 5: Base places + return clamp
    # ══════════════════════════════════════════════════════════════
    base_by_day = compute_base_place_by_day(result.days, scenario)
    latest = latest_return_depart(trip.window, legs, scenario.settings.buffer_minutes_per_stop)

    _perf_logger.log(session_id, "PIPELINE", {
        "trip_id":      trip.id,
        "scenario_id":  scenario.id,
        "days":         len(result.days),
        "drive_events": sum(len(d.drive_events) for d in result.days),
        "day_trips":    len(day_trips),
        "spills":       result.spills_beyond_end_date,
        "duration_ms":  round((_time_mod.perf_counter() - _t0) * 1000, 2),
    })
    if result.spills_beyond_end_date:
        logger.info("Scenario %s spills beyond %s", scenario.id, trip.window.end_date_iso)

    return PipelineOutcome(
        trip=trip,
        scenario=scenario,
        legs=legs,
        result=result,
        base_place_by_day=base_by_day,
        latest_return_depart=latest,
        place_order=build_place_order(trip, scenario),
        warnings=validation.warnings,
    )


# ═══════════════════════════════════════════════════════════════════════════
# FORMATTED ITINERARY PRINTER
# ═══════════════════════════════════════════════════════════════════════════

def _print_itinerary(outcome: PipelineOutcome) -> None:
    """Print a human-readable day-by-day schedule with drive and dwell times."""
    trip, result = outcome.trip, outcome.result
    width = 60
    print()
    print("═" * width)
    print(f"  {trip.title}  :  {outcome.scenario.name}  ({len(result.days)} day(s))")
    print("═" * width)

    for i, day in enumerate(result.days, start=1):
        base = outcome.base_place_by_day.get(day.day_iso)
        base_txt = f"  @ {trip.place_name(base)}" if base else ""
        drive_txt = f"  drive {format_duration(day.total_drive_sec)}" if day.total_drive_sec else ""
        print(f"\n  Day {i}  :  {format_date_short(day.day_iso)}{base_txt}{drive_txt}")
        print("  " + "─" * (width - 2))

        if not day.legs:
            print("    (nothing scheduled)")
        for ev in sorted(day.legs, key=lambda e: e.depart_at):
            time_block = f"{format_time_short(ev.depart_at):>8} – {format_time_short(ev.arrive_at):>8}"
            if ev.is_dwell:
                what = ev.label or f"Time at {trip.place_name(ev.to_place_id)}"
            else:
                what = f"{trip.place_name(ev.from_place_id)} → {trip.place_name(ev.to_place_id)}"
                if not ev.arrives_at_destination:
                    what += " (continues)"
            print(f"    {time_block}   {what}  ({format_duration(ev.duration_sec)})")
        for warning in day.warnings:
            print(f"    ⚠  {warning}")

    print()
    print("═" * width)
    if outcome.latest_return_depart:
        latest = outcome.latest_return_depart
        print(f"  Latest return departure : {format_date_short(latest.strftime('%Y-%m-%d'))} "
              f"{format_time_short(latest)}")
    print(f"  Spills beyond end date  : {'YES' if result.spills_beyond_end_date else 'no'}")
    print("═" * width)
    print()


def _export_trip(trip: Trip, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / make_export_filename(trip)
    path.write_text(encode_trip_export(trip), encoding="utf-8")
    return path


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute a day-by-day road-trip itinerary.")
    parser.add_argument("--trip", help="Trip JSON file (raw trip or export). Default: built-in sample.")
    parser.add_argument("--scenario", help="Scenario id. Default: the trip's active scenario.")
    parser.add_argument("--provider", choices=["estimate", "osrm"], default=None,
                        help=f"Routing provider (default: {config.ROUTING_PROVIDER}).")
    parser.add_argument("--no-day-trips", action="store_true", help="Skip day-trip routing.")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON.")
    parser.add_argument("--export-dir", help="Also write the trip as a dated JSON export into this directory.")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    configure_logging()

    try:
        trip = load_trip_file(args.trip) if args.trip else make_default_trip()
        outcome = run_pipeline(
            trip,
            scenario_id=args.scenario,
            routing_tool=RoutingTool(provider=args.provider, cache=build_route_cache()),
            include_day_trips=not args.no_day_trips,
        )
    except (TripFormatError, TripValidationError, OSError) as exc:
        print(f"Invalid trip: {exc}", file=sys.stderr)
        return 2
    except RoutingError as exc:
        print(f"Routing failed: {exc}", file=sys.stderr)
        return 1

    if args.export_dir:
        try:
            path = _export_trip(trip, Path(args.export_dir))
        except OSError as exc:
            print(f"Export failed: {exc}", file=sys.stderr)
            return 2
        logger.info("Exported trip to %s", path)

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2))
    else:
        _print_itinerary(outcome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
