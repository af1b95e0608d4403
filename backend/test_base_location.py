"""
test_base_location.py
──────────────────────────────────────────────────────────────────────────────
Base-location tracker: where the traveler wakes up each trip day.

Run:
    pytest backend/test_base_location.py
──────────────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from schemas.itinerary import DayTripRoute, LegKind, NormalizedLeg
from schemas.trip import Scenario, TripWindow
from modules.planning.base_location import compute_base_place_by_day
from modules.planning.scheduler import compute_itinerary

H = 3600


def _scenario(**kw) -> Scenario:
    return Scenario(id="s1", name="Test", selected_origin_place_id="colorado-bend", **kw)


def test_base_follows_arrivals_not_midnight_chunks():
    window = TripWindow("2026-01-10", "2026-01-19", start_time_hhmm="09:00")
    legs = [
        NormalizedLeg("colorado-bend", "annapolis", 28 * H, 0, kind=LegKind.up),
        NormalizedLeg("annapolis", "houston", 27 * H, 0, kind=LegKind.home),
    ]
    scenario = _scenario()
    result = compute_itinerary(window, scenario, legs)
    base = compute_base_place_by_day(result.days, scenario)

    assert list(base) == [d.day_iso for d in result.days]
    assert base["2026-01-10"] == "colorado-bend"
    assert base["2026-01-11"] == "colorado-bend", "the 10th only has a non-arriving chunk"
    assert base["2026-01-12"] == "annapolis"
    assert base["2026-01-18"] == "annapolis"
    assert base["2026-01-19"] == "annapolis", "the 18th's return chunk ends at midnight en route"


def test_base_starts_at_actual_start_place():
    scenario = _scenario(actual_start_place_id="houston")
    result = compute_itinerary(TripWindow("2026-01-10", "2026-01-11"), scenario, [])
    assert compute_base_place_by_day(result.days, scenario) == {
        "2026-01-10": "houston",
        "2026-01-11": "houston",
    }


def test_base_after_day_trip_is_its_end_place():
    window = TripWindow("2026-01-10", "2026-01-12", start_time_hhmm="08:00")
    scenario = _scenario()
    legs = [NormalizedLeg("colorado-bend", "lake-house", 2 * H, 0, kind=LegKind.up)]
    trip = DayTripRoute(
        legs=[
            NormalizedLeg("lake-house", "nyc", 3 * H, 0),
            NormalizedLeg("nyc", "lake-house", 3 * H, 0),
        ],
        dwell_minutes=60,
        destination_place_id="nyc",
    )
    result = compute_itinerary(window, scenario, legs, day_trips_by_iso={"2026-01-11": trip})
    base = compute_base_place_by_day(result.days, scenario)
    assert base["2026-01-11"] == "lake-house"
    assert base["2026-01-12"] == "lake-house"


def test_no_days_gives_empty_mapping():
    assert compute_base_place_by_day([], _scenario()) == {}
