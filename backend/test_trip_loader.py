"""
test_trip_loader.py
──────────────────────────────────────────────────────────────────────────────
Normalization boundary: defaults, v1 → v2 migration, legacy camelCase
exports, JSON import/export, and malformed documents.

Run:
    pytest backend/test_trip_loader.py
──────────────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from datetime import date, datetime

import pytest

from schemas.trip import DayMode, DayTripPreset, PlaceTag
from modules.input.trip_loader import (
    CURRENT_SCHEMA_VERSION,
    TripFormatError,
    decode_trip_json,
    encode_trip_export,
    load_trip_file,
    make_export_filename,
    migrate_trip_dict,
    normalize_trip,
    trip_to_dict,
)
from modules.planning.default_trip import make_default_trip


def _legacy_v1_doc() -> dict:
    """Shape written by the old browser app (camelCase, no schema version)."""
    return {
        "id": "legacy",
        "title": "Old Trip",
        "startDateISO": "2026-01-10",
        "endDateISO": "2026-01-19",
        "placesById": {
            "h": {"id": "h", "name": "Houston, TX", "address": "Houston",
                  "location": {"lat": 29.76, "lng": -95.37}},
            "a": {"id": "a", "name": "Annapolis, MD", "address": "Annapolis",
                  "location": {"lat": 38.97, "lng": -76.49}, "tags": ["anchor", "mystery"]},
            "l": {"id": "l", "name": "Lake House", "location": {"lat": 39.59, "lng": -79.27}},
            "p": {"id": "p", "name": "PA Friends", "location": {"lat": 40.27, "lng": -76.88}},
        },
        "scenariosById": {
            "s1": {
                "id": "s1",
                "name": "Base",
                "selectedOriginPlaceId": "h",
                "intermediateStopPlaceIds": [],
                "postAnnapolisStopPlaceIds": ["p"],
                "anchorPlaceIds": ["a", "l"],
                "includeNYCDayTrip": False,
                "dayOverridesByISO": {
                    "2026-01-14": {"mode": "auto", "presetDayTrip": "PA"},
                    "2026-01-15": {"mode": "rest", "notes": "sleep in"},
                },
            },
        },
        "activeScenarioId": "s1",
    }


# ─────────────────────────────────────────────────────────────────────────────
# Migration + defaults
# ─────────────────────────────────────────────────────────────────────────────

def test_legacy_preset_day_trip_becomes_day_trip_with_default_dwell():
    trip = normalize_trip(_legacy_v1_doc())
    override = trip.scenarios_by_id["s1"].day_overrides_by_iso["2026-01-14"]
    assert override.day_trip is not None
    assert override.day_trip.preset == DayTripPreset.PA
    assert override.day_trip.dwell_minutes == 120
    assert trip.scenarios_by_id["s1"].day_overrides_by_iso["2026-01-15"].mode == DayMode.rest


def test_legacy_between_anchor_stops_are_renamed():
    scenario = normalize_trip(_legacy_v1_doc()).scenarios_by_id["s1"]
    assert scenario.between_anchor_stop_place_ids == ["p"]


def test_defaults_are_filled():
    trip = normalize_trip(_legacy_v1_doc())
    scenario = trip.scenarios_by_id["s1"]
    assert scenario.actual_start_place_id == "h"
    assert scenario.return_to_place_id == "h"
    assert scenario.return_stop_place_ids == []
    assert scenario.settings.buffer_minutes_per_stop == 20
    assert trip.window.start_time_hhmm == "08:00"
    assert trip.window.end_time_hhmm == "23:59"
    assert trip.window.return_depart_date_iso is None
    assert trip.places_by_id["a"].tags == (PlaceTag.anchor,), "unknown tags are dropped"
    assert trip.places_by_id["l"].address == ""


def test_migration_runs_once():
    once = migrate_trip_dict(_legacy_v1_doc())
    twice = migrate_trip_dict(once)
    assert once["schema_version"] == CURRENT_SCHEMA_VERSION
    assert once == twice
    assert "presetDayTrip" not in json.dumps(once)


def test_migration_does_not_mutate_input():
    raw = _legacy_v1_doc()
    migrate_trip_dict(raw)
    assert raw["scenariosById"]["s1"]["dayOverridesByISO"]["2026-01-14"] == {
        "mode": "auto", "presetDayTrip": "PA",
    }


def test_existing_day_trip_wins_over_legacy_preset():
    raw = _legacy_v1_doc()
    raw["scenariosById"]["s1"]["dayOverridesByISO"]["2026-01-14"]["dayTrip"] = {
        "preset": "CUSTOM", "dwellMinutes": 45, "destinationPlaceId": "a",
    }
    plan = normalize_trip(raw).scenarios_by_id["s1"].day_overrides_by_iso["2026-01-14"].day_trip
    assert plan.preset == DayTripPreset.CUSTOM
    assert plan.dwell_minutes == 45
    assert plan.destination_place_id == "a"


def test_default_trip_survives_dict_round_trip():
    trip = make_default_trip()
    assert normalize_trip(trip_to_dict(trip)) == trip


# ─────────────────────────────────────────────────────────────────────────────
# Malformed documents
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("mutate, match", [
    (lambda d: d.pop("scenariosById"), "no scenarios"),
    (lambda d: d.__setitem__("activeScenarioId", "nope"), "active_scenario_id"),
    (lambda d: d.__setitem__("schema_version", 99), "newer"),
    (lambda d: d.pop("startDateISO"), "start_date_iso"),
    (lambda d: d["scenariosById"]["s1"].pop("selectedOriginPlaceId"), "selected_origin_place_id"),
    (lambda d: d["scenariosById"]["s1"]["dayOverridesByISO"]["2026-01-15"].__setitem__("mode", "party"), "mode"),
    (lambda d: d["scenariosById"]["s1"]["dayOverridesByISO"]["2026-01-15"].__setitem__(
        "dwellBlocks", [{"id": "x", "placeId": "a", "minutes": "abc"}]), "dwell block 0 minutes"),
    (lambda d: d["scenariosById"]["s1"]["dayOverridesByISO"]["2026-01-15"].__setitem__(
        "dwellBlocks", ["lunch"]), "dwell block 0"),
    (lambda d: d["scenariosById"]["s1"]["dayOverridesByISO"]["2026-01-15"].__setitem__("dayTrip", "PA"), "day_trip"),
    (lambda d: d["scenariosById"]["s1"].__setitem__("dayOverridesByISO", ["2026-01-14"]), "day_overrides_by_iso"),
    (lambda d: d["scenariosById"]["s1"].__setitem__("settings", {"bufferMinutesPerStop": "soon"}), "buffer_minutes_per_stop"),
    (lambda d: d["scenariosById"]["s1"].__setitem__("settings", {"bufferMinutesPerStop": float("nan")}), "finite"),
    (lambda d: d["placesById"]["h"]["location"].__setitem__("lat", "north"), "Place h lat"),
    (lambda d: d["placesById"]["h"].__setitem__("location", [29.76, -95.37]), "Place h location"),
])
def test_malformed_documents_raise(mutate, match):
    raw = _legacy_v1_doc()
    mutate(raw)
    with pytest.raises(TripFormatError, match=match):
        normalize_trip(raw)


def test_missing_active_scenario_falls_back_to_first():
    raw = _legacy_v1_doc()
    raw.pop("activeScenarioId")
    assert normalize_trip(raw).active_scenario_id == "s1"


# ─────────────────────────────────────────────────────────────────────────────
# JSON import / export
# ─────────────────────────────────────────────────────────────────────────────

def test_decode_accepts_raw_and_wrapped_payloads():
    raw_text = json.dumps(_legacy_v1_doc())
    wrapped_text = json.dumps({"v": 1, "exportedAtISO": "2026-01-01T00:00:00Z", "trip": _legacy_v1_doc()})
    assert decode_trip_json(raw_text) == decode_trip_json(wrapped_text)


def test_decode_rejects_non_objects_and_bad_json():
    with pytest.raises(TripFormatError, match="expected an object"):
        decode_trip_json("[1, 2, 3]")
    with pytest.raises(TripFormatError, match="Invalid JSON"):
        decode_trip_json("{not json")


def test_export_wraps_trip_with_version_and_timestamp():
    trip = make_default_trip()
    text = encode_trip_export(trip, exported_at=datetime(2026, 1, 5, 12, 0))
    payload = json.loads(text)
    assert payload["v"] == 1
    assert payload["exported_at"] == "2026-01-05T12:00:00"
    assert payload["trip"]["schema_version"] == CURRENT_SCHEMA_VERSION
    assert decode_trip_json(text) == trip


def test_export_filename_is_slugified():
    trip = make_default_trip()
    assert make_export_filename(trip, today=date(2026, 1, 5)) == "maryland-trip-planner-2026-01-05.json"


def test_load_trip_file(tmp_path):
    path = tmp_path / "trip.json"
    path.write_text(encode_trip_export(make_default_trip()), encoding="utf-8")
    assert load_trip_file(path).title == "Maryland Trip Planner"
