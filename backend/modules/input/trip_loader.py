"""
modules/input/trip_loader.py
-----------------------------
Normalization boundary between stored trip documents and the typed planning
dataclasses in schemas/trip.py.

Responsibilities:
  - Accept a raw trip object or a wrapped export {v, exported_at, trip}.
  - Read snake_case keys, falling back to the camelCase keys of older
    browser exports (startDateISO, dayOverridesByISO, ...).
  - Migrate older schema versions forward exactly once:
        v1 → v2: day override preset_day_trip → day_trip {preset, 120 min}
                 post_annapolis_stop_place_ids → between_anchor_stop_place_ids
  - Fill defaults: actual start / return-to → selected origin, empty
    collections, buffer minutes, day start/end times.
  - Encode trips back to plain dicts / JSON exports.

Malformed documents raise TripFormatError; everything downstream can assume
the latest shape.
"""

from __future__ import annotations
import copy
import json
import logging
import math
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

import config
from schemas.trip import (
    DayMode,
    DayOverride,
    DayTripPlan,
    DayTripPreset,
    DwellBlock,
    Place,
    PlaceTag,
    Scenario,
    ScenarioSettings,
    Trip,
    TripWindow,
)

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION: int = 2
EXPORT_VERSION: int = 1

_ACRONYM_TOKENS: dict[str, str] = {"iso": "ISO", "hhmm": "HHMM", "nyc": "NYC", "pa": "PA"}


class TripFormatError(ValueError):
    """Trip document cannot be normalized."""


# ── Key helpers ───────────────────────────────────────────────────────────────

def _camel(snake: str) -> str:
    head, *rest = snake.split("_")
    return head + "".join(_ACRONYM_TOKENS.get(t, t.capitalize()) for t in rest)


def _get(d: dict[str, Any], key: str, default: Any = None) -> Any:
    """Snake-case key first, then the camelCase spelling of older exports."""
    if key in d:
        return d[key]
    return d.get(_camel(key), default)


def _pop(d: dict[str, Any], key: str) -> Any:
    value = d.pop(key, None)
    camel = d.pop(_camel(key), None)
    return value if value is not None else camel


def _number(value: Any, where: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise TripFormatError(f"{where}: expected a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise TripFormatError(f"{where}: expected a finite number, got {value!r}")
    return number


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TripFormatError(f"{where}: expected an object, got {type(value).__name__}")
    return value


def _id_list(value: Any) -> list[str]:
    if not value:
        return []
    if not isinstance(value, list):
        raise TripFormatError(f"Expected a list of place ids, got {type(value).__name__}")
    return [str(v) for v in value if v]


# ── Migration ─────────────────────────────────────────────────────────────────

def _migrate_v1_scenario(scenario: dict[str, Any]) -> None:
    legacy_between = _pop(scenario, "post_annapolis_stop_place_ids")
    if legacy_between and not _get(scenario, "between_anchor_stop_place_ids"):
        scenario["between_anchor_stop_place_ids"] = legacy_between

    _pop(scenario, "include_nyc_day_trip")
    _pop(scenario, "include_pa_day_trip")

    overrides = _get(scenario, "day_overrides_by_iso") or {}
    if not isinstance(overrides, dict):
        return
    for override in overrides.values():
        if not isinstance(override, dict):
            continue
        preset = _pop(override, "preset_day_trip")
        if preset and not _get(override, "day_trip"):
            override["day_trip"] = {
                "preset": preset,
                "dwell_minutes": config.LEGACY_DAY_TRIP_DWELL_MINUTES,
            }


def migrate_trip_dict(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Return a deep copy of *raw* migrated to CURRENT_SCHEMA_VERSION.

    Documents without a version are treated as version 1. Documents already
    at the current version are returned unchanged (copied).
    """
    data = copy.deepcopy(raw)
    version = _get(data, "schema_version") or 1
    try:
        version = int(version)
    except (TypeError, ValueError) as exc:
        raise TripFormatError(f"Invalid schema_version {version!r}") from exc
    if version > CURRENT_SCHEMA_VERSION:
        raise TripFormatError(
            f"Trip schema_version {version} is newer than supported ({CURRENT_SCHEMA_VERSION})"
        )

    if version < 2:
        for scenario in (_get(data, "scenarios_by_id") or {}).values():
            if isinstance(scenario, dict):
                _migrate_v1_scenario(scenario)
        logger.info("Migrated trip %s from schema v%d to v2", _get(data, "id", "?"), version)

    data.pop("schemaVersion", None)
    data["schema_version"] = CURRENT_SCHEMA_VERSION
    return data


# ── Dict → dataclasses ───────────────────────────────────────────────────────

def _place(place_id: str, raw: Any) -> Place:
    if not isinstance(raw, dict):
        raise TripFormatError(f"Place {place_id}: expected an object")
    where = f"Place {place_id}"
    location = _mapping(raw.get("location"), f"{where} location")
    raw_tags = raw.get("tags") or []
    if not isinstance(raw_tags, list):
        raise TripFormatError(f"{where}: tags must be a list")
    known_tags = {t.value for t in PlaceTag}
    return Place(
        id=str(raw.get("id") or place_id),
        name=str(raw.get("name") or place_id),
        address=str(raw.get("address") or ""),
        lat=_number(location.get("lat", raw.get("lat", 0.0)), f"{where} lat"),
        lng=_number(location.get("lng", raw.get("lng", 0.0)), f"{where} lng"),
        tags=tuple(PlaceTag(t) for t in raw_tags if isinstance(t, str) and t in known_tags),
    )


def _day_trip(day_iso: str, raw: Any) -> Optional[DayTripPlan]:
    if not raw:
        return None
    raw = _mapping(raw, f"Day {day_iso} day_trip")
    try:
        preset = DayTripPreset(raw.get("preset"))
    except ValueError as exc:
        raise TripFormatError(f"Day {day_iso}: unknown day trip preset {raw.get('preset')!r}") from exc
    dwell = _get(raw, "dwell_minutes")
    return DayTripPlan(
        preset=preset,
        dwell_minutes=(
            _number(dwell, f"Day {day_iso} day_trip dwell_minutes")
            if dwell is not None else float(config.LEGACY_DAY_TRIP_DWELL_MINUTES)
        ),
        destination_place_id=_get(raw, "destination_place_id"),
        start_place_id=_get(raw, "start_place_id"),
        end_place_id=_get(raw, "end_place_id"),
    )


def _dwell_block(day_iso: str, i: int, raw: Any) -> DwellBlock:
    where = f"Day {day_iso} dwell block {i}"
    b = _mapping(raw, where)
    return DwellBlock(
        id=str(b.get("id") or f"{day_iso}-{i}"),
        place_id=str(_get(b, "place_id") or ""),
        minutes=_number(b.get("minutes") or 0, f"{where} minutes"),
        label=b.get("label"),
    )


def _override(day_iso: str, raw: Any) -> DayOverride:
    raw = _mapping(raw, f"Day {day_iso}")
    mode = raw.get("mode") or DayMode.auto.value
    try:
        mode = DayMode(mode)
    except ValueError as exc:
        raise TripFormatError(f"Day {day_iso}: unknown mode {mode!r}") from exc
    raw_blocks = _get(raw, "dwell_blocks") or []
    if not isinstance(raw_blocks, list):
        raise TripFormatError(f"Day {day_iso}: dwell_blocks must be a list")
    return DayOverride(
        mode=mode,
        base_place_id=_get(raw, "base_place_id"),
        notes=str(raw.get("notes") or ""),
        day_trip=_day_trip(day_iso, _get(raw, "day_trip")),
        dwell_blocks=[_dwell_block(day_iso, i, b) for i, b in enumerate(raw_blocks)],
    )


def _scenario(scenario_id: str, raw: Any) -> Scenario:
    if not isinstance(raw, dict):
        raise TripFormatError(f"Scenario {scenario_id}: expected an object")
    origin = _get(raw, "selected_origin_place_id")
    if not origin:
        raise TripFormatError(f"Scenario {scenario_id}: selected_origin_place_id is required")
    settings = _mapping(raw.get("settings"), f"Scenario {scenario_id} settings")
    buffer = _get(settings, "buffer_minutes_per_stop")
    overrides = _mapping(_get(raw, "day_overrides_by_iso"), f"Scenario {scenario_id} day_overrides_by_iso")
    return Scenario(
        id=str(raw.get("id") or scenario_id),
        name=str(raw.get("name") or scenario_id),
        selected_origin_place_id=str(origin),
        actual_start_place_id=_get(raw, "actual_start_place_id") or str(origin),
        return_to_place_id=_get(raw, "return_to_place_id") or str(origin),
        intermediate_stop_place_ids=_id_list(_get(raw, "intermediate_stop_place_ids")),
        between_anchor_stop_place_ids=_id_list(_get(raw, "between_anchor_stop_place_ids")),
        return_stop_place_ids=_id_list(_get(raw, "return_stop_place_ids")),
        anchor_place_ids=_id_list(_get(raw, "anchor_place_ids")),
        settings=ScenarioSettings(
            buffer_minutes_per_stop=(
                _number(buffer, f"Scenario {scenario_id} buffer_minutes_per_stop")
                if buffer is not None else config.DEFAULT_BUFFER_MINUTES_PER_STOP
            ),
        ),
        day_overrides_by_iso={
            str(day_iso): _override(str(day_iso), o) for day_iso, o in overrides.items()
        },
    )


def normalize_trip(raw: dict[str, Any]) -> Trip:
    """Migrate and normalize a plain trip dict into a Trip."""
    if not isinstance(raw, dict):
        raise TripFormatError("Invalid trip: expected an object")
    data = migrate_trip_dict(raw)

    start_date = _get(data, "start_date_iso")
    end_date = _get(data, "end_date_iso")
    if not start_date or not end_date:
        raise TripFormatError("Trip start_date_iso and end_date_iso are required")

    places_raw = _get(data, "places_by_id") or {}
    scenarios_raw = _get(data, "scenarios_by_id") or {}
    if not isinstance(places_raw, dict) or not isinstance(scenarios_raw, dict):
        raise TripFormatError("places_by_id and scenarios_by_id must be objects")
    if not scenarios_raw:
        raise TripFormatError("Trip has no scenarios")

    places = {str(pid): _place(str(pid), p) for pid, p in places_raw.items()}
    scenarios = {str(sid): _scenario(str(sid), s) for sid, s in scenarios_raw.items()}

    active = _get(data, "active_scenario_id")
    if not active:
        active = next(iter(scenarios))
    elif active not in scenarios:
        raise TripFormatError(f"active_scenario_id {active!r} does not name a scenario")

    return Trip(
        id=str(data.get("id") or "trip"),
        title=str(data.get("title") or "Trip"),
        window=TripWindow(
            start_date_iso=str(start_date),
            end_date_iso=str(end_date),
            start_time_hhmm=_get(data, "start_time_hhmm") or config.DEFAULT_DAY_START_HHMM,
            end_time_hhmm=_get(data, "end_time_hhmm") or config.DEFAULT_DAY_END_HHMM,
            return_depart_date_iso=_get(data, "return_depart_date_iso"),
            return_depart_time_hhmm=_get(data, "return_depart_time_hhmm"),
        ),
        places_by_id=places,
        scenarios_by_id=scenarios,
        active_scenario_id=str(active),
    )


# ── Dataclasses → dict ───────────────────────────────────────────────────────

def _override_to_dict(o: DayOverride) -> dict[str, Any]:
    out: dict[str, Any] = {"mode": o.mode.value}
    if o.base_place_id:
        out["base_place_id"] = o.base_place_id
    if o.notes:
        out["notes"] = o.notes
    if o.day_trip:
        out["day_trip"] = {
            "preset":               o.day_trip.preset.value,
            "dwell_minutes":        o.day_trip.dwell_minutes,
            "destination_place_id": o.day_trip.destination_place_id,
            "start_place_id":       o.day_trip.start_place_id,
            "end_place_id":         o.day_trip.end_place_id,
        }
    if o.dwell_blocks:
        out["dwell_blocks"] = [
            {"id": b.id, "place_id": b.place_id, "minutes": b.minutes, "label": b.label}
            for b in o.dwell_blocks
        ]
    return out


def trip_to_dict(trip: Trip) -> dict[str, Any]:
    w = trip.window
    return {
        "schema_version":          CURRENT_SCHEMA_VERSION,
        "id":                      trip.id,
        "title":                   trip.title,
        "start_date_iso":          w.start_date_iso,
        "end_date_iso":            w.end_date_iso,
        "start_time_hhmm":         w.start_time_hhmm,
        "end_time_hhmm":           w.end_time_hhmm,
        "return_depart_date_iso":  w.return_depart_date_iso,
        "return_depart_time_hhmm": w.return_depart_time_hhmm,
        "places_by_id": {
            pid: {
                "id":       p.id,
                "name":     p.name,
                "address":  p.address,
                "location": {"lat": p.lat, "lng": p.lng},
                "tags":     [t.value for t in p.tags],
            }
            for pid, p in trip.places_by_id.items()
        },
        "scenarios_by_id": {
            sid: {
                "id":                            s.id,
                "name":                          s.name,
                "selected_origin_place_id":      s.selected_origin_place_id,
                "actual_start_place_id":         s.actual_start_place_id,
                "return_to_place_id":            s.return_to_place_id,
                "intermediate_stop_place_ids":   list(s.intermediate_stop_place_ids),
                "between_anchor_stop_place_ids": list(s.between_anchor_stop_place_ids),
                "return_stop_place_ids":         list(s.return_stop_place_ids),
                "anchor_place_ids":              list(s.anchor_place_ids),
                "settings": {"buffer_minutes_per_stop": s.settings.buffer_minutes_per_stop},
                "day_overrides_by_iso": {
                    day_iso: _override_to_dict(o) for day_iso, o in s.day_overrides_by_iso.items()
                },
            }
            for sid, s in trip.scenarios_by_id.items()
        },
        "active_scenario_id": trip.active_scenario_id,
    }


# ── JSON import / export ─────────────────────────────────────────────────────

def decode_trip_json(text: str) -> Trip:
    """Parse a raw trip object or a wrapped export payload {v, trip, ...}."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TripFormatError(f"Invalid JSON: {exc.msg}") from exc
    if isinstance(parsed, dict) and isinstance(parsed.get("trip"), dict):
        parsed = parsed["trip"]
    if not isinstance(parsed, dict):
        raise TripFormatError("Invalid JSON: expected an object.")
    return normalize_trip(parsed)


def encode_trip_export(trip: Trip, exported_at: Optional[datetime] = None) -> str:
    payload = {
        "v":           EXPORT_VERSION,
        "exported_at": (exported_at or datetime.now()).isoformat(timespec="seconds"),
        "trip":        trip_to_dict(trip),
    }
    return json.dumps(payload, indent=2)


def make_export_filename(trip: Trip, today: Optional[date] = None) -> str:
    """Slugified title plus date, e.g. 'maryland-trip-planner-2026-01-05.json'."""
    slug = re.sub(r"[^a-z0-9]+", "-", (trip.title or "trip").lower()).strip("-")[:60]
    return f"{slug or 'trip'}-{(today or date.today()).isoformat()}.json"


def load_trip_file(path: str | Path) -> Trip:
    path = Path(path)
    logger.info("Loading trip from %s", path)
    return decode_trip_json(path.read_text(encoding="utf-8"))
