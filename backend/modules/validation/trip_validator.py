"""
modules/validation/trip_validator.py
-------------------------------------
Upstream guards applied before a trip reaches the scheduler, which assumes
well-formed input and silently ignores dangling references.

  Trip window (fatal):
    ✓ start/end dates are valid YYYY-MM-DD
    ✓ end date not before start date
    ✓ start/end times are valid HH:MM
    ✓ return departure date and time given together, both well formed

  Routed legs (fatal):
    ✓ non-empty from/to place ids
    ✓ duration_sec finite and >= 0
    ✓ distance_meters finite and >= 0

  Scenario references (warnings only):
    ✓ origin, start, return-to, stops and anchors name known places
    ✓ dwell blocks, day trips and base places name known places
    ✓ day overrides fall inside the trip window

Usage:
    from modules.validation import validate_trip

    result = validate_trip(trip, scenario, legs)
    if not result.valid:
        print(result.errors)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from schemas.itinerary import NormalizedLeg
from schemas.trip import DayTripPreset, Scenario, Trip, TripWindow
from modules.planning.calendar_utils import FMT_DATE_ISO, FMT_HHMM

logger = logging.getLogger(__name__)


# ── Result dataclass ───────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    """
    Outcome of a single validation run.

    Attributes:
        valid:    True iff there are zero errors.
        errors:   Fatal problems; the itinerary must not be computed.
        warnings: Non-fatal problems (dangling references the scheduler skips).
        record:   The input record dict (for logging purposes).
    """
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    record: dict = field(default_factory=dict, repr=False)

    def __bool__(self) -> bool:
        return self.valid

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        return ValidationResult(
            valid=self.valid and other.valid,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
            record=self.record or other.record,
        )


class TripValidationError(ValueError):
    """Raised by callers that refuse to schedule an invalid trip."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("ERROR_TRIP_INVALID: " + "; ".join(result.errors))
        self.result = result


def _result(errors: list[str], warnings: Optional[list[str]] = None, record: Optional[dict] = None) -> ValidationResult:
    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings or [],
        record=record or {},
    )


def _is_date(value: Optional[str]) -> bool:
    try:
        datetime.strptime(str(value), FMT_DATE_ISO)
    except (TypeError, ValueError):
        return False
    return True


def _is_hhmm(value: Optional[str]) -> bool:
    try:
        datetime.strptime(str(value), FMT_HHMM)
    except (TypeError, ValueError):
        return False
    return True


# ── Trip window ────────────────────────────────────────────────────────────────

def validate_trip_window(window: TripWindow) -> ValidationResult:
    errors: list[str] = []

    # ── Dates ──────────────────────────────────────────────────────────────
    dates_ok = True
    for name in ("start_date_iso", "end_date_iso"):
        value = getattr(window, name)
        if not _is_date(value):
            errors.append(f"{name}={value!r} is not a valid YYYY-MM-DD date")
            dates_ok = False
    if dates_ok and window.end_date_iso < window.start_date_iso:
        errors.append(
            f"end_date_iso={window.end_date_iso} is before start_date_iso={window.start_date_iso}"
        )

    # ── Times ──────────────────────────────────────────────────────────────
    for name in ("start_time_hhmm", "end_time_hhmm"):
        value = getattr(window, name)
        if not _is_hhmm(value):
            errors.append(f"{name}={value!r} is not a valid HH:MM time")

    # ── Return departure ───────────────────────────────────────────────────
    rd, rt = window.return_depart_date_iso, window.return_depart_time_hhmm
    if bool(rd) != bool(rt):
        errors.append("return_depart_date_iso and return_depart_time_hhmm must be given together")
    elif rd and rt:
        if not _is_date(rd):
            errors.append(f"return_depart_date_iso={rd!r} is not a valid YYYY-MM-DD date")
        if not _is_hhmm(rt):
            errors.append(f"return_depart_time_hhmm={rt!r} is not a valid HH:MM time")

    return _result(errors, record=dict(window.__dict__))


# ── Legs ───────────────────────────────────────────────────────────────────────

def validate_leg(record: dict[str, Any]) -> ValidationResult:
    """Validate one leg dict (NormalizedLeg.to_dict() shape)."""
    errors: list[str] = []

    for name in ("from_place_id", "to_place_id"):
        if not record.get(name):
            errors.append(f"{name} must not be empty")

    for name in ("duration_sec", "distance_meters"):
        value = record.get(name)
        try:
            v = float(value)
        except (TypeError, ValueError):
            errors.append(f"{name}={value!r} must be numeric")
            continue
        if not math.isfinite(v) or v < 0:
            errors.append(f"{name}={v} must be finite and >= 0")

    return _result(errors, record=record)


def validate_legs(legs: list[NormalizedLeg]) -> ValidationResult:
    errors: list[str] = []
    for i, leg in enumerate(legs):
        res = validate_leg(leg.to_dict())
        errors.extend(f"legs[{i}]: {e}" for e in res.errors)
    return _result(errors)


# ── Scenario references ────────────────────────────────────────────────────────

def validate_scenario_references(trip: Trip, scenario: Scenario) -> ValidationResult:
    """Dangling references never block scheduling; they are reported as warnings."""
    warnings: list[str] = []
    known = trip.places_by_id

    def _check(pid: Optional[str], where: str) -> None:
        if pid and pid not in known:
            warnings.append(f"{where} references unknown place {pid!r}")

    _check(scenario.selected_origin_place_id, "selected_origin_place_id")
    _check(scenario.actual_start_place_id, "actual_start_place_id")
    _check(scenario.return_to_place_id, "return_to_place_id")
    for name in (
        "intermediate_stop_place_ids",
        "between_anchor_stop_place_ids",
        "return_stop_place_ids",
        "anchor_place_ids",
    ):
        for pid in getattr(scenario, name):
            _check(pid, name)

    window = trip.window
    for day_iso, override in scenario.day_overrides_by_iso.items():
        if _is_date(window.start_date_iso) and _is_date(window.end_date_iso):
            if not (window.start_date_iso <= day_iso <= window.end_date_iso):
                warnings.append(f"day override {day_iso} is outside the trip window")
        _check(override.base_place_id, f"{day_iso} base_place_id")
        for block in override.dwell_blocks:
            _check(block.place_id, f"{day_iso} dwell block {block.id}")
        plan = override.day_trip
        if plan is None:
            continue
        if plan.preset == DayTripPreset.CUSTOM and not plan.destination_place_id:
            warnings.append(f"{day_iso} custom day trip has no destination")
        _check(plan.destination_place_id, f"{day_iso} day trip destination")
        _check(plan.start_place_id, f"{day_iso} day trip start")
        _check(plan.end_place_id, f"{day_iso} day trip end")

    return _result([], warnings)


# ── Combined ───────────────────────────────────────────────────────────────────

def validate_trip(
    trip: Trip,
    scenario: Optional[Scenario] = None,
    legs: Optional[list[NormalizedLeg]] = None,
) -> ValidationResult:
    result = validate_trip_window(trip.window)
    if scenario is not None:
        result = result.merge(validate_scenario_references(trip, scenario))
    if legs is not None:
        result = result.merge(validate_legs(legs))
    return result
