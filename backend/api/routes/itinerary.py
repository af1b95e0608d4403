"""
api/routes/itinerary.py
------------------------
GET  /v1/itinerary/default-trip
POST /v1/itinerary/compute

/compute normalizes the posted trip document, routes the chosen scenario
(unless pre-routed legs are supplied), schedules it and returns the
day-by-day itinerary with base places and the latest allowed return
departure.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from schemas.itinerary import LegKind, NormalizedLeg
from modules.input.trip_loader import TripFormatError, normalize_trip, trip_to_dict
from modules.planning.default_trip import make_default_trip
from modules.tool_usage.route_cache import build_route_cache
from modules.tool_usage.routing_tool import RoutingError, RoutingTool
from modules.validation import TripValidationError
from main import run_pipeline

logger = logging.getLogger(__name__)

router = APIRouter()

_routing_tool: Optional[RoutingTool] = None


def get_routing_tool() -> RoutingTool:
    """Process-wide routing tool so the route cache outlives one request."""
    global _routing_tool
    if _routing_tool is None:
        _routing_tool = RoutingTool(cache=build_route_cache())
    return _routing_tool


# ── Request schemas ────────────────────────────────────────────────────────────

class LegIn(BaseModel):
    from_place_id:   str = Field(..., min_length=1)
    to_place_id:     str = Field(..., min_length=1)
    duration_sec:    float = Field(..., ge=0)
    distance_meters: float = Field(0.0, ge=0)
    start_address:   Optional[str] = None
    end_address:     Optional[str] = None
    kind:            Optional[LegKind] = None

    def to_leg(self) -> NormalizedLeg:
        return NormalizedLeg(
            from_place_id=self.from_place_id,
            to_place_id=self.to_place_id,
            duration_sec=self.duration_sec,
            distance_meters=self.distance_meters,
            start_address=self.start_address,
            end_address=self.end_address,
            kind=self.kind,
        )


class ComputeRequest(BaseModel):
    trip: dict[str, Any] = Field(..., description="Trip document (snake_case or legacy camelCase)")
    scenario_id: Optional[str] = Field(None, description="Default: the trip's active scenario")
    legs: Optional[list[LegIn]] = Field(None, description="Pre-routed main-route legs")
    include_day_trips: bool = True


# ── Endpoints ──────────────────────────────────────────────────────────────────

@router.get("/default-trip", summary="Built-in sample trip")
def default_trip() -> dict:
    return trip_to_dict(make_default_trip())


@router.post("/compute", summary="Compute a day-by-day itinerary")
def compute(req: ComputeRequest, routing_tool: RoutingTool = Depends(get_routing_tool)) -> dict:
    # ── Normalize ──────────────────────────────────────────────────────────
    try:
        trip = normalize_trip(req.trip)
    except TripFormatError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid trip: {exc}") from exc

    legs = [leg.to_leg() for leg in req.legs] if req.legs is not None else None

    # ── Run pipeline ───────────────────────────────────────────────────────
    try:
        outcome = run_pipeline(
            trip,
            scenario_id=req.scenario_id,
            routing_tool=routing_tool,
            legs=legs,
            include_day_trips=req.include_day_trips,
        )
    except TripValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.result.errors) from exc
    except TripFormatError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid trip: {exc}") from exc
    except RoutingError as exc:
        logger.warning("Routing failed for trip %s: %s", trip.id, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return outcome.to_dict()
