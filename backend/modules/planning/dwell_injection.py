"""
modules/planning/dwell_injection.py
------------------------------------
Non-driving time inserted into the day buckets.

Three sources, in the order the scheduler applies them:
  1. Arrival dwells   : after each leg arrives, the matching DwellBlocks
                        declared for that place on the arrival day, or one
                        implicit "Time at X" placeholder when none match.
  2. Day trips        : start → destination → end drives starting at the
                        trip's daily start time, with a dwell block at the
                        destination after the first leg.
  3. Leftover blocks  : DwellBlocks no arrival consumed, laid down back to
                        back from the day's start time.

Every dwell is filed under the day it starts on, so a stack of blocks that
runs past midnight continues in the next day's bucket (and is dropped past
the last day). Blocks whose place id is unknown (when a place table is
supplied) are ignored without a warning.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional

from schemas.itinerary import (
    DayTripRoute,
    DwellSource,
    DwellSourceType,
    EventType,
    LegKind,
    NormalizedLeg,
    ScheduledLeg,
)
from schemas.trip import DwellBlock, Place, Scenario, TripWindow
from modules.planning.calendar_utils import day_iso_of, make_local_datetime
from modules.planning.timeline import DayBuckets, schedule_leg_midnight_split, seconds_from_minutes


def _time_at_label(place_id: str, places_by_id: Optional[dict[str, Place]]) -> str:
    place = (places_by_id or {}).get(place_id)
    return f"Time at {place.name if place else 'stop'}"


def _make_dwell(
    place_id: str,
    start: datetime,
    seconds: int,
    day_iso: str,
    source: DwellSource,
    label: Optional[str],
) -> ScheduledLeg:
    return ScheduledLeg(
        from_place_id=place_id,
        to_place_id=place_id,
        duration_sec=seconds,
        distance_meters=0,
        depart_at=start,
        arrive_at=start + timedelta(seconds=seconds),
        day_iso=day_iso,
        buffer_sec=0,
        kind=LegKind.other,
        arrives_at_destination=True,
        event_type=EventType.dwell,
        label=label,
        dwell_source=source,
    )


# ── Arrival dwells ────────────────────────────────────────────────────────────

def insert_arrival_dwells(
    buckets: DayBuckets,
    scenario: Scenario,
    leg: NormalizedLeg,
    arrive_at: datetime,
    used_block_ids: set[str],
    implicit_dwell_sec: int,
    places_by_id: Optional[dict[str, Place]] = None,
) -> int:
    """
    Stack dwell events at leg.to_place_id starting at *arrive_at*.

    Zero-minute blocks are marked consumed but not scheduled; they still
    suppress the implicit placeholder. Returns the total dwell seconds.
    """
    arrive_day_iso = day_iso_of(arrive_at)
    override = scenario.override_for(arrive_day_iso)
    blocks: list[DwellBlock] = override.dwell_blocks if override else []

    dwell_total = 0
    matched_any = False
    for block in blocks:
        if block.id in used_block_ids or block.place_id != leg.to_place_id:
            continue
        used_block_ids.add(block.id)
        matched_any = True
        sec = seconds_from_minutes(block.minutes)
        if sec <= 0:
            continue
        start = arrive_at + timedelta(seconds=dwell_total)
        buckets.push(_make_dwell(
            place_id=block.place_id,
            start=start,
            seconds=sec,
            day_iso=day_iso_of(start),
            source=DwellSource(DwellSourceType.dwell_block, block_id=block.id),
            label=block.label,
        ))
        dwell_total += sec

    if not matched_any and implicit_dwell_sec > 0:
        buckets.push(_make_dwell(
            place_id=leg.to_place_id,
            start=arrive_at,
            seconds=implicit_dwell_sec,
            day_iso=arrive_day_iso,
            source=DwellSource(DwellSourceType.implicit_arrival),
            label=_time_at_label(leg.to_place_id, places_by_id),
        ))
        dwell_total += implicit_dwell_sec

    return dwell_total


# ── Day trips ─────────────────────────────────────────────────────────────────

def inject_day_trip(
    buckets: DayBuckets,
    scenario: Scenario,
    window: TripWindow,
    day_iso: str,
    route: DayTripRoute,
    buffer_sec: int,
    places_by_id: Optional[dict[str, Place]] = None,
) -> bool:
    """
    Schedule a day trip's drives from the trip's daily start time on *day_iso*
    and a dwell at the destination right after the first leg arrives.

    Returns True when any drive fell outside the trip window.
    """
    if buckets.index_of(day_iso) is None or not route.legs:
        return False

    spills = False
    depart = make_local_datetime(day_iso, window.start_time_hhmm)
    for i, leg in enumerate(route.legs):
        placement = schedule_leg_midnight_split(
            buckets, scenario, depart, leg, buffer_sec, LegKind.other,
        )
        spills = spills or placement.spills
        depart = placement.depart_after

        if i != 0:
            continue
        dwell_sec = seconds_from_minutes(route.dwell_minutes)
        if dwell_sec <= 0:
            continue
        # contiguous with the arrival: the buffer is absorbed by the dwell
        dwell_start = depart - timedelta(seconds=buffer_sec)
        buckets.push(_make_dwell(
            place_id=route.destination_place_id,
            start=dwell_start,
            seconds=dwell_sec,
            day_iso=day_iso_of(dwell_start),
            source=DwellSource(DwellSourceType.day_trip),
            label=_time_at_label(route.destination_place_id, places_by_id),
        ))
        depart = dwell_start + timedelta(seconds=dwell_sec)

    return spills


# ── Leftover blocks ───────────────────────────────────────────────────────────

def lay_down_leftover_blocks(
    buckets: DayBuckets,
    scenario: Scenario,
    window: TripWindow,
    used_block_ids: set[str],
    places_by_id: Optional[dict[str, Place]] = None,
) -> None:
    """Place every unconsumed DwellBlock sequentially from the day's start time."""
    for day_iso, override in scenario.day_overrides_by_iso.items():
        if not override.dwell_blocks or buckets.index_of(day_iso) is None:
            continue
        cursor = make_local_datetime(day_iso, window.start_time_hhmm)
        for block in override.dwell_blocks:
            if block.id in used_block_ids or buckets.has_event_for_block(day_iso, block.id):
                continue
            if places_by_id is not None and block.place_id not in places_by_id:
                continue
            sec = seconds_from_minutes(block.minutes)
            if sec <= 0:
                continue
            buckets.push(_make_dwell(
                place_id=block.place_id,
                start=cursor,
                seconds=sec,
                day_iso=day_iso_of(cursor),
                source=DwellSource(DwellSourceType.dwell_block, block_id=block.id),
                label=block.label or _time_at_label(block.place_id, places_by_id),
            ))
            cursor += timedelta(seconds=sec)
