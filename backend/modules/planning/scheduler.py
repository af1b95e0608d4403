"""
modules/planning/scheduler.py
------------------------------
Itinerary scheduler: lays routed legs out across the fixed calendar window.

Algorithm (compute_itinerary):
  1. Allocate one DayItinerary per day in [start_date, end_date]. With no
     legs, attach the "no route yet" note to day 0 and stop.
  2. buffer_sec = buffer_minutes_per_stop × 60, applied after every arrival.
  3. Partition legs: kind != home → outbound set, kind == home → return set.
  4. Outbound: forward-schedule as early as possible from day 0 at the daily
     start time (rest days skipped, drives split at midnight, dwell stacked
     after each arrival).
  5. Return: depart at
         max(outbound end, min(requested return depart, latest safe start))
     where latest safe start = end-date cutoff − return drive − inter-leg
     buffers. Departing later than the latest safe start is a spill.
  6. Inject day trips (drive → dwell → drive) on their calendar days.
  7. Lay down leftover dwell blocks from each day's start time.
  8. Any spill adds a summary warning to the final day.

The scheduler never raises for well-typed input: infeasibility is reported
through ItineraryResult.spills_beyond_end_date and per-day warnings. It
performs no I/O and shares no state between calls.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Mapping, Optional

import config
from schemas.itinerary import DayTripRoute, ItineraryResult, LegKind, NormalizedLeg
from schemas.trip import Place, Scenario, TripWindow
from modules.planning.calendar_utils import day_iso_of, make_local_datetime, trip_days
from modules.planning.dwell_injection import (
    inject_day_trip,
    insert_arrival_dwells,
    lay_down_leftover_blocks,
)
from modules.planning.timeline import (
    REST_DAY_SKIPPED_WARNING,
    DayBuckets,
    is_rest_day,
    schedule_leg_midnight_split,
    seconds_from_minutes,
)

NO_ROUTE_WARNING: str = "No route yet. Add an origin + destination (anchors) to compute drive times."
SPILL_WARNING: str = (
    "Schedule likely spills beyond the trip end date: the drive time does not "
    "fit before the end-date cutoff."
)

_SECONDS_PER_DAY: int = 24 * 3600


@dataclass
class ForwardResult:
    end_day_idx: int
    end_depart_after: datetime
    spills: bool
    last_arrive_at: Optional[datetime] = None


def _total_drive_sec(legs: Iterable[NormalizedLeg]) -> int:
    return sum(max(0, int(round(leg.duration_sec))) for leg in legs)


def compute_latest_return_start(
    window: TripWindow,
    return_legs: list[NormalizedLeg],
    buffer_sec: int,
) -> datetime:
    """
    Latest departure that still lands by the end-date cutoff.

    Buffers apply between return legs only; nothing follows the last one.
    """
    cutoff = make_local_datetime(window.end_date_iso, window.end_time_hhmm)
    inter_leg_buffers = max(0, len(return_legs) - 1) * buffer_sec
    return cutoff - timedelta(seconds=_total_drive_sec(return_legs) + inter_leg_buffers)


def latest_return_depart(
    window: TripWindow,
    legs: list[NormalizedLeg],
    buffer_minutes_per_stop: float,
) -> Optional[datetime]:
    """Latest allowed return departure for a routed trip, or None without home legs."""
    home_legs = [leg for leg in legs if leg.kind == LegKind.home]
    if not home_legs:
        return None
    return compute_latest_return_start(window, home_legs, seconds_from_minutes(buffer_minutes_per_stop))


def compute_earliest_return_start_day_idx(
    buckets: DayBuckets,
    scenario: Scenario,
    return_legs: list[NormalizedLeg],
) -> int:
    """
    Earliest day the return could start on and still fit nonstop: walk back
    from the last day by the number of calendar days the drive can span,
    then further back past rest days.
    """
    total_sec = _total_drive_sec(return_legs)
    if total_sec <= 0:
        return len(buckets) - 1
    span_days = max(1, math.ceil(total_sec / _SECONDS_PER_DAY))
    start_idx = max(0, len(buckets) - span_days)
    while start_idx > 0 and is_rest_day(scenario, buckets[start_idx].day_iso):
        start_idx -= 1
    return start_idx


class ItineraryScheduler:
    """
    Stateless itinerary scheduler. One instance can serve any number of
    calls; every call allocates fresh output.
    """

    def __init__(self, implicit_dwell_minutes: float | None = None) -> None:
        minutes = config.IMPLICIT_DWELL_MINUTES if implicit_dwell_minutes is None else implicit_dwell_minutes
        self.implicit_dwell_sec: int = seconds_from_minutes(minutes)

    # ── Public entry point ────────────────────────────────────────────────────

    def compute(
        self,
        window: TripWindow,
        scenario: Scenario,
        legs: list[NormalizedLeg],
        day_trips_by_iso: Optional[Mapping[str, DayTripRoute]] = None,
        places_by_id: Optional[dict[str, Place]] = None,
    ) -> ItineraryResult:
        buckets = DayBuckets(trip_days(window.start_date_iso, window.end_date_iso))

        if not legs:
            if len(buckets):
                buckets.warn(buckets[0].day_iso, NO_ROUTE_WARNING)
            return ItineraryResult(days=buckets.days, spills_beyond_end_date=False)
        if not len(buckets):
            return ItineraryResult(days=[], spills_beyond_end_date=True)

        buffer_sec = seconds_from_minutes(scenario.settings.buffer_minutes_per_stop)
        used_block_ids: set[str] = set()
        spills = False

        outbound_legs = [leg for leg in legs if leg.kind != LegKind.home]
        return_legs   = [leg for leg in legs if leg.kind == LegKind.home]

        # ── Outbound: as early as possible ───────────────────────────────────
        outbound = self._schedule_legs_forward(
            buckets=buckets,
            window=window,
            scenario=scenario,
            start_day_idx=0,
            start_depart=None,
            legs=outbound_legs,
            buffer_sec=buffer_sec,
            kind=LegKind.up,
            used_block_ids=used_block_ids,
            places_by_id=places_by_id,
        )
        spills = spills or outbound.spills

        # ── Return: as late as possible, clamped into the feasible window ─────
        last_idx = len(buckets) - 1
        earliest_day_idx = compute_earliest_return_start_day_idx(buckets, scenario, return_legs)
        return_start_day_idx = min(max(outbound.end_day_idx, earliest_day_idx), last_idx)

        latest_start = compute_latest_return_start(window, return_legs, buffer_sec)
        requested = self._requested_return_depart(window, latest_start)
        actual_depart = max(outbound.end_depart_after, min(requested, latest_start))
        if actual_depart > latest_start:
            spills = True

        depart_day_idx = buckets.index_of(day_iso_of(actual_depart))
        ret = self._schedule_legs_forward(
            buckets=buckets,
            window=window,
            scenario=scenario,
            start_day_idx=depart_day_idx if depart_day_idx is not None else return_start_day_idx,
            start_depart=actual_depart,
            legs=return_legs,
            buffer_sec=buffer_sec,
            kind=LegKind.home,
            used_block_ids=used_block_ids,
            places_by_id=places_by_id,
        )
        spills = spills or ret.spills
        # rest days skipped on the way home can still push the arrival past the cutoff
        cutoff = make_local_datetime(window.end_date_iso, window.end_time_hhmm)
        if ret.last_arrive_at is not None and ret.last_arrive_at > cutoff:
            spills = True

        # ── Day trips ────────────────────────────────────────────────────────
        for day_iso, route in (day_trips_by_iso or {}).items():
            if inject_day_trip(buckets, scenario, window, day_iso, route, buffer_sec, places_by_id):
                spills = True

        # ── Leftover dwell blocks ────────────────────────────────────────────
        lay_down_leftover_blocks(buckets, scenario, window, used_block_ids, places_by_id)

        if spills:
            buckets.warn(buckets[last_idx].day_iso, SPILL_WARNING)

        return ItineraryResult(days=buckets.days, spills_beyond_end_date=spills)

    # ── Forward scheduling ────────────────────────────────────────────────────

    def _schedule_legs_forward(
        self,
        buckets: DayBuckets,
        window: TripWindow,
        scenario: Scenario,
        start_day_idx: int,
        start_depart: Optional[datetime],
        legs: list[NormalizedLeg],
        buffer_sec: int,
        kind: LegKind,
        used_block_ids: set[str],
        places_by_id: Optional[dict[str, Place]],
    ) -> ForwardResult:
        """
        Schedule *legs* in order from a (day index, departure) cursor.

        Before each leg the cursor skips rest days (warning each one); running
        out of days is a spill. The final leg of the return set ends the trip,
        so it gets no dwell at its destination.
        """
        day_idx = min(max(0, start_day_idx), len(buckets) - 1)
        depart = start_depart or make_local_datetime(buckets[day_idx].day_iso, window.start_time_hhmm)
        last_arrive_at: Optional[datetime] = None

        for leg_idx, leg in enumerate(legs):
            # skip rest days
            while is_rest_day(scenario, buckets[day_idx].day_iso):
                buckets.warn(buckets[day_idx].day_iso, REST_DAY_SKIPPED_WARNING)
                if day_idx >= len(buckets) - 1:
                    return ForwardResult(end_day_idx=day_idx, end_depart_after=depart, spills=True)
                day_idx += 1
                depart = make_local_datetime(buckets[day_idx].day_iso, window.start_time_hhmm)

            placement = schedule_leg_midnight_split(buckets, scenario, depart, leg, buffer_sec, kind)
            if placement.spills:
                return ForwardResult(end_day_idx=day_idx, end_depart_after=depart, spills=True)
            last_arrive_at = placement.arrive_at

            is_terminal_return = kind == LegKind.home and leg_idx == len(legs) - 1
            if is_terminal_return:
                depart = placement.depart_after
            else:
                dwell_sec = insert_arrival_dwells(
                    buckets,
                    scenario,
                    leg,
                    placement.arrive_at,
                    used_block_ids,
                    self.implicit_dwell_sec,
                    places_by_id,
                )
                depart = placement.arrive_at + timedelta(seconds=dwell_sec + buffer_sec)

            next_idx = buckets.index_of(day_iso_of(depart))
            if next_idx is not None:
                day_idx = max(day_idx, next_idx)

        return ForwardResult(
            end_day_idx=day_idx,
            end_depart_after=depart,
            spills=False,
            last_arrive_at=last_arrive_at,
        )

    @staticmethod
    def _requested_return_depart(window: TripWindow, latest_start: datetime) -> datetime:
        if window.return_depart_date_iso and window.return_depart_time_hhmm:
            return make_local_datetime(window.return_depart_date_iso, window.return_depart_time_hhmm)
        return latest_start


def compute_itinerary(
    window: TripWindow,
    scenario: Scenario,
    legs: list[NormalizedLeg],
    day_trips_by_iso: Optional[Mapping[str, DayTripRoute]] = None,
    places_by_id: Optional[dict[str, Place]] = None,
) -> ItineraryResult:
    """Module-level convenience wrapper around ItineraryScheduler.compute()."""
    return ItineraryScheduler().compute(window, scenario, legs, day_trips_by_iso, places_by_id)
