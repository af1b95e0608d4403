"""
modules/planning/timeline.py
-----------------------------
Day buckets and midnight-split drive placement shared by the scheduler and
the dwell / day-trip injection helpers.

Invariants kept here:
  - One bucket per calendar day, allocated up front; never created or removed.
  - A drive chunk never spans midnight; it is filed under the day it starts on.
  - Only the final chunk of a drive has arrives_at_destination=True and
    carries the post-arrival buffer.
  - Dwell events never add to a day's total_drive_sec.
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, Optional

from schemas.itinerary import DayItinerary, EventType, LegKind, NormalizedLeg, ScheduledLeg
from schemas.trip import DayMode, Scenario
from modules.planning.calendar_utils import day_iso_of, next_midnight

REST_DAY_SKIPPED_WARNING: str = "Marked as Rest/Explore day: no driving scheduled."
REST_DAY_SPANNED_WARNING: str = "This day is marked Rest/Explore but a nonstop drive spans into it."


def is_rest_day(scenario: Scenario, day_iso: str) -> bool:
    override = scenario.override_for(day_iso)
    return override is not None and override.mode == DayMode.rest


def seconds_from_minutes(minutes: Optional[float]) -> int:
    """Minutes → whole seconds, clamped at 0."""
    return max(0, int(round((minutes or 0) * 60)))


def scale_distance_meters(distance_meters: float, fraction: float) -> int:
    if not math.isfinite(distance_meters) or distance_meters <= 0:
        return 0
    return int(round(distance_meters * fraction))


class DayBuckets:
    """Fixed list of DayItinerary buckets addressable by day ISO string."""

    def __init__(self, day_isos: list[str]) -> None:
        self.days: list[DayItinerary] = [DayItinerary(day_iso=d) for d in day_isos]
        self._index: dict[str, int] = {d: i for i, d in enumerate(day_isos)}

    def __len__(self) -> int:
        return len(self.days)

    def __getitem__(self, idx: int) -> DayItinerary:
        return self.days[idx]

    def __iter__(self) -> Iterator[DayItinerary]:
        return iter(self.days)

    def index_of(self, day_iso: str) -> Optional[int]:
        return self._index.get(day_iso)

    def push(self, event: ScheduledLeg) -> bool:
        """Append *event* to its day. Returns False when the day is outside the window."""
        idx = self._index.get(event.day_iso)
        if idx is None:
            return False
        day = self.days[idx]
        day.legs.append(event)
        if event.event_type != EventType.dwell:
            day.total_drive_sec += max(0, event.duration_sec)
        return True

    def warn(self, day_iso: str, message: str) -> None:
        idx = self._index.get(day_iso)
        if idx is None:
            return
        warnings = self.days[idx].warnings
        if message not in warnings:
            warnings.append(message)

    def has_event_for_block(self, day_iso: str, block_id: str) -> bool:
        idx = self._index.get(day_iso)
        if idx is None:
            return False
        return any(
            ev.dwell_source is not None and ev.dwell_source.block_id == block_id
            for ev in self.days[idx].legs
        )


@dataclass
class LegPlacement:
    depart_after: datetime    # arrival + buffer
    arrive_at: datetime
    spills: bool


def schedule_leg_midnight_split(
    buckets: DayBuckets,
    scenario: Scenario,
    depart: datetime,
    leg: NormalizedLeg,
    buffer_sec: int,
    kind: LegKind,
) -> LegPlacement:
    """
    Place one nonstop drive starting at *depart*, splitting it at every
    midnight between departure and arrival.

    Distance is apportioned by each chunk's share of the drive time. A chunk
    landing on a rest day is still recorded (the car cannot stop mid-highway)
    but the day gets a warning. If a chunk falls outside the trip window the
    placement reports spills=True and stops.
    """
    total_sec = max(0, int(round(leg.duration_sec)))
    t_arrive = depart + timedelta(seconds=total_sec)

    remaining = total_sec
    current = depart
    while remaining > 0:
        chunk_end = min(next_midnight(current), t_arrive)
        chunk_sec = max(0, int(round((chunk_end - current).total_seconds())))
        is_final = chunk_end == t_arrive
        fraction = chunk_sec / total_sec if total_sec > 0 else 0.0

        day_iso = day_iso_of(current)
        chunk = ScheduledLeg(
            from_place_id=leg.from_place_id,
            to_place_id=leg.to_place_id,
            duration_sec=chunk_sec,
            distance_meters=scale_distance_meters(leg.distance_meters, fraction),
            depart_at=current,
            arrive_at=chunk_end,
            day_iso=day_iso,
            buffer_sec=buffer_sec if is_final else 0,
            kind=leg.kind or kind,
            arrives_at_destination=is_final,
            event_type=EventType.drive,
            start_address=leg.start_address,
            end_address=leg.end_address,
        )

        if is_rest_day(scenario, day_iso):
            buckets.warn(day_iso, REST_DAY_SPANNED_WARNING)

        if not buckets.push(chunk):
            return LegPlacement(depart_after=current, arrive_at=t_arrive, spills=True)

        remaining -= chunk_sec
        current = chunk_end

    return LegPlacement(
        depart_after=t_arrive + timedelta(seconds=buffer_sec),
        arrive_at=t_arrive,
        spills=False,
    )
