"""
modules/planning/base_location.py
----------------------------------
Where the traveler is at the start of every trip day.

Replays scheduled days in order from the scenario's physical start place.
Each day records the current place, then moves it to the destination of
every event on that day that arrives (dwells and final drive chunks; split
chunks that end at midnight do not). Read-only over the scheduler output,
so it must be re-run whenever the itinerary changes.
"""

from __future__ import annotations
from typing import Optional

from schemas.itinerary import DayItinerary
from schemas.trip import Scenario


def compute_base_place_by_day(
    days: list[DayItinerary],
    scenario: Scenario,
) -> dict[str, Optional[str]]:
    base_by_day: dict[str, Optional[str]] = {}
    current: Optional[str] = scenario.start_place_id or None

    for day in days:
        base_by_day[day.day_iso] = current
        for event in day.legs:
            if event.arrives_at_destination is not False:
                current = event.to_place_id

    return base_by_day
