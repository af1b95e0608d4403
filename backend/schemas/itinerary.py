"""
schemas/itinerary.py
--------------------
Dataclass definitions for routed legs and the scheduler's output.

Times are naive local wall-clock datetimes. A drive event never spans a
midnight: the scheduler splits it and files every chunk under the day it
starts on.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class LegKind(str, Enum):
    up = "up"          # outbound, scheduled as early as possible
    home = "home"      # return, scheduled to land as late as possible
    other = "other"    # between anchors / side trips


class EventType(str, Enum):
    drive = "drive"
    dwell = "dwell"


class DwellSourceType(str, Enum):
    day_trip = "dayTrip"
    dwell_block = "dwellBlock"
    implicit_arrival = "implicitArrival"


@dataclass(frozen=True)
class NormalizedLeg:
    """One routed leg between two place ids, constant input to scheduling."""
    from_place_id: str
    to_place_id: str
    duration_sec: float
    distance_meters: float
    start_address: Optional[str] = None
    end_address: Optional[str] = None
    kind: Optional[LegKind] = None

    def with_kind(self, kind: LegKind) -> "NormalizedLeg":
        return replace(self, kind=kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_place_id":   self.from_place_id,
            "to_place_id":     self.to_place_id,
            "duration_sec":    self.duration_sec,
            "distance_meters": self.distance_meters,
            "start_address":   self.start_address,
            "end_address":     self.end_address,
            "kind":            self.kind.value if self.kind else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NormalizedLeg":
        kind = data.get("kind")
        return cls(
            from_place_id=str(data["from_place_id"]),
            to_place_id=str(data["to_place_id"]),
            duration_sec=data.get("duration_sec") or 0,
            distance_meters=data.get("distance_meters") or 0,
            start_address=data.get("start_address"),
            end_address=data.get("end_address"),
            kind=LegKind(kind) if kind else None,
        )


@dataclass(frozen=True)
class DwellSource:
    type: DwellSourceType
    block_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value}
        if self.block_id is not None:
            out["block_id"] = self.block_id
        return out


@dataclass
class ScheduledLeg:
    """
    A single scheduled event: a drive chunk or a dwell block.

    Dwell events have from_place_id == to_place_id and carry a dwell_source.
    Only the final chunk of a midnight-split drive has
    arrives_at_destination=True.
    """
    from_place_id: str
    to_place_id: str
    duration_sec: int
    distance_meters: int
    depart_at: datetime
    arrive_at: datetime
    day_iso: str
    buffer_sec: int = 0
    kind: LegKind = LegKind.other
    arrives_at_destination: bool = True
    event_type: EventType = EventType.drive
    label: Optional[str] = None
    dwell_source: Optional[DwellSource] = None
    start_address: Optional[str] = None
    end_address: Optional[str] = None

    @property
    def depart_at_iso(self) -> str:
        return self.depart_at.isoformat()

    @property
    def arrive_at_iso(self) -> str:
        return self.arrive_at.isoformat()

    @property
    def is_dwell(self) -> bool:
        return self.event_type == EventType.dwell

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type":             self.event_type.value,
            "from_place_id":          self.from_place_id,
            "to_place_id":            self.to_place_id,
            "duration_sec":           self.duration_sec,
            "distance_meters":        self.distance_meters,
            "depart_at":              self.depart_at_iso,
            "arrive_at":              self.arrive_at_iso,
            "day_iso":                self.day_iso,
            "buffer_sec":             self.buffer_sec,
            "kind":                   self.kind.value,
            "arrives_at_destination": self.arrives_at_destination,
            "label":                  self.label,
            "dwell_source":           self.dwell_source.to_dict() if self.dwell_source else None,
        }


@dataclass
class DayItinerary:
    """One calendar day of the trip."""
    day_iso: str
    legs: list[ScheduledLeg] = field(default_factory=list)
    total_drive_sec: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def drive_events(self) -> list[ScheduledLeg]:
        return [ev for ev in self.legs if not ev.is_dwell]

    def to_dict(self) -> dict[str, Any]:
        return {
            "day_iso":         self.day_iso,
            "total_drive_sec": self.total_drive_sec,
            "warnings":        list(self.warnings),
            "legs":            [ev.to_dict() for ev in self.legs],
        }


@dataclass
class ItineraryResult:
    """Top-level output of the scheduler."""
    days: list[DayItinerary] = field(default_factory=list)
    spills_beyond_end_date: bool = False

    def day(self, day_iso: str) -> Optional[DayItinerary]:
        for d in self.days:
            if d.day_iso == day_iso:
                return d
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "spills_beyond_end_date": self.spills_beyond_end_date,
            "days": [d.to_dict() for d in self.days],
        }


@dataclass
class DayTripRoute:
    """A routed start → destination → end triangle for one calendar day."""
    legs: list[NormalizedLeg]
    dwell_minutes: float
    destination_place_id: str
