"""
modules/planning/calendar_utils.py
-----------------------------------
Pure date arithmetic on "YYYY-MM-DD" day strings and "HH:MM" times.

All datetimes are naive and represent local wall-clock time. Malformed input
is a precondition violation; callers validate upstream
(see modules/validation/trip_validator.py).
"""

from __future__ import annotations
from datetime import date, datetime, timedelta

FMT_DATE_ISO: str = "%Y-%m-%d"
FMT_HHMM:     str = "%H:%M"


def parse_date_iso(date_iso: str) -> datetime:
    """Parse "YYYY-MM-DD" as local midnight."""
    return datetime.strptime(date_iso, FMT_DATE_ISO)


def format_date_iso(d: date) -> str:
    """Format a date or datetime back to "YYYY-MM-DD"."""
    return d.strftime(FMT_DATE_ISO)


def add_days(date_iso: str, days: int) -> str:
    return format_date_iso(parse_date_iso(date_iso) + timedelta(days=days))


def diff_days_inclusive(start_iso: str, end_iso: str) -> int:
    """Number of calendar days in [start, end]; 0 when end precedes start."""
    delta = parse_date_iso(end_iso) - parse_date_iso(start_iso)
    return max(0, delta.days + 1)


def trip_days(start_iso: str, end_iso: str) -> list[str]:
    """Every day ISO string in the inclusive range, in order."""
    return [add_days(start_iso, i) for i in range(diff_days_inclusive(start_iso, end_iso))]


def parse_hhmm(time_hhmm: str) -> tuple[int, int]:
    hh, mm = time_hhmm.strip().split(":")[:2]
    return int(hh), int(mm)


def make_local_datetime(date_iso: str, time_hhmm: str) -> datetime:
    """Combine a day string and an "HH:MM" time into a local datetime."""
    hh, mm = parse_hhmm(time_hhmm)
    return parse_date_iso(date_iso).replace(hour=hh, minute=mm, second=0, microsecond=0)


def next_midnight(dt: datetime) -> datetime:
    """00:00 of the calendar day after *dt*."""
    return datetime(dt.year, dt.month, dt.day) + timedelta(days=1)


def day_iso_of(dt: datetime) -> str:
    """Calendar day a timestamp falls on."""
    return format_date_iso(dt)


# ── Display helpers ───────────────────────────────────────────────────────────

def format_time_short(dt: datetime) -> str:
    """e.g. "9:05 PM"."""
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def format_date_short(date_iso: str) -> str:
    """e.g. "Sat, Jan 10"."""
    d = parse_date_iso(date_iso)
    return f"{d.strftime('%a, %b')} {d.day}"


def format_duration(seconds: float) -> str:
    """e.g. 5400 → "1h 30m"."""
    total_min = int(round(max(0.0, seconds) / 60))
    hours, minutes = divmod(total_min, 60)
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"
