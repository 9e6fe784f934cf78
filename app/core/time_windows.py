"""Clock-time windows used by rule conditions and business hours."""

from datetime import datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` string.

    Raises ``ValueError`` for anything else (including ``None`` or
    out-of-range hours/minutes).
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected HH:MM string, got {value!r}")
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Expected HH:MM string, got {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    return time(hour=hours, minute=minutes)


def is_within_window(start: time, end: time, moment: time) -> bool:
    """Return ``True`` if *moment* falls in the half-open window ``[start, end)``.

    ``end < start`` wraps past midnight (22:00–06:00).  ``start == end``
    covers the whole day.
    """
    if start == end:
        return True
    if start < end:
        return start <= moment < end
    return moment >= start or moment < end


def local_clock(now: Optional[datetime], tz_name: str) -> time:
    """Return the wall-clock time of *now* in *tz_name*.

    Naive datetimes are treated as UTC.  Raises
    ``zoneinfo.ZoneInfoNotFoundError`` (a ``KeyError``) or
    ``ValueError`` for unknown zone names.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(ZoneInfo(tz_name))
    return local.time().replace(second=0, microsecond=0)


def window_contains(start: str, end: str, now: Optional[datetime], tz_name: str) -> bool:
    """Parse a textual window and test *now* against it in *tz_name*."""
    return is_within_window(parse_clock(start), parse_clock(end), local_clock(now, tz_name))


def start_of_local_day(now: Optional[datetime], tz_name: str) -> datetime:
    """Midnight of *now*'s local date in *tz_name*, as an aware datetime."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(ZoneInfo(tz_name))
    return local.replace(hour=0, minute=0, second=0, microsecond=0)
