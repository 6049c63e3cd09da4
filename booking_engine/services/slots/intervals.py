# booking_engine/services/slots/intervals.py
"""
Time and interval helpers.

All intervals are half-open [start, end) and timezone-aware.
Wall-clock windows ("HH:MM"-"HH:MM" on a day_of_week) are converted to
instants in the business timezone, never in the caller's local time.

day_of_week convention: 0 = Sunday ... 6 = Saturday.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from ...errors import InvalidInterval

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidInterval("Interval bounds must be timezone-aware")
        # Same-tzinfo datetimes compare by wall clock; compare instants instead.
        if _utc(self.start) >= _utc(self.end):
            raise InvalidInterval("Interval start must be before end")

    def overlaps(self, other: "Interval") -> bool:
        return _utc(self.start) < _utc(other.end) and _utc(other.start) < _utc(self.end)

    def contains(self, other: "Interval") -> bool:
        return _utc(self.start) <= _utc(other.start) and _utc(other.end) <= _utc(self.end)

    @property
    def duration(self) -> timedelta:
        return _utc(self.end) - _utc(self.start)

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def astimezone(self, tz) -> "Interval":
        return Interval(self.start.astimezone(tz), self.end.astimezone(tz))


def _utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class DayWindow:
    """Recurring weekly window, e.g. Monday 09:00-18:00."""

    day_of_week: int
    start_time: str
    end_time: str

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise InvalidInterval(f"day_of_week must be 0..6, got {self.day_of_week}")
        if self.start_minutes >= self.end_minutes:
            raise InvalidInterval(
                f"Window start {self.start_time} must be before end {self.end_time}"
            )

    @property
    def start_minutes(self) -> int:
        return time_str_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_str_to_minutes(self.end_time)

    @classmethod
    def from_row(cls, row) -> "DayWindow":
        """Build from a BusinessHours / StaffAvailability row."""
        return cls(row.day_of_week, row.start_time, row.end_time)


# ── Wall-clock helpers ───────────────────────────────────────────────────


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" or "HH:MM:SS" to minutes since midnight. "24:00" is allowed."""
    try:
        parts = [int(p) for p in value.strip().split(":")]
    except (AttributeError, ValueError):
        raise InvalidInterval(f"Invalid time: {value!r}")

    if len(parts) not in (2, 3):
        raise InvalidInterval(f"Invalid time: {value!r}")

    hour, minute = parts[0], parts[1]
    second = parts[2] if len(parts) == 3 else 0
    if not (0 <= minute < 60 and 0 <= second < 60):
        raise InvalidInterval(f"Invalid time: {value!r}")

    total = hour * 60 + minute
    if hour == 24 and minute == 0 and second == 0:
        return MINUTES_PER_DAY
    if not 0 <= hour < 24:
        raise InvalidInterval(f"Invalid time: {value!r}")
    return total


def minutes_to_time_str(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def sunday_weekday(day: date) -> int:
    """date -> day_of_week with 0 = Sunday."""
    return (day.weekday() + 1) % 7


def get_zone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ValueError, KeyError):
        raise InvalidInterval(f"Unknown timezone: {name!r}")


def local_datetime(day: date, minutes: int, tz: ZoneInfo) -> datetime:
    """Wall-clock minute of a local date in tz (first occurrence when ambiguous)."""
    return (datetime.combine(day, time.min) + timedelta(minutes=minutes)).replace(tzinfo=tz)


def local_interval(day: date, start_min: int, end_min: int, tz: ZoneInfo) -> Interval | None:
    """
    Aware interval for a wall-clock span on a given local date.

    Returns None when a bound falls into a DST gap, or when the span does not
    last exactly end_min - start_min real minutes (it straddles a DST shift).
    """
    start = local_datetime(day, start_min, tz)
    end = local_datetime(day, end_min, tz)
    if not (_exists(start) and _exists(end)):
        return None
    if _utc(end) - _utc(start) != timedelta(minutes=end_min - start_min):
        return None
    return Interval(start, end)


def _exists(dt: datetime) -> bool:
    return _utc(dt).astimezone(dt.tzinfo).replace(tzinfo=None) == dt.replace(tzinfo=None)


def minutes_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def window_fits(window: DayWindow, interval: Interval, tz: ZoneInfo) -> bool:
    """True if the interval lies inside the window on the window's local weekday."""
    local = interval.astimezone(tz)
    start_day = local.start.date()

    if sunday_weekday(start_day) != window.day_of_week:
        return False

    start_min = minutes_of_day(local.start)
    if local.end.date() == start_day:
        end_min = minutes_of_day(local.end)
        if local.end.second or local.end.microsecond:
            end_min += 1
    elif local.end.date() == start_day + timedelta(days=1) and local.end.time() == time.min:
        end_min = MINUTES_PER_DAY
    else:
        # crosses local midnight
        return False

    return window.start_minutes <= start_min and end_min <= window.end_minutes


def fits_any_window(windows, interval: Interval, tz: ZoneInfo) -> bool:
    return any(window_fits(w, interval, tz) for w in windows)


# ── Duration parsing ─────────────────────────────────────────────────────


_ISO_DURATION = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?$", re.IGNORECASE)
_DURATION_PART = re.compile(r"(\d+)\s*(hours?|hrs?|h|minutes?|mins?|m)(?![a-z])", re.IGNORECASE)


def parse_duration(value) -> int:
    """
    Parse a duration into whole minutes.

    Accepts "30 minutes", "30 min", "1 hour", "2 hours", "1 hour 30 minutes",
    "1h30m", "90" (bare minutes), "PT1H30M", or an int.

    Raises InvalidInterval for anything unparseable or non-positive.
    """
    if isinstance(value, bool):
        raise InvalidInterval(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        minutes = value
    elif isinstance(value, str):
        minutes = _parse_duration_str(value.strip())
    else:
        raise InvalidInterval(f"Invalid duration: {value!r}")

    if minutes <= 0:
        raise InvalidInterval(f"Duration must be positive: {value!r}")
    return minutes


def _parse_duration_str(text: str) -> int:
    if text.isdigit():
        return int(text)

    iso = _ISO_DURATION.match(text)
    if iso and (iso.group(1) or iso.group(2)):
        return int(iso.group(1) or 0) * 60 + int(iso.group(2) or 0)

    parts = _DURATION_PART.findall(text)
    # Everything in the string must be consumed by the recognised parts.
    leftover = _DURATION_PART.sub("", text).strip()
    if not parts or leftover:
        raise InvalidInterval(f"Invalid duration: {text!r}")

    minutes = 0
    for amount, unit in parts:
        if unit.lower().startswith("h"):
            minutes += int(amount) * 60
        else:
            minutes += int(amount)
    return minutes


# ── Storage format ───────────────────────────────────────────────────────


def to_db_ts(dt: datetime) -> str:
    """Aware datetime -> fixed-width UTC ISO string (sortable as text)."""
    if dt.tzinfo is None:
        raise InvalidInterval("Timestamps must be timezone-aware")
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S+00:00")


def from_db_ts(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def booking_interval(booking) -> Interval:
    return Interval(from_db_ts(booking.date_start), from_db_ts(booking.date_end))
