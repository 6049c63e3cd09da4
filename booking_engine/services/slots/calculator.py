# booking_engine/services/slots/calculator.py
"""
Level 1: Candidate slot enumeration.

Strides through every business-hours window on every day of the range,
producing intervals exactly `duration` long, back to back.

Contains:
✓ business hours (or the default trading calendar)
✓ "now" + min_advance (caller supplied, no hidden clock)
✓ window end (a slot never runs past its window)

Does NOT contain:
✗ Bookings (Capacity Guard, Level 2)
✗ Staff (Staff Assignment Resolver, Level 2)
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Iterator
from zoneinfo import ZoneInfo

from .intervals import DayWindow, Interval, local_datetime, local_interval, sunday_weekday


def iter_candidate_slots(
    windows: Iterable[DayWindow],
    duration_minutes: int,
    start_date: date,
    end_date: date,
    tz: ZoneInfo,
    now: datetime,
    min_advance: timedelta = timedelta(0),
) -> Iterator[Interval]:
    """
    Yield candidate slots for [start_date, end_date] (both inclusive).

    Slots are ordered by date, then window start, then time of day.
    A slot is skipped if it does not start strictly after now + min_advance.
    """
    earliest = now.astimezone(timezone.utc) + min_advance
    by_day = _windows_by_day(windows)

    current = start_date
    while current <= end_date:
        for window in by_day.get(sunday_weekday(current), []):
            if local_datetime(current, window.end_minutes, tz) <= earliest:
                # Window fully elapsed
                continue

            t = window.start_minutes
            while t + duration_minutes <= window.end_minutes:
                # None: the wall-clock slot is cut or stretched by a DST shift
                slot = local_interval(current, t, t + duration_minutes, tz)
                if slot is not None and slot.start > earliest:
                    yield slot
                t += duration_minutes

        current += timedelta(days=1)


def _windows_by_day(windows: Iterable[DayWindow]) -> dict[int, list[DayWindow]]:
    by_day: dict[int, list[DayWindow]] = defaultdict(list)
    for window in windows:
        by_day[window.day_of_week].append(window)
    for day_windows in by_day.values():
        day_windows.sort(key=lambda w: (w.start_minutes, w.end_minutes))
    return by_day
