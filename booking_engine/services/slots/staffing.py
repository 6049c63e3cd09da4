# booking_engine/services/slots/staffing.py
"""
Staff Assignment Resolver.

A staff member can take a candidate interval when they
- are active and capable of the bookable item (caller pre-filters),
- have an availability window on the candidate's local day_of_week that
  contains its local time of day,
- have no active booking assigned to them overlapping the candidate.

Selection is the lowest staff id among the free ones. This is a stable
tie-break, not load balancing.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from .capacity import ACTIVE_STATUSES
from .intervals import DayWindow, Interval, booking_interval, fits_any_window


@dataclass(frozen=True)
class StaffCandidate:
    staff_id: int
    windows: tuple[DayWindow, ...] = field(default_factory=tuple)


def build_candidates(staff_members: Iterable, availability: Iterable) -> list[StaffCandidate]:
    """Combine StaffMembers rows and their StaffAvailability rows, sorted by id."""
    windows: dict[int, list[DayWindow]] = defaultdict(list)
    for row in availability:
        windows[row.staff_id].append(DayWindow.from_row(row))

    return sorted(
        (
            StaffCandidate(staff_id=s.id, windows=tuple(windows.get(s.id, ())))
            for s in staff_members
            if s.is_active
        ),
        key=lambda c: c.staff_id,
    )


def busy_intervals(assigned_bookings: Iterable) -> dict[int, list[Interval]]:
    """
    staff_id -> intervals of their active bookings.

    Accepts Bookings rows that carry `staff_id` (via their assignment).
    """
    busy: dict[int, list[Interval]] = defaultdict(list)
    for booking in assigned_bookings:
        if booking.status not in ACTIVE_STATUSES:
            continue
        staff_id = booking.staff_id
        if staff_id is None:
            continue
        busy[staff_id].append(booking_interval(booking))
    return busy


def free_staff(
    candidates: Iterable[StaffCandidate],
    interval: Interval,
    busy: dict[int, list[Interval]],
    tz: ZoneInfo,
) -> list[int]:
    """Ids of staff free for the interval, in ascending id order."""
    result = []
    for candidate in candidates:
        if not fits_any_window(candidate.windows, interval, tz):
            continue
        if any(other.overlaps(interval) for other in busy.get(candidate.staff_id, ())):
            continue
        result.append(candidate.staff_id)
    return sorted(result)


def has_free_staff(
    candidates: Iterable[StaffCandidate],
    interval: Interval,
    busy: dict[int, list[Interval]],
    tz: ZoneInfo,
) -> bool:
    return bool(free_staff(candidates, interval, busy, tz))


def select_staff(
    candidates: Iterable[StaffCandidate],
    interval: Interval,
    busy: dict[int, list[Interval]],
    tz: ZoneInfo,
) -> Optional[int]:
    """First free staff id (ascending), or None."""
    free = free_staff(candidates, interval, busy, tz)
    return free[0] if free else None
