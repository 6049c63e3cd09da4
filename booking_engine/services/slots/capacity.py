# booking_engine/services/slots/capacity.py
"""
Capacity Guard.

committed = Σ unit_count over active (pending/confirmed) bookings whose
interval overlaps the candidate. A request is accepted iff
committed + requested_units <= capacity.

The sum covers every overlapping booking, not the per-instant peak, so
it may reject a request the per-instant invariant would still allow.
It never accepts one that breaks it.
"""

from dataclasses import dataclass
from typing import Iterable

from ...errors import CapacityExceeded
from .intervals import Interval, booking_interval

ACTIVE_STATUSES = ("pending", "confirmed")


@dataclass(frozen=True)
class CapacityCheck:
    committed: int
    capacity: int
    requested: int

    @property
    def available(self) -> int:
        return max(0, self.capacity - self.committed)

    @property
    def accepted(self) -> bool:
        return self.committed + self.requested <= self.capacity


def committed_units(candidate: Interval, bookings: Iterable) -> int:
    total = 0
    for booking in bookings:
        if booking.status not in ACTIVE_STATUSES:
            continue
        if booking_interval(booking).overlaps(candidate):
            total += booking.unit_count
    return total


def check_capacity(
    candidate: Interval,
    bookings: Iterable,
    capacity: int,
    requested_units: int = 1,
) -> CapacityCheck:
    return CapacityCheck(
        committed=committed_units(candidate, bookings),
        capacity=capacity,
        requested=requested_units,
    )


def ensure_capacity(
    candidate: Interval,
    bookings: Iterable,
    capacity: int,
    requested_units: int,
) -> CapacityCheck:
    """Like check_capacity, but raises CapacityExceeded on rejection."""
    result = check_capacity(candidate, bookings, capacity, requested_units)
    if not result.accepted:
        raise CapacityExceeded(available=result.available)
    return result
