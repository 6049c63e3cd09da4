# booking_engine/services/slots/availability.py
"""
Level 2: Available slots for a bookable item.

Takes into account:
- Candidate slots from business hours (Level 1)
- Existing active bookings on the item (Capacity Guard)
- Capable staff, their weekly availability and their bookings on any item
  (Staff Assignment Resolver), when the item requires staff

The snapshot is read once; iteration is lazy, restartable and read-only.
Stale results are acceptable here: create_booking re-validates under lock.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ...errors import InvalidInterval, NotFound, ResourceInactive
from ...schemas.slots import SlotRead, SlotsRangeResponse
from .. import booking_store
from .calculator import iter_candidate_slots
from .capacity import check_capacity
from .config import BookingConfig, get_booking_config
from .intervals import DayWindow, Interval, get_zone, parse_duration
from .staffing import StaffCandidate, build_candidates, busy_intervals, free_staff

logger = logging.getLogger(__name__)


@dataclass
class AvailableSlots:
    """
    Finite, restartable sequence of available slots.

    Iterating yields Interval objects in the business timezone.
    """
    bookable_item_id: int
    tz: ZoneInfo
    duration_minutes: int
    capacity: int
    unit_count: int
    start_date: date
    end_date: date
    now: datetime
    min_advance: timedelta
    windows: tuple[DayWindow, ...]
    bookings: list = field(default_factory=list)
    requires_staff: bool = False
    staff: list[StaffCandidate] = field(default_factory=list)
    staff_busy: dict = field(default_factory=dict)

    def __iter__(self) -> Iterator[Interval]:
        for slot, _ in self._evaluate():
            yield slot

    def with_details(self) -> Iterator[SlotRead]:
        """Slots with remaining capacity and free staff ids."""
        for slot, (remaining, staff_ids) in self._evaluate():
            yield SlotRead(
                start=slot.start,
                end=slot.end,
                capacity_remaining=remaining,
                staff_ids=staff_ids,
            )

    def to_response(self) -> SlotsRangeResponse:
        return SlotsRangeResponse(
            bookable_item_id=self.bookable_item_id,
            start_date=self.start_date,
            end_date=self.end_date,
            timezone=self.tz.key,
            duration_minutes=self.duration_minutes,
            slots=list(self.with_details()),
        )

    def _evaluate(self):
        if self.start_date > self.end_date:
            return

        candidates = iter_candidate_slots(
            self.windows,
            self.duration_minutes,
            self.start_date,
            self.end_date,
            self.tz,
            self.now,
            self.min_advance,
        )
        for slot in candidates:
            capacity = check_capacity(slot, self.bookings, self.capacity, self.unit_count)
            if not capacity.accepted:
                continue

            staff_ids: list[int] = []
            if self.requires_staff:
                staff_ids = free_staff(self.staff, slot, self.staff_busy, self.tz)
                if not staff_ids:
                    continue

            yield slot, (capacity.available, staff_ids)


def compute_available_slots(
    db: Session,
    bookable_item_id: int,
    start_date: date,
    end_date: date,
    now: datetime,
    unit_count: int = 1,
    config: BookingConfig | None = None,
) -> AvailableSlots:
    """
    Compute available slots for a bookable item over [start_date, end_date].

    Raises:
        NotFound: bookable item or its business does not exist
        ResourceInactive: item is inactive (distinct from "fully booked")
        InvalidInterval: start_date > end_date, naive `now`, bad duration
    """
    config = config or get_booking_config()

    if now.tzinfo is None:
        raise InvalidInterval("Reference time `now` must be timezone-aware")
    if start_date > end_date:
        raise InvalidInterval("start_date must not be after end_date")
    if unit_count < 1:
        raise InvalidInterval("unit_count must be >= 1")

    # Step 1: Bookable item and its business
    item = booking_store.get_bookable_item(db, bookable_item_id)
    if not item:
        raise NotFound("BookableItem", bookable_item_id)
    if not item.is_active:
        raise ResourceInactive(bookable_item_id)

    business = booking_store.get_business(db, item.business_id)
    if not business:
        raise NotFound("Business", item.business_id)

    tz = get_zone(business.timezone or config.default_timezone)
    duration_min = parse_duration(item.duration)

    # Step 2: Clip to [today, today + horizon] in business time
    today = now.astimezone(tz).date()
    start_date = max(start_date, today)
    end_date = min(end_date, today + timedelta(days=config.horizon_days))

    # Step 3: Business hours, or the default trading calendar
    windows = booking_store.get_business_hours(db, bookable_item_id)
    if not windows:
        windows = list(config.default_hours)
        logger.debug(f"No business hours for item={bookable_item_id}, using default calendar")

    slots = AvailableSlots(
        bookable_item_id=bookable_item_id,
        tz=tz,
        duration_minutes=duration_min,
        capacity=item.max_capacity,
        unit_count=unit_count,
        start_date=start_date,
        end_date=end_date,
        now=now,
        min_advance=config.min_advance,
        windows=tuple(windows),
        requires_staff=bool(item.requires_staff),
    )
    if start_date > end_date:
        return slots

    # Step 4: Snapshot of bookings overlapping the whole range
    span = Interval(
        datetime.combine(start_date, time.min).replace(tzinfo=tz),
        datetime.combine(end_date + timedelta(days=1), time.min).replace(tzinfo=tz),
    )
    slots.bookings = booking_store.get_overlapping_bookings(db, bookable_item_id, span)

    # Step 5: Staff snapshot
    if slots.requires_staff:
        staff_members = booking_store.get_staff_capable_of(db, bookable_item_id)
        staff_ids = [s.id for s in staff_members]
        availability = booking_store.get_staff_availability(db, staff_ids)
        slots.staff = build_candidates(staff_members, availability)
        slots.staff_busy = busy_intervals(
            booking_store.get_overlapping_bookings_for_staff(db, staff_ids, span)
        )
        if not slots.staff:
            logger.info(f"Item {bookable_item_id} requires staff but none is capable")

    return slots
