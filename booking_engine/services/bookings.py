# booking_engine/services/bookings.py
"""
Booking lifecycle.

States: pending -> confirmed -> completed
        pending | confirmed -> cancelled
cancelled and completed are terminal. Bookings are never deleted.

create_booking re-runs the availability checks against live data while
holding the per-item lock (services/locks.py); the commit itself is
version-checked (services/booking_store.py). Together they make steps
"capacity -> staff -> persist" one atomic unit per bookable item.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from redis import Redis
from sqlalchemy.orm import Session

from ..errors import (
    AlreadyCancelled,
    BookingCompleted,
    BookingError,
    CancellationWindowViolation,
    InvalidInterval,
    InvalidStatusTransition,
    NoStaffAvailable,
    NotFound,
    ResourceInactive,
)
from ..models.generated import Bookings
from ..schemas.bookings import BookingCreate
from . import booking_store
from .locks import item_lock
from .slots.capacity import ensure_capacity
from .slots.config import BookingConfig, get_booking_config
from .slots.intervals import Interval, fits_any_window, from_db_ts, get_zone, parse_duration, to_db_ts
from .slots.staffing import build_candidates, busy_intervals, select_staff

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"

ALLOWED_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {COMPLETED, CANCELLED},
    CANCELLED: set(),
    COMPLETED: set(),
}

DEFAULT_CANCEL_REASON = "Customer cancelled"


def get_booking(db: Session, booking_id: int) -> Bookings:
    booking = booking_store.get_booking(db, booking_id, fresh=True)
    if not booking:
        raise NotFound("Booking", booking_id)
    return booking


def list_bookings(
    db: Session,
    business_id: int,
    statuses: Optional[Sequence[str]] = None,
    bookable_item_id: Optional[int] = None,
) -> list[Bookings]:
    if not booking_store.get_business(db, business_id):
        raise NotFound("Business", business_id)
    return booking_store.list_bookings(db, business_id, statuses, bookable_item_id)


def create_booking(
    db: Session,
    data: BookingCreate,
    now: datetime,
    config: BookingConfig | None = None,
    redis: Optional[Redis] = None,
) -> Bookings:
    """
    Validate and commit a new booking (status=pending).

    Algorithm:
    1. Interval is valid and not before now + min_advance
    2. Business and item exist, item is active, interval lasts exactly the
       item duration and fits business hours
    3. [locked] Capacity Guard on live bookings
    4. [locked] Staff Assignment Resolver, if the item requires staff
    5. [locked] Commit booking + assignment in one transaction

    Raises:
        InvalidInterval, NotFound, ResourceInactive, CapacityExceeded,
        NoStaffAvailable, PersistenceConflict
    """
    config = config or get_booking_config()
    if now.tzinfo is None:
        raise InvalidInterval("Reference time `now` must be timezone-aware")

    # Step 1: Interval
    interval = Interval(data.date_start, data.date_end)
    if interval.start < now.astimezone(timezone.utc) + config.min_advance:
        raise InvalidInterval("Booking start is in the past or inside the minimum advance window")

    # Step 2: Business, item, duration, hours
    business = booking_store.get_business(db, data.business_id)
    if not business:
        raise NotFound("Business", data.business_id)

    item = booking_store.get_bookable_item(db, data.bookable_item_id)
    if not item or item.business_id != business.id:
        raise NotFound("BookableItem", data.bookable_item_id)
    if not item.is_active:
        raise ResourceInactive(item.id)

    duration_min = parse_duration(item.duration)
    if interval.duration != timedelta(minutes=duration_min):
        raise InvalidInterval(f"Booking must last exactly {duration_min} minutes")

    tz = get_zone(business.timezone or config.default_timezone)
    windows = booking_store.get_business_hours(db, item.id) or list(config.default_hours)
    if not fits_any_window(windows, interval, tz):
        raise InvalidInterval("Booking is outside business hours")

    with item_lock(item.id, config, redis):
        try:
            item, staff = _check_live(db, item.id, interval, data.unit_count, tz)
        except BookingError:
            # Drop the FOR UPDATE row lock along with the item lock
            db.rollback()
            raise

        # Step 5: Commit
        booking = Bookings(
            business_id=business.id,
            bookable_item_id=item.id,
            customer_id=data.customer_id,
            date_start=to_db_ts(interval.start),
            date_end=to_db_ts(interval.end),
            unit_count=data.unit_count,
            status=PENDING,
            notes=data.notes,
            created_at=to_db_ts(now),
            updated_at=to_db_ts(now),
        )
        booking_store.commit_booking(db, booking, item, staff)

    logger.info(
        f"Booking {booking.id} created: item={item.id} "
        f"{booking.date_start}..{booking.date_end} units={booking.unit_count} "
        f"staff={staff.id if staff else None}"
    )
    return booking


def _check_live(db: Session, bookable_item_id: int, interval: Interval, unit_count: int, tz):
    """Steps 3-4 against live rows. Must run under item_lock."""
    # Versions first, then the rows they guard.
    item = booking_store.get_bookable_item(db, bookable_item_id, fresh=True, for_update=True)
    if not item.is_active:
        raise ResourceInactive(item.id)

    staff_members = []
    if item.requires_staff:
        staff_members = booking_store.get_staff_capable_of(db, item.id, fresh=True)

    # Step 3: Capacity
    bookings = booking_store.get_overlapping_bookings(db, item.id, interval, fresh=True)
    ensure_capacity(interval, bookings, item.max_capacity, unit_count)

    # Step 4: Staff
    if not item.requires_staff:
        return item, None

    staff_ids = [s.id for s in staff_members]
    candidates = build_candidates(
        staff_members,
        booking_store.get_staff_availability(db, staff_ids),
    )
    busy = busy_intervals(
        booking_store.get_overlapping_bookings_for_staff(db, staff_ids, interval, fresh=True)
    )
    staff_id = select_staff(candidates, interval, busy, tz)
    if staff_id is None:
        raise NoStaffAvailable()
    return item, next(s for s in staff_members if s.id == staff_id)


def cancel_booking(
    db: Session,
    booking_id: int,
    reason: Optional[str],
    now: datetime,
    config: BookingConfig | None = None,
) -> Bookings:
    """
    Cancel a pending/confirmed booking.

    Allowed while now <= date_start - cancellation_cutoff (the boundary
    itself is allowed). Capacity and staff are released implicitly:
    cancelled bookings are ignored by every check.
    """
    config = config or get_booking_config()
    if now.tzinfo is None:
        raise InvalidInterval("Reference time `now` must be timezone-aware")

    booking = get_booking(db, booking_id)

    if booking.status == CANCELLED:
        raise AlreadyCancelled(booking_id)
    if booking.status == COMPLETED:
        raise BookingCompleted(booking_id)

    start = from_db_ts(booking.date_start)
    if now > start - config.cancellation_cutoff:
        raise CancellationWindowViolation(config.cancellation_cutoff)

    booking.status = CANCELLED
    booking.cancel_reason = reason or DEFAULT_CANCEL_REASON
    booking.updated_at = to_db_ts(now)
    booking_store.save_status_change(db, booking)

    logger.info(f"Booking {booking_id} cancelled: {booking.cancel_reason}")
    return booking


def confirm_booking(db: Session, booking_id: int, now: datetime) -> Bookings:
    """pending -> confirmed"""
    return _transition(db, booking_id, CONFIRMED, now)


def complete_booking(db: Session, booking_id: int, now: datetime) -> Bookings:
    """confirmed -> completed"""
    return _transition(db, booking_id, COMPLETED, now)


def _transition(db: Session, booking_id: int, target: str, now: datetime) -> Bookings:
    booking = get_booking(db, booking_id)
    current = booking.status

    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        if current == CANCELLED:
            raise AlreadyCancelled(booking_id)
        if current == COMPLETED:
            raise BookingCompleted(booking_id)
        raise InvalidStatusTransition(current, target)

    booking.status = target
    booking.updated_at = to_db_ts(now)
    booking_store.save_status_change(db, booking)

    logger.info(f"Booking {booking_id}: {current} -> {target}")
    return booking
