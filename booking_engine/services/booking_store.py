# booking_engine/services/booking_store.py
"""
Backing-store access for the booking engine.

Read side:
  get_business_hours, get_staff_capable_of, get_staff_availability,
  get_overlapping_bookings, get_overlapping_bookings_for_staff

Write side:
  commit_booking: booking + optional staff assignment + version bumps,
  committed as one unit of work.

`fresh=True` reads bypass the session identity map so callers holding the
per-item lock see the latest committed state.
"""

import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PersistenceConflict
from ..models.generated import (
    BookableItems,
    Bookings,
    BusinessHours,
    Businesses,
    StaffAssignments,
    StaffAvailability,
    StaffMembers,
    t_staff_capabilities,
)
from .slots.capacity import ACTIVE_STATUSES
from .slots.intervals import DayWindow, Interval, to_db_ts

logger = logging.getLogger(__name__)


# ── Entities ─────────────────────────────────────────────────────────────


def get_bookable_item(
    db: Session,
    bookable_item_id: int,
    fresh: bool = False,
    for_update: bool = False,
) -> Optional[BookableItems]:
    query = db.query(BookableItems).filter(BookableItems.id == bookable_item_id)
    if fresh:
        query = query.populate_existing()
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_business(db: Session, business_id: int) -> Optional[Businesses]:
    return db.get(Businesses, business_id)


def get_booking(db: Session, booking_id: int, fresh: bool = False) -> Optional[Bookings]:
    query = (
        db.query(Bookings)
        .options(selectinload(Bookings.assignment))
        .filter(Bookings.id == booking_id)
    )
    if fresh:
        query = query.populate_existing()
    return query.first()


# ── Schedules ────────────────────────────────────────────────────────────


def get_business_hours(db: Session, bookable_item_id: int) -> list[DayWindow]:
    """Business-hours windows of the business owning the bookable item."""
    rows = (
        db.query(BusinessHours)
        .join(BookableItems, BookableItems.business_id == BusinessHours.business_id)
        .filter(BookableItems.id == bookable_item_id)
        .order_by(BusinessHours.day_of_week, BusinessHours.start_time)
        .all()
    )
    return [DayWindow.from_row(row) for row in rows]


def get_staff_capable_of(
    db: Session,
    bookable_item_id: int,
    fresh: bool = False,
) -> list[StaffMembers]:
    """Active staff members capable of the bookable item, ascending id."""
    query = (
        db.query(StaffMembers)
        .join(
            t_staff_capabilities,
            StaffMembers.id == t_staff_capabilities.c.staff_id,
        )
        .filter(
            t_staff_capabilities.c.bookable_item_id == bookable_item_id,
            StaffMembers.is_active == 1,
        )
        .order_by(StaffMembers.id)
    )
    if fresh:
        query = query.populate_existing()
    return query.all()


def get_staff_availability(db: Session, staff_ids: Iterable[int]) -> list[StaffAvailability]:
    staff_ids = list(staff_ids)
    if not staff_ids:
        return []
    return (
        db.query(StaffAvailability)
        .filter(StaffAvailability.staff_id.in_(staff_ids))
        .order_by(StaffAvailability.staff_id, StaffAvailability.day_of_week, StaffAvailability.start_time)
        .all()
    )


# ── Bookings ─────────────────────────────────────────────────────────────


def list_bookings(
    db: Session,
    business_id: int,
    statuses: Optional[Sequence[str]] = None,
    bookable_item_id: Optional[int] = None,
) -> list[Bookings]:
    """Bookings of a business, optionally narrowed by status and item, by start time."""
    query = (
        db.query(Bookings)
        .options(selectinload(Bookings.assignment))
        .filter(Bookings.business_id == business_id)
    )
    if statuses:
        query = query.filter(Bookings.status.in_(list(statuses)))
    if bookable_item_id is not None:
        query = query.filter(Bookings.bookable_item_id == bookable_item_id)
    return query.order_by(Bookings.date_start, Bookings.id).all()


def get_overlapping_bookings(
    db: Session,
    bookable_item_id: int,
    interval: Interval,
    statuses: Sequence[str] = ACTIVE_STATUSES,
    fresh: bool = False,
) -> list[Bookings]:
    """Bookings on the item whose [date_start, date_end) overlaps the interval."""
    query = (
        db.query(Bookings)
        .options(selectinload(Bookings.assignment))
        .filter(
            Bookings.bookable_item_id == bookable_item_id,
            Bookings.status.in_(list(statuses)),
            Bookings.date_start < to_db_ts(interval.end),
            Bookings.date_end > to_db_ts(interval.start),
        )
        .order_by(Bookings.date_start, Bookings.id)
    )
    if fresh:
        query = query.populate_existing()
    return query.all()


def get_overlapping_bookings_for_staff(
    db: Session,
    staff_ids: Iterable[int],
    interval: Interval,
    statuses: Sequence[str] = ACTIVE_STATUSES,
    fresh: bool = False,
) -> list[Bookings]:
    """Bookings assigned to any of the staff members, on any item, overlapping the interval."""
    staff_ids = list(staff_ids)
    if not staff_ids:
        return []

    query = (
        db.query(Bookings)
        .join(StaffAssignments, StaffAssignments.booking_id == Bookings.id)
        .options(selectinload(Bookings.assignment))
        .filter(
            StaffAssignments.staff_id.in_(staff_ids),
            Bookings.status.in_(list(statuses)),
            Bookings.date_start < to_db_ts(interval.end),
            Bookings.date_end > to_db_ts(interval.start),
        )
        .order_by(Bookings.date_start, Bookings.id)
    )
    if fresh:
        query = query.populate_existing()
    return query.all()


# ── Write ────────────────────────────────────────────────────────────────


def commit_booking(
    db: Session,
    booking: Bookings,
    bookable_item: BookableItems,
    staff: Optional[StaffMembers] = None,
) -> int:
    """
    Persist a booking (and its staff assignment) in a single transaction.

    The version counters of the bookable item and of the assigned staff
    member are bumped in the same transaction. A concurrent writer that
    read an older version fails with PersistenceConflict instead of
    overbooking.

    Returns:
        The new booking id.
    """
    try:
        db.add(booking)
        bookable_item.version = bookable_item.version + 1

        if staff is not None:
            staff.version = staff.version + 1
            booking.assignment = StaffAssignments(staff_id=staff.id)

        db.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.rollback()
        logger.warning(f"Booking commit conflict on item={bookable_item.id}: {exc}")
        raise PersistenceConflict() from exc
    except OperationalError as exc:
        db.rollback()
        if _is_lock_error(exc):
            logger.warning(f"Booking commit lock timeout on item={bookable_item.id}")
            raise PersistenceConflict() from exc
        raise

    return booking.id


def save_status_change(db: Session, booking: Bookings) -> None:
    """Commit a status transition made on `booking`."""
    try:
        db.commit()
    except OperationalError as exc:
        db.rollback()
        if _is_lock_error(exc):
            raise PersistenceConflict() from exc
        raise


def _is_lock_error(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return (
        "database is locked" in message
        or "deadlock detected" in message
        or "could not serialize" in message
        or "lock timeout" in message
    )
