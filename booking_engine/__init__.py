"""
Booking availability and conflict-resolution engine.

    from booking_engine import compute_available_slots, create_booking, cancel_booking
"""

from .errors import (
    AlreadyCancelled,
    BookingCompleted,
    BookingError,
    CancellationWindowViolation,
    CapacityExceeded,
    InvalidInterval,
    InvalidStatusTransition,
    NoStaffAvailable,
    NotFound,
    PersistenceConflict,
    ResourceInactive,
)
from .services.bookings import (
    cancel_booking,
    complete_booking,
    confirm_booking,
    create_booking,
    get_booking,
    list_bookings,
)
from .services.slots.availability import AvailableSlots, compute_available_slots
from .services.slots.config import BookingConfig, DEFAULT_TRADING_CALENDAR, get_booking_config

__all__ = [
    "AlreadyCancelled",
    "AvailableSlots",
    "BookingCompleted",
    "BookingConfig",
    "BookingError",
    "CancellationWindowViolation",
    "CapacityExceeded",
    "DEFAULT_TRADING_CALENDAR",
    "InvalidInterval",
    "InvalidStatusTransition",
    "NoStaffAvailable",
    "NotFound",
    "PersistenceConflict",
    "ResourceInactive",
    "cancel_booking",
    "complete_booking",
    "compute_available_slots",
    "confirm_booking",
    "create_booking",
    "get_booking",
    "get_booking_config",
    "list_bookings",
]
