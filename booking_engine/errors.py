"""
Booking engine errors.

Raised by services (slots, bookings) and caught by the API layer, which
renders them with `to_dict()`. Each error has a stable `code`.

Only PersistenceConflict is `retryable`: the caller should retry it with
backoff. Everything else is a permanent rejection.
"""

from datetime import timedelta
from typing import Any


class BookingError(Exception):
    """Base class for all booking engine errors."""

    code = "BOOKING_ERROR"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        data = {
            "error_code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        details = self.details()
        if details:
            data["details"] = details
        return data


class NotFound(BookingError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id

    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "id": self.entity_id}


class InvalidInterval(BookingError):
    """start >= end, naive datetimes, malformed duration or out-of-hours."""

    code = "INVALID_INTERVAL"


class ResourceInactive(BookingError):
    code = "RESOURCE_INACTIVE"

    def __init__(self, bookable_item_id: Any):
        super().__init__(f"Bookable item {bookable_item_id} is inactive")
        self.bookable_item_id = bookable_item_id


class CapacityExceeded(BookingError):
    code = "CAPACITY_EXCEEDED"

    def __init__(self, available: int):
        super().__init__(f"Requested units exceed capacity, available: {available}")
        self.available = available

    def details(self) -> dict[str, Any]:
        return {"available": self.available}


class NoStaffAvailable(BookingError):
    code = "NO_STAFF_AVAILABLE"

    def __init__(self, message: str = "No staff member is available for this time"):
        super().__init__(message)


class AlreadyCancelled(BookingError):
    code = "ALREADY_CANCELLED"

    def __init__(self, booking_id: Any):
        super().__init__(f"Booking {booking_id} is already cancelled")
        self.booking_id = booking_id


class BookingCompleted(BookingError):
    code = "BOOKING_COMPLETED"

    def __init__(self, booking_id: Any):
        super().__init__(f"Booking {booking_id} is already completed")
        self.booking_id = booking_id


class InvalidStatusTransition(BookingError):
    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move booking from '{current}' to '{target}'")
        self.current = current
        self.target = target

    def details(self) -> dict[str, Any]:
        return {"current": self.current, "target": self.target}


class CancellationWindowViolation(BookingError):
    code = "CANCELLATION_WINDOW"

    def __init__(self, cutoff: timedelta):
        hours = cutoff.total_seconds() / 3600
        super().__init__(
            f"Booking can only be cancelled at least {hours:g} hours before it starts"
        )
        self.cutoff = cutoff

    def details(self) -> dict[str, Any]:
        return {"cutoff_hours": self.cutoff.total_seconds() / 3600}


class PersistenceConflict(BookingError):
    """Concurrent write detected. Safe to retry."""

    code = "PERSISTENCE_CONFLICT"
    retryable = True

    def __init__(self, message: str = "Concurrent booking update, please retry"):
        super().__init__(message)
