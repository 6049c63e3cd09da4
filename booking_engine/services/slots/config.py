# booking_engine/services/slots/config.py
"""
Booking configuration for slots calculation and booking lifecycle.
"""

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from ...config import get_settings
from .intervals import DayWindow


# Named default profile: Monday-Friday 09:00-18:00.
# Applied only when a business has no BusinessHours rows at all.
DEFAULT_TRADING_CALENDAR: tuple[DayWindow, ...] = tuple(
    DayWindow(day, "09:00", "18:00") for day in range(1, 6)
)


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for booking/slots system.

    Attributes:
        cancellation_cutoff: Minimum lead time before start for cancellation
        min_advance: Minimum lead time before a slot can be booked
        horizon_days: How many days ahead slots are computed
        default_hours: Trading calendar used when no BusinessHours exist
                       (empty tuple = closed when unconfigured)
        default_timezone: Fallback when a business has no timezone set
        lock_timeout_seconds: Lifetime of a booking-creation lock
        lock_blocking_timeout_seconds: How long to wait for the lock
    """
    cancellation_cutoff: timedelta = timedelta(hours=24)
    min_advance: timedelta = timedelta(0)
    horizon_days: int = 90
    default_hours: tuple[DayWindow, ...] = DEFAULT_TRADING_CALENDAR
    default_timezone: str = "UTC"
    lock_timeout_seconds: float = 10.0
    lock_blocking_timeout_seconds: float = 5.0

    def __post_init__(self):
        """Validate configuration."""
        if self.cancellation_cutoff < timedelta(0):
            raise ValueError("cancellation_cutoff must not be negative")
        if self.min_advance < timedelta(0):
            raise ValueError("min_advance must not be negative")
        if self.horizon_days < 1:
            raise ValueError(f"horizon_days must be >= 1, got {self.horizon_days}")


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton) built from Settings."""
    settings = get_settings()
    return BookingConfig(
        cancellation_cutoff=timedelta(hours=settings.cancellation_cutoff_hours),
        min_advance=timedelta(minutes=settings.min_advance_minutes),
        horizon_days=settings.horizon_days,
        default_timezone=settings.default_timezone,
        lock_timeout_seconds=settings.lock_timeout_seconds,
        lock_blocking_timeout_seconds=settings.lock_blocking_timeout_seconds,
    )
