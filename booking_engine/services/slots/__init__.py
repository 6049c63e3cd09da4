# booking_engine/services/slots/__init__.py
"""
Slots calculation module.

Level 1: Candidate slots from business hours (calculator)
Level 2: Capacity Guard + Staff Assignment Resolver (availability)

availability.py reads the database; import it directly:
    from booking_engine.services.slots.availability import compute_available_slots
"""

from .config import BookingConfig, DEFAULT_TRADING_CALENDAR, get_booking_config
from .intervals import DayWindow, Interval, parse_duration
from .calculator import iter_candidate_slots
from .capacity import ACTIVE_STATUSES, CapacityCheck, check_capacity, ensure_capacity
from .staffing import StaffCandidate, free_staff, select_staff

__all__ = [
    "BookingConfig",
    "DEFAULT_TRADING_CALENDAR",
    "get_booking_config",
    "DayWindow",
    "Interval",
    "parse_duration",
    "iter_candidate_slots",
    "ACTIVE_STATUSES",
    "CapacityCheck",
    "check_capacity",
    "ensure_capacity",
    "StaffCandidate",
    "free_staff",
    "select_staff",
]
