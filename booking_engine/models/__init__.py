from .generated import (
    Base,
    BookableItems,
    Bookings,
    BusinessHours,
    Businesses,
    StaffAssignments,
    StaffAvailability,
    StaffMembers,
    metadata,
    t_staff_capabilities,
)

__all__ = [
    "Base",
    "BookableItems",
    "Bookings",
    "BusinessHours",
    "Businesses",
    "StaffAssignments",
    "StaffAvailability",
    "StaffMembers",
    "metadata",
    "t_staff_capabilities",
]
