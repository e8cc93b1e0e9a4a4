from .tables import (
    ACTIVE_BOOKING_PREDICATE,
    Availability,
    Base,
    BookingStatus,
    Bookings,
    Consultants,
    metadata,
)

__all__ = [
    "ACTIVE_BOOKING_PREDICATE",
    "Availability",
    "Base",
    "BookingStatus",
    "Bookings",
    "Consultants",
    "metadata",
]
