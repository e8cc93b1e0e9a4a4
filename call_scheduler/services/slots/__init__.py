# call_scheduler/services/slots/__init__.py
"""
Slots calculation module.

calculator   - pure slot grid for one availability window
availability - grid for a date, annotated with blocking bookings
"""

from .config import BookingConfig, booking_config_from_settings, config_summary
from .calculator import Slot, calculate_slots
from .availability import calculate_availability, day_of_week

__all__ = [
    "BookingConfig",
    "booking_config_from_settings",
    "config_summary",
    "Slot",
    "calculate_slots",
    "calculate_availability",
    "day_of_week",
]
