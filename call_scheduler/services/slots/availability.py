# call_scheduler/services/slots/availability.py
"""
Availability for a consultant on a specific date.

Takes into account:
- The consultant's weekly window for that weekday
- Slot duration and buffer (BookingConfig)
- Existing blocking bookings (pending / confirmed) on that date
"""

from datetime import date

from sqlalchemy.orm import Session

from ...models import Availability, BookingStatus, Bookings
from .calculator import calculate_slots
from .config import BookingConfig, time_str_to_seconds


def day_of_week(target_date: date) -> int:
    """0 = Sunday … 6 = Saturday."""
    return target_date.isoweekday() % 7


def calculate_availability(
    db: Session,
    consultant_id: int,
    target_date: date,
    config: BookingConfig,
) -> dict:
    """
    Calculate slots for a consultant on a date.

    Returns:
        Dict with date, day_of_week and slots [{start, end, available}].
        No window for the weekday → empty slot list.
    """
    dow = day_of_week(target_date)
    result = {
        "date": target_date.isoformat(),
        "day_of_week": dow,
        "slots": [],
    }

    window = get_window(db, consultant_id, dow)
    if not window:
        return result

    slots = calculate_slots(
        time_str_to_seconds(window.start_time),
        time_str_to_seconds(window.end_time),
        config.slot_duration_seconds,
        config.buffer_seconds,
    )

    booked = [
        time_str_to_seconds(t)
        for t in get_blocking_times(db, consultant_id, target_date)
    ]
    block_length = config.step_seconds

    result["slots"] = [
        {
            "start": slot.start_time,
            "end": slot.end_time,
            "available": not _is_blocked(slot.time_of_day, booked, block_length),
        }
        for slot in slots
    ]
    return result


def _is_blocked(time_of_day: int, booked: list[int], block_length: int) -> bool:
    """A booking blocks [booking_time, booking_time + duration + buffer)."""
    return any(0 <= time_of_day - start < block_length for start in booked)


# ── Database helpers ─────────────────────────────────────────────────────


def get_window(db: Session, consultant_id: int, dow: int) -> Availability | None:
    """Get the availability window for a weekday (at most one exists)."""
    return (
        db.query(Availability)
        .filter(
            Availability.consultant_id == consultant_id,
            Availability.day_of_week == dow,
        )
        .first()
    )


def get_blocking_times(db: Session, consultant_id: int, target_date: date) -> list[str]:
    """Get "HH:MM" start times of pending/confirmed bookings on a date."""
    rows = (
        db.query(Bookings.booking_time)
        .filter(
            Bookings.consultant_id == consultant_id,
            Bookings.booking_date == target_date.isoformat(),
            Bookings.status.in_(BookingStatus.blocking()),
        )
        .all()
    )
    return [row.booking_time for row in rows]
