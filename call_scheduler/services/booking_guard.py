# call_scheduler/services/booking_guard.py
"""
Conflict-free booking creation.

There is no "check then insert": the booking row is inserted directly
and the partial unique index over (consultant_id, booking_date,
booking_time) WHERE status != 'cancelled' admits exactly one winner,
however many requests race for the same slot. A losing insert is
reported as a conflict and never retried.

Steps:
1. Consultant exists and is active
2. Date is not in the past and within max_booking_days
3. Weekday has an availability window and the slot fits inside it
4. Time lies on the window's slot grid
5. Insert (pending) → IntegrityError = slot taken
6. Side effects: invalidate cached counts, emit booking.created
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Availability, BookingStatus, Bookings, Consultants
from ..schemas.bookings import BookingCreate
from .booking_stats import BookingStatsCache
from .consultants import get_active_consultant
from .events import BOOKING_CREATED, BOOKING_STATUS_CHANGED, EventPublisher
from .slots.availability import day_of_week, get_window
from .slots.calculator import is_on_slot_grid, window_contains
from .slots.config import BookingConfig, time_str_to_seconds

logger = logging.getLogger(__name__)

ACTIVE_SLOT_INDEX = "uq_bookings_active_slot"


class BookingGuard:
    def __init__(
        self,
        db: Session,
        config: BookingConfig,
        publisher: Optional[EventPublisher] = None,
        stats_cache: Optional[BookingStatsCache] = None,
        now: Optional[datetime] = None,
    ):
        self.db = db
        self.config = config
        self.publisher = publisher
        self.stats_cache = stats_cache
        self.now = now

    # ── Create ───────────────────────────────────────────────────────────

    def create_booking(self, data: BookingCreate) -> Bookings:
        """
        Create a pending booking or raise.

        Raises:
            ValidationError: business rule violated (400)
            ConflictError: slot already held by an active booking (409)
        """
        consultant = get_active_consultant(self.db, data.consultant_id)
        booking_date = self._validate_date(data.date)
        self._validate_slot(consultant, booking_date, data.time)

        booking = Bookings(
            consultant_id=consultant.id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            booking_date=booking_date.isoformat(),
            booking_time=data.time,
            status=BookingStatus.PENDING.value,
            created_at=self._now().strftime("%Y-%m-%d %H:%M:%S"),
        )

        self.db.add(booking)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if not _is_slot_conflict(exc):
                raise
            logger.info(
                f"Booking conflict: consultant_id={consultant.id}, "
                f"slot={booking_date.isoformat()} {data.time}"
            )
            raise ConflictError("slot_taken", "This time slot is already booked.") from exc

        self.db.refresh(booking)

        logger.info(
            f"Booking created: booking_id={booking.id}, "
            f"consultant_id={consultant.id}, slot={booking.booking_date} {booking.booking_time}"
        )

        self._after_write(BOOKING_CREATED, {
            "booking_id": booking.id,
            "consultant_id": consultant.public_id,
            "customer_name": booking.customer_name,
            "customer_email": booking.customer_email,
            "date": booking.booking_date,
            "time": booking.booking_time,
        })

        return booking

    # ── Status transitions ───────────────────────────────────────────────

    def update_status(self, booking_id: int, status: str) -> Bookings:
        """
        Move a booking to another status.

        Re-activating a cancelled booking whose slot has been taken
        since is rejected by the same unique index → ConflictError.
        """
        if status not in BookingStatus.all():
            raise ValidationError("invalid_status", f"Invalid status: {status}.")

        booking = self.db.get(Bookings, booking_id)
        if booking is None:
            raise NotFoundError("not_found", "Booking not found.")

        previous = booking.status
        if previous == status:
            return booking

        booking.status = status
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if not _is_slot_conflict(exc):
                raise
            raise ConflictError("slot_taken", "This time slot is already booked.") from exc

        self.db.refresh(booking)

        logger.info(f"Booking status changed: booking_id={booking.id}, {previous} → {status}")

        self._after_write(BOOKING_STATUS_CHANGED, {
            "booking_id": booking.id,
            "old_status": previous,
            "new_status": status,
        })

        return booking

    # ── Validation ───────────────────────────────────────────────────────

    def _validate_date(self, date_str: str) -> date:
        try:
            booking_date = date.fromisoformat(date_str)
        except ValueError:
            raise ValidationError("invalid_date", "Invalid date format. Use YYYY-MM-DD.")

        today = self._now().date()
        if booking_date < today:
            raise ValidationError("past_date", "Cannot book dates in the past.")

        max_days = self.config.max_booking_days
        if booking_date > today + timedelta(days=max_days):
            raise ValidationError("date_too_far", f"Cannot book more than {max_days} days in advance.")

        return booking_date

    def _validate_slot(self, consultant: Consultants, booking_date: date, time_str: str) -> None:
        try:
            requested = time_str_to_seconds(time_str)
        except ValueError:
            raise ValidationError("invalid_time", "Invalid time format. Use HH:MM.")

        window = get_window(self.db, consultant.id, day_of_week(booking_date))
        if window is None:
            raise ValidationError("no_availability", "Consultant is not available on this day.")

        start = time_str_to_seconds(window.start_time)
        end = time_str_to_seconds(window.end_time)
        duration = self.config.slot_duration_seconds

        if not window_contains(start, end, requested, duration):
            raise ValidationError(
                "outside_hours",
                f"Requested time is outside working hours ({_hhmm(window)}).",
            )

        if not is_on_slot_grid(start, requested, duration, self.config.buffer_seconds):
            raise ValidationError(
                "invalid_time",
                f"Time must start on a {self.config.duration_text()} slot boundary.",
            )

    # ── Side effects ─────────────────────────────────────────────────────

    def _after_write(self, event_type: str, payload: dict) -> None:
        """Cache invalidation and event emission; failures are logged only."""
        if self.stats_cache is not None:
            try:
                self.stats_cache.invalidate()
            except Exception:
                logger.exception("Failed to invalidate booking counts cache")

        if self.publisher is not None:
            try:
                self.publisher.emit(event_type, payload)
            except Exception:
                logger.exception(f"Failed to publish {event_type}")

    def _now(self) -> datetime:
        return self.now or datetime.now()


def _is_slot_conflict(exc: IntegrityError) -> bool:
    """Tell the active-slot unique index apart from other integrity failures."""
    text = str(getattr(exc, "orig", exc))
    diag = getattr(getattr(exc, "orig", None), "diag", None)
    constraint_name = getattr(diag, "constraint_name", None) if diag is not None else None

    if constraint_name:
        return constraint_name == ACTIVE_SLOT_INDEX
    if ACTIVE_SLOT_INDEX in text:
        return True
    # SQLite reports the columns, not the index name
    return "UNIQUE constraint failed: bookings.consultant_id" in text


def _hhmm(window: Availability) -> str:
    return f"{window.start_time[:5]} - {window.end_time[:5]}"
