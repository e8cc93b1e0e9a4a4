# call_scheduler/routers/availability.py
"""
Availability API.

GET /availability - slots for a consultant on a day
"""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_booking_config
from ..errors import ValidationError
from ..schemas.availability import AvailabilityResponse
from ..schemas.bookings import DATE_RE
from ..services.consultants import get_active_consultant
from ..services.slots import BookingConfig, calculate_availability


router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=AvailabilityResponse)
def get_availability(
    consultant_id: str = Query(..., min_length=1),
    target_date: Optional[str] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    config: BookingConfig = Depends(get_booking_config),
):
    """Get slots for a consultant on a date (defaults to today)."""
    consultant = get_active_consultant(db, consultant_id)

    day = _parse_date(target_date)

    max_days = config.max_booking_days
    if day > date.today() + timedelta(days=max_days):
        raise ValidationError(
            "date_too_far",
            f"Cannot view availability more than {max_days} days in advance.",
        )

    result = calculate_availability(db, consultant.id, day, config)
    return AvailabilityResponse(**result)


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    if not DATE_RE.match(value):
        raise ValidationError("invalid_date", "Invalid date format. Use YYYY-MM-DD.")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("invalid_date", "Invalid date.")
