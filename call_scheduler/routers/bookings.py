# call_scheduler/routers/bookings.py

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..config import Settings
from ..database import get_db
from ..dependencies import get_app_settings, get_booking_guard, get_stats_cache
from ..errors import NotFoundError
from ..models import BookingStatus, Bookings
from ..schemas.bookings import (
    BookingCreate,
    BookingRead,
    BookingStatusCounts,
    BookingStatusUpdate,
)
from ..services.booking_guard import BookingGuard
from ..services.booking_stats import BookingStatsCache
from ..utils.tokens import verify_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

# Hidden on the booking form; only bots fill it
HONEYPOT_FIELD = "website"


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: dict = Body(...),
    x_cs_token: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
    guard: BookingGuard = Depends(get_booking_guard),
):
    if settings.token_verification_enabled:
        verify_token(x_cs_token, settings.booking_secret)

    # Honeypot filled: answer like a success, store nothing.
    # Read from the raw body so a bot's malformed fields get the same answer.
    if payload.get(HONEYPOT_FIELD):
        logger.info("Honeypot triggered on booking form")
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"id": 0, "status": BookingStatus.PENDING.value},
        )

    try:
        data = BookingCreate.model_validate(payload)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    booking = guard.create_booking(data)
    return BookingRead.from_booking(booking)


@router.get("/stats", response_model=BookingStatusCounts)
def booking_stats(
    db: Session = Depends(get_db),
    cache: BookingStatsCache = Depends(get_stats_cache),
):
    return cache.get_status_counts(db)


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    obj = db.get(Bookings, id)
    if not obj:
        raise NotFoundError("not_found", "Booking not found.")
    return BookingRead.from_booking(obj)


@router.patch("/{id}", response_model=BookingRead)
def update_booking_status(
    id: int,
    data: BookingStatusUpdate,
    guard: BookingGuard = Depends(get_booking_guard),
):
    booking = guard.update_status(id, data.status.value)
    return BookingRead.from_booking(booking)
