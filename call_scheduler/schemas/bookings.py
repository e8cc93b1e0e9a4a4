# call_scheduler/schemas/bookings.py

import re
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..models import BookingStatus

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
TIME_RE = re.compile(r"^\d{2}:\d{2}$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Request field (wire name) → error code for shape validation failures
FIELD_ERROR_CODES = {
    "consultantId": "invalid_consultant",
    "customerName": "invalid_name",
    "customerEmail": "invalid_email",
    "date": "invalid_date",
    "time": "invalid_time",
    "status": "invalid_status",
}
FIELD_ERROR_CODES.update({
    "consultant_id": "invalid_consultant",
    "customer_name": "invalid_name",
    "customer_email": "invalid_email",
})


class BookingCreate(BaseModel):
    """Request body for creating a booking."""
    consultant_id: str = Field(min_length=1, max_length=64)
    customer_name: str = Field(min_length=1, max_length=255)
    customer_email: str = Field(max_length=255)
    date: str = Field(description="Date in YYYY-MM-DD format")
    time: str = Field(description="Time in HH:MM format")
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("customer_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v.lower()

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Validate date format and calendar validity."""
        if not DATE_RE.match(v):
            raise ValueError("Date must be in YYYY-MM-DD format")
        try:
            datetime.strptime(v, "%Y-%m-%d")
        except ValueError:
            raise ValueError("Invalid date")
        return v

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate time format and range."""
        if not TIME_RE.match(v):
            raise ValueError("Time must be in HH:MM format")
        hours, minutes = (int(p) for p in v.split(":"))
        if hours > 23 or minutes > 59:
            raise ValueError("Hours must be 00-23, minutes 00-59")
        return v


class BookingRead(BaseModel):
    id: int
    consultant_id: str
    customer_name: str
    customer_email: str
    date: str
    time: str
    status: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_booking(cls, booking) -> "BookingRead":
        return cls(
            id=booking.id,
            consultant_id=booking.consultant.public_id,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            date=booking.booking_date,
            time=booking.booking_time,
            status=booking.status,
        )


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingStatusCounts(BaseModel):
    all: int
    pending: int
    confirmed: int
    cancelled: int
