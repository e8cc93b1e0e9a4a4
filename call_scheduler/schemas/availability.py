# call_scheduler/schemas/availability.py
"""
Pydantic schemas for availability API.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SlotInfo(BaseModel):
    """A single slot of the day."""
    start: str  # "HH:MM"
    end: str    # "HH:MM"
    available: bool


class AvailabilityResponse(BaseModel):
    """Slots for a consultant on a date."""
    date: str
    day_of_week: int = Field(description="0 = Sunday … 6 = Saturday")
    slots: list[SlotInfo]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
