# call_scheduler/services/slots/calculator.py
"""
Slot calculation for a single availability window.

All values are seconds since midnight. An end time <= start time means
the window wraps past midnight; start == end is a full 24h window.

Slots that start after midnight keep wall-clock times only ("01:00"),
so callers pair them with the requested date, not the window's weekday.
"""

from dataclasses import dataclass

from .config import SECONDS_PER_DAY, seconds_to_time_str


@dataclass(frozen=True)
class Slot:
    """A bookable interval [start, end) as offsets from the window's midnight."""
    start: int
    end: int

    @property
    def start_time(self) -> str:
        return seconds_to_time_str(self.start)

    @property
    def end_time(self) -> str:
        return seconds_to_time_str(self.end)

    @property
    def time_of_day(self) -> int:
        """Start as seconds since midnight of the calendar day it falls on."""
        return self.start % SECONDS_PER_DAY


def effective_end(window_start: int, window_end: int) -> int:
    """Window end on the same timeline as window_start (overnight adds 24h)."""
    if window_end <= window_start:
        return window_end + SECONDS_PER_DAY
    return window_end


def calculate_slots(
    window_start: int,
    window_end: int,
    slot_duration_seconds: int,
    buffer_seconds: int = 0,
) -> list[Slot]:
    """
    Split a window into slots of slot_duration_seconds spaced by
    slot_duration_seconds + buffer_seconds.

    A slot is emitted only if it ends at or before the window end.
    """
    if slot_duration_seconds <= 0:
        raise ValueError(f"slot_duration_seconds must be positive, got {slot_duration_seconds}")
    if buffer_seconds < 0:
        raise ValueError(f"buffer_seconds must be non-negative, got {buffer_seconds}")

    end = effective_end(window_start, window_end)
    step = slot_duration_seconds + buffer_seconds

    slots: list[Slot] = []
    cursor = window_start
    while cursor + slot_duration_seconds <= end:
        slots.append(Slot(cursor, cursor + slot_duration_seconds))
        cursor += step

    return slots


def window_offset(window_start: int, time_of_day: int) -> int:
    """Offset of time_of_day from window_start, moving forward past midnight."""
    return (time_of_day - window_start) % SECONDS_PER_DAY


def window_contains(
    window_start: int,
    window_end: int,
    time_of_day: int,
    slot_duration_seconds: int,
) -> bool:
    """Check that a slot starting at time_of_day fits inside the window."""
    length = effective_end(window_start, window_end) - window_start
    return window_offset(window_start, time_of_day) + slot_duration_seconds <= length


def is_on_slot_grid(
    window_start: int,
    time_of_day: int,
    slot_duration_seconds: int,
    buffer_seconds: int = 0,
) -> bool:
    """Check that time_of_day is window_start + k * (duration + buffer)."""
    step = slot_duration_seconds + buffer_seconds
    return window_offset(window_start, time_of_day) % step == 0
