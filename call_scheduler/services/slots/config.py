# call_scheduler/services/slots/config.py
"""
Booking configuration for slots calculation.

Invalid values never fail a request: each one is replaced by a safe
default and a warning is logged.
"""

import logging
from dataclasses import dataclass

from ...errors import ConfigurationError

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

DEFAULT_SLOT_DURATION = 60
DEFAULT_BUFFER_TIME = 0
DEFAULT_MAX_BOOKING_DAYS = 30

# Durations that don't divide an hour but are whole multiples of 30 min
EXTENDED_DURATIONS = (90, 120)


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for booking/slots system.

    Attributes:
        slot_duration_minutes: Length of a bookable slot (15/30/60, or 90/120)
        buffer_minutes: Non-bookable time after each slot
        max_booking_days: How many days ahead a booking can be made
    """
    slot_duration_minutes: int = DEFAULT_SLOT_DURATION
    buffer_minutes: int = DEFAULT_BUFFER_TIME
    max_booking_days: int = DEFAULT_MAX_BOOKING_DAYS

    @classmethod
    def from_values(
        cls,
        slot_duration: object = DEFAULT_SLOT_DURATION,
        buffer_time: object = DEFAULT_BUFFER_TIME,
        max_booking_days: object = DEFAULT_MAX_BOOKING_DAYS,
    ) -> "BookingConfig":
        """Build a config, substituting defaults for invalid values."""
        duration = _resolve(_validate_slot_duration, slot_duration)
        buffer = _resolve(_validate_buffer_time, buffer_time, duration)
        days = _resolve(_validate_max_booking_days, max_booking_days)
        return cls(
            slot_duration_minutes=duration,
            buffer_minutes=buffer,
            max_booking_days=days,
        )

    @property
    def slot_duration_seconds(self) -> int:
        return self.slot_duration_minutes * 60

    @property
    def buffer_seconds(self) -> int:
        return self.buffer_minutes * 60

    @property
    def step_seconds(self) -> int:
        """Distance between consecutive slot starts."""
        return self.slot_duration_seconds + self.buffer_seconds

    def duration_text(self) -> str:
        """Human-readable duration: "30 minutes", "1 hour", "1 hour 30 minutes"."""
        minutes = self.slot_duration_minutes
        if minutes < 60:
            return f"{minutes} minutes"

        hours, rest = divmod(minutes, 60)
        hours_text = "1 hour" if hours == 1 else f"{hours} hours"
        if rest == 0:
            return hours_text
        return f"{hours_text} {rest} minutes"


def booking_config_from_settings(settings) -> BookingConfig:
    return BookingConfig.from_values(
        slot_duration=settings.slot_duration,
        buffer_time=settings.buffer_time,
        max_booking_days=settings.max_booking_days,
    )


def config_summary(config: BookingConfig, settings=None) -> dict:
    """Effective configuration values (for debugging)."""
    summary = {
        "slot_duration_minutes": config.slot_duration_minutes,
        "slot_duration_text": config.duration_text(),
        "buffer_time_minutes": config.buffer_minutes,
        "max_booking_days": config.max_booking_days,
    }
    if settings is not None:
        summary.update({
            "rate_limit_read": max(1, settings.rate_limit_read),
            "rate_limit_write": max(1, settings.rate_limit_write),
            "rate_limit_window": max(1, settings.rate_limit_window),
            "token_verification_enabled": settings.token_verification_enabled,
            "trust_proxy": settings.trust_proxy,
        })
    return summary


# ── Validators ───────────────────────────────────────────────────────────


def _resolve(validator, value, *args):
    try:
        return validator(value, *args)
    except ConfigurationError as e:
        logger.warning(f"Invalid booking configuration: {e}")
        return e.default


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_slot_duration(value) -> int:
    if not _is_int(value) or value <= 0:
        raise ConfigurationError(
            "slot_duration", value, DEFAULT_SLOT_DURATION,
            "must be a positive integer",
        )
    if 60 % value != 0 and value not in EXTENDED_DURATIONS:
        raise ConfigurationError(
            "slot_duration", value, DEFAULT_SLOT_DURATION,
            "should divide evenly into 60 minutes (or be 90/120)",
        )
    return value


def _validate_buffer_time(value, slot_duration: int) -> int:
    if not _is_int(value) or value < 0:
        raise ConfigurationError(
            "buffer_time", value, DEFAULT_BUFFER_TIME,
            "must be a non-negative integer",
        )
    if value >= slot_duration:
        raise ConfigurationError(
            "buffer_time", value, DEFAULT_BUFFER_TIME,
            f"should be less than slot_duration ({slot_duration})",
        )
    return value


def _validate_max_booking_days(value) -> int:
    if not _is_int(value) or value <= 0:
        raise ConfigurationError(
            "max_booking_days", value, DEFAULT_MAX_BOOKING_DAYS,
            "must be a positive integer",
        )
    return value


# ── Time helpers ─────────────────────────────────────────────────────────


def time_str_to_seconds(time_str: str) -> int:
    """Convert "HH:MM" or "HH:MM:SS" to seconds since midnight."""
    parts = time_str.split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time: {time_str!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    if not (0 <= hours <= 23 and 0 <= minutes <= 59 and 0 <= seconds <= 59):
        raise ValueError(f"Invalid time: {time_str!r}")
    return hours * 3600 + minutes * 60 + seconds


def seconds_to_time_str(seconds: int) -> str:
    """Convert an offset in seconds to wall-clock "HH:MM" (wraps past midnight)."""
    seconds %= SECONDS_PER_DAY
    return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"
