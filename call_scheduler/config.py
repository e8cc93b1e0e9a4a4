# call_scheduler/config.py

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[1]  # project root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/scheduler.db"
    redis_url: str = "redis://localhost:6379/0"

    # Booking slots (minutes / days). Unusable values are kept as given;
    # BookingConfig replaces them with defaults and logs why.
    slot_duration: Union[int, str] = 60
    buffer_time: Union[int, str] = 0
    max_booking_days: Union[int, str] = 30

    # Rate limiting (requests per window, window in seconds)
    rate_limit_read: int = 60
    rate_limit_write: int = 5
    rate_limit_window: int = 60

    # Security
    trust_proxy: bool = False
    booking_secret: Optional[str] = None

    events_queue: str = "events:p2p"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @field_validator("slot_duration", "buffer_time", "max_booking_days", mode="before")
    @classmethod
    def parse_booking_number(cls, value):
        return _to_int(value, fallback=value)

    @field_validator("rate_limit_read", "rate_limit_write", "rate_limit_window", mode="before")
    @classmethod
    def parse_rate_limit(cls, value, info: ValidationInfo):
        parsed = _to_int(value, fallback=None)
        if parsed is None:
            default = cls.model_fields[info.field_name].default
            logger.warning(f"Invalid configuration: {info.field_name}={value!r} is not an integer. Using {default!r}.")
            return default
        return parsed

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative sqlite path → absolute, anchored at the project root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url

    @property
    def token_verification_enabled(self) -> bool:
        return bool(self.booking_secret)


def _to_int(value, fallback):
    """Env values arrive as strings; return the int they spell, else fallback."""
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return fallback
    return fallback


@lru_cache
def get_settings() -> Settings:
    return Settings()
