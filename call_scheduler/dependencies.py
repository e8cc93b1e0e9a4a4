# call_scheduler/dependencies.py
# FastAPI dependencies. Everything is read from app.state (set up in create_app),
# so tests can swap the database, Redis and configuration per app instance.

from fastapi import Depends, Request
from redis import Redis
from sqlalchemy.orm import Session

from .config import Settings
from .database import get_db
from .redis_client import get_redis
from .services.booking_guard import BookingGuard
from .services.booking_stats import BookingStatsCache
from .services.events import EventPublisher
from .services.slots.config import BookingConfig


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_booking_config(request: Request) -> BookingConfig:
    return request.app.state.booking_config


def get_stats_cache(redis: Redis = Depends(get_redis)) -> BookingStatsCache:
    return BookingStatsCache(redis)


def get_booking_guard(
    request: Request,
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
    config: BookingConfig = Depends(get_booking_config),
) -> BookingGuard:
    settings = request.app.state.settings
    return BookingGuard(
        db=db,
        config=config,
        publisher=EventPublisher(redis, settings.events_queue),
        stats_cache=BookingStatsCache(redis),
    )
