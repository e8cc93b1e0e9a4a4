# call_scheduler/main.py
# Run: uvicorn call_scheduler.main:create_app --factory

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis import Redis, RedisError
from sqlalchemy.engine import Engine

from .config import Settings, get_settings
from .database import build_engine, build_session_factory, init_db
from .errors import SchedulerError, error_response
from .middleware.rate_limit import READ, WRITE, rate_limit_middleware
from .redis_client import create_redis
from .routers import availability, bookings, consultants
from .schemas.bookings import FIELD_ERROR_CODES
from .services.rate_limiter import RateLimiter
from .services.slots import booking_config_from_settings, config_summary

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    redis: Optional[Redis] = None,
    engine: Optional[Engine] = None,
) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = engine or build_engine(settings.resolved_database_url)
    init_db(engine)
    redis = redis if redis is not None else create_redis(settings.redis_url)

    app = FastAPI(title="Call Scheduler API")

    app.state.settings = settings
    app.state.redis = redis
    app.state.session_factory = build_session_factory(engine)
    app.state.booking_config = booking_config_from_settings(settings)
    app.state.rate_limiters = {
        READ: RateLimiter(redis, settings.rate_limit_read, settings.rate_limit_window),
        WRITE: RateLimiter(redis, settings.rate_limit_write, settings.rate_limit_window),
    }

    # ===== Middleware =====
    app.middleware("http")(rate_limit_middleware)

    # ===== Errors =====
    app.add_exception_handler(SchedulerError, scheduler_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # ===== Routers =====
    app.include_router(availability.router)
    app.include_router(consultants.router)
    app.include_router(bookings.router)

    @app.get("/health")
    def health():
        try:
            redis_ok = bool(app.state.redis.ping())
        except RedisError:
            redis_ok = False
        return {"redis": redis_ok}

    @app.get("/config")
    def effective_config():
        return config_summary(app.state.booking_config, app.state.settings)

    logger.info(f"Call Scheduler started: {config_summary(app.state.booking_config)}")
    return app


# ── Error handlers ───────────────────────────────────────────────────────


async def scheduler_error_handler(request: Request, exc: SchedulerError):
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Shape validation failures are 400s with a code naming the field."""
    errors = exc.errors()
    code, message = "invalid_request", "Invalid request."

    if errors:
        first = errors[0]
        field = next((p for p in reversed(first.get("loc", ())) if isinstance(p, str)), None)
        code = FIELD_ERROR_CODES.get(field, "invalid_request")
        message = first.get("msg", message)
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]

    return JSONResponse(status_code=400, content={"detail": message, "code": code})
