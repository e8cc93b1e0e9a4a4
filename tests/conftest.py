"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta

import fakeredis
import pytest
from fastapi.testclient import TestClient

from call_scheduler.config import Settings
from call_scheduler.database import build_engine, build_session_factory, init_db
from call_scheduler.main import create_app
from call_scheduler.schemas.bookings import BookingCreate
from call_scheduler.services.booking_guard import BookingGuard
from call_scheduler.services.booking_stats import BookingStatsCache
from call_scheduler.services.consultants import create_consultant
from call_scheduler.services.events import EventPublisher
from call_scheduler.services.slots.config import BookingConfig

# Monday 2030-01-07, 08:00: fixed "now" for business-rule tests
NOW = datetime(2030, 1, 7, 8, 0)
MONDAY = date(2030, 1, 7)

EVERY_DAY_9_TO_17 = {dow: ("09:00", "17:00") for dow in range(7)}


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def config():
    return BookingConfig()


@pytest.fixture
def consultant(db):
    return create_consultant(db, "Jane Doe", title="Tax advisor", weekly_hours=EVERY_DAY_9_TO_17)


@pytest.fixture
def make_guard(redis, config):
    """Factory: BookingGuard bound to a session, with real publisher/cache on fakeredis."""
    def _make(session, booking_config=None, now=NOW, publisher=None):
        return BookingGuard(
            db=session,
            config=booking_config or config,
            publisher=publisher or EventPublisher(redis),
            stats_cache=BookingStatsCache(redis),
            now=now,
        )
    return _make


@pytest.fixture
def app_factory(tmp_path, redis):
    """Factory: FastAPI app with its own database file and the shared fakeredis."""
    engines = []

    def _make(**overrides):
        settings = Settings(
            _env_file=None,
            database_url=f"sqlite:///{tmp_path / f'api{len(engines)}.db'}",
            **{"rate_limit_read": 100, "rate_limit_write": 100, **overrides},
        )
        engine = build_engine(settings.database_url)
        engines.append(engine)
        app = create_app(settings=settings, redis=redis, engine=engine)
        return app

    yield _make

    for engine in engines:
        engine.dispose()


@pytest.fixture
def app(app_factory):
    return app_factory()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def api_consultant(app):
    """An every-day 09:00–17:00 consultant stored in the app's database."""
    session = app.state.session_factory()
    try:
        return create_consultant(session, "Api Consultant", weekly_hours=EVERY_DAY_9_TO_17)
    finally:
        session.close()


def make_request(
    consultant_id: str,
    booking_date: date = MONDAY,
    time: str = "10:00",
    name: str = "John Smith",
    email: str = "john@example.com",
) -> BookingCreate:
    """Helper to create a BookingCreate with sensible defaults."""
    return BookingCreate(
        consultant_id=consultant_id,
        customer_name=name,
        customer_email=email,
        date=booking_date.isoformat(),
        time=time,
    )


def tomorrow() -> date:
    return date.today() + timedelta(days=1)


def booking_payload(consultant_id: str, booking_date: date | None = None, time: str = "10:00", **extra) -> dict:
    return {
        "consultantId": consultant_id,
        "customerName": "John Smith",
        "customerEmail": "john@example.com",
        "date": (booking_date or tomorrow()).isoformat(),
        "time": time,
        **extra,
    }
