"""Cached aggregate booking counts, invalidated on every booking write."""

import json
import logging

from redis import Redis
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import BookingStatus, Bookings

logger = logging.getLogger(__name__)

_COUNTS_KEY = "cache:bookings:status_counts"
COUNTS_TTL = 300  # 5 minutes


def default_status_counts() -> dict[str, int]:
    return {"all": 0, **{status: 0 for status in BookingStatus.all()}}


def is_valid_status_counts(counts) -> bool:
    """Structure check for cached counts: all keys present, non-negative, consistent."""
    if not isinstance(counts, dict):
        return False

    expected = default_status_counts()
    for key in expected:
        value = counts.get(key)
        if not isinstance(value, int) or value < 0:
            return False

    return counts["all"] == sum(counts[s] for s in BookingStatus.all())


class BookingStatsCache:
    def __init__(self, redis: Redis, ttl: int = COUNTS_TTL):
        self.redis = redis
        self.ttl = ttl

    def get_status_counts(self, db: Session) -> dict[str, int]:
        """Read-through cache of booking counts per status."""
        try:
            cached = self.redis.get(_COUNTS_KEY)
        except Exception:
            logger.exception("Failed to read booking counts cache")
            cached = None

        if cached:
            counts = json.loads(cached)
            if is_valid_status_counts(counts):
                return counts
            logger.warning("Discarding malformed booking counts cache entry")

        counts = _count_by_status(db)
        try:
            self.redis.setex(_COUNTS_KEY, self.ttl, json.dumps(counts))
        except Exception:
            logger.exception("Failed to store booking counts cache")
        return counts

    def invalidate(self) -> None:
        self.redis.delete(_COUNTS_KEY)


def _count_by_status(db: Session) -> dict[str, int]:
    counts = default_status_counts()
    rows = (
        db.query(Bookings.status, func.count(Bookings.id))
        .group_by(Bookings.status)
        .all()
    )
    for status, count in rows:
        if status in counts:
            counts[status] = count
            counts["all"] += count
    return counts
