"""
call_scheduler/services/events.py

Event emitter: pushes domain events to a Redis list for consumption
by notification collaborators (email, webhooks).

Delivery is fire-and-forget: a failed push is logged and never
changes the outcome of the operation that emitted it.
"""

import json
import time
import logging

from redis import Redis

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking.created"
BOOKING_STATUS_CHANGED = "booking.status_changed"


class EventPublisher:
    def __init__(self, redis: Redis, queue: str = "events:p2p"):
        self.redis = redis
        self.queue = queue

    def emit(self, event_type: str, payload: dict) -> bool:
        """
        Emit an event (instant delivery).

        Returns True if the event was queued.
        """
        event = {
            "type": event_type,
            **payload,
            "ts": int(time.time()),
        }
        try:
            self.redis.rpush(self.queue, json.dumps(event))
            logger.info(f"Event emitted: {event_type} → {self.queue}")
            return True
        except Exception as e:
            logger.error(f"Failed to emit event {event_type}: {e}")
            return False
