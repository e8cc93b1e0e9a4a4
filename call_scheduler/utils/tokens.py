"""
Booking form tokens.

Format: "{timestamp}:{hmac_sha256(timestamp, secret)}", valid for 5 minutes.
"""

import hashlib
import hmac
import logging
import time

from ..errors import ForbiddenError

logger = logging.getLogger(__name__)

TOKEN_MAX_AGE = 300


def make_token(secret: str, timestamp: int | None = None) -> str:
    ts = str(int(timestamp if timestamp is not None else time.time()))
    digest = hmac.new(secret.encode(), ts.encode(), hashlib.sha256).hexdigest()
    return f"{ts}:{digest}"


def verify_token(token: str | None, secret: str, now: float | None = None) -> None:
    """Raise ForbiddenError if the token is missing, malformed, stale or forged."""
    if not token:
        logger.warning("Booking token rejected: missing")
        raise ForbiddenError("missing_token", "Security token required.")

    parts = token.split(":")
    if len(parts) != 2 or not parts[0].isdigit():
        logger.warning("Booking token rejected: malformed")
        raise ForbiddenError("invalid_token", "Invalid security token format.")

    timestamp, digest = parts
    now = time.time() if now is None else now
    if abs(now - int(timestamp)) > TOKEN_MAX_AGE:
        logger.warning("Booking token rejected: expired")
        raise ForbiddenError("expired_token", "Security token expired.")

    expected = hmac.new(secret.encode(), timestamp.encode(), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, digest):
        logger.warning("Booking token rejected: invalid hash")
        raise ForbiddenError("invalid_token", "Invalid security token.")
