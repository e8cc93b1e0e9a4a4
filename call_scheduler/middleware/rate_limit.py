# call_scheduler/middleware/rate_limit.py
"""
Rate limiting for the public API.

Endpoint classes:
- read  - GET /availability, GET /consultants, GET /bookings/*
- write - POST /bookings, PATCH /bookings/{id}

Every rate-limited response carries X-RateLimit-* headers;
exceeding the threshold returns 429 with retryAfter.
"""

import logging
from typing import Optional

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from ..errors import RateLimitedError, error_response
from ..utils.client_ip import get_client_ip
from ..utils.hashing import short_hash

logger = logging.getLogger(__name__)


READ = "read"
WRITE = "write"

# path prefix → endpoint class per method
RATE_LIMITED_ROUTES = {
    "/availability": {"GET": READ},
    "/consultants": {"GET": READ},
    "/bookings": {"GET": READ, "POST": WRITE, "PATCH": WRITE},
}


def endpoint_class_for(method: str, path: str) -> Optional[str]:
    """Map a request to its endpoint class, None when not rate limited."""
    for prefix, methods in RATE_LIMITED_ROUTES.items():
        if path == prefix or path.startswith(prefix + "/"):
            return methods.get(method.upper())
    return None


async def rate_limit_middleware(request: Request, call_next):
    """
    HTTP middleware for rate limiting.

    Identity: client IP (proxy headers only when trust_proxy is set).
    """
    endpoint_class = endpoint_class_for(request.method, request.url.path)
    if endpoint_class is None:
        return await call_next(request)

    state = request.app.state
    limiter = state.rate_limiters[endpoint_class]
    client = get_client_ip(request, trust_proxy=state.settings.trust_proxy)

    # Lock retries sleep; keep them off the event loop
    result = await run_in_threadpool(limiter.check, endpoint_class, client)

    if not result.allowed:
        logger.warning(
            f"Rate limit exceeded: class={endpoint_class}, "
            f"client={short_hash(client)}, limit={result.limit}"
        )
        return error_response(RateLimitedError(result.retry_after), headers=result.headers())

    response = await call_next(request)
    response.headers.update(result.headers())
    return response
