# call_scheduler/errors.py
"""
Domain errors.

Services raise these; `main.py` turns them into JSON responses
of the form {"detail": message, "code": code}.
"""

from typing import Optional

from fastapi.responses import JSONResponse


class SchedulerError(Exception):
    """Base class for errors reported to the caller."""

    status_code = 500

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ValidationError(SchedulerError):
    """Malformed or out-of-policy input. Never retried automatically."""

    status_code = 400


class ConflictError(SchedulerError):
    """Slot already taken. Retrying the same slot fails again."""

    status_code = 409


class NotFoundError(SchedulerError):
    status_code = 404


class ForbiddenError(SchedulerError):
    status_code = 403


class RateLimitedError(SchedulerError):
    """Threshold exceeded for the current window."""

    status_code = 429

    def __init__(self, retry_after: int, code: str = "rate_limit_exceeded",
                 message: str = "Too many requests. Please try again later."):
        super().__init__(code, message)
        self.retry_after = retry_after


class ConfigurationError(Exception):
    """
    Invalid scheduling configuration.

    Always recovered locally: the caller substitutes a safe default
    and logs a diagnostic. Never surfaced to the end caller.
    """

    def __init__(self, setting: str, value, default, reason: Optional[str] = None):
        self.setting = setting
        self.value = value
        self.default = default
        self.reason = reason or "invalid value"
        super().__init__(f"{setting}={value!r}: {self.reason}. Using {default!r}.")


def error_response(exc: SchedulerError, headers: Optional[dict] = None) -> JSONResponse:
    """JSON body for a domain error: {"detail", "code"} (+ retryAfter for 429)."""
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, RateLimitedError):
        content["retryAfter"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after), **(headers or {})}
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)
