"""
Typed failures raised by the engine.

Each failure carries the HTTP status the API layer renders it with, so route
handlers never translate errors themselves.
"""

import functools
from typing import Any, Optional

import redis.exceptions
from sqlalchemy import exc as sa_exc


class BookingEngineError(Exception):
    status_code = 400

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)


class NotFound(BookingEngineError):
    status_code = 404


class ValidationError(BookingEngineError):
    """Structurally invalid input."""
    status_code = 400


class BusinessRuleViolation(BookingEngineError):
    """Well-formed request disallowed by a domain rule."""
    status_code = 409

    def __init__(self, message: str, available_units: Optional[int] = None, **extra: Any):
        if available_units is not None:
            extra["available_units"] = available_units
        super().__init__(message, **extra)
        self.available_units = available_units


class Forbidden(BookingEngineError):
    status_code = 403


class ResourceExhausted(BookingEngineError):
    """The booking code space is saturated."""
    status_code = 503


class Unavailable(BookingEngineError):
    """The store or cache could not be reached. Safe for the caller to retry."""
    status_code = 503


_TRANSPORT_ERRORS = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.TimeoutError,
    redis.exceptions.ConnectionError,
    redis.exceptions.TimeoutError,
)


def surface_unavailable(func):
    """Translate store/cache transport failures raised by `func` into Unavailable."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except _TRANSPORT_ERRORS as e:
            raise Unavailable(f"Backing store unavailable: {type(e).__name__}") from e

    return wrapper
